import os
from typing import Self

from pydantic import BaseModel, Field


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class AdminAccount(BaseModel):
    username: str = Field(strict=True, min_length=1)
    password: str = Field(strict=True, min_length=1)


class Settings(BaseModel):
    database_url: str = Field(default="sqlite:///./freshcart.db")
    secret_key: str = Field(default="defaultsecret", min_length=1)
    seed_secret: str = Field(default="")
    admins: list[AdminAccount] = Field(default_factory=list)
    product_cache_ttl: float = Field(default=30.0, ge=0)
    session_max_age: int = Field(default=60 * 60 * 24 * 7, gt=0)
    cookie_secure: bool = Field(default=True)

    @classmethod
    def from_env(cls) -> Self:
        defaults = Settings()
        return Settings(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            secret_key=os.getenv("SECRET_KEY", defaults.secret_key),
            seed_secret=os.getenv("SEED_SECRET", defaults.seed_secret),
            admins=cls._admins_from_env(),
            product_cache_ttl=float(os.getenv("PRODUCT_CACHE_TTL", defaults.product_cache_ttl)),
            session_max_age=int(os.getenv("SESSION_MAX_AGE", defaults.session_max_age)),
            cookie_secure=_env_flag("COOKIE_SECURE", defaults.cookie_secure),
        )

    @staticmethod
    def _admins_from_env() -> list[AdminAccount]:
        admins = []
        for i in (1, 2):
            username, password = os.getenv(f"ADMIN{i}_USERNAME"), os.getenv(f"ADMIN{i}_PASSWORD")
            if username and password:
                admins.append(AdminAccount(username=username, password=password))
        return admins
