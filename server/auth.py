from typing import Any, Literal

from fastapi import Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy import select
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from freshcart.errors import ApiError
from server.models import User
from server.request import CredentialsRequest

Role = Literal["admin", "user"]

COOKIE_NAME = "vk_token"


class SessionAuth:
    def __init__(self, secret_key: str, max_age: int, secure: bool = True):
        self._serializer = URLSafeTimedSerializer(secret_key, salt="session-v1")
        self._max_age = max_age
        self._secure = secure

    def issue(self, user: User) -> str:
        return self._serializer.dumps({"id": user.id, "role": user.role, "username": user.username})

    def read(self, token: str | None) -> dict[str, Any] | None:
        if not token:
            return None
        try:
            return self._serializer.loads(token, max_age=self._max_age)
        except (SignatureExpired, BadSignature):
            return None

    def set_cookie(self, response: Response, user: User):
        response.set_cookie(
            COOKIE_NAME,
            self.issue(user),
            max_age=self._max_age,
            path="/",
            httponly=True,
            secure=self._secure,
            samesite="strict",
        )

    def clear_cookie(self, response: Response):
        response.delete_cookie(COOKIE_NAME, path="/", httponly=True, secure=self._secure, samesite="strict")


def _require_credentials(credentials: CredentialsRequest) -> tuple[str, str]:
    username = (credentials.username or "").strip()
    if not username or not credentials.password:
        raise ApiError("Username and password required", 400)
    return username, credentials.password


def find_user(session: Session, username: str) -> User | None:
    return session.scalar(select(User).where(User.username == username))


def authenticate(session: Session, credentials: CredentialsRequest) -> User:
    username, password = _require_credentials(credentials)
    user = find_user(session, username)
    if user is None or not check_password_hash(user.password_hash, password):
        raise ApiError("Invalid credentials", 401)
    return user


def register(session: Session, credentials: CredentialsRequest, role: Role = "user") -> User:
    username, password = _require_credentials(credentials)
    if find_user(session, username) is not None:
        raise ApiError("Username already exists", 409)
    user = User(username=username, password_hash=generate_password_hash(password), role=role)
    session.add(user)
    session.commit()
    return user
