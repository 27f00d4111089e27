import os
from typing import Self

from pydantic import BaseModel, Field


class StoreConfig(BaseModel):
    shop_name: str = Field(default="VK Proteins", min_length=1)
    whatsapp_number: str = Field(default="")
    api_base_url: str = Field(default="http://localhost:8000/api")
    request_timeout: float = Field(default=5.0, gt=0)
    cart_path: str = Field(default="./.storefront")

    @classmethod
    def from_env(cls) -> Self:
        defaults = StoreConfig()
        return StoreConfig(
            shop_name=os.getenv("SHOP_NAME", defaults.shop_name),
            whatsapp_number=os.getenv("WHATSAPP_NUMBER", defaults.whatsapp_number),
            api_base_url=os.getenv("API_BASE_URL", defaults.api_base_url),
            request_timeout=float(os.getenv("REQUEST_TIMEOUT", defaults.request_timeout)),
            cart_path=os.getenv("CART_PATH", defaults.cart_path),
        )
