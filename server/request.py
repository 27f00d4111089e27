from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProductRequest(BaseModel):
    """
    Product create/update payload. Fields are loosely typed; `server.catalog`
    validates them and answers with the admin form messages.
    """

    model_config = ConfigDict(populate_by_name=True)

    label: str | None = Field(default=None)
    price_per_unit: Any = Field(alias="pricePerUnit", default=None)
    category_id: Any = Field(alias="categoryId", default=None)
    is_active: bool | None = Field(alias="isActive", default=None)


class CategoryRequest(BaseModel):
    label: str | None = Field(default=None)
    unit: str | None = Field(default=None)


class CredentialsRequest(BaseModel):
    username: str | None = Field(default=None)
    password: str | None = Field(default=None)
