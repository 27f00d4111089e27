import math
import re
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from freshcart.errors import FormValidationError
from freshcart.units import UNITS, Unit


def slugify(label: str) -> str:
    return re.sub(r"\s+", "_", label.strip().lower())


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Category(_CamelModel):
    id: int = Field(strict=True)
    label: str = Field(strict=True, min_length=1)
    value: str = Field(strict=True, min_length=1)
    unit: Unit = Field()


class Product(_CamelModel):
    id: int = Field(strict=True)
    label: str | None = Field(default=None)
    price_per_unit: float = Field(alias="pricePerUnit", gt=0)
    category: Category = Field()
    image: str = Field(default="")

    @computed_field
    @property
    def unit(self) -> str:
        return self.category.unit

    @property
    def category_id(self) -> int:
        return self.category.id

    @property
    def display_label(self) -> str:
        return self.label or self.category.label

    @field_validator("price_per_unit")
    @classmethod
    def round_price(cls, v: float) -> float:
        return round(v, 2)


class ProductForm(_CamelModel):
    """
    Admin form payload for creating or updating a product. Prices arrive as text
    from the form inputs, so validation is done by `ensure_valid` rather than
    by field constraints.
    """

    label: str = Field(default="")
    category_id: int | None = Field(alias="categoryId", default=None)
    price_per_unit: float | str | None = Field(alias="pricePerUnit", default=None)

    @classmethod
    def from_product(cls, product: Product) -> Self:
        return ProductForm(
            label=product.label or "", category_id=product.category_id, price_per_unit=product.price_per_unit
        )

    def ensure_valid(self):
        if not self.label.strip():
            raise FormValidationError("Product name required", {"field": "label"})
        price = self.price()
        if price is None or price <= 0:
            raise FormValidationError("Valid price is required", {"field": "pricePerUnit"})
        if not self.category_id:
            raise FormValidationError("Category is required", {"field": "categoryId"})

    def to_payload(self) -> dict:
        return {"label": self.label.strip(), "categoryId": self.category_id, "pricePerUnit": self.price()}

    def price(self) -> float | None:
        try:
            price = float(self.price_per_unit)
        except (TypeError, ValueError):
            return None
        return round(price, 2) if math.isfinite(price) else None


class CategoryForm(_CamelModel):
    label: str = Field(default="")
    unit: str = Field(default="")

    def ensure_valid(self):
        if not self.label.strip():
            raise FormValidationError("Category name required", {"field": "label"})
        if not self.unit:
            raise FormValidationError("Unit is required", {"field": "unit"})
        if self.unit not in UNITS:
            raise FormValidationError(f"Unsupported unit: {self.unit}", {"field": "unit"})

    def to_payload(self) -> dict:
        return {"label": self.label.strip(), "unit": self.unit}
