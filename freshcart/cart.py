import json
import logging
from typing import Any, Callable, Self

from pydantic import BaseModel, Field, ValidationError, model_validator

from freshcart.errors import CartStorageError
from freshcart.notifications import Notifier, ToastLogger
from freshcart.product import Product
from freshcart.storage import CART_KEY, CartStorage
from freshcart import units

logger = logging.getLogger(__name__)

CART_SCHEMA_VERSION = 1


def line_total(quantity: float, price: float) -> float:
    return round(quantity * price, 2)


class CartItem(BaseModel):
    id: int = Field(strict=True)
    label: str = Field(default="")
    price: float = Field(ge=0, allow_inf_nan=False)
    quantity: float = Field(allow_inf_nan=False)
    total: float = Field(default=0)
    unit: str = Field(default="kg")
    category: str = Field(default="")
    image: str = Field(default="")

    @model_validator(mode="after")
    def recompute_total(self) -> Self:
        self.total = line_total(self.quantity, self.price)
        return self

    @classmethod
    def from_product(cls, product: Product, quantity: float) -> Self:
        return CartItem(
            id=product.id,
            label=product.display_label,
            price=product.price_per_unit,
            quantity=quantity,
            unit=product.unit,
            category=product.category.value,
            image=product.image,
        )

    def with_quantity(self, quantity: float) -> Self:
        return self.model_copy(update={"quantity": quantity, "total": line_total(quantity, self.price)})


class CartEnvelope(BaseModel):
    version: int = Field(strict=True, ge=0)
    items: list[Any] = Field(default_factory=list)


def _migrate_v0(items: list[Any]) -> list[Any]:
    migrated = []
    for item in items:
        if isinstance(item, dict):
            # the first storefront sold everything by the kilogram
            item = {"unit": "kg", "category": "", **item}
        migrated.append(item)
    return migrated


_MIGRATIONS: dict[int, Callable[[list[Any]], list[Any]]] = {0: _migrate_v0}


def encode_cart(items: list[CartItem]) -> str:
    envelope = CartEnvelope(version=CART_SCHEMA_VERSION, items=[item.model_dump() for item in items])
    return envelope.model_dump_json()


def decode_cart(raw: str | None) -> tuple[list[CartItem], bool]:
    """
    Decodes a stored cart blob into items. A bare JSON array is treated as the
    unversioned layout and migrated. Returns the items together with a flag telling
    whether a migration happened, so callers can write the upgraded envelope back.
    """
    if not raw:
        return [], False
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CartStorageError("Stored cart is not valid JSON", {"detailed_info": str(e)})
    if isinstance(data, list):
        data = {"version": 0, "items": data}
    try:
        envelope = CartEnvelope.model_validate(data)
    except ValidationError as e:
        raise CartStorageError("Stored cart has an unknown layout", {"detailed_info": str(e)})
    if envelope.version > CART_SCHEMA_VERSION:
        raise CartStorageError(f"Unsupported cart version: {envelope.version}", {"version": envelope.version})
    items, migrated = envelope.items, False
    for version in range(envelope.version, CART_SCHEMA_VERSION):
        items = _MIGRATIONS[version](items)
        migrated = True
    return _validate_items(items), migrated


def _validate_items(raw_items: list[Any]) -> list[CartItem]:
    items: list[CartItem] = []
    for raw_item in raw_items:
        try:
            item = CartItem.model_validate(raw_item)
        except ValidationError as e:
            logger.warning("Dropping invalid cart item", extra={"detailed_info": str(e)})
            continue
        if item.quantity <= 0:
            logger.warning("Dropping cart item %s with non-positive quantity", item.id)
            continue
        items.append(item)
    return items


class Cart:
    """
    Storefront cart keyed by product id. Every mutation writes the whole collection
    back to storage before returning.
    """

    def __init__(self, storage: CartStorage, notifier: Notifier | None = None):
        self._storage = storage
        self._notifier = notifier or ToastLogger()
        self._items: list[CartItem] = []
        self.reload()

    @property
    def items(self) -> list[CartItem]:
        return list(self._items)

    @property
    def count(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, product_id: int) -> CartItem | None:
        index = self._index_of(product_id)
        return self._items[index] if index >= 0 else None

    def reload(self):
        try:
            items, migrated = decode_cart(self._storage.get_item(CART_KEY))
        except CartStorageError as e:
            logger.warning(e.msg, extra=e.extra)
            items, migrated = [], False
        self._items = items
        if migrated:
            self._save()

    def add_or_update(self, item: CartItem) -> bool:
        quantity = units.normalize(item.quantity, item.unit)
        if quantity <= 0:
            self._notifier.error("Please select a quantity")
            return False
        item = item.with_quantity(quantity)
        index = self._index_of(item.id)
        if index >= 0:
            self._items[index] = item
        else:
            self._items.append(item)
        self._save()
        self._notifier.success(f"{item.label} ({units.format_quantity(item.quantity, item.unit)}) added to cart")
        return True

    def add_product(self, product: Product, quantity: float) -> bool:
        return self.add_or_update(CartItem.from_product(product, units.normalize(quantity, product.unit)))

    def remove(self, product_id: int):
        self._discard(product_id)
        self._save()
        self._notifier.success("Item removed from cart")

    def clear_all(self):
        self._items.clear()
        self._save()

    def set_quantity(self, product_id: int, raw_value: Any):
        item = self.get(product_id)
        if item is None:
            return
        quantity = units.parse_quantity(raw_value)
        if quantity is None:
            self._discard(product_id)
        else:
            self._apply_quantity(item, units.normalize(quantity, item.unit))
        self._save()

    def increment(self, product_id: int):
        item = self.get(product_id)
        if item is None:
            return
        self._apply_quantity(item, units.increment(item.quantity, item.unit))
        self._save()

    def decrement(self, product_id: int):
        item = self.get(product_id)
        if item is None:
            return
        self._apply_quantity(item, units.decrement(item.quantity, item.unit))
        self._save()

    def grand_total(self) -> float:
        return round(sum(item.total for item in self._items), 2)

    def _apply_quantity(self, item: CartItem, quantity: float):
        if quantity <= 0:
            self._discard(item.id)
            return
        self._items[self._index_of(item.id)] = item.with_quantity(quantity)

    def _discard(self, product_id: int):
        self._items = [item for item in self._items if item.id != product_id]

    def _index_of(self, product_id: int) -> int:
        for i, item in enumerate(self._items):
            if item.id == product_id:
                return i
        return -1

    def _save(self):
        self._storage.set_item(CART_KEY, encode_cart(self._items))
