import logging
from datetime import datetime
from typing import Any

from freshcart.cart import Cart, line_total
from freshcart.clients.store_api_client import StoreClient
from freshcart.config import StoreConfig
from freshcart.errors import FormValidationError, StoreError
from freshcart.notifications import Notifier, ToastLogger
from freshcart.product import Product
from freshcart.storage import FileCartStorage
from freshcart.whatsapp import WhatsAppOrderFormatter
from freshcart import units

logger = logging.getLogger(__name__)


class Storefront:
    """
    Public catalog page: per-product quantity selectors in front of the cart, and
    the WhatsApp checkout. Selected quantities live only in memory; the cart is the
    only persisted state.
    """

    def __init__(
        self,
        client: StoreClient,
        cart: Cart,
        formatter: WhatsAppOrderFormatter,
        notifier: Notifier | None = None,
    ):
        self._client = client
        self._formatter = formatter
        self._notifier = notifier or ToastLogger()
        self.cart = cart
        self.products: list[Product] = []
        self._quantities: dict[int, float] = {}

    @classmethod
    def from_config(cls, config: StoreConfig, notifier: Notifier | None = None) -> "Storefront":
        notifier = notifier or ToastLogger()
        return cls(
            StoreClient(config.api_base_url, config.request_timeout),
            Cart(FileCartStorage(config.cart_path), notifier),
            WhatsAppOrderFormatter(config.shop_name, config.whatsapp_number),
            notifier,
        )

    def load_products(self) -> bool:
        try:
            self.products = self._client.get_products()
        except StoreError as e:
            logger.error(msg=e.msg, extra=e.extra)
            self._notifier.error("Failed to load products")
            return False
        return True

    def find_product(self, product_id: int) -> Product | None:
        return next((product for product in self.products if product.id == product_id), None)

    def selected_quantity(self, product: Product) -> float:
        return self._quantities.get(product.id, 0)

    def step_up(self, product: Product) -> float:
        return self._select(product, units.increment(self.selected_quantity(product), product.unit))

    def step_down(self, product: Product) -> float:
        return self._select(product, units.decrement(self.selected_quantity(product), product.unit))

    def set_selected_quantity(self, product: Product, raw_value: Any) -> float:
        quantity = units.parse_quantity(raw_value)
        if quantity is None:
            return self._select(product, 0)
        return self._select(product, units.normalize(quantity, product.unit))

    def line_price(self, product: Product) -> float:
        return line_total(self.selected_quantity(product), product.price_per_unit)

    def add_to_cart(self, product: Product) -> bool:
        added = self.cart.add_product(product, self.selected_quantity(product))
        if added:
            self._quantities.pop(product.id, None)
        return added

    def send_order(self, customer_name: str, now: datetime | None = None) -> str | None:
        try:
            return self._formatter.checkout(self.cart, customer_name, now)
        except FormValidationError as e:
            self._notifier.error(e.msg)
            return None

    def _select(self, product: Product, quantity: float) -> float:
        if quantity <= 0:
            self._quantities.pop(product.id, None)
            return 0
        self._quantities[product.id] = quantity
        return quantity
