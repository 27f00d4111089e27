import re
from datetime import datetime
from urllib.parse import quote

from freshcart.cart import Cart, CartItem
from freshcart.errors import FormValidationError
from freshcart.units import display_unit, quantity_text

_SEPARATOR = "--------------------------"
_WHATSAPP_BASE_URL = "https://wa.me"


class OrderValidationError(FormValidationError): ...


def _money(amount: float) -> str:
    return f"₹{amount:.2f}"


def build_whatsapp_link(phone_number: str, message: str) -> str:
    digits = re.sub(r"\D", "", phone_number or "")
    if not digits:
        raise OrderValidationError("WhatsApp number is not configured")
    return f"{_WHATSAPP_BASE_URL}/{digits}?text={quote(message, safe='')}"


class WhatsAppOrderFormatter:
    def __init__(self, shop_name: str, phone_number: str):
        self._shop_name = shop_name
        self._phone_number = phone_number

    def format_message(self, items: list[CartItem], customer_name: str, now: datetime | None = None) -> str:
        """
        Renders the order as a line oriented text block. Every cart line appears
        exactly once and the grand total is the sum of the rendered line totals.
        """
        self._ensure_orderable(items, customer_name)
        now = now or datetime.now()
        lines = [
            f"{self._shop_name} Order",
            "",
            f"Name: {customer_name.strip()}",
            f"Date: {now.strftime('%d/%m/%Y %H:%M')}",
            _SEPARATOR,
        ]
        for index, item in enumerate(items, start=1):
            lines.append(f"{index}) {item.label} - {quantity_text(item.quantity)} {display_unit(item.unit)}")
            lines.append(f"Price: {_money(item.price)} × {quantity_text(item.quantity)} = {_money(item.total)}")
            lines.append("")
        lines.extend(
            [
                _SEPARATOR,
                f"Grand Total: {_money(round(sum(item.total for item in items), 2))}",
                _SEPARATOR,
                "Thank you! Please confirm delivery time.",
            ]
        )
        return "\n".join(lines) + "\n"

    def build_link(self, message: str) -> str:
        return build_whatsapp_link(self._phone_number, message)

    def checkout(self, cart: Cart, customer_name: str, now: datetime | None = None) -> str:
        """Builds the deep link for the cart and clears it once the link is ready."""
        link = self.build_link(self.format_message(cart.items, customer_name, now))
        cart.clear_all()
        return link

    @staticmethod
    def _ensure_orderable(items: list[CartItem], customer_name: str):
        if not (customer_name or "").strip():
            raise OrderValidationError("Please enter your name", {"field": "customerName"})
        if not items:
            raise OrderValidationError("Cart is empty")
