"""
Order message templates.

This module turns an order payload into the plain-text messages sent to the
customer and to the shop owner.

Design decisions:
- Formatting is a pure, total function: any input shape renders, missing data
  renders as placeholder text
- The owner message is the customer message with a header prepended, never
  a second rendering of the payload
- No clock, randomness or locale lookups, so the same payload always renders
  byte-identical output
"""

from dataclasses import dataclass
from typing import Any, Optional, Union

from order_dispatch.models import LineItem, OrderPayload


def _first(*values: Optional[str], default: str) -> str:
    """Return the first non-empty value, or the default."""
    for value in values:
        if value:
            return value
    return default


def _format_quantity(qty: Optional[Union[int, float]]) -> str:
    if qty is None:
        return "1"
    return str(qty)


@dataclass(frozen=True)
class OrderTemplate:
    """
    Plain-text layout for order messages.

    Placeholder strings are what a reader sees when the upstream agent
    left a field out.
    """
    owner_header: str = "🛎️ New Order Received"
    customer_placeholder: str = "Customer"
    phone_placeholder: str = "Unknown"
    delivery_type_default: str = "Pickup"
    item_placeholder: str = "item"
    bullet: str = "•"
    empty_items: str = "No items"

    def render_item(self, item: LineItem) -> str:
        """Render one line item as `• <qty> x <name>`."""
        name = _first(item.item, item.name, default=self.item_placeholder)
        qty = item.qty if item.qty is not None else item.quantity
        return f"{self.bullet} {_format_quantity(qty)} x {name}"

    def render_items(self, items: tuple[LineItem, ...]) -> str:
        if not items:
            return self.empty_items
        return "\n".join(self.render_item(item) for item in items)

    def render_customer(self, payload: Any) -> str:
        """
        Render the customer-facing message.

        Args:
            payload: An OrderPayload or any decoded JSON value

        Returns:
            The message text. Never raises.
        """
        order = OrderPayload.from_raw(payload)
        lines = [
            f"Customer: {_first(order.customer_name, order.name, default=self.customer_placeholder)}",
            f"Phone: {_first(order.phone, default=self.phone_placeholder)}",
            f"Type: {_first(order.delivery_type, default=self.delivery_type_default)}",
            f"Address: {order.address or ''}",
            "Items:",
            self.render_items(order.line_items),
            f"Notes: {order.notes or ''}",
        ]
        return "\n".join(lines)

    def render_owner(self, customer_message: str) -> str:
        """Prefix the customer message with the new-order header."""
        return f"{self.owner_header}\n\n{customer_message}"


DEFAULT_TEMPLATE = OrderTemplate()


def format_customer_message(payload: Any) -> str:
    """Render the customer message with the default template."""
    return DEFAULT_TEMPLATE.render_customer(payload)


def format_owner_message(customer_message: str) -> str:
    """Render the owner message with the default template."""
    return DEFAULT_TEMPLATE.render_owner(customer_message)

