"""
Data models for the order dispatch pipeline.

The inbound payload comes from a voice agent platform and has no fixed shape,
so every field here is optional and every validator coerces bad input to
"absent" instead of raising.

Design decisions:
- Using Pydantic for parsing and serialization
- Payload models are frozen: they are built once per request and never mutated
- Delivery outcomes are tagged by status so callers can branch on the tag
  instead of inspecting error shapes
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


# Keys that may carry the customer's phone number, in priority order
PHONE_KEYS = ("phone", "customer_phone", "customerPhone")


def _as_text(value: Any) -> Optional[str]:
    """Coerce a scalar to text; anything else counts as absent."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _as_quantity(value: Any) -> Optional[Union[int, float]]:
    """Coerce a quantity to a positive number, or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    if value != value or value in (float("inf"), float("-inf")) or value <= 0:
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


# =============================================================================
# Inbound Payload
# =============================================================================

class LineItem(BaseModel):
    """A single ordered item. Both quantity and name may be missing."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    item: Optional[str] = None
    name: Optional[str] = None
    qty: Optional[Union[int, float]] = None
    quantity: Optional[Union[int, float]] = None

    @field_validator("item", "name", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return _as_text(value)

    @field_validator("qty", "quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, value: Any) -> Optional[Union[int, float]]:
        return _as_quantity(value)


class OrderPayload(BaseModel):
    """
    Order notification as sent by the upstream agent.

    Nothing is guaranteed present. Use `from_raw()` to build one from an
    arbitrary decoded JSON value; it never raises.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    customer_name: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    customer_phone: Optional[str] = None
    customerPhone: Optional[str] = None
    delivery_type: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    order: Optional[tuple[LineItem, ...]] = None
    items: Optional[tuple[LineItem, ...]] = None

    @field_validator(
        "customer_name",
        "name",
        "phone",
        "customer_phone",
        "customerPhone",
        "delivery_type",
        "address",
        "notes",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return _as_text(value)

    @field_validator("order", "items", mode="before")
    @classmethod
    def _coerce_items(cls, value: Any) -> Optional[list[dict]]:
        if not isinstance(value, (list, tuple)):
            return None
        coerced = []
        for entry in value:
            if isinstance(entry, Mapping):
                coerced.append({k: v for k, v in entry.items() if isinstance(k, str)})
            elif isinstance(entry, str):
                # A bare string is treated as the item name
                coerced.append({"item": entry})
            else:
                coerced.append({})
        return coerced

    @classmethod
    def from_raw(cls, raw: Any) -> "OrderPayload":
        """Build a payload from any decoded JSON value."""
        if isinstance(raw, OrderPayload):
            return raw
        if not isinstance(raw, Mapping):
            return cls()
        return cls.model_validate({k: v for k, v in raw.items() if isinstance(k, str)})

    @property
    def line_items(self) -> tuple[LineItem, ...]:
        """Ordered items, preferring `order` over `items`."""
        return self.order or self.items or ()


def normalize_payload(body: Any) -> OrderPayload:
    """
    Turn a decoded request body into an OrderPayload.

    The voice agent platform wraps custom function calls in an envelope:
    {"name": "...", "call": {...}, "args": {...}}. When an `args` mapping is
    present the order lives there; otherwise the body itself is the order.
    """
    if isinstance(body, Mapping) and isinstance(body.get("args"), Mapping):
        body = body["args"]
    return OrderPayload.from_raw(body)


# =============================================================================
# Delivery Outcomes
# =============================================================================

class RecipientRole(str, Enum):
    """The two recipient legs of a dispatch."""
    OWNER = "owner"
    CUSTOMER = "customer"


class DeliveryStatus(str, Enum):
    """Tag for a per-recipient outcome."""
    DELIVERED = "delivered"
    SKIPPED = "skipped"
    FAILED = "failed"


class DeliveryOutcome(BaseModel):
    """
    Result of one recipient leg.

    Exactly one of `response`, `reason` or `error` is meaningful, depending
    on `status`. Use the constructors rather than building this directly.
    """
    model_config = ConfigDict(frozen=True)

    status: DeliveryStatus
    recipient: Optional[str] = None
    response: Any = None
    reason: Optional[str] = None
    error: Any = None
    status_code: Optional[int] = None

    @classmethod
    def delivered(cls, recipient: str, response: Any) -> "DeliveryOutcome":
        return cls(status=DeliveryStatus.DELIVERED, recipient=recipient, response=response)

    @classmethod
    def skipped(cls, reason: str) -> "DeliveryOutcome":
        return cls(status=DeliveryStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(
        cls,
        recipient: str,
        error: Any,
        status_code: Optional[int] = None,
    ) -> "DeliveryOutcome":
        return cls(
            status=DeliveryStatus.FAILED,
            recipient=recipient,
            error=error,
            status_code=status_code,
        )

    @property
    def ok(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED


class DispatchResult(BaseModel):
    """
    Combined outcome of both recipient legs.

    `owner` is None only when the dispatcher was never asked to consider the
    owner leg; in practice it is always set.
    """
    model_config = ConfigDict(frozen=True)

    owner: Optional[DeliveryOutcome] = None
    customer: DeliveryOutcome = Field(..., description="Outcome of the customer leg")

    def legs(self) -> list[tuple[RecipientRole, DeliveryOutcome]]:
        """Outcomes in reporting order: owner first, then customer."""
        legs = []
        if self.owner is not None:
            legs.append((RecipientRole.OWNER, self.owner))
        legs.append((RecipientRole.CUSTOMER, self.customer))
        return legs

    def to_results(self) -> dict[str, Any]:
        """
        Render the wire `results` object.

        Delivered legs carry the channel response under the role name, skipped
        legs carry a "skipped: <reason>" marker, and failed legs carry the raw
        transport error under "<role>_error".
        """
        results: dict[str, Any] = {}
        for role, outcome in self.legs():
            if outcome.status == DeliveryStatus.DELIVERED:
                results[role.value] = outcome.response
            elif outcome.status == DeliveryStatus.SKIPPED:
                results[role.value] = f"skipped: {outcome.reason}"
            else:
                results[f"{role.value}_error"] = outcome.error
        return results
