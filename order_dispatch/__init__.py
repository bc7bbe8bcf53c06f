"""
Order dispatch pipeline.

This package turns an inbound order notification into text messages for the
shop owner and the customer:
- Request signature verification
- Lenient payload models and tagged delivery outcomes
- Plain-text order templates
- Messaging channels (WhatsApp Cloud API, in-memory mock)
- The dispatcher that fans one order out to both recipients
"""

from order_dispatch.auth import compute_signature, signature_from_headers, verify_signature
from order_dispatch.channels import DeliveryError, MessageChannel, MockChannel, WhatsAppChannel
from order_dispatch.config import ConfigurationError, Settings
from order_dispatch.dispatcher import OrderDispatcher, dispatch, resolve_customer_phone
from order_dispatch.models import (
    DeliveryOutcome,
    DeliveryStatus,
    DispatchResult,
    LineItem,
    OrderPayload,
    RecipientRole,
    normalize_payload,
)
from order_dispatch.templates import (
    OrderTemplate,
    format_customer_message,
    format_owner_message,
)

__all__ = [
    "compute_signature",
    "signature_from_headers",
    "verify_signature",
    "DeliveryError",
    "MessageChannel",
    "MockChannel",
    "WhatsAppChannel",
    "ConfigurationError",
    "Settings",
    "OrderDispatcher",
    "dispatch",
    "resolve_customer_phone",
    "DeliveryOutcome",
    "DeliveryStatus",
    "DispatchResult",
    "LineItem",
    "OrderPayload",
    "RecipientRole",
    "normalize_payload",
    "OrderTemplate",
    "format_customer_message",
    "format_owner_message",
]
