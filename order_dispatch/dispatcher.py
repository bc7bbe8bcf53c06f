"""
Order dispatcher: fans one order out to the owner and the customer.

The dispatcher handles:
- Resolving the customer's phone number from the payload
- Rendering the customer and owner messages
- Sending each message through the channel, one call per recipient
- Recording a Delivered / Skipped / Failed outcome per recipient

Design decisions:
- The two legs are independent: a failure on one is recorded and the other
  is still attempted
- Legs run sequentially, owner first. Each call is bounded by the channel's
  HTTP timeout, so a slow owner leg delays but never prevents the customer leg.
- Partial failure is data, not an error: dispatch() never raises for a
  delivery problem
- send_leg() is the per-call boundary; a retry policy can wrap or override it
"""

import logging
from typing import Any, Optional

from order_dispatch.channels import DeliveryError, MessageChannel
from order_dispatch.models import (
    PHONE_KEYS,
    DeliveryOutcome,
    DispatchResult,
    OrderPayload,
    RecipientRole,
)
from order_dispatch.templates import DEFAULT_TEMPLATE, OrderTemplate

logger = logging.getLogger("order_dispatch.dispatcher")

# A customer phone must be longer than this to be worth sending to
MIN_PHONE_LENGTH = 5

SKIP_NO_OWNER = "no owner number configured"
SKIP_NO_PHONE = "no valid customer phone"


def resolve_customer_phone(payload: Any) -> Optional[str]:
    """
    Find the customer's phone number in a payload.

    Checks `phone`, `customer_phone`, then `customerPhone`, and strips all
    whitespace from the first one present.

    Returns:
        The normalized number, or None if no key carries one
    """
    order = OrderPayload.from_raw(payload)
    for key in PHONE_KEYS:
        value = getattr(order, key)
        if value:
            return "".join(value.split())
    return None


class OrderDispatcher:
    """
    Sends a formatted order to the owner and the customer.

    Stateless between calls; one instance can serve every request.
    """

    def __init__(
        self,
        channel: MessageChannel,
        owner_recipient: Optional[str] = None,
        template: OrderTemplate = DEFAULT_TEMPLATE,
    ):
        """
        Initialize the dispatcher.

        Args:
            channel: Where messages are sent
            owner_recipient: Owner phone number; the owner leg is skipped if None
            template: Message layout
        """
        self.channel = channel
        self.owner_recipient = owner_recipient
        self.template = template

    def send_leg(self, role: RecipientRole, recipient: str, body: str) -> DeliveryOutcome:
        """
        Make one channel call and convert its result into an outcome.

        Never raises: provider errors and unexpected exceptions both become a
        Failed outcome.
        """
        try:
            response = self.channel.send(recipient, body)
        except DeliveryError as e:
            logger.error(f"[{role.value.upper()} FAILED] To: {recipient} | Error: {e.detail}")
            return DeliveryOutcome.failed(recipient, e.detail, status_code=e.status_code)
        except Exception as e:
            logger.exception(f"[{role.value.upper()} FAILED] To: {recipient} | Unexpected error")
            return DeliveryOutcome.failed(recipient, str(e))

        logger.info(f"[{role.value.upper()}] Delivered to {recipient}")
        return DeliveryOutcome.delivered(recipient, response)

    def dispatch(self, payload: Any) -> DispatchResult:
        """
        Format the order and deliver it to both recipients.

        Args:
            payload: An OrderPayload or any decoded JSON value

        Returns:
            DispatchResult with an outcome for each leg
        """
        order = OrderPayload.from_raw(payload)
        customer_message = self.template.render_customer(order)
        owner_message = self.template.render_owner(customer_message)

        if self.owner_recipient:
            owner = self.send_leg(RecipientRole.OWNER, self.owner_recipient, owner_message)
        else:
            logger.info(f"[OWNER] Skipped: {SKIP_NO_OWNER}")
            owner = DeliveryOutcome.skipped(SKIP_NO_OWNER)

        phone = resolve_customer_phone(order)
        if phone and len(phone) > MIN_PHONE_LENGTH:
            customer = self.send_leg(RecipientRole.CUSTOMER, phone, customer_message)
        else:
            logger.info(f"[CUSTOMER] Skipped: {SKIP_NO_PHONE} (got {phone!r})")
            customer = DeliveryOutcome.skipped(SKIP_NO_PHONE)

        return DispatchResult(owner=owner, customer=customer)


def dispatch(
    payload: Any,
    owner_recipient: Optional[str],
    channel: MessageChannel,
    template: OrderTemplate = DEFAULT_TEMPLATE,
) -> DispatchResult:
    """Dispatch one order without keeping a dispatcher around."""
    return OrderDispatcher(channel, owner_recipient, template).dispatch(payload)
