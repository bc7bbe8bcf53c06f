"""
Outbound messaging channels.

A channel delivers one text message to one phone-identified recipient.
Two implementations live here:
- WhatsAppChannel: the WhatsApp Cloud API over httpx
- MockChannel: records messages in memory, for tests and dry runs

Design decisions:
- The channel contract is a single `send(to, message)` call returning the
  provider's success payload as a dict
- Any provider rejection or network fault raises DeliveryError carrying the
  HTTP status and the provider's raw error payload, so callers can surface
  it verbatim
- No retries here: a retry policy belongs to whoever wraps the channel
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional, Protocol

import httpx

if TYPE_CHECKING:
    from order_dispatch.config import Settings

logger = logging.getLogger("order_dispatch.channels")


class DeliveryError(Exception):
    """
    The messaging provider rejected a message or could not be reached.

    Attributes:
        status_code: HTTP status from the provider, if a response arrived
        payload: The provider's raw error body (decoded JSON or text), if any
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    @property
    def detail(self) -> Any:
        """The most useful error detail: raw payload if present, else the message."""
        if self.payload is not None:
            return self.payload
        return str(self)


class MessageChannel(Protocol):
    """Anything that can deliver a text message to a phone number."""

    def send(self, to: str, message: str) -> dict[str, Any]:
        ...


@dataclass
class SentMessage:
    """A message handed to the mock channel, kept for test assertions."""
    success: bool
    recipient: str
    body: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        return f"{status} MESSAGE to {self.recipient}: {self.body[:50]}..."


def _response_payload(response: httpx.Response) -> Any:
    """Decode a provider response body, falling back to raw text."""
    try:
        return response.json()
    except ValueError:
        return response.text


class WhatsAppChannel:
    """
    WhatsApp Cloud API text-message channel.

    Owns a single httpx.Client; call close() on shutdown.
    """

    # Cloud API limit for a text message body
    MAX_LENGTH = 4096

    def __init__(
        self,
        token: str,
        phone_number_id: str,
        api_version: str = "v18.0",
        base_url: str = "https://graph.facebook.com",
        timeout: float = 15.0,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the channel.

        Args:
            token: Cloud API bearer token
            phone_number_id: Sender phone number ID
            api_version: Graph API version segment
            base_url: Graph API base URL
            timeout: Per-request timeout in seconds
            client: Preconfigured client (tests inject one with a mock transport)
        """
        self.phone_number_id = phone_number_id
        self.endpoint = f"{base_url.rstrip('/')}/{api_version}/{phone_number_id}/messages"
        self._client = client or httpx.Client(timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    @classmethod
    def from_settings(cls, settings: "Settings") -> "WhatsAppChannel":
        """Build a channel from a Settings instance."""
        return cls(
            token=settings.whatsapp_token,
            phone_number_id=settings.whatsapp_phone_number_id,
            api_version=settings.whatsapp_api_version,
            base_url=settings.whatsapp_api_base_url,
            timeout=settings.http_timeout_seconds,
        )

    def send(self, to: str, message: str) -> dict[str, Any]:
        """
        Send a text message.

        Args:
            to: Recipient phone number
            message: Message body

        Returns:
            The provider's JSON response

        Raises:
            DeliveryError: On a non-2xx response or a network failure
        """
        if len(message) > self.MAX_LENGTH:
            logger.warning(
                f"[WHATSAPP] Message length ({len(message)}) exceeds {self.MAX_LENGTH} chars, "
                "provider will reject it"
            )

        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": "text",
            "text": {"preview_url": False, "body": message},
        }

        try:
            response = self._client.post(self.endpoint, json=payload, headers=self._headers)
        except httpx.RequestError as e:
            logger.error(f"[WHATSAPP FAILED] To: {to} | Request error: {e}")
            raise DeliveryError(f"Request to WhatsApp API failed: {e}") from e

        if response.is_error:
            error_payload = _response_payload(response)
            logger.error(
                f"[WHATSAPP FAILED] To: {to} | Status: {response.status_code} | Body: {error_payload}"
            )
            raise DeliveryError(
                f"WhatsApp API returned {response.status_code}",
                status_code=response.status_code,
                payload=error_payload,
            )

        result = _response_payload(response)
        if not isinstance(result, dict):
            result = {"status_code": response.status_code, "body": result}
        logger.info(f"[WHATSAPP] To: {to}")
        logger.debug(f"[WHATSAPP BODY] {message}")
        return result

    def close(self) -> None:
        self._client.close()


class MockChannel:
    """
    In-memory channel.

    Logs sends and tracks them for test assertions. Recipients listed in
    `failing_recipients` raise DeliveryError, to exercise failure handling.
    """

    def __init__(
        self,
        failing_recipients: Optional[set[str]] = None,
        failure_status: int = 500,
        failure_payload: Any = None,
    ):
        """
        Initialize the mock channel.

        Args:
            failing_recipients: Recipients whose sends should fail
            failure_status: Status code carried by simulated failures
            failure_payload: Error body carried by simulated failures
        """
        self.failing_recipients = set(failing_recipients or ())
        self.failure_status = failure_status
        self.failure_payload = failure_payload if failure_payload is not None else {
            "error": {"message": "Simulated delivery failure", "code": 131000}
        }
        self.sent_messages: list[SentMessage] = []

    def send(self, to: str, message: str) -> dict[str, Any]:
        """
        Send a message (mock implementation).

        Raises:
            DeliveryError: If the recipient is configured to fail
        """
        if to in self.failing_recipients:
            self.sent_messages.append(SentMessage(
                success=False,
                recipient=to,
                body=message,
                error="Simulated delivery failure",
            ))
            logger.error(f"[MOCK FAILED] To: {to}")
            raise DeliveryError(
                f"Mock channel returned {self.failure_status}",
                status_code=self.failure_status,
                payload=self.failure_payload,
            )

        self.sent_messages.append(SentMessage(success=True, recipient=to, body=message))
        logger.info(f"[MOCK] To: {to} | Message: {message}")
        return {
            "messaging_product": "whatsapp",
            "contacts": [{"input": to, "wa_id": to.lstrip("+")}],
            "messages": [{"id": f"mock-{len(self.sent_messages)}"}],
        }

    def get_sent_count(self) -> int:
        """Number of send attempts, including failed ones."""
        return len(self.sent_messages)

    def get_successful_sends(self) -> list[SentMessage]:
        return [m for m in self.sent_messages if m.success]

    def clear_history(self):
        """Clear sent message history (useful between tests)."""
        self.sent_messages.clear()

    def find_message_to(self, recipient: str) -> Optional[SentMessage]:
        """Find a message sent to a specific recipient."""
        for msg in self.sent_messages:
            if msg.recipient == recipient:
                return msg
        return None
