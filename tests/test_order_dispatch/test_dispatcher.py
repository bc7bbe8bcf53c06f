"""
Tests for the order dispatcher.

These tests verify phone resolution, skip rules, and that a failure on one
recipient leg never affects the other.
"""

import pytest
from order_dispatch.channels import DeliveryError, MockChannel
from order_dispatch.dispatcher import (
    SKIP_NO_OWNER,
    SKIP_NO_PHONE,
    OrderDispatcher,
    dispatch,
    resolve_customer_phone,
)
from order_dispatch.models import DeliveryStatus, RecipientRole
from order_dispatch.templates import format_customer_message, format_owner_message


class ExplodingChannel:
    """Channel that raises a non-delivery error for one recipient."""

    def __init__(self, explode_for: str):
        self.explode_for = explode_for
        self.calls: list[str] = []

    def send(self, to: str, message: str) -> dict:
        self.calls.append(to)
        if to == self.explode_for:
            raise RuntimeError("socket closed unexpectedly")
        return {"messages": [{"id": f"ok-{len(self.calls)}"}]}


class TestResolveCustomerPhone:
    """Tests for resolve_customer_phone."""

    def test_priority(self):
        """Test phone beats customer_phone beats customerPhone."""
        assert resolve_customer_phone({"phone": "111111", "customer_phone": "222222"}) == "111111"
        assert resolve_customer_phone({"customer_phone": "222222", "customerPhone": "333333"}) == "222222"
        assert resolve_customer_phone({"customerPhone": "333333"}) == "333333"

    def test_strips_whitespace(self):
        """Test internal whitespace is removed."""
        assert resolve_customer_phone({"phone": " +91 81212\t23832 "}) == "+918121223832"

    def test_numeric_phone(self):
        """Test a number is converted to text."""
        assert resolve_customer_phone({"phone": 918121223832}) == "918121223832"

    @pytest.mark.parametrize("payload", [{}, {"phone": ""}, {"phone": None}, {"phone": {"n": 1}}, None])
    def test_missing(self, payload):
        assert resolve_customer_phone(payload) is None


class TestDispatch:
    """Tests for OrderDispatcher.dispatch."""

    def test_both_legs_delivered(self, channel: MockChannel, sample_order, owner_phone, customer_phone):
        """Test both recipients get their message."""
        result = OrderDispatcher(channel, owner_phone).dispatch(sample_order)

        assert result.owner.status == DeliveryStatus.DELIVERED
        assert result.customer.status == DeliveryStatus.DELIVERED
        assert channel.get_sent_count() == 2

        customer_message = format_customer_message(sample_order)
        assert channel.find_message_to(customer_phone).body == customer_message
        assert channel.find_message_to(owner_phone).body == format_owner_message(customer_message)

    def test_owner_sent_first(self, channel: MockChannel, sample_order, owner_phone, customer_phone):
        """Test the owner leg is attempted before the customer leg."""
        OrderDispatcher(channel, owner_phone).dispatch(sample_order)

        assert [m.recipient for m in channel.sent_messages] == [owner_phone, customer_phone]

    def test_no_owner_configured(self, channel: MockChannel, sample_order, customer_phone):
        """Test the owner leg is skipped, not failed, without an owner."""
        result = OrderDispatcher(channel, None).dispatch(sample_order)

        assert result.owner.status == DeliveryStatus.SKIPPED
        assert result.owner.reason == SKIP_NO_OWNER
        assert result.customer.status == DeliveryStatus.DELIVERED
        assert [m.recipient for m in channel.sent_messages] == [customer_phone]

    @pytest.mark.parametrize("phone", [None, "", "12345", " 1 2 3 4 5 "])
    def test_customer_skipped_without_plausible_phone(self, channel: MockChannel, owner_phone, phone):
        """Test short or missing phones skip the customer leg with no call."""
        result = OrderDispatcher(channel, owner_phone).dispatch({"customer_name": "Asha", "phone": phone})

        assert result.customer.status == DeliveryStatus.SKIPPED
        assert result.customer.reason == SKIP_NO_PHONE
        assert result.to_results()["customer"] == f"skipped: {SKIP_NO_PHONE}"
        assert [m.recipient for m in channel.sent_messages] == [owner_phone]

    def test_six_character_phone_is_attempted(self, channel: MockChannel, owner_phone):
        """Test a phone just over the threshold is used."""
        result = OrderDispatcher(channel, owner_phone).dispatch({"phone": "123456"})

        assert result.customer.status == DeliveryStatus.DELIVERED
        assert channel.find_message_to("123456") is not None

    def test_customer_phone_alias_with_spaces(self, channel: MockChannel, multi_item_order, owner_phone):
        """Test the customer_phone key is normalized before sending."""
        OrderDispatcher(channel, owner_phone).dispatch(multi_item_order)

        assert channel.find_message_to("+919876543210") is not None


class TestFailureIsolation:
    """A failure on one leg must not affect the other."""

    def test_owner_fails_customer_delivered(self, sample_order, owner_phone, customer_phone):
        """Test an owner delivery error is recorded and the customer still gets sent."""
        channel = MockChannel(failing_recipients={owner_phone}, failure_status=400,
                              failure_payload={"error": {"code": 131030}})

        result = OrderDispatcher(channel, owner_phone).dispatch(sample_order)

        assert result.owner.status == DeliveryStatus.FAILED
        assert result.owner.error == {"error": {"code": 131030}}
        assert result.owner.status_code == 400
        assert result.customer.status == DeliveryStatus.DELIVERED
        assert result.to_results()["owner_error"] == {"error": {"code": 131030}}
        assert "customer" in result.to_results()

    def test_customer_fails_owner_delivered(self, sample_order, owner_phone, customer_phone):
        """Test a customer delivery error leaves the owner outcome intact."""
        channel = MockChannel(failing_recipients={customer_phone})

        result = OrderDispatcher(channel, owner_phone).dispatch(sample_order)

        assert result.owner.status == DeliveryStatus.DELIVERED
        assert result.customer.status == DeliveryStatus.FAILED
        assert set(result.to_results()) == {"owner", "customer_error"}

    def test_unexpected_exception_isolated(self, sample_order, owner_phone, customer_phone):
        """Test a non-delivery exception is captured as a failure message."""
        channel = ExplodingChannel(explode_for=owner_phone)

        result = OrderDispatcher(channel, owner_phone).dispatch(sample_order)

        assert channel.calls == [owner_phone, customer_phone]
        assert result.owner.status == DeliveryStatus.FAILED
        assert result.owner.error == "socket closed unexpectedly"
        assert result.customer.status == DeliveryStatus.DELIVERED

    def test_both_fail(self, sample_order, owner_phone, customer_phone):
        """Test both legs can fail independently."""
        channel = MockChannel(failing_recipients={owner_phone, customer_phone})

        result = OrderDispatcher(channel, owner_phone).dispatch(sample_order)

        assert result.owner.status == DeliveryStatus.FAILED
        assert result.customer.status == DeliveryStatus.FAILED
        assert channel.get_sent_count() == 2


class TestSendLeg:
    """Tests for the per-call boundary."""

    def test_send_leg_can_be_wrapped(self, sample_order, owner_phone, customer_phone):
        """Test a subclass can retry a leg by overriding send_leg."""

        class FlakyOnceChannel(MockChannel):
            def __init__(self):
                super().__init__()
                self.failed = set()

            def send(self, to, message):
                if to not in self.failed:
                    self.failed.add(to)
                    raise DeliveryError("temporarily unavailable", status_code=503)
                return super().send(to, message)

        class RetryingDispatcher(OrderDispatcher):
            def send_leg(self, role, recipient, body):
                outcome = super().send_leg(role, recipient, body)
                if outcome.status == DeliveryStatus.FAILED and outcome.status_code == 503:
                    outcome = super().send_leg(role, recipient, body)
                return outcome

        channel = FlakyOnceChannel()
        result = RetryingDispatcher(channel, owner_phone).dispatch(sample_order)

        assert result.owner.ok and result.customer.ok
        assert channel.get_sent_count() == 2

    def test_send_leg_failure_message(self, channel, owner_phone):
        """Test send_leg returns a failed outcome instead of raising."""
        channel.failing_recipients.add(owner_phone)

        outcome = OrderDispatcher(channel, owner_phone).send_leg(RecipientRole.OWNER, owner_phone, "hi")

        assert outcome.status == DeliveryStatus.FAILED
        assert outcome.recipient == owner_phone


class TestDispatchFunction:
    """Tests for the module-level dispatch()."""

    def test_dispatch(self, channel, sample_order, owner_phone):
        result = dispatch(sample_order, owner_phone, channel)

        assert result.owner.ok
        assert result.customer.ok
