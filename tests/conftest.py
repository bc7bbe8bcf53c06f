"""
Shared pytest fixtures for the order dispatch tests.

These fixtures provide consistent test data and fresh channel state per test.
"""

import pytest

from order_dispatch.channels import MockChannel
from order_dispatch.config import Settings


OWNER_PHONE = "+919000000001"
CUSTOMER_PHONE = "+918121223832"


@pytest.fixture
def owner_phone() -> str:
    """The shop owner's number."""
    return OWNER_PHONE


@pytest.fixture
def customer_phone() -> str:
    """Rohith's number, as it appears in the sample order."""
    return CUSTOMER_PHONE


@pytest.fixture
def channel() -> MockChannel:
    """Fresh in-memory channel for each test."""
    return MockChannel()


@pytest.fixture
def settings() -> Settings:
    """Settings with an owner and no signing secret."""
    return Settings(
        whatsapp_token="test-token",
        whatsapp_phone_number_id="1234567890",
        owner_phone=OWNER_PHONE,
    )


@pytest.fixture
def signed_settings(settings: Settings) -> Settings:
    """Settings with a signing secret configured."""
    return settings.model_copy(update={"webhook_secret": "s3cret"})


# =============================================================================
# Payload Fixtures
# =============================================================================

@pytest.fixture
def sample_order() -> dict:
    """A complete delivery order with one line item."""
    return {
        "customer_name": "Rohith",
        "phone": CUSTOMER_PHONE,
        "order": [{"item": "Chicken Biryani", "qty": 2}],
        "delivery_type": "Delivery",
        "address": "Madhapur",
    }


@pytest.fixture
def multi_item_order() -> dict:
    """A pickup order with several items and notes."""
    return {
        "name": "Priya",
        "customer_phone": "+91 98765 43210",
        "order": [
            {"item": "Paneer Tikka", "qty": 1},
            {"name": "Garlic Naan", "qty": 3},
            {"qty": 2},
        ],
        "notes": "Less spicy please",
    }
