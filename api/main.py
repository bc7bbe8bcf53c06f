"""
FastAPI application for the order dispatch service.

This application provides:
1. The inbound order webhook (/webhook) called by the voice agent platform
2. A health check (/health)

Run with:
    uv run uvicorn api.main:app --reload

Settings come from the environment (see order_dispatch.config). Missing
required settings stop the application at startup.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
    datefmt="%H:%M:%S",
)

from order_dispatch.auth import signature_from_headers, verify_signature
from order_dispatch.channels import MessageChannel, WhatsAppChannel
from order_dispatch.config import Settings
from order_dispatch.dispatcher import OrderDispatcher
from order_dispatch.models import normalize_payload

logger = logging.getLogger("order_dispatch.api")

# Module-level instances, built once at startup and shared by every request
_settings: Optional[Settings] = None
_channel: Optional[MessageChannel] = None


def get_settings() -> Settings:
    """Get the settings, loading them from the environment on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def get_channel() -> MessageChannel:
    """Get the messaging channel, building the WhatsApp channel on first use."""
    global _channel
    if _channel is None:
        _channel = WhatsAppChannel.from_settings(get_settings())
    return _channel


def reset_api_state(
    settings: Optional[Settings] = None,
    channel: Optional[MessageChannel] = None,
) -> None:
    """Reset API state (for testing)."""
    global _settings, _channel
    _settings = settings
    _channel = channel


# Application lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load settings and build the channel before serving; close it after."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    channel = get_channel()
    logger.info(
        "Starting order dispatch service "
        f"(owner configured: {bool(settings.owner_phone)}, "
        f"signature check: {'on' if settings.webhook_secret else 'off'})"
    )
    yield
    if isinstance(channel, WhatsAppChannel):
        channel.close()
    logger.info("Shutting down")


app = FastAPI(
    title="Order Dispatch",
    description="Relays orders from a voice agent to the shop owner and the customer over WhatsApp.",
    version="1.0.0",
    lifespan=lifespan,
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "order-dispatch"}


async def read_raw_body(request: Request) -> bytes:
    """The request body exactly as received, before any parsing."""
    return await request.body()


@app.post("/webhook", tags=["Orders"])
def receive_order(
    request: Request,
    raw_body: bytes = Depends(read_raw_body),
    settings: Settings = Depends(get_settings),
    channel: MessageChannel = Depends(get_channel),
):
    """
    Receive an order and send it to the owner and the customer.

    The signature (if a secret is configured) is checked against the raw body
    before anything else happens. Per-recipient delivery failures are
    reported in `results` with a 200; only a bad signature (401) or an
    unexpected fault (500), an unparseable body included, produce an error
    status.
    """
    if not verify_signature(raw_body, signature_from_headers(request.headers), settings.webhook_secret):
        return _error(401, "Invalid signature")

    try:
        body = json.loads(raw_body) if raw_body.strip() else {}
        payload = normalize_payload(body)
        result = OrderDispatcher(channel, settings.owner_phone).dispatch(payload)
    except Exception as e:
        logger.exception("Unexpected error while dispatching order")
        return _error(500, str(e) or e.__class__.__name__)

    return {"ok": True, "results": result.to_results()}
