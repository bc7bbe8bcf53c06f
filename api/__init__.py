"""
HTTP API for the order dispatch service.

This package provides the FastAPI application that exposes:
- The inbound order webhook
- A health check
"""

from api.main import app

__all__ = ["app"]
