"""
Service configuration.

Settings are read from the environment once at startup (optionally seeded
from a .env file) and passed explicitly to the pieces that need them.
"""

import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError


class ConfigurationError(Exception):
    """Required configuration is missing or invalid."""
    pass


# Environment variable -> Settings field
ENV_VARS = {
    "WHATSAPP_TOKEN": "whatsapp_token",
    "WHATSAPP_PHONE_NUMBER_ID": "whatsapp_phone_number_id",
    "OWNER_PHONE": "owner_phone",
    "WEBHOOK_SECRET": "webhook_secret",
    "WHATSAPP_API_VERSION": "whatsapp_api_version",
    "WHATSAPP_API_BASE_URL": "whatsapp_api_base_url",
    "HTTP_TIMEOUT_SECONDS": "http_timeout_seconds",
    "LOG_LEVEL": "log_level",
}

REQUIRED_VARS = ("WHATSAPP_TOKEN", "WHATSAPP_PHONE_NUMBER_ID")


class Settings(BaseModel):
    """Immutable service settings."""
    model_config = ConfigDict(frozen=True)

    whatsapp_token: str = Field(..., min_length=1, description="Cloud API bearer token")
    whatsapp_phone_number_id: str = Field(..., min_length=1, description="Sender phone number ID")
    owner_phone: Optional[str] = Field(default=None, description="Owner recipient; owner leg is skipped if unset")
    webhook_secret: Optional[str] = Field(default=None, description="Shared signing secret; verification is off if unset")
    whatsapp_api_version: str = "v18.0"
    whatsapp_api_base_url: str = "https://graph.facebook.com"
    http_timeout_seconds: float = Field(default=15.0, gt=0)
    log_level: str = "INFO"

    @classmethod
    def from_env(
        cls,
        env: Optional[dict[str, str]] = None,
        env_file: Optional[Union[str, Path]] = None,
    ) -> "Settings":
        """
        Load settings from environment variables.

        Args:
            env: Mapping to read instead of os.environ (tests pass a dict)
            env_file: .env file to load into os.environ first; ignored when
                      `env` is given

        Raises:
            ConfigurationError: If a required variable is missing or a value is invalid
        """
        if env is None:
            load_dotenv(env_file)
            env = dict(os.environ)

        missing = [name for name in REQUIRED_VARS if not env.get(name, "").strip()]
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

        values = {}
        for var, field_name in ENV_VARS.items():
            raw = env.get(var, "").strip()
            if raw:
                values[field_name] = raw
        if "owner_phone" in values:
            values["owner_phone"] = "".join(values["owner_phone"].split())

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
