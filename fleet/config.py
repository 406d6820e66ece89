"""Environment-based configuration."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_FLEET_DIR = Path(__file__).parent.parent / "vehicles"


class ConfigError(Exception):
    """Required configuration is missing or invalid."""


def fleet_dir_from_env(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Fleet data directory from FLEET_DATA_DIR, defaulting to ./vehicles."""
    environ = os.environ if environ is None else environ
    value = environ.get("FLEET_DATA_DIR")
    return Path(value) if value else DEFAULT_FLEET_DIR


@dataclass
class MailSettings:
    """SMTP settings for the daily digest."""

    host: str
    port: int
    user: Optional[str]
    password: Optional[str]
    recipient: str
    sender: str
    use_tls: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MailSettings":
        """
        Build settings from MAIL_* environment variables.

        MAIL_TO is required. MAIL_FROM defaults to MAIL_USER.
        """
        environ = os.environ if environ is None else environ
        recipient = environ.get("MAIL_TO")
        if not recipient:
            raise ConfigError("MAIL_TO is not set")
        user = environ.get("MAIL_USER") or None
        sender = environ.get("MAIL_FROM") or user
        if not sender:
            raise ConfigError("MAIL_FROM or MAIL_USER must be set")
        port = environ.get("MAIL_PORT", "587")
        try:
            port_num = int(port)
        except ValueError:
            raise ConfigError(f"MAIL_PORT must be an integer, got {port!r}")
        return cls(
            host=environ.get("MAIL_HOST", "smtp.gmail.com"),
            port=port_num,
            user=user,
            password=environ.get("MAIL_PASS") or None,
            recipient=recipient,
            sender=sender,
            use_tls=environ.get("MAIL_TLS", "true").lower() != "false",
        )
