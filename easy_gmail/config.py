"""Configuration for authorizing against the Gmail API."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

# Full mailbox access: reading, sending and downloading attachments.
SCOPES: Sequence[str] = ("https://mail.google.com/",)


@dataclass
class GmailConfig:
    token_path: Path = Path("token.json")
    client_secret_path: Path = Path("client_secret.json")
    user_id: str = "me"
    scopes: Sequence[str] = field(default_factory=lambda: tuple(SCOPES))
    cache_discovery: bool = False


def load_config(**overrides) -> GmailConfig:
    """Resolve configuration from environment variables, then explicit overrides."""
    values = {}
    token_env = os.getenv("EASY_GMAIL_TOKEN_FILE")
    if token_env:
        values["token_path"] = Path(token_env)
    secret_env = os.getenv("EASY_GMAIL_CLIENT_SECRET_FILE")
    if secret_env:
        values["client_secret_path"] = Path(secret_env)
    user_env = os.getenv("EASY_GMAIL_USER_ID")
    if user_env:
        values["user_id"] = user_env

    for key, value in overrides.items():
        if value is None:
            continue
        if key in ("token_path", "client_secret_path"):
            value = Path(value)
        values[key] = value
    return GmailConfig(**values)


__all__ = ["SCOPES", "GmailConfig", "load_config"]
