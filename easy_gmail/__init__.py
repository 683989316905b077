"""Send Gmail messages and read them back as plain Python objects."""

from .attachments import download_all_attachments, download_attachment
from .client import GmailClient, build_gmail_service
from .composer import compose_message
from .config import GmailConfig, load_config
from .decoder import resolve_encoding
from .errors import (
    AttachmentDownloadError,
    CompositionError,
    ConflictError,
    GmailError,
    InvalidArgumentError,
    MalformedPayloadError,
    NotFoundError,
    NotInitializedError,
    TransportError,
)
from .parser import parse_message, payload_from_raw, remove_quoted_parts
from .types import AttachmentInfo, Message, ReplyRequest, SendRequest

__all__ = [
    "AttachmentDownloadError",
    "AttachmentInfo",
    "CompositionError",
    "ConflictError",
    "GmailClient",
    "GmailConfig",
    "GmailError",
    "InvalidArgumentError",
    "MalformedPayloadError",
    "Message",
    "NotFoundError",
    "NotInitializedError",
    "ReplyRequest",
    "SendRequest",
    "TransportError",
    "build_gmail_service",
    "compose_message",
    "download_all_attachments",
    "download_attachment",
    "load_config",
    "parse_message",
    "payload_from_raw",
    "remove_quoted_parts",
    "resolve_encoding",
]
