"""Helpers for decoding Gmail message payloads and headers."""

from __future__ import annotations

import base64
import binascii
import re
from email.header import decode_header
from typing import List

from .errors import MalformedPayloadError

DEFAULT_ENCODING = "utf-8"

# A quoted value must be non-empty, so a match always captures a name.
_CHARSET_RE = re.compile(r'charset=(?:"([^"]+)"|([^\s;"]+))', flags=re.I)


def b64url_decode(data: str | bytes | None, field: str = "data") -> bytes:
    """
    Decode the URL-safe base64 blobs Gmail returns (without guaranteed padding).
    """
    if not data:
        return b""
    if isinstance(data, str):
        raw = data.encode("ascii", "replace")
    else:
        raw = data
    padding = (-len(raw)) % 4
    if padding:
        raw += b"=" * padding
    try:
        return base64.urlsafe_b64decode(raw)
    except (binascii.Error, ValueError) as exc:
        raise MalformedPayloadError(
            f"Invalid base64 content in {field}", details={"field": field}
        ) from exc


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii")


def resolve_encoding(content_type: str | None) -> str:
    """
    Return the charset declared in a Content-Type header value, or utf-8.
    The name is passed through unvalidated; `decode_text` rejects unknown ones.
    """
    if not content_type:
        return DEFAULT_ENCODING
    m = _CHARSET_RE.search(content_type)
    if m is None:
        return DEFAULT_ENCODING  # dangerously assume UTF-8
    return m.group(1) or m.group(2)


def decode_text(data: bytes, encoding: str) -> str:
    try:
        return data.decode(encoding, errors="replace")
    except LookupError as exc:
        raise MalformedPayloadError(
            f"Unknown text encoding {encoding!r}", details={"encoding": encoding}
        ) from exc


def decode_header_str(value: str | bytes | None) -> str:
    """
    Decode RFC 2047 encoded words into a single Unicode string.
    """
    if value is None:
        return ""
    if isinstance(value, bytes):
        value = value.decode("utf-8", "replace")
    try:
        parts = decode_header(value)
    except (ValueError, binascii.Error):
        return value

    out: List[str] = []
    for text, charset in parts:
        if isinstance(text, bytes):
            enc = charset or "utf-8"
            try:
                out.append(text.decode(enc, "replace"))
            except LookupError:
                out.append(text.decode("utf-8", "replace"))
        else:
            out.append(text)
    return "".join(out)


__all__ = [
    "DEFAULT_ENCODING",
    "b64url_decode",
    "b64url_encode",
    "decode_header_str",
    "decode_text",
    "resolve_encoding",
]
