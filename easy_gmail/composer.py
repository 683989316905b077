"""Build the raw MIME payload Gmail's messages.send endpoint expects."""

from __future__ import annotations

import asyncio
import mimetypes
from email import encoders, policy
from email.errors import MessageError
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .decoder import b64url_encode
from .errors import CompositionError, InvalidArgumentError, NotFoundError
from .types import MIME_SUBTYPES, SendRequest


async def compose_message(request: SendRequest) -> Dict[str, Any]:
    """
    Turn a SendRequest into `{"raw": ..., "threadId": ...}`.

    Validation happens before any file is read. Attachment files are read off
    the event loop; a missing one raises NotFoundError with its absolute path.
    """
    if request.mime_subtype not in MIME_SUBTYPES:
        raise InvalidArgumentError(
            f"Wrong string passed for mime_subtype {request.mime_subtype!r}, must be 'plain' or 'html'",
            details={"field": "mime_subtype"},
        )
    if not request.recipient:
        raise InvalidArgumentError("A recipient is required", details={"field": "recipient"})
    for name in ("recipient", "sender", "subject", "cc", "bcc"):
        value = getattr(request, name)
        if value and ("\r" in value or "\n" in value):
            raise InvalidArgumentError(f"Header {name} must not contain line breaks", details={"field": name})

    paths = list(request.attachments or [])
    for path in paths:
        if not Path(path).is_file():
            resolved = str(Path(path).resolve())
            raise NotFoundError(f"File {resolved} does not exist!", details={"path": resolved})

    files: List[Tuple[str, bytes]] = []
    for path in paths:
        try:
            content = await asyncio.to_thread(Path(path).read_bytes)
        except OSError as exc:
            raise CompositionError(f"Could not read attachment {path}: {exc}", details={"path": path}) from exc
        files.append((path, content))

    try:
        raw = _build_mime(request, files).as_bytes()
    except (MessageError, ValueError, TypeError) as exc:
        raise CompositionError(f"Could not compose message: {exc}") from exc

    message: Dict[str, Any] = {"raw": b64url_encode(raw)}
    if request.thread_id:
        message["threadId"] = request.thread_id
    return message


def _build_mime(request: SendRequest, files: List[Tuple[str, bytes]]) -> MIMEBase:
    text = MIMEText(request.body or "", request.mime_subtype, "utf-8", policy=policy.SMTP)
    if files:
        mime: MIMEBase = MIMEMultipart("mixed", policy=policy.SMTP)
        mime.attach(text)
        for name, content in files:
            mime.attach(_attachment_part(name, content))
    else:
        mime = text

    for header, value in (
        ("To", request.recipient),
        ("From", request.sender),
        ("Subject", request.subject),
        ("Cc", request.cc),
        ("Bcc", request.bcc),
    ):
        if value:
            mime[header] = value
    return mime


def _attachment_part(name: str, content: bytes) -> MIMEBase:
    ctype, encoding = mimetypes.guess_type(name)
    if ctype is None or encoding is not None:
        ctype = "application/octet-stream"
    maintype, subtype = ctype.split("/", 1)
    part = MIMEBase(maintype, subtype, policy=policy.SMTP)
    part.set_payload(content)
    encoders.encode_base64(part)
    part.add_header("Content-Disposition", "attachment", filename=name)
    return part


__all__ = ["compose_message"]
