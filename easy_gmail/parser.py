from __future__ import annotations
from typing import Any, Dict, List, Optional
import re
from datetime import datetime, timezone
from email import message_from_bytes
from email.message import Message as MimePart
from .types import AttachmentInfo, Message
from .decoder import b64url_decode, b64url_encode, decode_header_str, decode_text, resolve_encoding
from .errors import MalformedPayloadError

# "On Sun, Jan 1, 2018 at 12:00 PM someone@email.com wrote:"
QUOTED_REPLY_RE = re.compile(
    r"^On (?:Sun|Mon|Tue|Wed|Thu|Fri|Sat), "
    r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec) \d+, \d{4} "
    r"at \d+:\d+[ \u202f](?:AM|PM) (.*?) wrote:",
    flags=re.M,
)

# ------------------ Public API ------------------

def parse_message(msg: Dict, prefer_raw: bool = False) -> Message:
    """
    Parse a Gmail API message dict returned by:
      gmail.users().messages().get(userId="me", id=..., format="full"|"raw")
    Set prefer_raw=True if you fetched format="raw"; the MIME source is then
    rebuilt into the format="full" shape before parsing.
    """
    if not isinstance(msg, dict):
        raise MalformedPayloadError("Message must be a JSON object", details={"field": "message"})
    if "raw" in msg and (prefer_raw or "payload" not in msg):
        msg = {**msg, "payload": payload_from_raw(msg["raw"])}
    return _parse_full(msg)

def remove_quoted_parts(text: str) -> str:
    """
    Return `text` up to the quoted reply header ("On ... wrote:"), trailing
    whitespace trimmed. Text without such a line comes back unchanged.
    """
    m = QUOTED_REPLY_RE.search(text)
    if m is None:
        return text
    return text[:m.start()].rstrip()

def payload_from_raw(raw: str | bytes) -> Dict[str, Any]:
    """
    Decode a base64url RFC 822 message and rebuild the format="full" payload
    (headers, mimeType, filename, body, parts) Gmail would have returned.
    """
    em = message_from_bytes(b64url_decode(raw, "raw"))
    return _payload_from_mime(em)

# ------------------ FULL format path ------------------

def _parse_full(msg: Dict) -> Message:
    payload = msg.get("payload")
    if not isinstance(payload, dict):
        raise MalformedPayloadError("Message has no payload", details={"field": "payload"})

    # Single pass, later duplicates win
    headers = _header_map(payload.get("headers"), "payload.headers")

    original_body: Optional[str] = None
    attachments: List[AttachmentInfo] = []

    parts = payload.get("parts")
    if not parts:
        data = _body(payload, "payload").get("data")
        if data and _mime(payload) != "text/html":
            encoding = resolve_encoding(headers.get("CONTENT-TYPE"))
            original_body = decode_text(b64url_decode(data, "payload.body.data"), encoding)
    else:
        for i, part in enumerate(_parts(parts, "payload.parts")):
            where = f"payload.parts[{i}]"
            text = _plain_text(part, where)
            if text is not None:
                original_body = text

            if _mime(part) == "multipart/alternative":
                for j, sub in enumerate(_parts(part.get("parts") or [], f"{where}.parts")):
                    text = _plain_text(sub, f"{where}.parts[{j}]")
                    if text is not None:
                        original_body = text

            # Bytes live behind attachmentId, or inline when rebuilt from raw.
            filename = part.get("filename")
            if filename:
                body = _body(part, where)
                attachment_id = body.get("attachmentId")
                inline = None
                if not attachment_id and body.get("data") is not None:
                    inline = b64url_decode(body["data"], f"{where}.body.data")
                attachments.append(AttachmentInfo(
                    file_name=filename,
                    attachment_id=attachment_id,
                    size=body.get("size"),
                    data=inline,
                ))

    return Message(
        id=msg.get("id"),
        thread_id=msg.get("threadId"),
        history_id=msg.get("historyId"),
        snippet=msg.get("snippet"),
        timestamp=_timestamp(msg.get("internalDate")),
        sender=headers.get("FROM"),
        recipient=headers.get("TO"),
        subject=headers.get("SUBJECT"),
        original_body=original_body,
        body=remove_quoted_parts(original_body) if original_body is not None else None,
        attachment_info=tuple(attachments),
        raw=msg,
    )

# ------------------ RAW format path ------------------

def _payload_from_mime(part: MimePart) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "mimeType": part.get_content_type(),
        "filename": decode_header_str(part.get_filename() or ""),
        "headers": [{"name": k, "value": decode_header_str(v)} for k, v in part.items()],
    }
    if part.is_multipart():
        out["body"] = {"size": 0}
        out["parts"] = [_payload_from_mime(p) for p in part.get_payload()]
    else:
        data = part.get_payload(decode=True) or b""
        out["body"] = {"data": b64url_encode(data), "size": len(data)}
    return out

# ------------------ utilities ------------------

def _header_map(headers: Any, field: str) -> Dict[str, Optional[str]]:
    if not isinstance(headers, list):
        raise MalformedPayloadError(f"{field} must be a list of headers", details={"field": field})
    out: Dict[str, Optional[str]] = {}
    for h in headers:
        if not isinstance(h, dict) or not isinstance(h.get("name"), str):
            raise MalformedPayloadError(f"{field} contains a header without a name", details={"field": field})
        out[h["name"].upper()] = h.get("value")
    return out

def _parts(parts: Any, field: str) -> List[Dict]:
    if not isinstance(parts, list) or not all(isinstance(p, dict) for p in parts):
        raise MalformedPayloadError(f"{field} must be a list of parts", details={"field": field})
    return parts

def _body(part: Dict, field: str) -> Dict:
    body = part.get("body") or {}
    if not isinstance(body, dict):
        raise MalformedPayloadError(f"{field}.body must be an object", details={"field": f"{field}.body"})
    return body

def _mime(part: Dict) -> str:
    return (part.get("mimeType") or "").lower()

def _plain_text(part: Dict, field: str) -> Optional[str]:
    """
    Decode a text/plain part using the charset from its own Content-Type header.
    """
    if _mime(part) != "text/plain":
        return None
    data = _body(part, field).get("data")
    if not data:
        return None
    part_headers = _header_map(part.get("headers") or [], f"{field}.headers")
    encoding = resolve_encoding(part_headers.get("CONTENT-TYPE"))
    return decode_text(b64url_decode(data, f"{field}.body.data"), encoding)

def _timestamp(internal_date: Any) -> Optional[datetime]:
    """internalDate is epoch milliseconds as a decimal string."""
    try:
        return datetime.fromtimestamp(int(internal_date) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None
