from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .errors import NotFoundError

MIME_SUBTYPES = ("plain", "html")

@dataclass(frozen=True)
class AttachmentInfo:
    """
    Metadata for one attachment part. Full-format payloads keep the bytes
    behind `attachment_id`; raw-format payloads carry them inline in `data`.
    """
    file_name: str
    attachment_id: Optional[str] = None       # Gmail body.attachmentId
    size: Optional[int] = None                # reported size in bytes
    data: Optional[bytes] = field(default=None, repr=False)  # inline body, if any

@dataclass(frozen=True)
class Message:
    """
    Normalized, read-only view of a Gmail message.
    """
    id: Optional[str] = None
    thread_id: Optional[str] = None
    history_id: Optional[str] = None
    snippet: Optional[str] = None
    timestamp: Optional[datetime] = None      # None if internalDate was missing/invalid
    sender: Optional[str] = None              # e.g. `Google <no-reply@accounts.google.com>`
    recipient: Optional[str] = None
    subject: Optional[str] = None
    original_body: Optional[str] = None       # full plain text, quoted reply included
    body: Optional[str] = None                # text up to the "On ... wrote:" line
    attachment_info: Tuple[AttachmentInfo, ...] = ()
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def attachments(self) -> List[str]:
        """Attachment file names in part order; duplicates are kept."""
        return [info.file_name for info in self.attachment_info]

    def senders(self) -> List[Optional[str]]:
        return [self.sender]

    def latest_timestamp(self) -> Optional[datetime]:
        return self.timestamp

    def find_attachment(self, file_name: str, duplicate_index: int = 0) -> AttachmentInfo:
        """
        Return the `duplicate_index`-th (0-based) attachment named `file_name`.
        """
        matches = [info for info in self.attachment_info if info.file_name == file_name]
        if not matches:
            raise NotFoundError(
                f"No attachment named {file_name} found among {self.attachments}",
                details={"file_name": file_name},
            )
        if duplicate_index < 0 or duplicate_index >= len(matches):
            raise NotFoundError(
                f"No attachment named {file_name} with duplicate index {duplicate_index}",
                details={"file_name": file_name, "duplicate_index": duplicate_index},
            )
        return matches[duplicate_index]

    def __str__(self) -> str:
        return (
            f"GmailMessage (from: {self.sender} to: {self.recipient} "
            f"timestamp: {self.timestamp} subject: {self.subject} snippet: {self.snippet})"
        )

@dataclass
class SendRequest:
    """
    Everything needed to compose one outgoing message.
    `attachments` are local file paths; `thread_id` is set when replying.
    """
    recipient: str
    sender: Optional[str] = None              # defaults to the account address server side
    subject: Optional[str] = None
    body: Optional[str] = None
    mime_subtype: str = "plain"               # "plain" or "html"
    cc: Optional[str] = None
    bcc: Optional[str] = None
    attachments: Optional[List[str]] = None
    thread_id: Optional[str] = None

@dataclass
class ReplyRequest:
    body: Optional[str] = None
    mime_subtype: str = "plain"
    cc: Optional[str] = None
    bcc: Optional[str] = None
    attachments: Optional[List[str]] = None

    def to_send_request(self, message: Message) -> SendRequest:
        """Address a reply to the sender of `message`, in the same thread."""
        return SendRequest(
            recipient=message.sender or "",
            subject=message.subject,
            body=self.body,
            mime_subtype=self.mime_subtype,
            cc=self.cc,
            bcc=self.bcc,
            attachments=self.attachments,
            thread_id=message.thread_id,
        )
