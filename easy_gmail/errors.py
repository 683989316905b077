"""Exception types raised by easy_gmail."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple


class GmailError(Exception):
    """
    Base error. Carries a short machine-readable `code` and a `details` dict
    naming the offending field, path or file name.
    """

    code = "GMAIL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidArgumentError(GmailError, ValueError):
    """Bad caller input, e.g. an unknown mime subtype."""

    code = "INVALID_ARGUMENT"


class NotFoundError(GmailError, LookupError):
    """A local file or a named attachment does not exist."""

    code = "NOT_FOUND"


class ConflictError(GmailError):
    """Attachments would overwrite each other on disk."""

    code = "CONFLICT"


class MalformedPayloadError(GmailError, ValueError):
    """An inbound message payload is missing required structure."""

    code = "MALFORMED_PAYLOAD"


class NotInitializedError(GmailError, RuntimeError):
    """No authorized Gmail service handle is available."""

    code = "NOT_INITIALIZED"

    def __init__(self, message: str = "Gmail client not initialized"):
        super().__init__(message)


class TransportError(GmailError):
    """The Gmail API call itself failed (network or provider side)."""

    code = "TRANSPORT_ERROR"


class CompositionError(GmailError):
    """An outgoing message could not be built."""

    code = "COMPOSITION_ERROR"


class AttachmentDownloadError(GmailError):
    """
    Raised by a bulk download after every attachment has been tried.
    `downloaded` lists the file names written, `failures` the (file name, error)
    pairs that were not.
    """

    code = "ATTACHMENT_DOWNLOAD_FAILED"

    def __init__(self, downloaded: List[str], failures: List[Tuple[str, BaseException]]):
        names = ", ".join(name for name, _ in failures)
        super().__init__(
            f"Failed to download {len(failures)} attachment(s): {names}",
            details={"downloaded": list(downloaded), "failed": [name for name, _ in failures]},
        )
        self.downloaded = list(downloaded)
        self.failures = list(failures)


__all__ = [
    "AttachmentDownloadError",
    "CompositionError",
    "ConflictError",
    "GmailError",
    "InvalidArgumentError",
    "MalformedPayloadError",
    "NotFoundError",
    "NotInitializedError",
    "TransportError",
]
