"""Gmail API client: authorization, sending, and fetching messages and attachments."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import httplib2
from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .attachments import download_all_attachments, download_attachment
from .composer import compose_message
from .config import SCOPES, GmailConfig, load_config
from .errors import NotInitializedError, TransportError
from .parser import parse_message
from .types import Message, ReplyRequest, SendRequest

logger = logging.getLogger(__name__)


def build_gmail_service(
    *,
    token_path: str | Path = "token.json",
    client_secret_path: str | Path = "client_secret.json",
    scopes: Sequence[str] = SCOPES,
    cache_discovery: bool = False,
):
    """
    Create an authenticated Gmail API client, prompting the user if needed.
    """
    token_path = Path(token_path)
    client_secret_path = Path(client_secret_path)

    creds: Optional[Credentials] = None
    if token_path.exists():
        creds = Credentials.from_authorized_user_file(str(token_path), scopes)
    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            creds.refresh(Request())
            logger.info("Refreshed expired credentials")
        else:
            if not client_secret_path.exists():
                raise FileNotFoundError(
                    f"client_secret file not found at {client_secret_path}. "
                    "Download it from Google Cloud Console."
                )
            flow = InstalledAppFlow.from_client_secrets_file(str(client_secret_path), scopes)
            creds = flow.run_local_server(port=0)
        token_path.write_text(creds.to_json())

    return build("gmail", "v1", credentials=creds, cache_discovery=cache_discovery)


class GmailClient:
    """
    Async facade over the Gmail API service.

    Usage:
        client = await GmailClient().init()
        await client.send(SendRequest(recipient="someone@example.com", body="Hi"))
        message = await client.get_message(message_id)
        await client.download_all_attachments(message, "downloads")

    Blocking googleapiclient calls run in a worker thread. API failures surface
    as TransportError and are never retried here.
    """

    def __init__(self, service=None, *, user_id: str = "me"):
        self._service = service
        self.user_id = user_id
        self.email_address: Optional[str] = None
        self.logged_in = False

    @property
    def service(self):
        self._require_service()
        return self._service

    def _require_service(self) -> None:
        if self._service is None:
            raise NotInitializedError()

    async def init(self, config: GmailConfig | None = None) -> "GmailClient":
        """Authorize, then look up the account's address."""
        config = config or load_config()
        self.user_id = config.user_id
        self._service = await asyncio.to_thread(
            build_gmail_service,
            token_path=config.token_path,
            client_secret_path=config.client_secret_path,
            scopes=config.scopes,
            cache_discovery=config.cache_discovery,
        )
        profile = await self._execute(self.service.users().getProfile(userId=self.user_id))
        self.email_address = profile.get("emailAddress")
        self.logged_in = self.email_address is not None
        logger.info("Logged in as %s", self.email_address)
        return self

    async def _execute(self, request) -> Dict[str, Any]:
        try:
            return await asyncio.to_thread(request.execute)
        except HttpError as exc:
            status = getattr(exc.resp, "status", None)
            reason = getattr(exc, "reason", None) or getattr(exc.resp, "reason", None)
            raise TransportError(
                f"Gmail API error: {status} {reason or ''}".rstrip(),
                details={"status": status, "reason": reason},
            ) from exc
        except RefreshError as exc:
            raise TransportError(f"Could not refresh Gmail credentials: {exc}") from exc
        except (httplib2.HttpLib2Error, OSError) as exc:
            raise TransportError(f"Gmail API request failed: {exc}") from exc

    # ------------------ transport capabilities ------------------

    async def send_raw_message(self, message: Dict[str, Any], user_id: str | None = None) -> Dict[str, Any]:
        request = self.service.users().messages().send(userId=user_id or self.user_id, body=message)
        receipt = await self._execute(request)
        logger.info("Sent message %s", receipt.get("id"))
        return receipt

    async def fetch_attachment_bytes(self, message_id: str, attachment_id: str, user_id: str | None = None) -> str:
        """Return the base64url `data` of one attachment."""
        logger.debug("Fetching attachment %s of message %s", attachment_id, message_id)
        request = self.service.users().messages().attachments().get(
            userId=user_id or self.user_id, messageId=message_id, id=attachment_id
        )
        resp = await self._execute(request)
        return resp.get("data", "")

    # ------------------ messages ------------------

    async def get_message(self, message_id: str, user_id: str | None = None, *, format: str = "full") -> Message:
        request = self.service.users().messages().get(
            userId=user_id or self.user_id, id=message_id, format=format
        )
        msg = await self._execute(request)
        return parse_message(msg, prefer_raw=format == "raw")

    async def list_message_ids(
        self,
        *,
        max_results: int = 5,
        label_ids: Iterable[str] | None = None,
        query: str | None = None,
    ) -> List[str]:
        """
        Return the most recent message IDs, optionally filtered by label or query.
        """
        params: Dict[str, Any] = {"userId": self.user_id, "maxResults": max_results}
        if label_ids:
            params["labelIds"] = list(label_ids)
        if query:
            params["q"] = query
        resp = await self._execute(self.service.users().messages().list(**params))
        return [m["id"] for m in resp.get("messages", [])]

    async def send(self, request: SendRequest, user_id: str | None = None) -> Dict[str, Any]:
        """Compose `request` and send it; returns Gmail's sent-message receipt."""
        self._require_service()
        message = await compose_message(request)
        logger.info("Sending message to %s", request.recipient)
        return await self.send_raw_message(message, user_id)

    async def reply(self, message: Message, reply: ReplyRequest, user_id: str | None = None) -> Dict[str, Any]:
        """Like send(), but answers the sender of `message` in its thread."""
        return await self.send(reply.to_send_request(message), user_id)

    # ------------------ attachments ------------------

    async def download_attachment(
        self,
        message: Message,
        file_name: str,
        download_folder: str | Path = ".",
        duplicate_index: int = 0,
    ) -> Path:
        self._require_service()
        return await download_attachment(
            self, message, file_name, download_folder, duplicate_index, user_id=self.user_id
        )

    async def download_all_attachments(
        self,
        message: Message,
        download_folder: str | Path = ".",
        overwrite: bool = True,
    ) -> List[str]:
        self._require_service()
        return await download_all_attachments(
            self, message, download_folder, overwrite, user_id=self.user_id
        )


__all__ = ["GmailClient", "build_gmail_service"]
