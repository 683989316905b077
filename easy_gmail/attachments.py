"""
Download attachment bytes referenced by a parsed Message.

`transport` is anything with an awaitable
`fetch_attachment_bytes(message_id, attachment_id, user_id) -> str` returning
Gmail's base64url `data` field; GmailClient is the usual one.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from pathlib import Path
from typing import List, Tuple

from .decoder import b64url_decode
from .errors import AttachmentDownloadError, ConflictError, InvalidArgumentError, NotFoundError
from .types import AttachmentInfo, Message

logger = logging.getLogger(__name__)


async def download_attachment(
    transport,
    message: Message,
    file_name: str,
    download_folder: str | Path = ".",
    duplicate_index: int = 0,
    user_id: str = "me",
) -> Path:
    """
    Download one attachment to `download_folder/file_name`. Only the last path
    component of the name is used; anything that would land outside the folder
    raises InvalidArgumentError.
    Use `duplicate_index` to pick among attachments sharing the same name.
    """
    info = message.find_attachment(file_name, duplicate_index)
    folder = await asyncio.to_thread(_ensure_folder, Path(download_folder))
    target = await asyncio.to_thread(_target, folder, info.file_name)
    data = await _fetch(transport, message, info, user_id)
    return await _write(target, data)


async def download_all_attachments(
    transport,
    message: Message,
    download_folder: str | Path = ".",
    overwrite: bool = True,
    user_id: str = "me",
) -> List[str]:
    """
    Download every attachment, one after the other, and return the file names
    written. Names are reduced to their last path component. With
    overwrite=False, same-named attachments are refused up front.
    """
    if not overwrite:
        counts = Counter(_base_name(name) for name in message.attachments)
        duplicates = sorted(name for name, count in counts.items() if count > 1)
        if duplicates:
            raise ConflictError(
                "There are duplicate filenames in attachments. Pass overwrite=True to download them anyway.",
                details={"file_names": duplicates},
            )

    folder = await asyncio.to_thread(_ensure_folder, Path(download_folder))

    downloaded: List[str] = []
    failures: List[Tuple[str, BaseException]] = []
    for info in message.attachment_info:
        try:
            target = await asyncio.to_thread(_target, folder, info.file_name)
            data = await _fetch(transport, message, info, user_id)
            await _write(target, data)
        except Exception as exc:
            logger.warning("Failed to download attachment %s of message %s: %s", info.file_name, message.id, exc)
            failures.append((info.file_name, exc))
            continue
        downloaded.append(target.name)

    if failures:
        raise AttachmentDownloadError(downloaded, failures)
    return downloaded


async def _fetch(transport, message: Message, info: AttachmentInfo, user_id: str) -> bytes:
    if info.data is not None:
        return info.data
    if not info.attachment_id:
        raise NotFoundError(
            f"Attachment {info.file_name} has no attachment id and no inline data",
            details={"file_name": info.file_name},
        )
    data = await transport.fetch_attachment_bytes(message.id, info.attachment_id, user_id)
    return b64url_decode(data, f"attachment {info.file_name}")


def _ensure_folder(folder: Path) -> Path:
    if folder.exists() and not folder.is_dir():
        raise InvalidArgumentError(f"{folder} is a file, not a folder", details={"path": str(folder)})
    folder.mkdir(parents=True, exist_ok=True)
    return folder


def _base_name(file_name: str) -> str:
    # Names come from inbound mail: keep the last component, never a path.
    return Path(file_name.replace("\\", "/")).name


def _target(folder: Path, file_name: str) -> Path:
    name = _base_name(file_name)
    if name in ("", ".", ".."):
        raise InvalidArgumentError(f"Unusable attachment file name {file_name!r}", details={"file_name": file_name})
    target = folder / name
    if target.resolve().parent != folder.resolve():
        raise InvalidArgumentError(
            f"Attachment {file_name!r} would be written outside {folder}",
            details={"file_name": file_name},
        )
    return target


async def _write(target: Path, data: bytes) -> Path:
    await asyncio.to_thread(target.write_bytes, data)
    logger.info("Wrote attachment %s (%d bytes)", target, len(data))
    return target


__all__ = ["download_attachment", "download_all_attachments"]
