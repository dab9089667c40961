"""Filesystem storage for message attachments."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger("claude_chat.services.storage")

PUBLIC_PREFIX = "/uploads"
_UNSAFE_CHARACTERS = re.compile(r"[^\w.\-]+")


@dataclass(frozen=True)
class IncomingFile:
    """Uploaded file read into memory by the HTTP layer."""

    filename: str
    content_type: str
    data: bytes


@dataclass(frozen=True)
class StoredFile:
    file_name: str
    file_path: str
    file_type: str
    file_size: int


def safe_file_name(name: str) -> str:
    """Strip directory parts and characters that do not belong in a file name."""

    base = Path(name.replace("\\", "/")).name
    cleaned = _UNSAFE_CHARACTERS.sub("_", base).strip("._")
    return cleaned or "file"


class AttachmentStorage:
    """Writes attachments under ``{root}/{user_id}/{chat_id}/{timestamp}-{name}``."""

    def __init__(self, root: Path) -> None:
        self.root = root

    async def save(self, user_id: int, chat_id: int, upload: IncomingFile) -> StoredFile:
        stored_name = f"{int(time.time() * 1000)}-{safe_file_name(upload.filename)}"
        directory = self.root / str(user_id) / str(chat_id)
        target = directory / stored_name

        await asyncio.to_thread(self._write, directory, target, upload.data)
        logger.info(
            "Attachment stored",
            extra={"user_id": user_id, "chat_id": chat_id, "file_size": len(upload.data)},
        )
        return StoredFile(
            file_name=upload.filename,
            file_path=f"{PUBLIC_PREFIX}/{user_id}/{chat_id}/{stored_name}",
            file_type=upload.content_type or "application/octet-stream",
            file_size=len(upload.data),
        )

    @staticmethod
    def _write(directory: Path, target: Path, data: bytes) -> None:
        directory.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)


__all__ = ["AttachmentStorage", "IncomingFile", "StoredFile", "safe_file_name"]
