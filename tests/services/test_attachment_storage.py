from __future__ import annotations

from pathlib import Path

import pytest

from claude_chat.services.storage import AttachmentStorage, IncomingFile, safe_file_name


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("report.pdf", "report.pdf"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\photo 1.png", "photo_1.png"),
        ("...", "file"),
        ("", "file"),
    ],
)
def test_safe_file_name(raw: str, expected: str) -> None:
    assert safe_file_name(raw) == expected


@pytest.mark.asyncio
async def test_save_writes_under_user_and_chat(tmp_path: Path) -> None:
    storage = AttachmentStorage(tmp_path)

    stored = await storage.save(3, 9, IncomingFile("../notes.txt", "text/plain", b"hello"))

    assert stored.file_name == "../notes.txt"
    assert stored.file_type == "text/plain"
    assert stored.file_size == 5
    assert stored.file_path.startswith("/uploads/3/9/")
    assert stored.file_path.endswith("-notes.txt")

    written = tmp_path / "3" / "9" / stored.file_path.rsplit("/", 1)[1]
    assert written.read_bytes() == b"hello"


@pytest.mark.asyncio
async def test_save_defaults_content_type(tmp_path: Path) -> None:
    stored = await AttachmentStorage(tmp_path).save(1, 1, IncomingFile("blob", "", b""))

    assert stored.file_type == "application/octet-stream"
    assert stored.file_size == 0
