"""Файли, прикріплені до записів документації (.pdf, .doc, .docx)."""
from __future__ import annotations

import logging
import mimetypes
from datetime import datetime
from pathlib import Path
from typing import Optional

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from sstdesk.core.config import settings
from sstdesk.core.errors import ValidationFailed

logger = logging.getLogger("sstdesk.uploads")

ALLOWED_TYPES = {
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
}


def _root() -> Path:
    return Path(settings.upload_dir).resolve()


def _max_bytes() -> int:
    return settings.max_upload_mb * 1024 * 1024


async def read_upload(file: UploadFile) -> tuple[bytes, str]:
    """Перевіряє тип і розмір; повертає вміст і розширення."""
    ext = ALLOWED_TYPES.get((file.content_type or "").lower())
    if ext is None:
        raise ValidationFailed("Solo se permiten archivos .doc, .docx o .pdf")
    limit = _max_bytes()
    # читаємо на байт більше ліміту, щоб не тягнути в пам'ять весь файл
    data = await file.read(limit + 1)
    if len(data) > limit:
        raise ValidationFailed(f"El archivo no debe exceder {settings.max_upload_mb}MB")
    if not data:
        raise ValidationFailed("El archivo está vacío")
    return data, ext


def stored_name(document_type: str, instance_id: str, ext: str, now: datetime) -> str:
    safe_type = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in document_type)
    return f"{safe_type}_{instance_id}_{int(now.timestamp() * 1000)}{ext}"


def _write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


async def save_file(name: str, data: bytes) -> str:
    """Пише файл в upload_dir, повертає публічний URL."""
    path = _root() / name
    await run_in_threadpool(_write, path, data)
    logger.info("upload_saved name=%s bytes=%d", name, len(data))
    return f"{settings.upload_url_prefix.rstrip('/')}/{name}"


def local_path(file_url: Optional[str]) -> Optional[Path]:
    """URL файлу → шлях у upload_dir; зовнішні URL і вихід за межі каталогу → None."""
    prefix = settings.upload_url_prefix.rstrip("/") + "/"
    if not file_url or not file_url.startswith(prefix):
        return None
    root = _root()
    path = (root / file_url[len(prefix):]).resolve()
    if root not in path.parents or not path.is_file():
        return None
    return path


def media_type(path: Path) -> str:
    return mimetypes.guess_type(path.name)[0] or "application/octet-stream"
