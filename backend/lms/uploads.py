"""
Multipart upload parsing and local file storage.

Stored files live under ``<upload_dir>/<bucket>/`` and are published under
``<public_files_url>/<bucket>/<name>``.
"""

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from fastapi import Depends, Request, UploadFile
from starlette.datastructures import UploadFile as StarletteUploadFile

from .config import Settings, get_settings
from .errors import ValidationFailed
from .processing import PDF_MIME_TYPES, is_pdf

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = set(" *\\/:!@#$%^&()+=[]{};',~`|\"<>?")


async def parse_upload(request: Request, file_field: str = "file") -> Tuple[Optional[UploadFile], Dict[str, str]]:
    """Split a multipart form into its file part and the remaining text fields."""
    form = await request.form()
    upload = form.get(file_field)
    if not isinstance(upload, StarletteUploadFile):
        upload = None

    fields: Dict[str, str] = {}
    for key, value in form.multi_items():
        if key != file_field and isinstance(value, str):
            fields[key] = value
    return upload, fields


def validate_file_type(upload: UploadFile, allowed_types: Iterable[str]) -> bool:
    return (upload.content_type or "") in set(allowed_types)


def validate_file_size(size: int, max_size: int) -> bool:
    return size <= max_size


async def read_pdf_upload(upload: Optional[UploadFile], max_size: int) -> bytes:
    """Validate an uploaded PDF and return its bytes."""
    if upload is None:
        raise ValidationFailed("PDF file is required")
    if not validate_file_type(upload, PDF_MIME_TYPES):
        raise ValidationFailed("Only PDF files are allowed")

    data = await upload.read()
    if not validate_file_size(len(data), max_size):
        raise ValidationFailed(f"File size exceeds {max_size} bytes")
    if not is_pdf(data):
        raise ValidationFailed("File must be a valid PDF")
    return data


@dataclass(frozen=True)
class StoredFile:
    bucket: str
    name: str
    url: str


class FileStorage:
    """Bucketed file storage on the local filesystem."""

    def __init__(self, root: str, public_url: str = "/files"):
        self.root = Path(root).resolve()
        self.public_url = public_url.rstrip("/")

    def _bucket_dir(self, bucket: str) -> Path:
        path = self.root / self.get_safe_filename(bucket)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def save(self, bucket: str, filename: str, data: bytes, prefix: str = "") -> StoredFile:
        """Store ``data`` under a unique, sanitized name and return its location."""
        safe_name = self.get_safe_filename(filename)
        name = f"{prefix}{int(time.time() * 1000)}-{safe_name}"
        path = self._unique_path(self._bucket_dir(bucket), name)
        with open(path, "wb") as f:
            f.write(data)
        logger.info(f"Stored {len(data)} bytes in bucket '{bucket}' as {path.name}")
        return StoredFile(bucket=bucket, name=path.name, url=f"{self.public_url}/{bucket}/{path.name}")

    def read(self, bucket: str, name: str) -> Optional[bytes]:
        path = self.root / bucket / name
        if not path.is_file():
            return None
        return path.read_bytes()

    def remove(self, bucket: str, name: str) -> bool:
        path = self.root / bucket / name
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.info(f"Removed {name} from bucket '{bucket}'")
        return True

    def locate(self, url: Optional[str]) -> Optional[Tuple[str, str]]:
        """Map a public URL produced by :meth:`save` back to ``(bucket, name)``."""
        if not url:
            return None
        marker = f"{self.public_url}/"
        idx = url.find(marker)
        if idx < 0:
            return None
        rest = url[idx + len(marker):].split("?", 1)[0]
        bucket, _, name = rest.partition("/")
        if not bucket or not name or "/" in name or name in (".", ".."):
            return None
        return bucket, name

    def read_url(self, url: Optional[str]) -> Optional[bytes]:
        location = self.locate(url)
        if location is None:
            return None
        return self.read(*location)

    def remove_url(self, url: Optional[str]) -> bool:
        location = self.locate(url)
        if location is None:
            return False
        return self.remove(*location)

    @staticmethod
    def _unique_path(directory: Path, name: str) -> Path:
        path = directory / name
        if not path.exists():
            return path
        stem, ext = os.path.splitext(name)
        counter = 1
        while True:
            candidate = directory / f"{stem}_{counter}{ext}"
            if not candidate.exists():
                return candidate
            counter += 1

    @staticmethod
    def get_safe_filename(filename: str) -> str:
        """
        Return a safe version of the filename.

        Example:
            >>> FileStorage.get_safe_filename("My Document (draft).pdf")
            'My_Document__draft_.pdf'
        """
        if not filename or not isinstance(filename, str):
            return "unnamed_file"

        safe_chars = []
        for c in filename:
            if c.isalnum() or c in (".", "_", "-"):
                safe_chars.append(c)
            elif c.isspace() or c in _UNSAFE_CHARS:
                safe_chars.append("_")

        safe_name = "".join(safe_chars).strip("_.- ")
        if not safe_name:
            return "unnamed_file"

        max_length = 200
        if len(safe_name) > max_length:
            name, ext = os.path.splitext(safe_name)
            safe_name = f"{name[:max_length - len(ext)]}{ext}"
        return safe_name


def get_storage(settings: Settings = Depends(get_settings)) -> FileStorage:
    """Dependency to get the file storage."""
    return FileStorage(settings.upload_dir, settings.public_files_url)
