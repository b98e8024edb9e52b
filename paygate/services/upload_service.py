import secrets
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

from paygate.config import Settings
from paygate.exceptions import ValidationError

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True, slots=True)
class StoredUpload:
    filename: str
    original_name: str
    content_type: str | None
    size: int


def upload_root(settings: Settings) -> Path:
    root = Path(settings.upload_dir)
    root.mkdir(parents=True, exist_ok=True)
    return root


def unique_filename(field_name: str, original_name: str) -> str:
    """Disk name like document-1700000000000-123456789.pdf."""
    suffix = Path(original_name).suffix
    return f"{field_name}-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{suffix}"


def resolve_upload(settings: Settings, filename: str) -> Path | None:
    """
    Map a client-supplied upload reference to a path inside the upload dir.

    Only the basename is used, so references cannot escape the directory.
    """
    name = Path(filename).name
    if not name or name in (".", ".."):
        return None
    return Path(settings.upload_dir) / name


async def store_upload(
    settings: Settings, upload: UploadFile, field_name: str = "document"
) -> StoredUpload:
    """Stream an upload to disk, enforcing the size limit."""
    original_name = upload.filename or "upload"
    filename = unique_filename(field_name, original_name)
    path = upload_root(settings) / filename

    size = 0
    try:
        with path.open("wb") as out:
            while chunk := await upload.read(CHUNK_SIZE):
                size += len(chunk)
                if size > settings.max_upload_bytes:
                    raise ValidationError("File too large")
                out.write(chunk)
    except ValidationError:
        path.unlink(missing_ok=True)
        raise

    return StoredUpload(
        filename=filename,
        original_name=original_name,
        content_type=upload.content_type,
        size=size,
    )
