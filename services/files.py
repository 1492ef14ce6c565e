"""
File Service - Uploads Stored on Disk with Metadata Rows

Uploaded bytes go to `<upload_dir>/<id><ext>`; the row keeps the original
name, MIME type and size. Only the uploader or an admin can delete a file.
"""

import logging
import uuid
from pathlib import Path
from typing import Any, BinaryIO, Mapping, Optional

from utils.config import settings
from utils.db import Store
from utils.errors import NotFound, StoreError, ValidationError
from utils.query import Filter, ListQuery, PageInfo, PageRequest, Statement
from utils.security import Identity, ensure_owner_or_admin

logger = logging.getLogger(__name__)

ALLOWED_FILE_TYPES = {
    "image": ("image/jpeg", "image/png", "image/gif", "image/webp"),
    "document": (
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ),
    "video": ("video/mp4", "video/avi", "video/mov"),
    "audio": ("audio/mpeg", "audio/wav", "audio/ogg"),
}
ALLOWED_MIME_TYPES = frozenset(mime for group in ALLOWED_FILE_TYPES.values() for mime in group)

CHUNK_SIZE = 64 * 1024

FILE_LISTING = ListQuery(
    select=(
        "SELECT f.*, u.first_name, u.last_name, u.email AS uploader_email "
        "FROM files f LEFT JOIN users u ON f.uploaded_by = u.id"
    ),
    count="SELECT COUNT(*) AS total FROM files f",
    filters=[
        Filter.eq("category", "f.category"),
        Filter.eq("uploaded_by", "f.uploaded_by"),
        Filter.contains("search", "f.original_name", "f.description"),
    ],
    sortable={
        "created_at": "f.created_at",
        "original_name": "f.original_name",
        "size": "f.size",
        "category": "f.category",
    },
    tiebreaker="f.rowid",
)


def format_bytes(size: int, decimals: int = 2) -> str:
    """Human readable size, e.g. 10485760 -> '10 MB'."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, decimals):g} {units[index]}"


def save_upload(
    store: Store,
    source: BinaryIO,
    original_name: str,
    mime_type: Optional[str],
    uploaded_by: str,
    category: str = "general",
    description: str = "",
    upload_dir: Optional[str] = None,
    max_size: Optional[int] = None,
) -> dict[str, Any]:
    """
    Persist an uploaded file to disk and record it.

    The stream is copied in chunks and rejected as soon as it grows past
    `max_size`; a partial file is never left behind.

    Raises:
        ValidationError: Disallowed MIME type, empty upload or oversize file
    """
    max_size = max_size or settings.MAX_FILE_SIZE
    if not original_name:
        raise ValidationError("No file uploaded")
    if mime_type not in ALLOWED_MIME_TYPES:
        raise ValidationError("File type not allowed")

    target_dir = Path(upload_dir or settings.UPLOAD_DIR)
    target_dir.mkdir(parents=True, exist_ok=True)

    file_id = str(uuid.uuid4())
    filename = f"{file_id}{Path(original_name).suffix.lower()}"
    target = target_dir / filename

    size = 0
    try:
        with open(target, "wb") as out:
            while True:
                chunk = source.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_size:
                    raise ValidationError(f"File size exceeds maximum limit of {format_bytes(max_size)}")
                out.write(chunk)
    except BaseException:
        target.unlink(missing_ok=True)
        raise

    try:
        record = store.fetch_one(
            Statement(
                "INSERT INTO files (id, original_name, filename, mime_type, size, category, description, "
                "uploaded_by, file_path) VALUES (?1, ?2, ?3, ?4, ?5, ?6, ?7, ?8, ?9) RETURNING *",
                [file_id, original_name, filename, mime_type, size, category, description, uploaded_by, str(target)],
            )
        )
    except StoreError:
        target.unlink(missing_ok=True)
        raise

    logger.info("File uploaded", extra={"file_id": file_id, "original_name": original_name, "size": size})
    return record


def list_files(
    store: Store,
    criteria: Mapping[str, Any],
    page: PageRequest,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> tuple[list[dict[str, Any]], PageInfo]:
    return store.fetch_page(FILE_LISTING, criteria, page, sort_by, sort_order)


def get_file(store: Store, file_id: str) -> dict[str, Any]:
    record = store.fetch_one(
        Statement(
            "SELECT f.*, u.first_name, u.last_name, u.email AS uploader_email "
            "FROM files f LEFT JOIN users u ON f.uploaded_by = u.id WHERE f.id = ?1",
            [file_id],
        )
    )
    if record is None:
        raise NotFound("File not found")
    return record


def resolve_download(store: Store, file_id: str) -> tuple[dict[str, Any], Path]:
    """
    Raises:
        NotFound: If the row or the file on disk is missing
    """
    record = get_file(store, file_id)
    path = Path(record["file_path"])
    if not path.is_file():
        logger.warning("File missing on disk", extra={"file_id": file_id, "file_path": str(path)})
        raise NotFound("File not found on disk")

    logger.info("File downloaded", extra={"file_id": file_id, "original_name": record["original_name"]})
    return record, path


def delete_file(store: Store, file_id: str, identity: Identity) -> None:
    record = store.fetch_one(Statement("SELECT id, uploaded_by, file_path FROM files WHERE id = ?1", [file_id]))
    if record is None:
        raise NotFound("File not found")
    ensure_owner_or_admin(identity, record["uploaded_by"], "delete this file")

    store.execute(Statement("DELETE FROM files WHERE id = ?1 RETURNING id", [file_id]))
    Path(record["file_path"]).unlink(missing_ok=True)

    logger.info("File deleted", extra={"file_id": file_id, "deleted_by": identity.id})


def file_stats(store: Store) -> dict[str, Any]:
    category_counts = ", ".join(
        f"COUNT(CASE WHEN mime_type IN ({', '.join(repr(m) for m in mimes)}) THEN 1 END) AS {group}_count"
        for group, mimes in ALLOWED_FILE_TYPES.items()
    )
    stats = store.fetch_one(
        Statement(
            "SELECT COUNT(*) AS total_files, COALESCE(SUM(size), 0) AS total_size, "
            f"COUNT(DISTINCT uploaded_by) AS unique_uploaders, {category_counts} FROM files"
        )
    ) or {}

    total_size = int(stats.get("total_size") or 0)
    return {
        "totalFiles": int(stats.get("total_files") or 0),
        "totalSize": total_size,
        "totalSizeFormatted": format_bytes(total_size),
        "uniqueUploaders": int(stats.get("unique_uploaders") or 0),
        "byCategory": {
            "images": int(stats.get("image_count") or 0),
            "documents": int(stats.get("document_count") or 0),
            "videos": int(stats.get("video_count") or 0),
            "audio": int(stats.get("audio_count") or 0),
        },
    }
