"""File storage for uploaded documents (local disk or S3)."""

import hashlib
import logging
import os
from typing import BinaryIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from aliice.core.config import settings

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

ALLOWED_EXTENSIONS = {
    "pdf", "png", "jpg", "jpeg", "gif", "webp",
    "doc", "docx", "xls", "xlsx", "ppt", "pptx", "csv", "txt",
}
MAX_FILE_SIZE_BYTES = 25 * 1024 * 1024  # 25 MB
LOCAL_URL_PREFIX = "/files"


# =============================================================================
# Storage Backend
# =============================================================================

def _get_s3_client():
    return boto3.client(
        "s3",
        region_name=settings.S3_REGION,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
    )


def _local_path(storage_key: str) -> str:
    root = os.path.abspath(settings.LOCAL_STORAGE_PATH)
    path = os.path.abspath(os.path.join(root, storage_key))
    if not path.startswith(root + os.sep):
        raise ValueError("Invalid storage key")
    return path


# =============================================================================
# File Operations
# =============================================================================

def file_extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def calculate_checksum(file: BinaryIO) -> str:
    """SHA-256 of the stream; leaves it rewound."""
    sha256 = hashlib.sha256()
    file.seek(0)
    for chunk in iter(lambda: file.read(8192), b""):
        sha256.update(chunk)
    file.seek(0)
    return sha256.hexdigest()


def validate_file(filename: str, file_size: int) -> tuple[bool, str | None]:
    """
    Check extension allowlist and size limit.

    Returns (is_valid, error_message)
    """
    ext = file_extension(filename)
    if ext not in ALLOWED_EXTENSIONS:
        return False, f"File extension '.{ext}' not allowed"
    if file_size <= 0:
        return False, "File is empty"
    if file_size > MAX_FILE_SIZE_BYTES:
        max_mb = MAX_FILE_SIZE_BYTES / (1024 * 1024)
        return False, f"File size exceeds {max_mb:.0f} MB limit"
    return True, None


def store_file(storage_key: str, file: BinaryIO, content_type: str | None = None) -> None:
    if settings.STORAGE_BACKEND == "s3":
        extra = {"ContentType": content_type} if content_type else None
        file.seek(0)
        _get_s3_client().upload_fileobj(file, settings.S3_BUCKET, storage_key, ExtraArgs=extra)
        return

    path = _local_path(storage_key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        file.seek(0)
        f.write(file.read())


def public_url(storage_key: str) -> str:
    """URL recorded on the row; served by the CDN, the bucket, or the local file route."""
    if settings.STORAGE_BACKEND == "s3":
        if settings.S3_PUBLIC_BASE_URL:
            return f"{settings.S3_PUBLIC_BASE_URL.rstrip('/')}/{storage_key}"
        return f"https://{settings.S3_BUCKET}.s3.{settings.S3_REGION}.amazonaws.com/{storage_key}"
    return f"{LOCAL_URL_PREFIX}/{storage_key}"


def local_file_path(storage_key: str) -> str | None:
    """Absolute path of a locally stored file, or None if absent."""
    if settings.STORAGE_BACKEND == "s3":
        return None
    try:
        path = _local_path(storage_key)
    except ValueError:
        return None
    return path if os.path.isfile(path) else None


def delete_file(storage_key: str) -> None:
    """Best effort: a storage failure is logged, never raised."""
    try:
        if settings.STORAGE_BACKEND == "s3":
            _get_s3_client().delete_object(Bucket=settings.S3_BUCKET, Key=storage_key)
        else:
            path = _local_path(storage_key)
            if os.path.exists(path):
                os.remove(path)
    except (ClientError, BotoCoreError, OSError, ValueError) as exc:
        logger.warning(
            "Failed to delete stored file",
            extra={"storage_key": storage_key, "error_type": type(exc).__name__},
        )
