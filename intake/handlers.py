"""
Upload intake handlers
"""
import hashlib
import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, UploadFile
from google.cloud import storage

logger = logging.getLogger(__name__)

# Constants
FOLDER_PREFIX = "intake/"


def get_storage_client():
    """Get storage client, initializing only when needed."""
    try:
        return storage.Client()
    except Exception as e:
        logger.error("Failed to initialize GCS client: %s", e)
        return None


def generate_object_name(original_name: str, contents: bytes, prefix: str = FOLDER_PREFIX) -> str:
    """Builds unique object name using date + SHA256 hash + original name."""
    today = datetime.utcnow().strftime("%Y/%m/%d")
    file_hash = hashlib.sha256(contents).hexdigest()[:12]
    safe_name = original_name.replace(" ", "_")
    return f"{prefix}{today}/{file_hash}_{safe_name}"


async def read_csv_upload(file: UploadFile) -> bytes:
    """Reject non-CSV uploads and read the whole file before anything is processed."""
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=422, detail={"kind": "FileFormatError", "message": "Only CSV files are supported"})

    contents = await file.read()
    logger.info("📥 Received CSV upload: %s (%d bytes)", file.filename, len(contents))
    if not contents.strip():
        raise HTTPException(status_code=422, detail={"kind": "FileFormatError", "message": "CSV file is empty"})
    return contents


def backup_upload(
    contents: bytes,
    original_name: str,
    gcs_bucket: Optional[str],
    prefix: str = FOLDER_PREFIX,
    storage_client=None,
) -> Optional[str]:
    """
    Copy the raw upload to GCS. Best effort: returns the object path, or None
    when no bucket/client is available or the upload fails.
    """
    if not gcs_bucket:
        return None

    storage_client = storage_client or get_storage_client()
    if not storage_client:
        logger.warning("⚠️ GCS client not available (running locally?)")
        return None

    object_name = generate_object_name(original_name, contents, prefix)
    try:
        blob = storage_client.bucket(gcs_bucket).blob(object_name)
        blob.upload_from_string(contents, content_type="text/csv")
        logger.info("✅ Uploaded raw CSV backup: gs://%s/%s", gcs_bucket, object_name)
        return f"gs://{gcs_bucket}/{object_name}"
    except Exception as e:
        logger.warning("⚠️ GCS upload failed: %s", e)
        return None
