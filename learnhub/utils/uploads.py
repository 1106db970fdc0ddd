import os
import secrets
import time
from pathlib import Path
from fastapi import UploadFile
from ..core.config import settings
from ..core.exceptions import ValidationError
import logging

logger = logging.getLogger(__name__)

LESSONS = "lessons"
ASSIGNMENTS = "assignments"

CHUNK_SIZE = 1024 * 1024

VIDEO_MIME_TYPES = {
    "video/mp4",
    "video/webm",
    "video/quicktime",
}

DOCUMENT_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

ALLOWED_MIME_TYPES = {
    LESSONS: DOCUMENT_MIME_TYPES | VIDEO_MIME_TYPES,
    ASSIGNMENTS: DOCUMENT_MIME_TYPES | {
        "application/zip",
        "text/plain",
        "image/jpeg",
        "image/png",
    },
}

INVALID_TYPE_MESSAGES = {
    LESSONS: "Invalid file type. Allowed: PDF, DOC, DOCX, MP4, WEBM, MOV",
    ASSIGNMENTS: "Invalid file type for assignment submission. Allowed: PDF, DOC, DOCX, ZIP, TXT, JPG, PNG",
}

FILENAME_PREFIXES = {
    LESSONS: "lesson",
    ASSIGNMENTS: "submission",
}


def max_upload_bytes(category: str) -> int:
    if category == LESSONS:
        return settings.max_lesson_upload_mb * 1024 * 1024
    return settings.max_assignment_upload_mb * 1024 * 1024


def upload_root() -> Path:
    return Path(settings.upload_dir)


def ensure_upload_dirs():
    for category in (LESSONS, ASSIGNMENTS):
        (upload_root() / category).mkdir(parents=True, exist_ok=True)


def generate_filename(category: str, original_filename: str) -> str:
    """lesson-<millis>-<random><ext>, keeping the original extension"""
    unique_suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}"
    ext = os.path.splitext(original_filename or "")[1].lower()
    return f"{FILENAME_PREFIXES[category]}-{unique_suffix}{ext}"


def get_file_url(filename: str, category: str) -> str:
    return f"/uploads/{category}/{filename}"


def is_video(content_type: str) -> bool:
    return content_type in VIDEO_MIME_TYPES


def validate_content_type(category: str, content_type: str):
    if content_type not in ALLOWED_MIME_TYPES[category]:
        raise ValidationError(INVALID_TYPE_MESSAGES[category], field="file")


async def save_upload(file: UploadFile, category: str) -> str:
    """Store an uploaded file under its category and return its public URL"""
    validate_content_type(category, file.content_type)

    ensure_upload_dirs()
    filename = generate_filename(category, file.filename)
    path = upload_root() / category / filename
    limit = max_upload_bytes(category)

    written = 0
    try:
        with open(path, "wb") as out:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > limit:
                    break
                out.write(chunk)
    except Exception as e:
        path.unlink(missing_ok=True)
        logger.error(f"Failed writing {category} upload '{file.filename}': {e}")
        raise

    if written > limit:
        path.unlink(missing_ok=True)
        logger.warning(f"Rejected {category} upload '{file.filename}': larger than {limit} bytes")
        raise ValidationError(f"File too large. Maximum size is {limit // (1024 * 1024)}MB", field="file")

    logger.info(f"Stored {category} upload '{file.filename}' as {filename} ({written} bytes)")
    return get_file_url(filename, category)


def remove_upload(file_url: str):
    """Delete a file previously returned by save_upload"""
    prefix = "/uploads/"
    if not file_url.startswith(prefix):
        return
    path = upload_root() / file_url[len(prefix):]
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.error(f"Could not remove upload {path}: {e}")
