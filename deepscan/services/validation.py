"""
validation.py — Pre-flight checks run before any vendor call.

Pure functions only: nothing here touches the network, the filesystem or
logging, so the rules can be tested as plain input → output tables. The
size ceiling comes from settings.max_upload_bytes unless a caller passes
its own.
"""

from typing import Optional

from deepscan.core.config import settings
from deepscan.core.errors import ErrorKind
from deepscan.models.detection import MediaKind

_MB = 1024 * 1024

_ACCEPTED_PREFIXES = {
    "image/": MediaKind.IMAGE,
    "video/": MediaKind.VIDEO,
}

REJECTION_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.MISSING_FILE: "No file provided",
    ErrorKind.MISSING_CREDENTIAL: "API key is required",
    ErrorKind.UNSUPPORTED_TYPE: "Invalid file type. Only images and videos are supported.",
    ErrorKind.FILE_TOO_LARGE: "File size too large. Maximum size is {limit_mb}MB.",
}


def validate_upload(
    artifact_present: bool,
    content_type: Optional[str],
    byte_size: int,
    credential: Optional[str],
    max_bytes: Optional[int] = None,
) -> Optional[ErrorKind]:
    """
    Check an upload against the pre-flight rules, first failure wins.

    Args:
        artifact_present: False when no file (or a zero-byte file) was sent.
        content_type:     Declared MIME type of the upload.
        byte_size:        Size of the upload in bytes.
        credential:       The caller's vendor API key.
        max_bytes:        Size ceiling, inclusive. Defaults to
                          settings.max_upload_bytes.

    Returns:
        None if the upload is acceptable, otherwise the rejection kind.
    """
    if max_bytes is None:
        max_bytes = settings.max_upload_bytes

    if not artifact_present:
        return ErrorKind.MISSING_FILE
    if not credential or not credential.strip():
        return ErrorKind.MISSING_CREDENTIAL
    if classify_media_kind(content_type) is None:
        return ErrorKind.UNSUPPORTED_TYPE
    if byte_size > max_bytes:
        return ErrorKind.FILE_TOO_LARGE
    return None


def classify_media_kind(content_type: Optional[str]) -> Optional[MediaKind]:
    """Map a MIME type onto image/video, or None for anything else."""
    if not content_type:
        return None
    lowered = content_type.strip().lower()
    for prefix, kind in _ACCEPTED_PREFIXES.items():
        if lowered.startswith(prefix):
            return kind
    return None


def rejection_message(kind: ErrorKind) -> str:
    template = REJECTION_MESSAGES.get(kind, "Invalid upload")
    return template.format(limit_mb=settings.max_upload_bytes // _MB)
