"""
Object key derivation.

Pattern: {YYYY-MM-DD}/{category}/{uuid}-{sanitized-name}

This structure:
- Groups files by upload date and category for maintenance tooling
- Uses a fresh UUID per upload so keys never collide or get reused
- Keeps a readable, URL-safe form of the original filename

Keys are opaque to the rest of the service; nothing parses them back.
"""
import enum
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.-]")

FALLBACK_NAME = "file"


class FileCategory(str, enum.Enum):
    """Coarse category of stored content."""
    IMAGES = "images"
    VIDEOS = "videos"
    AUDIO = "audio"
    DOCUMENTS = "documents"
    OTHERS = "others"


@dataclass(frozen=True)
class DerivedKey:
    """Storage key and category minted for one upload."""
    object_key: str
    category: FileCategory


def sanitize_filename(declared_name: Optional[str]) -> str:
    """Replace every character outside [A-Za-z0-9.-] with '-' and lowercase the result."""
    sanitized = _UNSAFE_CHARS.sub("-", declared_name or "").lower()
    return sanitized or FALLBACK_NAME


def category_for_mimetype(mimetype: Optional[str]) -> FileCategory:
    """
    Map a MIME type to a category. Rules are evaluated in order, first match wins.

    Args:
        mimetype: MIME type of the content (e.g., image/png)

    Returns:
        FileCategory for the storage path
    """
    mimetype = (mimetype or "").lower()

    if mimetype.startswith("image/"):
        return FileCategory.IMAGES
    if mimetype.startswith("video/"):
        return FileCategory.VIDEOS
    if mimetype.startswith("audio/"):
        return FileCategory.AUDIO
    if (
        mimetype.startswith("text/")
        or mimetype == "application/pdf"
        or "word" in mimetype
        or "document" in mimetype
    ):
        return FileCategory.DOCUMENTS
    return FileCategory.OTHERS


def derive_object_key(
    declared_name: Optional[str],
    mimetype: Optional[str],
    now: Optional[datetime] = None,
) -> DerivedKey:
    """
    Mint a new object key for an upload.

    Args:
        declared_name: Client supplied filename (untrusted)
        mimetype: MIME type used to pick the category
        now: Upload time; naive values are taken as UTC. Defaults to current time.

    Returns:
        DerivedKey with the full object key and its category
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    else:
        now = now.astimezone(timezone.utc)

    category = category_for_mimetype(mimetype)
    date_folder = now.strftime("%Y-%m-%d")
    filename = f"{uuid.uuid4()}-{sanitize_filename(declared_name)}"

    return DerivedKey(
        object_key=f"{date_folder}/{category.value}/{filename}",
        category=category,
    )
