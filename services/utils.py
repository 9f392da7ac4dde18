# services/utils.py
import re
import uuid
from datetime import datetime, timezone

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Databases without timezone support hand back naive values; they are stored as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def sanitize_file_name(file_name: str) -> str:
    """
    Replaces every character outside [A-Za-z0-9._-] with an underscore so the
    name can be used as one storage path segment ("my video!!.mp4" -> "my_video__.mp4").
    """
    return _UNSAFE_FILENAME_CHARS.sub("_", file_name or "")


# Helper function to extract a clean title from a long caption
def get_smart_title(text: str, max_length: int = 100) -> str:
    """
    Extracts a summary title from a description based on the first line or sentence.
    Used when a publish request carries a description but no title.
    """
    if not text:
        return "Untitled Reaction"

    first_line = text.split('\n')[0].strip()
    first_sentence = first_line.split('.')[0].strip()
    title = first_sentence if first_sentence else first_line

    if len(title) > max_length:
        title = title[:max_length - 3].strip() + "..."

    return title or "Untitled Reaction"
