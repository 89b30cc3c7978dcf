from datetime import datetime, timezone

from cliptrail.codec import get_image_dimensions
from cliptrail.config import DATA_DIR, ICON_DIR, PREVIEW_LENGTH
from cliptrail.models import ContentType, HistoryRecord


def truncate_text(text: str, max_len: int) -> str:
    single_line = " ".join(text.split())
    if len(single_line) <= max_len:
        return single_line
    return single_line[: max_len - 3] + "..."


def ensure_dirs() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    ICON_DIR.mkdir(parents=True, exist_ok=True)


def humanize_time(timestamp: datetime, now: datetime | None = None) -> str:
    """Describe a UTC timestamp relative to now, e.g. "5m ago".

    Anything older than a week is shown as a date.
    """
    now = now or datetime.now(timezone.utc)
    seconds = int((now - timestamp).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    if seconds < 7 * 86400:
        return f"{seconds // 86400}d ago"
    return timestamp.strftime("%Y-%m-%d")


def record_preview(record: HistoryRecord, max_len: int = PREVIEW_LENGTH) -> str:
    if record.content_type == ContentType.IMAGE:
        width, height = get_image_dimensions(record.content)
        return f"[Image: {width}x{height}]" if width > 0 else "[Image]"
    return truncate_text(record.text, max_len)
