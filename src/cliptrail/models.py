from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ContentType(str, Enum):
    TEXT = "TEXT"
    IMAGE = "IMAGE"


@dataclass
class HistoryRecord:
    id: int
    source_app: str
    icon_path: str
    content_type: ContentType
    content: bytes
    timestamp: datetime  # UTC, last time this content was on the clipboard

    @property
    def text(self) -> str:
        """Content decoded as UTF-8, invalid sequences replaced."""
        return self.content.decode("utf-8", errors="replace")


@dataclass
class RawImage:
    """Uncompressed RGBA pixel buffer, 4 bytes per pixel, row-major."""

    width: int
    height: int
    pixels: bytes


@dataclass(frozen=True)
class FocusContext:
    app_name: str
    icon_path: str = ""
