"""macOS general pasteboard access through AppKit."""

from cliptrail.codec import decode_image
from cliptrail.models import ContentType, HistoryRecord, RawImage
from cliptrail.monitor import InternalWriteLatch
from cliptrail.storage import HistoryStore

TEXT_TYPE = "public.utf8-plain-text"
PNG_TYPE = "public.png"
TIFF_TYPE = "public.tiff"


class MacPasteboard:
    def __init__(self):
        from AppKit import NSPasteboard

        self._pasteboard = NSPasteboard.generalPasteboard()

    def change_count(self) -> int:
        """Generation counter, bumped by the OS on every pasteboard write."""
        return self._pasteboard.changeCount()

    def read_text(self) -> str | None:
        types = self._pasteboard.types()
        if types is None or TEXT_TYPE not in types:
            return None
        text = self._pasteboard.stringForType_(TEXT_TYPE)
        return str(text) if text else None

    def read_image(self) -> RawImage | None:
        types = self._pasteboard.types()
        if types is None:
            return None
        for img_type in (PNG_TYPE, TIFF_TYPE):
            if img_type not in types:
                continue
            data = self._pasteboard.dataForType_(img_type)
            if data is None:
                continue
            image = decode_image(bytes(data))
            if image is not None:
                return image
        return None

    def write_text(self, text: str) -> None:
        self._pasteboard.clearContents()
        self._pasteboard.setString_forType_(text, TEXT_TYPE)

    def write_png(self, png_bytes: bytes) -> None:
        from Foundation import NSData

        data = NSData.dataWithBytes_length_(png_bytes, len(png_bytes))
        self._pasteboard.clearContents()
        self._pasteboard.setData_forType_(data, PNG_TYPE)


def restore_record(record: HistoryRecord, pasteboard: MacPasteboard, latch: InternalWriteLatch, store: HistoryStore) -> bool:
    """Put a history record back on the pasteboard and bump it to the top.

    The latch is set first so the monitor skips the change this write
    causes. Returns False when the record has nothing to write.
    """
    if not record.content:
        return False

    latch.set()
    try:
        if record.content_type == ContentType.IMAGE:
            pasteboard.write_png(record.content)
        else:
            pasteboard.write_text(record.text)
    except Exception:
        # No change will arrive to consume the latch
        latch.consume()
        raise

    store.touch(record.id)
    return True
