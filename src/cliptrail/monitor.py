import logging
import threading
from collections.abc import Callable, Iterable
from typing import Protocol

from cliptrail.codec import encode_image, encode_text
from cliptrail.config import IGNORED_APPS, POLL_INTERVAL, UNKNOWN_APP
from cliptrail.models import ContentType, FocusContext, RawImage
from cliptrail.storage import HistoryStore, StoreError

logger = logging.getLogger(__name__)


class Pasteboard(Protocol):
    def change_count(self) -> int: ...

    def read_text(self) -> str | None: ...

    def read_image(self) -> RawImage | None: ...


class FocusProvider(Protocol):
    def focus_context(self) -> FocusContext: ...


class InternalWriteLatch:
    """Single-use flag marking the next pasteboard change as our own.

    Whoever writes to the pasteboard on the user's behalf calls set()
    right before the write; the monitor consumes it on the next change.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._set = False

    def set(self) -> None:
        with self._lock:
            self._set = True

    def consume(self) -> bool:
        """Return whether the latch was set, clearing it."""
        with self._lock:
            was_set, self._set = self._set, False
        return was_set

    def is_set(self) -> bool:
        with self._lock:
            return self._set


def is_ignored_app(app_name: str, ignored_apps: Iterable[str] = IGNORED_APPS) -> bool:
    name = app_name.casefold()
    return any(ignored.casefold() in name for ignored in ignored_apps)


class ClipboardMonitor:
    def __init__(
        self,
        store: HistoryStore,
        pasteboard: Pasteboard,
        focus: FocusProvider,
        latch: InternalWriteLatch | None = None,
        on_change: Callable[[], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        poll_interval: float = POLL_INTERVAL,
        ignored_apps: Iterable[str] = IGNORED_APPS,
    ):
        self._store = store
        self._pasteboard = pasteboard
        self._focus = focus
        self.latch = latch or InternalWriteLatch()
        self._on_change = on_change
        self._on_error = on_error
        self._poll_interval = poll_interval
        self._ignored_apps = tuple(ignored_apps)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        # Whatever is on the pasteboard at startup is not a new copy
        self._last_change_count = self._pasteboard.change_count()

    def check_clipboard(self) -> bool:
        """Run one detection cycle. Returns True if the store was written."""
        current_count = self._pasteboard.change_count()
        if current_count == self._last_change_count:
            return False

        previous_count, self._last_change_count = self._last_change_count, current_count

        # The latch covers one generation; a larger jump means a real copy
        # landed after our own write within the same poll interval
        if self.latch.consume() and current_count - previous_count <= 1:
            logger.debug("Skipping internally initiated pasteboard write")
            return False

        context = self._current_focus()
        if is_ignored_app(context.app_name, self._ignored_apps):
            logger.debug("Skipping copy from ignored app %s", context.app_name)
            return False

        try:
            payload = self._read_clipboard()
        except Exception:
            # Pasteboard busy; look at the same change again on the next poll
            logger.debug("Pasteboard read failed", exc_info=True)
            self._last_change_count = previous_count
            return False
        if payload is None:
            return False
        content_type, content = payload

        try:
            record_id = self._store.upsert(content_type, content, context.app_name, context.icon_path)
        except StoreError as exc:
            logger.exception("Failed to save clipboard content")
            if self._on_error:
                self._on_error(exc)
            return False

        logger.debug("Saved %s record %d from %s", content_type.value, record_id, context.app_name)
        if self._on_change:
            self._on_change()
        return True

    def start_listening(self) -> None:
        """Poll the pasteboard until stop() is called."""
        logger.info("Listening for clipboard changes every %.2fs", self._poll_interval)
        while not self._stop_event.is_set():
            try:
                self.check_clipboard()
            except Exception:
                logger.exception("Error checking clipboard")
            self._stop_event.wait(self._poll_interval)

    def start(self) -> threading.Thread:
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.start_listening, name="ClipboardMonitor", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _current_focus(self) -> FocusContext:
        try:
            return self._focus.focus_context()
        except Exception:
            logger.warning("Focus context unavailable", exc_info=True)
            return FocusContext(UNKNOWN_APP, "")

    def _read_clipboard(self) -> tuple[ContentType, bytes] | None:
        text = self._pasteboard.read_text()
        if text:
            return ContentType.TEXT, encode_text(text)

        image = self._pasteboard.read_image()
        if image is not None:
            return ContentType.IMAGE, encode_image(image)
        return None
