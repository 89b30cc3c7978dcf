from datetime import datetime, timedelta, timezone

import pytest

from cliptrail.models import FocusContext, RawImage
from cliptrail.storage import HistoryStore


class FakeClock:
    """Advances one second per call so every write gets a distinct timestamp."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


class FakePasteboard:
    def __init__(self):
        self.count = 0
        self.text: str | None = None
        self.image: RawImage | None = None
        self.read_error: Exception | None = None
        self.written: list = []

    def copy_text(self, text: str) -> None:
        self.count += 1
        self.text = text
        self.image = None

    def copy_image(self, image: RawImage) -> None:
        self.count += 1
        self.text = None
        self.image = image

    def change_count(self) -> int:
        return self.count

    def read_text(self) -> str | None:
        if self.read_error:
            raise self.read_error
        return self.text

    def read_image(self) -> RawImage | None:
        if self.read_error:
            raise self.read_error
        return self.image

    def write_text(self, text: str) -> None:
        self.written.append(text)
        self.copy_text(text)

    def write_png(self, png_bytes: bytes) -> None:
        self.written.append(png_bytes)
        self.count += 1


class FakeFocus:
    def __init__(self, app_name: str = "Code", icon_path: str = "/icons/Code.png"):
        self.context = FocusContext(app_name, icon_path)
        self.calls = 0

    def switch_to(self, app_name: str, icon_path: str = "") -> None:
        self.context = FocusContext(app_name, icon_path)

    def focus_context(self) -> FocusContext:
        self.calls += 1
        return self.context


def make_rgba(width: int = 2, height: int = 2, color: tuple[int, int, int, int] = (255, 0, 0, 255)) -> RawImage:
    return RawImage(width=width, height=height, pixels=bytes(color) * (width * height))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    mgr = HistoryStore(db_path=":memory:", clock=clock)
    yield mgr
    mgr.close()


@pytest.fixture
def pasteboard():
    return FakePasteboard()


@pytest.fixture
def focus():
    return FakeFocus()
