"""Name and icon of the frontmost macOS application."""

import logging
import re
from pathlib import Path

from cliptrail.config import ICON_DIR, UNKNOWN_APP
from cliptrail.models import FocusContext

logger = logging.getLogger(__name__)

NS_BITMAP_IMAGE_FILE_TYPE_PNG = 4

_UNSAFE_FILENAME = re.compile(r"[^\w .-]")


def icon_filename(app_name: str) -> str:
    return _UNSAFE_FILENAME.sub("_", app_name).strip() + ".png"


class FocusContextProvider:
    """Reads the frontmost app from NSWorkspace and caches its icon as PNG."""

    def __init__(self, icon_dir: Path | None = None):
        self._icon_dir = Path(icon_dir) if icon_dir else ICON_DIR

    def focus_context(self) -> FocusContext:
        app = self._frontmost_application()
        if app is None:
            return FocusContext(UNKNOWN_APP, "")

        name = app.localizedName()
        if not name:
            return FocusContext(UNKNOWN_APP, "")
        name = str(name)
        return FocusContext(name, self._icon_path(app, name))

    @staticmethod
    def _frontmost_application():
        from AppKit import NSWorkspace

        return NSWorkspace.sharedWorkspace().frontmostApplication()

    def _icon_path(self, app, name: str) -> str:
        path = self._icon_dir / icon_filename(name)
        if path.exists():
            return str(path)
        try:
            if self._export_icon(app, path):
                return str(path)
        except OSError:
            logger.warning("Could not write icon for %s to %s", name, path, exc_info=True)
            return ""
        logger.warning("Could not export icon for %s", name)
        return ""

    @staticmethod
    def _export_icon(app, path: Path) -> bool:
        from AppKit import NSBitmapImageRep

        icon = app.icon()
        if not icon:
            return False

        tiff_data = icon.TIFFRepresentation()
        if not tiff_data:
            return False

        bitmap_rep = NSBitmapImageRep.imageRepWithData_(tiff_data)
        if not bitmap_rep:
            return False

        png_data = bitmap_rep.representationUsingType_properties_(NS_BITMAP_IMAGE_FILE_TYPE_PNG, None)
        if not png_data:
            return False

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(bytes(png_data))
        return True
