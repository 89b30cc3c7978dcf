import os
import sys
from pathlib import Path


def _default_data_dir() -> Path:
    if getattr(sys, "frozen", False):
        # Bundled app: keep history next to the executable
        return Path(sys.executable).resolve().parent
    return Path.home() / ".local" / "share" / "cliptrail"


DATA_DIR = Path(os.environ.get("CLIPTRAIL_DATA_DIR", _default_data_dir()))
DB_PATH = DATA_DIR / "clipboard.db"
ICON_DIR = DATA_DIR / "icons"
LOG_PATH = DATA_DIR / "cliptrail.log"

POLL_INTERVAL = 0.5  # seconds between pasteboard change-count checks
REFRESH_INTERVAL = 0.5  # seconds between UI checks for pending history changes
PREVIEW_LENGTH = 60  # characters shown in menu item

UNKNOWN_APP = "Unknown"

# Copies made while one of these apps is focused are never recorded
IGNORED_APPS = (
    "Passwords",
    "Keychain Access",
    "Bitwarden",
    "1Password",
    "KeePassXC",
    "LastPass",
    "Dashlane",
)


def _parse_menu_display_count() -> int:
    raw = os.environ.get("CLIPTRAIL_MENU_DISPLAY_COUNT")
    if raw is None:
        return 10
    try:
        value = int(raw)
    except ValueError:
        return 10
    return max(5, min(50, value))


MENU_DISPLAY_COUNT = _parse_menu_display_count()
