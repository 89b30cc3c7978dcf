import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import rumps

from cliptrail import __version__
from cliptrail.config import MENU_DISPLAY_COUNT, REFRESH_INTERVAL
from cliptrail.focus import FocusContextProvider
from cliptrail.models import HistoryRecord
from cliptrail.monitor import ClipboardMonitor, InternalWriteLatch
from cliptrail.pasteboard import MacPasteboard, restore_record
from cliptrail.storage import HistoryStore, StoreError
from cliptrail.utils import humanize_time, record_preview

logger = logging.getLogger(__name__)

ENTRY_KEY_PREFIX = "cliptrail_entry_"


@dataclass
class MenuItemSpec:
    """Specification for a menu item, separating logic from rumps rendering."""

    title: str
    callback: Callable | None = None
    icon: str | None = None
    record_id: int | None = None


class CliptrailApp(rumps.App):
    def __init__(self, store: HistoryStore):
        super().__init__("Cliptrail", title="📋", quit_button=None)
        self._store = store
        self._pasteboard = MacPasteboard()
        self._latch = InternalWriteLatch()
        self._dirty = threading.Event()
        self._monitor = ClipboardMonitor(
            store,
            self._pasteboard,
            FocusContextProvider(),
            latch=self._latch,
            on_change=self._dirty.set,
        )
        self._build_menu()
        self._monitor.start()

    def _build_menu(self) -> None:
        records = self._store.list_recent(MENU_DISPLAY_COUNT)
        self._render_menu_specs(self._compute_menu_specs(records))

    def _compute_menu_specs(self, records: list[HistoryRecord]) -> list[MenuItemSpec | None]:
        specs: list[MenuItemSpec | None] = [
            MenuItemSpec(f"Cliptrail v{__version__} - Clipboard History"),
            None,
            MenuItemSpec("Search...", callback=self._on_search),
            None,
        ]
        if not records:
            specs.append(MenuItemSpec("(No clipboard history)"))
        else:
            specs.extend(self._compute_record_spec(r) for r in records)
        specs.extend([
            None,
            MenuItemSpec("Quit Cliptrail", callback=self._on_quit),
        ])
        return specs

    def _compute_record_spec(self, record: HistoryRecord) -> MenuItemSpec:
        title = f"{record_preview(record)}  ·  {humanize_time(record.timestamp)}"
        icon = record.icon_path if record.icon_path and Path(record.icon_path).exists() else None
        return MenuItemSpec(title, callback=self._on_record_click, icon=icon, record_id=record.id)

    def _render_menu_specs(self, specs: list[MenuItemSpec | None]) -> None:
        self.menu.clear()
        items = []
        for spec in specs:
            if spec is None:
                items.append(None)
                continue
            kwargs = {"callback": spec.callback}
            if spec.icon:
                kwargs.update(icon=spec.icon, dimensions=(16, 16), template=False)
            item = rumps.MenuItem(spec.title, **kwargs)
            if spec.record_id is not None:
                item._id = f"{ENTRY_KEY_PREFIX}{spec.record_id}"
            items.append(item)
        self.menu = items

    @rumps.timer(REFRESH_INTERVAL)
    def _refresh_if_changed(self, _sender) -> None:
        # Bursts of captures collapse into one rebuild per tick
        if self._dirty.is_set():
            self._dirty.clear()
            self._build_menu()

    def _on_record_click(self, sender) -> None:
        key = getattr(sender, "_id", "")
        if not key.startswith(ENTRY_KEY_PREFIX):
            return
        record = self._store.get_record(int(key[len(ENTRY_KEY_PREFIX):]))
        if record is None:
            return

        try:
            if restore_record(record, self._pasteboard, self._latch, self._store):
                self._build_menu()
                rumps.notification("Cliptrail", "", "Copied to clipboard", sound=False)
        except StoreError as exc:
            logger.exception("Error restoring history record %d", record.id)
            rumps.alert("Cliptrail", f"Could not update history: {exc}")

    def _on_search(self, _sender) -> None:
        response = rumps.Window(
            message="Search clipboard history:",
            title="Cliptrail Search",
            default_text="",
            ok="Search",
            cancel="Cancel",
            dimensions=(300, 24),
        ).run()

        if not (response.clicked and response.text.strip()):
            return

        query = response.text.strip()
        results = self._store.search(query)[:MENU_DISPLAY_COUNT]
        if not results:
            rumps.alert("Cliptrail Search", f'No results for "{query}"')
            return

        specs: list[MenuItemSpec | None] = [
            MenuItemSpec(f'Search: "{query}" ({len(results)} results)'),
            None,
            MenuItemSpec("Show All", callback=lambda _: self._build_menu()),
            None,
        ]
        specs.extend(self._compute_record_spec(r) for r in results)
        specs.extend([None, MenuItemSpec("Quit Cliptrail", callback=self._on_quit)])
        self._render_menu_specs(specs)

    def _on_quit(self, _sender) -> None:
        self._monitor.stop(timeout=1.0)
        self._store.close()
        rumps.quit_application()
