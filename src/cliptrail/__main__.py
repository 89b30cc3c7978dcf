import argparse
import logging
import sys

from cliptrail.codec import png_to_base64
from cliptrail.config import DB_PATH, LOG_PATH
from cliptrail.models import ContentType, HistoryRecord
from cliptrail.storage import HistoryStore, StoreUnavailableError
from cliptrail.utils import ensure_dirs, humanize_time, record_preview

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_PATH),
            logging.StreamHandler(sys.stderr),
        ],
    )


def open_store() -> HistoryStore | None:
    try:
        return HistoryStore(DB_PATH)
    except StoreUnavailableError:
        logger.exception("Clipboard history is unavailable")
        return None


def format_record(record: HistoryRecord) -> str:
    return f"{record.id:>6}  {humanize_time(record.timestamp):>10}  {record.source_app:<20}  {record_preview(record)}"


def print_records(records: list[HistoryRecord]) -> int:
    if not records:
        print("(No clipboard history)")
        return 0
    for record in records:
        print(format_record(record))
    return 0


def show_recent(limit: int) -> int:
    store = open_store()
    if store is None:
        return 1
    with store:
        return print_records(store.list_recent(limit))


def show_search(term: str) -> int:
    store = open_store()
    if store is None:
        return 1
    with store:
        return print_records(store.search(term))


def show_record(record_id: int) -> int:
    """Print one entry in full: text as is, images as base64-encoded PNG."""
    store = open_store()
    if store is None:
        return 1
    with store:
        record = store.get_record(record_id)
    if record is None:
        print(f"No clipboard entry with id {record_id}", file=sys.stderr)
        return 1
    if record.content_type == ContentType.IMAGE:
        print(png_to_base64(record.content))
    else:
        print(record.text)
    return 0


def run_app() -> int:
    """Run the menu-bar app with the monitor on a background thread."""
    store = open_store()
    if store is None:
        return 1

    from cliptrail.app import CliptrailApp

    app = CliptrailApp(store)
    app.run()
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Cliptrail - Clipboard history for macOS",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  (none)          Run Cliptrail in the menu bar
  recent [-n N]   Print the N most recent clipboard entries
  search TERM     Print text entries containing TERM (case-insensitive)
  show ID         Print entry ID in full (images as base64 PNG)
""",
    )
    subparsers = parser.add_subparsers(dest="command")
    recent = subparsers.add_parser("recent", help="Print recent clipboard entries")
    recent.add_argument("-n", "--limit", type=int, default=10, help="Number of entries (default: 10)")
    search = subparsers.add_parser("search", help="Search text entries")
    search.add_argument("term", help="Substring to look for")
    show = subparsers.add_parser("show", help="Print one entry in full")
    show.add_argument("record_id", type=int, help="Entry id, as listed by recent")

    args = parser.parse_args()

    ensure_dirs()
    configure_logging()

    if args.command == "recent":
        sys.exit(show_recent(args.limit))
    elif args.command == "search":
        sys.exit(show_search(args.term))
    elif args.command == "show":
        sys.exit(show_record(args.record_id))
    else:
        sys.exit(run_app())


if __name__ == "__main__":
    main()
