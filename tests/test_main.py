"""Tests for __main__.py CLI functions."""

import base64
from unittest.mock import MagicMock, patch

import pytest

from cliptrail.__main__ import configure_logging, format_record, main, run_app, show_record, show_recent, show_search
from cliptrail.codec import encode_image
from cliptrail.models import ContentType
from cliptrail.storage import HistoryStore, StoreUnavailableError

from conftest import make_rgba


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "clipboard.db"
    with HistoryStore(path) as store:
        store.upsert(ContentType.TEXT, b"Hello world", "Code", "")
        store.upsert(ContentType.TEXT, b"Goodbye", "Notes", "")
    with patch("cliptrail.__main__.DB_PATH", path):
        yield path


class TestShowRecent:
    def test_prints_newest_first(self, db_path, capsys):
        assert show_recent(10) == 0
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 2
        assert "Goodbye" in lines[0]
        assert "Hello world" in lines[1]

    def test_limit(self, db_path, capsys):
        show_recent(1)
        assert len(capsys.readouterr().out.splitlines()) == 1

    def test_empty_history(self, tmp_path, capsys):
        with patch("cliptrail.__main__.DB_PATH", tmp_path / "empty.db"):
            assert show_recent(5) == 0
        assert "(No clipboard history)" in capsys.readouterr().out


class TestShowSearch:
    def test_matches(self, db_path, capsys):
        assert show_search("hello") == 0
        out = capsys.readouterr().out
        assert "Hello world" in out
        assert "Goodbye" not in out

    def test_store_unavailable(self, tmp_path):
        with patch("cliptrail.__main__.DB_PATH", tmp_path / "missing" / "x.db"):
            assert show_search("anything") == 1


class TestShowRecord:
    def test_prints_full_text(self, db_path, capsys):
        assert show_record(1) == 0
        assert capsys.readouterr().out == "Hello world\n"

    def test_image_printed_as_base64_png(self, db_path, capsys):
        png = encode_image(make_rgba())
        with HistoryStore(db_path) as store:
            record_id = store.upsert(ContentType.IMAGE, png, "Preview", "")
        assert show_record(record_id) == 0
        assert base64.b64decode(capsys.readouterr().out.strip()) == png

    def test_missing_record(self, db_path, capsys):
        assert show_record(999) == 1
        assert "999" in capsys.readouterr().err


class TestFormatRecord:
    def test_contains_fields(self, store):
        record_id = store.upsert(ContentType.TEXT, b"some\ntext", "Code", "")
        line = format_record(store.get_record(record_id))
        assert str(record_id) in line
        assert "Code" in line
        assert "some text" in line


class TestRunApp:
    def test_store_unavailable_exits_nonzero(self):
        with patch("cliptrail.__main__.HistoryStore", side_effect=StoreUnavailableError("nope")):
            assert run_app() == 1

    def test_runs_app_with_store(self):
        app_module = MagicMock()
        store = MagicMock()
        with (
            patch("cliptrail.__main__.HistoryStore", return_value=store),
            patch.dict("sys.modules", {"cliptrail.app": app_module}),
        ):
            assert run_app() == 0
        app_module.CliptrailApp.assert_called_once_with(store)
        app_module.CliptrailApp.return_value.run.assert_called_once()


class TestConfigureLogging:
    @patch("cliptrail.__main__.logging.StreamHandler")
    @patch("cliptrail.__main__.logging.FileHandler")
    @patch("cliptrail.__main__.logging.basicConfig")
    def test_configures_file_and_stderr(self, mock_basic, _mock_file, _mock_stream):
        configure_logging()
        kwargs = mock_basic.call_args[1]
        assert kwargs["level"] == 20  # logging.INFO
        assert "%(asctime)s" in kwargs["format"]
        assert len(kwargs["handlers"]) == 2


class TestCLIParsing:
    @pytest.fixture(autouse=True)
    def _no_side_effects(self):
        with patch("cliptrail.__main__.ensure_dirs"), patch("cliptrail.__main__.configure_logging"):
            yield

    @patch("cliptrail.__main__.run_app", return_value=0)
    def test_default_runs_app(self, mock_run):
        with patch("sys.argv", ["cliptrail"]):
            with pytest.raises(SystemExit) as exc:
                main()
        assert exc.value.code == 0
        mock_run.assert_called_once()

    @patch("cliptrail.__main__.show_recent", return_value=0)
    def test_recent_command(self, mock_recent):
        with patch("sys.argv", ["cliptrail", "recent", "-n", "3"]):
            with pytest.raises(SystemExit):
                main()
        mock_recent.assert_called_once_with(3)

    @patch("cliptrail.__main__.show_search", return_value=0)
    def test_search_command(self, mock_search):
        with patch("sys.argv", ["cliptrail", "search", "Hello"]):
            with pytest.raises(SystemExit):
                main()
        mock_search.assert_called_once_with("Hello")

    @patch("cliptrail.__main__.show_record", return_value=0)
    def test_show_command(self, mock_show):
        with patch("sys.argv", ["cliptrail", "show", "7"]):
            with pytest.raises(SystemExit):
                main()
        mock_show.assert_called_once_with(7)
