from datetime import date, datetime

import pytest
from dateutil import tz

import daypat.utils as utils
from daypat.config import load_config
from daypat.stores import HttpBlobStore, LocalBlobStore, LocalEntryStore, RestEntryStore, build_stores
from daypat.utils import (
    checked_color, css_color_to_hex, format_short, month_anchors, month_cells, parse_date_range,
    rgba, week_anchors, week_number,
)

UTC = tz.tzutc()


@pytest.fixture
def frozen_today(monkeypatch):
    class FrozenDatetime(datetime):
        @classmethod
        def now(cls, tz=None):
            return datetime(2025, 3, 12, 9, 0, tzinfo=tz)

    monkeypatch.setattr(utils, "datetime", FrozenDatetime)


@pytest.mark.parametrize("text, expected", [
    ("today", (date(2025, 3, 12), date(2025, 3, 12))),
    ("this week", (date(2025, 3, 10), date(2025, 3, 16))),
    ("this month", (date(2025, 3, 1), date(2025, 3, 31))),
    ("3 days", (date(2025, 3, 12), date(2025, 3, 14))),
    ("2 weeks", (date(2025, 3, 10), date(2025, 3, 23))),
    ("2 months", (date(2025, 3, 1), date(2025, 4, 30))),
    ("2025-01-01:2025-01-31", (date(2025, 1, 1), date(2025, 1, 31))),
    ("2025-01-01 to 2025-02-01", (date(2025, 1, 1), date(2025, 2, 1))),
    ("2025-05-05", (date(2025, 5, 5), date(2025, 5, 5))),
])
def test_parse_date_range(frozen_today, text, expected):
    assert parse_date_range(text, UTC) == expected


@pytest.mark.parametrize("text", ["2025-02-01:2025-01-01", "0 days", "2 years", "2025-01-01/2025-01-02"])
def test_parse_date_range_rejects(frozen_today, text):
    with pytest.raises(ValueError):
        parse_date_range(text, UTC)


def test_colors():
    assert css_color_to_hex("#F27430") == "#F27430"
    assert css_color_to_hex("white") == "#FFFFFF"
    assert css_color_to_hex("gray(50%)") == "#808080"
    assert css_color_to_hex("navy") == "#000080"
    assert rgba("gray15", 128) == (255, 255, 255, 128)


def test_unknown_color_falls_back():
    with pytest.raises(ValueError):
        rgba("notacolor")
    assert checked_color("notacolor", "#F27430") == "#F27430"
    assert checked_color("#zz0000", "#FFFDF8") == "#FFFDF8"
    assert checked_color("navy", "#F27430") == "navy"


def test_week_helpers():
    assert week_anchors(date(2025, 3, 1), date(2025, 3, 17)) == [
        date(2025, 2, 24), date(2025, 3, 3), date(2025, 3, 10), date(2025, 3, 17)]
    assert week_number(date(2024, 12, 30)) == 1
    assert week_number(date(2025, 1, 6)) == 2
    assert week_number(date(2025, 3, 3)) == 10


def test_month_helpers():
    assert month_anchors(date(2024, 11, 15), date(2025, 2, 1)) == [(2024, 11), (2024, 12), (2025, 1), (2025, 2)]
    cells = month_cells(2025, 2)
    # February 2025 starts on a Saturday
    assert cells[0] == date(2025, 1, 27)
    assert cells[5] == date(2025, 2, 1)
    assert len(cells) % 7 == 0
    assert format_short(date(2025, 3, 3)) == "Mar 3, 2025"


def test_load_config_expands_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DAYPAT_TEST_KEY", "secret")
    path = tmp_path / "config.yaml"
    path.write_text(
        "entry_store:\n"
        "  type: rest\n"
        "  url: https://db.example.com/rest/v1\n"
        "  api_key: ${DAYPAT_TEST_KEY}\n"
        "blob_store:\n"
        "  type: http\n"
        "  url: https://db.example.com/storage/v1\n",
        encoding="utf-8",
    )
    config = load_config(str(path))
    assert config["entry_store"]["api_key"] == "secret"

    entry_store, blob_store = build_stores(config)
    assert isinstance(entry_store, RestEntryStore)
    assert isinstance(blob_store, HttpBlobStore)
    assert blob_store.bucket == "entry-photos"


def test_remote_section_keeps_local_default_for_the_other(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("entry_store:\n  type: rest\n  url: https://db.example.com/rest/v1\n  api_key: k\n",
                    encoding="utf-8")
    config = load_config(str(path))
    assert "path" not in config["entry_store"]

    entry_store, blob_store = build_stores(config)
    assert isinstance(entry_store, RestEntryStore)
    assert isinstance(blob_store, LocalBlobStore)


def test_unknown_store_option_is_a_config_error():
    config = {"entry_store": {"type": "rest", "url": "https://db.example.com", "api_key": "k", "colour": "red"}}
    with pytest.raises(ValueError, match="entry_store"):
        build_stores(config)


def test_load_config_defaults(tmp_path):
    config = load_config(str(tmp_path / "missing.yaml"))
    entry_store, blob_store = build_stores(config)
    assert isinstance(entry_store, LocalEntryStore)
    assert isinstance(blob_store, LocalBlobStore)


def test_local_entry_store_reads_yaml(tmp_path):
    path = tmp_path / "entries.yaml"
    path.write_text(
        "entries:\n"
        "  - entry_date: 2025-03-03\n"
        "    praise: walked to work\n"
        "    is_liked: true\n"
        "  - entry_date: 2025-03-01\n"
        "    praise: slept in\n",
        encoding="utf-8",
    )
    store = LocalEntryStore(path=path)
    rows = store.select(["entry_date", "praise"], date_from="2025-03-01", date_to="2025-03-31")
    assert [r["entry_date"] for r in rows] == ["2025-03-01", "2025-03-03"]
    assert store.select(["entry_date"], liked=True, descending=True) == [{"entry_date": "2025-03-03"}]
