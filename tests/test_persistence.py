from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from pebble_timeline.exceptions import CorruptStoreWarning, PersistFailure
from pebble_timeline.models.pin import StoredPin
from pebble_timeline.store.index import PinIndex
from pebble_timeline.store.persistence import PinFile, store_path

_NOW = datetime(2024, 6, 1, tzinfo=UTC)


def _pin(pin_id: str, **extra: object) -> StoredPin:
    return StoredPin.new({"id": pin_id, "time": "2024-06-15T12:00:00Z", **extra}, _NOW)


def test_store_path_layout(tmp_path: Path) -> None:
    assert store_path(tmp_path) == tmp_path / "pebble-timeline" / "timeline-pins.json"


def test_load_missing_file_returns_empty_store(tmp_path: Path) -> None:
    assert PinFile(tmp_path).load() == {}


def test_save_creates_directory_and_writes_json(tmp_path: Path) -> None:
    pin_file = PinFile(tmp_path)
    pin_file.save({"tokenA": PinIndex([_pin("a", layout={"title": "Hi"})])})

    document = json.loads(pin_file.path.read_text(encoding="utf-8"))
    assert document == {
        "tokenA": [
            {
                "id": "a",
                "time": "2024-06-15T12:00:00Z",
                "layout": {"title": "Hi"},
                "_stored": "2024-06-01T00:00:00.000Z",
            }
        ]
    }
    assert pin_file.writes == 1
    assert not pin_file.path.with_name("timeline-pins.json.tmp").exists()


def test_save_then_load_is_stable(tmp_path: Path) -> None:
    pin_file = PinFile(tmp_path)
    pin_file.save({"tokenA": PinIndex([_pin("a"), _pin("b")]), "tokenB": PinIndex([_pin("c")])})

    first = pin_file.load()
    first_text = pin_file.path.read_text(encoding="utf-8")
    pin_file.save(first)
    second = pin_file.load()

    assert pin_file.path.read_text(encoding="utf-8") == first_text
    assert {token: list(index) for token, index in first.items()} == {
        token: list(index) for token, index in second.items()
    }


def test_load_corrupt_file_warns_and_returns_empty(tmp_path: Path) -> None:
    pin_file = PinFile(tmp_path)
    pin_file.path.parent.mkdir(parents=True)
    pin_file.path.write_text("{not json", encoding="utf-8")

    with pytest.warns(CorruptStoreWarning):
        assert pin_file.load() == {}


def test_load_non_object_document_warns_and_returns_empty(tmp_path: Path) -> None:
    pin_file = PinFile(tmp_path)
    pin_file.path.parent.mkdir(parents=True)
    pin_file.path.write_text("[1, 2, 3]", encoding="utf-8")

    with pytest.warns(CorruptStoreWarning):
        assert pin_file.load() == {}


def test_load_normalizes_bad_token_values_and_entries(tmp_path: Path) -> None:
    pin_file = PinFile(tmp_path)
    pin_file.path.parent.mkdir(parents=True)
    pin_file.path.write_text(
        json.dumps(
            {
                "tokenA": "not a list",
                "tokenB": [
                    {"id": 7, "time": "2024-06-15T12:00:00Z", "_stored": "2024-06-01T00:00:00.000Z"},
                    None,
                    {"time": "no id"},
                ],
            }
        ),
        encoding="utf-8",
    )

    store = pin_file.load()

    assert len(store["tokenA"]) == 0
    assert [p.id for p in store["tokenB"]] == ["7"]


def test_save_failure_raises_persist_failure(tmp_path: Path) -> None:
    blocker = tmp_path / "pebble-timeline"
    blocker.write_text("a file where the directory should be", encoding="utf-8")
    pin_file = PinFile(tmp_path)

    with pytest.raises(PersistFailure):
        pin_file.save({"tokenA": PinIndex([_pin("a")])})
    assert pin_file.writes == 0


def test_save_unserializable_payload_raises_persist_failure(tmp_path: Path) -> None:
    pin_file = PinFile(tmp_path)
    with pytest.raises(PersistFailure):
        pin_file.save({"tokenA": PinIndex([_pin("a", extra=object())])})
