from __future__ import annotations

import json

import pytest

from flashy.errors import HistoryError
from flashy.history import STORAGE_KEY, DeckHistory, DeckRecord
from flashy.models import Deck, Flashcard


def _deck(name="Bio", n=2):
    return Deck(name=name, cards=[Flashcard(front=f"Q{i}", back=f"A{i}") for i in range(n)])


def test_save_assigns_id_timestamp_and_count(tmp_path):
    history = DeckHistory(tmp_path / "history.json")
    record = history.save(_deck(n=3), model="openai/gpt-4o", difficulty="Beginner",
                          source_file="bio.pdf", tags=["bio"])

    assert record.card_count == 3
    assert record.created_at > 0
    assert history.get(record.id) == record

    raw = json.loads((tmp_path / "history.json").read_text(encoding="utf-8"))
    assert list(raw) == [STORAGE_KEY]
    assert raw[STORAGE_KEY][0]["deck_name"] == "Bio"


def test_list_is_newest_first(tmp_path):
    path = tmp_path / "history.json"
    older = DeckRecord(id="a", deck_name="Old", model="m", difficulty="d", source_file="f",
                       created_at=1_000, card_count=0)
    newer = DeckRecord(id="b", deck_name="New", model="m", difficulty="d", source_file="f",
                       created_at=2_000, card_count=0)
    path.write_text(json.dumps({STORAGE_KEY: [older.model_dump(), newer.model_dump()]}), encoding="utf-8")

    assert [r.id for r in DeckHistory(path).list()] == ["b", "a"]


def test_delete(tmp_path):
    history = DeckHistory(tmp_path / "history.json")
    keep = history.save(_deck("Keep"), model="m", difficulty="d", source_file="f")
    drop = history.save(_deck("Drop"), model="m", difficulty="d", source_file="f")

    assert history.delete(drop.id) is True
    assert history.delete(drop.id) is False
    assert [r.id for r in history.list()] == [keep.id]


def test_record_round_trips_to_deck(tmp_path):
    history = DeckHistory(tmp_path / "history.json")
    record = history.save(_deck(), model="m", difficulty="d", source_file="f")
    deck = history.get(record.id).to_deck()
    assert deck.name == "Bio"
    assert [c.front for c in deck.cards] == ["Q0", "Q1"]


def test_missing_or_corrupt_file_reads_empty(tmp_path):
    assert DeckHistory(tmp_path / "absent.json").list() == []
    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{not json", encoding="utf-8")
    assert DeckHistory(corrupt).list() == []
    assert DeckHistory(corrupt).get("x") is None


def test_invalid_record_is_skipped_but_kept_on_save(tmp_path):
    path = tmp_path / "history.json"
    history = DeckHistory(path)
    a = history.save(_deck("A"), model="m", difficulty="d", source_file="f")
    b = history.save(_deck("B"), model="m", difficulty="d", source_file="f")

    raw = json.loads(path.read_text(encoding="utf-8"))
    del raw[STORAGE_KEY][0]["card_count"]
    path.write_text(json.dumps(raw), encoding="utf-8")

    assert [r.id for r in history.list()] == [b.id]
    c = history.save(_deck("C"), model="m", difficulty="d", source_file="f")

    entries = json.loads(path.read_text(encoding="utf-8"))[STORAGE_KEY]
    assert [e["id"] for e in entries] == [a.id, b.id, c.id]
    assert {r.deck_name for r in history.list()} == {"B", "C"}


def test_unreadable_file_is_never_overwritten(tmp_path):
    path = tmp_path / "history.json"
    path.write_text("{not json", encoding="utf-8")
    history = DeckHistory(path)

    with pytest.raises(HistoryError):
        history.save(_deck(), model="m", difficulty="d", source_file="f")
    with pytest.raises(HistoryError):
        history.delete("x")

    assert path.read_text(encoding="utf-8") == "{not json"
    assert [p.name for p in tmp_path.iterdir()] == ["history.json"]


def test_save_leaves_no_temporary_files(tmp_path):
    history = DeckHistory(tmp_path / "nested" / "history.json")
    history.save(_deck(), model="m", difficulty="d", source_file="f")
    assert [p.name for p in (tmp_path / "nested").iterdir()] == ["history.json"]
