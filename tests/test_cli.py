from __future__ import annotations

import io
import json
import logging
import sys
import zipfile

import pytest

from flashy.__main__ import main
from flashy.config_models import API_KEY_ENV
from flashy.history import STORAGE_KEY
from flashy.provider.openrouter import OpenRouterClient

from conftest import open_collection


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    root = logging.getLogger("flashy")
    root.handlers.clear()
    root.propagate = True
    root.setLevel(logging.NOTSET)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        f"output_dir: {tmp_path / 'out'}\n"
        f"history_file: {tmp_path / 'history.json'}\n",
        encoding="utf-8",
    )
    return path


def _notes(conn):
    return [f for (f,) in conn.execute("SELECT sfld FROM notes ORDER BY id")]


def test_export_from_saved_completion(tmp_path, config_path):
    cards = tmp_path / "response.txt"
    cards.write_text('```json\n[{"front": "Q1", "back": "A1"}, {"front": "Q2", "back": "A2"}, {"fr', encoding="utf-8")

    assert main(["--config", str(config_path), "export", "--cards", str(cards), "--deck-name", "Saved"]) == 0

    with zipfile.ZipFile(tmp_path / "out" / "Saved.apkg") as zf:
        assert _notes(open_collection(zf.read("collection.anki2"))) == ["Q1", "Q2"]


def test_export_unparseable_returns_error(tmp_path, config_path):
    cards = tmp_path / "response.txt"
    cards.write_text("nothing useful", encoding="utf-8")
    assert main(["--config", str(config_path), "export", "--cards", str(cards), "--deck-name", "X"]) == 1
    assert not (tmp_path / "out" / "X.apkg").exists()


def test_generate_records_history(tmp_path, config_path, monkeypatch):
    monkeypatch.setenv(API_KEY_ENV, "sk-test")
    seen = {}

    def fake_complete(self, model, messages, temperature=0.7, max_tokens=None):
        seen["model"] = model
        seen["user"] = messages[1]["content"]
        return '[{"front": "What is ATP?", "back": "Energy", "tags": ["bio"]}]'

    monkeypatch.setattr(OpenRouterClient, "complete", fake_complete)
    doc = tmp_path / "cells.md"
    doc.write_text("# Cells\nATP stores energy.", encoding="utf-8")

    rc = main(["--config", str(config_path), "generate", "--input", str(doc), "--model", "openai/gpt-4o"])

    assert rc == 0
    assert seen["model"] == "openai/gpt-4o"
    assert "ATP stores energy." in seen["user"]
    assert (tmp_path / "out" / "cells.apkg").exists()

    history = json.loads((tmp_path / "history.json").read_text(encoding="utf-8"))[STORAGE_KEY]
    assert len(history) == 1
    assert history[0]["deck_name"] == "cells"
    assert history[0]["source_file"] == "cells.md"
    assert history[0]["card_count"] == 1

    rc = main(["--config", str(config_path), "history", "export", history[0]["id"], "--out", str(tmp_path / "again")])
    assert rc == 0
    assert (tmp_path / "again" / "cells.apkg").exists()


def test_history_list_and_delete(tmp_path, config_path, capsys):
    assert main(["--config", str(config_path), "history", "list"]) == 0
    assert main(["--config", str(config_path), "history", "delete", "missing-id"]) == 1
    assert "No deck with id missing-id" in capsys.readouterr().out


def test_models_lists_catalogue(config_path, capsys):
    assert main(["--config", str(config_path), "models"]) == 0
    assert "openai/gpt-4o-mini" in capsys.readouterr().out


@pytest.fixture
def fake_completion(monkeypatch):
    monkeypatch.setenv(API_KEY_ENV, "sk-test")
    seen = {}

    def fake_complete(self, model, messages, temperature=0.7, max_tokens=None):
        seen["model"] = model
        seen["user"] = messages[1]["content"]
        return '[{"front": "What is ATP?", "back": "Energy"}, {"front": "Where is ATP made?", "back": "Mitochondria"}]'

    monkeypatch.setattr(OpenRouterClient, "complete", fake_complete)
    return seen


def _history(tmp_path):
    return json.loads((tmp_path / "history.json").read_text(encoding="utf-8"))[STORAGE_KEY]


def test_generate_from_text_with_overrides(tmp_path, config_path, fake_completion):
    rc = main([
        "--config", str(config_path), "generate",
        "--text", "ATP stores energy.",
        "--difficulty", "Advanced",
        "--tags", "bio, cells",
        "--focus-areas", "Metabolism",
    ])

    assert rc == 0
    user = fake_completion["user"]
    assert "ATP stores energy." in user
    assert "- Difficulty: Advanced" in user
    assert "- Tags: bio, cells" in user
    assert "- Focus Areas: Metabolism" in user
    assert (tmp_path / "out" / "My Deck.apkg").exists()

    record, = _history(tmp_path)
    assert record["deck_name"] == "My Deck"
    assert record["source_file"] == "Pasted text"
    assert record["difficulty"] == "Advanced"
    assert record["tags"] == ["bio", "cells"]


def test_generate_reads_stdin(tmp_path, config_path, fake_completion, monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.StringIO("Glycolysis splits glucose."))

    rc = main(["--config", str(config_path), "generate", "--input", "-", "--deck-name", "Glycolysis"])

    assert rc == 0
    assert "Glycolysis splits glucose." in fake_completion["user"]
    assert (tmp_path / "out" / "Glycolysis.apkg").exists()
    assert _history(tmp_path)[0]["source_file"] == "Pasted text"


def test_generate_requires_a_source(config_path):
    with pytest.raises(SystemExit):
        main(["--config", str(config_path), "generate"])


def test_invalid_override_exits(config_path, fake_completion):
    with pytest.raises(SystemExit, match="Invalid generation options"):
        main(["--config", str(config_path), "generate", "--text", "x", "--num-cards", "0"])


def test_failed_export_keeps_generated_deck_in_history(tmp_path, config_path, fake_completion):
    rc = main(["--config", str(config_path), "generate", "--text", "ATP", "--deck-name", "Bio/Unit 1"])

    assert rc == 1
    record, = _history(tmp_path)
    assert record["deck_name"] == "Bio/Unit 1"
    assert record["card_count"] == 2
    assert not list((tmp_path / "out").rglob("*.apkg"))


def test_unreadable_history_does_not_block_export(tmp_path, config_path, fake_completion):
    (tmp_path / "history.json").write_text("{not json", encoding="utf-8")

    assert main(["--config", str(config_path), "generate", "--text", "ATP"]) == 0

    assert (tmp_path / "out" / "My Deck.apkg").exists()
    assert (tmp_path / "history.json").read_text(encoding="utf-8") == "{not json"


def test_missing_api_key_is_reported(tmp_path, config_path, monkeypatch):
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    assert main(["--config", str(config_path), "generate", "--text", "ATP"]) == 1
    assert not (tmp_path / "history.json").exists()


def test_export_missing_cards_file_is_reported(tmp_path, config_path):
    rc = main(["--config", str(config_path), "export", "--cards", str(tmp_path / "absent.txt"), "--deck-name", "X"])
    assert rc == 1
