"""Local deck history: a flat JSON list of previously generated decks."""
from __future__ import annotations

import json
import logging
import os
import tempfile
import time
import uuid
from pathlib import Path
from typing import Any, List, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from flashy.errors import HistoryError
from flashy.models import Deck, Flashcard

logger = logging.getLogger(__name__)

STORAGE_KEY = "flashy_decks"


class DeckRecord(BaseModel):
    id: str
    deck_name: str
    cards: List[Flashcard] = Field(default_factory=list)
    model: str
    difficulty: str
    source_file: str
    tags: List[str] = Field(default_factory=list)
    created_at: int = Field(..., description="Unix time in milliseconds")
    card_count: int

    def to_deck(self) -> Deck:
        return Deck(name=self.deck_name, cards=self.cards)


class DeckHistory:
    """Deck history kept as ``{"flashy_decks": [...]}`` in a JSON file.

    Reads are forgiving: a missing or unreadable file lists as empty and
    records that fail validation are skipped. Writes are not. Entries that
    fail validation are carried over untouched, and a file that cannot be
    read at all is never overwritten.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load_entries(self) -> List[Any]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise HistoryError(f"Unreadable deck history {self.path}: {e}") from e
        entries = raw.get(STORAGE_KEY, []) if isinstance(raw, dict) else None
        if not isinstance(entries, list):
            raise HistoryError(f"Unexpected deck history layout in {self.path}")
        return entries

    def _read_all(self) -> List[DeckRecord]:
        try:
            entries = self._load_entries()
        except HistoryError as e:
            logger.warning(f"Ignoring deck history: {e}")
            return []
        records = []
        for entry in entries:
            try:
                records.append(DeckRecord.model_validate(entry))
            except ValidationError as e:
                logger.warning(
                    f"Skipping invalid history record ({e.error_count()} errors)",
                    extra={"id": _entry_id(entry)},
                )
        return records

    def _write_entries(self, entries: List[Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps({STORAGE_KEY: entries}, ensure_ascii=False, indent=2)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}-", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise HistoryError(f"Failed to write deck history {self.path}: {e}") from e

    def list(self) -> List[DeckRecord]:
        """All valid records, newest first."""
        return sorted(self._read_all(), key=lambda r: r.created_at, reverse=True)

    def save(
            self,
            deck: Deck,
            *,
            model: str,
            difficulty: str,
            source_file: str,
            tags: Optional[Sequence[str]] = None,
    ) -> DeckRecord:
        """Append a record for ``deck``; raises HistoryError if the file cannot be read."""
        entries = self._load_entries()
        record = DeckRecord(
            id=str(uuid.uuid4()),
            deck_name=deck.name,
            cards=list(deck.cards),
            model=model,
            difficulty=difficulty,
            source_file=source_file,
            tags=list(tags or []),
            created_at=int(time.time() * 1000),
            card_count=len(deck.cards),
        )
        entries.append(record.model_dump(mode="json"))
        self._write_entries(entries)
        logger.info(f"Saved deck to history: {deck.name}", extra={"id": record.id})
        return record

    def get(self, record_id: str) -> Optional[DeckRecord]:
        return next((r for r in self._read_all() if r.id == record_id), None)

    def delete(self, record_id: str) -> bool:
        entries = self._load_entries()
        remaining = [e for e in entries if _entry_id(e) != record_id]
        if len(remaining) == len(entries):
            return False
        self._write_entries(remaining)
        return True


def _entry_id(entry: Any) -> Optional[str]:
    return entry.get("id") if isinstance(entry, dict) else None
