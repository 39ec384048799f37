from __future__ import annotations

import json
import random
import sqlite3
from typing import Any, Dict

import pytest

from flashy.apkg.engine import SqliteEngine
from flashy.ids import ClockIdGenerator
from flashy.models import Deck, Flashcard

FIXED_NOW_MS = 1_700_000_000_000


@pytest.fixture
def engine() -> SqliteEngine:
    return SqliteEngine()


@pytest.fixture
def ids() -> ClockIdGenerator:
    return ClockIdGenerator(now_ms=FIXED_NOW_MS, rng=random.Random(42))


@pytest.fixture
def three_card_deck() -> Deck:
    return Deck(
        name="Test",
        cards=[Flashcard(front=f"Q{i}", back=f"A{i}") for i in (1, 2, 3)],
    )


def open_collection(data: bytes) -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:")
    conn.deserialize(data)
    return conn


def col_json(conn: sqlite3.Connection, column: str) -> Dict[str, Any]:
    (raw,) = conn.execute(f"SELECT {column} FROM col").fetchone()
    return json.loads(raw)
