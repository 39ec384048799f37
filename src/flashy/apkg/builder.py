from __future__ import annotations

import json
import logging
import sqlite3
import time
from typing import Any, Optional

from flashy.apkg import schema
from flashy.apkg.engine import SqliteEngine
from flashy.errors import PackageGenerationError
from flashy.ids import ClockIdGenerator, IdGenerator, field_checksum
from flashy.models import Deck

logger = logging.getLogger(__name__)


def _field_text(card: Any, name: str) -> str:
    value = getattr(card, name, None)
    if value is None and isinstance(card, dict):
        value = card.get(name)
    # The separator is structural; it cannot appear inside a field.
    return str(value or "").replace(schema.FIELD_SEPARATOR, "")


def _tag_string(card: Any) -> str:
    tags = getattr(card, "tags", None)
    if tags is None and isinstance(card, dict):
        tags = card.get("tags")
    return " ".join(tags or [])


def build_collection(
        deck: Deck,
        *,
        engine: Optional[SqliteEngine] = None,
        ids: Optional[IdGenerator] = None,
        now: Optional[float] = None,
) -> bytes:
    """Build an Anki ``collection.anki2`` database for ``deck`` and return its bytes.

    The database is created in memory, filled in one pass and serialized; it
    is never shared between builds.
    """
    engine = engine or SqliteEngine.default()
    ids = ids or ClockIdGenerator()
    cards = list(deck.cards)
    total = len(cards)
    logger.info(f"Generating Anki package for deck: {deck.name}", extra={"cards": total})

    conn = engine.connect()
    try:
        mod = int(now if now is not None else time.time())
        deck_id = ids.next_deck_id()
        model_id = ids.next_model_id()
        if schema.DEFAULT_DECK_ID in (deck_id, model_id):
            raise PackageGenerationError("Generated deck/model id collides with the default deck id")

        for ddl in schema.CREATE_TABLES:
            conn.execute(ddl)

        models = {str(model_id): schema.basic_model(model_id, deck_id, mod)}
        decks = schema.decks_blob(deck_id, deck.name, mod)
        conn.execute(
            schema.INSERT_COL,
            (
                1, mod, mod, mod, schema.SCHEMA_VERSION, 0, 0, 0,
                json.dumps(schema.conf_blob(model_id, total)),
                json.dumps(models),
                json.dumps(decks),
                json.dumps(schema.dconf_blob()),
                json.dumps({}),
            ),
        )

        for position, card in enumerate(cards):
            front = _field_text(card, "front")
            back = _field_text(card, "back")
            note_id = ids.next_note_id(position)
            card_id = ids.next_card_id(position, total)
            conn.execute(
                schema.INSERT_NOTE,
                (
                    note_id, ids.next_guid(), model_id, mod, -1, _tag_string(card),
                    front + schema.FIELD_SEPARATOR + back, front, field_checksum(front), 0, "",
                ),
            )
            # New, unseen card: type/queue 0, due is the position in the new queue.
            conn.execute(
                schema.INSERT_CARD,
                (card_id, note_id, deck_id, 0, mod, -1, 0, 0, position + 1, 0, 0, 0, 0, 0, 0, 0, 0, ""),
            )

        conn.commit()
        data = conn.serialize()
    except sqlite3.Error as e:
        raise PackageGenerationError(f"Failed to build Anki collection: {e}") from e
    finally:
        conn.close()

    logger.info(f"DB exported, size: {len(data)} bytes", extra={"deck_id": deck_id})
    return bytes(data)
