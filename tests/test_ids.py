from __future__ import annotations

import random

import pytest

from flashy.apkg.schema import DEFAULT_DECK_ID
from flashy.ids import GUID_ALPHABET, ID_MAX, ID_MIN, ClockIdGenerator, field_checksum

from conftest import FIXED_NOW_MS


@pytest.mark.parametrize("text, expected", [
    ("", 0),
    ("a", 97),
    ("Q1", 2560),
    ("hello", 99162322),
    # signed 32-bit overflow lands exactly on -2**31
    ("polygenelubricants", 2147483648),
    # non-BMP characters count as two UTF-16 code units
    ("\U0001F600", 1772899),
])
def test_checksum_values(text, expected):
    assert field_checksum(text) == expected


def test_checksum_is_deterministic_and_discriminating():
    assert field_checksum("What is ATP?") == field_checksum("What is ATP?")
    assert field_checksum("What is ATP?") != field_checksum("What is ADP?")


def test_checksum_keeps_known_collisions():
    # Same recurrence as Java's String.hashCode, including its collisions.
    assert field_checksum("Aa") == field_checksum("BB")


def test_note_and_card_ranges_are_disjoint(ids):
    total = 50
    note_ids = {ids.next_note_id(i) for i in range(total)}
    card_ids = {ids.next_card_id(i, total) for i in range(total)}
    assert len(note_ids) == total
    assert len(card_ids) == total
    assert note_ids.isdisjoint(card_ids)
    assert DEFAULT_DECK_ID not in note_ids | card_ids
    assert min(note_ids) == FIXED_NOW_MS
    assert min(card_ids) == FIXED_NOW_MS + total


def test_deck_and_model_ids_are_wide_and_not_default(ids):
    for _ in range(100):
        for value in (ids.next_deck_id(), ids.next_model_id()):
            assert ID_MIN <= value <= ID_MAX
            assert value != DEFAULT_DECK_ID
            assert 13 <= len(str(value)) <= 14


def test_guid_shape(ids):
    guid = ids.next_guid()
    assert len(guid) == 10
    assert set(guid) <= set(GUID_ALPHABET)
    assert len(GUID_ALPHABET) == 62


def test_seeded_generators_are_reproducible():
    a = ClockIdGenerator(now_ms=1, rng=random.Random(7))
    b = ClockIdGenerator(now_ms=1, rng=random.Random(7))
    assert [a.next_guid() for _ in range(5)] == [b.next_guid() for _ in range(5)]
    assert a.next_deck_id() == b.next_deck_id()


def test_clock_base_is_captured_once():
    ticks = iter([1000.0, 2000.0])
    gen = ClockIdGenerator(clock=lambda: next(ticks))
    assert gen.next_note_id(0) == 1_000_000
    assert gen.next_note_id(1) == 1_000_001
