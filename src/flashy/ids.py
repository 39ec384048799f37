"""Identifiers and checksums for Anki collection rows.

Note and card ids are millisecond timestamps, as Anki itself uses. Within one
build the note range ``[base, base + n)`` and the card range
``[base + n, base + 2n)`` never overlap, so no shared counter is needed.
"""
from __future__ import annotations

import random
import string
import time
from typing import Callable, Optional, Protocol

GUID_ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits
GUID_LENGTH = 10

# 13-14 digit ids keep well clear of the reserved default deck id (1).
ID_MIN = 10**12
ID_MAX = 10**13


class IdGenerator(Protocol):
    def next_deck_id(self) -> int: ...

    def next_model_id(self) -> int: ...

    def next_note_id(self, position: int) -> int: ...

    def next_card_id(self, position: int, total: int) -> int: ...

    def next_guid(self) -> str: ...


class ClockIdGenerator:
    """Default strategy: wall-clock base plus random deck/model ids and guids.

    Pass ``now_ms`` and a seeded ``random.Random`` to make a build reproducible.
    """

    def __init__(self, now_ms: Optional[int] = None, rng: Optional[random.Random] = None,
                 clock: Callable[[], float] = time.time) -> None:
        self.base_ms = now_ms if now_ms is not None else int(clock() * 1000)
        self._rng = rng or random.SystemRandom()

    def next_deck_id(self) -> int:
        return self._rng.randint(ID_MIN, ID_MAX)

    def next_model_id(self) -> int:
        return self._rng.randint(ID_MIN, ID_MAX)

    def next_note_id(self, position: int) -> int:
        return self.base_ms + position

    def next_card_id(self, position: int, total: int) -> int:
        return self.base_ms + position + total

    def next_guid(self) -> str:
        return "".join(self._rng.choice(GUID_ALPHABET) for _ in range(GUID_LENGTH))


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _utf16_units(text: str):
    data = text.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def field_checksum(text: str) -> int:
    """Rolling 32-bit hash over the UTF-16 code units of ``text``.

    This is ``h = h * 31 + code`` with signed 32-bit overflow, made positive at
    the end. It is not Anki's sha1-based checksum; Anki accepts any value on
    import.
    """
    csum = 0
    for code in _utf16_units(text):
        csum = _to_int32((csum << 5) - csum + code)
    return abs(csum)
