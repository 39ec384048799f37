"""Recover flashcards from raw model completions.

Models are asked for a bare JSON array, but what comes back is often wrapped
in a Markdown fence, followed by chatter, or cut off mid-object when the token
budget runs out. Three strategies are tried in order:

1. strip fences and parse the whole text;
2. keep every complete element object of the first array and close it;
3. pull out every balanced ``{...}`` that looks like a card and parse each
   one on its own.

Every decoded element goes through ``Flashcard`` validation; elements that
fail are logged and dropped. Only when no strategy yields anything is
``UnparseableOutputError`` raised.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError

from flashy.errors import UnparseableOutputError
from flashy.models import Flashcard

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^```[\w+-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?[ \t]*```$")
_FRONT_KEY = re.compile(r'"front"\s*:')
_BACK_KEY = re.compile(r'"back"\s*:')


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```/```json fence; the closing fence may be missing."""
    s = text.strip()
    s = _FENCE_OPEN.sub("", s, count=1)
    s = _FENCE_CLOSE.sub("", s, count=1)
    return s.strip()


def parse_flashcards(text: str) -> List[Flashcard]:
    cleaned = strip_code_fences(text or "")

    cards = _parse_direct(cleaned)
    if cards is not None:
        logger.info(f"Parsed {len(cards)} cards from JSON", extra={"strategy": "direct"})
        return cards

    cards = _parse_truncated(cleaned)
    if cards is not None:
        logger.warning(
            f"Recovered {len(cards)} cards from incomplete JSON array",
            extra={"strategy": "truncation"},
        )
        return cards

    cards = _extract_objects(cleaned)
    if cards:
        logger.warning(
            f"Recovered {len(cards)} cards by object extraction",
            extra={"strategy": "extraction"},
        )
        return cards

    logger.error(f"Could not recover any cards. Raw text: {cleaned[:500]!r}")
    raise UnparseableOutputError("Failed to parse AI response as JSON")


def _parse_direct(text: str) -> Optional[List[Flashcard]]:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return None
    if isinstance(parsed, dict) and isinstance(parsed.get("cards"), list):
        parsed = parsed["cards"]
    if not isinstance(parsed, list):
        return None
    return _decode_items(parsed)


def _parse_truncated(text: str) -> Optional[List[Flashcard]]:
    start = text.find("[")
    if start == -1:
        return None

    last_close, array_close = _scan_array(text, start)
    if last_close != -1:
        candidate = text[start:last_close + 1] + "]"
    elif array_close != -1:
        candidate = text[start:array_close + 1]
    else:
        return None

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, list):
        return None
    return _decode_items(parsed)


def _scan_array(text: str, start: int) -> tuple[int, int]:
    """Walk the array opening at ``start``.

    Returns the index of the last ``}`` that closes a direct element of the
    array, and the index of the array's own ``]`` (-1 for either when absent).
    """
    depth = 0
    in_string = False
    escaped = False
    last_close = -1
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "[{":
            depth += 1
        elif ch in "]}":
            depth -= 1
            if ch == "}" and depth == 1:
                last_close = i
            elif depth == 0:
                return last_close, i
    return last_close, -1


def _matching_brace(text: str, start: int) -> int:
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def _extract_objects(text: str) -> List[Flashcard]:
    cards: List[Flashcard] = []
    skipped = 0
    i = text.find("{")
    while i != -1:
        end = _matching_brace(text, i)
        if end != -1:
            candidate = text[i:end + 1]
            if _FRONT_KEY.search(candidate) and _BACK_KEY.search(candidate):
                card = _decode_candidate(candidate)
                if card is not None:
                    cards.append(card)
                    i = text.find("{", end + 1)
                    continue
                skipped += 1
        i = text.find("{", i + 1)
    if skipped:
        logger.debug(f"Skipped {skipped} object candidates during extraction")
    return cards


def _decode_candidate(candidate: str) -> Optional[Flashcard]:
    try:
        obj = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    if not isinstance(obj, dict):
        return None
    return _decode_card(obj, quiet=True)


def _decode_items(items: Iterable[Any]) -> Optional[List[Flashcard]]:
    """Validate decoded array elements.

    Returns None when a non-empty array produced no cards at all, so the next
    strategy gets a chance; an empty array is a valid, empty result.
    """
    items = list(items)
    cards = [card for card in (_decode_card(item) for item in items) if card is not None]
    if items and not cards:
        return None
    dropped = len(items) - len(cards)
    if dropped:
        logger.warning(f"Dropped {dropped} invalid card(s)", extra={"accepted": len(cards)})
    return cards


def _decode_card(item: Any, quiet: bool = False) -> Optional[Flashcard]:
    if not isinstance(item, dict):
        if not quiet:
            logger.warning(f"Skipping non-object array element: {str(item)[:80]!r}")
        return None
    try:
        return Flashcard.model_validate(item)
    except ValidationError as ve:
        if not quiet:
            logger.warning(f"Skipping invalid card: {ve.error_count()} validation error(s)")
        return None
