from __future__ import annotations

import re
from typing import Any, List, Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

_TAG_SPLIT = re.compile(r"[,\s]+")
_WHITESPACE = re.compile(r"\s+")


class Flashcard(BaseModel):
    """A single front/back flashcard recovered from model output."""

    model_config = ConfigDict(frozen=True)

    front: str = Field(..., description="Front of the card (question/prompt)")
    back: str = Field(..., description="Back of the card (answer/explanation)")
    type: Literal["basic", "cloze"] = Field(default="basic", description="Card type")
    tags: Tuple[str, ...] = Field(default=(), description="Tags in display order")

    @field_validator("front", "back", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> Any:
        # Models occasionally answer with bare numbers
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("front", "back")
    @classmethod
    def _require_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, v: Any) -> Any:
        if v is None:
            return "basic"
        if isinstance(v, str):
            return v.strip().lower() or "basic"
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [t for t in _TAG_SPLIT.split(v) if t]
        if isinstance(v, (list, tuple)):
            return [str(t) for t in v if t is not None]
        return v

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        # Tags are space-joined on export, so a tag cannot contain whitespace.
        seen: dict[str, None] = {}
        for tag in v:
            tag = _WHITESPACE.sub("_", tag.strip())
            if tag:
                seen.setdefault(tag, None)
        return tuple(seen)


class Deck(BaseModel):
    """A named, ordered collection of flashcards."""

    name: str = Field(..., description="Deck name as shown in Anki")
    cards: List[Flashcard] = Field(default_factory=list, description="Cards in export order")
