from __future__ import annotations

import logging
from typing import Dict, List

from flashy.config_models import GenerationOptions
from flashy.generation.prompts import generation_prompt
from flashy.models import Flashcard
from flashy.parsing import parse_flashcards
from flashy.provider.openrouter import OpenRouterClient

logger = logging.getLogger(__name__)

_ROLES = {"system": "system", "human": "user", "ai": "assistant"}


def build_messages(content: str, options: GenerationOptions) -> List[Dict[str, str]]:
    """Render the generation prompt as role-tagged chat messages (system, then user)."""
    messages = generation_prompt().format_messages(
        content=content[:options.max_content_chars],
        difficulty=options.difficulty,
        num_cards=options.num_cards,
        focus_areas=options.focus_areas or "Key concepts",
        tags=", ".join(options.tags) or "general",
    )
    return [{"role": _ROLES[m.type], "content": m.content} for m in messages]


def generate_flashcards(
        content: str,
        options: GenerationOptions,
        client: OpenRouterClient,
) -> List[Flashcard]:
    """Ask the model for flashcards about ``content`` and recover what it returns.

    Provider and parsing errors propagate unchanged; nothing is retried.
    """
    logger.info(
        "Starting generation...",
        extra={
            "model": options.model,
            "content_length": min(len(content), options.max_content_chars),
            "num_cards": options.num_cards,
            "difficulty": options.difficulty,
        },
    )
    messages = build_messages(content, options)
    text = client.complete(
        model=options.model,
        messages=messages,
        temperature=options.temperature,
        max_tokens=options.max_tokens,
    )
    cards = parse_flashcards(text)
    logger.info(f"Generation complete! {len(cards)} cards")
    return cards
