"""Prompt text for card generation, kept as plain files beside this module."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from langchain_core.prompts import ChatPromptTemplate

PROMPTS_DIR = Path(__file__).with_name("prompts")


def read_prompt(name: str) -> str:
    return (PROMPTS_DIR / name).read_text(encoding="utf-8")


@lru_cache(maxsize=1)
def generation_prompt() -> ChatPromptTemplate:
    """System + human template for card generation.

    The card format example is literal JSON, so it is bound as a partial
    variable rather than spliced into the template text, where its braces
    would be read as placeholders.
    """
    prompt = ChatPromptTemplate.from_messages(
        [
            ("system", read_prompt("generate_cards.system.txt")),
            ("human", read_prompt("generate_cards.human.txt")),
        ]
    )
    return prompt.partial(card_format=read_prompt("card_format.txt"))


__all__ = ["generation_prompt", "read_prompt"]
