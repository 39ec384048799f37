from .chains import build_messages, generate_flashcards
from .prompts import generation_prompt

__all__ = [
    "build_messages",
    "generate_flashcards",
    "generation_prompt",
]
