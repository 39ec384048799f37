"""flashy package.

Turns LLM completions into Anki decks:
- parse_flashcards: recover flashcards from raw, possibly truncated model output
- build_collection / package_apkg / export_deck: write an importable .apkg
"""
from flashy.apkg import apkg_filename, build_collection, export_deck, package_apkg
from flashy.models import Deck, Flashcard
from flashy.parsing import parse_flashcards

__all__ = [
    "Deck",
    "Flashcard",
    "apkg_filename",
    "build_collection",
    "export_deck",
    "package_apkg",
    "parse_flashcards",
]
