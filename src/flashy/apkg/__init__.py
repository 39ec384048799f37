"""Anki .apkg export: collection database builder and zip packager."""
from .builder import build_collection
from .engine import SqliteEngine, default_engine
from .package import apkg_filename, export_deck, package_apkg

__all__ = [
    "SqliteEngine",
    "apkg_filename",
    "build_collection",
    "default_engine",
    "export_deck",
    "package_apkg",
]
