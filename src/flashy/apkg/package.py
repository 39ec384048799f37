from __future__ import annotations

import io
import logging
import os
import tempfile
import zipfile
from pathlib import Path
from typing import Optional

from flashy.apkg.builder import build_collection
from flashy.apkg.engine import SqliteEngine
from flashy.errors import PackagingError
from flashy.ids import IdGenerator
from flashy.models import Deck

logger = logging.getLogger(__name__)

APKG_SUFFIX = ".apkg"
COLLECTION_ENTRY = "collection.anki2"
MEDIA_ENTRY = "media"


def apkg_filename(deck_name: str) -> str:
    """Append the .apkg extension when missing; the name is otherwise untouched."""
    return deck_name if deck_name.endswith(APKG_SUFFIX) else f"{deck_name}{APKG_SUFFIX}"


def package_apkg(collection: bytes) -> bytes:
    """Wrap a serialized collection and an empty media manifest into a zip archive."""
    buffer = io.BytesIO()
    try:
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr(COLLECTION_ENTRY, collection)
            zf.writestr(MEDIA_ENTRY, "{}")
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError) as e:
        raise PackagingError(f"Failed to create .apkg archive: {e}") from e
    data = buffer.getvalue()
    logger.info(f"Anki package ready, size: {len(data)} bytes")
    return data


def export_deck(
        deck: Deck,
        out_dir: str | Path,
        *,
        engine: Optional[SqliteEngine] = None,
        ids: Optional[IdGenerator] = None,
) -> Path:
    """Build and write ``<out_dir>/<deck name>.apkg``; returns the written path.

    The archive is written to a temporary file in ``out_dir`` and renamed into
    place, so a failed export never leaves a partial file behind.
    """
    archive = package_apkg(build_collection(deck, engine=engine, ids=ids))

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    target = out_dir / apkg_filename(deck.name)

    fd, tmp_name = tempfile.mkstemp(prefix=".flashy-", suffix=APKG_SUFFIX, dir=out_dir)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(archive)
        os.replace(tmp_name, target)
    except OSError as e:
        Path(tmp_name).unlink(missing_ok=True)
        raise PackagingError(f"Failed to write {target}: {e}") from e

    logger.info(f"Deck written to {target}", extra={"cards": len(deck.cards)})
    return target
