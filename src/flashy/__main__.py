from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple, get_args

from pydantic import ValidationError

from flashy.apkg import export_deck
from flashy.common.logging_config import setup_logging
from flashy.config_models import Difficulty, GenerationOptions, RunConfig, load_config, require_api_key
from flashy.errors import DocumentReadError, FlashyError, HistoryError
from flashy.extractors import extract_text
from flashy.generation import generate_flashcards
from flashy.history import DeckHistory
from flashy.models import Deck
from flashy.parsing import parse_flashcards
from flashy.provider import AVAILABLE_MODELS, OpenRouterClient

logger = logging.getLogger(__name__)

PASTED_TEXT_SOURCE = "Pasted text"
DEFAULT_DECK_NAME = "My Deck"


def _client(cfg: RunConfig) -> OpenRouterClient:
    return OpenRouterClient(
        api_key=require_api_key(),
        base_url=cfg.provider.base_url,
        referer=cfg.provider.referer,
        title=cfg.provider.title,
        timeout=cfg.provider.timeout,
    )


def _split_tags(value: str) -> List[str]:
    return [t.strip() for t in value.split(",") if t.strip()]


def _read_source(args: argparse.Namespace) -> Tuple[str, str, str]:
    """Content, source label and default deck name for ``generate``."""
    if args.text is not None or args.input == "-":
        content = args.text if args.text is not None else sys.stdin.read()
        if not content.strip():
            raise SystemExit("no text to generate cards from")
        return content, PASTED_TEXT_SOURCE, DEFAULT_DECK_NAME

    input_file = Path(args.input)
    if not input_file.is_file():
        raise SystemExit(f"input file does not exist or is not a file: {input_file}")
    return extract_text(input_file), input_file.name, input_file.stem


def _generation_options(args: argparse.Namespace, cfg: RunConfig) -> GenerationOptions:
    overrides = {
        "model": args.model,
        "num_cards": args.num_cards,
        "difficulty": args.difficulty,
        "focus_areas": args.focus_areas,
        "tags": _split_tags(args.tags) if args.tags is not None else None,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if not overrides:
        return cfg.generate
    try:
        return GenerationOptions.model_validate({**cfg.generate.model_dump(), **overrides})
    except ValidationError as ve:
        raise SystemExit(f"Invalid generation options:\n{ve}")


def cmd_generate(args: argparse.Namespace, cfg: RunConfig) -> int:
    options = _generation_options(args, cfg)
    content, source_file, default_name = _read_source(args)
    cards = generate_flashcards(content, options, _client(cfg))
    deck = Deck(name=args.deck_name or default_name, cards=cards)

    # Record before exporting so a failed export does not lose the completion.
    record = None
    if not args.no_history:
        try:
            record = DeckHistory(cfg.history_file).save(
                deck,
                model=options.model,
                difficulty=options.difficulty,
                source_file=source_file,
                tags=options.tags,
            )
        except HistoryError as e:
            logger.warning(f"Deck not recorded in history: {e}")

    try:
        out_path = export_deck(deck, args.out or cfg.output_dir)
    except FlashyError:
        if record is not None:
            logger.error(f"Export failed; cards kept in history, re-export with: history export {record.id}")
        raise
    print(f"Exported {len(cards)} cards to {out_path}")
    return 0


def cmd_export(args: argparse.Namespace, cfg: RunConfig) -> int:
    try:
        text = Path(args.cards).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentReadError(f"Failed to read {args.cards}: {e}") from e
    deck = Deck(name=args.deck_name, cards=parse_flashcards(text))
    out_path = export_deck(deck, args.out or cfg.output_dir)
    print(f"Exported {len(deck.cards)} cards to {out_path}")
    return 0


def cmd_history(args: argparse.Namespace, cfg: RunConfig) -> int:
    history = DeckHistory(cfg.history_file)
    if args.action == "list":
        for record in history.list():
            print(f"{record.id}  {record.deck_name}  {record.card_count} cards  {record.model}  {record.source_file}")
        return 0

    if not args.id:
        raise SystemExit(f"history {args.action} requires a deck id")
    record = history.get(args.id)
    if record is None:
        print(f"No deck with id {args.id}")
        return 1
    if args.action == "delete":
        history.delete(args.id)
        print(f"Deleted {record.deck_name}")
    else:
        out_path = export_deck(record.to_deck(), args.out or cfg.output_dir)
        print(f"Exported {record.card_count} cards to {out_path}")
    return 0


def cmd_models(args: argparse.Namespace, cfg: RunConfig) -> int:
    models = _client(cfg).list_models() if args.remote else AVAILABLE_MODELS
    for m in models:
        print(f"{m.id:45} {m.name:30} {m.provider}{'  (free)' if m.free else ''}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flashy", description="Generate Anki decks from documents with an LLM")
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to YAML config (defaults to ./config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO). Use DEBUG to see raw model output.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate a deck from a document or pasted text")
    source = gen.add_mutually_exclusive_group(required=True)
    source.add_argument("--input", help="PDF, Markdown or text file to generate cards from (- reads stdin)")
    source.add_argument("--text", help="Text to generate cards from")
    gen.add_argument("--deck-name", help=f"Deck name (defaults to the input file name, or \"{DEFAULT_DECK_NAME}\" for text)")
    gen.add_argument("--model", help="Override the configured model id")
    gen.add_argument("--num-cards", type=int, help="Override the configured number of cards")
    gen.add_argument("--difficulty", choices=get_args(Difficulty), help="Override the configured difficulty")
    gen.add_argument("--tags", help="Comma-separated tags to suggest to the model")
    gen.add_argument("--focus-areas", help="Topics the cards should concentrate on")
    gen.add_argument("--out", help="Output directory for the .apkg")
    gen.add_argument("--no-history", action="store_true", help="Do not record the deck in history")
    gen.set_defaults(func=cmd_generate)

    exp = sub.add_parser("export", help="Build a .apkg from a saved model response or JSON file")
    exp.add_argument("--cards", required=True, help="File containing the model output")
    exp.add_argument("--deck-name", required=True)
    exp.add_argument("--out", help="Output directory for the .apkg")
    exp.set_defaults(func=cmd_export)

    hist = sub.add_parser("history", help="List, re-export or delete previously generated decks")
    hist.add_argument("action", choices=["list", "export", "delete"])
    hist.add_argument("id", nargs="?")
    hist.add_argument("--out", help="Output directory for re-exported decks")
    hist.set_defaults(func=cmd_history)

    models = sub.add_parser("models", help="List known models")
    models.add_argument("--remote", action="store_true", help="Fetch the provider's live model list")
    models.set_defaults(func=cmd_models)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    cfg = load_config(Path(args.config))
    logger.debug(f"Running command: {args.command}", extra={"config": args.config})
    try:
        return args.func(args, cfg)
    except FlashyError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
