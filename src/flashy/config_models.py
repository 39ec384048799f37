from __future__ import annotations

import os
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from flashy.errors import AuthenticationError
from flashy.provider.catalog import DEFAULT_MODEL
from flashy.provider.openrouter import DEFAULT_BASE_URL

API_KEY_ENV = "OPENROUTER_API_KEY"

Difficulty = Literal["Beginner", "Intermediate", "Advanced", "Expert"]


class ProviderConfig(BaseModel):
    base_url: str = Field(default=DEFAULT_BASE_URL, description="OpenRouter API base URL")
    referer: Optional[str] = Field(default=None, description="Sent as HTTP-Referer for OpenRouter attribution")
    title: str = Field(default="Flashy", description="Sent as X-Title for OpenRouter attribution")
    timeout: Optional[float] = Field(default=None, gt=0, description="Socket timeout in seconds; none by default")


class GenerationOptions(BaseModel):
    """What to ask the model for."""

    model: str = Field(default=DEFAULT_MODEL, description="Provider model id")
    num_cards: int = Field(default=15, ge=1, le=100, description="Target number of cards")
    difficulty: Difficulty = Field(default="Intermediate", description="Difficulty label")
    focus_areas: Optional[str] = Field(default=None, description="Free-text focus areas")
    tags: List[str] = Field(default_factory=list, description="Tags suggested to the model")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int = Field(default=4096, gt=0, description="Completion token ceiling")
    max_content_chars: int = Field(default=100_000, gt=0, description="Document text sent to the model is cut here")


class RunConfig(BaseModel):
    """Top-level configuration loaded from config.yaml."""

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    generate: GenerationOptions = Field(default_factory=GenerationOptions)
    output_dir: Path = Field(default=Path("out"), description="Where .apkg files are written")
    history_file: Path = Field(default=Path("flashy_history.json"), description="Deck history JSON file")


def load_config(path: Optional[Path]) -> RunConfig:
    """Load and validate a YAML config; a missing default path yields defaults."""
    if path is None or not path.exists():
        if path is not None and path.name != "config.yaml":
            raise FileNotFoundError(f"Config file not found: {path}")
        return RunConfig()

    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    try:
        return RunConfig.model_validate(raw)
    except ValidationError as ve:
        raise SystemExit(f"Invalid configuration in {path}:\n{ve}")


def require_api_key() -> str:
    key = os.getenv(API_KEY_ENV)
    if not key:
        raise AuthenticationError(
            f"{API_KEY_ENV} environment variable is not set.\n"
            "Please export it before running, e.g.:\n"
            f"  export {API_KEY_ENV}=your_key_here"
        )
    return key
