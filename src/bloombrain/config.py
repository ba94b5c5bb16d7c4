"""Configuration helpers for the BloomBrain activity engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_DATABASE_PATH = Path("data/bloombrain.sqlite")
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_HISTORY_LIMIT = 20


@dataclass(slots=True)
class Settings:
    """Runtime settings with environment overrides."""

    database_path: Path = DEFAULT_DATABASE_PATH
    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    log_level: str = DEFAULT_LOG_LEVEL
    history_limit: int = DEFAULT_HISTORY_LIMIT

    @classmethod
    def load(cls) -> "Settings":
        """Construct settings from environment variables when available."""

        load_dotenv()
        return cls(
            database_path=Path(
                os.environ.get("BLOOMBRAIN_DATABASE_PATH", DEFAULT_DATABASE_PATH.as_posix())
            ),
            api_key=os.environ.get("OPENAI_API_KEY") or None,
            model=os.environ.get("BLOOMBRAIN_MODEL", DEFAULT_MODEL),
            log_level=os.environ.get("BLOOMBRAIN_LOG_LEVEL", DEFAULT_LOG_LEVEL),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = ["Settings", "configure_logging"]
