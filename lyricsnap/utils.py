"""Helper functions for the lyric snap pipeline."""

import logging
import os
import re
import yaml
from pathlib import Path
from dotenv import load_dotenv

from lyricsnap.errors import ConfigError

load_dotenv()

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = PROJECT_ROOT / "data"
LYRICS_DIR = DATA_DIR / "lyrics"
VECTORSTORE_DIR = DATA_DIR / "vectorstore"

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def get_api_key(key_name: str) -> str:
    """Get an API key from environment variables."""
    value = os.getenv(key_name)
    if not value or value.startswith("your_"):
        raise ConfigError(
            f"{key_name} not set. Please add it to your .env file."
        )
    return value


def load_yaml(path: Path) -> dict:
    """Load a YAML mapping, returning {} for an empty file."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def load_prompts() -> dict:
    """Load prompt templates from prompts.yaml."""
    return load_yaml(CONFIG_DIR / "prompts.yaml")


def load_word_list(path: Path) -> list[str]:
    """Read a word list: one entry per line, blank lines and # comments ignored."""
    if not path.exists():
        return []
    words = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            word = line.split("#", 1)[0].strip().lower()
            if word:
                words.append(word)
    return words


def normalize_text(text: str) -> str:
    """Lowercase and strip everything that is not a letter or digit."""
    return re.sub(r"[^a-z0-9]", "", text.lower())


def title_words(title: str) -> list[str]:
    """Split a title into lowercase alphanumeric words."""
    return [w for w in re.split(r"[^a-z0-9]+", title.lower()) if w]


def ensure_dirs():
    """Ensure all data directories exist."""
    for d in [LYRICS_DIR, VECTORSTORE_DIR]:
        d.mkdir(parents=True, exist_ok=True)


def setup_logging(level: str = "INFO"):
    """Configure root logging for command-line entry points."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
