"""Word-list profanity filter used by the lyrics cleaner."""

import logging
import re
from pathlib import Path

from lyricsnap.utils import load_word_list

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[a-z0-9']+")


class ProfanityFilter:
    """Flags text containing any listed word.

    Built once at startup and passed into the cleaner, so tests can use their
    own word lists.
    """

    def __init__(self, words=(), extra_words=()):
        self.words: frozenset[str] = frozenset(
            w.strip().lower() for w in [*words, *extra_words] if w and w.strip()
        )

    @classmethod
    def from_files(cls, base_path: Path, exclude_path: Path | None = None) -> "ProfanityFilter":
        base = load_word_list(base_path)
        extra = load_word_list(exclude_path) if exclude_path else []
        logger.info(f"[Filter] Loaded {len(base)} base words and {len(extra)} custom exclude words")
        return cls(base, extra)

    @classmethod
    def from_settings(cls, settings) -> "ProfanityFilter":
        return cls.from_files(settings.profanity_words_path, settings.exclude_words_path)

    def is_profane(self, text: str) -> bool:
        if not text or not self.words:
            return False
        for token in _WORD_RE.findall(text.lower()):
            if token in self.words or token.strip("'") in self.words:
                return True
        return False

    def __len__(self) -> int:
        return len(self.words)
