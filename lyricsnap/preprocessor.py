"""Lyrics cleaner and line chunker.

Turns raw provider lyrics into the newline-separated text that gets stored and
indexed. Everything here is pure: the same raw text, title and filter always
give the same output.
"""

import argparse
import logging
import re
from pathlib import Path

from lyricsnap.models import Rejected
from lyricsnap.profanity import ProfanityFilter
from lyricsnap.settings import PipelineSettings, load_settings
from lyricsnap.utils import setup_logging, title_words

logger = logging.getLogger(__name__)

# Section labels ("[Chorus]") and asides ("(x2)") are not sung content
BRACKETED_RE = re.compile(r"\[.*?\]")
PARENTHETICAL_RE = re.compile(r"\(.*?\)")

INSTRUMENTAL_MARKER = "instrumental"


class LyricsCleaner:
    """Cleans raw lyrics for one track, or explains why it rejected them."""

    def __init__(
        self,
        profanity_filter: ProfanityFilter,
        max_raw_chars: int = 4000,
        min_title_word_length: int = 3,
    ):
        self.profanity_filter = profanity_filter
        self.max_raw_chars = max_raw_chars
        self.min_title_word_length = min_title_word_length

    @classmethod
    def from_settings(
        cls,
        settings: PipelineSettings,
        profanity_filter: ProfanityFilter | None = None,
    ) -> "LyricsCleaner":
        return cls(
            profanity_filter or ProfanityFilter.from_settings(settings),
            max_raw_chars=settings.max_raw_chars,
            min_title_word_length=settings.min_title_word_length,
        )

    def check_title(self, title: str) -> Rejected | None:
        """Reject a track before fetching when its title itself is profane."""
        if self.profanity_filter.is_profane(title):
            return Rejected("profane title")
        return None

    def rejection_reason(self, raw: str) -> str | None:
        """Run the raw-content heuristics; each one rejects on its own."""
        if len(raw) > self.max_raw_chars:
            # Providers return scripts or liner notes for some instrumentals
            return f"too long ({len(raw)} chars)"

        raw_lower = raw.lower()
        if INSTRUMENTAL_MARKER in raw_lower:
            return "instrumental"

        return None

    def check_page(self, page: str, title: str) -> Rejected | None:
        """Reject a fetched provider page that does not mention the track title.

        Runs on the whole page, header line included, before cleaning. A title
        with no significant word always passes.
        """
        significant = [w for w in title_words(title) if len(w) >= self.min_title_word_length]
        if significant and not any(w in page.lower() for w in significant):
            return Rejected("title not found in lyrics")
        return None

    def clean(self, raw: str, title: str | None = None) -> str | Rejected:
        """Strip and filter raw lyrics. Title matching is done by ``check_page``."""
        if not raw or not raw.strip():
            return Rejected("empty")

        reason = self.rejection_reason(raw)
        if reason:
            logger.debug(f"[Cleaner] Rejected {title or 'lyrics'!r}: {reason}")
            return Rejected(reason)

        lines = drop_metadata_line(raw.splitlines())
        text = strip_annotations("\n".join(lines))

        kept = []
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            if self.profanity_filter.is_profane(line):
                logger.debug(f"[Cleaner] Filtered profane line: {line[:30]!r}")
                continue
            kept.append(line)

        if not kept:
            return Rejected("empty after cleaning")
        return "\n".join(kept)


def strip_annotations(text: str) -> str:
    """Remove [bracketed] and (parenthetical) annotations."""
    text = BRACKETED_RE.sub("", text)
    return PARENTHETICAL_RE.sub("", text)


def drop_metadata_line(lines: list[str]) -> list[str]:
    """Drop the first non-blank line when more than one non-blank line exists.

    Provider output usually opens with a contributor/title header.
    """
    non_blank = [i for i, line in enumerate(lines) if line.strip()]
    if len(non_blank) <= 1:
        return lines
    first = non_blank[0]
    return lines[:first] + lines[first + 1:]


def chunk_lyrics(text: str) -> list[str]:
    """Split cleaned lyrics into line chunks, dropping blank lines."""
    if not text:
        return []
    return [line.strip() for line in text.split("\n") if line.strip()]


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Clean a raw lyrics file")
    parser.add_argument("path", type=Path, help="Raw lyrics text file")
    parser.add_argument("--title", required=True, help="Track title")
    args = parser.parse_args()
    setup_logging()

    cleaner = LyricsCleaner.from_settings(load_settings())
    raw = args.path.read_text(encoding="utf-8")
    result = cleaner.check_page(raw, args.title) or cleaner.clean(raw, args.title)
    if isinstance(result, Rejected):
        print(f"Rejected: {result.reason}")
    else:
        for i, chunk in enumerate(chunk_lyrics(result)):
            print(f"{i:3d}  {chunk}")
