"""Caption-to-quote flow: the caller side of lyric selection.

Always produces some output. A lyric-attributed quote when selection works,
the bare quoted caption when it does not. Only a failed caption generation
blocks the flow.
"""

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path

from lyricsnap.captioner import CaptionGenerator
from lyricsnap.errors import HardFailure
from lyricsnap.models import NotFound, SelectionResult
from lyricsnap.retrieval.pipeline import LyricSelector
from lyricsnap.settings import load_settings
from lyricsnap.utils import setup_logging

logger = logging.getLogger(__name__)


@dataclass
class Quote:
    caption: str
    full_quote: str
    lyric_text: str = ""
    track: str = ""
    artist: str = ""

    @property
    def has_lyric(self) -> bool:
        return bool(self.lyric_text)


def capitalize_words(text: str) -> str:
    """Upper-case the first letter of every space-separated word."""
    return " ".join(w[:1].upper() + w[1:] for w in text.split(" "))


def compose_quote(caption: str, result: SelectionResult | None = None) -> Quote:
    if result is None:
        return Quote(caption=caption, full_quote=f'"{caption}"')

    artist = capitalize_words(result.artist)
    track = capitalize_words(result.track)
    return Quote(
        caption=caption,
        full_quote=f"{caption} It's like {artist} said on {track} -- '{result.text}'.",
        lyric_text=result.text,
        track=track,
        artist=artist,
    )


class LyricAgent:
    def __init__(self, selector: LyricSelector, captioner: CaptionGenerator | None = None):
        self.selector = selector
        self.captioner = captioner

    def caption_image(self, image_bytes: bytes) -> str:
        if self.captioner is None:
            raise HardFailure("No caption generator configured.")
        return self.captioner.describe(image_bytes)

    def caption_to_quotes(
        self,
        user_id: str,
        caption: str | None = None,
        image: bytes | None = None,
        count: int = 3,
    ) -> list[Quote]:
        """
        Build quotes for a caption, or for an image when no caption is given.

        Raises:
            CaptionError: caption generation failed; nothing to fall back on.
        """
        caption = (caption or "").strip()
        if not caption:
            caption = self.caption_image(image)

        try:
            result = self.selector.select_lyric(user_id, caption, count=count)
        except Exception as e:
            logger.warning(f"[Agent] Lyric selection failed, using caption only: {e}")
            result = NotFound(str(e))

        if isinstance(result, NotFound):
            logger.info(f"[Agent] No lyric for caption ({result.reason}), using caption only")
            return [compose_quote(caption)]

        results = result if isinstance(result, list) else [result]
        return [compose_quote(caption, r) for r in results]


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Turn a caption or photo into lyric quotes")
    parser.add_argument("--user", required=True, help="User id")
    given = parser.add_mutually_exclusive_group(required=True)
    given.add_argument("--caption", type=str)
    given.add_argument("--image", type=Path)
    parser.add_argument("--count", type=int, default=3)
    args = parser.parse_args()
    setup_logging()

    settings = load_settings()
    agent = LyricAgent(LyricSelector.from_settings(settings), CaptionGenerator(settings))
    try:
        quotes = agent.caption_to_quotes(
            args.user,
            caption=args.caption,
            image=args.image.read_bytes() if args.image else None,
            count=args.count,
        )
    except HardFailure as e:
        parser.exit(1, f"{e.user_message} ({e})\n")
    for q in quotes:
        print(q.full_quote)
