"""Genius API lyrics source for the lyric snap pipeline."""

import argparse
import logging

import lyricsgenius

from lyricsnap.models import NotFound
from lyricsnap.utils import (
    get_api_key,
    normalize_text,
    setup_logging,
    title_words,
)

logger = logging.getLogger(__name__)


def create_genius_client(genius_token: str | None = None, timeout: float = 10) -> lyricsgenius.Genius:
    """Create a Genius client. If no token is given, reads GENIUS_API_TOKEN."""
    if genius_token is None:
        genius_token = get_api_key("GENIUS_API_TOKEN")

    genius = lyricsgenius.Genius(
        genius_token,
        timeout=timeout,
        retries=0,  # a slow search counts as not found, the next sync retries
        remove_section_headers=False,  # We clean them ourselves
    )
    genius.verbose = False
    return genius


def _hit_fields(hit: dict) -> tuple[str, str, str]:
    """Pull (title, artist, url) out of a search hit, tolerating missing keys."""
    result = hit.get("result", hit) if isinstance(hit, dict) else {}
    title = result.get("title") or ""
    artist = (result.get("primary_artist") or {}).get("name") or ""
    url = result.get("url") or ""
    return title, artist, url


def longest_title_word(title: str) -> str:
    """Longest word of the normalized title; the first one wins ties."""
    words = title_words(title)
    if not words:
        return ""
    return max(words, key=len)


def choose_hit(hits: list[dict], title: str, artist: str) -> dict | None:
    """
    Pick the search hit that matches the requested track.

    Prefers the first hit whose artist contains the query artist and whose
    title contains the query title (both normalized). Otherwise the top hit is
    used, but only when its URL contains the longest word of the track title.

    Returns:
        The chosen hit, or None when nothing passes.
    """
    if not hits:
        return None

    want_title = normalize_text(title)
    want_artist = normalize_text(artist)
    for hit in hits:
        hit_title, hit_artist, _ = _hit_fields(hit)
        if want_artist in normalize_text(hit_artist) and want_title in normalize_text(hit_title):
            return hit

    first = hits[0]
    _, _, url = _hit_fields(first)
    keyword = longest_title_word(title)
    if keyword and keyword in url.lower():
        return first
    return None


class GeniusLyricsSource:
    """Fetches raw lyrics for (title, artist) pairs. Never raises on a miss."""

    def __init__(self, genius=None, timeout: float = 10):
        self.genius = genius if genius is not None else create_genius_client(timeout=timeout)

    def search(self, title: str, artist: str) -> list[dict]:
        response = self.genius.search_songs(f"{title} {artist}")
        if not response:
            return []
        return [h for h in response.get("hits", []) if isinstance(h, dict)]

    def fetch_lyrics(self, title: str, artist: str) -> str | NotFound:
        """Return raw lyrics text, or NotFound on any failure for this track."""
        if not title or not title.strip() or not artist or not artist.strip():
            return NotFound("missing title or artist")

        logger.info(f"[Genius] Fetching lyrics for {title!r} by {artist}")
        try:
            hits = self.search(title, artist)
        except Exception as e:
            logger.warning(f"[Genius] Search failed for {title!r}: {e}")
            return NotFound(f"search failed: {e}")

        if not hits:
            logger.info(f"[Genius] No search hits for {title!r} by {artist}")
            return NotFound("no hits")

        hit = choose_hit(hits, title, artist)
        if hit is None:
            logger.info(f"[Genius] No hit for {title!r} passed the sanity check")
            return NotFound("sanity check failed")

        _, _, url = _hit_fields(hit)
        try:
            lyrics = self.genius.lyrics(song_url=url)
        except Exception as e:
            logger.warning(f"[Genius] Lyrics fetch failed for {url}: {e}")
            return NotFound(f"fetch failed: {e}")

        if not lyrics or not lyrics.strip():
            logger.info(f"[Genius] Empty lyrics page at {url}")
            return NotFound("empty lyrics")

        logger.info(f"[Genius] Raw lyrics length: {len(lyrics)} characters")
        return lyrics


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fetch raw lyrics from Genius")
    parser.add_argument("--title", required=True, help="Track title")
    parser.add_argument("--artist", required=True, help="Artist name")
    args = parser.parse_args()
    setup_logging()

    result = GeniusLyricsSource().fetch_lyrics(args.title, args.artist)
    if isinstance(result, NotFound):
        print(f"Not found: {result.reason}")
    else:
        print(result)
