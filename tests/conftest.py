"""Shared fakes for the pipeline tests: Genius, embeddings, Chroma."""

import math
import re
import zlib

import pytest
from langchain_core.embeddings import Embeddings

from lyricsnap.embeddings import LyricIndex
from lyricsnap.models import TrackReference
from lyricsnap.preprocessor import LyricsCleaner
from lyricsnap.profanity import ProfanityFilter
from lyricsnap.settings import PipelineSettings, RateLimitSettings
from lyricsnap.storage import LyricStore
from lyricsnap.throttle import NoDelay


# ---------------------------------------------------------------------------
# Embeddings
# ---------------------------------------------------------------------------

class KeywordEmbeddings(Embeddings):
    """Hashed bag-of-words vectors: texts sharing words end up close."""

    def __init__(self, dim: int = 64, fail_on: tuple[str, ...] = ()):
        self.dim = dim
        self.fail_on = fail_on
        self.calls = []

    def embed_query(self, text: str) -> list[float]:
        self.calls.append(text)
        if any(marker in text for marker in self.fail_on):
            raise RuntimeError(f"embedding failed for {text!r}")
        vector = [0.0] * self.dim
        for word in re.findall(r"[a-z']+", text.lower()):
            vector[zlib.crc32(word.encode()) % self.dim] += 1.0
        norm = math.sqrt(sum(v * v for v in vector)) or 1.0
        return [v / norm for v in vector]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_query(t) for t in texts]


# ---------------------------------------------------------------------------
# Chroma
# ---------------------------------------------------------------------------

def _matches(metadata: dict, where: dict | None) -> bool:
    if not where:
        return True
    if "$and" in where:
        return all(_matches(metadata, clause) for clause in where["$and"])
    for key, expected in where.items():
        if isinstance(expected, dict):
            expected = expected.get("$eq")
        if metadata.get(key) != expected:
            return False
    return True


def _cosine_distance(a, b) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    na = math.sqrt(sum(x * x for x in a)) or 1.0
    nb = math.sqrt(sum(y * y for y in b)) or 1.0
    return 1.0 - dot / (na * nb)


class FakeCollection:
    def __init__(self, name: str, metadata: dict | None = None):
        self.name = name
        self.metadata = dict(metadata or {})
        self.records: dict[str, tuple[list[float], dict, str]] = {}
        self.upsert_calls = 0
        self.fail_upsert = False

    def upsert(self, ids, embeddings, metadatas, documents=None):
        if self.fail_upsert:
            raise RuntimeError("index unavailable")
        self.upsert_calls += 1
        documents = documents or [""] * len(ids)
        for i, e, m, d in zip(ids, embeddings, metadatas, documents):
            self.records[i] = (list(e), dict(m), d)

    def get(self, where=None, include=None):
        ids = [i for i, (_, m, _) in self.records.items() if _matches(m, where)]
        return {"ids": ids, "metadatas": [self.records[i][1] for i in ids]}

    def delete(self, ids):
        for i in ids:
            self.records.pop(i, None)

    def count(self) -> int:
        return len(self.records)

    def query(self, query_embeddings, n_results, where=None, include=None):
        vector = query_embeddings[0]
        scored = sorted(
            (
                (_cosine_distance(vector, e), i)
                for i, (e, m, _) in self.records.items()
                if _matches(m, where)
            ),
        )[:n_results]
        return {
            "ids": [[i for _, i in scored]],
            "metadatas": [[self.records[i][1] for _, i in scored]],
            "distances": [[d for d, _ in scored]],
        }


class FakeChromaClient:
    def __init__(self):
        self.collections: dict[str, FakeCollection] = {}

    def get_or_create_collection(self, name, metadata=None, embedding_function=None):
        if name not in self.collections:
            self.collections[name] = FakeCollection(name, metadata)
        return self.collections[name]


# ---------------------------------------------------------------------------
# Genius
# ---------------------------------------------------------------------------

class FakeGenius:
    """Mimics lyricsgenius.Genius.search_songs / lyrics."""

    def __init__(self, songs: dict | None = None):
        # url -> (title, artist, lyrics)
        self.songs = songs or {}
        self.searches = []
        self.fail_search = False
        self.fail_lyrics = False

    def add(self, title: str, artist: str, lyrics: str, url: str | None = None) -> str:
        url = url or f"https://genius.com/{artist}-{title}-lyrics".replace(" ", "-").lower()
        self.songs[url] = (title, artist, lyrics)
        return url

    def search_songs(self, search_term, per_page=None, page=None):
        self.searches.append(search_term)
        if self.fail_search:
            raise TimeoutError("search timed out")
        terms = set(search_term.lower().split())
        hits = []
        for url, (title, artist, _) in self.songs.items():
            if terms & set(f"{title} {artist}".lower().split()):
                hits.append({
                    "type": "song",
                    "result": {"title": title, "primary_artist": {"name": artist}, "url": url},
                })
        return {"hits": hits}

    def lyrics(self, song_id=None, song_url=None, remove_section_headers=False):
        if self.fail_lyrics:
            raise ConnectionError("page fetch failed")
        song = self.songs.get(song_url)
        return song[2] if song else None


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

VIVA_RAW = (
    "Viva La Vida Lyrics\n"
    "[Chorus]\n"
    "I used to rule the world\n"
    "(Oh oh oh)\n"
    "Seas would rise when I gave the word"
)

VIVA_TRACK = TrackReference(title="Viva La Vida", artist="Coldplay", provider_track_id="viva123")


@pytest.fixture
def settings():
    return PipelineSettings(rate_limit=RateLimitSettings(policy="none"))


@pytest.fixture
def profanity_filter():
    return ProfanityFilter(["damn", "shit"], ["weed"])


@pytest.fixture
def cleaner(profanity_filter):
    return LyricsCleaner(profanity_filter)


@pytest.fixture
def embedder():
    return KeywordEmbeddings()


@pytest.fixture
def chroma_client():
    return FakeChromaClient()


@pytest.fixture
def index(chroma_client):
    return LyricIndex(client=chroma_client)


@pytest.fixture
def store(tmp_path):
    return LyricStore(tmp_path / "lyrics")


@pytest.fixture
def genius():
    return FakeGenius()


@pytest.fixture
def no_delay():
    return NoDelay()
