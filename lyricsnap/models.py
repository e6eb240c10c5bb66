"""Typed records passed between pipeline stages."""

from dataclasses import dataclass, field


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NotFound:
    """Expected miss: nothing usable was found. Callers skip and continue."""
    reason: str = "not found"

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True)
class Rejected:
    """Content-quality rejection. Handled like NotFound but logged apart."""
    reason: str

    def __bool__(self) -> bool:
        return False


# ---------------------------------------------------------------------------
# Ingestion records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrackReference:
    title: str
    artist: str
    provider_track_id: str

    @property
    def track_id(self) -> str:
        return self.provider_track_id

    @classmethod
    def from_provider_item(cls, item) -> "TrackReference | None":
        """Build from a music-library track object ``{id, name, artists: [{name}]}``.

        Returns None for anything malformed so callers can skip it early.
        """
        if not isinstance(item, dict):
            return None
        track_id = item.get("id")
        name = item.get("name")
        artists = item.get("artists")
        if not isinstance(artists, list) or not artists:
            return None
        first = artists[0]
        artist = first.get("name") if isinstance(first, dict) else None
        if not all(isinstance(v, str) and v.strip() for v in (track_id, name, artist)):
            return None
        return cls(title=name.strip(), artist=artist.strip(), provider_track_id=track_id.strip())


@dataclass(frozen=True)
class LyricDocument:
    owner_user_id: str
    track_id: str
    cleaned_text: str

    @property
    def blob_key(self) -> str:
        return f"{self.owner_user_id}/{self.track_id}"


@dataclass
class LyricChunk:
    track_id: str
    index: int
    text: str
    embedding: list[float] = field(default_factory=list, repr=False)

    @property
    def chunk_id(self) -> str:
        return chunk_id(self.track_id, self.index)


def chunk_id(track_id: str, index: int) -> str:
    return f"{track_id}_{index}"


# ---------------------------------------------------------------------------
# Retrieval records
# ---------------------------------------------------------------------------

@dataclass
class Candidate:
    chunk_id: str
    text: str
    track: str = ""
    artist: str = ""
    track_id: str = ""
    user_id: str = ""
    score: float = 0.0

    @classmethod
    def from_metadata(cls, chunk_id: str, metadata: dict | None, score: float = 0.0) -> "Candidate":
        metadata = metadata or {}
        return cls(
            chunk_id=chunk_id,
            text=str(metadata.get("text") or ""),
            track=str(metadata.get("track") or ""),
            artist=str(metadata.get("artist") or ""),
            track_id=str(metadata.get("trackId") or ""),
            user_id=str(metadata.get("userId") or ""),
            score=score,
        )


@dataclass(frozen=True)
class SelectionResult:
    text: str
    track: str
    artist: str

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "SelectionResult":
        return cls(text=candidate.text, track=candidate.track, artist=candidate.artist)

    def to_dict(self) -> dict:
        return {"text": self.text, "track": self.track, "artist": self.artist}


# ---------------------------------------------------------------------------
# Sync bookkeeping
# ---------------------------------------------------------------------------

@dataclass
class SyncReport:
    """Aggregate outcome of one ingestion run for a user."""
    user_id: str
    indexed: int = 0
    skipped_existing: int = 0
    not_found: int = 0
    rejected: int = 0
    too_short: int = 0
    partial: int = 0
    malformed: int = 0
    errors: int = 0
    chunks_upserted: int = 0
    chunks_failed: int = 0
    details: dict = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return self.indexed

    @property
    def failure_count(self) -> int:
        return self.not_found + self.rejected + self.too_short + self.partial + self.malformed + self.errors

    def record(self, track_id: str, outcome: str):
        self.details[track_id] = outcome
