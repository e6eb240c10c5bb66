"""Library sync: fetch, clean, embed and index lyrics for one user.

Tracks are processed one at a time. A failure on any single track is logged
and counted, never raised, so one bad track cannot abort a sync. A track's
lyric file is written only after all of its vectors are upserted, so the manifest
never lists a track with missing vectors and an interrupted sync can simply be
run again.
"""

import argparse
import json
import logging
from pathlib import Path

from lyricsnap.embeddings import LyricIndex, embed_chunks, get_embedding_function
from lyricsnap.models import (
    LyricDocument,
    NotFound,
    Rejected,
    SyncReport,
    TrackReference,
    chunk_id,
)
from lyricsnap.preprocessor import LyricsCleaner, chunk_lyrics
from lyricsnap.scraper import GeniusLyricsSource
from lyricsnap.settings import PipelineSettings, load_settings
from lyricsnap.storage import LyricStore
from lyricsnap.throttle import build_rate_limiter
from lyricsnap.utils import setup_logging

logger = logging.getLogger(__name__)


class LyricIngestor:
    """Runs ingestion for users; all collaborators are injected."""

    def __init__(
        self,
        source,
        cleaner: LyricsCleaner,
        embedder,
        index: LyricIndex,
        store: LyricStore,
        rate_limiter,
        settings: PipelineSettings | None = None,
    ):
        self.source = source
        self.cleaner = cleaner
        self.embedder = embedder
        self.index = index
        self.store = store
        self.rate_limiter = rate_limiter
        self.settings = settings or PipelineSettings()

    @classmethod
    def from_settings(cls, settings: PipelineSettings) -> "LyricIngestor":
        return cls(
            source=GeniusLyricsSource(timeout=settings.genius_timeout),
            cleaner=LyricsCleaner.from_settings(settings),
            embedder=get_embedding_function(settings.embedding_model),
            index=LyricIndex(
                collection_prefix=settings.collection_prefix,
                embedding_model=settings.embedding_model,
            ),
            store=LyricStore(),
            rate_limiter=build_rate_limiter(settings),
            settings=settings,
        )

    # ------------------------------------------------------------------
    # Library sync
    # ------------------------------------------------------------------

    def sync_library(self, user_id: str, tracks, force: bool = False) -> SyncReport:
        """
        Ingest a user's tracks.

        Args:
            user_id: Owner of the namespace.
            tracks: TrackReference objects or raw provider track dicts.
            force: Re-ingest tracks already in the manifest.

        Returns:
            SyncReport with per-outcome counts.
        """
        report = SyncReport(user_id=user_id)
        tracks = list(tracks)
        logger.info(f"[Sync] Starting lyrics sync of {len(tracks)} tracks for user {user_id}")

        for item in tracks:
            track = item if isinstance(item, TrackReference) else TrackReference.from_provider_item(item)
            if track is None:
                logger.warning("[Sync] Skipping track with missing data")
                report.malformed += 1
                continue

            try:
                if not force and self.store.exists(user_id, track.track_id):
                    logger.debug(f"[Sync] Already ingested: {track.title!r}")
                    report.skipped_existing += 1
                    report.record(track.track_id, "skipped")
                    continue
                outcome = self._ingest_track(user_id, track, report)
            except Exception as e:
                logger.error(f"[Sync] Error processing {track.title!r}: {e}")
                outcome = "error"
            self._count(report, outcome)
            report.record(track.track_id, outcome)

        logger.info(
            f"[Sync] Lyrics sync complete. Success: {report.success_count}, "
            f"Failures: {report.failure_count}, Skipped: {report.skipped_existing}"
        )
        return report

    def _ingest_track(self, user_id: str, track: TrackReference, report: SyncReport) -> str:
        rejected = self.cleaner.check_title(track.title)
        if rejected is not None:
            logger.warning(f"[Sync] Rejected {track.title!r}: {rejected.reason}")
            return "rejected"

        self.rate_limiter.wait()
        raw = self.source.fetch_lyrics(track.title, track.artist)
        if isinstance(raw, NotFound):
            logger.info(f"[Sync] No lyrics for {track.title!r}: {raw.reason}")
            return "not_found"

        rejected = self.cleaner.check_page(raw, track.title)
        if rejected is not None:
            logger.warning(f"[Sync] Rejected {track.title!r}: {rejected.reason}")
            return "rejected"

        cleaned = self.cleaner.clean(raw, track.title)
        if isinstance(cleaned, Rejected):
            logger.warning(f"[Sync] Rejected {track.title!r}: {cleaned.reason}")
            return "rejected"

        return self._index_document(
            LyricDocument(owner_user_id=user_id, track_id=track.track_id, cleaned_text=cleaned),
            track,
            report,
            save=True,
        )

    def _index_document(self, document: LyricDocument, track: TrackReference, report: SyncReport, save: bool) -> str:
        chunks = chunk_lyrics(document.cleaned_text)
        if len(chunks) < self.settings.min_chunk_lines:
            logger.info(f"[Sync] Too few lines ({len(chunks)}) in {track.title!r}, skipping")
            return "too_short"

        embedded, embed_failures = embed_chunks(self.embedder, track.track_id, chunks)
        written, upsert_failures = self.index.upsert_track(document.owner_user_id, track, embedded)
        report.chunks_upserted += written
        report.chunks_failed += embed_failures + upsert_failures
        if written == 0:
            return "error"

        if self.settings.prune_stale_chunks:
            # Drop trailing ids from an older version with more lines
            self.index.prune_stale(
                document.owner_user_id,
                track.track_id,
                keep_ids=[chunk_id(track.track_id, i) for i in range(len(chunks))],
            )

        if embed_failures:
            # Not written to the store, so the next sync retries the track
            logger.warning(
                f"[Sync] Indexed only {written}/{len(chunks)} lines of {track.title!r}, will retry"
            )
            return "partial"

        if save:
            self.store.save(document, track)
        logger.info(f"[Sync] Indexed {written}/{len(chunks)} lines of {track.title!r}")
        return "indexed"

    @staticmethod
    def _count(report: SyncReport, outcome: str):
        if outcome == "indexed":
            report.indexed += 1
        elif outcome == "not_found":
            report.not_found += 1
        elif outcome == "rejected":
            report.rejected += 1
        elif outcome == "too_short":
            report.too_short += 1
        elif outcome == "partial":
            report.partial += 1
        else:
            report.errors += 1

    # ------------------------------------------------------------------
    # Re-index from the blob store
    # ------------------------------------------------------------------

    def index_from_store(self, user_id: str) -> SyncReport:
        """Re-embed every stored lyric file of a user and upsert it."""
        report = SyncReport(user_id=user_id)
        track_ids = self.store.list_track_ids(user_id)
        if not track_ids:
            logger.info(f"[Sync] No lyrics found for user {user_id}")
            return report

        logger.info(f"[Sync] Found {len(track_ids)} lyric files to process")
        for track_id in track_ids:
            try:
                document = self.store.load(user_id, track_id)
                track = self.store.load_track(user_id, track_id)
                outcome = self._index_document(document, track, report, save=False)
            except Exception as e:
                logger.error(f"[Sync] Failed to index stored lyrics {track_id}: {e}")
                outcome = "error"
            self._count(report, outcome)
            report.record(track_id, outcome)
        return report


def load_tracks_file(path: Path) -> list:
    """Read track objects from JSON: a list, or a provider page with ``items``."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("items", [])
    # Playlist items wrap the track object
    return [item.get("track", item) if isinstance(item, dict) else item for item in data]


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Sync lyrics into a user's index")
    parser.add_argument("--user", required=True, help="User id")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--tracks", type=Path, help="JSON file of provider track objects")
    source.add_argument("--from-store", action="store_true", help="Re-index stored lyric files")
    parser.add_argument("--force", action="store_true", help="Re-ingest tracks already stored")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()
    setup_logging(args.log_level)

    ingestor = LyricIngestor.from_settings(load_settings())
    if args.from_store:
        result = ingestor.index_from_store(args.user)
    else:
        result = ingestor.sync_library(args.user, load_tracks_file(args.tracks), force=args.force)
    print(f"Indexed: {result.indexed}  Failed: {result.failure_count}  Skipped: {result.skipped_existing}")
