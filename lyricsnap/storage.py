"""Filesystem blob store for cleaned lyrics.

Layout: ``{root}/{user_id}/{track_id}.txt`` holds the cleaned lyrics and
``{track_id}.json`` the track title and artist. Listing the ``.txt`` files of
a user folder gives the ingestion manifest.
"""

import json
import logging
from pathlib import Path

from lyricsnap.models import LyricDocument, TrackReference
from lyricsnap.utils import LYRICS_DIR

logger = logging.getLogger(__name__)


def _safe_segment(value: str) -> str:
    if not value or value in (".", "..") or "/" in value or "\\" in value:
        raise ValueError(f"Invalid storage key segment: {value!r}")
    return value


class LyricStore:
    def __init__(self, root: Path = LYRICS_DIR):
        self.root = Path(root)

    def user_dir(self, user_id: str) -> Path:
        return self.root / _safe_segment(user_id)

    def _text_path(self, user_id: str, track_id: str) -> Path:
        return self.user_dir(user_id) / f"{_safe_segment(track_id)}.txt"

    def _meta_path(self, user_id: str, track_id: str) -> Path:
        return self.user_dir(user_id) / f"{_safe_segment(track_id)}.json"

    def save(self, document: LyricDocument, track: TrackReference) -> Path:
        """Write (or overwrite) one lyric document and its track metadata."""
        path = self._text_path(document.owner_user_id, document.track_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._meta_path(document.owner_user_id, document.track_id), "w", encoding="utf-8") as f:
            json.dump({"title": track.title, "artist": track.artist}, f, ensure_ascii=False, indent=2)
        # Text last: its presence marks the track as done
        with open(path, "w", encoding="utf-8") as f:
            f.write(document.cleaned_text)
        logger.debug(f"[Store] Saved {document.blob_key}")
        return path

    def exists(self, user_id: str, track_id: str) -> bool:
        return self._text_path(user_id, track_id).exists()

    def list_track_ids(self, user_id: str) -> list[str]:
        """The manifest: track ids with a stored lyric file, sorted."""
        folder = self.user_dir(user_id)
        if not folder.exists():
            return []
        return sorted(p.stem for p in folder.glob("*.txt"))

    def load(self, user_id: str, track_id: str) -> LyricDocument | None:
        path = self._text_path(user_id, track_id)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
        return LyricDocument(owner_user_id=user_id, track_id=track_id, cleaned_text=text)

    def load_track(self, user_id: str, track_id: str) -> TrackReference:
        """Track metadata for a stored document; title/artist are blank if the sidecar is missing."""
        path = self._meta_path(user_id, track_id)
        meta = {}
        if path.exists():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    meta = json.load(f)
            except json.JSONDecodeError as e:
                logger.warning(f"[Store] Bad metadata file {path}: {e}")
        return TrackReference(
            title=str(meta.get("title") or ""),
            artist=str(meta.get("artist") or ""),
            provider_track_id=track_id,
        )
