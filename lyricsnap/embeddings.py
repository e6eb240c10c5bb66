"""Line embeddings and the per-user ChromaDB lyric index."""

import argparse
import hashlib
import logging
import re

import chromadb
from langchain_huggingface import HuggingFaceEmbeddings

from lyricsnap.models import Candidate, LyricChunk, TrackReference, chunk_id
from lyricsnap.utils import (
    ensure_dirs,
    setup_logging,
    VECTORSTORE_DIR,
)

logger = logging.getLogger(__name__)

# Must be the same model at ingestion and query time
EMBEDDING_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


def get_embedding_function(model_name: str = EMBEDDING_MODEL) -> HuggingFaceEmbeddings:
    """Create the HuggingFace embedding function."""
    return HuggingFaceEmbeddings(
        model_name=model_name,
        model_kwargs={"device": "cpu"},
        encode_kwargs={"normalize_embeddings": True},
    )


def embed_chunks(embedder, track_id: str, chunks: list[str]) -> tuple[list[LyricChunk], int]:
    """
    Embed each chunk on its own, in order.

    A failing chunk is logged and skipped; the rest of the track still gets
    embedded. Chunks keep their original index so ids stay stable.

    Returns:
        (embedded chunks, number of failures)
    """
    embedded = []
    failures = 0
    for index, text in enumerate(chunks):
        try:
            vector = embedder.embed_query(text)
        except Exception as e:
            logger.error(f"[Embed] Chunk {chunk_id(track_id, index)} failed: {e}")
            failures += 1
            continue
        embedded.append(LyricChunk(track_id=track_id, index=index, text=text, embedding=list(vector)))
    return embedded, failures


class LyricIndex:
    """
    Vector index of lyric lines, one Chroma collection per user.

    The collection is the user's namespace; every record also carries a
    ``userId`` metadata field and every query filters on it.
    """

    def __init__(self, client=None, collection_prefix: str = "lyrics", embedding_model: str = EMBEDDING_MODEL):
        if client is None:
            ensure_dirs()
            client = chromadb.PersistentClient(path=str(VECTORSTORE_DIR))
        self.client = client
        self.collection_prefix = collection_prefix
        self.embedding_model = embedding_model

    def collection_name(self, user_id: str) -> str:
        # Chroma names allow [A-Za-z0-9._-], 3-63 chars, alphanumeric at both ends.
        # The digest keeps ids that slug alike ("user-a", "user_a") apart.
        slug = re.sub(r"[^A-Za-z0-9]+", "-", user_id).strip("-")[:32].strip("-") or "anonymous"
        digest = hashlib.sha1(user_id.encode("utf-8")).hexdigest()[:12]
        return f"{self.collection_prefix}_{slug}-{digest}"

    def _collection(self, user_id: str):
        collection = self.client.get_or_create_collection(
            name=self.collection_name(user_id),
            metadata={"hnsw:space": "cosine", "embedding_model": self.embedding_model},
            embedding_function=None,
        )
        stored_model = (collection.metadata or {}).get("embedding_model")
        if stored_model and stored_model != self.embedding_model:
            logger.warning(
                f"[Index] Collection {collection.name} was built with {stored_model}, "
                f"querying with {self.embedding_model}; results may be poor"
            )
        return collection

    def upsert_track(self, user_id: str, track: TrackReference, chunks: list[LyricChunk]) -> tuple[int, int]:
        """
        Write all embedded chunks of one track in a single upsert.

        Returns:
            (records written, records failed)
        """
        if not chunks:
            return 0, 0

        collection = self._collection(user_id)
        try:
            collection.upsert(
                ids=[c.chunk_id for c in chunks],
                embeddings=[c.embedding for c in chunks],
                documents=[c.text for c in chunks],
                metadatas=[
                    {
                        "userId": user_id,
                        "trackId": track.track_id,
                        "text": c.text,
                        "track": track.title,
                        "artist": track.artist,
                    }
                    for c in chunks
                ],
            )
        except Exception as e:
            logger.error(f"[Index] Upsert failed for track {track.track_id}: {e}")
            return 0, len(chunks)

        logger.info(f"[Index] Upserted {len(chunks)} vectors for {track.title!r}")
        return len(chunks), 0

    def track_chunk_ids(self, user_id: str, track_id: str) -> list[str]:
        collection = self._collection(user_id)
        found = collection.get(
            where={"$and": [{"userId": user_id}, {"trackId": track_id}]},
            include=["metadatas"],
        )
        return list(found.get("ids") or [])

    def prune_stale(self, user_id: str, track_id: str, keep_ids: list[str]) -> int:
        """Delete chunk ids of a track left over from an older, longer version."""
        keep = set(keep_ids)
        stale = [i for i in self.track_chunk_ids(user_id, track_id) if i not in keep]
        if stale:
            self._collection(user_id).delete(ids=stale)
            logger.info(f"[Index] Pruned {len(stale)} stale chunks for track {track_id}")
        return len(stale)

    def query(self, user_id: str, vector: list[float], top_k: int = 5) -> list[Candidate]:
        """Nearest lyric lines for one user; an empty namespace gives []."""
        collection = self._collection(user_id)
        total = collection.count()
        if total == 0:
            return []

        results = collection.query(
            query_embeddings=[list(vector)],
            n_results=min(top_k, total),
            where={"userId": user_id},
            include=["metadatas", "distances"],
        )
        ids = (results.get("ids") or [[]])[0]
        metadatas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0] or [0.0] * len(ids)

        candidates = []
        for cid, metadata, distance in zip(ids, metadatas, distances):
            candidate = Candidate.from_metadata(cid, metadata, score=1.0 - float(distance))
            if candidate.user_id != user_id:
                continue
            candidates.append(candidate)
        return candidates

    def count(self, user_id: str) -> int:
        return self._collection(user_id).count()

    def stats(self, user_id: str) -> dict:
        """Get stats about a user's lyric collection."""
        return {
            "user": user_id,
            "collection": self.collection_name(user_id),
            "total_documents": self.count(user_id),
            "embedding_model": self.embedding_model,
        }


if __name__ == "__main__":
    from lyricsnap.settings import load_settings

    parser = argparse.ArgumentParser(description="Inspect a user's lyric index")
    parser.add_argument("--user", required=True, help="User id")
    parser.add_argument("--action", choices=["stats", "query"], default="stats")
    parser.add_argument("--query", type=str, default="I feel on top of the world")
    parser.add_argument("--k", type=int, default=5)
    args = parser.parse_args()
    setup_logging()

    settings = load_settings()
    index = LyricIndex(
        collection_prefix=settings.collection_prefix,
        embedding_model=settings.embedding_model,
    )
    if args.action == "stats":
        print(index.stats(args.user))
    else:
        embedder = get_embedding_function(settings.embedding_model)
        for c in index.query(args.user, embedder.embed_query(args.query), top_k=args.k):
            print(f"\n--- {c.track or 'Unknown'} by {c.artist or 'Unknown'} ---")
            print(c.text)
            print(f"Score: {c.score:.4f}")
