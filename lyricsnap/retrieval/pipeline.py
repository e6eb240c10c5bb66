"""Caption-to-lyric retrieval and selection.

Embeds a caption, pulls the nearest lyric lines from the requesting user's
namespace and lets a chat model pick the best line(s). The model's answer is
mapped back to stored candidates so every result carries the track and
artist it came from.
"""

import argparse
import logging

from langchain_core.messages import HumanMessage

from lyricsnap.embeddings import LyricIndex, get_embedding_function
from lyricsnap.errors import SelectionError
from lyricsnap.models import Candidate, NotFound, SelectionResult
from lyricsnap.rag_chain import build_selection_prompt, invoke_with_retry, response_text
from lyricsnap.retrieval.matching import match_line, match_lines
from lyricsnap.settings import PipelineSettings, load_settings
from lyricsnap.utils import load_prompts, setup_logging

logger = logging.getLogger(__name__)


class LyricSelector:
    def __init__(
        self,
        embedder,
        index: LyricIndex,
        settings: PipelineSettings | None = None,
        llm=None,
        prompts: dict | None = None,
    ):
        self.embedder = embedder
        self.index = index
        self.settings = settings or PipelineSettings()
        self.llm = llm
        self.prompts = prompts if prompts is not None else load_prompts()

    @classmethod
    def from_settings(cls, settings: PipelineSettings, llm=None) -> "LyricSelector":
        return cls(
            embedder=get_embedding_function(settings.embedding_model),
            index=LyricIndex(
                collection_prefix=settings.collection_prefix,
                embedding_model=settings.embedding_model,
            ),
            settings=settings,
            llm=llm,
        )

    def retrieve(self, user_id: str, caption: str, count: int = 1) -> list[Candidate]:
        """Nearest candidates with usable text from the user's namespace."""
        vector = self.embedder.embed_query(caption)
        top_k = self.settings.top_k_for(count)
        matches = self.index.query(user_id, vector, top_k=top_k)
        logger.info(f"[Select] Found {len(matches)} potential lyric matches for user {user_id}")
        return [c for c in matches if c.text and c.text.strip()]

    def _ask_model(self, prompt: str) -> str:
        messages = [HumanMessage(content=prompt)]
        if self.llm is not None:
            response = self.llm.invoke(messages)
        else:
            response = invoke_with_retry(
                messages,
                temperature=self.settings.selection_temperature,
                model=self.settings.chat_model,
                timeout=self.settings.llm_timeout,
            )
        return response_text(response)

    def select_lyric(
        self,
        user_id: str,
        caption: str,
        count: int = 1,
    ) -> SelectionResult | list[SelectionResult] | NotFound:
        """
        Choose the lyric line(s) that best fit a caption.

        Args:
            user_id: Only this user's lyrics are searched.
            caption: Generated caption or free text.
            count: Number of diverse lines wanted.

        Returns:
            A SelectionResult when count == 1, a list when count > 1, or
            NotFound when the namespace has no usable candidates.

        Raises:
            SelectionError: the model's answer matched no candidate.
        """
        if count < 1:
            raise ValueError("count must be >= 1")
        if not caption or not caption.strip():
            return NotFound("empty caption")

        candidates = self.retrieve(user_id, caption, count)
        if not candidates:
            return NotFound("no matching lyrics")

        prompt = build_selection_prompt(caption, candidates, count=count, prompts=self.prompts)
        logger.debug(f"[Select] Candidate lines for selection:\n{prompt}")
        output = self._ask_model(prompt)
        logger.info(f"[Select] Model chose: {output!r}")

        if count == 1:
            chosen = match_line(output, candidates)
            if chosen is None:
                raise SelectionError("Could not match model response to a candidate lyric.")
            logger.info(f"[Select] Final selection: {chosen.text!r} from {chosen.track!r}")
            return SelectionResult.from_candidate(chosen)

        chosen = match_lines(output, candidates, limit=count)
        if not chosen:
            raise SelectionError("Could not match any model response line to a candidate lyric.")
        logger.info(f"[Select] Matched {len(chosen)}/{count} requested lines")
        return [SelectionResult.from_candidate(c) for c in chosen]


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Pick lyric lines for a caption")
    parser.add_argument("--user", required=True, help="User id")
    parser.add_argument("--caption", required=True)
    parser.add_argument("--count", type=int, default=1)
    args = parser.parse_args()
    setup_logging()

    selector = LyricSelector.from_settings(load_settings())
    result = selector.select_lyric(args.user, args.caption, count=args.count)
    if isinstance(result, NotFound):
        print(f"Not found: {result.reason}")
    else:
        for r in result if isinstance(result, list) else [result]:
            print(f"{r.text}  ({r.track} by {r.artist})")
