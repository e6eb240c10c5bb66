"""First-person image captions from a vision chat model."""

import base64
import logging

from langchain_core.messages import HumanMessage

from lyricsnap.errors import CaptionError, ProviderError
from lyricsnap.rag_chain import invoke_with_retry, response_text
from lyricsnap.settings import PipelineSettings
from lyricsnap.utils import load_prompts

logger = logging.getLogger(__name__)


def build_caption_message(image_bytes: bytes, instruction: str, mime_type: str = "image/jpeg") -> HumanMessage:
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return HumanMessage(content=[
        {"type": "text", "text": instruction},
        {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{encoded}"}},
    ])


class CaptionGenerator:
    def __init__(self, settings: PipelineSettings | None = None, llm=None, prompts: dict | None = None):
        self.settings = settings or PipelineSettings()
        self.llm = llm
        self.prompts = prompts if prompts is not None else load_prompts()

    def describe(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
        """
        One short first-person sentence describing the image.

        Raises:
            CaptionError: no image, provider failure, or an empty reply. There is
                no default caption to fall back on.
        """
        if not image_bytes:
            raise CaptionError("No image was provided.")

        message = build_caption_message(image_bytes, self.prompts["caption_prompt"], mime_type)
        try:
            if self.llm is not None:
                response = self.llm.invoke([message])
            else:
                response = invoke_with_retry(
                    [message],
                    temperature=0.7,
                    max_tokens=self.settings.caption_max_tokens,
                    model=self.settings.chat_model,
                    timeout=self.settings.llm_timeout,
                    vision=True,
                )
        except ProviderError as e:
            raise CaptionError(f"Failed to generate image caption: {e}") from e

        caption = response_text(response).strip().strip('"').strip()
        if not caption:
            raise CaptionError("Failed to generate caption, received no content.")
        logger.info(f"[Caption] Generated caption: {caption!r}")
        return caption
