"""Chat model access and lyric selection prompts."""

import logging
import os
import time

from lyricsnap.errors import ProviderError
from lyricsnap.models import Candidate
from lyricsnap.utils import load_prompts

logger = logging.getLogger(__name__)

# Providers able to read an image in a HumanMessage
VISION_PROVIDERS = {"openai", "anthropic", "gemini"}


def _get_available_providers(vision: bool = False) -> list[dict]:
    """
    Build an ordered list of LLM providers based on which API keys are set.
    Tries: OpenAI -> Claude -> Gemini -> Groq
    """
    providers = []

    # 1. OpenAI (primary)
    openai_key = os.getenv("OPENAI_API_KEY", "")
    if openai_key and not openai_key.startswith("your_"):
        providers.append({"name": "openai", "key": openai_key})

    # 2. Anthropic Claude
    anthropic_key = os.getenv("ANTHROPIC_API_KEY", "")
    if anthropic_key and not anthropic_key.startswith("your_"):
        providers.append({"name": "anthropic", "key": anthropic_key})

    # 3. Google Gemini
    google_key = os.getenv("GOOGLE_API_KEY", "")
    if google_key and not google_key.startswith("your_"):
        providers.append({"name": "gemini", "key": google_key})

    # 4. Groq (text only)
    groq_key = os.getenv("GROQ_API_KEY", "")
    if groq_key and not groq_key.startswith("your_"):
        providers.append({"name": "groq", "key": groq_key})

    if vision:
        providers = [p for p in providers if p["name"] in VISION_PROVIDERS]
    return providers


def _create_llm(
    provider: dict,
    temperature: float,
    max_tokens: int,
    model_override: str | None = None,
    timeout: float | None = None,
):
    """Create an LLM instance for a given provider."""
    name = provider["name"]
    key = provider["key"]

    if name == "openai":
        from langchain_openai import ChatOpenAI
        return ChatOpenAI(
            model=model_override or "gpt-4o-mini",
            api_key=key,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
    elif name == "anthropic":
        from langchain_anthropic import ChatAnthropic
        return ChatAnthropic(
            model="claude-sonnet-4-20250514",
            anthropic_api_key=key,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
    elif name == "gemini":
        from langchain_google_genai import ChatGoogleGenerativeAI
        return ChatGoogleGenerativeAI(
            model="gemini-2.0-flash",
            google_api_key=key,
            temperature=temperature,
            max_output_tokens=max_tokens,
            timeout=timeout,
        )
    elif name == "groq":
        from langchain_groq import ChatGroq
        return ChatGroq(
            model="llama-3.3-70b-versatile",
            groq_api_key=key,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
    raise ProviderError(f"Unknown provider: {name}")


def _is_rate_limited(err: str) -> bool:
    lowered = err.lower()
    return (
        "429" in err
        or "RESOURCE_EXHAUSTED" in err
        or "rate limit" in lowered
        or "rate_limit" in lowered
        or "ratelimit" in lowered
    )


def invoke_with_retry(
    messages: list,
    temperature: float = 0.5,
    max_tokens: int = 300,
    model: str | None = None,
    timeout: float | None = 30,
    vision: bool = False,
):
    """
    Call LLM with retry + multi-provider fallback.
    Order: OpenAI -> Claude -> Gemini -> Groq (Groq skipped for image input)
    """
    providers = _get_available_providers(vision=vision)
    if not providers:
        raise ProviderError(
            "No LLM API keys configured. Add at least one to your .env file:\n"
            "  OPENAI_API_KEY    - https://platform.openai.com/api-keys\n"
            "  ANTHROPIC_API_KEY - https://console.anthropic.com/\n"
            "  GOOGLE_API_KEY    - https://aistudio.google.com/apikey"
        )

    errors = []

    for provider in providers:
        model_override = model if provider["name"] == "openai" else None
        for attempt in range(2):
            try:
                llm = _create_llm(provider, temperature, max_tokens, model_override=model_override, timeout=timeout)
                response = llm.invoke(messages)
                logger.info(f"[LLM] Response from {provider['name']}")
                return response
            except Exception as e:
                err = str(e)
                if _is_rate_limited(err) and attempt == 0:
                    wait = (attempt + 1) * 10
                    logger.warning(f"[LLM] Rate limited on {provider['name']}, waiting {wait}s...")
                    time.sleep(wait)
                else:
                    errors.append(f"{provider['name']}: {err[:100]}")
                    break  # skip to next provider

        logger.warning(f"[LLM] {provider['name']} exhausted, trying next provider...")

    raise ProviderError(
        "All LLM providers failed. Errors:\n" +
        "\n".join(f"  - {e}" for e in errors)
    )


def response_text(response) -> str:
    """Plain text of a chat response (string or content-block list)."""
    content = getattr(response, "content", response)
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        content = "".join(parts)
    return (content or "").strip()


# ---------------------------------------------------------------------------
# Selection prompts
# ---------------------------------------------------------------------------

def format_candidate(candidate: Candidate) -> str:
    track_part = f' from "{candidate.track}"' if candidate.track else ""
    artist_part = f" by {candidate.artist}" if candidate.artist else ""
    return f'"{candidate.text}"{track_part}{artist_part}'


def format_candidates(candidates: list[Candidate]) -> str:
    """One candidate per line, annotated with track and artist when known."""
    return "\n".join(format_candidate(c) for c in candidates)


def build_selection_prompt(caption: str, candidates: list[Candidate], count: int = 1, prompts: dict | None = None) -> str:
    prompts = prompts if prompts is not None else load_prompts()
    candidate_lines = format_candidates(candidates)
    if count == 1:
        return prompts["single_selection_prompt"].format(
            caption=caption,
            candidate_lines=candidate_lines,
        )
    return prompts["multi_selection_prompt"].format(
        caption=caption,
        candidate_lines=candidate_lines,
        count=count,
    )
