"""Pipeline settings loaded once at startup from config/pipeline.yaml."""

from dataclasses import dataclass, field, fields
from pathlib import Path

from lyricsnap.errors import ConfigError
from lyricsnap.utils import CONFIG_DIR, PROJECT_ROOT, load_yaml


@dataclass
class RateLimitSettings:
    policy: str = "fixed_delay"  # "fixed_delay" | "token_bucket" | "none"
    delay: float = 0.5
    rate: float = 2.0
    capacity: int = 1


@dataclass
class PipelineSettings:
    # Cleaner
    max_raw_chars: int = 4000
    min_title_word_length: int = 3
    profanity_words_path: Path = CONFIG_DIR / "profanity_words.txt"
    exclude_words_path: Path = CONFIG_DIR / "exclude_words.txt"
    # Chunking / indexing
    min_chunk_lines: int = 3
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    collection_prefix: str = "lyrics"
    prune_stale_chunks: bool = True
    # Retrieval
    min_top_k: int = 5
    top_k_multiplier: int = 3
    chat_model: str = "gpt-4o-mini"
    selection_temperature: float = 0.5
    caption_max_tokens: int = 100
    # External calls
    genius_timeout: float = 10.0
    llm_timeout: float = 30.0
    rate_limit: RateLimitSettings = field(default_factory=RateLimitSettings)

    def top_k_for(self, count: int) -> int:
        return max(self.min_top_k, count * self.top_k_multiplier)


_PATH_FIELDS = {"profanity_words_path", "exclude_words_path"}


def _resolve_path(value) -> Path:
    path = Path(value)
    return path if path.is_absolute() else PROJECT_ROOT / path


def settings_from_dict(raw: dict) -> PipelineSettings:
    """Build settings from a plain mapping, rejecting unknown keys."""
    known = {f.name for f in fields(PipelineSettings)}
    unknown = set(raw) - known
    if unknown:
        raise ConfigError(f"Unknown pipeline settings: {sorted(unknown)}")

    kwargs = {}
    for key, value in raw.items():
        if key == "rate_limit":
            if not isinstance(value, dict):
                raise ConfigError("rate_limit must be a mapping")
            try:
                kwargs[key] = RateLimitSettings(**value)
            except TypeError as e:
                raise ConfigError(f"Bad rate_limit settings: {e}") from e
        elif key in _PATH_FIELDS:
            kwargs[key] = _resolve_path(value)
        else:
            kwargs[key] = value

    settings = PipelineSettings(**kwargs)
    if settings.max_raw_chars <= 0 or settings.min_chunk_lines < 1:
        raise ConfigError("max_raw_chars must be > 0 and min_chunk_lines >= 1")
    if settings.rate_limit.policy not in ("fixed_delay", "token_bucket", "none"):
        raise ConfigError(f"Unknown rate_limit policy: {settings.rate_limit.policy}")
    return settings


def load_settings(path: Path | None = None) -> PipelineSettings:
    """Load pipeline settings; a missing file yields the defaults."""
    path = path or CONFIG_DIR / "pipeline.yaml"
    if not path.exists():
        return PipelineSettings()
    return settings_from_dict(load_yaml(path))
