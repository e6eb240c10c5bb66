"""Exception hierarchy for the lyric snap pipeline.

Expected misses (no search hit, rejected lyrics, empty namespace) are not
exceptions; they travel as ``NotFound`` / ``Rejected`` values from
``lyricsnap.models``. The classes here cover the failures a caller has to act on.
"""


class LyricSnapError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(LyricSnapError, ValueError):
    """Missing API key or malformed configuration."""


class ProviderError(LyricSnapError):
    """No language model provider could serve the request."""


class HardFailure(LyricSnapError):
    """A request-level failure with no sensible fallback content.

    Surfaced to the end user as a retry prompt.
    """

    user_message = "Something went wrong. Please try again."


class CaptionError(HardFailure):
    """The vision model returned no caption."""

    user_message = "Could not generate caption. Please try again."


class SelectionError(HardFailure):
    """The model's chosen line(s) could not be matched back to any candidate."""

    user_message = "Could not pick a lyric. Please try again."
