"""
AutoFounder error taxonomy
==========================
Soft failures (enhancement) are swallowed where they happen, transport failures are
swallowed per mechanism, and only DeckNotFoundError, DeckBuildError and ExportError
ever reach the user.
"""


class AutoFounderError(Exception):
    """Base class for every error raised by the deck service."""


# --- Soft / best-effort ---
class EnhancementError(AutoFounderError):
    """The text-enhancement capability returned something unusable."""


class LLMUnavailableError(EnhancementError):
    """No LLM provider is configured, or every configured provider failed."""


# --- Transport ---
class StoreError(AutoFounderError):
    """Durable key-value store could not complete a read or write."""


class StoreQuotaError(StoreError):
    pass


class StoreUnavailableError(StoreError):
    pass


class ChannelClosedError(AutoFounderError):
    pass


class PayloadDecodeError(AutoFounderError):
    """An inline URL payload is not valid url-safe base64 JSON."""


class DeckNotFoundError(AutoFounderError):
    """Every transport mechanism was tried and none produced a deck."""

    def __init__(self, location: str = ""):
        self.location = location
        super().__init__(
            "No deck found. The link may be stale or the deck has expired."
            + (f" ({location})" if location else "")
        )


# --- Hard / build ---
class DeckBuildError(AutoFounderError):
    """The answers did not produce a single slide with content."""


# --- Export ---
class ExportError(AutoFounderError):
    """Exporting to .pptx failed; the caller may retry."""


class ImageFetchError(ExportError):
    pass
