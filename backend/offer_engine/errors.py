"""
Offer Engine - Error Types

Failures local to one asset or one placeholder token are absorbed where they
happen. Everything below is raised to the caller.
"""


class OfferEngineError(Exception):
    """Base class for all offer engine failures."""


class LetterValidationError(OfferEngineError):
    """Input rejected synchronously; the document is left unchanged."""


class LayoutLockedError(LetterValidationError):
    """Reorder requested on a theme whose layout is fixed."""

    def __init__(self, theme: str):
        super().__init__(f"Theme '{theme}' has a fixed layout and cannot be reordered")
        self.theme = theme


class ExportDependencyError(OfferEngineError):
    """A converter or rasterizer needed for export is missing or failed to load."""


class AssetFetchError(OfferEngineError):
    """A single external image could not be fetched or encoded."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Could not inline {url}: {reason}")
        self.url = url
        self.reason = reason


class GenerationError(OfferEngineError):
    """The generative-assist collaborator failed or returned unusable data."""
