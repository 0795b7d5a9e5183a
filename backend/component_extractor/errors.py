"""Exceptions surfaced by extract()."""


class ExtractionError(Exception):
    """Unrecoverable extraction failure. Wraps the underlying cause."""

    def __init__(self, message: str, metrics=None):
        super().__init__(message)
        self.metrics = metrics


class InvalidURLError(ExtractionError):
    """URL lacks an http(s) scheme. Raised before any browser work."""


class NavigationError(ExtractionError):
    """The target page could not be loaded."""


class ExtractionTimeoutError(ExtractionError):
    """The wall-clock budget for the whole operation ran out."""
