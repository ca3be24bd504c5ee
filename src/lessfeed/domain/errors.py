class LessFeedError(Exception):
    """Base class for lessfeed errors."""


class CardSourceError(LessFeedError):
    """Raised when cards cannot be fetched from a content source."""
