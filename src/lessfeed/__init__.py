"""lessfeed: feed composition and spaced-repetition engine for Less."""

__version__ = "1.4.0"
