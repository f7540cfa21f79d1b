"""Shot Coach: local-first espresso dial-in assistant."""

__version__ = "0.1.0"
