from . import refresh_matches  # noqa: F401

__all__ = [
    "refresh_matches",
]
