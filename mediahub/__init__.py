"""mediahub - catalog synchronization for movies, TV, anime and manga."""

__version__ = "0.1.0"
