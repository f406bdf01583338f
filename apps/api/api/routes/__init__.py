"""API routes module."""

from . import health, hls, movies, uploads

__all__ = ["health", "hls", "movies", "uploads"]
