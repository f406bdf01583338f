"""Database module."""

from .models import Movie, MovieBase, MovieRead
from .session import create_db_and_tables, get_session

__all__ = [
    "Movie",
    "MovieBase",
    "MovieRead",
    "create_db_and_tables",
    "get_session",
]
