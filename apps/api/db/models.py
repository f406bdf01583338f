"""Database models using SQLModel."""

import json
from datetime import datetime
from typing import Any

from pydantic import model_validator
from sqlmodel import Field, SQLModel


def _parse_json_list(raw: Any) -> list[Any]:
    if raw is None:
        return []
    if isinstance(raw, list):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return []
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return []
    return parsed if isinstance(parsed, list) else []


class MovieBase(SQLModel):
    """Base movie model with common fields."""

    title: str = Field(index=True, unique=True, description="Title derived from the uploaded filename")
    tmdb_id: int | None = Field(default=None, index=True, description="TMDB movie id")
    original_title: str | None = Field(default=None, description="Original title from TMDB")
    original_language: str | None = Field(default=None, description="Original language code")
    overview: str = Field(default="", description="Plot overview")
    poster_path: str = Field(default="", description="TMDB poster path")
    release_date: str = Field(default="", description="Release date ISO string")
    vote_average: float = Field(default=0.0)
    vote_count: int = Field(default=0)
    popularity: float = Field(default=0.0)
    genre_ids_json: str = Field(default="[]", description="JSON array of TMDB genre ids")
    playlist_path: str | None = Field(default=None, description="Path to the HLS manifest")
    audio_stream_index: int | None = Field(default=None, description="Audio-relative stream index encoded")
    in_queue: bool = Field(default=False, description="Whether the movie is on the watch queue")


class Movie(MovieBase, table=True):
    """Movie database table model."""

    __tablename__ = "movies"

    id: int | None = Field(default=None, primary_key=True)
    upload_attempts: int = Field(default=0, description="Times this title has been uploaded")
    last_error: str | None = Field(default=None, description="Last conversion failure reason")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class MovieRead(MovieBase):
    """Schema for reading a movie."""

    id: int
    upload_attempts: int
    last_error: str | None
    created_at: datetime
    updated_at: datetime

    genre_ids: list[int] = Field(default_factory=list)
    genre_ids_json: str = Field(default="[]", exclude=True)

    @model_validator(mode="after")
    def populate_genre_ids(self) -> "MovieRead":
        if not self.genre_ids and self.genre_ids_json:
            self.genre_ids = [int(g) for g in _parse_json_list(self.genre_ids_json) if str(g).isdigit()]
        return self
