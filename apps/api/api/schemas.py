from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from db.models import MovieRead


class UploadResultResponse(BaseModel):
    """Per-file result of a batch upload."""

    model_config = ConfigDict(from_attributes=True)

    title: str
    success: bool
    error: str | None = None
    playlist_path: str | None = None
    audio_stream_index: int | None = None
    reupload: bool = False
    attempts: list[str] = []
    info: dict[str, Any] | None = None


class UploadBatchResponse(BaseModel):
    results: list[UploadResultResponse]


class TitlesResponse(BaseModel):
    titles: list[str]


class PlayResponse(BaseModel):
    title: str
    playlist_path: str = Field(serialization_alias="playlistPath")


class DeleteMovieRequest(BaseModel):
    title: str


class DeleteMovieResponse(BaseModel):
    success: bool
    message: str


class QueueUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    in_queue: bool = Field(default=False, alias="inQueue")


class QueueUpdateResponse(BaseModel):
    success: bool
    title: str
    in_queue: bool = Field(serialization_alias="inQueue")


class RouletteResponse(BaseModel):
    movie: MovieRead
