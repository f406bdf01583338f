"""Application configuration using Pydantic Settings."""

from functools import lru_cache
import json
from pathlib import Path
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Movie Library API"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    workers: int = 1

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./movies.db",
        description="Async SQLAlchemy connection URL",
    )
    database_echo: bool = False

    # Paths
    movies_dir: Path = Field(
        default=Path("/data/movies"),
        description="Base directory for HLS output folders and temporary upload copies",
    )
    hls_dir_suffix: str = Field(default="_hls", description="Suffix appended to a title's HLS folder")
    playlist_name: str = Field(default="playlist.m3u8", description="Manifest filename inside each HLS folder")

    # Encoder
    ffmpeg_path: str = Field(default="ffmpeg", description="ffmpeg binary (name on PATH or absolute path)")
    ffprobe_path: str = Field(default="ffprobe", description="ffprobe binary (name on PATH or absolute path)")
    # NOTE: Kept as a string for the same reason as cors_origins below.
    forced_reencode_extensions: str = Field(
        default=".mkv,.avi",
        description="Container extensions that always get a full re-encode (comma-separated)",
    )

    # Uploads
    max_upload_files: int = Field(default=25, ge=1, le=100, description="Max files accepted per upload batch")

    # Metadata lookup
    tmdb_api_key: str | None = Field(default=None, description="TMDB API key; lookups are skipped when unset")
    tmdb_base_url: str = Field(default="https://api.themoviedb.org/3", description="TMDB API base URL")
    tmdb_timeout_seconds: float = Field(default=5.0, gt=0, description="TMDB request timeout")

    # Playback
    public_base_url: str = Field(default="", description="Public origin prepended to playback URLs")
    hls_url_prefix: str = Field(default="/hls", description="URL prefix the HLS folders are served under")

    # CORS
    # NOTE: Keep this as a string so pydantic-settings doesn't attempt JSON parsing
    # before our validators run (which breaks on comma-separated values).
    cors_origins: str = Field(
        default="http://localhost:8080,http://127.0.0.1:8080",
        description='Allowed CORS origins (comma-separated or JSON array, e.g. \'["https://a","https://b"]\')',
    )

    @computed_field
    @property
    def cors_origins_list(self) -> list[str]:
        return _split_list(self.cors_origins)

    @computed_field
    @property
    def forced_reencode_extension_list(self) -> list[str]:
        """Normalized extensions (lowercase, leading dot)."""
        exts = []
        for ext in _split_list(self.forced_reencode_extensions):
            ext = ext.lower()
            exts.append(ext if ext.startswith(".") else f".{ext}")
        return exts

    @computed_field
    @property
    def job_log_dir(self) -> Path:
        return self.movies_dir / ".job_logs"

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        self.movies_dir.mkdir(parents=True, exist_ok=True)


def _split_list(raw: str | None) -> list[str]:
    raw = (raw or "").strip()
    if raw == "":
        return []
    if raw.startswith("["):
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, list):
                return [str(it).strip() for it in parsed if str(it).strip()]
        except json.JSONDecodeError:
            pass
    return [item.strip() for item in raw.split(",") if item.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
