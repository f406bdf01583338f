"""Audio track selection for source files using ffprobe."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from core.config import get_settings
from services.encoding_models import AudioStreamDescriptor

logger = logging.getLogger(__name__)


class ProbeDegradedError(Exception):
    """Raised when ffprobe cannot describe a source's audio streams."""

    pass


def _get_tag(tags: dict[str, Any], key: str) -> str | None:
    """Look up a stream tag case-insensitively (containers disagree on casing)."""
    if key in tags:
        return str(tags[key])
    key_lower = key.lower()
    for tag_key, value in tags.items():
        if tag_key.lower() == key_lower:
            return str(value)
    return None


def parse_audio_streams(data: dict[str, Any]) -> list[AudioStreamDescriptor]:
    """
    Normalize ffprobe JSON into audio stream descriptors.

    Indexes are assigned by position among audio streams, not by the
    container's absolute stream index.
    """
    streams = data.get("streams")
    if not isinstance(streams, list):
        raise ProbeDegradedError("ffprobe output has no stream list")

    descriptors: list[AudioStreamDescriptor] = []
    for stream in streams:
        if not isinstance(stream, dict):
            continue
        # -select_streams a already filters, but be tolerant of full listings.
        codec_type = stream.get("codec_type")
        if codec_type is not None and codec_type != "audio":
            continue
        tags = stream.get("tags") or {}
        descriptors.append(
            AudioStreamDescriptor(
                index=len(descriptors),
                language=_get_tag(tags, "language"),
                title=_get_tag(tags, "title"),
                handler_name=_get_tag(tags, "handler_name"),
            )
        )
    return descriptors


class SourceProbe:
    """Chooses which audio track of a source file to encode."""

    ENGLISH_LANGUAGE_CODES = frozenset({"eng", "en"})
    ENGLISH_NAME_MARKERS = ("english", "eng")

    def __init__(self, ffprobe_path: str | None = None) -> None:
        self.ffprobe_path = ffprobe_path or get_settings().ffprobe_path

    @classmethod
    def choose_audio_stream(cls, streams: list[AudioStreamDescriptor]) -> int:
        """
        Pick an audio-relative stream index.

        Priority: English language tag, then a title mentioning English, then
        a handler name mentioning English, then the first stream.
        """
        for stream in streams:
            if stream.language and stream.language.strip().lower() in cls.ENGLISH_LANGUAGE_CODES:
                return stream.index

        for stream in streams:
            if stream.title and cls._mentions_english(stream.title):
                return stream.index

        for stream in streams:
            if stream.handler_name and cls._mentions_english(stream.handler_name):
                return stream.index

        return 0

    @classmethod
    def _mentions_english(cls, text: str) -> bool:
        lowered = text.lower()
        return any(marker in lowered for marker in cls.ENGLISH_NAME_MARKERS)

    async def probe_audio_streams(self, file_path: Path) -> list[AudioStreamDescriptor]:
        """
        Run ffprobe against a file and list its audio streams.

        Raises:
            ProbeDegradedError: If ffprobe cannot be run or its output is unusable.
        """
        cmd = [
            self.ffprobe_path,
            "-v", "error",
            "-select_streams", "a",
            "-show_entries", "stream=index,codec_type:stream_tags=language,title,handler_name",
            "-of", "json",
            str(file_path),
        ]

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProbeDegradedError(f"Could not run {self.ffprobe_path}: {e}") from e

        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise ProbeDegradedError(
                f"ffprobe exited with code {process.returncode}: "
                f"{stderr.decode('utf-8', errors='replace').strip()[:500]}"
            )

        try:
            data = json.loads(stdout.decode("utf-8", errors="replace") or "{}")
        except json.JSONDecodeError as e:
            raise ProbeDegradedError(f"Malformed ffprobe output: {e}") from e
        if not isinstance(data, dict):
            raise ProbeDegradedError("Malformed ffprobe output: expected an object")

        return parse_audio_streams(data)

    async def select_audio_stream(self, file_path: Path) -> int:
        """Return the audio stream index to encode; degrades to 0 on any probe failure."""
        try:
            streams = await self.probe_audio_streams(file_path)
        except ProbeDegradedError as e:
            logger.warning("Audio probe degraded for %s, using stream 0: %s", file_path.name, e)
            return 0

        index = self.choose_audio_stream(streams)
        logger.info(
            "Selected audio stream %d of %d for %s",
            index,
            len(streams),
            file_path.name,
        )
        return index
