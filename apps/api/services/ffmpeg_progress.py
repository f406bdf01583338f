"""Progress extraction from ffmpeg's stderr diagnostics."""

import asyncio
import re
from collections.abc import AsyncGenerator

# ffmpeg redraws its status line with a bare carriage return.
_LINE_BREAK = re.compile(rb"[\r\n]")

READ_CHUNK_SIZE = 4096


def hms_to_seconds(hours: str, minutes: str, seconds: str) -> float:
    """Convert captured ``HH``, ``MM``, ``SS[.ff]`` groups to seconds."""
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


class FFmpegProgressParser:
    """
    Incremental parser for one encoder run.

    Feed it stderr lines in order. The first ``Duration:`` announcement fixes
    the total length; every later ``time=`` marker yields a percentage.
    Percentages never go down within one parser instance.
    """

    # Time fields accept variable decimal places (e.g., .4, .45, .456) or none
    DURATION_PATTERN = re.compile(r"Duration:\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
    TIME_PATTERN = re.compile(r"time=\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")

    def __init__(self) -> None:
        self.duration_seconds: float | None = None
        self.current_seconds: float | None = None
        self.percentage: float = 0.0

    def feed(self, line: str) -> float | None:
        """
        Consume one diagnostic line.

        Returns:
            The current percentage (0-100) if the line carried a time marker
            and the duration is already known, otherwise None.
        """
        if self.duration_seconds is None:
            match = self.DURATION_PATTERN.search(line)
            if match:
                duration = hms_to_seconds(*match.groups())
                if duration > 0:
                    self.duration_seconds = duration

        match = self.TIME_PATTERN.search(line)
        if match is None or self.duration_seconds is None:
            return None

        self.current_seconds = hms_to_seconds(*match.groups())
        percentage = min(100.0, self.current_seconds / self.duration_seconds * 100)
        self.percentage = max(self.percentage, round(percentage, 2))
        return self.percentage


async def read_lines(stream: asyncio.StreamReader) -> AsyncGenerator[str, None]:
    """Read lines from an async stream, splitting on both ``\\r`` and ``\\n``."""
    pending = b""
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        pending += chunk
        *complete, pending = _LINE_BREAK.split(pending)
        for raw in complete:
            if raw:
                yield raw.decode("utf-8", errors="replace").rstrip()
    if pending:
        yield pending.decode("utf-8", errors="replace").rstrip()
