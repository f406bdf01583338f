"""Encode strategy planning and ffmpeg argument construction."""

import logging
from pathlib import Path

from core.config import get_settings
from services.encoding_models import EncodeStrategy

logger = logging.getLogger(__name__)


class EncodePlanner:
    """Decides which strategies to try for a source and builds their ffmpeg arguments."""

    COPY_SEGMENT_SECONDS = 6
    REENCODE_SEGMENT_SECONDS = 6
    FORCED_SEGMENT_SECONDS = 8

    AUDIO_CODEC = "aac"
    AUDIO_BITRATE = "128k"

    def __init__(self, forced_reencode_extensions: list[str] | None = None) -> None:
        if forced_reencode_extensions is None:
            forced_reencode_extensions = get_settings().forced_reencode_extension_list
        self.forced_reencode_extensions = frozenset(ext.lower() for ext in forced_reencode_extensions)

    def plan(self, source_path: Path) -> list[EncodeStrategy]:
        """
        Return the ordered strategies to attempt for a source.

        Interleaved/variable-framerate containers never get a stream copy;
        everything else tries the cheap copy first and re-encodes on failure.
        """
        ext = source_path.suffix.lower()
        if ext in self.forced_reencode_extensions:
            logger.info("Detected %s source, planning forced re-encode only", ext)
            return [EncodeStrategy.FORCED_REENCODE]
        return [EncodeStrategy.COPY, EncodeStrategy.REENCODE]

    def build_args(
        self,
        strategy: EncodeStrategy,
        source_path: Path,
        playlist_path: Path,
        segment_pattern: Path,
        audio_stream_index: int = 0,
    ) -> list[str]:
        """
        Build ffmpeg arguments (without the binary) for one strategy.

        Args:
            strategy: Strategy to build for.
            source_path: Input media file.
            playlist_path: Output HLS manifest.
            segment_pattern: Segment filename pattern (``...%d.ts``).
            audio_stream_index: Audio-relative stream index; only the forced
                re-encode maps it explicitly.

        Returns:
            List of command arguments.
        """
        # -y: a rebuild overwrites an existing manifest instead of prompting
        # on the (disconnected) stdin.
        args = ["-hide_banner", "-y", "-i", str(source_path)]

        if strategy == EncodeStrategy.COPY:
            args.extend([
                "-c:v", "copy",
                "-c:a", self.AUDIO_CODEC,
                "-b:a", self.AUDIO_BITRATE,
                "-bsf:v", "h264_mp4toannexb",
            ])
            segment_seconds = self.COPY_SEGMENT_SECONDS
        elif strategy == EncodeStrategy.REENCODE:
            args.extend([
                "-c:v", "libx264",
                "-c:a", self.AUDIO_CODEC,
                "-b:a", self.AUDIO_BITRATE,
                "-preset", "ultrafast",
                "-crf", "28",
                "-threads", "2",
                "-bufsize", "1M",
                "-maxrate", "2M",
            ])
            segment_seconds = self.REENCODE_SEGMENT_SECONDS
        elif strategy == EncodeStrategy.FORCED_REENCODE:
            args.extend([
                "-map", "0:v:0?",
                "-map", f"0:a:{audio_stream_index}?",
                "-sn",
                "-c:v", "libx264",
                "-profile:v", "main",
                "-level", "3.1",
                "-pix_fmt", "yuv420p",
                "-vf", "yadif",
                "-force_key_frames", "expr:gte(t,n_forced*2)",
                "-preset", "medium",
                "-crf", "21",
                "-threads", "1",
                "-c:a", self.AUDIO_CODEC,
                "-b:a", self.AUDIO_BITRATE,
                "-ar", "44100",
                "-ac", "2",
                "-max_muxing_queue_size", "1024",
            ])
            segment_seconds = self.FORCED_SEGMENT_SECONDS
        else:
            raise ValueError(f"Unknown encode strategy: {strategy!r}")

        args.extend([
            "-f", "hls",
            "-hls_time", str(segment_seconds),
            "-hls_playlist_type", "vod",
            "-hls_list_size", "0",
            "-hls_segment_filename", str(segment_pattern),
            # Output manifest (must be last)
            str(playlist_path),
        ])
        return args
