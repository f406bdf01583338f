"""Filesystem helpers for source movies and their HLS folders."""

from pathlib import Path

# Order = preference when several sources share a title.
PREFERRED_EXTENSIONS = [".mp4", ".m4v", ".mkv", ".mov", ".avi"]


def safe_filename(filename: str) -> str:
    """Reduce a client-supplied filename to its basename."""
    return Path(filename.replace("\\", "/")).name


def title_from_filename(filename: str) -> str:
    return Path(safe_filename(filename)).stem


def hls_dir_for(base_dir: Path, title: str, suffix: str = "_hls") -> Path:
    return base_dir / f"{title}{suffix}"


def find_movie_by_title(directory: Path, title: str) -> Path | None:
    """
    Find the source file for a title in a directory.

    Matches files whose name without extension equals the title,
    case-insensitively. When several match, the extension order in
    PREFERRED_EXTENSIONS decides; unknown extensions come last.
    """
    wanted = safe_filename(title).lower()
    if not wanted or not directory.is_dir():
        return None

    candidates = [
        entry
        for entry in directory.iterdir()
        if entry.is_file() and entry.suffix and entry.stem.lower() == wanted
    ]
    if not candidates:
        return None

    def rank(path: Path) -> tuple[int, str]:
        ext = path.suffix.lower()
        order = PREFERRED_EXTENSIONS.index(ext) if ext in PREFERRED_EXTENSIONS else len(PREFERRED_EXTENSIONS)
        return (order, path.name)

    return sorted(candidates, key=rank)[0]
