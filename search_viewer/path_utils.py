"""Path helpers for result rows.

Row keys are opaque to the core, but when a key (or a fetched record) carries
a filesystem path the presentation layer wants a display name and a parent
directory, and the "open externally" action wants an absolute path.

Keep this module free of Qt dependencies.
"""

from __future__ import annotations

from pathlib import Path

_DRIVE_PREFIX_LEN = 2


def _normalize_drive_letter(path_str: str) -> str:
    # Normalize drive letter casing on Windows ("c:\\" -> "C:\\").
    if len(path_str) >= _DRIVE_PREFIX_LEN and path_str[1] == ":":
        return path_str[0].upper() + path_str[1:]
    return path_str


def abs_path(path: str | Path) -> Path:
    """Return an absolute path without requiring that it exists."""
    p = Path(path).expanduser()
    try:
        # strict=False avoids exceptions for non-existent paths.
        return p.resolve(strict=False)
    except OSError:
        return p.absolute()


def abs_path_str(path: str | Path) -> str:
    """Absolute, OS-native path string (Windows uses backslashes)."""
    return _normalize_drive_letter(str(abs_path(path)))


def display_name(path: str) -> str:
    """Last path component, tolerant of both separators and trailing slashes."""
    norm = str(path).replace("\\", "/").rstrip("/")
    if not norm:
        return str(path)
    return norm.rsplit("/", 1)[-1]

