"""Immutable source snapshot and line-oriented helpers."""

from __future__ import annotations

from typing import Dict, Optional


class SourceSnapshot:
    """Whole-buffer contents of every file a run looks at, read at most once.

    Buffers are read with ``newline=""`` so offsets match the bytes on disk
    line-ending-wise.
    """

    def __init__(self, buffers: Optional[Dict[str, str]] = None) -> None:
        self._buffers: Dict[str, str] = dict(buffers or {})

    def text(self, path: str) -> str:
        if path not in self._buffers:
            with open(path, "r", encoding="utf-8", newline="") as fh:
                self._buffers[path] = fh.read()
        return self._buffers[path]


def line_start(buffer: str, offset: int) -> int:
    return buffer.rfind("\n", 0, offset) + 1


def is_trailing_noise(rest: str) -> bool:
    """True if *rest* (the remainder of a line) holds only whitespace or a comment."""
    stripped = rest.strip()
    if not stripped or stripped.startswith("//"):
        return True
    return (
        stripped.startswith("/*")
        and stripped.endswith("*/")
        and stripped.count("*/") == 1
    )


def extend_to_line_end(buffer: str, end: int) -> int:
    """Extend *end* through the end of its line.

    The line terminator is consumed, or the buffer end is returned when no
    terminator follows. When more code follows on the same line only the
    horizontal whitespace after *end* is consumed.
    """
    eol = buffer.find("\n", end)
    line_end = len(buffer) if eol == -1 else eol
    rest = buffer[end:line_end]
    if is_trailing_noise(rest):
        return len(buffer) if eol == -1 else eol + 1
    return end + (len(rest) - len(rest.lstrip(" \t")))


def is_blank_line_at(buffer: str, offset: int) -> bool:
    """True if the line starting at *offset* is empty or whitespace only."""
    if offset >= len(buffer):
        return False
    eol = buffer.find("\n", offset)
    line = buffer[offset:] if eol == -1 else buffer[offset:eol]
    return not line.strip()


def next_line(buffer: str, offset: int) -> int:
    eol = buffer.find("\n", offset)
    return len(buffer) if eol == -1 else eol + 1
