"""Exceptions raised by the relocation pipeline.

None of them aborts a run: each stage catches its own errors, logs them and
records a :class:`~cppmove.models.Diagnostic` on the context.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .edits import Edit


class MoveError(Exception):
    """Base class for relocation errors."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class ConfigError(MoveError, ValueError):
    """The move request is unusable, e.g. no symbol names were given."""


class PathResolutionError(MoveError):
    """A file or symlink could not be resolved to an absolute path."""


class ReplacementConflictError(MoveError):
    """Two edits for the same file overlap."""

    def __init__(self, path: str, existing: "Edit", new: "Edit") -> None:
        super().__init__(
            f"edit {new} conflicts with existing edit {existing}", path=path,
        )
        self.existing = existing
        self.new = new


class FormatterError(MoveError):
    """The cleanup pass could not adjust a file's edits."""
