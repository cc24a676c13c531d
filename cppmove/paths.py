"""Absolute, symlink-aware path resolution."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from .errors import PathResolutionError

logger = logging.getLogger(__name__)


class PathResolver:
    """Make paths absolute relative to a working directory.

    The containing directory is canonicalised (symlinks resolved) while the
    file name is kept, so a header reached through a symlinked directory
    compares equal to its real location. Unresolvable paths are logged and
    returned in normalised, best-effort form.
    """

    def __init__(self, working_dir: Optional[str] = None) -> None:
        self.working_dir = working_dir or os.getcwd()
        self.errors: List[PathResolutionError] = []
        self._cache: Dict[str, str] = {}

    def resolve(self, path: str) -> str:
        if not path:
            return ""
        if path in self._cache:
            return self._cache[path]
        absolute = path if os.path.isabs(path) else os.path.join(self.working_dir, path)
        absolute = os.path.normpath(absolute)
        try:
            parent = Path(absolute).parent.resolve()
            resolved = str(parent / Path(absolute).name)
        except (OSError, RuntimeError) as exc:
            error = PathResolutionError(f"could not resolve '{path}': {exc}", path=path)
            logger.warning("Warning: %s", error)
            self.errors.append(error)
            resolved = absolute
        self._cache[path] = resolved
        return resolved

    def same_file(self, a: str, b: str) -> bool:
        return bool(a) and bool(b) and self.resolve(a) == self.resolve(b)
