"""Explicit state threaded through every pipeline stage."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from .edits import EditSet
from .errors import MoveError
from .models import Diagnostic, MoveSpec
from .paths import PathResolver
from .source import SourceSnapshot

logger = logging.getLogger(__name__)


@dataclass
class MoveContext:
    """Configuration and accumulated results of one run.

    ``file_edits`` is keyed by absolute path. Within a phase a single stage
    writes it: the synthesizer appends donor edits, the cleanup pass replaces
    donor entries, the emitter or the whole-file shortcut adds destination
    entries.
    """

    spec: MoveSpec
    resolver: PathResolver = field(default_factory=PathResolver)
    snapshot: SourceSnapshot = field(default_factory=SourceSnapshot)
    file_edits: Dict[str, EditSet] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def old_header(self) -> str:
        return self.resolver.resolve(self.spec.old_header)

    @property
    def old_cc(self) -> str:
        return self.resolver.resolve(self.spec.old_cc)

    @property
    def new_header(self) -> str:
        return self.resolver.resolve(self.spec.new_header)

    @property
    def new_cc(self) -> str:
        return self.resolver.resolve(self.spec.new_cc)

    def report(self, error: MoveError, level: str = "warning") -> None:
        self.diagnostics.append(Diagnostic(level=level, message=str(error), path=error.path))

    def note(self, message: str, path: str | None = None, level: str = "warning") -> None:
        logger.warning("%s%s", f"{path}: " if path else "", message)
        self.diagnostics.append(Diagnostic(level=level, message=message, path=path))

    def collect_path_errors(self) -> None:
        """Move path resolution failures gathered so far into the diagnostics."""
        for error in self.resolver.errors:
            self.report(error)
        self.resolver.errors.clear()
