"""Turn moved declarations into deletions in the donor files."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Set, Tuple

from .context import MoveContext
from .edits import Edit, EditSet
from .errors import FormatterError, ReplacementConflictError
from .models import Declaration, include_line
from .source import extend_to_line_end
from .symbol_locator import Bucket, Verdict

logger = logging.getLogger(__name__)

CleanupFormatter = Callable[[str, EditSet, str], EditSet]


def full_range(decl: Declaration, buffer: str) -> Tuple[int, int]:
    """Declaration plus attached documentation comment plus its line ending."""
    return decl.text_start, extend_to_line_end(buffer, decl.end)


def declaration_text(decl: Declaration, buffer: str) -> str:
    """Source text of the full range, always terminated by a newline."""
    start, end = full_range(decl, buffer)
    text = buffer[start:end]
    if not text.endswith("\n"):
        text = text.rstrip(" \t") + "\n"
    return text


class ReplacementSynthesizer:
    """Adds one deletion per moved declaration to ``ctx.file_edits``."""

    def __init__(self, ctx: MoveContext, cleanup: CleanupFormatter | None = None) -> None:
        self.ctx = ctx
        self.cleanup = cleanup
        self.conflicts: Set[str] = set()

    def synthesize(self, verdicts: Iterable[Verdict]) -> None:
        touched = []
        for verdict in verdicts:
            if verdict.bucket is not Bucket.MOVED:
                continue
            decl = verdict.decl
            path = self.ctx.resolver.resolve(decl.path)
            if path in self.conflicts:
                continue
            start, end = full_range(decl, self.ctx.snapshot.text(decl.path))
            edits = self.ctx.file_edits.setdefault(path, EditSet(path))
            if path not in touched:
                touched.append(path)
            try:
                edits.add(Edit(start, end - start, ""))
            except ReplacementConflictError as exc:
                logger.warning("Dropping all edits for %s: %s", path, exc)
                self.ctx.report(exc, level="error")
                self.conflicts.add(path)
                del self.ctx.file_edits[path]

        self._add_new_header_include()

        for path in touched:
            if path in self.ctx.file_edits:
                self._clean(path)

    def _add_new_header_include(self) -> None:
        spec = self.ctx.spec
        old_header = self.ctx.old_header
        if not (spec.old_depend_on_new and spec.new_header):
            return
        edits = self.ctx.file_edits.get(old_header)
        if edits is None:
            return
        buffer = self.ctx.snapshot.text(old_header)
        text = include_line(spec.new_header)
        if buffer and not buffer.endswith("\n"):
            text = "\n" + text
        try:
            edits.add(Edit(len(buffer), 0, text))
        except ReplacementConflictError as exc:
            logger.warning("Could not add include of %s: %s", spec.new_header, exc)
            self.ctx.report(exc)

    def _clean(self, path: str) -> None:
        if self.cleanup is None:
            return
        buffer = self.ctx.snapshot.text(path)
        try:
            self.ctx.file_edits[path] = self.cleanup(
                buffer, self.ctx.file_edits[path], self.ctx.spec.fallback_style,
            )
        except FormatterError as exc:
            logger.warning("Cleanup failed for %s, keeping raw edits: %s", path, exc)
            self.ctx.report(exc)
