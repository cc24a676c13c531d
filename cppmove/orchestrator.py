"""Coordinates discovery, classification and edit synthesis for one move."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .cleanup import cleanup_around_edits
from .context import MoveContext
from .edits import EditSet
from .emitter import NamespaceEmitter
from .errors import ConfigError
from .include_tracker import IncludeTracker
from .models import Declaration, Diagnostic, FileRole, IncludeDirective, MoveSpec, include_line
from .parser import Event, Parser
from .paths import PathResolver
from .shortcut import move_whole_files, should_move_whole_files
from .source import SourceSnapshot
from .symbol_locator import Bucket, SymbolLocator
from .synthesizer import CleanupFormatter, ReplacementSynthesizer

logger = logging.getLogger(__name__)


@dataclass
class MoveResult:
    """Outcome of a run: edit sets keyed by absolute path, or a dump report."""

    edits: Dict[str, EditSet] = field(default_factory=dict)
    declarations: List[Tuple[str, str]] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)
    whole_file: bool = False

    @property
    def changed(self) -> bool:
        return any(len(edits) for edits in self.edits.values())


class MoveOrchestrator:
    """Runs one move over a single snapshot of the donor files."""

    def __init__(
        self,
        spec: MoveSpec,
        working_dir: Optional[str] = None,
        snapshot: Optional[SourceSnapshot] = None,
        cleanup: Optional[CleanupFormatter] = cleanup_around_edits,
        parser: Optional[Parser] = None,
    ) -> None:
        self.spec = spec
        self.cleanup = cleanup
        self.parser = parser
        self.ctx = MoveContext(
            spec=spec,
            resolver=PathResolver(working_dir),
            snapshot=snapshot or SourceSnapshot(),
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def execute(self, parser: Optional[Parser] = None) -> MoveResult:
        parser = parser or self.parser
        if parser is None:
            from .parser import TreeSitterParser
            parser = TreeSitterParser()
        return self.run(self.discover(parser))

    def discover(self, parser: Parser) -> Iterator[Event]:
        """Parse the donor header, then the donor implementation file."""
        ctx = self.ctx
        for path, role in ((ctx.old_header, FileRole.HEADER), (ctx.old_cc, FileRole.IMPL)):
            if not path:
                continue
            try:
                source = ctx.snapshot.text(path)
            except OSError as exc:
                ctx.note(f"Failed to read donor file: {exc}", path=path, level="error")
                continue
            yield from parser.parse_file(path, role, source)

    def run(self, events: Iterable[Event]) -> MoveResult:
        ctx = self.ctx
        result = MoveResult(diagnostics=ctx.diagnostics)
        try:
            locator = SymbolLocator(ctx)
        except ConfigError as exc:
            logger.error("%s", exc)
            ctx.report(exc, level="error")
            return result
        tracker = IncludeTracker(ctx)

        for event in events:
            if isinstance(event, IncludeDirective):
                tracker.add(event)
            elif isinstance(event, Declaration):
                locator.consume(event)

        try:
            if self.spec.dump_decls:
                result.declarations = locator.dump()
            elif not locator.has_matches:
                logger.info("No declaration matches %s; nothing to do",
                            ", ".join(self.spec.symbol_names))
            elif should_move_whole_files(ctx, locator):
                logger.info("Donor header is emptied; moving whole files")
                move_whole_files(ctx, tracker)
                result.whole_file = True
            else:
                synthesizer = ReplacementSynthesizer(ctx, self.cleanup)
                synthesizer.synthesize(locator.moved)
                result.conflicts = sorted(synthesizer.conflicts)
                self._emit(locator, tracker)
        finally:
            ctx.collect_path_errors()

        result.edits = dict(ctx.file_edits)
        return result

    # ------------------------------------------------------------------
    # Destination files
    # ------------------------------------------------------------------

    def _emit(self, locator: SymbolLocator, tracker: IncludeTracker) -> None:
        ctx, spec = self.ctx, self.spec
        emitter = NamespaceEmitter(ctx.snapshot)
        resolve = ctx.resolver.resolve

        header_decls = [
            v.decl for v in locator.moved
            if ctx.old_header and resolve(v.decl.path) == ctx.old_header
        ]
        cc_decls = [
            v.decl for v in locator.moved
            if v.bucket is Bucket.MOVED and ctx.old_cc and resolve(v.decl.path) == ctx.old_cc
        ]

        # Emitted even with no header declarations; the new cc includes it.
        if spec.new_header:
            prelude = include_line(spec.old_header) if spec.new_depend_on_old else ""
            ctx.file_edits[ctx.new_header] = emitter.emit(
                ctx.new_header, spec.new_header, tracker.header_includes,
                header_decls, is_header=True, prelude=prelude,
            )
        elif any(d in locator.moved_declarations for d in header_decls):
            ctx.note("Declarations removed from the donor header but no destination header is set")

        if spec.new_cc and cc_decls:
            ctx.file_edits[ctx.new_cc] = emitter.emit(
                ctx.new_cc, spec.new_cc, tracker.cc_includes, cc_decls,
            )
        elif cc_decls and not spec.new_cc:
            ctx.note("Declarations removed from the donor implementation file "
                     "but no destination implementation file is set")
