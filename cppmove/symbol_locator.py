"""Classify discovered declarations against the requested symbol set."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set

from .context import MoveContext
from .errors import ConfigError
from .models import (
    FUNCTION_KINDS,
    DeclHandle,
    DeclKind,
    Declaration,
    ScopeKind,
    anchor_name,
)

logger = logging.getLogger(__name__)


class Bucket(str, Enum):
    MOVED = "moved"
    FORWARD_DECL = "forward-decl"
    UNREMOVED = "unremoved"
    IGNORED = "ignored"


# Reasons that count as a direct match of a requested symbol.
MATCH_REASONS = frozenset({"symbol", "method", "static-member"})

_TOP_LEVEL_SCOPES = (ScopeKind.NAMESPACE, ScopeKind.TRANSLATION_UNIT)
_NOT_TRACKED_IN_HEADER = frozenset({
    DeclKind.FORWARD_DECLARATION,
    DeclKind.USING_DIRECTIVE,
    DeclKind.ANONYMOUS_NAMESPACE,
})
_INTERNAL_LINKAGE_KINDS = FUNCTION_KINDS | {DeclKind.VARIABLE}
_USING_KINDS = frozenset({
    DeclKind.USING_DECLARATION,
    DeclKind.USING_DIRECTIVE,
    DeclKind.TYPE_ALIAS,
})


@dataclass(frozen=True)
class Verdict:
    decl: Declaration
    bucket: Bucket
    reason: str = ""

    @property
    def matched(self) -> bool:
        return self.bucket is Bucket.MOVED and self.reason in MATCH_REASONS


class SymbolLocator:
    """Single-pass consumer of declaration records.

    Feed every declaration through :meth:`consume` in discovery order. The
    locator accumulates the ordered ``moved`` list (moved declarations and
    copied forward declarations) and the ``unremoved`` set of donor header
    declarations that stay behind.

    Raises:
        ConfigError: on construction, when no symbol name was requested
            outside dump mode.
    """

    def __init__(self, ctx: MoveContext) -> None:
        self.ctx = ctx
        self.dump_only = ctx.spec.dump_decls
        self.names: Set[str] = {anchor_name(n) for n in ctx.spec.symbol_names}
        if not self.names and not self.dump_only:
            raise ConfigError("No symbols being moved.")
        self.old_header = ctx.old_header
        self.old_cc = ctx.old_cc
        self.moved: List[Verdict] = []
        self.unremoved: Dict[DeclHandle, Declaration] = {}
        self._verdicts: Dict[DeclHandle, Verdict] = {}
        self._seen: Dict[DeclHandle, Declaration] = {}
        self._has_moved = False
        self.has_matches = False

    # ------------------------------------------------------------------
    # Consumption
    # ------------------------------------------------------------------

    def consume(self, decl: Declaration) -> Verdict:
        """Classify *decl* and record the verdict."""
        self._seen[decl.handle] = decl
        target = self._owner(decl)
        if target.handle in self._verdicts:
            return self._verdicts[target.handle]

        verdict = self.classify(target)
        self._verdicts[target.handle] = verdict
        logger.debug("%s %s -> %s (%s)", target.kind.value, target.name,
                     verdict.bucket.value, verdict.reason)

        if verdict.bucket is Bucket.MOVED:
            self.unremoved.pop(target.handle, None)
            self.moved.append(verdict)
            self._has_moved = True
            if verdict.matched:
                self.has_matches = True
        elif verdict.bucket is Bucket.FORWARD_DECL:
            self.moved.append(verdict)
        elif verdict.bucket is Bucket.UNREMOVED:
            self.unremoved[target.handle] = target
        return verdict

    def _owner(self, decl: Declaration) -> Declaration:
        """The owning template of a template pattern, when it was reported."""
        if decl.described_template is not None:
            owner = self._seen.get(decl.described_template)
            if owner is not None:
                return owner
        return decl

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def classify(self, decl: Declaration) -> Verdict:
        if decl.scope not in _TOP_LEVEL_SCOPES:
            return Verdict(decl, Bucket.IGNORED, "nested")

        path = self.ctx.resolver.resolve(decl.path)
        in_header = bool(self.old_header) and path == self.old_header
        in_cc = bool(self.old_cc) and path == self.old_cc
        if not (in_header or in_cc):
            return Verdict(decl, Bucket.IGNORED, "outside donor files")

        if self.dump_only:
            return self._retained(decl, in_header)

        outer = anchor_name(decl.outer_class) if decl.outer_class else None

        if (
            decl.kind not in (DeclKind.FORWARD_DECLARATION, DeclKind.ANONYMOUS_NAMESPACE)
            and decl.qualified_name in self.names
        ):
            return Verdict(decl, Bucket.MOVED, "symbol")

        if decl.kind in FUNCTION_KINDS and outer in self.names and decl.is_definition:
            if decl.in_class_body:
                return Verdict(decl, Bucket.IGNORED, "defined in class body")
            return Verdict(decl, Bucket.MOVED, "method")

        if (
            decl.kind is DeclKind.STATIC_DATA_MEMBER
            and outer in self.names
            and decl.is_definition
        ):
            return Verdict(decl, Bucket.MOVED, "static-member")

        if (
            in_header
            and decl.kind is DeclKind.FORWARD_DECLARATION
            and not decl.is_definition
            and not decl.is_implicit
        ):
            if self._has_moved:
                return Verdict(decl, Bucket.IGNORED, "forward declaration after moved declaration")
            return Verdict(decl, Bucket.FORWARD_DECL, "forward")

        if in_cc:
            verdict = self._support_code(decl, outer)
            if verdict is not None:
                return verdict

        return self._retained(decl, in_header)

    def _support_code(self, decl: Declaration, outer: Optional[str]) -> Optional[Verdict]:
        if (
            decl.kind in _INTERNAL_LINKAGE_KINDS
            and decl.is_definition
            and decl.storage == "static"
            and outer not in self.names
        ):
            return Verdict(decl, Bucket.MOVED, "internal-linkage")
        if decl.kind in _USING_KINDS:
            return Verdict(decl, Bucket.MOVED, "using")
        if decl.kind is DeclKind.ANONYMOUS_NAMESPACE:
            return Verdict(decl, Bucket.MOVED, "anonymous-namespace")
        return None

    @staticmethod
    def _retained(decl: Declaration, in_header: bool) -> Verdict:
        if in_header and decl.kind not in _NOT_TRACKED_IN_HEADER:
            return Verdict(decl, Bucket.UNREMOVED, "retained")
        return Verdict(decl, Bucket.IGNORED, "unsupported")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def moved_declarations(self) -> List[Declaration]:
        return [v.decl for v in self.moved if v.bucket is Bucket.MOVED]

    def header_is_emptied(self) -> bool:
        """True when no structurally significant declaration stays in the donor header."""
        return not any(d.is_structural for d in self.unremoved.values())

    def dump(self) -> List[tuple]:
        """``(qualified name, kind label)`` for every retained supported declaration."""
        report = []
        for decl in self.unremoved.values():
            if not decl.is_structural:
                continue
            label = "Function" if decl.kind in FUNCTION_KINDS else "Class"
            report.append((decl.name, label))
        return report
