"""Serialize moved declarations into destination files."""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from .edits import Edit, EditSet
from .models import Declaration
from .source import SourceSnapshot
from .synthesizer import declaration_text

logger = logging.getLogger(__name__)

Block = Tuple[Sequence[str], str]


def include_guard(file_name: str) -> str:
    """``new/foo.h`` -> ``NEW_FOO_H``."""
    return "".join(ch if ch.isascii() and ch.isalnum() else "_" for ch in file_name).upper()


def render_file(
    file_name: str,
    includes: Sequence[str],
    blocks: Sequence[Block],
    is_header: bool = False,
    prelude: str = "",
) -> str:
    """Render destination file content.

    *blocks* are ``(namespace path, declaration text)`` pairs in discovery
    order. Consecutive declarations share their common namespace prefix;
    only the namespaces that differ are closed and reopened.
    """
    out: List[str] = []
    guard = include_guard(file_name)
    if is_header:
        out.append(f"#ifndef {guard}\n")
        out.append(f"#define {guard}\n\n")

    out.append(prelude)
    out.extend(includes)
    if includes:
        out.append("\n")

    current: List[str] = []
    for namespaces, text in blocks:
        common = 0
        while (
            common < len(current)
            and common < len(namespaces)
            and current[common] == namespaces[common]
        ):
            common += 1

        closed = False
        for name in reversed(current[common:]):
            out.append(f"}} // namespace {name}\n")
            closed = True
        if closed:
            out.append("\n")

        opened = False
        for name in namespaces[common:]:
            out.append(f"namespace {name} {{\n")
            opened = True
        # FIXME: don't add blank lines between consecutive using-declarations.
        if not opened:
            out.append("\n")

        out.append(text)
        current = list(namespaces)

    for name in reversed(current):
        out.append(f"}} // namespace {name}\n")

    if is_header:
        out.append(f"\n#endif // {guard}\n")
    return "".join(out)


class NamespaceEmitter:
    """Builds the insertion edit that creates a destination file."""

    def __init__(self, snapshot: SourceSnapshot) -> None:
        self.snapshot = snapshot

    def blocks(self, decls: Sequence[Declaration]) -> List[Block]:
        return [
            (decl.namespaces, declaration_text(decl, self.snapshot.text(decl.path)))
            for decl in decls
        ]

    def emit(
        self,
        path: str,
        file_name: str,
        includes: Sequence[str],
        decls: Sequence[Declaration],
        is_header: bool = False,
        prelude: str = "",
    ) -> EditSet:
        logger.debug("emitting %d declaration(s) into %s", len(decls), file_name)
        content = render_file(file_name, includes, self.blocks(decls), is_header, prelude)
        return EditSet(path, [Edit(0, 0, content)])
