"""Cleanup pass run over the deletions synthesized for a donor file.

The pass only ever widens deletions: text an edit deleted stays deleted and
insertions keep their text. It removes the indentation of lines that are
deleted entirely, namespace blocks whose whole body was deleted, and one of
two blank lines a deletion would leave next to each other. An `#include`
appended at the end of the file is moved to just after the last existing
`#include` line.
"""

from __future__ import annotations

import logging
import re
from typing import List, Sequence, Tuple

from .edits import Edit, EditSet
from .errors import FormatterError, ReplacementConflictError
from .source import extend_to_line_end, is_blank_line_at, line_start, next_line

logger = logging.getLogger(__name__)

Span = Tuple[int, int]

_NAMESPACE_HEAD = re.compile(r"(?:\binline\s+)?\bnamespace\b[\s\w:]*$")
_INCLUDE_LINE = re.compile(r"^[ \t]*#[ \t]*include\b.*(?:\n|\Z)", re.MULTILINE)


def cleanup_around_edits(buffer: str, edits: EditSet, style: str = "llvm") -> EditSet:
    """Return a cleaned copy of *edits* for *buffer*.

    Style ``none`` disables the pass.

    Raises:
        FormatterError: if the widened deletions collide with a kept edit.
    """
    if style.strip().lower() == "none":
        return EditSet(edits.path, edits)

    kept = [_place_include(buffer, e) for e in edits if e.text]
    protected = [e.offset for e in kept]
    spans = _merge([(e.offset, e.end) for e in edits if not e.text and e.length])
    spans = [_absorb_indent(buffer, s, e) for s, e in spans]
    spans = _remove_empty_namespaces(buffer, spans, protected)
    spans = _merge([_collapse_blank_lines(buffer, s, e) for s, e in spans])

    result = EditSet(edits.path)
    try:
        for start, end in spans:
            result.add(Edit(start, end - start, ""))
        for edit in kept:
            result.add(edit)
    except ReplacementConflictError as exc:
        raise FormatterError(f"cleanup produced overlapping edits: {exc}", path=edits.path) from exc
    logger.debug("cleanup of %s: %d edit(s) -> %d", edits.path, len(edits), len(result))
    return result


def _merge(spans: Sequence[Span]) -> List[Span]:
    merged: List[Span] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def _place_include(buffer: str, edit: Edit) -> Edit:
    text = edit.text.lstrip("\n")
    if edit.length or edit.offset != len(buffer) or not _INCLUDE_LINE.fullmatch(text):
        return edit
    includes = list(_INCLUDE_LINE.finditer(buffer))
    if not includes or includes[-1].end() == len(buffer):
        return edit
    return Edit(includes[-1].end(), 0, text)

def _ends_line(buffer: str, end: int) -> bool:
    return end >= len(buffer) or (end > 0 and buffer[end - 1] == "\n")


def _absorb_indent(buffer: str, start: int, end: int) -> Span:
    ls = line_start(buffer, start)
    if ls < start and not buffer[ls:start].strip() and _ends_line(buffer, end):
        return ls, end
    return start, end


def _collapse_blank_lines(buffer: str, start: int, end: int) -> Span:
    at_line_start = start == 0 or buffer[start - 1] == "\n"
    if not (at_line_start and _ends_line(buffer, end)):
        return start, end
    previous_blank = start > 0 and not buffer[line_start(buffer, start - 1):start].strip()
    if end < len(buffer) and is_blank_line_at(buffer, end) and (start == 0 or previous_blank):
        return start, next_line(buffer, end)
    if end >= len(buffer) and previous_blank:
        return line_start(buffer, start - 1), end
    return start, end


# ----------------------------------------------------------------------
# Empty namespace removal
# ----------------------------------------------------------------------

def _remove_empty_namespaces(buffer: str, spans: List[Span], protected: Sequence[int]) -> List[Span]:
    if not spans:
        return spans
    blocks = sorted(namespace_blocks(buffer), key=lambda b: b[2] - b[1])
    for head, open_brace, close_brace in blocks:
        if any(open_brace < p <= close_brace for p in protected):
            continue
        if not _covered(buffer, open_brace + 1, close_brace, spans):
            continue
        start = head
        end = extend_to_line_end(buffer, close_brace + 1)
        ls = line_start(buffer, start)
        if not buffer[ls:start].strip() and _ends_line(buffer, end):
            start = ls
        logger.debug("removing emptied namespace block at %d", head)
        spans = _merge(spans + [(start, end)])
    return spans


def _covered(buffer: str, start: int, end: int, spans: Sequence[Span]) -> bool:
    """True if every non-whitespace character in [start, end) is deleted."""
    if not any(s < end and start < e for s, e in spans):
        return False
    pos = start
    for s, e in spans:
        if e <= pos or s >= end:
            continue
        if s > pos and buffer[pos:s].strip():
            return False
        pos = max(pos, e)
    return not buffer[pos:end].strip() if pos < end else True


def namespace_blocks(buffer: str) -> List[Tuple[int, int, int]]:
    """``(head, open_brace, close_brace)`` for each namespace block in *buffer*.

    Comments, string and character literals and preprocessor lines are
    skipped while matching braces.
    """
    blocks: List[Tuple[int, int, int]] = []
    stack: List[Tuple[int, int]] = []
    boundary = 0
    i, n = 0, len(buffer)
    at_line_start = True
    while i < n:
        ch = buffer[i]
        if at_line_start and ch in " \t":
            i += 1
            continue
        if at_line_start and ch == "#":
            i = _skip_directive(buffer, i)
            boundary = i
            continue
        at_line_start = False
        if ch == "\n":
            at_line_start = True
            i += 1
        elif buffer.startswith("//", i):
            eol = buffer.find("\n", i)
            i = n if eol == -1 else eol
        elif buffer.startswith("/*", i):
            close = buffer.find("*/", i + 2)
            i = n if close == -1 else close + 2
        elif ch in "\"'":
            i = _skip_literal(buffer, i)
        elif ch == "{":
            match = _NAMESPACE_HEAD.search(buffer, boundary, i)
            stack.append((match.start() if match else -1, i))
            boundary = i + 1
            i += 1
        elif ch == "}":
            if stack:
                head, open_brace = stack.pop()
                if head >= 0:
                    blocks.append((head, open_brace, i))
            boundary = i + 1
            i += 1
        elif ch == ";":
            boundary = i + 1
            i += 1
        else:
            i += 1
    return blocks


def _skip_directive(buffer: str, i: int) -> int:
    while True:
        eol = buffer.find("\n", i)
        if eol == -1:
            return len(buffer)
        if buffer[eol - 1] != "\\":
            return eol
        i = eol + 1


def _skip_literal(buffer: str, i: int) -> int:
    quote = buffer[i]
    i += 1
    while i < len(buffer):
        ch = buffer[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote or ch == "\n":
            return i + 1
        i += 1
    return i
