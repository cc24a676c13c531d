"""Text edits and per-file edit sets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List

from .errors import ReplacementConflictError


@dataclass(frozen=True, order=True)
class Edit:
    """Replace ``length`` characters at ``offset`` with ``text``."""

    offset: int
    length: int
    text: str = ""

    @property
    def end(self) -> int:
        return self.offset + self.length

    @property
    def is_insertion(self) -> bool:
        return self.length == 0

    def overlaps(self, other: "Edit") -> bool:
        if self.is_insertion and other.is_insertion:
            return self.offset == other.offset
        if self.is_insertion:
            return other.offset < self.offset < other.end
        if other.is_insertion:
            return self.offset < other.offset < self.end
        return self.offset < other.end and other.offset < self.end

    def __str__(self) -> str:
        return f"({self.offset}, {self.length}, {self.text!r})"


class EditSet:
    """Ordered, non-overlapping edits for one file."""

    def __init__(self, path: str, edits: Iterable[Edit] = ()) -> None:
        self.path = path
        self._edits: List[Edit] = []
        for edit in edits:
            self.add(edit)

    def add(self, edit: Edit) -> None:
        """Insert *edit* in offset order.

        Raises:
            ReplacementConflictError: if *edit* overlaps an edit already in the set.
        """
        for existing in self._edits:
            if existing.overlaps(edit):
                raise ReplacementConflictError(self.path, existing, edit)
        self._edits.append(edit)
        self._edits.sort()

    def apply(self, buffer: str) -> str:
        out: List[str] = []
        pos = 0
        for edit in self._edits:
            out.append(buffer[pos:edit.offset])
            out.append(edit.text)
            pos = edit.end
        out.append(buffer[pos:])
        return "".join(out)

    @property
    def edits(self) -> List[Edit]:
        return list(self._edits)

    def __iter__(self) -> Iterator[Edit]:
        return iter(list(self._edits))

    def __len__(self) -> int:
        return len(self._edits)

    def __repr__(self) -> str:
        return f"EditSet({self.path!r}, {self._edits!r})"
