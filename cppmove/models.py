"""Core data models shared by the parser, the relocation engine and the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class DeclKind(str, Enum):
    FUNCTION = "function"
    FUNCTION_TEMPLATE = "function-template"
    CLASS = "class"
    CLASS_TEMPLATE = "class-template"
    VARIABLE = "variable"
    STATIC_DATA_MEMBER = "static-data-member"
    USING_DECLARATION = "using-declaration"
    USING_DIRECTIVE = "using-directive"
    TYPE_ALIAS = "type-alias"
    ANONYMOUS_NAMESPACE = "anonymous-namespace-block"
    FORWARD_DECLARATION = "forward-declaration"
    # Never relocated on their own.
    TYPEDEF = "typedef"
    ENUM = "enum"
    OTHER = "other"


FUNCTION_KINDS = frozenset({DeclKind.FUNCTION, DeclKind.FUNCTION_TEMPLATE})
CLASS_KINDS = frozenset({DeclKind.CLASS, DeclKind.CLASS_TEMPLATE})
STRUCTURAL_KINDS = FUNCTION_KINDS | CLASS_KINDS


class ScopeKind(str, Enum):
    """Lexical scope a declaration appears in."""

    TRANSLATION_UNIT = "translation-unit"
    NAMESPACE = "namespace"
    ANONYMOUS_NAMESPACE = "anonymous-namespace"
    CLASS = "class"
    FUNCTION = "function"


class FileRole(str, Enum):
    HEADER = "header"
    IMPL = "impl"


def anchor_name(name: str) -> str:
    """Return *name* anchored at global scope, e.g. ``ns::Foo`` -> ``::ns::Foo``."""
    return "::" + name.strip().lstrip(":")


@dataclass(frozen=True)
class DeclHandle:
    """Stable identity of a declaration: origin file plus start offset."""

    path: str
    offset: int

    def __str__(self) -> str:
        return f"{self.path}@{self.offset}"


@dataclass(frozen=True)
class Declaration:
    """A top-level declaration reported by a source-tree provider.

    ``start``/``end`` delimit the declaration text in the decoded source
    buffer; ``comment_start`` is set when a documentation comment is attached
    to it.
    """

    name: str
    kind: DeclKind
    path: str
    role: FileRole
    start: int
    end: int
    namespaces: Tuple[str, ...] = ()
    scope: ScopeKind = ScopeKind.TRANSLATION_UNIT
    comment_start: Optional[int] = None
    is_definition: bool = True
    is_inline: bool = False
    is_implicit: bool = False
    storage: Optional[str] = None
    outer_class: Optional[str] = None
    in_class_body: bool = False
    described_template: Optional[DeclHandle] = None

    @property
    def handle(self) -> DeclHandle:
        return DeclHandle(self.path, self.start)

    @property
    def qualified_name(self) -> str:
        return anchor_name(self.name)

    @property
    def is_method(self) -> bool:
        return self.outer_class is not None

    @property
    def is_structural(self) -> bool:
        """Free functions, function templates, classes and class templates."""
        return self.kind in STRUCTURAL_KINDS and not self.is_method

    @property
    def text_start(self) -> int:
        if self.comment_start is not None and self.comment_start < self.start:
            return self.comment_start
        return self.start


@dataclass(frozen=True)
class IncludeDirective:
    """An ``#include`` seen in a donor file.

    ``filename_start``/``filename_end`` cover the filename token including its
    delimiters (``"foo.h"`` or ``<foo.h>``).
    """

    spelling: str
    angled: bool
    search_path: str
    path: str
    filename_start: int
    filename_end: int

    @property
    def line(self) -> str:
        return include_line(self.spelling, self.angled)


def include_line(spelling: str, angled: bool = False) -> str:
    if angled:
        return f"#include <{spelling}>\n"
    return f'#include "{spelling}"\n'


@dataclass
class MoveSpec:
    names: List[str] = field(default_factory=list)
    old_header: str = ""
    old_cc: str = ""
    new_header: str = ""
    new_cc: str = ""
    old_depend_on_new: bool = False
    new_depend_on_old: bool = False
    dump_decls: bool = False
    fallback_style: str = "llvm"

    @property
    def symbol_names(self) -> List[str]:
        """Requested names, trimmed and without empty entries."""
        return [n.strip() for n in self.names if n.strip().lstrip(":")]


@dataclass
class Diagnostic:
    level: str
    message: str
    path: Optional[str] = None

    def __str__(self) -> str:
        where = f"{self.path}: " if self.path else ""
        return f"[{self.level}] {where}{self.message}"
