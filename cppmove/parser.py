"""C++ declaration discovery built on Tree-sitter.

The parser reports, in source order, every declaration found at namespace or
translation-unit scope of a file plus every ``#include`` directive. It does
not resolve types: out-of-line member definitions are attributed to their
class using the classes and namespaces seen so far, which is why the donor
header must be parsed before the donor implementation file.
"""

from __future__ import annotations

import importlib
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union

from .models import (
    DeclKind,
    Declaration,
    FileRole,
    IncludeDirective,
    ScopeKind,
)
from .source import line_start

logger = logging.getLogger(__name__)

Event = Union[Declaration, IncludeDirective]

# Nodes whose children are walked as if they belonged to the parent scope.
_TRANSPARENT = frozenset({
    "preproc_ifdef",
    "preproc_if",
    "preproc_else",
    "preproc_elif",
    "preproc_elifdef",
})

_RECORD_SPECIFIERS = frozenset({"class_specifier", "struct_specifier", "union_specifier"})

_TEMPLATE_BODIES = _RECORD_SPECIFIERS | {
    "function_definition",
    "declaration",
    "alias_declaration",
    "template_declaration",
    "concept_definition",
}

_DECLARATOR_WRAPPERS = frozenset({
    "pointer_declarator",
    "reference_declarator",
    "parenthesized_declarator",
    "attributed_declarator",
    "init_declarator",
    "array_declarator",
})

_NAME_NODES = frozenset({
    "identifier",
    "qualified_identifier",
    "field_identifier",
    "destructor_name",
    "operator_name",
    "operator_cast",
    "template_function",
    "type_identifier",
    "qualified_type_identifier",
    "template_type",
})

_DOC_PREFIXES = ("///", "//!", "/**", "/*!")

_TEMPLATE_KINDS = {
    DeclKind.CLASS: DeclKind.CLASS_TEMPLATE,
    DeclKind.FUNCTION: DeclKind.FUNCTION_TEMPLATE,
}


# ===================================================================
# Abstract Parser Interface
# ===================================================================

class Parser(ABC):
    """Source-tree provider interface consumed by the orchestrator."""

    @abstractmethod
    def parse_file(
        self,
        path: str,
        role: FileRole,
        source: Optional[str] = None,
    ) -> List[Event]:
        """Declarations and include directives of one file, in source order."""
        ...

    @abstractmethod
    def supports_language(self, language: str) -> bool:
        """Return True if this parser can handle *language*."""
        ...


# ===================================================================
# Tree-sitter Parser
# ===================================================================

class TreeSitterParser(Parser):
    """Error-tolerant C++ parser built on Tree-sitter.

    Uses the ``tree-sitter-cpp`` grammar package. Tree-sitter produces a
    concrete syntax tree that keeps every token, so byte ranges map straight
    back onto the source text even when it contains constructs the grammar
    only partially understands (macros, attributes).
    """

    _GRAMMAR_MODULES: Dict[str, str] = {
        "cpp": "tree_sitter_cpp",
    }

    def __init__(self, include_dirs: Optional[Sequence[str]] = None) -> None:
        self.include_dirs = [os.path.abspath(d) for d in include_dirs or []]
        self._parsers: Dict[str, Any] = {}
        self.known_classes: Set[str] = set()
        self.known_namespaces: Set[str] = set()
        self._init_parsers()

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    def _init_parsers(self) -> None:
        try:
            import tree_sitter  # type: ignore[import-untyped]  # noqa: F401
        except ImportError:
            logger.warning(
                "tree-sitter is not installed -- "
                "C++ parsing unavailable. "
                "Install with: pip install tree-sitter tree-sitter-cpp"
            )
            return

        from tree_sitter import Language, Parser as TSParser  # type: ignore[import-untyped]

        for lang, mod_name in self._GRAMMAR_MODULES.items():
            try:
                mod = importlib.import_module(mod_name)
                self._parsers[lang] = TSParser(Language(mod.language()))
                logger.debug("Loaded tree-sitter parser for %s", lang)
            except ImportError:
                logger.warning(
                    "Grammar package '%s' not installed for language '%s'. "
                    "Install with: pip install %s",
                    mod_name, lang, mod_name.replace('_', '-'),
                )

    def supports_language(self, language: str) -> bool:
        return language in self._parsers

    # ------------------------------------------------------------------
    # File-level parsing
    # ------------------------------------------------------------------

    def parse_file(
        self,
        path: str,
        role: FileRole,
        source: Optional[str] = None,
    ) -> List[Event]:
        parser = self._parsers.get("cpp")
        if parser is None:
            raise RuntimeError(
                "tree-sitter C++ grammar is not available. "
                "Install with: pip install tree-sitter tree-sitter-cpp"
            )
        if source is None:
            with open(path, "r", encoding="utf-8", newline="") as fh:
                source = fh.read()

        data = source.encode("utf-8")
        tree = parser.parse(data)
        walker = _FileWalker(self, path, role, source, data)
        walker.walk(tree.root_node, (), ScopeKind.TRANSLATION_UNIT)
        logger.debug("%s: %d event(s)", path, len(walker.events))
        return walker.events

    # ------------------------------------------------------------------
    # Include and class resolution
    # ------------------------------------------------------------------

    def search_path_for(self, spelling: str, angled: bool, including_dir: str) -> str:
        """Directory an include resolves from, or a best-effort guess."""
        candidates = ([] if angled else [including_dir]) + self.include_dirs
        for directory in candidates:
            if os.path.isfile(os.path.join(directory, spelling)):
                return directory
        return "" if angled else including_dir

    def outer_class(self, base: Sequence[str], segments: Sequence[str]) -> Optional[str]:
        """Outermost class named by the qualifier of an out-of-line definition."""
        prefixes = ["::".join(list(base) + list(segments[:k])) for k in range(1, len(segments))]
        for prefix in prefixes:
            if prefix in self.known_classes:
                return prefix
        for prefix in prefixes:
            if prefix not in self.known_namespaces:
                return prefix
        return None


# ===================================================================
# Per-file walker
# ===================================================================

class _FileWalker:
    """Walks one syntax tree and collects events."""

    def __init__(
        self,
        owner: TreeSitterParser,
        path: str,
        role: FileRole,
        source: str,
        data: bytes,
    ) -> None:
        self.owner = owner
        self.path = path
        self.role = role
        self.source = source
        self.directory = os.path.dirname(os.path.abspath(path))
        self.events: List[Event] = []
        self._offset = _OffsetMap(source, data)

    def walk(self, node: Any, namespaces: Tuple[str, ...], scope: ScopeKind) -> None:
        comments: List[Any] = []
        children = node.children
        for index, child in enumerate(children):
            kind = child.type
            if kind == "comment":
                if self._is_doc_comment(child):
                    if comments and not self._adjacent(comments[-1], child):
                        comments = []
                    comments.append(child)
                else:
                    comments = []
                continue

            pending, comments = comments, []
            following = children[index + 1] if index + 1 < len(children) else None

            if kind in _TRANSPARENT:
                self.walk(child, namespaces, scope)
            elif kind == "preproc_include":
                self._include(child)
            elif kind == "namespace_definition":
                self._namespace(child, namespaces, pending)
            elif kind == "linkage_specification":
                body = child.child_by_field_name("body")
                if body is None:
                    continue
                if body.type == "declaration_list":
                    self.walk(body, namespaces, scope)
                else:
                    self._declare(body, child, namespaces, scope, pending, following)
            else:
                self._declare(child, child, namespaces, scope, pending, following)

    # ------------------------------------------------------------------
    # Includes and namespaces
    # ------------------------------------------------------------------

    def _include(self, node: Any) -> None:
        path_node = node.child_by_field_name("path")
        if path_node is None:
            return
        token = _text(path_node)
        if len(token) < 2 or token[0] not in "\"<":
            logger.debug("%s: skipping computed include %s", self.path, token)
            return
        angled = token[0] == "<"
        spelling = token[1:-1]
        self.events.append(IncludeDirective(
            spelling=spelling,
            angled=angled,
            search_path=self.owner.search_path_for(spelling, angled, self.directory),
            path=self.path,
            filename_start=self._offset(path_node.start_byte),
            filename_end=self._offset(path_node.end_byte),
        ))

    def _namespace(self, node: Any, namespaces: Tuple[str, ...], comments: List[Any]) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            self.events.append(self._record(
                node, None, "::".join(namespaces + ("(anonymous namespace)",)),
                DeclKind.ANONYMOUS_NAMESPACE, namespaces,
                ScopeKind.NAMESPACE if namespaces else ScopeKind.TRANSLATION_UNIT,
                comments,
            ))
            return
        segments = tuple(s.strip() for s in _text(name_node).split("::") if s.strip())
        segments = tuple(s[len("inline"):].strip() if s.startswith("inline ") else s for s in segments)
        inner = namespaces + segments
        for k in range(1, len(inner) + 1):
            self.owner.known_namespaces.add("::".join(inner[:k]))
        body = node.child_by_field_name("body")
        if body is not None:
            self.walk(body, inner, ScopeKind.NAMESPACE)

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _declare(
        self,
        node: Any,
        outer: Any,
        namespaces: Tuple[str, ...],
        scope: ScopeKind,
        comments: List[Any],
        following: Optional[Any],
    ) -> None:
        info = _describe(node)
        if info is None:
            return
        kind, qualified, is_definition, specifiers = info
        absolute, segments = split_qualified(qualified)
        if not segments:
            return
        base = () if absolute else namespaces
        name = "::".join(tuple(base) + tuple(segments))

        outer_class = None
        if len(segments) > 1 and kind in (
            DeclKind.FUNCTION, DeclKind.FUNCTION_TEMPLATE, DeclKind.VARIABLE,
        ):
            outer_class = self.owner.outer_class(base, segments)
            if outer_class is not None and kind is DeclKind.VARIABLE:
                kind = DeclKind.STATIC_DATA_MEMBER
        if kind in (DeclKind.CLASS, DeclKind.CLASS_TEMPLATE, DeclKind.FORWARD_DECLARATION):
            self.owner.known_classes.add(name)

        storage = next((s for s in specifiers if s in ("static", "extern", "thread_local")), None)
        if kind is DeclKind.VARIABLE and storage == "extern":
            is_definition = False

        self.events.append(self._record(
            outer, following, name, kind, namespaces, scope, comments,
            is_definition=is_definition,
            is_inline="inline" in specifiers,
            storage=storage,
            outer_class=outer_class,
        ))

    def _record(
        self,
        node: Any,
        following: Optional[Any],
        name: str,
        kind: DeclKind,
        namespaces: Tuple[str, ...],
        scope: ScopeKind,
        comments: List[Any],
        **extra: Any,
    ) -> Declaration:
        end_byte = node.end_byte
        if following is not None and following.type == ";":
            end_byte = following.end_byte
        comment_start = None
        if comments and self._adjacent(comments[-1], node):
            comment_start = self._offset(comments[0].start_byte)
        return Declaration(
            name=name,
            kind=kind,
            path=self.path,
            role=self.role,
            start=self._offset(node.start_byte),
            end=self._offset(end_byte),
            namespaces=namespaces,
            scope=scope,
            comment_start=comment_start,
            **extra,
        )

    # ------------------------------------------------------------------
    # Comment helpers
    # ------------------------------------------------------------------

    def _is_doc_comment(self, node: Any) -> bool:
        text = _text(node)
        if not text.startswith(_DOC_PREFIXES) or text.startswith("/**/"):
            return False
        start = self._offset(node.start_byte)
        return not self.source[line_start(self.source, start):start].strip()

    def _adjacent(self, first: Any, second: Any) -> bool:
        """No code and no blank line between *first* and *second*."""
        between = self.source[self._offset(first.end_byte):self._offset(second.start_byte)]
        return not between.strip() and between.count("\n") <= 1


# ===================================================================
# Shared Helpers
# ===================================================================

class _OffsetMap:
    """Translate UTF-8 byte offsets into offsets in the decoded text."""

    def __init__(self, source: str, data: bytes) -> None:
        self._table: Optional[List[int]] = None
        if len(source) != len(data):
            table: List[int] = []
            for index, ch in enumerate(source):
                table.extend([index] * len(ch.encode("utf-8")))
            table.append(len(source))
            self._table = table

    def __call__(self, byte_offset: int) -> int:
        if self._table is None:
            return byte_offset
        return self._table[byte_offset]


def _text(node: Any) -> str:
    return node.text.decode("utf-8")


def _specifiers(node: Any) -> Set[str]:
    found: Set[str] = set()
    for child in node.children:
        if child.type == "storage_class_specifier":
            found.add(_text(child).strip())
        elif child.type in ("inline", "static", "extern"):
            found.add(child.type)
    return found


def _inner_declarator(node: Any) -> Optional[Any]:
    inner = node.child_by_field_name("declarator")
    if inner is None and node.named_children:
        inner = node.named_children[-1]
    return inner


def _function_declarator(node: Optional[Any]) -> Optional[Any]:
    while node is not None:
        if node.type == "function_declarator":
            inner = node.child_by_field_name("declarator")
            return node if inner is not None and inner.type in _NAME_NODES else None
        if node.type not in _DECLARATOR_WRAPPERS:
            return None
        node = _inner_declarator(node)
    return None


def _declarator_name(node: Optional[Any]) -> Optional[str]:
    while node is not None:
        if node.type in _NAME_NODES:
            return _text(node)
        if node.type not in _DECLARATOR_WRAPPERS and node.type != "function_declarator":
            return None
        node = _inner_declarator(node)
    return None


def _describe(node: Any) -> Optional[Tuple[DeclKind, str, bool, Set[str]]]:
    """``(kind, spelled name, is_definition, specifiers)`` of a declaration node."""
    kind = node.type

    if kind in _RECORD_SPECIFIERS:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        has_body = node.child_by_field_name("body") is not None
        decl_kind = DeclKind.CLASS if has_body else DeclKind.FORWARD_DECLARATION
        return decl_kind, _text(name_node), has_body, set()

    if kind == "enum_specifier":
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        return DeclKind.ENUM, _text(name_node), node.child_by_field_name("body") is not None, set()

    if kind == "function_definition":
        declarator = _function_declarator(node.child_by_field_name("declarator"))
        if declarator is None:
            return None
        name = _text(declarator.child_by_field_name("declarator"))
        return DeclKind.FUNCTION, name, True, _specifiers(node)

    if kind == "declaration":
        declarator = node.child_by_field_name("declarator")
        function = _function_declarator(declarator)
        if function is not None:
            name = _text(function.child_by_field_name("declarator"))
            return DeclKind.FUNCTION, name, False, _specifiers(node)
        name = _declarator_name(declarator)
        if name is None:
            return None
        return DeclKind.VARIABLE, name, True, _specifiers(node)

    if kind == "type_definition":
        name = _declarator_name(node.child_by_field_name("declarator"))
        return (DeclKind.TYPEDEF, name, True, set()) if name else None

    if kind == "alias_declaration":
        name_node = node.child_by_field_name("name")
        return (DeclKind.TYPE_ALIAS, _text(name_node), True, set()) if name_node else None

    if kind == "using_declaration":
        is_directive = any(child.type == "namespace" for child in node.children)
        named = [c for c in node.named_children if c.type != "comment"]
        if not named:
            return None
        decl_kind = DeclKind.USING_DIRECTIVE if is_directive else DeclKind.USING_DECLARATION
        return decl_kind, _text(named[-1]), True, set()

    if kind == "concept_definition":
        name_node = node.child_by_field_name("name")
        return (DeclKind.OTHER, _text(name_node), True, set()) if name_node else None

    if kind == "template_declaration":
        inner = next((c for c in node.named_children if c.type in _TEMPLATE_BODIES), None)
        if inner is None:
            return None
        info = _describe(inner)
        if info is None:
            return None
        decl_kind, name, is_definition, specifiers = info
        return _TEMPLATE_KINDS.get(decl_kind, decl_kind), name, is_definition, specifiers

    return None


def split_qualified(spelled: str) -> Tuple[bool, List[str]]:
    """Split a spelled C++ name into scope segments without template arguments.

    Returns ``(absolute, segments)``; ``absolute`` is True for names written
    with a leading ``::``.

    >>> split_qualified("::ns::Box<T>::get")
    (True, ['ns', 'Box', 'get'])
    """
    text = "".join(spelled.split())
    operator = ""
    index = text.find("operator")
    if index != -1 and (index == 0 or text[index - 1] == ":"):
        text, operator = text[:index], text[index:]

    absolute = text.startswith("::")
    segments: List[str] = []
    depth = 0
    current: List[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth = max(depth - 1, 0)
        elif depth == 0 and text.startswith("::", i):
            segments.append("".join(current))
            current = []
            i += 2
            continue
        elif depth == 0:
            current.append(ch)
        i += 1
    segments.append("".join(current))
    if operator:
        segments[-1] = operator
    return absolute, [s for s in segments if s]
