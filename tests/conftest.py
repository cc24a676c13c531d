"""Pytest configuration and fixtures for cppmove tests."""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional

import pytest

from cppmove import config
from cppmove.models import DeclKind, Declaration, FileRole, IncludeDirective, ScopeKind
from cppmove.parser import Parser


def _make_decl(
    path: str,
    buffer: str,
    snippet: str,
    name: str,
    kind: DeclKind = DeclKind.CLASS,
    occurrence: int = 0,
    comment: Optional[str] = None,
    **kwargs,
) -> Declaration:
    """Declaration whose range is the *occurrence*-th match of *snippet* in *buffer*."""
    start = -1
    for _ in range(occurrence + 1):
        start = buffer.index(snippet, start + 1)
    if comment is not None:
        kwargs["comment_start"] = buffer.index(comment)
    kwargs.setdefault("role", FileRole.HEADER if path.endswith((".h", ".hpp")) else FileRole.IMPL)
    if kwargs.get("namespaces"):
        kwargs.setdefault("scope", ScopeKind.NAMESPACE)
    return Declaration(
        name=name, kind=kind, path=path, start=start, end=start + len(snippet), **kwargs
    )


def _make_include(path: str, buffer: str, token: str) -> IncludeDirective:
    start = buffer.index(token)
    return IncludeDirective(
        spelling=token[1:-1],
        angled=token.startswith("<"),
        search_path=os.path.dirname(path),
        path=path,
        filename_start=start,
        filename_end=start + len(token),
    )


class ScriptedParser(Parser):
    """Provider double: the events of each file are scripted by file name.

    An entry is either ``("include", '"x.h"')`` or
    ``(snippet, name, kind[, {declaration fields}])``.
    """

    def __init__(self, script: Dict[str, List[tuple]]):
        self.script = script
        self.parsed: List[str] = []

    def supports_language(self, language: str) -> bool:
        return language == "cpp"

    def parse_file(self, path, role, source=None):
        self.parsed.append(os.path.basename(path))
        if source is None:
            source = Path(path).read_text()
        events = []
        for entry in self.script.get(os.path.basename(path), []):
            if entry[0] == "include":
                events.append(_make_include(path, source, entry[1]))
                continue
            snippet, name, kind, *rest = entry
            events.append(_make_decl(path, source, snippet, name, kind, **(rest[0] if rest else {})))
        return events


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp()).resolve()
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def write_file(temp_dir: Path) -> Callable[[str, str], str]:
    """Write *content* to ``temp_dir/name`` and return the absolute path."""

    def _write(name: str, content: str) -> str:
        path = temp_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
        return str(path)

    return _write


@pytest.fixture
def decl_factory():
    return _make_decl


@pytest.fixture
def include_factory():
    return _make_include


@pytest.fixture
def scripted_parser():
    return ScriptedParser


@pytest.fixture
def isolated_home(temp_dir: Path, monkeypatch) -> Path:
    """Point CPPMOVE_HOME settings at a temporary directory and chdir into the project."""
    home = temp_dir / "home"
    monkeypatch.setattr(config, "BASE_DIR", home)
    monkeypatch.setattr(config, "CONFIG_FILE", home / "config.toml")
    monkeypatch.setattr(config, "BACKUP_DIR", home / "backups")
    monkeypatch.chdir(temp_dir)
    return home


@pytest.fixture
def scenario_sources() -> Dict[str, str]:
    """Donor pair with one class to move and one class that stays."""
    return {
        "old.h": "namespace ns { class Foo { void m(); }; class Bar{}; }\n",
        "old.cc": '#include "old.h"\nnamespace ns { void Foo::m(){} }\n',
    }
