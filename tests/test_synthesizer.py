"""Tests for deletion synthesis."""

from cppmove.context import MoveContext
from cppmove.errors import FormatterError
from cppmove.models import DeclKind, MoveSpec
from cppmove.paths import PathResolver
from cppmove.symbol_locator import Bucket, Verdict
from cppmove.synthesizer import ReplacementSynthesizer, declaration_text, full_range

HEADER = (
    "#pragma once\n"
    "\n"
    "/// Does foo things.\n"
    "class Foo {};\n"
    "class Bar {};\n"
)


def _ctx(temp_dir, header, impl="", **fields):
    spec = MoveSpec(names=["Foo"], old_header=header, old_cc=impl,
                    new_header="new.h", new_cc="new.cc", **fields)
    return MoveContext(spec=spec, resolver=PathResolver(str(temp_dir)))


def test_full_range_includes_doc_comment_and_newline(write_file, decl_factory):
    header = write_file("old.h", HEADER)
    decl = decl_factory(header, HEADER, "class Foo {};", "Foo", comment="/// Does")
    start, end = full_range(decl, HEADER)
    assert HEADER[start:end] == "/// Does foo things.\nclass Foo {};\n"


def test_declaration_text_is_newline_terminated(write_file, decl_factory):
    text = "namespace ns { class Foo {};   class Bar {}; }"
    path = write_file("one.h", text)
    decl = decl_factory(path, text, "class Foo {};", "ns::Foo")
    assert declaration_text(decl, text) == "class Foo {};\n"


def test_one_deletion_per_moved_verdict(temp_dir, write_file, decl_factory):
    header = write_file("old.h", HEADER)
    ctx = _ctx(temp_dir, header)
    foo = decl_factory(header, HEADER, "class Foo {};", "Foo", comment="/// Does")
    bar = decl_factory(header, HEADER, "class Bar {};", "Bar")

    ReplacementSynthesizer(ctx).synthesize([
        Verdict(foo, Bucket.MOVED, "symbol"),
        Verdict(bar, Bucket.FORWARD_DECL, "forward"),
    ])

    edits = ctx.file_edits[header]
    assert len(edits) == 1
    assert edits.apply(HEADER) == "#pragma once\n\nclass Bar {};\n"


def test_conflict_drops_only_that_file(temp_dir, write_file, decl_factory):
    impl_text = "void a() {}\nvoid b() {}\n"
    header = write_file("old.h", HEADER)
    impl = write_file("old.cc", impl_text)
    ctx = _ctx(temp_dir, header, impl)
    overlapping = [
        decl_factory(impl, impl_text, "void a() {}\nvoid b", "a", DeclKind.FUNCTION),
        decl_factory(impl, impl_text, "void b() {}", "b", DeclKind.FUNCTION),
    ]
    foo = decl_factory(header, HEADER, "class Foo {};", "Foo")

    synthesizer = ReplacementSynthesizer(ctx)
    synthesizer.synthesize([Verdict(d, Bucket.MOVED, "symbol") for d in overlapping + [foo]])

    assert impl not in ctx.file_edits
    assert synthesizer.conflicts == {impl}
    assert header in ctx.file_edits
    assert any(d.level == "error" and d.path == impl for d in ctx.diagnostics)


def test_old_depend_on_new_appends_include(temp_dir, write_file, decl_factory):
    text = "class Foo {};\nclass Bar {};"
    header = write_file("old.h", text)
    ctx = _ctx(temp_dir, header, old_depend_on_new=True)
    foo = decl_factory(header, text, "class Foo {};", "Foo")

    ReplacementSynthesizer(ctx).synthesize([Verdict(foo, Bucket.MOVED, "symbol")])

    assert ctx.file_edits[header].apply(text) == 'class Bar {};\n#include "new.h"\n'


def test_cleanup_receives_style(temp_dir, write_file, decl_factory):
    header = write_file("old.h", HEADER)
    ctx = _ctx(temp_dir, header, fallback_style="google")
    seen = []

    def cleanup(buffer, edits, style):
        seen.append((buffer, style))
        return edits

    foo = decl_factory(header, HEADER, "class Foo {};", "Foo")
    ReplacementSynthesizer(ctx, cleanup).synthesize([Verdict(foo, Bucket.MOVED, "symbol")])
    assert seen == [(HEADER, "google")]


def test_failed_cleanup_keeps_raw_edits(temp_dir, write_file, decl_factory):
    header = write_file("old.h", HEADER)
    ctx = _ctx(temp_dir, header)

    def cleanup(buffer, edits, style):
        raise FormatterError("cannot clean", path=edits.path)

    foo = decl_factory(header, HEADER, "class Foo {};", "Foo", comment="/// Does")
    ReplacementSynthesizer(ctx, cleanup).synthesize([Verdict(foo, Bucket.MOVED, "symbol")])

    edits = ctx.file_edits[header]
    assert len(edits) == 1
    assert edits.apply(HEADER) == "#pragma once\n\nclass Bar {};\n"
    assert [(d.level, d.path) for d in ctx.diagnostics] == [("warning", header)]
    assert "cannot clean" in ctx.diagnostics[0].message
