"""Tests for declaration classification."""

import pytest

from cppmove.context import MoveContext
from cppmove.errors import ConfigError
from cppmove.models import DeclKind, MoveSpec, ScopeKind
from cppmove.paths import PathResolver
from cppmove.symbol_locator import Bucket, SymbolLocator

HEADER = (
    "namespace ns {\n"
    "class Fwd;\n"
    "class Foo { void m(); static int n; };\n"
    "class Bar {};\n"
    "void helper();\n"
    "}\n"
)
IMPL = (
    "using std::string;\n"
    "static int counter = 0;\n"
    "namespace {\nint hidden() { return 1; }\n}\n"
    "namespace ns {\n"
    "void Foo::m() {}\n"
    "int Foo::n = 0;\n"
    "void helper() {}\n"
    "}\n"
)


@pytest.fixture
def donor(write_file, temp_dir):
    return write_file("old.h", HEADER), write_file("old.cc", IMPL)


def _locator(donor, temp_dir, names=("ns::Foo",), **spec_fields):
    header, impl = donor
    spec = MoveSpec(names=list(names), old_header=header, old_cc=impl,
                    new_header="new.h", new_cc="new.cc", **spec_fields)
    return SymbolLocator(MoveContext(spec=spec, resolver=PathResolver(str(temp_dir))))


def _header_decls(donor, decl_factory):
    header = donor[0]
    return [
        decl_factory(header, HEADER, "class Fwd;", "ns::Fwd", DeclKind.FORWARD_DECLARATION,
                     namespaces=("ns",), is_definition=False),
        decl_factory(header, HEADER, "class Foo { void m(); static int n; };", "ns::Foo",
                     DeclKind.CLASS, namespaces=("ns",)),
        decl_factory(header, HEADER, "class Bar {};", "ns::Bar", DeclKind.CLASS, namespaces=("ns",)),
        decl_factory(header, HEADER, "void helper();", "ns::helper", DeclKind.FUNCTION,
                     namespaces=("ns",), is_definition=False),
    ]


def _impl_decls(donor, decl_factory):
    impl = donor[1]
    return [
        decl_factory(impl, IMPL, "using std::string;", "std::string", DeclKind.USING_DECLARATION),
        decl_factory(impl, IMPL, "static int counter = 0;", "counter", DeclKind.VARIABLE,
                     storage="static"),
        decl_factory(impl, IMPL, "namespace {\nint hidden() { return 1; }\n}",
                     "(anonymous namespace)", DeclKind.ANONYMOUS_NAMESPACE),
        decl_factory(impl, IMPL, "void Foo::m() {}", "ns::Foo::m", DeclKind.FUNCTION,
                     namespaces=("ns",), outer_class="ns::Foo"),
        decl_factory(impl, IMPL, "int Foo::n = 0;", "ns::Foo::n", DeclKind.STATIC_DATA_MEMBER,
                     namespaces=("ns",), outer_class="ns::Foo"),
        decl_factory(impl, IMPL, "void helper() {}", "ns::helper", DeclKind.FUNCTION,
                     namespaces=("ns",)),
    ]


def test_empty_symbol_set_is_rejected(donor, temp_dir):
    with pytest.raises(ConfigError, match="No symbols being moved"):
        _locator(donor, temp_dir, names=["  ", ""])


def test_empty_symbol_set_allowed_in_dump_mode(donor, temp_dir):
    locator = _locator(donor, temp_dir, names=[], dump_decls=True)
    assert locator.dump() == []


def test_classification_buckets(donor, temp_dir, decl_factory):
    locator = _locator(donor, temp_dir)
    verdicts = {
        d.name: locator.consume(d)
        for d in _header_decls(donor, decl_factory) + _impl_decls(donor, decl_factory)
    }

    assert verdicts["ns::Fwd"].bucket is Bucket.FORWARD_DECL
    assert verdicts["ns::Foo"].bucket is Bucket.MOVED
    assert verdicts["ns::Foo"].reason == "symbol"
    assert verdicts["ns::Bar"].bucket is Bucket.UNREMOVED
    assert verdicts["ns::Foo::m"].reason == "method"
    assert verdicts["ns::Foo::n"].reason == "static-member"
    assert verdicts["std::string"].reason == "using"
    assert verdicts["counter"].reason == "internal-linkage"
    assert verdicts["(anonymous namespace)"].reason == "anonymous-namespace"
    # A non-moved free function defined in the donor implementation stays put.
    assert verdicts["ns::helper"].bucket is not Bucket.MOVED
    assert locator.has_matches


def test_unremoved_set_keeps_discovery_order(donor, temp_dir, decl_factory):
    locator = _locator(donor, temp_dir)
    for decl in _header_decls(donor, decl_factory):
        locator.consume(decl)
    assert [d.name for d in locator.unremoved.values()] == ["ns::Bar", "ns::helper"]
    assert not locator.header_is_emptied()


def test_moved_list_is_in_discovery_order(donor, temp_dir, decl_factory):
    locator = _locator(donor, temp_dir)
    for decl in _header_decls(donor, decl_factory) + _impl_decls(donor, decl_factory):
        locator.consume(decl)
    assert [v.decl.name for v in locator.moved] == [
        "ns::Fwd", "ns::Foo", "std::string", "counter", "(anonymous namespace)",
        "ns::Foo::m", "ns::Foo::n",
    ]
    assert [d.name for d in locator.moved_declarations][:1] == ["ns::Foo"]


def test_forward_declaration_after_moved_is_ignored(donor, temp_dir, decl_factory):
    header = donor[0]
    locator = _locator(donor, temp_dir)
    foo, fwd = (
        decl_factory(header, HEADER, "class Foo { void m(); static int n; };", "ns::Foo",
                     DeclKind.CLASS, namespaces=("ns",)),
        decl_factory(header, HEADER, "class Fwd;", "ns::Fwd", DeclKind.FORWARD_DECLARATION,
                     namespaces=("ns",), is_definition=False),
    )
    locator.consume(foo)
    assert locator.consume(fwd).bucket is Bucket.IGNORED


def test_nested_scope_is_ignored(donor, temp_dir, decl_factory):
    locator = _locator(donor, temp_dir)
    decl = decl_factory(donor[0], HEADER, "void m();", "ns::Foo", DeclKind.FUNCTION,
                        scope=ScopeKind.CLASS)
    assert locator.consume(decl).bucket is Bucket.IGNORED


def test_declaration_outside_donor_files_is_ignored(donor, temp_dir, decl_factory, write_file):
    other = write_file("other.h", HEADER)
    locator = _locator(donor, temp_dir)
    decl = decl_factory(other, HEADER, "class Bar {};", "ns::Foo", DeclKind.CLASS)
    assert locator.consume(decl).bucket is Bucket.IGNORED


def test_support_code_alone_is_not_a_match(donor, temp_dir, decl_factory):
    locator = _locator(donor, temp_dir, names=["ns::Missing"])
    for decl in _impl_decls(donor, decl_factory):
        locator.consume(decl)
    assert locator.moved
    assert not locator.has_matches


def test_name_matching_is_global_anchored(donor, temp_dir, decl_factory):
    locator = _locator(donor, temp_dir, names=["::ns::Bar"])
    decl = decl_factory(donor[0], HEADER, "class Bar {};", "ns::Bar", DeclKind.CLASS,
                        namespaces=("ns",))
    assert locator.consume(decl).matched


def test_consuming_twice_records_once(donor, temp_dir, decl_factory):
    locator = _locator(donor, temp_dir)
    foo = _header_decls(donor, decl_factory)[1]
    locator.consume(foo)
    locator.consume(foo)
    assert len(locator.moved) == 1


def test_dump_reports_functions_and_classes(donor, temp_dir, decl_factory):
    locator = _locator(donor, temp_dir, names=[], dump_decls=True)
    for decl in _header_decls(donor, decl_factory) + _impl_decls(donor, decl_factory):
        locator.consume(decl)
    assert locator.dump() == [
        ("ns::Foo", "Class"), ("ns::Bar", "Class"), ("ns::helper", "Function"),
    ]
    assert not locator.moved


def test_template_pattern_follows_owning_template(donor, temp_dir, decl_factory):
    header = donor[0]
    locator = _locator(donor, temp_dir, names=["ns::Bar"])
    owner = decl_factory(header, HEADER, "class Bar {};", "ns::Bar", DeclKind.CLASS_TEMPLATE,
                         namespaces=("ns",))
    pattern = decl_factory(header, HEADER, "Bar {};", "ns::Bar", DeclKind.CLASS,
                           namespaces=("ns",), described_template=owner.handle)
    assert locator.consume(owner).bucket is Bucket.MOVED
    assert locator.consume(pattern).decl is owner
    assert len(locator.moved) == 1


def test_method_defined_in_class_body_is_ignored(donor, temp_dir, decl_factory):
    locator = _locator(donor, temp_dir)
    decl = decl_factory(donor[1], IMPL, "void Foo::m() {}", "ns::Foo::m", DeclKind.FUNCTION,
                        namespaces=("ns",), outer_class="ns::Foo", in_class_body=True)
    assert locator.consume(decl).bucket is Bucket.IGNORED
