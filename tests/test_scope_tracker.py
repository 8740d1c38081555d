"""Tests for import/alias scope tracking."""

from callcheck.nodes import (
    AliasNode,
    CallNode,
    FilterKind,
    ImportNode,
    ModuleGroup,
    ScopeEntry,
    UNRESTRICTED,
)
from callcheck.scope_tracker import ScopeTables, effective_table, expand, update


class TestImports:
    def test_plain_import_is_unrestricted(self):
        tables = update(ScopeTables(), ImportNode(("Foo", "Bar")))

        assert tables.outer == {("Foo", "Bar"): ScopeEntry(("Foo", "Bar"), UNRESTRICTED)}
        assert tables.local == {}

    def test_only_list(self):
        tables = update(ScopeTables(), ImportNode(("Math",), only=(("pow", 2),)))

        entry = tables.outer[("Math",)]
        assert entry.import_filter.kind is FilterKind.ONLY
        assert entry.import_filter.allows("pow", 2)
        assert not entry.import_filter.allows("pow", 3)

    def test_except_list(self):
        tables = update(ScopeTables(), ImportNode(("Math",), except_=(("pow", 2),)))

        entry = tables.outer[("Math",)]
        assert entry.import_filter.kind is FilterKind.EXCEPT
        assert not entry.import_filter.allows("pow", 2)
        assert entry.import_filter.allows("sqrt", 1)

    def test_only_category_is_unrestricted(self):
        tables = update(ScopeTables(), ImportNode(("Math",), only="functions"))

        entry = tables.outer[("Math",)]
        assert entry.import_filter.kind is FilterKind.UNRESTRICTED
        assert entry.import_filter.category == "functions"
        assert entry.import_filter.allows("anything", 7)

    def test_grouped_import_expands_per_branch(self):
        node = ImportNode(ModuleGroup(("Root",), (("A",), ("B", "C"))), only=(("f", 1),))
        tables = update(ScopeTables(), node)

        assert set(tables.outer) == {("Root", "A"), ("Root", "B", "C")}
        assert tables.outer[("Root", "A")].import_filter == tables.outer[("Root", "B", "C")].import_filter

    def test_atom_module_import(self):
        tables = update(ScopeTables(), ImportNode((":math",)))

        assert (":math",) in tables.outer


class TestAliases:
    def test_alias_keyed_by_last_segment(self):
        tables = update(ScopeTables(), AliasNode(("A", "B", "C")))

        assert tables.outer == {("C",): ScopeEntry(("A", "B", "C"))}

    def test_alias_entries_import_nothing(self):
        tables = update(ScopeTables(), AliasNode(("A", "B")))

        assert tables.outer[("B",)].import_filter is None

    def test_renamed_alias(self):
        tables = update(ScopeTables(), AliasNode(("A", "B", "C"), as_name="D"))

        assert tables.outer == {("D",): ScopeEntry(("A", "B", "C"))}

    def test_grouped_alias(self):
        node = AliasNode(ModuleGroup(("Root",), (("A",), ("B", "C"))))
        tables = update(ScopeTables(), node)

        assert tables.outer == {
            ("A",): ScopeEntry(("Root", "A")),
            ("C",): ScopeEntry(("Root", "B", "C")),
        }

    def test_later_alias_overwrites_earlier(self):
        tables = update(ScopeTables(), AliasNode(("X", "Repo")))
        tables = update(tables, AliasNode(("Y", "Repo")))

        assert tables.outer[("Repo",)].path == ("Y", "Repo")


class TestDestination:
    def test_inside_function_goes_local(self):
        tables = update(ScopeTables(), AliasNode(("A", "B")), in_function=True)

        assert tables.outer == {}
        assert ("B",) in tables.local

    def test_non_declaration_passes_through(self):
        tables = ScopeTables(outer={("M",): ScopeEntry(("M",), UNRESTRICTED)})

        assert update(tables, CallNode("f")) is tables
        assert update(tables, "not a node") is tables

    def test_input_tables_are_not_mutated(self):
        original = ScopeTables()
        update(original, ImportNode(("M",)))
        update(original, ImportNode(("M",)), in_function=True)

        assert original.outer == {}
        assert original.local == {}


class TestEffectiveTable:
    def test_local_shadows_outer(self):
        tables = ScopeTables(
            outer={("B",): ScopeEntry(("Outer", "B"))},
            local={("B",): ScopeEntry(("Inner", "B"))},
        )

        assert effective_table(tables)[("B",)].path == ("Inner", "B")

    def test_union_of_both(self):
        tables = ScopeTables(
            outer={("A",): ScopeEntry(("X", "A"))},
            local={("B",): ScopeEntry(("Y", "B"))},
        )

        assert set(effective_table(tables)) == {("A",), ("B",)}


def test_expand_plain_path():
    assert expand(("A", "B")) == [("A", "B")]
    assert expand(ModuleGroup(("R",), (("X",),))) == [("R", "X")]
