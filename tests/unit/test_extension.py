"""
Unit Tests for Extension Detection and Ancestor Closure
"""
import pytest
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from sql_relations.classifier import ExtensionGraph, detect_extension
from sql_relations.facts import DictFactsProvider, TableRef
from sql_relations.utils import ConflictingExtensionError, CyclicExtensionError


def ref(name):
    return TableRef(None, name)


def fk(table, columns, referenced_table, referenced_columns, name=None):
    entry = {"columns": columns, "references": {"table": referenced_table, "columns": referenced_columns}}
    if name:
        entry["name"] = name
    return entry


def load(tables):
    return DictFactsProvider({"tables": tables}).load()


@pytest.fixture
def chain_snapshot():
    """grandparent <- parent <- child, with renamed key columns along the chain"""
    return load({
        "grandparent": {"columns": {"gid": "integer"}, "primary_key": ["gid"]},
        "parent": {
            "columns": {"pid": "integer"},
            "primary_key": ["pid"],
            "foreign_keys": [fk("parent", ["pid"], "grandparent", ["gid"], name="parent_ext")],
        },
        "child": {
            "columns": {"cid": "integer", "note": "text"},
            "primary_key": ["cid"],
            "foreign_keys": [fk("child", ["cid"], "parent", ["pid"], name="child_ext")],
        },
        "other": {"columns": {"id": "integer"}, "primary_key": ["id"]},
    })


@pytest.fixture
def cycle_snapshot():
    """a extends b, b extends a, c extends a"""
    return load({
        "a": {"columns": {"id": "integer"}, "primary_key": ["id"],
              "foreign_keys": [fk("a", ["id"], "b", ["id"], name="a_ext")]},
        "b": {"columns": {"id": "integer"}, "primary_key": ["id"],
              "foreign_keys": [fk("b", ["id"], "a", ["id"], name="b_ext")]},
        "c": {"columns": {"id": "integer"}, "primary_key": ["id"],
              "foreign_keys": [fk("c", ["id"], "a", ["id"], name="c_ext")]},
        "d": {"columns": {"id": "integer"}, "primary_key": ["id"]},
    })


@pytest.fixture
def conflict_snapshot():
    return load({
        "left": {"columns": {"id": "integer"}, "primary_key": ["id"]},
        "right": {"columns": {"id": "integer"}, "primary_key": ["id"]},
        "both": {
            "columns": {"id": "integer"},
            "primary_key": ["id"],
            "foreign_keys": [
                fk("both", ["id"], "left", ["id"], name="both_left"),
                fk("both", ["id"], "right", ["id"], name="both_right"),
            ],
        },
        "below": {"columns": {"id": "integer"}, "primary_key": ["id"],
                  "foreign_keys": [fk("below", ["id"], "both", ["id"], name="below_ext")]},
    })


class TestDetectExtension:
    """Tests for the per-foreign-key Extension predicate"""

    def test_primary_key_to_primary_key(self, chain_snapshot):
        foreign_key = chain_snapshot.get_table("child").foreign_keys[0]

        extension = detect_extension(chain_snapshot, foreign_key)

        assert extension is not None
        assert extension.child == ref("child")
        assert extension.ancestor == ref("parent")
        assert extension.column_map == {"cid": "pid"}

    def test_composite_key_order_normalized(self):
        snapshot = load({
            "base": {"columns": {"a": "integer", "b": "integer"}, "primary_key": ["a", "b"]},
            "sub": {
                "columns": {"a": "integer", "b": "integer"},
                "primary_key": ["a", "b"],
                "foreign_keys": [fk("sub", ["b", "a"], "base", ["b", "a"])],
            },
        })

        assert detect_extension(snapshot, snapshot.get_table("sub").foreign_keys[0]) is not None

    def test_partial_primary_key_is_not_extension(self):
        snapshot = load({
            "base": {"columns": {"a": "integer", "b": "integer"}, "primary_key": ["a", "b"]},
            "sub": {
                "columns": {"a": "integer"},
                "primary_key": ["a"],
                "foreign_keys": [fk("sub", ["a"], "base", ["a"])],
            },
        })

        assert detect_extension(snapshot, snapshot.get_table("sub").foreign_keys[0]) is None

    def test_non_key_columns_are_not_extension(self):
        snapshot = load({
            "base": {"columns": {"id": "integer"}, "primary_key": ["id"]},
            "sub": {
                "columns": {"id": "integer", "base_id": "integer"},
                "primary_key": ["id"],
                "foreign_keys": [fk("sub", ["base_id"], "base", ["id"])],
            },
        })

        assert detect_extension(snapshot, snapshot.get_table("sub").foreign_keys[0]) is None

    def test_self_reference_rejected(self):
        snapshot = load({
            "node": {"columns": {"id": "integer"}, "primary_key": ["id"],
                     "foreign_keys": [fk("node", ["id"], "node", ["id"])]},
        })

        assert detect_extension(snapshot, snapshot.get_table("node").foreign_keys[0]) is None


class TestExtensionGraph:
    """Tests for ancestor closure"""

    def test_ancestors_nearest_first(self, chain_snapshot):
        graph = ExtensionGraph(chain_snapshot)

        assert graph.ancestors(ref("child")) == (ref("parent"), ref("grandparent"))
        assert graph.ancestors(ref("grandparent")) == ()
        assert graph.parent(ref("child")) == ref("parent")
        assert graph.depth(ref("child")) == 2

    def test_is_ancestor_and_related(self, chain_snapshot):
        graph = ExtensionGraph(chain_snapshot)

        assert graph.is_ancestor(ref("grandparent"), ref("child"))
        assert not graph.is_ancestor(ref("child"), ref("grandparent"))
        assert not graph.is_ancestor(ref("child"), ref("child"))
        assert graph.related(ref("grandparent"), ref("child"))
        assert not graph.related(ref("other"), ref("child"))

    def test_ancestor_path(self, chain_snapshot):
        graph = ExtensionGraph(chain_snapshot)

        path = graph.ancestor_path(ref("child"), ref("grandparent"))

        assert [extension.foreign_key.name for extension in path] == ["child_ext", "parent_ext"]
        assert graph.ancestor_path(ref("child"), ref("other")) is None

    def test_column_mapping_composes_along_chain(self, chain_snapshot):
        graph = ExtensionGraph(chain_snapshot)

        assert graph.column_mapping(ref("child"), ref("parent")) == {"cid": "pid"}
        assert graph.column_mapping(ref("child"), ref("grandparent")) == {"cid": "gid"}

    def test_roots_descendants_and_order(self, chain_snapshot):
        graph = ExtensionGraph(chain_snapshot)

        assert set(graph.roots()) == {ref("grandparent"), ref("other")}
        assert graph.descendants(ref("grandparent")) == (ref("parent"), ref("child"))
        assert graph.generation_order() == (
            ref("grandparent"), ref("other"), ref("parent"), ref("child"),
        )

    def test_uncached_closure_matches_cached(self, chain_snapshot):
        cached = ExtensionGraph(chain_snapshot)
        uncached = ExtensionGraph(chain_snapshot, cache_ancestor_chains=False)

        assert cached.ancestor_chains() == uncached.ancestor_chains()

    def test_cache_hits_counted(self, chain_snapshot):
        graph = ExtensionGraph(chain_snapshot)
        hits = graph.cache_hits

        graph.ancestors(ref("child"))

        assert graph.cache_hits == hits + 1

    def test_identical_duplicates_are_not_conflicts(self):
        snapshot = load({
            "base": {"columns": {"id": "integer"}, "primary_key": ["id"]},
            "sub": {
                "columns": {"id": "integer"},
                "primary_key": ["id"],
                "foreign_keys": [
                    fk("sub", ["id"], "base", ["id"], name="first"),
                    fk("sub", ["id"], "base", ["id"], name="second"),
                ],
            },
        })

        graph = ExtensionGraph(snapshot)

        assert graph.extension_of(ref("sub")).foreign_key.name == "first"


class TestConflictingExtension:
    """Tests for tables with two Extension candidates"""

    def test_strict_mode_raises(self, conflict_snapshot):
        with pytest.raises(ConflictingExtensionError) as exc_info:
            ExtensionGraph(conflict_snapshot)

        error = exc_info.value
        assert error.table == "both"
        assert set(error.foreign_keys) == {"both_left", "both_right"}
        assert error.context.table == "both"

    def test_lenient_mode_records_error(self, conflict_snapshot):
        graph = ExtensionGraph(conflict_snapshot, fail_fast=False)

        assert len(graph.errors) == 1
        assert isinstance(graph.errors[0], ConflictingExtensionError)
        assert graph.is_failed(ref("both"))
        assert graph.extension_of(ref("both")) is None
        assert ref("both") not in graph.roots()
        # Tables below the conflicting one keep their own extension
        assert graph.ancestors(ref("below")) == (ref("both"),)


class TestCyclicExtension:
    """Tests for extension cycles"""

    def test_strict_mode_raises(self, cycle_snapshot):
        with pytest.raises(CyclicExtensionError) as exc_info:
            ExtensionGraph(cycle_snapshot)

        assert set(exc_info.value.tables) == {"a", "b"}
        assert "->" in exc_info.value.message

    def test_lenient_mode_marks_cycle_and_lead_in(self, cycle_snapshot):
        graph = ExtensionGraph(cycle_snapshot, fail_fast=False)

        assert len(graph.errors) == 1
        for name in ("a", "b", "c"):
            assert graph.is_failed(ref(name))
            assert graph.extension_of(ref(name)) is None
            assert graph.ancestors(ref(name)) == ()
        assert not graph.is_failed(ref("d"))
        assert graph.roots() == (ref("d"),)
        assert graph.generation_order() == (ref("d"),)

    def test_lenient_uncached_closure_terminates(self, cycle_snapshot):
        graph = ExtensionGraph(cycle_snapshot, fail_fast=False, cache_ancestor_chains=False)

        assert graph.ancestors(ref("a")) == ()
        assert graph.ancestors(ref("c")) == ()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
