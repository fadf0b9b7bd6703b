"""
Unit Tests for Triangular Same-As Detection
"""
import copy
import pytest
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from sql_relations.classifier import (
    ExtensionGraph,
    RelationTag,
    classify_foreign_key,
    detect_triangles,
)
from sql_relations.facts import DictFactsProvider, TableRef


def ref(name):
    return TableRef(None, name)


def references(table, columns):
    return {"table": table, "columns": columns}


TRIANGLE_TABLES = {
    "grandparent": {"columns": {"id": "integer"}, "primary_key": ["id"]},
    "parent": {
        "columns": {"id": "integer"},
        "primary_key": ["id"],
        "foreign_keys": [{"name": "parent_ext", "columns": ["id"],
                          "references": references("grandparent", ["id"])}],
    },
    "sibling": {
        "columns": {"id": "integer", "grandparent_id": "integer"},
        "primary_key": ["id"],
        "unique": [["id", "grandparent_id"]],
        "foreign_keys": [{"name": "sibling_grandparent", "columns": ["grandparent_id"],
                          "references": references("grandparent", ["id"])}],
    },
    "child": {
        "columns": {"id": "integer", "sibling_id": "integer"},
        "primary_key": ["id"],
        "foreign_keys": [
            {"name": "child_ext", "columns": ["id"], "references": references("parent", ["id"])},
            {"name": "child_sibling", "columns": ["sibling_id"], "references": references("sibling", ["id"])},
            {"name": "child_sibling_same_grandparent", "columns": ["sibling_id", "id"],
             "references": references("sibling", ["id", "grandparent_id"])},
        ],
    },
}


def run(tables, child="child"):
    snapshot = DictFactsProvider({"tables": tables}).load()
    graph = ExtensionGraph(snapshot)
    classifications = {
        fk: classify_foreign_key(snapshot, graph, fk) for fk in snapshot.foreign_keys()
    }
    return classifications, detect_triangles(snapshot, graph, classifications, ref(child))


def without_composite(tables):
    tables = copy.deepcopy(tables)
    tables["child"]["foreign_keys"] = tables["child"]["foreign_keys"][:2]
    return tables


class TestTriangularSameAs:
    """Tests for diamond detection and mandatory classification"""

    def test_composite_foreign_key_makes_triangle_mandatory(self):
        classifications, triangles = run(TRIANGLE_TABLES)

        assert len(triangles) == 1
        triangle = triangles[0]
        assert (triangle.child, triangle.bridge, triangle.ancestor) == (
            ref("child"), ref("sibling"), ref("grandparent"),
        )
        assert triangle.mandatory
        assert triangle.enforcing_foreign_key.name == "child_sibling_same_grandparent"
        assert triangle.child_foreign_key.name == "child_sibling"
        assert triangle.key_columns == ("sibling_id",)
        assert triangle.bridge_columns == ("grandparent_id",)
        assert triangle.ancestor_columns == ("id",)

    def test_enforcing_key_is_itself_horizontal(self):
        classifications, _ = run(TRIANGLE_TABLES)

        by_name = {fk.name: c for fk, c in classifications.items()}
        composite = by_name["child_sibling_same_grandparent"]
        assert composite.tag == RelationTag.HORIZONTAL_SAME_AS
        assert str(composite.payload.pair.host) == "child.id"
        assert str(composite.payload.pair.referenced) == "sibling.grandparent_id"

    def test_without_composite_foreign_key_is_discretionary(self):
        _, triangles = run(without_composite(TRIANGLE_TABLES))

        assert len(triangles) == 1
        assert not triangles[0].mandatory
        assert triangles[0].discretionary
        assert triangles[0].enforcing_foreign_key is None

    def test_composite_alone_forms_mandatory_triangle(self):
        tables = copy.deepcopy(TRIANGLE_TABLES)
        del tables["child"]["foreign_keys"][1]

        _, triangles = run(tables)

        assert len(triangles) == 1
        assert triangles[0].mandatory
        assert triangles[0].child_foreign_key.name == "child_sibling_same_grandparent"

    def test_bridge_extending_an_ancestor(self):
        tables = copy.deepcopy(without_composite(TRIANGLE_TABLES))
        tables["sibling"] = {
            "columns": {"id": "integer"},
            "primary_key": ["id"],
            "foreign_keys": [{"columns": ["id"], "references": references("grandparent", ["id"])}],
        }

        _, triangles = run(tables)

        assert len(triangles) == 1
        assert triangles[0].ancestor == ref("grandparent")
        assert triangles[0].bridge_columns == ("id",)
        assert not triangles[0].mandatory

    def test_root_table_has_no_triangles(self):
        _, triangles = run(TRIANGLE_TABLES, child="sibling")
        assert triangles == []

    def test_bridge_not_reaching_ancestor(self):
        tables = copy.deepcopy(without_composite(TRIANGLE_TABLES))
        tables["sibling"]["foreign_keys"] = []
        tables["sibling"]["unique"] = []

        _, triangles = run(tables)

        assert triangles == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
