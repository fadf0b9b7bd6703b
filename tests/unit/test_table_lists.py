"""
Unit Tests for Table-List Detection
"""
import pytest
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from sql_relations.classifier import (
    ExtensionGraph,
    find_table_lists,
    is_textual,
    table_list_references,
)
from sql_relations.facts import DictFactsProvider, TableRef


def ref(name):
    return TableRef(None, name)


@pytest.fixture
def snapshot():
    return DictFactsProvider({"tables": {
        "color": {"columns": {"name": "varchar(32)"}, "primary_key": ["name"]},
        "size": {"columns": {"label": "text"}, "primary_key": ["label"]},
        "counter": {"columns": {"value": "integer"}, "primary_key": ["value"]},
        "product": {
            "columns": {"id": "integer", "color": "text", "counter": "integer"},
            "primary_key": ["id"],
            "foreign_keys": [
                {"columns": ["color"], "references": {"table": "color", "columns": ["name"]}},
                {"columns": ["counter"], "references": {"table": "counter", "columns": ["value"]}},
            ],
        },
        "variant": {
            "columns": {"id": "integer", "size": "text"},
            "primary_key": ["id"],
            "foreign_keys": [
                {"columns": ["id"], "references": {"table": "product", "columns": ["id"]}},
                {"columns": ["size"], "references": {"table": "size", "columns": ["label"]}},
            ],
        },
    }}).load()


class TestTextualTypes:
    """Tests for textual type recognition"""

    @pytest.mark.parametrize("data_type", ["TEXT", "varchar(255)", "character varying", "CHAR(2)", "citext"])
    def test_textual(self, data_type):
        assert is_textual(data_type)

    @pytest.mark.parametrize("data_type", ["integer", "uuid", "numeric(10, 2)", "timestamp"])
    def test_not_textual(self, data_type):
        assert not is_textual(data_type)


class TestTableLists:
    """Tests for enumeration tables referenced by root tables"""

    def test_find_table_lists(self, snapshot):
        graph = ExtensionGraph(snapshot)

        lists = find_table_lists(snapshot, graph)

        # counter is not textual; size is only referenced by a non-root table
        assert lists == (ref("color"),)

    def test_columns_referring_to_table_lists(self, snapshot):
        graph = ExtensionGraph(snapshot)

        references = table_list_references(snapshot, find_table_lists(snapshot, graph))

        assert references == {ref("product"): ("color",)}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
