"""
Integration Tests for Relation Classification over SQLite
Builds real schemas with DDL, introspects them and classifies the foreign keys
"""
import pytest
import sys
import os

import yaml

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from sql_relations.adapters import SQLiteAdapter, create_adapter
from sql_relations.classifier import RelationClassifier, RelationTag, analyze_database
from sql_relations.config import ClassifierConfig, DatabaseConfig, DatabaseType
from sql_relations.facts import DatabaseFactsProvider, TableRef
from sql_relations.utils import CyclicExtensionError


def ref(name):
    return TableRef(None, name)


VERTICAL_DDL = """
CREATE TABLE parent (
    id INTEGER PRIMARY KEY,
    name TEXT,
    UNIQUE (id, name)
);
CREATE TABLE child (
    id INTEGER PRIMARY KEY REFERENCES parent (id),
    name TEXT,
    FOREIGN KEY (id, name) REFERENCES parent (id, name)
);
"""

HORIZONTAL_DDL = """
CREATE TABLE brother (
    id INTEGER PRIMARY KEY,
    brother_name TEXT,
    UNIQUE (id, brother_name)
);
CREATE TABLE child (
    id INTEGER PRIMARY KEY,
    brother_id INTEGER,
    child_name TEXT,
    FOREIGN KEY (brother_id, child_name) REFERENCES brother (id, brother_name)
);
"""

TRIANGULAR_TABLES = """
CREATE TABLE grandparent (
    id INTEGER PRIMARY KEY
);
CREATE TABLE parent (
    id INTEGER PRIMARY KEY REFERENCES grandparent (id)
);
CREATE TABLE sibling (
    id INTEGER PRIMARY KEY,
    grandparent_id INTEGER REFERENCES grandparent (id),
    UNIQUE (id, grandparent_id)
);
"""

TRIANGULAR_DDL = TRIANGULAR_TABLES + """
CREATE TABLE child (
    id INTEGER PRIMARY KEY REFERENCES parent (id),
    sibling_id INTEGER REFERENCES sibling (id),
    FOREIGN KEY (sibling_id, id) REFERENCES sibling (id, grandparent_id)
);
"""

DISCRETIONARY_DDL = TRIANGULAR_TABLES + """
CREATE TABLE child (
    id INTEGER PRIMARY KEY REFERENCES parent (id),
    sibling_id INTEGER REFERENCES sibling (id)
);
"""

CYCLE_DDL = """
CREATE TABLE a (id INTEGER PRIMARY KEY REFERENCES b (id));
CREATE TABLE b (id INTEGER PRIMARY KEY REFERENCES a (id));
"""

TABLE_LIST_DDL = """
CREATE TABLE color (name TEXT PRIMARY KEY);
CREATE TABLE product (
    id INTEGER PRIMARY KEY,
    color TEXT REFERENCES color
);
"""


@pytest.fixture
def adapter():
    """In-memory SQLite adapter"""
    config = DatabaseConfig(
        db_type=DatabaseType.SQLITE,
        database="relations",
        sqlite_path=":memory:",
    )
    adapter = create_adapter(config)
    adapter.connect()
    yield adapter
    adapter.disconnect()


@pytest.fixture
def classifier():
    return RelationClassifier(ClassifierConfig())


def classify(adapter, classifier, ddl):
    adapter.executescript(ddl)
    return classifier.classify(DatabaseFactsProvider(adapter).load())


def find(report, table, referenced_columns):
    for classification in report.classifications:
        fk = classification.foreign_key
        if fk.table == ref(table) and fk.referenced_columns == tuple(referenced_columns):
            return classification
    raise AssertionError(f"No foreign key from {table} onto {referenced_columns}")


class TestSQLiteClassification:
    """End-to-end classification of introspected schemas"""

    def test_adapter_type(self, adapter):
        assert isinstance(adapter, SQLiteAdapter)

    def test_vertical_same_as(self, adapter, classifier):
        report = classify(adapter, classifier, VERTICAL_DDL)

        assert find(report, "child", ["id"]).tag == RelationTag.EXTENSION
        vertical = find(report, "child", ["id", "name"])
        assert vertical.tag == RelationTag.VERTICAL_SAME_AS
        assert len(vertical.foreign_key.referenced_columns) == 2
        assert str(vertical.payload.pair.host) == "child.name"
        assert str(vertical.payload.pair.referenced) == "parent.name"

    def test_horizontal_same_as(self, adapter, classifier):
        report = classify(adapter, classifier, HORIZONTAL_DDL)

        horizontal = find(report, "child", ["id", "brother_name"])
        assert horizontal.tag == RelationTag.HORIZONTAL_SAME_AS
        assert str(horizontal.payload.pair.host) == "child.child_name"
        assert str(horizontal.payload.pair.referenced) == "brother.brother_name"

    def test_mandatory_triangle(self, adapter, classifier):
        report = classify(adapter, classifier, TRIANGULAR_DDL)

        triangles = report.triangles_for(ref("child"))
        assert len(triangles) == 1
        assert triangles[0].bridge == ref("sibling")
        assert triangles[0].ancestor == ref("grandparent")
        assert triangles[0].mandatory

    def test_discretionary_triangle(self, adapter, classifier):
        report = classify(adapter, classifier, DISCRETIONARY_DDL)

        triangles = report.triangles_for(ref("child"))
        assert len(triangles) == 1
        assert triangles[0].mandatory is False

    def test_extension_cycle(self, adapter, classifier):
        with pytest.raises(CyclicExtensionError):
            classify(adapter, classifier, CYCLE_DDL)

    def test_table_list_with_implicit_reference(self, adapter, classifier):
        report = classify(adapter, classifier, TABLE_LIST_DDL)

        assert report.table_lists == (ref("color"),)
        assert report.table_list_references == {ref("product"): ("color",)}
        assert find(report, "product", ["name"]).tag == RelationTag.PLAIN_REFERENCE

    def test_analyze_database_and_save(self, adapter, tmp_path):
        adapter.executescript(TRIANGULAR_DDL)

        report = analyze_database(adapter, ClassifierConfig(max_workers=2))
        path = tmp_path / "relations.yaml"
        report.save(str(path))

        saved = yaml.safe_load(path.read_text())
        assert saved["schema"] == "relations"
        assert saved["generation_order"][0] == "grandparent"
        assert saved["triangles"][0]["mandatory"] is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
