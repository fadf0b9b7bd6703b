#!/usr/bin/env python3
"""
Relation Classification Example

This example demonstrates:
1. Classifying a schema described as a document
2. Classifying a live SQLite database
3. Handling extension cycles in lenient mode
4. Exporting the report
"""
import sys
import os

# Add src to path for local development
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from sql_relations import (
    ClassifierConfig,
    CyclicExtensionError,
    DatabaseConfig,
    RelationTag,
    SQLiteAdapter,
    analyze_database,
    classify_schema,
    setup_logging,
)


CATALOG = {
    "schema": "catalog",
    "tables": {
        "party": {
            "columns": {"id": "integer", "name": "text"},
            "primary_key": ["id"],
            "unique": [["id", "name"]],
        },
        "person": {
            "columns": {"id": "integer", "name": "text"},
            "primary_key": ["id"],
            "foreign_keys": [
                {"columns": ["id"], "references": {"table": "party", "columns": ["id"]}},
                {"columns": ["id", "name"], "references": {"table": "party", "columns": ["id", "name"]}},
            ],
        },
        "country": {
            "columns": {"code": "text"},
            "primary_key": ["code"],
        },
        "city": {
            "columns": {"id": "integer", "city_name": "text", "country": "text"},
            "primary_key": ["id"],
            "unique": [["id", "city_name"]],
            "foreign_keys": [
                {"columns": ["country"], "references": "country"},
            ],
        },
        "address": {
            "columns": {"id": "integer", "city_id": "integer", "city_name": "text"},
            "primary_key": ["id"],
            "foreign_keys": [
                {"columns": ["city_id", "city_name"], "references": {"table": "city", "columns": ["id", "city_name"]}},
            ],
        },
    },
}


ORGANISATION_DDL = """
CREATE TABLE organisation (id INTEGER PRIMARY KEY);
CREATE TABLE department (id INTEGER PRIMARY KEY REFERENCES organisation (id));
CREATE TABLE site (
    id INTEGER PRIMARY KEY,
    organisation_id INTEGER REFERENCES organisation (id),
    UNIQUE (id, organisation_id)
);
CREATE TABLE team (
    id INTEGER PRIMARY KEY REFERENCES department (id),
    site_id INTEGER REFERENCES site (id),
    FOREIGN KEY (site_id, id) REFERENCES site (id, organisation_id)
);
"""


def print_report(report):
    print(f"\nSchema: {report.schema_name} (run {report.run_id})")
    for classification in report.classifications:
        fk = classification.foreign_key
        print(f"  {fk.name:<28} {classification.tag.value}")
        if classification.tag in (RelationTag.VERTICAL_SAME_AS, RelationTag.HORIZONTAL_SAME_AS):
            pair = classification.payload.pair
            print(f"      {pair.host} duplicates {pair.referenced}")

    for triangle in report.triangles:
        kind = "mandatory" if triangle.mandatory else "discretionary"
        print(f"  triangle {triangle.child} -> {triangle.bridge} -> {triangle.ancestor} ({kind})")

    if report.table_lists:
        print(f"  table lists: {', '.join(str(t) for t in report.table_lists)}")
    print(f"  generation order: {', '.join(str(t) for t in report.generation_order)}")


def main():
    setup_logging(level="INFO")

    print("=" * 60)
    print("SQL Relations - Classification Example")
    print("=" * 60)

    print("\n1. Classifying a schema document...")
    print_report(classify_schema(CATALOG))

    print("\n2. Classifying a SQLite database...")
    config = DatabaseConfig(db_type="sqlite", database="organisation", sqlite_path=":memory:")
    with SQLiteAdapter(config) as adapter:
        adapter.executescript(ORGANISATION_DDL)
        report = analyze_database(adapter, ClassifierConfig(max_workers=4))
    print_report(report)

    print("\n3. Extension cycles...")
    cyclic = {
        "tables": {
            "a": {"columns": {"id": "integer"}, "primary_key": ["id"],
                  "foreign_keys": [{"columns": ["id"], "references": "b"}]},
            "b": {"columns": {"id": "integer"}, "primary_key": ["id"],
                  "foreign_keys": [{"columns": ["id"], "references": "a"}]},
        },
    }
    try:
        classify_schema(cyclic)
    except CyclicExtensionError as e:
        print(f"  strict mode: {e.message}")

    lenient = classify_schema(cyclic, ClassifierConfig(fail_fast=False))
    print(f"  lenient mode: {len(lenient.errors)} error(s) recorded, success={lenient.success}")

    print("\n4. Exporting...")
    print(report.to_yaml())


if __name__ == "__main__":
    main()
