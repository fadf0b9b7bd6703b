"""
Unit Tests for the Relation Classification Engine
"""
import copy
import json
import pytest
import sys
import os

import yaml

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from sql_relations.classifier import (
    ExtensionGraph,
    RelationClassifier,
    RelationTag,
    classify_file,
    classify_foreign_key,
    classify_schema,
)
from sql_relations.config import ClassifierConfig
from sql_relations.facts import DictFactsProvider, TableRef
from sql_relations.utils import (
    AmbiguousSameAsError,
    ConflictingExtensionError,
    CyclicExtensionError,
    get_metrics_collector,
)


def ref(name):
    return TableRef(None, name)


def references(table, columns):
    return {"table": table, "columns": columns}


SCHEMA = {
    "name": "catalog",
    "tables": {
        "grandparent": {"columns": {"id": "integer", "label": "text"}, "primary_key": ["id"],
                        "unique": [["id", "label"]]},
        "parent": {
            "columns": {"id": "integer", "label": "text"},
            "primary_key": ["id"],
            "foreign_keys": [
                {"name": "parent_ext", "columns": ["id"], "references": references("grandparent", ["id"])},
                {"name": "parent_label", "columns": ["id", "label"],
                 "references": references("grandparent", ["id", "label"])},
            ],
        },
        "sibling": {
            "columns": {"id": "integer", "grandparent_id": "integer", "kind": "text"},
            "primary_key": ["id"],
            "unique": [["id", "grandparent_id"]],
            "foreign_keys": [
                {"name": "sibling_grandparent", "columns": ["grandparent_id"],
                 "references": references("grandparent", ["id"])},
                {"name": "sibling_kind", "columns": ["kind"], "references": references("kind", ["name"])},
            ],
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
        "orphan": {
            "columns": {"id": "integer", "sibling_id": "integer"},
            "primary_key": ["id"],
            "foreign_keys": [
                {"name": "orphan_sibling", "columns": ["sibling_id"], "references": references("sibling", ["id"])},
            ],
        },
        "kind": {"columns": {"name": "text"}, "primary_key": ["name"]},
    },
}

EXPECTED_TAGS = {
    "parent_ext": RelationTag.EXTENSION,
    "parent_label": RelationTag.VERTICAL_SAME_AS,
    "sibling_grandparent": RelationTag.PLAIN_REFERENCE,
    "sibling_kind": RelationTag.PLAIN_REFERENCE,
    "child_ext": RelationTag.EXTENSION,
    "child_sibling": RelationTag.PLAIN_REFERENCE,
    "child_sibling_same_grandparent": RelationTag.HORIZONTAL_SAME_AS,
    "orphan_sibling": RelationTag.PLAIN_REFERENCE,
}


@pytest.fixture
def snapshot():
    return DictFactsProvider(SCHEMA).load()


@pytest.fixture
def classifier():
    return RelationClassifier(ClassifierConfig())


def tags(report):
    return {c.foreign_key.name: c.tag for c in report.classifications}


class TestClassifyForeignKey:
    """Tests for the per-foreign-key state machine"""

    def test_every_foreign_key_gets_one_tag(self, snapshot):
        graph = ExtensionGraph(snapshot)

        results = {fk.name: classify_foreign_key(snapshot, graph, fk).tag for fk in snapshot.foreign_keys()}

        assert results == EXPECTED_TAGS

    def test_extension_payload(self, snapshot):
        graph = ExtensionGraph(snapshot)
        foreign_key = snapshot.get_table("child").foreign_keys[0]

        classification = classify_foreign_key(snapshot, graph, foreign_key)

        assert classification.payload.ancestor == ref("parent")
        assert not classification.is_same_as

    def test_plain_reference_has_no_payload(self, snapshot):
        graph = ExtensionGraph(snapshot)
        foreign_key = snapshot.get_table("orphan").foreign_keys[0]

        assert classify_foreign_key(snapshot, graph, foreign_key).payload is None


class TestRelationClassifier:
    """Tests for full classification runs"""

    def test_report_contents(self, snapshot, classifier):
        report = classifier.classify(snapshot)

        assert report.schema_name == "catalog"
        assert tags(report) == EXPECTED_TAGS
        assert report.success
        assert report.run_id
        assert report.ancestors_of(ref("child")) == (ref("parent"), ref("grandparent"))
        assert set(report.roots) == {ref("grandparent"), ref("sibling"), ref("orphan"), ref("kind")}
        assert report.table_lists == (ref("kind"),)
        assert report.table_list_references == {ref("sibling"): ("kind",)}

    def test_generation_order_puts_ancestors_first(self, snapshot, classifier):
        order = classifier.classify(snapshot).generation_order

        assert order.index(ref("grandparent")) < order.index(ref("parent")) < order.index(ref("child"))

    def test_triangles(self, snapshot, classifier):
        report = classifier.classify(snapshot)

        assert len(report.triangles) == 1
        triangle = report.triangles_for(ref("child"))[0]
        assert triangle.bridge == ref("sibling")
        assert triangle.ancestor == ref("grandparent")
        assert triangle.mandatory
        assert report.triangles_for(ref("orphan")) == []

    def test_discretionary_triangles_can_be_excluded(self):
        schema = copy.deepcopy(SCHEMA)
        schema["tables"]["child"]["foreign_keys"] = schema["tables"]["child"]["foreign_keys"][:2]
        snapshot = DictFactsProvider(schema).load()

        included = RelationClassifier(ClassifierConfig()).classify(snapshot)
        excluded = RelationClassifier(
            ClassifierConfig(include_discretionary_triangles=False)
        ).classify(snapshot)

        assert [t.mandatory for t in included.triangles] == [False]
        assert excluded.triangles == ()

    def test_idempotent(self, snapshot, classifier):
        first = classifier.classify(snapshot)
        second = classifier.classify(snapshot)

        assert first.classifications == second.classifications
        assert first.triangles == second.triangles
        assert first.ancestor_chains == second.ancestor_chains

    def test_parallel_matches_serial(self, snapshot):
        serial = RelationClassifier(ClassifierConfig(max_workers=1)).classify(snapshot)
        parallel = RelationClassifier(ClassifierConfig(max_workers=4)).classify(snapshot)

        assert serial.classifications == parallel.classifications
        assert serial.triangles == parallel.triangles

    def test_lookup_helpers(self, snapshot, classifier):
        report = classifier.classify(snapshot)

        by_name = report.classification_for("parent_label")
        assert by_name.tag == RelationTag.VERTICAL_SAME_AS
        assert report.classification_for(by_name.foreign_key) is by_name
        assert report.classification_for("missing") is None
        assert len(report.by_tag("extension")) == 2
        assert report.tag_counts()["plain_reference"] == 4

    def test_export(self, snapshot, classifier, tmp_path):
        report = classifier.classify(snapshot)

        data = json.loads(report.to_json())
        assert data["schema"] == "catalog"
        assert data["tag_counts"]["horizontal_same_as"] == 1
        assert data["triangles"][0]["mandatory"] is True
        assert data["generation_order"][0] == "grandparent"

        path = tmp_path / "out" / "report.yaml"
        report.save(str(path))
        assert yaml.safe_load(path.read_text())["schema"] == "catalog"

    def test_records_metrics(self, snapshot, classifier):
        collector = get_metrics_collector()
        collector.reset()

        classifier.classify(snapshot)

        assert collector.get_counter("foreign_key_classifications_total", {"tag": "extension"}) == 2
        assert collector.get_counter("triangular_same_as_total", {"mandatory": "true"}) == 1
        assert collector.get_counter("classification_runs_total", {"success": "true"}) == 1


class TestFailureModes:
    """Tests for strict and lenient handling of schema errors"""

    CYCLE = {
        "tables": {
            "a": {"columns": {"id": "integer"}, "primary_key": ["id"],
                  "foreign_keys": [{"columns": ["id"], "references": references("b", ["id"])}]},
            "b": {"columns": {"id": "integer"}, "primary_key": ["id"],
                  "foreign_keys": [{"columns": ["id"], "references": references("a", ["id"])}]},
            "c": {"columns": {"id": "integer", "a_id": "integer"}, "primary_key": ["id"],
                  "foreign_keys": [{"columns": ["a_id"], "references": references("a", ["id"])}]},
        },
    }

    CONFLICT = {
        "tables": {
            "left": {"columns": {"id": "integer"}, "primary_key": ["id"]},
            "right": {"columns": {"id": "integer"}, "primary_key": ["id"]},
            "both": {"columns": {"id": "integer"}, "primary_key": ["id"],
                     "foreign_keys": [
                         {"columns": ["id"], "references": references("left", ["id"])},
                         {"columns": ["id"], "references": references("right", ["id"])},
                     ]},
        },
    }

    AMBIGUOUS = {
        "tables": {
            "t": {"columns": {"id": "integer", "code": {"type": "text", "unique": True}},
                  "primary_key": ["id"], "unique": [["id", "code"]]},
            "s": {"columns": {"id": "integer", "a": "integer", "b": "text"}, "primary_key": ["id"],
                  "foreign_keys": [{"name": "s_t", "columns": ["a", "b"],
                                    "references": references("t", ["id", "code"])}]},
        },
    }

    def test_cycle_raises_in_strict_mode(self, classifier):
        with pytest.raises(CyclicExtensionError):
            classifier.classify(DictFactsProvider(self.CYCLE).load())

    def test_cycle_recorded_in_lenient_mode(self):
        report = RelationClassifier(ClassifierConfig(fail_fast=False)).classify(
            DictFactsProvider(self.CYCLE).load()
        )

        assert not report.success
        assert isinstance(report.errors[0], CyclicExtensionError)
        assert report.by_tag(RelationTag.EXTENSION) == []
        assert [c.foreign_key.table for c in report.classifications] == [ref("c")]
        assert report.to_dict()["errors"][0]["error_type"] == "CyclicExtensionError"

    def test_conflict_raises_in_strict_mode(self, classifier):
        with pytest.raises(ConflictingExtensionError):
            classifier.classify(DictFactsProvider(self.CONFLICT).load())

    def test_conflict_recorded_in_lenient_mode(self):
        report = RelationClassifier(ClassifierConfig(fail_fast=False)).classify(
            DictFactsProvider(self.CONFLICT).load()
        )

        assert isinstance(report.errors[0], ConflictingExtensionError)
        assert report.classifications == ()

    def test_ambiguity_reported(self, classifier):
        report = classifier.classify(DictFactsProvider(self.AMBIGUOUS).load())

        classification = report.classification_for("s_t")
        assert classification.tag == RelationTag.AMBIGUOUS
        assert len(classification.payload.candidates) == 2

    def test_ambiguity_raises_when_configured(self):
        classifier = RelationClassifier(ClassifierConfig(raise_on_ambiguity=True))

        with pytest.raises(AmbiguousSameAsError) as exc_info:
            classifier.classify(DictFactsProvider(self.AMBIGUOUS).load())

        assert exc_info.value.foreign_key == "s_t"
        assert len(exc_info.value.candidates) == 2


class TestConvenienceFunctions:
    """Tests for module-level entry points"""

    def test_classify_schema_from_document(self):
        report = classify_schema(SCHEMA, ClassifierConfig())
        assert tags(report) == EXPECTED_TAGS

    def test_classify_file(self, tmp_path):
        path = tmp_path / "schema.yaml"
        path.write_text(yaml.safe_dump(SCHEMA))

        report = classify_file(str(path), ClassifierConfig())

        assert len(report.classifications) == len(EXPECTED_TAGS)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
