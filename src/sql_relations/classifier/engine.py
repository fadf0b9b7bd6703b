"""
Relation Classification Engine

Runs the full pipeline over one immutable snapshot:
facts -> Extension graph -> per-foreign-key tags -> triangles -> report.

The Extension graph is built first and shared read-only, so per-foreign-key
and per-table work can be spread over a thread pool.
"""
from __future__ import annotations

import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable, List, Optional, TypeVar

from ..adapters.base import BaseDatabaseAdapter
from ..config import ClassifierConfig, get_config
from ..facts.models import ForeignKey, SchemaSnapshot
from ..facts.providers import DatabaseFactsProvider, FileFactsProvider, load_snapshot
from ..utils import (
    AmbiguousSameAsError,
    ClassifierMetrics,
    ErrorContext,
    RelationsError,
    get_logger,
    get_run_id,
    log_context,
    log_operation,
)
from .extension import ExtensionGraph, detect_extension
from .models import (
    ForeignKeyClassification,
    RelationTag,
    SchemaClassification,
)
from .same_as import classify_horizontal, classify_vertical
from .table_lists import find_table_lists, table_list_references
from .triangular import detect_triangles

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

_TAGS = {
    "VerticalSameAs": RelationTag.VERTICAL_SAME_AS,
    "HorizontalSameAs": RelationTag.HORIZONTAL_SAME_AS,
    "AmbiguousSameAs": RelationTag.AMBIGUOUS,
    "MultiColumnSameAs": RelationTag.MULTI_COLUMN_SAME_AS,
}


def _tagged(foreign_key: ForeignKey, payload: Any) -> ForeignKeyClassification:
    return ForeignKeyClassification(foreign_key, _TAGS[type(payload).__name__], payload)


def classify_foreign_key(
    snapshot: SchemaSnapshot,
    graph: ExtensionGraph,
    foreign_key: ForeignKey,
    raise_on_ambiguity: bool = False,
) -> ForeignKeyClassification:
    """
    Assign exactly one tag to a foreign key

    Tries Extension, then Vertical, then Horizontal; anything left is a
    plain reference.
    """
    extension = detect_extension(snapshot, foreign_key)
    if extension is not None and graph.extension_of(foreign_key.table) is not None:
        return ForeignKeyClassification(foreign_key, RelationTag.EXTENSION, extension)

    vertical = classify_vertical(snapshot, graph, foreign_key)
    if vertical is not None:
        return _tagged(foreign_key, vertical)

    horizontal = classify_horizontal(snapshot, graph, foreign_key)
    if horizontal is not None:
        classification = _tagged(foreign_key, horizontal)
        if raise_on_ambiguity and classification.tag == RelationTag.AMBIGUOUS:
            raise AmbiguousSameAsError(
                foreign_key=foreign_key.name,
                candidates=horizontal.constraint_names,
                context=ErrorContext(
                    schema_name=snapshot.name,
                    table=str(foreign_key.table),
                    foreign_key=foreign_key.name,
                ),
            )
        return classification

    return ForeignKeyClassification(foreign_key, RelationTag.PLAIN_REFERENCE)


class RelationClassifier:
    """
    Classifies every foreign key of a schema snapshot

    Usage:
        classifier = RelationClassifier(ClassifierConfig(max_workers=4))
        report = classifier.classify(snapshot)
        for triangle in report.triangles:
            print(triangle.child, triangle.mandatory)
    """

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or get_config().classifier

    def _map(self, func: Callable[[T], R], items: Iterable[T], component: str) -> List[R]:
        """Apply ``func`` to every item, on a thread pool when configured, preserving order"""
        items = list(items)
        run_id = get_run_id()

        def call(item: T) -> R:
            with log_context(run_id=run_id, component=component):
                return func(item)

        if self.config.max_workers <= 1 or len(items) <= 1:
            return [call(item) for item in items]

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            return list(executor.map(call, items))

    def classify(self, snapshot: SchemaSnapshot) -> SchemaClassification:
        run_id = str(uuid.uuid4())
        start_time = time.time()
        foreign_key_count = sum(len(table.foreign_keys) for table in snapshot)

        with log_context(run_id=run_id, component="classifier"):
            try:
                with log_operation(
                    logger,
                    "classify_schema",
                    schema=snapshot.name,
                    tables=len(snapshot),
                    foreign_keys=foreign_key_count,
                ) as op:
                    report = self._classify(snapshot, run_id)
                    op["triangles"] = len(report.triangles)
                    op["errors"] = len(report.errors)
            except RelationsError as e:
                ClassifierMetrics.record_error(type(e).__name__, e.category.value)
                ClassifierMetrics.record_run(
                    time.time() - start_time, False, len(snapshot), foreign_key_count,
                )
                raise

        report.duration_ms = (time.time() - start_time) * 1000
        for error in report.errors:
            ClassifierMetrics.record_error(type(error).__name__, error.category.value)
        ClassifierMetrics.record_run(
            report.duration_ms / 1000, report.success, len(snapshot), foreign_key_count,
        )
        return report

    def _classify(self, snapshot: SchemaSnapshot, run_id: str) -> SchemaClassification:
        graph = ExtensionGraph(
            snapshot,
            fail_fast=self.config.fail_fast,
            cache_ancestor_chains=self.config.cache_ancestor_chains,
        )
        logger.debug(
            f"Extension graph: {len(graph.extensions())} extensions, {len(graph.roots())} roots"
        )

        foreign_keys = [fk for fk in snapshot.foreign_keys() if not graph.is_failed(fk.table)]
        classifications = self._map(
            lambda fk: classify_foreign_key(snapshot, graph, fk, self.config.raise_on_ambiguity),
            foreign_keys,
            component="same_as",
        )
        by_foreign_key = {c.foreign_key: c for c in classifications}
        for classification in classifications:
            ClassifierMetrics.record_tag(classification.tag.value)

        children = [
            table.ref for table in snapshot
            if not graph.is_failed(table.ref) and graph.parent(table.ref) is not None
        ]
        per_child = self._map(
            lambda child: detect_triangles(snapshot, graph, by_foreign_key, child),
            children,
            component="triangular",
        )
        triangles = [
            triangle
            for found in per_child
            for triangle in found
            if triangle.mandatory or self.config.include_discretionary_triangles
        ]
        for triangle in triangles:
            ClassifierMetrics.record_triangle(triangle.mandatory)

        table_lists = find_table_lists(snapshot, graph)
        report = SchemaClassification(
            schema_name=snapshot.name,
            classifications=tuple(classifications),
            triangles=tuple(triangles),
            ancestor_chains=graph.ancestor_chains(),
            roots=graph.roots(),
            table_lists=table_lists,
            table_list_references=table_list_references(snapshot, table_lists),
            generation_order=graph.generation_order(),
            errors=list(graph.errors),
            run_id=run_id,
        )
        ClassifierMetrics.set_cache_stats(graph.cache_hits, graph.cache_misses, "ancestor_chains")
        return report


def classify_schema(source: Any, config: Optional[ClassifierConfig] = None) -> SchemaClassification:
    """
    Classify a schema from any supported source

    Accepts a SchemaSnapshot, a facts provider, a database adapter, a schema
    document or a path to a YAML/JSON schema file.
    """
    return RelationClassifier(config).classify(load_snapshot(source))


def classify_file(path: str, config: Optional[ClassifierConfig] = None) -> SchemaClassification:
    return RelationClassifier(config).classify(FileFactsProvider(path).load())


def analyze_database(
    adapter: BaseDatabaseAdapter,
    config: Optional[ClassifierConfig] = None,
) -> SchemaClassification:
    """Introspect a live database and classify its foreign keys"""
    snapshot = DatabaseFactsProvider(adapter).load()
    logger.info(f"Introspected {len(snapshot)} tables from {adapter.database_type.value}")
    return RelationClassifier(config).classify(snapshot)
