"""
Triangular Same-As Detection

Second pass over already-classified foreign keys. A triangle forms when a
child references a bridge table that itself leads to one of the child's
ancestors. It is mandatory when a composite child foreign key forces the
bridge's onward columns to equal the child's own ancestor key.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

from ..facts.models import ForeignKey, SchemaSnapshot, Table, TableRef
from ..utils import get_logger
from .extension import ExtensionGraph
from .matcher import IdentifyingTuple, match_columns
from .models import (
    ForeignKeyClassification,
    IdentifyingSource,
    RelationTag,
    TriangularSameAs,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class _BridgeReference:
    foreign_key: ForeignKey
    key_columns: Tuple[str, ...]
    identifying_columns: Tuple[str, ...]
    plain: bool


@dataclass(frozen=True)
class _BridgeLink:
    ancestor: TableRef
    bridge_columns: Tuple[str, ...]
    ancestor_columns: Tuple[str, ...]


def _child_references(
    graph: ExtensionGraph,
    table: Table,
    classifications: Mapping[ForeignKey, ForeignKeyClassification],
) -> List[_BridgeReference]:
    """Plain and horizontal references from the child to unrelated tables"""
    references = []
    for fk in table.foreign_keys:
        bridge = fk.referenced_table
        if bridge == table.ref or graph.related(table.ref, bridge) or graph.is_failed(bridge):
            continue
        classification = classifications.get(fk)
        if classification is None:
            continue
        if classification.tag == RelationTag.PLAIN_REFERENCE:
            references.append(_BridgeReference(fk, fk.columns, fk.referenced_columns, plain=True))
        elif classification.tag == RelationTag.HORIZONTAL_SAME_AS:
            horizontal = classification.payload
            references.append(_BridgeReference(
                fk, horizontal.key_columns, horizontal.identifying_columns, plain=False,
            ))
    return references


def _bridge_links(
    snapshot: SchemaSnapshot,
    graph: ExtensionGraph,
    classifications: Mapping[ForeignKey, ForeignKeyClassification],
    bridge: TableRef,
    ancestors: FrozenSet[TableRef],
) -> List[_BridgeLink]:
    """Ways the bridge reaches one of the given ancestors"""
    links: List[_BridgeLink] = []
    seen = set()

    def add(link: _BridgeLink) -> None:
        if link not in seen:
            seen.add(link)
            links.append(link)

    bridge_key = snapshot.table(bridge).primary_key
    for ancestor in graph.ancestors(bridge):
        if ancestor not in ancestors:
            continue
        mapping = graph.column_mapping(bridge, ancestor)
        add(_BridgeLink(ancestor, bridge_key, tuple(mapping[column] for column in bridge_key)))

    for fk in snapshot.table(bridge).foreign_keys:
        if fk.referenced_table not in ancestors:
            continue
        classification = classifications.get(fk)
        if classification is None:
            continue
        if classification.tag == RelationTag.PLAIN_REFERENCE:
            add(_BridgeLink(fk.referenced_table, fk.columns, fk.referenced_columns))
        elif classification.tag == RelationTag.HORIZONTAL_SAME_AS:
            horizontal = classification.payload
            add(_BridgeLink(fk.referenced_table, horizontal.key_columns, horizontal.identifying_columns))

    return links


def _enforcing_foreign_key(
    snapshot: SchemaSnapshot,
    graph: ExtensionGraph,
    child: Table,
    reference: _BridgeReference,
    link: _BridgeLink,
) -> Optional[ForeignKey]:
    """The child foreign key that pins the bridge's onward columns to the child's ancestor key"""
    mapping = graph.column_mapping(child.ref, link.ancestor)
    inverse = {ancestor_column: column for column, ancestor_column in mapping.items()}
    if any(column not in inverse for column in link.ancestor_columns):
        return None

    expected = frozenset(
        (inverse[ancestor_column], bridge_column)
        for bridge_column, ancestor_column in zip(link.bridge_columns, link.ancestor_columns)
    )
    bridge = snapshot.table(reference.foreign_key.referenced_table)
    identifying = IdentifyingTuple(
        source=IdentifyingSource.SAME_AS,
        referenced_columns=reference.identifying_columns,
        host_columns=reference.key_columns,
    )

    for fk in child.foreign_keys:
        if fk.referenced_table != bridge.ref:
            continue
        match = match_columns(fk, identifying)
        if match is None or match.is_identity:
            continue
        remaining = frozenset(zip(match.remaining_host_columns, match.remaining_referenced_columns))
        if remaining == expected and bridge.is_unique(fk.referenced_columns):
            return fk
    return None


def detect_triangles(
    snapshot: SchemaSnapshot,
    graph: ExtensionGraph,
    classifications: Mapping[ForeignKey, ForeignKeyClassification],
    child: TableRef,
) -> List[TriangularSameAs]:
    """All triangles with ``child`` at the bottom"""
    if graph.is_failed(child):
        return []
    ancestors = frozenset(graph.ancestors(child))
    if not ancestors:
        return []

    table = snapshot.table(child)
    triangles: Dict[tuple, TriangularSameAs] = {}
    plain_keys = set()

    for reference in _child_references(graph, table, classifications):
        bridge = reference.foreign_key.referenced_table
        for link in _bridge_links(snapshot, graph, classifications, bridge, ancestors):
            key = (bridge, link.ancestor, reference.key_columns, link.bridge_columns)
            if key in triangles and (key in plain_keys or not reference.plain):
                continue

            enforcing = _enforcing_foreign_key(snapshot, graph, table, reference, link)
            triangles[key] = TriangularSameAs(
                child=child,
                bridge=bridge,
                ancestor=link.ancestor,
                child_foreign_key=reference.foreign_key,
                key_columns=reference.key_columns,
                bridge_columns=link.bridge_columns,
                ancestor_columns=link.ancestor_columns,
                mandatory=enforcing is not None,
                enforcing_foreign_key=enforcing,
            )
            if reference.plain:
                plain_keys.add(key)

    if triangles:
        logger.debug(f"Found {len(triangles)} triangles below {child}")
    return list(triangles.values())
