"""
Vertical and Horizontal Same-As Classifiers

Both return None for a foreign key outside their category; neither raises
for a non-match.
"""
from __future__ import annotations

from typing import List, Optional, Union

from ..facts.models import ForeignKey, SchemaSnapshot
from .extension import ExtensionGraph
from .matcher import IdentifyingTuple, SubsetMatch, best_match, match_columns
from .models import (
    AmbiguousSameAs,
    HorizontalSameAs,
    IdentifyingSource,
    MultiColumnSameAs,
    VerticalSameAs,
)

VERTICAL = "vertical"
HORIZONTAL = "horizontal"


def _multi(match: SubsetMatch, kind: str) -> MultiColumnSameAs:
    return MultiColumnSameAs(
        foreign_key=match.foreign_key,
        kind=kind,
        key_columns=match.key_columns,
        identifying_columns=match.identifying_columns,
        pairs=match.remaining_pairs,
        constraint=match.identifying.constraint,
    )


def classify_vertical(
    snapshot: SchemaSnapshot,
    graph: ExtensionGraph,
    foreign_key: ForeignKey,
) -> Optional[Union[VerticalSameAs, MultiColumnSameAs]]:
    """
    Classify a foreign key from a table onto one of its ancestors

    The identifying tuple is the child's primary key mapped along the
    extension chain. The full referenced tuple must be unique on the ancestor.
    """
    child, ancestor = foreign_key.table, foreign_key.referenced_table
    if not graph.is_ancestor(ancestor, child):
        return None

    referenced = snapshot.table(ancestor)
    if not referenced.is_unique(foreign_key.referenced_columns):
        return None

    mapping = graph.column_mapping(child, ancestor)
    host_columns = tuple(mapping)
    candidates = [
        IdentifyingTuple(
            source=IdentifyingSource.EXTENSION,
            referenced_columns=tuple(mapping[column] for column in host_columns),
            host_columns=host_columns,
        ),
        IdentifyingTuple(
            source=IdentifyingSource.PRIMARY_KEY,
            referenced_columns=referenced.primary_key,
        ),
    ]
    match = best_match(foreign_key, candidates)
    # Only the extension tuple ties the referenced row to the child's own ancestor row.
    if match is None or match.identifying.source != IdentifyingSource.EXTENSION:
        return None
    if match.is_identity:
        return None

    if match.is_single_pair:
        return VerticalSameAs(
            foreign_key=foreign_key,
            ancestor=ancestor,
            identifying_columns=match.identifying_columns,
            pair=match.remaining_pairs[0],
        )
    return _multi(match, VERTICAL)


def classify_horizontal(
    snapshot: SchemaSnapshot,
    graph: ExtensionGraph,
    foreign_key: ForeignKey,
) -> Optional[Union[HorizontalSameAs, AmbiguousSameAs, MultiColumnSameAs]]:
    """
    Classify a foreign key between tables with no extension relationship

    Each uniqueness constraint of the referenced table that is a proper
    subset of the referenced columns is tried as the identifying tuple.
    Exactly one single-pair match is a HorizontalSameAs; several are
    reported as AmbiguousSameAs with every candidate.
    """
    if graph.related(foreign_key.table, foreign_key.referenced_table):
        return None

    referenced = snapshot.table(foreign_key.referenced_table)
    referenced_set = frozenset(foreign_key.referenced_columns)

    singles: List[HorizontalSameAs] = []
    multis: List[SubsetMatch] = []
    for constraint in referenced.uniqueness_constraints:
        if not constraint.column_set < referenced_set:
            continue
        source = IdentifyingSource.PRIMARY_KEY if constraint.is_primary else IdentifyingSource.UNIQUE
        match = match_columns(
            foreign_key,
            IdentifyingTuple(source=source, referenced_columns=constraint.columns, constraint=constraint),
        )
        if match is None:
            continue
        if match.is_single_pair:
            singles.append(HorizontalSameAs(
                foreign_key=foreign_key,
                key_columns=match.key_columns,
                identifying_columns=match.identifying_columns,
                constraint=constraint,
                pair=match.remaining_pairs[0],
            ))
        elif match.is_multi_pair:
            multis.append(match)

    if len(singles) == 1:
        return singles[0]
    if singles:
        return AmbiguousSameAs(foreign_key=foreign_key, candidates=tuple(singles))
    if multis:
        widest = min(multis, key=lambda m: len(m.remaining_positions))
        return _multi(widest, HORIZONTAL)
    return None
