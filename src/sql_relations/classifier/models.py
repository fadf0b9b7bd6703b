"""
Classification Result Models

Tagged, immutable results produced by the relation classifier. Every foreign
key receives exactly one ForeignKeyClassification; triangular records sit
above them and reference several foreign keys at once.
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from ..facts.models import ColumnPair, ForeignKey, TableRef, UniqueConstraint
from ..utils import RelationsError


class RelationTag(str, Enum):
    """Per-foreign-key classification tag"""
    EXTENSION = "extension"
    VERTICAL_SAME_AS = "vertical_same_as"
    HORIZONTAL_SAME_AS = "horizontal_same_as"
    AMBIGUOUS = "ambiguous"
    MULTI_COLUMN_SAME_AS = "multi_column_same_as"
    PLAIN_REFERENCE = "plain_reference"


class IdentifyingSource(str, Enum):
    """Where an identifying tuple comes from"""
    PRIMARY_KEY = "primary_key"
    UNIQUE = "unique"
    EXTENSION = "extension"
    SAME_AS = "same_as"


def _columns(values: Tuple[str, ...]) -> List[str]:
    return list(values)


@dataclass(frozen=True)
class Extension:
    """Primary-key-to-primary-key link from a child onto its parent"""
    foreign_key: ForeignKey
    child: TableRef
    ancestor: TableRef

    @property
    def column_pairs(self) -> Tuple[ColumnPair, ...]:
        return self.foreign_key.column_pairs

    @property
    def column_map(self) -> Dict[str, str]:
        """Child primary key column to parent primary key column"""
        return dict(zip(self.foreign_key.columns, self.foreign_key.referenced_columns))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "child": str(self.child),
            "ancestor": str(self.ancestor),
            "pairs": [pair.to_dict() for pair in self.column_pairs],
        }


@dataclass(frozen=True)
class VerticalSameAs:
    """A child column duplicating a column of one of its ancestors"""
    foreign_key: ForeignKey
    ancestor: TableRef
    identifying_columns: Tuple[str, ...]
    pair: ColumnPair

    @property
    def child_column(self) -> str:
        return self.pair.host.column

    @property
    def ancestor_column(self) -> str:
        return self.pair.referenced.column

    @property
    def referenced_columns(self) -> Tuple[str, ...]:
        return self.foreign_key.referenced_columns

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ancestor": str(self.ancestor),
            "identifying_columns": _columns(self.identifying_columns),
            "pair": self.pair.to_dict(),
        }


@dataclass(frozen=True)
class HorizontalSameAs:
    """A column duplicating a column of an unrelated table, identified by a unique constraint"""
    foreign_key: ForeignKey
    key_columns: Tuple[str, ...]
    identifying_columns: Tuple[str, ...]
    constraint: UniqueConstraint
    pair: ColumnPair

    @property
    def host_column(self) -> str:
        return self.pair.host.column

    @property
    def referenced_column(self) -> str:
        return self.pair.referenced.column

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key_columns": _columns(self.key_columns),
            "identifying_columns": _columns(self.identifying_columns),
            "constraint": self.constraint.name,
            "pair": self.pair.to_dict(),
        }


@dataclass(frozen=True)
class MultiColumnSameAs:
    """A foreign key encoding several Same-As pairs at once"""
    foreign_key: ForeignKey
    kind: str
    key_columns: Tuple[str, ...]
    identifying_columns: Tuple[str, ...]
    pairs: Tuple[ColumnPair, ...]
    constraint: Optional[UniqueConstraint] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "key_columns": _columns(self.key_columns),
            "identifying_columns": _columns(self.identifying_columns),
            "constraint": self.constraint.name if self.constraint else None,
            "pairs": [pair.to_dict() for pair in self.pairs],
        }


@dataclass(frozen=True)
class AmbiguousSameAs:
    """Several uniqueness constraints each yield a valid horizontal match"""
    foreign_key: ForeignKey
    candidates: Tuple[HorizontalSameAs, ...]

    @property
    def constraint_names(self) -> Tuple[str, ...]:
        return tuple(candidate.constraint.name for candidate in self.candidates)

    def to_dict(self) -> Dict[str, Any]:
        return {"candidates": [candidate.to_dict() for candidate in self.candidates]}


@dataclass(frozen=True)
class TriangularSameAs:
    """
    Diamond over (child, bridge, ancestor)

    The child reaches the ancestor through its extension chain and through a
    reference to the bridge. ``mandatory`` is set when a child foreign key
    forces both paths onto the same ancestor row; ``enforcing_foreign_key``
    names it.
    """
    child: TableRef
    bridge: TableRef
    ancestor: TableRef
    child_foreign_key: ForeignKey
    key_columns: Tuple[str, ...]
    bridge_columns: Tuple[str, ...]
    ancestor_columns: Tuple[str, ...]
    mandatory: bool
    enforcing_foreign_key: Optional[ForeignKey] = None

    @property
    def discretionary(self) -> bool:
        return not self.mandatory

    def to_dict(self) -> Dict[str, Any]:
        return {
            "child": str(self.child),
            "bridge": str(self.bridge),
            "ancestor": str(self.ancestor),
            "child_foreign_key": self.child_foreign_key.name,
            "key_columns": _columns(self.key_columns),
            "bridge_columns": _columns(self.bridge_columns),
            "ancestor_columns": _columns(self.ancestor_columns),
            "mandatory": self.mandatory,
            "enforcing_foreign_key": (
                self.enforcing_foreign_key.name if self.enforcing_foreign_key else None
            ),
        }


Payload = Union[Extension, VerticalSameAs, HorizontalSameAs, MultiColumnSameAs, AmbiguousSameAs, None]


@dataclass(frozen=True)
class ForeignKeyClassification:
    """The single tag assigned to one foreign key, with its payload"""
    foreign_key: ForeignKey
    tag: RelationTag
    payload: Payload = None

    @property
    def is_same_as(self) -> bool:
        return self.tag in (
            RelationTag.VERTICAL_SAME_AS,
            RelationTag.HORIZONTAL_SAME_AS,
            RelationTag.MULTI_COLUMN_SAME_AS,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "foreign_key": self.foreign_key.to_dict(),
            "tag": self.tag.value,
            "payload": self.payload.to_dict() if self.payload is not None else None,
        }


@dataclass
class SchemaClassification:
    """Complete classification report for one schema snapshot"""
    schema_name: str
    classifications: Tuple[ForeignKeyClassification, ...] = ()
    triangles: Tuple[TriangularSameAs, ...] = ()
    ancestor_chains: Dict[TableRef, Tuple[TableRef, ...]] = field(default_factory=dict)
    roots: Tuple[TableRef, ...] = ()
    table_lists: Tuple[TableRef, ...] = ()
    table_list_references: Dict[TableRef, Tuple[str, ...]] = field(default_factory=dict)
    generation_order: Tuple[TableRef, ...] = ()
    errors: List[RelationsError] = field(default_factory=list)
    run_id: Optional[str] = None
    duration_ms: float = 0.0
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def success(self) -> bool:
        return not self.errors

    def classification_for(self, foreign_key: Union[ForeignKey, str]) -> Optional[ForeignKeyClassification]:
        """Look up a classification by foreign key or foreign key name"""
        for classification in self.classifications:
            if isinstance(foreign_key, str):
                if classification.foreign_key.name == foreign_key:
                    return classification
            elif classification.foreign_key == foreign_key:
                return classification
        return None

    def by_tag(self, tag: Union[RelationTag, str]) -> List[ForeignKeyClassification]:
        tag = RelationTag(tag)
        return [c for c in self.classifications if c.tag == tag]

    def triangles_for(self, child: TableRef) -> List[TriangularSameAs]:
        return [triangle for triangle in self.triangles if triangle.child == child]

    def ancestors_of(self, table: TableRef) -> Tuple[TableRef, ...]:
        return self.ancestor_chains.get(table, ())

    def tag_counts(self) -> Dict[str, int]:
        counts = {tag.value: 0 for tag in RelationTag}
        for classification in self.classifications:
            counts[classification.tag.value] += 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema": self.schema_name,
            "run_id": self.run_id,
            "created_at": self.created_at.isoformat(),
            "duration_ms": round(self.duration_ms, 2),
            "tag_counts": self.tag_counts(),
            "foreign_keys": [c.to_dict() for c in self.classifications],
            "triangles": [t.to_dict() for t in self.triangles],
            "ancestor_chains": {
                str(table): [str(ancestor) for ancestor in chain]
                for table, chain in self.ancestor_chains.items()
            },
            "roots": [str(root) for root in self.roots],
            "table_lists": [str(table) for table in self.table_lists],
            "table_list_references": {
                str(table): list(columns)
                for table, columns in self.table_list_references.items()
            },
            "generation_order": [str(table) for table in self.generation_order],
            "errors": [error.to_dict() for error in self.errors],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False)

    def save(self, path: str) -> None:
        """Write the report as YAML or JSON depending on the file extension"""
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, 'w') as f:
            if path.endswith('.yaml') or path.endswith('.yml'):
                f.write(self.to_yaml())
            else:
                f.write(self.to_json())
