"""
Column-Subset Matcher

Decomposes a foreign key against a known identifying tuple: the positions
covered by the identifying tuple, and the column pairs left over.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Set, Tuple

from ..facts.models import ColumnPair, ColumnRef, ForeignKey, UniqueConstraint
from .models import IdentifyingSource


@dataclass(frozen=True)
class IdentifyingTuple:
    """
    Columns known to identify a row of the referenced table

    ``host_columns``, when given, pins each identifying column to the
    referencing column that must carry it.
    """
    source: IdentifyingSource
    referenced_columns: Tuple[str, ...]
    host_columns: Optional[Tuple[str, ...]] = None
    constraint: Optional[UniqueConstraint] = None


@dataclass(frozen=True)
class SubsetMatch:
    """Result of matching one identifying tuple against a foreign key"""
    foreign_key: ForeignKey
    identifying: IdentifyingTuple
    matched_positions: Tuple[int, ...]
    remaining_positions: Tuple[int, ...]

    @property
    def key_columns(self) -> Tuple[str, ...]:
        """Referencing columns carrying the identifying tuple"""
        return tuple(self.foreign_key.columns[p] for p in self.matched_positions)

    @property
    def identifying_columns(self) -> Tuple[str, ...]:
        return tuple(self.foreign_key.referenced_columns[p] for p in self.matched_positions)

    @property
    def remaining_host_columns(self) -> Tuple[str, ...]:
        return tuple(self.foreign_key.columns[p] for p in self.remaining_positions)

    @property
    def remaining_referenced_columns(self) -> Tuple[str, ...]:
        return tuple(self.foreign_key.referenced_columns[p] for p in self.remaining_positions)

    @property
    def remaining_pairs(self) -> Tuple[ColumnPair, ...]:
        fk = self.foreign_key
        return tuple(
            ColumnPair(
                ColumnRef(fk.table, fk.columns[p]),
                ColumnRef(fk.referenced_table, fk.referenced_columns[p]),
            )
            for p in self.remaining_positions
        )

    @property
    def is_identity(self) -> bool:
        """The foreign key is the identifying relation itself"""
        return not self.remaining_positions

    @property
    def is_single_pair(self) -> bool:
        return len(self.remaining_positions) == 1

    @property
    def is_multi_pair(self) -> bool:
        return len(self.remaining_positions) > 1


def match_columns(foreign_key: ForeignKey, identifying: IdentifyingTuple) -> Optional[SubsetMatch]:
    """
    Match an identifying tuple against a foreign key

    Every identifying column must occur among the referenced columns, at a
    distinct position; where host columns are given the referencing column at
    that position must equal them. Returns None when the tuple does not fit.
    """
    if not identifying.referenced_columns:
        return None
    if identifying.host_columns is not None and \
            len(identifying.host_columns) != len(identifying.referenced_columns):
        return None

    used: Set[int] = set()
    matched: List[int] = []
    for i, column in enumerate(identifying.referenced_columns):
        position = None
        for p, referenced in enumerate(foreign_key.referenced_columns):
            if p in used or referenced != column:
                continue
            if identifying.host_columns is not None and \
                    foreign_key.columns[p] != identifying.host_columns[i]:
                continue
            position = p
            break
        if position is None:
            return None
        used.add(position)
        matched.append(position)

    remaining = tuple(p for p in range(len(foreign_key.referenced_columns)) if p not in used)
    return SubsetMatch(
        foreign_key=foreign_key,
        identifying=identifying,
        matched_positions=tuple(matched),
        remaining_positions=remaining,
    )


def match_all(foreign_key: ForeignKey, candidates: Sequence[IdentifyingTuple]) -> List[SubsetMatch]:
    matches = []
    for identifying in candidates:
        match = match_columns(foreign_key, identifying)
        if match is not None:
            matches.append(match)
    return matches


def best_match(foreign_key: ForeignKey, candidates: Sequence[IdentifyingTuple]) -> Optional[SubsetMatch]:
    """First matching candidate, preferring Extension-derived tuples"""
    matches = match_all(foreign_key, candidates)
    if not matches:
        return None
    return min(matches, key=lambda m: m.identifying.source != IdentifyingSource.EXTENSION)
