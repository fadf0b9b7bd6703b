"""
Extension Detection and Ancestor Closure

An Extension is a foreign key whose referencing columns are the host's full
primary key and whose referenced columns are the referenced table's full
primary key. ExtensionGraph collects one Extension per table, rejects
conflicts and cycles, and memoizes ancestor chains by arena index.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Set, Tuple

from ..facts.models import ForeignKey, SchemaSnapshot, TableRef
from ..utils import (
    ConflictingExtensionError,
    CyclicExtensionError,
    ErrorContext,
    RelationsError,
    get_logger,
)
from .models import Extension

logger = get_logger(__name__)


def _same_column_set(columns: Tuple[str, ...], key: Tuple[str, ...]) -> bool:
    return bool(key) and len(columns) == len(key) and frozenset(columns) == frozenset(key)


def detect_extension(snapshot: SchemaSnapshot, foreign_key: ForeignKey) -> Optional[Extension]:
    """Return the Extension a foreign key encodes, or None"""
    if foreign_key.is_self_referential:
        return None

    host = snapshot.table(foreign_key.table)
    referenced = snapshot.table(foreign_key.referenced_table)

    if not _same_column_set(foreign_key.columns, host.primary_key):
        return None
    if not _same_column_set(foreign_key.referenced_columns, referenced.primary_key):
        return None

    return Extension(
        foreign_key=foreign_key,
        child=foreign_key.table,
        ancestor=foreign_key.referenced_table,
    )


def _extension_signature(extension: Extension) -> Tuple[TableRef, frozenset]:
    return extension.ancestor, frozenset(extension.column_map.items())


class ExtensionGraph:
    """
    Extension edges over a schema snapshot

    Built once per snapshot and read-only afterwards. With ``fail_fast`` a
    conflicting or cyclic table raises immediately; otherwise the error is
    recorded in ``errors`` and the affected tables (including tables whose
    chain leads into a cycle) are marked failed.
    """

    def __init__(
        self,
        snapshot: SchemaSnapshot,
        fail_fast: bool = True,
        cache_ancestor_chains: bool = True,
    ):
        self.snapshot = snapshot
        self.fail_fast = fail_fast
        self.cache_ancestor_chains = cache_ancestor_chains
        self.errors: List[RelationsError] = []
        self.cache_hits = 0
        self.cache_misses = 0

        size = len(snapshot)
        self._extensions: List[Optional[Extension]] = [None] * size
        self._parents: List[Optional[int]] = [None] * size
        self._chains: List[Optional[Tuple[int, ...]]] = [None] * size
        self._failed: Dict[int, RelationsError] = {}

        self._collect_extensions()
        self._close()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _fail(self, error: RelationsError, indices: List[int]) -> None:
        if self.fail_fast:
            raise error
        logger.warning(str(error))
        self.errors.append(error)
        for index in indices:
            self._failed.setdefault(index, error)
            self._extensions[index] = None
            self._parents[index] = None

    def _collect_extensions(self) -> None:
        for index, table in enumerate(self.snapshot.tables):
            candidates: List[Extension] = []
            seen: Set[Tuple[TableRef, frozenset]] = set()
            for fk in table.foreign_keys:
                extension = detect_extension(self.snapshot, fk)
                if extension is None:
                    continue
                signature = _extension_signature(extension)
                if signature in seen:
                    continue
                seen.add(signature)
                candidates.append(extension)

            if len(candidates) > 1:
                error = ConflictingExtensionError(
                    table=str(table.ref),
                    foreign_keys=[candidate.foreign_key.name for candidate in candidates],
                    context=ErrorContext(schema_name=self.snapshot.name),
                )
                self._fail(error, [index])
            elif candidates:
                self._extensions[index] = candidates[0]
                self._parents[index] = self.snapshot.index_of(candidates[0].ancestor)

    def _close(self) -> None:
        """Walk every parent chain once, detecting cycles and filling the chain cache"""
        unvisited, visiting, done = 0, 1, 2
        state = [unvisited] * len(self.snapshot)

        for start in range(len(self.snapshot)):
            if state[start] != unvisited:
                continue

            path: List[int] = []
            current: Optional[int] = start
            while current is not None and state[current] == unvisited:
                state[current] = visiting
                path.append(current)
                current = self._parents[current]

            if current is not None and state[current] == visiting:
                cycle = path[path.index(current):]
                error = CyclicExtensionError(
                    [str(self.snapshot.tables[i].ref) for i in cycle],
                    context=ErrorContext(schema_name=self.snapshot.name),
                )
                self._fail(error, path)
            elif current is not None and isinstance(self._failed.get(current), CyclicExtensionError):
                self._fail_lead_in(path, self._failed[current])
            else:
                tail: Tuple[int, ...] = () if current is None else (current,) + self._chains[current]
                for index in reversed(path):
                    self._chains[index] = tail
                    tail = (index,) + tail
                self.cache_misses += len(path)

            for index in path:
                state[index] = done

    def _fail_lead_in(self, path: List[int], error: RelationsError) -> None:
        # Already recorded once for the cycle itself.
        for index in path:
            self._failed.setdefault(index, error)
            self._extensions[index] = None
            self._parents[index] = None

    # ------------------------------------------------------------------
    # Index-level queries
    # ------------------------------------------------------------------

    def _chain(self, index: int) -> Tuple[int, ...]:
        if index in self._failed and self._chains[index] is None:
            return ()
        if self.cache_ancestor_chains:
            self.cache_hits += 1
            return self._chains[index] or ()

        self.cache_misses += 1
        chain: List[int] = []
        current = self._parents[index]
        while current is not None:
            chain.append(current)
            current = self._parents[current]
        return tuple(chain)

    def _ref(self, index: int) -> TableRef:
        return self.snapshot.tables[index].ref

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def is_failed(self, table: TableRef) -> bool:
        return self.snapshot.index_of(table) in self._failed

    def failure(self, table: TableRef) -> Optional[RelationsError]:
        return self._failed.get(self.snapshot.index_of(table))

    def extension_of(self, table: TableRef) -> Optional[Extension]:
        """The Extension whose child is ``table``"""
        return self._extensions[self.snapshot.index_of(table)]

    def extensions(self) -> List[Extension]:
        return [extension for extension in self._extensions if extension is not None]

    def parent(self, table: TableRef) -> Optional[TableRef]:
        parent = self._parents[self.snapshot.index_of(table)]
        return None if parent is None else self._ref(parent)

    def ancestors(self, table: TableRef) -> Tuple[TableRef, ...]:
        """Ancestors ordered nearest first"""
        return tuple(self._ref(i) for i in self._chain(self.snapshot.index_of(table)))

    def depth(self, table: TableRef) -> int:
        return len(self._chain(self.snapshot.index_of(table)))

    def is_ancestor(self, ancestor: TableRef, table: TableRef) -> bool:
        if ancestor == table:
            return False
        target = self.snapshot.index_of(ancestor)
        return target in self._chain(self.snapshot.index_of(table))

    def related(self, first: TableRef, second: TableRef) -> bool:
        """Whether one table is an ancestor of the other"""
        return self.is_ancestor(first, second) or self.is_ancestor(second, first)

    def ancestor_path(self, table: TableRef, ancestor: TableRef) -> Optional[Tuple[Extension, ...]]:
        """Extensions walked from ``table`` up to ``ancestor``, or None if unrelated"""
        if not self.is_ancestor(ancestor, table):
            return None
        path: List[Extension] = []
        current = table
        while current != ancestor:
            extension = self.extension_of(current)
            path.append(extension)
            current = extension.ancestor
        return tuple(path)

    def column_mapping(self, table: TableRef, ancestor: TableRef) -> Optional[Dict[str, str]]:
        """
        Map the primary key columns of ``table`` onto the primary key
        columns of ``ancestor`` by composing extension pairs along the chain
        """
        path = self.ancestor_path(table, ancestor)
        if path is None:
            return None
        mapping = {column: column for column in self.snapshot.table(table).primary_key}
        for extension in path:
            step = extension.column_map
            mapping = {column: step[current] for column, current in mapping.items()}
        return mapping

    def descendants(self, table: TableRef) -> Tuple[TableRef, ...]:
        """Tables whose ancestor chain contains ``table``, in arena order"""
        target = self.snapshot.index_of(table)
        return tuple(
            self._ref(index)
            for index in range(len(self.snapshot))
            if target in self._chain(index)
        )

    def is_root(self, table: TableRef) -> bool:
        index = self.snapshot.index_of(table)
        return index not in self._failed and self._parents[index] is None

    def roots(self) -> Tuple[TableRef, ...]:
        """Tables with no extension parent"""
        return tuple(
            self._ref(index)
            for index in range(len(self.snapshot))
            if index not in self._failed and self._parents[index] is None
        )

    def ancestor_chains(self) -> Dict[TableRef, Tuple[TableRef, ...]]:
        return {
            self._ref(index): tuple(self._ref(i) for i in self._chain(index))
            for index in range(len(self.snapshot))
            if index not in self._failed
        }

    def generation_order(self) -> Tuple[TableRef, ...]:
        """Tables ordered so that every ancestor precedes its descendants"""
        indices = [index for index in range(len(self.snapshot)) if index not in self._failed]
        indices.sort(key=lambda index: (len(self._chain(index)), self._ref(index).qualified_name))
        return tuple(self._ref(index) for index in indices)
