"""
Table-List Detection

A table list is an enumeration table: a single textual column that is also
its primary key, referenced by at least one root table.
"""
from __future__ import annotations

from typing import Dict, FrozenSet, Tuple

from ..facts.models import SchemaSnapshot, Table, TableRef
from .extension import ExtensionGraph

TEXTUAL_TYPES: FrozenSet[str] = frozenset({
    "text",
    "tinytext",
    "mediumtext",
    "longtext",
    "varchar",
    "char",
    "character",
    "character varying",
    "bpchar",
    "nchar",
    "nvarchar",
    "varchar2",
    "nvarchar2",
    "clob",
    "citext",
    "string",
    "name",
})


def is_textual(data_type: str) -> bool:
    """Whether a declared SQL type stores text, ignoring length modifiers"""
    base = data_type.lower().split("(", 1)[0].strip()
    return base in TEXTUAL_TYPES


def is_table_list(snapshot: SchemaSnapshot, graph: ExtensionGraph, table: Table) -> bool:
    if len(table.columns) != 1:
        return False
    column = table.columns[0]
    if table.primary_key != (column.name,) or not is_textual(column.data_type):
        return False
    return any(
        fk.table != table.ref and graph.is_root(fk.table)
        for fk in snapshot.referencing(table.ref)
    )


def find_table_lists(snapshot: SchemaSnapshot, graph: ExtensionGraph) -> Tuple[TableRef, ...]:
    return tuple(table.ref for table in snapshot if is_table_list(snapshot, graph, table))


def columns_referring_to_table_lists(
    table: Table,
    table_lists: FrozenSet[TableRef],
) -> Tuple[str, ...]:
    """Columns of ``table`` that hold a value of some table list"""
    columns = []
    for fk in table.foreign_keys:
        if fk.referenced_table in table_lists and len(fk.columns) == 1 and fk.columns[0] not in columns:
            columns.append(fk.columns[0])
    return tuple(columns)


def table_list_references(
    snapshot: SchemaSnapshot,
    table_lists: Tuple[TableRef, ...],
) -> Dict[TableRef, Tuple[str, ...]]:
    lists = frozenset(table_lists)
    references = {}
    for table in snapshot:
        columns = columns_referring_to_table_lists(table, lists)
        if columns:
            references[table.ref] = columns
    return references
