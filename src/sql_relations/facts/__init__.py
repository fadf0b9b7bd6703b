"""
Schema Facts Module

Immutable schema snapshots and the providers that build them from
documents, files or live databases.
"""
from .models import (
    TableRef,
    ColumnRef,
    ColumnPair,
    Column,
    UniqueConstraint,
    ForeignKey,
    Table,
    SchemaSnapshot,
)

from .providers import (
    BaseFactsProvider,
    DictFactsProvider,
    FileFactsProvider,
    DatabaseFactsProvider,
    load_snapshot,
    snapshot_from_tables,
)

__all__ = [
    # Models
    "TableRef",
    "ColumnRef",
    "ColumnPair",
    "Column",
    "UniqueConstraint",
    "ForeignKey",
    "Table",
    "SchemaSnapshot",
    # Providers
    "BaseFactsProvider",
    "DictFactsProvider",
    "FileFactsProvider",
    "DatabaseFactsProvider",
    "load_snapshot",
    "snapshot_from_tables",
]
