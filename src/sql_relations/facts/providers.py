"""
Schema Facts Providers

Provides multiple ways to obtain an immutable SchemaSnapshot:
1. DictFactsProvider - From an in-memory document
2. FileFactsProvider - From YAML/JSON schema files
3. DatabaseFactsProvider - Introspection through a database adapter
"""
from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple
import yaml

from .models import (
    Column,
    ForeignKey,
    SchemaSnapshot,
    Table,
    TableRef,
    UniqueConstraint,
)
from ..adapters.base import BaseDatabaseAdapter, DatabaseSchema, TableSchema
from ..utils import SchemaFactsError, get_logger

logger = get_logger(__name__)


class BaseFactsProvider(ABC):
    """Abstract base class for schema facts providers"""

    @abstractmethod
    def load(self) -> SchemaSnapshot:
        """Load schema facts and return an immutable snapshot"""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this provider can load data"""
        pass


class DictFactsProvider(BaseFactsProvider):
    """
    Builds a snapshot from a schema document

    Expected format:
    ```yaml
    name: inventory
    schema: public
    tables:
      parent:
        columns:
          id: {type: integer, nullable: false}
          name: text
        primary_key: [id]
        unique: [[id, name]]
      child:
        columns:
          id: integer
          name: text
        primary_key: [id]
        foreign_keys:
          - columns: [id]
            references: {table: parent, columns: [id]}
          - name: child_parent_name_fk
            columns: [id, name]
            references: {table: parent, columns: [id, name]}
    ```
    """

    def __init__(self, data: Dict[str, Any], name: Optional[str] = None):
        self.data = data
        self.name = name

    def is_available(self) -> bool:
        return isinstance(self.data, dict) and isinstance(self.data.get("tables"), dict)

    def load(self) -> SchemaSnapshot:
        if not self.is_available():
            raise SchemaFactsError("Schema document must contain a 'tables' mapping")
        return self._parse_document(self.data)

    def _parse_document(self, data: Dict[str, Any]) -> SchemaSnapshot:
        default_schema = data.get("schema")
        tables = [
            self._parse_table(table_name, table_data or {}, default_schema)
            for table_name, table_data in data["tables"].items()
        ]
        tables = self._resolve_implicit_references(tables)
        snapshot = SchemaSnapshot(
            tables=tuple(tables),
            name=self.name or data.get("name", default_schema or "schema"),
        )
        logger.debug(f"Parsed schema document with {len(snapshot)} tables")
        return snapshot

    @staticmethod
    def _resolve_implicit_references(tables: List[Table]) -> List[Table]:
        """Point foreign keys declared without referenced columns at the referenced primary key"""
        primary_keys = {table.ref: table.primary_key for table in tables}
        resolved = []
        for table in tables:
            foreign_keys = []
            for fk in table.foreign_keys:
                if not fk.referenced_columns:
                    primary_key = primary_keys.get(fk.referenced_table)
                    if not primary_key:
                        raise SchemaFactsError(
                            f"Foreign key '{fk.name}' references '{fk.referenced_table}' without columns "
                            f"and the table has no primary key",
                            table_name=str(fk.referenced_table),
                            foreign_key=fk.name,
                        )
                    fk = replace(fk, referenced_columns=primary_key)
                foreign_keys.append(fk)
            resolved.append(replace(table, foreign_keys=tuple(foreign_keys)))
        return resolved

    def _parse_table(self, name: str, data: Dict[str, Any], default_schema: Optional[str]) -> Table:
        """Parse table definition"""
        ref = TableRef.parse(name, default_schema)

        columns = tuple(
            self._parse_column(col_name, col_data)
            for col_name, col_data in (data.get("columns") or {}).items()
        )

        primary_key = tuple(data.get("primary_key") or ())
        if not primary_key:
            primary_key = tuple(
                col_name for col_name, col_data in (data.get("columns") or {}).items()
                if isinstance(col_data, dict) and col_data.get("primary_key")
            )

        unique_constraints = []
        for position, entry in enumerate(data.get("unique") or ()):
            if isinstance(entry, dict):
                constraint_columns = tuple(entry.get("columns") or ())
                constraint_name = entry.get("name") or f"{ref.name}_unique_{position}"
            else:
                constraint_columns = (entry,) if isinstance(entry, str) else tuple(entry)
                constraint_name = f"{ref.name}_unique_{position}"
            unique_constraints.append(UniqueConstraint(constraint_name, constraint_columns))

        for col_name, col_data in (data.get("columns") or {}).items():
            if isinstance(col_data, dict) and col_data.get("unique"):
                unique_constraints.append(UniqueConstraint(f"{ref.name}_{col_name}_key", (col_name,)))

        foreign_keys = tuple(
            self._parse_foreign_key(ref, position, fk_data, default_schema)
            for position, fk_data in enumerate(data.get("foreign_keys") or ())
        )

        return Table(
            name=ref.name,
            schema=ref.schema,
            columns=columns,
            primary_key=primary_key,
            foreign_keys=foreign_keys,
            unique_constraints=tuple(unique_constraints),
        )

    def _parse_column(self, name: str, data: Any) -> Column:
        """Parse column definition; a bare string is the column type"""
        if data is None or isinstance(data, str):
            return Column(name=name, data_type=data or "unknown")
        return Column(
            name=name,
            data_type=data.get("type", data.get("data_type", "unknown")),
            nullable=data.get("nullable", not data.get("primary_key", False)),
            default_value=data.get("default"),
        )

    def _parse_foreign_key(
        self,
        host: TableRef,
        position: int,
        data: Dict[str, Any],
        default_schema: Optional[str],
    ) -> ForeignKey:
        """Parse foreign key definition"""
        references = data.get("references") or {}
        if isinstance(references, str):
            references = {"table": references}
        referenced_table = references.get("table")
        if not referenced_table:
            raise SchemaFactsError(
                f"Foreign key #{position} on '{host}' does not name a referenced table",
                table_name=str(host),
            )

        return ForeignKey(
            name=data.get("name") or f"{host.name}_fk_{position}",
            table=host,
            columns=tuple(data.get("columns") or ()),
            referenced_table=TableRef.parse(referenced_table, default_schema),
            referenced_columns=tuple(references.get("columns") or ()),
            on_delete=data.get("on_delete"),
            on_update=data.get("on_update"),
        )


class FileFactsProvider(DictFactsProvider):
    """Loads schema facts from a YAML or JSON document on disk"""

    def __init__(self, file_path: str, name: Optional[str] = None):
        super().__init__(data={}, name=name)
        self.file_path = file_path

    def is_available(self) -> bool:
        return os.path.exists(self.file_path)

    def load(self) -> SchemaSnapshot:
        if not self.is_available():
            raise SchemaFactsError(f"Schema file not found: {self.file_path}")

        with open(self.file_path, 'r') as f:
            if self.file_path.endswith('.yaml') or self.file_path.endswith('.yml'):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        if not isinstance(data, dict) or not isinstance(data.get("tables"), dict):
            raise SchemaFactsError(f"Schema file {self.file_path} has no 'tables' mapping")

        self.data = data
        logger.info(f"Loaded schema facts from {self.file_path}")
        return self._parse_document(data)


class DatabaseFactsProvider(BaseFactsProvider):
    """
    Builds a snapshot from a live database through an adapter

    Unique indexes become uniqueness constraints. Foreign keys that omit
    their referenced columns resolve to the referenced primary key.
    """

    def __init__(self, adapter: BaseDatabaseAdapter, force_refresh: bool = False):
        self.adapter = adapter
        self.force_refresh = force_refresh

    def is_available(self) -> bool:
        return self.adapter.is_connected()

    def load(self) -> SchemaSnapshot:
        schema = self.adapter.get_schema(force_refresh=self.force_refresh)
        return self.from_database_schema(schema)

    @classmethod
    def from_database_schema(cls, schema: DatabaseSchema) -> SchemaSnapshot:
        """Convert an introspected DatabaseSchema into a SchemaSnapshot"""
        tables = [
            cls._convert_table(table, schema)
            for _, table in sorted(schema.tables.items())
        ]
        return SchemaSnapshot(tables=tuple(tables), name=schema.database_name or "schema")

    @classmethod
    def _convert_table(cls, table: TableSchema, schema: DatabaseSchema) -> Table:
        ref = TableRef(schema.schema_name, table.name)

        unique_constraints = tuple(
            UniqueConstraint(index.name, tuple(index.columns))
            for index in table.unique_indexes
        )

        foreign_keys = []
        for fk in table.foreign_keys:
            referenced_columns: Tuple[str, ...] = tuple(
                column for column in fk.referenced_columns if column is not None
            )
            if len(referenced_columns) != len(fk.columns):
                referenced_columns = cls._referenced_primary_key(fk.referenced_table, schema, fk.name)
            foreign_keys.append(ForeignKey(
                name=fk.name,
                table=ref,
                columns=tuple(fk.columns),
                referenced_table=TableRef(schema.schema_name, fk.referenced_table),
                referenced_columns=referenced_columns,
                on_delete=fk.on_delete,
                on_update=fk.on_update,
            ))

        return Table(
            name=table.name,
            schema=schema.schema_name,
            columns=tuple(
                Column(
                    name=column.name,
                    data_type=column.data_type,
                    nullable=column.nullable,
                    default_value=column.default_value,
                )
                for column in table.columns
            ),
            primary_key=tuple(table.primary_key),
            foreign_keys=tuple(foreign_keys),
            unique_constraints=unique_constraints,
        )

    @staticmethod
    def _referenced_primary_key(table_name: str, schema: DatabaseSchema, fk_name: str) -> Tuple[str, ...]:
        referenced = schema.get_table(table_name)
        if referenced is None or not referenced.primary_key:
            raise SchemaFactsError(
                f"Foreign key '{fk_name}' references '{table_name}' without columns "
                f"and the table has no primary key",
                table_name=table_name,
                foreign_key=fk_name,
            )
        return tuple(referenced.primary_key)


def load_snapshot(source: Any, name: Optional[str] = None) -> SchemaSnapshot:
    """
    Load a snapshot from whatever source is at hand

    Accepts a SchemaSnapshot, a provider, a database adapter, a schema
    document (dict) or a path to a YAML/JSON file.
    """
    if isinstance(source, SchemaSnapshot):
        return source
    if isinstance(source, BaseFactsProvider):
        return source.load()
    if isinstance(source, BaseDatabaseAdapter):
        return DatabaseFactsProvider(source).load()
    if isinstance(source, dict):
        return DictFactsProvider(source, name=name).load()
    if isinstance(source, (str, os.PathLike)):
        return FileFactsProvider(os.fspath(source), name=name).load()
    raise SchemaFactsError(f"Cannot load schema facts from {type(source).__name__}")


def snapshot_from_tables(tables: List[Table], name: str = "schema") -> SchemaSnapshot:
    """Build a snapshot from already-constructed tables"""
    return SchemaSnapshot(tables=tuple(tables), name=name)
