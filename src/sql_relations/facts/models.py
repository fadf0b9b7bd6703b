"""
Schema Fact Definitions

Immutable description of tables, columns, keys and uniqueness constraints.
A SchemaSnapshot stores its tables in an arena: every table has a stable
integer index, and the classifier caches per-table results by that index.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from ..utils import SchemaFactsError


@dataclass(frozen=True)
class TableRef:
    """Identifies a table by (schema, name)"""
    schema: Optional[str]
    name: str

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.name}" if self.schema else self.name

    def __str__(self) -> str:
        return self.qualified_name

    @classmethod
    def parse(cls, value: str, default_schema: Optional[str] = None) -> "TableRef":
        """Parse 'schema.table' or 'table'"""
        if "." in value:
            schema, name = value.split(".", 1)
            return cls(schema, name)
        return cls(default_schema, value)


@dataclass(frozen=True)
class ColumnRef:
    """Identifies a column by (table, name)"""
    table: TableRef
    column: str

    def __str__(self) -> str:
        return f"{self.table}.{self.column}"


@dataclass(frozen=True)
class ColumnPair:
    """A referencing column mapped onto a referenced column"""
    host: ColumnRef
    referenced: ColumnRef

    def to_dict(self) -> Dict[str, str]:
        return {"host": str(self.host), "referenced": str(self.referenced)}

    def __str__(self) -> str:
        return f"{self.host} = {self.referenced}"


@dataclass(frozen=True)
class Column:
    """A column owned by a table"""
    name: str
    data_type: str = "unknown"
    nullable: bool = True
    default_value: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "data_type": self.data_type,
            "nullable": self.nullable,
            "default_value": self.default_value,
        }


@dataclass(frozen=True)
class UniqueConstraint:
    """A set of columns jointly unique within one table"""
    name: str
    columns: Tuple[str, ...]
    is_primary: bool = False

    @property
    def column_set(self) -> frozenset:
        return frozenset(self.columns)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "columns": list(self.columns),
            "is_primary": self.is_primary,
        }


@dataclass(frozen=True)
class ForeignKey:
    """Ordered referencing columns mapped positionally onto referenced columns"""
    name: str
    table: TableRef
    columns: Tuple[str, ...]
    referenced_table: TableRef
    referenced_columns: Tuple[str, ...]
    on_delete: Optional[str] = None
    on_update: Optional[str] = None

    @property
    def is_composite(self) -> bool:
        return len(self.columns) > 1

    @property
    def is_self_referential(self) -> bool:
        return self.table == self.referenced_table

    @property
    def column_pairs(self) -> Tuple[ColumnPair, ...]:
        return tuple(
            ColumnPair(ColumnRef(self.table, host), ColumnRef(self.referenced_table, referenced))
            for host, referenced in zip(self.columns, self.referenced_columns)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "table": str(self.table),
            "columns": list(self.columns),
            "referenced_table": str(self.referenced_table),
            "referenced_columns": list(self.referenced_columns),
        }

    def __str__(self) -> str:
        return (
            f"{self.name} ({self.table}({', '.join(self.columns)}) -> "
            f"{self.referenced_table}({', '.join(self.referenced_columns)}))"
        )


@dataclass(frozen=True)
class Table:
    """A table with its columns, keys and constraints"""
    name: str
    columns: Tuple[Column, ...]
    schema: Optional[str] = None
    primary_key: Tuple[str, ...] = ()
    foreign_keys: Tuple[ForeignKey, ...] = ()
    unique_constraints: Tuple[UniqueConstraint, ...] = ()

    @property
    def ref(self) -> TableRef:
        return TableRef(self.schema, self.name)

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    def get_column(self, name: str) -> Optional[Column]:
        """Get column by name (case-insensitive)"""
        for column in self.columns:
            if column.name == name:
                return column
        name_lower = name.lower()
        for column in self.columns:
            if column.name.lower() == name_lower:
                return column
        return None

    @property
    def uniqueness_constraints(self) -> Tuple[UniqueConstraint, ...]:
        """Primary key first, then explicit unique constraints, deduplicated by column set"""
        constraints: List[UniqueConstraint] = []
        seen = set()
        if self.primary_key:
            constraints.append(UniqueConstraint(f"{self.name}_pkey", self.primary_key, is_primary=True))
            seen.add(frozenset(self.primary_key))
        for constraint in self.unique_constraints:
            if constraint.column_set in seen:
                continue
            seen.add(constraint.column_set)
            constraints.append(constraint)
        return tuple(constraints)

    def is_unique(self, columns: Sequence[str]) -> bool:
        """Whether some uniqueness constraint covers exactly these columns"""
        wanted = frozenset(columns)
        return any(constraint.column_set == wanted for constraint in self.uniqueness_constraints)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "schema": self.schema,
            "columns": [column.to_dict() for column in self.columns],
            "primary_key": list(self.primary_key),
            "foreign_keys": [fk.to_dict() for fk in self.foreign_keys],
            "unique_constraints": [uc.to_dict() for uc in self.unique_constraints],
        }


@dataclass(frozen=True)
class SchemaSnapshot:
    """
    Immutable snapshot of schema facts

    Tables are addressed by stable index (their position in ``tables``).
    Construction validates the invariants the classifier relies on and raises
    SchemaFactsError naming the offending table or foreign key.
    """
    tables: Tuple[Table, ...]
    name: str = "schema"
    _index: Dict[TableRef, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tables", tuple(self.tables))
        index: Dict[TableRef, int] = {}
        for position, table in enumerate(self.tables):
            if table.ref in index:
                raise SchemaFactsError(
                    f"Table '{table.ref}' is defined more than once",
                    table_name=str(table.ref),
                )
            index[table.ref] = position
        object.__setattr__(self, "_index", index)
        self._validate()

    def _validate(self) -> None:
        for table in self.tables:
            names = set(table.column_names)
            if len(names) != len(table.columns):
                raise SchemaFactsError(
                    f"Table '{table.ref}' has duplicate column names",
                    table_name=str(table.ref),
                )
            for column in table.primary_key:
                if column not in names:
                    raise SchemaFactsError(
                        f"Primary key of '{table.ref}' names unknown column '{column}'",
                        table_name=str(table.ref),
                        column_name=column,
                    )
            for constraint in table.unique_constraints:
                if not constraint.columns:
                    raise SchemaFactsError(
                        f"Unique constraint '{constraint.name}' on '{table.ref}' has no columns",
                        table_name=str(table.ref),
                    )
                for column in constraint.columns:
                    if column not in names:
                        raise SchemaFactsError(
                            f"Unique constraint '{constraint.name}' on '{table.ref}' "
                            f"names unknown column '{column}'",
                            table_name=str(table.ref),
                            column_name=column,
                        )
            for fk in table.foreign_keys:
                self._validate_foreign_key(table, fk, names)

    def _validate_foreign_key(self, table: Table, fk: ForeignKey, names: set) -> None:
        if fk.table != table.ref:
            raise SchemaFactsError(
                f"Foreign key '{fk.name}' is attached to '{table.ref}' but declares host '{fk.table}'",
                table_name=str(table.ref),
                foreign_key=fk.name,
            )
        if not fk.columns or len(fk.columns) != len(fk.referenced_columns):
            raise SchemaFactsError(
                f"Foreign key '{fk.name}' on '{table.ref}' must map a non-empty column tuple "
                f"onto a referenced tuple of equal length",
                table_name=str(table.ref),
                foreign_key=fk.name,
            )
        for column in fk.columns:
            if column not in names:
                raise SchemaFactsError(
                    f"Foreign key '{fk.name}' on '{table.ref}' names unknown column '{column}'",
                    table_name=str(table.ref),
                    column_name=column,
                    foreign_key=fk.name,
                )
        referenced = self.get(fk.referenced_table)
        if referenced is None:
            raise SchemaFactsError(
                f"Foreign key '{fk.name}' on '{table.ref}' references unknown table "
                f"'{fk.referenced_table}'",
                table_name=str(table.ref),
                foreign_key=fk.name,
            )
        referenced_names = set(referenced.column_names)
        for column in fk.referenced_columns:
            if column not in referenced_names:
                raise SchemaFactsError(
                    f"Foreign key '{fk.name}' on '{table.ref}' references unknown column "
                    f"'{referenced.ref}.{column}'",
                    table_name=str(table.ref),
                    column_name=column,
                    foreign_key=fk.name,
                )

    def __len__(self) -> int:
        return len(self.tables)

    def __iter__(self) -> Iterator[Table]:
        return iter(self.tables)

    def index_of(self, ref: TableRef) -> int:
        """Arena index of a table"""
        try:
            return self._index[ref]
        except KeyError:
            raise SchemaFactsError(f"Unknown table '{ref}'", table_name=str(ref))

    def table(self, ref: TableRef) -> Table:
        return self.tables[self.index_of(ref)]

    def get(self, ref: TableRef) -> Optional[Table]:
        position = self._index.get(ref)
        return None if position is None else self.tables[position]

    def get_table(self, name: str, schema: Optional[str] = None) -> Optional[Table]:
        """Get table by name (case-insensitive), optionally restricted to a schema"""
        exact = self.get(TableRef(schema, name))
        if exact is not None:
            return exact
        name_lower = name.lower()
        for table in self.tables:
            if table.name.lower() != name_lower:
                continue
            if schema is None or (table.schema or "").lower() == schema.lower():
                return table
        return None

    def foreign_keys(self) -> Iterator[ForeignKey]:
        """All foreign keys, in table order then declaration order"""
        for table in self.tables:
            yield from table.foreign_keys

    def referencing(self, ref: TableRef) -> List[ForeignKey]:
        """Foreign keys whose referenced table is ``ref``"""
        return [fk for fk in self.foreign_keys() if fk.referenced_table == ref]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "tables": [table.to_dict() for table in self.tables],
        }
