"""
SQLite Database Adapter
Introspects tables, keys and unique indexes through SQLite PRAGMAs
"""
from __future__ import annotations

import sqlite3
import time
from typing import Any, Dict, List, Optional

from ..config import DatabaseConfig, DatabaseType
from ..utils import classify_database_error, get_logger
from .base import (
    BaseDatabaseAdapter,
    ColumnSchema,
    ForeignKeySchema,
    IndexSchema,
    QueryResult,
    TableSchema,
    register_adapter,
)

logger = get_logger(__name__)


@register_adapter(DatabaseType.SQLITE)
class SQLiteAdapter(BaseDatabaseAdapter):
    """SQLite database adapter"""

    def __init__(self, config: DatabaseConfig):
        super().__init__(config)
        self._cursor = None

    @property
    def database_type(self) -> DatabaseType:
        return DatabaseType.SQLITE

    def connect(self) -> None:
        """Establish SQLite connection"""
        db_path = self.config.sqlite_path or self.config.database

        if not db_path:
            db_path = ":memory:"

        self._connection = sqlite3.connect(
            db_path,
            timeout=self.config.connection_timeout,
            check_same_thread=False,
        )

        self._connection.execute("PRAGMA foreign_keys = ON")
        self._connection.row_factory = sqlite3.Row
        self._cursor = self._connection.cursor()

    def disconnect(self) -> None:
        """Close SQLite connection"""
        if self._cursor:
            try:
                self._cursor.close()
            except sqlite3.Error as e:
                logger.debug(f"Ignoring error while closing cursor: {e}")
            self._cursor = None

        if self._connection:
            try:
                self._connection.close()
            except sqlite3.Error as e:
                logger.debug(f"Ignoring error while closing connection: {e}")
            self._connection = None

    def is_connected(self) -> bool:
        """Check if connection is active"""
        if self._connection is None:
            return False
        try:
            self._connection.execute("SELECT 1")
            return True
        except sqlite3.Error:
            return False

    def execute_query(self, sql: str, params: Optional[Any] = None) -> QueryResult:
        """Execute SQL query"""
        if not self.is_connected():
            self.connect()

        start_time = time.time()

        try:
            if params:
                self._cursor.execute(sql, params)
            else:
                self._cursor.execute(sql)

            if sql.strip().upper().startswith(("INSERT", "UPDATE", "DELETE", "CREATE", "DROP", "ALTER")):
                self._connection.commit()

            if self._cursor.description:
                columns = [desc[0] for desc in self._cursor.description]
                rows = [tuple(row) for row in self._cursor.fetchall()]
                row_count = len(rows)
            else:
                columns = []
                rows = []
                row_count = self._cursor.rowcount

            execution_time = (time.time() - start_time) * 1000

            return QueryResult(
                success=True,
                columns=columns,
                rows=rows,
                row_count=row_count,
                execution_time_ms=execution_time,
            )

        except sqlite3.Error as e:
            execution_time = (time.time() - start_time) * 1000
            self._connection.rollback()
            return QueryResult(
                success=False,
                execution_time_ms=execution_time,
                error_message=str(e),
            )

    def executescript(self, script: str) -> None:
        """Run a multi-statement DDL script"""
        if not self.is_connected():
            self.connect()
        try:
            self._connection.executescript(script)
        except sqlite3.Error as e:
            raise classify_database_error(e, DatabaseType.SQLITE.value) from e
        with self._lock:
            self._schema_cache = None

    def _introspect(self, sql: str) -> QueryResult:
        """Run a catalog query, failing loudly instead of returning partial facts"""
        result = self.execute_query(sql)
        if not result.success:
            raise classify_database_error(
                sqlite3.DatabaseError(result.error_message), DatabaseType.SQLITE.value
            )
        return result

    def _fetch_tables(self) -> List[TableSchema]:
        """Fetch all table schemas"""
        tables = []

        result = self._introspect(
            """
            SELECT name
            FROM sqlite_master
            WHERE type = 'table' AND name NOT LIKE 'sqlite_%'
            ORDER BY name
            """
        )

        for row in result.rows:
            table_name = row[0]

            columns = self._fetch_columns(table_name)
            primary_key = self._fetch_primary_key(table_name)
            foreign_keys = self._fetch_foreign_keys(table_name)
            indexes = self._fetch_indexes(table_name)

            tables.append(TableSchema(
                name=table_name,
                columns=columns,
                primary_key=primary_key,
                foreign_keys=foreign_keys,
                indexes=indexes,
            ))

        logger.debug(f"Introspected {len(tables)} SQLite tables")
        return tables

    def _fetch_columns(self, table_name: str) -> List[ColumnSchema]:
        """Fetch columns for a table"""
        columns = []

        result = self._introspect(f'PRAGMA table_info("{table_name}")')

        for row in result.rows:
            # PRAGMA table_info returns: cid, name, type, notnull, dflt_value, pk
            columns.append(ColumnSchema(
                name=row[1],
                data_type=row[2] or "TEXT",
                nullable=not row[3],
                default_value=row[4],
                is_primary_key=bool(row[5]),
            ))

        return columns

    def _fetch_primary_key(self, table_name: str) -> List[str]:
        """Fetch primary key columns"""
        result = self._introspect(f'PRAGMA table_info("{table_name}")')

        pk_cols = []
        for row in result.rows:
            if row[5]:
                pk_cols.append((row[5], row[1]))  # (pk_order, column_name)

        pk_cols.sort(key=lambda x: x[0])
        return [col[1] for col in pk_cols]

    def _fetch_foreign_keys(self, table_name: str) -> List[ForeignKeySchema]:
        """Fetch foreign key relationships"""
        foreign_keys = []

        result = self._introspect(f'PRAGMA foreign_key_list("{table_name}")')

        # SQLite numbers foreign keys in reverse declaration order
        fk_dict: Dict[int, Dict] = {}
        for row in sorted(result.rows, key=lambda r: (-r[0], r[1])):
            # id, seq, table, from, to, on_update, on_delete, match
            fk_id = row[0]
            if fk_id not in fk_dict:
                fk_dict[fk_id] = {
                    "columns": [],
                    "referenced_table": row[2],
                    "referenced_columns": [],
                    "on_update": row[5],
                    "on_delete": row[6],
                }
            fk_dict[fk_id]["columns"].append(row[3])
            fk_dict[fk_id]["referenced_columns"].append(row[4])

        for fk_id, fk_data in fk_dict.items():
            foreign_keys.append(ForeignKeySchema(
                name=f"fk_{table_name}_{fk_id}",
                columns=fk_data["columns"],
                referenced_table=fk_data["referenced_table"],
                referenced_columns=fk_data["referenced_columns"],
                on_update=fk_data["on_update"],
                on_delete=fk_data["on_delete"],
            ))

        return foreign_keys

    def _fetch_indexes(self, table_name: str) -> List[IndexSchema]:
        """Fetch index information"""
        indexes = []

        result = self._introspect(f'PRAGMA index_list("{table_name}")')

        for row in result.rows:
            # seq, name, unique, origin, partial
            index_name = row[1]
            is_unique = bool(row[2])
            origin = row[3]  # 'pk', 'c' (created), 'u' (unique constraint)
            is_partial = bool(row[4]) if len(row) > 4 else False

            if is_partial:
                continue

            col_result = self._introspect(f'PRAGMA index_info("{index_name}")')
            columns = [col_row[2] for col_row in col_result.rows]

            # Expression indexes report NULL column names
            if any(column is None for column in columns):
                continue

            indexes.append(IndexSchema(
                name=index_name,
                columns=columns,
                is_unique=is_unique,
                is_primary=origin == 'pk',
            ))

        return indexes
