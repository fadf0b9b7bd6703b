"""
PostgreSQL Database Adapter
Introspects tables, keys and unique indexes from the PostgreSQL catalogs
"""
from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from ..config import DatabaseConfig, DatabaseType
from ..utils import DatabaseConnectionError, classify_database_error, get_logger
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


@register_adapter(DatabaseType.POSTGRESQL)
class PostgreSQLAdapter(BaseDatabaseAdapter):
    """PostgreSQL database adapter"""

    def __init__(self, config: DatabaseConfig):
        super().__init__(config)
        self._cursor = None

    @property
    def database_type(self) -> DatabaseType:
        return DatabaseType.POSTGRESQL

    @property
    def schema_name(self) -> Optional[str]:
        return self.config.db_schema

    def connect(self) -> None:
        """Establish PostgreSQL connection"""
        try:
            import psycopg2
        except ImportError:
            raise ImportError(
                "psycopg2 is required for PostgreSQL support. "
                "Install it with: pip install psycopg2-binary"
            )

        connection_params = {
            "host": self.config.host,
            "port": self.config.port,
            "dbname": self.config.database,
            "user": self.config.username,
            "password": self.config.password.get_secret_value() if self.config.password else None,
            "connect_timeout": self.config.connection_timeout,
        }

        if self.config.ssl_enabled:
            connection_params["sslmode"] = "require"
            if self.config.ssl_ca_path:
                connection_params["sslrootcert"] = self.config.ssl_ca_path

        try:
            self._connection = psycopg2.connect(**connection_params)
        except psycopg2.OperationalError as e:
            raise DatabaseConnectionError(
                f"Could not connect to PostgreSQL database '{self.config.database}'",
                original_error=e,
            ) from e
        self._connection.autocommit = True
        self._cursor = self._connection.cursor()

    def disconnect(self) -> None:
        """Close PostgreSQL connection"""
        if self._cursor is not None:
            if not self._cursor.closed:
                self._cursor.close()
            self._cursor = None

        if self._connection is not None:
            if self._connection.closed == 0:
                self._connection.close()
            self._connection = None

    def is_connected(self) -> bool:
        """Check if connection is active"""
        if self._connection is None:
            return False
        return self._connection.closed == 0

    def execute_query(self, sql: str, params: Optional[Any] = None) -> QueryResult:
        """Execute SQL query"""
        import psycopg2

        if not self.is_connected():
            self.connect()

        start_time = time.time()

        try:
            if params:
                self._cursor.execute(sql, params)
            else:
                self._cursor.execute(sql)

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

        except psycopg2.Error as e:
            execution_time = (time.time() - start_time) * 1000
            return QueryResult(
                success=False,
                execution_time_ms=execution_time,
                error_message=str(e),
            )

    def _introspect(self, sql: str, params: Optional[Any] = None) -> QueryResult:
        """Run a catalog query, failing loudly instead of returning partial facts"""
        result = self.execute_query(sql, params)
        if not result.success:
            raise classify_database_error(
                RuntimeError(result.error_message), DatabaseType.POSTGRESQL.value
            )
        return result

    def _fetch_tables(self) -> List[TableSchema]:
        """Fetch all table schemas"""
        tables = []

        result = self._introspect(
            """
            SELECT t.table_name
            FROM information_schema.tables t
            WHERE t.table_schema = %s AND t.table_type = 'BASE TABLE'
            ORDER BY t.table_name
            """,
            (self.schema_name,)
        )

        for row in result.rows:
            table_name = row[0]

            primary_key = self._fetch_primary_key(table_name)
            columns = self._fetch_columns(table_name, set(primary_key))
            foreign_keys = self._fetch_foreign_keys(table_name)
            indexes = self._fetch_indexes(table_name)

            tables.append(TableSchema(
                name=table_name,
                columns=columns,
                primary_key=primary_key,
                foreign_keys=foreign_keys,
                indexes=indexes,
            ))

        logger.debug(f"Introspected {len(tables)} PostgreSQL tables in schema {self.schema_name}")
        return tables

    def _qualified(self, table_name: str) -> str:
        return f'"{self.schema_name}"."{table_name}"'

    def _fetch_columns(self, table_name: str, pk_cols: set) -> List[ColumnSchema]:
        """Fetch columns for a table"""
        result = self._introspect(
            """
            SELECT
                c.column_name,
                c.data_type,
                c.is_nullable,
                c.column_default
            FROM information_schema.columns c
            WHERE c.table_schema = %s AND c.table_name = %s
            ORDER BY c.ordinal_position
            """,
            (self.schema_name, table_name)
        )

        return [
            ColumnSchema(
                name=row[0],
                data_type=row[1],
                nullable=row[2] == "YES",
                default_value=row[3],
                is_primary_key=row[0] in pk_cols,
            )
            for row in result.rows
        ]

    def _fetch_primary_key(self, table_name: str) -> List[str]:
        """Fetch primary key columns"""
        result = self._introspect(
            """
            SELECT a.attname
            FROM pg_index i
            JOIN pg_attribute a ON a.attrelid = i.indrelid AND a.attnum = ANY(i.indkey)
            WHERE i.indrelid = %s::regclass AND i.indisprimary
            ORDER BY array_position(i.indkey, a.attnum)
            """,
            (self._qualified(table_name),)
        )

        return [row[0] for row in result.rows]

    def _fetch_foreign_keys(self, table_name: str) -> List[ForeignKeySchema]:
        """Fetch foreign key relationships, keeping host/referenced columns positionally paired"""
        result = self._introspect(
            """
            SELECT
                con.conname,
                ha.attname AS column_name,
                rt.relname AS referenced_table,
                ra.attname AS referenced_column,
                con.confdeltype,
                con.confupdtype
            FROM pg_constraint con
            CROSS JOIN LATERAL unnest(con.conkey, con.confkey)
                WITH ORDINALITY AS k(host_attnum, ref_attnum, position)
            JOIN pg_attribute ha ON ha.attrelid = con.conrelid AND ha.attnum = k.host_attnum
            JOIN pg_attribute ra ON ra.attrelid = con.confrelid AND ra.attnum = k.ref_attnum
            JOIN pg_class rt ON rt.oid = con.confrelid
            WHERE con.contype = 'f' AND con.conrelid = %s::regclass
            ORDER BY con.conname, k.position
            """,
            (self._qualified(table_name),)
        )

        fk_dict: Dict[str, Dict] = {}
        for row in result.rows:
            constraint_name = row[0]
            if constraint_name not in fk_dict:
                fk_dict[constraint_name] = {
                    "columns": [],
                    "referenced_table": row[2],
                    "referenced_columns": [],
                    "on_delete": row[4],
                    "on_update": row[5],
                }
            fk_dict[constraint_name]["columns"].append(row[1])
            fk_dict[constraint_name]["referenced_columns"].append(row[3])

        return [
            ForeignKeySchema(
                name=name,
                columns=fk_data["columns"],
                referenced_table=fk_data["referenced_table"],
                referenced_columns=fk_data["referenced_columns"],
                on_delete=fk_data["on_delete"],
                on_update=fk_data["on_update"],
            )
            for name, fk_data in fk_dict.items()
        ]

    def _fetch_indexes(self, table_name: str) -> List[IndexSchema]:
        """Fetch unique and primary indexes; partial and expression indexes are skipped"""
        result = self._introspect(
            """
            SELECT
                i.relname AS index_name,
                a.attname AS column_name,
                ix.indisunique AS is_unique,
                ix.indisprimary AS is_primary
            FROM pg_index ix
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_attribute a ON a.attrelid = ix.indrelid AND a.attnum = ANY(ix.indkey)
            WHERE ix.indrelid = %s::regclass
                AND ix.indpred IS NULL
                AND ix.indexprs IS NULL
            ORDER BY i.relname, array_position(ix.indkey, a.attnum)
            """,
            (self._qualified(table_name),)
        )

        idx_dict: Dict[str, Dict] = {}
        for row in result.rows:
            index_name = row[0]
            if index_name not in idx_dict:
                idx_dict[index_name] = {
                    "columns": [],
                    "is_unique": row[2],
                    "is_primary": row[3],
                }
            idx_dict[index_name]["columns"].append(row[1])

        return [
            IndexSchema(
                name=name,
                columns=idx_data["columns"],
                is_unique=idx_data["is_unique"],
                is_primary=idx_data["is_primary"],
            )
            for name, idx_data in idx_dict.items()
        ]
