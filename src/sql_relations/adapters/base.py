"""
Base Database Adapter Module
Defines abstract interface for schema introspection adapters using Template Method pattern
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Type
import threading

from ..config import DatabaseConfig, DatabaseType
from ..utils.errors import ConfigurationError


@dataclass
class TableSchema:
    """Schema information for a database table"""
    name: str
    columns: List["ColumnSchema"]
    primary_key: List[str] = field(default_factory=list)
    foreign_keys: List["ForeignKeySchema"] = field(default_factory=list)
    indexes: List["IndexSchema"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "columns": [c.to_dict() for c in self.columns],
            "primary_key": self.primary_key,
            "foreign_keys": [fk.to_dict() for fk in self.foreign_keys],
            "indexes": [idx.to_dict() for idx in self.indexes],
        }

    @property
    def unique_indexes(self) -> List["IndexSchema"]:
        """Unique, non-primary indexes"""
        return [idx for idx in self.indexes if idx.is_unique and not idx.is_primary]


@dataclass
class ColumnSchema:
    """Schema information for a database column"""
    name: str
    data_type: str
    nullable: bool = True
    default_value: Optional[str] = None
    is_primary_key: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "data_type": self.data_type,
            "nullable": self.nullable,
            "default_value": self.default_value,
            "is_primary_key": self.is_primary_key,
        }


@dataclass
class ForeignKeySchema:
    """Foreign key relationship information"""
    name: str
    columns: List[str]
    referenced_table: str
    referenced_columns: List[Optional[str]]
    on_delete: Optional[str] = None
    on_update: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "columns": self.columns,
            "referenced_table": self.referenced_table,
            "referenced_columns": self.referenced_columns,
            "on_delete": self.on_delete,
            "on_update": self.on_update,
        }


@dataclass
class IndexSchema:
    """Index information"""
    name: str
    columns: List[str]
    is_unique: bool = False
    is_primary: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "columns": self.columns,
            "is_unique": self.is_unique,
            "is_primary": self.is_primary,
        }


@dataclass
class DatabaseSchema:
    """Complete database schema"""
    database_name: str
    database_type: DatabaseType
    schema_name: Optional[str] = None
    tables: Dict[str, TableSchema] = field(default_factory=dict)
    retrieved_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "database_name": self.database_name,
            "database_type": DatabaseType(self.database_type).value,
            "schema_name": self.schema_name,
            "tables": {k: v.to_dict() for k, v in self.tables.items()},
            "retrieved_at": self.retrieved_at.isoformat(),
        }

    def get_table_names(self) -> List[str]:
        """Get all table names"""
        return list(self.tables.keys())

    def get_table(self, name: str) -> Optional[TableSchema]:
        """Get table schema by name (case-insensitive)"""
        if name in self.tables:
            return self.tables[name]

        name_lower = name.lower()
        for table_name, table in self.tables.items():
            if table_name.lower() == name_lower:
                return table

        return None


@dataclass
class QueryResult:
    """Result of a SQL query execution"""
    success: bool
    columns: List[str] = field(default_factory=list)
    rows: List[Tuple[Any, ...]] = field(default_factory=list)
    row_count: int = 0
    execution_time_ms: float = 0.0
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "columns": self.columns,
            "rows": [list(row) for row in self.rows],
            "row_count": self.row_count,
            "execution_time_ms": self.execution_time_ms,
            "error_message": self.error_message,
        }


class BaseDatabaseAdapter(ABC):
    """
    Abstract base class for schema introspection adapters

    Implements Template Method pattern: subclasses provide the connection and
    catalog queries, the base class assembles and caches the DatabaseSchema.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._connection = None
        self._schema_cache: Optional[DatabaseSchema] = None
        self._lock = threading.Lock()

    @property
    @abstractmethod
    def database_type(self) -> DatabaseType:
        """Return the database type"""
        pass

    @abstractmethod
    def connect(self) -> None:
        """Establish database connection"""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Close database connection"""
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if connection is active"""
        pass

    @abstractmethod
    def execute_query(self, sql: str, params: Optional[Any] = None) -> QueryResult:
        """Execute a SQL query and return results"""
        pass

    @abstractmethod
    def _fetch_tables(self) -> List[TableSchema]:
        """Fetch table schemas from database"""
        pass

    @property
    def schema_name(self) -> Optional[str]:
        """Namespace the introspected tables live in, if the backend has one"""
        return None

    def get_schema(self, force_refresh: bool = False) -> DatabaseSchema:
        """
        Get database schema, cached for the lifetime of the adapter

        The cached schema is the immutable snapshot a classification run
        works on; pass force_refresh after DDL changes.
        """
        with self._lock:
            if not force_refresh and self._schema_cache is not None:
                return self._schema_cache

            tables = self._fetch_tables()

            self._schema_cache = DatabaseSchema(
                database_name=self.config.database,
                database_type=self.database_type,
                schema_name=self.schema_name,
                tables={t.name: t for t in tables},
            )

            return self._schema_cache

    def test_connection(self) -> Tuple[bool, Optional[str]]:
        """
        Test database connection

        Returns:
            Tuple of (success, error_message)
        """
        try:
            self.connect()
            return True, None
        except Exception as e:
            return False, str(e)
        finally:
            self.disconnect()

    def __enter__(self) -> "BaseDatabaseAdapter":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()


# Type alias for adapter classes
AdapterClass = Type[BaseDatabaseAdapter]


class DatabaseAdapterRegistry:
    """Registry for database adapters using Factory pattern"""

    _adapters: Dict[DatabaseType, AdapterClass] = {}
    _lock = threading.Lock()

    @classmethod
    def register(cls, db_type: DatabaseType, adapter_class: AdapterClass) -> None:
        """Register a database adapter class"""
        with cls._lock:
            cls._adapters[DatabaseType(db_type)] = adapter_class

    @classmethod
    def get_adapter_class(cls, db_type: DatabaseType) -> AdapterClass:
        """Get adapter class for database type"""
        with cls._lock:
            key = DatabaseType(db_type)
            if key not in cls._adapters:
                raise ConfigurationError(
                    f"No adapter registered for database type: {db_type}",
                    config_key="db_type",
                )
            return cls._adapters[key]

    @classmethod
    def create_adapter(cls, config: DatabaseConfig) -> BaseDatabaseAdapter:
        """Create adapter instance from configuration"""
        adapter_class = cls.get_adapter_class(config.db_type)
        return adapter_class(config)

    @classmethod
    def get_supported_types(cls) -> List[DatabaseType]:
        """Get list of supported database types"""
        with cls._lock:
            return list(cls._adapters.keys())

    @classmethod
    def is_supported(cls, db_type: DatabaseType) -> bool:
        """Check if database type is supported"""
        with cls._lock:
            return DatabaseType(db_type) in cls._adapters


def register_adapter(db_type: DatabaseType):
    """Decorator to register a database adapter class"""
    def decorator(cls: AdapterClass) -> AdapterClass:
        DatabaseAdapterRegistry.register(db_type, cls)
        return cls
    return decorator
