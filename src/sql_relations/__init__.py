"""
SQL Relations
=============

Infers semantic relations from the foreign-key structure of a relational
schema, for use by data-access code generators.

Features:
- Extension (primary-key-to-primary-key inheritance) detection with cycle
  and conflict reporting
- Vertical, horizontal and triangular Same-As classification
- Mandatory vs. discretionary triangles
- Table-list (enumeration table) detection and ancestor-first ordering
- Schema facts from YAML/JSON documents, SQLite or PostgreSQL
- Thread-pool classification, structured logging and metrics

Quick Start:
------------

    from sql_relations import classify_schema

    report = classify_schema("schema.yaml")
    for classification in report.classifications:
        print(classification.foreign_key.name, classification.tag.value)

From a Live Database:
---------------------

    from sql_relations import SQLiteAdapter, DatabaseConfig, analyze_database

    config = DatabaseConfig(db_type="sqlite", database="app", sqlite_path="app.db")
    with SQLiteAdapter(config) as adapter:
        report = analyze_database(adapter)
    report.save("relations.yaml")
"""

__version__ = "1.0.0"
__author__ = "SQL Relations Team"

# Configuration
from .config import (
    DatabaseType,
    LogLevel,
    DatabaseConfig,
    ClassifierConfig,
    SystemConfig,
    get_config,
    set_config,
    reset_config,
)

# Database Adapters
from .adapters import (
    BaseDatabaseAdapter,
    DatabaseAdapterRegistry,
    DatabaseSchema,
    TableSchema,
    ColumnSchema,
    QueryResult,
    create_adapter,
    get_supported_databases,
    PostgreSQLAdapter,
    SQLiteAdapter,
)

# Schema Facts
from .facts import (
    TableRef,
    ColumnRef,
    ColumnPair,
    Column,
    UniqueConstraint,
    ForeignKey,
    Table,
    SchemaSnapshot,
    BaseFactsProvider,
    DictFactsProvider,
    FileFactsProvider,
    DatabaseFactsProvider,
    load_snapshot,
)

# Classifier
from .classifier import (
    RelationTag,
    Extension,
    VerticalSameAs,
    HorizontalSameAs,
    MultiColumnSameAs,
    AmbiguousSameAs,
    TriangularSameAs,
    ForeignKeyClassification,
    SchemaClassification,
    ExtensionGraph,
    RelationClassifier,
    classify_foreign_key,
    classify_schema,
    classify_file,
    analyze_database,
)

# Utilities
from .utils import (
    setup_logging,
    get_logger,
    RelationsError,
    DatabaseConnectionError,
    SchemaFactsError,
    CyclicExtensionError,
    ConflictingExtensionError,
    AmbiguousSameAsError,
    ConfigurationError,
    get_metrics_collector,
    ClassifierMetrics,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "DatabaseType",
    "LogLevel",
    "DatabaseConfig",
    "ClassifierConfig",
    "SystemConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Adapters
    "BaseDatabaseAdapter",
    "DatabaseAdapterRegistry",
    "DatabaseSchema",
    "TableSchema",
    "ColumnSchema",
    "QueryResult",
    "create_adapter",
    "get_supported_databases",
    "PostgreSQLAdapter",
    "SQLiteAdapter",
    # Facts
    "TableRef",
    "ColumnRef",
    "ColumnPair",
    "Column",
    "UniqueConstraint",
    "ForeignKey",
    "Table",
    "SchemaSnapshot",
    "BaseFactsProvider",
    "DictFactsProvider",
    "FileFactsProvider",
    "DatabaseFactsProvider",
    "load_snapshot",
    # Classifier
    "RelationTag",
    "Extension",
    "VerticalSameAs",
    "HorizontalSameAs",
    "MultiColumnSameAs",
    "AmbiguousSameAs",
    "TriangularSameAs",
    "ForeignKeyClassification",
    "SchemaClassification",
    "ExtensionGraph",
    "RelationClassifier",
    "classify_foreign_key",
    "classify_schema",
    "classify_file",
    "analyze_database",
    # Utilities
    "setup_logging",
    "get_logger",
    "RelationsError",
    "DatabaseConnectionError",
    "SchemaFactsError",
    "CyclicExtensionError",
    "ConflictingExtensionError",
    "AmbiguousSameAsError",
    "ConfigurationError",
    "get_metrics_collector",
    "ClassifierMetrics",
]
