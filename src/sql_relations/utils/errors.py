"""
Error Handling Module for SQL Relations
Defines custom exceptions raised while loading schema facts and classifying relations
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
from datetime import datetime


class ErrorSeverity(str, Enum):
    """Error severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Error categories for classification failures"""
    DATABASE = "database"
    SCHEMA = "schema"
    EXTENSION = "extension"
    SAME_AS = "same_as"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Additional context for errors"""
    correlation_id: Optional[str] = None
    run_id: Optional[str] = None
    schema_name: Optional[str] = None
    table: Optional[str] = None
    foreign_key: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "correlation_id": self.correlation_id,
            "run_id": self.run_id,
            "schema_name": self.schema_name,
            "table": self.table,
            "foreign_key": self.foreign_key,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class RelationsError(Exception):
    """Base exception for SQL Relations"""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[ErrorContext] = None,
        recoverable: bool = True,
        suggestions: Optional[List[str]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.recoverable = recoverable
        self.suggestions = suggestions or []
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "suggestions": self.suggestions,
            "context": self.context.to_dict(),
            "original_error": str(self.original_error) if self.original_error else None,
        }

    def __str__(self) -> str:
        return f"[{self.category.value}] {self.message}"


class DatabaseConnectionError(RelationsError):
    """Database connection failure"""

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.DATABASE,
            severity=ErrorSeverity.HIGH,
            context=context,
            recoverable=True,
            suggestions=[
                "Check database host and port configuration",
                "Verify database credentials",
                "Ensure database server is running",
            ],
            original_error=original_error
        )


class SchemaFactsError(RelationsError):
    """Malformed schema facts (dangling references, unknown columns, bad tuples)"""

    def __init__(
        self,
        message: str,
        table_name: Optional[str] = None,
        column_name: Optional[str] = None,
        foreign_key: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None
    ):
        suggestions = ["Verify the schema source produces well-formed tables and constraints"]
        if table_name:
            suggestions.append(f"Check the definition of table '{table_name}'")
        if column_name:
            suggestions.append(f"Check if column '{column_name}' exists")

        context = context or ErrorContext()
        context.table = context.table or table_name
        context.foreign_key = context.foreign_key or foreign_key

        super().__init__(
            message=message,
            category=ErrorCategory.SCHEMA,
            severity=ErrorSeverity.HIGH,
            context=context,
            recoverable=False,
            suggestions=suggestions,
            original_error=original_error
        )
        self.table_name = table_name
        self.column_name = column_name
        self.foreign_key = foreign_key


class CyclicExtensionError(RelationsError):
    """Extension edges form a cycle"""

    def __init__(
        self,
        tables: Sequence[str],
        context: Optional[ErrorContext] = None,
    ):
        self.tables = tuple(tables)
        cycle = " -> ".join(list(self.tables) + [self.tables[0]]) if self.tables else ""
        context = context or ErrorContext()
        context.table = context.table or (self.tables[0] if self.tables else None)

        super().__init__(
            message=f"Extension edges form a cycle: {cycle}",
            category=ErrorCategory.EXTENSION,
            severity=ErrorSeverity.CRITICAL,
            context=context,
            recoverable=False,
            suggestions=[
                "Remove one of the primary-key-to-primary-key foreign keys in the cycle",
                f"Tables involved: {', '.join(self.tables)}",
            ],
        )


class ConflictingExtensionError(RelationsError):
    """A table has more than one candidate Extension edge"""

    def __init__(
        self,
        table: str,
        foreign_keys: Sequence[str],
        context: Optional[ErrorContext] = None,
    ):
        self.table = table
        self.foreign_keys = tuple(foreign_keys)
        context = context or ErrorContext()
        context.table = table

        super().__init__(
            message=(
                f"Table '{table}' has {len(self.foreign_keys)} candidate extension "
                f"foreign keys: {', '.join(self.foreign_keys)}"
            ),
            category=ErrorCategory.EXTENSION,
            severity=ErrorSeverity.HIGH,
            context=context,
            recoverable=False,
            suggestions=[
                "Multiple inheritance is not supported; keep a single primary key foreign key",
                "Reference the other ancestors through a non-primary-key column",
            ],
        )


class AmbiguousSameAsError(RelationsError):
    """More than one uniqueness constraint satisfies a horizontal match"""

    def __init__(
        self,
        foreign_key: str,
        candidates: Sequence[str],
        context: Optional[ErrorContext] = None,
    ):
        self.candidates = tuple(candidates)
        context = context or ErrorContext()
        context.foreign_key = foreign_key

        super().__init__(
            message=(
                f"Foreign key '{foreign_key}' matches {len(self.candidates)} uniqueness "
                f"constraints: {', '.join(self.candidates)}"
            ),
            category=ErrorCategory.SAME_AS,
            severity=ErrorSeverity.MEDIUM,
            context=context,
            recoverable=True,
            suggestions=[
                "Drop the redundant uniqueness constraint",
                "Annotate which constraint identifies the referenced row",
            ],
        )
        self.foreign_key = foreign_key


class ConfigurationError(RelationsError):
    """Configuration errors"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None
    ):
        suggestions = ["Review configuration settings"]
        if config_key:
            suggestions.append(f"Check configuration for key: {config_key}")

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.HIGH,
            context=context,
            recoverable=False,
            suggestions=suggestions,
            original_error=original_error
        )
        self.config_key = config_key


def format_error_for_report(error: RelationsError) -> str:
    """Format an error as an actionable schema report"""
    lines = [
        f"Error Type: {error.__class__.__name__}",
        f"Category: {error.category.value}",
        f"Message: {error.message}",
    ]

    if error.context.table:
        lines.append(f"Table: {error.context.table}")
    if error.context.foreign_key:
        lines.append(f"Foreign Key: {error.context.foreign_key}")

    if error.suggestions:
        lines.append("Suggestions:")
        for suggestion in error.suggestions:
            lines.append(f"  - {suggestion}")

    if error.original_error:
        lines.append(f"Original Error: {str(error.original_error)}")

    return "\n".join(lines)


def classify_database_error(error: Exception, db_type: str) -> RelationsError:
    """Classify a raw database error into appropriate RelationsError subclass"""
    error_str = str(error).lower()

    if any(term in error_str for term in ['connect', 'connection', 'refused', 'timeout', 'host']):
        return DatabaseConnectionError(
            message=str(error),
            context=ErrorContext(metadata={"db_type": db_type}),
            original_error=error
        )

    if any(term in error_str for term in ['table', 'column', 'not found', 'does not exist', 'unknown']):
        return SchemaFactsError(
            message=str(error),
            context=ErrorContext(metadata={"db_type": db_type}),
            original_error=error
        )

    return RelationsError(
        message=str(error),
        category=ErrorCategory.DATABASE,
        context=ErrorContext(metadata={"db_type": db_type}),
        original_error=error
    )
