"""
Utilities Package for SQL Relations
"""
from .logging import (
    setup_logging,
    get_logger,
    set_correlation_id,
    get_correlation_id,
    set_run_id,
    get_run_id,
    set_component,
    clear_context,
    log_context,
    log_operation,
)

from .errors import (
    ErrorSeverity,
    ErrorCategory,
    ErrorContext,
    RelationsError,
    DatabaseConnectionError,
    SchemaFactsError,
    CyclicExtensionError,
    ConflictingExtensionError,
    AmbiguousSameAsError,
    ConfigurationError,
    format_error_for_report,
    classify_database_error,
)

from .metrics import (
    MetricsCollector,
    get_metrics_collector,
    counter,
    gauge,
    timer,
    time_operation,
    ClassifierMetrics,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "set_correlation_id",
    "get_correlation_id",
    "set_run_id",
    "get_run_id",
    "set_component",
    "clear_context",
    "log_context",
    "log_operation",
    # Errors
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorContext",
    "RelationsError",
    "DatabaseConnectionError",
    "SchemaFactsError",
    "CyclicExtensionError",
    "ConflictingExtensionError",
    "AmbiguousSameAsError",
    "ConfigurationError",
    "format_error_for_report",
    "classify_database_error",
    # Metrics
    "MetricsCollector",
    "get_metrics_collector",
    "counter",
    "gauge",
    "timer",
    "time_operation",
    "ClassifierMetrics",
]
