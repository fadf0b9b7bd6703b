"""
Relation Classifier Package

Extension detection, ancestor closure, column-subset matching, vertical and
horizontal Same-As classification, triangular detection and table lists.
"""
from .models import (
    RelationTag,
    IdentifyingSource,
    Extension,
    VerticalSameAs,
    HorizontalSameAs,
    MultiColumnSameAs,
    AmbiguousSameAs,
    TriangularSameAs,
    ForeignKeyClassification,
    SchemaClassification,
)

from .extension import detect_extension, ExtensionGraph
from .matcher import IdentifyingTuple, SubsetMatch, match_columns, match_all, best_match
from .same_as import classify_vertical, classify_horizontal
from .triangular import detect_triangles
from .table_lists import (
    is_textual,
    is_table_list,
    find_table_lists,
    columns_referring_to_table_lists,
    table_list_references,
)
from .engine import (
    classify_foreign_key,
    RelationClassifier,
    classify_schema,
    classify_file,
    analyze_database,
)

__all__ = [
    # Models
    "RelationTag",
    "IdentifyingSource",
    "Extension",
    "VerticalSameAs",
    "HorizontalSameAs",
    "MultiColumnSameAs",
    "AmbiguousSameAs",
    "TriangularSameAs",
    "ForeignKeyClassification",
    "SchemaClassification",
    # Extension
    "detect_extension",
    "ExtensionGraph",
    # Matcher
    "IdentifyingTuple",
    "SubsetMatch",
    "match_columns",
    "match_all",
    "best_match",
    # Same-As
    "classify_vertical",
    "classify_horizontal",
    "detect_triangles",
    # Table lists
    "is_textual",
    "is_table_list",
    "find_table_lists",
    "columns_referring_to_table_lists",
    "table_list_references",
    # Engine
    "classify_foreign_key",
    "RelationClassifier",
    "classify_schema",
    "classify_file",
    "analyze_database",
]
