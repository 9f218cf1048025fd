"""Index module - PHP symbol index, classlike resolution and type deduction.

This module provides:
- Indexing: tree-sitter parsing, namespace/import extraction, declarations
- Resolution: flattened classlikes (inheritance, interfaces, traits)
- Deduction: expression types with flow-sensitive variable narrowing

Public API is in `phpintel.index.ops`:
- IndexCoordinator: High-level orchestration

Internal implementations are in `phpintel.index._internal/`.

See DESIGN.md for architecture details.
"""

from phpintel.index._internal.db import Database, IndexStorage
from phpintel.index._internal.deduction import TextDocument, TypeList
from phpintel.index._internal.indexing import IndexResult, ProjectIndexStats
from phpintel.index._internal.resolution import (
    FlattenedClasslike,
    ResolvedConstant,
    ResolvedMethod,
    ResolvedProperty,
)
from phpintel.index.models import (
    Classlike,
    ClasslikeKind,
    ConstantDef,
    File,
    FileImport,
    FileNamespace,
    FunctionDef,
    ImportKind,
    ParameterDef,
    PropertyDef,
    TypeInfo,
    Visibility,
)
from phpintel.index.ops import IndexCoordinator

__all__ = [
    # Public API (ops.py)
    "IndexCoordinator",
    "IndexResult",
    "ProjectIndexStats",
    "TextDocument",
    "TypeList",
    # Database
    "Database",
    "IndexStorage",
    # Enums
    "ClasslikeKind",
    "ImportKind",
    "Visibility",
    # Table models
    "File",
    "FileNamespace",
    "FileImport",
    "Classlike",
    "ConstantDef",
    "PropertyDef",
    "FunctionDef",
    "ParameterDef",
    # Data transfer models
    "TypeInfo",
    "FlattenedClasslike",
    "ResolvedConstant",
    "ResolvedMethod",
    "ResolvedProperty",
]
