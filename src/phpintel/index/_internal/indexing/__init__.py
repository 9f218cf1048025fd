"""Indexing pipeline: namespace scopes, declarations, files and projects."""

from phpintel.index._internal.indexing.declarations import DeclarationIndexer, DeclarationStats
from phpintel.index._internal.indexing.file_indexer import FileIndexer, IndexResult
from phpintel.index._internal.indexing.project_indexer import ProjectIndexer, ProjectIndexStats
from phpintel.index._internal.indexing.signatures import ParameterInfo, SignatureExtractor

__all__ = [
    "DeclarationIndexer",
    "DeclarationStats",
    "FileIndexer",
    "IndexResult",
    "ParameterInfo",
    "ProjectIndexStats",
    "ProjectIndexer",
    "SignatureExtractor",
]
