"""Configuration constants.

This module contains truly constant values that should NOT be user-configurable.
These are language facts and implementation details.

For configurable values, see models.py (IndexConfig, AnalysisConfig, etc.).
"""

# =============================================================================
# On-disk layout
# =============================================================================

CONFIG_DIR_NAME = ".phpintel"
"""Per-project directory holding config.yaml and the index database."""

CONFIG_FILE_NAME = "config.yaml"

INDEX_DB_NAME = "index.db"

# =============================================================================
# PHP language facts
# =============================================================================

SPECIAL_CLASS_NAMES = frozenset({"self", "static", "parent", "$this"})
"""Names bound to a classlike relative to the code that uses them."""

KEYWORD_TYPES = frozenset(
    {
        "array",
        "bool",
        "boolean",
        "callable",
        "false",
        "float",
        "double",
        "int",
        "integer",
        "iterable",
        "mixed",
        "never",
        "null",
        "object",
        "resource",
        "string",
        "true",
        "void",
    }
)
"""Type keywords that never refer to a classlike and are never namespace-prefixed."""

TYPE_KEYWORD_ALIASES = {
    "boolean": "bool",
    "integer": "int",
    "double": "float",
}
"""Docblock spellings normalised to their canonical keyword."""

# =============================================================================
# Internal Implementation Constants
# =============================================================================

CLOSURE_FQCN = "\\Closure"
"""Type of anonymous functions and arrow functions."""

LANGUAGE_CONSTRUCTS = frozenset(
    {"isset", "empty", "eval", "exit", "die", "list", "array", "unset", "print", "echo"}
)
"""Call-like syntax that is not a function and is never looked up in the index."""

MAGIC_CALL_METHODS = {
    "method": "__call",
    "static_method": "__callstatic",
    "property": "__get",
}
"""Magic method that makes any member of the given kind accessible."""
