"""Classlike resolution (inheritance, interfaces, traits)."""

from phpintel.index._internal.resolution.classlike import ClasslikeResolver
from phpintel.index._internal.resolution.models import (
    FlattenedClasslike,
    ResolvedConstant,
    ResolvedMember,
    ResolvedMethod,
    ResolvedParameter,
    ResolvedProperty,
)

__all__ = [
    "ClasslikeResolver",
    "FlattenedClasslike",
    "ResolvedConstant",
    "ResolvedMember",
    "ResolvedMethod",
    "ResolvedParameter",
    "ResolvedProperty",
]
