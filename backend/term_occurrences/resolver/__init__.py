"""Occurrence resolution components."""

from .markup import MarkupOccurrenceResolver, PathStyle, ResolutionResult
from .registry import ContentDialect, ResolverRegistry

__all__ = [
    "MarkupOccurrenceResolver",
    "PathStyle",
    "ResolutionResult",
    "ContentDialect",
    "ResolverRegistry",
]
