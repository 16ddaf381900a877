"""Selects the resolver for a resource from its kind and media type."""

from __future__ import annotations

from enum import Enum
from typing import BinaryIO

from term_occurrences.core.errors import UnsupportedContentError
from term_occurrences.core.logging import get_logger, log_context
from term_occurrences.models.entities import Resource, ResourceKind
from term_occurrences.resolver.markup import MarkupOccurrenceResolver, PathStyle, ResolutionResult

logger = get_logger(__name__)

DEFAULT_ENCODING = "utf-8"


class ContentDialect(str, Enum):
    HTML = "html"
    XML = "xml"


_MEDIA_TYPE_DIALECTS: dict[str, ContentDialect] = {
    "text/html": ContentDialect.HTML,
    "application/xml": ContentDialect.XML,
    "text/xml": ContentDialect.XML,
    "application/xhtml+xml": ContentDialect.XML,
}


def parse_media_type(mime: str | None) -> tuple[str | None, str]:
    """Split ``text/html; charset=...`` into media type and encoding."""
    if not mime:
        return None, DEFAULT_ENCODING
    media_type, *params = (part.strip() for part in mime.split(";"))
    encoding = DEFAULT_ENCODING
    for param in params:
        name, _, value = param.partition("=")
        if name.strip().lower() == "charset" and value.strip():
            encoding = value.strip().strip('"')
    return media_type.lower(), encoding


def dialect_of(resource: Resource) -> ContentDialect | None:
    media_type, _ = parse_media_type(resource.mime)
    if media_type is None:
        # Untyped content, including term definitions, is treated as HTML.
        return ContentDialect.HTML
    return _MEDIA_TYPE_DIALECTS.get(media_type)


class ResolverRegistry:
    """Explicit ``(resource kind, dialect) -> resolver`` table."""

    def __init__(self, marker: str = "term-occurrence") -> None:
        html = MarkupOccurrenceResolver(PathStyle.CSS, parser="html.parser", marker=marker)
        xml = MarkupOccurrenceResolver(PathStyle.XPATH, parser="xml", marker=marker)
        self._table: dict[tuple[ResourceKind, ContentDialect], MarkupOccurrenceResolver] = {
            (ResourceKind.DOCUMENT, ContentDialect.HTML): html,
            (ResourceKind.DOCUMENT, ContentDialect.XML): xml,
            (ResourceKind.WEBSITE, ContentDialect.HTML): html,
            (ResourceKind.WEBSITE, ContentDialect.XML): xml,
            (ResourceKind.TERM, ContentDialect.HTML): html,
        }

    def supports(self, resource: Resource) -> bool:
        dialect = dialect_of(resource)
        return dialect is not None and (resource.kind, dialect) in self._table

    def resolver_for(self, resource: Resource) -> MarkupOccurrenceResolver:
        dialect = dialect_of(resource)
        resolver = self._table.get((resource.kind, dialect)) if dialect is not None else None
        if resolver is None:
            logger.warning(
                "No resolver for %s content of %s %s",
                resource.mime,
                resource.kind.value,
                resource.id,
                extra=log_context(source=resource.id),
            )
            raise UnsupportedContentError(
                f"Unsupported content type {resource.mime!r} for {resource.kind.value} {resource.id}"
            )
        return resolver

    def encoding_of(self, resource: Resource) -> str:
        return parse_media_type(resource.mime)[1]

    def resolve(self, content: bytes | BinaryIO, resource: Resource) -> ResolutionResult:
        resolver = self.resolver_for(resource)
        return resolver.resolve(content, resource, encoding=self.encoding_of(resource))


__all__ = ["ContentDialect", "ResolverRegistry", "dialect_of", "parse_media_type"]
