"""Annotation generation: resolve marked-up content into stored suggestions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO

from term_occurrences.core.logging import get_logger, log_context
from term_occurrences.core.metrics import RESOLUTION_DURATION
from term_occurrences.models.entities import Classification, Resource, TermOccurrence
from term_occurrences.occurrences.dedupe import filter_new
from term_occurrences.occurrences.service import OccurrenceService
from term_occurrences.resolver.registry import ResolverRegistry
from term_occurrences.resources.store import ContentStore
from term_occurrences.utils.time import Stopwatch

logger = get_logger(__name__)


@dataclass(slots=True)
class AnnotationReport:
    """Outcome of one annotation run."""

    source_id: str
    created: list[TermOccurrence] = field(default_factory=list)
    candidates: int = 0
    skipped: int = 0
    content_updated: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "source": self.source_id,
            "candidates": self.candidates,
            "created": len(self.created),
            "skipped": self.skipped,
            "content_updated": self.content_updated,
        }


class AnnotationGenerator:
    """Creates suggested term occurrences from annotated content.

    Concurrent runs against the same source each dedupe against their own
    snapshot of the stored occurrences and may both store the same
    suggestion; callers needing exactly-once results must serialise runs
    per source.
    """

    def __init__(
        self,
        occurrences: OccurrenceService,
        resolvers: ResolverRegistry,
        contents: ContentStore,
    ) -> None:
        self.occurrences = occurrences
        self.resolvers = resolvers
        self.contents = contents

    def generate_annotations(self, source: Resource, content: bytes | BinaryIO | None = None) -> AnnotationReport:
        """Resolve ``content`` (or the stored content of ``source``) and store new suggestions.

        For documents and websites the normalized content, with anchors
        injected into every marked span, replaces the stored content so the
        stored selectors keep matching it.
        """
        timer = Stopwatch()
        resolver = self.resolvers.resolver_for(source)
        if content is None:
            content = self.contents.read(source.id)
        logger.debug("Resolving annotations of %s", source.id, extra=log_context(source=source.id))
        result = resolver.resolve(content, source, encoding=self.resolvers.encoding_of(source))

        report = AnnotationReport(source_id=source.id, candidates=len(result.candidates))
        existing = self.occurrences.list_by_source(source.id)
        fresh = filter_new(result.candidates, existing, source_id=source.id)
        report.skipped = len(result.candidates) - len(fresh)

        if source.stores_content:
            self.contents.write(source.id, result.content)
            report.content_updated = True

        for candidate in fresh:
            occurrence = TermOccurrence(
                id=self.occurrences.new_occurrence_id(source.id),
                term=candidate.term,
                target=candidate.target,
                classification=Classification.SUGGESTED,
                suggested_lemma=candidate.suggested_lemma,
            )
            report.created.append(self.occurrences.persist(occurrence, origin="resolver"))

        RESOLUTION_DURATION.labels(kind=source.kind.value).observe(timer.elapsed())
        logger.debug(
            "Finished annotations of %s: %s created, %s skipped (%s parser)",
            source.id,
            len(report.created),
            report.skipped,
            resolver.parser,
            extra=log_context(source=source.id),
        )
        return report


__all__ = ["AnnotationGenerator", "AnnotationReport"]
