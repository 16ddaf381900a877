"""Occurrence lifecycle: persistence, approval, removal and batch creation."""

from __future__ import annotations

from typing import Sequence, Union

from term_occurrences.core.errors import NotFoundError, ValidationError
from term_occurrences.core.logging import get_logger, log_context
from term_occurrences.core.metrics import OCCURRENCES_APPROVED, OCCURRENCES_CREATED, OCCURRENCES_REMOVED
from term_occurrences.models.dto import OccurrenceDescriptor
from term_occurrences.models.entities import (
    OccurrenceReference,
    OccurrenceTarget,
    Resource,
    TermOccurrence,
)
from term_occurrences.models.selectors import (
    CssSelector,
    Selector,
    TextPositionSelector,
    TextQuoteSelector,
    XPathSelector,
)
from term_occurrences.occurrences.repository import OccurrenceDao
from term_occurrences.resources.store import ResourceProvider
from term_occurrences.utils.ids import IdentifierGenerator

logger = get_logger(__name__)

OccurrenceRef = Union[TermOccurrence, OccurrenceReference]

TARGET_SUFFIX = "/target"


class OccurrenceService:
    """Entry point for everything that creates, changes, or deletes occurrences."""

    def __init__(
        self,
        dao: OccurrenceDao,
        resources: ResourceProvider,
        id_generator: IdentifierGenerator,
        occurrence_separator: str = "/occurrences",
    ) -> None:
        self.dao = dao
        self.resources = resources
        self.id_generator = id_generator
        self.occurrence_separator = occurrence_separator

    # Lookup ---------------------------------------------------------

    def find(self, occurrence_id: str) -> TermOccurrence:
        occurrence = self.dao.find(occurrence_id)
        if occurrence is None:
            raise NotFoundError.create("TermOccurrence", occurrence_id)
        return occurrence

    def get_reference(self, occurrence_id: str) -> OccurrenceReference:
        """Identity-only handle; checks existence without loading the target."""
        if not self.dao.exists(occurrence_id):
            raise NotFoundError.create("TermOccurrence", occurrence_id)
        return OccurrenceReference(occurrence_id)

    def list_by_source(self, source_id: str) -> list[TermOccurrence]:
        """All occurrences targeting ``source_id``, in no particular order."""
        return self.dao.find_all_targeting(source_id)

    def sources_in_use(self, created_before: int) -> list[str]:
        return self.dao.sources_in_use(created_before)

    def ids_in_source(self, source_id: str, created_before: int) -> list[str]:
        return self.dao.ids_targeting(source_id, created_before)

    # Creation -------------------------------------------------------

    def new_occurrence_id(self, context_id: str, token: str | None = None) -> str:
        return self.id_generator.fresh(context_id, self.occurrence_separator, token)

    def persist(self, occurrence: TermOccurrence, origin: str = "descriptor") -> TermOccurrence:
        """Store a new occurrence together with its target in one transaction."""
        target = occurrence.target
        if target is None or not target.source:
            raise ValidationError(f"Occurrence {occurrence.id} has no target source")
        if not target.selectors:
            raise ValidationError(f"Occurrence {occurrence.id} has no selectors")
        if target.id is None:
            target.id = f"{occurrence.id}{TARGET_SUFFIX}"
        self.dao.insert(occurrence)
        OCCURRENCES_CREATED.labels(origin=origin).inc()
        logger.debug(
            "Persisted occurrence %s of term %s",
            occurrence.id,
            occurrence.term,
            extra=log_context(occurrence=occurrence.id, source=target.source),
        )
        return occurrence

    def create_from_descriptor(
        self,
        descriptor: OccurrenceDescriptor,
        source: Resource,
        context_id: str,
    ) -> TermOccurrence:
        """Build and store an occurrence from caller-resolved selector data.

        The occurrence is Suggested only when the descriptor's extra types
        include the suggested classification; only then is a supplied lemma
        kept. Extra types are stored as given.
        """
        classification, extra_types = TermOccurrence.split_types(descriptor.extra_types)
        occurrence = TermOccurrence(
            id=self.new_occurrence_id(context_id, descriptor.client_id),
            term=self._descriptor_term(descriptor),
            target=OccurrenceTarget(
                source=source.id,
                source_kind=source.kind,
                selectors=_descriptor_selectors(descriptor),
            ),
            classification=classification,
            extra_types=extra_types,
        )
        if occurrence.is_suggested and descriptor.suggested_lemma:
            occurrence.suggested_lemma = descriptor.suggested_lemma
        return self.persist(occurrence, origin="descriptor")

    def create_batch(
        self,
        descriptors: Sequence[OccurrenceDescriptor],
        source_id: str,
        context_id: str | None = None,
    ) -> list[TermOccurrence]:
        source = self.resources.find_required(source_id)
        context = context_id or source.id
        created = [self.create_from_descriptor(d, source, context) for d in descriptors]
        logger.debug("Created %s occurrences in %s", len(created), source.id, extra=log_context(source=source.id))
        return created

    # Mutation -------------------------------------------------------

    def assign_term(self, occurrence: OccurrenceRef, term: str) -> TermOccurrence:
        if not term:
            raise ValidationError("missing term")
        loaded = self._load(occurrence)
        loaded.term = term
        self._update(loaded)
        logger.debug("Assigned term %s to occurrence %s", term, loaded.id, extra=log_context(occurrence=loaded.id))
        return loaded

    def approve(self, occurrence: OccurrenceRef) -> TermOccurrence:
        """Mark a suggested occurrence as approved; approving twice is a no-op."""
        loaded = self._load(occurrence)
        if loaded.term is None:
            raise ValidationError("missing term")
        if not loaded.is_suggested:
            logger.debug("Occurrence %s already approved", loaded.id, extra=log_context(occurrence=loaded.id))
            return loaded
        loaded.approve()
        self._update(loaded)
        OCCURRENCES_APPROVED.inc()
        logger.debug("Approved occurrence %s", loaded.id, extra=log_context(occurrence=loaded.id))
        return loaded

    # Removal --------------------------------------------------------

    def remove(self, occurrence: OccurrenceRef, reason: str = "explicit") -> None:
        if not self.dao.delete(occurrence.id):
            raise NotFoundError.create("TermOccurrence", occurrence.id)
        OCCURRENCES_REMOVED.labels(reason=reason).inc()
        logger.debug("Removed occurrence %s", occurrence.id, extra=log_context(occurrence=occurrence.id))

    def remove_all_for_source(self, source_id: str) -> int:
        removed = self.dao.delete_all_targeting(source_id)
        OCCURRENCES_REMOVED.labels(reason="source").inc(removed)
        logger.debug("Removed %s occurrences in %s", removed, source_id, extra=log_context(source=source_id))
        return removed

    def remove_all_suggested_for_source(self, source_id: str) -> int:
        removed = self.dao.delete_all_targeting(source_id, suggested_only=True)
        OCCURRENCES_REMOVED.labels(reason="suggestions").inc(removed)
        logger.debug("Removed %s suggested occurrences in %s", removed, source_id, extra=log_context(source=source_id))
        return removed

    # Internal helpers -------------------------------------------------

    def _load(self, occurrence: OccurrenceRef) -> TermOccurrence:
        if isinstance(occurrence, TermOccurrence):
            return occurrence
        return self.find(occurrence.id)

    def _update(self, occurrence: TermOccurrence) -> None:
        if not self.dao.update(occurrence):
            raise NotFoundError.create("TermOccurrence", occurrence.id)

    def _descriptor_term(self, descriptor: OccurrenceDescriptor) -> str | None:
        if descriptor.term_namespace and descriptor.term_fragment:
            return self.id_generator.resolve(descriptor.term_namespace, descriptor.term_fragment)
        return None


def _descriptor_selectors(descriptor: OccurrenceDescriptor) -> set[Selector]:
    selectors: set[Selector] = set()
    if descriptor.css_selector:
        selectors.add(CssSelector(descriptor.css_selector))
    if descriptor.xpath_selector:
        selectors.add(XPathSelector(descriptor.xpath_selector))
    if not selectors:
        raise ValidationError("Descriptor requires a CSS or XPath selector")
    if descriptor.exact_match:
        selectors.add(TextQuoteSelector(descriptor.exact_match))
    if descriptor.start is not None:
        if descriptor.start < 0:
            raise ValidationError(f"Invalid start offset {descriptor.start}")
        selectors.add(TextPositionSelector(descriptor.start))
    if not any(isinstance(s, (TextQuoteSelector, TextPositionSelector)) for s in selectors):
        raise ValidationError("Descriptor requires an exact match or a start offset")
    return selectors


__all__ = ["OccurrenceService", "OccurrenceRef"]
