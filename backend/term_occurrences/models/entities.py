"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import AbstractSet, Iterable

from term_occurrences.models.selectors import Selector

# Classification is persisted as a member of an occurrence's type set.
TERM_OCCURRENCE_TYPE = "https://w3id.org/term-occurrences#TermOccurrence"
SUGGESTED_OCCURRENCE_TYPE = "https://w3id.org/term-occurrences#SuggestedTermOccurrence"


class ResourceKind(str, Enum):
    DOCUMENT = "document"
    WEBSITE = "website"
    TERM = "term"


class Classification(str, Enum):
    SUGGESTED = "suggested"
    APPROVED = "approved"


@dataclass(slots=True)
class Resource:
    id: str
    kind: ResourceKind
    label: str | None = None
    mime: str | None = None
    url: str | None = None
    parent_id: str | None = None

    @property
    def stores_content(self) -> bool:
        """Documents and websites keep canonical content; term definitions do not."""
        return self.kind in (ResourceKind.DOCUMENT, ResourceKind.WEBSITE)


@dataclass(slots=True, eq=False)
class OccurrenceTarget:
    """Location of an occurrence: a source resource plus a set of selectors.

    A target has no lifecycle of its own; it is stored and removed together
    with its owning :class:`TermOccurrence`. Equality is by assigned id.
    """

    source: str
    source_kind: ResourceKind
    selectors: frozenset[Selector] = field(default_factory=frozenset)
    id: str | None = None

    def __post_init__(self) -> None:
        self.selectors = frozenset(self.selectors)

    def replace_selectors(self, selectors: Iterable[Selector]) -> None:
        self.selectors = frozenset(selectors)

    def shares_selector_with(self, other: "OccurrenceTarget") -> bool:
        return not self.selectors.isdisjoint(other.selectors)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OccurrenceTarget):
            return NotImplemented
        if self.id is None or other.id is None:
            return self is other
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id) if self.id is not None else id(self)


@dataclass(slots=True, eq=False)
class TermOccurrence:
    """Record that ``term`` appears at ``target``.

    ``term`` may be ``None`` while an automatically detected span waits for a
    human to decide which term it refers to; such an occurrence cannot be
    approved. ``suggested_lemma`` only carries meaning while the occurrence is
    suggested.
    """

    id: str
    term: str | None
    target: OccurrenceTarget
    classification: Classification = Classification.SUGGESTED
    extra_types: set[str] = field(default_factory=set)
    suggested_lemma: str | None = None

    @property
    def source(self) -> str:
        return self.target.source

    @property
    def is_suggested(self) -> bool:
        return self.classification is Classification.SUGGESTED

    @property
    def types(self) -> set[str]:
        """Full persisted type set: base type, classification, and extra types."""
        types = {TERM_OCCURRENCE_TYPE, *self.extra_types}
        if self.is_suggested:
            types.add(SUGGESTED_OCCURRENCE_TYPE)
        return types

    def approve(self) -> None:
        self.classification = Classification.APPROVED
        self.suggested_lemma = None

    @staticmethod
    def split_types(types: AbstractSet[str]) -> tuple[Classification, set[str]]:
        """Separate the classification from caller-supplied extra types."""
        classification = (
            Classification.SUGGESTED if SUGGESTED_OCCURRENCE_TYPE in types else Classification.APPROVED
        )
        extra = set(types) - {TERM_OCCURRENCE_TYPE, SUGGESTED_OCCURRENCE_TYPE}
        return classification, extra

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, (TermOccurrence, OccurrenceReference)):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"TermOccurrence(id={self.id!r}, term={self.term!r}, source={self.source!r})"


@dataclass(frozen=True, slots=True)
class OccurrenceReference:
    """Identity-only handle to a stored occurrence."""

    id: str


@dataclass(slots=True)
class CandidateOccurrence:
    """Occurrence discovered by a resolver, not yet deduplicated or stored."""

    term: str | None
    target: OccurrenceTarget
    suggested_lemma: str | None = None
    anchor: str | None = None


__all__ = [
    "TERM_OCCURRENCE_TYPE",
    "SUGGESTED_OCCURRENCE_TYPE",
    "ResourceKind",
    "Classification",
    "Resource",
    "OccurrenceTarget",
    "TermOccurrence",
    "OccurrenceReference",
    "CandidateOccurrence",
]
