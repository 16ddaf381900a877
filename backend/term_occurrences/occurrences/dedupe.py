"""Deduplication of resolved occurrences against stored ones."""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Sequence

from term_occurrences.core.logging import get_logger, log_context
from term_occurrences.models.entities import CandidateOccurrence, OccurrenceTarget, TermOccurrence

logger = get_logger(__name__)


class _ExistingIndex:
    """Targets of known occurrences grouped by term."""

    def __init__(self, targets: Iterable[tuple[str | None, OccurrenceTarget]]) -> None:
        self._by_term: dict[str | None, list[OccurrenceTarget]] = defaultdict(list)
        for term, target in targets:
            self.add(term, target)

    def add(self, term: str | None, target: OccurrenceTarget) -> None:
        self._by_term[term].append(target)

    def contains(self, term: str | None, target: OccurrenceTarget) -> bool:
        for known in self._by_term.get(term, ()):
            if known.source != target.source:
                continue
            if term is None:
                # Unassigned spans only match an identical location.
                if known.selectors == target.selectors:
                    return True
            elif known.shares_selector_with(target):
                return True
        return False


def filter_new(
    candidates: Sequence[CandidateOccurrence],
    existing: Sequence[TermOccurrence],
    source_id: str | None = None,
) -> list[CandidateOccurrence]:
    """Return the candidates that are genuinely new, in their original order.

    A candidate is a duplicate when a stored occurrence of the same term on
    the same source shares at least one selector with it. Candidates with
    no term only match stored term-less occurrences with the same selector
    set. ``existing`` must be every occurrence already stored for the source.
    Candidates pointing at the source itself (a term inside its own
    definition) are dropped, as are later repeats within ``candidates``.
    The function is pure: neither sequence is modified.
    """
    index = _ExistingIndex((o.term, o.target) for o in existing)
    fresh: list[CandidateOccurrence] = []
    for candidate in candidates:
        source = source_id or candidate.target.source
        if candidate.term is not None and candidate.term == source:
            logger.debug("Skipping self-referencing occurrence of %s", source, extra=log_context(source=source))
            continue
        if index.contains(candidate.term, candidate.target):
            logger.debug(
                "Skipping occurrence of %s because an equivalent one exists",
                candidate.term,
                extra=log_context(source=source),
            )
            continue
        index.add(candidate.term, candidate.target)
        fresh.append(candidate)
    return fresh


__all__ = ["filter_new"]
