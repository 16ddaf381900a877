"""Pydantic DTOs exchanged with callers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from term_occurrences.models.entities import Resource, TermOccurrence
from term_occurrences.models.selectors import selector_to_dict, sorted_selectors


class OccurrenceDescriptor(BaseModel):
    """Pre-resolved selector data for one occurrence, e.g. sent by a UI."""

    css_selector: str | None = Field(default=None, alias="cssSelector")
    xpath_selector: str | None = Field(default=None, alias="xPathSelector")
    start: int | None = None
    exact_match: str | None = Field(default=None, alias="exactMatch")
    extra_types: set[str] = Field(default_factory=set, alias="extraTypes")
    suggested_lemma: str | None = Field(default=None, alias="suggestedLemma")
    client_id: str | None = Field(default=None, alias="clientId")
    term_namespace: str | None = Field(default=None, alias="termNamespace")
    term_fragment: str | None = Field(default=None, alias="termFragment")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }


class TargetView(BaseModel):
    id: str | None
    source: str
    source_kind: str = Field(alias="sourceKind")
    selectors: list[dict[str, Any]]

    model_config = {"populate_by_name": True}


class OccurrenceView(BaseModel):
    """Persisted shape of an occurrence; classification is a member of ``types``."""

    id: str
    term: str | None
    target: TargetView
    types: list[str]
    suggested_lemma: str | None = Field(default=None, alias="suggestedLemma")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_occurrence(cls, occurrence: TermOccurrence) -> "OccurrenceView":
        target = occurrence.target
        return cls(
            id=occurrence.id,
            term=occurrence.term,
            target=TargetView(
                id=target.id,
                source=target.source,
                source_kind=target.source_kind.value,
                selectors=[selector_to_dict(s) for s in sorted_selectors(target.selectors)],
            ),
            types=sorted(occurrence.types),
            suggested_lemma=occurrence.suggested_lemma if occurrence.is_suggested else None,
        )


class ResourceView(BaseModel):
    id: str
    kind: str
    label: str | None = None
    mime: str | None = None
    url: str | None = None
    parent_id: str | None = Field(default=None, alias="parentId")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_resource(cls, resource: Resource) -> "ResourceView":
        return cls(
            id=resource.id,
            kind=resource.kind.value,
            label=resource.label,
            mime=resource.mime,
            url=resource.url,
            parent_id=resource.parent_id,
        )


__all__ = ["OccurrenceDescriptor", "OccurrenceView", "TargetView", "ResourceView"]
