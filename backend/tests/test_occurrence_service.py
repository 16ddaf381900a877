"""Tests for the occurrence lifecycle service."""

import pytest
from conftest import TERM_BUILDING, TERM_ROOF

from term_occurrences.core.errors import NotFoundError, ValidationError
from term_occurrences.models.dto import OccurrenceDescriptor, OccurrenceView
from term_occurrences.models.entities import (
    SUGGESTED_OCCURRENCE_TYPE,
    TERM_OCCURRENCE_TYPE,
    OccurrenceReference,
    OccurrenceTarget,
    Resource,
    ResourceKind,
    TermOccurrence,
)
from term_occurrences.models.selectors import CssSelector, TextPositionSelector, TextQuoteSelector


def _descriptor(**fields) -> OccurrenceDescriptor:
    return OccurrenceDescriptor.model_validate({"cssSelector": "div.x", "exactMatch": "foo", "start": 10, **fields})


def _suggestion(service, source: Resource, term=TERM_BUILDING, start: int = 0) -> TermOccurrence:
    occurrence = TermOccurrence(
        id=service.new_occurrence_id(source.id),
        term=term,
        target=OccurrenceTarget(
            source=source.id,
            source_kind=source.kind,
            selectors={TextQuoteSelector("Building"), TextPositionSelector(start)},
        ),
    )
    return service.persist(occurrence, origin="resolver")


def test_batch_descriptor_creates_approved_occurrence(service, document) -> None:
    (created,) = service.create_batch([_descriptor(clientId="c1")], document.id)

    assert created.id.startswith(f"{document.id}/occurrences/c1_")
    assert created.target.id == f"{created.id}/target"
    assert not created.is_suggested
    assert created.term is None

    stored = service.find(created.id)
    assert stored.target.source == document.id
    assert stored.target.source_kind is ResourceKind.DOCUMENT
    assert stored.target.selectors == {
        CssSelector("div.x"),
        TextQuoteSelector("foo"),
        TextPositionSelector(10, -1),
    }
    assert stored.types == {TERM_OCCURRENCE_TYPE}


def test_batch_uses_explicit_context_for_ids(service, document) -> None:
    (created,) = service.create_batch([_descriptor()], document.id, context_id="http://example.org/ctx")
    assert created.id.startswith("http://example.org/ctx/occurrences/")
    assert created.source == document.id


def test_suggested_descriptor_keeps_lemma_and_extra_types(service, document) -> None:
    extra = "http://example.org/types/Reviewed"
    (created,) = service.create_batch(
        [_descriptor(extraTypes=[SUGGESTED_OCCURRENCE_TYPE, extra], suggestedLemma="foo")],
        document.id,
    )
    stored = service.find(created.id)
    assert stored.is_suggested
    assert stored.suggested_lemma == "foo"
    assert stored.extra_types == {extra}
    assert stored.types == {TERM_OCCURRENCE_TYPE, SUGGESTED_OCCURRENCE_TYPE, extra}


def test_lemma_is_dropped_for_approved_descriptor(service, document) -> None:
    (created,) = service.create_batch([_descriptor(suggestedLemma="foo")], document.id)
    assert service.find(created.id).suggested_lemma is None


def test_descriptor_term_from_namespace_and_fragment(service, document) -> None:
    (created,) = service.create_batch(
        [_descriptor(termNamespace="http://example.org/terms/", termFragment="roof")],
        document.id,
    )
    assert service.find(created.id).term == TERM_ROOF


@pytest.mark.parametrize(
    "fields",
    [
        {"cssSelector": None},
        {"exactMatch": None, "start": None},
        {"start": -3},
    ],
)
def test_invalid_descriptors_are_rejected(service, document, fields) -> None:
    with pytest.raises(ValidationError):
        service.create_batch([_descriptor(**fields)], document.id)
    assert service.list_by_source(document.id) == []


def test_xpath_only_descriptor_is_accepted(service, document) -> None:
    (created,) = service.create_batch(
        [OccurrenceDescriptor(xPathSelector="/html/body/p[2]", start=4)],
        document.id,
    )
    assert len(service.find(created.id).target.selectors) == 2


def test_batch_for_unknown_source_fails(service) -> None:
    with pytest.raises(NotFoundError):
        service.create_batch([_descriptor()], "http://example.org/docs/missing")


def test_find_and_reference_of_unknown_id(service) -> None:
    with pytest.raises(NotFoundError):
        service.find("http://example.org/nothing")
    with pytest.raises(NotFoundError):
        service.get_reference("http://example.org/nothing")


def test_reference_is_equal_to_loaded_occurrence(service, document) -> None:
    occurrence = _suggestion(service, document)
    reference = service.get_reference(occurrence.id)
    assert reference == OccurrenceReference(occurrence.id)
    assert service.find(reference.id) == reference


def test_approve_removes_suggested_classification(service, document) -> None:
    occurrence = _suggestion(service, document)
    assert SUGGESTED_OCCURRENCE_TYPE in service.find(occurrence.id).types

    approved = service.approve(OccurrenceReference(occurrence.id))
    assert not approved.is_suggested

    stored = service.find(occurrence.id)
    assert stored.types == {TERM_OCCURRENCE_TYPE}
    assert stored.target.selectors == occurrence.target.selectors


def test_approving_twice_is_a_no_op(service, document) -> None:
    occurrence = _suggestion(service, document)
    first = service.approve(occurrence)
    second = service.approve(service.find(occurrence.id))
    assert first.types == second.types == {TERM_OCCURRENCE_TYPE}


def test_approve_requires_term(service, document) -> None:
    occurrence = _suggestion(service, document, term=None)
    with pytest.raises(ValidationError):
        service.approve(occurrence)
    assert service.find(occurrence.id).is_suggested


def test_assign_term_then_approve(service, document) -> None:
    occurrence = _suggestion(service, document, term=None)
    service.assign_term(occurrence, TERM_ROOF)
    approved = service.approve(OccurrenceReference(occurrence.id))
    assert approved.term == TERM_ROOF
    assert not service.find(occurrence.id).is_suggested


def test_approval_clears_suggested_lemma(service, document) -> None:
    occurrence = TermOccurrence(
        id=service.new_occurrence_id(document.id),
        term=None,
        target=OccurrenceTarget(
            source=document.id,
            source_kind=document.kind,
            selectors={TextQuoteSelector("roofs"), TextPositionSelector(4)},
        ),
        suggested_lemma="roof",
    )
    service.persist(occurrence, origin="resolver")
    assert service.find(occurrence.id).suggested_lemma == "roof"

    service.assign_term(OccurrenceReference(occurrence.id), TERM_ROOF)
    assert service.find(occurrence.id).suggested_lemma == "roof"
    approved = service.approve(OccurrenceReference(occurrence.id))

    assert approved.suggested_lemma is None
    stored = service.find(occurrence.id)
    assert stored.suggested_lemma is None
    assert stored.term == TERM_ROOF
    assert not stored.is_suggested


def test_approve_unknown_reference_fails(service) -> None:
    with pytest.raises(NotFoundError):
        service.approve(OccurrenceReference("http://example.org/nothing"))


def test_remove_deletes_occurrence_and_target(service, db, document) -> None:
    occurrence = _suggestion(service, document)
    service.remove(OccurrenceReference(occurrence.id))

    assert service.list_by_source(document.id) == []
    assert db.query("SELECT COUNT(*) AS n FROM occurrence_targets", [])[0]["n"] == 0
    assert db.query("SELECT COUNT(*) AS n FROM selectors", [])[0]["n"] == 0
    with pytest.raises(NotFoundError):
        service.remove(occurrence)


def test_bulk_removal_by_source(service, resources, document) -> None:
    other = resources.add(Resource(id="http://example.org/docs/other", kind=ResourceKind.DOCUMENT))
    approved = service.approve(_suggestion(service, document, start=0))
    _suggestion(service, document, start=20)
    kept = _suggestion(service, other)

    assert service.remove_all_suggested_for_source(document.id) == 1
    assert service.list_by_source(document.id) == [approved]

    assert service.remove_all_for_source(document.id) == 1
    assert service.list_by_source(document.id) == []
    assert service.list_by_source(other.id) == [kept]


def test_persist_requires_selectors(service, document) -> None:
    occurrence = TermOccurrence(
        id=service.new_occurrence_id(document.id),
        term=TERM_BUILDING,
        target=OccurrenceTarget(source=document.id, source_kind=document.kind),
    )
    with pytest.raises(ValidationError):
        service.persist(occurrence)


def test_view_exposes_classification_as_type(service, document) -> None:
    occurrence = _suggestion(service, document)
    view = OccurrenceView.from_occurrence(service.find(occurrence.id)).model_dump(by_alias=True)

    assert view["types"] == sorted([TERM_OCCURRENCE_TYPE, SUGGESTED_OCCURRENCE_TYPE])
    assert view["target"]["sourceKind"] == "document"
    assert {"kind": "text-position", "start": 0, "end": -1} in view["target"]["selectors"]
