"""CLI tests using Typer's runner."""

import json
from pathlib import Path

from conftest import TERM_BUILDING, TERM_ROOF
from typer.testing import CliRunner

from term_occurrences.cli.main import app
from term_occurrences.models.entities import SUGGESTED_OCCURRENCE_TYPE, TERM_OCCURRENCE_TYPE

DOC = "http://example.org/docs/plan"

runner = CliRunner()


def _invoke(*args: str):
    result = runner.invoke(app, list(args))
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def _add_document(tmp_path: Path, two_span_html: bytes) -> None:
    page = tmp_path / "plan.html"
    page.write_bytes(two_span_html)
    _invoke("resources", "add", DOC, "--mime", "text/html", "--label", "Plan", "--content", str(page))


def test_annotate_approve_and_list(tmp_path: Path, two_span_html: bytes) -> None:
    _add_document(tmp_path, two_span_html)

    report = _invoke("annotate", DOC)
    assert report["created"] == 2
    assert report["content_updated"] is True
    assert all(SUGGESTED_OCCURRENCE_TYPE in o["types"] for o in report["occurrences"])

    first = report["occurrences"][0]["id"]
    approved = _invoke("occurrences", "approve", first)
    assert approved["types"] == [TERM_OCCURRENCE_TYPE]
    assert approved["term"] == TERM_BUILDING

    listed = _invoke("occurrences", "list", DOC)
    assert len(listed) == 2
    assert _invoke("occurrences", "show", first)["types"] == [TERM_OCCURRENCE_TYPE]

    assert _invoke("annotate", DOC)["created"] == 0


def test_resource_removal_then_cleanup(tmp_path: Path, two_span_html: bytes) -> None:
    _add_document(tmp_path, two_span_html)
    _invoke("annotate", DOC)

    assert _invoke("resources", "remove", DOC, "--keep-occurrences") == {"status": "ok", "occurrences_removed": 0}
    assert _invoke("resources", "list") == []

    report = _invoke("cleanup")
    assert report["orphaned_sources"] == 1
    assert report["removed"] == 2
    assert _invoke("occurrences", "list", DOC) == []


def test_create_from_descriptors(tmp_path: Path) -> None:
    _invoke("resources", "add", DOC, "--mime", "text/html")
    descriptors = tmp_path / "batch.json"
    descriptors.write_text(
        json.dumps([{"cssSelector": "div.x", "exactMatch": "foo", "start": 10, "clientId": "c1"}]),
        encoding="utf-8",
    )

    (created,) = _invoke("occurrences", "create", DOC, str(descriptors))

    assert created["id"].startswith(f"{DOC}/occurrences/c1_")
    assert created["types"] == [TERM_OCCURRENCE_TYPE]
    assert {"kind": "css", "path": "div.x"} in created["target"]["selectors"]

    assert _invoke("occurrences", "remove", created["id"]) == {"status": "ok"}
    assert _invoke("occurrences", "list", DOC) == []


def test_approve_with_term_namespace(tmp_path: Path) -> None:
    _invoke("resources", "add", DOC, "--mime", "text/html")
    descriptors = tmp_path / "batch.json"
    descriptors.write_text(
        json.dumps([{"cssSelector": "p", "start": 0, "extraTypes": [SUGGESTED_OCCURRENCE_TYPE]}]),
        encoding="utf-8",
    )
    (created,) = _invoke("occurrences", "create", DOC, str(descriptors))

    unassigned = runner.invoke(app, ["occurrences", "approve", created["id"]])
    assert unassigned.exit_code == 1

    approved = _invoke(
        "occurrences",
        "approve",
        created["id"],
        "--term-namespace",
        "http://example.org/terms/",
        "--term-fragment",
        "building",
    )
    assert approved["term"] == TERM_BUILDING
    assert approved["types"] == [TERM_OCCURRENCE_TYPE]


def test_approve_with_term_clears_suggested_lemma(tmp_path: Path) -> None:
    page = tmp_path / "roofs.html"
    page.write_text(
        '<p>Two <span typeof="term-occurrence" data-suggested-lemma="roof">roofs</span></p>',
        encoding="utf-8",
    )
    _invoke("resources", "add", DOC, "--mime", "text/html", "--content", str(page))
    (suggestion,) = _invoke("annotate", DOC)["occurrences"]
    assert suggestion["term"] is None
    assert suggestion["suggestedLemma"] == "roof"

    approved = _invoke("occurrences", "approve", suggestion["id"], "--term", TERM_ROOF)

    assert approved["term"] == TERM_ROOF
    assert approved["suggestedLemma"] is None
    assert approved["types"] == [TERM_OCCURRENCE_TYPE]
    assert _invoke("occurrences", "show", suggestion["id"])["suggestedLemma"] is None


def test_errors_exit_non_zero(tmp_path: Path) -> None:
    assert runner.invoke(app, ["occurrences", "show", "http://example.org/nothing"]).exit_code == 1
    assert runner.invoke(app, ["annotate", DOC]).exit_code == 1
    assert runner.invoke(app, ["resources", "remove", DOC]).exit_code == 1

    bad = tmp_path / "bad.json"
    bad.write_text('[{"start": "soon"}]', encoding="utf-8")
    _invoke("resources", "add", DOC)
    assert runner.invoke(app, ["occurrences", "create", DOC, str(bad)]).exit_code == 1


def test_clear_suggested_only(tmp_path: Path, two_span_html: bytes) -> None:
    _add_document(tmp_path, two_span_html)
    report = _invoke("annotate", DOC)
    _invoke("occurrences", "approve", report["occurrences"][0]["id"])

    assert _invoke("occurrences", "clear", DOC, "--suggested-only") == {"status": "ok", "removed": 1}
    assert _invoke("occurrences", "clear", DOC) == {"status": "ok", "removed": 1}


def test_metrics_output() -> None:
    result = runner.invoke(app, ["metrics"])
    assert result.exit_code == 0
    assert "tocc_occurrences_created_total" in result.stdout
