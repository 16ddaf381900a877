"""Test fixtures for Term Occurrences."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from term_occurrences import dependencies as deps  # noqa: E402
from term_occurrences.core.logging import configure_logging  # noqa: E402
from term_occurrences.db.sqlite import SQLiteDatabase  # noqa: E402
from term_occurrences.models.entities import Resource, ResourceKind  # noqa: E402
from term_occurrences.occurrences.annotator import AnnotationGenerator  # noqa: E402
from term_occurrences.occurrences.repository import OccurrenceDao  # noqa: E402
from term_occurrences.occurrences.service import OccurrenceService  # noqa: E402
from term_occurrences.resolver.registry import ResolverRegistry  # noqa: E402
from term_occurrences.resources.store import ContentStore, ResourceProvider  # noqa: E402
from term_occurrences.utils.ids import IdentifierGenerator  # noqa: E402

TERM_BUILDING = "http://example.org/terms/building"
TERM_ROOF = "http://example.org/terms/roof"


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("TOCC_DB_PATH", str(tmp_path / "occurrences.db"))
    monkeypatch.setenv("TOCC_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("TOCC_LOG_JSON", "false")
    monkeypatch.delenv("TOCC_CONFIG", raising=False)
    deps.reset_dependencies()
    yield
    deps.reset_dependencies()
    configure_logging("WARNING", use_json=False)


@pytest.fixture
def db(tmp_path: Path) -> SQLiteDatabase:
    database = SQLiteDatabase(tmp_path / "unit.db")
    database.ensure_schema()
    yield database
    database.close()


@pytest.fixture
def resources(db: SQLiteDatabase) -> ResourceProvider:
    return ResourceProvider(db)


@pytest.fixture
def contents(db: SQLiteDatabase) -> ContentStore:
    return ContentStore(db)


@pytest.fixture
def service(db: SQLiteDatabase, resources: ResourceProvider) -> OccurrenceService:
    return OccurrenceService(
        dao=OccurrenceDao(db),
        resources=resources,
        id_generator=IdentifierGenerator(),
    )


@pytest.fixture
def annotator(service: OccurrenceService, contents: ContentStore) -> AnnotationGenerator:
    return AnnotationGenerator(occurrences=service, resolvers=ResolverRegistry(), contents=contents)


@pytest.fixture
def document(resources: ResourceProvider) -> Resource:
    return resources.add(
        Resource(id="http://example.org/docs/plan", kind=ResourceKind.DOCUMENT, label="Plan", mime="text/html")
    )


@pytest.fixture(scope="session")
def two_span_html() -> bytes:
    # Spans start at text offsets 0 and 20; only the first carries an anchor.
    return (
        "<p>"
        f'<span about="_:a1" typeof="term-occurrence" resource="{TERM_BUILDING}">Building</span>'
        " stands on, "
        f'<span typeof="term-occurrence" resource="{TERM_BUILDING}">building</span>'
        " ground.</p>"
    ).encode("utf-8")
