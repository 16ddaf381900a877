"""Shared service accessors."""

from __future__ import annotations

from functools import lru_cache

from term_occurrences.core.config import Settings, get_settings
from term_occurrences.db.sqlite import SQLiteDatabase
from term_occurrences.occurrences.annotator import AnnotationGenerator
from term_occurrences.occurrences.cleanup import CleanupScheduler, OrphanCleanupJob
from term_occurrences.occurrences.repository import OccurrenceDao
from term_occurrences.occurrences.service import OccurrenceService
from term_occurrences.resolver.registry import ResolverRegistry
from term_occurrences.resources.store import ContentStore, ResourceProvider
from term_occurrences.utils.ids import IdentifierGenerator

_DB: SQLiteDatabase | None = None
_OCCURRENCE_SERVICE: OccurrenceService | None = None
_ANNOTATOR: AnnotationGenerator | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        settings = get_app_settings()
        db = SQLiteDatabase(settings.db_path)
        db.ensure_schema()
        _DB = db
    return _DB


def get_resource_provider() -> ResourceProvider:
    return ResourceProvider(get_database())


def get_content_store() -> ContentStore:
    return ContentStore(get_database())


def get_occurrence_service() -> OccurrenceService:
    global _OCCURRENCE_SERVICE
    if _OCCURRENCE_SERVICE is None:
        _OCCURRENCE_SERVICE = _build_occurrence_service(get_database(), get_app_settings())
    return _OCCURRENCE_SERVICE


def get_annotation_generator() -> AnnotationGenerator:
    global _ANNOTATOR
    if _ANNOTATOR is None:
        _ANNOTATOR = AnnotationGenerator(
            occurrences=get_occurrence_service(),
            resolvers=ResolverRegistry(marker=get_app_settings().occurrence_marker),
            contents=get_content_store(),
        )
    return _ANNOTATOR


def get_cleanup_job() -> OrphanCleanupJob:
    """Cleanup job sharing the process-wide connection, for one-off runs."""
    return OrphanCleanupJob(occurrences=get_occurrence_service(), resources=get_resource_provider())


def build_cleanup_job(settings: Settings | None = None) -> OrphanCleanupJob:
    """Cleanup job over its own connection, usable from a background thread."""
    settings = settings or get_app_settings()
    db = SQLiteDatabase(settings.db_path)
    return OrphanCleanupJob(
        occurrences=_build_occurrence_service(db, settings),
        resources=ResourceProvider(db),
    )


def build_cleanup_scheduler(settings: Settings | None = None) -> CleanupScheduler:
    settings = settings or get_app_settings()
    return CleanupScheduler(build_cleanup_job(settings), settings.cleanup_interval_seconds)


def reset_dependencies() -> None:
    """Drop cached singletons, closing the shared connection."""
    global _DB, _OCCURRENCE_SERVICE, _ANNOTATOR
    if _DB is not None:
        _DB.close()
    _DB = None
    _OCCURRENCE_SERVICE = None
    _ANNOTATOR = None
    get_app_settings.cache_clear()
    get_settings.cache_clear()


def _build_occurrence_service(db: SQLiteDatabase, settings: Settings) -> OccurrenceService:
    return OccurrenceService(
        dao=OccurrenceDao(db),
        resources=ResourceProvider(db),
        id_generator=IdentifierGenerator(),
        occurrence_separator=settings.occurrence_separator,
    )


__all__ = [
    "get_app_settings",
    "get_database",
    "get_resource_provider",
    "get_content_store",
    "get_occurrence_service",
    "get_annotation_generator",
    "get_cleanup_job",
    "build_cleanup_job",
    "build_cleanup_scheduler",
    "reset_dependencies",
]
