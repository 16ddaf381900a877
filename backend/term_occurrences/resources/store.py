"""SQLite-backed resource provider and content store."""

from __future__ import annotations

import sqlite3
from typing import BinaryIO

from term_occurrences.core.errors import NotFoundError
from term_occurrences.core.logging import get_logger, log_context
from term_occurrences.db.sqlite import SQLiteDatabase
from term_occurrences.models.entities import Resource, ResourceKind
from term_occurrences.utils.time import now_ms

logger = get_logger(__name__)

_RESOURCE_COLUMNS = "id, kind, label, mime, url, parent_id"


class ResourceProvider:
    """Looks up the resources occurrences point at."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def add(self, resource: Resource) -> Resource:
        now = now_ms()
        with self.db.transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO resources (id, kind, label, mime, url, parent_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    resource.id,
                    resource.kind.value,
                    resource.label,
                    resource.mime,
                    resource.url,
                    resource.parent_id,
                    now,
                    now,
                ],
            )
        logger.debug("Resource %s added", resource.id, extra=log_context(source=resource.id))
        return resource

    def find(self, resource_id: str) -> Resource | None:
        row = self.db.execute(
            f"SELECT {_RESOURCE_COLUMNS} FROM resources WHERE id = ?",
            [resource_id],
        ).fetchone()
        return _row_to_resource(row) if row else None

    def find_required(self, resource_id: str) -> Resource:
        resource = self.find(resource_id)
        if resource is None:
            raise NotFoundError.create("Resource", resource_id)
        return resource

    def exists(self, resource_id: str) -> bool:
        row = self.db.execute("SELECT 1 FROM resources WHERE id = ?", [resource_id]).fetchone()
        return row is not None

    def list_all(self) -> list[Resource]:
        rows = self.db.query(f"SELECT {_RESOURCE_COLUMNS} FROM resources ORDER BY id", [])
        return [_row_to_resource(row) for row in rows]

    def remove(self, resource_id: str) -> None:
        """Delete a resource and its stored content; occurrences are left alone."""
        with self.db.transaction() as cursor:
            cursor.execute("DELETE FROM resources WHERE id = ?", [resource_id])
            if cursor.rowcount == 0:
                raise NotFoundError.create("Resource", resource_id)
        logger.debug("Resource %s removed", resource_id, extra=log_context(source=resource_id))


class ContentStore:
    """Canonical content of documents and websites."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def read(self, resource_id: str) -> bytes:
        row = self.db.execute("SELECT data FROM contents WHERE resource_id = ?", [resource_id]).fetchone()
        if row is None:
            raise NotFoundError.create("Content of resource", resource_id)
        return bytes(row["data"])

    def write(self, resource_id: str, content: bytes | BinaryIO) -> None:
        data = content if isinstance(content, (bytes, bytearray)) else content.read()
        with self.db.transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO contents (resource_id, data, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(resource_id) DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at
                """,
                [resource_id, bytes(data), now_ms()],
            )
        logger.debug("Stored %s bytes of content for %s", len(data), resource_id, extra=log_context(source=resource_id))


def _row_to_resource(row: sqlite3.Row) -> Resource:
    return Resource(
        id=row["id"],
        kind=ResourceKind(row["kind"]),
        label=row["label"],
        mime=row["mime"],
        url=row["url"],
        parent_id=row["parent_id"],
    )


__all__ = ["ResourceProvider", "ContentStore"]
