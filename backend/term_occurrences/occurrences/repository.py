"""SQLite persistence for term occurrences and their targets."""

from __future__ import annotations

import sqlite3
from collections import defaultdict
from typing import Sequence

import orjson

from term_occurrences.db.sqlite import SQLiteDatabase, placeholders
from term_occurrences.models.entities import OccurrenceTarget, ResourceKind, TermOccurrence
from term_occurrences.models.selectors import Selector, selector_from_row, selector_to_row
from term_occurrences.utils.time import now_ms

_SELECT_OCCURRENCES = """
    SELECT o.id, o.term, o.types_json, o.suggested_lemma,
           t.id AS target_id, t.source_id, t.source_kind
    FROM occurrences o
    JOIN occurrence_targets t ON t.occurrence_id = o.id
"""

# Keeps IN (...) lists below SQLite's host parameter limit.
_IN_BATCH = 500


class OccurrenceDao:
    """Reads and writes occurrences; a target and its selectors always travel with their occurrence."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def insert(self, occurrence: TermOccurrence) -> None:
        target = occurrence.target
        now = now_ms()
        with self.db.transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO occurrences (id, term, types_json, suggested, suggested_lemma, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    occurrence.id,
                    occurrence.term,
                    _dump_types(occurrence),
                    int(occurrence.is_suggested),
                    occurrence.suggested_lemma if occurrence.is_suggested else None,
                    now,
                    now,
                ],
            )
            cursor.execute(
                "INSERT INTO occurrence_targets (id, occurrence_id, source_id, source_kind) VALUES (?, ?, ?, ?)",
                [target.id, occurrence.id, target.source, target.source_kind.value],
            )
            cursor.executemany(
                "INSERT INTO selectors (target_id, kind, value, start_pos, end_pos) VALUES (?, ?, ?, ?, ?)",
                [(target.id, *selector_to_row(selector)) for selector in target.selectors],
            )

    def update(self, occurrence: TermOccurrence) -> bool:
        """Store term, classification and lemma changes; ``False`` if the row is gone."""
        with self.db.transaction() as cursor:
            cursor.execute(
                """
                UPDATE occurrences
                SET term = ?, types_json = ?, suggested = ?, suggested_lemma = ?, updated_at = ?
                WHERE id = ?
                """,
                [
                    occurrence.term,
                    _dump_types(occurrence),
                    int(occurrence.is_suggested),
                    occurrence.suggested_lemma if occurrence.is_suggested else None,
                    now_ms(),
                    occurrence.id,
                ],
            )
            return cursor.rowcount > 0

    def find(self, occurrence_id: str) -> TermOccurrence | None:
        rows = self.db.query(f"{_SELECT_OCCURRENCES} WHERE o.id = ?", [occurrence_id])
        hydrated = self._hydrate(rows)
        return hydrated[0] if hydrated else None

    def exists(self, occurrence_id: str) -> bool:
        row = self.db.execute("SELECT 1 FROM occurrences WHERE id = ?", [occurrence_id]).fetchone()
        return row is not None

    def find_all_targeting(self, source_id: str) -> list[TermOccurrence]:
        rows = self.db.query(f"{_SELECT_OCCURRENCES} WHERE t.source_id = ?", [source_id])
        return self._hydrate(rows)

    def delete(self, occurrence_id: str) -> bool:
        with self.db.transaction() as cursor:
            cursor.execute("DELETE FROM occurrences WHERE id = ?", [occurrence_id])
            return cursor.rowcount > 0

    def delete_all_targeting(self, source_id: str, suggested_only: bool = False) -> int:
        sql = """
            DELETE FROM occurrences
            WHERE id IN (SELECT occurrence_id FROM occurrence_targets WHERE source_id = ?)
        """
        if suggested_only:
            sql += " AND suggested = 1"
        with self.db.transaction() as cursor:
            cursor.execute(sql, [source_id])
            return cursor.rowcount

    def sources_in_use(self, created_before: int) -> list[str]:
        """Distinct sources referenced by occurrences created no later than ``created_before``."""
        rows = self.db.query(
            """
            SELECT DISTINCT t.source_id
            FROM occurrence_targets t
            JOIN occurrences o ON o.id = t.occurrence_id
            WHERE o.created_at <= ?
            """,
            [created_before],
        )
        return [row["source_id"] for row in rows]

    def ids_targeting(self, source_id: str, created_before: int) -> list[str]:
        rows = self.db.query(
            """
            SELECT o.id
            FROM occurrences o
            JOIN occurrence_targets t ON t.occurrence_id = o.id
            WHERE t.source_id = ? AND o.created_at <= ?
            """,
            [source_id, created_before],
        )
        return [row["id"] for row in rows]

    def _hydrate(self, rows: Sequence[sqlite3.Row]) -> list[TermOccurrence]:
        if not rows:
            return []
        target_ids = [row["target_id"] for row in rows]
        selectors: dict[str, set[Selector]] = defaultdict(set)
        for offset in range(0, len(target_ids), _IN_BATCH):
            batch = target_ids[offset : offset + _IN_BATCH]
            for row in self.db.query(
                f"SELECT target_id, kind, value, start_pos, end_pos FROM selectors WHERE target_id IN ({placeholders(batch)})",
                batch,
            ):
                selectors[row["target_id"]].add(
                    selector_from_row(row["kind"], row["value"], row["start_pos"], row["end_pos"])
                )
        occurrences: list[TermOccurrence] = []
        for row in rows:
            classification, extra_types = TermOccurrence.split_types(set(orjson.loads(row["types_json"])))
            occurrences.append(
                TermOccurrence(
                    id=row["id"],
                    term=row["term"],
                    target=OccurrenceTarget(
                        id=row["target_id"],
                        source=row["source_id"],
                        source_kind=ResourceKind(row["source_kind"]),
                        selectors=selectors.get(row["target_id"], set()),
                    ),
                    classification=classification,
                    extra_types=extra_types,
                    suggested_lemma=row["suggested_lemma"],
                )
            )
        return occurrences


def _dump_types(occurrence: TermOccurrence) -> str:
    return orjson.dumps(sorted(occurrence.types)).decode("utf-8")


__all__ = ["OccurrenceDao"]
