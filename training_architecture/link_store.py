"""
Read-only Link Store over the SQLite schema in ``training_architecture.db``.

Every resolver talks to the store through ``SqliteLinkStore``; tests may
substitute any object exposing the same query methods. Multi-id lookups
use a single ``IN (...)`` query so a request pays one round-trip per
batch rather than one per id.
"""

import logging
import sqlite3
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from training_architecture.models import (
    Cohort,
    CourseInfo,
    Granularity,
    LearningUnit,
    Link,
    Training,
    TrainingLink,
)

logger = logging.getLogger(__name__)


def _placeholders(ids: Sequence[int]) -> str:
    return ", ".join("?" for _ in ids)


def _unique(ids: Iterable[int]) -> List[int]:
    return list(dict.fromkeys(ids))


def _row_to_link(row: sqlite3.Row) -> Link:
    return Link(
        training_id=row["training_id"],
        parent_lu_id=row["parent_lu_id"],
        child_id=row["child_id"],
        child_is_course=bool(row["child_is_course"]),
    )


class SqliteLinkStore:
    """Query object over an open SQLite connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    # =====================================================================
    # Trainings & cohorts
    # =====================================================================

    def get_training(self, training_id: int) -> Optional[Training]:
        row = self.conn.execute(
            "SELECT * FROM Trainings WHERE id = ?", (training_id,)
        ).fetchone()
        return Training(**dict(row)) if row else None

    def get_trainings(self, training_ids: Sequence[int]) -> Dict[int, Training]:
        ids = _unique(training_ids)
        if not ids:
            return {}
        rows = self.conn.execute(
            f"SELECT * FROM Trainings WHERE id IN ({_placeholders(ids)})", ids
        ).fetchall()
        return {r["id"]: Training(**dict(r)) for r in rows}

    def get_cohorts(self, cohort_ids: Sequence[int]) -> Dict[int, Cohort]:
        ids = _unique(cohort_ids)
        if not ids:
            return {}
        rows = self.conn.execute(
            f"SELECT * FROM Cohorts WHERE id IN ({_placeholders(ids)})", ids
        ).fetchall()
        return {r["id"]: Cohort(**dict(r)) for r in rows}

    def get_cohort_trainings(
        self, cohort_ids: Sequence[int]
    ) -> List[Tuple[int, int]]:
        """Return ``(cohort_id, training_id)`` pairs in insertion order."""
        ids = _unique(cohort_ids)
        if not ids:
            return []
        rows = self.conn.execute(
            f"""SELECT cohort_id, training_id FROM CohortTrainings
                WHERE cohort_id IN ({_placeholders(ids)}) ORDER BY id""",
            ids,
        ).fetchall()
        return [(r["cohort_id"], r["training_id"]) for r in rows]

    # =====================================================================
    # Links
    # =====================================================================

    def get_root_lus(self, training_id: int, granularity: Granularity) -> List[int]:
        """Return the root LU ids of a training in first-link order.

        A root is a parent that never appears as a non-course child in the
        training. Two-level trainings only consider parents of LU links.
        """
        lu_only = (
            " AND child_is_course = 0"
            if Granularity.parse(granularity) is Granularity.TWO_LEVEL
            else ""
        )
        rows = self.conn.execute(
            f"""SELECT parent_lu_id FROM LuLinks
                WHERE training_id = ?{lu_only}
                  AND parent_lu_id NOT IN (
                      SELECT child_id FROM LuLinks
                      WHERE training_id = ? AND child_is_course = 0
                  )
                GROUP BY parent_lu_id
                ORDER BY MIN(id)""",
            (training_id, training_id),
        ).fetchall()
        return [r["parent_lu_id"] for r in rows]

    def get_child_links(self, training_id: int, parent_lu_id: int) -> List[Link]:
        rows = self.conn.execute(
            """SELECT * FROM LuLinks
               WHERE training_id = ? AND parent_lu_id = ? ORDER BY id""",
            (training_id, parent_lu_id),
        ).fetchall()
        return [_row_to_link(r) for r in rows]

    def has_child_links(self, training_id: int, lu_id: int) -> bool:
        row = self.conn.execute(
            """SELECT 1 FROM LuLinks
               WHERE training_id = ? AND parent_lu_id = ? LIMIT 1""",
            (training_id, lu_id),
        ).fetchone()
        return row is not None

    def get_parent_links(
        self, training_id: int, child_id: int, child_is_course: bool
    ) -> List[Link]:
        rows = self.conn.execute(
            """SELECT * FROM LuLinks
               WHERE training_id = ? AND child_id = ? AND child_is_course = ?
               ORDER BY id""",
            (training_id, child_id, int(child_is_course)),
        ).fetchall()
        return [_row_to_link(r) for r in rows]

    def get_all_links(self, training_id: int) -> List[Link]:
        rows = self.conn.execute(
            "SELECT * FROM LuLinks WHERE training_id = ? ORDER BY id",
            (training_id,),
        ).fetchall()
        return [_row_to_link(r) for r in rows]

    def course_in_training(self, training_id: int, course_id: int) -> bool:
        row = self.conn.execute(
            """SELECT 1 FROM LuLinks
               WHERE training_id = ? AND child_id = ? AND child_is_course = 1
               LIMIT 1""",
            (training_id, course_id),
        ).fetchone()
        return row is not None

    def trainings_with_architecture(self, training_ids: Sequence[int]) -> Set[int]:
        """Return the trainings owning at least one LU → course link."""
        ids = _unique(training_ids)
        if not ids:
            return set()
        rows = self.conn.execute(
            f"""SELECT DISTINCT training_id FROM LuLinks
                WHERE child_is_course = 1
                  AND training_id IN ({_placeholders(ids)})""",
            ids,
        ).fetchall()
        return {r["training_id"] for r in rows}

    # =====================================================================
    # Ordering
    # =====================================================================

    def get_sort_order(self, training_id: int, lu_id: int) -> Optional[int]:
        row = self.conn.execute(
            "SELECT sort_order FROM LuOrder WHERE training_id = ? AND lu_id = ?",
            (training_id, lu_id),
        ).fetchone()
        return row["sort_order"] if row else None

    def get_sort_orders(
        self, training_id: int, lu_ids: Sequence[int]
    ) -> Dict[int, int]:
        """Batched ``get_sort_order``; absent ids are omitted."""
        ids = _unique(lu_ids)
        if not ids:
            return {}
        rows = self.conn.execute(
            f"""SELECT lu_id, sort_order FROM LuOrder
                WHERE training_id = ? AND lu_id IN ({_placeholders(ids)})""",
            [training_id, *ids],
        ).fetchall()
        return {r["lu_id"]: r["sort_order"] for r in rows}

    # =====================================================================
    # Semesters & unmanaged courses
    # =====================================================================

    def get_training_links(self, training_id: int) -> List[TrainingLink]:
        rows = self.conn.execute(
            """SELECT training_id, course_id, semester FROM TrainingLinks
               WHERE training_id = ? ORDER BY id""",
            (training_id,),
        ).fetchall()
        return [TrainingLink(**dict(r)) for r in rows]

    def get_course_semester(self, training_id: int, course_id: int) -> Optional[int]:
        row = self.conn.execute(
            """SELECT semester FROM TrainingLinks
               WHERE training_id = ? AND course_id = ?""",
            (training_id, course_id),
        ).fetchone()
        return row["semester"] if row else None

    def get_courses_not_in_architecture(
        self, training_ids: Sequence[int]
    ) -> List[int]:
        """Return unique course ids flagged outside the architecture."""
        ids = _unique(training_ids)
        if not ids:
            return []
        rows = self.conn.execute(
            f"""SELECT course_id FROM CoursesNotInArchitecture
                WHERE training_id IN ({_placeholders(ids)}) ORDER BY id""",
            ids,
        ).fetchall()
        return _unique(r["course_id"] for r in rows)

    # =====================================================================
    # Metadata
    # =====================================================================

    def get_lu_metadata(self, lu_ids: Sequence[int]) -> Dict[int, LearningUnit]:
        ids = _unique(lu_ids)
        if not ids:
            return {}
        rows = self.conn.execute(
            f"SELECT * FROM LearningUnits WHERE id IN ({_placeholders(ids)})", ids
        ).fetchall()
        return {r["id"]: LearningUnit(**dict(r)) for r in rows}

    def get_course_metadata(self, course_ids: Sequence[int]) -> Dict[int, CourseInfo]:
        ids = _unique(course_ids)
        if not ids:
            return {}
        rows = self.conn.execute(
            f"SELECT * FROM Courses WHERE id IN ({_placeholders(ids)})", ids
        ).fetchall()
        return {r["id"]: CourseInfo(**dict(r)) for r in rows}
