"""
Database module for the training architecture.

Owns the SQLite schema, migration and write helpers. Reads go through
``training_architecture.link_store.SqliteLinkStore``.

Tables:
- ``Trainings``, ``LearningUnits``, ``Courses``, ``Cohorts``: entities.
- ``LuLinks``: parent LU → child (LU or course), scoped to a training.
- ``LuOrder``: explicit sibling ranking per training.
- ``TrainingLinks``: course → semester assignment per training.
- ``CohortTrainings``, ``CoursesNotInArchitecture``: block wiring.
"""

import logging
import os
import sqlite3
import time
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

# =========================================================================
# Schema constants
# =========================================================================

_CREATE_TRAININGS = """\
CREATE TABLE IF NOT EXISTS Trainings (
    id           INTEGER PRIMARY KEY,
    fullname     TEXT    NOT NULL DEFAULT '',
    shortname    TEXT    NOT NULL DEFAULT '',
    description  TEXT,
    granularity  TEXT    NOT NULL DEFAULT '1',
    is_semester  INTEGER NOT NULL DEFAULT 0
);
"""

_CREATE_LEARNING_UNITS = """\
CREATE TABLE IF NOT EXISTS LearningUnits (
    id           INTEGER PRIMARY KEY,
    fullname     TEXT    NOT NULL DEFAULT '',
    shortname    TEXT    NOT NULL DEFAULT '',
    description  TEXT
);
"""

_CREATE_COURSES = """\
CREATE TABLE IF NOT EXISTS Courses (
    id           INTEGER PRIMARY KEY,
    shortname    TEXT    NOT NULL DEFAULT '',
    fullname     TEXT    NOT NULL DEFAULT '',
    summary      TEXT,
    image_url    TEXT
);
"""

_CREATE_COHORTS = """\
CREATE TABLE IF NOT EXISTS Cohorts (
    id           INTEGER PRIMARY KEY,
    name         TEXT    NOT NULL DEFAULT ''
);
"""

_CREATE_LU_LINKS = """\
CREATE TABLE IF NOT EXISTS LuLinks (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    training_id      INTEGER NOT NULL,
    parent_lu_id     INTEGER NOT NULL,
    child_id         INTEGER NOT NULL,
    child_is_course  INTEGER NOT NULL CHECK(child_is_course IN (0, 1)),
    FOREIGN KEY (training_id) REFERENCES Trainings(id),
    UNIQUE(training_id, parent_lu_id, child_id, child_is_course)
);
"""

_CREATE_LU_ORDER = """\
CREATE TABLE IF NOT EXISTS LuOrder (
    training_id  INTEGER NOT NULL,
    lu_id        INTEGER NOT NULL,
    sort_order   INTEGER NOT NULL,
    PRIMARY KEY (training_id, lu_id)
);
"""

_CREATE_TRAINING_LINKS = """\
CREATE TABLE IF NOT EXISTS TrainingLinks (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    training_id  INTEGER NOT NULL,
    course_id    INTEGER NOT NULL,
    semester     INTEGER,
    UNIQUE(training_id, course_id)
);
"""

_CREATE_COHORT_TRAININGS = """\
CREATE TABLE IF NOT EXISTS CohortTrainings (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    cohort_id    INTEGER NOT NULL,
    training_id  INTEGER NOT NULL,
    UNIQUE(cohort_id, training_id)
);
"""

_CREATE_COURSES_NOT_IN_ARCHITECTURE = """\
CREATE TABLE IF NOT EXISTS CoursesNotInArchitecture (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    training_id  INTEGER NOT NULL,
    course_id    INTEGER NOT NULL,
    UNIQUE(training_id, course_id)
);
"""

_CREATE_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_links_parent ON LuLinks(training_id, parent_lu_id);",
    "CREATE INDEX IF NOT EXISTS idx_links_child ON LuLinks(training_id, child_id);",
)

_ALL_TABLES = (
    _CREATE_TRAININGS,
    _CREATE_LEARNING_UNITS,
    _CREATE_COURSES,
    _CREATE_COHORTS,
    _CREATE_LU_LINKS,
    _CREATE_LU_ORDER,
    _CREATE_TRAINING_LINKS,
    _CREATE_COHORT_TRAININGS,
    _CREATE_COURSES_NOT_IN_ARCHITECTURE,
)


# =========================================================================
# Connection helper
# =========================================================================


def get_connection(db_path: str) -> sqlite3.Connection:
    """Return a new SQLite connection with WAL mode and row-factory enabled."""
    os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=10)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    return conn


# =========================================================================
# Migration
# =========================================================================


def migrate_db(db_path: str) -> None:
    """Create (or verify) every table and index."""
    conn = get_connection(db_path)
    try:
        for ddl in _ALL_TABLES:
            conn.execute(ddl)
        for ddl in _CREATE_INDEXES:
            conn.execute(ddl)
        conn.commit()
        logger.info("Migration OK at %s", os.path.abspath(db_path))
    finally:
        conn.close()


# =========================================================================
# Lock-retry helper
# =========================================================================

_SQLITE_LOCK_RETRIES = 5
_SQLITE_LOCK_BASE_DELAY = 0.1


def _retry_on_lock(fn, *args, **kwargs):  # type: ignore[no-untyped-def]
    """Wrap *fn* with SQLite-lock retry."""
    for attempt in range(1, _SQLITE_LOCK_RETRIES + 1):
        try:
            return fn(*args, **kwargs)
        except sqlite3.OperationalError as exc:
            if "locked" in str(exc).lower() and attempt < _SQLITE_LOCK_RETRIES:
                delay = _SQLITE_LOCK_BASE_DELAY * (2 ** (attempt - 1))
                logger.warning(
                    "SQLite locked (attempt %d/%d), retrying in %.2fs",
                    attempt, _SQLITE_LOCK_RETRIES, delay,
                )
                time.sleep(delay)
            else:
                raise


# =========================================================================
# Write helpers
# =========================================================================


def insert_training(
    conn: sqlite3.Connection,
    training_id: int,
    fullname: str,
    shortname: str = "",
    description: Optional[str] = None,
    granularity: Any = 1,
    is_semester: bool = False,
) -> None:
    """Insert or replace a training row.

    ``granularity`` is stored as text, the way administrators author it.
    """
    def _do() -> None:
        conn.execute(
            """
            INSERT OR REPLACE INTO Trainings
                (id, fullname, shortname, description, granularity, is_semester)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (training_id, fullname, shortname, description,
             str(granularity), int(bool(is_semester))),
        )
        conn.commit()

    _retry_on_lock(_do)


def insert_learning_unit(
    conn: sqlite3.Connection,
    lu_id: int,
    fullname: str,
    shortname: str = "",
    description: Optional[str] = None,
) -> None:
    """Insert or replace a learning unit row."""
    def _do() -> None:
        conn.execute(
            """
            INSERT OR REPLACE INTO LearningUnits (id, fullname, shortname, description)
            VALUES (?, ?, ?, ?)
            """,
            (lu_id, fullname, shortname, description),
        )
        conn.commit()

    _retry_on_lock(_do)


def insert_course(
    conn: sqlite3.Connection,
    course_id: int,
    shortname: str,
    fullname: str = "",
    summary: Optional[str] = None,
    image_url: Optional[str] = None,
) -> None:
    """Insert or replace a course row."""
    def _do() -> None:
        conn.execute(
            """
            INSERT OR REPLACE INTO Courses (id, shortname, fullname, summary, image_url)
            VALUES (?, ?, ?, ?, ?)
            """,
            (course_id, shortname, fullname, summary, image_url),
        )
        conn.commit()

    _retry_on_lock(_do)


def insert_cohort(conn: sqlite3.Connection, cohort_id: int, name: str) -> None:
    """Insert or replace a cohort row."""
    def _do() -> None:
        conn.execute(
            "INSERT OR REPLACE INTO Cohorts (id, name) VALUES (?, ?)",
            (cohort_id, name),
        )
        conn.commit()

    _retry_on_lock(_do)


def insert_links_batch(
    conn: sqlite3.Connection,
    links: List[Dict[str, Any]],
) -> int:
    """Insert links in a single transaction (idempotent).

    Each dict: ``{training_id, parent_lu_id, child_id, child_is_course}``.
    Insertion order is the Link Store order used by the resolvers.
    Returns number of rows inserted.
    """
    def _do() -> int:
        count = 0
        for link in links:
            cursor = conn.execute(
                """INSERT OR IGNORE INTO LuLinks
                       (training_id, parent_lu_id, child_id, child_is_course)
                   VALUES (?, ?, ?, ?)""",
                (link["training_id"], link["parent_lu_id"], link["child_id"],
                 int(bool(link["child_is_course"]))),
            )
            count += cursor.rowcount
        conn.commit()
        return count

    return _retry_on_lock(_do)


def set_sort_order(
    conn: sqlite3.Connection,
    training_id: int,
    lu_id: int,
    sort_order: int,
) -> None:
    """Set (or replace) the sibling rank of *lu_id* within *training_id*."""
    def _do() -> None:
        conn.execute(
            """INSERT OR REPLACE INTO LuOrder (training_id, lu_id, sort_order)
               VALUES (?, ?, ?)""",
            (training_id, lu_id, sort_order),
        )
        conn.commit()

    _retry_on_lock(_do)


def insert_training_link(
    conn: sqlite3.Connection,
    training_id: int,
    course_id: int,
    semester: Optional[int] = None,
) -> None:
    """Assign *course_id* to *semester* within *training_id*."""
    def _do() -> None:
        conn.execute(
            """INSERT OR REPLACE INTO TrainingLinks (training_id, course_id, semester)
               VALUES (?, ?, ?)""",
            (training_id, course_id, semester),
        )
        conn.commit()

    _retry_on_lock(_do)


def link_cohort_training(
    conn: sqlite3.Connection, cohort_id: int, training_id: int
) -> None:
    def _do() -> None:
        conn.execute(
            """INSERT OR IGNORE INTO CohortTrainings (cohort_id, training_id)
               VALUES (?, ?)""",
            (cohort_id, training_id),
        )
        conn.commit()

    _retry_on_lock(_do)


def mark_course_not_in_architecture(
    conn: sqlite3.Connection, training_id: int, course_id: int
) -> None:
    def _do() -> None:
        conn.execute(
            """INSERT OR IGNORE INTO CoursesNotInArchitecture (training_id, course_id)
               VALUES (?, ?)""",
            (training_id, course_id),
        )
        conn.commit()

    _retry_on_lock(_do)


# =========================================================================
# Fixtures
# =========================================================================


def _rows(payload: Dict[str, Any], key: str) -> Iterable[Dict[str, Any]]:
    return payload.get(key) or []


def load_fixture(conn: sqlite3.Connection, payload: Dict[str, Any]) -> Dict[str, int]:
    """Load a JSON-shaped architecture payload into the database.

    Recognised keys: ``trainings``, ``learning_units``, ``courses``,
    ``cohorts``, ``links``, ``sort_orders``, ``training_links``,
    ``cohort_trainings``, ``courses_not_in_architecture``.

    Returns a ``{key: rows_loaded}`` mapping.
    """
    counts: Dict[str, int] = {}

    for t in _rows(payload, "trainings"):
        insert_training(
            conn, t["id"], t.get("fullname", ""), t.get("shortname", ""),
            t.get("description"), t.get("granularity", 1),
            t.get("is_semester", False),
        )
    counts["trainings"] = len(list(_rows(payload, "trainings")))

    for lu in _rows(payload, "learning_units"):
        insert_learning_unit(
            conn, lu["id"], lu.get("fullname", ""), lu.get("shortname", ""),
            lu.get("description"),
        )
    counts["learning_units"] = len(list(_rows(payload, "learning_units")))

    for c in _rows(payload, "courses"):
        insert_course(
            conn, c["id"], c.get("shortname", ""), c.get("fullname", ""),
            c.get("summary"), c.get("image_url"),
        )
    counts["courses"] = len(list(_rows(payload, "courses")))

    for co in _rows(payload, "cohorts"):
        insert_cohort(conn, co["id"], co.get("name", ""))
    counts["cohorts"] = len(list(_rows(payload, "cohorts")))

    counts["links"] = insert_links_batch(conn, list(_rows(payload, "links")))

    for so in _rows(payload, "sort_orders"):
        set_sort_order(conn, so["training_id"], so["lu_id"], so["sort_order"])
    counts["sort_orders"] = len(list(_rows(payload, "sort_orders")))

    for tl in _rows(payload, "training_links"):
        insert_training_link(
            conn, tl["training_id"], tl["course_id"], tl.get("semester")
        )
    counts["training_links"] = len(list(_rows(payload, "training_links")))

    for ct in _rows(payload, "cohort_trainings"):
        link_cohort_training(conn, ct["cohort_id"], ct["training_id"])
    counts["cohort_trainings"] = len(list(_rows(payload, "cohort_trainings")))

    for nc in _rows(payload, "courses_not_in_architecture"):
        mark_course_not_in_architecture(conn, nc["training_id"], nc["course_id"])
    counts["courses_not_in_architecture"] = len(
        list(_rows(payload, "courses_not_in_architecture"))
    )

    logger.info("Fixture loaded: %s", counts)
    return counts


def clear_all(conn: sqlite3.Connection) -> None:
    """Wipe every table for idempotent re-loads."""
    for table in (
        "LuLinks", "LuOrder", "TrainingLinks", "CohortTrainings",
        "CoursesNotInArchitecture", "Trainings", "LearningUnits",
        "Courses", "Cohorts",
    ):
        conn.execute(f"DELETE FROM {table};")
    conn.commit()
    logger.info("All tables cleared for idempotent re-load.")
