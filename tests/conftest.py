"""
Shared pytest fixtures: temporary SQLite databases seeded either from
``sample_architecture.json`` or from an inline payload.
"""

import json
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from training_architecture import db
from training_architecture.link_store import SqliteLinkStore

SAMPLE_PATH = os.path.join(os.path.dirname(__file__), "sample_architecture.json")


@pytest.fixture()
def tmp_db(tmp_path):
    """Return a DB path inside a temporary directory."""
    return str(tmp_path / "test_architecture.db")


@pytest.fixture()
def make_store(tmp_db):
    """Factory: migrate the temp DB, load *payload*, return a store."""
    conns = []

    def _make(payload):
        db.migrate_db(tmp_db)
        conn = db.get_connection(tmp_db)
        conns.append(conn)
        db.load_fixture(conn, payload)
        return SqliteLinkStore(conn)

    yield _make
    for conn in conns:
        conn.close()


@pytest.fixture()
def sample_payload():
    with open(SAMPLE_PATH, encoding="utf-8") as fh:
        return json.load(fh)


@pytest.fixture()
def sample_store(make_store, sample_payload):
    """Store seeded with the four sample trainings."""
    return make_store(sample_payload)
