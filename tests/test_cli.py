"""
pytest suite for the command-line entry point.
"""

import json

import pytest

from conftest import SAMPLE_PATH
from training_architecture import cli, db
from training_architecture.config import BlockConfig
from training_architecture.errors import ConfigError


def _run(argv):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    return exc_info.value.code


@pytest.fixture()
def loaded_db(tmp_db, sample_payload):
    """Temp DB already holding the sample architecture."""
    db.migrate_db(tmp_db)
    conn = db.get_connection(tmp_db)
    db.load_fixture(conn, sample_payload)
    conn.close()
    return tmp_db


class TestLoad:
    def test_load_replaces_content(self, loaded_db, capsys):
        assert _run(["--db", loaded_db, "--load", SAMPLE_PATH, "--check", "1"]) == 0
        assert json.loads(capsys.readouterr().out)["total_courses"] == 3


class TestRender:
    def test_text_output(self, loaded_db, capsys):
        assert _run(["--db", loaded_db, "--cohort", "1"]) == 0
        out = capsys.readouterr().out
        assert "Training: Nursing Diploma (Promo 2024)" in out
        assert "Training: Social Work Bachelor (Promo 2024)" in out

    def test_json_output(self, loaded_db, capsys):
        code = _run([
            "--db", loaded_db, "--cohort", "1", "--cohort", "2",
            "--context", "course", "--course-id", "201", "--format", "json",
        ])
        assert code == 0
        view = json.loads(capsys.readouterr().out)
        assert view["context"] == "course"
        assert [t["training_id"] for t in view["trainings"]] == [1, 2, 4]
        assert [e["training_id"] for e in view["errors"]] == [3]

    def test_missing_cohort(self, loaded_db):
        assert _run(["--db", loaded_db]) == 2


class TestCheck:
    def test_acyclic_training(self, loaded_db, capsys):
        assert _run(["--db", loaded_db, "--check", "2"]) == 0
        metrics = json.loads(capsys.readouterr().out)
        assert metrics["is_dag"] is True
        assert metrics["cycle"] is None
        assert metrics["training_id"] == 2

    def test_cyclic_training(self, loaded_db, capsys):
        assert _run(["--db", loaded_db, "--check", "3"]) == 1
        metrics = json.loads(capsys.readouterr().out)
        assert set(metrics["cycle"]) == {30, 31}


class TestPath:
    def test_prints_variants(self, loaded_db, capsys):
        assert _run(["--db", loaded_db, "--path", "2", "--course-id", "203"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines == ["BLK-A > LAW > C203", "Semester 1 > BLK-A > LAW > C203"]

    def test_needs_course_id(self, loaded_db):
        assert _run(["--db", loaded_db, "--path", "2"]) == 2


class TestConfig:
    def test_save_then_load(self, tmp_path, loaded_db, capsys):
        cfg = tmp_path / "cfg" / "block.json"
        path = str(cfg)
        assert _run(["--save-config", path]) == 0
        assert BlockConfig.model_validate_json(cfg.read_text()) == BlockConfig()

        with open(path, "w") as fh:
            json.dump({"semester_label": "Sem "}, fh)
        assert _run([
            "--db", loaded_db, "--config", path, "--path", "2", "--course-id", "201",
        ]) == 0
        assert "Sem 1 > BLK-A > ETH > C201" in capsys.readouterr().out

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"colour": "red"}))
        with pytest.raises(ConfigError):
            cli.main(["--config", str(path), "--save-config", str(tmp_path / "x.json")])
