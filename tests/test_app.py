"""Tests for application bootstrap and the maintenance scripts."""

import importlib.util
import logging
from pathlib import Path

import pytest

from job_desk.app import configure_logging, create_repository
from job_desk.database.schema import SCHEMA_VERSION
from job_desk.identity import Identity
from job_desk.jobs.loader import load_assigned_jobs

_EXECUTION = Path(__file__).resolve().parent.parent / "execution"


def _load_script(name):
    spec = importlib.util.spec_from_file_location(
        f"execution_{name}", _EXECUTION / f"{name}.py"
    )
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestCreateRepository:
    def test_initializes_schema(self, tmp_path):
        repo = create_repository(tmp_path / "app.db")
        rows = repo.db.execute("SELECT MAX(version) AS v FROM schema_version")
        assert rows[0]["v"] == SCHEMA_VERSION

    def test_reopen_is_safe(self, tmp_path):
        create_repository(tmp_path / "app.db")
        repo = create_repository(tmp_path / "app.db")
        assert repo.get_company_by_id(1) is None


class TestConfigureLogging:
    def test_unknown_level_falls_back(self):
        configure_logging("not-a-level")
        assert logging.getLogger().level in (logging.INFO, logging.WARNING)


class TestSeedScript:
    def test_seeds_a_usable_dataset(self, tmp_path, capsys):
        seed_mod = _load_script("seed_mock_data")
        repo = create_repository(tmp_path / "seed.db")

        counts = seed_mod.seed(repo)

        assert counts["work_orders"] == 8
        tech = repo.authenticate_user("kevin@brightline.test",
                                      seed_mod.PIN)
        assert tech is not None
        jobs = load_assigned_jobs(repo, Identity(tech.id, tech.company_id))
        assert {j.status for j in jobs} <= {"open", "scheduled",
                                            "in_progress"}
        assert len(jobs) == 3
        statuses = sorted(i.status for i in
                          repo.get_invoices(tech.company_id))
        assert statuses == ["draft", "paid", "sent"]
        numbers = sorted(w.wo_number[-4:]
                         for w in repo.get_work_orders(tech.company_id))
        assert numbers == [f"{n:04d}" for n in range(1, 9)]


class TestBackupScript:
    def test_creates_and_prunes(self, tmp_path, capsys):
        backup_mod = _load_script("db_backup")
        db_file = tmp_path / "live.db"
        create_repository(db_file)
        backups = tmp_path / "backups"

        made = [backup_mod.backup_database(db_file, backups, keep=2)
                for _ in range(3)]

        assert all(m is not None for m in made)
        remaining = sorted(backups.glob("job_desk_*.db"))
        assert len(remaining) == 2
        assert made[-1] in remaining

    def test_missing_database(self, tmp_path, capsys):
        backup_mod = _load_script("db_backup")
        assert backup_mod.backup_database(
            tmp_path / "absent.db", tmp_path / "b"
        ) is None
