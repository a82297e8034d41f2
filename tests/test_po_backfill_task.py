"""Tests for the Celery PO backfill task, run eagerly in-process."""
import json
from unittest.mock import patch

import pytest

from tmdash.models.job import JobRun, JobStatus, JobType
from tmdash.models.purchase import Purchase


@pytest.fixture
def job_run(db):
    job_run = JobRun(job_type=JobType.po_backfill, status=JobStatus.pending)
    db.add(job_run)
    db.commit()
    return job_run


class TestBackfillTask:
    def test_assigns_and_completes_job(self, db, session_factory, job_run, add_account):
        from tmdash.tasks.po_numbers import backfill_po_numbers

        account = add_account()
        db.add(Purchase(account_id=account.id))
        db.commit()

        with patch("tmdash.database.SessionLocal", session_factory):
            result = backfill_po_numbers(job_run_id=job_run.id)

        assert result == {"status": "ok", "assigned": 1, "already_had": 0, "total": 1}
        db.expire_all()
        assert db.query(Purchase).one().dashboard_po_number == "000001"
        assert job_run.status == "completed"
        assert json.loads(job_run.details)["assigned"] == 1
        assert job_run.completed_at is not None

    def test_failure_marks_job_failed(self, db, session_factory, job_run):
        from tmdash.tasks.po_numbers import backfill_po_numbers

        with patch("tmdash.database.SessionLocal", session_factory), patch(
            "tmdash.services.po_service.assign_missing_po_numbers",
            side_effect=RuntimeError("db gone"),
        ):
            with pytest.raises(RuntimeError, match="db gone"):
                backfill_po_numbers(job_run_id=job_run.id)

        db.expire_all()
        assert job_run.status == "failed"
        assert job_run.error_message == "db gone"
