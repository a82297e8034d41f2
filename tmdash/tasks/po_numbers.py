import json
import logging
from datetime import datetime
from typing import Optional

from tmdash.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def _update_job_run(
    db, job_run_id: Optional[int], status, details: Optional[str] = None, error: Optional[str] = None
):
    from tmdash.models.job import JobRun, JobStatus

    if not job_run_id:
        return
    job_run = db.query(JobRun).filter(JobRun.id == job_run_id).first()
    if job_run:
        job_run.status = status
        job_run.details = details
        job_run.error_message = error
        job_run.completed_at = datetime.utcnow() if status != JobStatus.running else None
        db.commit()


@celery_app.task(name="tmdash.tasks.po_numbers.backfill_po_numbers", bind=True, max_retries=3)
def backfill_po_numbers(self, job_run_id: int = None):
    """Assign dashboard PO numbers to successful purchases that have none."""
    from tmdash.database import SessionLocal
    from tmdash.models.job import JobStatus
    from tmdash.services.po_service import assign_missing_po_numbers

    db = SessionLocal()
    try:
        _update_job_run(db, job_run_id, JobStatus.running)
        counts = assign_missing_po_numbers(db)
        _update_job_run(db, job_run_id, JobStatus.completed, details=json.dumps(counts))
        logger.info(
            "PO backfill complete: %d assigned, %d already had one",
            counts["assigned"], counts["already_had"],
        )
        return {"status": "ok", **counts}
    except Exception as exc:
        logger.error("PO backfill failed: %s", exc)
        db.rollback()
        try:
            _update_job_run(db, job_run_id, JobStatus.failed, error=str(exc))
        except Exception as inner:
            logger.error("Could not record PO backfill failure: %s", inner)
        raise self.retry(exc=exc, countdown=60)
    finally:
        db.close()
