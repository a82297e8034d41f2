from typing import List, Optional
from datetime import datetime
from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session
from tmdash.database import get_db
from tmdash.models.job import JobRun, JobStatus, JobType

router = APIRouter()


class JobRunResponse(BaseModel):
    id: int
    job_type: str
    status: str
    task_id: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    details: Optional[str] = None
    error_message: Optional[str] = None

    model_config = {"from_attributes": True}


@router.get("/recent", response_model=List[JobRunResponse])
def list_recent_jobs(limit: int = 20, db: Session = Depends(get_db)):
    """Return the most recent job runs (newest first)."""
    return (
        db.query(JobRun)
        .order_by(JobRun.started_at.desc(), JobRun.id.desc())
        .limit(limit)
        .all()
    )


@router.post("/po-backfill")
def trigger_po_backfill(db: Session = Depends(get_db)):
    """Queue a run that assigns PO numbers to purchases that lack one."""
    job_run = JobRun(job_type=JobType.po_backfill, status=JobStatus.pending)
    db.add(job_run)
    db.commit()
    db.refresh(job_run)
    try:
        from tmdash.tasks.po_numbers import backfill_po_numbers
        task = backfill_po_numbers.delay(job_run_id=job_run.id)
    except Exception as exc:
        job_run.status = JobStatus.failed
        job_run.error_message = str(exc)
        job_run.completed_at = datetime.utcnow()
        db.commit()
        raise HTTPException(status_code=500, detail=str(exc))
    job_run.task_id = task.id
    db.commit()
    return {"status": "queued", "task_id": task.id, "job_run_id": job_run.id}
