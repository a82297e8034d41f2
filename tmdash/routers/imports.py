"""Router for email-receipt CSV imports.

Endpoints:
  POST /import/email-csv                    – Upload + import a receipt export
  POST /import/email-csv/update-duplicates  – Apply approved duplicate updates
"""
import json
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from tmdash.config import get_settings
from tmdash.database import SessionLocal, get_db
from tmdash.schemas.import_result import (
    DuplicateUpdateRequest,
    DuplicateUpdateResponse,
    ImportResult,
)
from tmdash.services.duplicate_service import apply_duplicate_updates
from tmdash.services.import_service import ReceiptImporter, record_import_run
from tmdash.services.receipt_parser import parse_receipt_csv

router = APIRouter()
logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 20

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(event: dict) -> str:
    return f"data: {json.dumps(event)}\n\n"


def _decode(content_bytes: bytes) -> str:
    try:
        return content_bytes.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content_bytes.decode("latin-1")


def _stream_import(parsed):
    db = SessionLocal()
    try:
        for event in ReceiptImporter(db, parsed).iter_progress():
            yield format_sse(event)
    except Exception as exc:
        logger.exception("Streaming import failed")
        yield format_sse({"type": "error", "message": str(exc)})
    finally:
        db.close()


def _run_import(db: Session, parsed, filename: str) -> ImportResult:
    # Called from the threadpool; every row commits synchronously
    result = ReceiptImporter(db, parsed).run()
    record_import_run(db, filename, result)
    return result


@router.post("/email-csv", response_model=ImportResult)
async def import_email_csv(
    file: UploadFile = File(...),
    streaming: bool = Form(False),
    db: Session = Depends(get_db),
):
    """Import a Ticketmaster email-receipt CSV export.

    - **file**: the CSV export, one receipt per row.
    - **streaming**: when true, progress is streamed as server-sent events
      and the final summary arrives in the ``complete`` event.

    Rows are committed one at a time; a bad row is reported in ``errors``
    and does not stop the import.
    """
    settings = get_settings()
    filename = file.filename or "receipts.csv"
    content_bytes = await file.read()

    max_bytes = settings.MAX_IMPORT_SIZE_MB * 1024 * 1024
    if len(content_bytes) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=(
                f"File too large ({len(content_bytes)} bytes). "
                f"Maximum allowed size is {settings.MAX_IMPORT_SIZE_MB} MB."
            ),
        )

    try:
        parsed = parse_receipt_csv(_decode(content_bytes))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    if not parsed.rows:
        raise HTTPException(
            status_code=400,
            detail={
                "message": "No valid rows found in CSV",
                "errors": [
                    {"row": e.row, "message": e.message}
                    for e in parsed.errors[:MAX_REPORTED_ERRORS]
                ],
            },
        )

    logger.info(
        "Importing %s: %d valid rows, %d parse errors",
        filename, len(parsed.rows), len(parsed.errors),
    )

    if streaming:
        return StreamingResponse(
            _stream_import(parsed),
            media_type="text/event-stream",
            headers=STREAM_HEADERS,
        )

    return await run_in_threadpool(_run_import, db, parsed, filename)


@router.post("/email-csv/update-duplicates", response_model=DuplicateUpdateResponse)
def update_duplicates(payload: DuplicateUpdateRequest, db: Session = Depends(get_db)):
    """Write operator-approved changes onto purchases reported as duplicates."""
    if not payload.updates:
        raise HTTPException(status_code=400, detail="No updates provided")
    updated, errors = apply_duplicate_updates(db, payload.updates)
    return DuplicateUpdateResponse(updated=updated, errors=errors or None)
