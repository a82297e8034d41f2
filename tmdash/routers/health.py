import logging

import redis as redis_lib
from fastapi import APIRouter
from sqlalchemy import text

from tmdash.config import get_settings
from tmdash.database import engine

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health_check():
    """Check service health including DB and Redis connectivity."""
    db_ok = False
    redis_ok = False

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        db_ok = True
    except Exception as exc:
        logger.warning("Database health check failed: %s", exc)

    try:
        r = redis_lib.from_url(get_settings().REDIS_URL, socket_connect_timeout=2)
        r.ping()
        redis_ok = True
    except Exception as exc:
        logger.warning("Redis health check failed: %s", exc)

    return {"status": "ok", "db": db_ok, "redis": redis_ok}
