import logging

from fastapi import APIRouter, Request
from sqlalchemy.exc import SQLAlchemyError

router = APIRouter()

log = logging.getLogger(__name__)


@router.get("/health", tags=["health"])
def health(request: Request):
    db_ok = False
    try:
        db_ok = request.app.state.db.ping()
    except SQLAlchemyError:
        log.exception("Health check: database unreachable")
        db_ok = False

    return {"status": "ok" if db_ok else "degraded", "db": db_ok}
