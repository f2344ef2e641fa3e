import logging

from fastapi import HTTPException

from app.services.errors import BracketError

logger = logging.getLogger(__name__)


def to_http_exception(e: BracketError) -> HTTPException:
    """Map a domain error onto the HTTPException the routes raise."""
    if e.status_code == 409:
        logger.warning("Conflict: %s", e.message)
    return HTTPException(status_code=e.status_code, detail=e.message)
