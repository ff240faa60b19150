import logging
from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


def backend_error(action: str, exc: Exception) -> HTTPException:
    """HTTPException naming the failed operation. Existing HTTPExceptions pass through."""
    if isinstance(exc, HTTPException):
        return exc
    logger.error(f"{action} failed: {exc}")
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Failed to {action}: {exc}"
    )


def not_found(entity: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{entity} not found")


def is_unique_violation(exc: Exception) -> bool:
    """True for a Postgres unique_violation surfaced through PostgREST."""
    code = getattr(exc, "code", None)
    return code == "23505" or "duplicate key" in str(exc).lower()
