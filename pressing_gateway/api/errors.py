"""Translation of domain exceptions into HTTP errors"""

import logging
from typing import NoReturn
from fastapi import HTTPException
from sqlalchemy.orm import Session

from pressing_gateway.domain.exceptions import (
    ConcurrencyConflictError,
    DomainException,
    NotFoundError,
    ReceiptConsistencyError,
    ValidationError,
)
from pressing_gateway.infrastructure.observability.metrics import concurrency_conflict_counter


def raise_for_domain_error(db: Session, request_id: str, error: DomainException) -> NoReturn:
    """
    Roll back the unit of work, log, and raise the matching HTTPException.

    ValidationError → 422, NotFoundError → 404, ConcurrencyConflictError → 409,
    ReceiptConsistencyError and anything else → 500.
    """
    db.rollback()

    if isinstance(error, ValidationError):
        logging.warning(f"Rejected: {error}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(error))

    if isinstance(error, NotFoundError):
        logging.warning(f"Not found: {error}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=str(error))

    if isinstance(error, ConcurrencyConflictError):
        concurrency_conflict_counter.inc()
        logging.error(f"Concurrent modification: {error}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail="Deposit was modified by another operator, reload and retry")

    if isinstance(error, ReceiptConsistencyError):
        logging.error(f"Inconsistent deposit totals: {error}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail=f"Receipt consistency check failed: {error}")

    logging.error(f"Unexpected domain error: {error}", extra={"request_id": request_id})
    raise HTTPException(status_code=500, detail="Internal server error")


def raise_internal_error(db: Session, request_id: str, error: Exception) -> NoReturn:
    db.rollback()
    logging.error(f"Unexpected error: {error}", extra={"request_id": request_id})
    raise HTTPException(status_code=500, detail="Internal server error")
