"""Map domain exceptions to HTTP errors"""

import logging
from fastapi import HTTPException
from sqlalchemy.orm import Session

from verifund_gateway.domain.exceptions import (
    AlreadyRatedError,
    DomainException,
    ForbiddenError,
    InsufficientClaimableAmountError,
    InvalidAmountError,
    InvalidCampaignDataError,
    InvalidDocumentTypeError,
    InvalidRatingError,
    InvalidTransitionError,
    NotFoundError,
    ReportClosedError,
)
from verifund_gateway.infrastructure.observability.metrics import record_domain_error

STATUS_CODES = {
    InvalidTransitionError: 409,
    InsufficientClaimableAmountError: 409,
    ReportClosedError: 409,
    AlreadyRatedError: 409,
    ForbiddenError: 403,
    NotFoundError: 404,
    InvalidAmountError: 422,
    InvalidDocumentTypeError: 422,
    InvalidCampaignDataError: 422,
    InvalidRatingError: 422,
}


def error_detail(error: DomainException) -> dict:
    """Stable error body: code + message, plus the fields callers display"""
    detail = {"code": error.code, "message": str(error)}
    if isinstance(error, InvalidTransitionError):
        detail.update(
            current_status=error.current_status,
            requested_status=error.requested_status,
            allowed=error.allowed,
        )
    elif isinstance(error, InsufficientClaimableAmountError):
        detail.update(
            requested_cents=error.requested_cents,
            claimable_cents=error.claimable_cents,
        )
    elif isinstance(error, AlreadyRatedError):
        detail["existing_rating"] = error.existing_rating
    return detail


def to_http_error(error: DomainException, db: Session, request_id: str) -> HTTPException:
    """Roll back, log and count a rejected operation, then build its HTTPException"""
    db.rollback()
    record_domain_error(error.code)
    logging.warning(f"Operation rejected: {error}", extra={"request_id": request_id, "code": error.code})
    return HTTPException(status_code=STATUS_CODES.get(type(error), 400), detail=error_detail(error))


def to_internal_error(error: Exception, db: Session, request_id: str) -> HTTPException:
    db.rollback()
    logging.error(f"Unexpected error: {error}", extra={"request_id": request_id})
    return HTTPException(status_code=500, detail="Internal server error")
