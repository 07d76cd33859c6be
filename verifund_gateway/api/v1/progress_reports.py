"""Progress report endpoints - reports, document uploads, credit scores and ratings"""

import uuid
from typing import List
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from verifund_gateway.api.dependencies import get_actor, get_notification_client, get_request_id
from verifund_gateway.api.v1.errors import to_http_error, to_internal_error
from verifund_gateway.api.v1.schemas import (
    CreditScoreSchema,
    DocumentCreateRequest,
    DocumentResponse,
    DocumentUploadResponse,
    ProgressReportCreateRequest,
    ProgressReportResponse,
    RatingRequest,
    RatingResponse,
    UserCreditScoreResponse,
)
from verifund_gateway.domain.exceptions import DomainException
from verifund_gateway.domain.models import DocumentUpload
from verifund_gateway.infrastructure.clients.notifications import NotificationClient
from verifund_gateway.infrastructure.database.models import User
from verifund_gateway.infrastructure.database.session import get_db
from verifund_gateway.services.progress import ProgressDocumentationService

router = APIRouter()


def _score_schema(score) -> CreditScoreSchema:
    return CreditScoreSchema(
        score_percentage=score.score_percentage,
        completed_document_types=list(score.completed_document_types),
        total_required_types=score.total_required_types,
        catalog_version=score.catalog_version,
    )


def _report_response(report) -> ProgressReportResponse:
    return ProgressReportResponse(
        id=str(report.id),
        campaign_id=str(report.campaign_id),
        created_by_id=str(report.created_by_id),
        title=report.title,
        description=report.description,
        report_date=report.report_date,
        credit_score=_score_schema(report.credit_score) if report.credit_score else None,
    )


def _document_response(document) -> DocumentResponse:
    return DocumentResponse(
        id=str(document.id),
        display_id=document.display_id,
        progress_report_id=str(document.progress_report_id),
        document_type=document.document_type,
        file_name=document.file_name,
        file_url=document.file_url,
        file_size=document.file_size,
        mime_type=document.mime_type,
        description=document.description,
    )


def _rating_response(rating) -> RatingResponse:
    return RatingResponse(
        id=str(rating.id),
        rater_id=str(rating.rater_id),
        progress_report_id=str(rating.progress_report_id),
        rating=rating.rating,
        comment=rating.comment,
    )


@router.post(
    "/campaigns/{campaign_id}/progress-reports",
    response_model=ProgressReportResponse,
    status_code=201,
)
def create_progress_report(
    campaign_id: uuid.UUID,
    request_body: ProgressReportCreateRequest,
    request: Request,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Creator opens a progress report on an on_progress campaign"""
    request_id = get_request_id(request)
    service = ProgressDocumentationService(db)

    try:
        report = service.create_progress_report(
            creator_id=actor.id,
            campaign_id=campaign_id,
            title=request_body.title,
            report_date=request_body.report_date,
            description=request_body.description,
        )
        db.commit()
    except DomainException as e:
        raise to_http_error(e, db, request_id)
    except Exception as e:
        raise to_internal_error(e, db, request_id)

    return _report_response(report)


@router.get("/campaigns/{campaign_id}/progress-reports", response_model=List[ProgressReportResponse])
def list_progress_reports(campaign_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    try:
        reports = ProgressDocumentationService(db).list_reports(campaign_id)
    except DomainException as e:
        raise to_http_error(e, db, get_request_id(request))
    return [_report_response(r) for r in reports]


@router.post(
    "/progress-reports/{report_id}/documents",
    response_model=DocumentUploadResponse,
    status_code=201,
)
def attach_document(
    report_id: uuid.UUID,
    request_body: DocumentCreateRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """
    Attach an already-uploaded file and recompute the report's credit score.

    Flow:
    1. Validate document type, campaign status and uploader
    2. Store the document
    3. Recompute the score from every document on the report
    4. Commit and notify
    """
    request_id = get_request_id(request)
    service = ProgressDocumentationService(db)

    try:
        document, score = service.attach_document(
            actor_id=actor.id,
            report_id=report_id,
            upload=DocumentUpload(**request_body.model_dump()),
        )
        db.commit()
    except DomainException as e:
        raise to_http_error(e, db, request_id)
    except Exception as e:
        raise to_internal_error(e, db, request_id)

    for payload in service.events:
        background_tasks.add_task(notifier.send_event, {**payload, "request_id": request_id})

    return DocumentUploadResponse(document=_document_response(document), credit_score=_score_schema(score))


@router.get("/progress-reports/{report_id}/documents", response_model=List[DocumentResponse])
def list_documents(report_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    try:
        documents = ProgressDocumentationService(db).list_documents(report_id)
    except DomainException as e:
        raise to_http_error(e, db, get_request_id(request))
    return [_document_response(d) for d in documents]


@router.get("/progress-reports/{report_id}/credit-score", response_model=CreditScoreSchema)
def get_credit_score(report_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    try:
        score = ProgressDocumentationService(db).get_credit_score(report_id)
    except DomainException as e:
        raise to_http_error(e, db, get_request_id(request))
    return _score_schema(score)


@router.get("/progress-reports/{report_id}/credit-score/verify", response_model=CreditScoreSchema)
def verify_credit_score(report_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    """Recompute the score from current documents without storing it"""
    try:
        score = ProgressDocumentationService(db).verify_credit_score(report_id)
    except DomainException as e:
        raise to_http_error(e, db, get_request_id(request))
    return _score_schema(score)


@router.post("/progress-reports/{report_id}/ratings", response_model=RatingResponse, status_code=201)
def rate_report(
    report_id: uuid.UUID,
    request_body: RatingRequest,
    request: Request,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
):
    request_id = get_request_id(request)
    try:
        rating = ProgressDocumentationService(db).rate_report(
            rater_id=actor.id,
            report_id=report_id,
            rating=request_body.rating,
            comment=request_body.comment,
        )
        db.commit()
    except DomainException as e:
        raise to_http_error(e, db, request_id)
    except Exception as e:
        raise to_internal_error(e, db, request_id)
    return _rating_response(rating)


@router.get("/progress-reports/{report_id}/ratings", response_model=List[RatingResponse])
def list_ratings(report_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    try:
        ratings = ProgressDocumentationService(db).list_ratings(report_id)
    except DomainException as e:
        raise to_http_error(e, db, get_request_id(request))
    return [_rating_response(r) for r in ratings]


@router.get("/users/{user_id}/credit-score", response_model=UserCreditScoreResponse)
def get_user_credit_score(user_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    """Average documentation score across all of a creator's progress reports"""
    try:
        average = ProgressDocumentationService(db).get_average_credit_score(user_id)
    except DomainException as e:
        raise to_http_error(e, db, get_request_id(request))
    return UserCreditScoreResponse(user_id=str(user_id), average_score_percentage=average)
