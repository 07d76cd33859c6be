"""Campaign lifecycle endpoints - submission, review, funds and status transitions"""

import uuid
from typing import Callable
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from verifund_gateway.api.dependencies import get_actor, get_notification_client, get_request_id
from verifund_gateway.api.v1.errors import to_http_error, to_internal_error
from verifund_gateway.api.v1.schemas import (
    CampaignCreateRequest,
    CampaignHistoryResponse,
    CampaignResponse,
    ClaimFundsRequest,
    ClearFlagRequest,
    ContributionRequest,
    OptionalReasonRequest,
    ReasonRequest,
    StatusEventSchema,
)
from verifund_gateway.domain.exceptions import DomainException
from verifund_gateway.domain.models import CampaignFields
from verifund_gateway.infrastructure.clients.notifications import NotificationClient
from verifund_gateway.infrastructure.database.models import Campaign, User
from verifund_gateway.infrastructure.database.session import get_db
from verifund_gateway.services.campaigns import CampaignLifecycleManager

router = APIRouter()


def _execute(
    operation: Callable[[CampaignLifecycleManager], Campaign],
    db: Session,
    request: Request,
    background_tasks: BackgroundTasks,
    notifier: NotificationClient,
) -> CampaignResponse:
    """
    Run one lifecycle operation as a single transaction.

    Flow:
    1. Apply the operation (validation + atomic updates)
    2. Commit, or roll back on any error
    3. Schedule notification events for the committed state
    """
    request_id = get_request_id(request)
    manager = CampaignLifecycleManager(db)

    try:
        campaign = operation(manager)
        db.commit()
    except DomainException as e:
        raise to_http_error(e, db, request_id)
    except Exception as e:
        raise to_internal_error(e, db, request_id)

    for payload in manager.events:
        background_tasks.add_task(notifier.send_event, {**payload, "request_id": request_id})

    return CampaignResponse.from_campaign(campaign)


@router.post("/campaigns", response_model=CampaignResponse, status_code=201)
def submit_campaign(
    request_body: CampaignCreateRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """Creator submits a campaign for review; it starts in pending"""
    fields = CampaignFields(**request_body.model_dump())
    return _execute(lambda m: m.submit_campaign(actor.id, fields), db, request, background_tasks, notifier)


@router.get("/campaigns/{campaign_id}", response_model=CampaignResponse)
def get_campaign(campaign_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    try:
        campaign = CampaignLifecycleManager(db).get_campaign(campaign_id)
    except DomainException as e:
        raise to_http_error(e, db, get_request_id(request))
    return CampaignResponse.from_campaign(campaign)


@router.get("/campaigns/{campaign_id}/history", response_model=CampaignHistoryResponse)
def get_campaign_history(campaign_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    """
    Ordered status changes of a campaign.

    Returns:
        Every committed transition, starting with the pending submission
    """
    try:
        events = CampaignLifecycleManager(db).get_history(campaign_id)
    except DomainException as e:
        raise to_http_error(e, db, get_request_id(request))

    return CampaignHistoryResponse(
        campaign_id=str(campaign_id),
        events=[
            StatusEventSchema(
                sequence=e.sequence,
                from_status=e.from_status,
                to_status=e.to_status,
                actor_id=str(e.actor_id) if e.actor_id else None,
                reason=e.reason,
                created_at=e.created_at.isoformat(),
            )
            for e in events
        ],
    )


@router.post("/campaigns/{campaign_id}/review-claim", response_model=CampaignResponse)
def claim_for_review(
    campaign_id: uuid.UUID,
    request: Request,
    background_tasks: BackgroundTasks,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    return _execute(lambda m: m.claim_for_review(actor.id, campaign_id), db, request, background_tasks, notifier)


@router.post("/campaigns/{campaign_id}/approve", response_model=CampaignResponse)
def approve_campaign(
    campaign_id: uuid.UUID,
    request: Request,
    background_tasks: BackgroundTasks,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    return _execute(lambda m: m.approve(actor.id, campaign_id), db, request, background_tasks, notifier)


@router.post("/campaigns/{campaign_id}/reject", response_model=CampaignResponse)
def reject_campaign(
    campaign_id: uuid.UUID,
    request_body: ReasonRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    return _execute(
        lambda m: m.reject(actor.id, campaign_id, request_body.reason),
        db, request, background_tasks, notifier,
    )


@router.post("/campaigns/{campaign_id}/contributions", response_model=CampaignResponse)
def record_contribution(
    campaign_id: uuid.UUID,
    request_body: ContributionRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """
    Record a payment already confirmed by the payment collaborator.

    Reaching the campaign's minimum amount while active moves it to on_progress.
    """
    return _execute(
        lambda m: m.record_contribution(campaign_id, request_body.amount_cents, request_body.contributor_id),
        db, request, background_tasks, notifier,
    )


@router.post("/campaigns/{campaign_id}/claims", response_model=CampaignResponse)
def claim_funds(
    campaign_id: uuid.UUID,
    request_body: ClaimFundsRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    return _execute(
        lambda m: m.claim_funds(actor.id, campaign_id, request_body.amount_cents),
        db, request, background_tasks, notifier,
    )


@router.post("/campaigns/{campaign_id}/start-progress", response_model=CampaignResponse)
def start_progress(
    campaign_id: uuid.UUID,
    request: Request,
    background_tasks: BackgroundTasks,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    return _execute(lambda m: m.start_progress(actor.id, campaign_id), db, request, background_tasks, notifier)


@router.post("/campaigns/{campaign_id}/flag", response_model=CampaignResponse)
def flag_campaign(
    campaign_id: uuid.UUID,
    request_body: OptionalReasonRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    return _execute(
        lambda m: m.flag(actor.id, campaign_id, request_body.reason),
        db, request, background_tasks, notifier,
    )


@router.post("/campaigns/{campaign_id}/clear-flag", response_model=CampaignResponse)
def clear_flag(
    campaign_id: uuid.UUID,
    request_body: ClearFlagRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    return _execute(
        lambda m: m.clear_flag(actor.id, campaign_id, request_body.next_status),
        db, request, background_tasks, notifier,
    )


@router.post("/campaigns/{campaign_id}/uphold-flag", response_model=CampaignResponse)
def uphold_flag(
    campaign_id: uuid.UUID,
    request_body: ReasonRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    return _execute(
        lambda m: m.uphold_flag(actor.id, campaign_id, request_body.reason),
        db, request, background_tasks, notifier,
    )


@router.post("/campaigns/{campaign_id}/cancel", response_model=CampaignResponse)
def cancel_campaign(
    campaign_id: uuid.UUID,
    request: Request,
    background_tasks: BackgroundTasks,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    return _execute(lambda m: m.cancel(actor.id, campaign_id), db, request, background_tasks, notifier)


@router.post("/campaigns/{campaign_id}/complete", response_model=CampaignResponse)
def complete_campaign(
    campaign_id: uuid.UUID,
    request: Request,
    background_tasks: BackgroundTasks,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    return _execute(lambda m: m.complete(actor.id, campaign_id), db, request, background_tasks, notifier)


@router.post("/campaigns/{campaign_id}/close-with-refund", response_model=CampaignResponse)
def close_with_refund(
    campaign_id: uuid.UUID,
    request_body: OptionalReasonRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    actor: User = Depends(get_actor),
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    return _execute(
        lambda m: m.close_with_refund(actor.id, campaign_id, request_body.reason),
        db, request, background_tasks, notifier,
    )
