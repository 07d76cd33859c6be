"""Campaign Lifecycle Manager - status transitions and funds accounting"""

import uuid
from dataclasses import asdict
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy.orm import Session

from verifund_gateway.domain import lifecycle
from verifund_gateway.domain.exceptions import (
    ForbiddenError,
    InsufficientClaimableAmountError,
    InvalidCampaignDataError,
    InvalidTransitionError,
    NotFoundError,
)
from verifund_gateway.domain.models import CampaignFields, CampaignStatus, StatusChange
from verifund_gateway.infrastructure.database.models import Campaign, CampaignStatusEvent, User
from verifund_gateway.infrastructure.database.repositories import CampaignRepository, UserRepository
from verifund_gateway.infrastructure.observability.logging import log_transition
from verifund_gateway.infrastructure.observability.metrics import (
    record_claim,
    record_contribution,
    record_transition,
)
from verifund_gateway.utils.date_utils import end_date_from_duration, utcnow
from verifund_gateway.utils.identifiers import CAMPAIGN_PREFIX, generate_display_id

S = CampaignStatus

MAX_DISPLAY_ID_ATTEMPTS = 10


class CampaignLifecycleManager:
    """
    Owns every write to a campaign's status and amount fields.

    Each method runs inside the caller's session; the caller commits once the
    method returns and rolls back if it raises. Status changes are
    compare-and-set updates, counters are SQL-side increments, so concurrent
    requests cannot lose updates. Committed-state events are collected in
    `events` for the caller to publish after commit.
    """

    def __init__(self, db: Session):
        self.db = db
        self.users = UserRepository(db)
        self.campaigns = CampaignRepository(db)
        self.events: List[Dict[str, Any]] = []

    # Lookups

    def get_user(self, user_id: uuid.UUID) -> User:
        user = self.users.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def get_campaign(self, campaign_id: uuid.UUID) -> Campaign:
        campaign = self.campaigns.get_campaign_by_id(campaign_id)
        if campaign is None:
            raise NotFoundError(f"Campaign {campaign_id} not found")
        return campaign

    def get_history(self, campaign_id: uuid.UUID) -> List[CampaignStatusEvent]:
        self.get_campaign(campaign_id)
        return self.campaigns.get_status_events(campaign_id)

    # Creation and review

    def submit_campaign(self, creator_id: uuid.UUID, fields: CampaignFields) -> Campaign:
        """Validate and store a new campaign in pending state"""
        creator = self.get_user(creator_id)
        lifecycle.ensure_can_create_campaign(creator)
        lifecycle.validate_campaign_fields(fields)

        campaign = self.campaigns.create_campaign(
            creator_id=creator.id,
            fields=fields,
            display_id=self._new_display_id(),
            end_date=end_date_from_duration(utcnow(), fields.duration_days),
        )
        self.campaigns.add_status_event(campaign.id, None, S.PENDING.value, actor_id=creator.id)
        return campaign

    def claim_for_review(self, admin_id: uuid.UUID, campaign_id: uuid.UUID) -> Campaign:
        """Reserve a pending campaign for one reviewer"""
        admin = self._require_staff(admin_id)
        campaign = self.get_campaign(campaign_id)

        if campaign.status != S.PENDING.value:
            raise InvalidTransitionError(
                campaign.status, "review_claim",
                message=f"Only pending campaigns can be claimed for review (status is '{campaign.status}')",
            )
        if not self.campaigns.claim_for_review(campaign, admin.id, utcnow()):
            raise InvalidTransitionError(
                campaign.status, "review_claim",
                message="Campaign is already claimed by another reviewer",
            )
        return campaign

    def approve(self, admin_id: uuid.UUID, campaign_id: uuid.UUID) -> Campaign:
        admin = self._require_staff(admin_id)
        campaign = self.get_campaign(campaign_id)
        return self._transition(
            campaign,
            S.ACTIVE,
            actor_id=admin.id,
            sources=[S.PENDING],
            values={"approved_by": admin.id, "approved_at": utcnow()},
        )

    def reject(self, admin_id: uuid.UUID, campaign_id: uuid.UUID, reason: str) -> Campaign:
        admin = self._require_staff(admin_id)
        campaign = self.get_campaign(campaign_id)
        reason = self._require_reason(reason)
        return self._transition(
            campaign,
            S.REJECTED,
            actor_id=admin.id,
            reason=reason,
            sources=[S.PENDING],
            values={"rejected_by": admin.id, "rejected_at": utcnow(), "rejection_reason": reason},
        )

    # Funds

    def record_contribution(
        self,
        campaign_id: uuid.UUID,
        amount_cents: int,
        contributor_id: Optional[uuid.UUID] = None,
    ) -> Campaign:
        """
        Add a confirmed payment to the campaign's raised funds.

        This is the only trigger of the automatic active -> on_progress edge:
        it fires when the new total reaches the operational minimum.
        """
        if contributor_id is not None and self.get_user(contributor_id).is_staff:
            raise ForbiddenError("Admin and support accounts cannot contribute")

        campaign = self.get_campaign(campaign_id)
        accepting = [s.value for s in lifecycle.CONTRIBUTION_STATUSES]
        if campaign.status not in accepting:
            raise self._not_accepting_contributions(campaign)
        lifecycle.ensure_positive_amount(amount_cents)

        # Status is re-checked by the UPDATE itself; the row may have moved since it was read
        if not self.campaigns.increment_current_amount(campaign, amount_cents, accepting):
            raise self._not_accepting_contributions(campaign)
        self.campaigns.add_contribution(campaign.id, amount_cents, contributor_id)
        record_contribution(amount_cents)

        if campaign.status == S.ACTIVE.value and lifecycle.reaches_minimum(
            campaign.current_amount_cents, campaign.minimum_amount_cents
        ):
            self._transition(campaign, S.ON_PROGRESS, reason="minimum_amount_reached", automatic=True)

        return campaign

    def claim_funds(self, creator_id: uuid.UUID, campaign_id: uuid.UUID, amount_cents: int) -> Campaign:
        """Creator withdraws part of the raised-but-unclaimed balance"""
        creator = self.get_user(creator_id)
        campaign = self.get_campaign(campaign_id)
        if campaign.creator_id != creator.id:
            raise ForbiddenError("Only the campaign creator can claim funds")
        lifecycle.ensure_positive_amount(amount_cents)

        if not self.campaigns.increment_claimed_amount(campaign, amount_cents):
            raise InsufficientClaimableAmountError(
                amount_cents,
                lifecycle.claimable_amount(campaign.current_amount_cents, campaign.claimed_amount_cents),
            )
        record_claim(amount_cents)
        return campaign

    # Operational transitions

    def start_progress(self, actor_id: uuid.UUID, campaign_id: uuid.UUID) -> Campaign:
        campaign = self.get_campaign(campaign_id)
        actor = self._require_creator_or_staff(actor_id, campaign)
        return self._transition(campaign, S.ON_PROGRESS, actor_id=actor.id, sources=[S.ACTIVE])

    def flag(self, actor_id: uuid.UUID, campaign_id: uuid.UUID, reason: Optional[str] = None) -> Campaign:
        actor = self._require_staff(actor_id)
        campaign = self.get_campaign(campaign_id)
        return self._transition(
            campaign,
            S.FLAGGED,
            actor_id=actor.id,
            reason=reason,
            values={"flagged_from_status": campaign.status},
        )

    def clear_flag(
        self,
        admin_id: uuid.UUID,
        campaign_id: uuid.UUID,
        next_status: Optional[str] = None,
    ) -> Campaign:
        """Return a flagged campaign to an operational state (default: the one it was flagged from)"""
        admin = self._require_staff(admin_id)
        campaign = self.get_campaign(campaign_id)

        requested = next_status or campaign.flagged_from_status or S.ACTIVE.value
        allowed = sorted(s.value for s in lifecycle.FLAGGABLE_STATUSES)
        if requested not in allowed:
            raise InvalidTransitionError(
                campaign.status, str(requested), allowed,
                message="Clearing a flag returns the campaign to 'active' or 'on_progress'",
            )
        return self._transition(campaign, CampaignStatus(requested), actor_id=admin.id, sources=[S.FLAGGED])

    def uphold_flag(self, admin_id: uuid.UUID, campaign_id: uuid.UUID, reason: str) -> Campaign:
        admin = self._require_staff(admin_id)
        campaign = self.get_campaign(campaign_id)
        reason = self._require_reason(reason)
        return self._transition(
            campaign,
            S.REJECTED,
            actor_id=admin.id,
            reason=reason,
            sources=[S.FLAGGED],
            values={"rejected_by": admin.id, "rejected_at": utcnow(), "rejection_reason": reason},
        )

    def cancel(self, actor_id: uuid.UUID, campaign_id: uuid.UUID) -> Campaign:
        """Withdraw an active campaign that has not reached its minimum"""
        campaign = self.get_campaign(campaign_id)
        actor = self._require_creator_or_staff(actor_id, campaign)
        if campaign.status == S.ACTIVE.value and lifecycle.reaches_minimum(
            campaign.current_amount_cents, campaign.minimum_amount_cents
        ):
            raise InvalidTransitionError(
                campaign.status, S.CANCELLED.value,
                message="Campaigns that reached their minimum amount cannot be cancelled",
            )
        return self._transition(campaign, S.CANCELLED, actor_id=actor.id)

    def complete(self, actor_id: uuid.UUID, campaign_id: uuid.UUID) -> Campaign:
        campaign = self.get_campaign(campaign_id)
        actor = self._require_creator_or_staff(actor_id, campaign)
        return self._transition(campaign, S.COMPLETED, actor_id=actor.id)

    def close_with_refund(
        self,
        admin_id: uuid.UUID,
        campaign_id: uuid.UUID,
        reason: Optional[str] = None,
    ) -> Campaign:
        admin = self._require_staff(admin_id)
        campaign = self.get_campaign(campaign_id)
        return self._transition(campaign, S.CLOSED_WITH_REFUND, actor_id=admin.id, reason=reason)

    # Internals

    def _transition(
        self,
        campaign: Campaign,
        requested: CampaignStatus,
        actor_id: Optional[uuid.UUID] = None,
        reason: Optional[str] = None,
        sources: Optional[Iterable[CampaignStatus]] = None,
        values: Optional[Dict[str, Any]] = None,
        automatic: bool = False,
    ) -> Campaign:
        """Validate the edge, compare-and-set the status and append history"""
        current = CampaignStatus(campaign.status)
        if sources is not None and current not in set(sources):
            raise InvalidTransitionError(
                current.value,
                requested.value,
                [s.value for s in lifecycle.TRANSITIONS[current]],
            )
        target = lifecycle.ensure_transition(current, requested)

        if not self.campaigns.compare_and_set_status(campaign, current.value, target.value, values):
            # Another writer moved the campaign first; report against its new status
            raise InvalidTransitionError(
                campaign.status,
                target.value,
                [s.value for s in lifecycle.TRANSITIONS[CampaignStatus(campaign.status)]],
            )

        self.campaigns.add_status_event(campaign.id, current.value, target.value, actor_id, reason)

        change = StatusChange(
            campaign_id=str(campaign.id),
            from_status=current.value,
            to_status=target.value,
            actor_id=str(actor_id) if actor_id else None,
            reason=reason,
        )
        self.events.append({"event": "CAMPAIGN_STATUS_CHANGED", **asdict(change)})
        record_transition(current.value, target.value)
        log_transition(change.campaign_id, current.value, target.value, change.actor_id, automatic)
        return campaign

    def _not_accepting_contributions(self, campaign: Campaign) -> InvalidTransitionError:
        return InvalidTransitionError(
            campaign.status, "record_contribution",
            message=f"Campaign is not accepting contributions (status is '{campaign.status}')",
        )

    def _require_staff(self, user_id: uuid.UUID) -> User:
        user = self.get_user(user_id)
        if not user.is_staff:
            raise ForbiddenError("Admin or support role required")
        return user

    def _require_creator_or_staff(self, user_id: uuid.UUID, campaign: Campaign) -> User:
        user = self.get_user(user_id)
        if user.id != campaign.creator_id and not user.is_staff:
            raise ForbiddenError("Only the campaign creator or an admin can do this")
        return user

    def _require_reason(self, reason: Optional[str]) -> str:
        if not reason or not reason.strip():
            raise InvalidCampaignDataError("A reason is required")
        return reason.strip()

    def _new_display_id(self) -> str:
        for _ in range(MAX_DISPLAY_ID_ATTEMPTS):
            display_id = generate_display_id(CAMPAIGN_PREFIX)
            if not self.campaigns.display_id_exists(display_id):
                return display_id
        raise InvalidCampaignDataError("Could not allocate a unique campaign display id")
