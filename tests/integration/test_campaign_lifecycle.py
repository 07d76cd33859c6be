"""Integration tests for the campaign lifecycle manager against the test database"""

import uuid
import pytest
from verifund_gateway.domain import lifecycle
from verifund_gateway.domain.exceptions import (
    ForbiddenError,
    InsufficientClaimableAmountError,
    InvalidAmountError,
    InvalidCampaignDataError,
    InvalidTransitionError,
    NotFoundError,
)
from verifund_gateway.infrastructure.database.models import Campaign, Contribution
from verifund_gateway.services.campaigns import CampaignLifecycleManager


def test_submit_campaign_starts_pending(db, manager, creator, campaign_fields):
    campaign = manager.submit_campaign(creator.id, campaign_fields)
    db.commit()

    assert campaign.status == "pending"
    assert campaign.current_amount_cents == 0
    assert campaign.claimed_amount_cents == 0
    assert campaign.display_id.startswith("CAM-")
    assert len(campaign.display_id) == 10
    assert campaign.end_date is not None

    history = manager.get_history(campaign.id)
    assert [(e.from_status, e.to_status) for e in history] == [(None, "pending")]


def test_staff_cannot_submit_campaigns(manager, admin, support, campaign_fields):
    with pytest.raises(ForbiddenError):
        manager.submit_campaign(admin.id, campaign_fields)
    with pytest.raises(ForbiddenError):
        manager.submit_campaign(support.id, campaign_fields)


def test_restricted_creator_cannot_submit(manager, make_user, campaign_fields):
    limited = make_user(account_status="limited")
    out_of_chances = make_user(remaining_campaign_chances=0)

    with pytest.raises(ForbiddenError):
        manager.submit_campaign(limited.id, campaign_fields)
    with pytest.raises(ForbiddenError):
        manager.submit_campaign(out_of_chances.id, campaign_fields)


def test_submit_validates_amounts(manager, creator, campaign_fields):
    campaign_fields.minimum_amount_cents = campaign_fields.goal_amount_cents + 1
    with pytest.raises(InvalidAmountError):
        manager.submit_campaign(creator.id, campaign_fields)


def test_approve_twice_fails(db, manager, admin, pending_campaign):
    """Second approve sees 'active', not 'pending'"""
    manager.approve(admin.id, pending_campaign.id)
    db.commit()

    with pytest.raises(InvalidTransitionError) as exc_info:
        manager.approve(admin.id, pending_campaign.id)

    assert exc_info.value.current_status == "active"
    assert exc_info.value.requested_status == "active"
    assert pending_campaign.approved_by == admin.id
    assert pending_campaign.approved_at is not None


def test_support_can_approve(db, manager, support, pending_campaign):
    campaign = manager.approve(support.id, pending_campaign.id)
    assert campaign.status == "active"


def test_creator_cannot_approve(manager, creator, pending_campaign):
    with pytest.raises(ForbiddenError):
        manager.approve(creator.id, pending_campaign.id)


def test_reject_requires_reason(db, manager, admin, pending_campaign):
    with pytest.raises(InvalidCampaignDataError):
        manager.reject(admin.id, pending_campaign.id, "   ")

    campaign = manager.reject(admin.id, pending_campaign.id, "Missing beneficiary documents")
    db.commit()

    assert campaign.status == "rejected"
    assert campaign.rejection_reason == "Missing beneficiary documents"
    assert campaign.rejected_by == admin.id


def test_reject_active_campaign_fails(manager, admin, active_campaign):
    with pytest.raises(InvalidTransitionError):
        manager.reject(admin.id, active_campaign.id, "Too late")


def test_stale_status_loses_compare_and_set(db, manager, admin, pending_campaign):
    """A concurrent writer moved the row; the in-memory copy still says pending"""
    campaign = manager.get_campaign(pending_campaign.id)
    db.query(Campaign).filter(Campaign.id == campaign.id).update(
        {Campaign.status: "rejected"}, synchronize_session=False
    )
    assert campaign.status == "pending"

    with pytest.raises(InvalidTransitionError) as exc_info:
        manager.approve(admin.id, campaign.id)

    assert exc_info.value.current_status == "rejected"
    assert campaign.status == "rejected"
    assert [e.to_status for e in manager.get_history(campaign.id)] == ["pending"]


class TestConcurrentWrites:
    """A second session commits between this session's read and its write"""

    def test_contribution_refused_after_concurrent_flag(self, db, other_session, manager, admin, active_campaign):
        campaign = manager.get_campaign(active_campaign.id)
        assert campaign.status == "active"

        CampaignLifecycleManager(other_session).flag(admin.id, campaign.id, "Reported")
        other_session.commit()

        with pytest.raises(InvalidTransitionError) as exc_info:
            manager.record_contribution(campaign.id, 1000)
        db.rollback()

        assert exc_info.value.current_status == "flagged"
        assert campaign.status == "flagged"
        assert campaign.current_amount_cents == 0
        assert db.query(Contribution).filter(Contribution.campaign_id == campaign.id).count() == 0

    def test_concurrent_claims_cannot_overdraw(self, db, other_session, manager, creator, active_campaign):
        manager.record_contribution(active_campaign.id, 55000)
        db.commit()
        campaign = manager.get_campaign(active_campaign.id)
        assert campaign.claimed_amount_cents == 0

        CampaignLifecycleManager(other_session).claim_funds(creator.id, campaign.id, 40000)
        other_session.commit()

        with pytest.raises(InsufficientClaimableAmountError) as exc_info:
            manager.claim_funds(creator.id, campaign.id, 40000)

        assert exc_info.value.claimable_cents == 15000
        assert campaign.claimed_amount_cents == 40000
        assert campaign.claimed_amount_cents <= campaign.current_amount_cents

class TestReviewClaim:
    def test_claim_pending_campaign(self, db, manager, admin, pending_campaign):
        campaign = manager.claim_for_review(admin.id, pending_campaign.id)
        db.commit()

        assert campaign.claimed_by == admin.id
        assert campaign.claimed_at is not None
        # Reclaiming by the same reviewer is a no-op success
        manager.claim_for_review(admin.id, pending_campaign.id)

    def test_second_reviewer_is_refused(self, db, manager, admin, support, pending_campaign):
        manager.claim_for_review(admin.id, pending_campaign.id)
        db.commit()

        with pytest.raises(InvalidTransitionError):
            manager.claim_for_review(support.id, pending_campaign.id)

    def test_only_pending_campaigns(self, manager, admin, active_campaign):
        with pytest.raises(InvalidTransitionError):
            manager.claim_for_review(admin.id, active_campaign.id)


class TestContributions:
    def test_minimum_reached_moves_to_on_progress(self, db, manager, contributor, active_campaign):
        """30000 stays active; +25000 reaches the 50000 minimum"""
        campaign = manager.record_contribution(active_campaign.id, 30000, contributor.id)
        db.commit()
        assert campaign.status == "active"
        assert campaign.current_amount_cents == 30000

        campaign = manager.record_contribution(active_campaign.id, 25000, contributor.id)
        db.commit()
        assert campaign.status == "on_progress"
        assert campaign.current_amount_cents == 55000

        last = manager.get_history(campaign.id)[-1]
        assert (last.from_status, last.to_status) == ("active", "on_progress")
        assert last.actor_id is None
        assert last.reason == "minimum_amount_reached"
        assert db.query(Contribution).filter(Contribution.campaign_id == campaign.id).count() == 2

    def test_contributions_continue_while_on_progress(self, db, manager, on_progress_campaign):
        campaign = manager.record_contribution(on_progress_campaign.id, 1000)
        assert campaign.status == "on_progress"
        assert campaign.current_amount_cents == 51000

    def test_contribution_event_published(self, manager, active_campaign):
        manager.events.clear()
        manager.record_contribution(active_campaign.id, 50000)

        assert manager.events[-1]["event"] == "CAMPAIGN_STATUS_CHANGED"
        assert manager.events[-1]["from_status"] == "active"
        assert manager.events[-1]["to_status"] == "on_progress"

    def test_pending_campaign_rejects_contributions(self, manager, pending_campaign):
        with pytest.raises(InvalidTransitionError):
            manager.record_contribution(pending_campaign.id, 1000)

    def test_non_positive_amount(self, manager, active_campaign):
        with pytest.raises(InvalidAmountError):
            manager.record_contribution(active_campaign.id, 0)

    def test_staff_cannot_contribute(self, manager, admin, active_campaign):
        with pytest.raises(ForbiddenError):
            manager.record_contribution(active_campaign.id, 1000, admin.id)

    def test_unknown_campaign(self, manager):
        with pytest.raises(NotFoundError):
            manager.record_contribution(uuid.uuid4(), 1000)


class TestClaims:
    def test_claim_bounded_by_raised_funds(self, db, manager, creator, active_campaign):
        manager.record_contribution(active_campaign.id, 55000)
        db.commit()

        with pytest.raises(InsufficientClaimableAmountError) as exc_info:
            manager.claim_funds(creator.id, active_campaign.id, 60000)
        assert exc_info.value.requested_cents == 60000
        assert exc_info.value.claimable_cents == 55000

        campaign = manager.claim_funds(creator.id, active_campaign.id, 40000)
        db.commit()
        assert campaign.claimed_amount_cents == 40000

        with pytest.raises(InsufficientClaimableAmountError) as exc_info:
            manager.claim_funds(creator.id, active_campaign.id, 15001)
        assert exc_info.value.claimable_cents == 15000
        assert campaign.claimed_amount_cents <= campaign.current_amount_cents

    def test_only_creator_claims(self, manager, contributor, on_progress_campaign):
        with pytest.raises(ForbiddenError):
            manager.claim_funds(contributor.id, on_progress_campaign.id, 1000)

    def test_non_positive_claim(self, manager, creator, on_progress_campaign):
        with pytest.raises(InvalidAmountError):
            manager.claim_funds(creator.id, on_progress_campaign.id, -5)


class TestFlags:
    def test_flag_and_clear_returns_to_previous_status(self, db, manager, support, admin, on_progress_campaign):
        campaign = manager.flag(support.id, on_progress_campaign.id, "Suspicious receipts")
        db.commit()
        assert campaign.status == "flagged"
        assert campaign.flagged_from_status == "on_progress"

        campaign = manager.clear_flag(admin.id, on_progress_campaign.id)
        db.commit()
        assert campaign.status == "on_progress"

    def test_clear_flag_to_explicit_status(self, db, manager, admin, on_progress_campaign):
        manager.flag(admin.id, on_progress_campaign.id)
        campaign = manager.clear_flag(admin.id, on_progress_campaign.id, "active")
        assert campaign.status == "active"

    def test_clear_flag_rejects_other_targets(self, manager, admin, active_campaign):
        manager.flag(admin.id, active_campaign.id)
        with pytest.raises(InvalidTransitionError):
            manager.clear_flag(admin.id, active_campaign.id, "completed")

    def test_clear_flag_unknown_target(self, manager, admin, active_campaign):
        manager.flag(admin.id, active_campaign.id)
        with pytest.raises(InvalidTransitionError) as exc_info:
            manager.clear_flag(admin.id, active_campaign.id, "archived")

        assert exc_info.value.requested_status == "archived"
        assert exc_info.value.allowed == ["active", "on_progress"]
        assert active_campaign.status == "flagged"

    def test_clear_unflagged_campaign_fails(self, manager, admin, active_campaign):
        with pytest.raises(InvalidTransitionError):
            manager.clear_flag(admin.id, active_campaign.id)

    def test_uphold_flag_rejects(self, db, manager, admin, active_campaign):
        manager.flag(admin.id, active_campaign.id)
        campaign = manager.uphold_flag(admin.id, active_campaign.id, "Fraudulent beneficiary")
        db.commit()
        assert campaign.status == "rejected"
        assert campaign.rejection_reason == "Fraudulent beneficiary"

    def test_creator_cannot_flag(self, manager, creator, active_campaign):
        with pytest.raises(ForbiddenError):
            manager.flag(creator.id, active_campaign.id)

    def test_pending_campaign_cannot_be_flagged(self, manager, admin, pending_campaign):
        with pytest.raises(InvalidTransitionError):
            manager.flag(admin.id, pending_campaign.id)

    def test_flagged_campaign_does_not_auto_progress(self, db, manager, admin, active_campaign):
        manager.flag(admin.id, active_campaign.id)
        with pytest.raises(InvalidTransitionError):
            manager.record_contribution(active_campaign.id, 50000)
        assert active_campaign.status == "flagged"


class TestClosing:
    def test_creator_cancels_active_campaign(self, manager, creator, active_campaign):
        campaign = manager.cancel(creator.id, active_campaign.id)
        assert campaign.status == "cancelled"

    def test_stranger_cannot_cancel(self, manager, contributor, active_campaign):
        with pytest.raises(ForbiddenError):
            manager.cancel(contributor.id, active_campaign.id)

    def test_funded_active_campaign_cannot_cancel(self, db, manager, creator, admin, on_progress_campaign):
        manager.flag(admin.id, on_progress_campaign.id)
        manager.clear_flag(admin.id, on_progress_campaign.id, "active")
        db.commit()

        with pytest.raises(InvalidTransitionError):
            manager.cancel(creator.id, on_progress_campaign.id)
        assert on_progress_campaign.status == "active"

    def test_on_progress_cannot_cancel(self, manager, creator, on_progress_campaign):
        with pytest.raises(InvalidTransitionError):
            manager.cancel(creator.id, on_progress_campaign.id)

    def test_complete_is_final(self, db, manager, creator, admin, on_progress_campaign):
        campaign = manager.complete(creator.id, on_progress_campaign.id)
        db.commit()
        assert campaign.status == "completed"

        with pytest.raises(InvalidTransitionError) as exc_info:
            manager.complete(creator.id, on_progress_campaign.id)
        assert exc_info.value.allowed == []

        with pytest.raises(InvalidTransitionError):
            manager.flag(admin.id, on_progress_campaign.id)

    def test_active_campaign_cannot_complete(self, manager, creator, active_campaign):
        with pytest.raises(InvalidTransitionError):
            manager.complete(creator.id, active_campaign.id)

    def test_close_with_refund_is_staff_only(self, manager, creator, admin, on_progress_campaign):
        with pytest.raises(ForbiddenError):
            manager.close_with_refund(creator.id, on_progress_campaign.id)

        campaign = manager.close_with_refund(admin.id, on_progress_campaign.id, "Beneficiary unreachable")
        assert campaign.status == "closed_with_refund"

    def test_manual_start_progress(self, manager, creator, active_campaign):
        campaign = manager.start_progress(creator.id, active_campaign.id)
        assert campaign.status == "on_progress"


def test_history_is_a_valid_walk(db, manager, creator, admin, support, active_campaign):
    manager.record_contribution(active_campaign.id, 60000)
    manager.flag(support.id, active_campaign.id, "Review receipts")
    manager.clear_flag(admin.id, active_campaign.id)
    manager.complete(creator.id, active_campaign.id)
    db.commit()

    history = manager.get_history(active_campaign.id)

    assert [e.to_status for e in history] == [
        "pending",
        "active",
        "on_progress",
        "flagged",
        "on_progress",
        "completed",
    ]
    assert [e.sequence for e in history] == list(range(1, len(history) + 1))
    for previous, event in zip(history, history[1:]):
        assert event.from_status == previous.to_status
        assert lifecycle.can_transition(event.from_status, event.to_status)
