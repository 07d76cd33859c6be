"""Campaign lifecycle state machine and funds-accounting rules"""

from typing import Dict, FrozenSet

from verifund_gateway.domain.exceptions import (
    ForbiddenError,
    InvalidAmountError,
    InvalidCampaignDataError,
    InvalidTransitionError,
)
from verifund_gateway.domain.models import CampaignFields, CampaignStatus

S = CampaignStatus

TRANSITIONS: Dict[CampaignStatus, FrozenSet[CampaignStatus]] = {
    S.PENDING: frozenset({S.ACTIVE, S.REJECTED}),
    S.ACTIVE: frozenset({S.ON_PROGRESS, S.FLAGGED, S.CANCELLED}),
    S.ON_PROGRESS: frozenset({S.COMPLETED, S.FLAGGED, S.CLOSED_WITH_REFUND}),
    S.FLAGGED: frozenset({S.ACTIVE, S.ON_PROGRESS, S.CLOSED_WITH_REFUND, S.REJECTED}),
    S.CANCELLED: frozenset(),
    S.COMPLETED: frozenset(),
    S.REJECTED: frozenset(),
    S.CLOSED_WITH_REFUND: frozenset(),
}

TERMINAL_STATUSES = frozenset({S.COMPLETED, S.REJECTED, S.CLOSED_WITH_REFUND})

# Contributions are accepted only while the campaign is raising or spending funds
CONTRIBUTION_STATUSES = frozenset({S.ACTIVE, S.ON_PROGRESS})

REPORT_CREATION_STATUSES = frozenset({S.ON_PROGRESS})

# Uploads are accepted on more statuses than report creation
DOCUMENT_UPLOAD_STATUSES = frozenset({S.ON_PROGRESS, S.ACTIVE, S.CANCELLED})

FLAGGABLE_STATUSES = frozenset({S.ACTIVE, S.ON_PROGRESS})


def can_transition(current: CampaignStatus | str, requested: CampaignStatus | str) -> bool:
    """Check if requested is a permitted edge out of current"""
    return CampaignStatus(requested) in TRANSITIONS[CampaignStatus(current)]


def ensure_transition(current: CampaignStatus | str, requested: CampaignStatus | str) -> CampaignStatus:
    """
    Validate a status change against the edge table.

    Returns:
        The requested status as a CampaignStatus

    Raises:
        InvalidTransitionError: If the edge does not exist
    """
    current = CampaignStatus(current)
    requested = CampaignStatus(requested)
    allowed = TRANSITIONS[current]
    if requested not in allowed:
        raise InvalidTransitionError(current.value, requested.value, [s.value for s in allowed])
    return requested


def is_terminal(status: CampaignStatus | str) -> bool:
    return CampaignStatus(status) in TERMINAL_STATUSES


def validate_campaign_fields(fields: CampaignFields) -> None:
    """
    Validate creator-supplied campaign fields.

    Requirements:
    - goal > 0
    - 0 < minimum <= goal
    - duration > 0 days
    """
    if fields.goal_amount_cents <= 0:
        raise InvalidAmountError("Goal amount must be greater than zero")
    if fields.minimum_amount_cents <= 0:
        raise InvalidAmountError("Minimum amount must be greater than zero")
    if fields.minimum_amount_cents > fields.goal_amount_cents:
        raise InvalidAmountError("Minimum amount cannot exceed the goal amount")
    if fields.duration_days <= 0:
        raise InvalidCampaignDataError("Duration must be at least one day")
    if not fields.title or not fields.title.strip():
        raise InvalidCampaignDataError("Title is required")


def ensure_can_create_campaign(user) -> None:
    """
    Check that a user may submit a campaign.

    Staff accounts never create campaigns; creators must be in good standing
    and have campaign chances left.
    """
    if user.is_admin or user.is_support:
        raise ForbiddenError("Admin and support accounts cannot create campaigns")
    if user.is_flagged or user.is_suspended:
        raise ForbiddenError("Account is flagged or suspended")
    if user.account_status != "active":
        raise ForbiddenError(f"Account status '{user.account_status}' cannot create campaigns")
    if user.remaining_campaign_chances <= 0:
        raise ForbiddenError("No campaign chances remaining")


def ensure_positive_amount(amount_cents: int) -> None:
    if amount_cents <= 0:
        raise InvalidAmountError("Amount must be greater than zero")


def reaches_minimum(current_amount_cents: int, minimum_amount_cents: int) -> bool:
    """True once raised funds cover the operational minimum"""
    return current_amount_cents >= minimum_amount_cents


def claimable_amount(current_amount_cents: int, claimed_amount_cents: int) -> int:
    return max(current_amount_cents - claimed_amount_cents, 0)
