"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from verifund_gateway.domain.models import DocumentType


class CampaignCreateRequest(BaseModel):
    """Request body for POST /v1/campaigns"""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    category: str = Field(..., min_length=1, max_length=50)
    goal_amount_cents: int = Field(..., description="Fundraising target in cents")
    minimum_amount_cents: int = Field(..., description="Operational minimum in cents")
    duration_days: int = Field(..., description="Campaign duration in days")


class CampaignResponse(BaseModel):
    """Campaign state as exposed to admin and contributor UIs"""

    id: str
    display_id: str
    creator_id: str
    title: str
    description: str
    category: str
    status: str
    goal_amount_cents: int
    minimum_amount_cents: int
    current_amount_cents: int
    claimed_amount_cents: int
    duration_days: int
    end_date: Optional[datetime] = None
    claimed_by: Optional[str] = None
    claimed_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    flagged_from_status: Optional[str] = None

    @classmethod
    def from_campaign(cls, campaign) -> "CampaignResponse":
        def _id(value):
            return str(value) if value is not None else None

        return cls(
            id=str(campaign.id),
            display_id=campaign.display_id,
            creator_id=str(campaign.creator_id),
            title=campaign.title,
            description=campaign.description,
            category=campaign.category,
            status=campaign.status,
            goal_amount_cents=campaign.goal_amount_cents,
            minimum_amount_cents=campaign.minimum_amount_cents,
            current_amount_cents=campaign.current_amount_cents,
            claimed_amount_cents=campaign.claimed_amount_cents,
            duration_days=campaign.duration_days,
            end_date=campaign.end_date,
            claimed_by=_id(campaign.claimed_by),
            claimed_at=campaign.claimed_at,
            approved_by=_id(campaign.approved_by),
            approved_at=campaign.approved_at,
            rejected_by=_id(campaign.rejected_by),
            rejected_at=campaign.rejected_at,
            rejection_reason=campaign.rejection_reason,
            flagged_from_status=campaign.flagged_from_status,
        )


class StatusEventSchema(BaseModel):
    """Single entry of a campaign's status history"""

    sequence: int
    from_status: Optional[str] = None
    to_status: str
    actor_id: Optional[str] = None
    reason: Optional[str] = None
    created_at: str


class CampaignHistoryResponse(BaseModel):
    """Response for GET /v1/campaigns/{campaign_id}/history"""

    campaign_id: str
    events: List[StatusEventSchema]


class ReasonRequest(BaseModel):
    """Body for reject / uphold-flag"""

    reason: str = Field(..., description="Shown to the creator")


class OptionalReasonRequest(BaseModel):
    """Body for flag / close-with-refund"""

    reason: Optional[str] = None


class ClearFlagRequest(BaseModel):
    """Body for POST /v1/campaigns/{campaign_id}/clear-flag"""

    next_status: Optional[Literal["active", "on_progress"]] = None


class ContributionRequest(BaseModel):
    """Confirmed payment reported by the payment collaborator"""

    amount_cents: int = Field(..., description="Confirmed amount in cents")
    contributor_id: Optional[uuid.UUID] = None


class ClaimFundsRequest(BaseModel):
    """Request body for POST /v1/campaigns/{campaign_id}/claims"""

    amount_cents: int


class ProgressReportCreateRequest(BaseModel):
    """Request body for POST /v1/campaigns/{campaign_id}/progress-reports"""

    title: str
    description: Optional[str] = None
    report_date: datetime


class CreditScoreSchema(BaseModel):
    """Documentation completeness of one progress report"""

    score_percentage: int
    completed_document_types: List[str]
    total_required_types: int
    catalog_version: str


class ProgressReportResponse(BaseModel):
    """Progress report with its current credit score"""

    id: str
    campaign_id: str
    created_by_id: str
    title: str
    description: Optional[str] = None
    report_date: datetime
    credit_score: Optional[CreditScoreSchema] = None


class DocumentCreateRequest(BaseModel):
    """Reference to a file already stored by the upload collaborator"""

    document_type: str = Field(..., description=f"One of: {', '.join(t.value for t in DocumentType)}")
    file_name: str = Field(..., min_length=1, max_length=255)
    file_url: str = Field(..., min_length=1, max_length=1000)
    file_size: Optional[int] = Field(None, ge=0)
    mime_type: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None


class DocumentResponse(BaseModel):
    """Single progress report document"""

    id: str
    display_id: str
    progress_report_id: str
    document_type: str
    file_name: str
    file_url: str
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    description: Optional[str] = None


class DocumentUploadResponse(BaseModel):
    """Response for POST /v1/progress-reports/{report_id}/documents"""

    document: DocumentResponse
    credit_score: CreditScoreSchema


class RatingRequest(BaseModel):
    """Request body for POST /v1/progress-reports/{report_id}/ratings"""

    rating: int
    comment: Optional[str] = None


class RatingResponse(BaseModel):
    """Single creator rating"""

    id: str
    rater_id: str
    progress_report_id: str
    rating: int
    comment: Optional[str] = None


class UserCreditScoreResponse(BaseModel):
    """Response for GET /v1/users/{user_id}/credit-score"""

    user_id: str
    average_score_percentage: int
