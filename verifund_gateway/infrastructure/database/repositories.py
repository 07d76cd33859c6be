"""Data access layer for VeriFund entities"""

import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from verifund_gateway.infrastructure.database.models import (
    Campaign,
    CampaignStatusEvent,
    Contribution,
    CreatorRating,
    ProgressReport,
    ProgressReportDocument,
    User,
    UserCreditScore,
)
from verifund_gateway.domain.models import CampaignFields, CreditScore, DocumentUpload


class UserRepository:
    """Repository for platform users"""

    def __init__(self, db: Session):
        self.db = db

    def create_user(self, email: str | None = None, **attributes: Any) -> User:
        db_user = User(email=email, **attributes)
        self.db.add(db_user)
        self.db.flush()
        return db_user

    def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()


class CampaignRepository:
    """Repository for campaigns, their status history and contributions"""

    def __init__(self, db: Session):
        self.db = db

    def create_campaign(
        self,
        creator_id: uuid.UUID,
        fields: CampaignFields,
        display_id: str,
        end_date: datetime,
    ) -> Campaign:
        """Persist a new campaign in pending state"""
        db_campaign = Campaign(
            display_id=display_id,
            creator_id=creator_id,
            title=fields.title,
            description=fields.description,
            category=fields.category,
            duration_days=fields.duration_days,
            end_date=end_date,
            goal_amount_cents=fields.goal_amount_cents,
            minimum_amount_cents=fields.minimum_amount_cents,
            current_amount_cents=0,
            claimed_amount_cents=0,
            status="pending",
        )
        self.db.add(db_campaign)
        self.db.flush()  # Get ID without committing
        return db_campaign

    def get_campaign_by_id(self, campaign_id: uuid.UUID) -> Optional[Campaign]:
        return self.db.query(Campaign).filter(Campaign.id == campaign_id).first()

    def display_id_exists(self, display_id: str) -> bool:
        return (
            self.db.query(Campaign.id).filter(Campaign.display_id == display_id).first()
            is not None
        )

    def compare_and_set_status(
        self,
        campaign: Campaign,
        expected_status: str,
        new_status: str,
        values: Dict[str, Any] | None = None,
    ) -> bool:
        """
        Move a campaign to new_status only if it still holds expected_status.

        Returns False when another writer changed the status first.
        """
        updates = {Campaign.status: new_status}
        for key, value in (values or {}).items():
            updates[getattr(Campaign, key)] = value

        rowcount = (
            self.db.query(Campaign)
            .filter(Campaign.id == campaign.id, Campaign.status == expected_status)
            .update(updates, synchronize_session=False)
        )
        self.db.refresh(campaign)
        return rowcount == 1

    def claim_for_review(self, campaign: Campaign, admin_id: uuid.UUID, claimed_at: datetime) -> bool:
        """Claim a pending campaign for review unless another admin holds it"""
        rowcount = (
            self.db.query(Campaign)
            .filter(
                Campaign.id == campaign.id,
                Campaign.status == "pending",
                (Campaign.claimed_by.is_(None)) | (Campaign.claimed_by == admin_id),
            )
            .update(
                {Campaign.claimed_by: admin_id, Campaign.claimed_at: claimed_at},
                synchronize_session=False,
            )
        )
        self.db.refresh(campaign)
        return rowcount == 1

    def increment_current_amount(
        self,
        campaign: Campaign,
        amount_cents: int,
        accepted_statuses: Iterable[str],
    ) -> bool:
        """
        Atomic SQL-side increment of raised funds.

        Returns False when the row left accepted_statuses after it was read.
        """
        rowcount = (
            self.db.query(Campaign)
            .filter(Campaign.id == campaign.id, Campaign.status.in_(list(accepted_statuses)))
            .update(
                {Campaign.current_amount_cents: Campaign.current_amount_cents + amount_cents},
                synchronize_session=False,
            )
        )
        self.db.refresh(campaign)
        return rowcount == 1

    def increment_claimed_amount(self, campaign: Campaign, amount_cents: int) -> bool:
        """Atomic claim guarded by claimed + amount <= current"""
        rowcount = (
            self.db.query(Campaign)
            .filter(
                Campaign.id == campaign.id,
                Campaign.claimed_amount_cents + amount_cents <= Campaign.current_amount_cents,
            )
            .update(
                {Campaign.claimed_amount_cents: Campaign.claimed_amount_cents + amount_cents},
                synchronize_session=False,
            )
        )
        self.db.refresh(campaign)
        return rowcount == 1

    def add_status_event(
        self,
        campaign_id: uuid.UUID,
        from_status: str | None,
        to_status: str,
        actor_id: uuid.UUID | None = None,
        reason: str | None = None,
    ) -> CampaignStatusEvent:
        """Append a status change to the campaign's history"""
        last_sequence = (
            self.db.query(func.max(CampaignStatusEvent.sequence))
            .filter(CampaignStatusEvent.campaign_id == campaign_id)
            .scalar()
        )
        db_event = CampaignStatusEvent(
            campaign_id=campaign_id,
            sequence=(last_sequence or 0) + 1,
            from_status=from_status,
            to_status=to_status,
            actor_id=actor_id,
            reason=reason,
        )
        self.db.add(db_event)
        self.db.flush()
        return db_event

    def get_status_events(self, campaign_id: uuid.UUID) -> List[CampaignStatusEvent]:
        return (
            self.db.query(CampaignStatusEvent)
            .filter(CampaignStatusEvent.campaign_id == campaign_id)
            .order_by(CampaignStatusEvent.sequence.asc())
            .all()
        )

    def add_contribution(
        self,
        campaign_id: uuid.UUID,
        amount_cents: int,
        contributor_id: uuid.UUID | None = None,
    ) -> Contribution:
        db_contribution = Contribution(
            campaign_id=campaign_id,
            contributor_id=contributor_id,
            amount_cents=amount_cents,
        )
        self.db.add(db_contribution)
        self.db.flush()
        return db_contribution


class ProgressReportRepository:
    """Repository for progress reports and their documents"""

    def __init__(self, db: Session):
        self.db = db

    def create_report(
        self,
        campaign_id: uuid.UUID,
        created_by_id: uuid.UUID,
        title: str,
        description: str | None,
        report_date: datetime,
    ) -> ProgressReport:
        db_report = ProgressReport(
            campaign_id=campaign_id,
            created_by_id=created_by_id,
            title=title,
            description=description,
            report_date=report_date,
        )
        self.db.add(db_report)
        self.db.flush()
        return db_report

    def get_report_by_id(self, report_id: uuid.UUID) -> Optional[ProgressReport]:
        return self.db.query(ProgressReport).filter(ProgressReport.id == report_id).first()

    def get_reports_by_campaign(self, campaign_id: uuid.UUID) -> List[ProgressReport]:
        """Reports for a campaign, newest report date first"""
        return (
            self.db.query(ProgressReport)
            .filter(ProgressReport.campaign_id == campaign_id)
            .order_by(ProgressReport.report_date.desc())
            .all()
        )

    def add_document(
        self,
        report_id: uuid.UUID,
        uploaded_by_id: uuid.UUID,
        display_id: str,
        upload: DocumentUpload,
    ) -> ProgressReportDocument:
        db_document = ProgressReportDocument(
            progress_report_id=report_id,
            uploaded_by_id=uploaded_by_id,
            display_id=display_id,
            document_type=upload.document_type,
            file_name=upload.file_name,
            file_url=upload.file_url,
            file_size=upload.file_size,
            mime_type=upload.mime_type,
            description=upload.description,
        )
        self.db.add(db_document)
        self.db.flush()
        return db_document

    def get_documents(self, report_id: uuid.UUID) -> List[ProgressReportDocument]:
        return (
            self.db.query(ProgressReportDocument)
            .filter(ProgressReportDocument.progress_report_id == report_id)
            .order_by(ProgressReportDocument.created_at.asc())
            .all()
        )

    def get_document_types(self, report_id: uuid.UUID) -> List[str]:
        """Fresh read of every document type attached to a report"""
        rows = (
            self.db.query(ProgressReportDocument.document_type)
            .filter(ProgressReportDocument.progress_report_id == report_id)
            .all()
        )
        return [row.document_type for row in rows]

    def document_display_id_exists(self, display_id: str) -> bool:
        return (
            self.db.query(ProgressReportDocument.id)
            .filter(ProgressReportDocument.display_id == display_id)
            .first()
            is not None
        )


class CreditScoreRepository:
    """Repository for derived progress report credit scores"""

    def __init__(self, db: Session):
        self.db = db

    def get_score_by_report(self, report_id: uuid.UUID) -> Optional[UserCreditScore]:
        return (
            self.db.query(UserCreditScore)
            .filter(UserCreditScore.progress_report_id == report_id)
            .first()
        )

    def save_score(self, report: ProgressReport, score: CreditScore) -> UserCreditScore:
        """Insert or overwrite the score row for a report"""
        db_score = self.get_score_by_report(report.id)
        if db_score is None:
            db_score = UserCreditScore(
                user_id=report.created_by_id,
                campaign_id=report.campaign_id,
                progress_report_id=report.id,
            )
            self.db.add(db_score)

        db_score.score_percentage = score.score_percentage
        db_score.completed_document_types = list(score.completed_document_types)
        db_score.total_required_types = score.total_required_types
        db_score.catalog_version = score.catalog_version
        self.db.flush()
        return db_score

    def get_score_percentages_by_user(self, user_id: uuid.UUID) -> List[int]:
        rows = (
            self.db.query(UserCreditScore.score_percentage)
            .filter(UserCreditScore.user_id == user_id)
            .all()
        )
        return [row.score_percentage for row in rows]


class RatingRepository:
    """Repository for creator ratings on progress reports"""

    def __init__(self, db: Session):
        self.db = db

    def get_rating(self, rater_id: uuid.UUID, report_id: uuid.UUID) -> Optional[CreatorRating]:
        return (
            self.db.query(CreatorRating)
            .filter(
                CreatorRating.rater_id == rater_id,
                CreatorRating.progress_report_id == report_id,
            )
            .first()
        )

    def create_rating(
        self,
        rater_id: uuid.UUID,
        report: ProgressReport,
        rating: int,
        comment: str | None,
    ) -> CreatorRating:
        db_rating = CreatorRating(
            rater_id=rater_id,
            creator_id=report.created_by_id,
            campaign_id=report.campaign_id,
            progress_report_id=report.id,
            rating=rating,
            comment=comment,
        )
        self.db.add(db_rating)
        self.db.flush()
        return db_rating

    def get_ratings_by_report(self, report_id: uuid.UUID) -> List[CreatorRating]:
        return (
            self.db.query(CreatorRating)
            .filter(CreatorRating.progress_report_id == report_id)
            .order_by(CreatorRating.created_at.desc())
            .all()
        )
