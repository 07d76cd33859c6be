"""Progress documentation and credit scoring"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from verifund_gateway.config import settings
from verifund_gateway.domain import lifecycle
from verifund_gateway.domain.exceptions import (
    AlreadyRatedError,
    ForbiddenError,
    InvalidCampaignDataError,
    InvalidRatingError,
    InvalidTransitionError,
    NotFoundError,
    ReportClosedError,
)
from verifund_gateway.domain.models import (
    CreditScore,
    DocumentCatalog,
    DocumentUpload,
    DEFAULT_DOCUMENT_CATALOG,
)
from verifund_gateway.domain.scoring import average_credit_score, compute_credit_score, ensure_document_type
from verifund_gateway.infrastructure.database.models import (
    Campaign,
    CreatorRating,
    ProgressReport,
    ProgressReportDocument,
    User,
    UserCreditScore,
)
from verifund_gateway.infrastructure.database.repositories import (
    CampaignRepository,
    CreditScoreRepository,
    ProgressReportRepository,
    RatingRepository,
    UserRepository,
)
from verifund_gateway.infrastructure.observability.logging import log_score_update
from verifund_gateway.infrastructure.observability.metrics import record_credit_score
from verifund_gateway.utils.identifiers import DOCUMENT_PREFIX, generate_display_id

MIN_RATING = 1
MAX_RATING = 5
MAX_DISPLAY_ID_ATTEMPTS = 10


class ProgressDocumentationService:
    """
    Progress reports, document uploads and the derived credit score.

    The score row is rewritten from a fresh read of the report's documents on
    every upload, inside the same transaction as the upload itself.
    """

    def __init__(self, db: Session, catalog: DocumentCatalog = DEFAULT_DOCUMENT_CATALOG):
        self.db = db
        self.catalog = catalog
        self.users = UserRepository(db)
        self.campaigns = CampaignRepository(db)
        self.reports = ProgressReportRepository(db)
        self.scores = CreditScoreRepository(db)
        self.ratings = RatingRepository(db)
        self.events: List[Dict[str, Any]] = []

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

    def get_report(self, report_id: uuid.UUID) -> ProgressReport:
        report = self.reports.get_report_by_id(report_id)
        if report is None:
            raise NotFoundError(f"Progress report {report_id} not found")
        return report

    def create_progress_report(
        self,
        creator_id: uuid.UUID,
        campaign_id: uuid.UUID,
        title: str,
        report_date: datetime,
        description: Optional[str] = None,
    ) -> ProgressReport:
        """Open a new report on an on_progress campaign with an empty score"""
        creator = self.get_user(creator_id)
        campaign = self.get_campaign(campaign_id)
        if campaign.creator_id != creator.id:
            raise ForbiddenError("Only the campaign creator can submit progress reports")
        if campaign.status not in {s.value for s in lifecycle.REPORT_CREATION_STATUSES}:
            raise InvalidTransitionError(
                campaign.status, "create_progress_report",
                message=f"Progress reports can only be created while on_progress (status is '{campaign.status}')",
            )

        title = (title or "").strip()
        if not 1 <= len(title) <= settings.max_report_title_length:
            raise InvalidCampaignDataError(
                f"Title must be between 1 and {settings.max_report_title_length} characters"
            )

        report = self.reports.create_report(
            campaign_id=campaign.id,
            created_by_id=creator.id,
            title=title,
            description=description,
            report_date=report_date,
        )
        self.scores.save_score(report, compute_credit_score([], self.catalog))
        return report

    def attach_document(
        self,
        actor_id: uuid.UUID,
        report_id: uuid.UUID,
        upload: DocumentUpload,
    ) -> Tuple[ProgressReportDocument, UserCreditScore]:
        """
        Attach an already-uploaded file to a report and recompute its score.

        Gating:
        - document type must be in the catalog (never coerced to 'other')
        - terminal campaigns are closed for documentation
        - otherwise the campaign must be on_progress, active or cancelled
        - actor is the report's creator or an admin
        """
        ensure_document_type(upload.document_type, self.catalog)
        report = self.get_report(report_id)
        campaign = self.get_campaign(report.campaign_id)

        if lifecycle.is_terminal(campaign.status):
            raise ReportClosedError(f"Campaign is {campaign.status}; documentation is closed")
        if campaign.status not in {s.value for s in lifecycle.DOCUMENT_UPLOAD_STATUSES}:
            raise ReportClosedError(f"Campaign is {campaign.status}; uploads are not accepted")

        actor = self.get_user(actor_id)
        if actor.id != report.created_by_id and not actor.is_admin:
            raise ForbiddenError("Only the report creator or an admin can upload documents")

        document = self.reports.add_document(
            report_id=report.id,
            uploaded_by_id=actor.id,
            display_id=self._new_document_display_id(),
            upload=upload,
        )
        return document, self._recompute_score(report)

    def verify_credit_score(self, report_id: uuid.UUID) -> CreditScore:
        """Recompute a report's score without writing it"""
        report = self.get_report(report_id)
        return compute_credit_score(self.reports.get_document_types(report.id), self.catalog)

    def get_credit_score(self, report_id: uuid.UUID) -> UserCreditScore | CreditScore:
        """Stored score of a report; computed on the fly, never written, if no row exists"""
        report = self.get_report(report_id)
        db_score = self.scores.get_score_by_report(report.id)
        if db_score is None:
            return compute_credit_score(self.reports.get_document_types(report.id), self.catalog)
        return db_score

    def get_average_credit_score(self, user_id: uuid.UUID) -> int:
        user = self.get_user(user_id)
        return average_credit_score(self.scores.get_score_percentages_by_user(user.id))

    def rate_report(
        self,
        rater_id: uuid.UUID,
        report_id: uuid.UUID,
        rating: int,
        comment: Optional[str] = None,
    ) -> CreatorRating:
        """One 1-5 rating per (rater, report); repeats fail with the existing value"""
        if not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidRatingError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
        rater = self.get_user(rater_id)
        report = self.get_report(report_id)
        if rater.id == report.created_by_id:
            raise ForbiddenError("Creators cannot rate their own progress reports")

        existing = self.ratings.get_rating(rater.id, report.id)
        if existing is not None:
            raise AlreadyRatedError(existing.rating)

        try:
            with self.db.begin_nested():
                return self.ratings.create_rating(rater.id, report, rating, comment)
        except IntegrityError:
            # A concurrent request inserted the same (rater, report) pair after the check above
            existing = self.ratings.get_rating(rater.id, report.id)
            if existing is None:
                raise
            raise AlreadyRatedError(existing.rating)

    def list_reports(self, campaign_id: uuid.UUID) -> List[ProgressReport]:
        campaign = self.get_campaign(campaign_id)
        return self.reports.get_reports_by_campaign(campaign.id)

    def list_documents(self, report_id: uuid.UUID) -> List[ProgressReportDocument]:
        report = self.get_report(report_id)
        return self.reports.get_documents(report.id)

    def list_ratings(self, report_id: uuid.UUID) -> List[CreatorRating]:
        report = self.get_report(report_id)
        return self.ratings.get_ratings_by_report(report.id)

    def _recompute_score(self, report: ProgressReport) -> UserCreditScore:
        score = compute_credit_score(self.reports.get_document_types(report.id), self.catalog)
        db_score = self.scores.save_score(report, score)

        record_credit_score(score.score_percentage)
        log_score_update(str(report.id), str(report.created_by_id), score.score_percentage, score.completed_document_types)
        self.events.append(
            {
                "event": "CREDIT_SCORE_UPDATED",
                "progress_report_id": str(report.id),
                "campaign_id": str(report.campaign_id),
                "user_id": str(report.created_by_id),
                "score_percentage": score.score_percentage,
                "completed_document_types": score.completed_document_types,
                "total_required_types": score.total_required_types,
            }
        )
        return db_score

    def _new_document_display_id(self) -> str:
        for _ in range(MAX_DISPLAY_ID_ATTEMPTS):
            display_id = generate_display_id(DOCUMENT_PREFIX)
            if not self.reports.document_display_id_exists(display_id):
                return display_id
        raise InvalidCampaignDataError("Could not allocate a unique document display id")
