"""SQLAlchemy ORM models for campaigns, progress reports and credit scores"""

import uuid
from sqlalchemy import (
    Column,
    String,
    BigInteger,
    Boolean,
    DateTime,
    Integer,
    ForeignKey,
    Text,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class User(Base):
    """Platform account as seen by the core (roles and standing only)"""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(Text, nullable=True, unique=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    is_support = Column(Boolean, nullable=False, default=False)
    account_status = Column(String(20), nullable=False, default="active")
    remaining_campaign_chances = Column(Integer, nullable=False, default=2)
    is_flagged = Column(Boolean, nullable=False, default=False)
    is_suspended = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @property
    def is_staff(self) -> bool:
        return bool(self.is_admin or self.is_support)


class Campaign(Base):
    """Crowdfunding campaign with status and funds counters"""

    __tablename__ = "campaigns"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    display_id = Column(String(20), nullable=False, unique=True)
    creator_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(50), nullable=False)
    duration_days = Column(Integer, nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)

    goal_amount_cents = Column(BigInteger, nullable=False)
    minimum_amount_cents = Column(BigInteger, nullable=False)
    current_amount_cents = Column(BigInteger, nullable=False, default=0)
    claimed_amount_cents = Column(BigInteger, nullable=False, default=0)

    status = Column(String(32), nullable=False, default="pending", index=True)
    flagged_from_status = Column(String(32), nullable=True)

    claimed_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    status_events = relationship(
        "CampaignStatusEvent",
        back_populates="campaign",
        order_by="CampaignStatusEvent.sequence",
    )
    contributions = relationship("Contribution", back_populates="campaign")
    progress_reports = relationship("ProgressReport", back_populates="campaign")


class CampaignStatusEvent(Base):
    """Append-only record of every status change"""

    __tablename__ = "campaign_status_events"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    campaign_id = Column(UUID(as_uuid=True), ForeignKey("campaigns.id"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    from_status = Column(String(32), nullable=True)
    to_status = Column(String(32), nullable=False)
    actor_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    campaign = relationship("Campaign", back_populates="status_events")

    __table_args__ = (UniqueConstraint("campaign_id", "sequence", name="uq_campaign_status_sequence"),)


class Contribution(Base):
    """Confirmed payment towards a campaign"""

    __tablename__ = "contributions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    campaign_id = Column(UUID(as_uuid=True), ForeignKey("campaigns.id"), nullable=False, index=True)
    contributor_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    amount_cents = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    campaign = relationship("Campaign", back_populates="contributions")


class ProgressReport(Base):
    """Creator's account of how raised funds were used"""

    __tablename__ = "progress_reports"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    campaign_id = Column(UUID(as_uuid=True), ForeignKey("campaigns.id"), nullable=False, index=True)
    created_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    report_date = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    campaign = relationship("Campaign", back_populates="progress_reports")
    documents = relationship(
        "ProgressReportDocument",
        back_populates="report",
        order_by="ProgressReportDocument.created_at",
    )
    credit_score = relationship("UserCreditScore", back_populates="report", uselist=False)


class ProgressReportDocument(Base):
    """Proof attached to a progress report; never mutated"""

    __tablename__ = "progress_report_documents"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    display_id = Column(String(20), nullable=False, unique=True)
    progress_report_id = Column(UUID(as_uuid=True), ForeignKey("progress_reports.id"), nullable=False, index=True)
    uploaded_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    document_type = Column(String(50), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_url = Column(String(1000), nullable=False)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    report = relationship("ProgressReport", back_populates="documents")


class UserCreditScore(Base):
    """Derived documentation score, one row per progress report"""

    __tablename__ = "user_credit_scores"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    campaign_id = Column(UUID(as_uuid=True), ForeignKey("campaigns.id"), nullable=False)
    progress_report_id = Column(
        UUID(as_uuid=True), ForeignKey("progress_reports.id"), nullable=False, unique=True
    )
    score_percentage = Column(Integer, nullable=False, default=0)
    completed_document_types = Column(JSON, nullable=False, default=list)
    total_required_types = Column(Integer, nullable=False, default=8)
    catalog_version = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    report = relationship("ProgressReport", back_populates="credit_score")


class CreatorRating(Base):
    """Contributor's 1-5 star rating of a progress report"""

    __tablename__ = "creator_ratings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    rater_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    creator_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    campaign_id = Column(UUID(as_uuid=True), ForeignKey("campaigns.id"), nullable=False)
    progress_report_id = Column(UUID(as_uuid=True), ForeignKey("progress_reports.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (UniqueConstraint("rater_id", "progress_report_id", name="unique_rater_report"),)
