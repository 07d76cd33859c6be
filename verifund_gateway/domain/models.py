"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class CampaignStatus(str, Enum):
    """Campaign lifecycle states"""

    PENDING = "pending"
    ACTIVE = "active"
    ON_PROGRESS = "on_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    FLAGGED = "flagged"
    CLOSED_WITH_REFUND = "closed_with_refund"


class DocumentType(str, Enum):
    """Kinds of proof a creator can attach to a progress report"""

    IMAGE = "image"
    VIDEO_LINK = "video_link"
    OFFICIAL_RECEIPT = "official_receipt"
    ACKNOWLEDGEMENT_RECEIPT = "acknowledgement_receipt"
    EXPENSE_SUMMARY = "expense_summary"
    INVOICE = "invoice"
    CONTRACT = "contract"
    OTHER = "other"


@dataclass(frozen=True)
class DocumentCatalog:
    """Versioned set of document types used as the scoring denominator"""

    version: str
    document_types: tuple[str, ...]

    @property
    def total_required_types(self) -> int:
        return len(self.document_types)

    def __contains__(self, document_type: object) -> bool:
        return document_type in self.document_types


DEFAULT_DOCUMENT_CATALOG = DocumentCatalog(
    version="2024.1",
    document_types=tuple(t.value for t in DocumentType),
)


@dataclass
class CampaignFields:
    """Creator-supplied fields for a new campaign"""

    title: str
    description: str
    category: str
    goal_amount_cents: int
    minimum_amount_cents: int
    duration_days: int


@dataclass
class CreditScore:
    """Result of scoring a progress report's documentation"""

    score_percentage: int
    completed_document_types: List[str]
    total_required_types: int
    catalog_version: str = DEFAULT_DOCUMENT_CATALOG.version


@dataclass
class StatusChange:
    """A committed campaign transition, published to the notification collaborator"""

    campaign_id: str
    from_status: str
    to_status: str
    actor_id: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class DocumentUpload:
    """Already-stored file reference attached to a progress report"""

    document_type: str
    file_name: str
    file_url: str
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    description: Optional[str] = None
