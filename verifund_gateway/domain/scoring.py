"""Credit scoring engine - documentation completeness of progress reports"""

from typing import Iterable, List

from verifund_gateway.domain.exceptions import InvalidDocumentTypeError
from verifund_gateway.domain.models import CreditScore, DocumentCatalog, DEFAULT_DOCUMENT_CATALOG


def _round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half away from zero for non-negative inputs"""
    return (2 * numerator + denominator) // (2 * denominator)


def ensure_document_type(document_type: str, catalog: DocumentCatalog = DEFAULT_DOCUMENT_CATALOG) -> str:
    """Reject types outside the catalog instead of coercing them to 'other'"""
    if document_type not in catalog:
        raise InvalidDocumentTypeError(
            f"Unknown document type '{document_type}' (catalog {catalog.version})"
        )
    return document_type


def compute_credit_score(
    document_types: Iterable[str],
    catalog: DocumentCatalog = DEFAULT_DOCUMENT_CATALOG,
) -> CreditScore:
    """
    Score a progress report by how many distinct document types it covers.

    Requirements:
    - Only distinct types count; duplicates never inflate the score
    - Types outside the catalog are ignored
    - score = round(100 * |types present| / total required), clamped to [0, 100]

    The result depends only on the set of types, so it is idempotent and
    independent of upload order.

    Example:
        [image, image, invoice] with 8 catalog types
        → completed = [image, invoice], score = round(25.0) = 25
    """
    present = {t for t in document_types if t in catalog}
    total = catalog.total_required_types

    if total <= 0:
        score = 0
    else:
        score = _round_half_up(100 * len(present), total)

    return CreditScore(
        score_percentage=max(0, min(score, 100)),
        completed_document_types=sorted(present),
        total_required_types=total,
        catalog_version=catalog.version,
    )


def average_credit_score(score_percentages: List[int]) -> int:
    """Rounded mean of a creator's report scores, 0 when there are none"""
    if not score_percentages:
        return 0
    return _round_half_up(sum(score_percentages), len(score_percentages))
