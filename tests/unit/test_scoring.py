"""Unit tests for progress report credit scoring"""

import pytest
from verifund_gateway.domain.exceptions import InvalidDocumentTypeError
from verifund_gateway.domain.models import DocumentCatalog, DEFAULT_DOCUMENT_CATALOG
from verifund_gateway.domain.scoring import (
    average_credit_score,
    compute_credit_score,
    ensure_document_type,
)

ALL_TYPES = [
    "image",
    "video_link",
    "official_receipt",
    "acknowledgement_receipt",
    "expense_summary",
    "invoice",
    "contract",
    "other",
]


def test_default_catalog_has_eight_types():
    assert DEFAULT_DOCUMENT_CATALOG.total_required_types == 8
    assert sorted(DEFAULT_DOCUMENT_CATALOG.document_types) == sorted(ALL_TYPES)


def test_no_documents_scores_zero():
    score = compute_credit_score([])

    assert score.score_percentage == 0
    assert score.completed_document_types == []
    assert score.total_required_types == 8


def test_all_catalog_types_scores_hundred():
    score = compute_credit_score(ALL_TYPES)

    assert score.score_percentage == 100
    assert score.completed_document_types == sorted(ALL_TYPES)


def test_duplicates_count_once():
    """image, image, invoice → 2 distinct of 8 = 25%"""
    score = compute_credit_score(["image", "image", "invoice"])

    assert score.completed_document_types == ["image", "invoice"]
    assert score.score_percentage == 25


def test_rounds_half_up():
    # 1/8 = 12.5% and 3/8 = 37.5%
    assert compute_credit_score(["image"]).score_percentage == 13
    assert compute_credit_score(["image", "invoice", "contract"]).score_percentage == 38
    assert compute_credit_score(ALL_TYPES[:7]).score_percentage == 88


def test_order_and_repetition_do_not_change_result():
    types = ["invoice", "image", "contract", "image"]
    first = compute_credit_score(types)
    second = compute_credit_score(list(reversed(types)))
    third = compute_credit_score(types)

    assert first == second == third


def test_new_type_never_decreases_score():
    present = []
    previous = compute_credit_score(present).score_percentage
    for document_type in ALL_TYPES:
        present.append(document_type)
        current = compute_credit_score(present).score_percentage
        assert current > previous
        # A duplicate of an existing type leaves the score unchanged
        assert compute_credit_score(present + [document_type]).score_percentage == current
        previous = current


def test_types_outside_catalog_are_ignored():
    score = compute_credit_score(["image", "selfie"])

    assert score.completed_document_types == ["image"]
    assert score.score_percentage == 13


def test_custom_catalog_changes_denominator():
    catalog = DocumentCatalog(version="test.1", document_types=("image", "invoice"))
    score = compute_credit_score(["image", "contract"], catalog)

    assert score.total_required_types == 2
    assert score.score_percentage == 50
    assert score.catalog_version == "test.1"


def test_ensure_document_type_rejects_unknown_type():
    assert ensure_document_type("invoice") == "invoice"
    with pytest.raises(InvalidDocumentTypeError):
        ensure_document_type("receipt_photo")


def test_average_credit_score():
    assert average_credit_score([]) == 0
    assert average_credit_score([25, 50]) == 38  # 37.5 rounds up
    assert average_credit_score([100, 100, 75]) == 92
