"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    code = "domain_error"


class InvalidTransitionError(DomainException):
    """Requested status change is not an edge of the campaign state machine"""

    code = "invalid_transition"

    def __init__(
        self,
        current_status: str,
        requested_status: str,
        allowed: list[str] | None = None,
        message: str | None = None,
    ):
        self.current_status = current_status
        self.requested_status = requested_status
        self.allowed = sorted(allowed or [])
        allowed_text = ", ".join(self.allowed) if self.allowed else "none"
        super().__init__(
            message
            or f"Cannot move campaign from '{current_status}' to '{requested_status}' "
            f"(allowed from '{current_status}': {allowed_text})"
        )


class InvalidAmountError(DomainException):
    """Amount is not positive or breaks goal/minimum ordering"""

    code = "invalid_amount"


class InsufficientClaimableAmountError(DomainException):
    """Claim exceeds the raised-but-unclaimed balance"""

    code = "insufficient_claimable_amount"

    def __init__(self, requested_cents: int, claimable_cents: int):
        self.requested_cents = requested_cents
        self.claimable_cents = claimable_cents
        super().__init__(
            f"Requested {requested_cents} but only {claimable_cents} is claimable"
        )


class ForbiddenError(DomainException):
    """Actor is not allowed to perform the operation"""

    code = "forbidden"


class NotFoundError(DomainException):
    """Referenced campaign, report or user does not exist"""

    code = "not_found"


class InvalidDocumentTypeError(DomainException):
    """Document type is outside the document catalog"""

    code = "invalid_document_type"


class ReportClosedError(DomainException):
    """Campaign no longer accepts progress documentation"""

    code = "report_closed"


class AlreadyRatedError(DomainException):
    """Rater already rated this progress report"""

    code = "already_rated"

    def __init__(self, existing_rating: int):
        self.existing_rating = existing_rating
        super().__init__(f"Progress report already rated ({existing_rating}/5)")


class InvalidCampaignDataError(DomainException):
    """Campaign or report fields fail validation"""

    code = "invalid_data"


class InvalidRatingError(DomainException):
    """Rating outside the 1-5 range"""

    code = "invalid_rating"


class NotificationDeliveryError(DomainException):
    """Notification webhook could not be delivered"""

    code = "notification_delivery_failed"
