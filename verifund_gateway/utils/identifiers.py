"""Human-readable display identifiers (CAM-123456, DOC-123456)"""

import secrets

CAMPAIGN_PREFIX = "CAM"
DOCUMENT_PREFIX = "DOC"


def generate_display_id(prefix: str) -> str:
    """Prefix plus a random 6-digit number, e.g. CAM-402913"""
    return f"{prefix}-{100000 + secrets.randbelow(900000)}"
