"""
Record serialisation and redaction.

Structural fields are always emitted; contact fields are nulled when the
policy decides the viewer only gets a redacted view.
"""

from datetime import date, datetime
from typing import Any

from referral_hierarchy.config.constants import CONTACT_FIELDS
from referral_hierarchy.models.user import User
from referral_hierarchy.repositories.user_repository import ReferralCandidate


STRUCTURAL_FIELDS = (
    "id",
    "reference_code",
    "referrer_ref",
    "full_name",
    "avatar_url",
    "cover_url",
    "status",
    "is_active",
    "verification_date",
    "created_at",
)


def _plain(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def redact(record: dict[str, Any]) -> dict[str, Any]:
    """Copy of record with every contact field set to None."""
    redacted = dict(record)
    for field_name in CONTACT_FIELDS:
        redacted[field_name] = None
    return redacted


def serialize_profile(user: User, redacted: bool = False) -> dict[str, Any]:
    """
    Serialise a user into a JSON-ready dict.

    Args:
        user: User entity
        redacted: Null the contact fields

    Returns:
        Dict of structural and contact fields
    """
    record = {
        name: _plain(getattr(user, name))
        for name in STRUCTURAL_FIELDS + CONTACT_FIELDS
    }
    return redact(record) if redacted else record


def serialize_referral(
    candidate: ReferralCandidate, redacted: bool = False
) -> dict[str, Any]:
    """Serialise a listing candidate, adding depth and referral count."""
    record = serialize_profile(candidate.user, redacted=redacted)
    record["depth"] = candidate.depth
    record["referrals_count"] = candidate.referrals_count
    return record
