"""
Model enumerations.

Values are stored as plain strings in the database.
"""

from enum import StrEnum


class UserRole(StrEnum):
    """User role enumeration."""

    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"
    COLLABORATOR = "collaborator"


class UserStatus(StrEnum):
    """User lifecycle status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    KYC_CHANGING = "kyc_changing"
    KYC_SUBMITTED = "kyc_submitted"
    PENDING = "pending"
    PENDING_ADMIN = "pending_admin"
    PENDING_KYC = "pending_kyc"


class ReferralScope(StrEnum):
    """Which part of a target's downstream tree a listing covers."""

    DIRECT = "direct"
    INDIRECT = "indirect"
    ALL = "all"

    @property
    def depths(self) -> tuple[int, ...]:
        """Closure depths (relative to the target) covered by the scope."""
        if self is ReferralScope.DIRECT:
            return (1,)
        if self is ReferralScope.INDIRECT:
            return (2,)
        return (1, 2)
