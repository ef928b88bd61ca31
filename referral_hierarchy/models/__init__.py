"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from referral_hierarchy.models.base import Base
from referral_hierarchy.models.enums import (
    ReferralScope,
    UserRole,
    UserStatus,
)

# Core Models
from referral_hierarchy.models.user import User
from referral_hierarchy.models.user_config import UserConfig
from referral_hierarchy.models.user_referral_closure import (
    UserReferralClosure,
)

__all__ = [
    # Base
    "Base",
    # Enums
    "ReferralScope",
    "UserRole",
    "UserStatus",
    # Core Models
    "User",
    "UserConfig",
    "UserReferralClosure",
]
