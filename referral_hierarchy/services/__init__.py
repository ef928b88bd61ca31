"""
Services.

Business logic of the referral hierarchy engine.
"""

from referral_hierarchy.services.base_service import (
    BaseService,
    log_operation,
    transaction,
)
from referral_hierarchy.services.cache import ResultCache
from referral_hierarchy.services.hierarchy import (
    ClosureMaintainer,
    HierarchyMembership,
    HierarchyQueryService,
)
from referral_hierarchy.services.referral_listing import ReferralListingService
from referral_hierarchy.services.referral_service import (
    ReferralHierarchyService,
)
from referral_hierarchy.services.user import UserService
from referral_hierarchy.services.visibility import (
    PrivacyConfigService,
    ProfileAccess,
    ViewerContext,
    VisibilityDecision,
    VisibilityPolicy,
)


__all__ = [
    "BaseService",
    "ClosureMaintainer",
    "HierarchyMembership",
    "HierarchyQueryService",
    "PrivacyConfigService",
    "ProfileAccess",
    "ReferralHierarchyService",
    "ReferralListingService",
    "ResultCache",
    "UserService",
    "ViewerContext",
    "VisibilityDecision",
    "VisibilityPolicy",
    "log_operation",
    "transaction",
]
