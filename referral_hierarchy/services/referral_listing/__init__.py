"""
Referral listing package.

- filters: Search/status filtering and deterministic ordering
- service: Paginated, hierarchy-gated listings with caching
"""

from referral_hierarchy.services.referral_listing.filters import (
    filter_candidates,
    sort_candidates,
)
from referral_hierarchy.services.referral_listing.service import (
    ReferralListingService,
)


__all__ = [
    "ReferralListingService",
    "filter_candidates",
    "sort_candidates",
]
