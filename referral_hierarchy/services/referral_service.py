"""
Referral hierarchy service.

Facade over the hierarchy, visibility and listing services exposing the
operations other parts of the system call.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from referral_hierarchy.models.enums import ReferralScope
from referral_hierarchy.services.base_service import BaseService
from referral_hierarchy.services.cache.result_cache import ResultCache
from referral_hierarchy.services.hierarchy.closure_maintainer import (
    ClosureMaintainer,
)
from referral_hierarchy.services.hierarchy.query_service import (
    HierarchyMembership,
    HierarchyQueryService,
)
from referral_hierarchy.services.referral_listing.service import (
    ReferralListingService,
)
from referral_hierarchy.services.visibility.policy import (
    ProfileAccess,
    ViewerContext,
    VisibilityPolicy,
)
from referral_hierarchy.services.visibility.privacy_config import (
    PrivacyConfigService,
)
from referral_hierarchy.utils.pagination import PagedResult


class ReferralHierarchyService(BaseService):
    """
    Referral hierarchy facade.

    All components share one session and one result cache.

    Usage:
        service = ReferralHierarchyService(session, ResultCache(redis, 15))
        viewer = ViewerContext(id=1, reference_code="vn-1a2b3c4d")
        page = await service.list_referrals(target_id=1, viewer=viewer)
    """

    def __init__(
        self, session: AsyncSession, cache: ResultCache | None = None
    ) -> None:
        """
        Initialize referral hierarchy service.

        Args:
            session: Database session
            cache: Result cache, or None to run uncached
        """
        super().__init__(session)
        self.cache = cache
        self.hierarchy = HierarchyQueryService(session)
        self.closure_maintainer = ClosureMaintainer(session)
        self.privacy = PrivacyConfigService(session, cache)
        self.policy = VisibilityPolicy(
            session, hierarchy=self.hierarchy, privacy=self.privacy
        )
        self.listing = ReferralListingService(
            session, cache, hierarchy=self.hierarchy, policy=self.policy
        )

    async def get_hierarchy_membership(
        self, viewer_ref: str, target_id: int
    ) -> HierarchyMembership:
        """Whether target is within the viewer's capped downstream."""
        return await self.hierarchy.get_hierarchy_membership(
            viewer_ref, target_id
        )

    async def compute_max_visible_depth(
        self, viewer_ref: str, target_id: int
    ) -> int:
        """Levels of target's downstream still visible to the viewer."""
        return await self.hierarchy.compute_max_visible_depth(
            viewer_ref, target_id
        )

    async def list_referrals(
        self,
        target_id: int,
        viewer: ViewerContext,
        scope: ReferralScope | str = ReferralScope.ALL,
        page: int = 1,
        limit: int | None = None,
        search: str | None = None,
        status: str | None = None,
    ) -> PagedResult:
        """Paginated referrals of target as seen by viewer."""
        result = await self.listing.list_referrals(
            target_id,
            viewer,
            scope=scope,
            page=page,
            limit=limit,
            search=search,
            status=status,
        )
        # Keep configs initialised on first touch
        await self.commit()
        return result

    async def list_sub_referrals(
        self,
        parent_id: int,
        viewer: ViewerContext,
        page: int = 1,
        limit: int | None = None,
    ) -> PagedResult:
        """Direct referrals of one of the viewer's direct referrals."""
        result = await self.listing.list_sub_referrals(
            parent_id, viewer, page=page, limit=limit
        )
        await self.commit()
        return result

    async def can_view_profile(
        self, viewer: ViewerContext, target_id: int
    ) -> ProfileAccess:
        """Allowed/redacted flags for viewer looking at target."""
        access = await self.policy.can_view_profile(viewer, target_id)
        await self.commit()
        return access

    async def get_visible_profile(
        self, viewer: ViewerContext, target_id: int
    ) -> dict[str, Any]:
        """Target profile, redacted as required; NotFoundError on deny."""
        profile = await self.policy.get_visible_profile(viewer, target_id)
        await self.commit()
        return profile

    async def add_referral_edge(self, child_ref: str, referrer_ref: str) -> int:
        """Index a referral edge and commit it."""
        inserted = await self.closure_maintainer.add_referral_edge(
            child_ref, referrer_ref
        )
        await self.commit()
        return inserted
