"""
Referral listing service.

Paginated, searchable, deterministically ordered listings of the users
below a target, gated by the viewer's own capped hierarchy.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from referral_hierarchy.config.constants import DIRECT_DEPTH
from referral_hierarchy.config.settings import settings
from referral_hierarchy.models.enums import ReferralScope, UserRole
from referral_hierarchy.repositories.user_repository import (
    ReferralCandidate,
    UserRepository,
)
from referral_hierarchy.services.base_service import BaseService, log_operation
from referral_hierarchy.services.cache.result_cache import ResultCache
from referral_hierarchy.services.hierarchy.query_service import (
    HierarchyQueryService,
)
from referral_hierarchy.services.referral_listing.filters import (
    filter_candidates,
    normalize_search,
    normalize_status,
    sort_candidates,
)
from referral_hierarchy.services.visibility.policy import (
    ViewerContext,
    VisibilityDecision,
    VisibilityPolicy,
)
from referral_hierarchy.services.visibility.redaction import serialize_referral
from referral_hierarchy.utils.exceptions import NotFoundError
from referral_hierarchy.utils.pagination import (
    PagedResult,
    normalize_pagination,
    slice_page,
)


class ReferralListingService(BaseService):
    """Builds referral listings on top of the hierarchy and policy services."""

    def __init__(
        self,
        session: AsyncSession,
        cache: ResultCache | None = None,
        hierarchy: HierarchyQueryService | None = None,
        policy: VisibilityPolicy | None = None,
    ) -> None:
        """
        Initialize referral listing service.

        Args:
            session: Database session
            cache: Result cache, or None to always compute
            hierarchy: Hierarchy query service (created if omitted)
            policy: Visibility policy (created if omitted)
        """
        super().__init__(session)
        self.cache = cache
        self.user_repo = UserRepository(session)
        self.hierarchy = hierarchy or HierarchyQueryService(session)
        self.policy = policy or VisibilityPolicy(
            session, hierarchy=self.hierarchy
        )

    @log_operation
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
        """
        List referrals of a target as seen by a viewer.

        Args:
            target_id: Target user ID
            viewer: Caller identity
            scope: direct, indirect or all
            page: 1-indexed page number
            limit: Page size (settings default when omitted, clamped)
            search: Case-insensitive substring over name/email/phone/code
            status: Exact user status filter

        Returns:
            PagedResult; empty when the target is outside the viewer's
            hierarchy

        Raises:
            NotFoundError: Target absent or soft-deleted
            ValueError: Invalid scope, status, page or limit
        """
        scope = ReferralScope(scope)
        page, limit = normalize_pagination(
            page,
            settings.default_page_size if limit is None else limit,
            settings.max_page_size,
        )
        search = normalize_search(search)
        status = normalize_status(status)

        target = await self.user_repo.get_active_by_id(target_id)
        if target is None:
            raise NotFoundError()

        role = await self.policy.resolve_role(viewer)
        cache_key = ResultCache.listing_key(
            target.reference_code,
            viewer.reference_code,
            scope.value,
            page,
            limit,
            role,
            search,
            status,
        )
        cached = await self._get_cached(cache_key)
        if cached is not None:
            return cached

        allowed: set[str] | None = None
        if role != UserRole.ADMIN:
            allowed = await self.hierarchy.visible_references(
                viewer.reference_code
            )
            if target.reference_code not in allowed:
                self.logger.debug(
                    "Listing target outside viewer hierarchy",
                    extra={"viewer_id": viewer.id, "target_id": target_id},
                )
                result = PagedResult.empty(page, limit)
                await self._store(cache_key, result)
                return result

        candidates = await self.user_repo.find_referral_candidates(
            target.reference_code, scope.depths
        )
        filtered = filter_candidates(candidates, search, status)
        if allowed is not None:
            filtered = [
                c for c in filtered if c.user.reference_code in allowed
            ]

        ordered = sort_candidates(filtered)
        data = await self._render(
            viewer, role, slice_page(ordered, page, limit), allowed
        )

        result = PagedResult.build(data, len(ordered), page, limit)
        await self._store(cache_key, result)
        return result

    @log_operation
    async def list_sub_referrals(
        self,
        parent_id: int,
        viewer: ViewerContext,
        page: int = 1,
        limit: int | None = None,
    ) -> PagedResult:
        """
        Direct referrals of one of the viewer's own direct referrals.

        Non-admin viewers only get rows when the parent sits exactly one
        level below them; anything else is an empty page.

        Raises:
            NotFoundError: Parent absent or soft-deleted
            ValueError: Invalid page or limit
        """
        page, limit = normalize_pagination(
            page,
            settings.sub_listing_page_size if limit is None else limit,
            settings.max_page_size,
        )

        parent = await self.user_repo.get_active_by_id(parent_id)
        if parent is None:
            raise NotFoundError()

        role = await self.policy.resolve_role(viewer)
        cache_key = ResultCache.sub_listing_key(
            parent.reference_code, viewer.reference_code, page, limit, role
        )
        cached = await self._get_cached(cache_key)
        if cached is not None:
            return cached

        allowed: set[str] | None = None
        if role != UserRole.ADMIN:
            depth = await self.hierarchy.is_ancestor_within_cap(
                viewer.reference_code, parent.reference_code
            )
            if depth != DIRECT_DEPTH:
                result = PagedResult.empty(page, limit)
                await self._store(cache_key, result)
                return result
            allowed = await self.hierarchy.visible_references(
                viewer.reference_code
            )

        candidates = await self.user_repo.find_referral_candidates(
            parent.reference_code, (DIRECT_DEPTH,)
        )
        if allowed is not None:
            candidates = [
                c for c in candidates if c.user.reference_code in allowed
            ]

        ordered = sort_candidates(candidates)
        data = await self._render(
            viewer, role, slice_page(ordered, page, limit), allowed
        )

        result = PagedResult.build(data, len(ordered), page, limit)
        await self._store(cache_key, result)
        return result

    async def _render(
        self,
        viewer: ViewerContext,
        role: str,
        candidates: list[ReferralCandidate],
        allowed: set[str] | None,
    ) -> list[dict[str, Any]]:
        """Run each record of a page through the policy and serialise it."""
        if not candidates:
            return []

        configs = {}
        if role != UserRole.ADMIN:
            configs = await self.policy.privacy.ensure_configs(
                [c.user.id for c in candidates]
            )

        records = []
        for candidate in candidates:
            decision = await self.policy.evaluate(
                viewer,
                candidate.user,
                role=role,
                in_hierarchy=(
                    allowed is None
                    or candidate.user.reference_code in allowed
                ),
                config=configs.get(candidate.user.id),
            )
            records.append(
                serialize_referral(
                    candidate,
                    redacted=decision is not VisibilityDecision.ALLOW_FULL,
                )
            )
        return records

    async def _get_cached(self, key: str) -> PagedResult | None:
        if self.cache is None:
            return None
        payload = await self.cache.get_json(key)
        if payload is None:
            return None
        self.logger.debug(f"Listing cache hit: {key}")
        return PagedResult.from_dict(payload)

    async def _store(self, key: str, result: PagedResult) -> None:
        if self.cache is not None:
            await self.cache.set_json(key, result.to_dict())
