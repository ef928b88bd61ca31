"""
Core user service functionality.

Handles user retrieval and the mutations that change what referral
listings show: soft deletion and role changes.
"""

from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from referral_hierarchy.models.enums import UserRole
from referral_hierarchy.models.user import User
from referral_hierarchy.repositories.user_repository import UserRepository
from referral_hierarchy.services.base_service import BaseService, transaction
from referral_hierarchy.services.cache.result_cache import ResultCache
from referral_hierarchy.services.hierarchy.query_service import (
    HierarchyQueryService,
)
from referral_hierarchy.utils.cache_invalidation import (
    invalidate_referral_caches,
)
from referral_hierarchy.utils.exceptions import NotFoundError


class UserServiceCore(BaseService):
    """
    Core user service.

    Provides user retrieval plus listing-relevant mutations.
    """

    def __init__(
        self, session: AsyncSession, cache: ResultCache | None = None
    ) -> None:
        """
        Initialize user service core.

        Args:
            session: Database session
            cache: Result cache used for invalidation
        """
        super().__init__(session)
        self.cache = cache
        self.user_repo = UserRepository(session)
        self.hierarchy = HierarchyQueryService(session)

    async def get_by_id(self, user_id: int) -> User | None:
        """Get non-deleted user by ID."""
        return await self.user_repo.get_active_by_id(user_id)

    async def get_by_reference_code(self, reference_code: str) -> User | None:
        """Get user by reference code."""
        return await self.user_repo.get_by_reference_code(reference_code)

    async def soft_delete_user(self, user_id: int) -> User:
        """
        Mark a user deleted.

        Closure rows stay; listings filter the user out. Cached listings
        of the user and of its ancestors are dropped.

        Args:
            user_id: User ID

        Returns:
            Updated user

        Raises:
            NotFoundError: User absent or already deleted
        """
        user = await self._mark_deleted(user_id)
        await self._invalidate_around(user.reference_code)
        return user

    async def change_role(self, user_id: int, role: UserRole | str) -> User:
        """
        Change a user's role.

        Takes effect on the user's next request, since visibility decisions
        re-read the stored role.

        Raises:
            ValueError: Unknown role
            NotFoundError: User absent or deleted
        """
        new_role = UserRole(role)
        user = await self._set_role(user_id, new_role)
        await invalidate_referral_caches(self.cache, [user.reference_code])
        return user

    @transaction
    async def _mark_deleted(self, user_id: int) -> User:
        user = await self.user_repo.get_active_by_id(user_id)
        if user is None:
            raise NotFoundError()

        user = await self.user_repo.update(
            user.id, deleted_at=datetime.now(UTC), is_active=False
        )
        self.logger.info(
            "User soft-deleted",
            extra={"user_id": user_id, "reference_code": user.reference_code},
        )
        return user

    @transaction
    async def _set_role(self, user_id: int, role: UserRole) -> User:
        user = await self.user_repo.get_active_by_id(user_id)
        if user is None:
            raise NotFoundError()

        previous = user.role
        user = await self.user_repo.update(user.id, role=role.value)
        self.logger.info(
            "User role changed",
            extra={
                "user_id": user_id,
                "old_role": previous,
                "new_role": role.value,
            },
        )
        return user

    async def _invalidate_around(self, reference_code: str) -> None:
        """Drop cached listings of a user and every ancestor within the cap."""
        ancestors = await self.hierarchy.ancestors_within_cap(reference_code)
        await invalidate_referral_caches(
            self.cache, [reference_code] + [ref for ref, _ in ancestors]
        )
