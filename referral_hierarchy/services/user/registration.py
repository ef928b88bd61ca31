"""
User registration functionality.

Creates users and attaches them to their referrer. The user row and its
closure rows are written in one transaction.
"""

import secrets
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from referral_hierarchy.config.settings import settings
from referral_hierarchy.models.user import User
from referral_hierarchy.repositories.user_repository import UserRepository
from referral_hierarchy.services.base_service import BaseService, transaction
from referral_hierarchy.services.cache.result_cache import ResultCache
from referral_hierarchy.services.hierarchy.closure_maintainer import (
    ClosureMaintainer,
)
from referral_hierarchy.services.hierarchy.query_service import (
    HierarchyQueryService,
)
from referral_hierarchy.utils.cache_invalidation import (
    invalidate_referral_caches,
)
from referral_hierarchy.utils.exceptions import InvalidEdgeError


def generate_reference_code(prefix: str | None = None) -> str:
    """Random human-readable reference code, e.g. vn-3f9a1c2b."""
    return f"{prefix or settings.reference_code_prefix}-{secrets.token_hex(4)}"


class UserRegistrationMixin(BaseService):
    """
    Mixin for user registration functionality.

    Handles new user registration with referral support.
    """

    def __init__(
        self, session: AsyncSession, cache: ResultCache | None = None
    ) -> None:
        """Initialize user registration mixin."""
        super().__init__(session)
        self.cache = cache
        self.user_repo = UserRepository(session)
        self.closure_maintainer = ClosureMaintainer(session)
        self.hierarchy = HierarchyQueryService(session)

    async def register_user(
        self,
        full_name: str,
        email: str,
        referrer_code: str | None = None,
        **profile: Any,
    ) -> User:
        """
        Register new user with referral support.

        Args:
            full_name: Display name
            email: Unique email address
            referrer_code: Reference code of the referrer (optional)
            **profile: Extra profile columns (phone_number, country, ...)

        Returns:
            Created user

        Raises:
            ValueError: Email already registered
            InvalidEdgeError: Referrer not found; nothing is persisted
        """
        user, ancestors = await self._create_with_referral(
            full_name, email, referrer_code, profile
        )

        # Ancestors now list one more user
        if ancestors:
            await invalidate_referral_caches(self.cache, ancestors)

        logger.info(
            "User registered",
            extra={
                "user_id": user.id,
                "reference_code": user.reference_code,
                "has_referrer": user.referrer_ref is not None,
            },
        )
        return user

    @transaction
    async def _create_with_referral(
        self,
        full_name: str,
        email: str,
        referrer_code: str | None,
        profile: dict[str, Any],
    ) -> tuple[User, list[str]]:
        existing = await self.user_repo.get_by(email=email)
        if existing:
            raise ValueError("User already registered")

        referrer = None
        if referrer_code:
            referrer = await self.user_repo.get_by_reference_code(
                referrer_code
            )
            if referrer is None or referrer.is_deleted:
                raise InvalidEdgeError("Referrer not found")

        # Generate unique reference code
        while True:
            reference_code = generate_reference_code()
            if not await self.user_repo.reference_code_exists(reference_code):
                break

        user = await self.user_repo.create(
            full_name=full_name,
            email=email,
            reference_code=reference_code,
            referrer_ref=referrer.reference_code if referrer else None,
            **profile,
        )

        if referrer is None:
            return user, []

        await self.closure_maintainer.add_referral_edge(
            user.reference_code, referrer.reference_code
        )
        ancestors = await self.hierarchy.ancestors_within_cap(
            user.reference_code
        )
        return user, [ref for ref, _ in ancestors]
