"""
User service module.

Structure:
- core.py: User retrieval, soft deletion and role changes
- registration.py: User registration with referral support

Usage:
    from referral_hierarchy.services.user import UserService

    user_service = UserService(session, cache)
    user = await user_service.register_user("Ada", "ada@example.com", "vn-1a2b3c4d")
    await user_service.change_role(user.id, UserRole.MODERATOR)
"""

from sqlalchemy.ext.asyncio import AsyncSession

from referral_hierarchy.services.cache.result_cache import ResultCache
from referral_hierarchy.services.user.core import UserServiceCore
from referral_hierarchy.services.user.registration import (
    UserRegistrationMixin,
    generate_reference_code,
)


class UserService(UserServiceCore, UserRegistrationMixin):
    """
    Combined user service.

    Inherits from all user service mixins to provide complete functionality.
    """

    def __init__(
        self, session: AsyncSession, cache: ResultCache | None = None
    ) -> None:
        """
        Initialize user service with all mixins.

        Args:
            session: Database session
            cache: Result cache used for invalidation
        """
        UserServiceCore.__init__(self, session, cache)
        UserRegistrationMixin.__init__(self, session, cache)


__all__ = ["UserService", "generate_reference_code"]
