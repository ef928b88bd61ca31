"""
User repository.

Data access layer for User model.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from referral_hierarchy.models.user import User
from referral_hierarchy.models.user_referral_closure import UserReferralClosure
from referral_hierarchy.repositories.base import BaseRepository


@dataclass
class ReferralCandidate:
    """A user found below a listing target, with its listing metadata."""

    user: User
    depth: int
    referrals_count: int


class UserRepository(BaseRepository[User]):
    """User repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def get_by_reference_code(
        self, reference_code: str
    ) -> User | None:
        """
        Get user by reference code.

        Args:
            reference_code: Reference code

        Returns:
            User or None
        """
        return await self.get_by(reference_code=reference_code)

    async def get_active_by_id(self, user_id: int) -> User | None:
        """
        Get user by ID, ignoring soft-deleted users.

        Args:
            user_id: User ID

        Returns:
            User or None if absent or soft-deleted
        """
        stmt = select(User).where(
            User.id == user_id, User.deleted_at.is_(None)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_current_role(self, user_id: int) -> str | None:
        """
        Read the stored role of a user straight from the database.

        Selects the column rather than the entity so a stale object in
        the session identity map is never consulted.

        Args:
            user_id: User ID

        Returns:
            Role value or None if the user is absent or soft-deleted
        """
        stmt = select(User.role).where(
            User.id == user_id, User.deleted_at.is_(None)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def reference_code_exists(self, reference_code: str) -> bool:
        """Check whether a reference code is already taken."""
        stmt = select(func.count(User.id)).where(
            User.reference_code == reference_code
        )
        result = await self.session.execute(stmt)
        return (result.scalar() or 0) > 0

    async def find_referral_candidates(
        self, target_ref: str, depths: Sequence[int]
    ) -> list[ReferralCandidate]:
        """
        Non-deleted users below target at the given closure depths.

        Bounded range scan on the closure index joined to users. Each
        candidate carries its depth relative to the target and its count
        of non-deleted direct referrals.

        Args:
            target_ref: Listing target reference code
            depths: Closure depths to include (1 = direct, 2 = indirect)

        Returns:
            List of referral candidates (unordered)
        """
        child = aliased(User)
        referrals_count = (
            select(func.count(child.id))
            .where(
                child.referrer_ref == User.reference_code,
                child.deleted_at.is_(None),
            )
            .correlate(User)
            .scalar_subquery()
        )

        stmt = (
            select(
                User,
                UserReferralClosure.depth,
                referrals_count.label("referrals_count"),
            )
            .join(
                UserReferralClosure,
                UserReferralClosure.descendant_ref == User.reference_code,
            )
            .where(
                UserReferralClosure.ancestor_ref == target_ref,
                UserReferralClosure.depth.in_(list(depths)),
                User.deleted_at.is_(None),
            )
        )

        result = await self.session.execute(stmt)
        return [
            ReferralCandidate(
                user=row[0], depth=row[1], referrals_count=row[2] or 0
            )
            for row in result.all()
        ]

    async def get_referrer_map(self) -> dict[str, str | None]:
        """
        Map every reference code to its referrer reference code.

        Loads two columns for the whole table; used by the closure
        backfill script only.

        Returns:
            Dict of reference_code -> referrer_ref
        """
        stmt = select(User.reference_code, User.referrer_ref)
        result = await self.session.execute(stmt)
        return {row[0]: row[1] for row in result.all()}
