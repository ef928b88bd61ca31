"""
Closure repository.

Data access layer for the referral closure index. Every read is a point
lookup or a range scan on (ancestor_ref, depth) / descendant_ref.
"""

from collections.abc import Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from referral_hierarchy.models.user_referral_closure import UserReferralClosure
from referral_hierarchy.repositories.base import BaseRepository


class ClosureRepository(BaseRepository[UserReferralClosure]):
    """Closure repository with hierarchy-specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize closure repository."""
        super().__init__(UserReferralClosure, session)

    async def get_depth(
        self, ancestor_ref: str, descendant_ref: str
    ) -> int | None:
        """
        Point lookup of the stored depth between two users.

        Args:
            ancestor_ref: Ancestor reference code
            descendant_ref: Descendant reference code

        Returns:
            Depth or None if no row exists
        """
        stmt = select(UserReferralClosure.depth).where(
            UserReferralClosure.ancestor_ref == ancestor_ref,
            UserReferralClosure.descendant_ref == descendant_ref,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_descendants(
        self, ancestor_ref: str, max_depth: int
    ) -> list[tuple[str, int]]:
        """
        Range scan of descendants up to max_depth.

        Args:
            ancestor_ref: Ancestor reference code
            max_depth: Deepest level to include

        Returns:
            List of (descendant_ref, depth) ordered by depth
        """
        stmt = (
            select(
                UserReferralClosure.descendant_ref,
                UserReferralClosure.depth,
            )
            .where(
                UserReferralClosure.ancestor_ref == ancestor_ref,
                UserReferralClosure.depth <= max_depth,
            )
            .order_by(
                UserReferralClosure.depth,
                UserReferralClosure.descendant_ref,
            )
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def get_ancestors(
        self, descendant_ref: str, max_depth: int
    ) -> list[tuple[str, int]]:
        """
        Ancestors of a user up to max_depth.

        Args:
            descendant_ref: Descendant reference code
            max_depth: Deepest level to include

        Returns:
            List of (ancestor_ref, depth) ordered by depth
        """
        stmt = (
            select(
                UserReferralClosure.ancestor_ref,
                UserReferralClosure.depth,
            )
            .where(
                UserReferralClosure.descendant_ref == descendant_ref,
                UserReferralClosure.depth <= max_depth,
            )
            .order_by(UserReferralClosure.depth)
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def insert_ignore_existing(
        self, rows: list[dict[str, str | int]]
    ) -> int:
        """
        Insert closure rows, skipping pairs that already exist.

        Uses INSERT ... ON CONFLICT DO NOTHING on (ancestor_ref,
        descendant_ref) so concurrent or repeated inserts never duplicate.

        Args:
            rows: Dicts with ancestor_ref, descendant_ref, depth

        Returns:
            Number of rows actually inserted
        """
        if not rows:
            return 0

        stmt = (
            pg_insert(UserReferralClosure)
            .values(rows)
            .on_conflict_do_nothing(
                index_elements=["ancestor_ref", "descendant_ref"]
            )
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return max(result.rowcount or 0, 0)

    async def replace_all(
        self, rows: Iterable[dict[str, str | int]], batch_size: int = 1000
    ) -> int:
        """
        Delete every closure row and write the given rows in batches.

        Used by the backfill script only; runs inside the caller's
        transaction.

        Args:
            rows: Closure rows to write
            batch_size: Rows per INSERT statement

        Returns:
            Number of rows written
        """
        await self.session.execute(delete(UserReferralClosure))

        written = 0
        batch: list[dict[str, str | int]] = []
        for row in rows:
            batch.append(row)
            if len(batch) >= batch_size:
                written += await self.insert_ignore_existing(batch)
                batch = []
        if batch:
            written += await self.insert_ignore_existing(batch)
        return written

    async def count_rows(self) -> int:
        """Total number of closure rows."""
        stmt = select(func.count()).select_from(UserReferralClosure)
        result = await self.session.execute(stmt)
        return result.scalar() or 0
