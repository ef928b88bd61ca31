"""
User config repository.

Data access layer for UserConfig model.
"""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from referral_hierarchy.models.user_config import UserConfig
from referral_hierarchy.repositories.base import BaseRepository


class UserConfigRepository(BaseRepository[UserConfig]):
    """User config repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user config repository."""
        super().__init__(UserConfig, session)

    async def get_many(
        self, user_ids: Sequence[int]
    ) -> dict[int, UserConfig]:
        """
        Get configs for several users in one query.

        Args:
            user_ids: User IDs

        Returns:
            Dict mapping user_id to UserConfig (missing users omitted)
        """
        if not user_ids:
            return {}
        stmt = select(UserConfig).where(UserConfig.user_id.in_(list(user_ids)))
        result = await self.session.execute(stmt)
        return {cfg.user_id: cfg for cfg in result.scalars().all()}

    async def create_missing(
        self, user_ids: Sequence[int], defaults: dict[str, Any]
    ) -> None:
        """
        Create default configs for users that have none.

        INSERT ... ON CONFLICT DO NOTHING on user_id, so two requests
        initialising the same user concurrently both succeed.

        Args:
            user_ids: User IDs to initialise
            defaults: Default config document
        """
        if not user_ids:
            return
        stmt = (
            pg_insert(UserConfig)
            .values(
                [
                    {"user_id": user_id, "config": dict(defaults)}
                    for user_id in user_ids
                ]
            )
            .on_conflict_do_nothing(index_elements=["user_id"])
        )
        await self.session.execute(stmt)
        await self.session.flush()
