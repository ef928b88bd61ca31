"""
Privacy configuration service.

Owns the per-user settings document. Documents are created lazily with
defaults from settings the first time anyone but the owner needs them.
"""

from collections.abc import Sequence
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from referral_hierarchy.config.constants import (
    EMAIL_SUBSCRIPTION_KEY,
    INFORMATION_PUBLICITY_KEY,
    LANGUAGE_KEY,
    PRIVACY_KEYS,
    PRIVACY_VALUES,
    PROFILE_PRIVACY_KEY,
)
from referral_hierarchy.config.settings import settings
from referral_hierarchy.models.user_config import UserConfig
from referral_hierarchy.repositories.user_config_repository import (
    UserConfigRepository,
)
from referral_hierarchy.repositories.user_repository import UserRepository
from referral_hierarchy.services.base_service import BaseService, transaction
from referral_hierarchy.services.cache.result_cache import ResultCache
from referral_hierarchy.utils.cache_invalidation import invalidate_referral_cache
from referral_hierarchy.utils.exceptions import NotFoundError


CONFIG_KEYS = PRIVACY_KEYS + (EMAIL_SUBSCRIPTION_KEY, LANGUAGE_KEY)


def default_config() -> dict[str, Any]:
    """Settings document applied on first touch."""
    return {
        PROFILE_PRIVACY_KEY: settings.default_profile_privacy,
        INFORMATION_PUBLICITY_KEY: settings.default_information_publicity,
        EMAIL_SUBSCRIPTION_KEY: True,
        LANGUAGE_KEY: "en",
    }


def validate_setting(key: str, value: Any) -> Any:
    """
    Check a single settings entry.

    Raises:
        ValueError: Unknown key, or privacy value not public/private
    """
    if key not in CONFIG_KEYS:
        raise ValueError(f"Unknown config key: {key}")

    if key in PRIVACY_KEYS:
        normalized = str(value).strip().lower()
        if normalized not in PRIVACY_VALUES:
            raise ValueError(
                f"Invalid value for {key}: {value}. "
                f"Expected one of {PRIVACY_VALUES}"
            )
        return normalized

    if key == EMAIL_SUBSCRIPTION_KEY and not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean")

    return value


class PrivacyConfigService(BaseService):
    """Reads, initialises and updates user settings documents."""

    def __init__(
        self, session: AsyncSession, cache: ResultCache | None = None
    ) -> None:
        """
        Initialize privacy config service.

        Args:
            session: Database session
            cache: Result cache used for invalidation on update
        """
        super().__init__(session)
        self.cache = cache
        self.config_repo = UserConfigRepository(session)
        self.user_repo = UserRepository(session)

    async def ensure_config(self, user_id: int) -> UserConfig:
        """Return the user's config, creating a default one if missing."""
        configs = await self.ensure_configs([user_id])
        return configs[user_id]

    async def ensure_configs(
        self, user_ids: Sequence[int]
    ) -> dict[int, UserConfig]:
        """
        Configs for several users, creating defaults for the missing ones.

        Creation is an upsert on user_id, so concurrent first touches of the
        same user both succeed. New rows are only flushed; committing is left
        to the caller's transaction.

        Args:
            user_ids: User IDs

        Returns:
            Dict mapping user_id to UserConfig
        """
        configs = await self.config_repo.get_many(user_ids)
        missing = [user_id for user_id in user_ids if user_id not in configs]
        if not missing:
            return configs

        await self.config_repo.create_missing(missing, default_config())
        self.logger.debug(
            f"Initialised default config for {len(missing)} users",
            extra={"user_ids": missing},
        )

        configs.update(await self.config_repo.get_many(missing))
        return configs

    async def get_config(self, user_id: int) -> dict[str, Any]:
        """
        Settings document of an existing user.

        Raises:
            NotFoundError: User absent or soft-deleted
        """
        user = await self.user_repo.get_active_by_id(user_id)
        if user is None:
            raise NotFoundError()

        config = await self.ensure_config(user_id)
        await self.commit()
        return dict(config.config or {})

    async def update_setting(
        self, user_id: int, key: str, value: Any
    ) -> dict[str, Any]:
        """
        Change one settings entry and drop cached listings of the user.

        Args:
            user_id: Owner user ID
            key: Config key
            value: New value

        Returns:
            Updated settings document

        Raises:
            ValueError: Invalid key or value
            NotFoundError: User absent, soft-deleted or inactive
        """
        value = validate_setting(key, value)
        reference_code, document = await self._apply_setting(
            user_id, key, value
        )
        await invalidate_referral_cache(self.cache, reference_code)
        return document

    @transaction
    async def _apply_setting(
        self, user_id: int, key: str, value: Any
    ) -> tuple[str, dict[str, Any]]:
        user = await self.user_repo.get_active_by_id(user_id)
        if user is None or not user.is_active:
            raise NotFoundError()

        config = await self.ensure_config(user_id)
        # Reassign so the JSON column is flagged dirty
        config.config = {**(config.config or {}), key: value}
        await self.session.flush()

        self.logger.info(
            "User config updated",
            extra={"user_id": user_id, "key": key},
        )
        return user.reference_code, dict(config.config)
