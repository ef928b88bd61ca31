"""
Visibility policy evaluator.

Combines viewer role, hierarchy membership and the target's privacy
settings into one of three decisions. Rules are checked in order:

1. Admin (role re-read from the database) -> allow full
2. Viewer is the target -> allow full
3. Private profile, viewer outside hierarchy -> deny
4. Private information, viewer outside hierarchy -> allow redacted
5. Otherwise -> allow full

A deny is never surfaced with its cause: callers see "not found".
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from referral_hierarchy.models.enums import UserRole
from referral_hierarchy.models.user import User
from referral_hierarchy.models.user_config import UserConfig
from referral_hierarchy.repositories.user_repository import UserRepository
from referral_hierarchy.services.base_service import BaseService
from referral_hierarchy.services.hierarchy.query_service import (
    HierarchyQueryService,
)
from referral_hierarchy.services.visibility.privacy_config import (
    PrivacyConfigService,
)
from referral_hierarchy.services.visibility.redaction import serialize_profile
from referral_hierarchy.utils.exceptions import NotFoundError


class VisibilityDecision(StrEnum):
    """Outcome of a visibility evaluation."""

    DENY = "deny"
    ALLOW_FULL = "allow_full"
    ALLOW_REDACTED = "allow_redacted"


@dataclass(frozen=True)
class ViewerContext:
    """
    Pre-authenticated caller identity.

    role is what the session claims; decisions always use the stored role.
    """

    id: int
    reference_code: str
    role: str | None = None


@dataclass(frozen=True)
class ProfileAccess:
    """Collaborator-facing view of a decision."""

    allowed: bool
    redacted: bool

    @classmethod
    def from_decision(cls, decision: VisibilityDecision) -> "ProfileAccess":
        """Map a decision onto allowed/redacted flags."""
        if decision is VisibilityDecision.DENY:
            return cls(allowed=False, redacted=False)
        return cls(
            allowed=True,
            redacted=decision is VisibilityDecision.ALLOW_REDACTED,
        )

    def to_dict(self) -> dict[str, Any]:
        return {"allowed": self.allowed, "redacted": self.redacted}


class VisibilityPolicy(BaseService):
    """Decides what a viewer may see of a target profile."""

    def __init__(
        self,
        session: AsyncSession,
        hierarchy: HierarchyQueryService | None = None,
        privacy: PrivacyConfigService | None = None,
    ) -> None:
        """
        Initialize visibility policy.

        Args:
            session: Database session
            hierarchy: Hierarchy query service (created if omitted)
            privacy: Privacy config service (created if omitted)
        """
        super().__init__(session)
        self.user_repo = UserRepository(session)
        self.hierarchy = hierarchy or HierarchyQueryService(session)
        self.privacy = privacy or PrivacyConfigService(session)

    async def resolve_role(self, viewer: ViewerContext) -> str:
        """
        Current stored role of the viewer.

        A viewer that no longer exists (or was soft-deleted) is treated as
        an ordinary user, so a removed admin keeps no bypass.
        """
        role = await self.user_repo.get_current_role(viewer.id)
        if role is None:
            self.logger.debug(
                "Viewer not found, evaluating as ordinary user",
                extra={"viewer_id": viewer.id},
            )
            return UserRole.USER.value

        if viewer.role is not None and viewer.role != role:
            self.logger.warning(
                "Viewer session role differs from stored role",
                extra={
                    "viewer_id": viewer.id,
                    "session_role": viewer.role,
                    "stored_role": role,
                },
            )
        return role

    async def evaluate(
        self,
        viewer: ViewerContext,
        target: User,
        *,
        role: str | None = None,
        in_hierarchy: bool | None = None,
        config: UserConfig | None = None,
    ) -> VisibilityDecision:
        """
        Evaluate viewer access to one target.

        Precomputed role, membership or config may be passed in by callers
        evaluating many targets for the same viewer.

        Args:
            viewer: Caller identity
            target: Target user (not soft-deleted)
            role: Viewer's stored role, re-read when omitted
            in_hierarchy: Whether target is within the viewer's capped
                downstream, looked up when needed and omitted
            config: Target's settings, initialised when omitted

        Returns:
            Visibility decision
        """
        if role is None:
            role = await self.resolve_role(viewer)

        if role == UserRole.ADMIN:
            self.logger.info(
                "Admin visibility bypass",
                extra={"viewer_id": viewer.id, "target_id": target.id},
            )
            return VisibilityDecision.ALLOW_FULL

        if viewer.id == target.id:
            return VisibilityDecision.ALLOW_FULL

        if config is None:
            config = await self.privacy.ensure_config(target.id)

        profile_private = config.is_profile_private
        information_private = config.is_information_private
        if not profile_private and not information_private:
            return VisibilityDecision.ALLOW_FULL

        if in_hierarchy is None:
            depth = await self.hierarchy.is_ancestor_within_cap(
                viewer.reference_code, target.reference_code
            )
            in_hierarchy = depth is not None

        if in_hierarchy:
            return VisibilityDecision.ALLOW_FULL

        if profile_private:
            self.logger.debug(
                "Profile hidden from viewer",
                extra={"viewer_id": viewer.id, "target_id": target.id},
            )
            return VisibilityDecision.DENY

        return VisibilityDecision.ALLOW_REDACTED

    async def can_view_profile(
        self, viewer: ViewerContext, target_id: int
    ) -> ProfileAccess:
        """
        Whether the viewer may see the target, and whether redacted.

        An absent or soft-deleted target looks exactly like a denial.
        """
        target = await self.user_repo.get_active_by_id(target_id)
        if target is None:
            return ProfileAccess(allowed=False, redacted=False)

        decision = await self.evaluate(viewer, target)
        return ProfileAccess.from_decision(decision)

    async def get_visible_profile(
        self, viewer: ViewerContext, target_id: int
    ) -> dict[str, Any]:
        """
        Target profile as the viewer may see it.

        Args:
            viewer: Caller identity
            target_id: Target user ID

        Returns:
            Serialised profile, redacted when required

        Raises:
            NotFoundError: Target absent, soft-deleted or hidden
        """
        target = await self.user_repo.get_active_by_id(target_id)
        if target is None:
            raise NotFoundError()

        decision = await self.evaluate(viewer, target)
        if decision is VisibilityDecision.DENY:
            raise NotFoundError()

        return serialize_profile(
            target,
            redacted=decision is VisibilityDecision.ALLOW_REDACTED,
        )
