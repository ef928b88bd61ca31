"""
Hierarchy query module.

Read-only questions about the referral forest, answered from the closure
index with point lookups and bounded range scans.
"""

from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from referral_hierarchy.config.constants import VISIBILITY_CAP
from referral_hierarchy.repositories.closure_repository import ClosureRepository
from referral_hierarchy.repositories.user_repository import UserRepository
from referral_hierarchy.services.base_service import BaseService


@dataclass(frozen=True)
class HierarchyMembership:
    """Whether a target sits in a viewer's capped downstream, and how deep."""

    in_hierarchy: bool
    depth: int

    def to_dict(self) -> dict[str, Any]:
        """Serialise with the external field names."""
        return {"inHierarchy": self.in_hierarchy, "depth": self.depth}


class HierarchyQueryService(BaseService):
    """Answers ancestor/descendant questions within the visibility cap."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize hierarchy query service."""
        super().__init__(session)
        self.closure_repo = ClosureRepository(session)
        self.user_repo = UserRepository(session)

    async def is_ancestor_within_cap(
        self, ancestor_ref: str, descendant_ref: str
    ) -> int | None:
        """
        Depth from ancestor to descendant if it is within the cap.

        A user is never its own ancestor here.

        Args:
            ancestor_ref: Candidate ancestor reference code
            descendant_ref: Candidate descendant reference code

        Returns:
            Depth (1 or 2) or None when not related within the cap
        """
        if ancestor_ref == descendant_ref:
            return None

        depth = await self.closure_repo.get_depth(ancestor_ref, descendant_ref)
        if depth is None or depth > VISIBILITY_CAP:
            return None
        return depth

    async def descendants_within_cap(
        self, ancestor_ref: str, max_depth: int = VISIBILITY_CAP
    ) -> list[tuple[str, int]]:
        """
        Descendants of a user up to min(max_depth, cap).

        Args:
            ancestor_ref: Ancestor reference code
            max_depth: Requested depth, clamped to the cap

        Returns:
            List of (descendant_ref, depth) ordered by depth
        """
        bounded = min(max_depth, VISIBILITY_CAP)
        if bounded < 1:
            return []
        return await self.closure_repo.get_descendants(ancestor_ref, bounded)

    async def ancestors_within_cap(
        self, descendant_ref: str, max_depth: int = VISIBILITY_CAP
    ) -> list[tuple[str, int]]:
        """Ancestors of a user up to min(max_depth, cap), nearest first."""
        bounded = min(max_depth, VISIBILITY_CAP)
        if bounded < 1:
            return []
        return await self.closure_repo.get_ancestors(descendant_ref, bounded)

    async def visible_references(self, viewer_ref: str) -> set[str]:
        """
        Reference codes a non-admin viewer may list.

        The viewer itself plus every descendant within the cap.
        """
        descendants = await self.descendants_within_cap(viewer_ref)
        allowed = {ref for ref, _ in descendants}
        allowed.add(viewer_ref)
        return allowed

    async def compute_max_visible_depth(
        self, viewer_ref: str, target_id: int
    ) -> int:
        """
        How many levels below target the viewer may still see.

        Args:
            viewer_ref: Viewer reference code
            target_id: Target user ID

        Returns:
            cap when the viewer is the target, cap - depth when the target
            is a descendant within the cap, otherwise 0
        """
        target = await self.user_repo.get_active_by_id(target_id)
        if target is None:
            return 0

        if target.reference_code == viewer_ref:
            return VISIBILITY_CAP

        depth = await self.is_ancestor_within_cap(
            viewer_ref, target.reference_code
        )
        if depth is None:
            return 0
        return max(0, VISIBILITY_CAP - depth)

    async def get_hierarchy_membership(
        self, viewer_ref: str, target_id: int
    ) -> HierarchyMembership:
        """
        Membership of target in the viewer's capped downstream.

        Args:
            viewer_ref: Viewer reference code
            target_id: Target user ID

        Returns:
            (True, 0) for self, (True, d) for a descendant at depth d,
            otherwise (False, 0)
        """
        target = await self.user_repo.get_active_by_id(target_id)
        if target is None:
            return HierarchyMembership(in_hierarchy=False, depth=0)

        if target.reference_code == viewer_ref:
            return HierarchyMembership(in_hierarchy=True, depth=0)

        depth = await self.is_ancestor_within_cap(
            viewer_ref, target.reference_code
        )
        if depth is None:
            return HierarchyMembership(in_hierarchy=False, depth=0)
        return HierarchyMembership(in_hierarchy=True, depth=depth)
