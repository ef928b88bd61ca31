"""
Closure maintenance module.

Writes closure rows when a referral edge is created. The whole fan-out for
one edge runs in the caller's transaction and is rolled back on failure.
"""

from collections.abc import Iterable

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from referral_hierarchy.config.constants import DIRECT_DEPTH, VISIBILITY_CAP
from referral_hierarchy.repositories.closure_repository import ClosureRepository
from referral_hierarchy.repositories.user_repository import UserRepository
from referral_hierarchy.services.base_service import BaseService
from referral_hierarchy.utils.db_decorators import with_rollback_on_error
from referral_hierarchy.utils.exceptions import InvalidEdgeError


def build_edge_rows(
    child_ref: str,
    referrer_ref: str,
    referrer_ancestors: Iterable[tuple[str, int]],
    child_descendants: Iterable[tuple[str, int]] = (),
    cap: int = VISIBILITY_CAP,
) -> list[dict[str, str | int]]:
    """
    Closure rows implied by one new edge referrer -> child.

    Pairs every ancestor of the referrer (plus the referrer itself) with
    the child and every descendant of the child (plus the child itself),
    keeping only pairs within the cap.

    Args:
        child_ref: Reference code of the referred user
        referrer_ref: Reference code of the referrer
        referrer_ancestors: (ancestor_ref, depth) rows above the referrer
        child_descendants: (descendant_ref, depth) rows below the child
        cap: Deepest depth to materialise

    Returns:
        List of closure row dicts, one per pair
    """
    uppers = [(referrer_ref, 0)] + list(referrer_ancestors)
    lowers = [(child_ref, 0)] + list(child_descendants)

    rows: dict[tuple[str, str], int] = {}
    for ancestor_ref, up_depth in uppers:
        for descendant_ref, down_depth in lowers:
            depth = up_depth + down_depth + DIRECT_DEPTH
            if depth > cap:
                continue
            key = (ancestor_ref, descendant_ref)
            if key not in rows or depth < rows[key]:
                rows[key] = depth

    return [
        {"ancestor_ref": ancestor, "descendant_ref": descendant, "depth": depth}
        for (ancestor, descendant), depth in rows.items()
    ]


def build_closure_rows(
    parent_by_ref: dict[str, str | None], cap: int = VISIBILITY_CAP
) -> list[dict[str, str | int]]:
    """
    Rebuild closure rows for a whole forest from referrer links.

    Walks at most cap parents up from every user. A walk that revisits a
    user or reaches an unknown referrer stops there.

    Args:
        parent_by_ref: Map of reference_code -> referrer reference code
        cap: Deepest depth to materialise

    Returns:
        List of closure row dicts
    """
    rows: list[dict[str, str | int]] = []
    for reference_code in parent_by_ref:
        seen = {reference_code}
        current = parent_by_ref.get(reference_code)
        depth = DIRECT_DEPTH

        while current and depth <= cap:
            if current in seen:
                logger.warning(
                    f"Referral loop detected at {current}, chain of "
                    f"{reference_code} truncated"
                )
                break
            if current not in parent_by_ref:
                logger.warning(
                    f"Unknown referrer {current} for {reference_code}, skipped"
                )
                break

            rows.append(
                {
                    "ancestor_ref": current,
                    "descendant_ref": reference_code,
                    "depth": depth,
                }
            )
            seen.add(current)
            current = parent_by_ref.get(current)
            depth += 1

    return rows


class ClosureMaintainer(BaseService):
    """Maintains the referral closure index on edge creation."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize closure maintainer."""
        super().__init__(session)
        self.closure_repo = ClosureRepository(session)
        self.user_repo = UserRepository(session)

    @with_rollback_on_error
    async def add_referral_edge(
        self, child_ref: str, referrer_ref: str
    ) -> int:
        """
        Create the edge referrer -> child and its closure fan-out.

        The child's referrer_ref column is the edge itself and is set in
        the same transaction as the closure rows. Only a child without
        referrals of its own can be attached. Validation runs before any
        write, and repeating an existing edge inserts nothing.

        Args:
            child_ref: Reference code of the referred user
            referrer_ref: Reference code of the referrer

        Returns:
            Number of closure rows inserted

        Raises:
            InvalidEdgeError: Self-referral, unknown user or referrer, cycle,
                child already attached to another referrer, or child
                that already has referrals
        """
        if child_ref == referrer_ref:
            raise InvalidEdgeError("A user cannot refer themselves")

        referrer = await self.user_repo.get_by_reference_code(referrer_ref)
        if referrer is None:
            raise InvalidEdgeError("Referrer not found")

        child = await self.user_repo.get_by_reference_code(child_ref)
        if child is None:
            raise InvalidEdgeError("User not found")

        already_attached = child.referrer_ref is not None
        if already_attached and child.referrer_ref != referrer_ref:
            raise InvalidEdgeError("User already has a referrer")

        # Child already above the referrer -> the edge would close a loop
        if await self.closure_repo.get_depth(child_ref, referrer_ref) is not None:
            self.logger.warning(
                "Referral loop rejected",
                extra={"child_ref": child_ref, "referrer_ref": referrer_ref},
            )
            raise InvalidEdgeError("Referral would create a cycle")

        child_descendants = await self.closure_repo.get_descendants(
            child_ref, VISIBILITY_CAP - DIRECT_DEPTH
        )
        if child_descendants and not already_attached:
            self.logger.warning(
                "Attaching user with referrals rejected",
                extra={"child_ref": child_ref, "referrer_ref": referrer_ref},
            )
            raise InvalidEdgeError("User with referrals cannot be attached")

        referrer_ancestors = await self.closure_repo.get_ancestors(
            referrer_ref, VISIBILITY_CAP - DIRECT_DEPTH
        )

        if not already_attached:
            await self.user_repo.update(child.id, referrer_ref=referrer_ref)

        rows = build_edge_rows(
            child_ref, referrer_ref, referrer_ancestors, child_descendants
        )
        inserted = await self.closure_repo.insert_ignore_existing(rows)

        logger.info(
            "Referral edge indexed",
            extra={
                "child_ref": child_ref,
                "referrer_ref": referrer_ref,
                "rows_planned": len(rows),
                "rows_inserted": inserted,
            },
        )
        return inserted
