"""
UserReferralClosure model.

Materialised transitive closure of the referral forest, capped at depth 2.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from referral_hierarchy.models.base import Base


class UserReferralClosure(Base):
    """
    Closure row entity.

    One row per (ancestor, descendant) pair reachable through at most
    two referral edges. Rows are append-only.

    Attributes:
        id: Primary key
        ancestor_ref: Reference code of the ancestor
        descendant_ref: Reference code of the descendant
        depth: Number of referral edges between them (1 or 2)
        created_at: When the row was written
    """

    __tablename__ = "user_referral_closures"
    __table_args__ = (
        UniqueConstraint(
            "ancestor_ref",
            "descendant_ref",
            name="uq_user_referral_closures_ancestor_descendant",
        ),
        CheckConstraint(
            "depth >= 1 AND depth <= 2",
            name="check_user_referral_closures_depth_within_cap",
        ),
        CheckConstraint(
            "ancestor_ref <> descendant_ref",
            name="check_user_referral_closures_no_self_row",
        ),
        Index(
            "ix_user_referral_closures_ancestor_depth",
            "ancestor_ref",
            "depth",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    ancestor_ref: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("users.reference_code", ondelete="CASCADE"),
        nullable=False,
    )
    descendant_ref: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("users.reference_code", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    depth: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<UserReferralClosure(ancestor_ref={self.ancestor_ref}, "
            f"descendant_ref={self.descendant_ref}, depth={self.depth})>"
        )
