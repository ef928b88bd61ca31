"""
User model.

Represents a registered user and its position in the referral forest.
"""

from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from referral_hierarchy.models.base import Base
from referral_hierarchy.models.enums import UserRole, UserStatus

if TYPE_CHECKING:
    from referral_hierarchy.models.user_config import UserConfig


class User(Base):
    """User model - registered users and their referrer link."""

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("reference_code", name="uq_users_reference_code"),
        CheckConstraint(
            "referrer_ref IS NULL OR referrer_ref <> reference_code",
            name="check_user_not_self_referred",
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Referral identity
    reference_code: Mapped[str] = mapped_column(
        String(32), nullable=False
    )
    referrer_ref: Mapped[str | None] = mapped_column(
        String(32),
        ForeignKey("users.reference_code", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Structural profile fields
    full_name: Mapped[str] = mapped_column(
        String(255), nullable=False, index=True
    )
    avatar_url: Mapped[str | None] = mapped_column(
        String(1024), nullable=True
    )
    cover_url: Mapped[str | None] = mapped_column(
        String(1024), nullable=True
    )

    # Contact / personal fields (redactable)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    phone_number: Mapped[str | None] = mapped_column(
        String(50), nullable=True, index=True
    )
    dob: Mapped[date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    website: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    # Authorization and lifecycle
    role: Mapped[str] = mapped_column(
        String(20), default=UserRole.USER.value, nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(30),
        default=UserStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    rejected_reason: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )
    verification_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False
    )
    # Soft delete marker
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    # Relationships
    referrer: Mapped[Optional["User"]] = relationship(
        "User",
        remote_side=[reference_code],
        back_populates="referrals",
        foreign_keys=[referrer_ref],
    )
    referrals: Mapped[list["User"]] = relationship(
        "User",
        back_populates="referrer",
        foreign_keys=[referrer_ref],
    )
    config: Mapped[Optional["UserConfig"]] = relationship(
        "UserConfig",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def is_deleted(self) -> bool:
        """True if the user has been soft-deleted."""
        return self.deleted_at is not None

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<User(id={self.id}, reference_code={self.reference_code}, "
            f"referrer_ref={self.referrer_ref})>"
        )
