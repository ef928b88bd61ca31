"""
UserConfig model.

Per-user key/value settings, including privacy configuration.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from referral_hierarchy.config.constants import (
    INFORMATION_PUBLICITY_KEY,
    PRIVACY_PRIVATE,
    PROFILE_PRIVACY_KEY,
)
from referral_hierarchy.models.base import Base

if TYPE_CHECKING:
    from referral_hierarchy.models.user import User


class UserConfig(Base):
    """UserConfig entity - one settings document per user."""

    __tablename__ = "user_configs"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    config: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    user: Mapped["User"] = relationship("User", back_populates="config")

    @property
    def is_profile_private(self) -> bool:
        """True if the profile is hidden from viewers outside the hierarchy."""
        return (self.config or {}).get(PROFILE_PRIVACY_KEY) == PRIVACY_PRIVATE

    @property
    def is_information_private(self) -> bool:
        """True if contact fields are hidden from viewers outside the hierarchy."""
        return (
            (self.config or {}).get(INFORMATION_PUBLICITY_KEY)
            == PRIVACY_PRIVATE
        )

    def __repr__(self) -> str:
        """String representation."""
        return f"<UserConfig(user_id={self.user_id}, config={self.config})>"
