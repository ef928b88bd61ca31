"""
Exception types.

Every hierarchy or privacy denial that surfaces as an error uses
NotFoundError with the same message, whatever rule caused it.
"""

USER_NOT_FOUND_MESSAGE = "User not found"


class ReferralHierarchyError(Exception):
    """Base class for engine errors."""
    pass


class NotFoundError(ReferralHierarchyError):
    """Raised when a target is absent, soft-deleted or hidden by privacy."""

    def __init__(self, message: str = USER_NOT_FOUND_MESSAGE) -> None:
        super().__init__(message)


class InvalidEdgeError(ReferralHierarchyError):
    """Raised when a referral edge would be orphaned or create a cycle."""
    pass


class CacheUnavailableError(ReferralHierarchyError):
    """Raised by the cache client when Redis cannot be reached."""
    pass
