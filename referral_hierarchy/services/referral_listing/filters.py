"""
Listing filters and ordering.

Pure functions over referral candidates. The candidate set is bounded by
the closure index (two levels below one target), so filtering and
ordering run in memory.
"""

from collections.abc import Iterable
from datetime import UTC, datetime

from referral_hierarchy.models.enums import UserStatus
from referral_hierarchy.repositories.user_repository import ReferralCandidate


_EPOCH = datetime.min.replace(tzinfo=UTC)

# Enum declaration order, unknown statuses last
_STATUS_RANK = {status.value: rank for rank, status in enumerate(UserStatus)}


def normalize_search(search: str | None) -> str | None:
    """Lowercased, stripped search term, or None when blank."""
    if search is None:
        return None
    term = search.strip().lower()
    return term or None


def normalize_status(status: str | None) -> str | None:
    """
    Validate a status filter.

    Raises:
        ValueError: Unknown status value
    """
    if status is None or status == "":
        return None
    return UserStatus(status).value


def matches_search(candidate: ReferralCandidate, term: str | None) -> bool:
    """Case-insensitive substring match on name, email, phone or code."""
    if not term:
        return True
    user = candidate.user
    haystack = (
        user.full_name,
        user.email,
        user.phone_number,
        user.reference_code,
    )
    return any(term in value.lower() for value in haystack if value)


def matches_status(candidate: ReferralCandidate, status: str | None) -> bool:
    if not status:
        return True
    return candidate.user.status == status


def filter_candidates(
    candidates: Iterable[ReferralCandidate],
    search: str | None = None,
    status: str | None = None,
) -> list[ReferralCandidate]:
    """Apply search and status filters, keeping input order."""
    return [
        candidate
        for candidate in candidates
        if matches_search(candidate, search)
        and matches_status(candidate, status)
    ]


def sort_candidates(
    candidates: Iterable[ReferralCandidate],
) -> list[ReferralCandidate]:
    """
    Deterministic listing order.

    status ascending, then direct-referral count descending, then
    verification date descending with unverified users first (PostgreSQL
    puts NULLs first in a descending sort), then creation time descending.
    User id breaks remaining ties.
    """
    ordered = sorted(candidates, key=lambda c: c.user.id)
    ordered.sort(key=lambda c: c.user.created_at or _EPOCH, reverse=True)
    ordered.sort(
        key=lambda c: (
            c.user.verification_date is None,
            c.user.verification_date or _EPOCH,
        ),
        reverse=True,
    )
    ordered.sort(key=lambda c: c.referrals_count, reverse=True)
    ordered.sort(key=lambda c: _STATUS_RANK.get(c.user.status, len(_STATUS_RANK)))
    return ordered
