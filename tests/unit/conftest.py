"""
Shared fixtures for unit tests.

Services are built on a mocked session and their repositories replaced
with AsyncMocks, so each test states exactly what the database returns.
"""

from unittest.mock import AsyncMock

import pytest

from referral_hierarchy.services.cache.result_cache import ResultCache
from referral_hierarchy.services.visibility.policy import ViewerContext


@pytest.fixture
def viewer():
    """Ordinary viewer."""
    return ViewerContext(id=1, reference_code="vn-a")


@pytest.fixture
def admin_viewer():
    """Viewer whose session claims admin."""
    return ViewerContext(id=99, reference_code="vn-admin", role="admin")


@pytest.fixture
def result_cache(mock_redis_client):
    """
    ResultCache over a mocked Redis client.

    Returns:
        ResultCache: Cache with a 15 second TTL
    """
    return ResultCache(mock_redis_client, ttl_seconds=15)


@pytest.fixture
def mock_closure_repo():
    """Closure repository with an empty forest."""
    repo = AsyncMock()
    repo.get_depth = AsyncMock(return_value=None)
    repo.get_descendants = AsyncMock(return_value=[])
    repo.get_ancestors = AsyncMock(return_value=[])
    repo.insert_ignore_existing = AsyncMock(side_effect=lambda rows: len(rows))
    return repo


@pytest.fixture
def mock_user_repo():
    """User repository that finds nobody."""
    repo = AsyncMock()
    repo.get_by = AsyncMock(return_value=None)
    repo.get_by_reference_code = AsyncMock(return_value=None)
    repo.get_active_by_id = AsyncMock(return_value=None)
    repo.get_current_role = AsyncMock(return_value="user")
    repo.reference_code_exists = AsyncMock(return_value=False)
    repo.find_referral_candidates = AsyncMock(return_value=[])
    return repo
