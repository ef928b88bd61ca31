"""
In-memory stand-ins for the repositories and Redis.

Scenario tests run the real services end to end; only the storage calls
are answered from dicts.
"""

import fnmatch
from datetime import UTC, datetime, timedelta
from itertools import count
from unittest.mock import AsyncMock

import pytest

from referral_hierarchy.models import User, UserConfig
from referral_hierarchy.models.enums import UserRole, UserStatus
from referral_hierarchy.repositories.user_repository import ReferralCandidate
from referral_hierarchy.services.base_service import BaseService
from referral_hierarchy.services.cache.result_cache import ResultCache
from referral_hierarchy.services.referral_service import ReferralHierarchyService
from referral_hierarchy.services.user import UserService


class InMemoryStore:
    """Users, closure rows and configs shared by the fake repositories."""

    def __init__(self) -> None:
        self.users: dict[int, User] = {}
        self.closures: dict[tuple[str, str], int] = {}
        self.configs: dict[int, UserConfig] = {}
        self._ids = count(1)
        self._clock = datetime(2026, 1, 1, tzinfo=UTC)

    def add_user(self, reference_code: str, **fields) -> User:
        """Insert a user row without touching the closure index."""
        self._clock += timedelta(minutes=1)
        values = {
            "id": next(self._ids),
            "reference_code": reference_code,
            "referrer_ref": None,
            "full_name": f"User {reference_code}",
            "email": f"{reference_code}@example.com",
            "phone_number": None,
            "role": UserRole.USER.value,
            "status": UserStatus.ACTIVE.value,
            "is_active": True,
            "verification_date": None,
            "created_at": self._clock,
            "deleted_at": None,
        }
        values.update(fields)
        user = User(**values)
        self.users[user.id] = user
        return user

    def by_ref(self, reference_code: str) -> User | None:
        return next(
            (u for u in self.users.values() if u.reference_code == reference_code),
            None,
        )


class FakeUserRepository:

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def get_by(self, **filters):
        for user in self.store.users.values():
            if all(getattr(user, k) == v for k, v in filters.items()):
                return user
        return None

    async def get_by_id(self, user_id):
        return self.store.users.get(user_id)

    async def get_by_reference_code(self, reference_code):
        return self.store.by_ref(reference_code)

    async def get_active_by_id(self, user_id):
        user = self.store.users.get(user_id)
        if user is None or user.deleted_at is not None:
            return None
        return user

    async def get_current_role(self, user_id):
        user = await self.get_active_by_id(user_id)
        return user.role if user else None

    async def reference_code_exists(self, reference_code):
        return self.store.by_ref(reference_code) is not None

    async def create(self, **data):
        return self.store.add_user(data.pop("reference_code"), **data)

    async def update(self, id, **data):
        user = self.store.users.get(id)
        if user is None:
            return None
        for key, value in data.items():
            setattr(user, key, value)
        return user

    async def find_referral_candidates(self, target_ref, depths):
        candidates = []
        for (ancestor, descendant), depth in self.store.closures.items():
            if ancestor != target_ref or depth not in depths:
                continue
            user = self.store.by_ref(descendant)
            if user is None or user.deleted_at is not None:
                continue
            referrals = sum(
                1
                for child in self.store.users.values()
                if child.referrer_ref == descendant and child.deleted_at is None
            )
            candidates.append(ReferralCandidate(user, depth, referrals))
        return candidates

    async def get_referrer_map(self):
        return {u.reference_code: u.referrer_ref for u in self.store.users.values()}


class FakeClosureRepository:

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def get_depth(self, ancestor_ref, descendant_ref):
        return self.store.closures.get((ancestor_ref, descendant_ref))

    async def get_descendants(self, ancestor_ref, max_depth):
        rows = [
            (descendant, depth)
            for (ancestor, descendant), depth in self.store.closures.items()
            if ancestor == ancestor_ref and depth <= max_depth
        ]
        return sorted(rows, key=lambda row: (row[1], row[0]))

    async def get_ancestors(self, descendant_ref, max_depth):
        rows = [
            (ancestor, depth)
            for (ancestor, descendant), depth in self.store.closures.items()
            if descendant == descendant_ref and depth <= max_depth
        ]
        return sorted(rows, key=lambda row: row[1])

    async def insert_ignore_existing(self, rows):
        inserted = 0
        for row in rows:
            key = (row["ancestor_ref"], row["descendant_ref"])
            if key not in self.store.closures:
                self.store.closures[key] = row["depth"]
                inserted += 1
        return inserted


class FakeUserConfigRepository:

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def get_many(self, user_ids):
        return {
            user_id: self.store.configs[user_id]
            for user_id in user_ids
            if user_id in self.store.configs
        }

    async def create_missing(self, user_ids, defaults):
        for user_id in user_ids:
            self.store.configs.setdefault(
                user_id,
                UserConfig(id=user_id, user_id=user_id, config=dict(defaults)),
            )


class FakeRedis:
    """Enough of redis.asyncio.Redis for ResultCache."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value

    async def scan(self, cursor=0, match="*", count=None):
        return 0, [k for k in self.data if fnmatch.fnmatchcase(k, match)]

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed


def wire_fakes(root: BaseService, store: InMemoryStore) -> None:
    """Point every repository reachable from root at the in-memory store."""
    repos = {
        "user_repo": FakeUserRepository(store),
        "closure_repo": FakeClosureRepository(store),
        "config_repo": FakeUserConfigRepository(store),
    }
    seen: set[int] = set()
    pending = [root]
    while pending:
        service = pending.pop()
        if id(service) in seen:
            continue
        seen.add(id(service))
        for name, value in list(vars(service).items()):
            if name in repos:
                setattr(service, name, repos[name])
            elif isinstance(value, BaseService):
                pending.append(value)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return ResultCache(fake_redis, ttl_seconds=15)


@pytest.fixture
def session():
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    return session


@pytest.fixture
def hierarchy_service(session, cache, store):
    service = ReferralHierarchyService(session, cache)
    wire_fakes(service, store)
    return service


@pytest.fixture
def user_service(session, cache, store):
    service = UserService(session, cache)
    wire_fakes(service, store)
    return service


@pytest.fixture
def wire(store):
    """Callable that wires an extra service to the shared store."""
    def _wire(service: BaseService) -> BaseService:
        wire_fakes(service, store)
        return service
    return _wire
