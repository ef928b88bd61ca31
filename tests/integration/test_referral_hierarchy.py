"""
End-to-end scenarios for the referral hierarchy engine.

Users are registered through UserService so the closure index is built
by the real ClosureMaintainer; reads go through ReferralHierarchyService.
"""

import pytest
import pytest_asyncio

from referral_hierarchy.config.constants import CONTACT_FIELDS
from referral_hierarchy.services.referral_service import ReferralHierarchyService
from referral_hierarchy.services.visibility.policy import ViewerContext
from referral_hierarchy.services.visibility.privacy_config import (
    PrivacyConfigService,
)
from referral_hierarchy.utils.exceptions import InvalidEdgeError, NotFoundError


def as_viewer(user, role=None):
    return ViewerContext(id=user.id, reference_code=user.reference_code, role=role)


async def register(user_service, name, referrer=None, **profile):
    return await user_service.register_user(
        name,
        f"{name.lower()}@example.com",
        referrer_code=referrer.reference_code if referrer else None,
        **profile,
    )


@pytest_asyncio.fixture
async def forest(user_service):
    """A -> B -> C -> E chain plus an unrelated root D."""
    a = await register(user_service, "A")
    b = await register(user_service, "B", a)
    c = await register(user_service, "C", b)
    e = await register(user_service, "E", c)
    d = await register(user_service, "D")
    return {"a": a, "b": b, "c": c, "d": d, "e": e}


@pytest.fixture
def privacy(session, cache, wire):
    service = PrivacyConfigService(session, cache)
    wire(service)
    return service


def refs(page):
    return {record["reference_code"] for record in page.data}


class TestClosureIndex:

    @pytest.mark.asyncio
    async def test_depths_follow_referral_walks(self, hierarchy_service, forest):
        hierarchy = hierarchy_service.hierarchy
        a, b, c, e = forest["a"], forest["b"], forest["c"], forest["e"]

        assert await hierarchy.is_ancestor_within_cap(a.reference_code, b.reference_code) == 1
        assert await hierarchy.is_ancestor_within_cap(a.reference_code, c.reference_code) == 2
        assert await hierarchy.is_ancestor_within_cap(a.reference_code, e.reference_code) is None
        assert await hierarchy.is_ancestor_within_cap(c.reference_code, a.reference_code) is None

    @pytest.mark.asyncio
    async def test_repeating_an_edge_adds_no_rows(self, hierarchy_service, forest, store):
        before = dict(store.closures)

        inserted = await hierarchy_service.add_referral_edge(
            forest["c"].reference_code, forest["b"].reference_code
        )

        assert inserted == 0
        assert store.closures == before

    @pytest.mark.asyncio
    async def test_cycle_rejected_without_writes(self, hierarchy_service, forest, store):
        before = dict(store.closures)

        with pytest.raises(InvalidEdgeError):
            await hierarchy_service.add_referral_edge(
                forest["a"].reference_code, forest["c"].reference_code
            )

        assert store.closures == before

    @pytest.mark.asyncio
    async def test_root_cannot_join_its_own_deep_subtree(
        self, hierarchy_service, forest, store
    ):
        # e sits three levels below a, out of the closure index's reach
        a, e = forest["a"], forest["e"]
        before = dict(store.closures)

        with pytest.raises(InvalidEdgeError):
            await hierarchy_service.add_referral_edge(
                a.reference_code, e.reference_code
            )

        assert store.closures == before
        assert a.referrer_ref is None

    @pytest.mark.asyncio
    async def test_new_edge_sets_referrer_column(
        self, hierarchy_service, user_service, forest
    ):
        d = forest["d"]
        x = await register(user_service, "X")

        await hierarchy_service.add_referral_edge(x.reference_code, d.reference_code)

        assert x.referrer_ref == d.reference_code
        referrers = await hierarchy_service.hierarchy.user_repo.get_referrer_map()
        assert referrers[x.reference_code] == d.reference_code

        page = await hierarchy_service.list_referrals(d.id, as_viewer(d), scope="direct")
        assert refs(page) == {x.reference_code}

    @pytest.mark.asyncio
    async def test_second_referrer_rejected_by_column(
        self, hierarchy_service, forest, store
    ):
        b, d = forest["b"], forest["d"]
        before = dict(store.closures)

        with pytest.raises(InvalidEdgeError, match="already has a referrer"):
            await hierarchy_service.add_referral_edge(b.reference_code, d.reference_code)

        assert b.referrer_ref == forest["a"].reference_code
        assert store.closures == before

    @pytest.mark.asyncio
    async def test_unknown_referrer_rejected_at_registration(
        self, user_service, store
    ):
        with pytest.raises(InvalidEdgeError):
            await user_service.register_user(
                "Z", "z@example.com", referrer_code="vn-missing"
            )

        assert store.closures == {}

    @pytest.mark.asyncio
    async def test_membership_and_visible_depth(self, hierarchy_service, forest):
        a, b, c, d = forest["a"], forest["b"], forest["c"], forest["d"]

        membership = await hierarchy_service.get_hierarchy_membership(
            a.reference_code, c.id
        )
        assert membership.to_dict() == {"inHierarchy": True, "depth": 2}

        outsider = await hierarchy_service.get_hierarchy_membership(
            d.reference_code, c.id
        )
        assert outsider.to_dict() == {"inHierarchy": False, "depth": 0}

        assert await hierarchy_service.compute_max_visible_depth(a.reference_code, a.id) == 2
        assert await hierarchy_service.compute_max_visible_depth(a.reference_code, b.id) == 1
        assert await hierarchy_service.compute_max_visible_depth(a.reference_code, c.id) == 0
        assert await hierarchy_service.compute_max_visible_depth(d.reference_code, b.id) == 0


class TestListings:

    @pytest.mark.asyncio
    async def test_root_sees_direct_and_indirect(self, hierarchy_service, forest):
        a = forest["a"]

        everything = await hierarchy_service.list_referrals(a.id, as_viewer(a), scope="all")
        direct = await hierarchy_service.list_referrals(a.id, as_viewer(a), scope="direct")
        indirect = await hierarchy_service.list_referrals(a.id, as_viewer(a), scope="indirect")

        assert refs(everything) == {forest["b"].reference_code, forest["c"].reference_code}
        assert refs(direct) == {forest["b"].reference_code}
        assert refs(indirect) == {forest["c"].reference_code}

    @pytest.mark.asyncio
    async def test_unrelated_viewer_gets_empty_success(self, hierarchy_service, forest):
        result = await hierarchy_service.list_referrals(
            forest["a"].id, as_viewer(forest["d"]), scope="all"
        )

        assert result.data == []
        assert result.total == 0

    @pytest.mark.asyncio
    async def test_target_at_cap_edge_hides_deeper_users(self, hierarchy_service, forest):
        a, c = forest["a"], forest["c"]

        result = await hierarchy_service.list_referrals(c.id, as_viewer(a), scope="all")

        # E is three levels below A
        assert result.total == 0

    @pytest.mark.asyncio
    async def test_admin_sees_beyond_own_hierarchy(self, hierarchy_service, user_service, forest):
        d, c = forest["d"], forest["c"]
        await user_service.change_role(d.id, "admin")

        result = await hierarchy_service.list_referrals(c.id, as_viewer(d, "admin"))

        assert refs(result) == {forest["e"].reference_code}

    @pytest.mark.asyncio
    async def test_referral_counts_and_depths(self, hierarchy_service, forest):
        a = forest["a"]

        result = await hierarchy_service.list_referrals(a.id, as_viewer(a))

        by_ref = {r["reference_code"]: r for r in result.data}
        assert by_ref[forest["b"].reference_code]["depth"] == 1
        assert by_ref[forest["b"].reference_code]["referrals_count"] == 1
        assert by_ref[forest["c"].reference_code]["depth"] == 2

    @pytest.mark.asyncio
    async def test_pages_cover_total_without_overlap(self, hierarchy_service, user_service):
        root = await register(user_service, "Root")
        for i in range(7):
            await register(user_service, f"Kid{i}", root)

        seen = []
        for page in (1, 2, 3):
            result = await hierarchy_service.list_referrals(
                root.id, as_viewer(root), scope="direct", page=page, limit=3
            )
            seen.extend(r["id"] for r in result.data)

        assert result.total == 7
        assert result.total_pages == 3
        assert len(seen) == 7
        assert len(set(seen)) == 7

    @pytest.mark.asyncio
    async def test_ordering_is_stable_across_calls(
        self, session, wire, user_service
    ):
        uncached = ReferralHierarchyService(session, cache=None)
        wire(uncached)
        root = await register(user_service, "Root")
        for i in range(4):
            await register(user_service, f"Kid{i}", root)

        first = await uncached.list_referrals(root.id, as_viewer(root))
        second = await uncached.list_referrals(root.id, as_viewer(root))

        assert [r["id"] for r in first.data] == [r["id"] for r in second.data]
        # Same status and counts: newest first
        created = [r["created_at"] for r in first.data]
        assert created == sorted(created, reverse=True)

    @pytest.mark.asyncio
    async def test_search_and_status_filters(self, hierarchy_service, user_service):
        root = await register(user_service, "Root")
        await register(user_service, "Alice", root, phone_number="+31612345678")
        await register(user_service, "Bob", root, status="pending")

        by_phone = await hierarchy_service.list_referrals(
            root.id, as_viewer(root), search="612345"
        )
        pending = await hierarchy_service.list_referrals(
            root.id, as_viewer(root), status="pending"
        )

        assert [r["full_name"] for r in by_phone.data] == ["Alice"]
        assert [r["full_name"] for r in pending.data] == ["Bob"]

    @pytest.mark.asyncio
    async def test_soft_deleted_users_filtered(self, hierarchy_service, user_service, forest):
        a, b = forest["a"], forest["b"]
        await user_service.soft_delete_user(b.id)

        result = await hierarchy_service.list_referrals(a.id, as_viewer(a))

        assert refs(result) == {forest["c"].reference_code}
        with pytest.raises(NotFoundError):
            await hierarchy_service.list_referrals(b.id, as_viewer(a))

    @pytest.mark.asyncio
    async def test_sub_listing_of_direct_referral(self, hierarchy_service, forest):
        a, b, c = forest["a"], forest["b"], forest["c"]

        nested = await hierarchy_service.list_sub_referrals(b.id, as_viewer(a))
        too_deep = await hierarchy_service.list_sub_referrals(c.id, as_viewer(a))

        assert refs(nested) == {c.reference_code}
        assert nested.limit == 5
        assert too_deep.total == 0


class TestCaching:

    @pytest.mark.asyncio
    async def test_registration_invalidates_ancestor_listings(
        self, hierarchy_service, user_service, forest, fake_redis
    ):
        a, b = forest["a"], forest["b"]
        before = await hierarchy_service.list_referrals(a.id, as_viewer(a))
        assert any(key.startswith(f"referrals:{a.reference_code}:") for key in fake_redis.data)

        newcomer = await register(user_service, "New", b)
        after = await hierarchy_service.list_referrals(a.id, as_viewer(a))

        assert newcomer.reference_code not in refs(before)
        assert newcomer.reference_code in refs(after)

    @pytest.mark.asyncio
    async def test_repeat_request_served_from_cache(
        self, hierarchy_service, forest, fake_redis
    ):
        a = forest["a"]
        first = await hierarchy_service.list_referrals(a.id, as_viewer(a))
        fake_redis.data = {
            key: value.replace('"total": 2', '"total": 99')
            for key, value in fake_redis.data.items()
        }

        second = await hierarchy_service.list_referrals(a.id, as_viewer(a))

        assert first.total == 2
        assert second.total == 99


class TestProfileVisibility:

    @pytest.mark.asyncio
    async def test_private_profile_hidden_from_outsider_not_admin(
        self, hierarchy_service, user_service, privacy, forest
    ):
        target, outsider = forest["c"], forest["d"]
        admin = await register(user_service, "Root")
        await user_service.change_role(admin.id, "admin")
        await privacy.update_setting(target.id, "profile_privacy", "private")

        denied = await hierarchy_service.can_view_profile(as_viewer(outsider), target.id)
        granted = await hierarchy_service.can_view_profile(as_viewer(admin), target.id)
        ancestor = await hierarchy_service.can_view_profile(as_viewer(forest["a"]), target.id)

        assert denied.to_dict() == {"allowed": False, "redacted": False}
        assert granted.to_dict() == {"allowed": True, "redacted": False}
        assert ancestor.to_dict() == {"allowed": True, "redacted": False}
        with pytest.raises(NotFoundError):
            await hierarchy_service.get_visible_profile(as_viewer(outsider), target.id)

    @pytest.mark.asyncio
    async def test_private_information_redacted_for_outsider(
        self, hierarchy_service, privacy, forest
    ):
        target, outsider = forest["b"], forest["d"]
        await privacy.update_setting(target.id, "information_publicity", "private")

        profile = await hierarchy_service.get_visible_profile(as_viewer(outsider), target.id)

        assert all(profile[name] is None for name in CONTACT_FIELDS)
        assert profile["id"] == target.id
        assert profile["full_name"] == target.full_name
        assert profile["status"] == target.status

    @pytest.mark.asyncio
    async def test_self_view_always_full(self, hierarchy_service, privacy, forest):
        target = forest["b"]
        await privacy.update_setting(target.id, "profile_privacy", "private")
        await privacy.update_setting(target.id, "information_publicity", "private")

        access = await hierarchy_service.can_view_profile(as_viewer(target), target.id)

        assert access.to_dict() == {"allowed": True, "redacted": False}

    @pytest.mark.asyncio
    async def test_demoted_admin_loses_bypass(
        self, hierarchy_service, user_service, privacy, forest
    ):
        target, former_admin = forest["c"], forest["d"]
        await user_service.change_role(former_admin.id, "admin")
        await privacy.update_setting(target.id, "profile_privacy", "private")
        await user_service.change_role(former_admin.id, "user")

        access = await hierarchy_service.can_view_profile(
            as_viewer(former_admin, "admin"), target.id
        )

        assert access.allowed is False

    @pytest.mark.asyncio
    async def test_first_touch_creates_default_config(
        self, hierarchy_service, forest, store, session
    ):
        target = forest["b"]
        assert target.id not in store.configs
        session.commit.reset_mock()

        await hierarchy_service.can_view_profile(as_viewer(forest["d"]), target.id)

        assert store.configs[target.id].config["profile_privacy"] == "public"
        session.commit.assert_awaited_once()
