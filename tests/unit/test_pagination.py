"""Unit tests for pagination helpers."""

import pytest

from referral_hierarchy.utils.pagination import (
    PagedResult,
    normalize_pagination,
    slice_page,
)


class TestPagedResult:

    def test_counters_from_total(self):
        result = PagedResult.build([{"id": 1}], total=41, page=3, limit=20)

        assert result.total_pages == 3
        assert result.has_next is False
        assert result.has_prev is True

    def test_first_of_many(self):
        result = PagedResult.build([], total=21, page=1, limit=20)

        assert result.total_pages == 2
        assert result.has_next is True
        assert result.has_prev is False

    def test_empty_page_is_well_formed(self):
        result = PagedResult.empty(page=1, limit=5)

        assert result.to_dict() == {
            "data": [],
            "total": 0,
            "page": 1,
            "limit": 5,
            "totalPages": 0,
            "hasNext": False,
            "hasPrev": False,
        }

    def test_from_dict_reads_external_names(self):
        payload = {
            "data": [{"id": 2}],
            "total": 7,
            "page": 2,
            "limit": 5,
            "totalPages": 2,
            "hasNext": False,
            "hasPrev": True,
        }

        assert PagedResult.from_dict(payload).to_dict() == payload


class TestNormalizePagination:

    @pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (-1, -1)])
    def test_values_below_one_rejected(self, page, limit):
        with pytest.raises(ValueError):
            normalize_pagination(page, limit, max_limit=100)

    def test_limit_clamped(self):
        assert normalize_pagination(2, 500, max_limit=100) == (2, 100)


class TestSlicePage:

    def test_pages_partition_the_items(self):
        items = list(range(11))

        pages = [slice_page(items, page, 4) for page in (1, 2, 3, 4)]

        assert pages[3] == []
        assert [x for page in pages for x in page] == items
