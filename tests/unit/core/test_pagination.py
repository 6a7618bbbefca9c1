"""Tests for offset/limit clamping."""

import pytest

from helpdesk.core.config import settings
from helpdesk.core.pagination import clamp_pagination


class TestClampPagination:

    def test_defaults(self):
        page = clamp_pagination()
        assert page.limit == settings.PAGINATION_DEFAULT_LIMIT
        assert page.offset == 0

    @pytest.mark.parametrize(
        "limit, expected",
        [(0, 1), (-5, 1), (1, 1), (200, 200), (201, 200), (5000, 200)],
    )
    def test_limit_is_clamped(self, limit, expected):
        assert clamp_pagination(limit).limit == expected

    def test_negative_offset_becomes_zero(self):
        assert clamp_pagination(10, -3).offset == 0

    def test_custom_bounds(self):
        page = clamp_pagination(None, None, default_limit=20, max_limit=100)
        assert page.limit == 20
        assert clamp_pagination(500, default_limit=20, max_limit=100).limit == 100
