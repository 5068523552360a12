"""
Unit tests for the session TTL policy.

The cookie max-age wins over the store override, which wins over the
one-day default; exactly one source decides the TTL.
"""

import math

from hypothesis import given, strategies as st

from session.ttl import ONE_DAY_SECONDS, compute_ttl, cookie_max_age


class TestComputeTTL:
    """Tests for compute_ttl priority order."""

    def test_default_is_one_day(self):
        assert compute_ttl(None) == ONE_DAY_SECONDS == 86400

    def test_override_used_without_max_age(self):
        assert compute_ttl(3600) == 3600

    def test_zero_override_is_honoured(self):
        assert compute_ttl(0) == 0

    def test_max_age_wins_over_override(self):
        assert compute_ttl(3600, 60000) == 60

    def test_max_age_is_floored_to_seconds(self):
        assert compute_ttl(None, 1999) == 1
        assert compute_ttl(None, 999) == 0

    def test_negative_max_age_clamps_to_zero(self):
        assert compute_ttl(3600, -5000) == 0

    def test_non_numeric_max_age_is_ignored(self):
        assert compute_ttl(120, "60000") == 120
        assert compute_ttl(120, True) == 120
        assert compute_ttl(None, None) == ONE_DAY_SECONDS
        assert compute_ttl(None, float("nan")) == ONE_DAY_SECONDS

    @given(
        override=st.one_of(st.none(), st.integers(min_value=0, max_value=10**9)),
        max_age=st.one_of(
            st.none(),
            st.integers(min_value=0, max_value=10**12),
            st.floats(min_value=0, max_value=1e12, allow_nan=False),
        ),
    )
    def test_priority_order(self, override, max_age):
        ttl = compute_ttl(override, max_age)

        if max_age is not None:
            assert ttl == math.floor(max_age / 1000)
        elif override is not None:
            assert ttl == override
        else:
            assert ttl == ONE_DAY_SECONDS
        assert ttl >= 0


class TestCookieMaxAge:
    """Tests for reading the cookie max-age from a session payload."""

    def test_reads_camel_case_max_age(self):
        assert cookie_max_age({"cookie": {"maxAge": 5000}}) == 5000

    def test_reads_snake_case_max_age(self):
        assert cookie_max_age({"cookie": {"max_age": 7000}}) == 7000

    def test_missing_cookie(self):
        assert cookie_max_age({"user": "ada"}) is None
        assert cookie_max_age({"cookie": None}) is None
        assert cookie_max_age(None) is None

    def test_null_max_age_falls_through(self):
        assert compute_ttl(300, cookie_max_age({"cookie": {"maxAge": None}})) == 300
