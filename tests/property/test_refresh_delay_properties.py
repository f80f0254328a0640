"""Property tests for next-refresh delay computation.

Property: Refresh Delay Policy
- Positive remaining lifetime schedules at exactly that lifetime
- Non-positive remaining lifetime schedules immediately
- Unknown lifetime schedules at the fallback delay
- A configured floor is never undercut after a successful fetch
"""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from oidc_provider_cache.scheduler import compute_refresh_delay

FALLBACK = 3600.0

positive_lifetimes = st.integers(min_value=1, max_value=10**7)
non_positive_lifetimes = st.integers(min_value=-(10**7), max_value=0)
fallbacks = st.floats(min_value=0.001, max_value=86400, allow_nan=False, allow_infinity=False)
floors = st.floats(min_value=0, max_value=3600, allow_nan=False, allow_infinity=False)


class TestRefreshDelayPolicy:
    """Property tests for compute_refresh_delay."""

    @given(lifetime=positive_lifetimes)
    @settings(max_examples=100)
    def test_positive_lifetime_is_used(self, lifetime: int) -> None:
        """Property: delay equals a positive lifetime."""
        assert compute_refresh_delay(lifetime, fallback=FALLBACK) == lifetime

    @given(lifetime=non_positive_lifetimes)
    @settings(max_examples=100)
    def test_non_positive_lifetime_is_immediate(self, lifetime: int) -> None:
        """Property: expired documents are refreshed at delay 0."""
        assert compute_refresh_delay(lifetime, fallback=FALLBACK) == 0

    @given(fallback=fallbacks, minimum=floors)
    @settings(max_examples=100)
    def test_unknown_lifetime_uses_fallback(self, fallback: float, minimum: float) -> None:
        """Property: no lifetime means the fallback delay."""
        assert compute_refresh_delay(None, fallback=fallback, minimum=minimum) == fallback

    @given(lifetime=st.integers(min_value=-(10**7), max_value=10**7), minimum=floors)
    @settings(max_examples=100)
    def test_floor_is_respected(self, lifetime: int, minimum: float) -> None:
        """Property: the delay is never below the configured floor."""
        delay = compute_refresh_delay(lifetime, fallback=FALLBACK, minimum=minimum)

        assert delay >= minimum
        assert delay == max(float(max(lifetime, 0)), minimum)
