"""Tests for noirprof.core.clock — entropy sources and the variability model."""

from __future__ import annotations

from datetime import datetime

import pytest

from noirprof.core.clock import (
    FixedClock,
    SystemClock,
    variability,
    variability_factor,
)


class TestClockSources:
    def test_system_clock_nanos_in_range(self):
        clock = SystemClock()
        for _ in range(100):
            assert 0 <= clock.subsec_nanos() < 1_000_000_000

    def test_system_clock_now_is_aware(self):
        assert SystemClock().now().tzinfo is not None

    def test_fixed_clock_single_value(self):
        clock = FixedClock(7)
        assert [clock.subsec_nanos() for _ in range(3)] == [7, 7, 7]

    def test_fixed_clock_cycles_sequence(self):
        clock = FixedClock([1, 2, 3])
        assert [clock.subsec_nanos() for _ in range(5)] == [1, 2, 3, 1, 2]

    def test_fixed_clock_wraps_to_subsecond(self):
        assert FixedClock(1_000_000_005).subsec_nanos() == 5

    def test_fixed_clock_pinned_now(self):
        moment = datetime(2030, 5, 1, 9, 30).astimezone()
        assert FixedClock(0, now=moment).now() == moment

    def test_fixed_clock_rejects_empty_sequence(self):
        with pytest.raises(ValueError):
            FixedClock([])


class TestVariability:
    def test_factor_lower_bound(self):
        assert variability_factor(FixedClock(0)) == pytest.approx(0.98)

    def test_factor_upper_bound(self):
        assert variability_factor(FixedClock(39)) == pytest.approx(1.019)

    def test_factor_uses_nanos_mod_40(self):
        assert variability_factor(FixedClock(45)) == pytest.approx(variability_factor(FixedClock(5)))

    def test_pinned_variability_floors(self):
        assert variability(38_799, FixedClock(0)) == int(38_799 * 0.98)

    def test_zero_cost_stays_zero(self):
        assert variability(0, FixedClock(17)) == 0

    def test_system_clock_within_two_percent(self):
        cost = 38_799
        for _ in range(200):
            assert int(cost * 0.98) <= variability(cost) <= int(cost * 1.02)
