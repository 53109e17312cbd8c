"""
Unit tests for denormalization and calendar labels.
"""

import numpy as np
import pandas as pd
import pytest

from sales_forecast.data import (
    Observation,
    ScaleParameters,
    denormalize,
    encode,
    future_period_labels,
    label_for_month_index,
    normalize,
    period_label,
)


@pytest.fixture
def integral_scale():
    return ScaleParameters(
        min_quantity=10, max_quantity=21,
        start_period=pd.Period("2024-01", freq="M"),
        product_index={"Widget": 0},
        integral=True,
    )


class TestDenormalize:
    """Tests for quantity denormalization."""

    def test_known_values(self, integral_scale):
        assert denormalize(0.0, integral_scale) == 10
        assert denormalize(1.0, integral_scale) == 21
        assert denormalize(5 / 11, integral_scale) == 15

    def test_rounds_to_whole_units(self, integral_scale):
        result = denormalize(0.5, integral_scale)
        assert result == 16  # 15.5 rounds half up
        assert isinstance(result, int)

    def test_fractional_inputs_not_rounded(self):
        scale = ScaleParameters(0.5, 2.5, pd.Period("2024-01", freq="M"), integral=False)
        assert denormalize(0.25, scale) == pytest.approx(1.0)
        assert denormalize(0.3, scale) == pytest.approx(1.1)

    def test_values_outside_unit_interval(self, integral_scale):
        assert denormalize(-0.1, integral_scale) < 10
        assert denormalize(1.2, integral_scale) > 21

    def test_round_trip_integral(self, linear_observations):
        _, scale = encode(linear_observations)
        for q in range(10, 22):
            assert denormalize(normalize(q, scale), scale) == q

    def test_round_trip_fractional(self, rng):
        quantities = rng.uniform(0, 500, size=50)
        observations = [Observation("2024-01", "p", q) for q in quantities]
        _, scale = encode(observations)

        restored = [denormalize(v, scale) for v in normalize(quantities, scale)]
        np.testing.assert_allclose(restored, quantities, rtol=1e-9)


class TestCalendarLabels:
    """Tests for month label generation."""

    def test_year_rollover(self):
        assert label_for_month_index("2024-11", 2) == "2025-01"

    def test_zero_offset(self):
        assert label_for_month_index("2024-11", 0) == "2024-11"

    def test_multi_year_offset(self):
        assert label_for_month_index("2023-06", 30) == "2025-12"

    def test_accepts_period_and_timestamp(self):
        assert label_for_month_index(pd.Period("2024-12", freq="M"), 1) == "2025-01"
        assert label_for_month_index(pd.Timestamp("2024-12-31 23:00"), 1) == "2025-01"
        assert label_for_month_index("2024-12-31", 1) == "2025-01"

    def test_period_label_uses_start_period(self, integral_scale):
        assert period_label(integral_scale, 1) == "2024-01"
        assert period_label(integral_scale, 13) == "2025-01"

    def test_future_period_labels(self, integral_scale):
        labels = future_period_labels(integral_scale, last_month_index=12, horizon=3)
        assert labels == ["2025-01", "2025-02", "2025-03"]
