"""
Tests for the pricing simulator.
"""
from datetime import date

import pytest

from conftest import PROPERTY_ID, make_cost_settings, make_reservation
from connectors import InMemoryDataAccess
from engine import CostCategory, ItemizedCosts, Period, calculate_minimum_price
from engine.pricing import minimum_price, simulate_minimum_prices
from engine.proration import prorate_all

WINDOW = Period.from_dates(date(2024, 1, 1), date(2024, 4, 1))


def pricing_settings():
    """Fixed 30440/month over 10 rooms is 100 per room-day; variable 3000/month."""
    return make_cost_settings(
        fixed_monthly=30440.0,
        variable=ItemizedCosts((CostCategory("Supplies", 3000.0),)),
    )


def pricing_reservations():
    return [
        make_reservation("R1", check_in=date(2024, 1, 1), check_out=date(2024, 3, 1),
                         revenue=60000.0, source="Booking.com"),
        make_reservation("R2", check_in=date(2024, 1, 1), check_out=date(2024, 2, 10),
                         revenue=40000.0, source="Direct"),
    ]


class TestMinimumPrice:
    """Test suite for minimum_price()."""

    def test_formula(self):
        assert minimum_price(100.0, 20, 0.2) == pytest.approx(150.0)

    def test_zero_margin_zero_commission_is_base_cost(self):
        assert minimum_price(130.0, 0, 0.0) == pytest.approx(130.0)

    def test_full_commission_is_unreachable(self):
        assert minimum_price(100.0, 20, 1.0) == 0


class TestSimulateMinimumPrices:
    """Per-channel and blended minimum rates."""

    def test_components(self):
        result = simulate_minimum_prices(prorate_all(pricing_reservations(), WINDOW), pricing_settings(), 20)
        components = result["components"]

        assert components["fixed_cost_per_night"] == pytest.approx(100.0)
        assert components["variable_cost_per_night"] == pytest.approx(30.0)
        assert components["base_cost_per_night"] == pytest.approx(130.0)
        assert components["markup_amount"] == pytest.approx(26.0)

    def test_per_channel_prices(self):
        result = simulate_minimum_prices(prorate_all(pricing_reservations(), WINDOW), pricing_settings(), 20)
        channels = {c["channel"]: c for c in result["channels"]}

        assert channels["Booking.com"]["commission_rate"] == pytest.approx(0.15)
        assert channels["Booking.com"]["min_price"] == pytest.approx(130 * 1.2 / 0.85)
        assert channels["Direct"]["min_price"] == pytest.approx(156.0)
        # Most expensive channel first
        assert result["channels"][0]["channel"] == "Booking.com"

    def test_blended_price_uses_revenue_weighted_commission(self):
        result = simulate_minimum_prices(prorate_all(pricing_reservations(), WINDOW), pricing_settings(), 20)

        assert result["avg_commission_rate"] == pytest.approx(0.09)
        assert result["min_price"] == pytest.approx(130 * 1.2 / 0.91)
        assert result["is_reachable"] is True

    def test_no_reservations_uses_property_default_rate(self):
        settings = make_cost_settings(fixed_monthly=30440.0, default_rate=0.2)
        result = simulate_minimum_prices([], settings, 10)

        assert result["channels"] == []
        assert result["avg_commission_rate"] == pytest.approx(0.2)
        # No nights sold: zero variable cost spread over 30 nights
        assert result["min_price"] == pytest.approx(100 * 1.1 / 0.8)


class TestCalculateMinimumPrice:
    """Standalone calculator over a data source."""

    def test_reads_reservations_from_data_access(self):
        access = InMemoryDataAccess()
        access.set_cost_settings(PROPERTY_ID, pricing_settings())
        access.add_reservations(PROPERTY_ID, pricing_reservations())
        access.add_reservations(PROPERTY_ID, [
            make_reservation("R3", check_in=date(2024, 1, 5), check_out=date(2024, 1, 8),
                             revenue=99999.0, source="Expedia", deleted=True),
        ])

        result = calculate_minimum_price(PROPERTY_ID, 20, access, days=91, end=date(2024, 4, 1))

        assert result["property_id"] == PROPERTY_ID
        assert result["period"]["start"] == "2024-01-01"
        assert {c["channel"] for c in result["channels"]} == {"Booking.com", "Direct"}
        assert result["min_price"] == pytest.approx(130 * 1.2 / 0.91)
