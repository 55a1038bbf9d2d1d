"""
Tests for period profitability and break-even.
"""
from datetime import date

import pytest

from conftest import MARCH_2024, PROPERTY_ID, make_cost_settings, make_reservation
from engine import CostCategory, ItemizedCosts, LegacyVariableCosts, calculate_profitability_metrics
from engine.profitability import break_even, economics_for_all, period_profitability
from engine.proration import prorate_all


def mixed_reservations():
    return [
        make_reservation("R1", revenue=30000.0, source="Booking.com"),
        make_reservation("R2", check_in=date(2024, 3, 10), check_out=date(2024, 3, 14),
                         revenue=12000.0, source="Direct"),
        make_reservation("R3", check_in=date(2024, 2, 27), check_out=date(2024, 3, 3),
                         revenue=5000.0, source="Expedia"),
        make_reservation("R4", check_in=date(2024, 3, 29), check_out=date(2024, 4, 2),
                         revenue=8000.0, source="Mystery Wholesaler"),
    ]


class TestPeriodProfitability:
    """Period-level P&L."""

    @pytest.mark.parametrize("variable", [
        LegacyVariableCosts(),
        LegacyVariableCosts(cleaning_per_stay=40, laundry_monthly=900, amenities_monthly=300),
        ItemizedCosts((CostCategory("Supplies", 2500),)),
    ])
    def test_identity_holds(self, variable):
        settings = make_cost_settings(variable=variable, default_rate=0.1)
        profit = period_profitability(prorate_all(mixed_reservations(), MARCH_2024), settings, MARCH_2024)

        expected = (profit.total_revenue - profit.total_fixed
                    - profit.total_variable - profit.total_commissions)
        assert profit.net_profit == pytest.approx(expected)
        assert profit.total_costs == pytest.approx(
            profit.total_fixed + profit.total_variable + profit.total_commissions)

    def test_commissions_follow_resolver(self):
        settings = make_cost_settings(overrides={"booking.com": 0.15}, default_rate=0.1)
        reservations = prorate_all(mixed_reservations(), MARCH_2024)
        profit = period_profitability(reservations, settings, MARCH_2024)

        # Booking 15% override, Direct 0, Expedia table 18% on 2/5 of its stay, wholesaler default 10% on 2/4
        expected = 30000 * 0.15 + 5000 * 0.4 * 0.18 + 8000 * 0.5 * 0.10
        assert profit.total_commissions == pytest.approx(expected)

    def test_zero_revenue_has_zero_margin(self):
        profit = period_profitability([], make_cost_settings(), MARCH_2024)

        assert profit.margin_percent == 0
        assert profit.avg_commission_rate == 0
        assert profit.net_profit == pytest.approx(-profit.period_fixed)

    def test_reservation_economics_use_period_variable_rate(self):
        variable = LegacyVariableCosts(laundry_monthly=1000)
        settings = make_cost_settings(variable=variable)
        reservations = prorate_all(mixed_reservations(), MARCH_2024)
        profit = period_profitability(reservations, settings, MARCH_2024)
        rows = economics_for_all(reservations, settings, MARCH_2024)

        assert sum(r.variable_costs for r in rows) == pytest.approx(profit.total_variable)
        assert sum(r.commission for r in rows) == pytest.approx(profit.total_commissions)


class TestBreakEven:
    """Break-even thresholds."""

    def _full_month(self, fixed_monthly, revenue=300000.0, variable=None):
        settings = make_cost_settings(fixed_monthly=fixed_monthly, variable=variable)
        reservations = prorate_all([
            make_reservation(check_in=date(2024, 3, 1), check_out=date(2024, 3, 31),
                             revenue=revenue, source="Direct"),
        ], MARCH_2024)
        profit = period_profitability(reservations, settings, MARCH_2024)
        return break_even(profit, settings, MARCH_2024)

    def test_thresholds(self):
        result = self._full_month(150000)

        assert result.adr == pytest.approx(10000.0)
        assert result.contribution_per_night == pytest.approx(10000.0)
        assert result.break_even_occupancy == pytest.approx(150000 / 30.44 / (10000 * 10) * 100)
        assert result.required_nights == pytest.approx(150000 / 30.44 * 30 / 10000)
        assert result.margin_of_safety_nights == pytest.approx(30 - result.required_nights)
        assert result.current_occupancy == pytest.approx(10.0)
        assert result.is_impossible is False
        assert result.is_below_break_even is False

    def test_break_even_price_covers_costs(self):
        result = self._full_month(150000)

        assert result.break_even_price == pytest.approx(150000 / 30.44 * 30 / 30)

    def test_monotonic_in_fixed_costs(self):
        occupancies = [self._full_month(fixed).break_even_occupancy
                       for fixed in range(0, 400001, 50000)]

        assert occupancies == sorted(occupancies)

    def test_negative_contribution_is_impossible(self):
        variable = ItemizedCosts((CostCategory("Everything", 600000),))
        result = self._full_month(150000, variable=variable)

        assert result.contribution_per_night < 0
        assert result.is_impossible is True
        assert result.break_even_occupancy == 0
        assert result.required_nights == 0
        assert result.is_below_break_even is True

    def test_no_sales(self):
        settings = make_cost_settings()
        profit = period_profitability([], settings, MARCH_2024)
        result = break_even(profit, settings, MARCH_2024)

        assert result.adr == 0
        assert result.break_even_price == 0
        assert result.is_impossible is True


class TestCalculateProfitabilityMetrics:
    """Standalone calculator over a data source."""

    def test_booking_scenario(self, booking_access):
        result = calculate_profitability_metrics(PROPERTY_ID, "2024-03-01", "2024-03-31", booking_access)

        assert result["period"] == MARCH_2024.to_dict()
        assert result["profitability"]["total_commissions"] == pytest.approx(4500.0)
        assert result["profitability"]["net_profit"] < 0
        assert result["occupancy_rate"] == pytest.approx(1.0)
        assert result["adr"] == pytest.approx(10000.0)

    def test_empty_window_never_falls_back(self, booking_access):
        result = calculate_profitability_metrics(PROPERTY_ID, date(2023, 3, 1), date(2023, 3, 31), booking_access)

        assert result["profitability"]["total_revenue"] == 0
        assert result["profitability"]["period"]["start"] == "2023-03-01"
