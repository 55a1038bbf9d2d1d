"""
Tests for the Calculation Engine
================================

Period resolution, fallback, and every metric accessor over EngineState.
"""
from datetime import date, datetime, timedelta

import pytest

from conftest import MARCH_2024, PROPERTY_ID, make_cost_settings, make_reservation
from connectors import InMemoryDataAccess
from engine import (
    EconomicsFilters,
    ImportFile,
    Period,
    Transaction,
    get_cash_metrics,
    get_channel_metrics,
    get_cost_breakdown,
    get_data_health,
    get_dow_performance,
    get_effective_period,
    get_home_metrics,
    get_original_period,
    get_profitability,
    get_reservation_economics_list,
    get_reservation_economics_summary,
    get_structure_metrics,
    initialize,
    is_using_fallback_period,
)
from engine.calculation_engine import resolve_effective_period
from engine.models import DataDateRange


class TestBookingScenario:
    """Ten rooms, one 3-night Booking.com stay worth 30000, 150000 fixed per month."""

    def test_profitability(self, booking_access):
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access)
        profit = get_profitability(state)

        assert profit["total_commissions"] == pytest.approx(4500.0)
        assert profit["fixed_per_day"] == pytest.approx(4927.7, abs=0.1)
        assert profit["period_fixed"] == pytest.approx(147830, rel=1e-4)
        assert profit["total_variable"] == 0
        assert profit["net_profit"] < 0
        assert profit["net_profit"] == pytest.approx(30000 - profit["period_fixed"] - 4500)

    def test_structure(self, booking_access):
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access)
        structure = get_structure_metrics(state)

        assert structure["available_nights"] == 300
        assert structure["occupancy_rate"] == pytest.approx(1.0)
        assert structure["adr"] == pytest.approx(10000.0)
        assert structure["revpar"] == pytest.approx(100.0)
        assert structure["nrevpar"] == pytest.approx(85.0)
        assert structure["confidence"] == "high"

    def test_reservation_economics(self, booking_access):
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access)
        rows = get_reservation_economics_list(state)

        assert len(rows) == 1
        row = rows[0]
        assert row.commission == pytest.approx(4500.0)
        assert row.commission_rate == pytest.approx(0.15)
        # One room's daily fixed share for each of the 3 nights
        assert row.fixed_allocated == pytest.approx(150000 / 30.44 / 10 * 3)
        assert row.net_profit == pytest.approx(30000 - 4500 - row.fixed_allocated)
        assert row.is_unprofitable is False
        assert row.source_category == "OTA"

    def test_cost_breakdown(self, booking_access):
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access)
        costs = get_cost_breakdown(state)

        assert costs["fixed_monthly"] == 150000
        assert costs["fixed_per_room_day"] == pytest.approx(492.77, abs=0.01)
        assert costs["variable_per_night"] == 0


class TestPeriodResolution:
    """Fallback to the most recent data when the requested window is empty."""

    def test_fallback_for_old_data(self, booking_settings):
        today = date.today()
        access = InMemoryDataAccess()
        access.set_cost_settings(PROPERTY_ID, booking_settings)
        access.add_reservations(PROPERTY_ID, [
            make_reservation(check_in=today - timedelta(days=400), check_out=today - timedelta(days=397)),
        ])
        requested = Period.last_days(30, end=today)

        state = initialize(PROPERTY_ID, requested, access)

        assert is_using_fallback_period(state) is True
        assert get_effective_period(state).end == today - timedelta(days=397)
        # Never starts before the earliest data
        assert get_effective_period(state).start == today - timedelta(days=400)
        assert get_original_period(state) == requested
        assert len(state.reservations) == 1
        assert get_profitability(state)["total_revenue"] == pytest.approx(30000.0)

    def test_transactions_are_latest_date(self):
        date_range = DataDateRange(
            reservations_min=date(2022, 1, 1), reservations_max=date(2022, 6, 1),
            transactions_min=date(2022, 1, 1), transactions_max=date(2022, 7, 15),
        )
        period, used = resolve_effective_period(MARCH_2024, 0, True, date_range)

        assert used is True
        assert period.end == date(2022, 7, 15)
        assert period.days == 30

    def test_no_fallback_when_period_has_data(self, booking_access):
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access)

        assert is_using_fallback_period(state) is False
        assert get_effective_period(state) == MARCH_2024

    def test_no_fallback_without_any_data(self):
        state = initialize(PROPERTY_ID, MARCH_2024, InMemoryDataAccess())

        assert is_using_fallback_period(state) is False
        assert get_profitability(state)["total_revenue"] == 0
        assert get_profitability(state)["margin_percent"] == 0
        assert get_structure_metrics(state)["confidence"] == "low"
        assert get_data_health(state)["level"] == "low"

    def test_fallback_can_be_disabled(self, booking_settings):
        access = InMemoryDataAccess()
        access.set_cost_settings(PROPERTY_ID, booking_settings)
        access.add_reservations(PROPERTY_ID, [
            make_reservation(check_in=date(2020, 1, 1), check_out=date(2020, 1, 4)),
        ])
        state = initialize(PROPERTY_ID, MARCH_2024, access, allow_fallback=False)

        assert is_using_fallback_period(state) is False
        assert state.reservations == ()

    def test_cancelled_and_deleted_are_excluded(self, booking_access):
        booking_access.add_reservations(PROPERTY_ID, [
            make_reservation("R2", status="Cancelled", revenue=9999.0),
            make_reservation("R3", status="No Show", revenue=9999.0),
            make_reservation("R4", deleted=True, revenue=9999.0),
        ])
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access)

        assert [r.reservation_number for r in state.reservations] == ["R1"]
        assert all(not r.deleted for r in state.all_reservations)

    def test_missing_cost_settings_degrade_to_zero(self):
        access = InMemoryDataAccess()
        access.add_reservations(PROPERTY_ID, [make_reservation()])
        state = initialize(PROPERTY_ID, MARCH_2024, access)
        profit = get_profitability(state)

        assert profit["total_fixed"] == 0
        # Built-in table still applies: Booking.com at 15%
        assert profit["total_commissions"] == pytest.approx(4500.0)

    def test_transactions_cover_whole_end_day(self, booking_access):
        booking_access.add_transactions(PROPERTY_ID, [
            Transaction(timestamp=datetime(2024, 3, 1, 0, 0), credits=100.0),
            Transaction(timestamp=datetime(2024, 3, 31, 23, 0), credits=100.0),
            Transaction(timestamp=datetime(2024, 4, 1, 0, 30), credits=100.0),
            Transaction(timestamp=datetime(2024, 2, 29, 23, 59), credits=100.0),
        ])
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access)

        assert len(state.transactions) == 2


class TestCashAndHome:
    """Cash metrics come from the ledger, not from reservations."""

    @pytest.fixture
    def state(self, booking_access):
        booking_access.add_transactions(PROPERTY_ID, [
            Transaction(timestamp=datetime(2024, 3, 5, 10), credits=1000.0),
            Transaction(timestamp=datetime(2024, 3, 6, 12), debits=300.0, void_flag=True),
            Transaction(timestamp=datetime(2024, 3, 7, 9), credits=-200.0, refund_flag=True),
        ])
        return initialize(PROPERTY_ID, MARCH_2024, booking_access, as_of=date(2024, 3, 10))

    def test_cash_totals_and_breakers(self, state):
        cash = get_cash_metrics(state)

        assert cash["total_credits"] == pytest.approx(800.0)
        assert cash["total_debits"] == 0
        assert cash["cash_breakers"]["refunds"] == pytest.approx(200.0)
        assert cash["cash_breakers"]["voids"] == pytest.approx(300.0)
        assert [d["date"] for d in cash["daily_flow"]] == ["2024-03-05", "2024-03-07"]

    def test_runway_when_not_burning_cash(self, state):
        assert get_cash_metrics(state)["runway"]["runway_days"] == 999
        assert get_cash_metrics(state)["runway"]["status"] == "safe"

    def test_runway_when_burning_cash(self):
        access = InMemoryDataAccess()
        access.set_cost_settings(PROPERTY_ID, make_cost_settings(starting_cash_balance=3000.0))
        access.add_reservations(PROPERTY_ID, [make_reservation()])
        access.add_transactions(PROPERTY_ID, [
            Transaction(timestamp=datetime(2024, 3, 2, 10), debits=3000.0),
        ])
        state = initialize(PROPERTY_ID, MARCH_2024, access)
        runway = get_cash_metrics(state)["runway"]

        assert runway["avg_net_daily"] == pytest.approx(-100.0)
        assert runway["runway_days"] == 30
        assert runway["status"] == "danger"

    def test_home_metrics(self, state):
        home = get_home_metrics(state)

        assert home["collected"] == pytest.approx(800.0)
        assert home["charged"] == pytest.approx(30000.0)
        assert home["savings_potential"]["top_channel"] == "Booking.com"
        assert home["savings_potential"]["value"] == pytest.approx(30000 * 0.10 * 0.15)

    def test_ar_aging_buckets(self, booking_access):
        booking_access.add_reservations(PROPERTY_ID, [
            make_reservation("R2", check_in=date(2024, 3, 15), check_out=date(2024, 3, 17),
                             revenue=200.0, balance_due=200.0),
            make_reservation("R3", check_in=date(2024, 3, 2), check_out=date(2024, 3, 4),
                             revenue=500.0, balance_due=500.0),
        ])
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access, as_of=date(2024, 3, 10))
        aging = get_cash_metrics(state)["ar_aging"]

        assert aging["overdue"] == pytest.approx(500.0)
        assert aging["next_7_days"] == pytest.approx(200.0)
        assert aging["total"] == pytest.approx(700.0)


class TestChannels:
    """Channel mix, shares and profit per night."""

    @pytest.fixture
    def state(self, booking_access):
        booking_access.add_reservations(PROPERTY_ID, [
            make_reservation("R2", check_in=date(2024, 3, 10), check_out=date(2024, 3, 12),
                             revenue=20000.0, source="Direct"),
        ])
        return initialize(PROPERTY_ID, MARCH_2024, booking_access)

    def test_shares_and_commission(self, state):
        channels = get_channel_metrics(state)

        assert channels["total_revenue"] == pytest.approx(50000.0)
        assert channels["ota_share"] == pytest.approx(60.0)
        assert channels["direct_share"] == pytest.approx(40.0)
        assert channels["avg_effective_commission"] == pytest.approx(9.0)
        assert [c["name"] for c in channels["channels"]] == ["Booking.com", "Direct"]

    def test_best_and_toxic_channel(self, state):
        channels = get_channel_metrics(state)

        assert channels["best_channel_by_profit_per_night"] == "Direct"
        assert channels["worst_channel_by_profit_per_night"] == "Booking.com"
        assert channels["toxic_channel"]["name"] == "Booking.com"

    def test_empty_channel_metrics(self):
        state = initialize(PROPERTY_ID, MARCH_2024, InMemoryDataAccess())
        channels = get_channel_metrics(state)

        assert channels["channels"] == []
        assert channels["toxic_channel"] is None


class TestEconomicsFilters:
    """Filtering of reservation-level economics."""

    @pytest.fixture
    def state(self, booking_access):
        booking_access.add_reservations(PROPERTY_ID, [
            make_reservation("R2", check_in=date(2024, 3, 20), check_out=date(2024, 3, 25),
                             revenue=100.0, source="Expedia"),
        ])
        return initialize(PROPERTY_ID, MARCH_2024, booking_access)

    def test_unprofitable_only(self, state):
        rows = get_reservation_economics_list(state, EconomicsFilters(unprofitable_only=True))

        assert [r.reservation_number for r in rows] == ["R2"]

    def test_source_filter_is_case_insensitive(self, state):
        rows = get_reservation_economics_list(state, EconomicsFilters(source="booking.com"))

        assert [r.reservation_number for r in rows] == ["R1"]

    def test_summary(self, state):
        summary = get_reservation_economics_summary(state)

        assert summary["count"] == 2
        assert summary["unprofitable_count"] == 1
        assert summary["unprofitable_loss"] < 0
        assert summary["worst_reservations"][0]["reservation_number"] == "R2"
        assert {c["channel"] for c in summary["by_channel"]} == {"Booking.com", "Expedia"}

    def test_empty_summary(self, state):
        summary = get_reservation_economics_summary(state, EconomicsFilters(source="Airbnb"))

        assert summary["count"] == 0
        assert summary["by_channel"] == []


class TestDataHealth:
    """Data-health score and level."""

    REPORTS = ("expanded_transactions", "reservations_financials", "channel_performance")

    def _files(self, uploaded_at):
        return [ImportFile(report_type=r, status="processed", uploaded_at=uploaded_at) for r in self.REPORTS]

    def test_all_reports_recent(self, booking_access):
        booking_access.add_import_files(PROPERTY_ID, self._files(datetime(2024, 3, 9)))
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access, as_of=date(2024, 3, 10))
        health = get_data_health(state)

        assert health["score"] == 100
        assert health["level"] == "high"

    def test_stale_import_costs_ten_points(self, booking_access):
        booking_access.add_import_files(PROPERTY_ID, self._files(datetime(2024, 2, 1)))
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access, as_of=date(2024, 3, 10))

        assert get_data_health(state)["score"] == 90

    def test_missing_channel_report(self, booking_access):
        booking_access.add_import_files(PROPERTY_ID, self._files(datetime(2024, 3, 9))[:2])
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access, as_of=date(2024, 3, 10))
        health = get_data_health(state)

        assert health["score"] == 80
        assert health["has_channel_performance"] is False

    def test_no_data(self):
        state = initialize(PROPERTY_ID, MARCH_2024, InMemoryDataAccess())
        health = get_data_health(state)

        assert health["score"] == 10
        assert health["months_covered"] == 0
        assert health["earliest_date"] is None


class TestDowPerformance:
    """Nights and money per weekday; March 2024 starts on a Friday."""

    def test_stay_is_spread_over_its_nights(self, booking_access):
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access)
        rows = get_dow_performance(state)

        assert [r["day_label"] for r in rows] == ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
        assert [r["room_nights"] for r in rows] == [0, 1, 1, 1, 0, 0, 0]
        tuesday = rows[1]
        assert tuesday["revenue"] == pytest.approx(10000.0)
        assert tuesday["adr"] == pytest.approx(10000.0)
        assert tuesday["occupancy_rate"] == pytest.approx(2.5)
        assert tuesday["net_profit"] == pytest.approx(10000 - 4 * 150000 / 30.44)

    def test_weekday_occurrences(self, booking_access):
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access)

        assert [r["occurrences"] for r in get_dow_performance(state)] == [4, 4, 4, 4, 5, 5, 4]

    def test_stay_starting_before_period(self, booking_access):
        booking_access.add_reservations(PROPERTY_ID, [
            make_reservation("EARLY", check_in=date(2024, 2, 28), check_out=date(2024, 3, 2), revenue=3000.0),
        ])
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access)
        rows = get_dow_performance(state)

        # Only Friday March 1 falls inside the period
        assert rows[4]["room_nights"] == pytest.approx(1.0)
        assert rows[4]["revenue"] == pytest.approx(1000.0)
        assert rows[3]["room_nights"] == pytest.approx(1.0)

    def test_empty_state(self):
        state = initialize(PROPERTY_ID, MARCH_2024, InMemoryDataAccess())
        rows = get_dow_performance(state)

        assert len(rows) == 7
        assert all(r["revenue"] == 0 and r["adr"] == 0 for r in rows)
