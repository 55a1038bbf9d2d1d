"""Shared fixtures for the engine test suites."""
import os
import sys
from datetime import date

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from connectors import InMemoryDataAccess  # noqa: E402
from engine import (  # noqa: E402
    ChannelCommissions,
    CostCategory,
    CostSettings,
    ItemizedCosts,
    LegacyVariableCosts,
    Period,
    Reservation,
)

PROPERTY_ID = "hotel-1"
MARCH_2024 = Period.from_dates(date(2024, 3, 1), date(2024, 3, 31))


def make_reservation(number="R1", check_in=date(2024, 3, 5), check_out=date(2024, 3, 8),
                     revenue=30000.0, source="Booking.com", status="Confirmed",
                     nights=None, **kwargs):
    """Reservation whose room nights default to the length of the stay."""
    return Reservation(
        reservation_number=number,
        check_in=check_in,
        check_out=check_out,
        status=status,
        room_nights=float((check_out - check_in).days if nights is None else nights),
        room_revenue_total=revenue,
        source=source,
        **kwargs,
    )


def make_cost_settings(room_count=10, fixed_monthly=150000.0, overrides=None,
                       default_rate=0.0, variable=None, starting_cash_balance=0.0):
    return CostSettings(
        room_count=room_count,
        starting_cash_balance=starting_cash_balance,
        fixed_costs=ItemizedCosts((CostCategory("Operations", fixed_monthly),)),
        variable_costs=variable or LegacyVariableCosts(),
        channel_commissions=ChannelCommissions(default_rate, dict(overrides or {})),
    )


@pytest.fixture
def booking_settings():
    """Ten rooms, 150000 fixed per month, Booking.com at 15%, no variable costs."""
    return make_cost_settings(overrides={"booking.com": 0.15})


@pytest.fixture
def booking_access(booking_settings):
    """One 3-night Booking.com stay worth 30000 in March 2024."""
    access = InMemoryDataAccess()
    access.set_cost_settings(PROPERTY_ID, booking_settings)
    access.add_reservations(PROPERTY_ID, [make_reservation()])
    return access
