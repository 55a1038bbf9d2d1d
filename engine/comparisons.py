"""
Period comparisons: period over period, year over year, weekly pacing and
monthly trends. Every window is measured with the same engine accessors and
the same proration primitive as the main period.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

import pandas as pd

from .calculation_engine import (
    EngineState,
    get_channel_metrics,
    get_profitability,
    get_structure_metrics,
    initialize,
)
from .commissions import CommissionTable, DEFAULT_COMMISSION_TABLE
from .models import Period, Reservation
from .proration import prorate_all

if TYPE_CHECKING:
    from connectors.base import DataAccess

logger = logging.getLogger(__name__)

# Occupancy delta, in percentage points, that counts as ahead of or behind last year
PACING_TOLERANCE_PP = 2.0


def _change(current: float, previous: float) -> Dict[str, float]:
    change = current - previous
    return {
        "current": current,
        "previous": previous,
        "change": change,
        "change_percent": change / abs(previous) * 100 if previous else 0.0,
    }


def snapshot(state: EngineState) -> Dict[str, float]:
    """Headline figures of one state, the unit every comparison diffs."""
    structure = get_structure_metrics(state)
    profit = get_profitability(state)
    channels = get_channel_metrics(state)
    return {
        "revenue": structure["total_revenue"],
        "nights": structure["total_nights"],
        "adr": structure["adr"],
        "occupancy": structure["occupancy_rate"],
        "revpar": structure["revpar"],
        "net_profit": profit["net_profit"],
        "commissions": profit["total_commissions"],
        "direct_share": channels["direct_share"],
    }


def compare_states(current: EngineState, previous: EngineState) -> Dict[str, Any]:
    now = snapshot(current)
    before = snapshot(previous)
    result: Dict[str, Any] = {key: _change(now[key], before[key]) for key in now}
    result["current_period"] = current.effective_period.to_dict()
    result["previous_period"] = previous.effective_period.to_dict()
    return result


def shift_years(value: date, years: int) -> date:
    # Feb 29 lands on Feb 28 in non-leap years
    return (pd.Timestamp(value) - pd.DateOffset(years=years)).date()


def year_over_year_period(period: Period) -> Period:
    return Period.from_dates(shift_years(period.start, 1), shift_years(period.end, 1))


def _occupancy(nights: float, room_count: int, days: int) -> float:
    available = room_count * days
    return nights / available * 100 if available else 0.0


def booked_by(reservations: Iterable[Reservation], as_of: date) -> List[Reservation]:
    """Reservations already on the books at as_of. Rows without a booking date always are."""
    return [r for r in reservations if r.reservation_date is None or r.reservation_date <= as_of]


def window_on_books(
    reservations: Iterable[Reservation],
    window: Period,
    as_of: date,
    room_count: int,
) -> Dict[str, float]:
    """Prorated nights and revenue in window, counting only bookings made by as_of."""
    nights = revenue = 0.0
    for r in prorate_all(booked_by(reservations, as_of), window):
        nights += r.room_nights
        revenue += r.room_revenue_total
    return {
        "nights": nights,
        "revenue": revenue,
        "adr": revenue / nights if nights else 0.0,
        "occupancy": _occupancy(nights, room_count, window.days),
    }


def pace(
    reservations: Iterable[Reservation],
    as_of: date,
    weeks: int,
    room_count: int,
) -> Dict[str, Any]:
    """
    Weekly on-the-books figures against the same weeks one year earlier.

    Last year's weeks only count reservations booked by the same date one
    year before as_of, so both sides sit the same number of days before
    arrival.
    """
    reservations = list(reservations)
    ly_as_of = shift_years(as_of, 1)
    rows: List[Dict[str, Any]] = []

    for index in range(weeks):
        start = as_of + timedelta(days=7 * index)
        bucket = Period(start, start + timedelta(days=7), 7)
        current = window_on_books(reservations, bucket, as_of, room_count)
        last_year = window_on_books(reservations, year_over_year_period(bucket), ly_as_of, room_count)

        rows.append({
            "week_start": bucket.start.isoformat(),
            "week_end": bucket.end.isoformat(),
            "nights_on_books": current["nights"],
            "revenue_on_books": current["revenue"],
            "adr": current["adr"],
            "occupancy": current["occupancy"],
            "last_year_nights": last_year["nights"],
            "last_year_revenue": last_year["revenue"],
            "last_year_adr": last_year["adr"],
            "last_year_occupancy": last_year["occupancy"],
            "delta_pp": current["occupancy"] - last_year["occupancy"],
            "delta_revenue": current["revenue"] - last_year["revenue"],
        })

    total_days = 7 * weeks
    occupancy = _occupancy(sum(r["nights_on_books"] for r in rows), room_count, total_days)
    ly_occupancy = _occupancy(sum(r["last_year_nights"] for r in rows), room_count, total_days)
    delta = occupancy - ly_occupancy

    if delta > PACING_TOLERANCE_PP:
        trend = "ahead"
    elif delta < -PACING_TOLERANCE_PP:
        trend = "behind"
    else:
        trend = "on_track"

    return {
        "weeks": rows,
        "occupancy": occupancy,
        "last_year_occupancy": ly_occupancy,
        "delta_pp": delta,
        "trend": trend,
    }


def weekly_pacing(state: EngineState, weeks: int = 4) -> Dict[str, Any]:
    """Pacing for the weeks starting at the state's as_of date."""
    return pace(state.all_reservations, state.as_of, weeks, state.cost_settings.room_count)


def month_periods(months: int, as_of: Optional[date] = None) -> List[Period]:
    """Calendar months, oldest first, ending with the month containing as_of."""
    anchor = pd.Timestamp(as_of or date.today())
    result = []
    for month in pd.period_range(end=anchor.to_period("M"), periods=months, freq="M"):
        start = month.start_time.date()
        end = (month + 1).start_time.date()
        result.append(Period.from_dates(start, end))
    return result


def monthly_trends(
    property_id: str,
    data_access: "DataAccess",
    months: int = 6,
    as_of: Optional[date] = None,
    commission_table: CommissionTable = DEFAULT_COMMISSION_TABLE,
) -> List[Dict[str, Any]]:
    series = []
    for period in month_periods(months, as_of):
        state = initialize(
            property_id, period, data_access, commission_table,
            as_of=as_of, allow_fallback=False,
        )
        figures = snapshot(state)
        series.append({
            "month": period.start.strftime("%Y-%m"),
            "revenue": figures["revenue"],
            "nights": figures["nights"],
            "adr": figures["adr"],
            "occupancy": figures["occupancy"],
            "revpar": figures["revpar"],
            "net_profit": figures["net_profit"],
        })
    logger.debug(f"Monthly trends for {property_id}: {len(series)} months")
    return series
