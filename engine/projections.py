"""
Forward-looking views: what is on the books for the coming weeks, how it
paces against last year, where the gaps are, and what cash the arrivals
should bring in.

Every window goes through the same proration primitive as the engine
period, so an on-the-books figure and a reported figure for the same dates
always agree.
"""

from __future__ import annotations

import logging
import math
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from .calculation_engine import load_property_data
from .comparisons import pace
from .models import Period, Reservation
from .proration import prorate_all

if TYPE_CHECKING:
    from connectors.base import DataAccess

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 90
PICKUP_DAYS = 7

# A week is a gap when it is this empty and this far behind last year
GAP_LOW_OCCUPANCY_PCT = 20.0
GAP_PACE_DELTA_PP = -5.0
# ...or when it sells well but below last year's rate
GAP_ADR_MIN_OCCUPANCY_PCT = 30.0
GAP_ADR_RATIO = 0.9


def horizon_period(as_of: date, horizon: int = DEFAULT_HORIZON_DAYS) -> Period:
    return Period(as_of, as_of + timedelta(days=horizon), max(1, horizon))


def otb_summary(
    reservations: Iterable[Reservation],
    as_of: date,
    horizon: int,
    room_count: int,
) -> Dict[str, Any]:
    """
    Revenue, occupancy and pending balance on the books for the horizon,
    plus the pickup of the last PICKUP_DAYS.

    Balances are scaled by the share of the stay inside the horizon, like
    revenue.
    """
    reservations = list(reservations)
    window = horizon_period(as_of, horizon)
    prorated = prorate_all(reservations, window)

    revenue = sum(r.room_revenue_total for r in prorated)
    nights = sum(r.room_nights for r in prorated)
    pending = sum(r.balance_due * r.ratio for r in prorated)
    available = room_count * window.days

    pickup_from = as_of - timedelta(days=PICKUP_DAYS)
    pickup = [
        r for r in reservations
        if r.is_active
        and r.reservation_date is not None
        and r.reservation_date >= pickup_from
        and r.check_in >= as_of
    ]

    return {
        "horizon": window.to_dict(),
        "revenue_on_books": revenue,
        "nights_on_books": nights,
        "occupancy_on_books": nights / available * 100 if available else 0.0,
        "pending_collections": pending,
        "pickup": {
            "days": PICKUP_DAYS,
            "reservations": len(pickup),
            "revenue": sum(r.room_revenue_total for r in pickup),
        },
    }


def detect_gaps(weeks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flag pacing weeks that are empty and slow, or full but cheap."""
    gaps = []
    for index, week in enumerate(weeks):
        if week["occupancy"] < GAP_LOW_OCCUPANCY_PCT and week["delta_pp"] < GAP_PACE_DELTA_PP:
            gaps.append({
                "id": f"gap-low-occupancy-{index}",
                "week_start": week["week_start"],
                "type": "low_occupancy",
                "severity": "warning",
                "title": "Low occupancy ahead",
                "description": (
                    f"The week of {week['week_start']} is {abs(week['delta_pp']):.1f} points "
                    f"behind last year."
                ),
                "occupancy": week["occupancy"],
                "last_year_occupancy": week["last_year_occupancy"],
                "action_type": "visibility_boost",
            })

        if (week["occupancy"] > GAP_ADR_MIN_OCCUPANCY_PCT
                and week["adr"] < week["last_year_adr"] * GAP_ADR_RATIO):
            gaps.append({
                "id": f"gap-low-adr-{index}",
                "week_start": week["week_start"],
                "type": "low_adr",
                "severity": "info",
                "title": "Rate below last year",
                "description": (
                    f"The week of {week['week_start']} sells at {week['adr']:,.0f} "
                    f"against {week['last_year_adr']:,.0f} last year."
                ),
                "occupancy": week["occupancy"],
                "last_year_occupancy": week["last_year_occupancy"],
                "action_type": "price_adjustment",
            })
    return gaps


def weekly_cash_forecast(
    reservations: Iterable[Reservation],
    as_of: date,
    horizon: int = DEFAULT_HORIZON_DAYS,
) -> List[Dict[str, Any]]:
    """Expected revenue, deposits already paid and the remainder, by arrival week."""
    active = [r for r in reservations if r.is_active]
    rows = []
    for index in range(math.ceil(horizon / 7)):
        start = as_of + timedelta(days=7 * index)
        end = start + timedelta(days=7)
        arrivals = [r for r in active if start <= r.check_in < end]
        expected = sum(r.room_revenue_total for r in arrivals)
        paid = sum(r.paid_amount for r in arrivals)
        rows.append({
            "week_start": start.isoformat(),
            "week_end": end.isoformat(),
            "arrivals": len(arrivals),
            "expected": expected,
            "already_paid": paid,
            "pending": expected - paid,
        })
    return rows


def get_projections(
    property_id: str,
    data_access: "DataAccess",
    horizon: int = DEFAULT_HORIZON_DAYS,
    as_of: Optional[date] = None,
) -> Dict[str, Any]:
    """On-the-books summary, weekly pacing, gaps and cash forecast from as_of onward."""
    as_of = as_of or date.today()
    data = load_property_data(property_id, data_access)
    room_count = data.cost_settings.room_count

    pacing = pace(data.all_reservations, as_of, math.ceil(horizon / 7), room_count)
    gaps = detect_gaps(pacing["weeks"])
    if gaps:
        logger.info(f"Found {len(gaps)} pacing gaps for {property_id} in the next {horizon} days")

    return {
        "property_id": property_id,
        "as_of": as_of.isoformat(),
        "horizon_days": horizon,
        "summary": otb_summary(data.all_reservations, as_of, horizon, room_count),
        "pacing": pacing,
        "gaps": gaps,
        "cash_forecast": weekly_cash_forecast(data.all_reservations, as_of, horizon),
    }
