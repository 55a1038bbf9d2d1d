"""
Pricing simulator.

Minimum sellable rate for a target margin:

    min_price = base_cost * (1 + margin_pct / 100) / (1 - commission_rate)

where base_cost is the variable cost per night plus one room's daily share
of fixed costs.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

import numpy as np

from .commissions import (
    CommissionTable,
    DEFAULT_COMMISSION_TABLE,
    normalize_channel,
    resolve_commission_rate,
)
from .costs import fixed_per_day, variable_cost_per_night
from .models import CostSettings, ProratedReservation

logger = logging.getLogger(__name__)


def minimum_price(base_cost: float, margin_pct: float, commission_rate: float) -> float:
    """Rate that leaves margin_pct over base_cost once the commission is paid; 0 if unreachable."""
    if commission_rate >= 1:
        return 0.0
    return base_cost * (1 + margin_pct / 100) / (1 - commission_rate)


def _revenue_by_channel(reservations: Sequence[ProratedReservation]) -> Dict[str, Dict[str, Any]]:
    channels: Dict[str, Dict[str, Any]] = {}
    for r in reservations:
        key = normalize_channel(r.source)
        entry = channels.setdefault(key, {"name": r.source or "Direct", "revenue": 0.0, "nights": 0.0})
        entry["revenue"] += r.room_revenue_total
        entry["nights"] += r.room_nights
    return channels


def simulate_minimum_prices(
    reservations: Sequence[ProratedReservation],
    cost_settings: CostSettings,
    margin_pct: float,
    table: CommissionTable = DEFAULT_COMMISSION_TABLE,
) -> Dict[str, Any]:
    """
    Minimum rate per observed channel and one blended rate.

    Args:
        reservations: Active reservations prorated to the analysis window
        cost_settings: Resolved cost configuration
        margin_pct: Target margin over base cost, in percent
        table: Commission table used to resolve channel rates

    Returns:
        Dictionary with the blended minimum price, its components and one
        entry per channel
    """
    total_nights = sum(r.room_nights for r in reservations)
    variable = variable_cost_per_night(cost_settings, total_nights, len(reservations))
    fixed_per_room_night = fixed_per_day(cost_settings) / cost_settings.effective_room_count
    base_cost = variable.per_night_total + fixed_per_room_night

    channels: List[Dict[str, Any]] = []
    rates: List[float] = []
    revenues: List[float] = []
    for key, entry in _revenue_by_channel(reservations).items():
        rate = resolve_commission_rate(key, cost_settings, table)
        price = minimum_price(base_cost, margin_pct, rate)
        channels.append({
            "channel": entry["name"],
            "commission_rate": rate,
            "revenue": entry["revenue"],
            "nights": entry["nights"],
            "min_price": price,
            "is_reachable": rate < 1,
        })
        rates.append(rate)
        revenues.append(entry["revenue"])

    if revenues and sum(revenues) > 0:
        avg_commission_rate = float(np.average(rates, weights=revenues))
    else:
        avg_commission_rate = cost_settings.channel_commissions.default_rate

    blended = minimum_price(base_cost, margin_pct, avg_commission_rate)
    logger.debug(
        f"Minimum price for {margin_pct:.1f}% margin: base {base_cost:.2f}, "
        f"avg commission {avg_commission_rate:.3f} -> {blended:.2f}"
    )

    return {
        "margin_pct": margin_pct,
        "avg_commission_rate": avg_commission_rate,
        "min_price": blended,
        "is_reachable": avg_commission_rate < 1,
        "components": {
            "fixed_cost_per_night": fixed_per_room_night,
            "variable_cost_per_night": variable.per_night_total,
            "base_cost_per_night": base_cost,
            "markup_amount": base_cost * margin_pct / 100,
            "commission_impact": blended * avg_commission_rate,
        },
        "channels": sorted(channels, key=lambda c: c["min_price"], reverse=True),
    }
