"""
Standalone calculators usable without keeping an EngineState around.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional

from .calculation_engine import (
    get_break_even,
    get_profitability,
    get_structure_metrics,
    initialize,
)
from .commissions import CommissionTable, DEFAULT_COMMISSION_TABLE
from .models import CostSettings, Period
from .pricing import simulate_minimum_prices
from .proration import prorate_all

if TYPE_CHECKING:
    from connectors.base import DataAccess

logger = logging.getLogger(__name__)

PRICING_LOOKBACK_DAYS = 90


def calculate_profitability_metrics(
    property_id: str,
    start: Any,
    end: Any,
    data_access: "DataAccess",
    commission_table: CommissionTable = DEFAULT_COMMISSION_TABLE,
) -> Dict[str, Any]:
    """
    Profitability, structure and break-even for exactly the given window.

    No fallback is applied: a window without data reports zeros.
    """
    period = Period.from_dates(start, end)
    state = initialize(property_id, period, data_access, commission_table, allow_fallback=False)
    structure = get_structure_metrics(state)
    return {
        "property_id": property_id,
        "period": period.to_dict(),
        "profitability": get_profitability(state),
        "break_even": get_break_even(state),
        "occupancy_rate": structure["occupancy_rate"],
        "adr": structure["adr"],
        "revpar": structure["revpar"],
    }


def calculate_minimum_price(
    property_id: str,
    margin_pct: float,
    data_access: "DataAccess",
    days: int = PRICING_LOOKBACK_DAYS,
    end: Optional[date] = None,
    commission_table: CommissionTable = DEFAULT_COMMISSION_TABLE,
) -> Dict[str, Any]:
    """
    Minimum sellable rate for margin_pct, per channel and blended.

    Channels and nights come from the property's reservations over the last
    `days` days, prorated to that window.
    """
    end_date = end or date.today()
    window = Period(end_date - timedelta(days=days), end_date, max(1, days))

    cost_settings = data_access.get_cost_settings(property_id) or CostSettings.empty()
    reservations = [r for r in data_access.get_reservations_by_property(property_id) or () if not r.deleted]
    prorated = prorate_all(reservations, window)

    logger.info(f"Minimum price for {property_id} at {margin_pct:.1f}% margin over {len(prorated)} reservations")
    result = simulate_minimum_prices(prorated, cost_settings, margin_pct, commission_table)
    result["property_id"] = property_id
    result["period"] = window.to_dict()
    return result
