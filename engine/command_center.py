"""
Command center aggregator.

Composes engine accessors for the current period, the preceding period of
equal length and the same period one year earlier into one dashboard-shaped
payload. Failures never reach the caller: the aggregator logs them and
returns the same shape filled with zeros.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import TYPE_CHECKING, Any, Dict, Optional

from .calculation_engine import (
    EngineState,
    build_state,
    get_break_even_model,
    get_cash_metrics,
    get_channel_metrics,
    get_cost_breakdown,
    get_data_health,
    get_home_metrics,
    get_profitability,
    get_structure_metrics,
    load_property_data,
    resolve_period,
)
from .commissions import CommissionTable, DEFAULT_COMMISSION_TABLE
from .comparisons import compare_states, weekly_pacing, year_over_year_period
from .models import CostSettings, Period
from .pricing import minimum_price
from .settings import LOW_OCCUPANCY_PCT

if TYPE_CHECKING:
    from connectors.base import DataAccess

logger = logging.getLogger(__name__)

MARGIN_TARGETS = (10, 20, 30)
GOOD_OCCUPANCY_PCT = 70
PACING_WEEKS = 4


def _round(value: float, digits: int = 2) -> float:
    return round(float(value), digits)


# ----------------------------------------------------------------------
# Sections
# ----------------------------------------------------------------------

def _health(state: EngineState, comparison: Dict[str, Any], be: Dict[str, Any],
            cash: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    structure = get_structure_metrics(state)
    profit = get_profitability(state)
    net = comparison["net_profit"]

    if net["change"] > 0:
        trend = "up"
    elif net["change"] < 0:
        trend = "down"
    else:
        trend = "stable"

    occupancy = structure["occupancy_rate"]
    if occupancy >= GOOD_OCCUPANCY_PCT:
        occupancy_status = "good"
    elif occupancy >= LOW_OCCUPANCY_PCT:
        occupancy_status = "warning"
    else:
        occupancy_status = "bad"

    adr_status = "good" if structure["adr"] >= be["break_even_price"] else "bad"
    if structure["total_nights"] == 0:
        adr_status = "warning"
    revpar_status = "good" if comparison["revpar"]["change"] >= 0 else "warning"
    goppar = structure["goppar"]
    goppar_status = "good" if goppar > 0 else "bad" if goppar < 0 else "warning"

    # Biggest mover between periods
    drivers = {
        "occupancy": comparison["occupancy"]["change_percent"],
        "adr": comparison["adr"]["change_percent"],
        "commissions": comparison["commissions"]["change_percent"],
    }
    driver = max(drivers, key=lambda k: abs(drivers[k]))
    if drivers[driver] == 0:
        changes = {"driver": None, "explanation": "No change against the previous period", "impact": 0.0}
    else:
        changes = {
            "driver": driver,
            "explanation": f"{driver} changed {drivers[driver]:+.1f}% against the previous period",
            "impact": _round(net["change"]),
        }

    return {
        "net_profit": {
            "value": _round(profit["net_profit"]),
            "is_positive": profit["net_profit"] >= 0,
            "trend": trend,
            "vs_last_period": _round(net["change"]),
            "vs_last_period_percent": _round(net["change_percent"], 1),
        },
        "kpis": {
            "occupancy": {"value": _round(occupancy, 1), "status": occupancy_status},
            "adr": {"value": _round(structure["adr"]), "status": adr_status},
            "revpar": {"value": _round(structure["revpar"]), "status": revpar_status},
            "goppar": {"value": _round(goppar), "status": goppar_status},
        },
        "changes": changes,
        "top_alert": _top_alert(profit, be, cash, data),
    }


def _top_alert(profit: Dict[str, Any], be: Dict[str, Any],
               cash: Dict[str, Any], data: Dict[str, Any]) -> Optional[Dict[str, str]]:
    if cash["runway"]["status"] == "danger":
        return {"type": "cash_risk", "severity": "critical",
                "title": f"{cash['runway']['runway_days']} days of cash runway left"}
    if cash["ar_aging"]["overdue"] > 0:
        return {"type": "collections", "severity": "warning",
                "title": f"{cash['ar_aging']['overdue']:.0f} overdue from past stays"}
    if profit["unprofitable_count"] > 0:
        return {"type": "unprofitable", "severity": "warning",
                "title": f"{profit['unprofitable_count']} reservations lose money"}
    if be["is_below_break_even"] and profit["total_nights"] > 0:
        return {"type": "breakeven", "severity": "warning",
                "title": "Occupancy is below break-even"}
    if data["level"] == "low":
        return {"type": "data_quality", "severity": "info",
                "title": "Import the missing reports for reliable numbers"}
    return None


def _revpar_decomposition(comparison: Dict[str, Any]) -> Dict[str, Any]:
    occ = comparison["occupancy"]
    adr = comparison["adr"]
    occupancy_contribution = (occ["current"] - occ["previous"]) / 100 * adr["previous"]
    adr_contribution = (adr["current"] - adr["previous"]) * occ["current"] / 100

    a, b = abs(occupancy_contribution), abs(adr_contribution)
    if a and b and 0.8 <= a / b <= 1.25:
        driver = "both"
    elif a >= b:
        driver = "occupancy"
    else:
        driver = "adr"
    return {
        "occupancy_contribution": _round(occupancy_contribution),
        "adr_contribution": _round(adr_contribution),
        "primary_driver": driver,
    }


def _break_even_panel(state: EngineState, comparison: Dict[str, Any]) -> Dict[str, Any]:
    model = get_break_even_model(state)
    room_count = state.cost_settings.effective_room_count
    base_cost = model.variable_per_night + model.fixed_per_day / room_count
    net_profit = get_profitability(state)["net_profit"]

    if net_profit < 0:
        status = "losing"
    elif model.margin_of_safety_nights < 0.1 * model.required_nights:
        status = "at_risk"
    else:
        status = "profitable"

    result = model.to_dict()
    result.update({
        "gap_to_break_even": model.current_occupancy - model.break_even_occupancy,
        "nights_gap": model.nights_sold - model.required_nights,
        "margin_simulation": {
            f"margin_{m}": _round(minimum_price(base_cost, m, model.avg_commission_rate))
            for m in MARGIN_TARGETS
        },
        "distance_to_break_even": {
            "in_money": _round(net_profit),
            "in_nights": _round(model.margin_of_safety_nights, 1),
            "status": status,
        },
        "revpar_decomposition": _revpar_decomposition(comparison),
    })
    return result


def _unit_economics(state: EngineState) -> Dict[str, Any]:
    profit = get_profitability(state)
    costs = get_cost_breakdown(state)
    nights = profit["total_nights"]
    adr = profit["total_revenue"] / nights if nights else 0.0
    contribution = adr * (1 - profit["avg_commission_rate"]) - costs["variable_per_night"]

    def per_night(value: float) -> float:
        return value / nights if nights else 0.0

    total = profit["total_costs"]
    return {
        "profit_per_night": _round(profit["profit_per_night"]),
        "contribution_margin": _round(contribution),
        "contribution_margin_percent": _round(contribution / adr * 100 if adr else 0.0, 1),
        "cpor": _round(per_night(total)),
        "cpor_breakdown": {
            "fixed": _round(per_night(profit["total_fixed"])),
            "variable": _round(per_night(profit["total_variable"])),
            "commission": _round(per_night(profit["total_commissions"])),
        },
        "cost_mix": {
            "fixed_percent": _round(profit["total_fixed"] / total * 100 if total else 0.0, 1),
            "variable_percent": _round(profit["total_variable"] / total * 100 if total else 0.0, 1),
            "commission_percent": _round(profit["total_commissions"] / total * 100 if total else 0.0, 1),
        },
    }


def _cash_section(state: EngineState) -> Dict[str, Any]:
    home = get_home_metrics(state)
    cash = get_cash_metrics(state)
    pending = sorted(
        (r for r in state.reservations if r.balance_due > 0),
        key=lambda r: r.balance_due,
        reverse=True,
    )[:5]
    gap = home["charged"] - home["collected"]
    return {
        "charged": _round(home["charged"]),
        "collected": _round(home["collected"]),
        "gap": _round(gap),
        "total_pending": _round(home["pending"]),
        "top_pending_reservations": [
            {
                "reservation_number": r.reservation_number,
                "guest_name": r.guest_name,
                "amount": _round(r.balance_due),
                "check_in": r.check_in.isoformat(),
                "days_until": (r.check_in - state.as_of).days,
            }
            for r in pending
        ],
        "ar_aging": cash["ar_aging"],
        "runway": cash["runway"],
        "cash_breakers": cash["cash_breakers"],
        "daily_flow": cash["daily_flow"],
    }


def _data_confidence(state: EngineState) -> Dict[str, Any]:
    health = get_data_health(state)
    missing = []
    if not health["has_expanded_transactions"]:
        missing.append("Import the expanded transaction report")
    if not health["has_reservations_financials"]:
        missing.append("Import reservations with financials")
    if state.cost_settings.room_count == 0:
        missing.append("Configure the room count")
    if state.cost_settings.fixed_monthly == 0:
        missing.append("Configure monthly fixed costs")
    if not state.cost_settings.has_commission_overrides:
        missing.append("Configure channel commissions")
    health["missing_for_high_confidence"] = missing
    return health


def _weekly_action(profit: Dict[str, Any], be: Dict[str, Any], channels: Dict[str, Any]) -> Dict[str, Any]:
    if profit["net_profit"] < 0:
        return {
            "type": "cut_costs",
            "priority": 1,
            "title": "Cut costs to stop the loss",
            "impact": f"Net loss of {abs(profit['net_profit']):.0f} this period",
        }
    if be["current_occupancy"] < be["break_even_occupancy"]:
        return {
            "type": "raise_adr",
            "priority": 1,
            "title": "Raise the minimum rate to break-even",
            "impact": f"ADR {be['adr']:.0f} vs break-even price {be['break_even_price']:.0f}",
        }
    return {
        "type": "optimize_channel_mix",
        "priority": 2 if channels["is_ota_over_dependent"] else 3,
        "title": "Shift bookings towards cheaper channels",
        "impact": f"Average effective commission {channels['avg_effective_commission']:.1f}%",
    }


def _assemble(current: EngineState, previous: EngineState, last_year: EngineState) -> Dict[str, Any]:
    mom = compare_states(current, previous)
    yoy = compare_states(current, last_year)
    break_even = _break_even_panel(current, mom)
    cash = _cash_section(current)
    confidence = _data_confidence(current)
    channels = get_channel_metrics(current)
    profit = get_profitability(current)

    return {
        "property_id": current.property_id,
        "period": current.original_period.to_dict(),
        "effective_period": current.effective_period.to_dict(),
        "used_fallback_period": current.used_fallback_period,
        "health": _health(current, mom, break_even, cash, confidence),
        "break_even": break_even,
        "unit_economics": _unit_economics(current),
        "channels": channels,
        "cash": cash,
        "data_confidence": confidence,
        "comparisons": {"mom": mom, "yoy": yoy},
        "pacing": weekly_pacing(current, PACING_WEEKS),
        "weekly_action": _weekly_action(profit, break_even, channels),
    }


# ----------------------------------------------------------------------
# Entry points
# ----------------------------------------------------------------------

def _empty_state(property_id: str, period: Period, as_of: Optional[date] = None) -> EngineState:
    return EngineState(
        property_id=property_id,
        original_period=period,
        effective_period=period,
        used_fallback_period=False,
        cost_settings=CostSettings.empty(),
        import_files=(),
        all_reservations=(),
        reservations=(),
        transactions=(),
        commission_table=DEFAULT_COMMISSION_TABLE,
        as_of=as_of or date.today(),
    )


def empty_command_center(property_id: str = "", period: Optional[Period] = None) -> Dict[str, Any]:
    """The command-center shape with every figure at zero."""
    state = _empty_state(property_id, period or Period.last_days())
    return _assemble(state, state, state)


def get_command_center_data(
    property_id: str,
    period: Period,
    data_access: "DataAccess",
    commission_table: CommissionTable = DEFAULT_COMMISSION_TABLE,
    as_of: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Dashboard payload for one property and period.

    Settings and reservations are fetched once and the effective period is
    resolved before any engine is built, so the previous and year-ago
    windows always sit around the period actually reported. The three
    engines then run concurrently; comparison engines never fall back.
    """
    try:
        data = load_property_data(property_id, data_access)
        effective, used_fallback = resolve_period(property_id, period, data_access, data)

        with ThreadPoolExecutor(max_workers=3) as pool:
            def run(window: Period, effective_window: Optional[Period] = None, fallback: bool = False):
                return pool.submit(
                    build_state, property_id, window, data_access, data, commission_table,
                    as_of, effective_window, fallback,
                )

            current_future = run(period, effective, used_fallback)
            previous_future = run(effective.previous())
            last_year_future = run(year_over_year_period(effective))

            current = current_future.result()
            previous = previous_future.result()
            last_year = last_year_future.result()

        return _assemble(current, previous, last_year)

    except Exception as e:
        logger.error(f"Error building command center for {property_id}: {str(e)}", exc_info=True)
        return empty_command_center(property_id, period)
