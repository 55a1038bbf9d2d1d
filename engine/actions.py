"""
Recommended actions.

Reads one EngineState through the public accessors and turns the problems
it finds into a short, prioritized to-do list. Priority 1 comes first.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import pandas as pd

from .calculation_engine import (
    EngineState,
    get_channel_metrics,
    get_data_health,
    get_reservation_economics_list,
    savings_potential,
)

logger = logging.getLogger(__name__)

DATA_HEALTH_MIN_SCORE = 80
# Share of OTA revenue assumed movable to direct, and the commission it saves
OTA_SHIFT_SHARE = 0.10
OTA_SHIFT_COMMISSION = 0.15
MIN_SAVINGS_VALUE = 50.0
# One-night stays from one source needed before they count as a pattern
MIN_PATTERN_RESERVATIONS = 2


def _action(action_id: str, action_type: str, title: str, description: str, priority: int,
            steps: List[str], impact: Optional[Dict[str, Any]] = None,
            evidence: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    return {
        "id": action_id,
        "type": action_type,
        "title": title,
        "description": description,
        "priority": priority,
        "impact": impact,
        "steps": [{"label": step, "completed": False} for step in steps],
        "evidence": [{"metric": k, "value": v} for k, v in (evidence or {}).items()],
    }


def _impact(value: float, unit: str, direction: str) -> Dict[str, Any]:
    return {"value": round(value), "unit": unit, "direction": direction}


def _data_health_action(state: EngineState) -> Optional[Dict[str, Any]]:
    health = get_data_health(state)
    if health["score"] >= DATA_HEALTH_MIN_SCORE:
        return None
    return _action(
        "data-health", "data_health", "Improve data health",
        "Key reports are missing for a complete analysis.",
        1, health["issues"],
        evidence={"Data health score": str(health["score"])},
    )


def _unprofitable_action(economics: pd.DataFrame) -> Optional[Dict[str, Any]]:
    losses = economics[economics["net_profit"] < 0]
    if losses.empty:
        return None
    total_loss = float(losses["net_profit"].abs().sum())
    return _action(
        "unprofitable-reservations", "profitability", "Fix unprofitable reservations",
        f"{len(losses)} reservations lost money in this period.",
        1,
        [
            "Review commissions of expensive channels",
            "Raise minimum prices in the simulator",
            "Add a cleaning fee for short stays",
        ],
        impact=_impact(total_loss, "avoidable loss", "down"),
        evidence={"Loss-making reservations": str(len(losses)), "Total loss": f"{total_loss:,.0f}"},
    )


def _one_night_loss_action(economics: pd.DataFrame) -> Optional[Dict[str, Any]]:
    one_night = economics[economics["room_nights"] <= 1]
    if one_night.empty:
        return None
    by_source = (
        one_night.assign(source=one_night["source"].replace("", "Direct"))
        .groupby("source")
        .agg(count=("net_profit", "size"), loss=("net_profit", "sum"), nights=("room_nights", "sum"))
    )
    patterns = by_source[(by_source["count"] >= MIN_PATTERN_RESERVATIONS) & (by_source["loss"] < 0)]
    if patterns.empty:
        return None

    source = patterns["loss"].idxmin()
    worst = patterns.loc[source]
    loss = abs(float(worst["loss"]))
    loss_per_night = loss / float(worst["nights"]) if worst["nights"] else 0.0
    return _action(
        "one-night-loss-pattern", "pricing", "One-night stays are losing money",
        f"One-night reservations from {source} are losing money.",
        1,
        ["Raise the base rate for one-night stays", "Set a two-night minimum stay"],
        impact=_impact(loss, "one-night loss", "down"),
        evidence={"Reservations": str(int(worst["count"])), "Loss per night": f"{loss_per_night:,.0f}"},
    )


def _ota_dependency_action(channels: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    if not channels["is_ota_over_dependent"]:
        return None
    ota_revenue = sum(c["revenue"] for c in channels["channels"] if c["category"] == "OTA")
    share = channels["ota_share"]
    return _action(
        "ota-dependency", "ota_dependency", "Reduce OTA dependency",
        f"{share:.0f}% of revenue comes from OTAs.",
        2,
        ["Promote the direct booking engine", "Run a loyalty campaign for direct sales"],
        impact=_impact(ota_revenue * OTA_SHIFT_SHARE * OTA_SHIFT_COMMISSION, "potential savings per month", "up"),
        evidence={"OTA share": f"{share:.0f}%", "OTA revenue": f"{ota_revenue:,.0f}"},
    )


def _channel_mix_action(channels: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    savings = savings_potential(channels)
    if savings["value"] <= MIN_SAVINGS_VALUE:
        return None
    worst = channels["worst_channel_by_profit_per_night"] or "expensive channels"
    return _action(
        "channel-profit-leak", "channel_mix", "Profit is leaking through channels",
        f"A better channel mix could add {savings['value']:,.0f}.",
        1,
        [
            f"Reduce inventory on {worst}",
            "Mark up prices on high-commission OTAs",
            "Offer exclusive benefits on the direct engine",
        ],
        impact=_impact(savings["value"], "extra profit per month", "up"),
        evidence={"Savings potential": f"{savings['value']:,.0f}", "Worst channel": worst},
    )


def generate_actions(state: EngineState) -> List[Dict[str, Any]]:
    """Recommended actions for one state, most urgent first."""
    economics = pd.DataFrame(
        [e.to_dict() for e in get_reservation_economics_list(state)],
        columns=["source", "room_nights", "net_profit"],
    )
    channels = get_channel_metrics(state)

    candidates = [
        _data_health_action(state),
        _unprofitable_action(economics),
        _one_night_loss_action(economics),
        _ota_dependency_action(channels),
        _channel_mix_action(channels),
    ]
    actions = sorted((a for a in candidates if a is not None), key=lambda a: a["priority"])
    logger.debug(f"Generated {len(actions)} actions for {state.property_id}")
    return actions
