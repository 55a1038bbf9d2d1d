"""
Channel commission resolution.

Precedence, first match wins:
    1. direct channel        -> 0, whatever the configuration says
    2. property override     -> cost_settings.channel_commissions.by_channel
    3. built-in table rate   -> CommissionTable.default_rates
    4. property default rate -> cost_settings.channel_commissions.default_rate
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Mapping, Optional, Tuple

from .models import CostSettings

DIRECT_CHANNELS = frozenset({
    "direct", "directo", "walk-in", "email", "website",
    "pagina web", "phone", "teléfono", "telefono",
})

DEFAULT_CHANNEL_RATES = {
    # OTAs
    "booking.com": 0.15,
    "booking": 0.15,
    "expedia": 0.18,
    "despegar/decolar": 0.18,
    "despegar": 0.18,
    "decolar": 0.18,
    "hotels.com": 0.20,
    "airbnb": 0.03,
    "vrbo": 0.08,
    "agoda": 0.15,
    "tripadvisor": 0.12,
    "hostelworld": 0.12,
    "kayak": 0.15,
    "trivago": 0.15,
    "google": 0.12,
    # Travel agencies
    "agencia de viajes": 0.10,
    "agente de viajes predeterminado": 0.10,
    "travel agency": 0.10,
}

OTA_KEYWORDS = (
    "booking", "expedia", "despegar", "decolar", "airbnb", "hotels.com",
    "agoda", "tripadvisor", "kayak", "vrbo", "hostelworld", "trivago",
)
AGENCY_KEYWORDS = ("agencia", "viajes", "travel", "agency")


@dataclass(frozen=True)
class CommissionTable:
    """Direct-channel names and built-in commission rates by channel name."""
    direct_channels: FrozenSet[str] = DIRECT_CHANNELS
    default_rates: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_CHANNEL_RATES))
    ota_keywords: Tuple[str, ...] = OTA_KEYWORDS
    agency_keywords: Tuple[str, ...] = AGENCY_KEYWORDS


DEFAULT_COMMISSION_TABLE = CommissionTable()


@dataclass(frozen=True)
class CommissionResolution:
    rate: float
    rule: str  # "direct" | "override" | "table" | "default"


def normalize_channel(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def _clamp(rate: float) -> float:
    return min(1.0, max(0.0, float(rate)))


def is_direct_channel(name: Optional[str], table: CommissionTable = DEFAULT_COMMISSION_TABLE) -> bool:
    normalized = normalize_channel(name)
    # Reservations without a channel were booked with the property itself
    return normalized == "" or normalized in table.direct_channels


def resolve_commission(
    channel_name: Optional[str],
    cost_settings: CostSettings,
    table: CommissionTable = DEFAULT_COMMISSION_TABLE,
) -> CommissionResolution:
    normalized = normalize_channel(channel_name)
    if is_direct_channel(normalized, table):
        return CommissionResolution(0.0, "direct")

    overrides = cost_settings.channel_commissions.by_channel
    if normalized in overrides:
        return CommissionResolution(_clamp(overrides[normalized]), "override")

    if normalized in table.default_rates:
        return CommissionResolution(_clamp(table.default_rates[normalized]), "table")

    return CommissionResolution(_clamp(cost_settings.channel_commissions.default_rate), "default")


def resolve_commission_rate(
    channel_name: Optional[str],
    cost_settings: CostSettings,
    table: CommissionTable = DEFAULT_COMMISSION_TABLE,
) -> float:
    return resolve_commission(channel_name, cost_settings, table).rate


def categorize_channel(
    channel_name: Optional[str],
    source_category: Optional[str] = None,
    table: CommissionTable = DEFAULT_COMMISSION_TABLE,
) -> str:
    """Bucket a channel into Direct, OTA, Travel Agency or Other."""
    if is_direct_channel(channel_name, table):
        return "Direct"
    if source_category and source_category.strip().lower() == "direct":
        return "Direct"
    normalized = normalize_channel(channel_name)
    if any(keyword in normalized for keyword in table.ota_keywords):
        return "OTA"
    if any(keyword in normalized for keyword in table.agency_keywords):
        return "Travel Agency"
    if source_category:
        return source_category.strip()
    return "Other"
