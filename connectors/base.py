"""
Read interface the calculation engine expects from a data source.
"""
from datetime import date, datetime
from typing import Iterable, List, Optional, Protocol

from engine.models import (
    CostSettings,
    DataDateRange,
    ImportFile,
    Reservation,
    Transaction,
)


class DataAccess(Protocol):
    def get_cost_settings(self, property_id: str) -> Optional[CostSettings]:
        ...

    def get_import_files(self, property_id: str) -> List[ImportFile]:
        ...

    def get_all_reservations(self, property_id: str) -> List[Reservation]:
        """Every reservation of the property, deleted ones included."""
        ...

    def get_transactions_by_property(
        self, property_id: str, start: datetime, end: datetime
    ) -> List[Transaction]:
        """Transactions with start <= timestamp <= end."""
        ...

    def get_data_date_range(self, property_id: str) -> Optional[DataDateRange]:
        ...

    def get_reservations_by_property(self, property_id: str) -> List[Reservation]:
        """Non-deleted reservations of the property."""
        ...


def date_range_from_records(
    reservations: Iterable[Reservation],
    transactions: Iterable[Transaction],
) -> Optional[DataDateRange]:
    """Earliest check-in / latest check-out and first / last transaction date."""
    reservations = [r for r in reservations if not r.deleted]
    tx_dates = [t.timestamp.date() for t in transactions]
    if not reservations and not tx_dates:
        return None

    def _min(values: List[date]) -> Optional[date]:
        return min(values) if values else None

    def _max(values: List[date]) -> Optional[date]:
        return max(values) if values else None

    return DataDateRange(
        reservations_min=_min([r.check_in for r in reservations]),
        reservations_max=_max([r.check_out for r in reservations]),
        transactions_min=_min(tx_dates),
        transactions_max=_max(tx_dates),
    )
