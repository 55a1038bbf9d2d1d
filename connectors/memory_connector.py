"""
In-memory data source.

Holds records per property. Used by tests and by callers that already have
the records loaded (e.g. a notebook or an import pipeline).
"""
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from engine.models import (
    CostSettings,
    DataDateRange,
    ImportFile,
    Reservation,
    Transaction,
)

from .base import date_range_from_records


class InMemoryDataAccess:
    """DataAccess over plain Python lists."""

    def __init__(self):
        self._cost_settings: Dict[str, CostSettings] = {}
        self._reservations: Dict[str, List[Reservation]] = defaultdict(list)
        self._transactions: Dict[str, List[Transaction]] = defaultdict(list)
        self._import_files: Dict[str, List[ImportFile]] = defaultdict(list)

    # -- loading ------------------------------------------------------

    def set_cost_settings(self, property_id: str,
                          settings: Union[CostSettings, Mapping[str, Any], None]) -> None:
        if settings is None:
            self._cost_settings.pop(property_id, None)
        elif isinstance(settings, CostSettings):
            self._cost_settings[property_id] = settings
        else:
            self._cost_settings[property_id] = CostSettings.from_record(settings)

    def add_reservations(self, property_id: str,
                         reservations: Iterable[Union[Reservation, Mapping[str, Any]]]) -> None:
        for r in reservations:
            self._reservations[property_id].append(
                r if isinstance(r, Reservation) else Reservation.from_record(r)
            )

    def add_transactions(self, property_id: str,
                         transactions: Iterable[Union[Transaction, Mapping[str, Any]]]) -> None:
        for t in transactions:
            self._transactions[property_id].append(
                t if isinstance(t, Transaction) else Transaction.from_record(t)
            )

    def add_import_files(self, property_id: str,
                         files: Iterable[Union[ImportFile, Mapping[str, Any]]]) -> None:
        for f in files:
            self._import_files[property_id].append(
                f if isinstance(f, ImportFile) else ImportFile.from_record(f)
            )

    # -- DataAccess ---------------------------------------------------

    def get_cost_settings(self, property_id: str) -> Optional[CostSettings]:
        return self._cost_settings.get(property_id)

    def get_import_files(self, property_id: str) -> List[ImportFile]:
        return list(self._import_files.get(property_id, []))

    def get_all_reservations(self, property_id: str) -> List[Reservation]:
        return list(self._reservations.get(property_id, []))

    def get_reservations_by_property(self, property_id: str) -> List[Reservation]:
        return [r for r in self._reservations.get(property_id, []) if not r.deleted]

    def get_transactions_by_property(self, property_id: str,
                                     start: datetime, end: datetime) -> List[Transaction]:
        return [
            t for t in self._transactions.get(property_id, [])
            if start <= t.timestamp <= end
        ]

    def get_data_date_range(self, property_id: str) -> Optional[DataDateRange]:
        return date_range_from_records(
            self._reservations.get(property_id, []),
            self._transactions.get(property_id, []),
        )
