"""
Local server connector for property data.
Supports direct PostgreSQL queries or CSV/Excel file exports.

Environment variables:
    SOURCE_TYPE: Must be set to 'local_server' to use this connector
    LOCAL_DB_HOST, LOCAL_DB_PORT, LOCAL_DB_NAME, LOCAL_DB_USER, LOCAL_DB_PASSWORD:
        PostgreSQL connection details
    LOCAL_CSV_PATH: Directory holding the exported files
    DATA_SOURCE: Either 'postgres' or 'csv'

File layout (csv mode):
    reservations_*.csv|xlsx     one row per reservation
    transactions_*.csv|xlsx     one row per ledger line
    import_files_*.csv|xlsx     import bookkeeping
    cost_settings_<property>.json

Rows carry a property_id column; files without one belong to every property.
"""
import os
import glob
import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TypeVar

import pandas as pd
import psycopg2
import psycopg2.extras

from engine.models import (
    CostSettings,
    DataDateRange,
    ImportFile,
    Reservation,
    Transaction,
)

from .base import date_range_from_records

logger = logging.getLogger(__name__)

REQUIRED_PG_VARS = [
    "LOCAL_DB_HOST", "LOCAL_DB_PORT", "LOCAL_DB_NAME",
    "LOCAL_DB_USER", "LOCAL_DB_PASSWORD"
]

T = TypeVar("T")


def read_data_files(file_pattern: str, csv_path: str) -> List[Dict[str, Any]]:
    """
    Read records from CSV or Excel files matching the given pattern.

    Args:
        file_pattern: Glob pattern to match files
                      (e.g., "reservations_*.*", "transactions_*.csv")
        csv_path: Directory to search

    Returns:
        List of records from the files
    """
    full_pattern = os.path.join(csv_path, file_pattern)
    all_results: List[Dict[str, Any]] = []

    for file_path in sorted(glob.glob(full_pattern)):
        file_ext = os.path.splitext(file_path)[1].lower()
        try:
            if file_ext in ['.xlsx', '.xls']:
                df = pd.read_excel(file_path)
            elif file_ext == '.csv':
                # Let pandas sniff the delimiter; exports use both ',' and ';'
                df = pd.read_csv(file_path, sep=None, engine="python", encoding="utf-8-sig")
            else:
                logger.debug(f"Skipping unsupported file type: {file_path}")
                continue
        except (OSError, ValueError, pd.errors.ParserError) as e:
            logger.error(f"Error processing {file_path}: {e}")
            continue

        file_records = df.to_dict('records')
        logger.info(f"Processed {file_path}: {len(file_records)} records")
        all_results.extend(file_records)

    return all_results


def _owner_key(value: Any) -> str:
    # A blank cell turns a numeric id column into floats (1 -> 1.0)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _belongs_to(record: Dict[str, Any], property_id: str) -> bool:
    owner = record.get("property_id")
    if owner is None or (isinstance(owner, float) and pd.isna(owner)):
        return True
    return _owner_key(owner) == _owner_key(property_id)


def _build(records: List[Dict[str, Any]], factory: Callable[[Dict[str, Any]], T], kind: str) -> List[T]:
    built = []
    for record in records:
        try:
            built.append(factory(record))
        except ValueError as e:
            logger.warning(f"Skipping {kind} row: {e}")
    return built


class LocalServerDataAccess:
    """DataAccess over a local PostgreSQL database or a directory of exports."""

    def __init__(self, data_source: Optional[str] = None, csv_path: Optional[str] = None):
        self.data_source = (data_source or os.environ.get("DATA_SOURCE", "csv")).lower()
        self.use_postgres = self.data_source == "postgres"
        self.csv_path = csv_path or os.environ.get("LOCAL_CSV_PATH", "")

        # Environment variable validation
        if self.use_postgres:
            for var in REQUIRED_PG_VARS:
                if not os.environ.get(var):
                    raise EnvironmentError(f"Required environment variable {var} is not set")
        elif not self.csv_path:
            raise EnvironmentError("Required environment variable LOCAL_CSV_PATH is not set")

    # -- PostgreSQL ---------------------------------------------------

    def _get_pg_connection(self):
        """
        Get a PostgreSQL connection.

        Raises:
            RuntimeError: If connection fails
        """
        try:
            return psycopg2.connect(
                host=os.environ["LOCAL_DB_HOST"],
                port=os.environ["LOCAL_DB_PORT"],
                database=os.environ["LOCAL_DB_NAME"],
                user=os.environ["LOCAL_DB_USER"],
                password=os.environ["LOCAL_DB_PASSWORD"]
            )
        except psycopg2.Error as e:
            raise RuntimeError(f"Failed to connect to PostgreSQL: {e}")

    def _query(self, sql: str, params: tuple) -> List[Dict[str, Any]]:
        conn = self._get_pg_connection()
        try:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
                cursor.execute(sql, params)
                return [dict(row) for row in cursor]
        except psycopg2.Error as e:
            raise RuntimeError(f"PostgreSQL query failed: {e}")
        finally:
            conn.close()

    # -- Files --------------------------------------------------------

    def _file_records(self, prefix: str, property_id: str) -> List[Dict[str, Any]]:
        return [r for r in read_data_files(f"{prefix}_*.*", self.csv_path) if _belongs_to(r, property_id)]

    # -- DataAccess ---------------------------------------------------

    def get_cost_settings(self, property_id: str) -> Optional[CostSettings]:
        if self.use_postgres:
            rows = self._query("""
                SELECT room_count, starting_cash_balance, fixed_costs, fixed_categories,
                       variable_costs, variable_categories, channel_commissions
                FROM cost_settings
                WHERE property_id = %s
            """, (property_id,))
            return CostSettings.from_record(rows[0]) if rows else None

        path = os.path.join(self.csv_path, f"cost_settings_{property_id}.json")
        if not os.path.exists(path):
            logger.info(f"No cost settings for {property_id} at {path}")
            return None
        with open(path, encoding="utf-8") as f:
            return CostSettings.from_record(json.load(f))

    def get_import_files(self, property_id: str) -> List[ImportFile]:
        if self.use_postgres:
            rows = self._query("""
                SELECT report_type, status, uploaded_at, filename
                FROM import_files
                WHERE property_id = %s
                ORDER BY uploaded_at DESC
            """, (property_id,))
        else:
            rows = self._file_records("import_files", property_id)
        return _build(rows, ImportFile.from_record, "import file")

    def get_all_reservations(self, property_id: str) -> List[Reservation]:
        if self.use_postgres:
            rows = self._query("""
                SELECT reservation_number, guest_name, check_in, check_out, status,
                       room_nights, room_revenue_total, taxes_total, paid_amount,
                       balance_due, source, source_category, deleted, reservation_date
                FROM reservations
                WHERE property_id = %s
                ORDER BY check_in
            """, (property_id,))
        else:
            rows = self._file_records("reservations", property_id)
        return _build(rows, Reservation.from_record, "reservation")

    def get_reservations_by_property(self, property_id: str) -> List[Reservation]:
        return [r for r in self.get_all_reservations(property_id) if not r.deleted]

    def get_transactions_by_property(self, property_id: str,
                                     start: datetime, end: datetime) -> List[Transaction]:
        if self.use_postgres:
            rows = self._query("""
                SELECT timestamp, credits, debits, void_flag, refund_flag,
                       adjustment_flag, channel, description
                FROM transactions
                WHERE property_id = %s AND timestamp BETWEEN %s AND %s
                ORDER BY timestamp
            """, (property_id, start, end))
            return _build(rows, Transaction.from_record, "transaction")

        transactions = _build(self._file_records("transactions", property_id),
                              Transaction.from_record, "transaction")
        return [t for t in transactions if start <= t.timestamp <= end]

    def get_data_date_range(self, property_id: str) -> Optional[DataDateRange]:
        if self.use_postgres:
            rows = self._query("""
                SELECT
                    (SELECT MIN(check_in) FROM reservations
                      WHERE property_id = %s AND NOT deleted) AS reservations_min,
                    (SELECT MAX(check_out) FROM reservations
                      WHERE property_id = %s AND NOT deleted) AS reservations_max,
                    (SELECT MIN(timestamp)::date FROM transactions
                      WHERE property_id = %s) AS transactions_min,
                    (SELECT MAX(timestamp)::date FROM transactions
                      WHERE property_id = %s) AS transactions_max
            """, (property_id,) * 4)
            row = rows[0] if rows else {}
            if not any(row.values()):
                return None
            return DataDateRange(**row)

        transactions = _build(self._file_records("transactions", property_id),
                              Transaction.from_record, "transaction")
        return date_range_from_records(self.get_all_reservations(property_id), transactions)
