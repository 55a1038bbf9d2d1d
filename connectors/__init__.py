"""
Data connectors for the calculation engine.
Provides the data sources the engine reads reservations, transactions and
cost settings from.
"""
import os
from typing import Optional

from .base import DataAccess, date_range_from_records
from .memory_connector import InMemoryDataAccess


def get_data_access(source_type: Optional[str] = None) -> DataAccess:
    """
    Build the configured data source.

    Args:
        source_type: 'local_server' or 'memory'; defaults to the SOURCE_TYPE
            environment variable, read at call time

    Raises:
        NotImplementedError: If no data source is configured
    """
    source_type = (source_type or os.environ.get("SOURCE_TYPE", "")).lower()

    if source_type == "local_server":
        from .local_server_connector import LocalServerDataAccess
        return LocalServerDataAccess()
    if source_type == "memory":
        return InMemoryDataAccess()

    raise NotImplementedError(
        "No data source configured. Set SOURCE_TYPE environment variable."
    )


__all__ = ["DataAccess", "InMemoryDataAccess", "date_range_from_records", "get_data_access"]
