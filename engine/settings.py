"""
Engine configuration.

Environment variables:
    ENGINE_LOG_LEVEL: Logging level for the engine package (defaults to INFO)
    ENGINE_DEFAULT_PERIOD_DAYS: Length of the default reporting window
    ENGINE_FETCH_WORKERS: Thread pool size used for concurrent data fetches
    ENGINE_STALE_IMPORT_DAYS: Age after which the last import counts as stale
    ENGINE_LOW_OCCUPANCY_PCT: Occupancy below which the dashboard raises an alert
"""
import os

LOG_LEVEL = os.environ.get("ENGINE_LOG_LEVEL", "INFO").upper()

DEFAULT_PERIOD_DAYS = int(os.environ.get("ENGINE_DEFAULT_PERIOD_DAYS", "30"))
FETCH_WORKERS = int(os.environ.get("ENGINE_FETCH_WORKERS", "4"))
STALE_IMPORT_DAYS = int(os.environ.get("ENGINE_STALE_IMPORT_DAYS", "7"))
LOW_OCCUPANCY_PCT = float(os.environ.get("ENGINE_LOW_OCCUPANCY_PCT", "40"))

# Average month length used for every fixed-cost proration
AVG_DAYS_PER_MONTH = 30.44

# Runway reported when the property is not burning cash
RUNWAY_SAFE_DAYS = 999
