"""Stock Keeper - Household inventory with locations, expiry tracking and consumption history."""

from .analytics import Analytics
from .config import ConfigManager
from .errors import (
    InvalidInputError,
    ItemNotFoundError,
    LocationNotFoundError,
    PersistenceError,
    StockKeeperError,
)
from .inventory_manager import InventoryManager
from .item_query import ItemFilters, build_item_query, classify_expiry, days_until_expiry
from .location_manager import LocationManager
from .models import (
    Alerts,
    ById,
    ByLegacyLabel,
    Category,
    ConsumptionAction,
    ConsumptionRecord,
    ConsumptionSummary,
    ExpiryStatus,
    Item,
    ItemInput,
    Location,
    LocationInput,
    LocationRef,
    LocationSummary,
    LocationType,
    StatsSnapshot,
    Unassigned,
    Unit,
    resolve_location_ref,
)
from .output_formatter import OutputFormatter
from .sqlite_store import SQLiteStore

__version__ = "0.1.0"

__all__ = [
    "Alerts",
    "Analytics",
    "build_item_query",
    "ById",
    "ByLegacyLabel",
    "Category",
    "classify_expiry",
    "ConfigManager",
    "ConsumptionAction",
    "ConsumptionRecord",
    "ConsumptionSummary",
    "days_until_expiry",
    "ExpiryStatus",
    "InvalidInputError",
    "InventoryManager",
    "Item",
    "ItemFilters",
    "ItemInput",
    "ItemNotFoundError",
    "Location",
    "LocationInput",
    "LocationManager",
    "LocationNotFoundError",
    "LocationRef",
    "LocationSummary",
    "LocationType",
    "OutputFormatter",
    "PersistenceError",
    "resolve_location_ref",
    "SQLiteStore",
    "StatsSnapshot",
    "StockKeeperError",
    "Unassigned",
    "Unit",
]
