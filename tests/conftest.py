"""Shared test fixtures for Stock Keeper."""

from datetime import date, timedelta

import pytest

from stock_keeper.analytics import Analytics
from stock_keeper.inventory_manager import InventoryManager
from stock_keeper.location_manager import LocationManager
from stock_keeper.sqlite_store import SQLiteStore


@pytest.fixture
def db_path(tmp_path):
    """Path for a temporary database file."""
    return tmp_path / "test_data" / "stock-keeper.db"


@pytest.fixture
def store(db_path):
    """Create a SQLiteStore on a temporary database."""
    s = SQLiteStore(db_path=db_path)
    yield s
    s.close()


@pytest.fixture
def inventory_manager(store):
    """Create an InventoryManager with temporary storage."""
    return InventoryManager(store=store)


@pytest.fixture
def location_manager(store):
    """Create a LocationManager with temporary storage."""
    return LocationManager(store=store)


@pytest.fixture
def analytics(store):
    """Create an Analytics instance with temporary storage."""
    return Analytics(store=store)


@pytest.fixture
def today():
    return date.today()


@pytest.fixture
def days_from_today(today):
    """Build a date relative to today."""

    def _build(days: int) -> date:
        return today + timedelta(days=days)

    return _build


@pytest.fixture
def fridge(location_manager):
    """A fridge location next to the seeded freezer."""
    return location_manager.add_location("Kitchen Fridge", type="fridge", icon="🧊")
