"""Exception types for Stock Keeper."""


class StockKeeperError(Exception):
    """Base class for all Stock Keeper errors."""


class InvalidInputError(StockKeeperError, ValueError):
    """Raised when input fails validation before anything is written."""


class ItemNotFoundError(StockKeeperError):
    """Raised when an item is not found."""

    def __init__(self, item_id: int | str):
        self.item_id = item_id
        super().__init__(f"Item with ID '{item_id}' not found")


class LocationNotFoundError(StockKeeperError):
    """Raised when a location is not found."""

    def __init__(self, location_id: int | str):
        self.location_id = location_id
        super().__init__(f"Location with ID '{location_id}' not found")


class PersistenceError(StockKeeperError):
    """Raised when a write to the store fails."""
