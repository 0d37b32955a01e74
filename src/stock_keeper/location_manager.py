"""Storage location management for Stock Keeper."""

import logging

from pydantic import ValidationError

from .errors import InvalidInputError, LocationNotFoundError
from .inventory_manager import validation_message
from .models import Location, LocationInput, LocationType
from .sqlite_store import SQLiteStore

logger = logging.getLogger(__name__)


class LocationManager:
    """Manages user-defined storage locations."""

    def __init__(self, store: SQLiteStore | None = None):
        """Initialize location manager.

        Args:
            store: SQLiteStore instance. Creates new one if not provided.
        """
        self.store = store or SQLiteStore()

    def get_locations(self, visible_only: bool = False) -> list[Location]:
        """Get locations in display order.

        Args:
            visible_only: Skip locations hidden from the home views

        Returns:
            List of locations
        """
        return self.store.list_locations(visible_only=visible_only)

    def get_location(self, location_id: int) -> Location | None:
        """Get a single location, or None if it does not exist."""
        return self.store.get_location(location_id)

    def get_location_counts(self) -> dict[int, int]:
        """Item counts keyed by location ID."""
        return self.store.location_counts()

    def add_location(
        self,
        name: str,
        type: LocationType | str | None = None,
        icon: str | None = None,
        color: str | None = None,
        sort_order: int | None = None,
        is_visible: bool = True,
    ) -> Location:
        """Create a location.

        Args:
            name: Display name, required
            type: Location type. Defaults to other
            icon: Emoji icon
            color: Display color
            sort_order: Explicit position. Defaults to after the last location
            is_visible: Whether it shows on the home views

        Returns:
            The created Location

        Raises:
            InvalidInputError: If the name is empty or the type is unknown
        """
        try:
            data = LocationInput(
                name=name,
                type=type,
                icon=icon,
                color=color,
                sort_order=sort_order,
                is_visible=is_visible,
            )
        except ValidationError as e:
            raise InvalidInputError(validation_message(e)) from e

        location_id = self.store.insert_location(data)
        return self.store.get_location(location_id)

    def update_location(
        self,
        location_id: int,
        name: str | None = None,
        type: LocationType | str | None = None,
        icon: str | None = None,
        color: str | None = None,
        sort_order: int | None = None,
        is_visible: bool | None = None,
    ) -> Location:
        """Update a location. Fields left as None keep their current value.

        Raises:
            InvalidInputError: If a supplied name is blank or the type is unknown
            LocationNotFoundError: If the location does not exist
        """
        existing = self.store.get_location(location_id)
        if existing is None:
            raise LocationNotFoundError(location_id)

        try:
            data = LocationInput(
                name=existing.name if name is None else name,
                type=type or existing.type,
                icon=icon or existing.icon,
                color=color or existing.color,
                sort_order=existing.sort_order if sort_order is None else sort_order,
                is_visible=existing.is_visible if is_visible is None else is_visible,
            )
        except ValidationError as e:
            raise InvalidInputError(validation_message(e)) from e

        updated = existing.model_copy(update=data.model_dump())
        self.store.update_location(updated)
        return self.store.get_location(location_id)

    def remove_location(self, location_id: int) -> Location:
        """Delete a location. Items stored there become unplaced, not deleted.

        Returns:
            The removed location

        Raises:
            LocationNotFoundError: If the location does not exist
        """
        existing = self.store.get_location(location_id)
        if existing is None:
            raise LocationNotFoundError(location_id)

        detached = self.store.delete_location(location_id)
        logger.info(
            "Deleted location %s (%s); detached %d item(s)", existing.id, existing.name, detached
        )
        return existing

    def reorder_locations(self, location_ids: list[int]) -> list[Location]:
        """Give the listed locations sort orders 1..N in the given sequence.

        Locations not listed keep their sort order.

        Returns:
            All locations in their new display order
        """
        self.store.reorder_locations(list(location_ids))
        return self.store.list_locations()
