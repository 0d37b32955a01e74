"""Inventory management for Stock Keeper."""

from datetime import date, datetime, timedelta
from typing import Any

from pydantic import ValidationError

from .errors import InvalidInputError, ItemNotFoundError, LocationNotFoundError
from .item_query import ItemFilters
from .models import (
    ById,
    ByLegacyLabel,
    Category,
    ConsumptionAction,
    ConsumptionRecord,
    ExpiryStatus,
    Item,
    ItemInput,
    LocationRef,
    Unassigned,
    Unit,
    location_columns,
)
from .sqlite_store import SQLiteStore


def validation_message(error: ValidationError) -> str:
    """Flatten a pydantic ValidationError into one readable line."""
    parts = []
    for err in error.errors():
        field = ".".join(str(p) for p in err["loc"])
        message = err["msg"].removeprefix("Value error, ")
        parts.append(f"{field}: {message}" if field else message)
    return "; ".join(parts)


class InventoryManager:
    """Manages household inventory items and their consumption history."""

    def __init__(self, store: SQLiteStore | None = None):
        self.store = store or SQLiteStore()

    def _validate(self, **fields: Any) -> ItemInput:
        try:
            data = ItemInput(**fields)
        except ValidationError as e:
            raise InvalidInputError(validation_message(e)) from e

        if data.location_id is not None and self.store.get_location(data.location_id) is None:
            raise LocationNotFoundError(data.location_id)
        return data

    def _require_item(self, item_id: int) -> Item:
        item = self.store.get_item(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    # --- Queries ---

    def get_items(
        self,
        location_id: int | None = None,
        location: str | None = None,
        category: str | None = None,
        search: str | None = None,
        expiry_status: ExpiryStatus | str | None = None,
        unassigned: bool = False,
    ) -> list[Item]:
        """Get items with optional filters, in display order.

        Args:
            location_id: Only items in this location
            location: Legacy label, or a location type
            category: Exact category
            search: Case-insensitive substring of title, description or brand
            expiry_status: Only items in this expiry bucket
            unassigned: Only items with no location at all

        Returns:
            List of matching items, empty when nothing matches
        """
        try:
            filters = ItemFilters(
                location_id=location_id,
                location=location,
                category=category,
                search=search,
                expiry_status=expiry_status,
                unassigned=unassigned,
            )
        except ValidationError as e:
            raise InvalidInputError(validation_message(e)) from e
        return self.store.query_items(filters)

    def get_items_at(self, ref: LocationRef) -> list[Item]:
        """Get the items placed at a location reference, in display order.

        Items with a location id never match a legacy label, even when they
        still carry one.
        """
        if isinstance(ref, ById):
            return self.get_items(location_id=ref.location_id)
        if isinstance(ref, Unassigned):
            return self.get_items(unassigned=True)
        return [item for item in self.get_items() if item.placement == ref]

    def get_legacy_labels(self) -> list[str]:
        """Distinct legacy labels of items that have no location id."""
        placements = (item.placement for item in self.get_items())
        labels = {ref.label for ref in placements if isinstance(ref, ByLegacyLabel)}
        return sorted(labels, key=str.casefold)

    def get_item(self, item_id: int) -> Item | None:
        """Get a single item, or None if it does not exist."""
        return self.store.get_item(item_id)

    def get_categories(self) -> list[Category]:
        """Get the category reference list."""
        return self.store.list_categories()

    def export_items(self) -> list[Item]:
        """Get every item, ordered by location, category and title."""
        return self.store.items_for_export()

    # --- Item mutations ---

    def add_item(
        self,
        title: str,
        description: str = "",
        category: str | None = None,
        location: str | None = None,
        location_id: int | None = None,
        brand: str | None = None,
        is_homemade: bool = False,
        quantity: float | None = None,
        unit: Unit | str | None = None,
        date_added: date | None = None,
        expiry_date: date | None = None,
        image_path: str | None = None,
    ) -> Item:
        """Add an item to inventory.

        Args:
            title: Item name, required
            description: Free-text notes
            category: Category name. Defaults to "Uncategorized"
            location: Legacy free-text location label
            location_id: Location the item is stored in
            brand: Brand name, ignored for homemade items
            is_homemade: Whether the item is homemade
            quantity: Quantity on hand. Defaults to 1
            unit: Unit of measurement. Defaults to pcs
            date_added: Date stocked. Defaults to today
            expiry_date: Expiry date, None if it never expires
            image_path: Relative path to an image

        Returns:
            The created Item

        Raises:
            InvalidInputError: If the data is invalid
            LocationNotFoundError: If location_id does not exist
        """
        data = self._validate(
            title=title,
            description=description,
            category=category,
            location=location,
            location_id=location_id,
            brand=brand,
            is_homemade=is_homemade,
            quantity=quantity,
            unit=unit,
            date_added=date_added or date.today(),
            expiry_date=expiry_date,
            image_path=image_path,
        )
        item_id = self.store.insert_item(data)
        return self._require_item(item_id)

    def update_item(
        self,
        item_id: int,
        title: str,
        description: str = "",
        category: str | None = None,
        location: str | None = None,
        location_id: int | None = None,
        brand: str | None = None,
        is_homemade: bool = False,
        quantity: float | None = None,
        unit: Unit | str | None = None,
        date_added: date | None = None,
        expiry_date: date | None = None,
        image_path: str | None = None,
    ) -> Item:
        """Replace an item's fields, with the same defaults as add_item.

        The stored image_path and date_added are kept when not supplied.

        Raises:
            InvalidInputError: If the data is invalid
            ItemNotFoundError: If the item does not exist
            LocationNotFoundError: If location_id does not exist
        """
        self._require_item(item_id)
        data = self._validate(
            title=title,
            description=description,
            category=category,
            location=location,
            location_id=location_id,
            brand=brand,
            is_homemade=is_homemade,
            quantity=quantity,
            unit=unit,
            date_added=date_added,
            expiry_date=expiry_date,
            image_path=image_path,
        )
        self.store.update_item(item_id, data)
        return self._require_item(item_id)

    def remove_item(self, item_id: int) -> Item:
        """Delete an item. Its consumption history is kept, detached from it.

        Removing any image file is left to the caller.

        Returns:
            The removed item

        Raises:
            ItemNotFoundError: If the item does not exist
        """
        item = self._require_item(item_id)
        self.store.delete_items([item_id])
        return item

    def bulk_remove(self, item_ids: list[int]) -> int:
        """Delete several items. Returns how many existed and were removed."""
        return self.store.delete_items(list(dict.fromkeys(item_ids)))

    def bulk_update(self, item_ids: list[int], changes: dict[str, Any]) -> int:
        """Apply the same field changes to several items.

        Missing IDs are skipped.

        Args:
            item_ids: Items to change
            changes: Field values to overwrite, as accepted by update_item

        Returns:
            Number of items updated

        Raises:
            InvalidInputError: If changes name an unknown field
        """
        unknown = set(changes) - set(ItemInput.model_fields)
        if unknown:
            raise InvalidInputError(f"Unknown item fields: {', '.join(sorted(unknown))}")

        updated = 0
        for item_id in dict.fromkeys(item_ids):
            item = self.store.get_item(item_id)
            if item is None:
                continue
            fields = item.model_dump(include=set(ItemInput.model_fields)) | changes
            self.update_item(item_id, **fields)
            updated += 1
        return updated

    def move_items(self, item_ids: list[int], ref: LocationRef) -> int:
        """Place several items at a location. Returns the number moved."""
        location_id, label = location_columns(ref)
        return self.bulk_update(item_ids, {"location_id": location_id, "location": label})

    # --- Quantity ---

    def set_quantity(self, item_id: int, quantity: float) -> Item:
        """Overwrite an item's quantity without writing history.

        Raises:
            InvalidInputError: If quantity is negative
            ItemNotFoundError: If the item does not exist
        """
        if quantity < 0:
            raise InvalidInputError("Quantity cannot be negative")
        self._require_item(item_id)
        self.store.update_item_quantity(item_id, quantity)
        return self._require_item(item_id)

    def add_quantity(self, item_id: int, amount: float = 1.0) -> Item:
        """Increase an item's quantity without writing history.

        Raises:
            InvalidInputError: If amount is not positive
            ItemNotFoundError: If the item does not exist
        """
        if amount <= 0:
            raise InvalidInputError("Amount must be positive")
        item = self._require_item(item_id)
        self.store.update_item_quantity(item_id, item.quantity + amount)
        return self._require_item(item_id)

    # --- Consumption ---

    def log_consumption(
        self,
        item_id: int,
        amount: float,
        action: ConsumptionAction | str = ConsumptionAction.USED,
        notes: str = "",
    ) -> ConsumptionRecord | None:
        """Append a consumption record without touching the quantity.

        Returns:
            The new record, or None if the item does not exist
        """
        if amount <= 0:
            raise InvalidInputError("Amount must be positive")
        return self.store.append_consumption(item_id, amount, ConsumptionAction(action), notes)

    def use_item(self, item_id: int, amount: float = 1.0, notes: str = "") -> Item | None:
        """Record that some of an item was used and reduce its quantity.

        The record keeps the full requested amount; the quantity never drops
        below zero.

        Returns:
            The updated item, or None if the item does not exist

        Raises:
            InvalidInputError: If amount is not positive
        """
        if amount <= 0:
            raise InvalidInputError("Amount must be positive")
        item = self.store.get_item(item_id)
        if item is None:
            return None

        remaining = max(0.0, item.quantity - amount)
        self.store.append_consumption(
            item_id, amount, ConsumptionAction.USED, notes, set_quantity=remaining
        )
        return self.store.get_item(item_id)

    def discard_item(
        self,
        item_id: int,
        action: ConsumptionAction | str = ConsumptionAction.DISCARDED,
        notes: str = "",
    ) -> Item | None:
        """Record the whole remaining quantity as discarded or expired and zero it.

        Nothing is recorded when the quantity is already zero.

        Returns:
            The updated item, or None if the item does not exist

        Raises:
            InvalidInputError: If action is not discarded or expired
        """
        try:
            action = ConsumptionAction(action)
        except ValueError as e:
            raise InvalidInputError(f"Unknown action: {action}") from e
        if action == ConsumptionAction.USED:
            raise InvalidInputError("Discard action must be 'discarded' or 'expired'")

        item = self.store.get_item(item_id)
        if item is None:
            return None

        if item.quantity > 0:
            self.store.append_consumption(item_id, item.quantity, action, notes, set_quantity=0.0)
        return self.store.get_item(item_id)

    def get_history(
        self,
        item_id: int | None = None,
        days: int | None = None,
        action: ConsumptionAction | str | None = None,
        limit: int | None = None,
    ) -> list[ConsumptionRecord]:
        """Get consumption records, newest first.

        Args:
            item_id: Only records for this item
            days: Only records from the last N days
            action: Only records with this action
            limit: Maximum number of records

        Returns:
            List of records
        """
        since = datetime.now() - timedelta(days=days) if days is not None else None
        try:
            action = ConsumptionAction(action) if action is not None else None
        except ValueError as e:
            raise InvalidInputError(f"Unknown action: {action}") from e
        return self.store.query_history(item_id=item_id, since=since, action=action, limit=limit)
