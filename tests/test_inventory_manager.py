"""Tests for inventory manager module."""

from datetime import date, timedelta

import pytest

from stock_keeper.errors import InvalidInputError, ItemNotFoundError, LocationNotFoundError
from stock_keeper.models import (
    ById,
    ByLegacyLabel,
    ConsumptionAction,
    ExpiryStatus,
    Unassigned,
    Unit,
)


class TestAddItem:
    """Tests for adding inventory items."""

    def test_add_basic(self, inventory_manager, today):
        """Defaults apply to everything but the title."""
        item = inventory_manager.add_item("Milk")
        assert item.id > 0
        assert item.title == "Milk"
        assert item.quantity == 1.0
        assert item.unit == Unit.PCS
        assert item.category == "Uncategorized"
        assert item.date_added == today
        assert item.expiry_status == ExpiryStatus.NONE

    def test_add_with_all_fields(self, inventory_manager, days_from_today):
        item = inventory_manager.add_item(
            title="Peas",
            description="Garden peas",
            category="Vegetables",
            location_id=1,
            brand="Birds Eye",
            quantity=500,
            unit="g",
            date_added=days_from_today(-3),
            expiry_date=days_from_today(60),
            image_path="images/peas.jpg",
        )
        assert item.location_name == "Freezer"
        assert item.brand == "Birds Eye"
        assert item.unit == Unit.G
        assert item.quantity == 500
        assert item.date_added == days_from_today(-3)
        assert item.expiry_status == ExpiryStatus.OK
        assert item.days_until_expiry == 60

    def test_add_homemade_drops_brand(self, inventory_manager):
        item = inventory_manager.add_item("Lasagna", brand="Acme", is_homemade=True)
        assert item.is_homemade is True
        assert item.brand is None

    def test_empty_title_rejected(self, inventory_manager):
        with pytest.raises(InvalidInputError, match="Title is required"):
            inventory_manager.add_item("  ")
        assert inventory_manager.get_items() == []

    def test_negative_quantity_rejected(self, inventory_manager):
        with pytest.raises(InvalidInputError, match="Quantity cannot be negative"):
            inventory_manager.add_item("Milk", quantity=-1)

    def test_invalid_input_is_value_error(self, inventory_manager):
        with pytest.raises(ValueError):
            inventory_manager.add_item("Milk", unit="bushel")

    def test_unknown_location_rejected(self, inventory_manager):
        with pytest.raises(LocationNotFoundError):
            inventory_manager.add_item("Milk", location_id=99)

    def test_legacy_label(self, inventory_manager):
        item = inventory_manager.add_item("Salt", location="cupboard")
        assert item.placement == ByLegacyLabel("cupboard")


class TestUpdateItem:
    """Tests for updating items."""

    def test_update_fields(self, inventory_manager, fridge):
        item = inventory_manager.add_item("Milk", quantity=2)
        updated = inventory_manager.update_item(
            item.id, "Oat Milk", location_id=fridge.id, quantity=1, unit="L"
        )
        assert updated.title == "Oat Milk"
        assert updated.placement == ById(fridge.id)
        assert updated.unit == Unit.L

    def test_update_keeps_date_added(self, inventory_manager, days_from_today):
        item = inventory_manager.add_item("Milk", date_added=days_from_today(-10))
        updated = inventory_manager.update_item(item.id, "Milk")
        assert updated.date_added == days_from_today(-10)

    def test_update_missing_raises(self, inventory_manager):
        with pytest.raises(ItemNotFoundError):
            inventory_manager.update_item(404, "Ghost")

    def test_update_invalid_leaves_item(self, inventory_manager):
        item = inventory_manager.add_item("Milk")
        with pytest.raises(InvalidInputError):
            inventory_manager.update_item(item.id, "")
        assert inventory_manager.get_item(item.id).title == "Milk"


class TestQuantity:
    """Tests for quantity changes without history."""

    def test_set_quantity(self, inventory_manager):
        item = inventory_manager.add_item("Eggs", quantity=6)
        assert inventory_manager.set_quantity(item.id, 12).quantity == 12
        assert inventory_manager.get_history() == []

    def test_set_quantity_zero(self, inventory_manager):
        item = inventory_manager.add_item("Eggs", quantity=6)
        assert inventory_manager.set_quantity(item.id, 0).quantity == 0

    def test_set_negative_rejected(self, inventory_manager):
        item = inventory_manager.add_item("Eggs", quantity=6)
        with pytest.raises(InvalidInputError):
            inventory_manager.set_quantity(item.id, -1)

    def test_set_missing_raises(self, inventory_manager):
        with pytest.raises(ItemNotFoundError):
            inventory_manager.set_quantity(404, 1)

    def test_add_quantity(self, inventory_manager):
        item = inventory_manager.add_item("Eggs", quantity=6)
        assert inventory_manager.add_quantity(item.id).quantity == 7
        assert inventory_manager.add_quantity(item.id, 5).quantity == 12

    @pytest.mark.parametrize("amount", [0, -1])
    def test_add_non_positive_rejected(self, inventory_manager, amount):
        item = inventory_manager.add_item("Eggs", quantity=6)
        with pytest.raises(InvalidInputError, match="Amount must be positive"):
            inventory_manager.add_quantity(item.id, amount)


class TestUseItem:
    """Tests for recording use."""

    def test_use_reduces_quantity_and_logs(self, inventory_manager):
        item = inventory_manager.add_item("Rice", quantity=2, unit="kg")
        updated = inventory_manager.use_item(item.id, 0.5, notes="risotto")
        assert updated.quantity == 1.5

        history = inventory_manager.get_history(item_id=item.id)
        assert len(history) == 1
        assert history[0].action == ConsumptionAction.USED
        assert history[0].quantity_used == 0.5
        assert history[0].unit == Unit.KG
        assert history[0].notes == "risotto"

    def test_overuse_clamps_to_zero(self, inventory_manager):
        """Quantity never drops below zero; the record keeps the full amount."""
        item = inventory_manager.add_item("Rice", quantity=1)
        updated = inventory_manager.use_item(item.id, 3)
        assert updated.quantity == 0
        assert inventory_manager.get_history()[0].quantity_used == 3

    def test_use_missing_returns_none(self, inventory_manager):
        assert inventory_manager.use_item(404) is None
        assert inventory_manager.get_history() == []

    def test_use_non_positive_rejected(self, inventory_manager):
        item = inventory_manager.add_item("Rice")
        with pytest.raises(InvalidInputError):
            inventory_manager.use_item(item.id, 0)


class TestDiscardItem:
    """Tests for discarding and expiring items."""

    def test_discard_zeroes_quantity(self, inventory_manager):
        item = inventory_manager.add_item("Bread", quantity=3)
        updated = inventory_manager.discard_item(item.id)
        assert updated.quantity == 0

        history = inventory_manager.get_history()
        assert history[0].action == ConsumptionAction.DISCARDED
        assert history[0].quantity_used == 3

    def test_mark_expired(self, inventory_manager):
        item = inventory_manager.add_item("Bread", quantity=2)
        inventory_manager.discard_item(item.id, ConsumptionAction.EXPIRED)
        assert inventory_manager.get_history()[0].action == ConsumptionAction.EXPIRED

    def test_discard_empty_item_writes_nothing(self, inventory_manager):
        item = inventory_manager.add_item("Bread", quantity=0)
        updated = inventory_manager.discard_item(item.id)
        assert updated.quantity == 0
        assert inventory_manager.get_history() == []

    def test_discard_with_used_action_rejected(self, inventory_manager):
        item = inventory_manager.add_item("Bread")
        with pytest.raises(InvalidInputError):
            inventory_manager.discard_item(item.id, "used")

    def test_discard_missing_returns_none(self, inventory_manager):
        assert inventory_manager.discard_item(404) is None


class TestRemoveItem:
    """Tests for deleting items."""

    def test_remove(self, inventory_manager):
        item = inventory_manager.add_item("Bread")
        removed = inventory_manager.remove_item(item.id)
        assert removed.title == "Bread"
        assert inventory_manager.get_item(item.id) is None

    def test_remove_missing_raises(self, inventory_manager):
        with pytest.raises(ItemNotFoundError):
            inventory_manager.remove_item(404)

    def test_history_outlives_item(self, inventory_manager):
        item = inventory_manager.add_item("Bread", quantity=2)
        inventory_manager.use_item(item.id)
        inventory_manager.remove_item(item.id)

        history = inventory_manager.get_history()
        assert len(history) == 1
        assert history[0].item_id is None
        assert history[0].item_title == "Bread"

    def test_bulk_remove(self, inventory_manager):
        a = inventory_manager.add_item("A")
        b = inventory_manager.add_item("B")
        inventory_manager.add_item("C")
        assert inventory_manager.bulk_remove([a.id, b.id, b.id, 404]) == 2
        assert [i.title for i in inventory_manager.get_items()] == ["C"]


class TestBulkUpdate:
    """Tests for changing several items at once."""

    def test_bulk_update_category(self, inventory_manager):
        a = inventory_manager.add_item("A", quantity=3)
        b = inventory_manager.add_item("B")
        assert inventory_manager.bulk_update([a.id, b.id, 404], {"category": "Snacks"}) == 2
        assert inventory_manager.get_item(a.id).category == "Snacks"
        assert inventory_manager.get_item(a.id).quantity == 3

    def test_unknown_field_rejected(self, inventory_manager):
        item = inventory_manager.add_item("A")
        with pytest.raises(InvalidInputError, match="Unknown item fields"):
            inventory_manager.bulk_update([item.id], {"colour": "red"})

    def test_move_items(self, inventory_manager, fridge):
        a = inventory_manager.add_item("A", location="shelf")
        b = inventory_manager.add_item("B")
        assert inventory_manager.move_items([a.id, b.id], ById(fridge.id)) == 2
        assert inventory_manager.get_item(a.id).placement == ById(fridge.id)
        assert inventory_manager.get_item(a.id).location is None

    def test_move_to_unassigned(self, inventory_manager):
        a = inventory_manager.add_item("A", location_id=1)
        inventory_manager.move_items([a.id], Unassigned())
        assert inventory_manager.get_item(a.id).placement == Unassigned()


class TestQueries:
    """Tests for reading inventory."""

    def test_get_items_by_expiry(self, inventory_manager, days_from_today):
        inventory_manager.add_item("Old", expiry_date=days_from_today(-1))
        inventory_manager.add_item("Fresh", expiry_date=days_from_today(10))
        items = inventory_manager.get_items(expiry_status="expired")
        assert [i.title for i in items] == ["Old"]

    def test_unknown_expiry_status_rejected(self, inventory_manager):
        with pytest.raises(InvalidInputError):
            inventory_manager.get_items(expiry_status="rotten")

    def test_history_days_window(self, inventory_manager):
        item = inventory_manager.add_item("Rice", quantity=5)
        inventory_manager.use_item(item.id)
        assert len(inventory_manager.get_history(days=1)) == 1

    def test_history_unknown_action_rejected(self, inventory_manager):
        with pytest.raises(InvalidInputError):
            inventory_manager.get_history(action="eaten")

    def test_log_consumption_keeps_quantity(self, inventory_manager):
        item = inventory_manager.add_item("Rice", quantity=5)
        record = inventory_manager.log_consumption(item.id, 2, "used", "weighed later")
        assert record.quantity_used == 2
        assert inventory_manager.get_item(item.id).quantity == 5

    def test_log_consumption_missing_item(self, inventory_manager):
        assert inventory_manager.log_consumption(404, 1) is None

    def test_categories(self, inventory_manager):
        names = [c.name for c in inventory_manager.get_categories()]
        assert "Dairy" in names
        assert "Uncategorized" in names

    def test_export_grouped_by_location(self, inventory_manager, fridge):
        inventory_manager.add_item("Peas", location_id=1)
        inventory_manager.add_item("Milk", location_id=fridge.id)
        inventory_manager.add_item("Cheese", location_id=fridge.id, category="Dairy")
        exported = [i.title for i in inventory_manager.export_items()]
        assert exported == ["Peas", "Cheese", "Milk"]


class TestPlacementQueries:
    """Tests for reading items by where they are placed."""

    def test_items_at_each_placement(self, inventory_manager, fridge):
        milk = inventory_manager.add_item("Milk", location_id=fridge.id)
        jam = inventory_manager.add_item("Jam", location="cellar")
        salt = inventory_manager.add_item("Salt")

        assert [i.id for i in inventory_manager.get_items_at(ById(fridge.id))] == [milk.id]
        assert [i.id for i in inventory_manager.get_items_at(ByLegacyLabel("cellar"))] == [jam.id]
        assert [i.id for i in inventory_manager.get_items_at(Unassigned())] == [salt.id]

    def test_location_id_wins_over_label(self, inventory_manager, fridge):
        """An item with a location id is never listed under its old label."""
        inventory_manager.add_item("Butter", location_id=fridge.id, location="cellar")
        assert inventory_manager.get_items_at(ByLegacyLabel("cellar")) == []
        assert inventory_manager.get_legacy_labels() == []

    def test_legacy_labels(self, inventory_manager):
        inventory_manager.add_item("Jam", location="cellar")
        inventory_manager.add_item("Pickles", location="cellar")
        inventory_manager.add_item("Paint", location="Attic")
        assert inventory_manager.get_legacy_labels() == ["Attic", "cellar"]

    def test_label_survives_location_delete(self, inventory_manager, location_manager, fridge):
        """Deleting a location leaves items reachable through their label."""
        milk = inventory_manager.add_item("Milk", location_id=fridge.id, location="fridge")
        location_manager.remove_location(fridge.id)
        items = inventory_manager.get_items_at(ByLegacyLabel("fridge"))
        assert [i.id for i in items] == [milk.id]
