"""Tests for the kiosk location picker."""

from stock_keeper.models import ById, ByLegacyLabel, Unassigned
from stock_keeper.tui import UNASSIGNED_KEY, placement_key, placement_options


class TestPlacementOptions:
    """Tests for the entries offered by the location picker."""

    def test_order_and_counts(self, inventory_manager, location_manager, fridge):
        inventory_manager.add_item("Milk", location_id=fridge.id)
        inventory_manager.add_item("Jam", location="cellar")
        inventory_manager.add_item("Pickles", location="cellar")
        inventory_manager.add_item("Salt")

        options = placement_options(inventory_manager, location_manager)
        assert [ref for ref, _ in options] == [
            ById(1),
            ById(fridge.id),
            ByLegacyLabel("cellar"),
            Unassigned(),
        ]
        labels = [label for _, label in options]
        assert labels[0].endswith("Freezer (0)")
        assert labels[1].endswith("Kitchen Fridge (1)")
        assert labels[2] == "cellar (2)"
        assert labels[3] == "Unassigned (1)"

    def test_hidden_locations_skipped(self, inventory_manager, location_manager, fridge):
        location_manager.update_location(fridge.id, is_visible=False)
        refs = [ref for ref, _ in placement_options(inventory_manager, location_manager)]
        assert ById(fridge.id) not in refs

    def test_no_legacy_entries_without_labels(self, inventory_manager, location_manager):
        refs = [ref for ref, _ in placement_options(inventory_manager, location_manager)]
        assert refs == [ById(1), Unassigned()]


class TestPlacementKey:
    """Tests for picker option ids."""

    def test_keys_are_distinct(self):
        keys = {
            placement_key(ById(1)),
            placement_key(ByLegacyLabel("1")),
            placement_key(ByLegacyLabel("unassigned")),
            placement_key(Unassigned()),
        }
        assert len(keys) == 4

    def test_unassigned_key(self):
        assert placement_key(Unassigned()) == UNASSIGNED_KEY
