"""Integration tests for complete workflows."""

import json
from datetime import date, timedelta

from typer.testing import CliRunner

from stock_keeper.inventory_manager import InventoryManager
from stock_keeper.location_manager import LocationManager
from stock_keeper.main import app
from stock_keeper.models import ConsumptionAction, ExpiryStatus
from stock_keeper.sqlite_store import SQLiteStore

runner = CliRunner()


class TestGarageFreezerWorkflow:
    """Stock a new freezer, use some, throw the rest away."""

    def test_through_managers(self, location_manager, inventory_manager, days_from_today):
        garage = location_manager.add_location("Garage Freezer", type="freezer")
        chicken = inventory_manager.add_item(
            "Chicken",
            location_id=garage.id,
            expiry_date=days_from_today(2),
            quantity=3,
            unit="kg",
        )

        listed = inventory_manager.get_items(location_id=garage.id)
        assert [i.id for i in listed] == [chicken.id]
        assert listed[0].expiry_status == ExpiryStatus.SOON
        assert listed[0].days_until_expiry == 2

        assert inventory_manager.use_item(chicken.id, 1).quantity == 2
        history = inventory_manager.get_history(item_id=chicken.id)
        assert [(r.quantity_used, r.action) for r in history] == [(1, ConsumptionAction.USED)]

        assert inventory_manager.discard_item(chicken.id, "discarded").quantity == 0
        history = inventory_manager.get_history(item_id=chicken.id)
        assert sorted((r.quantity_used, r.action.value) for r in history) == [
            (1, "used"),
            (2, "discarded"),
        ]

    def test_through_cli(self, tmp_path):
        args = ["--json", "--data-dir", str(tmp_path)]

        def run(*command):
            result = runner.invoke(app, [*args, *command])
            assert result.exit_code == 0, result.output
            return json.loads(result.stdout)

        garage = run("location", "add", "Garage Freezer", "--type", "freezer")
        garage_id = str(garage["data"]["location"]["id"])

        expires = (date.today() + timedelta(days=2)).isoformat()
        added = run(
            "item", "add", "Chicken",
            "--location-id", garage_id,
            "--expires", expires,
            "--quantity", "3",
            "--unit", "kg",
        )
        item_id = str(added["data"]["item"]["id"])

        listed = run("item", "list", "--location-id", garage_id)["data"]["items"]
        assert listed[0]["expiry_status"] == "soon"
        assert listed[0]["days_until_expiry"] == 2

        assert run("item", "use", item_id, "--amount", "1")["data"]["item"]["quantity"] == 2
        assert run("item", "discard", item_id)["data"]["item"]["quantity"] == 0

        history = run("history", "--item", item_id)["data"]["history"]
        assert sorted((r["quantity_used"], r["action"]) for r in history) == [
            (1, "used"),
            (2, "discarded"),
        ]


class TestRestart:
    """Data written by one session is visible to the next."""

    def test_reopen(self, tmp_path):
        db_path = tmp_path / "stock.db"

        with SQLiteStore(db_path=db_path) as store:
            pantry = LocationManager(store).add_location("Pantry", type="pantry")
            rice = InventoryManager(store).add_item("Rice", location_id=pantry.id, quantity=2)
            InventoryManager(store).use_item(rice.id)

        with SQLiteStore(db_path=db_path) as store:
            inventory = InventoryManager(store)
            item = inventory.get_item(rice.id)
            assert item.quantity == 1
            assert item.location_name == "Pantry"
            assert len(inventory.get_history()) == 1
            assert [loc.name for loc in LocationManager(store).get_locations()] == [
                "Freezer",
                "Pantry",
            ]

    def test_location_delete_then_item_delete(self, tmp_path):
        """Items and history outlive the rows they referenced."""
        db_path = tmp_path / "stock.db"

        with SQLiteStore(db_path=db_path) as store:
            locations = LocationManager(store)
            inventory = InventoryManager(store)
            shed = locations.add_location("Shed")
            paint = inventory.add_item("Paint", location_id=shed.id, quantity=2)
            inventory.use_item(paint.id)
            locations.remove_location(shed.id)
            inventory.remove_item(paint.id)

        with SQLiteStore(db_path=db_path) as store:
            history = InventoryManager(store).get_history()
            assert len(history) == 1
            assert history[0].item_id is None
            assert history[0].item_title == "Paint"
            assert history[0].unit.value == "pcs"
