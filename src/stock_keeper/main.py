"""CLI entry point for Stock Keeper."""

import logging
from datetime import date
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler

from .analytics import Analytics
from .config import ConfigManager
from .errors import (
    InvalidInputError,
    ItemNotFoundError,
    LocationNotFoundError,
    PersistenceError,
)
from .inventory_manager import InventoryManager
from .location_manager import LocationManager
from .models import (
    ById,
    ByLegacyLabel,
    ConsumptionAction,
    ExpiryStatus,
    ItemInput,
    LocationRef,
    LocationType,
    Unassigned,
    Unit,
)
from .output_formatter import OutputFormatter
from .sqlite_store import SQLiteStore

app = typer.Typer(
    name="stock",
    help="Household inventory with locations, expiry tracking and consumption history",
    no_args_is_help=True,
)

ERROR_CODES: list[tuple[type[Exception], str]] = [
    (ItemNotFoundError, "ITEM_NOT_FOUND"),
    (LocationNotFoundError, "LOCATION_NOT_FOUND"),
    (InvalidInputError, "INVALID_INPUT"),
    (PersistenceError, "PERSISTENCE_ERROR"),
]

# Global state for formatter and config (set by callback)
formatter: OutputFormatter = OutputFormatter()
config: ConfigManager | None = None
store: SQLiteStore | None = None
inventory_manager: InventoryManager | None = None
location_manager: LocationManager | None = None


def get_config() -> ConfigManager:
    """Get or create ConfigManager instance."""
    global config
    if config is None:
        config = ConfigManager()
    return config


def get_store() -> SQLiteStore:
    """Get or create SQLiteStore instance using config values."""
    global store
    if store is None or store.closed:
        store = SQLiteStore(get_config().data.db_path)
    return store


def get_inventory_manager() -> InventoryManager:
    """Get or create InventoryManager instance."""
    global inventory_manager
    if inventory_manager is None:
        inventory_manager = InventoryManager(get_store())
    return inventory_manager


def get_location_manager() -> LocationManager:
    """Get or create LocationManager instance."""
    global location_manager
    if location_manager is None:
        location_manager = LocationManager(get_store())
    return location_manager


def setup_logging(level: str) -> None:
    """Route log records to stderr through Rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def fail(error: Exception) -> NoReturn:
    """Report an error in the current output mode and exit with status 1."""
    code = next((c for kind, c in ERROR_CODES if isinstance(error, kind)), None)
    formatter.error(str(error), error_code=code)
    raise typer.Exit(code=1)


def parse_date(value: str | None, option: str) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InvalidInputError(f"{option} must be a date in YYYY-MM-DD format") from e


@app.callback()
def main(
    ctx: typer.Context,
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON for programmatic use")
    ] = False,
    data_dir: Annotated[Path | None, typer.Option("--data-dir", help="Data directory path")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    """Stock Keeper CLI - Know what you have, where it is and when it expires."""
    global formatter, config, store, inventory_manager, location_manager

    formatter = OutputFormatter(json_mode=json_output)

    # Load config early
    config = ConfigManager()
    setup_logging("DEBUG" if verbose else config.logging.level)

    # CLI --data-dir overrides config, which overrides default
    db_path = data_dir / config.data.db_filename if data_dir else config.data.db_path

    try:
        store = SQLiteStore(db_path)
    except Exception as e:
        fail(e)
    inventory_manager = InventoryManager(store)
    location_manager = LocationManager(store)
    ctx.call_on_close(store.close)


# --- Item subcommand group ---
item_app = typer.Typer(help="Inventory item commands")
app.add_typer(item_app, name="item")


@item_app.command("list")
def item_list(
    location_id: Annotated[
        int | None, typer.Option("--location-id", "-l", help="Filter by location ID")
    ] = None,
    location: Annotated[
        str | None, typer.Option("--location", help="Filter by legacy label or location type")
    ] = None,
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Filter by category")
    ] = None,
    search: Annotated[
        str | None, typer.Option("--search", "-s", help="Search title, description and brand")
    ] = None,
    status: Annotated[
        ExpiryStatus | None, typer.Option("--status", help="Filter by expiry status")
    ] = None,
    unassigned: Annotated[
        bool, typer.Option("--unassigned", help="Only items with no location")
    ] = False,
) -> None:
    """View inventory items, soonest expiry first."""
    try:
        items = get_inventory_manager().get_items(
            location_id=location_id,
            location=location,
            category=category,
            search=search,
            expiry_status=status,
            unassigned=unassigned,
        )
        output_data = {
            "success": True,
            "data": {
                "items": [i.model_dump(mode="json") for i in items],
                "count": len(items),
            },
        }
        formatter.output(output_data)
    except Exception as e:
        fail(e)


@item_app.command("show")
def item_show(
    item_id: Annotated[int, typer.Argument(help="Item ID")],
) -> None:
    """Show a single item."""
    try:
        item = get_inventory_manager().get_item(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        formatter.output({"success": True, "data": {"item": item.model_dump(mode="json")}})
    except Exception as e:
        fail(e)


@item_app.command("add")
def item_add(
    title: Annotated[str, typer.Argument(help="Item name")],
    description: Annotated[str, typer.Option("--description", "-d", help="Notes")] = "",
    category: Annotated[str | None, typer.Option("--category", "-c", help="Category")] = None,
    location_id: Annotated[
        int | None, typer.Option("--location-id", "-l", help="Location ID")
    ] = None,
    location: Annotated[
        str | None, typer.Option("--location", help="Free-text location label")
    ] = None,
    brand: Annotated[str | None, typer.Option("--brand", "-b", help="Brand")] = None,
    homemade: Annotated[bool, typer.Option("--homemade", help="Item is homemade")] = False,
    quantity: Annotated[float | None, typer.Option("--quantity", "-q", help="Quantity")] = None,
    unit: Annotated[Unit | None, typer.Option("--unit", "-u", help="Unit of measurement")] = None,
    added: Annotated[
        str | None, typer.Option("--added", help="Date stocked (YYYY-MM-DD), default today")
    ] = None,
    expires: Annotated[
        str | None, typer.Option("--expires", "-e", help="Expiry date (YYYY-MM-DD)")
    ] = None,
    image: Annotated[str | None, typer.Option("--image", help="Relative image path")] = None,
) -> None:
    """Add an item to inventory."""
    try:
        cfg = get_config()
        item = get_inventory_manager().add_item(
            title=title,
            description=description,
            category=category or cfg.defaults.category,
            location=location,
            location_id=location_id,
            brand=brand,
            is_homemade=homemade,
            quantity=quantity,
            unit=unit or cfg.defaults.unit,
            date_added=parse_date(added, "--added"),
            expiry_date=parse_date(expires, "--expires"),
            image_path=image,
        )
        output_data = {
            "success": True,
            "message": f"Added {item.title} (#{item.id})",
            "data": {"item": item.model_dump(mode="json")},
        }
        formatter.output(output_data, output_data["message"])
    except Exception as e:
        fail(e)


@item_app.command("edit")
def item_edit(
    item_id: Annotated[int, typer.Argument(help="Item ID to edit")],
    title: Annotated[str | None, typer.Option("--title", "-t", help="New name")] = None,
    description: Annotated[
        str | None, typer.Option("--description", "-d", help="New notes")
    ] = None,
    category: Annotated[str | None, typer.Option("--category", "-c", help="New category")] = None,
    location_id: Annotated[
        int | None, typer.Option("--location-id", "-l", help="New location ID")
    ] = None,
    location: Annotated[
        str | None,
        typer.Option("--location", help="New free-text location label, \"\" to clear"),
    ] = None,
    brand: Annotated[str | None, typer.Option("--brand", "-b", help="New brand")] = None,
    homemade: Annotated[
        bool | None, typer.Option("--homemade/--store-bought", help="Homemade flag")
    ] = None,
    quantity: Annotated[float | None, typer.Option("--quantity", "-q", help="New quantity")] = None,
    unit: Annotated[Unit | None, typer.Option("--unit", "-u", help="New unit")] = None,
    expires: Annotated[
        str | None, typer.Option("--expires", "-e", help="New expiry date (YYYY-MM-DD)")
    ] = None,
    clear_expiry: Annotated[
        bool, typer.Option("--clear-expiry", help="Remove the expiry date")
    ] = False,
) -> None:
    """Edit an item. Options not given keep their current value."""
    try:
        mgr = get_inventory_manager()
        existing = mgr.get_item(item_id)
        if existing is None:
            raise ItemNotFoundError(item_id)

        fields: dict[str, Any] = existing.model_dump(include=set(ItemInput.model_fields))
        changes = {
            "title": title,
            "description": description,
            "category": category,
            "location_id": location_id,
            "location": location,
            "brand": brand,
            "is_homemade": homemade,
            "quantity": quantity,
            "unit": unit,
            "expiry_date": parse_date(expires, "--expires"),
        }
        fields.update({k: v for k, v in changes.items() if v is not None})
        if clear_expiry:
            fields["expiry_date"] = None

        item = mgr.update_item(item_id, **fields)
        output_data = {
            "success": True,
            "message": f"Updated {item.title}",
            "data": {"item": item.model_dump(mode="json")},
        }
        formatter.output(output_data, output_data["message"])
    except Exception as e:
        fail(e)


@item_app.command("delete")
def item_delete(
    item_id: Annotated[int, typer.Argument(help="Item ID to delete")],
) -> None:
    """Delete an item. Its consumption history is kept."""
    try:
        removed = get_inventory_manager().remove_item(item_id)
        output_data = {
            "success": True,
            "message": f"Deleted {removed.title}",
            "data": {"item": removed.model_dump(mode="json")},
        }
        formatter.output(output_data, output_data["message"])
    except Exception as e:
        fail(e)


@item_app.command("set-qty")
def item_set_quantity(
    item_id: Annotated[int, typer.Argument(help="Item ID")],
    quantity: Annotated[float, typer.Argument(help="New quantity")],
) -> None:
    """Set an item's quantity without recording consumption."""
    try:
        item = get_inventory_manager().set_quantity(item_id, quantity)
        output_data = {
            "success": True,
            "message": f"{item.title} now at {item.quantity:g} {item.unit.value}",
            "data": {"item": item.model_dump(mode="json")},
        }
        formatter.output(output_data, output_data["message"])
    except Exception as e:
        fail(e)


@item_app.command("add-qty")
def item_add_quantity(
    item_id: Annotated[int, typer.Argument(help="Item ID")],
    amount: Annotated[float, typer.Option("--amount", "-a", help="Amount to add")] = 1.0,
) -> None:
    """Increase an item's quantity (restock)."""
    try:
        item = get_inventory_manager().add_quantity(item_id, amount)
        output_data = {
            "success": True,
            "message": f"{item.title} now at {item.quantity:g} {item.unit.value}",
            "data": {"item": item.model_dump(mode="json")},
        }
        formatter.output(output_data, output_data["message"])
    except Exception as e:
        fail(e)


@item_app.command("use")
def item_use(
    item_id: Annotated[int, typer.Argument(help="Item ID")],
    amount: Annotated[float, typer.Option("--amount", "-a", help="Amount used")] = 1.0,
    notes: Annotated[str, typer.Option("--notes", "-n", help="Notes")] = "",
) -> None:
    """Record that some of an item was used."""
    try:
        item = get_inventory_manager().use_item(item_id, amount, notes)
        if item is None:
            raise ItemNotFoundError(item_id)
        output_data = {
            "success": True,
            "message": f"Used {amount:g} of {item.title} (remaining: {item.quantity:g})",
            "data": {"item": item.model_dump(mode="json")},
        }
        formatter.output(output_data, output_data["message"])
    except Exception as e:
        fail(e)


@item_app.command("discard")
def item_discard(
    item_id: Annotated[int, typer.Argument(help="Item ID")],
    expired: Annotated[
        bool, typer.Option("--expired", help="Record as expired instead of discarded")
    ] = False,
    notes: Annotated[str, typer.Option("--notes", "-n", help="Notes")] = "",
) -> None:
    """Throw away the whole remaining quantity of an item."""
    try:
        action = ConsumptionAction.EXPIRED if expired else ConsumptionAction.DISCARDED
        item = get_inventory_manager().discard_item(item_id, action, notes)
        if item is None:
            raise ItemNotFoundError(item_id)
        output_data = {
            "success": True,
            "message": f"Marked {item.title} as {action.value}",
            "data": {"item": item.model_dump(mode="json")},
        }
        formatter.output(output_data, output_data["message"])
    except Exception as e:
        fail(e)


@item_app.command("export")
def item_export() -> None:
    """Dump every item, grouped by location."""
    try:
        items = get_inventory_manager().export_items()
        output_data = {
            "success": True,
            "data": {
                "export": [i.model_dump(mode="json") for i in items],
                "count": len(items),
            },
        }
        formatter.output(output_data)
    except Exception as e:
        fail(e)


@item_app.command("bulk-delete")
def item_bulk_delete(
    item_ids: Annotated[list[int], typer.Argument(help="Item IDs to delete")],
) -> None:
    """Delete several items at once."""
    try:
        removed = get_inventory_manager().bulk_remove(item_ids)
        formatter.success(f"Deleted {removed} item(s)", {"removed": removed})
    except Exception as e:
        fail(e)


@item_app.command("move")
def item_move(
    item_ids: Annotated[list[int], typer.Argument(help="Item IDs to move")],
    location_id: Annotated[
        int | None, typer.Option("--location-id", "-l", help="Target location ID")
    ] = None,
    label: Annotated[
        str | None, typer.Option("--label", help="Target free-text location label")
    ] = None,
    unassign: Annotated[
        bool, typer.Option("--unassign", help="Remove the items' location")
    ] = False,
) -> None:
    """Move several items to a location."""
    try:
        targets = [location_id is not None, bool(label), unassign]
        if sum(targets) != 1:
            raise InvalidInputError("Give exactly one of --location-id, --label or --unassign")

        ref: LocationRef
        if location_id is not None:
            ref = ById(location_id)
        elif label:
            ref = ByLegacyLabel(label)
        else:
            ref = Unassigned()

        moved = get_inventory_manager().move_items(item_ids, ref)
        formatter.success(f"Moved {moved} item(s)", {"moved": moved})
    except Exception as e:
        fail(e)


# --- Location subcommand group ---
location_app = typer.Typer(help="Storage location commands")
app.add_typer(location_app, name="location")


@location_app.command("list")
def location_list(
    visible_only: Annotated[
        bool, typer.Option("--visible-only", help="Skip hidden locations")
    ] = False,
) -> None:
    """View storage locations in display order."""
    try:
        mgr = get_location_manager()
        locations = mgr.get_locations(visible_only=visible_only)
        output_data = {
            "success": True,
            "data": {
                "locations": [loc.model_dump(mode="json") for loc in locations],
                "counts": mgr.get_location_counts(),
            },
        }
        formatter.output(output_data)
    except Exception as e:
        fail(e)


@location_app.command("show")
def location_show(
    location_id: Annotated[int, typer.Argument(help="Location ID")],
) -> None:
    """Show a single location."""
    try:
        mgr = get_location_manager()
        loc = mgr.get_location(location_id)
        if loc is None:
            raise LocationNotFoundError(location_id)
        output_data = {
            "success": True,
            "data": {
                "location": loc.model_dump(mode="json"),
                "item_count": mgr.get_location_counts().get(location_id, 0),
            },
        }
        formatter.output(output_data)
    except Exception as e:
        fail(e)


@location_app.command("add")
def location_add(
    name: Annotated[str, typer.Argument(help="Location name")],
    type: Annotated[
        LocationType | None, typer.Option("--type", "-t", help="Location type")
    ] = None,
    icon: Annotated[str | None, typer.Option("--icon", help="Emoji icon")] = None,
    color: Annotated[str | None, typer.Option("--color", help="Display color")] = None,
    order: Annotated[int | None, typer.Option("--order", help="Sort position")] = None,
    hidden: Annotated[bool, typer.Option("--hidden", help="Hide from home views")] = False,
) -> None:
    """Add a storage location."""
    try:
        loc = get_location_manager().add_location(
            name=name,
            type=type or get_config().defaults.location_type,
            icon=icon,
            color=color,
            sort_order=order,
            is_visible=not hidden,
        )
        output_data = {
            "success": True,
            "message": f"Added location {loc.name} (#{loc.id})",
            "data": {"location": loc.model_dump(mode="json")},
        }
        formatter.output(output_data, output_data["message"])
    except Exception as e:
        fail(e)


@location_app.command("edit")
def location_edit(
    location_id: Annotated[int, typer.Argument(help="Location ID")],
    name: Annotated[str | None, typer.Option("--name", help="New name")] = None,
    type: Annotated[
        LocationType | None, typer.Option("--type", "-t", help="New location type")
    ] = None,
    icon: Annotated[str | None, typer.Option("--icon", help="New emoji icon")] = None,
    color: Annotated[str | None, typer.Option("--color", help="New display color")] = None,
    order: Annotated[int | None, typer.Option("--order", help="New sort position")] = None,
    visible: Annotated[
        bool | None, typer.Option("--visible/--hidden", help="Show on home views")
    ] = None,
) -> None:
    """Edit a location. Options not given keep their current value."""
    try:
        loc = get_location_manager().update_location(
            location_id,
            name=name,
            type=type,
            icon=icon,
            color=color,
            sort_order=order,
            is_visible=visible,
        )
        output_data = {
            "success": True,
            "message": f"Updated location {loc.name}",
            "data": {"location": loc.model_dump(mode="json")},
        }
        formatter.output(output_data, output_data["message"])
    except Exception as e:
        fail(e)


@location_app.command("delete")
def location_delete(
    location_id: Annotated[int, typer.Argument(help="Location ID")],
) -> None:
    """Delete a location. Its items are kept without a location."""
    try:
        loc = get_location_manager().remove_location(location_id)
        output_data = {
            "success": True,
            "message": f"Deleted location {loc.name}",
            "data": {"location": loc.model_dump(mode="json")},
        }
        formatter.output(output_data, output_data["message"])
    except Exception as e:
        fail(e)


@location_app.command("reorder")
def location_reorder(
    location_ids: Annotated[list[int], typer.Argument(help="Location IDs in display order")],
) -> None:
    """Set the display order of locations."""
    try:
        locations = get_location_manager().reorder_locations(location_ids)
        output_data = {
            "success": True,
            "message": "Locations reordered",
            "data": {"locations": [loc.model_dump(mode="json") for loc in locations]},
        }
        formatter.output(output_data, output_data["message"])
    except Exception as e:
        fail(e)


# --- Reporting ---


@app.command()
def history(
    item_id: Annotated[int | None, typer.Option("--item", "-i", help="Filter by item ID")] = None,
    days: Annotated[int | None, typer.Option("--days", "-d", help="Only the last N days")] = None,
    action: Annotated[
        ConsumptionAction | None, typer.Option("--action", "-a", help="Filter by action")
    ] = None,
    limit: Annotated[int | None, typer.Option("--limit", "-n", help="Maximum records")] = None,
) -> None:
    """View consumption history, newest first."""
    try:
        records = get_inventory_manager().get_history(
            item_id=item_id, days=days, action=action, limit=limit
        )
        output_data = {
            "success": True,
            "data": {"history": [r.model_dump(mode="json") for r in records]},
        }
        formatter.output(output_data)
    except Exception as e:
        fail(e)


@app.command()
def categories() -> None:
    """List the category reference list."""
    try:
        cats = get_inventory_manager().get_categories()
        formatter.output(
            {"success": True, "data": {"categories": [c.model_dump(mode="json") for c in cats]}}
        )
    except Exception as e:
        fail(e)


@app.command()
def stats() -> None:
    """Show dashboard counters."""
    try:
        snapshot = Analytics(get_store()).snapshot()
        formatter.output({"success": True, "data": {"stats": snapshot.model_dump(mode="json")}})
    except Exception as e:
        fail(e)


@app.command()
def alerts() -> None:
    """Show expired, expiring-soon and low-stock items."""
    try:
        result = Analytics(get_store()).get_alerts()
        output_data = {
            "success": True,
            "data": {
                "alerts": result.model_dump(mode="json"),
                "total_count": result.total_count,
            },
        }
        formatter.output(output_data)
    except Exception as e:
        fail(e)


@app.command()
def kiosk() -> None:
    """Open the touch-friendly terminal view."""
    from .tui import StockKeeperKiosk

    s = get_store()
    s.start_autoflush(get_config().data.flush_interval_seconds)
    StockKeeperKiosk(get_inventory_manager(), get_location_manager()).run()


if __name__ == "__main__":
    app()
