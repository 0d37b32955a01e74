"""Kiosk terminal UI for Stock Keeper."""

from __future__ import annotations

from datetime import date
from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import (
    Button,
    DataTable,
    Footer,
    Header,
    Input,
    Label,
    OptionList,
    Static,
)
from textual.widgets.option_list import Option

from .errors import StockKeeperError
from .inventory_manager import InventoryManager
from .location_manager import LocationManager
from .models import (
    ById,
    ByLegacyLabel,
    ConsumptionAction,
    ExpiryStatus,
    Item,
    LocationRef,
    Unassigned,
    Unit,
    location_columns,
)
from .output_formatter import EXPIRY_STYLES, format_quantity

UNASSIGNED_KEY = "unassigned"


def placement_key(ref: LocationRef) -> str:
    """Option id for a placement in the location picker."""
    if isinstance(ref, ById):
        return f"loc-{ref.location_id}"
    if isinstance(ref, ByLegacyLabel):
        return f"label-{ref.label}"
    return UNASSIGNED_KEY


def placement_options(
    inventory_manager: InventoryManager, location_manager: LocationManager
) -> list[tuple[LocationRef, str]]:
    """Picker entries in display order, each with its label and item count.

    Visible locations come first, then one entry per legacy label still in
    use, then the unassigned bucket.
    """
    counts = location_manager.get_location_counts()
    options: list[tuple[LocationRef, str]] = [
        (ById(loc.id), f"{loc.icon} {loc.name} ({counts.get(loc.id, 0)})")
        for loc in location_manager.get_locations(visible_only=True)
    ]
    for label in inventory_manager.get_legacy_labels():
        ref = ByLegacyLabel(label)
        options.append((ref, f"{label} ({len(inventory_manager.get_items_at(ref))})"))

    unassigned = inventory_manager.get_items_at(Unassigned())
    options.append((Unassigned(), f"Unassigned ({len(unassigned)})"))
    return options


def expiry_text(item: Item) -> Text:
    """Short colored expiry badge for a table cell."""
    days = item.days_until_expiry
    status = item.expiry_status
    if status == ExpiryStatus.NONE or days is None:
        label = "-"
    elif status == ExpiryStatus.EXPIRED:
        label = f"expired {-days}d"
    elif status == ExpiryStatus.TODAY:
        label = "today"
    else:
        label = f"{days}d"
    return Text(label, style=EXPIRY_STYLES[status.value])


class ItemFormScreen(ModalScreen[dict[str, Any] | None]):
    """Modal dialog to add or edit inventory items."""

    DEFAULT_CSS = """
    ItemFormScreen {
        align: center middle;
    }

    #item-form-dialog {
        width: 70;
        height: auto;
        padding: 1 2;
        border: round $accent;
        background: $surface;
    }

    #item-form-actions {
        align-horizontal: right;
        height: auto;
        margin-top: 1;
    }

    .field-label {
        margin-top: 1;
    }
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, mode: str, defaults: dict[str, Any] | None = None):
        super().__init__()
        self.mode = mode
        self.defaults = defaults or {}

    def compose(self) -> ComposeResult:
        is_edit = self.mode == "edit"
        title = "Edit Item" if is_edit else "Add Item"
        submit = "Save" if is_edit else "Add"

        with Vertical(id="item-form-dialog"):
            yield Label(title, classes="field-label")
            yield Label("Name", classes="field-label")
            yield Input(value=self._value("title"), placeholder="Peas", id="title")
            yield Label("Quantity", classes="field-label")
            yield Input(value=self._value("quantity", "1"), id="quantity")
            yield Label("Unit: pcs | g | kg | ml | L", classes="field-label")
            yield Input(value=self._value("unit", Unit.PCS.value), id="unit")
            yield Label("Category", classes="field-label")
            yield Input(value=self._value("category"), placeholder="Vegetables", id="category")
            yield Label("Brand (optional)", classes="field-label")
            yield Input(value=self._value("brand"), id="brand")
            yield Label("Expires (YYYY-MM-DD, optional)", classes="field-label")
            yield Input(value=self._value("expiry_date"), placeholder="2026-03-01", id="expiry")
            with Horizontal(id="item-form-actions"):
                yield Button("Cancel", id="cancel")
                yield Button(submit, id="submit", variant="primary")

    def _value(self, key: str, fallback: str = "") -> str:
        value = self.defaults.get(key)
        if value is None:
            return fallback
        if hasattr(value, "value"):
            return str(value.value)
        if isinstance(value, float):
            return f"{value:g}"
        return str(value)

    def action_cancel(self) -> None:
        self.dismiss(None)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.dismiss(None)
            return

        if event.button.id != "submit":
            return

        title = self.query_one("#title", Input).value.strip()
        quantity_raw = self.query_one("#quantity", Input).value.strip() or "1"
        unit_raw = self.query_one("#unit", Input).value.strip() or Unit.PCS.value
        category_raw = self.query_one("#category", Input).value.strip()
        brand_raw = self.query_one("#brand", Input).value.strip()
        expiry_raw = self.query_one("#expiry", Input).value.strip()

        if not title:
            self.app.bell()
            return

        try:
            quantity = float(quantity_raw)
            unit = Unit(unit_raw)
            expiry = date.fromisoformat(expiry_raw) if expiry_raw else None
        except ValueError:
            self.app.bell()
            return

        self.dismiss(
            {
                "title": title,
                "quantity": quantity,
                "unit": unit,
                "category": category_raw or None,
                "brand": brand_raw or None,
                "expiry_date": expiry,
            }
        )


class StockKeeperKiosk(App[None]):
    """Touch-friendly view of what is stored where, soonest expiry first."""

    TITLE = "Stock Keeper"
    SUB_TITLE = "Kiosk"

    DEFAULT_CSS = """
    #status {
        dock: bottom;
        height: 1;
        padding: 0 1;
        background: $boost;
        color: $text;
    }

    #locations {
        width: 30;
        height: 1fr;
    }

    DataTable {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("u", "use_one", "Use 1"),
        Binding("p", "add_one", "Add 1"),
        Binding("d", "discard", "Discard"),
        Binding("x", "mark_expired", "Expired"),
        Binding("a", "add_item", "Add Item"),
        Binding("e", "edit_selected", "Edit"),
    ]

    def __init__(self, inventory_manager: InventoryManager, location_manager: LocationManager):
        super().__init__()
        self.inventory_manager = inventory_manager
        self.location_manager = location_manager
        self._placement: LocationRef = Unassigned()
        self._placements: dict[str, LocationRef] = {}
        self._item_ids: list[int] = []
        self._items: dict[int, Item] = {}

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Horizontal():
            yield OptionList(id="locations")
            yield DataTable(id="items")
        yield Static(
            "u:use one  p:add one  d:discard  x:expired  a:add  e:edit  r:refresh  q:quit",
            id="status",
        )
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#items", DataTable)
        table.cursor_type = "row"
        table.add_columns("Item", "Qty", "Category", "Expires")

        locations = self.location_manager.get_locations(visible_only=True)
        if locations:
            self._placement = ById(locations[0].id)
        self.action_refresh()

    def on_option_list_option_highlighted(self, event: OptionList.OptionHighlighted) -> None:
        ref = self._placements.get(event.option.id or "")
        if ref is not None and ref != self._placement:
            self._placement = ref
            self._refresh_items_table()

    def action_refresh(self) -> None:
        try:
            self._refresh_locations()
            self._refresh_items_table()
            self._set_status("Refreshed inventory")
        except StockKeeperError as exc:
            self._set_status(f"Refresh failed: {exc}")

    def action_use_one(self) -> None:
        item = self._selected_item()
        if item is None:
            return
        self._apply(
            lambda: self.inventory_manager.use_item(item.id, 1.0),
            lambda updated: f"Used 1 of {updated.title} (remaining: {updated.quantity:g})",
        )

    def action_add_one(self) -> None:
        item = self._selected_item()
        if item is None:
            return
        self._apply(
            lambda: self.inventory_manager.add_quantity(item.id, 1.0),
            lambda updated: f"Added 1 to {updated.title} (now: {updated.quantity:g})",
        )

    def action_discard(self) -> None:
        item = self._selected_item()
        if item is None:
            return
        self._apply(
            lambda: self.inventory_manager.discard_item(item.id, ConsumptionAction.DISCARDED),
            lambda updated: f"Discarded {updated.title}",
        )

    def action_mark_expired(self) -> None:
        item = self._selected_item()
        if item is None:
            return
        self._apply(
            lambda: self.inventory_manager.discard_item(item.id, ConsumptionAction.EXPIRED),
            lambda updated: f"Marked {updated.title} as expired",
        )

    def action_add_item(self) -> None:
        self.push_screen(ItemFormScreen(mode="add"), self._handle_add)

    def action_edit_selected(self) -> None:
        item = self._selected_item()
        if item is None:
            return
        defaults = item.model_dump()
        if item.expiry_date:
            defaults["expiry_date"] = item.expiry_date.isoformat()
        self.push_screen(
            ItemFormScreen(mode="edit", defaults=defaults),
            lambda payload, selected=item: self._handle_edit(selected, payload),
        )

    def _apply(self, operation, describe) -> None:
        try:
            updated = operation()
        except StockKeeperError as exc:
            self._set_status(str(exc))
            return
        self.action_refresh()
        if updated is None:
            self._set_status("Item no longer exists")
        else:
            self._set_status(describe(updated))

    def _refresh_locations(self) -> None:
        option_list = self.query_one("#locations", OptionList)
        entries = placement_options(self.inventory_manager, self.location_manager)
        self._placements = {placement_key(ref): ref for ref, _ in entries}

        refs = [ref for ref, _ in entries]
        if self._placement not in refs:
            self._placement = refs[0]

        option_list.clear_options()
        option_list.add_options(
            [Option(label, id=placement_key(ref)) for ref, label in entries]
        )
        option_list.highlighted = refs.index(self._placement)

    def _refresh_items_table(self) -> None:
        table = self.query_one("#items", DataTable)
        table.clear(columns=False)
        self._item_ids = []
        self._items = {}

        for item in self.inventory_manager.get_items_at(self._placement):
            self._item_ids.append(item.id)
            self._items[item.id] = item
            title = item.title if item.quantity > 0 else f"{item.title} (empty)"
            table.add_row(
                title,
                format_quantity(item.quantity, item.unit.value),
                item.category,
                expiry_text(item),
                key=str(item.id),
            )

        if self._item_ids:
            table.move_cursor(row=0, column=0)

    def _handle_add(self, payload: dict[str, Any] | None) -> None:
        if payload is None:
            self._set_status("Add item canceled")
            return

        location_id, label = location_columns(self._placement)
        try:
            added = self.inventory_manager.add_item(
                location_id=location_id, location=label, **payload
            )
        except StockKeeperError as exc:
            self._set_status(f"Add failed: {exc}")
            return
        self.action_refresh()
        self._set_status(f"Added {added.title}")

    def _handle_edit(self, item: Item, payload: dict[str, Any] | None) -> None:
        if payload is None:
            self._set_status("Edit canceled")
            return

        fields = {
            "description": item.description,
            "location": item.location,
            "location_id": item.location_id,
            "is_homemade": item.is_homemade,
            "date_added": item.date_added,
            "image_path": item.image_path,
        }
        try:
            updated = self.inventory_manager.update_item(item.id, **fields, **payload)
        except StockKeeperError as exc:
            self._set_status(f"Edit failed: {exc}")
            return
        self.action_refresh()
        self._set_status(f"Updated {updated.title}")

    def _selected_item(self) -> Item | None:
        table = self.query_one("#items", DataTable)
        row = table.cursor_row
        if row is None or row < 0 or row >= len(self._item_ids):
            self._set_status("No item selected")
            return None
        return self._items.get(self._item_ids[row])

    def _set_status(self, message: str) -> None:
        self.query_one("#status", Static).update(message)
