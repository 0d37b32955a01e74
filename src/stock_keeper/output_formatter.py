"""Output formatting for CLI and programmatic use."""

import json
from datetime import date, datetime
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

EXPIRY_STYLES = {
    "expired": "bold red",
    "today": "red",
    "soon": "yellow",
    "ok": "green",
    "none": "dim",
}


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for output."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.isoformat()
        return super().default(obj)


def format_quantity(quantity: float, unit: str | None = None) -> str:
    """Render 2.0 as "2" and 0.5 as "0.5", followed by the unit."""
    text = f"{quantity:g}"
    return f"{text} {unit}" if unit else text


def placement_label(item: dict) -> str:
    """Human-readable placement for an item dict."""
    if item.get("location_name"):
        icon = item.get("location_icon") or ""
        return f"{icon} {item['location_name']}".strip()
    return item.get("location") or "-"


def expiry_badge(item: dict) -> str:
    """Colored expiry description for an item dict."""
    status = item.get("expiry_status", "none")
    days = item.get("days_until_expiry")
    style = EXPIRY_STYLES.get(status, "white")

    if status == "none" or days is None:
        text = "no expiry"
    elif status == "expired":
        text = f"expired {-days}d ago"
    elif status == "today":
        text = "expires today"
    else:
        text = f"{days}d left"
    return f"[{style}]{text}[/{style}]"


class OutputFormatter:
    """Formats output for both Rich terminal and JSON modes."""

    def __init__(self, json_mode: bool = False):
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode
        self.console = Console()

    def output(self, data: dict[str, Any], message: str = "") -> None:
        """Output data in appropriate format.

        Args:
            data: Data to output
            message: Optional message for Rich mode
        """
        if self.json_mode:
            self._output_json(data)
        else:
            self._output_rich(data, message)

    def _output_json(self, data: dict[str, Any]) -> None:
        """Output as JSON to stdout."""
        print(json.dumps(data, cls=JSONEncoder, indent=2, ensure_ascii=False))

    def _output_rich(self, data: dict[str, Any], message: str) -> None:
        """Output with Rich formatting."""
        if message:
            self.console.print(f"[green]✓[/green] {message}")

        payload = data.get("data", {})
        if "items" in payload:
            self._render_items(data)
        elif "item" in payload and isinstance(payload["item"], dict):
            self._render_item(data)
        elif "locations" in payload:
            self._render_locations(data)
        elif "location" in payload and isinstance(payload["location"], dict):
            self._render_location(data)
        elif "history" in payload:
            self._render_history(data)
        elif "categories" in payload:
            self._render_categories(data)
        elif "stats" in payload:
            self._render_stats(data)
        elif "alerts" in payload:
            self._render_alerts(data)
        elif "export" in payload:
            self._render_export(data)

    def _render_items(self, data: dict) -> None:
        """Render inventory item list."""
        items = data["data"]["items"]

        if not items:
            self.console.print("[dim]No items found[/dim]")
            return

        table = Table(title="Inventory", show_header=True, header_style="bold cyan")
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Item", style="cyan", no_wrap=False)
        table.add_column("Qty", style="magenta", justify="right")
        table.add_column("Location", style="green")
        table.add_column("Category", style="yellow")
        table.add_column("Expiry")

        for item in items:
            title = item["title"]
            if item.get("is_homemade"):
                title += " [dim](homemade)[/dim]"
            elif item.get("brand"):
                title += f" [dim]({item['brand']})[/dim]"

            table.add_row(
                str(item["id"]),
                title,
                format_quantity(item.get("quantity", 1), item.get("unit")),
                placement_label(item),
                item.get("category", "Uncategorized"),
                expiry_badge(item),
            )

        self.console.print(table)
        self.console.print(f"\nTotal items: {len(items)}")

    def _render_item(self, data: dict) -> None:
        """Render a single item with Rich."""
        item = data["data"]["item"]

        panel_content = f"""[bold]{item["title"]}[/bold]

Quantity: {format_quantity(item.get("quantity", 1), item.get("unit"))}
Location: {placement_label(item)}
Category: {item.get("category", "Uncategorized")}
Added: {item.get("date_added") or "-"}
Expires: {item.get("expiry_date") or "-"} ({expiry_badge(item)})"""

        if item.get("is_homemade"):
            panel_content += "\nHomemade"
        elif item.get("brand"):
            panel_content += f"\nBrand: {item['brand']}"

        if item.get("description"):
            panel_content += f"\nNotes: {item['description']}"

        if item.get("image_path"):
            panel_content += f"\nImage: {item['image_path']}"

        panel = Panel(panel_content, title=f"Item #{item['id']}", border_style="green")
        self.console.print(panel)

    def _render_locations(self, data: dict) -> None:
        """Render location list."""
        locations = data["data"]["locations"]
        counts = data["data"].get("counts", {})

        if not locations:
            self.console.print("[dim]No locations defined[/dim]")
            return

        table = Table(title="Locations", show_header=True, header_style="bold cyan")
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Location", style="cyan")
        table.add_column("Type", style="yellow")
        table.add_column("Order", justify="right")
        table.add_column("Items", justify="right")
        table.add_column("Visible", justify="center")

        for loc in locations:
            table.add_row(
                str(loc["id"]),
                f"{loc.get('icon', '')} {loc['name']}".strip(),
                loc.get("type", "other"),
                str(loc.get("sort_order", 0)),
                str(counts.get(str(loc["id"]), counts.get(loc["id"], 0))),
                "[green]✓[/green]" if loc.get("is_visible", True) else "[dim]-[/dim]",
            )

        self.console.print(table)

    def _render_location(self, data: dict) -> None:
        """Render a single location."""
        loc = data["data"]["location"]
        content = f"""[bold]{loc.get("icon", "")} {loc["name"]}[/bold]

Type: {loc.get("type", "other")}
Color: [{loc.get("color", "white")}]{loc.get("color", "-")}[/]
Sort order: {loc.get("sort_order", 0)}
Visible: {"yes" if loc.get("is_visible", True) else "no"}"""

        if "item_count" in data["data"]:
            content += f"\nItems: {data['data']['item_count']}"

        self.console.print(Panel(content, title=f"Location #{loc['id']}", border_style="cyan"))

    def _render_history(self, data: dict) -> None:
        """Render consumption history."""
        records = data["data"]["history"]

        if not records:
            self.console.print("[dim]No consumption records[/dim]")
            return

        table = Table(title="Consumption History", show_header=True, header_style="bold")
        table.add_column("When")
        table.add_column("Item")
        table.add_column("Qty", justify="right")
        table.add_column("Action")
        table.add_column("Notes")

        action_styles = {"used": "green", "discarded": "yellow", "expired": "red"}
        for record in records:
            action = record.get("action", "used")
            style = action_styles.get(action, "white")
            title = record["item_title"]
            if record.get("item_id") is None:
                title += " [dim](deleted)[/dim]"
            table.add_row(
                str(record.get("consumed_at", "")),
                title,
                format_quantity(record["quantity_used"], record.get("unit")),
                f"[{style}]{action}[/{style}]",
                record.get("notes") or "-",
            )

        self.console.print(table)

    def _render_categories(self, data: dict) -> None:
        """Render category reference list."""
        categories = data["data"]["categories"]
        for cat in categories:
            self.console.print(f"  {cat.get('icon', '')} {cat['name']}")

    def _render_stats(self, data: dict) -> None:
        """Render dashboard statistics."""
        stats = data["data"]["stats"]

        self.console.print("\n[bold]Inventory Overview[/bold]")
        self.console.print(f"Total items: {stats['total_items']}")
        self.console.print(f"Expired: [red]{stats['expired_count']}[/red]")
        self.console.print(f"Expiring soon: [yellow]{stats['expiring_soon_count']}[/yellow]")
        self.console.print(f"Low stock: {stats['low_stock_count']}")
        if stats.get("unassigned_count"):
            self.console.print(f"Unassigned: [dim]{stats['unassigned_count']}[/dim]")

        if stats.get("locations"):
            table = Table(show_header=True, header_style="bold")
            table.add_column("Location")
            table.add_column("Items", justify="right")
            table.add_column("Expired", justify="right", style="red")
            table.add_column("Soon", justify="right", style="yellow")

            for loc in stats["locations"]:
                table.add_row(
                    f"{loc.get('icon', '')} {loc['location_name']}".strip(),
                    str(loc["total_items"]),
                    str(loc["expired_count"]),
                    str(loc["expiring_soon_count"]),
                )
            self.console.print()
            self.console.print(table)

        if stats.get("recent_consumption"):
            self.console.print("\n[dim]Most used (last 30 days):[/dim]")
            for entry in stats["recent_consumption"]:
                self.console.print(
                    f"  {entry['item_title']}: "
                    f"{format_quantity(entry['total_consumed'], entry['unit'])} "
                    f"over {entry['consumption_events']} time(s)"
                )

    def _render_alerts(self, data: dict) -> None:
        """Render items that need attention."""
        alerts = data["data"]["alerts"]

        sections = [
            ("expired", "Expired", "bold red"),
            ("expiring_soon", "Expiring Soon", "bold yellow"),
            ("low_stock", "Low Stock", "bold magenta"),
        ]
        if not any(alerts.get(key) for key, _, _ in sections):
            self.console.print("[dim]Nothing needs attention[/dim]")
            return

        for key, title, style in sections:
            items = alerts.get(key, [])
            if not items:
                continue
            self.console.print(f"\n[{style}]{title} ({len(items)})[/{style}]")
            for item in items:
                detail = (
                    format_quantity(item["quantity"], item.get("unit"))
                    if key == "low_stock"
                    else expiry_badge(item)
                )
                self.console.print(
                    f"  #{item['id']} {item['title']} ({placement_label(item)}): {detail}"
                )

    def _render_export(self, data: dict) -> None:
        """Render the full inventory grouped by location."""
        items = data["data"]["export"]

        if not items:
            self.console.print("[dim]No items in inventory[/dim]")
            return

        current = None
        for item in items:
            group = placement_label(item)
            if group != current:
                current = group
                self.console.print(f"\n[bold cyan]{group}[/bold cyan]")
            self.console.print(
                f"  - {item['title']} ({format_quantity(item['quantity'], item.get('unit'))})"
                f" [dim]{item.get('category', '')}[/dim]"
            )

    def error(self, message: str, error_code: str | None = None) -> None:
        """Output error message.

        Args:
            message: Error message
            error_code: Optional error code
        """
        if self.json_mode:
            output = {"success": False, "error": message}
            if error_code:
                output["error_code"] = error_code
            print(json.dumps(output))
        else:
            self.console.print(f"[red]✗ Error:[/red] {message}")

    def success(self, message: str, data: dict | None = None) -> None:
        """Output success message.

        Args:
            message: Success message
            data: Optional data to include
        """
        if self.json_mode:
            output: dict[str, Any] = {"success": True, "message": message}
            if data:
                output["data"] = data
            print(json.dumps(output, cls=JSONEncoder))
        else:
            self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        """Output warning message.

        Args:
            message: Warning message
        """
        if self.json_mode:
            print(json.dumps({"warning": message}))
        else:
            self.console.print(f"[yellow]⚠[/yellow] {message}")
