"""Dashboard statistics for Stock Keeper."""

from collections import defaultdict
from datetime import datetime, timedelta

from .models import (
    Alerts,
    ConsumptionSummary,
    ExpiryStatus,
    Item,
    LocationSummary,
    StatsSnapshot,
    Unassigned,
)
from .sqlite_store import SQLiteStore

EXPIRING_SOON_STATUSES = frozenset({ExpiryStatus.TODAY, ExpiryStatus.SOON})
RECENT_CONSUMPTION_DAYS = 30
RECENT_CONSUMPTION_LIMIT = 10


def is_expiring_soon(item: Item) -> bool:
    """Expires today or within the next few days."""
    return item.expiry_status in EXPIRING_SOON_STATUSES


class Analytics:
    """Computes dashboard counters and alert lists.

    Nothing is cached; every call reads the store afresh.
    """

    def __init__(self, store: SQLiteStore | None = None):
        self.store = store or SQLiteStore()

    def snapshot(self) -> StatsSnapshot:
        """Compute all dashboard counters.

        Returns:
            StatsSnapshot with totals, per-location counts for visible
            locations and recent consumption
        """
        items = self.store.query_items()
        locations = self.store.list_locations(visible_only=True)

        summaries = {
            loc.id: LocationSummary(
                location_id=loc.id,
                location_name=loc.name,
                icon=loc.icon,
                type=loc.type,
                color=loc.color,
            )
            for loc in locations
        }

        for item in items:
            summary = summaries.get(item.location_id) if item.location_id is not None else None
            if summary is None:
                continue
            summary.total_items += 1
            if item.expiry_status == ExpiryStatus.EXPIRED:
                summary.expired_count += 1
            elif is_expiring_soon(item):
                summary.expiring_soon_count += 1

        by_location_type: dict[str, int] = defaultdict(int)
        for loc in locations:
            by_location_type[loc.type.value] += summaries[loc.id].total_items

        return StatsSnapshot(
            total_items=len(items),
            expired_count=sum(1 for i in items if i.expiry_status == ExpiryStatus.EXPIRED),
            expiring_soon_count=sum(1 for i in items if is_expiring_soon(i)),
            low_stock_count=sum(1 for i in items if i.is_low_stock),
            unassigned_count=sum(1 for i in items if isinstance(i.placement, Unassigned)),
            locations=list(summaries.values()),
            by_location_type=dict(by_location_type),
            recent_consumption=self.recent_consumption(),
        )

    def get_alerts(self) -> Alerts:
        """Get items that need attention: expired, expiring soon and low on stock."""
        items = self.store.query_items()
        low_stock = sorted(
            (i for i in items if i.is_low_stock), key=lambda i: (i.quantity, i.title)
        )
        return Alerts(
            expired=[i for i in items if i.expiry_status == ExpiryStatus.EXPIRED],
            expiring_soon=[i for i in items if is_expiring_soon(i)],
            low_stock=low_stock,
        )

    def recent_consumption(
        self,
        days: int = RECENT_CONSUMPTION_DAYS,
        limit: int | None = RECENT_CONSUMPTION_LIMIT,
    ) -> list[ConsumptionSummary]:
        """Most consumed title/unit pairs over a rolling window.

        Args:
            days: Window length in days
            limit: Maximum number of rows, None for all

        Returns:
            Totals ordered by amount consumed, largest first
        """
        since = datetime.now() - timedelta(days=days)
        return self.store.consumption_totals(since=since, limit=limit)
