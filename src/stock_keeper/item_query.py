"""Item query composition and expiry classification."""

from datetime import date, timedelta
from typing import Any

from pydantic import BaseModel

from .models import ExpiryStatus

EXPIRING_SOON_DAYS = 3

ITEM_SELECT = """
    SELECT
        i.*,
        l.name AS location_name,
        l.icon AS location_icon,
        l.type AS location_type,
        l.color AS location_color
    FROM items i
    LEFT JOIN locations l ON i.location_id = l.id
"""

ITEM_ORDER = (
    " ORDER BY CASE WHEN i.expiry_date IS NULL THEN 1 ELSE 0 END,"
    " i.expiry_date ASC, i.title ASC, i.id ASC"
)


def classify_expiry(expiry_date: date | None, today: date) -> ExpiryStatus:
    """Bucket an expiry date relative to today's local date.

    Args:
        expiry_date: The item's expiry date, or None if it never expires
        today: The reference calendar date

    Returns:
        The matching ExpiryStatus
    """
    if expiry_date is None:
        return ExpiryStatus.NONE
    if expiry_date < today:
        return ExpiryStatus.EXPIRED
    if expiry_date == today:
        return ExpiryStatus.TODAY
    if expiry_date <= today + timedelta(days=EXPIRING_SOON_DAYS):
        return ExpiryStatus.SOON
    return ExpiryStatus.OK


def days_until_expiry(expiry_date: date | None, today: date) -> int | None:
    """Whole days from today to the expiry date; negative once expired."""
    if expiry_date is None:
        return None
    return (expiry_date - today).days


class ItemFilters(BaseModel):
    """Independent item filters, combined with AND."""

    location_id: int | None = None
    location: str | None = None
    category: str | None = None
    search: str | None = None
    expiry_status: ExpiryStatus | None = None
    unassigned: bool = False


def _expiry_clause(status: ExpiryStatus, today: date) -> tuple[str, list[Any]]:
    today_str = today.isoformat()
    cutoff = (today + timedelta(days=EXPIRING_SOON_DAYS)).isoformat()

    if status == ExpiryStatus.NONE:
        return "i.expiry_date IS NULL", []
    if status == ExpiryStatus.EXPIRED:
        return "i.expiry_date IS NOT NULL AND date(i.expiry_date) < ?", [today_str]
    if status == ExpiryStatus.TODAY:
        return "date(i.expiry_date) = ?", [today_str]
    if status == ExpiryStatus.SOON:
        return (
            "i.expiry_date IS NOT NULL AND date(i.expiry_date) > ? AND date(i.expiry_date) <= ?",
            [today_str, cutoff],
        )
    return "i.expiry_date IS NOT NULL AND date(i.expiry_date) > ?", [cutoff]


def build_item_query(filters: ItemFilters | None, today: date) -> tuple[str, list[Any]]:
    """Compose the parameterized item list query.

    Each active filter contributes one AND clause, so the order filters are
    applied in never changes the result set. Ordering is fixed: dated items
    first by expiry date, undated items last, ties broken by title.

    Args:
        filters: Filters to apply, or None for every item
        today: Reference date for the expiry bucket filter

    Returns:
        Tuple of (sql, params)
    """
    filters = filters or ItemFilters()
    clauses: list[str] = []
    params: list[Any] = []

    if filters.location_id is not None:
        clauses.append("i.location_id = ?")
        params.append(filters.location_id)

    if filters.location:
        # Pre-migration rows carry a label, newer ones a typed location
        clauses.append("(i.location = ? OR l.type = ?)")
        params.extend([filters.location, filters.location])

    if filters.category:
        clauses.append("i.category = ?")
        params.append(filters.category)

    if filters.search:
        clauses.append(
            "(instr(casefold(i.title), ?) > 0"
            " OR instr(casefold(i.description), ?) > 0"
            " OR instr(casefold(i.brand), ?) > 0)"
        )
        needle = filters.search.casefold()
        params.extend([needle, needle, needle])

    if filters.expiry_status is not None:
        clause, clause_params = _expiry_clause(filters.expiry_status, today)
        clauses.append(clause)
        params.extend(clause_params)

    if filters.unassigned:
        clauses.append("i.location_id IS NULL AND (i.location IS NULL OR trim(i.location) = '')")

    sql = ITEM_SELECT
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += ITEM_ORDER
    return sql, params
