"""Tests for item filtering and ordering."""

from datetime import date, timedelta

import pytest

from stock_keeper.item_query import ItemFilters, build_item_query, classify_expiry
from stock_keeper.models import ExpiryStatus

TODAY = date(2026, 3, 10)


def in_days(days: int) -> date:
    return TODAY + timedelta(days=days)


@pytest.fixture
def stocked(inventory_manager, fridge):
    """A small inventory spread across the seeded freezer, a fridge and nowhere."""
    add = inventory_manager.add_item
    return {
        "peas": add("Peas", location_id=1, category="Vegetables", expiry_date=in_days(30)),
        "fish": add("Fish Fingers", location_id=1, brand="Captain", expiry_date=in_days(-2)),
        "milk": add("Milk", location_id=fridge.id, category="Dairy", expiry_date=in_days(0)),
        "yogurt": add("Yogurt", location_id=fridge.id, category="Dairy", expiry_date=in_days(2)),
        "salt": add("Salt", location="cupboard", description="Sea salt flakes"),
        "jam": add("Jam", is_homemade=True),
    }


def titles(items):
    return [i.title for i in items]


class TestOrdering:
    """Tests for the fixed display order."""

    def test_dated_items_first_then_undated_by_title(self, store, stocked):
        """Soonest expiry first; items without a date come last."""
        items = store.query_items(today=TODAY)
        assert titles(items) == ["Fish Fingers", "Milk", "Yogurt", "Peas", "Jam", "Salt"]

    def test_same_expiry_ordered_by_title(self, store, inventory_manager):
        inventory_manager.add_item("Zucchini", expiry_date=in_days(5))
        inventory_manager.add_item("Apples", expiry_date=in_days(5))
        assert titles(store.query_items(today=TODAY)) == ["Apples", "Zucchini"]

    def test_derived_fields(self, store, stocked):
        """Each item carries its expiry bucket and day count."""
        by_title = {i.title: i for i in store.query_items(today=TODAY)}
        assert by_title["Fish Fingers"].expiry_status == ExpiryStatus.EXPIRED
        assert by_title["Fish Fingers"].days_until_expiry == -2
        assert by_title["Milk"].expiry_status == ExpiryStatus.TODAY
        assert by_title["Yogurt"].expiry_status == ExpiryStatus.SOON
        assert by_title["Peas"].expiry_status == ExpiryStatus.OK
        assert by_title["Jam"].expiry_status == ExpiryStatus.NONE
        assert by_title["Jam"].days_until_expiry is None

    def test_joined_location_fields(self, store, stocked):
        item = store.get_item(stocked["peas"].id, today=TODAY)
        assert item.location_name == "Freezer"
        assert item.location_type.value == "freezer"


class TestFilters:
    """Tests for individual filters."""

    def test_location_id(self, store, stocked, fridge):
        items = store.query_items(ItemFilters(location_id=fridge.id), today=TODAY)
        assert titles(items) == ["Milk", "Yogurt"]

    def test_legacy_label(self, store, stocked):
        items = store.query_items(ItemFilters(location="cupboard"), today=TODAY)
        assert titles(items) == ["Salt"]

    def test_legacy_filter_matches_location_type(self, store, stocked):
        """The legacy filter also matches items in a location of that type."""
        items = store.query_items(ItemFilters(location="freezer"), today=TODAY)
        assert titles(items) == ["Fish Fingers", "Peas"]

    def test_category(self, store, stocked):
        items = store.query_items(ItemFilters(category="Dairy"), today=TODAY)
        assert titles(items) == ["Milk", "Yogurt"]

    @pytest.mark.parametrize("needle", ["peas", "PEAS", "ea"])
    def test_search_title_case_insensitive(self, store, stocked, needle):
        assert "Peas" in titles(store.query_items(ItemFilters(search=needle), today=TODAY))

    def test_search_description_and_brand(self, store, stocked):
        assert titles(store.query_items(ItemFilters(search="FLAKES"), today=TODAY)) == ["Salt"]
        assert titles(store.query_items(ItemFilters(search="captain"), today=TODAY)) == [
            "Fish Fingers"
        ]

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (ExpiryStatus.EXPIRED, ["Fish Fingers"]),
            (ExpiryStatus.TODAY, ["Milk"]),
            (ExpiryStatus.SOON, ["Yogurt"]),
            (ExpiryStatus.OK, ["Peas"]),
            (ExpiryStatus.NONE, ["Jam", "Salt"]),
        ],
    )
    def test_expiry_status(self, store, stocked, status, expected):
        """Each bucket filter selects exactly the items classified into it."""
        items = store.query_items(ItemFilters(expiry_status=status), today=TODAY)
        assert titles(items) == expected
        assert all(i.expiry_status == status for i in items)

    def test_unassigned(self, store, stocked):
        """Only items with neither a location id nor a label."""
        items = store.query_items(ItemFilters(unassigned=True), today=TODAY)
        assert titles(items) == ["Jam"]

    def test_filters_combine_with_and(self, store, stocked, fridge):
        filters = ItemFilters(location_id=fridge.id, expiry_status=ExpiryStatus.SOON)
        assert titles(store.query_items(filters, today=TODAY)) == ["Yogurt"]

    def test_no_match_is_empty(self, store, stocked):
        assert store.query_items(ItemFilters(search="caviar"), today=TODAY) == []


BOUNDARY_OFFSETS = [-1, 0, 1, 3, 4]


@pytest.fixture
def boundary_items(inventory_manager):
    """One item on each side of the expired, today and soon/ok edges."""
    ids = {
        offset: inventory_manager.add_item(f"Day {offset:+d}", expiry_date=in_days(offset)).id
        for offset in BOUNDARY_OFFSETS
    }
    ids[None] = inventory_manager.add_item("Undated").id
    return ids


class TestExpiryBoundaries:
    """The SQL bucket filter agrees with the pure classification at every edge."""

    @pytest.mark.parametrize("status", list(ExpiryStatus))
    def test_filter_matches_classification(self, store, boundary_items, status):
        expected = {
            item_id
            for offset, item_id in boundary_items.items()
            if classify_expiry(None if offset is None else in_days(offset), TODAY) == status
        }
        items = store.query_items(ItemFilters(expiry_status=status), today=TODAY)
        assert {i.id for i in items} == expected

    @pytest.mark.parametrize(
        ("offset", "status"),
        [
            (-1, ExpiryStatus.EXPIRED),
            (0, ExpiryStatus.TODAY),
            (1, ExpiryStatus.SOON),
            (3, ExpiryStatus.SOON),
            (4, ExpiryStatus.OK),
        ],
    )
    def test_edge_lands_in_bucket(self, store, boundary_items, offset, status):
        items = store.query_items(ItemFilters(expiry_status=status), today=TODAY)
        assert boundary_items[offset] in {i.id for i in items}


class TestBuildItemQuery:
    """Tests for SQL composition."""

    def test_no_filters_has_no_where(self):
        sql, params = build_item_query(None, TODAY)
        assert "WHERE" not in sql
        assert params == []

    def test_values_are_parameters(self):
        """User text never ends up inside the SQL string."""
        sql, params = build_item_query(ItemFilters(search="'; DROP TABLE items; --"), TODAY)
        assert "DROP" not in sql
        assert "'; drop table items; --" in params

    def test_clause_order_independent_of_filter_order(self):
        a = build_item_query(ItemFilters(category="Dairy", location_id=2), TODAY)
        b = build_item_query(ItemFilters(location_id=2, category="Dairy"), TODAY)
        assert a == b
