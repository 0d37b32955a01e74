"""Core data models for Stock Keeper."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_LOCATION_ICON = "\U0001f4e6"
DEFAULT_LOCATION_COLOR = "#666666"
LOW_STOCK_THRESHOLD = 1.0


class LocationType(str, Enum):
    """Kinds of storage location."""

    FRIDGE = "fridge"
    FREEZER = "freezer"
    CUPBOARD = "cupboard"
    SPICE = "spice"
    PANTRY = "pantry"
    OTHER = "other"


class Unit(str, Enum):
    """Units of measurement for item quantities."""

    PCS = "pcs"
    G = "g"
    KG = "kg"
    ML = "ml"
    L = "L"


class ConsumptionAction(str, Enum):
    """Why quantity was removed from an item."""

    USED = "used"
    DISCARDED = "discarded"
    EXPIRED = "expired"


class ExpiryStatus(str, Enum):
    """Expiry bucket derived from an item's expiry date and today's date."""

    NONE = "none"
    EXPIRED = "expired"
    TODAY = "today"
    SOON = "soon"
    OK = "ok"


# --- Location references ---


@dataclass(frozen=True)
class ById:
    """Item placed in a location row."""

    location_id: int


@dataclass(frozen=True)
class ByLegacyLabel:
    """Item placed by a free-text label from before locations were rows."""

    label: str


@dataclass(frozen=True)
class Unassigned:
    """Item with no placement at all."""


LocationRef = ById | ByLegacyLabel | Unassigned


def resolve_location_ref(location_id: int | None, legacy_label: str | None) -> LocationRef:
    """Resolve an item's placement from its two location columns.

    The location id wins when present. The legacy label is only consulted
    when there is no id, and a blank label counts as absent.
    """
    if location_id is not None:
        return ById(location_id)
    if legacy_label is not None and legacy_label.strip():
        return ByLegacyLabel(legacy_label.strip())
    return Unassigned()


def location_columns(ref: LocationRef) -> tuple[int | None, str | None]:
    """Map a LocationRef back to its (location_id, location) column values."""
    if isinstance(ref, ById):
        return ref.location_id, None
    if isinstance(ref, ByLegacyLabel):
        return None, ref.label
    return None, None


# --- Stored entities ---


class Location(BaseModel):
    """A user-defined storage location."""

    id: int
    name: str
    type: LocationType = LocationType.OTHER
    icon: str = DEFAULT_LOCATION_ICON
    color: str = DEFAULT_LOCATION_COLOR
    sort_order: int = 0
    is_visible: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Item(BaseModel):
    """An inventory item, with its expiry classification computed at read time."""

    id: int
    title: str
    description: str = ""
    category: str = DEFAULT_CATEGORY
    location: str | None = None
    location_id: int | None = None
    brand: str | None = None
    is_homemade: bool = False
    quantity: float = 1.0
    unit: Unit = Unit.PCS
    date_added: date
    expiry_date: date | None = None
    image_path: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # Joined from the locations table
    location_name: str | None = None
    location_icon: str | None = None
    location_type: LocationType | None = None
    location_color: str | None = None

    # Derived, never stored
    expiry_status: ExpiryStatus = ExpiryStatus.NONE
    days_until_expiry: int | None = None

    @property
    def placement(self) -> LocationRef:
        """Where this item lives, id first and legacy label as fallback."""
        return resolve_location_ref(self.location_id, self.location)

    @property
    def is_low_stock(self) -> bool:
        """Check if item is running low but not used up."""
        return 0 < self.quantity <= LOW_STOCK_THRESHOLD


class ConsumptionRecord(BaseModel):
    """An append-only log entry of quantity removed from an item."""

    id: int
    item_id: int | None = None
    item_title: str
    quantity_used: float = Field(gt=0)
    unit: Unit
    action: ConsumptionAction = ConsumptionAction.USED
    notes: str = ""
    consumed_at: datetime


class Category(BaseModel):
    """A category from the flat reference list."""

    id: int
    name: str
    icon: str = DEFAULT_LOCATION_ICON
    sort_order: int = 0


# --- Inputs ---


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class ItemInput(BaseModel):
    """Validated item data for create and update.

    Defaults are applied here; whether a missing date_added or image_path
    means "today" or "keep what is stored" is up to the caller.
    """

    title: str
    description: str = ""
    category: str = DEFAULT_CATEGORY
    location: str | None = None
    location_id: int | None = None
    brand: str | None = None
    is_homemade: bool = False
    quantity: float = 1.0
    unit: Unit = Unit.PCS
    date_added: date | None = None
    expiry_date: date | None = None
    image_path: str | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, v: str | None) -> str:
        return _blank_to_none(v) or DEFAULT_CATEGORY

    @field_validator("quantity", mode="before")
    @classmethod
    def default_quantity(cls, v: float | None) -> float:
        return 1.0 if v is None else v

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Quantity cannot be negative")
        return v

    @field_validator("unit", mode="before")
    @classmethod
    def default_unit(cls, v: Unit | str | None) -> Unit | str:
        return Unit.PCS if v is None or v == "" else v

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v: str | None) -> str:
        return v or ""

    @field_validator("location", "brand", "image_path")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        return _blank_to_none(v)

    @model_validator(mode="after")
    def drop_brand_when_homemade(self) -> "ItemInput":
        if self.is_homemade:
            self.brand = None
        return self


class LocationInput(BaseModel):
    """Validated location data for create."""

    name: str
    type: LocationType = LocationType.OTHER
    icon: str = DEFAULT_LOCATION_ICON
    color: str = DEFAULT_LOCATION_COLOR
    sort_order: int | None = None
    is_visible: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Location name is required")
        return v

    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, v: LocationType | str | None) -> LocationType | str:
        return LocationType.OTHER if v is None or v == "" else v

    @field_validator("icon", mode="before")
    @classmethod
    def default_icon(cls, v: str | None) -> str:
        return v or DEFAULT_LOCATION_ICON

    @field_validator("color", mode="before")
    @classmethod
    def default_color(cls, v: str | None) -> str:
        return v or DEFAULT_LOCATION_COLOR


# --- Aggregates ---


class LocationSummary(BaseModel):
    """Per-location counters for the dashboard."""

    location_id: int
    location_name: str
    icon: str
    type: LocationType
    color: str
    total_items: int = 0
    expired_count: int = 0
    expiring_soon_count: int = 0


class ConsumptionSummary(BaseModel):
    """Consumption totals for one title/unit pair over a window."""

    item_title: str
    unit: Unit
    total_consumed: float
    consumption_events: int
    last_consumed: datetime


class StatsSnapshot(BaseModel):
    """Dashboard counters, computed fresh on every request."""

    generated_at: datetime = Field(default_factory=datetime.now)
    total_items: int = 0
    expired_count: int = 0
    expiring_soon_count: int = 0
    low_stock_count: int = 0
    unassigned_count: int = 0
    locations: list[LocationSummary] = Field(default_factory=list)
    by_location_type: dict[str, int] = Field(default_factory=dict)
    recent_consumption: list[ConsumptionSummary] = Field(default_factory=list)


class Alerts(BaseModel):
    """Items needing attention."""

    expired: list[Item] = Field(default_factory=list)
    expiring_soon: list[Item] = Field(default_factory=list)
    low_stock: list[Item] = Field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.expired) + len(self.expiring_soon) + len(self.low_stock)
