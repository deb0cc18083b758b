"""Warehouse, storage location and stock data models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class LocationStatus(str, Enum):
    FREE = "Free"
    OCCUPIED = "Occupied"
    BLOCKED = "Blocked"


class LocationType(str, Enum):
    STANDARD = "standard"
    INBOUND = "inbound"
    OUTBOUND = "outbound"
    REMOVAL = "removal"
    PICKING = "picking"
    AUTOMATED_STORAGE = "automated-storage"


class ArticleType(str, Enum):
    PRODUCTION_ORDER = "production_order"
    COMPLETE_TOOL = "complete_tool"
    TOOL_COMPONENT = "tool_component"
    MATERIAL = "material"
    PRODUCTION_EQUIPMENT = "production_equipment"
    TESTING_EQUIPMENT = "testing_equipment"
    CONSUMABLES = "consumables"
    SPECIAL_MATERIAL = "special_material"
    SPARE_PARTS = "spare_parts"


class StockLevel(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    GOOD = "good"


class OrderStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    FAILED = "Failed"


class RequestType(str, Enum):
    INBOUND = "Inbound"
    OUTBOUND = "Outbound"
    PICKING = "Picking"
    INVENTORY = "Inventory"


class RequestStatus(str, Enum):
    CREATED = "Created"
    ASSIGNED = "Assigned"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class GridOrientation(str, Enum):
    TOP_DOWN = "top-down"
    BOTTOM_UP = "bottom-up"


def _now() -> str:
    return datetime.utcnow().isoformat()


@dataclass
class Tenant:
    tenant_id: str
    name: str
    warehouse_id: str


@dataclass(frozen=True)
class Coordinate:
    x: int
    y: int
    z: int

    def __post_init__(self) -> None:
        for axis, value in (("x", self.x), ("y", self.y), ("z", self.z)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"Coordinate {axis} must be a positive integer: {value!r}")

    @property
    def footprint(self) -> tuple[int, int]:
        return (self.x, self.y)


@dataclass
class StorageLocation:
    warehouse_id: str
    location_id: str
    type: LocationType
    sequence_number: int
    coordinate: Coordinate
    status: LocationStatus = LocationStatus.FREE
    retired: bool = False


@dataclass
class Article:
    article_id: str
    type: ArticleType
    name: str
    weight: float
    unit: str
    min_stock: int
    reorder_point: int
    max_stock: int
    current_stock: int = 0


@dataclass
class TransportOrder:
    order_id: str
    warehouse_id: str
    storage_unit_id: str
    source: str
    destination: str
    priority: int = 1
    request_id: Optional[str] = None
    client_id: Optional[str] = None
    status: OrderStatus = OrderStatus.PENDING
    timestamp: str = field(default_factory=_now)
    completed_at: Optional[str] = None


@dataclass
class Request:
    request_id: str
    client_id: str
    request_type: RequestType
    article_id: str
    article_type: ArticleType
    quantity: int
    target: Coordinate
    status: RequestStatus = RequestStatus.CREATED
    timestamp: str = field(default_factory=_now)
    completed_at: Optional[str] = None


@dataclass
class StockMovement:
    movement_id: str
    article_id: str
    stock_before: int
    stock_after: int
    delta: int
    level: StockLevel
    reference: Optional[str] = None
    timestamp: str = field(default_factory=_now)


@dataclass
class GridCell:
    x: int
    y: int
    locations: tuple[StorageLocation, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.locations

    @property
    def stack_size(self) -> int:
        return len(self.locations)

    @property
    def top(self) -> Optional[StorageLocation]:
        """First location of the stack, the one a map tile shows."""
        return self.locations[0] if self.locations else None


@dataclass
class Grid:
    warehouse_id: str
    width: int
    height: int
    orientation: GridOrientation
    rows: list[list[GridCell]] = field(default_factory=list)

    def cell(self, x: int, y: int) -> GridCell:
        """Returns the cell at warehouse coordinates (x, y), whatever the orientation."""
        if not (1 <= x <= self.width and 1 <= y <= self.height):
            raise IndexError(f"({x}, {y}) is outside the {self.width}x{self.height} grid")
        if self.orientation == GridOrientation.TOP_DOWN:
            row = self.height - y
        else:
            row = y - 1
        return self.rows[row][x - 1]


@dataclass
class DashboardSummary:
    tenant_id: str
    warehouse_id: str
    total_locations: int
    free_locations: int
    occupied_locations: int
    blocked_locations: int
    location_utilization: int
    low_stock_articles: int
    active_articles: int
    active_orders: int
    pending_orders: int
    active_requests: int


def to_dict(obj: Any) -> Any:
    """Serializes a model (or list of models) keeping enum string values."""
    if isinstance(obj, list):
        return [to_dict(item) for item in obj]
    if isinstance(obj, Grid):
        return {
            "warehouse_id": obj.warehouse_id,
            "width": obj.width,
            "height": obj.height,
            "orientation": obj.orientation.value,
            "rows": [
                [
                    {
                        "x": cell.x,
                        "y": cell.y,
                        "locations": [to_dict(loc) for loc in cell.locations],
                    }
                    for cell in row
                ]
                for row in obj.rows
            ],
        }
    return _plain(asdict(obj))


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value
