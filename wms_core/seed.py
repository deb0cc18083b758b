"""Demo data: three tenants, each with one warehouse.

Loaded through the engine's own validation, so every seeded record satisfies
the same invariants as records created at runtime.
"""

from __future__ import annotations

import logging
from typing import Optional

from wms_core.audit import AuditTrail
from wms_core.config import Settings
from wms_core.engine.service import TenantDirectory, WarehouseService
from wms_core.models.warehouse import (
    Article,
    ArticleType,
    Coordinate,
    LocationStatus,
    LocationType,
    OrderStatus,
    Request,
    RequestStatus,
    RequestType,
    StorageLocation,
    Tenant,
    TransportOrder,
)

logger = logging.getLogger(__name__)

TENANTS = [
    Tenant("tenant-1", "Acme Manufacturing", "WH-001"),
    Tenant("tenant-2", "TechCorp Industries", "WH-002"),
    Tenant("tenant-3", "Global Warehouse Co", "WH-003"),
]

F, O, B = LocationStatus.FREE, LocationStatus.OCCUPIED, LocationStatus.BLOCKED
STD = LocationType.STANDARD
INB = LocationType.INBOUND
OUT = LocationType.OUTBOUND
REM = LocationType.REMOVAL
PCK = LocationType.PICKING
AUT = LocationType.AUTOMATED_STORAGE

# (location id, type, x, y, z, status); sequence number = position in warehouse
LOCATIONS = {
    "WH-001": [
        ("SL-001", STD, 1, 1, 1, F),
        ("SL-002", STD, 1, 1, 2, O),
        ("SL-003", INB, 2, 1, 1, F),
        ("SL-004", OUT, 3, 1, 1, O),
        ("SL-005", PCK, 4, 1, 1, F),
        ("SL-006", AUT, 5, 1, 1, B),
        ("SL-007", STD, 1, 2, 1, O),
        ("SL-008", STD, 1, 2, 2, F),
    ],
    "WH-002": [
        ("SL-101", STD, 1, 1, 1, O),
        ("SL-102", INB, 2, 1, 1, F),
        ("SL-103", OUT, 3, 1, 1, F),
        ("SL-104", PCK, 4, 1, 1, O),
        ("SL-105", AUT, 5, 1, 1, F),
        ("SL-106", STD, 1, 2, 1, F),
        ("SL-107", STD, 2, 2, 1, O),
        ("SL-108", STD, 3, 2, 1, B),
        ("SL-109", PCK, 4, 2, 1, F),
        ("SL-110", STD, 5, 2, 1, O),
        ("SL-111", STD, 1, 3, 1, F),
        ("SL-112", STD, 2, 3, 1, F),
        ("SL-113", REM, 3, 3, 1, O),
        ("SL-114", STD, 4, 3, 1, B),
        ("SL-115", STD, 5, 3, 1, F),
        ("SL-116", STD, 1, 3, 2, O),
        ("SL-117", STD, 2, 3, 2, F),
    ],
    "WH-003": [
        ("SL-201", STD, 1, 1, 1, F),
        ("SL-202", STD, 1, 1, 2, F),
        ("SL-203", INB, 2, 1, 1, O),
        ("SL-204", OUT, 3, 1, 1, B),
        ("SL-205", PCK, 4, 1, 1, F),
        ("SL-206", AUT, 5, 1, 1, O),
        ("SL-207", STD, 1, 2, 1, O),
        ("SL-208", STD, 2, 2, 1, F),
        ("SL-209", STD, 3, 2, 1, F),
        ("SL-210", PCK, 4, 2, 1, O),
        ("SL-211", STD, 5, 2, 1, B),
        ("SL-212", STD, 1, 3, 1, F),
        ("SL-213", REM, 2, 3, 1, O),
        ("SL-214", STD, 3, 3, 1, F),
        ("SL-215", STD, 4, 3, 1, O),
        ("SL-216", STD, 5, 3, 1, F),
        ("SL-217", STD, 1, 4, 1, B),
        ("SL-218", STD, 2, 4, 1, F),
        ("SL-219", STD, 3, 4, 1, O),
        ("SL-220", STD, 4, 4, 1, F),
        ("SL-221", STD, 5, 4, 1, O),
    ],
}

ARTICLES = [
    Article("ART-001", ArticleType.MATERIAL, "Steel Plate 10mm", 25.5, "kg", 10, 20, 100, 45),
    Article("ART-002", ArticleType.TOOL_COMPONENT, "Drill Bit Set", 2.3, "kg", 5, 10, 50, 15),
    Article("ART-003", ArticleType.CONSUMABLES, "Cutting Fluid 5L", 5.0, "L", 20, 30, 200, 85),
    Article("ART-004", ArticleType.SPARE_PARTS, "Motor Bearing", 0.8, "kg", 15, 25, 80, 30),
    Article("ART-005", ArticleType.PRODUCTION_EQUIPMENT, "Welding Electrode", 1.2, "kg", 50, 75, 300, 120),
]

ORDERS = [
    TransportOrder("TO-001", "WH-001", "SU-001", "SL-001", "SL-003", 1, "REQ-001", "tenant-1",
                   OrderStatus.COMPLETED, "2025-10-27T10:30:00"),
    TransportOrder("TO-002", "WH-001", "SU-002", "SL-002", "SL-004", 2, "REQ-002", "tenant-1",
                   OrderStatus.IN_PROGRESS, "2025-10-27T11:00:00"),
    TransportOrder("TO-003", "WH-001", "SU-003", "SL-005", "SL-007", 3, "REQ-003", "tenant-1",
                   OrderStatus.PENDING, "2025-10-27T11:30:00"),
    TransportOrder("TO-004", "WH-001", "SU-004", "SL-003", "SL-008", 1, "REQ-004", "tenant-1",
                   OrderStatus.FAILED, "2025-10-27T09:15:00"),
]

REQUESTS = [
    Request("REQ-001", "tenant-1", RequestType.INBOUND, "ART-001", ArticleType.MATERIAL, 10,
            Coordinate(1, 1, 1), RequestStatus.COMPLETED, "2025-10-27T10:00:00"),
    Request("REQ-002", "tenant-1", RequestType.OUTBOUND, "ART-002", ArticleType.TOOL_COMPONENT, 5,
            Coordinate(2, 1, 1), RequestStatus.PROCESSING, "2025-10-27T10:45:00"),
    Request("REQ-003", "tenant-1", RequestType.PICKING, "ART-003", ArticleType.CONSUMABLES, 15,
            Coordinate(3, 1, 1), RequestStatus.ASSIGNED, "2025-10-27T11:15:00"),
    Request("REQ-004", "tenant-1", RequestType.INBOUND, "ART-004", ArticleType.SPARE_PARTS, 8,
            Coordinate(1, 2, 1), RequestStatus.COMPLETED, "2025-10-27T09:00:00"),
]


def build_locations() -> list[StorageLocation]:
    locations = []
    for warehouse_id, rows in LOCATIONS.items():
        for seq, (location_id, loc_type, x, y, z, status) in enumerate(rows, start=1):
            locations.append(
                StorageLocation(
                    warehouse_id=warehouse_id,
                    location_id=location_id,
                    type=loc_type,
                    sequence_number=seq,
                    coordinate=Coordinate(x, y, z),
                    status=status,
                )
            )
    return locations


def build_demo_service(
    settings: Optional[Settings] = None, audit: Optional[AuditTrail] = None
) -> WarehouseService:
    """A WarehouseService preloaded with the demo tenants and their data."""
    service = WarehouseService(TenantDirectory(TENANTS), settings=settings, audit=audit)

    for location in build_locations():
        service.locations.add_location(location)
    for article in ARTICLES:
        service.ledger.register_article(article)
    for order in ORDERS:
        service.orders.import_order(order)
    for request in REQUESTS:
        service.requests.import_request(request)

    logger.info(
        "Demo data loaded: %d tenants, %d locations, %d articles, %d orders, %d requests",
        len(TENANTS), sum(len(rows) for rows in LOCATIONS.values()),
        len(ARTICLES), len(ORDERS), len(REQUESTS),
    )
    return service
