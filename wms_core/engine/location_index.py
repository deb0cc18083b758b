"""Storage Location Index - per-warehouse spatial map of storage locations.

- Identity lookup by (warehouse, location id)
- Stack lookup by (warehouse, x, y), ordered by z-level
- Dense grid materialization for map views
- Storage unit occupancy per location
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from wms_core.engine.coordinates import coordinate_key, footprint_key
from wms_core.engine.locking import LockManager, warehouse_key
from wms_core.errors import DuplicateCoordinate, DuplicateLocationId, LocationNotFound
from wms_core.models.warehouse import (
    Grid,
    GridCell,
    GridOrientation,
    LocationStatus,
    LocationType,
    StorageLocation,
)

logger = logging.getLogger(__name__)


def _stack_order(location: StorageLocation) -> tuple[int, int, str]:
    return (location.coordinate.z, location.sequence_number, location.location_id)


class _WarehouseIndex:
    """Indexes of a single warehouse. Never shared between warehouses."""

    def __init__(self) -> None:
        self.by_id: dict[str, StorageLocation] = {}
        self.by_coordinate: dict[tuple[int, int, int], str] = {}
        self.by_footprint: dict[tuple[int, int], list[str]] = {}
        self.units: dict[str, set[str]] = {}


class StorageLocationIndex:
    """Owns all storage locations, partitioned by warehouse."""

    def __init__(self, locks: Optional[LockManager] = None) -> None:
        self.locks = locks or LockManager()
        self._warehouses: dict[str, _WarehouseIndex] = {}

    def _index(self, warehouse_id: str) -> Optional[_WarehouseIndex]:
        return self._warehouses.get(warehouse_id)

    def _require(self, warehouse_id: str, location_id: str) -> StorageLocation:
        index = self._index(warehouse_id)
        location = index.by_id.get(location_id) if index else None
        if location is None:
            raise LocationNotFound(f"Location not found: {warehouse_id}/{location_id}")
        return location

    # --- Mutations ---

    def add_location(self, location: StorageLocation) -> StorageLocation:
        """Inserts a location. Raises DuplicateLocationId or DuplicateCoordinate."""
        location = replace(
            location,
            type=LocationType(location.type),
            status=LocationStatus(location.status),
        )
        c = location.coordinate
        with self.locks.writing(warehouse_key(location.warehouse_id)):
            index = self._warehouses.setdefault(location.warehouse_id, _WarehouseIndex())
            if location.location_id in index.by_id:
                raise DuplicateLocationId(
                    f"Location already exists: {location.warehouse_id}/{location.location_id}"
                )
            key = coordinate_key(c.x, c.y, c.z)
            if key in index.by_coordinate:
                raise DuplicateCoordinate(
                    f"Coordinate {key} already used by {index.by_coordinate[key]} "
                    f"in {location.warehouse_id}"
                )

            stored = location
            index.by_id[stored.location_id] = stored
            index.by_coordinate[key] = stored.location_id
            index.by_footprint.setdefault(footprint_key(c.x, c.y), []).append(stored.location_id)
            index.units[stored.location_id] = set()

            logger.info(
                "Location added: %s/%s at %s (%s)",
                stored.warehouse_id, stored.location_id, key, stored.status.value,
            )
            return replace(stored)

    def set_status(
        self, warehouse_id: str, location_id: str, status: LocationStatus
    ) -> StorageLocation:
        """Sets a location status. Transition legality is the caller's concern."""
        status = LocationStatus(status)
        with self.locks.writing(warehouse_key(warehouse_id)):
            location = self._require(warehouse_id, location_id)
            previous = location.status
            location.status = status
            logger.info(
                "Location status: %s/%s %s -> %s",
                warehouse_id, location_id, previous.value, status.value,
            )
            return replace(location)

    def retire_location(self, warehouse_id: str, location_id: str) -> StorageLocation:
        """Soft-retires a location; it stays addressable but leaves listings and the grid."""
        with self.locks.writing(warehouse_key(warehouse_id)):
            location = self._require(warehouse_id, location_id)
            location.retired = True
            logger.info("Location retired: %s/%s", warehouse_id, location_id)
            return replace(location)

    def place_unit(self, warehouse_id: str, location_id: str, unit_id: str) -> None:
        with self.locks.writing(warehouse_key(warehouse_id)):
            self._require(warehouse_id, location_id)
            self._warehouses[warehouse_id].units[location_id].add(unit_id)

    def remove_unit(self, warehouse_id: str, location_id: str, unit_id: str) -> bool:
        """Removes a unit from a location. Returns True if the location is now empty."""
        with self.locks.writing(warehouse_key(warehouse_id)):
            self._require(warehouse_id, location_id)
            units = self._warehouses[warehouse_id].units[location_id]
            units.discard(unit_id)
            return not units

    def restore(self, location: StorageLocation, units: set[str]) -> None:
        """Puts back a location snapshot taken before a failed coupled update."""
        with self.locks.writing(warehouse_key(location.warehouse_id)):
            index = self._warehouses[location.warehouse_id]
            current = index.by_id[location.location_id]
            current.status = location.status
            current.retired = location.retired
            index.units[location.location_id] = set(units)

    # --- Queries ---

    def get_location(self, warehouse_id: str, location_id: str) -> StorageLocation:
        with self.locks.reading(warehouse_key(warehouse_id)):
            return replace(self._require(warehouse_id, location_id))

    def units_at(self, warehouse_id: str, location_id: str) -> set[str]:
        with self.locks.reading(warehouse_key(warehouse_id)):
            self._require(warehouse_id, location_id)
            return set(self._warehouses[warehouse_id].units[location_id])

    def list_locations(
        self, warehouse_id: str, include_retired: bool = False
    ) -> list[StorageLocation]:
        """All locations of a warehouse in picking-route order (sequence number, id)."""
        with self.locks.reading(warehouse_key(warehouse_id)):
            index = self._index(warehouse_id)
            if index is None:
                return []
            locations = [
                replace(loc) for loc in index.by_id.values()
                if include_retired or not loc.retired
            ]
        locations.sort(key=lambda loc: (loc.sequence_number, loc.location_id))
        return locations

    def locations_at(
        self, warehouse_id: str, x: int, y: int, include_retired: bool = False
    ) -> list[StorageLocation]:
        """Stack at footprint (x, y), ordered by z, then sequence number, then id."""
        with self.locks.reading(warehouse_key(warehouse_id)):
            return self._stack(warehouse_id, x, y, include_retired)

    def _stack(
        self, warehouse_id: str, x: int, y: int, include_retired: bool
    ) -> list[StorageLocation]:
        index = self._index(warehouse_id)
        if index is None:
            return []
        ids = index.by_footprint.get(footprint_key(x, y), [])
        stack = [
            replace(index.by_id[loc_id]) for loc_id in ids
            if include_retired or not index.by_id[loc_id].retired
        ]
        stack.sort(key=_stack_order)
        return stack

    def materialize_grid(
        self,
        warehouse_id: str,
        orientation: GridOrientation = GridOrientation.TOP_DOWN,
    ) -> Grid:
        """Renders the sparse coordinate set as a dense maxX x maxY grid.

        With TOP_DOWN the first row is the highest y, as a map is read; with
        BOTTOM_UP the first row is y = 1. An empty warehouse gives a 0x0 grid.
        """
        orientation = GridOrientation(orientation)
        with self.locks.reading(warehouse_key(warehouse_id)):
            index = self._index(warehouse_id)
            active = [
                loc for loc in (index.by_id.values() if index else [])
                if not loc.retired
            ]
            max_x = max((loc.coordinate.x for loc in active), default=0)
            max_y = max((loc.coordinate.y for loc in active), default=0)

            if orientation == GridOrientation.TOP_DOWN:
                ys = range(max_y, 0, -1)
            else:
                ys = range(1, max_y + 1)

            rows = [
                [
                    GridCell(x=x, y=y, locations=tuple(self._stack(warehouse_id, x, y, False)))
                    for x in range(1, max_x + 1)
                ]
                for y in ys
            ]

        return Grid(
            warehouse_id=warehouse_id,
            width=max_x,
            height=max_y,
            orientation=orientation,
            rows=rows,
        )
