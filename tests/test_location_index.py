"""Storage Location Index: identity, stacks, grid materialization."""

import pytest

from wms_core.engine.location_index import StorageLocationIndex
from wms_core.errors import DuplicateCoordinate, DuplicateLocationId, LocationNotFound
from wms_core.models.warehouse import (
    Coordinate,
    GridOrientation,
    LocationStatus,
    LocationType,
    StorageLocation,
)


def _loc(location_id, x, y, z, seq=1, warehouse_id="WH-001", status=LocationStatus.FREE):
    return StorageLocation(
        warehouse_id=warehouse_id,
        location_id=location_id,
        type=LocationType.STANDARD,
        sequence_number=seq,
        coordinate=Coordinate(x, y, z),
        status=status,
    )


def _index(*locations) -> StorageLocationIndex:
    index = StorageLocationIndex()
    for loc in locations:
        index.add_location(loc)
    return index


class TestAddLocation:

    def test_duplicate_id_rejected(self):
        index = _index(_loc("SL-001", 1, 1, 1))
        with pytest.raises(DuplicateLocationId):
            index.add_location(_loc("SL-001", 2, 1, 1))

    def test_duplicate_coordinate_rejected(self):
        index = _index(_loc("SL-001", 1, 1, 1))
        with pytest.raises(DuplicateCoordinate):
            index.add_location(_loc("SL-002", 1, 1, 1))
        assert [l.location_id for l in index.list_locations("WH-001")] == ["SL-001"]

    def test_same_id_in_other_warehouse_allowed(self):
        index = _index(_loc("SL-001", 1, 1, 1), _loc("SL-001", 1, 1, 1, warehouse_id="WH-002"))
        assert index.get_location("WH-002", "SL-001").warehouse_id == "WH-002"

    def test_unknown_location(self):
        index = _index(_loc("SL-001", 1, 1, 1))
        with pytest.raises(LocationNotFound):
            index.get_location("WH-001", "SL-999")
        with pytest.raises(LocationNotFound):
            index.get_location("WH-002", "SL-001")


class TestQueries:

    def test_stack_ordered_by_z(self):
        index = _index(_loc("SL-top", 1, 1, 3), _loc("SL-base", 1, 1, 1), _loc("SL-mid", 1, 1, 2))
        stack = index.locations_at("WH-001", 1, 1)
        assert [l.location_id for l in stack] == ["SL-base", "SL-mid", "SL-top"]

    def test_empty_footprint(self):
        index = _index(_loc("SL-001", 1, 1, 1))
        assert index.locations_at("WH-001", 4, 4) == []

    def test_list_ordered_by_sequence_then_id(self):
        index = _index(_loc("SL-b", 1, 1, 1, seq=2), _loc("SL-c", 2, 1, 1, seq=1), _loc("SL-a", 3, 1, 1, seq=2))
        assert [l.location_id for l in index.list_locations("WH-001")] == ["SL-c", "SL-a", "SL-b"]

    def test_readers_get_copies(self):
        index = _index(_loc("SL-001", 1, 1, 1))
        copy = index.get_location("WH-001", "SL-001")
        copy.status = LocationStatus.BLOCKED
        assert index.get_location("WH-001", "SL-001").status == LocationStatus.FREE

    def test_warehouses_are_isolated(self):
        index = _index(_loc("SL-001", 1, 1, 1), _loc("SL-101", 1, 1, 1, warehouse_id="WH-002"))
        assert [l.location_id for l in index.locations_at("WH-001", 1, 1)] == ["SL-001"]
        assert [l.location_id for l in index.list_locations("WH-002")] == ["SL-101"]
        assert index.list_locations("WH-404") == []


class TestStatusAndRetirement:

    def test_set_status(self):
        index = _index(_loc("SL-001", 1, 1, 1))
        updated = index.set_status("WH-001", "SL-001", LocationStatus.BLOCKED)
        assert updated.status == LocationStatus.BLOCKED
        assert index.set_status("WH-001", "SL-001", "Free").status == LocationStatus.FREE

    def test_set_status_unknown_location(self):
        with pytest.raises(LocationNotFound):
            StorageLocationIndex().set_status("WH-001", "SL-001", LocationStatus.FREE)

    def test_retired_location_hidden(self):
        index = _index(_loc("SL-001", 1, 1, 1), _loc("SL-002", 1, 1, 2))
        index.retire_location("WH-001", "SL-002")
        assert [l.location_id for l in index.list_locations("WH-001")] == ["SL-001"]
        assert len(index.list_locations("WH-001", include_retired=True)) == 2
        assert [l.location_id for l in index.locations_at("WH-001", 1, 1)] == ["SL-001"]
        assert index.get_location("WH-001", "SL-002").retired is True


class TestUnits:

    def test_place_and_remove(self):
        index = _index(_loc("SL-001", 1, 1, 1))
        index.place_unit("WH-001", "SL-001", "SU-1")
        index.place_unit("WH-001", "SL-001", "SU-2")
        assert index.units_at("WH-001", "SL-001") == {"SU-1", "SU-2"}
        assert index.remove_unit("WH-001", "SL-001", "SU-1") is False
        assert index.remove_unit("WH-001", "SL-001", "SU-2") is True


class TestGrid:

    def test_empty_warehouse_gives_empty_grid(self):
        grid = StorageLocationIndex().materialize_grid("WH-001")
        assert (grid.width, grid.height) == (0, 0)
        assert grid.rows == []

    def test_dense_grid_with_gaps(self):
        index = _index(_loc("SL-001", 1, 1, 1), _loc("SL-002", 5, 3, 1), _loc("SL-003", 1, 1, 2))
        grid = index.materialize_grid("WH-001")
        assert (grid.width, grid.height) == (5, 3)
        assert len(grid.rows) == 3
        assert all(len(row) == 5 for row in grid.rows)
        assert sum(1 for row in grid.rows for cell in row if cell.is_empty) == 13
        assert grid.cell(1, 1).stack_size == 2
        assert grid.cell(1, 1).top.location_id == "SL-001"

    def test_top_down_first_row_is_highest_y(self):
        index = _index(_loc("SL-001", 1, 1, 1), _loc("SL-002", 2, 3, 1))
        grid = index.materialize_grid("WH-001", GridOrientation.TOP_DOWN)
        assert grid.rows[0][1].y == 3
        assert grid.rows[0][1].top.location_id == "SL-002"
        assert grid.rows[-1][0].top.location_id == "SL-001"

    def test_bottom_up_first_row_is_y_one(self):
        index = _index(_loc("SL-001", 1, 1, 1), _loc("SL-002", 2, 3, 1))
        grid = index.materialize_grid("WH-001", "bottom-up")
        assert grid.rows[0][0].top.location_id == "SL-001"
        assert grid.cell(2, 3).top.location_id == "SL-002"

    def test_cell_outside_grid(self):
        grid = _index(_loc("SL-001", 2, 2, 1)).materialize_grid("WH-001")
        with pytest.raises(IndexError):
            grid.cell(3, 1)

    def test_retired_locations_do_not_stretch_grid(self):
        index = _index(_loc("SL-001", 1, 1, 1), _loc("SL-002", 9, 9, 1))
        index.retire_location("WH-001", "SL-002")
        grid = index.materialize_grid("WH-001")
        assert (grid.width, grid.height) == (1, 1)


class TestEnumCoercion:

    def test_values_are_stored_as_enums(self):
        location = _loc("SL-001", 1, 1, 1)
        location.type = "picking"
        location.status = "Blocked"
        stored = StorageLocationIndex().add_location(location)
        assert stored.type == LocationType.PICKING
        assert stored.status == LocationStatus.BLOCKED

    def test_unknown_status_adds_nothing(self):
        index = StorageLocationIndex()
        location = _loc("SL-001", 1, 1, 1)
        location.status = "Lost"
        with pytest.raises(ValueError):
            index.add_location(location)
        assert index.list_locations("WH-001") == []
