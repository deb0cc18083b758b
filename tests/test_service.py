"""WarehouseService: tenant scoping, dashboard, audit trail."""

import threading
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, NoCredentialsError

from wms_core.audit import AuditTrail
from wms_core.config import Settings
from wms_core import audit as audit_module
from wms_core.engine.locking import LEDGER_KEY, tenant_key, warehouse_key
from wms_core.engine.service import TenantDirectory, WarehouseService
from wms_core.errors import (
    DestinationBlocked,
    InvalidPriority,
    LocationNotFound,
    NegativeStock,
    OrderNotFound,
    RequestNotFound,
    TenantNotFound,
)
from wms_core.models.warehouse import (
    Article,
    ArticleType,
    Coordinate,
    GridOrientation,
    LocationStatus,
    LocationType,
    OrderStatus,
    RequestStatus,
    RequestType,
    StockLevel,
    Tenant,
    to_dict,
)
from wms_core.seed import build_demo_service


def _service(**audit_kwargs):
    return build_demo_service(audit=AuditTrail(**audit_kwargs))


class TestTenantDirectory:

    def test_warehouse_lookup(self):
        directory = TenantDirectory.from_mapping({"tenant-1": "WH-001"})
        assert directory.warehouse_for("tenant-1") == "WH-001"

    def test_unknown_tenant(self):
        with pytest.raises(TenantNotFound):
            TenantDirectory([]).warehouse_for("tenant-9")

    def test_mapping_must_be_injective(self):
        with pytest.raises(ValueError):
            TenantDirectory([Tenant("t1", "A", "WH-001"), Tenant("t2", "B", "WH-001")])
        with pytest.raises(ValueError):
            TenantDirectory([Tenant("t1", "A", "WH-001"), Tenant("t1", "B", "WH-002")])


class TestTenantIsolation:

    def test_listings_stay_in_warehouse(self):
        service = _service()
        assert {l.warehouse_id for l in service.list_locations("tenant-2")} == {"WH-002"}
        assert len(service.list_locations("tenant-1")) == 8
        assert service.list_orders("tenant-2") == []
        assert service.list_requests("tenant-3") == []

    def test_other_tenant_cannot_touch_orders(self):
        service = _service()
        with pytest.raises(OrderNotFound):
            service.advance_order("tenant-2", "TO-002", OrderStatus.COMPLETED)
        with pytest.raises(RequestNotFound):
            service.advance_request("tenant-2", "REQ-002", RequestStatus.COMPLETED)

    def test_other_tenant_cannot_touch_locations(self):
        service = _service()
        with pytest.raises(LocationNotFound):
            service.set_location_status("tenant-2", "SL-001", LocationStatus.BLOCKED)

    def test_unknown_tenant(self):
        service = _service()
        with pytest.raises(TenantNotFound):
            service.list_locations("tenant-9")
        with pytest.raises(TenantNotFound):
            service.list_requests("tenant-9")


class TestReads:

    def test_grid_uses_configured_orientation(self):
        service = build_demo_service(Settings(grid_orientation=GridOrientation.BOTTOM_UP))
        grid = service.get_grid("tenant-1")
        assert grid.orientation == GridOrientation.BOTTOM_UP
        assert (grid.width, grid.height) == (5, 2)
        assert [l.location_id for l in grid.rows[0][0].locations] == ["SL-001", "SL-002"]

    def test_locations_at(self):
        stack = _service().locations_at("tenant-1", 1, 2)
        assert [l.location_id for l in stack] == ["SL-007", "SL-008"]

    def test_filters_pass_through(self):
        service = _service()
        blocked = service.list_locations("tenant-3", status="Blocked")
        assert [l.location_id for l in blocked] == ["SL-204", "SL-211", "SL-217"]
        assert [a.article_id for a in service.list_articles(stock_level="warning")] == ["ART-002", "ART-004"]

    def test_dashboard(self):
        summary = _service().dashboard("tenant-1")
        assert summary.warehouse_id == "WH-001"
        assert summary.total_locations == 8
        assert (summary.free_locations, summary.occupied_locations, summary.blocked_locations) == (4, 3, 1)
        assert summary.location_utilization == 38
        assert summary.low_stock_articles == 0
        assert summary.active_articles == 5
        assert (summary.active_orders, summary.pending_orders) == (2, 1)
        assert summary.active_requests == 2

    def test_to_dict_keeps_enum_values(self):
        data = to_dict(_service().list_locations("tenant-1")[0])
        assert data["status"] == "Free"
        assert data["type"] == "standard"
        assert data["coordinate"] == {"x": 1, "y": 1, "z": 1}


class TestWrites:

    def test_order_lifecycle(self):
        service = _service()
        service.create_order("tenant-1", "TO-100", "SU-100", "SL-004", "SL-005", priority=2)
        service.advance_order("tenant-1", "TO-100", OrderStatus.IN_PROGRESS)
        order = service.advance_order("tenant-1", "TO-100", OrderStatus.COMPLETED)

        assert order.client_id == "tenant-1"
        statuses = {l.location_id: l.status for l in service.list_locations("tenant-1")}
        assert statuses["SL-005"] == LocationStatus.OCCUPIED
        assert statuses["SL-004"] == LocationStatus.FREE

    def test_seeded_in_progress_order_completes(self):
        service = _service()
        service.advance_order("tenant-1", "TO-002", OrderStatus.COMPLETED)
        assert service.dashboard("tenant-1").active_orders == 1

    def test_order_to_blocked_location(self):
        with pytest.raises(DestinationBlocked):
            _service().create_order("tenant-1", "TO-100", "SU-100", "SL-001", "SL-006")

    def test_request_lifecycle_books_stock(self):
        service = _service()
        request = service.create_request(
            "tenant-2", "REQ-100", RequestType.OUTBOUND, "ART-001", 30, Coordinate(1, 1, 1)
        )
        assert request.article_type.value == "material"
        for status in (RequestStatus.ASSIGNED, RequestStatus.PROCESSING, RequestStatus.COMPLETED):
            service.advance_request("tenant-2", "REQ-100", status)

        assert service.get_article("ART-001").current_stock == 15
        assert service.ledger.classify("ART-001") == StockLevel.CRITICAL
        assert service.dashboard("tenant-2").low_stock_articles == 1

    def test_adjust_stock_rejects_overdraw(self):
        service = _service()
        with pytest.raises(NegativeStock):
            service.adjust_stock("ART-002", -16)
        assert service.get_article("ART-002").current_stock == 15

    def test_create_and_retire_location(self):
        service = _service()
        service.create_location("tenant-1", "SL-009", LocationType.PICKING, 9, 6, 1, 1)
        assert service.get_grid("tenant-1").width == 6
        service.retire_location("tenant-1", "SL-009")
        assert service.get_grid("tenant-1").width == 5
        assert len(service.list_locations("tenant-1", include_retired=True)) == 9


class TestAudit:

    def test_mutations_are_recorded(self):
        service = _service()
        service.set_location_status("tenant-1", "SL-001", LocationStatus.BLOCKED)
        service.adjust_stock("ART-001", -5, reference="manual")

        [status_event] = service.audit.events(operation="set_location_status")
        assert status_event.scope == "WH-001"
        assert status_event.before == {"status": "Free"}
        assert status_event.after == {"status": "Blocked"}

        [stock_event] = service.audit.events(entity_id="ART-001")
        assert stock_event.before == {"current_stock": 45}
        assert stock_event.after == {"current_stock": 40, "level": "good"}

    def test_failed_operations_are_not_recorded(self):
        service = _service()
        with pytest.raises(NegativeStock):
            service.adjust_stock("ART-001", -500)
        assert service.audit.events() == []

    def test_seed_is_not_audited(self):
        assert _service().audit.events() == []

    def test_export_to_s3(self):
        s3 = MagicMock()
        service = _service(bucket="wms-audit-bucket", prefix="audit/", s3_client=s3)
        service.retire_location("tenant-1", "SL-008")

        s3.put_object.assert_called_once()
        kwargs = s3.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "wms-audit-bucket"
        assert kwargs["Key"].startswith("audit/WH-001/retire_location-")
        assert '"entity_id": "SL-008"' in kwargs["Body"]

    def test_export_failure_does_not_undo_operation(self):
        s3 = MagicMock()
        s3.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )
        service = _service(bucket="wms-audit-bucket", s3_client=s3)
        service.set_location_status("tenant-1", "SL-001", LocationStatus.BLOCKED)

        assert service.list_locations("tenant-1", status="Blocked")[0].location_id == "SL-001"
        assert len(service.audit.events()) == 1

    def test_no_bucket_no_export(self):
        s3 = MagicMock()
        service = _service(s3_client=s3)
        service.retire_location("tenant-1", "SL-008")
        s3.put_object.assert_not_called()

    def test_missing_credentials_do_not_fail_operation(self):
        s3 = MagicMock()
        s3.put_object.side_effect = NoCredentialsError()
        service = _service(bucket="wms-audit-bucket", s3_client=s3)

        service.set_location_status("tenant-1", "SL-001", LocationStatus.BLOCKED)

        assert service.locations.get_location("WH-001", "SL-001").status == LocationStatus.BLOCKED
        assert len(service.audit.events()) == 1

    def test_client_creation_failure_is_logged(self, monkeypatch):
        def unreachable(*args, **kwargs):
            raise EndpointConnectionError(endpoint_url="https://s3.example.invalid")

        monkeypatch.setattr(audit_module.boto3, "client", unreachable)
        service = _service(bucket="wms-audit-bucket")
        service.retire_location("tenant-1", "SL-008")
        assert service.locations.get_location("WH-001", "SL-008").retired is True

    def test_event_window_is_bounded(self):
        trail = AuditTrail(max_events=3)
        for n in range(5):
            trail.record("adjust_stock", "articles", f"ART-{n}")
        assert [e.entity_id for e in trail.events()] == ["ART-2", "ART-3", "ART-4"]

    def test_before_state_is_recorded_for_transitions(self):
        service = _service()
        service.advance_order("tenant-1", "TO-003", OrderStatus.IN_PROGRESS)
        [event] = service.audit.events(operation="advance_order")
        assert event.before == {"status": "Pending"}
        assert event.after == {"status": "InProgress"}


class TestOrderPriority:

    @pytest.mark.parametrize("priority", [0, -7, 1.5, True])
    def test_invalid_priority_rejected(self, priority):
        service = _service()
        with pytest.raises(InvalidPriority):
            service.create_order("tenant-1", "TO-900", "SU-9", "SL-001", "SL-005", priority=priority)
        assert [o.order_id for o in service.list_orders("tenant-1", search="TO-900")] == []


def _pairs_service(pairs: int) -> WarehouseService:
    """One warehouse with an Occupied source at (i, 1, 1) and a Free destination at (i, 2, 1)."""
    service = WarehouseService(TenantDirectory.from_mapping({"tenant-1": "WH-001"}))
    for i in range(1, pairs + 1):
        service.create_location("tenant-1", f"SRC-{i}", LocationType.STANDARD, i, i, 1, 1,
                                status=LocationStatus.OCCUPIED)
        service.create_location("tenant-1", f"DST-{i}", LocationType.STANDARD, pairs + i, i, 2, 1)
    service.register_article(Article("ART-001", ArticleType.MATERIAL, "Steel Plate 10mm",
                                     25.5, "kg", 0, 0, 1000, 0))
    return service


class TestConcurrentCompletion:
    """Readers never see half of a coupled update."""

    def _run(self, writer, reader):
        violations = []
        done = threading.Event()

        def write():
            try:
                writer()
            finally:
                done.set()

        def read():
            while not done.wait(0.001):
                violations.extend(reader())
            violations.extend(reader())

        threads = [threading.Thread(target=write), threading.Thread(target=read)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(30)
        return violations

    def test_completed_order_always_has_occupied_destination(self):
        pairs = 30
        service = _pairs_service(pairs)
        for i in range(1, pairs + 1):
            service.create_order("tenant-1", f"TO-{i}", f"SU-{i}", f"SRC-{i}", f"DST-{i}")
            service.advance_order("tenant-1", f"TO-{i}", OrderStatus.IN_PROGRESS)

        def complete_all():
            for i in range(1, pairs + 1):
                service.advance_order("tenant-1", f"TO-{i}", OrderStatus.COMPLETED)

        def snapshot():
            with service.locks.reading(warehouse_key("WH-001")):
                orders = service.list_orders("tenant-1")
                status = {l.location_id: l.status for l in service.list_locations("tenant-1")}
            bad = []
            for order in orders:
                moved = (status[order.destination] == LocationStatus.OCCUPIED
                         and status[order.source] == LocationStatus.FREE)
                if (order.status == OrderStatus.COMPLETED) != moved:
                    bad.append((order.order_id, order.status, status[order.source], status[order.destination]))
            return bad

        assert self._run(complete_all, snapshot) == []
        assert service.dashboard("tenant-1").active_orders == 0

    def test_completed_request_always_has_booked_stock(self):
        count = 30
        service = _pairs_service(1)
        for i in range(1, count + 1):
            service.create_request("tenant-1", f"REQ-{i}", RequestType.INBOUND, "ART-001", 2,
                                   Coordinate(1, 1, 1))
            service.advance_request("tenant-1", f"REQ-{i}", RequestStatus.ASSIGNED)
            service.advance_request("tenant-1", f"REQ-{i}", RequestStatus.PROCESSING)

        def complete_all():
            for i in range(1, count + 1):
                service.advance_request("tenant-1", f"REQ-{i}", RequestStatus.COMPLETED)

        def snapshot():
            with service.locks.reading(tenant_key("tenant-1"), LEDGER_KEY):
                completed = len(service.list_requests("tenant-1", status=RequestStatus.COMPLETED))
                stock = service.get_article("ART-001").current_stock
            return [] if stock == completed * 2 else [(completed, stock)]

        assert self._run(complete_all, snapshot) == []
        assert service.get_article("ART-001").current_stock == count * 2
