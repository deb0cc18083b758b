"""Tenant-scoped query/command surface of the WMS core.

Every call names its tenant explicitly; the tenant -> warehouse mapping is
supplied by the caller through a TenantDirectory and never derived here.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from wms_core.audit import AuditTrail
from wms_core.config import Settings
from wms_core.engine import query
from wms_core.engine.location_index import StorageLocationIndex
from wms_core.engine.locking import LEDGER_KEY, LockManager, tenant_key, warehouse_key
from wms_core.engine.orders import ACTIVE_ORDER_STATUSES, TransportOrderBook
from wms_core.engine.requests import RequestBook, is_active
from wms_core.engine.stock_ledger import ArticleStockLedger
from wms_core.errors import TenantNotFound
from wms_core.models.warehouse import (
    Article,
    ArticleType,
    Coordinate,
    DashboardSummary,
    Grid,
    GridOrientation,
    LocationStatus,
    LocationType,
    OrderStatus,
    Request,
    RequestStatus,
    RequestType,
    StockLevel,
    StorageLocation,
    Tenant,
    TransportOrder,
    to_dict,
)

logger = logging.getLogger(__name__)


class TenantDirectory:
    """Fixed, injective tenant -> warehouse mapping."""

    def __init__(self, tenants: Iterable[Tenant]):
        self._tenants: dict[str, Tenant] = {}
        seen: dict[str, str] = {}
        for tenant in tenants:
            if tenant.tenant_id in self._tenants:
                raise ValueError(f"Duplicate tenant: {tenant.tenant_id}")
            if tenant.warehouse_id in seen:
                raise ValueError(
                    f"Warehouse {tenant.warehouse_id} mapped to both "
                    f"{seen[tenant.warehouse_id]} and {tenant.tenant_id}"
                )
            seen[tenant.warehouse_id] = tenant.tenant_id
            self._tenants[tenant.tenant_id] = tenant

    @classmethod
    def from_mapping(cls, mapping: dict[str, str]) -> "TenantDirectory":
        return cls(Tenant(tenant_id=t, name=t, warehouse_id=wh) for t, wh in mapping.items())

    def warehouse_for(self, tenant_id: str) -> str:
        return self.tenant(tenant_id).warehouse_id

    def tenant(self, tenant_id: str) -> Tenant:
        tenant = self._tenants.get(tenant_id)
        if tenant is None:
            raise TenantNotFound(f"Unknown tenant: {tenant_id}")
        return tenant

    def tenants(self) -> list[Tenant]:
        return list(self._tenants.values())


class WarehouseService:
    """Read and write operations consumed by the UI layer."""

    def __init__(
        self,
        tenants: TenantDirectory,
        settings: Optional[Settings] = None,
        audit: Optional[AuditTrail] = None,
    ):
        self.settings = settings or Settings()
        self.tenants = tenants
        self.locks = LockManager(timeout=self.settings.lock_timeout)
        self.locations = StorageLocationIndex(self.locks)
        self.ledger = ArticleStockLedger(self.locks)
        self.orders = TransportOrderBook(self.locations)
        self.requests = RequestBook(self.ledger, self.locks)
        self.audit = audit or AuditTrail(
            bucket=self.settings.audit_bucket,
            prefix=self.settings.audit_prefix,
            region_name=self.settings.region_name,
        )

    # --- Read ---

    def list_locations(
        self,
        tenant_id: str,
        search: Optional[str] = None,
        status: query.EnumFilter = None,
        type: query.EnumFilter = None,
        include_retired: bool = False,
    ) -> list[StorageLocation]:
        warehouse_id = self.tenants.warehouse_for(tenant_id)
        return query.filter_locations(
            self.locations.list_locations(warehouse_id, include_retired=include_retired),
            search=search, status=status, type=type,
        )

    def locations_at(self, tenant_id: str, x: int, y: int) -> list[StorageLocation]:
        return self.locations.locations_at(self.tenants.warehouse_for(tenant_id), x, y)

    def get_grid(
        self, tenant_id: str, orientation: Optional[GridOrientation] = None
    ) -> Grid:
        return self.locations.materialize_grid(
            self.tenants.warehouse_for(tenant_id),
            orientation or self.settings.grid_orientation,
        )

    def list_articles(
        self,
        search: Optional[str] = None,
        type: query.EnumFilter = None,
        stock_level: query.EnumFilter = None,
    ) -> list[Article]:
        return query.filter_articles(
            self.ledger.list_articles(), search=search, type=type, stock_level=stock_level
        )

    def list_orders(
        self,
        tenant_id: str,
        search: Optional[str] = None,
        status: query.EnumFilter = None,
        request_id: Optional[str] = None,
    ) -> list[TransportOrder]:
        warehouse_id = self.tenants.warehouse_for(tenant_id)
        return query.filter_orders(
            self.orders.list_orders(warehouse_id), search=search, status=status, request_id=request_id
        )

    def list_requests(
        self,
        tenant_id: str,
        search: Optional[str] = None,
        status: query.EnumFilter = None,
        request_type: query.EnumFilter = None,
    ) -> list[Request]:
        self.tenants.tenant(tenant_id)
        return query.filter_requests(
            self.requests.list_requests(tenant_id),
            search=search, status=status, request_type=request_type,
        )

    def dashboard(self, tenant_id: str) -> DashboardSummary:
        """Location, stock, order and request KPIs of one tenant, from one snapshot."""
        warehouse_id = self.tenants.warehouse_for(tenant_id)
        with self.locks.reading(warehouse_key(warehouse_id), tenant_key(tenant_id), LEDGER_KEY):
            locations = self.locations.list_locations(warehouse_id)
            articles = self.ledger.list_articles()
            orders = self.orders.list_orders(warehouse_id)
            requests = self.requests.list_requests(tenant_id)
            low_stock = self.ledger.low_stock_articles()

        by_status = {s: 0 for s in LocationStatus}
        for loc in locations:
            by_status[loc.status] += 1
        total = len(locations)
        occupied = by_status[LocationStatus.OCCUPIED]

        return DashboardSummary(
            tenant_id=tenant_id,
            warehouse_id=warehouse_id,
            total_locations=total,
            free_locations=by_status[LocationStatus.FREE],
            occupied_locations=occupied,
            blocked_locations=by_status[LocationStatus.BLOCKED],
            location_utilization=round(occupied / total * 100) if total else 0,
            low_stock_articles=len(low_stock),
            active_articles=sum(1 for a in articles if a.current_stock > 0),
            active_orders=sum(1 for o in orders if o.status in ACTIVE_ORDER_STATUSES),
            pending_orders=sum(1 for o in orders if o.status == OrderStatus.PENDING),
            active_requests=sum(1 for r in requests if is_active(r)),
        )

    # --- Write ---

    def create_location(
        self,
        tenant_id: str,
        location_id: str,
        type: LocationType,
        sequence_number: int,
        x: int,
        y: int,
        z: int,
        status: LocationStatus = LocationStatus.FREE,
    ) -> StorageLocation:
        warehouse_id = self.tenants.warehouse_for(tenant_id)
        location = self.locations.add_location(
            StorageLocation(
                warehouse_id=warehouse_id,
                location_id=location_id,
                type=LocationType(type),
                sequence_number=sequence_number,
                coordinate=Coordinate(x, y, z),
                status=LocationStatus(status),
            )
        )
        self.audit.record("create_location", warehouse_id, location_id, after=to_dict(location))
        return location

    def set_location_status(
        self, tenant_id: str, location_id: str, status: LocationStatus
    ) -> StorageLocation:
        warehouse_id = self.tenants.warehouse_for(tenant_id)
        with self.locks.writing(warehouse_key(warehouse_id)):
            before = self.locations.get_location(warehouse_id, location_id)
            after = self.locations.set_status(warehouse_id, location_id, status)
        self.audit.record(
            "set_location_status", warehouse_id, location_id,
            before={"status": before.status.value}, after={"status": after.status.value},
        )
        return after

    def retire_location(self, tenant_id: str, location_id: str) -> StorageLocation:
        warehouse_id = self.tenants.warehouse_for(tenant_id)
        location = self.locations.retire_location(warehouse_id, location_id)
        self.audit.record("retire_location", warehouse_id, location_id, after={"retired": True})
        return location

    def register_article(self, article: Article) -> Article:
        stored = self.ledger.register_article(article)
        self.audit.record("register_article", "articles", stored.article_id, after=to_dict(stored))
        return stored

    def adjust_stock(
        self, article_id: str, delta: int, reference: Optional[str] = None
    ) -> StockLevel:
        with self.locks.writing(LEDGER_KEY):
            level = self.ledger.adjust_stock(article_id, delta, reference=reference)
            movement = self.ledger.movements(article_id)[-1]
        self.audit.record(
            "adjust_stock", "articles", article_id,
            before={"current_stock": movement.stock_before},
            after={"current_stock": movement.stock_after, "level": level.value},
        )
        return level

    def create_order(
        self,
        tenant_id: str,
        order_id: str,
        storage_unit_id: str,
        source: str,
        destination: str,
        priority: int = 1,
        request_id: Optional[str] = None,
    ) -> TransportOrder:
        warehouse_id = self.tenants.warehouse_for(tenant_id)
        order = self.orders.create_order(
            TransportOrder(
                order_id=order_id,
                warehouse_id=warehouse_id,
                storage_unit_id=storage_unit_id,
                source=source,
                destination=destination,
                priority=priority,
                request_id=request_id,
                client_id=tenant_id,
            )
        )
        self.audit.record("create_order", warehouse_id, order_id, after=to_dict(order))
        return order

    def advance_order(
        self, tenant_id: str, order_id: str, status: OrderStatus
    ) -> TransportOrder:
        warehouse_id = self.tenants.warehouse_for(tenant_id)
        with self.locks.writing(warehouse_key(warehouse_id)):
            before = self.orders.get_order(warehouse_id, order_id)
            order = self.orders.advance(warehouse_id, order_id, status)
        self.audit.record(
            "advance_order", warehouse_id, order_id,
            before={"status": before.status.value}, after={"status": order.status.value},
        )
        return order

    def create_request(
        self,
        tenant_id: str,
        request_id: str,
        request_type: RequestType,
        article_id: str,
        quantity: int,
        target: Coordinate,
        article_type: Optional[ArticleType] = None,
    ) -> Request:
        self.tenants.tenant(tenant_id)
        if article_type is None:
            article_type = self.ledger.get_article(article_id).type
        request = self.requests.create_request(
            Request(
                request_id=request_id,
                client_id=tenant_id,
                request_type=RequestType(request_type),
                article_id=article_id,
                article_type=ArticleType(article_type),
                quantity=quantity,
                target=target,
            )
        )
        self.audit.record("create_request", tenant_id, request_id, after=to_dict(request))
        return request

    def advance_request(
        self, tenant_id: str, request_id: str, status: RequestStatus
    ) -> Request:
        self.tenants.tenant(tenant_id)
        with self.locks.writing(tenant_key(tenant_id), LEDGER_KEY):
            before = self.requests.get_request(tenant_id, request_id)
            request = self.requests.advance(tenant_id, request_id, status)
        self.audit.record(
            "advance_request", tenant_id, request_id,
            before={"status": before.status.value}, after={"status": request.status.value},
        )
        return request

    def get_article(self, article_id: str) -> Article:
        return self.ledger.get_article(article_id)
