from wms_core.engine.location_index import StorageLocationIndex
from wms_core.engine.locking import LockManager
from wms_core.engine.orders import TransportOrderBook
from wms_core.engine.requests import RequestBook
from wms_core.engine.service import TenantDirectory, WarehouseService
from wms_core.engine.stock_ledger import ArticleStockLedger

__all__ = [
    "ArticleStockLedger",
    "LockManager",
    "RequestBook",
    "StorageLocationIndex",
    "TenantDirectory",
    "TransportOrderBook",
    "WarehouseService",
]
