"""Request state machine.

Created -> Assigned -> Processing -> Completed; Cancelled from any
non-terminal state. Completion books the requested quantity on the article
ledger (Inbound +, Outbound/Picking -, Inventory none) before the status
changes, so a rejected booking leaves the request where it was.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional

from wms_core.engine.locking import LEDGER_KEY, LockManager, tenant_key
from wms_core.engine.stock_ledger import ArticleStockLedger
from wms_core.errors import (
    ArticleTypeMismatch,
    DuplicateRequestId,
    InvalidQuantity,
    InvalidTransition,
    RequestNotFound,
)
from wms_core.models.warehouse import Request, RequestStatus, RequestType

logger = logging.getLogger(__name__)

_TERMINAL = frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED})

REQUEST_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.CREATED: frozenset({RequestStatus.ASSIGNED, RequestStatus.CANCELLED}),
    RequestStatus.ASSIGNED: frozenset({RequestStatus.PROCESSING, RequestStatus.CANCELLED}),
    RequestStatus.PROCESSING: frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED}),
    RequestStatus.COMPLETED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}

# Sign of the stock movement booked when a request of this type completes
STOCK_DIRECTION: dict[RequestType, int] = {
    RequestType.INBOUND: 1,
    RequestType.OUTBOUND: -1,
    RequestType.PICKING: -1,
    RequestType.INVENTORY: 0,
}


def is_active(request: Request) -> bool:
    return request.status not in _TERMINAL


class RequestBook:
    """Owns requests per tenant and couples completion to the stock ledger."""

    def __init__(self, ledger: ArticleStockLedger, locks: Optional[LockManager] = None) -> None:
        self.ledger = ledger
        self.locks = locks or ledger.locks
        self._requests: dict[str, dict[str, Request]] = {}

    def _require(self, client_id: str, request_id: str) -> Request:
        request = self._requests.get(client_id, {}).get(request_id)
        if request is None:
            raise RequestNotFound(f"Request not found: {client_id}/{request_id}")
        return request

    def _validate(self, request: Request) -> None:
        if isinstance(request.quantity, bool) or not isinstance(request.quantity, int) or request.quantity <= 0:
            raise InvalidQuantity(
                f"{request.request_id}: quantity must be a positive integer ({request.quantity!r})"
            )
        article = self.ledger.get_article(request.article_id)
        if article.type != request.article_type:
            raise ArticleTypeMismatch(
                f"{request.request_id}: article {article.article_id} is {article.type.value}, "
                f"not {request.article_type.value}"
            )

    def create_request(self, request: Request) -> Request:
        # articles are never removed and never change type
        self._validate(request)
        with self.locks.writing(tenant_key(request.client_id)):
            requests = self._requests.setdefault(request.client_id, {})
            if request.request_id in requests:
                raise DuplicateRequestId(f"Request already exists: {request.request_id}")
            stored = replace(request, status=RequestStatus.CREATED, completed_at=None)
            requests[stored.request_id] = stored
            logger.info(
                "Request created: %s %s %s x%s",
                stored.request_id, stored.request_type.value, stored.article_id, stored.quantity,
            )
            return replace(stored)

    def import_request(self, request: Request) -> Request:
        """Loads a request with its recorded status, without booking stock."""
        self._validate(request)
        with self.locks.writing(tenant_key(request.client_id)):
            requests = self._requests.setdefault(request.client_id, {})
            if request.request_id in requests:
                raise DuplicateRequestId(f"Request already exists: {request.request_id}")
            requests[request.request_id] = replace(request)
            return replace(request)

    def advance(self, client_id: str, request_id: str, target: RequestStatus) -> Request:
        """Moves a request to ``target``.

        Raises RequestNotFound, InvalidTransition, or the ledger's error
        (NegativeStock, ArticleNotFound) when completion cannot be booked.
        """
        target = RequestStatus(target)
        with self.locks.writing(tenant_key(client_id), LEDGER_KEY):
            request = self._require(client_id, request_id)
            if target not in REQUEST_TRANSITIONS[request.status]:
                logger.warning(
                    "Rejected request transition: %s %s -> %s",
                    request_id, request.status.value, target.value,
                )
                raise InvalidTransition(
                    f"{request_id}: {request.status.value} -> {target.value} is not allowed"
                )

            if target == RequestStatus.COMPLETED:
                direction = STOCK_DIRECTION[request.request_type]
                if direction:
                    # raises before any request state changes
                    self.ledger.adjust_stock(
                        request.article_id, direction * request.quantity, reference=request_id
                    )
                request.completed_at = datetime.utcnow().isoformat()

            request.status = target
            logger.info("Request %s -> %s", request_id, target.value)
            return replace(request)

    # --- Queries ---

    def get_request(self, client_id: str, request_id: str) -> Request:
        with self.locks.reading(tenant_key(client_id)):
            return replace(self._require(client_id, request_id))

    def list_requests(self, client_id: str) -> list[Request]:
        """Requests of a tenant in creation order."""
        with self.locks.reading(tenant_key(client_id)):
            return [replace(r) for r in self._requests.get(client_id, {}).values()]
