"""Transport order state machine.

Pending -> InProgress -> Completed, with Failed reachable from Pending and
InProgress. Completing an order moves its storage unit from the source to the
destination location in the same critical section as the status change.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime

from wms_core.engine.location_index import StorageLocationIndex
from wms_core.engine.locking import warehouse_key
from wms_core.errors import (
    DestinationBlocked,
    DuplicateOrderId,
    InvalidPriority,
    InvalidRoute,
    InvalidTransition,
    OrderNotFound,
)
from wms_core.models.warehouse import LocationStatus, OrderStatus, TransportOrder

logger = logging.getLogger(__name__)

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.IN_PROGRESS, OrderStatus.FAILED}),
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.COMPLETED, OrderStatus.FAILED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.FAILED: frozenset(),
}

ACTIVE_ORDER_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.IN_PROGRESS})


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS[current]


def validate_priority(order: TransportOrder) -> None:
    """Priority is a positive integer, 1 being the most urgent."""
    priority = order.priority
    if isinstance(priority, bool) or not isinstance(priority, int) or priority < 1:
        raise InvalidPriority(f"{order.order_id}: priority must be a positive integer ({priority!r})")


class TransportOrderBook:
    """Owns transport orders; shares its warehouse locks with the location index."""

    def __init__(self, locations: StorageLocationIndex) -> None:
        self.locations = locations
        self.locks = locations.locks
        self._orders: dict[str, dict[str, TransportOrder]] = {}

    def _require(self, warehouse_id: str, order_id: str) -> TransportOrder:
        order = self._orders.get(warehouse_id, {}).get(order_id)
        if order is None:
            raise OrderNotFound(f"Transport order not found: {warehouse_id}/{order_id}")
        return order

    def _check_destination(self, order: TransportOrder) -> None:
        destination = self.locations.get_location(order.warehouse_id, order.destination)
        if destination.status == LocationStatus.BLOCKED:
            raise DestinationBlocked(
                f"Destination {order.warehouse_id}/{order.destination} is blocked"
            )
        if destination.retired:
            raise DestinationBlocked(
                f"Destination {order.warehouse_id}/{order.destination} is retired"
            )

    def create_order(self, order: TransportOrder) -> TransportOrder:
        """Accepts a new order in Pending state.

        Source and destination must exist in the order's warehouse, differ,
        and the destination must not be blocked.
        """
        with self.locks.writing(warehouse_key(order.warehouse_id)):
            orders = self._orders.setdefault(order.warehouse_id, {})
            if order.order_id in orders:
                raise DuplicateOrderId(f"Transport order already exists: {order.order_id}")
            if order.source == order.destination:
                raise InvalidRoute(
                    f"{order.order_id}: source and destination are both {order.source}"
                )
            validate_priority(order)
            self.locations.get_location(order.warehouse_id, order.source)
            self._check_destination(order)

            stored = replace(order, status=OrderStatus.PENDING, completed_at=None)
            orders[stored.order_id] = stored
            logger.info(
                "Transport order created: %s %s -> %s (P%s)",
                stored.order_id, stored.source, stored.destination, stored.priority,
            )
            return replace(stored)

    def import_order(self, order: TransportOrder) -> TransportOrder:
        """Loads an order with its recorded status, without location side effects."""
        with self.locks.writing(warehouse_key(order.warehouse_id)):
            orders = self._orders.setdefault(order.warehouse_id, {})
            if order.order_id in orders:
                raise DuplicateOrderId(f"Transport order already exists: {order.order_id}")
            if order.source == order.destination:
                raise InvalidRoute(
                    f"{order.order_id}: source and destination are both {order.source}"
                )
            validate_priority(order)
            self.locations.get_location(order.warehouse_id, order.source)
            self.locations.get_location(order.warehouse_id, order.destination)
            orders[order.order_id] = replace(order)
            return replace(order)

    def advance(
        self, warehouse_id: str, order_id: str, target: OrderStatus
    ) -> TransportOrder:
        """Moves an order to ``target``.

        Raises OrderNotFound, InvalidTransition, or DestinationBlocked when the
        destination was blocked after acceptance. On any failure the order and
        its locations are left exactly as they were.
        """
        target = OrderStatus(target)
        with self.locks.writing(warehouse_key(warehouse_id)):
            order = self._require(warehouse_id, order_id)
            if not can_transition(order.status, target):
                logger.warning(
                    "Rejected order transition: %s %s -> %s",
                    order_id, order.status.value, target.value,
                )
                raise InvalidTransition(
                    f"{order_id}: {order.status.value} -> {target.value} is not allowed"
                )

            if target == OrderStatus.COMPLETED:
                self._complete(order)
            else:
                order.status = target

            logger.info("Transport order %s -> %s", order_id, target.value)
            return replace(order)

    def _complete(self, order: TransportOrder) -> None:
        wh = order.warehouse_id
        self._check_destination(order)

        source = self.locations.get_location(wh, order.source)
        destination = self.locations.get_location(wh, order.destination)
        source_units = self.locations.units_at(wh, order.source)
        destination_units = self.locations.units_at(wh, order.destination)

        try:
            self.locations.place_unit(wh, order.destination, order.storage_unit_id)
            self.locations.set_status(wh, order.destination, LocationStatus.OCCUPIED)
            source_empty = self.locations.remove_unit(wh, order.source, order.storage_unit_id)
            if source_empty and source.status == LocationStatus.OCCUPIED:
                self.locations.set_status(wh, order.source, LocationStatus.FREE)
        except Exception as e:
            self.locations.restore(source, source_units)
            self.locations.restore(destination, destination_units)
            logger.error("Transport order %s rolled back: %s", order.order_id, e)
            raise

        order.status = OrderStatus.COMPLETED
        order.completed_at = datetime.utcnow().isoformat()

    # --- Queries ---

    def get_order(self, warehouse_id: str, order_id: str) -> TransportOrder:
        with self.locks.reading(warehouse_key(warehouse_id)):
            return replace(self._require(warehouse_id, order_id))

    def list_orders(self, warehouse_id: str) -> list[TransportOrder]:
        """Orders of a warehouse in creation order."""
        with self.locks.reading(warehouse_key(warehouse_id)):
            return [replace(o) for o in self._orders.get(warehouse_id, {}).values()]
