"""
Order workflow: every order mutation commits together with its audit entry.
"""
from __future__ import annotations

import logging

from sqlalchemy import delete

from app.crm.audit import record_order_event
from app.crm.constants import (
    ORDER_LOG_CREATED,
    ORDER_LOG_DELETED,
    ORDER_STATUS_PENDING,
    UNDELETABLE_ORDER_STATUSES,
)
from app.crm.errors import Conflict, NotFound
from app.crm.models import Order
from app.crm.store import Store
from app.crm.utils import utcnow
from app.crm.validation import OrderRequest

logger = logging.getLogger(__name__)


def create_order(store: Store, req: OrderRequest) -> Order:
    now = utcnow()
    with store.transaction() as s:
        order = Order(
            customer_id=req.customer_id,
            quantity=req.quantity,
            status=ORDER_STATUS_PENDING,
            created_at=now,
            updated_at=now,
        )
        s.add(order)
        s.flush()
        record_order_event(s, order_id=order.id, action=ORDER_LOG_CREATED)
    logger.info("Order created id=%s customer_id=%s quantity=%s", order.id, order.customer_id, order.quantity)
    return order


def can_delete(order: Order) -> bool:
    return order.status not in UNDELETABLE_ORDER_STATUSES


def delete_order(store: Store, order_id: int) -> None:
    # Status check reads outside the write transaction.
    order = store.get_order(order_id)
    if order is None:
        raise NotFound(f"Order {order_id} not found")
    if not can_delete(order):
        logger.info("Refusing to delete order id=%s status=%s", order_id, order.status)
        raise Conflict("Cannot delete shipped orders")

    with store.transaction() as s:
        result = s.execute(delete(Order).where(Order.id == order_id))
        if not result.rowcount:
            # Removed between the read above and this unit.
            raise NotFound(f"Order {order_id} not found")
        record_order_event(s, order_id=order_id, action=ORDER_LOG_DELETED)
    logger.info("Order deleted id=%s", order_id)
