"""
Central constants for the customer/order desk.
"""
from __future__ import annotations

ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_SHIPPED = "shipped"

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")

# Statuses from which an order may no longer be deleted
UNDELETABLE_ORDER_STATUSES = frozenset({ORDER_STATUS_SHIPPED})

ORDER_LOG_CREATED = "created"
ORDER_LOG_DELETED = "deleted"

ORDER_LOG_ACTIONS = (ORDER_LOG_CREATED, ORDER_LOG_DELETED)

CUSTOMER_NAME_MIN_LENGTH = 2

# Upper bound of the Integer columns (ids, quantity) on every supported backend
MAX_DB_INT = 2**31 - 1
