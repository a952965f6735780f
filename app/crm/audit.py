from flask import g, has_request_context
from sqlalchemy.orm import Session

from app.crm.constants import ORDER_LOG_ACTIONS
from app.crm.models import OrderLog


def record_order_event(
    s: Session,
    *,
    order_id: int,
    action: str,
    request_id: str | None = None,
) -> OrderLog:
    """
    Append-only order audit helper. Adds to the caller's session so the entry
    commits or rolls back together with the order write.
    """
    if action not in ORDER_LOG_ACTIONS:
        raise ValueError(f"Invalid order log action: {action}")
    rid = request_id
    if rid is None and has_request_context():
        rid = getattr(g, "request_id", None)
    entry = OrderLog(order_id=order_id, action=action, request_id=rid)
    s.add(entry)
    return entry
