from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from app.crm.db import get_store
from app.crm.errors import Conflict, CrmError, NotFound, StoreError, ValidationError
from app.crm.orders import create_order, delete_order
from app.crm.validation import parse_customer_payload, parse_id, parse_order_payload

bp = Blueprint("api", __name__)


def _json_body():
    return request.get_json(silent=True)


def _error_response(exc: CrmError, message: str, *, store_status: int = 500, conflict_status: int = 400):
    """
    Map the error taxonomy onto a JSON error body and status.
    message is the generic, client-facing text for the failing operation.
    """
    rid = getattr(g, "request_id", None)
    if isinstance(exc, ValidationError):
        current_app.logger.info("Validation error (request_id=%s): %s", rid, exc)
        return jsonify({"error": message, "details": [v.as_dict() for v in exc.violations]}), 400
    if isinstance(exc, NotFound):
        return jsonify({"error": str(exc) or "Not found"}), 404
    if isinstance(exc, Conflict):
        current_app.logger.info("Conflict (request_id=%s): %s", rid, exc)
        return jsonify({"error": str(exc)}), conflict_status

    current_app.logger.exception("Store error (request_id=%s): %s", rid, message)
    body = {"error": message}
    if current_app.config.get("EXPOSE_ERROR_DETAIL") and isinstance(exc, StoreError):
        body["message"] = str(exc)
    return jsonify(body), store_status


# ---------- Customers ----------
@bp.get("/customers")
def customers_list():
    try:
        customers = get_store().list_customers()
    except CrmError as e:
        return _error_response(e, "Failed to fetch customers")
    return jsonify([c.to_dict() for c in customers])


@bp.post("/customers")
def customers_create():
    try:
        fields = parse_customer_payload(_json_body())
        customer = get_store().create_customer(fields)
    except CrmError as e:
        return _error_response(e, "Invalid customer data", store_status=400)
    return jsonify(customer.to_dict())


@bp.put("/customers/<customer_id>")
def customers_update(customer_id: str):
    try:
        cid = parse_id(customer_id)
        fields = parse_customer_payload(_json_body(), customer_id=cid)
    except ValidationError as e:
        return _error_response(e, "Invalid customer data")

    try:
        customer = get_store().update_customer(cid, fields)
    except NotFound:
        return jsonify({"error": "Customer not found"}), 404
    except CrmError as e:
        return _error_response(e, "Failed to update customer")
    return jsonify(customer.to_dict())


@bp.delete("/customers/<customer_id>")
def customers_delete(customer_id: str):
    try:
        get_store().delete_customer(parse_id(customer_id))
    except CrmError as e:
        return _error_response(e, "Failed to delete customer", store_status=400)
    return jsonify({"success": True})


@bp.get("/customers/<customer_id>/orders")
def customer_orders_list(customer_id: str):
    try:
        orders = get_store().list_orders_for_customer(parse_id(customer_id))
    except CrmError as e:
        return _error_response(e, "Failed to fetch orders")
    return jsonify([o.to_dict() for o in orders])


# ---------- Orders ----------
@bp.post("/orders")
def orders_create():
    try:
        order = create_order(get_store(), parse_order_payload(_json_body()))
    except CrmError as e:
        return _error_response(e, "Failed to create order", store_status=400)
    return jsonify(order.to_dict())


@bp.delete("/orders/<order_id>")
def orders_delete(order_id: str):
    try:
        delete_order(get_store(), parse_id(order_id))
    except NotFound:
        return jsonify({"error": "Order not found"}), 404
    except CrmError as e:
        return _error_response(e, "Failed to delete order", store_status=400)
    return jsonify({"success": True})


@bp.get("/orders/<order_id>/logs")
def order_logs_list(order_id: str):
    try:
        logs = get_store().list_order_logs(parse_id(order_id))
    except CrmError as e:
        return _error_response(e, "Failed to fetch order logs")
    return jsonify([entry.to_dict() for entry in logs])
