"""Tests for the persistence gateway and its injection into the app."""
import pytest

from app.crm import create_app
from app.crm.db import get_store, session_scope
from app.crm.errors import Conflict, NotFound, StoreError
from app.crm.models import Base, Customer, Order
from app.crm.orders import create_order, delete_order
from app.crm.validation import CustomerFields, OrderRequest


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])
    return app


@pytest.fixture()
def store(app):
    return get_store(app)


def _alice():
    return CustomerFields(name="Alice", email="alice@example.com", age=30.0, age_provided=True)


def test_create_customer_assigns_id_and_timestamps(store):
    c = store.create_customer(_alice())
    assert c.id is not None
    assert c.created_at is not None
    assert c.updated_at == c.created_at
    assert [x.id for x in store.list_customers()] == [c.id]


def test_get_customer(store):
    c = store.create_customer(_alice())
    assert store.get_customer(c.id).email == "alice@example.com"
    assert store.get_customer(c.id + 1) is None


def test_update_missing_customer_raises_not_found(app, store):
    with pytest.raises(NotFound):
        store.update_customer(1, _alice())
    with session_scope(app) as s:
        assert s.query(Customer).count() == 0


def test_update_does_not_touch_id(store):
    c = store.create_customer(_alice())
    updated = store.update_customer(c.id, CustomerFields(name="Alicia", email="alicia@example.com"))
    assert updated.id == c.id
    assert updated.name == "Alicia"
    assert updated.age == 30.0


def test_delete_customer_is_idempotent(store):
    store.delete_customer(123)
    c = store.create_customer(_alice())
    store.delete_customer(c.id)
    store.delete_customer(c.id)
    assert store.list_customers() == []


def test_delete_customer_with_orders_raises_conflict(store):
    c = store.create_customer(_alice())
    create_order(store, OrderRequest(customer_id=c.id, quantity=1))
    with pytest.raises(Conflict):
        store.delete_customer(c.id)
    assert store.get_customer(c.id) is not None


def test_transaction_rolls_back_on_error(app, store):
    with pytest.raises(RuntimeError):
        with store.transaction() as s:
            s.add(Customer(name="Ghost", email="ghost@example.com"))
            s.flush()
            raise RuntimeError("abort")
    with session_scope(app) as s:
        assert s.query(Customer).count() == 0


def test_transaction_wraps_sqlalchemy_errors(store):
    with pytest.raises(StoreError):
        with store.transaction() as s:
            s.add(Order(customer_id=404, quantity=1))
            s.flush()


def test_delete_order_workflow(store):
    c = store.create_customer(_alice())
    order = create_order(store, OrderRequest(customer_id=c.id, quantity=2))
    assert [o.id for o in store.list_orders_for_customer(c.id)] == [order.id]

    delete_order(store, order.id)
    assert store.get_order(order.id) is None
    assert [entry.action for entry in store.list_order_logs(order.id)] == ["created", "deleted"]

    with pytest.raises(NotFound):
        delete_order(store, order.id)


# ---------- Injected gateway ----------
class _UnavailableStore:
    """Stands in for the gateway when the database is unreachable."""

    def list_customers(self):
        raise StoreError("connection refused")

    def list_orders_for_customer(self, customer_id):
        raise StoreError("connection refused")

    def delete_customer(self, customer_id):
        raise StoreError("connection refused")


class _RecordingStore:
    def __init__(self):
        self.created: list[CustomerFields] = []

    def create_customer(self, fields):
        self.created.append(fields)
        return Customer(id=len(self.created), name=fields.name, email=fields.email, age=fields.age)


@pytest.fixture()
def unavailable_client(monkeypatch):
    monkeypatch.setenv("ENV", "test")
    app = create_app(store=_UnavailableStore())
    return app.test_client()


def test_list_customers_store_error_is_500(unavailable_client):
    r = unavailable_client.get("/api/customers")
    assert r.status_code == 500
    assert r.json["error"] == "Failed to fetch customers"
    assert r.json["message"] == "connection refused"


def test_list_orders_store_error_is_500(unavailable_client):
    r = unavailable_client.get("/api/customers/1/orders")
    assert r.status_code == 500
    assert r.json["error"] == "Failed to fetch orders"


def test_delete_customer_store_error_is_400(unavailable_client):
    r = unavailable_client.delete("/api/customers/1")
    assert r.status_code == 400
    assert r.json["error"] == "Failed to delete customer"


def test_error_detail_hidden_when_disabled(monkeypatch):
    monkeypatch.setenv("ENV", "test")
    app = create_app(config={"EXPOSE_ERROR_DETAIL": False}, store=_UnavailableStore())
    r = app.test_client().get("/api/customers")
    assert r.status_code == 500
    assert r.json == {"error": "Failed to fetch customers"}


def test_injected_store_receives_validated_fields(monkeypatch):
    monkeypatch.setenv("ENV", "test")
    fake = _RecordingStore()
    client = create_app(store=fake).test_client()

    r = client.post("/api/customers", json={"name": "  Bob ", "email": "bob@example.com"})
    assert r.status_code == 200
    assert r.json["name"] == "Bob"
    assert fake.created == [CustomerFields(name="Bob", email="bob@example.com", age=None, age_provided=False)]

    r = client.post("/api/customers", json={"name": "B", "email": "bob@example.com"})
    assert r.status_code == 400
    assert len(fake.created) == 1


def test_order_status_outside_known_set_is_rejected(app, store):
    from sqlalchemy.exc import IntegrityError

    c = store.create_customer(_alice())
    order = create_order(store, OrderRequest(customer_id=c.id, quantity=1))
    with pytest.raises(IntegrityError):
        with session_scope(app) as s:
            s.get(Order, order.id).status = "lost"
    assert store.get_order(order.id).status == "pending"
