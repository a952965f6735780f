"""
Persistence gateway: the only code that talks to the relational store.

One Store is built per process from a sessionmaker and handed to the request
handlers through app.extensions (see app.crm.db.init_db). Every operation runs
in its own session; SQLAlchemy failures are rolled back and surfaced as
StoreError.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from collections.abc import Generator

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.crm.errors import Conflict, NotFound, StoreError
from app.crm.models import Customer, Order, OrderLog
from app.crm.utils import utcnow
from app.crm.validation import CustomerFields

logger = logging.getLogger(__name__)


class Store:
    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    @contextmanager
    def transaction(self) -> Generator[Session, None, None]:
        """
        Atomic unit: commit when the block exits cleanly, roll back otherwise.
        """
        s: Session = self._session_factory()
        try:
            yield s
            s.commit()
        except SQLAlchemyError as e:
            s.rollback()
            logger.warning("Transaction rolled back: %s", e)
            raise StoreError(str(e)) from e
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    # ---------- Customers ----------

    def list_customers(self) -> list[Customer]:
        with self.transaction() as s:
            return list(s.scalars(select(Customer).order_by(Customer.id.asc())))

    def get_customer(self, customer_id: int) -> Customer | None:
        with self.transaction() as s:
            return s.get(Customer, customer_id)

    def create_customer(self, fields: CustomerFields) -> Customer:
        now = utcnow()
        with self.transaction() as s:
            c = Customer(
                name=fields.name,
                email=fields.email,
                age=fields.age,
                created_at=now,
                updated_at=now,
            )
            s.add(c)
            s.flush()
            logger.info("Customer created id=%s", c.id)
        return c

    def update_customer(self, customer_id: int, fields: CustomerFields) -> Customer:
        with self.transaction() as s:
            c = s.get(Customer, customer_id)
            if c is None:
                raise NotFound(f"Customer {customer_id} not found")
            for attr, value in fields.values().items():
                setattr(c, attr, value)
            c.updated_at = utcnow()
            s.flush()
            logger.info("Customer updated id=%s", c.id)
        return c

    def delete_customer(self, customer_id: int) -> None:
        """
        Idempotent: an unknown id is not an error. A customer that still has
        orders is not deleted (Conflict).
        """
        with self.transaction() as s:
            order_count = s.scalar(
                select(func.count()).select_from(Order).where(Order.customer_id == customer_id)
            )
            if order_count:
                raise Conflict(f"Customer {customer_id} still has {order_count} order(s)")
            result = s.execute(delete(Customer).where(Customer.id == customer_id))
            if result.rowcount:
                logger.info("Customer deleted id=%s", customer_id)
            else:
                logger.info("Customer delete matched no row id=%s", customer_id)

    # ---------- Orders ----------

    def list_orders_for_customer(self, customer_id: int) -> list[Order]:
        with self.transaction() as s:
            return list(
                s.scalars(select(Order).where(Order.customer_id == customer_id).order_by(Order.id.asc()))
            )

    def get_order(self, order_id: int) -> Order | None:
        with self.transaction() as s:
            return s.get(Order, order_id)

    def list_order_logs(self, order_id: int) -> list[OrderLog]:
        with self.transaction() as s:
            return list(
                s.scalars(
                    select(OrderLog)
                    .where(OrderLog.order_id == order_id)
                    .order_by(OrderLog.timestamp.asc(), OrderLog.id.asc())
                )
            )
