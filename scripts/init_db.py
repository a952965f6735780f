"""
Create the customer/order tables and optionally seed demo rows.

There is no migration tooling: tables are created from the SQLAlchemy models
with create_all, which never alters existing tables.

Usage:
  python scripts/init_db.py            # create tables
  python scripts/init_db.py --seed     # create tables + demo customer/order (idempotent)
"""
import argparse
import os
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dotenv import load_dotenv
from sqlalchemy import select

from app.crm.audit import record_order_event
from app.crm.constants import ORDER_LOG_CREATED
from app.crm.db import build_engine, create_schema
from app.crm.models import Customer, Order
from scripts._db_utils import script_session


def _database_url(database_url: str | None) -> str:
    return (database_url or os.environ.get("DATABASE_URL") or "sqlite:///crm.db").strip()


def create_tables(*, database_url: str | None = None) -> None:
    engine = build_engine(_database_url(database_url))
    try:
        create_schema(engine)
    finally:
        engine.dispose()
    print("Created tables (create_all).")


def seed_demo(*, database_url: str | None = None) -> None:
    """
    Seed one demo customer with one pending order, keyed on the demo email.
    Does nothing if the demo customer already exists.
    """
    demo_email = (os.environ.get("DEMO_CUSTOMER_EMAIL") or "demo@example.com").strip().lower()
    with script_session(_database_url(database_url)) as s:
        existing = s.scalars(select(Customer).where(Customer.email == demo_email)).first()
        if existing:
            print(f"Demo customer already present (id={existing.id}).")
            return
        c = Customer(name="Demo Customer", email=demo_email, age=None)
        s.add(c)
        s.flush()
        o = Order(customer_id=c.id, quantity=1)
        s.add(o)
        s.flush()
        record_order_event(s, order_id=o.id, action=ORDER_LOG_CREATED, request_id="seed")
        print(f"Seeded demo customer id={c.id} with order id={o.id}.")


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--seed", action="store_true", help="also insert a demo customer and order")
    parser.add_argument("--database-url", default=None, help="overrides DATABASE_URL")
    args = parser.parse_args(argv)

    create_tables(database_url=args.database_url)
    if args.seed:
        seed_demo(database_url=args.database_url)


if __name__ == "__main__":
    main()
