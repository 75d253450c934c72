"""
Pytest configuration and fixtures for backend tests.

The relational store is an in-memory SQLite database (StaticPool, so every
session shares one connection); the document store is mongomock.
"""

from dataclasses import dataclass
import itertools
from datetime import datetime, timedelta
from decimal import Decimal

import mongomock
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from rest_api.main import create_app
from rest_api.models import (
    Base,
    Customer,
    Delivery,
    MenuItem,
    Order,
    OrderItem,
    Payment,
    Person,
    Restaurant,
    Rider,
)
from rest_api.services.domain import MongoOrderStore, SqlOrderStore, order_service
from rest_api.services.migration import migrate_sql_to_mongo
from shared.config.constants import StoreMode
from shared.config.settings import settings
from shared.infrastructure.db import create_db_engine, create_session_factory
from shared.infrastructure.mongo import ensure_indexes


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory SQLite engine with all tables created."""
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def mongo_client():
    client = mongomock.MongoClient()
    yield client
    client.close()


@pytest.fixture(scope="function")
def mongo_db(mongo_client):
    db = mongo_client[settings.mongodb_db]
    ensure_indexes(db)
    return db


# =============================================================================
# Seed data
# =============================================================================


@dataclass
class SeedData:
    """Ids of the fixture rows, by natural key."""

    restaurants: dict[str, int]
    menu: dict[str, int]
    people: dict[str, int]
    orders: dict[str, int]


def _menu_item(name: str, price: str) -> MenuItem:
    return MenuItem(name=name, description=f"Delicious {name.lower()}", price=Decimal(price))


@pytest.fixture
def seed_data(db_session) -> SeedData:
    """
    Small dataset with known report values.

    Plachutta (all time): 3 orders, revenue 47.40, 2 paid (card, cash).
    rider1: 2 deliveries (delivered, picked_up), revenue 41.20.
    Figlmueller has two menu rows named "Melange".
    """
    plachutta = Restaurant(name="Plachutta", address="Wollzeile 38, 1010 Wien")
    tafelspitz = _menu_item("Tafelspitz", "9.50")
    cola = _menu_item("Cola", "0.10")
    strudel = _menu_item("Apfelstrudel", "6.20")
    plachutta.menu_items = [tafelspitz, cola, strudel]

    figlmueller = Restaurant(name="Figlmueller", address="Wollzeile 5, 1010 Wien")
    schnitzel = _menu_item("Wiener Schnitzel", "16.90")
    melange = _menu_item("Melange", "4.80")
    melange_large = _menu_item("Melange", "5.10")
    figlmueller.menu_items = [schnitzel, melange, melange_large]

    customer1 = Person(name="Customer 1", email="customer1@example.com", phone="+43 1 1111111")
    customer1.customer = Customer(
        default_address="Kaerntner Strasse 1, 1010 Wien", preferred_payment_method="card"
    )
    customer2 = Person(name="Customer 2", email="customer2@example.com")
    customer2.customer = Customer(default_address="Praterstrasse 7, 1020 Wien")

    rider1 = Person(name="Rider 1", email="rider1@example.com", phone="+43 1 2222222")
    rider1.rider = Rider(vehicle_type="bike", rating=Decimal("4.5"))
    rider1.rider.restaurants = [plachutta]
    rider2 = Person(name="Rider 2", email="rider2@example.com")
    rider2.rider = Rider(vehicle_type="car", rating=Decimal("3.8"))
    rider2.rider.restaurants = [plachutta, figlmueller]

    # Customers first, so person ids run customer1, customer2, rider1, rider2
    db_session.add_all([customer1, customer2])
    db_session.flush()
    db_session.add_all([plachutta, figlmueller, rider1, rider2])
    db_session.flush()

    def order(customer, restaurant, created_at, status, lines, payment=None, delivery=None):
        total = sum(Decimal(qty) * item.price for item, qty in lines)
        row = Order(
            customer_id=customer.person_id,
            restaurant_id=restaurant.restaurant_id,
            created_at=created_at,
            status=status,
            total_amount=total,
        )
        row.items = [
            OrderItem(menu_item_id=item.menu_item_id, quantity=qty, unit_price=item.price)
            for item, qty in lines
        ]
        if payment:
            method, paid_at = payment
            row.payment = Payment(amount=total, payment_method=method, paid_at=paid_at)
        if delivery:
            delivery_status, rider, assigned_at = delivery
            row.delivery = Delivery(
                delivery_status=delivery_status,
                rider_id=rider.person_id if rider else None,
                assigned_at=assigned_at,
            )
        db_session.add(row)
        return row

    o1 = order(
        customer1, plachutta, datetime(2026, 1, 10, 12, 0), "preparing",
        [(tafelspitz, 2), (cola, 3)],
        payment=("card", datetime(2026, 1, 10, 12, 10)),
        delivery=("delivered", rider1, datetime(2026, 1, 10, 12, 20)),
    )
    o2 = order(
        customer2, plachutta, datetime(2026, 1, 10, 18, 30), "created",
        [(strudel, 1)],
        delivery=("created", None, None),
    )
    o3 = order(
        customer1, plachutta, datetime(2026, 1, 12, 9, 15), "completed",
        [(tafelspitz, 1), (strudel, 2)],
        payment=("cash", datetime(2026, 1, 12, 9, 20)),
        delivery=("picked_up", rider1, datetime(2026, 1, 12, 9, 40)),
    )
    o4 = order(
        customer2, figlmueller, datetime(2026, 1, 11, 20, 0), "ready",
        [(schnitzel, 2), (melange, 1)],
        payment=("card", datetime(2026, 1, 11, 20, 5)),
        delivery=("assigned", rider2, datetime(2026, 1, 11, 20, 30)),
    )
    db_session.commit()

    return SeedData(
        restaurants={
            "Plachutta": plachutta.restaurant_id,
            "Figlmueller": figlmueller.restaurant_id,
        },
        menu={
            "Tafelspitz": tafelspitz.menu_item_id,
            "Cola": cola.menu_item_id,
            "Apfelstrudel": strudel.menu_item_id,
            "Wiener Schnitzel": schnitzel.menu_item_id,
        },
        people={
            "customer1@example.com": customer1.person_id,
            "customer2@example.com": customer2.person_id,
            "rider1@example.com": rider1.person_id,
            "rider2@example.com": rider2.person_id,
        },
        orders={"o1": o1.order_id, "o2": o2.order_id, "o3": o3.order_id, "o4": o4.order_id},
    )


@pytest.fixture
def migrated(db_session, mongo_db, seed_data) -> SeedData:
    """Seed data copied into the document store."""
    migrate_sql_to_mongo(db_session, mongo_db)
    return seed_data


@pytest.fixture(params=[StoreMode.SQL, StoreMode.MONGO])
def store(request, db_session, mongo_db, migrated):
    """Both adapters over the same dataset; contract tests run once per mode."""
    if request.param == StoreMode.SQL:
        return SqlOrderStore(db_session)
    return MongoOrderStore(mongo_db)


@pytest.fixture
def sql_store(db_session, migrated):
    return SqlOrderStore(db_session)


@pytest.fixture
def mongo_store(mongo_db, migrated):
    return MongoOrderStore(mongo_db)


@pytest.fixture
def line():
    """
    Build a request line that both modes accept.

    The relational store prices it by menuItemId, the document store by the
    given name and unitPrice.
    """

    def build(seed: SeedData, name: str, quantity: int, unit_price: str) -> dict:
        return {
            "menuItemId": seed.menu[name],
            "menuItemName": name,
            "quantity": quantity,
            "unitPrice": unit_price,
        }

    return build


@pytest.fixture
def clock(monkeypatch):
    """
    Deterministic `utc_now` for the order service, one minute apart per call.

    Returns the list of issued times.
    """
    start = datetime(2026, 3, 1, 12, 0)
    ticks = (start + timedelta(minutes=n) for n in itertools.count())
    issued = []

    def now():
        issued.append(next(ticks))
        return issued[-1]

    monkeypatch.setattr(order_service, "utc_now", now)
    return issued


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture(scope="function")
def client(engine, mongo_client, seed_data):
    """Test client over the fixture stores (lifespan runs inside the with block)."""
    app = create_app(sql_engine=engine, mongo_client=mongo_client)
    with TestClient(app) as test_client:
        yield test_client
