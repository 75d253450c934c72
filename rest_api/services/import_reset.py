"""
Relational reset and demo data generation.

`import_reset` recreates missing tables, deletes every row in FK-safe order,
restarts the id sequences, fills the schema with a random but repeatable
dataset and finally clears the document store together with its migration
marker, so a stale "migrated" state never outlives a reset.

Set SEED to make the generated dataset identical across runs.
"""

import random
import time
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from pymongo.database import Database
from pymongo.errors import PyMongoError
from sqlalchemy import text
from sqlalchemy.orm import Session

from shared.config.constants import DeliveryStatus, OrderStatus, PAYMENT_METHODS, VEHICLE_TYPES
from shared.config.logging import import_logger as logger
from shared.infrastructure.db import transaction
from shared.infrastructure.mongo import clear_working_collections
from shared.utils.exceptions import InternalError
from shared.utils.money import cents_to_decimal, to_cents
from shared.utils.validators import utc_now
from rest_api.models import (
    Base,
    Category,
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


RESTAURANTS = [
    ("Figlmueller", "Wollzeile 5, 1010 Wien"),
    ("Plachutta", "Wollzeile 38, 1010 Wien"),
    ("Cafe Central", "Herrengasse 14, 1010 Wien"),
    ("Zum Schwarzen Kameel", "Bognergasse 5, 1010 Wien"),
    ("Lugeck", "Lugeck 4, 1010 Wien"),
    ("Steirereck", "Am Heumarkt 2A, 1030 Wien"),
    ("NENI am Naschmarkt", "Naschmarkt 510, 1060 Wien"),
    ("Gasthaus Poeschel", "Weihburggasse 17, 1010 Wien"),
    ("Schnitzelwirt", "Neubaugasse 52, 1070 Wien"),
    ("Vapiano Wien Mitte", "Landstrasser Hauptstrasse 1A, 1030 Wien"),
]

STREETS = [
    ("Kaerntner Strasse", "1010"),
    ("Rotenturmstrasse", "1010"),
    ("Mariahilfer Strasse", "1060"),
    ("Waehringer Strasse", "1090"),
    ("Praterstrasse", "1020"),
    ("Landstrasser Hauptstrasse", "1030"),
    ("Favoritenstrasse", "1040"),
    ("Schoenbrunner Strasse", "1050"),
    ("Thaliastrasse", "1160"),
    ("Donaufelder Strasse", "1210"),
]

CATEGORIES = ["vegan", "spicy", "dessert", "drink", "starter", "main"]

MENU_ITEMS = [
    "Wiener Schnitzel", "Tafelspitz", "Gulasch", "Kaiserschmarrn", "Apfelstrudel",
    "Sachertorte", "Leberkaes", "Knoedel", "Spaetzle", "Bratwurst",
    "Kaesespaetzle", "Schweinsbraten", "Schnitzel Cordon Bleu", "Backhendl", "Zwiebelrostbraten",
    "Cappuccino", "Melange", "Einspaenner", "Wiener Eiskaffee", "Topfenstrudel",
    "Linzer Torte", "Marillenknoedel", "Palatschinken", "Margherita Pizza", "Carbonara",
    "Bolognese", "Caesar Salad", "Burger Classic", "Chicken Curry", "Pad Thai",
    "Risotto ai Funghi", "Penne Arrabbiata", "Greek Salad", "Tomato Soup", "Bruschetta",
    "Chocolate Cake", "Cheesecake", "Tiramisu", "Panna Cotta", "Apple Pie",
    "Cola", "Orange Juice", "Mineral Water", "Beer", "Lemonade",
]

MENU_ITEMS_PER_RESTAURANT = 6
CUSTOMERS = 20
RIDERS = 10
ORDERS = 30
ORDER_WINDOW_DAYS = 14
DELIVERY_SHARE = 0.6


def _vienna_address(rng: random.Random) -> str:
    street, postcode = rng.choice(STREETS)
    return f"{street} {rng.randint(1, 200)}, {postcode} Wien"


def _phone(rng: random.Random) -> str:
    return f"+43 1 {rng.randint(1000000, 9999999)}"


def clear_relational(db: Session) -> None:
    """Create missing tables, then delete all rows children first."""
    engine = db.get_bind()
    Base.metadata.create_all(bind=engine)

    with transaction(db):
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())

    if engine.dialect.name in ("mysql", "mariadb"):
        # ALTER TABLE commits implicitly, so it runs after the deletes
        for table in Base.metadata.sorted_tables:
            if any(column.autoincrement is True for column in table.primary_key.columns):
                db.execute(text(f"ALTER TABLE `{table.name}` AUTO_INCREMENT = 1"))
        db.commit()


def generate_demo_data(db: Session, rng: random.Random, now: Optional[datetime] = None) -> dict[str, int]:
    """
    Fill an empty schema with the demo dataset.

    Every order gets a payment; about 60% get a delivery, and deliveries
    still in `created` have no rider yet so assignment has live data to act on.

    Returns:
        Inserted counts per entity.
    """
    now = now or utc_now()

    restaurants = [Restaurant(name=name, address=address) for name, address in RESTAURANTS]
    categories = [Category(name=name) for name in CATEGORIES]
    db.add_all(restaurants + categories)

    menu: dict[str, list[MenuItem]] = {}
    for restaurant in restaurants:
        items = []
        for name in rng.sample(MENU_ITEMS, MENU_ITEMS_PER_RESTAURANT):
            item = MenuItem(
                name=name,
                description=f"Delicious {name.lower()}",
                price=cents_to_decimal(rng.randint(500, 2500)),
            )
            item.categories = rng.sample(categories, rng.randint(1, 2))
            items.append(item)
        restaurant.menu_items = items
        menu[restaurant.name] = items

    customers = []
    for i in range(1, CUSTOMERS + 1):
        person = Person(name=f"Customer {i}", email=f"customer{i}@example.com", phone=_phone(rng))
        person.customer = Customer(
            default_address=_vienna_address(rng),
            preferred_payment_method=rng.choice(PAYMENT_METHODS),
        )
        customers.append(person)

    riders = []
    for i in range(1, RIDERS + 1):
        person = Person(name=f"Rider {i}", email=f"rider{i}@example.com", phone=_phone(rng))
        person.rider = Rider(
            vehicle_type=rng.choice(VEHICLE_TYPES),
            rating=Decimal(rng.randint(30, 50)) / 10,
        )
        person.rider.restaurants = rng.sample(restaurants, rng.randint(1, 2))
        riders.append(person)

    db.add_all(customers + riders)
    db.flush()

    counts = {"orderItems": 0, "payments": 0, "deliveries": 0}
    orders = []
    for _ in range(ORDERS):
        restaurant = rng.choice(restaurants)
        customer = rng.choice(customers)
        created_at = now - timedelta(minutes=rng.randint(0, ORDER_WINDOW_DAYS * 24 * 60))

        order_items = []
        total_cents = 0
        for _ in range(rng.randint(1, 5)):
            menu_item = rng.choice(menu[restaurant.name])
            quantity = rng.randint(1, 3)
            order_items.append(
                OrderItem(menu_item=menu_item, quantity=quantity, unit_price=menu_item.price)
            )
            total_cents += quantity * to_cents(menu_item.price)

        order = Order(
            customer_id=customer.person_id,
            restaurant_id=restaurant.restaurant_id,
            created_at=created_at,
            status=rng.choice(OrderStatus.ALL),
            total_amount=cents_to_decimal(total_cents),
        )
        order.items = order_items
        counts["orderItems"] += len(order_items)

        paid_at = created_at + timedelta(minutes=rng.randint(5, 60))
        order.payment = Payment(
            amount=order.total_amount,
            payment_method=rng.choice(PAYMENT_METHODS),
            paid_at=paid_at,
        )
        counts["payments"] += 1

        if rng.random() < DELIVERY_SHARE:
            delivery_status = rng.choice(DeliveryStatus.ALL)
            delivery = Delivery(delivery_status=delivery_status)
            if delivery_status != DeliveryStatus.CREATED:
                delivery.rider_id = rng.choice(riders).person_id
                delivery.assigned_at = paid_at + timedelta(minutes=rng.randint(5, 45))
            order.delivery = delivery
            counts["deliveries"] += 1

        orders.append(order)

    db.add_all(orders)
    db.flush()

    return {
        "restaurants": len(restaurants),
        "categories": len(categories),
        "menuItems": sum(len(items) for items in menu.values()),
        "customers": len(customers),
        "riders": len(riders),
        "orders": len(orders),
        **counts,
    }


def import_reset(db: Session, mongo_db: Database, seed: Optional[int] = None) -> dict[str, int]:
    """
    Reset the relational store to a fresh demo dataset and clear the document store.

    Raises:
        InternalError: The relational reset worked but the document store
            could not be cleared.
    """
    clear_relational(db)

    rng = random.Random(seed if seed is not None else time.time_ns())
    with transaction(db):
        inserted = generate_demo_data(db, rng)

    logger.info("Relational store reset", seed=seed, **inserted)

    try:
        clear_working_collections(mongo_db)
    except PyMongoError as exc:
        raise InternalError(
            f"relational reset succeeded but clearing the document store failed: {exc}"
        ) from exc

    return inserted
