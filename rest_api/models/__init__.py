"""
SQLAlchemy ORM Models Package.

All models are organized into domain-specific modules:
- base: Base class
- person: Person, Customer, Rider (IS-A, shared primary key), rider_works_for
- restaurant: Restaurant, MenuItem, Category, menu_item_category
- order: Order, OrderItem, Payment, Delivery
"""

from .base import Base

from .person import Person, Customer, Rider, rider_works_for

from .restaurant import Restaurant, MenuItem, Category, menu_item_category

from .order import Order, OrderItem, Payment, Delivery

__all__ = [
    "Base",
    "Person",
    "Customer",
    "Rider",
    "rider_works_for",
    "Restaurant",
    "MenuItem",
    "Category",
    "menu_item_category",
    "Order",
    "OrderItem",
    "Payment",
    "Delivery",
]
