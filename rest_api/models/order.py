"""
Order Models: Order, OrderItem, Payment, Delivery.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .person import Customer, Rider
    from .restaurant import MenuItem, Restaurant


class Order(Base):
    """
    An order placed by a customer at a restaurant.

    total_amount is computed once from the order items when the order is
    created and is never recomputed, even if menu prices change later.
    Status: created, preparing, ready, completed.
    """

    __tablename__ = "order"

    order_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("customer.customer_id"), nullable=False, index=True
    )
    restaurant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("restaurant.restaurant_id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(String(40), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    customer: Mapped["Customer"] = relationship()
    restaurant: Mapped["Restaurant"] = relationship()
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderItem.order_item_id",
    )
    payment: Mapped[Optional["Payment"]] = relationship(
        back_populates="order", uselist=False, cascade="all, delete-orphan", passive_deletes=True
    )
    delivery: Mapped[Optional["Delivery"]] = relationship(
        back_populates="order", uselist=False, cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        # Customer report: restaurant + date range
        Index("ix_order_restaurant_created", "restaurant_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Order(id={self.order_id}, status='{self.status}', total={self.total_amount})>"


class OrderItem(Base):
    """
    A single line of an order (weak entity, dies with its order).
    Stores the price at the time of order for historical accuracy.
    """

    __tablename__ = "order_item"

    order_item_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("order.order_id", ondelete="CASCADE"), nullable=False, index=True
    )
    menu_item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("menu_item.menu_item_id"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint("unit_price >= 0", name="unit_price_non_negative"),
    )

    order: Mapped["Order"] = relationship(back_populates="items")
    menu_item: Mapped["MenuItem"] = relationship()


class Payment(Base):
    """Payment of an order (1:1). paid_at is set at most once."""

    __tablename__ = "payment"

    payment_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("order.order_id", ondelete="CASCADE"), nullable=False, unique=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    order: Mapped["Order"] = relationship(back_populates="payment")


class Delivery(Base):
    """
    Delivery of an order (1:1).

    rider_id stays NULL until a rider is assigned; assigned_at is set on the
    first assignment and never overwritten.
    Status: created, assigned, picked_up, delivered.
    """

    __tablename__ = "delivery"

    delivery_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("order.order_id", ondelete="CASCADE"), nullable=False, unique=True
    )
    rider_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("rider.rider_id"))
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    delivery_status: Mapped[str] = mapped_column(String(40), nullable=False)

    order: Mapped["Order"] = relationship(back_populates="delivery")
    rider: Mapped[Optional["Rider"]] = relationship()

    __table_args__ = (
        # Rider report: rider + status
        Index("ix_delivery_rider_status", "rider_id", "delivery_status"),
    )
