"""
People Models: Person, Customer, Rider.

Customer and Rider are IS-A specializations of Person and share its primary key.
Deleting a person cascades to both role rows.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Column, ForeignKey, Integer, Numeric, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .restaurant import Restaurant


# Rider works for Restaurant (M:N)
rider_works_for = Table(
    "rider_works_for",
    Base.metadata,
    Column(
        "rider_id",
        Integer,
        ForeignKey("rider.rider_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "restaurant_id",
        Integer,
        ForeignKey("restaurant.restaurant_id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Person(Base):
    """Base entity for customers and riders. Email is the natural key."""

    __tablename__ = "person"

    person_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    phone: Mapped[Optional[str]] = mapped_column(String(40))

    customer: Mapped[Optional["Customer"]] = relationship(
        back_populates="person", uselist=False, cascade="all, delete-orphan", passive_deletes=True
    )
    rider: Mapped[Optional["Rider"]] = relationship(
        back_populates="person", uselist=False, cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Person(id={self.person_id}, email='{self.email}')>"


class Customer(Base):
    """Person who places orders."""

    __tablename__ = "customer"

    customer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("person.person_id", ondelete="CASCADE"), primary_key=True
    )
    default_address: Mapped[Optional[str]] = mapped_column(String(255))
    preferred_payment_method: Mapped[Optional[str]] = mapped_column(String(50))

    person: Mapped["Person"] = relationship(back_populates="customer")


class Rider(Base):
    """Person who delivers orders."""

    __tablename__ = "rider"

    rider_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("person.person_id", ondelete="CASCADE"), primary_key=True
    )
    vehicle_type: Mapped[str] = mapped_column(String(30), nullable=False)
    rating: Mapped[Optional[Decimal]] = mapped_column(Numeric(2, 1))

    person: Mapped["Person"] = relationship(back_populates="rider")
    restaurants: Mapped[list["Restaurant"]] = relationship(
        secondary=rider_works_for, back_populates="riders"
    )
