"""
Catalog Models: Restaurant, MenuItem, Category.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Numeric, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from .person import rider_works_for

if TYPE_CHECKING:
    from .person import Rider


# Categories (M:N) for MenuItem
menu_item_category = Table(
    "menu_item_category",
    Base.metadata,
    Column(
        "menu_item_id",
        Integer,
        ForeignKey("menu_item.menu_item_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "category_id",
        Integer,
        ForeignKey("category.category_id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Restaurant(Base):
    """Restaurant; the name is the natural key used by the API."""

    __tablename__ = "restaurant"

    restaurant_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    address: Mapped[str] = mapped_column(String(255), nullable=False)

    menu_items: Mapped[list["MenuItem"]] = relationship(
        back_populates="restaurant", cascade="all, delete-orphan", passive_deletes=True
    )
    riders: Mapped[list["Rider"]] = relationship(
        secondary=rider_works_for, back_populates="restaurants"
    )

    def __repr__(self) -> str:
        return f"<Restaurant(id={self.restaurant_id}, name='{self.name}')>"


class MenuItem(Base):
    """Dish offered by a restaurant. Orders copy its price at order time."""

    __tablename__ = "menu_item"

    menu_item_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    restaurant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("restaurant.restaurant_id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255))
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    __table_args__ = (
        CheckConstraint("price >= 0", name="price_non_negative"),
    )

    restaurant: Mapped["Restaurant"] = relationship(back_populates="menu_items")
    categories: Mapped[list["Category"]] = relationship(
        secondary=menu_item_category, back_populates="menu_items"
    )


class Category(Base):
    __tablename__ = "category"

    category_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)

    menu_items: Mapped[list["MenuItem"]] = relationship(
        secondary=menu_item_category, back_populates="categories"
    )
