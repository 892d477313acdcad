"""
Database models for TeeStudio.

This file defines all SQLAlchemy models used by the application,
providing a single source of truth for the database schema.
"""

import uuid

from sqlalchemy import (
    JSON, CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, func
)
from sqlalchemy import Uuid as SA_UUID
from sqlalchemy.orm import relationship

from teestudio.db import Base

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")


# -----------------------
# Models
# -----------------------
class User(Base):
    __tablename__ = "users"
    id = Column(SA_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(320), unique=True, nullable=False, index=True)
    username = Column(String(150), nullable=False)
    first_name = Column(String(150), nullable=True)
    last_name = Column(String(150), nullable=True)
    hashed_password = Column(String(512), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    designs = relationship("Design", back_populates="user", cascade="all, delete-orphan")
    cart_items = relationship("CartItem", back_populates="user", cascade="all, delete-orphan")
    orders = relationship("Order", back_populates="user", cascade="all, delete-orphan")


class Product(Base):
    __tablename__ = "products"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    base_price = Column(Numeric(10, 2), nullable=False, default=0)
    category = Column(String(50), nullable=False)
    colors = Column(JSON, nullable=False)  # ordered, first entry is the default
    sizes = Column(JSON, nullable=False)
    image_url = Column(String(1024), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Design(Base):
    __tablename__ = "designs"
    id = Column(SA_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(SA_UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    design_data = Column(JSON, nullable=False)  # {"product", "elements", "color", "size"}
    thumbnail = Column(Text, nullable=True)  # PNG data URI
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="designs")


class CartItem(Base):
    __tablename__ = "cart_items"
    id = Column(SA_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(SA_UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    # Null for an unmodified stock product
    design_id = Column(SA_UUID(as_uuid=True), ForeignKey("designs.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    size = Column(String(16), nullable=False)
    color = Column(String(64), nullable=False)
    custom_price = Column(Numeric(10, 2), nullable=False)  # unit price captured when added
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="cart_items")
    product = relationship("Product")


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint(f"status IN ({', '.join(repr(s) for s in ORDER_STATUSES)})", name="ck_orders_status"),
    )
    id = Column(SA_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(SA_UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(32), nullable=False, default="pending", index=True)
    total_amount = Column(Numeric(10, 2), nullable=False)
    shipping_address = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(SA_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(SA_UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True)
    design_id = Column(SA_UUID(as_uuid=True), ForeignKey("designs.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, nullable=False)
    size = Column(String(16), nullable=False)
    color = Column(String(64), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)  # product base price at order time
    custom_price = Column(Numeric(10, 2), nullable=True)

    order = relationship("Order", back_populates="items")
