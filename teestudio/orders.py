# orders.py
import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from teestudio.auth import get_current_user
from teestudio.cart import load_cart
from teestudio.db import get_db
from teestudio.errors import Unavailable
from teestudio.models import CartItem, Order, OrderItem, User

# --- Configuration & Setup ---
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/orders", tags=["Orders"])


# --- Pydantic Schemas for Data Validation ---

class PlaceOrderIn(BaseModel):
    shipping_address: str = Field(..., min_length=5, max_length=1000)

class OrderItemOut(BaseModel):
    id: uuid.UUID
    product_id: Optional[int]
    design_id: Optional[uuid.UUID]
    quantity: int
    size: str
    color: str
    price: Decimal
    custom_price: Optional[Decimal]

    model_config = ConfigDict(from_attributes=True)

class OrderOut(BaseModel):
    id: uuid.UUID
    status: str
    total_amount: Decimal
    shipping_address: str
    created_at: Optional[datetime]
    items: List[OrderItemOut]

    model_config = ConfigDict(from_attributes=True)


def line_price(item) -> Decimal:
    """What one unit of an order line costs: the captured custom price, else the base price."""
    return item.custom_price if item.custom_price is not None else item.price


async def _get_order(db: AsyncSession, order_id: uuid.UUID) -> Order:
    query = (
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items))
        .execution_options(populate_existing=True)  # pick up server defaults after commit
    )
    result = await db.execute(query)
    return result.scalars().one()


# --- Order Creation Endpoint ---

@router.post("/", response_model=OrderOut, status_code=status.HTTP_201_CREATED)
async def place_order(
    payload: PlaceOrderIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Turns the current cart into a 'pending' order.
    1. Copies every cart line into an OrderItem, keeping its captured price.
    2. Totals the order from those prices.
    3. Empties the cart in the same transaction.
    """
    cart = await load_cart(db, current_user.id)
    if not cart:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Your cart is empty.")

    new_order = Order(
        id=uuid.uuid4(),
        user_id=current_user.id,
        status="pending",
        shipping_address=payload.shipping_address,
        total_amount=Decimal("0.00"),  # Will be updated after calculation
    )
    total_amount = Decimal("0.00")
    order_items = []
    for line in cart:
        item = OrderItem(
            order_id=new_order.id,
            product_id=line.product_id,
            design_id=line.design_id,
            quantity=line.quantity,
            size=line.size,
            color=line.color,
            price=line.product.base_price,
            custom_price=line.custom_price,
        )
        total_amount += line_price(item) * item.quantity
        order_items.append(item)

    new_order.total_amount = total_amount
    db.add(new_order)
    db.add_all(order_items)
    await db.execute(delete(CartItem).where(CartItem.user_id == current_user.id))

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(f"Database error while placing an order for user {current_user.id}.")
        raise Unavailable("Could not place the order. Please try again later.") from e

    logger.info(f"Order {new_order.id} placed by {current_user.id}: {len(order_items)} lines, total {total_amount}")
    return await _get_order(db, new_order.id)


# --- Order History Endpoint ---

@router.get("/", response_model=List[OrderOut])
async def get_my_orders(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Retrieves all orders for the currently logged-in user, newest first."""
    query = (
        select(Order)
        .where(Order.user_id == current_user.id)
        .options(selectinload(Order.items))  # Eager load items to avoid extra queries
        .order_by(Order.created_at.desc())
    )
    result = await db.execute(query)
    return result.scalars().unique().all()
