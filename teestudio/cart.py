# cart.py
import logging
import uuid
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from teestudio.auth import get_current_user
from teestudio.db import get_db
from teestudio.models import CartItem, User

# --- Configuration & Setup ---
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/cart", tags=["Cart"])


# --- Pydantic Schemas for Data Validation ---

class CartLineOut(BaseModel):
    id: uuid.UUID
    product_id: int
    product_name: str
    design_id: Optional[uuid.UUID]
    quantity: int
    size: str
    color: str
    custom_price: Decimal
    line_total: Decimal

    @classmethod
    def from_item(cls, item: CartItem) -> "CartLineOut":
        return cls(
            id=item.id,
            product_id=item.product_id,
            product_name=item.product.name,
            design_id=item.design_id,
            quantity=item.quantity,
            size=item.size,
            color=item.color,
            custom_price=item.custom_price,
            line_total=item.custom_price * item.quantity,
        )

class CartOut(BaseModel):
    items: List[CartLineOut]
    subtotal: Decimal

class QuantityUpdate(BaseModel):
    quantity: int


# --- Helpers ---

async def load_cart(db: AsyncSession, user_id: uuid.UUID) -> List[CartItem]:
    """The user's cart lines, oldest first, with their products loaded."""
    query = (
        select(CartItem)
        .where(CartItem.user_id == user_id)
        .options(selectinload(CartItem.product))
        .order_by(CartItem.created_at)
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def _cart_response(db: AsyncSession, user_id: uuid.UUID) -> CartOut:
    lines = [CartLineOut.from_item(item) for item in await load_cart(db, user_id)]
    return CartOut(items=lines, subtotal=sum((line.line_total for line in lines), Decimal("0.00")))


# --- API Endpoints ---

@router.get("/", response_model=CartOut, summary="Show the current user's cart")
async def get_cart(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await _cart_response(db, current_user.id)


@router.patch("/{item_id}", response_model=CartOut, summary="Change a cart line's quantity")
async def update_quantity(
    item_id: uuid.UUID,
    payload: QuantityUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Sets the quantity, clamped to at least 1. The captured price is kept."""
    item = await db.get(CartItem, item_id)
    if not item or item.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart item not found")
    item.quantity = max(1, payload.quantity)
    await db.commit()
    return await _cart_response(db, current_user.id)


@router.delete("/{item_id}", response_model=CartOut, summary="Remove a cart line")
async def remove_item(
    item_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await db.execute(
        delete(CartItem).where(CartItem.id == item_id, CartItem.user_id == current_user.id)
    )
    await db.commit()
    return await _cart_response(db, current_user.id)


@router.delete("/", response_model=CartOut, summary="Empty the cart")
async def clear_cart(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await db.execute(delete(CartItem).where(CartItem.user_id == current_user.id))
    await db.commit()
    logger.info(f"Cleared cart of user {current_user.id}")
    return await _cart_response(db, current_user.id)
