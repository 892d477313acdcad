# stores.py
"""
SQL-backed collaborators of the design studio.

Each store wraps one `AsyncSession`. Database failures are logged and
surfaced as `Unavailable`; nothing here retries.
"""

import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from teestudio.canvas import ProductSnapshot
from teestudio.errors import Unavailable
from teestudio.models import CartItem, Design, Product

logger = logging.getLogger(__name__)


class CartLine(BaseModel):
    """A cart line as submitted by the studio; `unit_price` is captured, not recomputed."""
    product_id: int
    design_id: Optional[uuid.UUID] = None
    quantity: int = Field(1, ge=1)
    size: str
    color: str
    unit_price: Decimal


class SqlProductSource:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_products(self) -> List[ProductSnapshot]:
        try:
            result = await self.db.execute(select(Product).order_by(Product.id))
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.exception("Database error while listing products.")
            raise Unavailable("The product catalog is temporarily unavailable.") from e
        return [ProductSnapshot.model_validate(row) for row in rows]

    async def get_product(self, product_id: int) -> Optional[ProductSnapshot]:
        try:
            row = await self.db.get(Product, product_id)
        except SQLAlchemyError as e:
            logger.exception(f"Database error while loading product {product_id}.")
            raise Unavailable("The product catalog is temporarily unavailable.") from e
        return ProductSnapshot.model_validate(row) if row else None


class SqlDesignStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self, what: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception(f"Database error while {what}.")
            raise Unavailable("Could not save the design. Please try again later.") from e

    async def create_design(
        self, user_id: uuid.UUID, name: str, payload: Dict[str, Any], thumbnail: str
    ) -> Design:
        design = Design(user_id=user_id, name=name, design_data=payload, thumbnail=thumbnail)
        self.db.add(design)
        await self._commit("creating a design")
        await self.db.refresh(design)
        logger.info(f"Created design {design.id} for user {user_id}")
        return design

    async def update_design(
        self, design_id: uuid.UUID, user_id: uuid.UUID, name: str, payload: Dict[str, Any], thumbnail: str
    ) -> Optional[Design]:
        design = await self.get_design(design_id, user_id)
        if design is None:
            return None
        design.name = name
        design.design_data = payload
        design.thumbnail = thumbnail
        await self._commit(f"updating design {design_id}")
        await self.db.refresh(design)
        logger.info(f"Updated design {design_id} for user {user_id}")
        return design

    async def get_design(self, design_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Design]:
        try:
            result = await self.db.execute(
                select(Design).where(Design.id == design_id, Design.user_id == user_id)
            )
        except SQLAlchemyError as e:
            logger.exception(f"Database error while loading design {design_id}.")
            raise Unavailable("Designs are temporarily unavailable.") from e
        return result.scalars().first()

    async def list_designs(self, user_id: uuid.UUID) -> List[Design]:
        try:
            result = await self.db.execute(
                select(Design)
                .where(Design.user_id == user_id)
                .order_by(Design.created_at.desc())
            )
        except SQLAlchemyError as e:
            logger.exception("Database error while listing designs.")
            raise Unavailable("Designs are temporarily unavailable.") from e
        return list(result.scalars().all())

    async def delete_design(self, design_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Deletes the design if it exists; a missing id is not an error."""
        try:
            await self.db.execute(
                delete(Design).where(Design.id == design_id, Design.user_id == user_id)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception(f"Database error while deleting design {design_id}.")
            raise Unavailable("Could not delete the design. Please try again later.") from e
        await self._commit(f"deleting design {design_id}")


class SqlCartSink:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_cart_item(self, user_id: uuid.UUID, line: CartLine) -> CartItem:
        item = CartItem(
            user_id=user_id,
            product_id=line.product_id,
            design_id=line.design_id,
            quantity=line.quantity,
            size=line.size,
            color=line.color,
            custom_price=line.unit_price,
        )
        self.db.add(item)
        try:
            await self.db.commit()
            await self.db.refresh(item)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Database error while adding a cart item.")
            raise Unavailable("Could not add the item to your cart. Please try again later.") from e
        logger.info(f"Added product {line.product_id} (design {line.design_id}) x{line.quantity} to cart of {user_id}")
        return item
