# products.py
import logging
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from teestudio.canvas import ProductSnapshot
from teestudio.db import get_db
from teestudio.models import Product
from teestudio.stores import SqlProductSource

# --- Configuration & Setup ---
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/products", tags=["Products"])

APPAREL_COLORS = ["white", "black", "navy", "red", "natural"]
APPAREL_SIZES = ["S", "M", "L", "XL", "XXL"]


# --- Default Catalog ---
# Seeded into an empty products table on startup so a fresh install has
# something to design on.
DEFAULT_CATALOG: List[dict] = [
    dict(
        name="Classic T-Shirt",
        description="Soft ringspun cotton tee with a relaxed fit.",
        base_price=Decimal("19.99"),
        category="t-shirts",
        colors=APPAREL_COLORS,
        sizes=APPAREL_SIZES,
    ),
    dict(
        name="Premium V-Neck",
        description="Lightweight tri-blend v-neck.",
        base_price=Decimal("24.99"),
        category="t-shirts",
        colors=["white", "black", "navy"],
        sizes=["S", "M", "L", "XL"],
    ),
    dict(
        name="Pullover Hoodie",
        description="Midweight fleece hoodie with a front pouch pocket.",
        base_price=Decimal("39.99"),
        category="hoodies",
        colors=["black", "navy", "natural"],
        sizes=APPAREL_SIZES,
    ),
    dict(
        name="Canvas Tote",
        description="Heavy natural canvas tote bag.",
        base_price=Decimal("14.99"),
        category="accessories",
        colors=["natural", "black"],
        sizes=["One Size"],
    ),
]


async def seed_catalog(db: AsyncSession) -> int:
    """Inserts the default catalog when the products table is empty. Returns rows added."""
    count = (await db.execute(select(func.count(Product.id)))).scalar_one()
    if count:
        return 0
    db.add_all(Product(**entry) for entry in DEFAULT_CATALOG)
    await db.commit()
    logger.info(f"✅ Seeded {len(DEFAULT_CATALOG)} default products.")
    return len(DEFAULT_CATALOG)


# --- API Endpoints ---

@router.get("/", response_model=List[ProductSnapshot], summary="List all available products")
async def list_products(db: AsyncSession = Depends(get_db)):
    """Lists the catalog in insertion order. A database outage surfaces as 503."""
    return await SqlProductSource(db).list_products()


@router.get("/{product_id}", response_model=ProductSnapshot, summary="Get a single product")
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    product = await SqlProductSource(db).get_product(product_id)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product
