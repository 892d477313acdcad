# studio.py
"""
Design studio: save and add-to-cart orchestration, and the `/studio` API.

A `DesignSession` pairs one `DesignState` with the persistence collaborators
and remembers the id of the design it saved, so a later save (explicit, or
implicit through add-to-cart) updates that design instead of creating a
second one.

The HTTP endpoints are stateless: the client sends the whole composition
(product, color, size, quantity, elements and, once saved, the design id)
with every request and the server rebuilds the state through the engine's
own operations before pricing, rendering or saving it.
"""

import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Literal, Mapping, Optional, Protocol

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response
from PIL import Image
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from teestudio.auth import get_optional_user
from teestudio.canvas import DEFAULT_FONT_FAMILY, DEFAULT_FONT_SIZE, DEFAULT_INK, DesignElement, DesignState
from teestudio.db import get_db
from teestudio.errors import NotAuthenticated, ValidationError
from teestudio.models import CartItem, Design, User
from teestudio.stores import CartLine, SqlCartSink, SqlDesignStore, SqlProductSource

# --- Module-level Configuration ---
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/studio", tags=["Studio"])


# ===================================================================
# Collaborator Contracts
# ===================================================================

class DesignStore(Protocol):
    async def create_design(self, user_id: uuid.UUID, name: str, payload: Dict[str, Any], thumbnail: str) -> Design: ...

    async def update_design(
        self, design_id: uuid.UUID, user_id: uuid.UUID, name: str, payload: Dict[str, Any], thumbnail: str
    ) -> Optional[Design]: ...


class CartSink(Protocol):
    async def add_cart_item(self, user_id: uuid.UUID, line: CartLine) -> CartItem: ...


# ===================================================================
# Design Session
# ===================================================================

class DesignSession:
    """One shopper editing one design."""

    def __init__(
        self,
        state: DesignState,
        user: Optional[User],
        designs: DesignStore,
        cart: CartSink,
        design_id: Optional[uuid.UUID] = None,
    ):
        self.state = state
        self.user = user
        self.designs = designs
        self.cart = cart
        self.design_id = design_id

    def _require_user(self, action: str) -> User:
        if self.user is None:
            raise NotAuthenticated(f"Please log in to {action}.")
        return self.user

    async def save(self, name: Optional[str] = None) -> uuid.UUID:
        """
        Persists the design and returns its id.

        The first save creates the design; later saves update it in place.
        Raises NotAuthenticated, ValidationError or Unavailable, leaving the
        session untouched in every case.
        """
        user = self._require_user("save designs")
        state = self.state
        if state.product is None or not state.elements:
            raise ValidationError("Please select a product and add some design elements.")

        name = name or f"{state.product.name} Design"
        payload = state.to_payload()
        thumbnail = state.thumbnail()

        design = None
        if self.design_id is not None:
            design = await self.designs.update_design(self.design_id, user.id, name, payload, thumbnail)
            if design is None:
                logger.warning(f"Design {self.design_id} no longer exists; saving as a new design.")
        if design is None:
            design = await self.designs.create_design(user.id, name, payload, thumbnail)

        self.design_id = design.id
        state.mark_saved()
        return design.id

    async def add_to_cart(self) -> CartItem:
        """
        Adds the current composition to the cart at the current unit price.

        A design with elements is saved first unless this session already
        saved it, so every custom cart line points at a stored design.
        """
        user = self._require_user("add items to cart")
        state = self.state
        if state.product is None:
            raise ValidationError("Please select a product first.")

        design_id = None
        if state.elements:
            design_id = self.design_id if self.design_id is not None else await self.save()

        line = CartLine(
            product_id=state.product.id,
            design_id=design_id,
            quantity=state.quantity,
            size=state.size,
            color=state.color,
            unit_price=state.unit_price,
        )
        return await self.cart.add_cart_item(user.id, line)


# ===================================================================
# Pydantic Schemas for API Contracts
# ===================================================================

class ElementIn(BaseModel):
    """
    A design element in a studio request.

    Elements with an `id` were returned by an earlier save and are restored
    as-is. Elements without one are new and go through the engine's add
    operations, which place them at the default anchor.
    """
    id: Optional[str] = None
    type: Literal["text", "shape"]
    content: str = ""
    color: str = DEFAULT_INK
    font_size: Optional[int] = None
    font_family: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None


class StudioRequest(BaseModel):
    product_id: int = Field(..., gt=0, example=1)
    color: Optional[str] = Field(None, example="black")
    size: Optional[str] = Field(None, example="M")
    quantity: Any = 1
    elements: List[ElementIn] = Field(default_factory=list)
    design_id: Optional[uuid.UUID] = None
    name: Optional[str] = Field(None, max_length=255)


class QuoteResponse(BaseModel):
    base_price: Decimal
    design_fee: Decimal
    unit_price: Decimal
    quantity: int
    total_price: Decimal
    element_count: int


class SaveResponse(BaseModel):
    design_id: uuid.UUID
    created: bool


class CartItemOut(BaseModel):
    id: uuid.UUID
    product_id: int
    design_id: Optional[uuid.UUID]
    quantity: int
    size: str
    color: str
    custom_price: Decimal

    model_config = ConfigDict(from_attributes=True)


# ===================================================================
# Request -> State
# ===================================================================

def get_mockups(request: Request) -> Mapping[str, Image.Image]:
    """The mockup images loaded at startup, or none when they were never loaded."""
    return getattr(request.app.state, "mockups", None) or {}


async def build_state(req: StudioRequest, db: AsyncSession, mockups: Mapping[str, Image.Image]) -> DesignState:
    product = await SqlProductSource(db).get_product(req.product_id)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")

    state = DesignState(mockups=mockups)
    state.select_product(product)
    if req.color is not None:
        state.select_color(req.color)
    if req.size is not None:
        state.select_size(req.size)
    state.set_quantity(req.quantity)

    for element in req.elements:
        if element.id:
            state.restore_element(_restore(element))
        elif element.type == "text":
            state.add_text_element(
                element.content,
                color=element.color,
                font_size=element.font_size or DEFAULT_FONT_SIZE,
                font_family=element.font_family or DEFAULT_FONT_FAMILY,
            )
        else:
            state.add_shape_element(element.content, color=element.color)
    return state


def _restore(element: ElementIn) -> DesignElement:
    fields = element.model_dump(exclude_none=True)
    try:
        return DesignElement.model_validate(fields)
    except ValueError as e:  # pydantic's ValidationError is a ValueError
        raise ValidationError(f"Invalid design element '{element.id}'.") from e


# ===================================================================
# API Endpoints
# ===================================================================

@router.post("/quote", response_model=QuoteResponse, summary="Price a composition")
async def quote(
    req: StudioRequest,
    db: AsyncSession = Depends(get_db),
    mockups: Mapping[str, Image.Image] = Depends(get_mockups),
):
    state = await build_state(req, db, mockups)
    return QuoteResponse(
        base_price=state.product.base_price,
        design_fee=state.design_fee if state.elements else Decimal("0.00"),
        unit_price=state.unit_price,
        quantity=state.quantity,
        total_price=state.total_price,
        element_count=len(state.elements),
    )


@router.post(
    "/preview",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
    summary="Render a composition as PNG",
)
async def preview(
    req: StudioRequest,
    db: AsyncSession = Depends(get_db),
    mockups: Mapping[str, Image.Image] = Depends(get_mockups),
):
    state = await build_state(req, db, mockups)
    return Response(content=state.render_png(), media_type="image/png")


@router.post("/save", response_model=SaveResponse, summary="Save a composition as a design")
async def save(
    req: StudioRequest,
    db: AsyncSession = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
    mockups: Mapping[str, Image.Image] = Depends(get_mockups),
):
    """
    Saves the composition. Send back the returned `design_id` on later saves
    to update the same design instead of creating another one.
    """
    state = await build_state(req, db, mockups)
    session = DesignSession(state, user, SqlDesignStore(db), SqlCartSink(db), design_id=req.design_id)
    design_id = await session.save(req.name)
    return SaveResponse(design_id=design_id, created=design_id != req.design_id)


@router.post(
    "/cart",
    response_model=CartItemOut,
    status_code=status.HTTP_201_CREATED,
    summary="Add a composition to the cart",
)
async def add_to_cart(
    req: StudioRequest,
    db: AsyncSession = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
    mockups: Mapping[str, Image.Image] = Depends(get_mockups),
):
    """
    Adds the composition to the cart. An already-saved design (`design_id`)
    is re-saved first so the cart line points at exactly what was priced.
    """
    state = await build_state(req, db, mockups)
    session = DesignSession(state, user, SqlDesignStore(db), SqlCartSink(db), design_id=req.design_id)
    if req.design_id is not None and state.elements:
        await session.save(req.name)
    return await session.add_to_cart()
