# designs.py
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from PIL import Image
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from teestudio.auth import get_current_user
from teestudio.canvas import DesignState
from teestudio.db import get_db
from teestudio.models import User
from teestudio.stores import SqlCartSink, SqlDesignStore
from teestudio.studio import CartItemOut, DesignSession, get_mockups

# --- Module-level Configuration ---
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/designs", tags=["Designs"])


# ===================================================================
# Pydantic Schemas for API Contracts
# ===================================================================

class SavedDesignOut(BaseModel):
    """Standard response model for a saved design."""
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    design_data: Dict[str, Any]
    thumbnail: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


async def _load_design(design_id: uuid.UUID, db: AsyncSession, user: User):
    design = await SqlDesignStore(db).get_design(design_id, user.id)
    if design is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Design not found")
    return design


# ===================================================================
# API Endpoints
# ===================================================================

@router.get("/", response_model=List[SavedDesignOut], summary="List user's designs")
async def list_user_designs(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Lists the current user's designs, newest first."""
    return await SqlDesignStore(db).list_designs(current_user.id)


@router.get("/{design_id}", response_model=SavedDesignOut, summary="Get a saved design")
async def get_design(
    design_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await _load_design(design_id, db, current_user)


@router.get(
    "/{design_id}/preview",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
    summary="Re-render a saved design",
)
async def preview_design(
    design_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    mockups: Mapping[str, Image.Image] = Depends(get_mockups),
):
    """Rebuilds the design from its stored payload and renders it fresh."""
    design = await _load_design(design_id, db, current_user)
    state = DesignState.from_payload(design.design_data, mockups=mockups)
    return Response(content=state.render_png(), media_type="image/png")


@router.delete("/{design_id}", summary="Delete a saved design")
async def delete_design(
    design_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Deletes the design. Deleting a design that does not exist also succeeds."""
    await SqlDesignStore(db).delete_design(design_id, current_user.id)
    return {"success": True}


@router.post(
    "/{design_id}/cart",
    response_model=CartItemOut,
    status_code=status.HTTP_201_CREATED,
    summary="Add a saved design to the cart",
)
async def add_design_to_cart(
    design_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Adds one unit of a saved design in its saved color and size. The price
    is the product's base price plus the design fee, as stored in the
    design's product snapshot.
    """
    design = await _load_design(design_id, db, current_user)
    state = DesignState.from_payload(design.design_data)
    session = DesignSession(
        state, current_user, SqlDesignStore(db), SqlCartSink(db), design_id=design.id
    )
    return await session.add_to_cart()
