# canvas.py
"""
Design Composition Engine.

Holds the shopper's in-progress design (`DesignState`): the selected product,
color, size and quantity plus an ordered list of text and shape elements.
From that state it derives the rendered mockup (Pillow), the price and the
JSON payload that is persisted as a saved design.
"""

import base64
import functools
import logging
import uuid
from decimal import Decimal
from io import BytesIO
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from teestudio.errors import InvalidSelection, ValidationError
from teestudio.settings import settings

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

# New elements are dropped at a fixed anchor; they are not repositionable.
DEFAULT_ANCHOR = (160.0, 200.0)
TEXT_BOX = (100.0, 30.0)
SHAPE_BOX = (60.0, 60.0)
SHAPE_KINDS = ("rectangle", "circle")

DEFAULT_INK = "#000000"
DEFAULT_FONT_SIZE = 24
MAX_FONT_SIZE = 512
DEFAULT_FONT_FAMILY = "Arial"

# Solid fill used when no mockup image is available for the selected color.
FILL_COLORS = {
    "white": "#ffffff",
    "black": "#000000",
    "navy": "#1e3a8a",
    "red": "#ef4444",
    "natural": "#f5f5dc",
}
DEFAULT_FILL = "#ffffff"

BORDER_COLOR = "#e5e7eb"
BORDER_WIDTH = 2

LABEL_BOX = (5, 5, 200, 25)  # x, y, width, height
LABEL_ORIGIN = (10, 22)
LABEL_BACKGROUND = (0, 0, 0, 178)  # black at 70% opacity
LABEL_FONT_SIZE = 12


# ===================================================================
# Data Model
# ===================================================================

class ProductSnapshot(BaseModel):
    """Read-only view of a catalog product, as embedded in a design payload."""
    id: int
    name: str
    description: str = ""
    base_price: Decimal
    category: str = ""
    colors: List[str] = Field(..., min_length=1)
    sizes: List[str] = Field(..., min_length=1)
    image_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, frozen=True)

    @field_validator("base_price")
    @classmethod
    def _two_places(cls, value: Decimal) -> Decimal:
        return Decimal(value).quantize(CENTS)


class DesignElement(BaseModel):
    """One text or shape annotation, center-anchored at (x, y)."""
    id: str = Field(..., min_length=1)
    type: Literal["text", "shape"]
    content: str
    x: float = Field(..., allow_inf_nan=False)
    y: float = Field(..., allow_inf_nan=False)
    width: float = Field(..., ge=0, allow_inf_nan=False)
    height: float = Field(..., ge=0, allow_inf_nan=False)
    color: str
    font_size: Optional[int] = Field(None, gt=0, le=MAX_FONT_SIZE)
    font_family: Optional[str] = Field(None, min_length=1)

    model_config = ConfigDict(frozen=True)

    @field_validator("color")
    @classmethod
    def _known_color(cls, value: str) -> str:
        ImageColor.getrgb(value)  # raises ValueError for unknown colors
        return value

    @model_validator(mode="before")
    @classmethod
    def _text_defaults(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("type") == "text":
            data = dict(data)
            if data.get("font_size") is None:
                data["font_size"] = DEFAULT_FONT_SIZE
            if data.get("font_family") is None:
                data["font_family"] = DEFAULT_FONT_FAMILY
        return data

    @model_validator(mode="after")
    def _known_shape(self) -> "DesignElement":
        if self.type == "shape" and self.content not in SHAPE_KINDS:
            raise ValueError(f"Unknown shape '{self.content}'")
        return self


def _new_element_id() -> str:
    return uuid.uuid4().hex


def _build_element(**fields: Any) -> DesignElement:
    try:
        return DesignElement(**fields)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid design element: {e.errors()[0]['msg']}") from e


# ===================================================================
# Rendering helpers
# ===================================================================

@functools.lru_cache(maxsize=64)
def load_font(family: str, size: int) -> ImageFont.FreeTypeFont:
    """
    Loads `<family>.ttf` at the given pixel size.

    Falls back to Pillow's bundled scalable font when the family is not
    installed on the host, so rendering never fails on a missing font.
    """
    try:
        return ImageFont.truetype(f"{family}.ttf", size)
    except OSError:
        return ImageFont.load_default(size=size)


def fill_color_for(color: Optional[str]) -> str:
    return FILL_COLORS.get(color or "", DEFAULT_FILL)


def fit_within(image_size: Tuple[int, int], surface_size: Tuple[int, int]) -> Tuple[int, int, int, int]:
    """
    Scales an image to fit the surface while keeping its aspect ratio.

    Returns (offset_x, offset_y, width, height); the image is centered along
    the axis it does not fill.
    """
    img_w, img_h = image_size
    surf_w, surf_h = surface_size
    image_ratio = img_w / img_h
    surface_ratio = surf_w / surf_h

    if image_ratio > surface_ratio:
        draw_w, draw_h = surf_w, surf_w / image_ratio
        return 0, round((surf_h - draw_h) / 2), surf_w, round(draw_h)
    draw_w, draw_h = surf_h * image_ratio, surf_h
    return round((surf_w - draw_w) / 2), 0, round(draw_w), surf_h


def _draw_element(draw: ImageDraw.ImageDraw, element: DesignElement) -> None:
    if element.type == "text":
        font = load_font(element.font_family, element.font_size)
        # "ms": horizontally centered, vertically on the baseline
        draw.text((element.x, element.y), element.content, fill=element.color, font=font, anchor="ms")
    elif element.content == "rectangle":
        left = element.x - element.width / 2
        top = element.y - element.height / 2
        draw.rectangle(
            [left, top, left + element.width - 1, top + element.height - 1],
            fill=element.color,
        )
    elif element.content == "circle":
        radius = element.width / 2
        draw.ellipse(
            [element.x - radius, element.y - radius, element.x + radius, element.y + radius],
            fill=element.color,
        )


# ===================================================================
# Design State
# ===================================================================

class DesignState:
    """
    The mutable design being edited in one studio session.

    Every operation either commits fully or raises and leaves the state as
    it was. Prices and renders are derived on every read.
    """

    def __init__(
        self,
        mockups: Optional[Mapping[str, Image.Image]] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        design_fee: Optional[Decimal] = None,
    ):
        self.product: Optional[ProductSnapshot] = None
        self.color: Optional[str] = None
        self.size: Optional[str] = None
        self.quantity: int = 1
        self._elements: List[DesignElement] = []
        self._mockups: Dict[str, Image.Image] = dict(mockups or {})
        self.width = width or settings.CANVAS_WIDTH
        self.height = height or settings.CANVAS_HEIGHT
        self.design_fee = Decimal(design_fee if design_fee is not None else settings.DESIGN_FEE).quantize(CENTS)
        self._saved_payload: Optional[Dict[str, Any]] = None

    @property
    def elements(self) -> Tuple[DesignElement, ...]:
        return tuple(self._elements)

    # --- Selection ---

    def select_product(self, product: ProductSnapshot) -> None:
        """Switches product and resets color/size to its defaults. Elements are kept."""
        self.product = product
        self.color = product.colors[0]
        self.size = product.sizes[0]

    def select_color(self, color: str) -> None:
        if self.product is None or color not in self.product.colors:
            raise InvalidSelection(f"Color '{color}' is not available for this product.")
        self.color = color

    def select_size(self, size: str) -> None:
        if self.product is None or size not in self.product.sizes:
            raise InvalidSelection(f"Size '{size}' is not available for this product.")
        self.size = size

    def set_quantity(self, n: Any) -> int:
        """Stores `n` clamped to >= 1; anything that is not a number counts as 1."""
        try:
            value = int(n)
        except (TypeError, ValueError, OverflowError):
            value = 1
        self.quantity = max(1, value)
        return self.quantity

    # --- Elements ---

    def add_text_element(
        self,
        text: Optional[str],
        color: str = DEFAULT_INK,
        font_size: int = DEFAULT_FONT_SIZE,
        font_family: str = DEFAULT_FONT_FAMILY,
    ) -> Optional[DesignElement]:
        if not text or not text.strip():
            return None
        element = _build_element(
            id=_new_element_id(),
            type="text",
            content=text,
            x=DEFAULT_ANCHOR[0],
            y=DEFAULT_ANCHOR[1],
            width=TEXT_BOX[0],
            height=TEXT_BOX[1],
            color=color,
            font_size=font_size,
            font_family=font_family,
        )
        self._elements.append(element)
        return element

    def add_shape_element(self, shape_kind: str, color: str = DEFAULT_INK) -> DesignElement:
        if shape_kind not in SHAPE_KINDS:
            raise InvalidSelection(f"Shape '{shape_kind}' is not supported.")
        element = _build_element(
            id=_new_element_id(),
            type="shape",
            content=shape_kind,
            x=DEFAULT_ANCHOR[0],
            y=DEFAULT_ANCHOR[1],
            width=SHAPE_BOX[0],
            height=SHAPE_BOX[1],
            color=color,
        )
        self._elements.append(element)
        return element

    def restore_element(self, element: DesignElement) -> None:
        """Appends a previously saved element verbatim, keeping its id and position."""
        if any(existing.id == element.id for existing in self._elements):
            raise ValidationError(f"Duplicate design element id '{element.id}'.")
        self._elements.append(element)

    def reset(self) -> None:
        """Discards every element. Selection and quantity are kept."""
        self._elements = []

    # --- Pricing ---

    @property
    def unit_price(self) -> Decimal:
        if self.product is None:
            return Decimal("0.00")
        fee = self.design_fee if self._elements else Decimal("0")
        return (self.product.base_price + fee).quantize(CENTS)

    @property
    def total_price(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(CENTS)

    # --- Rendering ---

    def new_surface(self) -> Image.Image:
        return Image.new("RGBA", (self.width, self.height), (0, 0, 0, 0))

    def render(self, surface: Image.Image) -> Image.Image:
        """
        Draws the full composition onto `surface` (an RGBA Pillow image).

        Order: clear, background (mockup or solid fill), border, elements in
        append order, product label. Nothing outside `surface` is touched.
        """
        if surface.mode != "RGBA":
            raise ValueError("Design surfaces must be RGBA images.")
        width, height = surface.size

        surface.paste((0, 0, 0, 0), (0, 0, width, height))

        mockup = self._mockups.get(self.color or "") if self.product is not None else None
        if mockup is not None:
            offset_x, offset_y, draw_w, draw_h = fit_within(mockup.size, surface.size)
            scaled = mockup.convert("RGBA").resize((draw_w, draw_h), Image.LANCZOS)
            surface.alpha_composite(scaled, dest=(offset_x, offset_y))
        else:
            surface.paste(ImageColor.getrgb(fill_color_for(self.color)) + (255,), (0, 0, width, height))

        draw = ImageDraw.Draw(surface)
        draw.rectangle([0, 0, width - 1, height - 1], outline=BORDER_COLOR, width=BORDER_WIDTH)

        for element in self._elements:
            _draw_element(draw, element)

        if self.product is not None:
            x, y, box_w, box_h = LABEL_BOX
            overlay = Image.new("RGBA", surface.size, (0, 0, 0, 0))
            ImageDraw.Draw(overlay).rectangle([x, y, x + box_w - 1, y + box_h - 1], fill=LABEL_BACKGROUND)
            surface.alpha_composite(overlay)
            ImageDraw.Draw(surface).text(
                LABEL_ORIGIN,
                self.label,
                fill="#ffffff",
                font=load_font(DEFAULT_FONT_FAMILY, LABEL_FONT_SIZE),
                anchor="ls",
            )
        return surface

    @property
    def label(self) -> str:
        if self.product is None:
            return ""
        return f"{self.product.name} - {(self.color or '').upper()}"

    def render_png(self) -> bytes:
        buffer = BytesIO()
        self.render(self.new_surface()).save(buffer, format="PNG")
        return buffer.getvalue()

    def thumbnail(self) -> str:
        """Renders the current state and returns it as a PNG data URI."""
        encoded = base64.b64encode(self.render_png()).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    # --- Persistence payload ---

    def to_payload(self) -> Dict[str, Any]:
        return {
            "product": self.product.model_dump(mode="json") if self.product else None,
            "elements": [element.model_dump(mode="json") for element in self._elements],
            "color": self.color,
            "size": self.size,
        }

    def mark_saved(self) -> None:
        self._saved_payload = self.to_payload()

    @property
    def has_unsaved_changes(self) -> bool:
        return self._saved_payload != self.to_payload()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], **kwargs: Any) -> "DesignState":
        """
        Rebuilds a state from a saved design payload.

        The result renders the same composition that was saved: same
        product, color, size and elements in the same order.
        """
        state = cls(**kwargs)
        try:
            state.select_product(ProductSnapshot.model_validate(payload["product"]))
            state.select_color(payload["color"])
            state.select_size(payload["size"])
            for raw in payload.get("elements") or []:
                state.restore_element(DesignElement.model_validate(raw))
        except (KeyError, TypeError, PydanticValidationError) as e:
            logger.warning(f"Rejected malformed design payload: {e}")
            raise ValidationError("Stored design payload is malformed.") from e
        state.mark_saved()
        return state
