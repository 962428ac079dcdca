"""
Ticket template scene document.

A template is a fixed-size canvas, a background, and an ordered list of
positioned elements. List order is z-order: later elements are drawn on top.
The same document drives the designer, the preview and the generated ticket
image, so these models are the single source of truth for all three.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CANVAS_WIDTH = 605  # 16cm at 96 DPI
DEFAULT_CANVAS_HEIGHT = 151  # 4cm at 96 DPI
MIN_ELEMENT_SIZE = 24


class ElementKind(str, Enum):
    TEXT = "text"
    QR_CODE = "qr-code"
    DATE = "date"
    USER_NAME = "user-name"
    EVENT_NAME = "event-name"
    STATUS = "status"
    BENEFITS = "benefits"
    REMAINING_DAYS = "remaining-days"
    PIN_CODE = "pin-code"
    LOGO = "logo"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"


# Kinds whose text is replaced by live ticket data at generation time
BOUND_TEXT_KINDS = frozenset({
    ElementKind.DATE,
    ElementKind.USER_NAME,
    ElementKind.EVENT_NAME,
    ElementKind.STATUS,
    ElementKind.BENEFITS,
    ElementKind.REMAINING_DAYS,
    ElementKind.PIN_CODE,
})
TEXT_KINDS = BOUND_TEXT_KINDS | {ElementKind.TEXT}
SHAPE_KINDS = frozenset({ElementKind.RECTANGLE, ElementKind.CIRCLE})


class TextAlign(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class FontWeight(str, Enum):
    NORMAL = "normal"
    BOLD = "bold"


class BackgroundType(str, Enum):
    SOLID = "solid"
    GRADIENT = "gradient"


class CanvasSize(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(DEFAULT_CANVAS_WIDTH, gt=0, le=4000)
    height: int = Field(DEFAULT_CANVAS_HEIGHT, gt=0, le=4000)


class Background(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: BackgroundType = BackgroundType.SOLID
    color: str = "#1e293b"
    gradient_start: str = "#4F46E5"
    gradient_end: str = "#7C3AED"
    gradient_angle: float = Field(135, ge=0, le=360)
    image_url: Optional[str] = None
    image_opacity: float = Field(100, ge=0, le=100)
    overlay_color: Optional[str] = None
    overlay_opacity: float = Field(0, ge=0, le=100)


class Element(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    id: str = Field(..., min_length=1, max_length=64)
    kind: ElementKind
    x: float = 0
    y: float = 0
    width: float = Field(200, gt=0)
    height: float = Field(40, gt=0)
    rotation: float = 0

    font_size: int = Field(16, gt=0, le=400)
    font_family: str = "Arial"
    color: str = "#FFFFFF"
    background_color: str = "transparent"
    border_radius: float = Field(0, ge=0)
    text_align: TextAlign = TextAlign.LEFT
    font_weight: FontWeight = FontWeight.NORMAL

    content: Optional[str] = None
    image_url: Optional[str] = None

    def box(self) -> tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.width, self.y + self.height


def clamp_geometry(
    x: float, y: float, width: float, height: float, canvas: CanvasSize
) -> tuple[float, float, float, float]:
    """Fit a box inside the canvas, enforcing the minimum element size."""
    width = min(max(width, MIN_ELEMENT_SIZE), canvas.width)
    height = min(max(height, MIN_ELEMENT_SIZE), canvas.height)
    x = max(0, min(x, canvas.width - width))
    y = max(0, min(y, canvas.height - height))
    return x, y, width, height


def clamp_element(element: Element, canvas: CanvasSize) -> Element:
    x, y, width, height = clamp_geometry(element.x, element.y, element.width, element.height, canvas)
    if (x, y, width, height) == (element.x, element.y, element.width, element.height):
        return element
    return element.model_copy(update={"x": x, "y": y, "width": width, "height": height})


class TemplateDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    canvas_size: CanvasSize = Field(default_factory=CanvasSize)
    background: Background = Field(default_factory=Background)
    elements: tuple[Element, ...] = ()

    @field_validator("elements")
    @classmethod
    def unique_ids(cls, elements):
        ids = [e.id for e in elements]
        if len(ids) != len(set(ids)):
            raise ValueError("element ids must be unique within a template")
        return elements

    def element(self, element_id: str) -> Optional[Element]:
        for element in self.elements:
            if element.id == element_id:
                return element
        return None


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=100)
    is_public: bool = True
    document: TemplateDocument


class TemplateResponse(BaseModel):
    id: str
    creator_id: str
    name: str
    category: str
    is_public: bool
    document: TemplateDocument
    created_at: datetime


class TemplateFilter(BaseModel):
    category: Optional[str] = None
    creator_id: Optional[str] = None
    include_public: bool = True


class PresetSummary(BaseModel):
    id: str
    name: str
    category: str
    document: TemplateDocument
