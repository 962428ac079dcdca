"""
Ticket template renderer.

Turns a TemplateDocument (plus, for real tickets, the ticket's live data)
into a raster image with Pillow.

Draw order:
  1. background colour or two-stop linear gradient (CSS angle semantics)
  2. background image scaled to cover the canvas, at its opacity
  3. tint overlay
  4. elements in list order, later ones on top

Element boxes are first fitted inside the canvas, as the designer does on
every edit. Each is painted on its own box-sized layer, which clips
overflow, then rotated about the box centre and composited onto the canvas.

The output depends only on its inputs. The one clock-dependent field,
remaining-days, reads `TicketBindings.now` when given.

PREVIEW mode may draw a placeholder QR pattern. FINAL mode, used for the
artifact handed to an attendee, always draws a real, decodable QR symbol
of the ticket's payload and refuses to render without one.
"""

import base64
import hashlib
import io
import math
import time
import urllib.parse
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import Callable, Optional

import qrcode
from PIL import Image, ImageColor, ImageDraw, ImageFont, ImageOps

from eventpass.core.clock import as_utc, utcnow
from eventpass.core.config import get_settings
from eventpass.core.logging import get_logger
from eventpass.core.metrics import render_latency
from eventpass.schemas.template import (
    Background,
    BackgroundType,
    Element,
    ElementKind,
    FontWeight,
    TemplateDocument,
    TextAlign,
    clamp_element,
)

logger = get_logger(__name__)

TEXT_PADDING = 4
QR_PADDING = 6
TRANSPARENT = (0, 0, 0, 0)

AssetLoader = Callable[[str], Optional[bytes]]


class RenderMode(str, Enum):
    PREVIEW = "preview"
    FINAL = "final"


class RenderError(ValueError):
    pass


@dataclass(frozen=True)
class TicketBindings:
    """Live ticket data substituted into the semantic element kinds."""

    event_title: str
    holder_name: str
    status: str
    benefits_used: int
    benefits_total: int
    pin_code: str
    qr_payload: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    now: Optional[datetime] = None


STATUS_LABELS = {"valid": "VALID", "used": "USED", "inactive": "INACTIVE"}

# Shown by the designer and preview when there is no ticket to bind
PLACEHOLDER_TEXT = {
    ElementKind.TEXT: "Sample Text",
    ElementKind.EVENT_NAME: "EVENT NAME",
    ElementKind.USER_NAME: "USER NAME",
    ElementKind.DATE: "25 DEC - 27 DEC 2025",
    ElementKind.STATUS: "VALID",
    ElementKind.BENEFITS: "2/7 Used",
    ElementKind.REMAINING_DAYS: "6 Days",
    ElementKind.PIN_CODE: "123456",
}


def bindings_for_ticket(ticket, event, now: Optional[datetime] = None) -> TicketBindings:
    return TicketBindings(
        event_title=event.title,
        holder_name=ticket.holder_name,
        status=STATUS_LABELS[ticket.status],
        benefits_used=ticket.total_benefits_used,
        benefits_total=len(ticket.selected_benefits or []),
        pin_code=ticket.pin_code,
        qr_payload=ticket.qr_payload,
        start_date=as_utc(event.start_date),
        end_date=as_utc(event.end_date),
        now=now,
    )


def remaining_days(end: datetime, now: datetime) -> int:
    seconds = (as_utc(end) - as_utc(now)).total_seconds()
    return max(0, math.ceil(seconds / 86400))


def format_date_range(start: datetime, end: Optional[datetime]) -> str:
    if end is None or end.date() == start.date():
        return start.strftime("%d %b %Y").upper()
    if end.year == start.year:
        return f"{start.strftime('%d %b')} - {end.strftime('%d %b %Y')}".upper()
    return f"{start.strftime('%d %b %Y')} - {end.strftime('%d %b %Y')}".upper()


def element_text(element: Element, bindings: Optional[TicketBindings]) -> str:
    kind = element.kind
    if bindings is None or kind == ElementKind.TEXT:
        if element.content is not None:
            return element.content
        return PLACEHOLDER_TEXT.get(kind, "")

    if kind == ElementKind.EVENT_NAME:
        return bindings.event_title
    if kind == ElementKind.USER_NAME:
        return bindings.holder_name
    if kind == ElementKind.STATUS:
        return bindings.status
    if kind == ElementKind.BENEFITS:
        return f"{bindings.benefits_used}/{bindings.benefits_total} Used"
    if kind == ElementKind.PIN_CODE:
        return bindings.pin_code
    if kind == ElementKind.DATE:
        if bindings.start_date is None:
            return ""
        return format_date_range(bindings.start_date, bindings.end_date)
    if kind == ElementKind.REMAINING_DAYS:
        end = bindings.end_date or bindings.start_date
        if end is None:
            return ""
        return f"{remaining_days(end, bindings.now or utcnow())} Days"
    raise RenderError(f"{kind.value} elements do not carry text")


def parse_color(value: Optional[str]) -> Optional[tuple[int, int, int, int]]:
    """CSS-ish colour to RGBA. 'transparent', empty and unparseable give None."""
    if not value or value.strip().lower() == "transparent":
        return None
    try:
        return ImageColor.getcolor(value.strip(), "RGBA")
    except ValueError:
        logger.warning("unparseable_color", color=value)
        return None


def font_file_stem(family: str) -> str:
    return "".join(ch for ch in family if ch.isascii() and (ch.isalnum() or ch in "-_"))


@lru_cache(maxsize=128)
def load_font(family: str, size: int, bold: bool) -> ImageFont.ImageFont:
    """
    Resolve a font family to a TrueType face, falling back to Pillow's bundled font.

    Only the family's letters, digits, '-' and '_' survive, so a family name
    is always a bare file name on the font search path, never a filesystem path.
    """
    base = font_file_stem(family)
    candidates = []
    if base:
        candidates = [f"{base}-Bold.ttf", f"{base}bd.ttf"] if bold else [f"{base}.ttf"]
    candidates += ["DejaVuSans-Bold.ttf"] if bold else ["DejaVuSans.ttf"]
    for name in candidates:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def load_data_url(url: str) -> Optional[bytes]:
    if not url.startswith("data:"):
        return None
    header, _, data = url.partition(",")
    if header.endswith(";base64"):
        return base64.b64decode(data)
    return urllib.parse.unquote_to_bytes(data)


def _load_image(url: str, asset_loader: Optional[AssetLoader]) -> Optional[Image.Image]:
    try:
        raw = load_data_url(url)
    except ValueError as e:
        # binascii.Error on malformed base64
        logger.warning("asset_unreadable", url=url[:80], error=str(e))
        return None
    if raw is None and asset_loader is not None:
        raw = asset_loader(url)
    if raw is None:
        logger.warning("asset_unavailable", url=url[:80])
        return None
    try:
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (OSError, ValueError) as e:
        logger.warning("asset_unreadable", url=url[:80], error=str(e))
        return None
    return image.convert("RGBA")


def make_qr_image(data: str, size: int) -> Image.Image:
    settings = get_settings()
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=settings.QR_BOX_SIZE,
        border=settings.QR_BORDER,
    )
    qr.add_data(data)
    qr.make(fit=True)
    buffer = io.BytesIO()
    qr.make_image(fill_color="black", back_color="white").save(buffer, format="PNG")
    buffer.seek(0)
    symbol = Image.open(buffer).convert("RGBA")
    # Nearest keeps module edges sharp so scanners can still read it
    return symbol.resize((size, size), Image.Resampling.NEAREST)


def linear_gradient(size: tuple[int, int], start: tuple, end: tuple, angle: float) -> Image.Image:
    """Two-stop gradient; 0deg runs bottom to top, 90deg left to right, as in CSS."""
    width, height = size
    rad = math.radians(angle)
    length = max(1, round(abs(width * math.sin(rad)) + abs(height * math.cos(rad))))
    side = math.ceil(math.hypot(width, height)) + 2

    mask = Image.new("L", (side, side), 0)
    top = (side - length) // 2
    ramp = Image.linear_gradient("L").resize((side, length), Image.Resampling.BILINEAR)
    mask.paste(ramp, (0, top))
    if top + length < side:
        mask.paste(255, (0, top + length, side, side))

    mask = mask.rotate(180 - angle, resample=Image.Resampling.BICUBIC)
    left, upper = (side - width) // 2, (side - height) // 2
    mask = mask.crop((left, upper, left + width, upper + height))
    return Image.composite(Image.new("RGBA", size, end), Image.new("RGBA", size, start), mask)


def paint_background(
    size: tuple[int, int],
    background: Background,
    asset_loader: Optional[AssetLoader] = None,
) -> Image.Image:
    if background.type == BackgroundType.GRADIENT:
        start = parse_color(background.gradient_start) or TRANSPARENT
        end = parse_color(background.gradient_end) or TRANSPARENT
        canvas = linear_gradient(size, start, end, background.gradient_angle)
    else:
        canvas = Image.new("RGBA", size, parse_color(background.color) or TRANSPARENT)

    if background.image_url:
        image = _load_image(background.image_url, asset_loader)
        if image is not None:
            cover = ImageOps.fit(image, size, method=Image.Resampling.LANCZOS)
            factor = background.image_opacity / 100
            cover.putalpha(cover.getchannel("A").point(lambda a: round(a * factor)))
            canvas = Image.alpha_composite(canvas, cover)

    tint = parse_color(background.overlay_color)
    if tint is not None and background.overlay_opacity > 0:
        alpha = round(255 * background.overlay_opacity / 100)
        canvas = Image.alpha_composite(canvas, Image.new("RGBA", size, (*tint[:3], alpha)))

    return canvas


@dataclass(frozen=True)
class _Context:
    bindings: Optional[TicketBindings]
    mode: RenderMode
    asset_loader: Optional[AssetLoader]


def _fill_box(draw: ImageDraw.ImageDraw, size: tuple[int, int], fill, radius: float) -> None:
    width, height = size
    radius = min(radius, min(width, height) / 2)
    if radius > 0:
        draw.rounded_rectangle((0, 0, width - 1, height - 1), radius=radius, fill=fill)
    else:
        draw.rectangle((0, 0, width - 1, height - 1), fill=fill)


def _paint_text(layer: Image.Image, element: Element, ctx: _Context) -> None:
    draw = ImageDraw.Draw(layer)
    fill = parse_color(element.background_color)
    if fill is not None:
        _fill_box(draw, layer.size, fill, element.border_radius)

    text = element_text(element, ctx.bindings)
    if not text:
        return

    font = load_font(element.font_family, element.font_size, element.font_weight == FontWeight.BOLD)
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    width, height = layer.size
    text_width, text_height = right - left, bottom - top

    if element.text_align == TextAlign.CENTER:
        x = (width - text_width) / 2 - left
    elif element.text_align == TextAlign.RIGHT:
        x = width - TEXT_PADDING - text_width - left
    else:
        x = TEXT_PADDING - left
    y = (height - text_height) / 2 - top

    draw.text((x, y), text, font=font, fill=parse_color(element.color) or (255, 255, 255, 255))


def _placeholder_qr(element_id: str, size: int) -> Image.Image:
    """8x8 block pattern with fixed corner markers, seeded by the element id."""
    cells = 8
    corners = {0, 1, 2, 3, 4, 5, 6, 7, 8, 14, 16, 22, 24, 30, 32, 38, 40, 46, 48, 54, 56, 57, 58, 59, 60, 61, 62, 63}
    digest = hashlib.sha256(element_id.encode()).digest()
    image = Image.new("RGBA", (size, size), (255, 255, 255, 255))
    draw = ImageDraw.Draw(image)
    cell = size / cells
    for index in range(cells * cells):
        if index in corners or digest[index % len(digest)] > 166:
            row, col = divmod(index, cells)
            draw.rectangle(
                (col * cell, row * cell, (col + 1) * cell - 1, (row + 1) * cell - 1),
                fill=(0, 0, 0, 255),
            )
    return image


def _paint_qr(layer: Image.Image, element: Element, ctx: _Context) -> None:
    width, height = layer.size
    draw = ImageDraw.Draw(layer)
    _fill_box(draw, layer.size, (255, 255, 255, 255), max(element.border_radius, 8))

    side = max(1, min(width, height) - 2 * QR_PADDING)
    if ctx.mode == RenderMode.FINAL:
        if ctx.bindings is None or not ctx.bindings.qr_payload:
            raise RenderError("Final ticket rendering needs the ticket's QR payload")
        symbol = make_qr_image(ctx.bindings.qr_payload, side)
    elif ctx.bindings is not None and ctx.bindings.qr_payload:
        symbol = make_qr_image(ctx.bindings.qr_payload, side)
    else:
        symbol = _placeholder_qr(element.id, side)

    layer.paste(symbol, ((width - side) // 2, (height - side) // 2))


def _paint_logo(layer: Image.Image, element: Element, ctx: _Context) -> None:
    draw = ImageDraw.Draw(layer)
    _fill_box(draw, layer.size, (255, 255, 255, 230), max(element.border_radius, 8))

    image = _load_image(element.image_url, ctx.asset_loader) if element.image_url else None
    if image is None:
        font = load_font(element.font_family, 12, True)
        draw.text(
            (layer.width / 2, layer.height / 2), "LOGO", font=font, fill=(55, 65, 81, 255), anchor="mm"
        )
        return

    fitted = ImageOps.contain(image, layer.size, method=Image.Resampling.LANCZOS)
    offset = ((layer.width - fitted.width) // 2, (layer.height - fitted.height) // 2)
    layer.alpha_composite(fitted, offset)


def _shape_fill(element: Element) -> tuple[int, int, int, int]:
    return parse_color(element.background_color) or parse_color(element.color) or (255, 255, 255, 255)


def _paint_rectangle(layer: Image.Image, element: Element, ctx: _Context) -> None:
    _fill_box(ImageDraw.Draw(layer), layer.size, _shape_fill(element), element.border_radius)


def _paint_circle(layer: Image.Image, element: Element, ctx: _Context) -> None:
    ImageDraw.Draw(layer).ellipse((0, 0, layer.width - 1, layer.height - 1), fill=_shape_fill(element))


_PAINTERS: dict[ElementKind, Callable[[Image.Image, Element, _Context], None]] = {
    ElementKind.TEXT: _paint_text,
    ElementKind.DATE: _paint_text,
    ElementKind.USER_NAME: _paint_text,
    ElementKind.EVENT_NAME: _paint_text,
    ElementKind.STATUS: _paint_text,
    ElementKind.BENEFITS: _paint_text,
    ElementKind.REMAINING_DAYS: _paint_text,
    ElementKind.PIN_CODE: _paint_text,
    ElementKind.QR_CODE: _paint_qr,
    ElementKind.LOGO: _paint_logo,
    ElementKind.RECTANGLE: _paint_rectangle,
    ElementKind.CIRCLE: _paint_circle,
}

_unpainted = set(ElementKind) - set(_PAINTERS)
if _unpainted:
    raise RuntimeError(f"No painter for element kinds: {sorted(k.value for k in _unpainted)}")


def _composite_element(canvas: Image.Image, element: Element, ctx: _Context) -> Image.Image:
    width = max(1, round(element.width))
    height = max(1, round(element.height))
    layer = Image.new("RGBA", (width, height), TRANSPARENT)
    _PAINTERS[element.kind](layer, element, ctx)

    if element.rotation % 360:
        # CSS rotates clockwise, Pillow counter-clockwise
        layer = layer.rotate(-element.rotation, resample=Image.Resampling.BICUBIC, expand=True)

    center_x = element.x + element.width / 2
    center_y = element.y + element.height / 2
    offset = (round(center_x - layer.width / 2), round(center_y - layer.height / 2))

    overlay = Image.new("RGBA", canvas.size, TRANSPARENT)
    overlay.paste(layer, offset)
    return Image.alpha_composite(canvas, overlay)


def render(
    document: TemplateDocument,
    bindings: Optional[TicketBindings] = None,
    mode: RenderMode = RenderMode.PREVIEW,
    asset_loader: Optional[AssetLoader] = None,
) -> Image.Image:
    """Render a template document to an RGBA image at its canvas size."""
    started = time.perf_counter()
    size = (document.canvas_size.width, document.canvas_size.height)
    ctx = _Context(bindings=bindings, mode=mode, asset_loader=asset_loader)

    canvas = paint_background(size, document.background, asset_loader)
    for element in document.elements:
        canvas = _composite_element(canvas, clamp_element(element, document.canvas_size), ctx)

    render_latency.labels(mode=mode.value).observe(time.perf_counter() - started)
    return canvas


def render_png(
    document: TemplateDocument,
    bindings: Optional[TicketBindings] = None,
    mode: RenderMode = RenderMode.PREVIEW,
    asset_loader: Optional[AssetLoader] = None,
) -> bytes:
    buffer = io.BytesIO()
    render(document, bindings, mode, asset_loader).save(buffer, format="PNG")
    return buffer.getvalue()
