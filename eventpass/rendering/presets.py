"""Built-in ticket templates offered before an organizer saves their own."""

from typing import Optional

from eventpass.schemas.template import (
    Background,
    BackgroundType,
    CanvasSize,
    Element,
    ElementKind,
    FontWeight,
    PresetSummary,
    TemplateDocument,
    TextAlign,
)

PRESET_CANVAS = CanvasSize(width=800, height=400)

# id, name, category, (primary, secondary, accent)
_SCHEMES = [
    ("corporate", "Corporate Professional", "business", ("#1e293b", "#1e40af", "#FFD700")),
    ("conference", "Tech Conference", "technology", ("#4c1d95", "#3730a3", "#34d399")),
    ("music", "Music Festival", "entertainment", ("#e11d48", "#be185d", "#FFD700")),
    ("sports", "Sports Event", "sports", ("#047857", "#065f46", "#fbbf24")),
    ("elegant", "Elegant Evening", "formal", ("#111827", "#1f2937", "#d4af37")),
    ("wedding", "Wedding Celebration", "wedding", ("#fb7185", "#f472b6", "#fbbf24")),
    ("workshop", "Educational Workshop", "education", ("#0f766e", "#0891b2", "#f59e0b")),
    ("party", "Party Celebration", "party", ("#f59e0b", "#ea580c", "#dc2626")),
]


def _layout(accent: str) -> tuple[Element, ...]:
    label = {"color": accent, "font_size": 14, "font_weight": FontWeight.BOLD}
    return (
        Element(id="event-name", kind=ElementKind.EVENT_NAME, x=40, y=30, width=540, height=48,
                font_size=32, font_weight=FontWeight.BOLD, color=accent),
        Element(id="user-name", kind=ElementKind.USER_NAME, x=40, y=90, width=540, height=36, font_size=24),
        Element(id="date-panel", kind=ElementKind.RECTANGLE, x=40, y=145, width=300, height=80,
                background_color="#FFFFFF33", border_radius=8),
        Element(id="date", kind=ElementKind.DATE, x=40, y=165, width=300, height=40,
                font_size=18, font_weight=FontWeight.BOLD, text_align=TextAlign.CENTER),
        Element(id="status-label", kind=ElementKind.TEXT, x=380, y=150, width=100, height=28,
                content="STATUS", **label),
        Element(id="status", kind=ElementKind.STATUS, x=380, y=180, width=100, height=32,
                font_size=20, font_weight=FontWeight.BOLD),
        Element(id="benefits-label", kind=ElementKind.TEXT, x=480, y=150, width=110, height=28,
                content="BENEFITS", **label),
        Element(id="benefits", kind=ElementKind.BENEFITS, x=480, y=180, width=110, height=32),
        Element(id="remaining-label", kind=ElementKind.TEXT, x=40, y=250, width=160, height=28,
                content="REMAINING DAYS:", **label),
        Element(id="remaining-days", kind=ElementKind.REMAINING_DAYS, x=200, y=250, width=120, height=28,
                font_size=14),
        Element(id="pin-label", kind=ElementKind.TEXT, x=40, y=300, width=60, height=32, content="PIN", **label),
        Element(id="pin-code", kind=ElementKind.PIN_CODE, x=100, y=300, width=160, height=32,
                font_size=22, font_weight=FontWeight.BOLD, font_family="Courier New"),
        Element(id="qr-code", kind=ElementKind.QR_CODE, x=620, y=40, width=150, height=150),
        Element(id="accent-bar", kind=ElementKind.RECTANGLE, x=0, y=384, width=800, height=16,
                background_color=accent),
    )


def _preset(preset_id: str, name: str, category: str, colors: tuple[str, str, str]) -> PresetSummary:
    primary, secondary, accent = colors
    document = TemplateDocument(
        canvas_size=PRESET_CANVAS,
        background=Background(
            type=BackgroundType.GRADIENT,
            color=primary,
            gradient_start=primary,
            gradient_end=secondary,
            gradient_angle=135,
        ),
        elements=_layout(accent),
    )
    return PresetSummary(id=preset_id, name=name, category=category, document=document)


PRESETS: dict[str, PresetSummary] = {
    preset_id: _preset(preset_id, name, category, colors) for preset_id, name, category, colors in _SCHEMES
}


def list_presets() -> list[PresetSummary]:
    return list(PRESETS.values())


def get_preset(preset_id: str) -> Optional[PresetSummary]:
    return PRESETS.get(preset_id)
