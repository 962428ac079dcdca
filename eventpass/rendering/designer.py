"""
Template designer: the editing model behind the drag-and-drop ticket editor.

All geometry edits are clamped so an element's box stays inside the canvas
and never shrinks below MIN_ELEMENT_SIZE on either side.

History is a bounded list of immutable document snapshots plus an index
pointer. Every mutation truncates any redo tail, appends the new snapshot
and moves the pointer; undo and redo only move the pointer. Snapshots are
frozen pydantic models, so nothing can change a history entry in place.
"""

from typing import Optional

from eventpass.core.config import get_settings
from eventpass.core.logging import get_logger
from eventpass.rendering.renderer import PLACEHOLDER_TEXT
from eventpass.schemas.template import (
    MIN_ELEMENT_SIZE,
    Background,
    Element,
    ElementKind,
    FontWeight,
    TemplateDocument,
    clamp_element,
    clamp_geometry,
)

logger = get_logger(__name__)

RESIZE_HANDLES = frozenset({"n", "s", "e", "w", "ne", "nw", "se", "sw"})

# Identity and box fields; update_element may not touch these
_PROTECTED_FIELDS = frozenset({"id", "kind", "x", "y", "width", "height"})

DEFAULT_POSITION = (50, 50)
DEFAULT_SIZES = {
    ElementKind.QR_CODE: (113, 113),
    ElementKind.LOGO: (120, 80),
    ElementKind.RECTANGLE: (120, 60),
    ElementKind.CIRCLE: (80, 80),
}


class DesignerError(ValueError):
    pass


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def default_element(kind: ElementKind, element_id: str) -> Element:
    width, height = DEFAULT_SIZES.get(kind, (200, 40))
    fields = {
        "id": element_id,
        "kind": kind,
        "x": DEFAULT_POSITION[0],
        "y": DEFAULT_POSITION[1],
        "width": width,
        "height": height,
        "content": PLACEHOLDER_TEXT.get(kind),
    }
    if kind == ElementKind.EVENT_NAME:
        fields.update(font_size=28, color="#FFD700", font_weight=FontWeight.BOLD)
    elif kind in (ElementKind.RECTANGLE, ElementKind.CIRCLE):
        fields.update(background_color="#FFFFFF33")
    return Element(**fields)


class TemplateDesigner:
    def __init__(self, document: Optional[TemplateDocument] = None, history_limit: Optional[int] = None):
        self._limit = max(1, history_limit or get_settings().TEMPLATE_HISTORY_LIMIT)
        self._history: list[TemplateDocument] = [document or TemplateDocument()]
        self._index = 0
        self._next_id = 1
        self._edit_document: Optional[TemplateDocument] = None

    @property
    def document(self) -> TemplateDocument:
        if self._edit_document is not None:
            return self._edit_document
        return self._history[self._index]

    @property
    def previewing(self) -> bool:
        return self._edit_document is not None

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._history) - 1

    def _commit(self, document: TemplateDocument) -> TemplateDocument:
        if self.previewing:
            raise DesignerError("Leave preview before editing the template")
        del self._history[self._index + 1:]
        self._history.append(document)
        if len(self._history) > self._limit:
            del self._history[: len(self._history) - self._limit]
        self._index = len(self._history) - 1
        return document

    def _find(self, element_id: str) -> tuple[int, Element]:
        for index, element in enumerate(self.document.elements):
            if element.id == element_id:
                return index, element
        raise DesignerError(f"No element with id {element_id!r}")

    def _replace(self, index: int, element: Element) -> Element:
        elements = list(self.document.elements)
        elements[index] = element
        self._commit(self.document.model_copy(update={"elements": tuple(elements)}))
        return element

    def _new_id(self, kind: ElementKind) -> str:
        taken = {e.id for e in self.document.elements}
        while True:
            candidate = f"{kind.value}-{self._next_id}"
            self._next_id += 1
            if candidate not in taken:
                return candidate

    def add_element(self, kind: ElementKind) -> Element:
        kind = ElementKind(kind)
        element = clamp_element(default_element(kind, self._new_id(kind)), self.document.canvas_size)
        self._commit(self.document.model_copy(update={"elements": (*self.document.elements, element)}))
        logger.debug("designer_element_added", element_id=element.id, kind=element.kind.value)
        return element

    def move(self, element_id: str, dx: float, dy: float) -> Element:
        index, element = self._find(element_id)
        x, y, _, _ = clamp_geometry(
            element.x + dx, element.y + dy, element.width, element.height, self.document.canvas_size
        )
        return self._replace(index, element.model_copy(update={"x": x, "y": y}))

    def resize(self, element_id: str, handle: str, dx: float, dy: float) -> Element:
        """Drag one of the eight handles. The opposite edges stay put."""
        if handle not in RESIZE_HANDLES:
            raise DesignerError(f"Unknown resize handle {handle!r}")

        index, element = self._find(element_id)
        canvas = self.document.canvas_size
        left, top, right, bottom = element.box()

        if "w" in handle:
            left = _clamp(left + dx, 0, right - MIN_ELEMENT_SIZE)
        if "e" in handle:
            right = _clamp(right + dx, left + MIN_ELEMENT_SIZE, canvas.width)
        if "n" in handle:
            top = _clamp(top + dy, 0, bottom - MIN_ELEMENT_SIZE)
        if "s" in handle:
            bottom = _clamp(bottom + dy, top + MIN_ELEMENT_SIZE, canvas.height)

        x, y, width, height = clamp_geometry(left, top, right - left, bottom - top, canvas)
        return self._replace(index, element.model_copy(update={"x": x, "y": y, "width": width, "height": height}))

    def update_element(self, element_id: str, **changes) -> Element:
        """Change style, content or rotation. Geometry goes through move/resize."""
        blocked = _PROTECTED_FIELDS.intersection(changes)
        if blocked:
            raise DesignerError(f"Cannot update {', '.join(sorted(blocked))} here")

        index, element = self._find(element_id)
        merged = Element.model_validate({**element.model_dump(), **changes})
        return self._replace(index, merged)

    def _swap(self, element_id: str, offset: int) -> None:
        index, _ = self._find(element_id)
        target = index + offset
        elements = list(self.document.elements)
        if not 0 <= target < len(elements):
            return
        elements[index], elements[target] = elements[target], elements[index]
        self._commit(self.document.model_copy(update={"elements": tuple(elements)}))

    def bring_forward(self, element_id: str) -> None:
        self._swap(element_id, 1)

    def send_backward(self, element_id: str) -> None:
        self._swap(element_id, -1)

    def delete_element(self, element_id: str) -> None:
        index, _ = self._find(element_id)
        elements = self.document.elements[:index] + self.document.elements[index + 1:]
        self._commit(self.document.model_copy(update={"elements": elements}))

    def set_background(self, background: Background) -> None:
        self._commit(self.document.model_copy(update={"background": background}))

    def undo(self) -> TemplateDocument:
        if self.previewing:
            raise DesignerError("Leave preview before undoing")
        if self.can_undo:
            self._index -= 1
        return self.document

    def redo(self) -> TemplateDocument:
        if self.previewing:
            raise DesignerError("Leave preview before redoing")
        if self.can_redo:
            self._index += 1
        return self.document

    def enter_preview(self) -> TemplateDocument:
        """Freeze the current document for previewing. Adds no history entry."""
        if not self.previewing:
            self._edit_document = self._history[self._index]
        return self._edit_document

    def exit_preview(self) -> TemplateDocument:
        """Back to editing the document that was open when preview started."""
        self._edit_document = None
        return self.document
