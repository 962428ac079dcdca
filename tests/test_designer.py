"""
Tests for the template designer: clamped geometry, z-order and undo/redo history.
"""

import pytest

from eventpass.rendering.designer import DesignerError, TemplateDesigner, clamp_geometry
from eventpass.schemas.template import (
    MIN_ELEMENT_SIZE,
    Background,
    BackgroundType,
    CanvasSize,
    ElementKind,
    FontWeight,
    TemplateDocument,
)


@pytest.fixture
def designer() -> TemplateDesigner:
    return TemplateDesigner(TemplateDocument(canvas_size=CanvasSize(width=605, height=151)))


def _inside(element, canvas) -> bool:
    return (
        element.x >= 0
        and element.y >= 0
        and element.x + element.width <= canvas.width
        and element.y + element.height <= canvas.height
    )


def test_clamp_geometry():
    canvas = CanvasSize(width=300, height=100)
    assert clamp_geometry(-20, -5, 50, 30, canvas) == (0, 0, 50, 30)
    assert clamp_geometry(280, 90, 50, 30, canvas) == (250, 70, 50, 30)
    assert clamp_geometry(10, 10, 5, 5, canvas) == (10, 10, MIN_ELEMENT_SIZE, MIN_ELEMENT_SIZE)
    assert clamp_geometry(0, 0, 500, 500, canvas) == (0, 0, 300, 100)


def test_add_element_defaults(designer):
    qr = designer.add_element(ElementKind.QR_CODE)
    assert (qr.width, qr.height) == (113, 113)

    logo = designer.add_element(ElementKind.LOGO)
    assert (logo.width, logo.height) == (120, 80)

    title = designer.add_element(ElementKind.EVENT_NAME)
    assert title.font_size == 28
    assert title.font_weight == FontWeight.BOLD
    assert title.color == "#FFD700"
    assert title.content == "EVENT NAME"

    ids = [e.id for e in designer.document.elements]
    assert len(ids) == len(set(ids)) == 3
    for element in designer.document.elements:
        assert _inside(element, designer.document.canvas_size)


def test_add_element_larger_than_canvas_is_clamped():
    designer = TemplateDesigner(TemplateDocument(canvas_size=CanvasSize(width=100, height=60)))
    qr = designer.add_element(ElementKind.QR_CODE)
    assert _inside(qr, designer.document.canvas_size)


def test_move_is_clamped(designer):
    element = designer.add_element(ElementKind.TEXT)
    moved = designer.move(element.id, 10_000, -10_000)
    assert moved.x == 605 - moved.width
    assert moved.y == 0


def test_resize_handles(designer):
    element = designer.add_element(ElementKind.TEXT)  # 200x40 at (50, 50)

    grown = designer.resize(element.id, "se", 30, 20)
    assert (grown.x, grown.y, grown.width, grown.height) == (50, 50, 230, 60)

    # West handle keeps the right edge fixed
    narrowed = designer.resize(element.id, "w", 100, 0)
    assert narrowed.x == 150
    assert narrowed.x + narrowed.width == 280

    # Never below the minimum size
    tiny = designer.resize(element.id, "nw", 1000, 1000)
    assert tiny.width == MIN_ELEMENT_SIZE
    assert tiny.height == MIN_ELEMENT_SIZE

    # Never past the canvas
    huge = designer.resize(element.id, "se", 10_000, 10_000)
    assert _inside(huge, designer.document.canvas_size)


def test_resize_unknown_handle(designer):
    element = designer.add_element(ElementKind.TEXT)
    with pytest.raises(DesignerError):
        designer.resize(element.id, "middle", 1, 1)


def test_update_element_style(designer):
    element = designer.add_element(ElementKind.TEXT)
    updated = designer.update_element(element.id, content="Hello", color="#000000", rotation=15)
    assert (updated.content, updated.color, updated.rotation) == ("Hello", "#000000", 15)

    with pytest.raises(DesignerError):
        designer.update_element(element.id, x=5)


def test_reorder_swaps_neighbours(designer):
    a = designer.add_element(ElementKind.TEXT)
    b = designer.add_element(ElementKind.RECTANGLE)
    c = designer.add_element(ElementKind.CIRCLE)

    designer.bring_forward(a.id)
    assert [e.id for e in designer.document.elements] == [b.id, a.id, c.id]

    designer.send_backward(c.id)
    assert [e.id for e in designer.document.elements] == [b.id, c.id, a.id]

    # Already on top: nothing to swap with
    designer.bring_forward(a.id)
    assert [e.id for e in designer.document.elements] == [b.id, c.id, a.id]


def test_delete_element(designer):
    a = designer.add_element(ElementKind.TEXT)
    designer.delete_element(a.id)
    assert designer.document.elements == ()
    with pytest.raises(DesignerError):
        designer.delete_element(a.id)


def test_undo_redo(designer):
    empty = designer.document
    element = designer.add_element(ElementKind.TEXT)
    after_add = designer.document
    designer.move(element.id, 10, 10)
    after_move = designer.document

    assert designer.undo() == after_add
    assert designer.undo() == empty
    assert designer.undo() == empty  # nothing further back
    assert designer.redo() == after_add
    assert designer.redo() == after_move
    assert designer.redo() == after_move


def test_new_edit_discards_redo_tail(designer):
    element = designer.add_element(ElementKind.TEXT)
    designer.move(element.id, 10, 0)
    designer.undo()

    designer.move(element.id, 0, 10)
    assert designer.can_redo is False


def test_history_is_bounded():
    designer = TemplateDesigner(TemplateDocument(), history_limit=5)
    element = designer.add_element(ElementKind.TEXT)
    for _ in range(10):
        designer.move(element.id, 1, 0)

    undos = 0
    while designer.can_undo:
        designer.undo()
        undos += 1
    assert undos == 4


def test_history_entries_are_never_mutated(designer):
    element = designer.add_element(ElementKind.TEXT)
    snapshot = designer.document
    designer.update_element(element.id, content="Changed")
    assert snapshot.element(element.id).content == "Sample Text"


def test_set_background(designer):
    gradient = Background(type=BackgroundType.GRADIENT, gradient_start="#000000", gradient_end="#FFFFFF")
    designer.set_background(gradient)
    assert designer.document.background == gradient
    designer.undo()
    assert designer.document.background.type == BackgroundType.SOLID


def test_preview_round_trip_leaves_history_alone(designer):
    element = designer.add_element(ElementKind.TEXT)
    before = designer.document

    previewed = designer.enter_preview()
    assert previewed == before
    assert designer.previewing is True
    with pytest.raises(DesignerError):
        designer.move(element.id, 5, 5)

    restored = designer.exit_preview()
    assert restored == before
    assert designer.previewing is False

    # Preview added no history entry: one undo goes back to the empty document
    designer.undo()
    assert designer.document.elements == ()
