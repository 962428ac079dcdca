"""
Template library: saved ticket designs plus the built-in presets.

Listings are cached in Redis (see cache_service) and invalidated whenever a
template is inserted or deleted. Single templates are read straight from
the database.
"""

from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from eventpass.core.errors import Forbidden, NotFound
from eventpass.core.logging import get_logger
from eventpass.models.template import TicketTemplate
from eventpass.schemas.template import (
    Background,
    CanvasSize,
    Element,
    TemplateCreate,
    TemplateDocument,
    TemplateFilter,
    TemplateResponse,
    clamp_element,
)
from eventpass.services.cache_service import (
    get_cached_templates,
    invalidate_template_cache,
    make_template_list_key,
    set_cached_templates,
)

logger = get_logger(__name__)


def document_from_row(template: TicketTemplate) -> TemplateDocument:
    return TemplateDocument(
        canvas_size=CanvasSize(width=template.canvas_width, height=template.canvas_height),
        background=Background.model_validate(template.background or {}),
        elements=tuple(Element.model_validate(e) for e in template.elements or []),
    )


def to_response(template: TicketTemplate) -> TemplateResponse:
    return TemplateResponse(
        id=template.id,
        creator_id=template.creator_id,
        name=template.name,
        category=template.category,
        is_public=template.is_public,
        document=document_from_row(template),
        created_at=template.created_at,
    )


async def insert_template(db: AsyncSession, data: TemplateCreate, creator_id: str) -> TicketTemplate:
    """Save a design. Element boxes are clamped into the canvas on the way in."""
    document = data.document
    elements = [clamp_element(e, document.canvas_size).model_dump(mode="json") for e in document.elements]

    template = TicketTemplate(
        creator_id=creator_id,
        name=data.name,
        category=data.category,
        is_public=data.is_public,
        canvas_width=document.canvas_size.width,
        canvas_height=document.canvas_size.height,
        background=document.background.model_dump(mode="json"),
        elements=elements,
    )
    db.add(template)
    await db.flush()
    await db.refresh(template)

    await invalidate_template_cache()
    logger.info("template_saved", template_id=template.id, category=template.category, elements=len(elements))
    return template


async def get_template(db: AsyncSession, template_id: str, user_id: Optional[str] = None) -> TicketTemplate:
    template = await db.get(TicketTemplate, template_id)
    if template is None or (not template.is_public and template.creator_id != user_id):
        raise NotFound(f"Template {template_id} not found")
    return template


async def list_templates(db: AsyncSession, filters: TemplateFilter) -> list[dict]:
    """
    Templates visible under `filters`, newest first: the creator's own plus,
    with include_public, everyone's public ones.
    """
    key = make_template_list_key(filters.category, filters.creator_id, filters.include_public)
    cached = await get_cached_templates(key)
    if cached is not None:
        return cached

    query = select(TicketTemplate)
    visible = []
    if filters.creator_id:
        visible.append(TicketTemplate.creator_id == filters.creator_id)
    if filters.include_public or not filters.creator_id:
        visible.append(TicketTemplate.is_public.is_(True))
    query = query.where(or_(*visible))
    if filters.category:
        query = query.where(TicketTemplate.category == filters.category)
    query = query.order_by(TicketTemplate.created_at.desc(), TicketTemplate.name.asc())

    result = await db.execute(query)
    templates = [to_response(t).model_dump(mode="json") for t in result.scalars().all()]

    await set_cached_templates(key, templates)
    return templates


async def delete_template(db: AsyncSession, template_id: str, user_id: str) -> None:
    template = await get_template(db, template_id, user_id)
    if template.creator_id != user_id:
        raise Forbidden("Only the creator can delete a template")

    await db.delete(template)
    await db.flush()
    await invalidate_template_cache()
    logger.info("template_deleted", template_id=template_id)
