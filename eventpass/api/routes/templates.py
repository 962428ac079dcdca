"""
Template library endpoints, plus a preview renderer for the designer.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventpass.core.security import get_current_user_id
from eventpass.db.session import get_db
from eventpass.rendering.presets import list_presets
from eventpass.rendering.renderer import RenderMode, render_png
from eventpass.schemas.template import (
    PresetSummary,
    TemplateCreate,
    TemplateDocument,
    TemplateFilter,
    TemplateResponse,
)
from eventpass.services import template_service

router = APIRouter(prefix="/templates", tags=["Templates"])


@router.get("", response_model=list[TemplateResponse])
async def list_templates_endpoint(
    category: Optional[str] = Query(None),
    include_public: bool = Query(True),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """The caller's templates and, unless excluded, everyone's public ones. Cached."""
    filters = TemplateFilter(category=category, creator_id=user_id, include_public=include_public)
    return await template_service.list_templates(db, filters)


@router.get("/presets", response_model=list[PresetSummary])
async def list_presets_endpoint():
    return list_presets()


@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template_endpoint(
    template_data: TemplateCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    template = await template_service.insert_template(db, template_data, user_id)
    return template_service.to_response(template)


@router.post("/preview", response_class=Response)
async def preview_template_endpoint(
    document: TemplateDocument,
    user_id: str = Depends(get_current_user_id),
):
    """Render a document with placeholder data, as the designer shows it."""
    png = render_png(document, mode=RenderMode.PREVIEW)
    return Response(content=png, media_type="image/png")


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template_endpoint(
    template_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    template = await template_service.get_template(db, template_id, user_id)
    return template_service.to_response(template)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template_endpoint(
    template_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await template_service.delete_template(db, template_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
