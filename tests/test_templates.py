"""
Tests for the template library endpoints and template service.
"""

import pytest
from httpx import AsyncClient

from eventpass.rendering.presets import PRESETS
from eventpass.schemas.template import TemplateFilter
from eventpass.services import template_service


def _template_body(name="Gala Night", category="formal", is_public=True) -> dict:
    return {
        "name": name,
        "category": category,
        "is_public": is_public,
        "document": {
            "canvas_size": {"width": 605, "height": 151},
            "background": {"type": "gradient", "gradient_start": "#111827", "gradient_end": "#1f2937"},
            "elements": [
                {"id": "title", "kind": "event-name", "x": 20, "y": 10, "width": 300, "height": 40},
                # Hangs off the right edge; stored clamped
                {"id": "qr", "kind": "qr-code", "x": 580, "y": 20, "width": 113, "height": 113},
            ],
        },
    }


@pytest.mark.asyncio
async def test_create_and_get_template(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/templates", json=_template_body(), headers=auth_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["creator_id"] == "organizer-1"

    qr = next(e for e in data["document"]["elements"] if e["id"] == "qr")
    assert qr["x"] + qr["width"] <= 605
    assert qr["y"] + qr["height"] <= 151

    response = await client.get(f"/api/v1/templates/{data['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["document"]["background"]["type"] == "gradient"


@pytest.mark.asyncio
async def test_create_template_rejects_duplicate_element_ids(client: AsyncClient, auth_headers):
    body = _template_body()
    body["document"]["elements"][1]["id"] = "title"
    response = await client.post("/api/v1/templates", json=body, headers=auth_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_template_rejects_non_finite_geometry(client: AsyncClient, auth_headers):
    body = _template_body()
    body["document"]["elements"][0]["x"] = "Infinity"
    response = await client.post("/api/v1/templates", json=body, headers=auth_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_templates_visibility(client: AsyncClient, auth_headers, other_headers):
    await client.post("/api/v1/templates", json=_template_body("Public"), headers=auth_headers)
    await client.post("/api/v1/templates", json=_template_body("Private", is_public=False), headers=auth_headers)

    mine = await client.get("/api/v1/templates", headers=auth_headers)
    assert {t["name"] for t in mine.json()} == {"Public", "Private"}

    theirs = await client.get("/api/v1/templates", headers=other_headers)
    assert [t["name"] for t in theirs.json()] == ["Public"]

    only_theirs = await client.get("/api/v1/templates?include_public=false", headers=other_headers)
    assert only_theirs.json() == []


@pytest.mark.asyncio
async def test_list_templates_by_category(client: AsyncClient, auth_headers):
    await client.post("/api/v1/templates", json=_template_body("Gala", category="formal"), headers=auth_headers)
    await client.post("/api/v1/templates", json=_template_body("Rave", category="party"), headers=auth_headers)

    response = await client.get("/api/v1/templates?category=party", headers=auth_headers)
    assert [t["name"] for t in response.json()] == ["Rave"]


@pytest.mark.asyncio
async def test_private_template_hidden_from_others(client: AsyncClient, auth_headers, other_headers):
    created = await client.post(
        "/api/v1/templates", json=_template_body(is_public=False), headers=auth_headers
    )
    response = await client.get(f"/api/v1/templates/{created.json()['id']}", headers=other_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_template(client: AsyncClient, auth_headers, other_headers):
    created = await client.post("/api/v1/templates", json=_template_body(), headers=auth_headers)
    template_id = created.json()["id"]

    response = await client.delete(f"/api/v1/templates/{template_id}", headers=other_headers)
    assert response.status_code == 403

    response = await client.delete(f"/api/v1/templates/{template_id}", headers=auth_headers)
    assert response.status_code == 204

    response = await client.get(f"/api/v1/templates/{template_id}", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_presets_endpoint(client: AsyncClient):
    response = await client.get("/api/v1/templates/presets")
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 8
    corporate = next(p for p in data if p["id"] == "corporate")
    assert corporate["document"]["background"]["gradient_start"] == "#1e293b"


@pytest.mark.asyncio
async def test_preview_endpoint_renders_png(client: AsyncClient, auth_headers):
    document = PRESETS["party"].document.model_dump(mode="json")
    response = await client.post("/api/v1/templates/preview", json=document, headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content.startswith(b"\x89PNG")


@pytest.mark.asyncio
async def test_preview_with_broken_logo_and_huge_element(client: AsyncClient, auth_headers):
    document = {
        "canvas_size": {"width": 300, "height": 100},
        "elements": [
            {"id": "l", "kind": "logo", "image_url": "data:;base64,abcde"},
            {"id": "r", "kind": "rectangle", "width": 200000, "height": 200000},
        ],
    }
    response = await client.post("/api/v1/templates/preview", json=document, headers=auth_headers)
    assert response.status_code == 200
    assert response.content.startswith(b"\x89PNG")


@pytest.mark.asyncio
async def test_ticket_image_with_saved_template(client: AsyncClient, auth_headers, test_ticket):
    created = await client.post("/api/v1/templates", json=_template_body(), headers=auth_headers)
    response = await client.get(
        f"/api/v1/tickets/{test_ticket.id}/image?template_id={created.json()['id']}", headers=auth_headers
    )
    assert response.status_code == 200
    assert response.content.startswith(b"\x89PNG")


@pytest.mark.asyncio
async def test_list_templates_service_without_cache(db_session):
    """With Redis disabled every listing is answered by the database."""
    templates = await template_service.list_templates(db_session, TemplateFilter())
    assert templates == []
