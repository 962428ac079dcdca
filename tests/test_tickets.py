"""
Tests for ticket issuance, credentials, organizer edits and holder lookup.
"""

import json

import pytest
from httpx import AsyncClient

from eventpass.core.errors import InvalidQr, ValidationError
from eventpass.schemas.ticket import TicketCreate, TicketUpdate
from eventpass.services import redemption, ticket_service
from eventpass.services.credentials import build_qr_payload, generate_pin, issue_credentials, parse_qr_payload


def test_generate_pin_is_six_digits():
    for _ in range(200):
        pin = generate_pin()
        assert len(pin) == 6
        assert pin.isdigit()
        assert 100000 <= int(pin) <= 999999


def test_qr_payload_wire_format():
    raw = build_qr_payload("evt-1", "Ada", "ada@example.com", "123456", ticket_id="t-1", timestamp_ms=1700000000000)
    assert json.loads(raw) == {
        "eventId": "evt-1",
        "participantName": "Ada",
        "email": "ada@example.com",
        "pinCode": "123456",
        "ticketId": "t-1",
        "timestamp": 1700000000000,
    }


def test_issue_credentials_binds_pin_into_payload():
    credentials = issue_credentials("evt-1", "Ada", "ada@example.com")
    payload = parse_qr_payload(credentials.qr_payload)
    assert payload.pin_code == credentials.pin
    assert payload.event_id == "evt-1"
    assert payload.ticket_id is None


def test_parse_qr_payload_rejects_foreign_codes():
    with pytest.raises(InvalidQr):
        parse_qr_payload("https://example.com/not-a-ticket")
    with pytest.raises(InvalidQr):
        parse_qr_payload(json.dumps({"eventId": "evt-1"}))


@pytest.mark.asyncio
async def test_issue_ticket_initial_state(test_ticket, test_event):
    assert test_ticket.event_id == test_event.id
    assert test_ticket.used_benefits == []
    assert test_ticket.total_benefits_used == 0
    assert test_ticket.is_used is False
    assert test_ticket.is_active is True
    assert test_ticket.status == "valid"
    assert test_ticket.version == 1

    payload = parse_qr_payload(test_ticket.qr_payload)
    assert payload.ticket_id == test_ticket.id
    assert payload.pin_code == test_ticket.pin_code


@pytest.mark.asyncio
async def test_issue_ticket_rejects_benefit_outside_catalog(db_session, test_event):
    with pytest.raises(ValidationError):
        await ticket_service.issue_ticket(
            db_session,
            test_event,
            TicketCreate(holder_name="Eve", holder_email="eve@example.com", selected_benefits=["Spa"]),
        )


@pytest.mark.asyncio
async def test_issue_ticket_rejects_taken_pin(db_session, test_event, test_ticket):
    with pytest.raises(ValidationError):
        await ticket_service.issue_ticket(
            db_session,
            test_event,
            TicketCreate(holder_name="Eve", holder_email="eve@example.com", pin=test_ticket.pin_code),
        )


@pytest.mark.asyncio
async def test_issue_ticket_rejects_mismatched_payload(db_session, test_event):
    credentials = issue_credentials(test_event.id, "Someone Else", "else@example.com")
    with pytest.raises(ValidationError):
        await ticket_service.issue_ticket(
            db_session,
            test_event,
            TicketCreate(
                holder_name="Eve",
                holder_email="eve@example.com",
                pin=credentials.pin,
                qr_payload=credentials.qr_payload,
            ),
        )


@pytest.mark.asyncio
async def test_issue_ticket_capacity(db_session, other_event):
    other_event.max_attendees = 1
    await db_session.commit()

    await ticket_service.issue_ticket(
        db_session, other_event, TicketCreate(holder_name="One", holder_email="one@example.com")
    )
    with pytest.raises(ValidationError):
        await ticket_service.issue_ticket(
            db_session, other_event, TicketCreate(holder_name="Two", holder_email="two@example.com")
        )


@pytest.mark.asyncio
async def test_issue_with_previewed_credentials(client: AsyncClient, auth_headers, test_event):
    """Credentials from the preview endpoint are stored unchanged."""
    holder = {"holder_name": "Ada Lovelace", "holder_email": "ada@example.com"}
    preview = await client.post(
        f"/api/v1/events/{test_event.id}/tickets/credentials", json=holder, headers=auth_headers
    )
    assert preview.status_code == 200
    credentials = preview.json()

    response = await client.post(
        f"/api/v1/events/{test_event.id}/tickets",
        json={
            **holder,
            "role": "vip",
            "selected_benefits": ["Lunch", "WiFi"],
            "meal_options": ["vegetarian"],
            "accommodation_type": "single",
            "transport_included": True,
            "pin": credentials["pin"],
            "qr_payload": credentials["qr_payload"],
        },
        headers=auth_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["pin_code"] == credentials["pin"]
    assert data["qr_payload"] == credentials["qr_payload"]
    assert data["role"] == "vip"
    assert data["status"] == "valid"
    assert data["meal_options"] == ["vegetarian"]
    assert data["transport_included"] is True


@pytest.mark.asyncio
async def test_issue_ticket_invalid_pin_format(client: AsyncClient, auth_headers, test_event):
    response = await client.post(
        f"/api/v1/events/{test_event.id}/tickets",
        json={"holder_name": "Ada", "holder_email": "ada@example.com", "pin": "12ab56"},
        headers=auth_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_issue_ticket_for_foreign_event(client: AsyncClient, other_headers, test_event):
    response = await client.post(
        f"/api/v1/events/{test_event.id}/tickets",
        json={"holder_name": "Ada", "holder_email": "ada@example.com"},
        headers=other_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_tickets(client: AsyncClient, auth_headers, test_event, test_ticket, three_benefit_ticket):
    response = await client.get(f"/api/v1/events/{test_event.id}/tickets", headers=auth_headers)
    assert response.status_code == 200
    assert {t["id"] for t in response.json()} == {test_ticket.id, three_benefit_ticket.id}


@pytest.mark.asyncio
async def test_update_ticket_holder_details(client: AsyncClient, auth_headers, test_ticket):
    response = await client.patch(
        f"/api/v1/tickets/{test_ticket.id}",
        json={"holder_name": "Augusta Ada King", "role": "speaker"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["holder_name"] == "Augusta Ada King"
    assert data["role"] == "speaker"
    assert data["pin_code"] == test_ticket.pin_code


@pytest.mark.asyncio
async def test_update_ticket_cannot_drop_used_benefit(db_session, test_ticket):
    await redemption.redeem_benefit(db_session, test_ticket.id, "Lunch", test_ticket.pin_code)
    with pytest.raises(ValidationError):
        await ticket_service.update_ticket(db_session, test_ticket.id, TicketUpdate(selected_benefits=["WiFi"]))


@pytest.mark.asyncio
async def test_update_ticket_recomputes_is_used(db_session, test_ticket):
    ticket = await redemption.redeem_benefit(db_session, test_ticket.id, "Lunch", test_ticket.pin_code)
    assert ticket.is_used is False

    # Narrowing the selection to what was already used closes the ticket
    ticket = await ticket_service.update_ticket(db_session, test_ticket.id, TicketUpdate(selected_benefits=["Lunch"]))
    assert ticket.is_used is True
    assert ticket.used_at is not None

    # Widening it reopens the ticket
    ticket = await ticket_service.update_ticket(
        db_session, test_ticket.id, TicketUpdate(selected_benefits=["Lunch", "Dinner"])
    )
    assert ticket.is_used is False
    assert ticket.used_at is None
    assert ticket.total_benefits_used == 1


@pytest.mark.asyncio
async def test_delete_ticket(client: AsyncClient, auth_headers, test_event, test_ticket):
    response = await client.delete(f"/api/v1/tickets/{test_ticket.id}", headers=auth_headers)
    assert response.status_code == 204

    response = await client.get(f"/api/v1/events/{test_event.id}/tickets", headers=auth_headers)
    assert response.json() == []


@pytest.mark.asyncio
async def test_lookup_by_pin_hides_pin(client: AsyncClient, test_event, test_ticket):
    response = await client.post(
        f"/api/v1/events/{test_event.id}/tickets/lookup", json={"pin": test_ticket.pin_code}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == test_ticket.id
    assert data["remaining_benefits"] == ["Lunch", "WiFi"]
    assert "pin_code" not in data


@pytest.mark.asyncio
async def test_lookup_by_unknown_pin(client: AsyncClient, test_event, test_ticket):
    wrong = "100000" if test_ticket.pin_code != "100000" else "100001"
    response = await client.post(f"/api/v1/events/{test_event.id}/tickets/lookup", json={"pin": wrong})
    assert response.status_code == 403
    assert response.json()["code"] == "invalid_pin"


@pytest.mark.asyncio
async def test_ticket_image_is_png(client: AsyncClient, auth_headers, test_ticket):
    response = await client.get(f"/api/v1/tickets/{test_ticket.id}/image?preset=music", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content.startswith(b"\x89PNG")


@pytest.mark.asyncio
async def test_ticket_image_unknown_preset(client: AsyncClient, auth_headers, test_ticket):
    response = await client.get(f"/api/v1/tickets/{test_ticket.id}/image?preset=nope", headers=auth_headers)
    assert response.status_code == 404
