"""Tests for event creation, editing and listing through the API."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import update

from conftest import auth_headers, event_payload

from ticketdesk.errors import EditConflict
from ticketdesk.models.event import Event, EventStatus
from ticketdesk.models.ticket import Ticket, TicketStatus
from ticketdesk.schemas.event import EventUpdate
from ticketdesk.services.events import EventService


class TestCreateEvent:
    def test_create_event(self, client, admin):
        response = client.post("/events", json=event_payload(), headers=auth_headers(admin))

        assert response.status_code == 201
        body = response.json()
        assert body["seating"] == {"totalSeats": 80, "availableSeats": 80}
        assert body["pricing"]["amount"] == "25.00"
        assert body["organizerId"] == admin.id

    def test_seats_exceeding_capacity_rejected(self, client, db, admin):
        payload = event_payload(venue={"capacity": 100}, seating={"totalSeats": 120, "availableSeats": 120})

        response = client.post("/events", json=payload, headers=auth_headers(admin))

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "VALIDATION_FAILED"
        assert detail["errors"] == ["SeatsExceedCapacity"]
        assert db.query(Event).count() == 0

    def test_paid_event_needs_a_price(self, client, admin):
        payload = event_payload(pricing={"type": "paid", "amount": "0"})

        response = client.post("/events", json=payload, headers=auth_headers(admin))

        assert response.json()["detail"]["errors"] == ["InvalidPrice"]

    def test_free_event_normalizes_amount(self, client, admin):
        payload = event_payload(pricing={"type": "free", "amount": "15"})

        response = client.post("/events", json=payload, headers=auth_headers(admin))

        assert response.status_code == 201
        assert response.json()["pricing"]["amount"] == "0.00"

    def test_missing_availability_defaults_to_total(self, client, admin):
        payload = event_payload(seating={"totalSeats": 50, "availableSeats": None})

        response = client.post("/events", json=payload, headers=auth_headers(admin))

        assert response.json()["seating"]["availableSeats"] == 50

    def test_past_date_rejected(self, client, admin):
        payload = event_payload(date="2001-01-01T10:00:00")

        response = client.post("/events", json=payload, headers=auth_headers(admin))

        assert response.json()["detail"]["errors"] == ["DateInPast"]

    def test_attendee_cannot_create(self, client, attendee):
        response = client.post("/events", json=event_payload(), headers=auth_headers(attendee))

        assert response.status_code == 403


class TestUpdateEvent:
    def _create(self, client, admin, **overrides) -> dict:
        return client.post("/events", json=event_payload(**overrides), headers=auth_headers(admin)).json()

    def test_partial_update_revalidates(self, client, admin):
        event = self._create(client, admin)

        response = client.put(
            f"/events/{event['id']}", json={"venue": {"capacity": 50}}, headers=auth_headers(admin)
        )

        assert response.status_code == 400
        assert response.json()["detail"]["errors"] == ["SeatsExceedCapacity"]

    def test_title_only_update(self, client, admin):
        event = self._create(client, admin)

        response = client.put(f"/events/{event['id']}", json={"title": "Late Set"}, headers=auth_headers(admin))

        assert response.status_code == 200
        assert response.json()["title"] == "Late Set"
        assert response.json()["seating"] == event["seating"]

    def test_resizing_keeps_sold_seats_taken(self, client, db, admin, attendee, make_event):
        event = make_event(seats=10, available=7)
        for seat in ("S001", "S002", "S003"):
            db.add(Ticket(event_id=event.id, user_id=attendee.id, seat_number=seat, status=TicketStatus.BOOKED))
        db.commit()

        response = client.put(
            f"/events/{event.id}", json={"seating": {"totalSeats": 5}}, headers=auth_headers(admin)
        )

        assert response.status_code == 200
        assert response.json()["seating"] == {"totalSeats": 5, "availableSeats": 2}

    def test_availability_capped_by_sold_seats(self, client, db, admin, attendee, make_event):
        event = make_event(seats=10, available=9)
        db.add(Ticket(event_id=event.id, user_id=attendee.id, seat_number="S001", status=TicketStatus.BOOKED))
        db.commit()

        response = client.put(
            f"/events/{event.id}", json={"seating": {"availableSeats": 10}}, headers=auth_headers(admin)
        )

        assert response.json()["seating"]["availableSeats"] == 9

    def test_shrinking_below_sold_seats_rejected(self, client, db, admin, attendee, make_event):
        event = make_event(seats=2, available=0)
        for seat in ("S001", "S002"):
            db.add(Ticket(event_id=event.id, user_id=attendee.id, seat_number=seat, status=TicketStatus.BOOKED))
        db.commit()

        response = client.put(
            f"/events/{event.id}", json={"seating": {"totalSeats": 1}}, headers=auth_headers(admin)
        )

        assert response.status_code == 400
        assert response.json()["detail"]["errors"] == ["SeatsBelowSold"]
        db.refresh(event)
        assert (event.total_seats, event.available_seats) == (2, 0)

    def test_null_sections_leave_event_unchanged(self, client, admin):
        event = self._create(client, admin)

        response = client.put(
            f"/events/{event['id']}",
            json={"title": None, "venue": None, "seating": None, "pricing": None, "status": None},
            headers=auth_headers(admin)
        )

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == event["title"]
        assert body["seating"] == event["seating"]
        assert body["pricing"] == event["pricing"]

    def test_null_inside_section_is_ignored(self, client, admin):
        event = self._create(client, admin)

        response = client.put(
            f"/events/{event['id']}",
            json={"pricing": {"type": None, "currency": None}, "seating": {"totalSeats": None}},
            headers=auth_headers(admin)
        )

        assert response.status_code == 200
        assert response.json()["seating"] == event["seating"]

    def test_null_end_date_clears_it(self, client, admin):
        start = datetime.utcnow() + timedelta(days=30)
        event = self._create(client, admin, date=start.isoformat(), endDate=(start + timedelta(hours=3)).isoformat())

        response = client.put(f"/events/{event['id']}", json={"endDate": None}, headers=auth_headers(admin))

        assert response.status_code == 200
        assert response.json()["endDate"] is None

    def test_stale_edit_raises_conflict(self, db, make_event):
        event = make_event()
        # Another writer bumps the row version after this session loaded it.
        db.execute(
            update(Event).where(Event.id == event.id).values(version=Event.version + 1)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(EditConflict):
            EventService.update_event(db, event.id, EventUpdate(title="Renamed"))


class TestListEvents:
    def test_only_published_events_listed_for_public(self, client, make_event):
        make_event(title="Open")
        make_event(title="Hidden", status=EventStatus.DRAFT)

        response = client.get("/events")

        assert [e["title"] for e in response.json()["events"]] == ["Open"]

    def test_search(self, client, make_event):
        make_event(title="Harbour Jazz Night")
        make_event(title="Chess Open")

        response = client.get("/events", params={"search": "jazz"})

        assert response.json()["pagination"]["total"] == 1

    def test_draft_event_hidden_from_public(self, client, admin, make_event):
        draft = make_event(status=EventStatus.DRAFT)

        assert client.get(f"/events/{draft.id}").status_code == 404
        assert client.get(f"/events/{draft.id}", headers=auth_headers(admin)).status_code == 200


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
