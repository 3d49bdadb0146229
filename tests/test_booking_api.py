"""End-to-end tests for the booking, payment and ticket endpoints."""

from datetime import datetime, timedelta

from conftest import auth_headers

from ticketdesk.models.booking import BookingHold, HoldStatus
from ticketdesk.models.event import EventStatus
from ticketdesk.models.payment import Payment, PaymentStatus
from ticketdesk.models.ticket import Ticket


def initiate(client, user, event_id):
    return client.post("/booking/initiate", json={"eventId": event_id}, headers=auth_headers(user))


def pay(client, user, booking, event_id, card="4242424242424242"):
    return client.post("/payments/process", json={
        "amount": booking["totalAmount"],
        "currency": "USD",
        "paymentMethod": "credit_card",
        "paymentDetails": {"cardNumber": card},
        "bookingId": booking["_id"],
        "eventId": event_id
    }, headers=auth_headers(user))


def confirm(client, user, booking, event_id, payment):
    return client.post("/booking/confirm", json={
        "eventId": event_id,
        "paymentId": payment["paymentId"],
        "bookingId": booking["_id"],
        "paymentMethod": "credit_card",
        "paymentToken": payment["token"]
    }, headers=auth_headers(user))


def checkout(client, user, event_id):
    booking = initiate(client, user, event_id).json()["bookingSession"]
    payment = pay(client, user, booking, event_id).json()
    return booking, payment, confirm(client, user, booking, event_id, payment)


class TestInitiate:
    def test_initiate_quotes_price_and_fees(self, client, attendee, make_event):
        event = make_event(price="40.00")

        response = initiate(client, attendee, event.id)

        assert response.status_code == 200
        session = response.json()["bookingSession"]
        assert session["_id"].startswith("bs_")
        assert session["totalAmount"] == "40.00"
        assert session["fees"] == "2.00"
        assert session["expiresAt"]

    def test_draft_event_not_bookable(self, client, attendee, make_event):
        event = make_event(status=EventStatus.DRAFT)

        response = initiate(client, attendee, event.id)

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "EVENT_NOT_BOOKABLE"

    def test_sold_out_event_rejected(self, client, attendee, make_event):
        event = make_event(seats=1, available=0)

        response = initiate(client, attendee, event.id)

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "SEAT_UNAVAILABLE"

    def test_requires_authentication(self, client, make_event):
        response = client.post("/booking/initiate", json={"eventId": make_event().id})

        assert response.status_code == 401


class TestCheckout:
    def test_full_checkout_books_a_ticket(self, client, db, attendee, make_event):
        event = make_event(seats=5, price="25.00")

        booking, payment, response = checkout(client, attendee, event.id)

        assert response.status_code == 200
        body = response.json()
        assert body["booking"] == {"_id": booking["_id"], "status": "confirmed"}
        assert body["ticket"]["status"] == "booked"
        assert body["ticket"]["seatNumber"] == "S001"
        assert body["ticket"]["payment"]["transactionId"] == payment["paymentId"]
        db.refresh(event)
        assert event.available_seats == 4

    def test_free_event_checkout(self, client, attendee, make_event):
        event = make_event(price="0")

        booking, payment, response = checkout(client, attendee, event.id)

        assert payment["payment"]["method"] == "free"
        assert response.status_code == 200

    def test_declined_card(self, client, attendee, make_event):
        event = make_event()
        booking = initiate(client, attendee, event.id).json()["bookingSession"]

        response = pay(client, attendee, booking, event.id, card="4000000000000002")

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "PAYMENT_REJECTED"

    def test_amount_must_match_hold(self, client, attendee, make_event):
        event = make_event(price="25.00")
        booking = initiate(client, attendee, event.id).json()["bookingSession"]

        response = pay(client, attendee, {**booking, "totalAmount": "1.00"}, event.id)

        assert response.status_code == 400

    def test_payment_cannot_be_reused(self, client, attendee, make_event):
        event = make_event(seats=5)
        booking, payment, first = checkout(client, attendee, event.id)

        second = confirm(client, attendee, booking, event.id, payment)

        assert first.status_code == 200
        assert second.status_code == 410

    def test_tampered_payment_token_rejected(self, client, attendee, make_event):
        event = make_event()
        booking = initiate(client, attendee, event.id).json()["bookingSession"]
        payment = pay(client, attendee, booking, event.id).json()

        response = confirm(client, attendee, booking, event.id, {**payment, "token": "not-a-token"})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "PAYMENT_REJECTED"

    def test_expired_hold_rejects_confirmation(self, client, db, attendee, make_event):
        event = make_event()
        booking = initiate(client, attendee, event.id).json()["bookingSession"]
        payment = pay(client, attendee, booking, event.id).json()
        hold = db.get(BookingHold, booking["_id"])
        hold.expires_at = datetime.utcnow() - timedelta(minutes=1)
        db.commit()

        response = confirm(client, attendee, booking, event.id, payment)

        assert response.status_code == 410
        assert response.json()["detail"]["code"] == "BOOKING_HOLD_EXPIRED"
        assert db.query(Ticket).count() == 0

    def test_last_seat_race(self, client, db, attendee, other_attendee, make_event):
        """Two sessions hold the last seat; exactly one confirmation wins."""
        event = make_event(seats=1)
        first_booking = initiate(client, attendee, event.id).json()["bookingSession"]
        second_booking = initiate(client, other_attendee, event.id).json()["bookingSession"]
        first_payment = pay(client, attendee, first_booking, event.id).json()
        second_payment = pay(client, other_attendee, second_booking, event.id).json()

        winner = confirm(client, attendee, first_booking, event.id, first_payment)
        loser = confirm(client, other_attendee, second_booking, event.id, second_payment)

        assert winner.status_code == 200
        assert loser.status_code == 409
        assert loser.json()["detail"]["code"] == "SEAT_UNAVAILABLE"
        assert loser.json()["detail"]["paymentId"] == second_payment["paymentId"]

        db.expire_all()
        assert db.get(Payment, second_payment["paymentId"]).status == PaymentStatus.REFUNDED
        assert db.get(BookingHold, second_booking["_id"]).status == HoldStatus.RELEASED
        assert db.query(Ticket).count() == 1
        db.refresh(event)
        assert event.available_seats == 0


class TestCancelBooking:
    def test_cancel_releases_hold(self, client, db, attendee, make_event):
        booking = initiate(client, attendee, make_event().id).json()["bookingSession"]

        response = client.post(f"/booking/{booking['_id']}/cancel", headers=auth_headers(attendee))

        assert response.status_code == 200
        assert response.json()["bookingSession"]["status"] == "released"

    def test_cancel_is_idempotent(self, client, attendee, make_event):
        booking = initiate(client, attendee, make_event().id).json()["bookingSession"]
        client.post(f"/booking/{booking['_id']}/cancel", headers=auth_headers(attendee))

        response = client.post(f"/booking/{booking['_id']}/cancel", headers=auth_headers(attendee))

        assert response.status_code == 200

    def test_cannot_cancel_someone_elses_hold(self, client, attendee, other_attendee, make_event):
        booking = initiate(client, attendee, make_event().id).json()["bookingSession"]

        response = client.post(f"/booking/{booking['_id']}/cancel", headers=auth_headers(other_attendee))

        assert response.status_code == 404


class TestTicketEndpoints:
    def test_my_tickets(self, client, attendee, other_attendee, make_event):
        event = make_event()
        checkout(client, attendee, event.id)
        checkout(client, other_attendee, event.id)

        response = client.get("/tickets/my-tickets", headers=auth_headers(attendee))

        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 1
        assert response.json()["tickets"][0]["user"]["email"] == attendee.email

    def test_user_cancel_returns_seat(self, client, db, attendee, make_event):
        event = make_event(seats=2)
        _, _, confirmed = checkout(client, attendee, event.id)
        ticket_id = confirmed.json()["ticket"]["id"]

        response = client.put(f"/tickets/{ticket_id}/cancel", headers=auth_headers(attendee))

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        db.refresh(event)
        assert event.available_seats == 2

    def test_other_user_cannot_see_ticket(self, client, attendee, other_attendee, make_event):
        _, _, confirmed = checkout(client, attendee, make_event().id)
        ticket_id = confirmed.json()["ticket"]["id"]

        response = client.get(f"/tickets/{ticket_id}", headers=auth_headers(other_attendee))

        assert response.status_code == 403

    def test_check_in_then_again(self, client, admin, attendee, make_event):
        _, _, confirmed = checkout(client, attendee, make_event().id)
        ticket_id = confirmed.json()["ticket"]["id"]

        first = client.post(f"/tickets/{ticket_id}/checkin", headers=auth_headers(admin))
        second = client.post(f"/tickets/{ticket_id}/checkin", headers=auth_headers(admin))

        assert first.json()["status"] == "used"
        assert second.status_code == 400
        assert second.json()["detail"]["code"] == "INVALID_TRANSITION"
