"""Capacity and pricing rules for event records.

``CapacityValidator.validate`` is the authoritative gate: it runs every rule
against a candidate record and returns either the normalized record or the
ordered list of violations. ``CapacityValidator.cascade`` is the advisory
clamp used while a form is being edited; it never rejects anything.

Neither function mutates its input.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

from ticketdesk.errors import EventValidationError
from ticketdesk.models.event import PricingType
from ticketdesk.schemas.event import EventPayload

CENTS = Decimal("0.01")


class ViolationCode(str, enum.Enum):
    MISSING_CATEGORY = "MissingCategory"
    MISSING_COUNTRY = "MissingCountry"
    INVALID_CAPACITY = "InvalidCapacity"
    INVALID_TOTAL_SEATS = "InvalidTotalSeats"
    SEATS_EXCEED_CAPACITY = "SeatsExceedCapacity"
    INVALID_AVAILABLE_SEATS = "InvalidAvailableSeats"
    AVAILABLE_EXCEEDS_TOTAL = "AvailableExceedsTotal"
    INVALID_PRICE = "InvalidPrice"
    END_BEFORE_START = "EndBeforeStart"
    DATE_IN_PAST = "DateInPast"
    SEATS_BELOW_SOLD = "SeatsBelowSold"


class CascadeField(str, enum.Enum):
    VENUE_CAPACITY = "venue.capacity"
    TOTAL_SEATS = "seating.totalSeats"
    AVAILABLE_SEATS = "seating.availableSeats"
    PRICING_TYPE = "pricing.type"


def whole_number(value, minimum: int) -> Optional[int]:
    """Return ``value`` as an int if it is a whole number >= ``minimum``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
        number = int(value)
    else:
        return None
    return number if number >= minimum else None


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _capacity(payload: EventPayload) -> Optional[int]:
    return whole_number(payload.venue.capacity, 1)


def _total_seats(payload: EventPayload) -> Optional[int]:
    return whole_number(payload.seating.total_seats, 1)


def _available_seats(payload: EventPayload) -> Optional[int]:
    # An omitted availability means "all seats are available".
    if payload.seating.available_seats is None:
        return _total_seats(payload)
    return whole_number(payload.seating.available_seats, 0)


# Each predicate returns True when its rule is violated.

def missing_category(payload: EventPayload) -> bool:
    return not (payload.category or "").strip()


def missing_country(payload: EventPayload) -> bool:
    return not (payload.venue.country or "").strip()


def invalid_capacity(payload: EventPayload) -> bool:
    return _capacity(payload) is None


def invalid_total_seats(payload: EventPayload) -> bool:
    return _total_seats(payload) is None


def seats_exceed_capacity(payload: EventPayload) -> bool:
    capacity, total = _capacity(payload), _total_seats(payload)
    return capacity is not None and total is not None and total > capacity


def invalid_available_seats(payload: EventPayload) -> bool:
    if payload.seating.available_seats is None:
        return False
    return _available_seats(payload) is None


def available_exceeds_total(payload: EventPayload) -> bool:
    total, available = _total_seats(payload), _available_seats(payload)
    return total is not None and available is not None and available > total


def invalid_price(payload: EventPayload) -> bool:
    if payload.pricing.type != PricingType.PAID:
        return False
    amount = payload.pricing.amount
    return amount is None or not amount.is_finite() or amount <= 0


def end_before_start(payload: EventPayload) -> bool:
    end, start = _naive_utc(payload.end_date), _naive_utc(payload.date)
    return end is not None and end <= start


RULES: tuple[tuple[ViolationCode, Callable[[EventPayload], bool]], ...] = (
    (ViolationCode.MISSING_CATEGORY, missing_category),
    (ViolationCode.MISSING_COUNTRY, missing_country),
    (ViolationCode.INVALID_CAPACITY, invalid_capacity),
    (ViolationCode.INVALID_TOTAL_SEATS, invalid_total_seats),
    (ViolationCode.SEATS_EXCEED_CAPACITY, seats_exceed_capacity),
    (ViolationCode.INVALID_AVAILABLE_SEATS, invalid_available_seats),
    (ViolationCode.AVAILABLE_EXCEEDS_TOTAL, available_exceeds_total),
    (ViolationCode.INVALID_PRICE, invalid_price),
    (ViolationCode.END_BEFORE_START, end_before_start),
)


@dataclass(frozen=True)
class ValidationResult:
    normalized: Optional[EventPayload]
    violations: tuple[ViolationCode, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.violations

    @property
    def first_violation(self) -> Optional[ViolationCode]:
        return self.violations[0] if self.violations else None

    def raise_for_violations(self) -> EventPayload:
        if self.violations:
            raise EventValidationError([v.value for v in self.violations])
        return self.normalized


class CapacityValidator:
    @staticmethod
    def validate(
        payload: EventPayload,
        require_future: bool = False,
        now: Optional[datetime] = None,
        sold: int = 0
    ) -> ValidationResult:
        """
        Run every rule against the payload.
        Violations are reported in rule order; the first one is the one a form shows.
        ``sold`` is the number of seats already held by booked or used tickets;
        the total seat count may never drop below it.
        """
        violations = [code for code, violated in RULES if violated(payload)]

        if require_future:
            now = now or datetime.utcnow()
            if _naive_utc(payload.date) <= now:
                violations.append(ViolationCode.DATE_IN_PAST)

        total = _total_seats(payload)
        if total is not None and total < sold:
            violations.append(ViolationCode.SEATS_BELOW_SOLD)

        if violations:
            return ValidationResult(normalized=None, violations=tuple(violations))

        return ValidationResult(normalized=CapacityValidator.normalize(payload))

    @staticmethod
    def normalize(payload: EventPayload) -> EventPayload:
        """Return a copy with whole-number seat counts, UTC dates and a quantized price."""
        if payload.pricing.type == PricingType.FREE:
            amount = Decimal("0.00")
        else:
            amount = (payload.pricing.amount or Decimal("0")).quantize(CENTS)

        return payload.model_copy(update={
            "category": payload.category.strip(),
            "date": _naive_utc(payload.date),
            "end_date": _naive_utc(payload.end_date),
            "venue": payload.venue.model_copy(update={
                "country": payload.venue.country.strip(),
                "capacity": _capacity(payload),
            }),
            "seating": payload.seating.model_copy(update={
                "total_seats": _total_seats(payload),
                "available_seats": _available_seats(payload),
            }),
            "pricing": payload.pricing.model_copy(update={"amount": amount}),
        })

    @staticmethod
    def cascade(payload: EventPayload, changed: Optional[CascadeField] = None) -> EventPayload:
        """
        Clamp the fields that depend on ``changed`` so the record stays consistent.
        With ``changed=None`` every clamp is applied. Applying it twice changes nothing.
        Unparseable values are left alone for ``validate`` to report.
        """
        capacity = _capacity(payload)
        total = whole_number(payload.seating.total_seats, 1)
        available = whole_number(payload.seating.available_seats, 0)
        seating_update = {}
        pricing_update = {}

        if changed in (None, CascadeField.VENUE_CAPACITY, CascadeField.TOTAL_SEATS):
            if capacity is not None and total is not None and total > capacity:
                total = capacity
                seating_update["total_seats"] = total

        if changed in (
            None,
            CascadeField.VENUE_CAPACITY,
            CascadeField.TOTAL_SEATS,
            CascadeField.AVAILABLE_SEATS
        ):
            if total is not None and available is not None and available > total:
                seating_update["available_seats"] = total

        if changed in (None, CascadeField.PRICING_TYPE):
            if payload.pricing.type == PricingType.FREE and payload.pricing.amount != 0:
                pricing_update["amount"] = Decimal("0")

        if not seating_update and not pricing_update:
            return payload

        update = {}
        if seating_update:
            update["seating"] = payload.seating.model_copy(update=seating_update)
        if pricing_update:
            update["pricing"] = payload.pricing.model_copy(update=pricing_update)
        return payload.model_copy(update=update)
