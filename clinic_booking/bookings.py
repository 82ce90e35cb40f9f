"""Booking creation, status transitions and listings."""
from __future__ import annotations

from clinic_booking.availability import AvailabilityCalculator
from clinic_booking.config import BLANK_NAME_PLACEHOLDER
from clinic_booking.errors import ConflictError, NotFoundError, ValidationError
from clinic_booking.logging_config import get_logger
from clinic_booking.models import AdminBookingView, Booking, BookingRequest, BookingStatus
from clinic_booking.reference import ReferenceDataProvider
from clinic_booking.store import BOOKINGS, USERS, RecordStore

logger = get_logger(__name__)


# Current status → statuses it may move to
VALID_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.SCHEDULED: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def validate_transition(current: BookingStatus, intended: BookingStatus) -> bool:
    """Return True when ``current`` may move to ``intended``."""
    return intended in VALID_TRANSITIONS.get(current, frozenset())


def _parse_status(status: BookingStatus | str) -> BookingStatus:
    try:
        return BookingStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in BookingStatus)
        raise ValidationError(f"Unknown status '{status}'. Choose one of: {allowed}") from None


class BookingManager:
    def __init__(
        self,
        store: RecordStore,
        reference: ReferenceDataProvider,
        availability: AvailabilityCalculator,
        allow_duplicate_day: bool = False,
    ) -> None:
        self.store = store
        self.reference = reference
        self.availability = availability
        self.allow_duplicate_day = allow_duplicate_day

    def create(self, request: BookingRequest | dict) -> Booking:
        """Persist a ``scheduled`` booking after re-checking the chosen slot."""
        if not isinstance(request, BookingRequest):
            request = BookingRequest.model_validate(request)

        if self.store.get(USERS, request.user_id) is None:
            raise NotFoundError("User not found")

        offering = self.reference.find_offering(request.clinic_name, request.specialty_name, request.city_name)
        if request.doctor_name not in offering.specialty.doctors:
            raise NotFoundError(f"Doctor '{request.doctor_name}' does not attend {request.specialty_name} here")

        self.availability.check_bookable(
            offering.clinic.id,
            offering.specialty.id,
            request.doctor_name,
            request.date,
            request.turn,
            request.time,
        )
        if not self.allow_duplicate_day:
            self._reject_duplicate(request)

        booking = Booking(
            user_id=request.user_id,
            city_name=offering.city.name,
            clinic_name=offering.clinic.name,
            clinic_address=request.clinic_address or offering.clinic.address,
            specialty_name=offering.specialty.name,
            doctor_name=request.doctor_name,
            date=request.date,
            time=request.time,
            turn=request.turn,
            notes=request.notes or "",
        )
        self.store.append(BOOKINGS, booking.model_dump(mode="json"))
        logger.info(
            "booking_created",
            booking_id=booking.id,
            user_id=booking.user_id,
            date=booking.date,
            time=booking.time,
        )
        return booking

    def _reject_duplicate(self, request: BookingRequest) -> None:
        clash = self.store.find(
            BOOKINGS,
            lambda b: b.get("user_id") == request.user_id
            and b.get("city_name") == request.city_name
            and b.get("clinic_name") == request.clinic_name
            and b.get("specialty_name") == request.specialty_name
            and b.get("date") == request.date
            and b.get("status") != BookingStatus.CANCELLED.value,
        )
        if clash:
            raise ConflictError(
                f"You already have a {request.specialty_name} booking at {request.clinic_name} on {request.date}"
            )

    def get(self, booking_id: str) -> Booking:
        raw = self.store.get(BOOKINGS, booking_id)
        if raw is None:
            raise NotFoundError("Booking not found")
        return Booking.model_validate(raw)

    def set_status(self, booking_id: str, status: BookingStatus | str) -> Booking:
        """Move a booking along the status state machine."""
        intended = _parse_status(status)
        booking = self.get(booking_id)
        if not validate_transition(booking.status, intended):
            raise ConflictError(
                f"Cannot change booking status from {booking.status.value} to {intended.value}"
            )
        raw = self.store.update(BOOKINGS, booking_id, {"status": intended.value})
        logger.info(
            "booking_status_changed",
            booking_id=booking_id,
            previous=booking.status.value,
            status=intended.value,
        )
        return Booking.model_validate(raw)

    def cancel(self, booking_id: str) -> Booking:
        """Cancel a booking; cancelling twice is a no-op that still succeeds."""
        booking = self.get(booking_id)
        if booking.status is BookingStatus.CANCELLED:
            return booking
        return self.set_status(booking_id, BookingStatus.CANCELLED)

    def list_by_user(self, user_id: str) -> list[Booking]:
        """Bookings in insertion order, cancelled ones included."""
        return [
            Booking.model_validate(b)
            for b in self.store.find(BOOKINGS, lambda b: b.get("user_id") == user_id)
        ]

    def list_all(self) -> list[AdminBookingView]:
        users = {u.get("id"): u for u in self.store.load(USERS)}
        enriched = []
        for raw in self.store.load(BOOKINGS):
            user = users.get(raw.get("user_id"), {})
            enriched.append(
                AdminBookingView.model_validate(
                    {
                        **raw,
                        "user_name": user.get("name") or BLANK_NAME_PLACEHOLDER,
                        "user_cpf": user.get("cpf", ""),
                        "user_phone": user.get("phone", ""),
                    }
                )
            )
        return enriched
