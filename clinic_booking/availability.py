"""Open dates, turns and times for a clinic + specialty.

Dates run from tomorrow through the configured horizon, weekdays only. Each clock time in
the turn template carries a remaining-capacity counter: ``slot_capacity`` per doctor, minus
the non-cancelled bookings already holding that (date, time). An admin slot-inventory
record for (clinic, specialty, date, turn) additionally caps how many bookings the whole turn
accepts.
"""
from __future__ import annotations

from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from clinic_booking.config import DEFAULT_HORIZON_DAYS, DEFAULT_SLOT_CAPACITY, TURN_TIMES
from clinic_booking.errors import ConflictError, NotFoundError, ValidationError
from clinic_booking.models import AvailableDate, BookingStatus, Offering, TurnAvailability
from clinic_booking.reference import ReferenceDataProvider
from clinic_booking.store import BOOKINGS, SLOTS, RecordStore


@dataclass
class _Usage:
    per_time: Counter  # (date, time) -> bookings, filtered by doctor when one is given
    per_turn: Counter  # (date, turn) -> bookings across every doctor
    turn_caps: dict[tuple[str, str], int]


class AvailabilityCalculator:
    def __init__(
        self,
        store: RecordStore,
        reference: ReferenceDataProvider,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        slot_capacity: int = DEFAULT_SLOT_CAPACITY,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.reference = reference
        self.horizon_days = horizon_days
        self.slot_capacity = slot_capacity
        self.today = today

    def horizon_dates(self) -> list[str]:
        """Weekdays from tomorrow through the horizon, ascending, as ISO strings."""
        start = self.today()
        days = (start + timedelta(days=offset) for offset in range(1, self.horizon_days + 1))
        return [d.isoformat() for d in days if d.weekday() < 5]

    # ------------------------------------------------------------------ #
    #  Capacity bookkeeping
    # ------------------------------------------------------------------ #
    def _offering(self, clinic_id: Any, specialty_id: Any, doctor: str | None) -> Offering:
        offering = self.reference.get_offering(clinic_id, specialty_id)
        if doctor is not None and doctor not in offering.specialty.doctors:
            raise NotFoundError(f"Doctor '{doctor}' does not attend this specialty here")
        return offering

    def _time_capacity(self, offering: Offering, doctor: str | None) -> int:
        if doctor is not None:
            return self.slot_capacity
        return self.slot_capacity * len(offering.specialty.doctors)

    def _usage(self, offering: Offering, doctor: str | None) -> _Usage:
        clinic, specialty = offering.clinic, offering.specialty
        active = self.store.find(
            BOOKINGS,
            lambda b: b.get("city_name") == offering.city.name
            and b.get("clinic_name") == clinic.name
            and b.get("specialty_name") == specialty.name
            and b.get("status") != BookingStatus.CANCELLED.value,
        )
        per_time = Counter(
            (b.get("date"), b.get("time"))
            for b in active
            if doctor is None or b.get("doctor_name") == doctor
        )
        per_turn = Counter((b.get("date"), b.get("turn")) for b in active)
        turn_caps = {
            (s["date"], s["turn"]): int(s["total"])
            for s in self.store.find(
                SLOTS,
                lambda s: s.get("clinic_id") == clinic.id and s.get("specialty_id") == specialty.id,
            )
        }
        return _Usage(per_time=per_time, per_turn=per_turn, turn_caps=turn_caps)

    def _turn(self, day: str, turn: str, capacity: int, usage: _Usage) -> TurnAvailability:
        left_by_time = {t: capacity - usage.per_time[(day, t)] for t in TURN_TIMES[turn]}
        times = [t for t, left in left_by_time.items() if left > 0]
        remaining = sum(left_by_time[t] for t in times)

        cap = usage.turn_caps.get((day, turn))
        if cap is not None:
            turn_left = cap - usage.per_turn[(day, turn)]
            if turn_left <= 0:
                times, remaining = [], 0
            else:
                remaining = min(remaining, turn_left)
        return TurnAvailability(open=bool(times), times=times, remaining=remaining)

    # ------------------------------------------------------------------ #
    #  Public API
    # ------------------------------------------------------------------ #
    def compute_available_dates(
        self, clinic_id: Any, specialty_id: Any, doctor: str | None = None
    ) -> list[AvailableDate]:
        """Every weekday in the horizon with per-turn open flag, times and remaining count."""
        offering = self._offering(clinic_id, specialty_id, doctor)
        capacity = self._time_capacity(offering, doctor)
        usage = self._usage(offering, doctor)
        return [
            AvailableDate(
                date=day,
                turns={turn: self._turn(day, turn, capacity, usage) for turn in TURN_TIMES},
            )
            for day in self.horizon_dates()
        ]

    def remaining_capacity(
        self, clinic_id: Any, specialty_id: Any, day: str, time: str, doctor: str | None = None
    ) -> int:
        """Bookings still accepted at ``time`` on ``day`` (turn caps not applied)."""
        offering = self._offering(clinic_id, specialty_id, doctor)
        usage = self._usage(offering, doctor)
        return max(self._time_capacity(offering, doctor) - usage.per_time[(day, time)], 0)

    def booked_in_turn(self, clinic_id: Any, specialty_id: Any, day: str, turn: str) -> int:
        """Non-cancelled bookings in (day, turn) across every doctor of the offering."""
        offering = self._offering(clinic_id, specialty_id, None)
        return self._usage(offering, None).per_turn[(day, getattr(turn, "value", turn))]

    def check_bookable(
        self, clinic_id: Any, specialty_id: Any, doctor: str, day: str, turn: str, time: str
    ) -> None:
        """Raise unless (day, turn, time) is a bookable slot for the doctor right now."""
        try:
            date.fromisoformat(day)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid date '{day}', expected YYYY-MM-DD") from None
        if day not in self.horizon_dates():
            raise ValidationError(f"{day} is not an offered weekday within the next {self.horizon_days} days")

        turn = getattr(turn, "value", turn)
        if turn not in TURN_TIMES:
            raise ValidationError(f"Invalid turn '{turn}'")
        if time not in TURN_TIMES[turn]:
            raise ValidationError(f"{time} is not a {turn} time")

        offering = self._offering(clinic_id, specialty_id, doctor)
        availability = self._turn(day, turn, self._time_capacity(offering, doctor), self._usage(offering, doctor))
        if time not in availability.times:
            raise ConflictError(f"{day} {time} with {doctor} is no longer available")
