"""Administrative operations: placeholder login, statistics and slot inventory."""
from __future__ import annotations

from collections import Counter
from collections.abc import Callable
from datetime import date
from typing import Any

from clinic_booking.availability import AvailabilityCalculator
from clinic_booking.config import Settings
from clinic_booking.errors import NotFoundError, ValidationError
from clinic_booking.logging_config import get_logger
from clinic_booking.models import AdminStats, BookingStatus, SlotInventory, SlotInventoryView, Turn
from clinic_booking.reference import ReferenceDataProvider
from clinic_booking.store import BOOKINGS, SLOTS, USERS, RecordStore

logger = get_logger(__name__)


class AdminService:
    def __init__(
        self,
        store: RecordStore,
        reference: ReferenceDataProvider,
        availability: AvailabilityCalculator,
        settings: Settings,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.reference = reference
        self.availability = availability
        self.settings = settings
        self.today = today

    def login(self, username: str, password: str) -> dict:
        # TODO: replace the configured placeholder credentials with real admin accounts
        if username != self.settings.admin_username or password != self.settings.admin_password:
            raise ValidationError("Invalid credentials")
        return {"id": "admin", "username": username, "name": self.settings.admin_name}

    def stats(self) -> AdminStats:
        bookings = self.store.load(BOOKINGS)
        today = self.today().isoformat()
        by_status = Counter(b.get("status") for b in bookings)
        return AdminStats(
            total_bookings=len(bookings),
            total_users=len(self.store.load(USERS)),
            bookings_today=sum(1 for b in bookings if b.get("date") == today),
            bookings_by_status={s.value: by_status.get(s.value, 0) for s in BookingStatus},
        )

    def add_slot(self, clinic_id: Any, specialty_id: Any, day: str, turn: str, total: int) -> SlotInventory:
        """Cap how many bookings (clinic, specialty, day, turn) accepts; replaces an earlier cap."""
        offering = self.reference.get_offering(clinic_id, specialty_id)
        try:
            date.fromisoformat(day)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid date '{day}', expected YYYY-MM-DD") from None
        try:
            turn = Turn(turn)
        except ValueError:
            raise ValidationError(f"Invalid turn '{turn}'") from None
        if int(total) <= 0:
            raise ValidationError("Slot total must be positive")

        slot = SlotInventory(
            clinic_id=offering.clinic.id,
            specialty_id=offering.specialty.id,
            date=day,
            turn=turn,
            total=int(total),
        )
        slots = [
            s
            for s in self.store.load(SLOTS)
            if (s.get("clinic_id"), s.get("specialty_id"), s.get("date"), s.get("turn"))
            != (slot.clinic_id, slot.specialty_id, slot.date, slot.turn.value)
        ]
        slots.append(slot.model_dump(mode="json"))
        self.store.save(SLOTS, slots)
        logger.info(
            "slot_inventory_set",
            clinic_id=slot.clinic_id,
            specialty_id=slot.specialty_id,
            date=slot.date,
            turn=slot.turn.value,
            total=slot.total,
        )
        return slot

    def list_slots(self) -> list[SlotInventoryView]:
        """Every slot cap with clinic and specialty names and the bookings still left."""
        views = []
        for raw in self.store.load(SLOTS):
            slot = SlotInventory.model_validate(raw)
            offering = self.reference.get_offering(slot.clinic_id, slot.specialty_id)
            booked = self.availability.booked_in_turn(slot.clinic_id, slot.specialty_id, slot.date, slot.turn)
            views.append(
                SlotInventoryView(
                    **slot.model_dump(),
                    clinic_name=offering.clinic.name,
                    specialty_name=offering.specialty.name,
                    booked=booked,
                    remaining=max(slot.total - booked, 0),
                )
            )
        return views

    def remove_slot(self, slot_id: str) -> None:
        slots = self.store.load(SLOTS)
        remaining = [s for s in slots if s.get("id") != slot_id]
        if len(remaining) == len(slots):
            raise NotFoundError("Slot not found")
        self.store.save(SLOTS, remaining)
        logger.info("slot_inventory_removed", slot_id=slot_id)
