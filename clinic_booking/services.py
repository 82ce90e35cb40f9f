"""Wires the store and every booking component together."""
from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date

from clinic_booking.admin import AdminService
from clinic_booking.availability import AvailabilityCalculator
from clinic_booking.bookings import BookingManager
from clinic_booking.config import Settings, load_settings
from clinic_booking.identity import IdentityManager
from clinic_booking.reference import ReferenceDataProvider
from clinic_booking.slots import Slot
from clinic_booking.store import RecordStore, build_store
from clinic_booking.wizard import BookingWizard


@dataclass
class Services:
    settings: Settings
    store: RecordStore
    identity: IdentityManager
    reference: ReferenceDataProvider
    availability: AvailabilityCalculator
    bookings: BookingManager
    admin: AdminService
    wizard: BookingWizard
    slots: list[Slot]


def build_services(
    settings: Settings | None = None,
    store: RecordStore | None = None,
    seed: Sequence[dict] | None = None,
    today: Callable[[], date] = date.today,
) -> Services:
    settings = settings or load_settings()
    store = store if store is not None else build_store(settings.data_dir)

    reference = ReferenceDataProvider(store, seed=seed)
    availability = AvailabilityCalculator(
        store,
        reference,
        horizon_days=settings.horizon_days,
        slot_capacity=settings.slot_capacity,
        today=today,
    )
    bookings = BookingManager(store, reference, availability)
    identity = IdentityManager(store)
    wizard = BookingWizard(reference, availability, bookings, identity)
    return Services(
        settings=settings,
        store=store,
        identity=identity,
        reference=reference,
        availability=availability,
        bookings=bookings,
        admin=AdminService(store, reference, availability, settings, today=today),
        wizard=wizard,
        slots=wizard.slot_definitions,
    )
