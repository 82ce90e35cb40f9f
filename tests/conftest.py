"""Shared test fixtures."""
from datetime import date

import pytest

from clinic_booking.config import Settings
from clinic_booking.models import BookingRequest
from clinic_booking.services import build_services
from clinic_booking.store import InMemoryRecordStore

# Monday; the 30-day horizon then runs 2024-05-07 .. 2024-06-05
TODAY = date(2024, 5, 6)
FIRST_WEEKDAY = "2024-05-07"

VALID_CPF = "11144477735"
OTHER_VALID_CPF = "52998224725"
BIRTH_DATE = "1990-01-01"

SEED = [
    {
        "id": 1,
        "name": "Springfield",
        "clinics": [
            {
                "id": 1,
                "name": "Central Clinic",
                "address": "1 Main Street",
                "specialties": [
                    {"id": 1, "name": "General Medicine", "doctors": ["Dr. A"]},
                    {"id": 2, "name": "Cardiology", "doctors": ["Dr. B", "Dr. C"]},
                ],
            },
        ],
    },
    {
        "id": 2,
        "name": "Shelbyville",
        "clinics": [
            {
                "id": 2,
                "name": "North Clinic",
                "address": "22 Elm Road",
                "specialties": [
                    {"id": 3, "name": "Pediatrics", "doctors": ["Dr. D"]},
                ],
            },
        ],
    },
]


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def services(store, settings):
    """All components wired over a fresh in-memory store with a fixed 'today'."""
    return build_services(settings, store=store, seed=SEED, today=lambda: TODAY)


@pytest.fixture
def user(services):
    return services.identity.login(VALID_CPF, BIRTH_DATE).user


@pytest.fixture
def booking_request(user):
    def _create(**overrides) -> BookingRequest:
        fields = {
            "user_id": user.id,
            "city_name": "Springfield",
            "clinic_name": "Central Clinic",
            "clinic_address": "1 Main Street",
            "specialty_name": "General Medicine",
            "doctor_name": "Dr. A",
            "date": FIRST_WEEKDAY,
            "time": "08:00",
            "turn": "morning",
            "notes": "Routine check-up",
        }
        fields.update(overrides)
        return BookingRequest(**fields)

    return _create
