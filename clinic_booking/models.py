"""Pydantic records persisted in the store and returned by the services.

Records travel through the store as plain dicts (``model_dump(mode="json")``) and are
validated back into these models on the way out.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from clinic_booking.config import AFTERNOON, MORNING


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Turn(str, Enum):
    """Half-day scheduling window."""

    MORNING = MORNING
    AFTERNOON = AFTERNOON


class BookingStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class User(BaseModel):
    id: str = Field(default_factory=new_id)
    cpf: str
    birth_date: str
    name: str = ""
    phone: str = ""
    health_card: str | None = None
    email: str = ""
    created_at: str = Field(default_factory=utc_now)


class ProfileUpdate(BaseModel):
    """Editable profile fields; unset fields are left untouched."""

    name: str | None = None
    phone: str | None = None
    health_card: str | None = None
    email: str | None = None


class Specialty(BaseModel):
    id: int
    name: str
    doctors: list[str] = Field(default_factory=list)


class Clinic(BaseModel):
    id: int
    name: str
    address: str = ""
    specialties: list[Specialty] = Field(default_factory=list)


class City(BaseModel):
    id: int
    name: str
    clinics: list[Clinic] = Field(default_factory=list)


class Offering(BaseModel):
    """A specialty as offered by one clinic in one city."""

    city: City
    clinic: Clinic
    specialty: Specialty


class BookingRequest(BaseModel):
    user_id: str
    city_name: str
    clinic_name: str
    clinic_address: str = ""
    specialty_name: str
    doctor_name: str
    date: str
    time: str
    turn: Turn
    notes: str | None = None


class Booking(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    city_name: str
    clinic_name: str
    clinic_address: str = ""
    specialty_name: str
    doctor_name: str
    date: str
    time: str
    turn: Turn
    notes: str = ""
    status: BookingStatus = BookingStatus.SCHEDULED
    created_at: str = Field(default_factory=utc_now)


class AdminBookingView(Booking):
    """Booking enriched with the owner's contact details for the admin listing."""

    user_name: str
    user_cpf: str = ""
    user_phone: str = ""


class LoginResult(BaseModel):
    success: bool = True
    user_exists: bool
    has_bookings: bool
    user: User
    bookings: list[Booking] = Field(default_factory=list)


class TurnAvailability(BaseModel):
    open: bool
    times: list[str] = Field(default_factory=list)
    remaining: int = 0


class AvailableDate(BaseModel):
    date: str
    turns: dict[str, TurnAvailability]


class SlotInventory(BaseModel):
    """Admin-defined cap on how many bookings a turn can take on a given date."""

    id: str = Field(default_factory=new_id)
    clinic_id: int
    specialty_id: int
    date: str
    turn: Turn
    total: int = Field(..., gt=0)
    created_at: str = Field(default_factory=utc_now)


class SlotInventoryView(SlotInventory):
    """A slot cap as the admin panel lists it: names plus how much of it is left."""

    clinic_name: str = ""
    specialty_name: str = ""
    booked: int = 0
    remaining: int = 0


class AdminStats(BaseModel):
    total_bookings: int
    total_users: int
    bookings_today: int
    bookings_by_status: dict[str, int]
