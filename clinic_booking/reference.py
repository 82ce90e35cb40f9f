"""Reference hierarchy: city → clinic (UBS) → specialty → doctors.

The hierarchy is stored as one nested record per city in the ``cities`` collection and is
seeded from the built-in catalogue the first time that collection is empty.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from clinic_booking.config import SEED_CITIES
from clinic_booking.errors import ConflictError, NotFoundError, ValidationError
from clinic_booking.logging_config import get_logger
from clinic_booking.models import City, Clinic, Offering, Specialty
from clinic_booking.store import CITIES, RecordStore

logger = get_logger(__name__)


def _as_id(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class ReferenceDataProvider:
    """Read access for the patient flow plus the admin's add operations."""

    def __init__(self, store: RecordStore, seed: Sequence[dict] | None = None) -> None:
        self.store = store
        if not self.store.load(CITIES):
            self.store.save(CITIES, [City.model_validate(c).model_dump() for c in (seed or SEED_CITIES)])

    # ------------------------------------------------------------------ #
    #  Lookups
    # ------------------------------------------------------------------ #
    def _cities(self) -> list[City]:
        return [City.model_validate(c) for c in self.store.load(CITIES)]

    def _city(self, city_id: Any) -> City:
        wanted = _as_id(city_id)
        city = next((c for c in self._cities() if c.id == wanted), None)
        if city is None:
            raise NotFoundError("City not found")
        return city

    def _clinic(self, clinic_id: Any) -> tuple[City, Clinic]:
        wanted = _as_id(clinic_id)
        for city in self._cities():
            for clinic in city.clinics:
                if clinic.id == wanted:
                    return city, clinic
        raise NotFoundError("Clinic not found")

    def get_offering(self, clinic_id: Any, specialty_id: Any) -> Offering:
        city, clinic = self._clinic(clinic_id)
        wanted = _as_id(specialty_id)
        specialty = next((s for s in clinic.specialties if s.id == wanted), None)
        if specialty is None:
            raise NotFoundError("Specialty not offered at this clinic")
        return Offering(city=city, clinic=clinic, specialty=specialty)

    def find_offering(self, clinic_name: str, specialty_name: str, city_name: str | None = None) -> Offering:
        """Resolve booking snapshot names back to the live hierarchy.

        Clinic names are only unique within a city, so pass ``city_name`` whenever it is known.
        """
        for city in self._cities():
            if city_name is not None and city.name != city_name:
                continue
            for clinic in city.clinics:
                if clinic.name != clinic_name:
                    continue
                for specialty in clinic.specialties:
                    if specialty.name == specialty_name:
                        return Offering(city=city, clinic=clinic, specialty=specialty)
        where = f"'{clinic_name}'" if city_name is None else f"'{clinic_name}' in {city_name}"
        raise NotFoundError(f"'{specialty_name}' is not offered at {where}")

    def list_cities(self) -> list[dict]:
        return [{"id": c.id, "name": c.name} for c in self._cities()]

    def list_clinics(self, city_id: Any) -> list[dict]:
        city = self._city(city_id)
        return [{"id": c.id, "name": c.name, "address": c.address} for c in city.clinics]

    def list_specialties(self, clinic_id: Any) -> list[dict]:
        _, clinic = self._clinic(clinic_id)
        return [{"id": s.id, "name": s.name} for s in clinic.specialties]

    def list_doctors(self, clinic_id: Any, specialty_id: Any) -> list[str]:
        return list(self.get_offering(clinic_id, specialty_id).specialty.doctors)

    def list_all_clinics(self) -> list[dict]:
        """Every clinic across cities, for the admin overview."""
        return [
            {"id": cl.id, "name": cl.name, "address": cl.address, "city_id": c.id, "city_name": c.name}
            for c in self._cities()
            for cl in c.clinics
        ]

    def list_all_specialties(self) -> list[dict]:
        """Distinct specialties with the ids of the clinics offering them."""
        specialties: dict[int, dict] = {}
        for city in self._cities():
            for clinic in city.clinics:
                for s in clinic.specialties:
                    entry = specialties.setdefault(s.id, {"id": s.id, "name": s.name, "clinic_ids": []})
                    entry["clinic_ids"].append(clinic.id)
        return sorted(specialties.values(), key=lambda s: s["id"])

    # ------------------------------------------------------------------ #
    #  Admin mutations
    # ------------------------------------------------------------------ #
    def _save(self, cities: list[City]) -> None:
        self.store.save(CITIES, [c.model_dump() for c in cities])

    @staticmethod
    def _require_name(name: str, what: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError(f"{what} name is required")
        return name

    def add_city(self, name: str) -> dict:
        name = self._require_name(name, "City")
        cities = self._cities()
        city = City(id=max((c.id for c in cities), default=0) + 1, name=name)
        cities.append(city)
        self._save(cities)
        logger.info("city_added", city_id=city.id)
        return {"id": city.id, "name": city.name}

    def add_clinic(self, city_id: Any, name: str, address: str = "") -> dict:
        name = self._require_name(name, "Clinic")
        wanted = _as_id(city_id)
        cities = self._cities()
        city = next((c for c in cities if c.id == wanted), None)
        if city is None:
            raise NotFoundError("City not found")
        if any(c.name.lower() == name.lower() for c in city.clinics):
            raise ConflictError(f"{city.name} already has a clinic named '{name}'")
        next_id = max((cl.id for c in cities for cl in c.clinics), default=0) + 1
        clinic = Clinic(id=next_id, name=name, address=(address or "").strip())
        city.clinics.append(clinic)
        self._save(cities)
        logger.info("clinic_added", city_id=city.id, clinic_id=clinic.id)
        return {"id": clinic.id, "name": clinic.name, "address": clinic.address}

    def add_specialty(self, clinic_id: Any, name: str, doctors: Sequence[str] = ()) -> dict:
        """Offer a specialty at a clinic, reusing the catalogue id when the name is known."""
        name = self._require_name(name, "Specialty")
        wanted = _as_id(clinic_id)
        cities = self._cities()
        clinic = next((cl for c in cities for cl in c.clinics if cl.id == wanted), None)
        if clinic is None:
            raise NotFoundError("Clinic not found")

        known = {s.name: s.id for c in cities for cl in c.clinics for s in cl.specialties}
        existing = next((s for s in clinic.specialties if s.name == name), None)
        cleaned = [d.strip() for d in doctors if d and d.strip()]
        if existing is not None:
            existing.doctors.extend(d for d in cleaned if d not in existing.doctors)
            specialty = existing
        else:
            specialty_id = known.get(name, max(known.values(), default=0) + 1)
            specialty = Specialty(id=specialty_id, name=name, doctors=cleaned)
            clinic.specialties.append(specialty)
        self._save(cities)
        logger.info("specialty_added", clinic_id=clinic.id, specialty_id=specialty.id)
        return {"id": specialty.id, "name": specialty.name, "doctors": list(specialty.doctors)}
