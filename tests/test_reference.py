import pytest

from clinic_booking.config import SEED_CITIES
from clinic_booking.errors import ConflictError, NotFoundError, ValidationError
from clinic_booking.reference import ReferenceDataProvider
from clinic_booking.store import CITIES, InMemoryRecordStore


def test_list_cities(services):
    assert services.reference.list_cities() == [
        {"id": 1, "name": "Springfield"},
        {"id": 2, "name": "Shelbyville"},
    ]


def test_list_clinics(services):
    assert services.reference.list_clinics(1) == [
        {"id": 1, "name": "Central Clinic", "address": "1 Main Street"}
    ]


def test_ids_from_path_strings_are_accepted(services):
    assert services.reference.list_specialties("1") == [
        {"id": 1, "name": "General Medicine"},
        {"id": 2, "name": "Cardiology"},
    ]


def test_list_doctors(services):
    assert services.reference.list_doctors(1, 2) == ["Dr. B", "Dr. C"]


@pytest.mark.parametrize("city_id", [99, "abc", None])
def test_unknown_city(services, city_id):
    with pytest.raises(NotFoundError):
        services.reference.list_clinics(city_id)


def test_unknown_clinic(services):
    with pytest.raises(NotFoundError):
        services.reference.list_specialties(42)


@pytest.mark.parametrize("clinic_id,specialty_id", [(1, 3), (2, 1), (99, 1), (1, 99)])
def test_doctors_for_pair_not_in_hierarchy(services, clinic_id, specialty_id):
    """An invalid pair is an error, never an empty doctor list."""
    with pytest.raises(NotFoundError):
        services.reference.list_doctors(clinic_id, specialty_id)


def test_find_offering_by_names(services):
    offering = services.reference.find_offering("North Clinic", "Pediatrics")
    assert offering.city.name == "Shelbyville"
    assert offering.clinic.id == 2
    assert offering.specialty.doctors == ["Dr. D"]

    with pytest.raises(NotFoundError):
        services.reference.find_offering("North Clinic", "Cardiology")


def test_default_catalogue_is_seeded_once():
    store = InMemoryRecordStore()
    reference = ReferenceDataProvider(store)
    assert len(reference.list_cities()) == len(SEED_CITIES)

    reference.add_city("Curitiba")
    ReferenceDataProvider(store)
    assert len(store.load(CITIES)) == len(SEED_CITIES) + 1


def test_add_city_clinic_and_specialty(services):
    city = services.reference.add_city("Capital City")
    assert city == {"id": 3, "name": "Capital City"}

    clinic = services.reference.add_clinic(city["id"], "East Clinic", "9 Oak Avenue")
    assert clinic["id"] == 3
    assert services.reference.list_clinics(3) == [clinic]

    specialty = services.reference.add_specialty(clinic["id"], "Cardiology", ["Dr. E", " "])
    assert specialty == {"id": 2, "name": "Cardiology", "doctors": ["Dr. E"]}

    brand_new = services.reference.add_specialty(clinic["id"], "Neurology", ["Dr. F"])
    assert brand_new["id"] == 4
    assert services.reference.list_doctors(3, 4) == ["Dr. F"]


def test_add_specialty_twice_merges_doctors(services):
    services.reference.add_specialty(1, "General Medicine", ["Dr. A", "Dr. Z"])
    assert services.reference.list_doctors(1, 1) == ["Dr. A", "Dr. Z"]


def test_admin_mutations_validate_input(services):
    with pytest.raises(ValidationError):
        services.reference.add_city("   ")
    with pytest.raises(NotFoundError):
        services.reference.add_clinic(99, "Nowhere Clinic")
    with pytest.raises(NotFoundError):
        services.reference.add_specialty(99, "Cardiology")


def test_clinic_names_are_unique_within_a_city(services):
    with pytest.raises(ConflictError):
        services.reference.add_clinic(1, "central clinic")

    clinic = services.reference.add_clinic(2, "Central Clinic", "5 River Lane")
    services.reference.add_specialty(clinic["id"], "General Medicine", ["Dr. Z"])

    offering = services.reference.find_offering("Central Clinic", "General Medicine", "Shelbyville")
    assert offering.clinic.id == clinic["id"]
    assert offering.specialty.doctors == ["Dr. Z"]
    assert services.reference.find_offering("Central Clinic", "General Medicine", "Springfield").clinic.id == 1
    with pytest.raises(NotFoundError):
        services.reference.find_offering("North Clinic", "Pediatrics", "Springfield")


def test_list_all_clinics(services):
    assert services.reference.list_all_clinics() == [
        {"id": 1, "name": "Central Clinic", "address": "1 Main Street", "city_id": 1, "city_name": "Springfield"},
        {"id": 2, "name": "North Clinic", "address": "22 Elm Road", "city_id": 2, "city_name": "Shelbyville"},
    ]


def test_list_all_specialties_merges_shared_catalogue_entries(services):
    services.reference.add_specialty(2, "Cardiology", ["Dr. E"])

    assert services.reference.list_all_specialties() == [
        {"id": 1, "name": "General Medicine", "clinic_ids": [1]},
        {"id": 2, "name": "Cardiology", "clinic_ids": [1, 2]},
        {"id": 3, "name": "Pediatrics", "clinic_ids": [2]},
    ]
