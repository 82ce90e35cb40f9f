"""The city → clinic → specialty → doctor → date → turn → time chain.

A step offers names drawn from the catalogue until the doctor is chosen; from then on its
options come from live availability, so a date, turn or time only shows up while it still
has room.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TypeAlias

from clinic_booking.availability import AvailabilityCalculator
from clinic_booking.reference import ReferenceDataProvider

Context: TypeAlias = dict[str, str | None]


@dataclass(frozen=True, slots=True)
class Slot:
    name: str
    dependencies: Sequence[str]
    options_fn: Callable[[Context], list[str]]

    def options(self, ctx: Context) -> list[str]:
        """Return the options for this slot given the selection so far."""
        return self.options_fn(ctx)


@dataclass(frozen=True, slots=True)
class Resolution:
    selection: Context
    next_slot: str | None
    options: list[str]

    @property
    def complete(self) -> bool:
        return self.next_slot is None


def _id_for(items: list[dict], name: str | None) -> int | None:
    return next((item["id"] for item in items if item["name"] == name), None)


def build_default_slots(reference: ReferenceDataProvider, availability: AvailabilityCalculator) -> list[Slot]:
    """Return the canonical city → clinic → specialty → doctor → date → turn → time chain."""

    def city_id(ctx: Context) -> int | None:
        return _id_for(reference.list_cities(), ctx.get("city"))

    def clinic_id(ctx: Context) -> int | None:
        if (cid := city_id(ctx)) is None:
            return None
        return _id_for(reference.list_clinics(cid), ctx.get("clinic"))

    def specialty_id(ctx: Context) -> int | None:
        if (clid := clinic_id(ctx)) is None:
            return None
        return _id_for(reference.list_specialties(clid), ctx.get("specialty"))

    def open_dates(ctx: Context):
        clid, sid = clinic_id(ctx), specialty_id(ctx)
        if clid is None or sid is None or not ctx.get("doctor"):
            return []
        return availability.compute_available_dates(clid, sid, ctx["doctor"])

    def city_options(_: Context) -> list[str]:
        return [c["name"] for c in reference.list_cities()]

    def clinic_options(ctx: Context) -> list[str]:
        if (cid := city_id(ctx)) is not None:
            return [c["name"] for c in reference.list_clinics(cid)]
        return []

    def specialty_options(ctx: Context) -> list[str]:
        if (clid := clinic_id(ctx)) is not None:
            return [s["name"] for s in reference.list_specialties(clid)]
        return []

    def doctor_options(ctx: Context) -> list[str]:
        clid, sid = clinic_id(ctx), specialty_id(ctx)
        if clid is not None and sid is not None:
            return reference.list_doctors(clid, sid)
        return []

    def date_options(ctx: Context) -> list[str]:
        return [d.date for d in open_dates(ctx) if any(t.open for t in d.turns.values())]

    def turn_options(ctx: Context) -> list[str]:
        day = next((d for d in open_dates(ctx) if d.date == ctx.get("date")), None)
        if day is None:
            return []
        return [name for name, turn in day.turns.items() if turn.open]

    def time_options(ctx: Context) -> list[str]:
        day = next((d for d in open_dates(ctx) if d.date == ctx.get("date")), None)
        if day is None or ctx.get("turn") not in day.turns:
            return []
        return list(day.turns[ctx["turn"]].times)

    return [
        Slot("city", [], city_options),
        Slot("clinic", ["city"], clinic_options),
        Slot("specialty", ["city", "clinic"], specialty_options),
        Slot("doctor", ["city", "clinic", "specialty"], doctor_options),
        Slot("date", ["city", "clinic", "specialty", "doctor"], date_options),
        Slot("turn", ["city", "clinic", "specialty", "doctor", "date"], turn_options),
        Slot("time", ["city", "clinic", "specialty", "doctor", "date", "turn"], time_options),
    ]


def match_option(options: Sequence[str], value: str | None) -> str | None:
    """Case-insensitive exact match against the option list."""
    if value is None:
        return None
    wanted = value.strip().lower()
    return next((o for o in options if o.lower() == wanted), None)


def resolve_selection(slots: Sequence[Slot], selection: Mapping[str, str | None]) -> Resolution:
    """Clean a partial selection and return the next slot to fill with its options.

    Values are kept in chain order while they remain valid options; the first missing or
    invalid value clears itself and everything downstream.
    """
    cleaned: Context = {slot.name: None for slot in slots}
    for slot in slots:
        options = slot.options(cleaned)
        matched = match_option(options, selection.get(slot.name))
        if matched is None:
            return Resolution(selection=cleaned, next_slot=slot.name, options=options)
        cleaned[slot.name] = matched
    return Resolution(selection=cleaned, next_slot=None, options=[])
