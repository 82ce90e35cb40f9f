"""User identity: login by (CPF, birth date) and profile maintenance."""
from __future__ import annotations

from pydantic import ValidationError as SchemaError

from clinic_booking.errors import NotFoundError, ValidationError
from clinic_booking.logging_config import get_logger
from clinic_booking.models import Booking, LoginResult, ProfileUpdate, User
from clinic_booking.national_id import normalize_cpf, validate_cpf
from clinic_booking.store import BOOKINGS, USERS, RecordStore

logger = get_logger(__name__)

_IMMUTABLE_FIELDS = frozenset({"id", "cpf", "birth_date", "created_at"})
# stored as "" when blank, so an explicit null leaves the current value alone
_TEXT_FIELDS = frozenset({"name", "phone", "email"})


class IdentityManager:
    """Looks up or creates users; one user per (cpf, birth_date)."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def login(self, cpf: str, birth_date: str) -> LoginResult:
        """Authenticate, creating a blank profile on the first visit.

        ``user_exists`` and ``has_bookings`` tell the caller whether to open the dashboard
        or go straight to the booking wizard.
        """
        if not validate_cpf(cpf):
            raise ValidationError("Invalid CPF")
        cpf = normalize_cpf(cpf)

        users = self.store.load(USERS)
        raw = next(
            (u for u in users if u.get("cpf") == cpf and u.get("birth_date") == birth_date),
            None,
        )
        if raw is not None:
            user = User.model_validate(raw)
            bookings = [
                Booking.model_validate(b)
                for b in self.store.find(BOOKINGS, lambda b: b.get("user_id") == user.id)
            ]
            return LoginResult(
                user_exists=True,
                has_bookings=len(bookings) > 0,
                user=user,
                bookings=bookings,
            )

        user = User(cpf=cpf, birth_date=birth_date)
        users.append(user.model_dump(mode="json"))
        self.store.save(USERS, users)
        logger.info("user_created", user_id=user.id)
        return LoginResult(user_exists=False, has_bookings=False, user=user, bookings=[])

    def get_by_id(self, user_id: str) -> User:
        raw = self.store.get(USERS, user_id)
        if raw is None:
            raise NotFoundError("User not found")
        return User.model_validate(raw)

    def update_profile(self, user_id: str, fields: ProfileUpdate | dict) -> User:
        """Merge profile fields into the stored user; identity fields are ignored."""
        if isinstance(fields, ProfileUpdate):
            changes = fields.model_dump(exclude_unset=True)
        else:
            changes = dict(fields)
        changes = {
            k: v
            for k, v in changes.items()
            if k not in _IMMUTABLE_FIELDS and not (v is None and k in _TEXT_FIELDS)
        }

        current = self.get_by_id(user_id)
        try:
            user = User.model_validate({**current.model_dump(), **changes})
        except SchemaError as exc:
            raise ValidationError(f"Invalid profile fields: {exc.error_count()} error(s)") from exc

        self.store.update(USERS, user_id, user.model_dump(mode="json"))
        logger.info("user_profile_updated", user_id=user_id, fields=sorted(changes))
        return user
