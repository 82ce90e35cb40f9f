"""Exception hierarchy shared by every booking component."""


class BookingError(Exception):
    """Base class for errors reported back to the caller."""

    status_code = 400
    code = "BOOKING_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BookingError):
    """Malformed input: bad national id, unknown status, blank names."""

    code = "VALIDATION_ERROR"


class NotFoundError(BookingError):
    """Unknown user, city, clinic, specialty, booking or slot."""

    status_code = 404
    code = "NOT_FOUND"


class ConflictError(BookingError):
    """The operation clashes with current state (illegal transition, full slot)."""

    status_code = 409
    code = "CONFLICT"


class StoreError(BookingError):
    """A collection could not be written."""

    status_code = 500
    code = "STORE_ERROR"
