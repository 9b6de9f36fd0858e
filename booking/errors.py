class BookingError(ValueError):
    """Base class for errors raised by the booking calculation core."""


class FormatError(BookingError):
    """A booking reference does not have the NCB-YYYYMMDD-XXXXXX shape."""


class InvalidDateError(BookingError):
    """A date does not exist on the calendar or cannot be used as one."""


class InvalidTimeError(BookingError):
    """A time of day is not a valid 24-hour HH:mm value."""
