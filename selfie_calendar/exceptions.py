"""Exception hierarchy for selfie_calendar.

The expansion engine itself never raises these: malformed events and activities
are recovered locally and skipped. They are raised by the collaborators around
it (stores, configuration, clock) so callers can tell those failures apart.
"""


class SelfieCalendarError(Exception):
    """Base exception for all selfie_calendar errors."""


class ConfigError(SelfieCalendarError):
    """Configuration could not be loaded.

    Raised when an explicitly requested config file is missing or unreadable.
    Individual bad values never raise; they fall back to defaults.
    """


class StoreError(SelfieCalendarError):
    """An event or activity store operation failed.

    Raised when:
    - The backend cannot be reached
    - The backend answers with an error status
    - The response body is not the expected shape
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StoreNotFoundError(StoreError):
    """The requested row does not exist (HTTP 404 or missing in-memory id)."""


class StoreUnavailableError(StoreError):
    """The backend could not be reached (connection error or timeout)."""


class ClockError(SelfieCalendarError):
    """A virtual clock value could not be parsed or persisted."""
