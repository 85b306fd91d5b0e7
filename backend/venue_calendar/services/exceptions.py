"""
Domain exceptions for the calendar services.

Each carries the HTTP status and a stable code so the API layer can translate
them without knowing individual types.
"""

from typing import Optional


class CalendarError(Exception):
    """Base exception for calendar service errors."""

    status_code: int = 400
    code: str = "calendar_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFound(CalendarError):
    """The resource does not exist or is not visible to this org."""

    status_code = 404
    code = "not_found"

    def __init__(self, resource: str, identifier):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier} not found")


class NotRecurring(CalendarError):
    code = "not_recurring"

    def __init__(self, event_id: int):
        self.event_id = event_id
        super().__init__(f"Event {event_id} is not a weekly event")


class InvalidDateFormat(CalendarError):
    code = "invalid_date_format"

    def __init__(self, field: str, value):
        self.field = field
        self.value = value
        super().__init__(f"{field} must be a date in YYYY-MM-DD form, got {value!r}")


class InvalidRange(CalendarError):
    code = "invalid_range"


class CrossTenantReference(CalendarError):
    code = "cross_tenant_reference"

    def __init__(self, resource: str, identifiers):
        self.resource = resource
        self.identifiers = list(identifiers)
        joined = ", ".join(str(i) for i in self.identifiers)
        super().__init__(f"Unknown {resource} for this organization: {joined}")


class EventValidationError(CalendarError):
    """Input violates an event, instance or lineup rule."""

    code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class UnsupportedBackend(CalendarError):
    """The database dialect has no insert-or-skip statement we can use."""

    status_code = 500
    code = "unsupported_backend"

    def __init__(self, dialect: str):
        self.dialect = dialect
        super().__init__(f"Materialization does not support the {dialect} database")
