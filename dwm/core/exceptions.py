"""
Platform-wide exception hierarchy.

Services raise these types; ``dwm.utils.errors.register_error_handlers``
maps them to JSON responses once for every blueprint, so callers never
import exception classes from service modules to translate them.

Usage:
    from dwm.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Department", resource_id="DEP-0001")
    raise ValidationError("Name is required", details={"name": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested record does not exist.

    Args:
        resource: Human-readable entity name (e.g. "SOP", "WorkTask").
        resource_id: The id that was looked up.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Distinct from a malformed request (caught in the blueprint): the data was
    well-formed but broke a rule, e.g. a missing required field, an unknown
    enum value or a department parent that would create a cycle.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a value that must be unique.

    Maps to HTTP 409.

    Args:
        resource: Entity name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class StateConflictError(Exception):
    """Base for operations refused because of a record's current state.

    Maps to HTTP 409 with ``ERR_CONFLICT_STATE``.
    """
