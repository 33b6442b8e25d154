"""Shared helpers for blueprints and services.

to_service_fields:   camelCase request body → snake_case service data dict
parse_bool:          JSON / query-string truthiness
non_string_errors:   400 details for body fields that must be strings
clean_text:          strip a text field, rejecting non-strings with ValidationError
validation_error:    400 response for malformed requests
"""
import logging

from dwm.core.exceptions import ValidationError
from dwm.utils.errors import E, api_error

logger = logging.getLogger(__name__)

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})


def to_service_fields(data: dict, field_map: dict[str, str]) -> dict:
    """Copy the keys present in ``data`` under their service names.

    Only keys listed in ``field_map`` survive, so a PUT body carries exactly
    the fields the caller sent and the service can shallow-merge them.

        to_service_fields({"parentId": "DEP-0001"}, {"parentId": "parent_id"})
        → {"parent_id": "DEP-0001"}
    """
    return {snake: data[camel] for camel, snake in field_map.items() if camel in data}


def parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUE_STRINGS


def non_string_errors(data: dict, fields) -> dict[str, str]:
    """Fields present in ``data`` whose value is neither a string nor null."""
    return {
        field: "Must be a string."
        for field in fields
        if field in data and data[field] is not None and not isinstance(data[field], str)
    }


def clean_text(value, field: str) -> str:
    """Stripped text for ``field``; None becomes ""."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", details={field: "not a string"})
    return value.strip()


def validation_error(errors: dict[str, str]):
    """400 for a request the blueprint rejected before reaching a service."""
    return api_error(E.VALIDATION_REQUIRED, "Validation failed", details=errors)
