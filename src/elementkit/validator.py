"""Payload validation against element type descriptors.

Validation never raises for bad input: unknown types, undecodable payloads
and rule violations all come back as a ``ValidationResult``.
"""

import logging
import re
from typing import Any, Optional

from .consts import MSG_INVALID_JSON, MSG_UNKNOWN_ELEMENT_TYPE
from .enums import FieldKind
from .errors import PayloadError
from .payload import parse_payload
from .registry import DEFAULT_REGISTRY, Overrides, SchemaRegistry
from .schema import FieldDescriptor, ValidationResult
from .utils import coerce_number, is_blank, to_text

logger = logging.getLogger(__name__)


def _check_pattern(field: FieldDescriptor, pattern: str, value: str) -> Optional[str]:
    try:
        matched = re.search(pattern, value) is not None
    except re.error as e:
        logger.warning(f"Invalid pattern for field '{field.key}': {e}")
        matched = False
    if not matched:
        return f"{field.label} format is invalid"
    return None


def validate_field(field: FieldDescriptor, value: Any) -> list[str]:
    """Check one field value against its descriptor rules."""
    errors = []

    if field.required and is_blank(value):
        errors.append(f"{field.label} is required")

    if is_blank(value) or field.validation is None:
        return errors

    rules = field.validation

    if field.kind == FieldKind.NUMBER:
        number = coerce_number(value)
        if number is None:
            errors.append(f"{field.label} must be a valid number")
        else:
            if rules.min is not None and number < rules.min:
                errors.append(f"{field.label} must be at least {to_text(rules.min)}")
            if rules.max is not None and number > rules.max:
                errors.append(f"{field.label} must be at most {to_text(rules.max)}")

    if rules.pattern and isinstance(value, str):
        error = _check_pattern(field, rules.pattern, value)
        if error:
            errors.append(error)

    return errors


def validate(
    raw_payload: Any,
    type_id: Any,
    overrides: Optional[Overrides] = None,
    registry: SchemaRegistry = DEFAULT_REGISTRY,
) -> ValidationResult:
    """Validate a stored payload against the descriptor of ``type_id``.

    Args:
        raw_payload: Encoded payload (or an already decoded mapping)
        type_id: Element type id
        overrides: Descriptors merged over the registry for this call
        registry: Registry to resolve against

    Returns:
        ValidationResult with one message per violated rule, in field order
    """
    descriptor = registry.resolve(type_id, overrides)
    if descriptor is None:
        return ValidationResult(is_valid=False, errors=[MSG_UNKNOWN_ELEMENT_TYPE])

    try:
        data = parse_payload(raw_payload)
    except PayloadError as e:
        logger.debug(f"Payload for element type {type_id} rejected: {e}")
        return ValidationResult(is_valid=False, errors=[MSG_INVALID_JSON])

    errors = []
    for field in descriptor.fields:
        errors.extend(validate_field(field, data.get(field.key)))

    return ValidationResult.from_errors(errors)
