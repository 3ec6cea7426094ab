import logging
from typing import Any, Optional

from .payload import encode_payload
from .registry import DEFAULT_REGISTRY, Overrides, SchemaRegistry

logger = logging.getLogger(__name__)


def default_data(
    type_id: Any,
    overrides: Optional[Overrides] = None,
    registry: SchemaRegistry = DEFAULT_REGISTRY,
) -> dict[str, Any]:
    """Default payload as a dict: declared defaults only, in field order."""
    descriptor = registry.resolve(type_id, overrides)
    if descriptor is None:
        logger.debug(f"No descriptor for element type {type_id}, using empty defaults")
        return {}

    return {
        field.key: field.default_value for field in descriptor.fields if field.has_default
    }


def generate_defaults(
    type_id: Any,
    overrides: Optional[Overrides] = None,
    registry: SchemaRegistry = DEFAULT_REGISTRY,
) -> str:
    """Generate the canonical default payload for an element type.

    Args:
        type_id: Element type id
        overrides: Descriptors merged over the registry for this call
        registry: Registry to resolve against

    Returns:
        Encoded JSON object holding exactly the fields that declare a default,
        in descriptor order. ``"{}"`` for an unknown type id.
    """
    return encode_payload(default_data(type_id, overrides, registry))
