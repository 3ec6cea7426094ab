"""Payload wire format.

A payload is the JSON text stored with an element: a flat object keyed by
the field keys of its type plus two reserved markers written on save.
"""

import json
import logging
from typing import Any, Mapping

from .consts import (
    PAYLOAD_TYPE_KEY,
    PAYLOAD_VERSION_DEFAULT,
    PAYLOAD_VERSION_KEY,
    PAYLOAD_VERSION_OVERRIDES,
)
from .errors import PayloadError

logger = logging.getLogger(__name__)

RESERVED_KEYS = (PAYLOAD_TYPE_KEY, PAYLOAD_VERSION_KEY)


def parse_payload(raw: Any) -> dict[str, Any]:
    """Decode a stored payload into a fresh dict.

    Args:
        raw: JSON text or bytes, or an already decoded mapping

    Returns:
        A new dict; mutating it never affects the caller's data

    Raises:
        PayloadError: If the text is not valid JSON or is not a JSON object
    """
    if isinstance(raw, Mapping):
        return dict(raw)

    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PayloadError("Payload is not valid UTF-8") from e

    if not isinstance(raw, str):
        raise PayloadError(f"Unsupported payload type: {type(raw).__name__}")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PayloadError(f"Invalid JSON payload: {e.msg}") from e

    if not isinstance(data, dict):
        raise PayloadError("Payload must be a JSON object")
    return data


def encode_payload(data: Mapping[str, Any], indent: int | None = 2) -> str:
    """Encode a payload, keeping key order."""
    if indent is None:
        return json.dumps(dict(data), ensure_ascii=False, separators=(",", ":"))
    return json.dumps(dict(data), ensure_ascii=False, indent=indent)


def schema_version(type_id: int) -> int:
    return PAYLOAD_VERSION_OVERRIDES.get(type_id, PAYLOAD_VERSION_DEFAULT)


def stamp_payload(raw: Any, type_id: int) -> str:
    """Write the reserved type and version markers, as done when an element is saved.

    The markers are round-tripped by the rest of the system and are not
    validated here.

    Raises:
        PayloadError: If ``raw`` cannot be decoded
    """
    data = parse_payload(raw)
    data[PAYLOAD_TYPE_KEY] = type_id
    data[PAYLOAD_VERSION_KEY] = schema_version(type_id)
    logger.debug(f"Stamped payload for element type {type_id} (version {data[PAYLOAD_VERSION_KEY]})")
    return encode_payload(data, indent=None)


def strip_reserved(data: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if key not in RESERVED_KEYS}
