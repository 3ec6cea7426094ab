"""Schema-driven form elements: type registry, payload defaults and
validation, local HTML rendering and remote render acquisition."""

from .coordinator import Presentation, RenderModeCoordinator
from .defaults import default_data, generate_defaults
from .enums import FieldKind, RemoteState, RenderKind, RenderMode
from .errors import (
    AcquisitionError,
    AcquisitionTimeout,
    AuthenticationRequired,
    ConfigException,
    ConfigurationError,
    ElementKitException,
    PayloadError,
    RenderFault,
    UnknownInstanceError,
)
from .form import compose_form
from .payload import encode_payload, parse_payload, stamp_payload
from .registry import BUILTIN_ELEMENT_TYPES, DEFAULT_REGISTRY, SchemaRegistry, resolve
from .remote import HttpRenderService, RemoteRenderCoordinator, RemoteRenderState, RemoteView
from .renderer import ElementRenderer
from .schema import (
    CssClasses,
    ElementInstance,
    ElementTypeDescriptor,
    FieldDescriptor,
    RenderOptions,
    ValidationResult,
)
from .validator import validate

__all__ = [
    "AcquisitionError",
    "AcquisitionTimeout",
    "AuthenticationRequired",
    "BUILTIN_ELEMENT_TYPES",
    "ConfigException",
    "ConfigurationError",
    "CssClasses",
    "DEFAULT_REGISTRY",
    "ElementInstance",
    "ElementKitException",
    "ElementRenderer",
    "ElementTypeDescriptor",
    "FieldDescriptor",
    "FieldKind",
    "HttpRenderService",
    "PayloadError",
    "Presentation",
    "RemoteRenderCoordinator",
    "RemoteRenderState",
    "RemoteState",
    "RemoteView",
    "RenderFault",
    "RenderKind",
    "RenderMode",
    "RenderModeCoordinator",
    "RenderOptions",
    "SchemaRegistry",
    "UnknownInstanceError",
    "ValidationResult",
    "compose_form",
    "default_data",
    "encode_payload",
    "generate_defaults",
    "parse_payload",
    "resolve",
    "stamp_payload",
    "validate",
]
