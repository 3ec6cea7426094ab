"""Exception definitions for elementkit"""


class ElementKitException(Exception):
    """Base exception for all elementkit errors.

    All custom exceptions in elementkit inherit from this class.
    Use this as a catch-all for elementkit-specific errors when you don't need
    to handle specific exception types.
    """

    pass


class ConfigurationError(ElementKitException):
    """Raised when an element type id or an override table is unusable.

    Validation and rendering never raise this for unknown type ids; they
    report them as data. Use this exception when:
    - A descriptor is required (``SchemaRegistry.require``) but absent
    - An override entry is not a valid descriptor or has a non-numeric key
    - A render kind table names an unknown kind
    """

    pass


class ConfigException(ElementKitException):
    """Raised when configuration validation or loading fails.

    Use this exception when:
    - The configuration file cannot be found
    - The TOML syntax is invalid
    - Configuration validation fails (missing required fields, invalid values)
    """

    pass


class PayloadError(ElementKitException):
    """Raised when a stored payload is not a JSON object."""

    pass


class RenderFault(ElementKitException):
    """Raised inside a fragment generator.

    Never escapes the renderer: it is converted into an error fragment.
    """

    pass


class AcquisitionError(ElementKitException):
    """Raised when fetching pre-rendered markup from the render service fails.

    Use this exception when:
    - The service answers with a non-success status
    - The connection fails or the response cannot be read
    """

    pass


class AuthenticationRequired(AcquisitionError):
    """Raised when no credential is available or the service rejects it (HTTP 401)."""

    pass


class AcquisitionTimeout(AcquisitionError):
    """Raised when a render request exceeds its bounded wait."""

    pass


class UnknownInstanceError(ElementKitException):
    """Raised when a caller asks about an instance id it never activated."""

    pass
