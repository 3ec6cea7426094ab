"""Enumeration type definitions"""

from enum import Enum


class FieldKind(str, Enum):
    """Editor control kinds a field descriptor can declare"""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    SELECT = "select"
    CHECKBOX = "checkbox"
    TEXTAREA = "textarea"
    URL = "url"
    EMAIL = "email"
    COLOR = "color"
    JSON = "json"


class RenderKind(str, Enum):
    """Fragment generators known to the renderer"""

    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    SELECT = "select"
    DATE = "date"
    CHECKBOX = "checkbox"
    FILE = "file"
    URL = "url"
    EMAIL = "email"
    COLOR = "color"
    RADIO = "radio"
    RICH_TEXT = "rich_text"
    UNSUPPORTED = "unsupported"


class RemoteState(str, Enum):
    IDLE = "idle"
    CHECKING_AUTH = "checking-auth"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class RenderMode(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
