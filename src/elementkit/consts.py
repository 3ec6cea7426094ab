"""Constants for elementkit"""

# ==================== File Paths ====================
LOG_FILE_DEFAULT = "data/elementkit.log"


# ==================== CSS Classes ====================
CSS_CONTAINER = "element-container"
CSS_LABEL = "element-label"
CSS_INPUT = "element-input"
CSS_ERROR = "element-error"
CSS_HELP_TEXT = "element-help-text"
CSS_FORM = "source-elements-form"


# ==================== Messages ====================
MSG_UNKNOWN_ELEMENT_TYPE = "Unknown element type"
MSG_INVALID_JSON = "Invalid JSON data"
MSG_AUTH_REQUIRED = "authentication required"
MSG_REQUEST_TIMEOUT = "request timed out"


# ==================== Payload Wire Format ====================
PAYLOAD_TYPE_KEY = "ElementType"
PAYLOAD_VERSION_KEY = "Version"
PAYLOAD_VERSION_DEFAULT = 1
# Block Input V2 is stored as version 3; every other type is version 1.
PAYLOAD_VERSION_OVERRIDES = {14: 3}


# ==================== Remote Rendering ====================
RENDER_ENDPOINT = "/api/v1/source/RenderElementHtml/{instance_id}"
TIMEOUT_RENDER_REQUEST = 15  # seconds
RENDER_MAX_WORKERS = 4


# ==================== Template Names ====================
TEMPLATE_CONTAINER = "container.html"
TEMPLATE_ERROR = "error.html"
TEMPLATE_UNSUPPORTED = "unsupported.html"
TEMPLATE_FORM = "form.html"
TEMPLATE_DOCUMENT = "document.html"
TEMPLATE_STATUS = "status.html"

DOCUMENT_TITLE = "Element Preview"
