"""Built-in element type descriptors and override resolution."""

import logging
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Union

from pydantic import ValidationError

from .enums import FieldKind
from .errors import ConfigurationError
from .schema import ElementTypeDescriptor, FieldDescriptor

logger = logging.getLogger(__name__)

DescriptorLike = Union[ElementTypeDescriptor, Mapping[str, Any]]
Overrides = Mapping[Any, DescriptorLike]


def _field(key: str, label: str, kind: FieldKind, **kwargs) -> FieldDescriptor:
    return FieldDescriptor(key=key, label=label, kind=kind, **kwargs)


def _flag(key: str, label: str, help_text: Optional[str] = None, default: bool = False):
    return _field(key, label, FieldKind.CHECKBOX, default_value=default, help_text=help_text)


def _text(key: str, label: str, help_text: Optional[str] = None, **kwargs):
    return _field(key, label, FieldKind.TEXT, help_text=help_text, **kwargs)


def _number(key: str, label: str, help_text: Optional[str] = None, **kwargs):
    return _field(key, label, FieldKind.NUMBER, help_text=help_text, **kwargs)


def _textarea(key: str, label: str, help_text: Optional[str] = None, **kwargs):
    return _field(key, label, FieldKind.TEXTAREA, help_text=help_text, **kwargs)


_BUILTINS = (
    ElementTypeDescriptor(
        type_id=1,
        display_name="Separator",
        description="A horizontal separator bar with optional text",
        fields=(_text("Text", "Separator Text", "Optional text to display on the separator bar"),),
    ),
    ElementTypeDescriptor(
        type_id=2,
        display_name="Signature Block",
        description="Signature capture block with optional left and right signature areas",
        fields=(
            _flag("HasLeftHandSigBlock", "Has Left Signature Block", "Include a left-hand signature area"),
            _flag("HasRightHandSigBlock", "Has Right Signature Block", "Include a right-hand signature area"),
            _flag("ShowDateCapture", "Show Date Capture", "Include date fields with signatures"),
            _text("LeftHandSigText", "Left Signature Text", "Label text for the left signature block"),
            _text("RightHandSigText", "Right Signature Text", "Label text for the right signature block"),
        ),
    ),
    ElementTypeDescriptor(
        type_id=3,
        display_name="Number Input",
        description="Numeric input field with validation",
        fields=(
            _number("min", "Minimum Value", "Minimum allowed value"),
            _number("max", "Maximum Value", "Maximum allowed value"),
            _number("step", "Step Size", "Increment/decrement step size", default_value=1),
            _number(
                "precision",
                "Decimal Places",
                "Number of decimal places allowed",
                default_value=0,
                validation={"min": 0, "max": 10},
            ),
            _flag("required", "Required Field"),
            _text("unit", "Unit Label", 'Unit to display after the number (e.g., "kg", "%")'),
        ),
    ),
    ElementTypeDescriptor(
        type_id=4,
        display_name="Select Dropdown",
        description="Dropdown selection from predefined options",
        fields=(
            _textarea(
                "options",
                "Options (JSON Array)",
                "JSON array of options with value and label properties",
                required=True,
                placeholder='[{"value": "option1", "label": "Option 1"}, {"value": "option2", "label": "Option 2"}]',
            ),
            _flag("multiple", "Allow Multiple Selection"),
            _flag("required", "Required Field"),
            _text("placeholder", "Placeholder Text", "Text shown when no option is selected"),
        ),
    ),
    ElementTypeDescriptor(
        type_id=5,
        display_name="Header",
        description="Header text element with customizable styling and level",
        fields=(
            _text("Text", "Header Text", "The text content of the header"),
            _number(
                "Level",
                "Header Level",
                "Header level (1-6, where 1 is largest)",
                default_value=1,
                validation={"min": 1, "max": 6},
            ),
            _flag("IndentPastCheckbox", "Indent Past Checkbox", "Whether to indent the header past checkbox alignment"),
            _text("CustomStyle", "Custom Style", "Custom inline CSS styles"),
            _text("CustomClass", "Custom Class", "Custom CSS class names"),
        ),
    ),
    ElementTypeDescriptor(
        type_id=6,
        display_name="Note Line",
        description="Note line element for capturing notes with optional indentation",
        fields=(
            _text("Label", "Label", "Label text for the note line", default_value="Notes"),
            _number(
                "LinesToShow",
                "Lines to Show",
                "Number of note lines to display",
                default_value=1,
                validation={"min": 1, "max": 20},
            ),
            _number(
                "Indent_mm",
                "Indent (mm)",
                "Indentation in millimeters",
                default_value=0,
                validation={"min": 0, "max": 50},
            ),
            _flag("BoldTitle", "Bold Title", "Whether to display the label in bold"),
        ),
    ),
    ElementTypeDescriptor(
        type_id=7,
        display_name="Page Break",
        description="Creates a new page when rendered",
    ),
    ElementTypeDescriptor(
        type_id=8,
        display_name="Single Line",
        description="Single line element with optional checkbox and data capture fields",
        fields=(
            _flag("HasCheckbox", "Has Checkbox", "Include a checkbox with this line"),
            _number("CheckboxInsetMM", "Checkbox Inset (mm)", "Checkbox indentation in millimeters", default_value=0),
            _text("LineText", "Line Text", "The text content for this line"),
            _text("WorksheetName", "Worksheet Name", "Associated worksheet identifier"),
            _flag("HasTimeCapture", "Has Time Capture", "Include a time capture field"),
            _flag("HasInitialsCapture", "Has Initials Capture", "Include an initials capture field"),
            _flag(
                "HasAdditionalDataCapLine",
                "Has Additional Data Capture Line",
                "Include an additional data capture line",
            ),
            _text(
                "AdditionalDataCapLinePreText",
                "Additional Data Line Pre-Text",
                "Text before the additional data capture line",
            ),
            _text(
                "AdditionalDataCapLinePostText",
                "Additional Data Line Post-Text",
                "Text after the additional data capture line",
            ),
            _number(
                "AdditionalDataCapLineLengthInMM",
                "Additional Data Line Length (mm)",
                "Length of the additional data capture line in millimeters",
                default_value=0,
            ),
            _flag("IsOptional", "Is Optional", "Whether this line is optional"),
        ),
    ),
    ElementTypeDescriptor(
        type_id=9,
        display_name="Multiple Choice",
        description="Multiple choice element with customizable options and layout",
        fields=(
            _text("Label", "Label", "Label text for the multiple choice element"),
            _number(
                "OptionsPerRow",
                "Options Per Row",
                "Number of options to display per row",
                default_value=1,
                validation={"min": 1, "max": 10},
            ),
            _flag("BreakRowAfter", "Break Row After", "Whether to break to a new row after this element"),
            _textarea(
                "Options",
                "Options (JSON Array)",
                "JSON array of options. Each option has Label (string), ShowInputLineAfter (boolean), "
                "and InputLineLengthInMM (integer). Maximum 100 options.",
                required=True,
                placeholder='[{"Label": "Option 1", "ShowInputLineAfter": false, "InputLineLengthInMM": 0}]',
            ),
        ),
    ),
    ElementTypeDescriptor(
        type_id=10,
        display_name="Blank Line",
        description="Adds blank lines to the document",
        fields=(
            _number(
                "LinesToShow",
                "Lines to Show",
                "Number of blank lines to add",
                default_value=1,
                validation={"min": 1, "max": 20},
            ),
        ),
    ),
    ElementTypeDescriptor(
        type_id=11,
        display_name="Block Input",
        description="Small block to collect information (commonly used for vitals)",
        fields=(
            _text("HeaderText", "Header Text", "Text to display in the block header"),
            _text("FooterText", "Footer Text", "Text to display in the block footer"),
            _text("InputLine1", "Input Line 1", "Label or text for the first input line"),
            _text("InputLine2", "Input Line 2", "Label or text for the second input line"),
            _textarea("FootNotes", "Footnotes", "Additional notes or footnotes for this block"),
            _flag(
                "Input2IsConversion",
                "Input 2 Is Conversion",
                "Whether the second input is a conversion of the first",
            ),
        ),
    ),
    ElementTypeDescriptor(
        type_id=12,
        display_name="Info Line",
        description="Information line element",
        fields=(_text("Text", "Text", "Text content for the info line"),),
    ),
    ElementTypeDescriptor(
        type_id=13,
        display_name="Inclusion/Exclusion",
        description="Inclusion or exclusion criteria item",
        fields=(
            _text("Description", "Description", "Description of the inclusion/exclusion criteria"),
            _flag(
                "IsInclusion",
                "Is Inclusion",
                "Whether this is an inclusion criterion (unchecked = exclusion)",
                default=True,
            ),
            _flag("IsSubItem", "Is Sub-Item", "Whether this is a sub-item of a parent criterion"),
            _flag("SupressInitials", "Suppress Initials", "Whether to suppress the initials field"),
            _flag("SupressDate", "Suppress Date", "Whether to suppress the date field"),
            _flag("ResetCounter", "Reset Counter", "Whether to reset the numbering counter"),
        ),
    ),
    ElementTypeDescriptor(
        type_id=14,
        display_name="Block Input V2",
        description="Advanced block input with customizable sub-elements",
        fields=(
            _text("HeaderText", "Header Text", "Text to display in the block header"),
            _text("FooterText", "Footer Text", "Text to display in the block footer"),
            _number(
                "WidthMultiplier",
                "Width Multiplier",
                "Block width multiplier (1-4)",
                default_value=1,
                validation={"min": 1, "max": 4},
            ),
            _textarea(
                "SubElements",
                "Sub-Elements (JSON Array)",
                "JSON array of sub-elements. Each has Text (string), bold (boolean), subtle (boolean), "
                "and WidthMM (integer).",
                placeholder='[{"Text": "Label", "bold": false, "subtle": false, "WidthMM": 50}]',
            ),
        ),
    ),
)

BUILTIN_ELEMENT_TYPES: Mapping[int, ElementTypeDescriptor] = MappingProxyType(
    {descriptor.type_id: descriptor for descriptor in _BUILTINS}
)


def as_type_id(value: Any) -> Optional[int]:
    """Normalise a type id given as int or numeric string; None if it is neither."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def coerce_descriptor(type_id: int, value: DescriptorLike) -> ElementTypeDescriptor:
    """Build a descriptor from an override entry.

    Mapping entries may omit the type id; it is taken from the override key.

    Raises:
        ConfigurationError: If the entry is not a valid descriptor
    """
    if isinstance(value, ElementTypeDescriptor):
        return value

    data = dict(value)
    data.setdefault("type_id", type_id)
    try:
        return ElementTypeDescriptor.model_validate(data)
    except ValidationError as e:
        error_lines = [f"Invalid descriptor override for element type {type_id}:"]
        for error in e.errors():
            loc = " -> ".join(str(item) for item in error["loc"])
            error_lines.append(f"  - {loc}: {error['msg']}")
        raise ConfigurationError("\n".join(error_lines)) from e


def merge_overrides(
    base: Mapping[int, ElementTypeDescriptor], overrides: Optional[Overrides]
) -> Mapping[int, ElementTypeDescriptor]:
    """Return a new read-only table with overrides taking precedence over base.

    Neither input is modified.
    """
    merged = dict(base)
    for key, value in (overrides or {}).items():
        type_id = as_type_id(key)
        if type_id is None:
            raise ConfigurationError(f"Invalid element type id in overrides: {key!r}")
        merged[type_id] = coerce_descriptor(type_id, value)
    return MappingProxyType(merged)


class SchemaRegistry:
    """Immutable table of element type descriptors.

    Overrides never modify a registry; ``with_overrides`` returns a new one
    and ``resolve`` merges per call.
    """

    def __init__(
        self,
        descriptors: Optional[Mapping[int, ElementTypeDescriptor]] = None,
    ):
        self._descriptors = MappingProxyType(
            dict(BUILTIN_ELEMENT_TYPES if descriptors is None else descriptors)
        )

    @classmethod
    def from_overrides(cls, overrides: Optional[Overrides]) -> "SchemaRegistry":
        return cls(merge_overrides(BUILTIN_ELEMENT_TYPES, overrides))

    def with_overrides(self, overrides: Optional[Overrides]) -> "SchemaRegistry":
        if not overrides:
            return self
        return SchemaRegistry(merge_overrides(self._descriptors, overrides))

    @property
    def descriptors(self) -> Mapping[int, ElementTypeDescriptor]:
        return self._descriptors

    def resolve(
        self, type_id: Any, overrides: Optional[Overrides] = None
    ) -> Optional[ElementTypeDescriptor]:
        normalized = as_type_id(type_id)
        if normalized is None:
            return None

        table = merge_overrides(self._descriptors, overrides) if overrides else self._descriptors
        return table.get(normalized)

    def require(self, type_id: Any, overrides: Optional[Overrides] = None) -> ElementTypeDescriptor:
        descriptor = self.resolve(type_id, overrides)
        if descriptor is None:
            raise ConfigurationError(f"Unknown element type: {type_id}")
        return descriptor

    def __contains__(self, type_id: Any) -> bool:
        return as_type_id(type_id) in self._descriptors

    def __iter__(self) -> Iterator[ElementTypeDescriptor]:
        return iter(self._descriptors[key] for key in sorted(self._descriptors))

    def __len__(self) -> int:
        return len(self._descriptors)


DEFAULT_REGISTRY = SchemaRegistry()


def resolve(type_id: Any, overrides: Optional[Overrides] = None) -> Optional[ElementTypeDescriptor]:
    """Resolve a descriptor from the built-ins merged with ``overrides``."""
    return DEFAULT_REGISTRY.resolve(type_id, overrides)
