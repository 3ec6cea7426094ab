from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .consts import CSS_CONTAINER, CSS_ERROR, CSS_HELP_TEXT, CSS_INPUT, CSS_LABEL
from .enums import FieldKind

Scalar = Union[int, float, str]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class FieldValidation(_Frozen):
    min: Optional[Union[int, float]] = None
    max: Optional[Union[int, float]] = None
    pattern: Optional[str] = None
    message: Optional[str] = None


class FieldOption(_Frozen):
    value: Scalar
    label: str


class FieldConditional(_Frozen):
    depends_on_key: str = Field(alias="dependsOn")
    show_when_value: Any = Field(default=None, alias="showWhen")


class FieldDescriptor(_Frozen):
    key: str
    label: str
    kind: FieldKind = Field(alias="type")
    required: bool = False
    validation: Optional[FieldValidation] = None
    options: Optional[tuple[FieldOption, ...]] = None
    default_value: Any = Field(default=None, alias="defaultValue")
    help_text: Optional[str] = Field(default=None, alias="helpText")
    placeholder: Optional[str] = None
    conditional: Optional[FieldConditional] = None

    @property
    def has_default(self) -> bool:
        """True when a default was declared, even an explicit null."""
        return "default_value" in self.model_fields_set

    def is_visible(self, payload: dict[str, Any]) -> bool:
        if self.conditional is None:
            return True
        return payload.get(self.conditional.depends_on_key) == self.conditional.show_when_value


class ElementTypeDescriptor(_Frozen):
    type_id: int = Field(alias="typeId")
    display_name: str = Field(alias="displayName")
    description: str = ""
    fields: tuple[FieldDescriptor, ...] = ()
    category: Optional[str] = None
    icon: Optional[str] = None

    @model_validator(mode="after")
    def check_unique_keys(self) -> "ElementTypeDescriptor":
        seen = set()
        for field in self.fields:
            if field.key in seen:
                raise ValueError(
                    f"Duplicate field key '{field.key}' in element type {self.type_id}"
                )
            seen.add(field.key)
        return self

    def get_field(self, key: str) -> Optional[FieldDescriptor]:
        for field in self.fields:
            if field.key == key:
                return field
        return None

    @property
    def field_keys(self) -> list[str]:
        return [field.key for field in self.fields]


class ElementInstance(_Frozen):
    """A stored element as handed over by the surrounding application."""

    id: Union[int, str]
    type_id: int = Field(alias="typeId")
    label: str = ""
    data_payload: Any = Field(default="{}", alias="dataPayload")
    disabled: bool = False
    order: int = 0
    editor_notes: str = Field(default="", alias="editorNotes")
    type_label: str = Field(default="", alias="typeLabel")


class CssClasses(_Frozen):
    container: str = CSS_CONTAINER
    label: str = CSS_LABEL
    input: str = CSS_INPUT
    error: str = CSS_ERROR
    help_text: str = Field(default=CSS_HELP_TEXT, alias="helpText")


class RenderOptions(_Frozen):
    css_classes: CssClasses = Field(default_factory=CssClasses, alias="cssClasses")
    show_labels: bool = Field(default=True, alias="showLabels")
    read_only: bool = Field(default=False, alias="readOnly")
    compact: bool = False


class ValidationResult(BaseModel):
    is_valid: bool
    errors: list[str] = []

    @classmethod
    def from_errors(cls, errors: list[str]) -> "ValidationResult":
        return cls(is_valid=not errors, errors=list(errors))
