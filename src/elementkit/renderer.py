"""Local fragment generation for element instances.

The renderer maps an element type id to one of a closed set of render kinds
and calls the matching generator. Generators are pure: the same inputs
always give byte-identical markup. Anything that goes wrong while rendering
comes back as an error or placeholder fragment; ``render`` and
``render_instance`` never raise.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Union
from urllib.parse import urlparse

from markupsafe import Markup

from .consts import TEMPLATE_CONTAINER, TEMPLATE_ERROR, TEMPLATE_UNSUPPORTED
from .enums import RenderKind
from .errors import ConfigurationError, PayloadError, RenderFault
from .escaping import build_attrs, css_color, escape_html
from .payload import parse_payload
from .registry import DEFAULT_REGISTRY, SchemaRegistry, as_type_id
from .schema import ElementInstance, RenderOptions
from .templating import render_template
from .utils import coerce_number, to_text

logger = logging.getLogger(__name__)

OptionsLike = Union[RenderOptions, Mapping[str, Any], None]

# Only these built-ins have a local generator; the rest are rendered by the
# authoritative render service.
DEFAULT_RENDER_KINDS: Mapping[int, RenderKind] = MappingProxyType(
    {
        3: RenderKind.NUMBER,
        4: RenderKind.SELECT,
        6: RenderKind.CHECKBOX,
    }
)

SAFE_LINK_SCHEMES = ("http", "https", "mailto")

DEFAULT_COLOR = "#000000"
DEFAULT_MIN_HEIGHT = 200


@dataclass(frozen=True)
class RenderContext:
    type_id: int
    element_id: str
    name: str
    data: Mapping[str, Any]
    value: Any
    options: RenderOptions

    @property
    def dom_id(self) -> str:
        return f"element-{self.element_id}"

    @property
    def input_class(self) -> str:
        return self.options.css_classes.input


@dataclass(frozen=True)
class Choice:
    value: Any
    label: str


def coerce_options(options: OptionsLike) -> RenderOptions:
    if options is None:
        return RenderOptions()
    if isinstance(options, RenderOptions):
        return options
    return RenderOptions.model_validate(dict(options))


def merge_render_kinds(
    base: Mapping[int, RenderKind], extra: Optional[Mapping[Any, Any]]
) -> Mapping[int, RenderKind]:
    """Return a new read-only type-id -> render kind table with ``extra`` winning."""
    merged = dict(base)
    for key, value in (extra or {}).items():
        type_id = as_type_id(key)
        if type_id is None:
            raise ConfigurationError(f"Invalid element type id in render kinds: {key!r}")
        try:
            merged[type_id] = RenderKind(value)
        except ValueError as e:
            raise ConfigurationError(f"Unknown render kind for element type {type_id}: {value!r}") from e
    return MappingProxyType(merged)


def parse_choices(raw: Any) -> list[Choice]:
    """Normalise a choice list given as JSON text or as a list.

    Entries may be ``{"value": ..., "label": ...}`` objects or bare scalars.
    Undecodable text or a non-list gives an empty list.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse choice options: {e}")
            return []

    if not isinstance(raw, list):
        return []

    choices = []
    for item in raw:
        if isinstance(item, Mapping):
            if "value" not in item:
                continue
            value = item["value"]
            label = item.get("label")
            choices.append(Choice(value=value, label=to_text(value if label is None else label)))
        elif isinstance(item, (str, int, float)):
            choices.append(Choice(value=item, label=to_text(item)))
    return choices


def _same_value(a: Any, b: Any) -> bool:
    return isinstance(a, bool) == isinstance(b, bool) and a == b


def _is_selected(value: Any, option_value: Any) -> bool:
    if isinstance(value, (list, tuple)):
        return any(_same_value(v, option_value) for v in value)
    return _same_value(value, option_value)


def is_checked(value: Any, data: Mapping[str, Any]) -> bool:
    """Checked when the value is true, "true" or 1, or unset with a checked default."""
    if value is True or value == "true":
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value == 1:
        return True
    return value is None and bool(data.get("defaultChecked"))


def _attr(name: str, value: Any) -> Optional[tuple[str, Any]]:
    """Attribute pair when the value is truthy, else nothing."""
    return (name, value) if value else None


def _present(name: str, value: Any) -> Optional[tuple[str, Any]]:
    """Attribute pair when the value is not None, else nothing."""
    return (name, value) if value is not None else None


def _flag(name: str, enabled: Any) -> Optional[str]:
    return name if enabled else None


def _input(attrs: Markup) -> Markup:
    return Markup("<input {} />").format(attrs)


def render_text(ctx: RenderContext) -> Markup:
    data = ctx.data
    return _input(
        build_attrs(
            ("type", "text"),
            ("id", ctx.dom_id),
            ("name", ctx.name),
            ("class", ctx.input_class),
            _attr("value", ctx.value),
            _attr("placeholder", data.get("placeholder")),
            _attr("maxlength", data.get("maxLength")),
            _attr("pattern", data.get("pattern")),
            _flag("required", data.get("required")),
            _flag("readonly", ctx.options.read_only),
        )
    )


def render_textarea(ctx: RenderContext) -> Markup:
    data = ctx.data
    attrs = build_attrs(
        ("id", ctx.dom_id),
        ("name", ctx.name),
        ("class", ctx.input_class),
        ("rows", data.get("rows") or 3),
        _attr("placeholder", data.get("placeholder")),
        _attr("maxlength", data.get("maxLength")),
        _flag("required", data.get("required")),
        _flag("readonly", ctx.options.read_only),
    )
    content = ctx.value if ctx.value else ""
    return Markup("<textarea {}>{}</textarea>").format(attrs, escape_html(content))


def render_number(ctx: RenderContext) -> Markup:
    data = ctx.data
    html = _input(
        build_attrs(
            ("type", "number"),
            ("id", ctx.dom_id),
            ("name", ctx.name),
            ("class", ctx.input_class),
            _present("value", ctx.value),
            _present("min", data.get("min")),
            _present("max", data.get("max")),
            _attr("step", data.get("step")),
            _flag("required", data.get("required")),
            _flag("readonly", ctx.options.read_only),
        )
    )
    if data.get("unit"):
        html += Markup(' <span class="number-unit">{}</span>').format(escape_html(data["unit"]))
    return html


def render_select(ctx: RenderContext) -> Markup:
    data = ctx.data
    value = ctx.value
    attrs = build_attrs(
        ("id", ctx.dom_id),
        ("name", ctx.name),
        ("class", ctx.input_class),
        _flag("multiple", data.get("multiple")),
        _flag("required", data.get("required")),
        _flag("disabled", ctx.options.read_only),
    )

    placeholder = Markup("")
    if data.get("placeholder"):
        placeholder = Markup("<option {}>{}</option>").format(
            build_attrs(("value", ""), "disabled", _flag("selected", not value)),
            escape_html(data["placeholder"]),
        )

    options = Markup("\n").join(
        Markup("<option {}>{}</option>").format(
            build_attrs(("value", choice.value), _flag("selected", _is_selected(value, choice.value))),
            escape_html(choice.label),
        )
        for choice in parse_choices(data.get("options"))
    )
    return Markup("<select {}>\n{}\n{}\n</select>").format(attrs, placeholder, options)


def render_date(ctx: RenderContext) -> Markup:
    data = ctx.data
    return _input(
        build_attrs(
            ("type", "datetime-local" if data.get("includeTime") else "date"),
            ("id", ctx.dom_id),
            ("name", ctx.name),
            ("class", ctx.input_class),
            _attr("value", ctx.value),
            _attr("min", data.get("minDate")),
            _attr("max", data.get("maxDate")),
            _flag("required", data.get("required")),
            _flag("readonly", ctx.options.read_only),
        )
    )


def render_checkbox(ctx: RenderContext) -> Markup:
    data = ctx.data
    attrs = build_attrs(
        ("type", "checkbox"),
        ("id", ctx.dom_id),
        ("name", ctx.name),
        ("class", ctx.input_class),
        _flag("checked", is_checked(ctx.value, data)),
        _flag("required", data.get("required")),
        _flag("disabled", ctx.options.read_only),
    )
    label = data.get("label") or ctx.name
    return Markup(
        '<div class="checkbox-wrapper">\n  <input {} />\n  <label for="{}">{}</label>\n</div>'
    ).format(attrs, ctx.dom_id, escape_html(label))


def render_file(ctx: RenderContext) -> Markup:
    data = ctx.data
    html = _input(
        build_attrs(
            ("type", "file"),
            ("id", ctx.dom_id),
            ("name", ctx.name),
            ("class", ctx.input_class),
            _attr("accept", data.get("accept")),
            _flag("multiple", data.get("multiple")),
            _flag("required", data.get("required")),
            _flag("disabled", ctx.options.read_only),
        )
    )
    if data.get("maxSize"):
        html += Markup('<small class="file-size-hint">Max size: {}MB</small>').format(
            escape_html(data["maxSize"])
        )
    if ctx.value:
        html += Markup('<div class="current-file">Current: {}</div>').format(escape_html(ctx.value))
    return html


def _is_safe_link(url: str) -> bool:
    scheme = urlparse(url.strip()).scheme.lower()
    return scheme in SAFE_LINK_SCHEMES


def render_url(ctx: RenderContext) -> Markup:
    data = ctx.data
    value = ctx.value
    html = _input(
        build_attrs(
            ("type", "url"),
            ("id", ctx.dom_id),
            ("name", ctx.name),
            ("class", ctx.input_class),
            _attr("value", value),
            _attr("placeholder", data.get("placeholder")),
            _flag("required", data.get("required")),
            _flag("readonly", ctx.options.read_only),
        )
    )
    if value and not ctx.options.read_only and _is_safe_link(to_text(value)):
        target = "_blank" if data.get("openInNewTab") else "_self"
        html += Markup(' <a {}>Preview</a>').format(
            build_attrs(("href", value), ("target", target), ("class", "url-preview"))
        )
    return html


def render_email(ctx: RenderContext) -> Markup:
    data = ctx.data
    return _input(
        build_attrs(
            ("type", "email"),
            ("id", ctx.dom_id),
            ("name", ctx.name),
            ("class", ctx.input_class),
            _attr("value", ctx.value),
            _attr("placeholder", data.get("placeholder")),
            _flag("multiple", data.get("allowMultiple")),
            _flag("required", data.get("required")),
            _flag("readonly", ctx.options.read_only),
        )
    )


def render_color(ctx: RenderContext) -> Markup:
    data = ctx.data
    color = ctx.value or data.get("defaultColor") or DEFAULT_COLOR
    html = _input(
        build_attrs(
            ("type", "color"),
            ("id", ctx.dom_id),
            ("name", ctx.name),
            ("class", ctx.input_class),
            ("value", color),
            _flag("required", data.get("required")),
            _flag("disabled", ctx.options.read_only),
        )
    )
    if data.get("showPreview"):
        html += Markup(
            ' <span class="color-preview" style="background-color: {}; display: inline-block; '
            'width: 30px; height: 30px; border: 1px solid #ccc; vertical-align: middle;"></span>'
        ).format(css_color(color) or DEFAULT_COLOR)
    return html


def render_radio(ctx: RenderContext) -> Markup:
    data = ctx.data
    layout = to_text(data.get("layout") or "vertical")
    radios = []
    for index, choice in enumerate(parse_choices(data.get("options"))):
        radio_id = f"{ctx.dom_id}-{index}"
        attrs = build_attrs(
            ("type", "radio"),
            ("id", radio_id),
            ("name", ctx.dom_id),
            ("value", choice.value),
            _flag("checked", _same_value(ctx.value, choice.value)),
            _flag("required", data.get("required")),
            _flag("disabled", ctx.options.read_only),
        )
        radios.append(
            Markup(
                '<div class="radio-option">\n  <input {} />\n  <label for="{}">{}</label>\n</div>'
            ).format(attrs, radio_id, escape_html(choice.label))
        )
    return Markup('<div class="radio-group radio-group-{}">\n{}\n</div>').format(
        layout, Markup("\n").join(radios)
    )


def _min_height(value: Any) -> float:
    height = coerce_number(value)
    if height is None or height <= 0 or not math.isfinite(height):
        return DEFAULT_MIN_HEIGHT
    return height


def render_rich_text(ctx: RenderContext) -> Markup:
    if ctx.options.read_only and ctx.value:
        # Read-only rich text is sanitised upstream and shown as-is.
        return Markup('<div class="rich-text-display" id="{}">{}</div>').format(
            ctx.dom_id, Markup(to_text(ctx.value))
        )

    data = ctx.data
    content = ctx.value or ""
    attrs = build_attrs(
        ("id", ctx.dom_id),
        ("name", ctx.name),
        ("class", f"{ctx.input_class} rich-text-editor"),
        ("contenteditable", "false" if ctx.options.read_only else "true"),
        ("style", f"min-height: {to_text(_min_height(data.get('minHeight')))}px;"),
        _attr("data-required", "true" if data.get("required") else None),
    )
    return Markup('<div {}>{}</div>\n<input {} />').format(
        attrs,
        escape_html(content),
        build_attrs(("type", "hidden"), ("name", ctx.name), ("value", content)),
    )


GENERATORS: Mapping[RenderKind, Callable[[RenderContext], Markup]] = MappingProxyType(
    {
        RenderKind.TEXT: render_text,
        RenderKind.TEXTAREA: render_textarea,
        RenderKind.NUMBER: render_number,
        RenderKind.SELECT: render_select,
        RenderKind.DATE: render_date,
        RenderKind.CHECKBOX: render_checkbox,
        RenderKind.FILE: render_file,
        RenderKind.URL: render_url,
        RenderKind.EMAIL: render_email,
        RenderKind.COLOR: render_color,
        RenderKind.RADIO: render_radio,
        RenderKind.RICH_TEXT: render_rich_text,
    }
)


def render_error(message: str, options: OptionsLike = None) -> Markup:
    """Visible error fragment carrying the escaped failure reason."""
    css_class = coerce_options(options).css_classes.error
    return render_template(TEMPLATE_ERROR, css_class=css_class, message=message)


def render_unsupported(type_id: Any, type_label: str) -> Markup:
    return render_template(TEMPLATE_UNSUPPORTED, type_id=to_text(type_id), type_label=type_label)


def wrap(
    label: str,
    fragment: Markup,
    options: OptionsLike = None,
    help_text: Optional[str] = None,
) -> Markup:
    """Wrap a fragment in its container with a label and, unless compact, help text.

    With ``show_labels`` off the fragment is returned unchanged.
    """
    options = coerce_options(options)
    if not options.show_labels:
        return Markup(fragment)
    return render_template(
        TEMPLATE_CONTAINER,
        classes=options.css_classes,
        label=to_text(label),
        fragment=Markup(fragment),
        help_text=help_text,
        compact=options.compact,
    )


class ElementRenderer:
    """Renders element fragments from a schema registry and a render-kind table.

    Both tables are fixed at construction; build a new renderer to change
    them.
    """

    def __init__(
        self,
        registry: SchemaRegistry = DEFAULT_REGISTRY,
        render_kinds: Optional[Mapping[Any, Any]] = None,
    ):
        self.registry = registry
        self.render_kinds = merge_render_kinds(DEFAULT_RENDER_KINDS, render_kinds)

    def kind_for(self, type_id: Any) -> RenderKind:
        normalized = as_type_id(type_id)
        if normalized is None or normalized not in self.registry:
            return RenderKind.UNSUPPORTED
        return self.render_kinds.get(normalized, RenderKind.UNSUPPORTED)

    def _type_label(self, type_id: Any, type_label: Optional[str]) -> str:
        if type_label:
            return type_label
        descriptor = self.registry.resolve(type_id)
        return descriptor.display_name if descriptor else "Unknown"

    def render(
        self,
        type_id: Any,
        payload: Any,
        value: Any = None,
        options: OptionsLike = None,
        *,
        element_id: Any = "preview",
        name: str = "",
        type_label: Optional[str] = None,
    ) -> Markup:
        """Render the unwrapped fragment for one element.

        Args:
            type_id: Element type id
            payload: Decoded payload mapping or encoded payload text
            value: Current value of the element, None when unset
            options: RenderOptions or a mapping of its fields
            element_id: Used to build the ``element-<id>`` DOM id
            name: Form field name, usually the instance label
            type_label: Type name shown in the unsupported placeholder

        Returns:
            Markup fragment; an error or placeholder fragment when the
            element cannot be rendered
        """
        try:
            options = coerce_options(options)
        except Exception as e:
            logger.warning(f"Invalid render options, using defaults: {e}")
            options = RenderOptions()

        kind = self.kind_for(type_id)
        if kind == RenderKind.UNSUPPORTED:
            return render_unsupported(type_id, self._type_label(type_id, type_label))

        try:
            data = parse_payload(payload)
        except PayloadError as e:
            return render_error(f"Failed to render element type {to_text(type_id)}: {e}", options)

        ctx = RenderContext(
            type_id=as_type_id(type_id),
            element_id=to_text(element_id),
            name=to_text(name),
            data=data,
            value=value,
            options=options,
        )
        try:
            return GENERATORS[kind](ctx)
        except Exception as e:
            logger.exception(f"Generator {kind.value} failed for element type {type_id}")
            fault = e if isinstance(e, RenderFault) else RenderFault(str(e))
            return render_error(f"Failed to render element type {to_text(type_id)}: {fault}", options)

    def render_instance(
        self, instance: ElementInstance, value: Any = None, options: OptionsLike = None
    ) -> Markup:
        """Render one stored element, wrapped with its label when labels are shown."""
        try:
            options = coerce_options(options)
            data = instance.data_payload
            if self.kind_for(instance.type_id) != RenderKind.UNSUPPORTED:
                try:
                    data = parse_payload(data)
                except PayloadError as e:
                    logger.warning(f"Element {instance.id} has an unreadable payload: {e}")
                    return render_error(f"Failed to render element: {instance.label}", options)

            fragment = self.render(
                instance.type_id,
                data,
                value,
                options,
                element_id=instance.id,
                name=instance.label,
                type_label=instance.type_label or None,
            )
            return wrap(instance.label, fragment, options, instance.editor_notes or None)
        except Exception:
            logger.exception(f"Failed to render element {instance.id}")
            return render_error(f"Failed to render element: {instance.label}")

    def render_preview(self, instance: ElementInstance, value: Any = None) -> Markup:
        return self.render_instance(
            instance, value, RenderOptions(show_labels=True, read_only=True, compact=False)
        )

    def render_compact(self, instance: ElementInstance, value: Any = None) -> Markup:
        return self.render_instance(
            instance, value, RenderOptions(show_labels=False, read_only=True, compact=True)
        )

    def display_value(self, type_id: Any, value: Any) -> Markup:
        """Short display text for tables and lists."""
        if value is None:
            return Markup("-")

        kind = self.kind_for(type_id)
        if kind == RenderKind.CHECKBOX:
            return Markup("Yes" if value else "No")
        if kind == RenderKind.COLOR:
            color = css_color(value)
            if color is None:
                return escape_html(value)
            return Markup('<span style="color: {0};">&#9679;</span> {0}').format(color)
        if kind == RenderKind.DATE:
            return escape_html(_format_date(value))
        return escape_html(value)


def _format_date(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    try:
        return datetime.fromisoformat(to_text(value)).date().isoformat()
    except ValueError:
        return to_text(value)
