"""Escaping boundary for generated markup.

Every piece of caller-controlled text reaches a fragment through
``escape_html`` or through ``Markup.format``/``Markup.join``, which escape
their non-``Markup`` arguments. Fragments that are already markup travel as
``Markup`` and are never escaped twice.
"""

import re
from typing import Any, Optional

from markupsafe import Markup, escape

from .utils import to_text

Attr = tuple[str, Any] | str | None

# Colors allowed inside a style attribute: hex, a bare keyword, or an
# rgb/hsl function with numeric arguments.
CSS_COLOR = re.compile(
    r"#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})"
    r"|[a-zA-Z]+"
    r"|(?:rgb|hsl)a?\([0-9.%,/+\- ]*\)"
)


def escape_html(value: Any) -> Markup:
    """Escape a value for safe interpolation into HTML text or attributes.

    Examples:
        >>> escape_html("<b>hi</b>")
        Markup('&lt;b&gt;hi&lt;/b&gt;')
        >>> escape_html(None)
        Markup('')
    """
    if isinstance(value, Markup):
        return value
    return escape(to_text(value))


def build_attrs(*attrs: Attr) -> Markup:
    """Join attributes in the order given, skipping falsy entries.

    Each entry is either a ``(name, value)`` pair, rendered as
    ``name="value"`` with the value escaped, or a bare boolean attribute
    name such as ``"required"``.

    Examples:
        >>> build_attrs(("type", "text"), None, "required")
        Markup('type="text" required')
    """
    parts = []
    for attr in attrs:
        if not attr:
            continue
        if isinstance(attr, tuple):
            name, value = attr
            parts.append(Markup('{}="{}"').format(Markup(name), escape_html(value)))
        else:
            parts.append(Markup(attr))
    return Markup(" ").join(parts)


def css_color(value: Any) -> Optional[str]:
    """Return ``value`` when it is a plain CSS color, None otherwise.

    Examples:
        >>> css_color("#ff0000")
        '#ff0000'
        >>> css_color("red; background: url(x)") is None
        True
    """
    text = to_text(value).strip()
    if CSS_COLOR.fullmatch(text):
        return text
    return None
