import logging
from typing import Any, Iterable, Mapping, Optional

from markupsafe import Markup

from .consts import CSS_FORM, TEMPLATE_FORM
from .renderer import ElementRenderer, OptionsLike
from .schema import ElementInstance
from .templating import render_template

logger = logging.getLogger(__name__)


def _lookup(values_by_id: Mapping[Any, Any], instance_id: Any) -> Any:
    if instance_id in values_by_id:
        return values_by_id[instance_id]
    # JSON-decoded value maps carry string keys
    return values_by_id.get(str(instance_id))


def order_instances(instances: Iterable[ElementInstance]) -> list[ElementInstance]:
    """Enabled instances sorted by ``order``; ties keep their input order."""
    return [instance for instance in sorted(instances, key=lambda i: i.order) if not instance.disabled]


def compose_form(
    instances: Iterable[ElementInstance],
    values_by_id: Optional[Mapping[Any, Any]] = None,
    options: OptionsLike = None,
    renderer: Optional[ElementRenderer] = None,
) -> Markup:
    """Render enabled instances into one form, in ascending ``order``.

    Args:
        instances: Element instances to include
        values_by_id: Current values keyed by instance id; missing ids render unset
        options: Render options applied to every instance
        renderer: Renderer to use, a default one when omitted

    Returns:
        A single ``<form>`` element with one fragment per line
    """
    renderer = renderer or ElementRenderer()
    values_by_id = values_by_id or {}

    ordered = order_instances(instances)
    fragments = [
        renderer.render_instance(instance, _lookup(values_by_id, instance.id), options)
        for instance in ordered
    ]
    logger.debug(f"Composed form with {len(fragments)} element(s)")
    return render_template(TEMPLATE_FORM, css_class=CSS_FORM, fragments=fragments)
