from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

template_dir = Path(__file__).parent / "templates"

jinja_env = Environment(
    loader=FileSystemLoader(template_dir),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_template(name: str, **context) -> Markup:
    """Render a bundled template; pass trusted fragments as ``Markup``."""
    template = jinja_env.get_template(name)
    return Markup(template.render(**context).strip())
