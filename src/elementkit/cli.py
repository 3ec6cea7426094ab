"""CLI main entry point."""

import json
import logging

import click
from pydantic import ValidationError

from .config import Config
from .defaults import generate_defaults
from .enums import RemoteState
from .errors import ElementKitException
from .form import compose_form
from .log import setup as setup_log
from .payload import stamp_payload
from .remote import document_shell
from .schema import ElementInstance
from .validator import validate

logger = logging.getLogger(__name__)


def _parse_value(raw):
    """Interpret a --value argument as JSON when possible, else as plain text."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _load_json_file(stream, what: str):
    try:
        return json.load(stream)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid JSON in {what}: {e}")


@click.group()
@click.option("--config", "-c", default="config.toml", help="Configuration file path")
@click.pass_context
def cli(ctx, config: str):
    """Configurable form element tooling."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    try:
        cfg = Config.load_optional(config)
    except ElementKitException as e:
        raise click.ClickException(str(e))

    # stdout carries command output; keep the console handler quiet
    setup_log(cfg.log_file, console_level=logging.WARNING)
    ctx.obj["config"] = cfg


@cli.command(name="types")
@click.pass_context
def list_types(ctx):
    """List known element types."""
    cfg = ctx.obj["config"]
    click.echo("id\tname\tcategory\tfields")
    for descriptor in cfg.get_registry():
        click.echo(
            f"{descriptor.type_id}\t{descriptor.display_name}\t"
            f"{descriptor.category or '-'}\t{len(descriptor.fields)}"
        )


@cli.command(name="defaults")
@click.argument("type_id", type=int)
@click.pass_context
def defaults(ctx, type_id: int):
    """Print the default payload of an element type."""
    cfg = ctx.obj["config"]
    click.echo(generate_defaults(type_id, registry=cfg.get_registry()))


@cli.command(name="validate")
@click.argument("type_id", type=int)
@click.argument("payload", type=click.File("r"), default="-")
@click.pass_context
def validate_payload(ctx, type_id: int, payload):
    """Validate a payload read from FILE (or stdin)."""
    cfg = ctx.obj["config"]
    result = validate(payload.read(), type_id, registry=cfg.get_registry())
    if result.is_valid:
        click.echo("valid")
        return

    for error in result.errors:
        click.echo(error)
    ctx.exit(1)


@cli.command(name="stamp")
@click.argument("type_id", type=int)
@click.argument("payload", type=click.File("r"), default="-")
def stamp(type_id: int, payload):
    """Add the type and version markers written on save."""
    try:
        click.echo(stamp_payload(payload.read(), type_id))
    except ElementKitException as e:
        raise click.ClickException(str(e))


@cli.command(name="render")
@click.argument("type_id", type=int)
@click.option("--payload", "payload_file", type=click.File("r"), default=None, help="Payload JSON file, defaults of the type when omitted")
@click.option("--value", default=None, help="Current value, parsed as JSON when possible")
@click.option("--read-only", is_flag=True, default=False, help="Render read-only")
@click.option("--compact", is_flag=True, default=False, help="Omit help text")
@click.option("--no-labels", is_flag=True, default=False, help="Do not wrap with a label")
@click.pass_context
def render(ctx, type_id: int, payload_file, value, read_only, compact, no_labels: bool):
    """Render one element fragment locally."""
    cfg = ctx.obj["config"]
    registry = cfg.get_registry()
    descriptor = registry.resolve(type_id)

    if payload_file is not None:
        payload = payload_file.read()
    else:
        payload = generate_defaults(type_id, registry=registry)

    overrides = {}
    if read_only:
        overrides["read_only"] = True
    if compact:
        overrides["compact"] = True
    if no_labels:
        overrides["show_labels"] = False

    instance = ElementInstance(
        id="preview",
        type_id=type_id,
        label=descriptor.display_name if descriptor else f"Element {type_id}",
        data_payload=payload,
    )
    renderer = cfg.get_renderer()
    click.echo(renderer.render_instance(instance, _parse_value(value), cfg.get_render_options(**overrides)))


@cli.command(name="form")
@click.argument("instances_file", type=click.File("r"))
@click.option("--values", "values_file", type=click.File("r"), default=None, help="JSON object of values keyed by instance id")
@click.pass_context
def form(ctx, instances_file, values_file):
    """Compose a form from a JSON list of element instances."""
    cfg = ctx.obj["config"]

    raw_instances = _load_json_file(instances_file, "instances file")
    if not isinstance(raw_instances, list):
        raise click.ClickException("Instances file must contain a JSON list")
    try:
        instances = [ElementInstance.model_validate(item) for item in raw_instances]
    except ValidationError as e:
        raise click.ClickException(f"Invalid element instance: {e}")

    values = {}
    if values_file is not None:
        values = _load_json_file(values_file, "values file")
        if not isinstance(values, dict):
            raise click.ClickException("Values file must contain a JSON object")

    html = compose_form(instances, values, cfg.get_render_options(), cfg.get_renderer())
    click.echo(html)


@cli.command(name="fetch")
@click.argument("instance_id")
@click.option("--token", default=None, help="Bearer token, the configured one when omitted")
@click.option("--stylesheet", default=None, help="Stylesheet linked from the document")
@click.pass_context
def fetch(ctx, instance_id: str, token, stylesheet):
    """Fetch server-rendered markup for a stored element."""
    cfg = ctx.obj["config"]
    token = token or cfg.render_service.token
    stylesheet = stylesheet or cfg.render.stylesheet_url

    try:
        with cfg.get_remote_coordinator(credentials=lambda: token) as coordinator:
            result = coordinator.fetch(instance_id)
    except ElementKitException as e:
        logger.error(f"Application error: {e}", exc_info=True)
        raise click.ClickException(str(e))

    if result.state != RemoteState.READY:
        if result.auth_required:
            raise click.ClickException(
                "Server preview requires authentication. Please log in to view server-rendered preview."
            )
        raise click.ClickException(f"Failed to render element: {result.error}")

    click.echo(document_shell(result.html, stylesheet))


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
