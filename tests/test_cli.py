"""Test CLI functionality."""

import json
from unittest.mock import Mock

import pytest
import requests
from click.testing import CliRunner

from elementkit import cli as cli_module
from elementkit.cli import cli


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.setattr(cli_module, "setup_log", Mock())
    for key in ("ELEMENTKIT_RENDER_SERVICE__TOKEN", "ELEMENTKIT_RENDER_SERVICE__BASE_URL"):
        monkeypatch.delenv(key, raising=False)
    runner = CliRunner()
    with runner.isolated_filesystem():
        yield runner


def _invoke(runner, *args, input=None):
    return runner.invoke(cli, list(args), obj={}, input=input)


def test_types(runner):
    result = _invoke(runner, "types")

    assert result.exit_code == 0
    lines = result.output.strip().splitlines()
    assert lines[0] == "id\tname\tcategory\tfields"
    assert len(lines) == 15
    assert lines[3].startswith("3\tNumber Input")


def test_setup_log_uses_configured_file(runner):
    with open("config.toml", "w") as f:
        f.write('log_file = "logs/custom.log"\n')

    _invoke(runner, "types")

    cli_module.setup_log.assert_called_once()
    assert cli_module.setup_log.call_args[0][0] == "logs/custom.log"


def test_defaults(runner):
    result = _invoke(runner, "defaults", "10")

    assert result.exit_code == 0
    assert json.loads(result.output) == {"LinesToShow": 1}


def test_defaults_unknown_type(runner):
    result = _invoke(runner, "defaults", "999")
    assert result.output.strip() == "{}"


def test_validate_valid_payload(runner):
    result = _invoke(runner, "validate", "5", input='{"Level": 2}')

    assert result.exit_code == 0
    assert result.output.strip() == "valid"


def test_validate_invalid_payload(runner):
    with open("payload.json", "w") as f:
        f.write('{"Level": 9}')

    result = _invoke(runner, "validate", "5", "payload.json")

    assert result.exit_code == 1
    assert result.output.strip() == "Header Level must be at most 6"


def test_validate_unknown_type(runner):
    result = _invoke(runner, "validate", "999", input="{}")

    assert result.exit_code == 1
    assert "Unknown element type" in result.output


def test_stamp(runner):
    result = _invoke(runner, "stamp", "14", input='{"HeaderText": "Vitals"}')

    assert result.exit_code == 0
    assert json.loads(result.output) == {"HeaderText": "Vitals", "ElementType": 14, "Version": 3}


def test_stamp_invalid_payload(runner):
    result = _invoke(runner, "stamp", "1", input="{oops")

    assert result.exit_code != 0
    assert "Invalid JSON payload" in result.output


def test_render_with_defaults(runner):
    result = _invoke(runner, "render", "3", "--value", "5")

    assert result.exit_code == 0
    assert '<label class="element-label">Number Input</label>' in result.output
    assert 'type="number"' in result.output
    assert 'value="5"' in result.output
    assert 'step="1"' in result.output


def test_render_flags(runner):
    with open("payload.json", "w") as f:
        json.dump({"options": [{"value": "a", "label": "A"}]}, f)

    result = _invoke(runner, "render", "4", "--payload", "payload.json", "--value", "a", "--read-only", "--no-labels")

    assert result.exit_code == 0
    assert result.output.startswith("<select")
    assert "disabled" in result.output
    assert '<option value="a" selected>A</option>' in result.output


def test_render_unsupported_type(runner):
    result = _invoke(runner, "render", "7")

    assert result.exit_code == 0
    assert "Element type 7 (Page Break) is not yet supported for rendering" in result.output


def test_form(runner):
    instances = [
        {"id": 1, "typeId": 3, "label": "Thirty", "dataPayload": "{}", "order": 30},
        {"id": 2, "typeId": 3, "label": "Ten", "dataPayload": "{}", "order": 10},
        {"id": 3, "typeId": 3, "label": "Twenty", "dataPayload": "{}", "order": 20, "disabled": True},
    ]
    with open("instances.json", "w") as f:
        json.dump(instances, f)
    with open("values.json", "w") as f:
        json.dump({"2": 4}, f)

    result = _invoke(runner, "form", "instances.json", "--values", "values.json")

    assert result.exit_code == 0
    assert result.output.startswith('<form class="source-elements-form">')
    assert "Twenty" not in result.output
    assert result.output.index("Ten") < result.output.index("Thirty")
    assert 'value="4"' in result.output


def test_form_rejects_non_list(runner):
    with open("instances.json", "w") as f:
        f.write('{"id": 1}')

    result = _invoke(runner, "form", "instances.json")

    assert result.exit_code != 0
    assert "must contain a JSON list" in result.output


def test_fetch_without_service(runner):
    result = _invoke(runner, "fetch", "42", "--token", "t")

    assert result.exit_code != 0
    assert "Render service is disabled" in result.output


def _write_service_config():
    with open("config.toml", "w") as f:
        f.write('[render_service]\nbase_url = "https://forms.example.com"\ntimeout = 5\n')


def test_fetch_without_token(runner, monkeypatch):
    _write_service_config()
    get = Mock()
    monkeypatch.setattr(requests, "get", get)

    result = _invoke(runner, "fetch", "42")

    assert result.exit_code != 0
    assert "Server preview requires authentication" in result.output
    get.assert_not_called()


def test_fetch_success(runner, monkeypatch):
    _write_service_config()
    response = Mock(status_code=200, text="<div>server</div>", headers={"content-type": "text/html"})
    monkeypatch.setattr(requests, "get", Mock(return_value=response))

    result = _invoke(runner, "fetch", "42", "--token", "t", "--stylesheet", "/forms.css")

    assert result.exit_code == 0
    assert result.output.startswith("<!DOCTYPE html>")
    assert "<div>server</div>" in result.output
    assert 'href="/forms.css"' in result.output


def test_fetch_failure(runner, monkeypatch):
    _write_service_config()

    def fake_get(url, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests, "get", fake_get)

    result = _invoke(runner, "fetch", "42", "--token", "t")

    assert result.exit_code != 0
    assert "Failed to render element: Failed to render element 42" in result.output


def test_invalid_config_file(runner):
    with open("config.toml", "w") as f:
        f.write("[render_service]\nenabled = true\n")

    result = _invoke(runner, "types")

    assert result.exit_code != 0
    assert "Configuration validation failed" in result.output
