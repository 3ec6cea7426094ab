"""Element renderer unit tests"""

import json
from datetime import date

import pytest
from markupsafe import Markup

from elementkit import renderer as renderer_module
from elementkit.enums import RenderKind
from elementkit.errors import ConfigurationError, RenderFault
from elementkit.renderer import (
    ElementRenderer,
    RenderContext,
    is_checked,
    parse_choices,
    render_error,
    render_rich_text,
    wrap,
)
from elementkit.schema import ElementInstance, RenderOptions

HOSTILE = '<script>alert("x")</script>'


@pytest.fixture
def renderer():
    return ElementRenderer()


@pytest.fixture
def wide_renderer():
    """Renderer mapping the text-like kinds onto a few built-in type ids."""
    return ElementRenderer(render_kinds={1: "text", 2: "url", 5: "email", 8: "date", 12: "textarea", 13: "radio"})


def _ctx(value=None, data=None, read_only=False):
    return RenderContext(
        type_id=99,
        element_id="1",
        name="Body",
        data=data or {},
        value=value,
        options=RenderOptions(read_only=read_only),
    )


class TestDispatch:
    def test_default_render_kinds(self, renderer):
        assert renderer.kind_for(3) == RenderKind.NUMBER
        assert renderer.kind_for(4) == RenderKind.SELECT
        assert renderer.kind_for(6) == RenderKind.CHECKBOX
        assert renderer.kind_for(1) == RenderKind.UNSUPPORTED

    def test_unknown_type_is_unsupported(self, renderer):
        assert renderer.kind_for(999) == RenderKind.UNSUPPORTED
        assert renderer.kind_for("garbage") == RenderKind.UNSUPPORTED

    @pytest.mark.parametrize("type_id", [999, 0, -5, "x"])
    def test_unknown_type_renders_placeholder(self, renderer, type_id):
        html = renderer.render(type_id, {}, None)
        assert 'class="element-unsupported"' in html
        assert "is not yet supported for rendering" in html
        assert "(Unknown)" in html

    def test_known_type_without_generator_names_the_type(self, renderer):
        html = renderer.render(1, {"Text": "x"}, None)
        assert 'data-element-type="1"' in html
        assert "Element type 1 (Separator) is not yet supported for rendering" in html

    def test_type_label_is_escaped_in_placeholder(self, renderer):
        html = renderer.render(999, {}, None, type_label=HOSTILE)
        assert "<script>" not in html

    def test_unknown_type_with_unparsable_payload_is_unsupported(self, renderer):
        html = renderer.render(999, "not json", None)
        assert 'class="element-unsupported"' in html
        assert "element-error" not in html

    def test_render_kinds_can_be_extended(self, wide_renderer):
        assert wide_renderer.kind_for(1) == RenderKind.TEXT
        assert wide_renderer.kind_for(3) == RenderKind.NUMBER

    def test_render_kind_for_unregistered_type_stays_unsupported(self):
        renderer = ElementRenderer(render_kinds={500: "text"})
        assert renderer.kind_for(500) == RenderKind.UNSUPPORTED

    def test_invalid_render_kind_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown render kind"):
            ElementRenderer(render_kinds={1: "hologram"})


class TestTotality:
    def test_unparsable_payload_gives_error_fragment(self, renderer):
        html = renderer.render(3, "{not json", 5)
        assert 'class="element-error"' in html
        assert "Failed to render element type 3" in html

    def test_non_object_payload_gives_error_fragment(self, renderer):
        html = renderer.render(4, "[1, 2]", None)
        assert "<strong>Error:</strong>" in html

    def test_generator_failure_gives_error_fragment(self, renderer, monkeypatch):
        def boom(ctx):
            raise RenderFault("<broken>")

        monkeypatch.setattr(renderer_module, "GENERATORS", {RenderKind.NUMBER: boom})
        html = renderer.render(3, {}, 1)
        assert "Failed to render element type 3: &lt;broken&gt;" in html

    def test_unexpected_exception_is_contained(self, renderer, monkeypatch):
        def boom(ctx):
            raise KeyError("missing")

        monkeypatch.setattr(renderer_module, "GENERATORS", {RenderKind.SELECT: boom})
        html = renderer.render(4, {}, None)
        assert 'class="element-error"' in html

    def test_invalid_options_fall_back_to_defaults(self, renderer):
        html = renderer.render(3, {}, 1, {"cssClasses": "not a mapping"})
        assert 'class="element-input"' in html

    def test_render_is_deterministic(self, renderer):
        payload = {"options": '[{"value": "a", "label": "A"}, {"value": "b", "label": "B"}]', "placeholder": "Pick"}
        first = renderer.render(4, payload, "b", {"readOnly": True}, element_id=3, name="Choice")
        second = renderer.render(4, dict(payload), "b", {"readOnly": True}, element_id=3, name="Choice")
        assert first == second

    def test_payload_text_and_mapping_render_alike(self, renderer):
        payload = {"min": 0, "max": 10, "unit": "kg"}
        assert renderer.render(3, payload, 5) == renderer.render(3, json.dumps(payload), 5)


class TestNumber:
    def test_exact_markup(self, renderer):
        html = renderer.render(
            3, {"min": 0, "max": 10, "step": 1, "unit": "kg"}, 5, element_id=7, name="Weight"
        )
        assert html == (
            '<input type="number" id="element-7" name="Weight" class="element-input" '
            'value="5" min="0" max="10" step="1" /> <span class="number-unit">kg</span>'
        )

    def test_zero_value_is_kept(self, renderer):
        assert 'value="0"' in renderer.render(3, {}, 0)

    def test_unset_value_is_omitted(self, renderer):
        assert "value=" not in renderer.render(3, {}, None)

    def test_required_and_read_only(self, renderer):
        html = renderer.render(3, {"required": True}, 1, {"readOnly": True})
        assert html.endswith("required readonly />")

    def test_hostile_value_is_escaped(self, renderer):
        html = renderer.render(3, {"unit": HOSTILE}, HOSTILE, name=HOSTILE)
        assert "<script>" not in html
        assert "&lt;script&gt;" in html


class TestSelect:
    def test_exact_markup(self, renderer):
        payload = {
            "options": [{"value": "a", "label": "A"}, {"value": "b", "label": "B"}],
            "placeholder": "Pick",
        }
        html = renderer.render(4, payload, "b")
        assert html == (
            '<select id="element-preview" name="" class="element-input">\n'
            '<option value="" disabled>Pick</option>\n'
            '<option value="a">A</option>\n'
            '<option value="b" selected>B</option>\n'
            "</select>"
        )

    def test_options_as_encoded_text(self, renderer):
        html = renderer.render(4, {"options": '[{"value": 1, "label": "One"}]'}, 1)
        assert '<option value="1" selected>One</option>' in html

    def test_unparsable_options_degrade_to_empty(self, renderer):
        html = renderer.render(4, {"options": "[not json"}, None)
        assert "<option" not in html
        assert html.startswith("<select")

    def test_placeholder_selected_when_unset(self, renderer):
        html = renderer.render(4, {"options": [], "placeholder": "Pick"}, None)
        assert '<option value="" disabled selected>Pick</option>' in html

    def test_multiple_selection(self, renderer):
        payload = {"options": ["x", "y", "z"], "multiple": True}
        html = renderer.render(4, payload, ["x", "z"])
        assert "multiple" in html
        assert '<option value="x" selected>x</option>' in html
        assert '<option value="y">y</option>' in html
        assert '<option value="z" selected>z</option>' in html

    def test_read_only_disables(self, renderer):
        assert "disabled>" in renderer.render(4, {"options": []}, None, {"readOnly": True}).split("\n")[0]

    def test_option_labels_are_escaped(self, renderer):
        html = renderer.render(4, {"options": [{"value": "v", "label": HOSTILE}]}, None)
        assert "<script>" not in html


class TestCheckbox:
    @pytest.mark.parametrize("value", [True, "true", 1, 1.0])
    def test_checked_values(self, value):
        assert is_checked(value, {}) is True

    @pytest.mark.parametrize("value", [False, "false", 0, "1", "yes", ""])
    def test_unchecked_values(self, value):
        assert is_checked(value, {"defaultChecked": True}) is False

    def test_unset_value_uses_default(self):
        assert is_checked(None, {"defaultChecked": True}) is True
        assert is_checked(None, {}) is False

    def test_exact_markup(self, renderer):
        html = renderer.render(6, {"label": "Agree"}, True, element_id=1, name="Consent")
        assert html == (
            '<div class="checkbox-wrapper">\n'
            '  <input type="checkbox" id="element-1" name="Consent" class="element-input" checked />\n'
            '  <label for="element-1">Agree</label>\n'
            "</div>"
        )

    def test_label_falls_back_to_name(self, renderer):
        html = renderer.render(6, {}, None, name="Consent")
        assert '<label for="element-preview">Consent</label>' in html
        assert "checked" not in html


class TestOtherKinds:
    def test_text_escapes_value(self, wide_renderer):
        html = wide_renderer.render(1, {"placeholder": "Type"}, HOSTILE)
        assert html.startswith('<input type="text"')
        assert "<script>" not in html
        assert 'placeholder="Type"' in html

    def test_email_escapes_value(self, wide_renderer):
        html = wide_renderer.render(5, {"allowMultiple": True}, HOSTILE)
        assert 'type="email"' in html
        assert "multiple" in html
        assert "<script>" not in html

    def test_url_preview_link(self, wide_renderer):
        html = wide_renderer.render(2, {"openInNewTab": True}, "https://example.com/?a=1&b=2")
        assert 'href="https://example.com/?a=1&amp;b=2"' in html
        assert 'target="_blank"' in html

    def test_url_without_safe_scheme_has_no_link(self, wide_renderer):
        html = wide_renderer.render(2, {}, "javascript:alert(1)")
        assert "<a " not in html
        assert 'value="javascript:alert(1)"' in html

    def test_url_escapes_value(self, wide_renderer):
        html = wide_renderer.render(2, {}, 'https://x.test/"><script>')
        assert "<script>" not in html

    def test_url_read_only_has_no_link(self, wide_renderer):
        assert "<a " not in wide_renderer.render(2, {}, "https://example.com", {"readOnly": True})

    def test_date_with_time(self, wide_renderer):
        html = wide_renderer.render(8, {"includeTime": True, "minDate": "2024-01-01"}, "2024-05-01T10:00")
        assert 'type="datetime-local"' in html
        assert 'min="2024-01-01"' in html

    def test_textarea_default_rows_and_escaping(self, wide_renderer):
        html = wide_renderer.render(12, {}, HOSTILE)
        assert 'rows="3"' in html
        assert html.endswith("&lt;/script&gt;</textarea>")

    def test_radio_group(self, wide_renderer):
        payload = {"options": '[{"value": "a", "label": "A"}, {"value": "b", "label": "B"}]', "layout": "horizontal"}
        html = wide_renderer.render(13, payload, "b", element_id=4)
        assert html.startswith('<div class="radio-group radio-group-horizontal">')
        assert 'id="element-4-0" name="element-4" value="a" />' in html
        assert 'id="element-4-1" name="element-4" value="b" checked />' in html

    def test_color_defaults_and_preview(self):
        html = renderer_module.render_color(_ctx(data={"showPreview": True}))
        assert 'value="#000000"' in html
        assert "background-color: #000000;" in html

    def test_color_preview_rejects_css_injection(self):
        html = renderer_module.render_color(_ctx(value="red; background: url(evil)", data={"showPreview": True}))
        assert "url(evil)" not in html.split("<span")[1]
        assert "background-color: #000000;" in html

    def test_color_preview_keeps_named_color(self):
        html = renderer_module.render_color(_ctx(value="teal", data={"showPreview": True}))
        assert "background-color: teal;" in html

    def test_file_hints(self):
        html = renderer_module.render_file(_ctx(value="scan.pdf", data={"maxSize": 5, "accept": ".pdf"}))
        assert 'accept=".pdf"' in html
        assert "Max size: 5MB" in html
        assert "Current: scan.pdf" in html


class TestRichText:
    def test_read_only_value_is_verbatim(self):
        html = render_rich_text(_ctx(value="<p><b>Bold</b></p>", read_only=True))
        assert html == '<div class="rich-text-display" id="element-1"><p><b>Bold</b></p></div>'

    def test_editable_value_is_escaped(self):
        html = render_rich_text(_ctx(value="<p>x</p>"))
        assert "&lt;p&gt;x&lt;/p&gt;" in html
        assert 'contenteditable="true"' in html
        assert '<input type="hidden" name="Body" value="&lt;p&gt;x&lt;/p&gt;" />' in html

    def test_read_only_without_value_uses_editor(self):
        html = render_rich_text(_ctx(read_only=True, data={"minHeight": 120, "required": True}))
        assert 'contenteditable="false"' in html
        assert "min-height: 120px;" in html
        assert 'data-required="true"' in html

    @pytest.mark.parametrize("min_height", ["100px; position: fixed", -5, None])
    def test_invalid_min_height_falls_back(self, min_height):
        html = render_rich_text(_ctx(data={"minHeight": min_height}))
        assert 'style="min-height: 200px;"' in html


class TestParseChoices:
    def test_scalars_and_objects(self):
        choices = parse_choices(["a", {"value": 2, "label": "Two"}, {"value": 3}])
        assert [(c.value, c.label) for c in choices] == [("a", "a"), (2, "Two"), (3, "3")]

    def test_entries_without_value_are_skipped(self):
        assert parse_choices([{"label": "orphan"}]) == []

    @pytest.mark.parametrize("raw", [None, "oops", '{"value": 1}', 42])
    def test_bad_input_is_empty(self, raw):
        assert parse_choices(raw) == []


class TestWrap:
    def test_label_and_help_text(self):
        html = wrap("Weight", Markup("<input />"), help_text="In kilograms")
        assert html == (
            '<div class="element-container">\n'
            '  <label class="element-label">Weight</label>\n'
            "  <input />\n"
            '  <small class="element-help-text">In kilograms</small>\n'
            "</div>"
        )

    def test_compact_omits_help_text(self):
        html = wrap("Weight", Markup("<input />"), {"compact": True}, "In kilograms")
        assert "In kilograms" not in html
        assert "<small" not in html

    def test_label_is_escaped_fragment_is_not(self):
        html = wrap(HOSTILE, Markup("<input />"))
        assert "<script>" not in html
        assert "<input />" in html

    def test_labels_off_returns_fragment_unchanged(self):
        html = wrap("Weight", Markup("<input />"), {"showLabels": False}, "In kilograms")
        assert html == "<input />"

    def test_custom_css_classes(self):
        options = {"cssClasses": {"container": "form-group", "label": "form-label"}}
        html = wrap("Name", Markup(""), options)
        assert html.startswith('<div class="form-group">')
        assert '<label class="form-label">' in html


def test_render_error_escapes_message():
    html = render_error(HOSTILE, {"cssClasses": {"error": "alert"}})
    assert html.startswith('<div class="alert"')
    assert "<strong>Error:</strong> &lt;script&gt;" in html


class TestRenderInstance:
    def _instance(self, **kwargs):
        values = {
            "id": 1,
            "type_id": 3,
            "label": "Weight",
            "data_payload": '{"unit": "kg"}',
            "editor_notes": "In kilograms",
        }
        values.update(kwargs)
        return ElementInstance(**values)

    def test_wrapped_with_label(self, renderer):
        html = renderer.render_instance(self._instance(), 70)
        assert html.startswith('<div class="element-container">')
        assert '<label class="element-label">Weight</label>' in html
        assert 'name="Weight"' in html
        assert 'value="70"' in html
        assert "In kilograms" in html

    def test_without_labels(self, renderer):
        html = renderer.render_instance(self._instance(), 70, {"showLabels": False})
        assert html.startswith('<input type="number" id="element-1"')

    def test_unreadable_payload(self, renderer):
        html = renderer.render_instance(self._instance(data_payload="{oops"))
        assert "Failed to render element: Weight" in html

    def test_preview_and_compact_presets(self, renderer):
        preview = renderer.render_preview(self._instance(), 70)
        compact = renderer.render_compact(self._instance(), 70)

        assert "readonly" in preview
        assert "In kilograms" in preview
        assert "readonly" in compact
        assert "element-container" not in compact

    def test_unsupported_instance_uses_type_label(self, renderer):
        html = renderer.render_instance(self._instance(type_id=77, type_label="Legacy"))
        assert "Element type 77 (Legacy)" in html


class TestDisplayValue:
    def test_unset(self, renderer):
        assert renderer.display_value(3, None) == "-"

    def test_checkbox(self, renderer):
        assert renderer.display_value(6, True) == "Yes"
        assert renderer.display_value(6, 0) == "No"

    def test_date(self, wide_renderer):
        assert wide_renderer.display_value(8, "2024-05-01T10:30:00") == "2024-05-01"
        assert wide_renderer.display_value(8, date(2024, 5, 1)) == "2024-05-01"
        assert wide_renderer.display_value(8, "soon") == "soon"

    def test_color(self):
        renderer = ElementRenderer(render_kinds={1: "color"})
        assert renderer.display_value(1, "#ff0000") == (
            '<span style="color: #ff0000;">&#9679;</span> #ff0000'
        )

    def test_color_with_css_payload_is_plain_text(self):
        renderer = ElementRenderer(render_kinds={1: "color"})
        html = renderer.display_value(1, "red; background: url(x)")
        assert "<span" not in html
        assert html == "red; background: url(x)"

    def test_text_is_escaped(self, renderer):
        assert renderer.display_value(3, HOSTILE) == "&lt;script&gt;alert(&#34;x&#34;)&lt;/script&gt;"
