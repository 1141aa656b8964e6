"""Tests for the form builder: transitions, codec, renderer, client and session."""
from __future__ import annotations

import json
from typing import Any, Dict, List, Tuple
from unittest import mock
from urllib.parse import urlsplit

import requests
from django.test import SimpleTestCase, TestCase
from rest_framework.test import APIClient

from form_templates.models import Business

from . import state as transitions
from .client import TemplateStoreClient, TemplateStoreError
from .codec import decode_field, decode_fields, decode_validation, encode_template
from .fields import (
    FieldDefinition,
    FieldOption,
    FieldType,
    InvalidFieldError,
    UnknownFieldTypeError,
    Validation,
)
from .renderer import FIELD_BUILDERS, RenderMode, build_form, form_for_template
from .session import ERROR, SUCCESS, FormBuilderSession, Notice
from .state import BuilderState, FieldNotFoundError


def _orders(state: BuilderState) -> List[int]:
    return [field.order for field in state.fields]


def _shape(field: FieldDefinition) -> Tuple[Any, ...]:
    """Everything about a field except its generated id."""

    return (
        field.field_type,
        field.label,
        field.placeholder,
        field.is_required,
        field.order,
        field.validation,
        field.styling,
        field.conditional,
        field.options,
    )


def _stored(state: BuilderState, template_id: int = 7, **extra: Any) -> Dict[str, Any]:
    """What the store would hand back for the given working state."""

    payload = encode_template(state, business_id=1)
    record = dict(payload, id=template_id, isActive=True, **extra)
    record["fields"] = [dict(field, id=index + 100) for index, field in enumerate(payload["fields"])]
    return record


class FieldDefinitionTests(SimpleTestCase):
    def test_option_types_need_options(self) -> None:
        with self.assertRaises(InvalidFieldError):
            FieldDefinition(id="f1", field_type=FieldType.DROPDOWN, label="Pick one")

    def test_plain_types_reject_options(self) -> None:
        with self.assertRaises(InvalidFieldError):
            FieldDefinition(
                id="f1",
                field_type=FieldType.TEXT,
                label="Name",
                options=(FieldOption(1, "A", "a"),),
            )

    def test_option_values_are_unique(self) -> None:
        with self.assertRaises(InvalidFieldError):
            FieldDefinition(
                id="f1",
                field_type=FieldType.CHECKBOX,
                label="Extras",
                options=(FieldOption(1, "A", "same"), FieldOption(2, "B", "same")),
            )

    def test_unknown_type(self) -> None:
        with self.assertRaises(UnknownFieldTypeError):
            FieldType.parse("signature")


class BuilderTransitionTests(SimpleTestCase):
    def test_new_template_defaults(self) -> None:
        state = transitions.new_template("https://g.page/r/bistro/review")
        self.assertEqual(
            [(f.field_type, f.label) for f in state.fields],
            [
                (FieldType.TEXT, "Your Name"),
                (FieldType.EMAIL, "Email Address"),
                (FieldType.RATING, "Rate Your Experience"),
                (FieldType.TEXTAREA, "Tell us about your experience"),
            ],
        )
        self.assertTrue(all(f.is_required for f in state.fields))
        self.assertEqual(_orders(state), [0, 1, 2, 3])
        self.assertEqual(state.settings.google_review_url, "https://g.page/r/bistro/review")
        self.assertTrue(state.creating_new)
        self.assertFalse(state.is_saved)

    def test_add_dropdown_gets_two_default_options(self) -> None:
        state = transitions.add_field(transitions.new_template(), FieldType.DROPDOWN)
        added = state.fields[-1]
        self.assertEqual([o.value for o in added.options], ["option1", "option2"])
        self.assertEqual(added.label, "New Dropdown")
        self.assertEqual(added.order, 4)
        self.assertEqual(state.selected_field, added)
        self.assertTrue(state.editor_open)

    def test_add_text_field_defaults(self) -> None:
        state = transitions.add_field(BuilderState(), "text")
        added = state.fields[0]
        self.assertIsNone(added.options)
        self.assertEqual(added.placeholder, "Enter text...")
        self.assertFalse(added.is_required)
        self.assertEqual(added.validation, Validation())

    def test_remove_renumbers_and_closes_editor(self) -> None:
        state = transitions.new_template()
        second = state.fields[1].id
        state = transitions.select_field(state, second)
        state = transitions.remove_field(state, second)
        self.assertEqual(_orders(state), [0, 1, 2])
        self.assertNotIn(second, [f.id for f in state.fields])
        self.assertIsNone(state.selected_field)
        self.assertFalse(state.editor_open)

    def test_duplicate_field(self) -> None:
        state = transitions.add_field(transitions.new_template(), FieldType.CHECKBOX)
        original = state.fields[-1]
        state = transitions.set_validation_rule(state, original.id, "minSelected", 1)
        original = state.get_field(original.id)

        state = transitions.duplicate_field(state, state.fields[0].id)
        state = transitions.duplicate_field(state, original.id)
        duplicate = state.fields[-1]

        self.assertNotEqual(duplicate.id, original.id)
        self.assertEqual(duplicate.label, "New Checkbox (Copy)")
        self.assertEqual(duplicate.field_type, original.field_type)
        self.assertEqual(duplicate.validation, original.validation)
        self.assertEqual(duplicate.styling, original.styling)
        self.assertEqual(duplicate.options, original.options)
        self.assertEqual(_orders(state), list(range(len(state.fields))))

        duplicate.validation.rules["maxSelected"] = 2
        self.assertNotIn("maxSelected", state.get_field(original.id).validation.rules)

    def test_move_field_reorders(self) -> None:
        state = transitions.new_template()
        labels = [f.label for f in state.fields]
        state = transitions.move_field(state, 3, 0)
        self.assertEqual([f.label for f in state.fields], [labels[3]] + labels[:3])
        self.assertEqual(_orders(state), [0, 1, 2, 3])
        with self.assertRaises(IndexError):
            transitions.move_field(state, 0, 4)

    def test_order_stays_dense_across_edits(self) -> None:
        state = transitions.new_template()
        state = transitions.add_field(state, FieldType.PHONE)
        state = transitions.remove_field(state, state.fields[0].id)
        state = transitions.duplicate_field(state, state.fields[1].id)
        state = transitions.move_field(state, 4, 1)
        state = transitions.remove_field(state, state.fields[2].id)
        self.assertEqual(_orders(state), list(range(len(state.fields))))

    def test_update_field_keeps_editor_in_sync(self) -> None:
        state = transitions.add_field(transitions.new_template(), FieldType.TEXT)
        field_id = state.selected_field_id
        state = transitions.update_field(state, field_id, label="Favourite dish", is_required=True)
        self.assertEqual(state.selected_field.label, "Favourite dish")
        self.assertTrue(state.get_field(field_id).is_required)

    def test_update_field_type_switches_options(self) -> None:
        state = transitions.new_template()
        field_id = state.fields[0].id
        state = transitions.update_field(state, field_id, field_type="dropdown")
        self.assertEqual(len(state.get_field(field_id).options), 2)
        state = transitions.update_field(state, field_id, field_type=FieldType.EMAIL)
        self.assertIsNone(state.get_field(field_id).options)

    def test_update_field_rejects_unknown_input(self) -> None:
        state = transitions.new_template()
        with self.assertRaises(TypeError):
            transitions.update_field(state, state.fields[0].id, order=9)
        with self.assertRaises(FieldNotFoundError):
            transitions.update_field(state, "missing", label="x")

    def test_validation_rule_removed_by_empty_value(self) -> None:
        state = transitions.new_template()
        field_id = state.fields[3].id
        state = transitions.set_validation_rule(state, field_id, "maxLength", 500)
        self.assertEqual(state.get_field(field_id).validation.rules["maxLength"], 500)
        state = transitions.set_validation_rule(state, field_id, "maxLength", "")
        state = transitions.set_validation_rule(state, field_id, "required", False)
        self.assertEqual(state.get_field(field_id).validation.rules, {"minLength": 10})

    def test_validation_rule_must_suit_field_type(self) -> None:
        state = transitions.new_template()
        name_id = state.fields[0].id
        with self.assertRaises(InvalidFieldError):
            transitions.set_validation_rule(state, name_id, "minSelected", 1)
        state = transitions.set_validation_rule(state, name_id, "pattern", "^[A-Z]")
        self.assertEqual(state.get_field(name_id).validation.rules["pattern"], "^[A-Z]")

    def test_option_editing(self) -> None:
        state = transitions.add_field(BuilderState(), FieldType.DROPDOWN)
        field_id = state.selected_field_id
        state = transitions.add_option(state, field_id)
        self.assertEqual(
            [(o.id, o.value) for o in state.get_field(field_id).options],
            [(1, "option1"), (2, "option2"), (3, "option3")],
        )
        state = transitions.update_option(state, field_id, 3, label="Patio", value="patio")
        state = transitions.remove_option(state, field_id, 1)
        state = transitions.remove_option(state, field_id, 2)
        self.assertEqual([o.value for o in state.get_field(field_id).options], ["patio"])
        with self.assertRaises(InvalidFieldError):
            transitions.remove_option(state, field_id, 3)

    def test_apply_preset(self) -> None:
        state = transitions.apply_preset(transitions.new_template(), "restaurant")
        self.assertEqual(state.name, "Restaurant Review Form")
        self.assertEqual(len(state.fields), 7)
        dropdown = state.fields[5]
        self.assertEqual(
            [o.value for o in dropdown.options], ["dine-in", "takeout", "delivery"]
        )
        self.assertEqual(_orders(state), list(range(7)))

    def test_check_saveable(self) -> None:
        state = transitions.new_template()
        self.assertIsNone(transitions.check_saveable(state))
        self.assertEqual(
            transitions.check_saveable(transitions.rename(state, name="  ")),
            transitions.NAME_REQUIRED_MESSAGE,
        )
        empty = BuilderState(name="Feedback")
        self.assertEqual(transitions.check_saveable(empty), transitions.FIELDS_REQUIRED_MESSAGE)

    def test_load_keeps_review_url_when_template_has_none(self) -> None:
        current = transitions.new_template("https://g.page/r/bistro/review")
        record = _stored(transitions.new_template())
        record["settings"] = json.dumps({"theme": "classic"})

        loaded = transitions.load_template(current, record)
        self.assertEqual(loaded.settings.google_review_url, "https://g.page/r/bistro/review")
        self.assertEqual(loaded.settings.theme, "classic")
        self.assertEqual(loaded.template_id, 7)
        self.assertFalse(loaded.creating_new)

    def test_load_uses_template_review_url(self) -> None:
        current = transitions.new_template("https://g.page/r/bistro/review")
        record = _stored(transitions.new_template())
        record["settings"] = {"googleReviewUrl": "https://example.com/own", "layout": "wide"}

        loaded = transitions.load_template(current, record)
        self.assertEqual(loaded.settings.google_review_url, "https://example.com/own")
        self.assertEqual(loaded.settings.extra, {"layout": "wide"})


class CodecTests(SimpleTestCase):
    def test_save_then_load_round_trips(self) -> None:
        state = transitions.add_field(transitions.new_template("https://g.page/r/x"), "checkbox")
        state = transitions.set_error_message(
            state, state.fields[0].id, "required", "Tell us who you are"
        )
        payload = encode_template(state, business_id=3)

        self.assertEqual(payload["businessId"], 3)
        self.assertIsInstance(payload["settings"], str)
        self.assertIsInstance(payload["fields"][0]["validation"], str)
        self.assertIsNone(payload["fields"][0]["options"])
        self.assertIsInstance(payload["fields"][-1]["options"], str)

        loaded = transitions.load_template(BuilderState(), _stored(state))
        self.assertEqual([_shape(f) for f in loaded.fields], [_shape(f) for f in state.fields])
        self.assertEqual(loaded.settings, state.settings)

    def test_flat_validation_rules(self) -> None:
        validation = decode_validation('{"maxLength": 200}')
        self.assertEqual(validation.rules, {"maxLength": 200})
        self.assertEqual(validation.error_messages, {})

    def test_string_options(self) -> None:
        field = decode_field({"fieldType": "dropdown", "label": "Size", "options": ["S", "M"]})
        self.assertEqual([(o.label, o.value) for o in field.options], [("S", "S"), ("M", "M")])
        self.assertTrue(field.id.startswith("field-"))

    def test_malformed_blob_falls_back(self) -> None:
        with self.assertLogs("form_builder.codec", level="WARNING"):
            field = decode_field(
                {"id": 5, "fieldType": "text", "label": "Name", "validation": "{not json"}
            )
        self.assertEqual(field.validation, Validation())
        self.assertEqual(field.id, "5")

    def test_unknown_types_skipped_and_order_rebuilt(self) -> None:
        records = [
            {"id": 1, "fieldType": "rating", "label": "Stars", "order": 2},
            {"id": 2, "fieldType": "signature", "label": "Sign", "order": 1},
            {"id": 3, "fieldType": "text", "label": "Name", "order": 0},
        ]
        with self.assertLogs("form_builder.codec", level="WARNING"):
            fields = decode_fields(records)
        self.assertEqual([(f.label, f.order) for f in fields], [("Name", 0), ("Stars", 1)])

    def test_fields_breaking_invariants_are_skipped(self) -> None:
        records = [
            {"id": 1, "fieldType": "dropdown", "label": "Size", "options": ["A", "A"], "order": 0},
            {"id": 2, "fieldType": "text", "label": "Name", "order": 1},
        ]
        with self.assertLogs("form_builder.codec", level="WARNING"):
            fields = decode_fields(records)
        self.assertEqual([(f.id, f.order) for f in fields], [("2", 0)])

    def test_load_survives_a_broken_field(self) -> None:
        record = _stored(transitions.new_template(), template_id=3)
        record["fields"].append(
            {"id": 99, "fieldType": "checkbox", "label": "Extras", "options": ["x", "x"]}
        )
        with self.assertLogs("form_builder.codec", level="WARNING"):
            loaded = transitions.load_template(BuilderState(), record)
        self.assertEqual(loaded.template_id, 3)
        self.assertEqual(len(loaded.fields), 4)


class RendererTests(SimpleTestCase):
    def setUp(self) -> None:
        state = transitions.new_template()
        state = transitions.add_field(state, FieldType.PHONE)
        state = transitions.add_field(state, FieldType.DROPDOWN)
        state = transitions.add_field(state, FieldType.CHECKBOX)
        self.state = transitions.set_validation_rule(
            state, state.fields[-1].id, "minSelected", 2
        )
        self.ids = [field.id for field in self.state.fields]

    def _data(self, **overrides: Any) -> Dict[str, Any]:
        name, email, rating, feedback, phone, dropdown, checkbox = self.ids
        data = {
            name: "Ada Lovelace",
            email: "ada@example.com",
            rating: "5",
            feedback: "Lovely evening, great service.",
            phone: "+1 (555) 123-4567",
            dropdown: "option2",
            checkbox: ["option1", "option2"],
        }
        data.update(overrides)
        return data

    def test_every_field_type_has_a_builder(self) -> None:
        self.assertEqual(set(FIELD_BUILDERS), set(FieldType))

    def test_edit_mode_is_inert(self) -> None:
        form = form_for_template(self.state, mode=RenderMode.EDIT)
        self.assertFalse(form.is_bound)
        self.assertEqual(list(form.fields), self.ids)
        self.assertTrue(all(field.disabled for field in form.fields.values()))

    def test_fill_mode_accepts_valid_submission(self) -> None:
        form = form_for_template(self.state, data=self._data())
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.cleaned_data[self.ids[2]], 5)
        self.assertEqual(form.cleaned_data[self.ids[6]], ["option1", "option2"])

    def test_rating_scale_is_fixed(self) -> None:
        form = form_for_template(self.state, mode=RenderMode.EDIT)
        self.assertEqual([value for value, _ in form.fields[self.ids[2]].choices], [1, 2, 3, 4, 5])
        invalid = form_for_template(self.state, data=self._data(**{self.ids[2]: "6"}))
        self.assertFalse(invalid.is_valid())

    def test_options_render_in_stored_order(self) -> None:
        state = transitions.apply_preset(BuilderState(), "service")
        form = form_for_template(state, mode=RenderMode.EDIT)
        dropdown = form.fields[state.fields[6].id]
        self.assertEqual(
            [value for value, _ in dropdown.choices],
            ["", "consultation", "installation", "repair", "maintenance"],
        )

    def test_fill_mode_messages(self) -> None:
        name, email, rating, feedback, phone, _, checkbox = self.ids
        form = form_for_template(
            self.state,
            data=self._data(
                **{name: "", email: "not-an-email", rating: "", phone: "12", checkbox: ["option1"]}
            ),
        )
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors[name], ["Your Name is required"])
        self.assertEqual(form.errors[email], ["Please enter a valid email address"])
        self.assertEqual(form.errors[rating], ["Please select a rating"])
        self.assertEqual(form.errors[phone], ["Please enter a valid phone number"])
        self.assertIn(checkbox, form.errors)

    def test_textarea_min_length_and_custom_message(self) -> None:
        feedback = self.ids[3]
        state = transitions.set_error_message(
            self.state, feedback, "minLength", "A few more words, please"
        )
        form = form_for_template(state, data=self._data(**{feedback: "Nice"}))
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors[feedback], ["A few more words, please"])

    def test_stored_records_skip_unknown_types(self) -> None:
        records = [
            {"id": "default-rating", "fieldType": "rating", "label": "Overall Rating",
             "isRequired": True, "order": 0},
            {"id": "legacy", "fieldType": "signature", "label": "Sign here", "order": 1},
        ]
        with self.assertLogs("form_builder.codec", level="WARNING"):
            form = build_form(records, data={"default-rating": "4"})
        self.assertEqual(list(form.fields), ["default-rating"])
        self.assertTrue(form.is_valid())

    def test_text_pattern_rule(self) -> None:
        name = self.ids[0]
        state = transitions.set_validation_rule(self.state, name, "pattern", "^[A-Z]")
        state = transitions.set_error_message(state, name, "pattern", "Start with a capital")
        form = form_for_template(state, data=self._data(**{name: "ada"}))
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors[name], ["Start with a capital"])

    def test_malformed_pattern_is_ignored(self) -> None:
        name = self.ids[0]
        state = transitions.set_validation_rule(self.state, name, "pattern", "[")
        with self.assertLogs("form_builder.renderer", level="WARNING"):
            form = form_for_template(state, data=self._data(**{name: "hello"}))
        self.assertTrue(form.is_valid(), form.errors)


def _response(status_code: int, payload: Any = None) -> mock.Mock:
    response = mock.Mock()
    response.status_code = status_code
    response.content = b"" if payload is None else json.dumps(payload).encode()
    response.json.return_value = payload
    response.text = response.content.decode()
    return response


class TemplateStoreClientTests(SimpleTestCase):
    def setUp(self) -> None:
        self.http = mock.Mock(spec=requests.Session)
        self.client = TemplateStoreClient(
            base_url="http://store.local/", timeout=2, session=self.http
        )

    def test_list_templates(self) -> None:
        self.http.request.return_value = _response(200, [{"id": 1}])
        self.assertEqual(self.client.list_templates(4), [{"id": 1}])
        self.http.request.assert_called_once_with(
            "GET",
            "http://store.local/api/form-templates/",
            params={"businessId": 4},
            json=None,
            headers={"Accept": "application/json"},
            timeout=2,
        )

    def test_error_status_raises(self) -> None:
        self.http.request.return_value = _response(404, {"detail": "Not found."})
        with self.assertRaises(TemplateStoreError) as ctx:
            self.client.get_template(9)
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(str(ctx.exception), "Not found.")

    def test_transport_error_raises(self) -> None:
        self.http.request.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(TemplateStoreError) as ctx:
            self.client.activate_template(3)
        self.assertIsNone(ctx.exception.status_code)

    def test_delete_without_body(self) -> None:
        self.http.request.return_value = _response(204)
        self.assertIsNone(self.client.delete_template(3))
        self.assertEqual(self.http.request.call_args.args[0], "DELETE")

    def test_get_public_template(self) -> None:
        payload = {"id": None, "name": "Default Review Form", "fields": []}
        self.http.request.return_value = _response(200, payload)
        self.assertEqual(self.client.get_public_template(4), payload)
        self.assertEqual(
            self.http.request.call_args.args,
            ("GET", "http://store.local/api/form-templates/public/4/"),
        )


class FormBuilderSessionTests(SimpleTestCase):
    def setUp(self) -> None:
        self.client = mock.create_autospec(TemplateStoreClient, instance=True)
        self.client.get_business.return_value = {
            "id": 1,
            "googleReviewUrl": "https://g.page/r/bistro/review",
        }
        self.client.list_templates.return_value = []
        self.session = FormBuilderSession(business_id=1, client=self.client)

    def test_create_new_inherits_business_url(self) -> None:
        state = self.session.create_new()
        self.assertEqual(state.settings.google_review_url, "https://g.page/r/bistro/review")
        self.assertEqual(len(state.fields), 4)

    def test_create_new_without_business_profile(self) -> None:
        self.client.get_business.side_effect = TemplateStoreError("down")
        with self.assertLogs("form_builder.session", level="ERROR"):
            state = self.session.create_new()
        self.assertEqual(state.settings.google_review_url, "")

    def test_save_rejected_without_name(self) -> None:
        self.session.create_new()
        self.session.edit(transitions.rename, name=" ")
        self.assertFalse(self.session.save())
        self.client.create_template.assert_not_called()
        self.client.update_template.assert_not_called()
        self.assertEqual(self.session.pop_notices()[-1].message, "Please enter a form name")

    def test_save_rejected_without_fields(self) -> None:
        self.session.create_new()
        for field in list(self.session.state.fields):
            self.session.edit(transitions.remove_field, field.id)
        self.assertFalse(self.session.save())
        self.client.create_template.assert_not_called()
        self.assertEqual(self.session.notices[-1].level, ERROR)

    def test_save_creates_then_activates(self) -> None:
        self.session.create_new()
        saved = _stored(self.session.state, template_id=11)
        self.client.create_template.return_value = saved
        self.client.list_templates.return_value = [saved]

        self.assertTrue(self.session.save())
        payload = self.client.create_template.call_args.args[0]
        self.assertEqual(payload["name"], "New Review Form")
        self.assertEqual(payload["businessId"], 1)
        self.client.activate_template.assert_called_once_with(11)
        self.assertEqual(self.session.state.template_id, 11)
        self.assertEqual(self.session.templates, [saved])
        self.assertEqual(self.session.notices[-1], Notice(SUCCESS, "Form created successfully!"))

    def test_save_updates_existing_template(self) -> None:
        self.session.load(_stored(transitions.new_template(), template_id=5))
        self.session.edit(transitions.rename, name="Patio survey")
        self.client.update_template.return_value = _stored(self.session.state, template_id=5)

        self.assertTrue(self.session.save(activate=False))
        self.assertEqual(self.client.update_template.call_args.args[0], 5)
        self.client.create_template.assert_not_called()
        self.client.activate_template.assert_not_called()
        self.assertEqual(self.session.notices[-1].message, "Form updated successfully!")

    def test_activation_failure_does_not_block_save(self) -> None:
        self.session.create_new()
        self.client.create_template.return_value = _stored(self.session.state, template_id=3)
        self.client.activate_template.side_effect = TemplateStoreError("boom", status_code=500)
        with self.assertLogs("form_builder.session", level="WARNING"):
            self.assertTrue(self.session.save())
        self.assertEqual(self.session.state.template_id, 3)
        self.assertNotIn(ERROR, [notice.level for notice in self.session.notices])

    def test_save_failure_leaves_state(self) -> None:
        self.session.create_new()
        before = self.session.state
        self.client.create_template.side_effect = TemplateStoreError("boom", status_code=500)
        with self.assertLogs("form_builder.session", level="ERROR"):
            self.assertFalse(self.session.save())
        self.assertIs(self.session.state, before)
        self.assertEqual(self.session.notices[-1].message, "Failed to save form template")

    def test_refresh_opens_first_template(self) -> None:
        stored = _stored(transitions.new_template(), template_id=8, name="Brunch")
        self.client.list_templates.return_value = [stored]
        self.assertTrue(self.session.refresh_templates())
        self.assertEqual(self.session.state.template_id, 8)
        self.assertEqual(self.session.state.name, "Brunch")

    def test_refresh_keeps_new_template_open(self) -> None:
        self.session.create_new()
        self.client.list_templates.return_value = [_stored(transitions.new_template())]
        self.session.refresh_templates()
        self.assertTrue(self.session.state.creating_new)

    def test_refresh_failure(self) -> None:
        self.client.list_templates.side_effect = TemplateStoreError("down")
        with self.assertLogs("form_builder.session", level="ERROR"):
            self.assertFalse(self.session.refresh_templates())
        self.assertEqual(self.session.notices[-1].message, "Failed to load form templates")

    def test_deleting_last_template_starts_new_one(self) -> None:
        stored = _stored(transitions.new_template(), template_id=8, name="Brunch")
        self.client.list_templates.return_value = [stored]
        self.session.refresh_templates()
        self.client.list_templates.return_value = []
        prompts: List[str] = []

        def confirm(message: str) -> bool:
            prompts.append(message)
            return True

        self.assertTrue(self.session.delete(8, confirm))
        self.client.delete_template.assert_called_once_with(8)
        self.assertIn("This is your last template", prompts[0])
        self.assertIn('"Brunch"', prompts[0])
        self.assertTrue(self.session.state.creating_new)
        self.assertIsNone(self.session.state.template_id)
        self.assertEqual(len(self.session.state.fields), 4)

    def test_delete_cancelled(self) -> None:
        self.assertFalse(self.session.delete(8, lambda message: False))
        self.client.delete_template.assert_not_called()

    def test_deleting_other_template_keeps_working_state(self) -> None:
        first = _stored(transitions.new_template(), template_id=1, name="One")
        second = _stored(transitions.new_template(), template_id=2, name="Two")
        self.client.list_templates.return_value = [first, second]
        self.session.refresh_templates()
        prompts: List[str] = []
        self.client.list_templates.return_value = [first]

        self.assertTrue(self.session.delete(2, lambda m: prompts.append(m) or True))
        self.assertIn("cannot be undone", prompts[0])
        self.assertEqual(self.session.state.template_id, 1)

    def test_deleting_open_template_starts_new_one(self) -> None:
        first = _stored(transitions.new_template(), template_id=1, name="One")
        second = _stored(transitions.new_template(), template_id=2, name="Two")
        self.client.list_templates.return_value = [first, second]
        self.session.refresh_templates()
        self.assertEqual(self.session.state.template_id, 1)
        self.client.list_templates.return_value = [second]

        self.assertTrue(self.session.delete(1, lambda message: True))
        self.assertTrue(self.session.state.creating_new)
        self.assertIsNone(self.session.state.template_id)
        self.assertEqual(self.session.templates, [second])
        self.assertEqual(self.session.notices[-1].message, "Form template deleted successfully!")

    def test_duplicate(self) -> None:
        copy = _stored(transitions.new_template(), template_id=12, name="One (Copy)")
        self.client.duplicate_template.return_value = copy
        self.client.list_templates.return_value = [copy]

        self.assertEqual(self.session.duplicate(1), copy)
        self.client.duplicate_template.assert_called_once_with(1)
        self.assertEqual(self.session.templates, [copy])
        self.assertEqual(self.session.notices[-1], Notice(SUCCESS, "Form template duplicated!"))

    def test_duplicate_failure(self) -> None:
        self.client.duplicate_template.side_effect = TemplateStoreError("boom", status_code=500)
        with self.assertLogs("form_builder.session", level="ERROR"):
            self.assertIsNone(self.session.duplicate(1))
        self.client.list_templates.assert_not_called()
        self.assertEqual(
            self.session.notices[-1], Notice(ERROR, "Failed to duplicate form template")
        )

    def test_delete_failure(self) -> None:
        self.client.delete_template.side_effect = TemplateStoreError("boom")
        with self.assertLogs("form_builder.session", level="ERROR"):
            self.assertFalse(self.session.delete(4, lambda m: True, template_name="Old"))
        self.assertEqual(self.session.notices[-1].message, "Failed to delete form template")

    def test_activate_is_best_effort(self) -> None:
        self.client.activate_template.side_effect = TemplateStoreError("nope", status_code=403)
        with self.assertLogs("form_builder.session", level="WARNING"):
            self.assertFalse(self.session.activate(4))
        self.assertEqual(self.session.notices, [])


class _APIClientSession:
    """Stands in for ``requests.Session`` by routing calls to the test client."""

    def __init__(self) -> None:
        self.api = APIClient()

    def request(self, method: str, url: str, **kwargs: Any) -> mock.Mock:
        path = urlsplit(url).path
        handler = getattr(self.api, method.lower())
        if method == "GET":
            result = handler(path, kwargs.get("params") or {})
        else:
            result = handler(path, kwargs.get("json"), format="json")
        payload = json.loads(result.content) if result.content else None
        return _response(result.status_code, payload)


class SessionAgainstStoreTests(TestCase):
    def setUp(self) -> None:
        self.business = Business.objects.create(
            name="Corner Bistro", google_review_url="https://g.page/r/bistro/review"
        )
        client = TemplateStoreClient(base_url="http://testserver", session=_APIClientSession())
        self.session = FormBuilderSession(business_id=self.business.id, client=client)

    def test_save_and_reload(self) -> None:
        self.session.create_new()
        self.session.edit(transitions.add_field, FieldType.DROPDOWN)
        self.session.edit(transitions.move_field, 4, 0)
        before = self.session.state
        self.assertTrue(self.session.save())

        fresh = FormBuilderSession(business_id=self.business.id, client=self.session.client)
        fresh.refresh_templates()
        loaded = fresh.state
        self.assertEqual(loaded.template_id, self.session.state.template_id)
        self.assertEqual(
            [(f.field_type, f.label, f.order, f.validation, f.options) for f in loaded.fields],
            [(f.field_type, f.label, f.order, f.validation, f.options) for f in before.fields],
        )
        self.assertEqual(loaded.settings.google_review_url, "https://g.page/r/bistro/review")
        self.assertTrue(fresh.templates[0]["isActive"])

    def test_delete_only_template(self) -> None:
        self.session.create_new()
        self.session.save()
        template_id = self.session.state.template_id

        self.assertTrue(self.session.delete(template_id, lambda message: True))
        self.assertEqual(self.session.templates, [])
        self.assertTrue(self.session.state.creating_new)
