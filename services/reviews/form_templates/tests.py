"""API tests for the template store."""
from __future__ import annotations

import json

from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from .models import Business, FormField, FormTemplate


def _field_payload(field_type: str = "text", label: str = "Your Name", **extra):
    payload = {
        "fieldType": field_type,
        "label": label,
        "placeholder": "",
        "isRequired": True,
        "validation": json.dumps({"rules": {"required": True}, "errorMessages": {}}),
        "styling": json.dumps({"width": "full", "size": "md", "variant": "default"}),
        "conditional": json.dumps({"enabled": False, "conditions": []}),
        "options": None,
    }
    payload.update(extra)
    return payload


class FormTemplateApiTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()
        self.business = Business.objects.create(
            name="Corner Bistro", google_review_url="https://g.page/r/bistro/review"
        )

    def _create(self, name: str = "Dinner Feedback", fields=None, settings=None):
        payload = {
            "businessId": self.business.id,
            "name": name,
            "description": "After-dinner survey",
            "settings": json.dumps(settings or {"theme": "modern"}),
            "fields": fields
            if fields is not None
            else [
                _field_payload(),
                _field_payload("rating", "Rate Your Experience"),
            ],
        }
        return self.client.post(reverse("form-template-list"), payload, format="json")

    def test_create_and_list_templates(self) -> None:
        response = self._create()
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.data["isActive"])
        self.assertEqual(response.data["settings"], {"theme": "modern"})
        self.assertEqual([f["order"] for f in response.data["fields"]], [0, 1])
        self.assertEqual(
            response.data["fields"][0]["validation"],
            {"rules": {"required": True}, "errorMessages": {}},
        )

        response = self.client.get(
            reverse("form-template-list"), {"businessId": self.business.id}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["business"]["name"], "Corner Bistro")
        self.assertEqual(FormField.objects.count(), 2)

    def test_list_is_scoped_to_business(self) -> None:
        self._create()
        other = Business.objects.create(name="Hair Studio")
        response = self.client.get(reverse("form-template-list"), {"businessId": other.id})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, [])

    def test_list_rejects_non_numeric_business(self) -> None:
        response = self.client.get(reverse("form-template-list"), {"businessId": "abc"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("businessId", response.data)

    def test_only_first_template_is_auto_activated(self) -> None:
        self._create("First")
        response = self._create("Second")
        self.assertEqual(response.status_code, 201)
        self.assertFalse(response.data["isActive"])

    def test_native_sub_objects_are_accepted(self) -> None:
        field = _field_payload(
            "dropdown",
            "How did you dine?",
            validation={"rules": {}, "errorMessages": {}},
            options=[
                {"id": 1, "label": "Dine-in", "value": "dine-in"},
                {"id": 2, "label": "Takeout", "value": "takeout"},
            ],
        )
        response = self._create(fields=[field])
        self.assertEqual(response.status_code, 201)
        self.assertEqual(
            [o["value"] for o in response.data["fields"][0]["options"]],
            ["dine-in", "takeout"],
        )

    def test_option_fields_need_options(self) -> None:
        response = self._create(fields=[_field_payload("checkbox", "Purchases")])
        self.assertEqual(response.status_code, 400)
        self.assertFalse(FormTemplate.objects.exists())

    def test_duplicate_option_values_rejected(self) -> None:
        options = json.dumps(
            [
                {"id": 1, "label": "A", "value": "same"},
                {"id": 2, "label": "B", "value": "same"},
            ]
        )
        response = self._create(fields=[_field_payload("dropdown", "Pick", options=options)])
        self.assertEqual(response.status_code, 400)

    def test_options_dropped_for_plain_fields(self) -> None:
        options = json.dumps([{"id": 1, "label": "A", "value": "a"}])
        response = self._create(fields=[_field_payload("text", "Name", options=options)])
        self.assertEqual(response.status_code, 201)
        self.assertIsNone(response.data["fields"][0]["options"])

    def test_blank_name_rejected(self) -> None:
        response = self._create(name="   ")
        self.assertEqual(response.status_code, 400)
        self.assertIn("name", response.data)

    def test_update_replaces_fields(self) -> None:
        template_id = self._create().data["id"]
        payload = {
            "businessId": self.business.id,
            "name": "Renamed",
            "description": "",
            "settings": json.dumps({"googleReviewUrl": "https://example.com/review"}),
            "fields": [_field_payload("textarea", "Tell us more")],
        }
        response = self.client.put(
            reverse("form-template-detail", args=[template_id]), payload, format="json"
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["name"], "Renamed")
        self.assertEqual(len(response.data["fields"]), 1)
        self.assertEqual(response.data["fields"][0]["fieldType"], "textarea")
        self.assertEqual(FormField.objects.filter(template_id=template_id).count(), 1)

    def test_template_cannot_change_business(self) -> None:
        template_id = self._create().data["id"]
        other = Business.objects.create(name="Hair Studio")
        response = self.client.patch(
            reverse("form-template-detail", args=[template_id]),
            {"businessId": other.id},
            format="json",
        )
        self.assertEqual(response.status_code, 400)

    def test_activate_deactivates_siblings(self) -> None:
        first_id = self._create("First").data["id"]
        second_id = self._create("Second").data["id"]

        response = self.client.post(
            reverse("form-template-activate", args=[second_id]), format="json"
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["isActive"])
        self.assertFalse(FormTemplate.objects.get(pk=first_id).is_active)
        self.assertEqual(
            FormTemplate.objects.filter(business=self.business, is_active=True).count(), 1
        )

    def test_duplicate_template(self) -> None:
        template_id = self._create().data["id"]
        response = self.client.post(
            reverse("form-template-duplicate", args=[template_id]), format="json"
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["name"], "Dinner Feedback (Copy)")
        self.assertFalse(response.data["isActive"])
        self.assertEqual(len(response.data["fields"]), 2)
        self.assertNotEqual(response.data["id"], template_id)

    def test_delete_template(self) -> None:
        template_id = self._create().data["id"]
        response = self.client.delete(reverse("form-template-detail", args=[template_id]))
        self.assertEqual(response.status_code, 204)
        self.assertFalse(FormTemplate.objects.exists())
        self.assertFalse(FormField.objects.exists())

    def test_public_template_falls_back_to_default(self) -> None:
        response = self.client.get(reverse("form-template-public", args=[self.business.id]))
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.data["id"])
        self.assertEqual(
            [f["fieldType"] for f in response.data["fields"]], ["rating", "textarea"]
        )
        self.assertEqual(response.data["googleReviewUrl"], "https://g.page/r/bistro/review")

    def test_public_template_serves_active_template(self) -> None:
        self._create(settings={"googleReviewUrl": "https://example.com/own"})
        response = self.client.get(reverse("form-template-public", args=[self.business.id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["name"], "Dinner Feedback")
        self.assertEqual(response.data["googleReviewUrl"], "https://example.com/own")
        self.assertEqual(response.data["business"]["name"], "Corner Bistro")

    def test_public_template_unknown_business(self) -> None:
        response = self.client.get(reverse("form-template-public", args=[9999]))
        self.assertEqual(response.status_code, 404)

    def test_health(self) -> None:
        response = self.client.get(reverse("form-template-health"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], "ok")


class BusinessApiTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()

    def test_create_and_update_business(self) -> None:
        response = self.client.post(
            reverse("business-list"),
            {"name": "Corner Bistro", "googleReviewUrl": ""},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        business_id = response.data["id"]

        response = self.client.patch(
            reverse("business-detail", args=[business_id]),
            {"googleReviewUrl": "https://g.page/r/bistro/review"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            Business.objects.get(pk=business_id).google_review_url,
            "https://g.page/r/bistro/review",
        )
