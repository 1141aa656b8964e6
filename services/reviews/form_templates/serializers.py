"""Serializers for the review form template store."""
from __future__ import annotations

import json
from typing import Any, Dict, List

from django.db import transaction
from rest_framework import serializers

from .models import Business, FormField, FormTemplate


class EncodedJSONField(serializers.JSONField):
    """JSON that may arrive as a native structure or as JSON text.

    The builder ships ``settings``, ``validation``, ``styling``, ``conditional``
    and ``options`` as independently encoded text blobs; older clients send
    them nested. Both are stored natively and returned natively.
    """

    def to_internal_value(self, data: Any) -> Any:  # type: ignore[override]
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except ValueError:
                self.fail("invalid")
        return super().to_internal_value(data)


class BusinessSerializer(serializers.ModelSerializer):
    googleReviewUrl = serializers.URLField(
        source="google_review_url", required=False, allow_blank=True, max_length=500
    )
    brandColor = serializers.CharField(source="brand_color", required=False, max_length=16)
    customMessage = serializers.CharField(
        source="custom_message", required=False, allow_blank=True
    )
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Business
        fields = [
            "id",
            "name",
            "googleReviewUrl",
            "brandColor",
            "customMessage",
            "createdAt",
            "updatedAt",
        ]


class BusinessSummarySerializer(serializers.ModelSerializer):
    brandColor = serializers.CharField(source="brand_color", read_only=True)
    googleReviewUrl = serializers.CharField(source="google_review_url", read_only=True)

    class Meta:
        model = Business
        fields = ["id", "name", "brandColor", "googleReviewUrl"]


class FormFieldSerializer(serializers.ModelSerializer):
    fieldType = serializers.ChoiceField(source="field_type", choices=FormField.FIELD_TYPES)
    placeholder = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=255
    )
    isRequired = serializers.BooleanField(source="is_required", default=False)
    options = EncodedJSONField(required=False, allow_null=True)
    validation = EncodedJSONField(required=False)
    styling = EncodedJSONField(required=False)
    conditional = EncodedJSONField(required=False)

    class Meta:
        model = FormField
        fields = [
            "id",
            "fieldType",
            "label",
            "placeholder",
            "isRequired",
            "order",
            "options",
            "validation",
            "styling",
            "conditional",
        ]
        read_only_fields = ["id", "order"]

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:  # type: ignore[override]
        attrs["placeholder"] = attrs.get("placeholder") or ""
        for key in ("validation", "styling", "conditional"):
            value = attrs.get(key)
            if value is None:
                attrs[key] = {}
            elif not isinstance(value, dict):
                raise serializers.ValidationError({key: "Must be a JSON object."})

        field_type = attrs.get("field_type")
        if field_type is None:
            raise serializers.ValidationError({"fieldType": "This field is required."})
        if field_type in FormField.OPTION_TYPES:
            attrs["options"] = self._validate_options(attrs.get("options"))
        else:
            attrs["options"] = None
        return attrs

    @staticmethod
    def _validate_options(options: Any) -> List[Dict[str, Any]]:
        if not isinstance(options, list) or not options:
            raise serializers.ValidationError(
                {"options": "Dropdown and checkbox fields need at least one option."}
            )
        seen = set()
        for option in options:
            if not isinstance(option, dict) or "value" not in option:
                raise serializers.ValidationError(
                    {"options": "Each option must be an object with a value."}
                )
            if option["value"] in seen:
                raise serializers.ValidationError(
                    {"options": f"Duplicate option value: {option['value']}"}
                )
            seen.add(option["value"])
        return options


def _create_fields(template: FormTemplate, fields: List[Dict[str, Any]]) -> None:
    FormField.objects.bulk_create(
        FormField(template=template, order=index, **field)
        for index, field in enumerate(fields)
    )


class FormTemplateSerializer(serializers.ModelSerializer):
    businessId = serializers.PrimaryKeyRelatedField(
        source="business", queryset=Business.objects.all()
    )
    business = BusinessSummarySerializer(read_only=True)
    headerText = serializers.CharField(source="header_text", required=False, max_length=255)
    submitButtonText = serializers.CharField(
        source="submit_button_text", required=False, max_length=100
    )
    thankYouMessage = serializers.CharField(source="thank_you_message", required=False)
    redirectUrl = serializers.URLField(
        source="redirect_url", required=False, allow_blank=True, max_length=500
    )
    settings = EncodedJSONField(required=False)
    isActive = serializers.BooleanField(source="is_active", required=False)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)
    fields = FormFieldSerializer(many=True, required=False)

    class Meta:
        model = FormTemplate
        fields = [
            "id",
            "businessId",
            "business",
            "name",
            "description",
            "headerText",
            "submitButtonText",
            "thankYouMessage",
            "redirectUrl",
            "settings",
            "isActive",
            "createdAt",
            "updatedAt",
            "fields",
        ]

    def validate_settings(self, value: Any) -> Dict[str, Any]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise serializers.ValidationError("Must be a JSON object.")
        return value

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:  # type: ignore[override]
        business = attrs.get("business")
        if self.instance is not None and business is not None:
            if business.pk != self.instance.business_id:
                raise serializers.ValidationError(
                    {"businessId": "Templates cannot move between businesses."}
                )
        return attrs

    def create(self, validated_data):  # type: ignore[override]
        fields = validated_data.pop("fields", [])
        validated_data.pop("is_active", None)
        business = validated_data["business"]
        with transaction.atomic():
            # The first template of a business is the one served publicly.
            first = not business.form_templates.exists()
            template = FormTemplate.objects.create(is_active=first, **validated_data)
            _create_fields(template, fields)
        return template

    def update(self, instance, validated_data):  # type: ignore[override]
        fields = validated_data.pop("fields", None)
        is_active = validated_data.pop("is_active", None)
        validated_data.pop("business", None)
        with transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            if is_active is False:
                instance.is_active = False
            instance.save()

            if fields is not None:
                instance.fields.all().delete()
                _create_fields(instance, fields)
        if is_active:
            instance.activate()
        return instance
