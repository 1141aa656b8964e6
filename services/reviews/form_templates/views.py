"""API views for the review form template store."""
from __future__ import annotations

import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import mixins, serializers, status, viewsets
from rest_framework.decorators import action, api_view
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response

from .models import Business, FormField, FormTemplate
from .serializers import BusinessSerializer, FormTemplateSerializer

logger = logging.getLogger(__name__)

# Served when a business has no active template of its own.
DEFAULT_PUBLIC_FIELDS = [
    {
        "id": "default-rating",
        "fieldType": FormField.RATING,
        "label": "Overall Rating",
        "placeholder": "",
        "isRequired": True,
        "order": 0,
        "options": None,
        "validation": {},
        "styling": {},
        "conditional": {},
    },
    {
        "id": "default-feedback",
        "fieldType": FormField.TEXTAREA,
        "label": "Your Feedback",
        "placeholder": "Tell us about your experience...",
        "isRequired": False,
        "order": 1,
        "options": None,
        "validation": {},
        "styling": {},
        "conditional": {},
    },
]


class BusinessViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    queryset = Business.objects.all()
    serializer_class = BusinessSerializer
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["name"]
    ordering_fields = ["name", "created_at"]
    ordering = ["name"]


class FormTemplateViewSet(viewsets.ModelViewSet):
    queryset = (
        FormTemplate.objects.select_related("business").prefetch_related("fields").all()
    )
    serializer_class = FormTemplateSerializer
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["name", "description"]
    ordering_fields = ["name", "created_at", "updated_at"]
    ordering = ["-created_at", "-id"]

    def get_queryset(self):  # type: ignore[override]
        queryset = super().get_queryset()
        business_id = self.request.query_params.get("businessId")
        if business_id:
            try:
                business_id = int(business_id)
            except ValueError:
                raise serializers.ValidationError({"businessId": "Must be an integer."}) from None
            queryset = queryset.filter(business_id=business_id)
        return queryset

    def perform_create(self, serializer):  # type: ignore[override]
        template = serializer.save()
        logger.info(
            "Template %s created for business %s (active=%s)",
            template.id,
            template.business_id,
            template.is_active,
        )

    def perform_update(self, serializer):  # type: ignore[override]
        template = serializer.save()
        logger.info("Template %s updated", template.id)

    def perform_destroy(self, instance):  # type: ignore[override]
        template_id = instance.id
        instance.delete()
        logger.info("Template %s deleted", template_id)

    @action(detail=True, methods=["post"], url_path="activate")
    def activate(self, request, *args, **kwargs):  # type: ignore[override]
        """Serve this template publicly, deactivating the business's others."""

        template = self.get_object()
        template.activate()
        logger.info("Template %s activated for business %s", template.id, template.business_id)
        serializer = self.get_serializer(template)
        return Response(serializer.data)

    @action(detail=True, methods=["post"], url_path="duplicate")
    def duplicate(self, request, *args, **kwargs):  # type: ignore[override]
        """Copy a template and its fields; the copy starts inactive."""

        source = self.get_object()
        with transaction.atomic():
            copy = FormTemplate.objects.create(
                business=source.business,
                name=f"{source.name} (Copy)"[:100],
                description=source.description,
                header_text=source.header_text,
                submit_button_text=source.submit_button_text,
                thank_you_message=source.thank_you_message,
                redirect_url=source.redirect_url,
                settings=dict(source.settings or {}),
                is_active=False,
            )
            FormField.objects.bulk_create(
                FormField(
                    template=copy,
                    field_type=field.field_type,
                    label=field.label,
                    placeholder=field.placeholder,
                    is_required=field.is_required,
                    order=field.order,
                    options=field.options,
                    validation=field.validation,
                    styling=field.styling,
                    conditional=field.conditional,
                )
                for field in source.fields.all()
            )
        logger.info("Template %s duplicated as %s", source.id, copy.id)
        serializer = self.get_serializer(copy)
        return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(["GET"])
def public_template(_: Request, business_id: int) -> Response:
    """Return the form a business currently serves to its customers."""

    business = get_object_or_404(Business, pk=business_id)
    business_data = BusinessSerializer(business).data
    template = (
        business.form_templates.filter(is_active=True)
        .prefetch_related("fields")
        .order_by("-updated_at", "-id")
        .first()
    )
    if template is None:
        return Response(
            {
                "id": None,
                "name": "Default Review Form",
                "isActive": True,
                "settings": {},
                "fields": DEFAULT_PUBLIC_FIELDS,
                "business": business_data,
                "googleReviewUrl": business.google_review_url,
            }
        )

    payload = dict(FormTemplateSerializer(template).data)
    payload["business"] = business_data
    payload["googleReviewUrl"] = template.google_review_url
    return Response(payload)


@api_view(["GET"])
def health(request):  # type: ignore[override]
    """Readiness endpoint for orchestration tooling."""

    return Response({"status": "ok"})
