"""Database models for the review form template store."""
from __future__ import annotations

from django.db import models, transaction


class Business(models.Model):
    """The business profile that owns review form templates."""

    name = models.CharField(max_length=255)
    google_review_url = models.URLField(max_length=500, blank=True)
    brand_color = models.CharField(max_length=16, default="#3B82F6")
    custom_message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name", "id"]
        verbose_name_plural = "businesses"

    def __str__(self) -> str:
        return self.name


class FormTemplate(models.Model):
    """A custom review form definition for one business."""

    business = models.ForeignKey(
        Business, related_name="form_templates", on_delete=models.CASCADE
    )
    name = models.CharField(max_length=100)
    description = models.CharField(max_length=500, blank=True)
    header_text = models.CharField(max_length=255, default="We value your feedback!")
    submit_button_text = models.CharField(max_length=100, default="Submit Review")
    thank_you_message = models.TextField(default="Thank you for your review!")
    redirect_url = models.URLField(max_length=500, blank=True)
    settings = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["business", "is_active"], name="template_business_active_idx"),
        ]

    def __str__(self) -> str:
        state = "active" if self.is_active else "inactive"
        return f"{self.name} ({state})"

    def activate(self) -> None:
        """Make this the only active template of its business."""

        with transaction.atomic():
            FormTemplate.objects.filter(
                business_id=self.business_id, is_active=True
            ).exclude(pk=self.pk).update(is_active=False)
            self.is_active = True
            self.save(update_fields=["is_active", "updated_at"])

    @property
    def google_review_url(self) -> str:
        """Redirect target: the template's own URL, else the business default."""

        settings = self.settings if isinstance(self.settings, dict) else {}
        return settings.get("googleReviewUrl") or self.business.google_review_url


class FormField(models.Model):
    """One input of a form template."""

    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    TEXTAREA = "textarea"
    RATING = "rating"
    DROPDOWN = "dropdown"
    CHECKBOX = "checkbox"

    FIELD_TYPES = [
        (TEXT, "Text Input"),
        (EMAIL, "Email"),
        (PHONE, "Phone"),
        (TEXTAREA, "Text Area"),
        (RATING, "Star Rating"),
        (DROPDOWN, "Dropdown"),
        (CHECKBOX, "Checkbox"),
    ]
    OPTION_TYPES = {DROPDOWN, CHECKBOX}

    template = models.ForeignKey(
        FormTemplate, related_name="fields", on_delete=models.CASCADE
    )
    field_type = models.CharField(max_length=32, choices=FIELD_TYPES)
    label = models.CharField(max_length=255)
    placeholder = models.CharField(max_length=255, blank=True)
    is_required = models.BooleanField(default=False)
    order = models.PositiveIntegerField(default=0)
    options = models.JSONField(null=True, blank=True)
    validation = models.JSONField(default=dict, blank=True)
    styling = models.JSONField(default=dict, blank=True)
    conditional = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["order", "id"]

    def __str__(self) -> str:
        return f"{self.label} ({self.field_type})"
