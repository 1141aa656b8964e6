# Generated manually for initial schema.
from __future__ import annotations

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Business",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("google_review_url", models.URLField(blank=True, max_length=500)),
                ("brand_color", models.CharField(default="#3B82F6", max_length=16)),
                ("custom_message", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"ordering": ["name", "id"], "verbose_name_plural": "businesses"},
        ),
        migrations.CreateModel(
            name="FormTemplate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("description", models.CharField(blank=True, max_length=500)),
                ("header_text", models.CharField(default="We value your feedback!", max_length=255)),
                ("submit_button_text", models.CharField(default="Submit Review", max_length=100)),
                ("thank_you_message", models.TextField(default="Thank you for your review!")),
                ("redirect_url", models.URLField(blank=True, max_length=500)),
                ("settings", models.JSONField(blank=True, default=dict)),
                ("is_active", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "business",
                    models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="form_templates", to="form_templates.business"),
                ),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.AddIndex(
            model_name="formtemplate",
            index=models.Index(fields=["business", "is_active"], name="template_business_active_idx"),
        ),
        migrations.CreateModel(
            name="FormField",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "field_type",
                    models.CharField(
                        choices=[
                            ("text", "Text Input"),
                            ("email", "Email"),
                            ("phone", "Phone"),
                            ("textarea", "Text Area"),
                            ("rating", "Star Rating"),
                            ("dropdown", "Dropdown"),
                            ("checkbox", "Checkbox"),
                        ],
                        max_length=32,
                    ),
                ),
                ("label", models.CharField(max_length=255)),
                ("placeholder", models.CharField(blank=True, max_length=255)),
                ("is_required", models.BooleanField(default=False)),
                ("order", models.PositiveIntegerField(default=0)),
                ("options", models.JSONField(blank=True, null=True)),
                ("validation", models.JSONField(blank=True, default=dict)),
                ("styling", models.JSONField(blank=True, default=dict)),
                ("conditional", models.JSONField(blank=True, default=dict)),
                (
                    "template",
                    models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="fields", to="form_templates.formtemplate"),
                ),
            ],
            options={"ordering": ["order", "id"]},
        ),
    ]
