"""Template-level settings, starter fields and presets."""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Mapping, Tuple

from .fields import (
    FieldDefinition,
    FieldOption,
    FieldType,
    Styling,
    Validation,
    new_field_id,
)

NEW_TEMPLATE_NAME = "New Review Form"

# Wire name of each settings attribute.
_SETTINGS_KEYS: Dict[str, str] = {
    "theme": "theme",
    "primary_color": "primaryColor",
    "secondary_color": "secondaryColor",
    "font_family": "fontFamily",
    "border_radius": "borderRadius",
    "spacing": "spacing",
    "show_progress": "showProgress",
    "show_step_numbers": "showStepNumbers",
    "animation_type": "animationType",
    "submit_button_text": "submitButtonText",
    "branding_enabled": "brandingEnabled",
    "google_review_url": "googleReviewUrl",
    "custom_thank_you_message": "customThankYouMessage",
}


@dataclass(frozen=True)
class TemplateSettings:
    """Look and behaviour of one form.

    ``google_review_url`` starts out as the business profile's URL and can be
    overridden per template. Keys this class does not know are kept in
    ``extra`` so they survive a save.
    """

    theme: str = "modern"
    primary_color: str = "#3B82F6"
    secondary_color: str = "#F3F4F6"
    font_family: str = "Inter"
    border_radius: str = "rounded-lg"
    spacing: str = "normal"
    show_progress: bool = True
    show_step_numbers: bool = True
    animation_type: str = "slide"
    submit_button_text: str = "Submit Review"
    branding_enabled: bool = True
    google_review_url: str = ""
    custom_thank_you_message: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        for attr, key in _SETTINGS_KEYS.items():
            data[key] = getattr(self, attr)
        return data

    def merged(self, incoming: Mapping[str, Any]) -> "TemplateSettings":
        """Overlay stored settings on these ones.

        An incoming blob without a Google Review URL keeps the current URL.
        """

        by_key = {key: attr for attr, key in _SETTINGS_KEYS.items()}
        changes: Dict[str, Any] = {}
        extra = dict(self.extra)
        for key, value in incoming.items():
            attr = by_key.get(key)
            if attr is None:
                extra[key] = value
            elif value is None or (attr == "google_review_url" and not value):
                continue
            else:
                changes[attr] = value
        return replace(self, extra=extra, **changes)


SETTINGS_ATTRIBUTES = tuple(f.name for f in fields(TemplateSettings) if f.name != "extra")


def default_fields() -> Tuple[FieldDefinition, ...]:
    """The four fields every new template starts with."""

    return (
        FieldDefinition(
            id=new_field_id(),
            field_type=FieldType.TEXT,
            label="Your Name",
            placeholder="Enter your full name",
            is_required=True,
            order=0,
            validation=Validation(rules={"required": True}),
        ),
        FieldDefinition(
            id=new_field_id(),
            field_type=FieldType.EMAIL,
            label="Email Address",
            placeholder="Enter your email",
            is_required=True,
            order=1,
            validation=Validation(rules={"required": True, "email": True}),
        ),
        FieldDefinition(
            id=new_field_id(),
            field_type=FieldType.RATING,
            label="Rate Your Experience",
            placeholder="",
            is_required=True,
            order=2,
            validation=Validation(rules={"required": True}),
            styling=Styling(size="lg"),
        ),
        FieldDefinition(
            id=new_field_id(),
            field_type=FieldType.TEXTAREA,
            label="Tell us about your experience",
            placeholder="Share your feedback...",
            is_required=True,
            order=3,
            validation=Validation(rules={"required": True, "minLength": 10}),
        ),
    )


def _options(*pairs: Tuple[str, str]) -> List[FieldOption]:
    return [
        FieldOption(id=index, label=label, value=value)
        for index, (label, value) in enumerate(pairs, start=1)
    ]


PRESETS: Dict[str, Dict[str, Any]] = {
    "restaurant": {
        "name": "Restaurant Review Form",
        "description": "Perfect for restaurants and food service businesses",
        "fields": [
            (FieldType.TEXT, "Your Name", True, None),
            (FieldType.EMAIL, "Email Address", True, None),
            (FieldType.RATING, "Overall Rating", True, None),
            (FieldType.RATING, "Food Quality", True, None),
            (FieldType.RATING, "Service", True, None),
            (
                FieldType.DROPDOWN,
                "How did you dine?",
                True,
                _options(("Dine-in", "dine-in"), ("Takeout", "takeout"), ("Delivery", "delivery")),
            ),
            (FieldType.TEXTAREA, "Share your experience", True, None),
        ],
    },
    "retail": {
        "name": "Retail Store Review Form",
        "description": "Ideal for retail stores and shopping experiences",
        "fields": [
            (FieldType.TEXT, "Your Name", True, None),
            (FieldType.EMAIL, "Email Address", True, None),
            (FieldType.RATING, "Overall Experience", True, None),
            (FieldType.RATING, "Product Quality", True, None),
            (FieldType.RATING, "Customer Service", True, None),
            (
                FieldType.CHECKBOX,
                "What did you purchase?",
                False,
                _options(
                    ("Clothing", "clothing"),
                    ("Electronics", "electronics"),
                    ("Home Goods", "home-goods"),
                    ("Other", "other"),
                ),
            ),
            (FieldType.TEXTAREA, "Tell us about your shopping experience", True, None),
        ],
    },
    "service": {
        "name": "Service Business Review Form",
        "description": "Great for service-based businesses",
        "fields": [
            (FieldType.TEXT, "Your Name", True, None),
            (FieldType.EMAIL, "Email Address", True, None),
            (FieldType.PHONE, "Phone Number", False, None),
            (FieldType.RATING, "Overall Satisfaction", True, None),
            (FieldType.RATING, "Timeliness", True, None),
            (FieldType.RATING, "Communication", True, None),
            (
                FieldType.DROPDOWN,
                "Service Type",
                True,
                _options(
                    ("Consultation", "consultation"),
                    ("Installation", "installation"),
                    ("Repair", "repair"),
                    ("Maintenance", "maintenance"),
                ),
            ),
            (FieldType.TEXTAREA, "Additional Comments", False, None),
        ],
    },
}


def preset_fields(preset: str) -> Tuple[FieldDefinition, ...]:
    try:
        definition = PRESETS[preset]
    except KeyError:
        raise KeyError(f"Unknown preset: {preset}") from None
    return tuple(
        FieldDefinition(
            id=new_field_id(),
            field_type=field_type,
            label=label,
            placeholder=f"Enter {label.lower()}...",
            is_required=required,
            order=index,
            validation=Validation(rules={"required": True} if required else {}),
            options=tuple(options) if options else None,
        )
        for index, (field_type, label, required, options) in enumerate(definition["fields"])
    )
