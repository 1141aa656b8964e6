"""Turn a template's fields into a Django form.

``RenderMode.EDIT`` produces inert controls for layout review inside the
builder; ``RenderMode.FILL`` produces the interactive form customers submit.
"""
from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from django import forms
from django.core.exceptions import ImproperlyConfigured, ValidationError
from django.core.validators import RegexValidator

from .codec import decode_fields
from .fields import FieldDefinition, FieldType

logger = logging.getLogger(__name__)

RATING_SCALE = (1, 2, 3, 4, 5)
PHONE_PATTERN = r"^\+?[\d\s\-()]{10,}$"
DEFAULT_TEXT_MAX_LENGTH = 100

# Stored rule name -> Django error code.
_ERROR_CODES = {
    "required": "required",
    "minLength": "min_length",
    "maxLength": "max_length",
    "email": "invalid",
    "phone": "invalid",
    "pattern": "invalid",
}


class RenderMode(str, Enum):
    EDIT = "edit"
    FILL = "fill"


class ReviewForm(forms.Form):
    """Container for the dynamically built review form fields."""


def _int_rule(field: FieldDefinition, rule: str) -> Optional[int]:
    value = field.validation.rules.get(rule)
    if value in (None, "", False) or value is True:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric %s rule on field %s", rule, field.id)
        return None


def _error_messages(field: FieldDefinition, **defaults: str) -> Dict[str, str]:
    messages = {"required": f"{field.label} is required"}
    messages.update(defaults)
    for rule, message in field.validation.error_messages.items():
        if message:
            messages[_ERROR_CODES.get(rule, rule)] = message
    return messages


def _common(field: FieldDefinition, **messages: str) -> Dict[str, Any]:
    return {
        "label": field.label,
        "required": field.is_required,
        "error_messages": _error_messages(field, **messages),
    }


def _placeholder(field: FieldDefinition) -> Dict[str, str]:
    return {"placeholder": field.placeholder} if field.placeholder else {}


def _pattern(field: FieldDefinition) -> Optional[RegexValidator]:
    pattern = field.validation.rules.get("pattern")
    if not pattern:
        return None
    try:
        compiled = re.compile(pattern)
    except (re.error, TypeError):
        logger.warning("Ignoring malformed pattern rule on field %s", field.id)
        return None
    return RegexValidator(compiled, code="invalid")


def _text(field: FieldDefinition) -> forms.Field:
    pattern = _pattern(field)
    return forms.CharField(
        max_length=_int_rule(field, "maxLength") or DEFAULT_TEXT_MAX_LENGTH,
        min_length=_int_rule(field, "minLength"),
        validators=[pattern] if pattern is not None else [],
        widget=forms.TextInput(attrs=_placeholder(field)),
        **_common(field),
    )


def _email(field: FieldDefinition) -> forms.Field:
    return forms.EmailField(
        widget=forms.EmailInput(attrs=_placeholder(field)),
        **_common(field, invalid="Please enter a valid email address"),
    )


def _phone(field: FieldDefinition) -> forms.Field:
    return forms.RegexField(
        regex=PHONE_PATTERN,
        widget=forms.TextInput(attrs={"type": "tel", **_placeholder(field)}),
        **_common(field, invalid="Please enter a valid phone number"),
    )


def _textarea(field: FieldDefinition) -> forms.Field:
    return forms.CharField(
        max_length=_int_rule(field, "maxLength"),
        min_length=_int_rule(field, "minLength"),
        widget=forms.Textarea(attrs=_placeholder(field)),
        **_common(field),
    )


def _rating(field: FieldDefinition) -> forms.Field:
    return forms.TypedChoiceField(
        choices=[(score, str(score)) for score in RATING_SCALE],
        coerce=int,
        empty_value=None,
        widget=forms.RadioSelect,
        **_common(field, required="Please select a rating"),
    )


def _dropdown(field: FieldDefinition) -> forms.Field:
    empty_label = field.placeholder or f"Select {field.label}"
    choices = [("", empty_label)]
    choices.extend((option.value, option.label) for option in field.options or ())
    return forms.ChoiceField(choices=choices, widget=forms.Select, **_common(field))


def _selection_bounds(field: FieldDefinition) -> List[Callable[[List[str]], None]]:
    minimum = _int_rule(field, "minSelected")
    maximum = _int_rule(field, "maxSelected")

    def check(value: List[str]) -> None:
        if minimum is not None and len(value) < minimum:
            raise ValidationError(f"Select at least {minimum} options", code="min_selected")
        if maximum is not None and len(value) > maximum:
            raise ValidationError(f"Select at most {maximum} options", code="max_selected")

    return [check] if minimum is not None or maximum is not None else []


def _checkbox(field: FieldDefinition) -> forms.Field:
    return forms.MultipleChoiceField(
        choices=[(option.value, option.label) for option in field.options or ()],
        widget=forms.CheckboxSelectMultiple,
        validators=_selection_bounds(field),
        **_common(field),
    )


FIELD_BUILDERS: Dict[FieldType, Callable[[FieldDefinition], forms.Field]] = {
    FieldType.TEXT: _text,
    FieldType.EMAIL: _email,
    FieldType.PHONE: _phone,
    FieldType.TEXTAREA: _textarea,
    FieldType.RATING: _rating,
    FieldType.DROPDOWN: _dropdown,
    FieldType.CHECKBOX: _checkbox,
}

_unhandled = set(FieldType) - set(FIELD_BUILDERS)
if _unhandled:
    raise ImproperlyConfigured(
        "No form field builder for: " + ", ".join(sorted(t.value for t in _unhandled))
    )


def _definitions(
    fields: Iterable[Union[FieldDefinition, Mapping[str, Any]]],
) -> List[FieldDefinition]:
    fields = list(fields)
    records = [field for field in fields if not isinstance(field, FieldDefinition)]
    if not records:
        return fields
    if len(records) != len(fields):
        raise TypeError("Pass either field definitions or stored field records, not both")
    # Stored records with a type outside FieldType are dropped here.
    return list(decode_fields(records))


def build_form(
    fields: Iterable[Union[FieldDefinition, Mapping[str, Any]]],
    mode: RenderMode = RenderMode.FILL,
    data: Optional[Mapping[str, Any]] = None,
    **kwargs: Any,
) -> ReviewForm:
    """Build a form with one input per field, keyed by field id, in list order."""

    mode = RenderMode(mode)
    form = ReviewForm(data=data if mode is RenderMode.FILL else None, **kwargs)
    for field in _definitions(fields):
        form_field = FIELD_BUILDERS[field.field_type](field)
        if mode is RenderMode.EDIT:
            form_field.disabled = True
        form.fields[field.id] = form_field
    return form


def form_for_template(
    template: Any,
    mode: RenderMode = RenderMode.FILL,
    data: Optional[Mapping[str, Any]] = None,
    **kwargs: Any,
) -> ReviewForm:
    """``build_form`` for a ``BuilderState`` or a stored template record."""

    if isinstance(template, Mapping):
        fields = template.get("fields") or ()
    else:
        fields = template.fields
    return build_form(fields, mode=mode, data=data, **kwargs)
