"""Conversion between builder objects and the template store's wire format.

The store receives ``settings`` and each field's ``validation``, ``styling``,
``conditional`` and ``options`` as separately encoded JSON text. Records coming
back may hold either that text or native JSON, so every decoder accepts both.
"""
from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .fields import (
    Conditional,
    FieldDefinition,
    FieldOption,
    FieldType,
    InvalidFieldError,
    Styling,
    UnknownFieldTypeError,
    Validation,
    default_options,
    new_field_id,
)

if TYPE_CHECKING:
    from .state import BuilderState

logger = logging.getLogger(__name__)


def _encode(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def decode_blob(value: Any, default: Any) -> Any:
    """Parse a value that may be JSON text or already-decoded JSON."""

    if value is None or value == "" or value == b"":
        return default
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("Ignoring malformed JSON blob: %.80s", value)
            return default
    return value


def decode_settings(value: Any) -> Dict[str, Any]:
    settings = decode_blob(value, {})
    return settings if isinstance(settings, dict) else {}


def decode_validation(value: Any) -> Validation:
    data = decode_blob(value, {})
    if not isinstance(data, dict):
        return Validation()
    if "rules" in data or "errorMessages" in data:
        return Validation(
            rules=dict(data.get("rules") or {}),
            error_messages=dict(data.get("errorMessages") or {}),
        )
    # Older records keep the rules at the top level.
    return Validation(rules=dict(data))


def decode_styling(value: Any) -> Styling:
    data = decode_blob(value, {})
    if not isinstance(data, dict):
        return Styling()
    defaults = Styling()
    return Styling(
        width=data.get("width", defaults.width),
        size=data.get("size", defaults.size),
        variant=data.get("variant", defaults.variant),
    )


def decode_conditional(value: Any) -> Conditional:
    data = decode_blob(value, {})
    if not isinstance(data, dict):
        return Conditional()
    return Conditional(
        enabled=bool(data.get("enabled", False)),
        conditions=tuple(data.get("conditions") or ()),
    )


def decode_options(value: Any) -> Optional[Tuple[FieldOption, ...]]:
    data = decode_blob(value, None)
    if not isinstance(data, list) or not data:
        return None
    options: List[FieldOption] = []
    for index, item in enumerate(data, start=1):
        if isinstance(item, Mapping):
            option_value = item.get("value", item.get("label", ""))
            options.append(
                FieldOption(
                    id=item.get("id", index),
                    label=str(item.get("label", option_value)),
                    value=str(option_value),
                )
            )
        else:
            options.append(FieldOption(id=index, label=str(item), value=str(item)))
    return tuple(options)


def decode_field(record: Mapping[str, Any], order: int = 0) -> FieldDefinition:
    """Build a field from a stored record.

    Raises ``UnknownFieldTypeError`` for types outside the supported set.
    """

    field_type = FieldType.parse(record.get("fieldType"))
    field_id = record.get("id")
    options = decode_options(record.get("options"))
    if field_type.requires_options and not options:
        logger.warning("Field %s had no options; using the defaults", field_id)
        options = default_options()
    elif not field_type.requires_options:
        options = None

    return FieldDefinition(
        id=str(field_id) if field_id not in (None, "") else new_field_id(),
        field_type=field_type,
        label=record.get("label") or "",
        placeholder=record.get("placeholder") or "",
        is_required=bool(record.get("isRequired", False)),
        order=order,
        validation=decode_validation(record.get("validation")),
        styling=decode_styling(record.get("styling")),
        conditional=decode_conditional(record.get("conditional")),
        options=options,
    )


def decode_fields(records: Iterable[Mapping[str, Any]]) -> Tuple[FieldDefinition, ...]:
    """Decode stored fields in their stored order, skipping unusable records."""

    ordered = sorted(
        enumerate(records),
        key=lambda item: (item[1].get("order") is None, item[1].get("order") or 0, item[0]),
    )
    decoded: List[FieldDefinition] = []
    for _, record in ordered:
        try:
            decoded.append(decode_field(record, order=len(decoded)))
        except UnknownFieldTypeError:
            logger.warning(
                "Skipping field %s with unsupported type %r",
                record.get("id"),
                record.get("fieldType"),
            )
        except InvalidFieldError as exc:
            logger.warning("Skipping field %s: %s", record.get("id"), exc)
    return tuple(decoded)


def encode_field(field: FieldDefinition) -> Dict[str, Any]:
    return {
        "fieldType": field.field_type.value,
        "label": field.label,
        "placeholder": field.placeholder or "",
        "isRequired": field.is_required,
        "order": field.order,
        "options": (
            _encode([option.as_dict() for option in field.options])
            if field.options
            else None
        ),
        "validation": _encode(field.validation.as_dict()),
        "styling": _encode(field.styling.as_dict()),
        "conditional": _encode(field.conditional.as_dict()),
    }


def encode_template(state: "BuilderState", business_id: Any) -> Dict[str, Any]:
    """Body for a create or full-replace update of the working template."""

    return {
        "businessId": business_id,
        "name": state.name.strip(),
        "description": state.description,
        "settings": _encode(state.settings.as_dict()),
        "fields": [encode_field(field) for field in state.fields],
    }
