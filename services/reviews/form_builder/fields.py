"""Field definitions for custom review forms."""
from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple, Union


class InvalidFieldError(ValueError):
    """A field definition breaks one of its invariants."""


class UnknownFieldTypeError(ValueError):
    """A stored field carries a type outside the supported set."""


class FieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    TEXTAREA = "textarea"
    RATING = "rating"
    DROPDOWN = "dropdown"
    CHECKBOX = "checkbox"

    @classmethod
    def parse(cls, value: Union[str, "FieldType"]) -> "FieldType":
        try:
            return cls(value)
        except ValueError:
            raise UnknownFieldTypeError(f"Unsupported field type: {value!r}") from None

    @property
    def label(self) -> str:
        return FIELD_TYPE_LABELS[self]

    @property
    def requires_options(self) -> bool:
        return self in OPTION_FIELD_TYPES


OPTION_FIELD_TYPES: FrozenSet[FieldType] = frozenset({FieldType.DROPDOWN, FieldType.CHECKBOX})

FIELD_TYPE_LABELS: Dict[FieldType, str] = {
    FieldType.TEXT: "Text Input",
    FieldType.EMAIL: "Email",
    FieldType.PHONE: "Phone",
    FieldType.TEXTAREA: "Text Area",
    FieldType.RATING: "Star Rating",
    FieldType.DROPDOWN: "Dropdown",
    FieldType.CHECKBOX: "Checkbox",
}

# Validation rules the field editor offers for each type.
VALIDATION_RULES: Dict[FieldType, Tuple[str, ...]] = {
    FieldType.TEXT: ("required", "minLength", "maxLength", "pattern"),
    FieldType.EMAIL: ("required", "email"),
    FieldType.PHONE: ("required", "phone"),
    FieldType.TEXTAREA: ("required", "minLength", "maxLength"),
    FieldType.RATING: ("required",),
    FieldType.DROPDOWN: ("required",),
    FieldType.CHECKBOX: ("required", "minSelected", "maxSelected"),
}

OptionId = Union[int, str]


def new_field_id() -> str:
    return f"field-{uuid.uuid4().hex}"


@dataclass(frozen=True)
class FieldOption:
    id: OptionId
    label: str
    value: str

    def as_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "value": self.value}


def default_options() -> Tuple[FieldOption, ...]:
    return (
        FieldOption(id=1, label="Option 1", value="option1"),
        FieldOption(id=2, label="Option 2", value="option2"),
    )


@dataclass(frozen=True)
class Validation:
    """Declarative rules plus per-rule error messages.

    The rules are only interpreted by the renderer and the submission
    endpoint; the builder stores whatever the editor sets.
    """

    rules: Dict[str, Any] = field(default_factory=dict)
    error_messages: Dict[str, str] = field(default_factory=dict)

    def with_rule(self, rule: str, value: Any) -> "Validation":
        rules = dict(self.rules)
        if value == "" or value is False or value is None:
            rules.pop(rule, None)
        else:
            rules[rule] = value
        return Validation(rules=rules, error_messages=dict(self.error_messages))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "rules": copy.deepcopy(self.rules),
            "errorMessages": dict(self.error_messages),
        }


@dataclass(frozen=True)
class Styling:
    width: str = "full"
    size: str = "md"
    variant: str = "default"

    def as_dict(self) -> Dict[str, Any]:
        return {"width": self.width, "size": self.size, "variant": self.variant}


@dataclass(frozen=True)
class Conditional:
    enabled: bool = False
    conditions: Tuple[Dict[str, Any], ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "conditions": copy.deepcopy(list(self.conditions))}


@dataclass(frozen=True)
class FieldDefinition:
    """One input of a review form.

    ``order`` mirrors the field's index in its template and is rewritten by
    every structural change to the template, never trusted on its own.
    """

    id: str
    field_type: FieldType
    label: str
    placeholder: str = ""
    is_required: bool = False
    order: int = 0
    validation: Validation = field(default_factory=Validation)
    styling: Styling = field(default_factory=Styling)
    conditional: Conditional = field(default_factory=Conditional)
    options: Optional[Tuple[FieldOption, ...]] = None

    def __post_init__(self) -> None:
        if not isinstance(self.field_type, FieldType):
            object.__setattr__(self, "field_type", FieldType.parse(self.field_type))
        if self.options is not None and not isinstance(self.options, tuple):
            object.__setattr__(self, "options", tuple(self.options))

        if self.field_type.requires_options:
            if not self.options:
                raise InvalidFieldError(
                    f"{self.field_type.value} field {self.id!r} needs at least one option"
                )
            values = [option.value for option in self.options]
            if len(values) != len(set(values)):
                raise InvalidFieldError(f"Field {self.id!r} has duplicate option values")
        elif self.options is not None:
            raise InvalidFieldError(
                f"{self.field_type.value} field {self.id!r} does not take options"
            )
