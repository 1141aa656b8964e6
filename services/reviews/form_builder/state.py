"""Builder state and the pure transitions that edit it.

Every transition takes a ``BuilderState`` and returns a new one; nothing is
mutated in place. Field ``order`` is recomputed from list position after each
structural change, so ``state.fields[i].order == i`` always holds.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping, Optional, Tuple, Union

from .codec import decode_fields, decode_settings
from .fields import (
    FieldDefinition,
    FieldOption,
    FieldType,
    InvalidFieldError,
    VALIDATION_RULES,
    Validation,
    default_options,
    new_field_id,
)
from .templates import (
    NEW_TEMPLATE_NAME,
    PRESETS,
    SETTINGS_ATTRIBUTES,
    TemplateSettings,
    default_fields,
    preset_fields,
)

NAME_REQUIRED_MESSAGE = "Please enter a form name"
FIELDS_REQUIRED_MESSAGE = "Please add at least one field"

# Attributes ``update_field`` may change; ``id`` and ``order`` are managed here.
_EDITABLE_FIELD_ATTRIBUTES = frozenset(
    {
        "field_type",
        "label",
        "placeholder",
        "is_required",
        "validation",
        "styling",
        "conditional",
        "options",
    }
)


class FieldNotFoundError(KeyError):
    """A transition addressed a field id that is not in the template."""


@dataclass(frozen=True)
class BuilderState:
    template_id: Optional[Union[int, str]] = None
    name: str = ""
    description: str = ""
    settings: TemplateSettings = field(default_factory=TemplateSettings)
    fields: Tuple[FieldDefinition, ...] = ()
    selected_field_id: Optional[str] = None
    editor_open: bool = False
    creating_new: bool = False

    @property
    def is_saved(self) -> bool:
        return self.template_id is not None

    @property
    def selected_field(self) -> Optional[FieldDefinition]:
        if self.selected_field_id is None:
            return None
        for field in self.fields:
            if field.id == self.selected_field_id:
                return field
        return None

    def index_of(self, field_id: str) -> int:
        for index, field in enumerate(self.fields):
            if field.id == field_id:
                return index
        raise FieldNotFoundError(field_id)

    def get_field(self, field_id: str) -> FieldDefinition:
        return self.fields[self.index_of(field_id)]


def _renumber(fields: Iterable[FieldDefinition]) -> Tuple[FieldDefinition, ...]:
    return tuple(
        field if field.order == index else replace(field, order=index)
        for index, field in enumerate(fields)
    )


def _with_fields(state: BuilderState, fields: Iterable[FieldDefinition], **changes: Any) -> BuilderState:
    return replace(state, fields=_renumber(fields), **changes)


def new_template(google_review_url: str = "") -> BuilderState:
    """A fresh, unsaved template with the four starter fields."""

    return BuilderState(
        name=NEW_TEMPLATE_NAME,
        settings=TemplateSettings(google_review_url=google_review_url or ""),
        fields=_renumber(default_fields()),
        creating_new=True,
    )


def load_template(state: BuilderState, record: Mapping[str, Any]) -> BuilderState:
    """Make a stored template the working state.

    Stored settings are merged over the current ones; a template without its
    own Google Review URL keeps the URL already in the working state.
    """

    return BuilderState(
        template_id=record.get("id"),
        name=record.get("name") or "",
        description=record.get("description") or "",
        settings=state.settings.merged(decode_settings(record.get("settings"))),
        fields=decode_fields(record.get("fields") or ()),
    )


def rename(state: BuilderState, name: Optional[str] = None, description: Optional[str] = None) -> BuilderState:
    changes = {}
    if name is not None:
        changes["name"] = name
    if description is not None:
        changes["description"] = description
    return replace(state, **changes)


def update_settings(state: BuilderState, **changes: Any) -> BuilderState:
    unknown = set(changes) - set(SETTINGS_ATTRIBUTES)
    if unknown:
        raise TypeError(f"Unknown template settings: {', '.join(sorted(unknown))}")
    return replace(state, settings=replace(state.settings, **changes))


def add_field(state: BuilderState, field_type: Union[FieldType, str]) -> BuilderState:
    """Append a field with type defaults and open it in the editor."""

    field_type = FieldType.parse(field_type)
    field = FieldDefinition(
        id=new_field_id(),
        field_type=field_type,
        label=f"New {field_type.label}",
        placeholder=f"Enter {field_type.value}...",
        is_required=False,
        order=len(state.fields),
        options=default_options() if field_type.requires_options else None,
    )
    return _with_fields(
        state,
        state.fields + (field,),
        selected_field_id=field.id,
        editor_open=True,
    )


def update_field(state: BuilderState, field_id: str, **changes: Any) -> BuilderState:
    """Merge ``changes`` into one field.

    Changing the type to or from an option type fills in or drops the options
    unless the caller supplies them.
    """

    unknown = set(changes) - _EDITABLE_FIELD_ATTRIBUTES
    if unknown:
        raise TypeError(f"Cannot update field attributes: {', '.join(sorted(unknown))}")

    index = state.index_of(field_id)
    current = state.fields[index]
    if "field_type" in changes:
        changes["field_type"] = FieldType.parse(changes["field_type"])
        if "options" not in changes:
            if changes["field_type"].requires_options:
                changes["options"] = current.options or default_options()
            else:
                changes["options"] = None
    if changes.get("options") is not None:
        changes["options"] = tuple(changes["options"])

    fields = list(state.fields)
    fields[index] = replace(current, **changes)
    return _with_fields(state, fields)


def remove_field(state: BuilderState, field_id: str) -> BuilderState:
    index = state.index_of(field_id)
    fields = state.fields[:index] + state.fields[index + 1:]
    if state.selected_field_id == field_id:
        return _with_fields(state, fields, selected_field_id=None, editor_open=False)
    return _with_fields(state, fields)


def duplicate_field(state: BuilderState, field_id: str) -> BuilderState:
    """Append a copy of a field at the end of the list."""

    original = state.get_field(field_id)
    duplicate = replace(
        original,
        id=new_field_id(),
        label=f"{original.label} (Copy)",
        validation=copy.deepcopy(original.validation),
        conditional=copy.deepcopy(original.conditional),
    )
    return _with_fields(state, state.fields + (duplicate,))


def move_field(state: BuilderState, from_index: int, to_index: int) -> BuilderState:
    count = len(state.fields)
    if not (0 <= from_index < count and 0 <= to_index < count):
        raise IndexError(f"Cannot move field {from_index} to {to_index} of {count}")
    fields = list(state.fields)
    fields.insert(to_index, fields.pop(from_index))
    return _with_fields(state, fields)


def select_field(state: BuilderState, field_id: str) -> BuilderState:
    state.index_of(field_id)
    return replace(state, selected_field_id=field_id, editor_open=True)


def close_editor(state: BuilderState) -> BuilderState:
    return replace(state, selected_field_id=None, editor_open=False)


def set_validation_rule(state: BuilderState, field_id: str, rule: str, value: Any) -> BuilderState:
    """Set a rule; an empty string or ``False`` removes it.

    Only the rules ``VALIDATION_RULES`` offers for the field's type are accepted.
    """

    field = state.get_field(field_id)
    if rule not in VALIDATION_RULES[field.field_type]:
        raise InvalidFieldError(
            f"{field.field_type.value} fields do not support the {rule!r} rule"
        )
    return update_field(state, field_id, validation=field.validation.with_rule(rule, value))


def set_error_message(state: BuilderState, field_id: str, rule: str, message: str) -> BuilderState:
    field = state.get_field(field_id)
    messages = dict(field.validation.error_messages)
    if message:
        messages[rule] = message
    else:
        messages.pop(rule, None)
    validation = Validation(rules=dict(field.validation.rules), error_messages=messages)
    return update_field(state, field_id, validation=validation)


def add_option(state: BuilderState, field_id: str) -> BuilderState:
    field = state.get_field(field_id)
    options = tuple(field.options or ())
    numeric_ids = [option.id for option in options if isinstance(option.id, int)]
    next_id = max(numeric_ids, default=0) + 1
    taken = {option.value for option in options}
    number = len(options) + 1
    while f"option{number}" in taken:
        number += 1
    option = FieldOption(id=next_id, label=f"Option {number}", value=f"option{number}")
    return update_field(state, field_id, options=options + (option,))


def update_option(state: BuilderState, field_id: str, option_id: Any, **changes: Any) -> BuilderState:
    field = state.get_field(field_id)
    options = tuple(
        replace(option, **changes) if option.id == option_id else option
        for option in field.options or ()
    )
    return update_field(state, field_id, options=options)


def remove_option(state: BuilderState, field_id: str, option_id: Any) -> BuilderState:
    field = state.get_field(field_id)
    options = tuple(option for option in field.options or () if option.id != option_id)
    return update_field(state, field_id, options=options)


def apply_preset(state: BuilderState, preset: str) -> BuilderState:
    """Replace name, description and fields with one of the starter presets."""

    fields = preset_fields(preset)
    definition = PRESETS[preset]
    return _with_fields(
        state,
        fields,
        name=definition["name"],
        description=definition["description"],
        selected_field_id=None,
        editor_open=False,
    )


def check_saveable(state: BuilderState) -> Optional[str]:
    """The message that blocks a save, or ``None`` when the template can be saved."""

    if not state.name.strip():
        return NAME_REQUIRED_MESSAGE
    if not state.fields:
        return FIELDS_REQUIRED_MESSAGE
    return None
