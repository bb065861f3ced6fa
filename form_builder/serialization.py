"""
Serialization boundary for form documents and commands.

Pure functions converting between the frozen document dataclasses and
JSON-safe dicts. The engine defines no storage format of its own; the
dict shape simply mirrors the data model with camelCase keys
(fieldIds, conditionalVisibility, targetFieldId, ...).

Design principles:
- Pure functions (no side effects)
- Recursive handling of nested structures
- Decoding never raises on odd documents: unknown field types become
  short_text, missing keys take defaults. Integrity repair is left to
  document_model.normalize_form (applied when a session loads the form).
- Command decoding raises ValueError for unknown command types and for
  ids or modes that are not strings - the only rejections at this boundary.

Contents:
- to_json_value(): Recursively convert dataclasses/enums/tuples to JSON-safe values
- form_to_json() / form_from_json(): FormDefinition <-> dict
- condition_group_from_json(): rule tree decoding (also reads the legacy
  {logic, conditions, nestedGroups, sourceFieldId} shape)
- field_updates_from_json(): UpdateField payload decoding
- command_from_json(): {"type": "ADD_FIELD", "payload": {...}} -> command

Usage:
    from form_builder.serialization import form_to_json, form_from_json

    data = form_to_json(form)
    restored = form_from_json(data)
"""

import logging
import re
from dataclasses import fields as dataclass_fields, is_dataclass
from enum import Enum
from typing import Any, Dict, Optional

from form_builder import commands
from form_builder.contracts import (
    Combinator,
    ConditionGroup,
    FieldCondition,
    FieldConfig,
    FieldOption,
    FormDefinition,
    FormMode,
    FormPage,
    FormSettings,
    FormStatus,
    FormStyling,
    ValidationRules,
)
from form_builder.core.document_model import DEFAULT_FORM_NAME, field_class_for_type
from form_builder.utils.field_registry import (
    ConditionOperator,
    FieldType,
    coerce_field_type,
    get_field_metadata,
)
from form_builder.utils.helpers import generate_id

logger = logging.getLogger(__name__)

# Mode strings written by the earlier editor
_LEGACY_MODES = {"inline": FormMode.SINGLE_PAGE, "wizard": FormMode.MULTI_STEP}

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _snake_keys(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        return {}
    return {_snake(str(k)): v for k, v in data.items()}


def _known(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    allowed = {f.name for f in dataclass_fields(cls)}
    return {k: v for k, v in data.items() if k in allowed}


def _text(data: Dict[str, Any], key: str, default: str = "") -> str:
    """String value under key; default when missing or not a string."""
    value = data.get(key, default)
    return value if isinstance(value, str) else default


def _id_or_new(value: Any, prefix: str) -> str:
    return value if isinstance(value, str) and value else generate_id(prefix)


# =============================================================================
# Encoding
# =============================================================================

def to_json_value(data: Any) -> Any:
    """
    Recursively convert document objects to JSON-safe values.

    Handles nested structures:
    - dataclass -> dict with camelCase keys (None omitted only where it
      is the attribute default)
    - Enum -> its value
    - tuple/list -> list
    - dict -> dict (keys unchanged: field ids, CSS properties)
    - Other types -> returned unchanged

    Note:
        Creates new containers; the input is not modified.
    """
    if isinstance(data, Enum):
        return data.value

    if is_dataclass(data) and not isinstance(data, type):
        result = {}
        for f in dataclass_fields(data):
            value = getattr(data, f.name)
            if value is None and f.default is None:
                continue
            result[_camel(f.name)] = to_json_value(value)
        return result

    if isinstance(data, dict):
        return {k: to_json_value(v) for k, v in data.items()}

    if isinstance(data, (list, tuple)):
        return [to_json_value(item) for item in data]

    return data


def form_to_json(form: FormDefinition) -> Dict[str, Any]:
    """Serialize a document to a JSON-safe dict (fresh containers)."""
    return to_json_value(form)


# =============================================================================
# Decoding
# =============================================================================

def condition_group_from_json(data: Any) -> Optional[ConditionGroup]:
    """
    Decode a condition group; None for anything that is not a dict.

    Children with 'children'/'combinator'/'logic' keys are groups,
    anything else is a leaf.
    """
    if not isinstance(data, dict):
        return None

    combinator = data.get("combinator", data.get("logic", "and"))
    try:
        combinator = Combinator(combinator.lower() if isinstance(combinator, str) else combinator)
    except ValueError:
        logger.warning(f"Unknown combinator {combinator!r}, using 'and'")
        combinator = Combinator.AND

    if "children" in data:
        raw_children = data.get("children") or []
    else:
        raw_children = list(data.get("conditions") or []) + list(data.get("nestedGroups") or [])

    children = []
    for child in raw_children:
        if not isinstance(child, dict):
            continue
        if any(key in child for key in ("children", "combinator", "logic", "conditions", "nestedGroups")):
            children.append(condition_group_from_json(child))
        else:
            children.append(_condition_from_json(child))

    return ConditionGroup(
        id=_id_or_new(data.get("id"), "group"),
        combinator=combinator,
        children=tuple(children),
    )


def _condition_from_json(data: Dict[str, Any]) -> FieldCondition:
    target = data.get("targetFieldId", data.get("sourceFieldId", ""))
    operator = data.get("operator", "equals")
    try:
        operator = ConditionOperator(operator)
    except ValueError:
        # Kept raw; the evaluator resolves unknown operators to False
        logger.warning(f"Unknown condition operator {operator!r}")

    return FieldCondition(
        id=_id_or_new(data.get("id"), "cond"),
        target_field_id=target if isinstance(target, str) else "",
        operator=operator,
        value=data.get("value"),
    )


def _validation_from_json(data: Any) -> Optional[ValidationRules]:
    if not isinstance(data, dict):
        return None
    return ValidationRules(**_known(ValidationRules, _snake_keys(data)))


def _options_from_json(data: Any):
    if not isinstance(data, (list, tuple)):
        return ()
    options = []
    for index, raw in enumerate(data):
        if not isinstance(raw, dict):
            continue
        options.append(FieldOption(
            id=str(raw.get("id", index + 1)),
            label=str(raw.get("label", "")),
            value=str(raw.get("value", "")),
        ))
    return tuple(options)


def _decode_field_values(values: Dict[str, Any]) -> Dict[str, Any]:
    """Convert nested payloads of snake_cased field attributes in place."""
    if "conditional_visibility" in values:
        values["conditional_visibility"] = condition_group_from_json(values["conditional_visibility"])
    if "validation" in values:
        values["validation"] = _validation_from_json(values["validation"])
    if "options" in values:
        values["options"] = _options_from_json(values["options"])
    if "style" in values:
        values["style"] = dict(values["style"]) if isinstance(values["style"], dict) else {}
    return values


def field_from_json(data: Dict[str, Any], field_id: Optional[str] = None) -> FieldConfig:
    """
    Decode one field into its variant dataclass.

    Attributes the variant does not define are dropped (e.g. 'required'
    on a layout element).
    """
    values = _snake_keys(data)
    field_type = coerce_field_type(values.get("type"))
    if field_type is None:
        logger.warning(f"Unknown field type {values.get('type')!r}, decoding as short_text")
        field_type = FieldType.SHORT_TEXT

    cls = field_class_for_type(field_type)
    values = _decode_field_values(_known(cls, values))
    values["id"] = field_id or _id_or_new(values.get("id"), "field")
    values["type"] = field_type
    values["name"] = _text(values, "name") or get_field_metadata(field_type).default_name
    if "label" in values:
        values["label"] = _text(values, "label")
    return cls(**values)


def field_updates_from_json(data: Any) -> Dict[str, Any]:
    """Decode an UpdateField payload (camelCase keys) into attribute updates."""
    return _decode_field_values(_snake_keys(data))


def _page_from_json(data: Dict[str, Any], index: int) -> FormPage:
    return FormPage(
        id=_id_or_new(data.get("id"), "page"),
        title=_text(data, "title", f"Page {index + 1}"),
        description=_text(data, "description"),
        field_ids=tuple(fid for fid in _list(data.get("fieldIds")) if isinstance(fid, str)),
    )


def _list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def _mode_from_json(value: Any) -> FormMode:
    if not isinstance(value, str):
        return FormMode.SINGLE_PAGE
    if value in _LEGACY_MODES:
        return _LEGACY_MODES[value]
    try:
        return FormMode(value)
    except ValueError:
        return FormMode.SINGLE_PAGE


def form_from_json(data: Dict[str, Any]) -> FormDefinition:
    """
    Deserialize a document.

    Args:
        data: Dict produced by form_to_json (or an earlier editor version)

    Returns:
        FormDefinition: Decoded document, not yet integrity-checked
    """
    if not isinstance(data, dict):
        raise ValueError("Form document must be a JSON object")

    raw_fields = data.get("fields")
    if not isinstance(raw_fields, dict):
        raw_fields = {}
    fields = {
        field_id: field_from_json(raw, field_id=field_id)
        for field_id, raw in raw_fields.items()
        if isinstance(field_id, str) and field_id and isinstance(raw, dict)
    }
    pages = tuple(
        _page_from_json(raw, index)
        for index, raw in enumerate(_list(data.get("pages")))
        if isinstance(raw, dict)
    )

    try:
        status = FormStatus(data.get("status", "draft"))
    except ValueError:
        status = FormStatus.DRAFT

    return FormDefinition(
        id=_id_or_new(data.get("id"), "form"),
        name=_text(data, "name", DEFAULT_FORM_NAME),
        description=_text(data, "description"),
        mode=_mode_from_json(data.get("mode")),
        pages=pages,
        fields=fields,
        styling=FormStyling(**_known(FormStyling, _snake_keys(data.get("styling")))),
        settings=FormSettings(**_known(FormSettings, _snake_keys(data.get("settings")))),
        status=status,
        created_at=_text(data, "createdAt"),
        updated_at=_text(data, "updatedAt"),
        published_at=data.get("publishedAt") if isinstance(data.get("publishedAt"), str) else None,
    )


# =============================================================================
# Commands
# =============================================================================

def _arg(payload: Any, key: str, default: Any = None) -> Any:
    """Payload value by key, or the payload itself when it is a bare scalar."""
    if isinstance(payload, dict):
        return payload.get(key, default)
    return payload if payload is not None else default


def _id_arg(payload: Any, key: str) -> Optional[str]:
    value = _arg(payload, key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string")
    return value


def _id_list_arg(payload: Any, key: str):
    value = _arg(payload, key, []) or []
    if not isinstance(value, (list, tuple)) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"'{key}' must be a list of strings")
    return tuple(value)


def command_from_json(data: Any):
    """
    Decode one command message.

    Args:
        data: {"type": "<ACTION_NAME>", "payload": ...}

    Returns:
        A command dataclass from form_builder.commands

    Raises:
        ValueError: If data is not an object, names an unknown command,
            or carries a non-string id or mode
    """
    if not isinstance(data, dict):
        raise ValueError("Command must be a JSON object")

    action = data.get("type")
    payload = data.get("payload")

    if action == "ADD_FIELD":
        if not isinstance(payload, dict):
            return commands.AddField(field_type=payload)
        return commands.AddField(
            field_type=payload.get("fieldType"),
            page_index=payload.get("pageIndex", 0),
            after_field_id=_id_arg(payload, "afterFieldId"),
        )
    if action == "REMOVE_FIELD":
        return commands.RemoveField(field_id=_id_arg(payload, "fieldId"))
    if action == "UPDATE_FIELD":
        return commands.UpdateField(
            field_id=_id_arg(payload, "fieldId"),
            updates=field_updates_from_json(_arg(payload, "updates", {})),
        )
    if action == "DUPLICATE_FIELD":
        return commands.DuplicateField(field_id=_id_arg(payload, "fieldId"))
    if action == "REORDER_FIELDS":
        return commands.ReorderFields(
            page_index=_arg(payload, "pageIndex"),
            field_ids=_id_list_arg(payload, "fieldIds"),
        )
    if action == "MOVE_FIELD_TO_PAGE":
        return commands.MoveFieldToPage(
            field_id=_id_arg(payload, "fieldId"),
            target_page_index=_arg(payload, "targetPageIndex"),
            target_index=_arg(payload, "targetIndex"),
        )
    if action == "ADD_PAGE":
        payload = payload if isinstance(payload, dict) else {}
        return commands.AddPage(after_index=payload.get("afterIndex"), title=payload.get("title"))
    if action == "REMOVE_PAGE":
        return commands.RemovePage(page_index=_arg(payload, "pageIndex"))
    if action == "UPDATE_PAGE":
        return commands.UpdatePage(
            page_index=_arg(payload, "pageIndex"),
            updates=_snake_keys(_arg(payload, "updates", {})),
        )
    if action == "REORDER_PAGES":
        return commands.ReorderPages(page_ids=_id_list_arg(payload, "pageIds"))
    if action == "SET_FORM_MODE":
        mode = _arg(payload, "mode")
        if not isinstance(mode, str):
            raise ValueError("'mode' must be a string")
        return commands.SetFormMode(mode=_LEGACY_MODES.get(mode, mode))
    if action == "UPDATE_STYLING":
        return commands.UpdateStyling(updates=_snake_keys(payload))
    if action == "UPDATE_SETTINGS":
        return commands.UpdateSettings(updates=_snake_keys(payload))
    if action == "UPDATE_FORM_NAME":
        return commands.UpdateFormName(name=str(_arg(payload, "name", "")))
    if action == "UPDATE_FORM_DESCRIPTION":
        return commands.UpdateFormDescription(description=str(_arg(payload, "description", "")))
    if action == "SELECT_FIELD":
        return commands.SelectField(field_id=_id_arg(payload, "fieldId"))
    if action == "SET_SELECTED_PAGE":
        return commands.SelectPage(page_index=_arg(payload, "pageIndex"))
    if action == "SET_FORM":
        form_data = payload.get("form", payload) if isinstance(payload, dict) else payload
        return commands.LoadForm(form=form_from_json(form_data))
    if action == "RESET_FORM":
        return commands.ResetForm()
    if action == "UNDO":
        return commands.Undo()
    if action == "REDO":
        return commands.Redo()
    if action == "MARK_SAVED":
        return commands.MarkSaved()

    raise ValueError(f"Unknown command type: {action!r}")
