"""
Field and operator registry for the form builder.

Static metadata only. No state, no document knowledge.

Contents:
- FieldType / FieldCategory / FieldKind: string enums (JSON-safe)
- FIELD_REGISTRY: per-type palette metadata and default shape
- ConditionOperator: every operator a visibility condition can use
- get_operators_for_field_type(): legal operators per target field type
- get_operator_label() / operator_requires_value(): condition-builder helpers

Usage:
    from form_builder.utils.field_registry import FieldType, get_field_metadata

    meta = get_field_metadata(FieldType.EMAIL)
    meta.default_name
    'email'
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class FieldCategory(str, Enum):
    """Palette grouping."""
    PREDEFINED = "predefined"
    STANDARD = "standard"
    LAYOUT = "layout"


class FieldKind(str, Enum):
    """
    Structural variant a field type is built as.

    INPUT:      answerable field (required, validation, placeholder)
    CHOICE:     INPUT plus options
    CALCULATOR: INPUT plus measurement units
    LAYOUT:     display-only element, never answerable
    """
    INPUT = "input"
    CHOICE = "choice"
    CALCULATOR = "calculator"
    LAYOUT = "layout"


class FieldType(str, Enum):
    # Predefined
    BEST_TIME_TO_CALL = "best_time_to_call"
    EMAIL = "email"
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    PHONE_NUMBER = "phone_number"
    ZIP_CODE = "zip_code"

    # Standard
    ACCEPT_TERMS = "accept_terms"
    BMI_CALCULATOR = "bmi_calculator"
    DATE_OF_BIRTH = "date_of_birth"
    SHORT_TEXT = "short_text"
    LONG_TEXT = "long_text"
    MULTIPLE_CHOICE = "multiple_choice"
    NUMBER_ENTRY = "number_entry"
    SINGLE_CHOICE = "single_choice"
    SITE_SELECTOR = "site_selector"

    # Layout
    DIVIDER = "divider"
    FREE_FORM_TEXT = "free_form_text"
    NEXT_BUTTON = "next_button"
    PAGE_BREAK = "page_break"
    SUBMIT_BUTTON = "submit_button"


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUALS = "greater_than_or_equals"
    LESS_THAN_OR_EQUALS = "less_than_or_equals"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IS_CHECKED = "is_checked"
    IS_NOT_CHECKED = "is_not_checked"
    INCLUDES_ANY = "includes_any"
    INCLUDES_ALL = "includes_all"


# Single source of truth for valid type strings
VALID_FIELD_TYPES = {t.value for t in FieldType}
VALID_OPERATORS = {op.value for op in ConditionOperator}


# Placeholder options for freshly created choice fields: (id, label, value)
_PLACEHOLDER_OPTIONS = (
    ("1", "Option 1", "option1"),
    ("2", "Option 2", "option2"),
    ("3", "Option 3", "option3"),
)


@dataclass(frozen=True)
class FieldMetadata:
    """
    Palette entry and default shape for one field type.

    Attributes:
        type: Field type this entry describes
        category: Palette grouping
        kind: Structural variant used by the field factory
        label: Palette display name
        description: Palette tooltip
        default_label: Label given to a newly created field
        default_name: Base machine name (made unique by the factory)
        defaults: Variant-specific default attributes (placeholder,
            required, width, validation, options, units, content).
            Keys follow FieldConfig attribute names.
    """
    type: FieldType
    category: FieldCategory
    kind: FieldKind
    label: str
    description: str
    default_label: str
    default_name: str
    defaults: Dict[str, Any] = field(default_factory=dict)


def _meta(type_, category, kind, label, description, default_label, default_name, **defaults):
    return FieldMetadata(
        type=type_,
        category=category,
        kind=kind,
        label=label,
        description=description,
        default_label=default_label,
        default_name=default_name,
        defaults=defaults,
    )


_P, _S, _L = FieldCategory.PREDEFINED, FieldCategory.STANDARD, FieldCategory.LAYOUT

FIELD_REGISTRY: Dict[FieldType, FieldMetadata] = {
    # Predefined fields
    FieldType.BEST_TIME_TO_CALL: _meta(
        FieldType.BEST_TIME_TO_CALL, _P, FieldKind.CHOICE,
        "Best Time to Call", "Dropdown for preferred contact time",
        "Best Time to Call", "bestTimeToCall",
        required=False, width="full",
        options=(
            ("1", "Morning (8am - 12pm)", "morning"),
            ("2", "Afternoon (12pm - 5pm)", "afternoon"),
            ("3", "Evening (5pm - 8pm)", "evening"),
        ),
    ),
    FieldType.EMAIL: _meta(
        FieldType.EMAIL, _P, FieldKind.INPUT,
        "Email Address", "Email input with validation",
        "Email Address", "email",
        placeholder="you@example.com", required=True, width="full",
        validation={"pattern": r"^[^\s@]+@[^\s@]+\.[^\s@]+$"},
    ),
    FieldType.FIRST_NAME: _meta(
        FieldType.FIRST_NAME, _P, FieldKind.INPUT,
        "First Name", "First name text input",
        "First Name", "firstName",
        placeholder="John", required=True, width="half",
    ),
    FieldType.LAST_NAME: _meta(
        FieldType.LAST_NAME, _P, FieldKind.INPUT,
        "Last Name", "Last name text input",
        "Last Name", "lastName",
        placeholder="Doe", required=True, width="half",
    ),
    FieldType.PHONE_NUMBER: _meta(
        FieldType.PHONE_NUMBER, _P, FieldKind.INPUT,
        "Phone Number", "Phone number with formatting",
        "Phone Number", "phone",
        placeholder="(555) 123-4567", required=True, width="full",
    ),
    FieldType.ZIP_CODE: _meta(
        FieldType.ZIP_CODE, _P, FieldKind.INPUT,
        "Zip Code", "5-digit zip code input",
        "Zip Code", "zipCode",
        placeholder="12345", required=True, width="half",
        validation={"pattern": r"^\d{5}$", "max_length": 5},
    ),

    # Standard fields
    FieldType.ACCEPT_TERMS: _meta(
        FieldType.ACCEPT_TERMS, _S, FieldKind.INPUT,
        "Accept Terms", "Terms and conditions checkbox",
        "I agree to the Terms and Conditions", "acceptTerms",
        required=True, width="full",
    ),
    FieldType.BMI_CALCULATOR: _meta(
        FieldType.BMI_CALCULATOR, _S, FieldKind.CALCULATOR,
        "BMI Calculator", "Height/weight inputs with BMI calculation",
        "BMI Calculator", "bmi",
        required=False, width="full", height_unit="inches", weight_unit="lbs",
    ),
    FieldType.DATE_OF_BIRTH: _meta(
        FieldType.DATE_OF_BIRTH, _S, FieldKind.INPUT,
        "Date of Birth", "Date picker for birthdate",
        "Date of Birth", "dateOfBirth",
        required=True, width="full",
    ),
    FieldType.SHORT_TEXT: _meta(
        FieldType.SHORT_TEXT, _S, FieldKind.INPUT,
        "Short Text", "Single-line text input",
        "Short Text", "shortText",
        placeholder="Enter text...", required=False, width="full",
    ),
    FieldType.LONG_TEXT: _meta(
        FieldType.LONG_TEXT, _S, FieldKind.INPUT,
        "Long Text", "Multi-line textarea",
        "Long Text", "longText",
        placeholder="Enter your message...", required=False, width="full",
        validation={"max_length": 1000},
    ),
    FieldType.MULTIPLE_CHOICE: _meta(
        FieldType.MULTIPLE_CHOICE, _S, FieldKind.CHOICE,
        "Multiple Choice", "Checkboxes for multiple selections",
        "Multiple Choice", "multipleChoice",
        required=False, width="full", options=_PLACEHOLDER_OPTIONS,
    ),
    FieldType.NUMBER_ENTRY: _meta(
        FieldType.NUMBER_ENTRY, _S, FieldKind.INPUT,
        "Number Entry", "Numeric input field",
        "Number", "number",
        placeholder="0", required=False, width="half",
    ),
    FieldType.SINGLE_CHOICE: _meta(
        FieldType.SINGLE_CHOICE, _S, FieldKind.CHOICE,
        "Single Choice", "Radio buttons for single selection",
        "Single Choice", "singleChoice",
        required=False, width="full", options=_PLACEHOLDER_OPTIONS,
    ),
    FieldType.SITE_SELECTOR: _meta(
        FieldType.SITE_SELECTOR, _S, FieldKind.INPUT,
        "Site Selector", "Select nearby clinical trial sites",
        "Select a Site Near You", "selectedSite",
        helper_text="Sites are ordered by distance from your zip code",
        required=True, width="full",
    ),

    # Layout elements
    FieldType.DIVIDER: _meta(
        FieldType.DIVIDER, _L, FieldKind.LAYOUT,
        "Divider", "Visual separator line",
        "", "divider",
        width="full",
    ),
    FieldType.FREE_FORM_TEXT: _meta(
        FieldType.FREE_FORM_TEXT, _L, FieldKind.LAYOUT,
        "Free Form Text", "Static text block for instructions",
        "", "freeFormText",
        width="full", content="Enter your text here...",
    ),
    FieldType.NEXT_BUTTON: _meta(
        FieldType.NEXT_BUTTON, _L, FieldKind.LAYOUT,
        "Next Button", "Navigate to next page (multi-step mode)",
        "Next", "nextButton",
        width="full",
    ),
    FieldType.PAGE_BREAK: _meta(
        FieldType.PAGE_BREAK, _L, FieldKind.LAYOUT,
        "Page Break", "Create a new page (multi-step mode)",
        "Page Break", "pageBreak",
        width="full",
    ),
    FieldType.SUBMIT_BUTTON: _meta(
        FieldType.SUBMIT_BUTTON, _L, FieldKind.LAYOUT,
        "Submit Button", "Form submission button",
        "Submit", "submitButton",
        width="full",
    ),
}


def coerce_field_type(value: Any) -> Optional[FieldType]:
    """
    Convert a raw type string (or FieldType) to FieldType.

    Returns:
        FieldType, or None if the value names no known type
    """
    if isinstance(value, FieldType):
        return value
    if isinstance(value, str) and value in VALID_FIELD_TYPES:
        return FieldType(value)
    return None


def get_field_metadata(field_type: Any) -> Optional[FieldMetadata]:
    """Registry lookup by FieldType or type string; None if unknown."""
    coerced = coerce_field_type(field_type)
    if coerced is None:
        return None
    return FIELD_REGISTRY[coerced]


def get_fields_by_category(category: FieldCategory) -> List[FieldMetadata]:
    """Palette entries for one category, in registry order."""
    return [meta for meta in FIELD_REGISTRY.values() if meta.category == category]


def is_layout_type(field_type: Any) -> bool:
    meta = get_field_metadata(field_type)
    return meta is not None and meta.kind == FieldKind.LAYOUT


# =============================================================================
# Operators
# =============================================================================

_OPERATOR_LABELS: Dict[ConditionOperator, str] = {
    ConditionOperator.EQUALS: "equals",
    ConditionOperator.NOT_EQUALS: "does not equal",
    ConditionOperator.CONTAINS: "contains",
    ConditionOperator.NOT_CONTAINS: "does not contain",
    ConditionOperator.IS_EMPTY: "is empty",
    ConditionOperator.IS_NOT_EMPTY: "is not empty",
    ConditionOperator.GREATER_THAN: "is greater than",
    ConditionOperator.LESS_THAN: "is less than",
    ConditionOperator.GREATER_THAN_OR_EQUALS: "is greater than or equals",
    ConditionOperator.LESS_THAN_OR_EQUALS: "is less than or equals",
    ConditionOperator.STARTS_WITH: "starts with",
    ConditionOperator.ENDS_WITH: "ends with",
    ConditionOperator.IS_CHECKED: "is checked",
    ConditionOperator.IS_NOT_CHECKED: "is not checked",
    ConditionOperator.INCLUDES_ANY: "includes any of",
    ConditionOperator.INCLUDES_ALL: "includes all of",
}

_NO_VALUE_OPERATORS = frozenset({
    ConditionOperator.IS_EMPTY,
    ConditionOperator.IS_NOT_EMPTY,
    ConditionOperator.IS_CHECKED,
    ConditionOperator.IS_NOT_CHECKED,
})

_O = ConditionOperator

_TEXT_OPERATORS: Tuple[ConditionOperator, ...] = (
    _O.EQUALS, _O.NOT_EQUALS, _O.CONTAINS, _O.NOT_CONTAINS,
    _O.IS_EMPTY, _O.IS_NOT_EMPTY, _O.STARTS_WITH, _O.ENDS_WITH,
)
_NUMBER_OPERATORS: Tuple[ConditionOperator, ...] = (
    _O.EQUALS, _O.NOT_EQUALS, _O.GREATER_THAN, _O.LESS_THAN,
    _O.GREATER_THAN_OR_EQUALS, _O.LESS_THAN_OR_EQUALS,
    _O.IS_EMPTY, _O.IS_NOT_EMPTY,
)
_SINGLE_CHOICE_OPERATORS: Tuple[ConditionOperator, ...] = (
    _O.EQUALS, _O.NOT_EQUALS, _O.IS_EMPTY, _O.IS_NOT_EMPTY,
)
_MULTI_CHOICE_OPERATORS: Tuple[ConditionOperator, ...] = (
    _O.EQUALS, _O.CONTAINS, _O.NOT_CONTAINS,
    _O.INCLUDES_ANY, _O.INCLUDES_ALL, _O.IS_EMPTY, _O.IS_NOT_EMPTY,
)
_CHECKBOX_OPERATORS: Tuple[ConditionOperator, ...] = (
    _O.IS_CHECKED, _O.IS_NOT_CHECKED,
)
_DEFAULT_OPERATORS: Tuple[ConditionOperator, ...] = _SINGLE_CHOICE_OPERATORS

_F = FieldType

_OPERATORS_BY_TYPE: Dict[FieldType, Tuple[ConditionOperator, ...]] = {
    _F.SHORT_TEXT: _TEXT_OPERATORS,
    _F.LONG_TEXT: _TEXT_OPERATORS,
    _F.EMAIL: _TEXT_OPERATORS,
    _F.FIRST_NAME: _TEXT_OPERATORS,
    _F.LAST_NAME: _TEXT_OPERATORS,
    _F.PHONE_NUMBER: _TEXT_OPERATORS,
    _F.ZIP_CODE: _TEXT_OPERATORS,
    _F.NUMBER_ENTRY: _NUMBER_OPERATORS,
    _F.BMI_CALCULATOR: _NUMBER_OPERATORS,
    _F.SINGLE_CHOICE: _SINGLE_CHOICE_OPERATORS,
    _F.BEST_TIME_TO_CALL: _SINGLE_CHOICE_OPERATORS,
    _F.SITE_SELECTOR: _SINGLE_CHOICE_OPERATORS,
    _F.DATE_OF_BIRTH: _SINGLE_CHOICE_OPERATORS,
    _F.MULTIPLE_CHOICE: _MULTI_CHOICE_OPERATORS,
    _F.ACCEPT_TERMS: _CHECKBOX_OPERATORS,
}


def coerce_operator(value: Any) -> Optional[ConditionOperator]:
    if isinstance(value, ConditionOperator):
        return value
    if isinstance(value, str) and value in VALID_OPERATORS:
        return ConditionOperator(value)
    return None


def get_operators_for_field_type(field_type: Any) -> List[ConditionOperator]:
    """
    Legal condition operators when the condition targets a field of this type.

    Layout elements have no answer, so they get an empty list. Unknown
    types fall back to the equality/emptiness set.

    Args:
        field_type: FieldType or type string

    Returns:
        list[ConditionOperator]: in display order (fresh list, safe to modify)
    """
    coerced = coerce_field_type(field_type)
    if coerced is not None and is_layout_type(coerced):
        return []
    return list(_OPERATORS_BY_TYPE.get(coerced, _DEFAULT_OPERATORS))


def get_operator_label(operator: Any) -> str:
    """Human-readable label for the condition builder; raw string if unknown."""
    coerced = coerce_operator(operator)
    if coerced is None:
        return str(operator)
    return _OPERATOR_LABELS[coerced]


def operator_requires_value(operator: Any) -> bool:
    """False for unary operators (emptiness and checkbox tests)."""
    coerced = coerce_operator(operator)
    return coerced is not None and coerced not in _NO_VALUE_OPERATORS
