"""
Document contracts for the form builder.

This module defines the immutable entities that make up a form document.
These are NOT validators - they define shape only. Invariant-preserving
construction lives in core/document_model.py; transitions live in
core/form_reducer.py.

Design principles:
- Frozen dataclasses (immutable after creation)
- Ordered collections are tuples, never lists
- No dependencies on other modules except the registry enums
- Field shapes are a tagged union: a shared envelope (FieldConfig) plus
  one subclass per structural variant. Layout elements have no
  required/validation attributes at all.

Contents:
- FieldOption, ValidationRules: field payload parts
- FieldConfig, InputField, ChoiceField, CalculatorField, LayoutElement
- FieldCondition, ConditionGroup: conditional visibility rule tree
- FormPage, FormStyling, FormSettings, FormDefinition

Usage:
    from form_builder.contracts import FormDefinition, InputField
"""

from dataclasses import dataclass, field, fields as dataclass_fields
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from form_builder.utils.field_registry import ConditionOperator, FieldType


class FormMode(str, Enum):
    """
    SINGLE_PAGE: all fields on one page
    MULTI_STEP:  wizard, one page per step
    """
    SINGLE_PAGE = "single_page"
    MULTI_STEP = "multi_step"


class Combinator(str, Enum):
    AND = "and"
    OR = "or"


class FormStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# =============================================================================
# Field payload parts
# =============================================================================

@dataclass(frozen=True)
class FieldOption:
    id: str
    label: str
    value: str


@dataclass(frozen=True)
class ValidationRules:
    """Input constraints. Enforcement belongs to the renderer."""
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    custom_message: Optional[str] = None


# =============================================================================
# Conditional visibility
# =============================================================================

@dataclass(frozen=True)
class FieldCondition:
    """
    Leaf rule: compare another field's current answer against a value.

    Attributes:
        id: Condition identifier (editor bookkeeping)
        target_field_id: Field whose answer is inspected
        operator: Comparison to apply
        value: Comparison operand; unused by unary operators
    """
    id: str
    target_field_id: str
    operator: ConditionOperator = ConditionOperator.EQUALS
    value: Any = None


@dataclass(frozen=True)
class ConditionGroup:
    """
    Boolean node: AND/OR over an ordered tuple of children.

    Each child is either a nested ConditionGroup or a FieldCondition leaf.
    """
    id: str
    combinator: Combinator = Combinator.AND
    children: Tuple[Union["ConditionGroup", FieldCondition], ...] = ()


# =============================================================================
# Fields (tagged union)
# =============================================================================

@dataclass(frozen=True)
class FieldConfig:
    """
    Shared envelope for every field and layout element.

    Never instantiated directly; use a variant below.

    Attributes:
        id: Field identifier (key in FormDefinition.fields)
        type: Field type tag
        name: Machine name - unique per document, key in the answer map
        label: Display label
        width: 'full' | 'half' | 'third'
        conditional_visibility: Rule tree deciding whether the field shows
        style: Per-field style overrides (CSS property -> value)

    `style` is a plain dict inside a frozen dataclass and is treated as
    read-only: UpdateField builds a new dict rather than mutating it.
    """
    id: str
    type: FieldType
    name: str
    label: str = ""
    width: str = "full"
    conditional_visibility: Optional[ConditionGroup] = None
    style: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class InputField(FieldConfig):
    required: bool = False
    placeholder: Optional[str] = None
    helper_text: Optional[str] = None
    default_value: Any = None
    validation: Optional[ValidationRules] = None


@dataclass(frozen=True)
class ChoiceField(InputField):
    options: Tuple[FieldOption, ...] = ()


@dataclass(frozen=True)
class CalculatorField(InputField):
    height_unit: str = "inches"
    weight_unit: str = "lbs"


@dataclass(frozen=True)
class LayoutElement(FieldConfig):
    """Display-only element (divider, static text, buttons, page break)."""
    content: Optional[str] = None


AnyField = Union[InputField, ChoiceField, CalculatorField, LayoutElement]


def field_attribute_names(field_config: FieldConfig) -> Tuple[str, ...]:
    """Attribute names defined by this field's variant."""
    return tuple(f.name for f in dataclass_fields(field_config))


# =============================================================================
# Document
# =============================================================================

@dataclass(frozen=True)
class FormPage:
    """
    One page of the form.

    field_ids defines display order. No duplicates within a page.
    """
    id: str
    title: str
    description: str = ""
    field_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FormStyling:
    primary_color: str = "#53CA97"
    background_color: str = "transparent"
    text_color: str = "#1B2222"
    field_radius: str = "lg"
    label_position: str = "top"
    field_spacing: str = "normal"
    use_glass_effect: bool = True
    show_progress_bar: bool = True
    progress_bar_style: str = "steps"


@dataclass(frozen=True)
class FormSettings:
    submit_action: str = "message"
    submit_redirect_url: Optional[str] = None
    submit_message: Optional[str] = "Thank you for your submission!"
    webhook_url: Optional[str] = None
    enable_recaptcha: bool = False
    collect_analytics: bool = True


@dataclass(frozen=True)
class FormDefinition:
    """
    The complete editable document for one form.

    Invariants (enforced by the reducer, checked by
    document_model.find_integrity_errors):
    - every id in any page's field_ids exists in fields
    - every field belongs to exactly one page
    - field names are unique
    - at least one page

    `fields` is a plain dict for lookup speed; it is never mutated after
    construction - transitions build a new dict. The same holds for each
    field's `style` dict. Frozen dataclasses cannot enforce this for
    nested dicts; history snapshots are deep copies, so an outside
    mutation never reaches undo/redo.
    """
    id: str
    name: str
    description: str = ""
    mode: FormMode = FormMode.SINGLE_PAGE
    pages: Tuple[FormPage, ...] = ()
    fields: Dict[str, FieldConfig] = field(default_factory=dict)
    styling: FormStyling = field(default_factory=FormStyling)
    settings: FormSettings = field(default_factory=FormSettings)
    status: FormStatus = FormStatus.DRAFT
    created_at: str = ""
    updated_at: str = ""
    published_at: Optional[str] = None

    def ordered_fields(self):
        """Fields in display order across all pages."""
        return [
            self.fields[field_id]
            for page in self.pages
            for field_id in page.field_ids
            if field_id in self.fields
        ]

    def field_names(self):
        return [f.name for f in self.fields.values()]

    def find_page_index(self, field_id: str) -> int:
        """Index of the page holding field_id, or -1."""
        for index, page in enumerate(self.pages):
            if field_id in page.field_ids:
                return index
        return -1
