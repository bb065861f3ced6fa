"""
Document Model - invariant-preserving construction of form documents

Responsibilities:
- Generate unique machine names
- Build fields with type-correct defaults (registry driven)
- Build pages and the default document
- Check document integrity (dangling references, orphans, name clashes)
- Repair externally supplied documents into valid ones

Design principles:
- Constructors never raise: bad input is coerced to a valid default
- Pure functions, no side effects beyond logging
- The registry owns default shapes; this module only assembles them

Invariants checked/restored:
- every page field id exists in the fields map
- every field belongs to exactly one page, once
- field names are unique
- at least one page exists
- no condition leaf targets the field that owns it
"""

import logging
from dataclasses import replace
from typing import Any, Iterable, List, Optional

from form_builder.contracts import (
    CalculatorField,
    ChoiceField,
    ConditionGroup,
    FieldConfig,
    FieldOption,
    FormDefinition,
    FormMode,
    FormPage,
    FormSettings,
    FormStatus,
    FormStyling,
    InputField,
    LayoutElement,
    ValidationRules,
)
from form_builder.core.condition_evaluator import (
    get_condition_group_depth,
    references_field,
    strip_self_references,
)
from form_builder.utils.field_registry import (
    FieldKind,
    FieldType,
    coerce_field_type,
    get_field_metadata,
)
from form_builder.utils.helpers import generate_id, utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_FORM_NAME = "Untitled Form"
DEFAULT_PAGE_ID = "page-1"

_VARIANT_CLASSES = {
    FieldKind.INPUT: InputField,
    FieldKind.CHOICE: ChoiceField,
    FieldKind.CALCULATOR: CalculatorField,
    FieldKind.LAYOUT: LayoutElement,
}


# ========================
# Names
# ========================

def generate_unique_name(base_name: str, existing_names: Iterable[str], suffix: Optional[str] = None) -> str:
    """
    Return a machine name not present in existing_names.

    Without suffix: base, base_1, base_2, ...
    With suffix='copy': base_copy, base_copy_1, base_copy_2, ...

    Args:
        base_name: Preferred name
        existing_names: Names already taken in the document
        suffix: Optional tag appended before numbering

    Returns:
        str: Unused name

    Example:
        generate_unique_name('email', ['email', 'email_copy'], suffix='copy')
        # 'email_copy_1'
    """
    taken = set(existing_names)
    stem = f"{base_name}_{suffix}" if suffix else base_name
    name = stem
    counter = 1
    while name in taken:
        name = f"{stem}_{counter}"
        counter += 1
    return name


# ========================
# Factories
# ========================

def field_class_for_type(field_type: FieldType):
    """Variant dataclass a field type is built as."""
    return _VARIANT_CLASSES[get_field_metadata(field_type).kind]


def create_field(field_type: Any, existing_names: Iterable[str], field_id: Optional[str] = None) -> FieldConfig:
    """
    Build a new field with registry defaults and a unique machine name.

    Unknown types are coerced to short_text.

    Args:
        field_type: FieldType or type string
        existing_names: Names already used in the document
        field_id: Explicit id (generated if omitted)

    Returns:
        FieldConfig: Variant matching the type's kind
    """
    coerced = coerce_field_type(field_type)
    if coerced is None:
        logger.warning(f"Unknown field type {field_type!r}, using short_text")
        coerced = FieldType.SHORT_TEXT

    meta = get_field_metadata(coerced)
    defaults = meta.defaults
    envelope = dict(
        id=field_id or generate_id("field"),
        type=coerced,
        name=generate_unique_name(meta.default_name, existing_names),
        label=meta.default_label,
        width=defaults.get("width", "full"),
    )

    if meta.kind == FieldKind.LAYOUT:
        return LayoutElement(content=defaults.get("content"), **envelope)

    answerable = dict(
        required=defaults.get("required", False),
        placeholder=defaults.get("placeholder"),
        helper_text=defaults.get("helper_text"),
        validation=ValidationRules(**defaults["validation"]) if defaults.get("validation") else None,
    )

    if meta.kind == FieldKind.CHOICE:
        options = tuple(
            FieldOption(id=opt_id, label=label, value=value)
            for opt_id, label, value in defaults.get("options", ())
        )
        return ChoiceField(options=options, **envelope, **answerable)

    if meta.kind == FieldKind.CALCULATOR:
        return CalculatorField(
            height_unit=defaults.get("height_unit", "inches"),
            weight_unit=defaults.get("weight_unit", "lbs"),
            **envelope,
            **answerable,
        )

    return InputField(**envelope, **answerable)


def create_page(title: str, page_id: Optional[str] = None, description: str = "") -> FormPage:
    return FormPage(id=page_id or generate_id("page"), title=title, description=description)


def create_default_form(form_id: Optional[str] = None) -> FormDefinition:
    """
    Build an empty document: one page, no fields, default styling/settings.

    Returns:
        FormDefinition: Draft document
    """
    now = utc_now_iso()
    return FormDefinition(
        id=form_id or generate_id("form"),
        name=DEFAULT_FORM_NAME,
        description="",
        mode=FormMode.SINGLE_PAGE,
        pages=(create_page("Page 1", page_id=DEFAULT_PAGE_ID),),
        fields={},
        styling=FormStyling(),
        settings=FormSettings(),
        status=FormStatus.DRAFT,
        created_at=now,
        updated_at=now,
    )


# ========================
# Integrity
# ========================

def find_integrity_errors(form: FormDefinition) -> List[str]:
    """
    Check a document against the structural invariants.

    Args:
        form: Document to check

    Returns:
        list[str]: Human-readable violations (empty if valid)
    """
    errors = []

    if not form.pages:
        errors.append("Form has no pages")

    owner_by_field = {}
    for page_index, page in enumerate(form.pages):
        seen_on_page = set()
        for field_id in page.field_ids:
            if field_id in seen_on_page:
                errors.append(f"Page {page_index} lists field '{field_id}' more than once")
                continue
            seen_on_page.add(field_id)

            if field_id not in form.fields:
                errors.append(f"Page {page_index} references missing field '{field_id}'")

            if field_id in owner_by_field:
                errors.append(
                    f"Field '{field_id}' appears on pages {owner_by_field[field_id]} and {page_index}"
                )
            else:
                owner_by_field[field_id] = page_index

    for field_id, field_config in form.fields.items():
        if field_id not in owner_by_field:
            errors.append(f"Field '{field_id}' is not on any page")
        if field_config.id != field_id:
            errors.append(f"Field key '{field_id}' does not match field id '{field_config.id}'")
        group = field_config.conditional_visibility
        if group is not None and references_field(group, field_id):
            errors.append(f"Field '{field_id}' has a condition referencing itself")

    seen_names = {}
    for field_id, field_config in form.fields.items():
        if field_config.name in seen_names:
            errors.append(
                f"Duplicate field name '{field_config.name}' "
                f"('{seen_names[field_config.name]}' and '{field_id}')"
            )
        else:
            seen_names[field_config.name] = field_id

    return errors


def normalize_form(form: FormDefinition) -> FormDefinition:
    """
    Coerce a document into one satisfying every structural invariant.

    Repairs (each logged at WARNING):
    - no pages -> one default page
    - dangling or repeated page references -> dropped (first page wins)
    - orphan fields -> appended to the last page
    - duplicate names -> renamed with numeric suffix
    - self-referencing condition leaves -> stripped

    Returns:
        FormDefinition: The same object if already valid, else a repaired copy
    """
    if not find_integrity_errors(form):
        return form

    fields = {}
    taken_names = set()
    for field_id, field_config in form.fields.items():
        if field_config.id != field_id:
            field_config = replace(field_config, id=field_id)
        if field_config.name in taken_names or not field_config.name:
            base = field_config.name or get_field_metadata(field_config.type).default_name
            new_name = generate_unique_name(base, taken_names)
            logger.warning(f"Renamed duplicate field name '{field_config.name}' to '{new_name}'")
            field_config = replace(field_config, name=new_name)
        group = field_config.conditional_visibility
        if group is not None and references_field(group, field_id):
            logger.warning(f"Stripped self-referencing conditions from field '{field_id}'")
            field_config = replace(field_config, conditional_visibility=strip_self_references(group, field_id))
        taken_names.add(field_config.name)
        fields[field_id] = field_config

    pages = list(form.pages) or [create_page("Page 1", page_id=DEFAULT_PAGE_ID)]
    placed = set()
    repaired_pages = []
    for page in pages:
        kept = []
        for field_id in page.field_ids:
            if field_id not in fields or field_id in placed:
                logger.warning(f"Dropped invalid reference '{field_id}' from page '{page.id}'")
                continue
            placed.add(field_id)
            kept.append(field_id)
        repaired_pages.append(replace(page, field_ids=tuple(kept)))

    orphans = [field_id for field_id in fields if field_id not in placed]
    if orphans:
        logger.warning(f"Attached {len(orphans)} orphan field(s) to the last page")
        last = repaired_pages[-1]
        repaired_pages[-1] = replace(last, field_ids=last.field_ids + tuple(orphans))

    return replace(form, pages=tuple(repaired_pages), fields=fields)


def has_too_deep_group(group: Optional[ConditionGroup], max_depth: int) -> bool:
    """True if the tree nests deeper than max_depth."""
    return group is not None and get_condition_group_depth(group) > max_depth
