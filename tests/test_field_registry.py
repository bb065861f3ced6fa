"""
Test Field Registry - field palette metadata and operator sets

Run with: python3 tests/test_field_registry.py
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from form_builder.utils.field_registry import (
    FIELD_REGISTRY,
    VALID_FIELD_TYPES,
    ConditionOperator,
    FieldCategory,
    FieldKind,
    FieldType,
    coerce_field_type,
    get_field_metadata,
    get_fields_by_category,
    get_operator_label,
    get_operators_for_field_type,
    is_layout_type,
    operator_requires_value,
)


def test_every_type_registered():
    """Every FieldType has exactly one registry entry keyed by itself"""
    assert set(FIELD_REGISTRY) == set(FieldType), "Registry and FieldType diverged"
    for field_type, meta in FIELD_REGISTRY.items():
        assert meta.type == field_type, f"Entry for {field_type} describes {meta.type}"
        assert meta.default_name, f"{field_type} has no default machine name"

    print("✓ Registry completeness test passed")


def test_coerce_field_type():
    """Type strings coerce to FieldType, unknown strings to None"""
    assert coerce_field_type("email") == FieldType.EMAIL
    assert coerce_field_type(FieldType.DIVIDER) == FieldType.DIVIDER
    assert coerce_field_type("signature") is None
    assert coerce_field_type(None) is None
    assert "short_text" in VALID_FIELD_TYPES

    print("✓ Field type coercion test passed")


def test_categories():
    """Palette categories partition the registry"""
    predefined = get_fields_by_category(FieldCategory.PREDEFINED)
    standard = get_fields_by_category(FieldCategory.STANDARD)
    layout = get_fields_by_category(FieldCategory.LAYOUT)

    assert len(predefined) + len(standard) + len(layout) == len(FIELD_REGISTRY)
    assert FieldType.EMAIL in [m.type for m in predefined]
    assert all(m.kind == FieldKind.LAYOUT for m in layout), "Layout category must only hold layout kinds"

    print("✓ Category test passed")


def test_default_shapes():
    """Registry defaults describe the new-field shape"""
    email = get_field_metadata("email")
    assert email.default_label == "Email Address"
    assert email.defaults["required"] is True
    assert "pattern" in email.defaults["validation"]

    zip_code = get_field_metadata(FieldType.ZIP_CODE)
    assert zip_code.defaults["validation"]["max_length"] == 5
    assert zip_code.defaults["width"] == "half"

    single = get_field_metadata(FieldType.SINGLE_CHOICE)
    assert single.kind == FieldKind.CHOICE
    assert len(single.defaults["options"]) == 3

    assert get_field_metadata("nope") is None

    print("✓ Default shape test passed")


def test_is_layout_type():
    assert is_layout_type("divider")
    assert is_layout_type(FieldType.SUBMIT_BUTTON)
    assert not is_layout_type("email")
    assert not is_layout_type("unknown")

    print("✓ Layout type test passed")


def test_operators_per_type():
    """Legal operator sets follow the target field type"""
    text_ops = get_operators_for_field_type("short_text")
    assert ConditionOperator.CONTAINS in text_ops
    assert ConditionOperator.GREATER_THAN not in text_ops

    number_ops = get_operators_for_field_type(FieldType.NUMBER_ENTRY)
    assert ConditionOperator.GREATER_THAN in number_ops
    assert ConditionOperator.LESS_THAN_OR_EQUALS in number_ops

    multi_ops = get_operators_for_field_type("multiple_choice")
    assert ConditionOperator.INCLUDES_ANY in multi_ops
    assert ConditionOperator.INCLUDES_ALL in multi_ops

    checkbox_ops = get_operators_for_field_type("accept_terms")
    assert checkbox_ops == [ConditionOperator.IS_CHECKED, ConditionOperator.IS_NOT_CHECKED], \
        f"Checkbox operators wrong: {checkbox_ops}"

    assert get_operators_for_field_type("divider") == [], "Layout elements have no answer to test"

    fallback = get_operators_for_field_type("something_else")
    assert ConditionOperator.EQUALS in fallback
    assert ConditionOperator.IS_EMPTY in fallback

    print("✓ Operator set test passed")


def test_operator_list_is_fresh():
    """Callers may modify the returned list without touching the registry"""
    ops = get_operators_for_field_type("short_text")
    ops.clear()
    assert get_operators_for_field_type("short_text"), "Registry list was mutated"

    print("✓ Fresh operator list test passed")


def test_operator_labels():
    assert get_operator_label(ConditionOperator.NOT_EQUALS) == "does not equal"
    assert get_operator_label("greater_than") == "is greater than"
    assert get_operator_label("bogus") == "bogus"

    assert operator_requires_value("equals")
    assert not operator_requires_value(ConditionOperator.IS_EMPTY)
    assert not operator_requires_value("is_checked")
    assert not operator_requires_value("bogus")

    print("✓ Operator label test passed")


if __name__ == '__main__':
    print("\n" + "="*60)
    print("TESTING FIELD REGISTRY")
    print("="*60 + "\n")

    test_every_type_registered()
    test_coerce_field_type()
    test_categories()
    test_default_shapes()
    test_is_layout_type()
    test_operators_per_type()
    test_operator_list_is_fresh()
    test_operator_labels()

    print("\n" + "="*60)
    print("ALL FIELD REGISTRY TESTS PASSED ✓")
    print("="*60 + "\n")
