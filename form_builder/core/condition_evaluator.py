"""
Condition Evaluator - Conditional field visibility

Responsibilities:
- Evaluate nested AND/OR condition trees against current answers
- Decide whether a field should be shown
- Gate condition-builder nesting depth
- Build empty groups/conditions for the editor

Design principles:
- Stateless: all state comes from the group and values parameters
- Deterministic: same input always produces same output
- Total: never raises, always returns a bool (runs on every keystroke)
- Malformed operands resolve to False, never to an exception

Answer lookup:
    values maps field id -> current answer. Fill-time answers keyed by
    machine name can be re-keyed with answers_by_field_id().

Missing-answer policy:
    An unanswered (or deleted) target behaves like an empty answer:
    positive operators (equals, contains, is_checked, comparisons) are False,
    is_empty is True.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from form_builder.contracts import (
    Combinator,
    ConditionGroup,
    FieldCondition,
    FieldConfig,
    FormDefinition,
)
from form_builder.utils.field_registry import ConditionOperator, coerce_operator
from form_builder.utils.helpers import generate_id

logger = logging.getLogger(__name__)

# Editor cap on group nesting (root group counts as depth 1)
MAX_NESTING_DEPTH = 4

# Evaluation recursion bound; far above the editor cap
MAX_EVALUATION_DEPTH = 64

_COLLECTION_TYPES = (list, tuple, set, frozenset)


# =============================================================================
# Public API
# =============================================================================

def evaluate(group: ConditionGroup, values: Mapping[str, Any], depth: int = 0) -> bool:
    """
    Evaluate a condition group against current answers.

    AND short-circuits on the first False child (empty AND is True).
    OR short-circuits on the first True child (empty OR is False).

    Args:
        group: Condition group (root or nested)
        values: Current answers keyed by field id
        depth: Recursion depth of this group (0 for the root)

    Returns:
        bool: Evaluation result
    """
    if depth > MAX_EVALUATION_DEPTH:
        logger.warning(f"Condition group {getattr(group, 'id', '?')} exceeds evaluation depth {MAX_EVALUATION_DEPTH}")
        return False

    children = getattr(group, "children", ()) or ()
    results = (_evaluate_node(child, values, depth + 1) for child in children)

    if getattr(group, "combinator", Combinator.AND) == Combinator.OR:
        return any(results)
    return all(results)


def should_show_field(field: FieldConfig, values: Mapping[str, Any]) -> bool:
    """
    Determine if a field should be visible given current answers.

    Fields without conditional visibility are always shown.
    """
    group = getattr(field, "conditional_visibility", None)
    if group is None:
        return True
    return evaluate(group, values)


def evaluate_condition(condition: FieldCondition, values: Mapping[str, Any]) -> bool:
    """
    Evaluate a single leaf condition.

    Args:
        condition: Leaf rule
        values: Current answers keyed by field id

    Returns:
        bool: Evaluation result (False for unknown operators or
        malformed operands)
    """
    operator = coerce_operator(condition.operator)
    if operator is None:
        logger.warning(f"Unknown condition operator: {condition.operator!r}")
        return False

    try:
        answer = values.get(condition.target_field_id) if values else None
        return _apply_operator(operator, answer, condition.value)
    except (TypeError, ValueError, OverflowError) as e:
        logger.debug(f"Condition {condition.id} resolved False on malformed operand: {e}")
        return False


def visible_field_ids(
    form: FormDefinition,
    values: Mapping[str, Any],
    page_index: Optional[int] = None
) -> List[str]:
    """
    Ids of visible fields in display order.

    Args:
        form: Document to render
        values: Current answers keyed by field id
        page_index: Restrict to one page (None for the whole form)

    Returns:
        list[str]: Visible field ids (empty for an invalid or non-int page index)
    """
    if page_index is None:
        pages = form.pages
    elif isinstance(page_index, int) and not isinstance(page_index, bool) and 0 <= page_index < len(form.pages):
        pages = (form.pages[page_index],)
    else:
        return []

    return [
        field_id
        for page in pages
        for field_id in page.field_ids
        if field_id in form.fields and should_show_field(form.fields[field_id], values)
    ]


def answers_by_field_id(form: FormDefinition, answers_by_name: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Re-key fill-time answers from machine name to field id.

    Names that match no field are dropped.
    """
    id_by_name = {f.name: field_id for field_id, f in form.fields.items()}
    return {
        id_by_name[name]: value
        for name, value in answers_by_name.items()
        if name in id_by_name
    }


# =============================================================================
# Editor helpers
# =============================================================================

def get_condition_group_depth(group: ConditionGroup) -> int:
    """Depth of a group tree; a group with no nested groups has depth 1."""
    nested = [child for child in group.children if isinstance(child, ConditionGroup)]
    if not nested:
        return 1
    return 1 + max(get_condition_group_depth(child) for child in nested)


def can_add_nested_group(group: ConditionGroup, max_depth: int = MAX_NESTING_DEPTH) -> bool:
    """True if one more nesting level still fits under max_depth."""
    return get_condition_group_depth(group) < max_depth


def create_condition_group(combinator: Combinator = Combinator.AND) -> ConditionGroup:
    return ConditionGroup(id=generate_id("group"), combinator=Combinator(combinator))


def create_condition(target_field_id: str = "") -> FieldCondition:
    return FieldCondition(
        id=generate_id("cond"),
        target_field_id=target_field_id,
        operator=ConditionOperator.EQUALS,
        value="",
    )


def references_field(group: ConditionGroup, field_id: str) -> bool:
    """True if any leaf in the tree targets field_id."""
    for child in group.children:
        if isinstance(child, ConditionGroup):
            if references_field(child, field_id):
                return True
        elif child.target_field_id == field_id:
            return True
    return False


def strip_self_references(group: ConditionGroup, owner_field_id: str) -> ConditionGroup:
    """
    Copy of group with every leaf targeting the owning field removed.

    Nested groups are kept even if they end up empty.
    """
    kept = []
    for child in group.children:
        if isinstance(child, ConditionGroup):
            kept.append(strip_self_references(child, owner_field_id))
        elif child.target_field_id != owner_field_id:
            kept.append(child)
    return ConditionGroup(id=group.id, combinator=group.combinator, children=tuple(kept))


# =============================================================================
# Internals
# =============================================================================

def _evaluate_node(node: Union[ConditionGroup, FieldCondition], values: Mapping[str, Any], depth: int) -> bool:
    if isinstance(node, ConditionGroup):
        return evaluate(node, values, depth)
    if isinstance(node, FieldCondition):
        return evaluate_condition(node, values)
    logger.warning(f"Unknown condition node type: {type(node).__name__}")
    return False


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (_COLLECTION_TYPES, dict)):
        return len(value) == 0
    return False


def _strict_equals(left: Any, right: Any) -> bool:
    """Equality without Python's bool/int crossover (True != 1)."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    return left == right


def _as_list(value: Any) -> list:
    if isinstance(value, _COLLECTION_TYPES):
        return list(value)
    return [value]


def _equals(answer: Any, expected: Any) -> bool:
    if answer is None:
        return False
    if isinstance(answer, _COLLECTION_TYPES):
        # Multi-select: answer set must match the expected set exactly
        actual = _as_list(answer)
        wanted = _as_list(expected)
        return (
            all(any(_strict_equals(a, w) for w in wanted) for a in actual)
            and all(any(_strict_equals(a, w) for a in actual) for w in wanted)
        )
    return _strict_equals(answer, expected)


def _contains(answer: Any, needle: Any) -> bool:
    if isinstance(answer, str):
        if not isinstance(needle, str):
            return False
        return needle.lower() in answer.lower()
    if isinstance(answer, _COLLECTION_TYPES):
        return any(_strict_equals(item, needle) for item in answer)
    return False


def _to_number(value: Any) -> Optional[float]:
    """Numeric coercion; None for missing, boolean or non-numeric values."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    number = float(value)
    if number != number:  # NaN
        return None
    return number


def _compare(answer: Any, threshold: Any, op) -> bool:
    left = _to_number(answer)
    right = _to_number(threshold)
    if left is None or right is None:
        return False
    return op(left, right)


def _text_affix(answer: Any, affix: Any, at_start: bool) -> bool:
    if not isinstance(answer, str) or not isinstance(affix, str):
        return False
    if at_start:
        return answer.lower().startswith(affix.lower())
    return answer.lower().endswith(affix.lower())


def _includes(answer: Any, wanted: Any, require_all: bool) -> bool:
    if not isinstance(answer, _COLLECTION_TYPES) or not isinstance(wanted, _COLLECTION_TYPES):
        return False
    hits = (any(_strict_equals(item, w) for item in answer) for w in wanted)
    return all(hits) if require_all else any(hits)


def _apply_operator(operator: ConditionOperator, answer: Any, expected: Any) -> bool:
    O = ConditionOperator

    if operator == O.EQUALS:
        return _equals(answer, expected)
    if operator == O.NOT_EQUALS:
        return not _equals(answer, expected)

    if operator == O.CONTAINS:
        return _contains(answer, expected)
    if operator == O.NOT_CONTAINS:
        return not _contains(answer, expected)

    if operator == O.IS_EMPTY:
        return _is_empty(answer)
    if operator == O.IS_NOT_EMPTY:
        return not _is_empty(answer)

    if operator == O.GREATER_THAN:
        return _compare(answer, expected, lambda a, b: a > b)
    if operator == O.LESS_THAN:
        return _compare(answer, expected, lambda a, b: a < b)
    if operator == O.GREATER_THAN_OR_EQUALS:
        return _compare(answer, expected, lambda a, b: a >= b)
    if operator == O.LESS_THAN_OR_EQUALS:
        return _compare(answer, expected, lambda a, b: a <= b)

    if operator == O.STARTS_WITH:
        return _text_affix(answer, expected, at_start=True)
    if operator == O.ENDS_WITH:
        return _text_affix(answer, expected, at_start=False)

    if operator == O.IS_CHECKED:
        return answer is True
    if operator == O.IS_NOT_CHECKED:
        return answer is not True

    if operator == O.INCLUDES_ANY:
        return _includes(answer, expected, require_all=False)
    if operator == O.INCLUDES_ALL:
        return _includes(answer, expected, require_all=True)

    return False
