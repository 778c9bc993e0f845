"""
Rule matching for the Flags Service.

A rule compares one context attribute with a literal. Every failure path
(missing attribute, wrong value type, unknown operator) is a non-match;
nothing in this module raises for bad rule or context data.
"""

import math
from typing import Any, Callable, Dict, Mapping, Optional

from .models import Rule, RuleOperator, EvaluationContext


def canonical_string(value: Any) -> str:
    """Render a value in the loose canonical form used by equality operators.

    Numbers, booleans and strings that print the same compare equal, so
    ``5``, ``5.0`` and ``"5"`` all render as ``"5"``.
    """
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(canonical_string(v) for v in value) + "]"
    return str(value)


def to_number(value: Any) -> Optional[float]:
    """Coerce an int or float to float; anything else yields None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return None
    return None


def _equals(attr_value: Any, rule_value: Any) -> bool:
    return canonical_string(attr_value) == canonical_string(rule_value)


def _not_equals(attr_value: Any, rule_value: Any) -> bool:
    return not _equals(attr_value, rule_value)


def _in(attr_value: Any, rule_value: Any) -> bool:
    if not isinstance(rule_value, (list, tuple)):
        return False
    attr_str = canonical_string(attr_value)
    return any(canonical_string(v) == attr_str for v in rule_value)


def _not_in(attr_value: Any, rule_value: Any) -> bool:
    return not _in(attr_value, rule_value)


def _greater_than(attr_value: Any, rule_value: Any) -> bool:
    attr_num = to_number(attr_value)
    rule_num = to_number(rule_value)
    if attr_num is None or rule_num is None:
        return False
    return attr_num > rule_num


def _less_than(attr_value: Any, rule_value: Any) -> bool:
    attr_num = to_number(attr_value)
    rule_num = to_number(rule_value)
    if attr_num is None or rule_num is None:
        return False
    return attr_num < rule_num


OPERATORS: Dict[RuleOperator, Callable[[Any, Any], bool]] = {
    RuleOperator.EQUALS: _equals,
    RuleOperator.NOT_EQUALS: _not_equals,
    RuleOperator.IN: _in,
    RuleOperator.NOT_IN: _not_in,
    RuleOperator.GREATER_THAN: _greater_than,
    RuleOperator.LESS_THAN: _less_than,
}


def matches(rule: Rule, context: EvaluationContext) -> bool:
    """Return True when ``rule`` holds for ``context``."""
    attributes = context.attributes or {}
    if not isinstance(attributes, Mapping) or rule.attribute not in attributes:
        return False

    operator = RuleOperator.resolve(rule.operator)
    if operator is None:
        return False

    return OPERATORS[operator](attributes[rule.attribute], rule.value)
