"""Conditional Logic Service - field visibility from other fields' values"""

import math
from typing import Any, Iterable, Mapping

from core.logging_config import get_logger

logger = get_logger(__name__)

OPERATOR_ALIASES = {
    "equals": "==",
    "not_equals": "!=",
    "greater_than": ">",
    "less_than": "<",
    "greater_than_or_equal": ">=",
    "less_than_or_equal": "<=",
    "is_empty": "empty",
    "is_not_empty": "not_empty",
}


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else ""
    return str(value)


def _as_number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return math.nan
    return number


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value) == 0
    return value is False


def compare_values(current: Any, operator: str, expected: Any) -> bool:
    """Compare a live value against a rule value; unknown operators never match"""
    operator = OPERATOR_ALIASES.get(operator, operator)

    if operator == "==":
        return _as_text(current) == _as_text(expected)
    if operator == "!=":
        return _as_text(current) != _as_text(expected)
    if operator in ("contains", "not_contains"):
        if isinstance(current, (list, tuple, set)):
            found = _as_text(expected) in {_as_text(item) for item in current}
        else:
            found = _as_text(expected) in _as_text(current)
        return found if operator == "contains" else not found
    if operator in (">", "<", ">=", "<="):
        left, right = _as_number(current), _as_number(expected)
        # NaN compares false in every direction
        if operator == ">":
            return left > right
        if operator == "<":
            return left < right
        if operator == ">=":
            return left >= right
        return left <= right
    if operator == "empty":
        return _is_empty(current)
    if operator == "not_empty":
        return not _is_empty(current)

    logger.debug(f"Unknown conditional logic operator: {operator}")
    return False


def normalize_groups(conditional_logic: Any) -> list[list[Mapping[str, Any]]]:
    """
    Coerce stored logic into a list of AND groups.

    A flat list of rules is one group; groups may also be {"rules": [...]}.
    """
    if not conditional_logic:
        return []

    if isinstance(conditional_logic, Mapping):
        conditional_logic = [conditional_logic]

    if all(isinstance(item, Mapping) and "field" in item for item in conditional_logic):
        return [list(conditional_logic)]

    groups = []
    for item in conditional_logic:
        if isinstance(item, Mapping):
            groups.append(list(item.get("rules") or []))
        elif isinstance(item, (list, tuple)):
            groups.append(list(item))
    return groups


def rule_matches(rule: Mapping[str, Any], values: Mapping[str, Any]) -> bool:
    field_name = rule.get("field")
    if not field_name or field_name not in values:
        return False
    return compare_values(values[field_name], rule.get("operator", "=="), rule.get("value"))


def is_visible(conditional_logic: Any, values: Mapping[str, Any]) -> bool:
    """OR across groups, AND within a group; no logic means always visible"""
    groups = normalize_groups(conditional_logic)
    if not groups:
        return True
    return any(
        all(rule_matches(rule, values) for rule in group if isinstance(rule, Mapping))
        for group in groups
    )


def evaluate_visibility(fields: Iterable[Any], values: Mapping[str, Any]) -> dict[str, bool]:
    """Visibility for every field, keyed by field name"""
    result = {}
    for field in fields:
        logic = getattr(field, "conditional_logic", None)
        if logic is None and hasattr(field, "settings"):
            logic = (field.settings or {}).get("conditional_logic")
        result[field.name] = is_visible(logic, values)
    return result
