# accounting/conditions.py

"""
PATH: accounting/conditions.py

RULE CONDITIONS (FRAMEWORK-AGNOSTIC)

A posting rule's conditions are a flat predicate set over event fields; every
predicate must hold for the rule to match. Stored JSON forms:

    {"tds_applicable": true}                 -> Equals
    {"status": ["approved", "paid"]}         -> OneOf
    {"total_amount": {"gte": 50000}}         -> Compare
    {"total_amount": {"gt": 0, "lt": 100}}   -> two Compare predicates
    {"total_igst": {"exists": true}}         -> Exists
    {} / null                                -> matches every event

Matching:
- a field absent from the event never matches (except exists: false)
- booleans compare as booleans ("true"/"false" strings and 0/1 accepted)
- numbers compare as Decimal
- strings compare case-insensitively, ignoring surrounding whitespace
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, FrozenSet, Mapping, Optional, Tuple, Union

from accounting.event_schema import RuleDefinitionError

COMPARISON_OPS = ("ne", "gt", "gte", "lt", "lte")
OPERATORS = ("eq", "in", "exists") + COMPARISON_OPS

_TRUE_STRINGS = {"true", "1", "yes", "y"}
_FALSE_STRINGS = {"false", "0", "no", "n"}


class ConditionEvaluationError(ValueError):
    """An event value cannot be compared the way a condition requires."""


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any


@dataclass(frozen=True)
class OneOf:
    field: str
    values: Tuple[Any, ...]


@dataclass(frozen=True)
class Compare:
    field: str
    op: str
    value: Any


@dataclass(frozen=True)
class Exists:
    field: str
    expected: bool = True


Condition = Union[Equals, OneOf, Compare, Exists]


# -------------------------
# Parsing
# -------------------------
def _is_scalar(value) -> bool:
    return isinstance(value, (str, bool, int, float, Decimal))


def _is_number(value) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _parse_operator(field: str, op: str, value) -> Condition:
    op = (op or "").strip().lower()
    if op not in OPERATORS:
        raise RuleDefinitionError(f"Condition on {field!r}: unknown operator {op!r}")

    if op == "eq":
        if not _is_scalar(value):
            raise RuleDefinitionError(f"Condition on {field!r}: eq needs a scalar value")
        return Equals(field, value)

    if op == "in":
        if not isinstance(value, (list, tuple)) or not value or not all(_is_scalar(v) for v in value):
            raise RuleDefinitionError(f"Condition on {field!r}: in needs a non-empty list of scalars")
        return OneOf(field, tuple(value))

    if op == "exists":
        if not isinstance(value, bool):
            raise RuleDefinitionError(f"Condition on {field!r}: exists needs true/false")
        return Exists(field, value)

    if op == "ne":
        if not _is_scalar(value):
            raise RuleDefinitionError(f"Condition on {field!r}: ne needs a scalar value")
        return Compare(field, op, value)

    if not _is_number(value):
        raise RuleDefinitionError(f"Condition on {field!r}: {op} needs a numeric value")
    return Compare(field, op, value)


def parse_conditions(raw: Optional[Mapping[str, Any]]) -> Tuple[Condition, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, Mapping):
        raise RuleDefinitionError("Conditions must be an object of field -> predicate")

    parsed = []
    for field, value in raw.items():
        field = str(field or "").strip()
        if not field:
            raise RuleDefinitionError("Condition field names cannot be blank")

        if isinstance(value, Mapping):
            if not value:
                raise RuleDefinitionError(f"Condition on {field!r}: empty operator object")
            for op, operand in value.items():
                parsed.append(_parse_operator(field, op, operand))
        elif isinstance(value, (list, tuple)):
            parsed.append(_parse_operator(field, "in", list(value)))
        elif _is_scalar(value):
            parsed.append(Equals(field, value))
        else:
            raise RuleDefinitionError(f"Condition on {field!r}: unsupported value {value!r}")

    return tuple(parsed)


def condition_fields(conditions: Tuple[Condition, ...]) -> FrozenSet[str]:
    return frozenset(c.field for c in conditions)


# -------------------------
# Evaluation
# -------------------------
def _as_bool(value) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if _is_number(value) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    return None


def _as_decimal(value) -> Optional[Decimal]:
    if isinstance(value, bool):
        return None
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None


def _matches_value(expected, actual) -> bool:
    if isinstance(expected, bool):
        return _as_bool(actual) is expected

    if _is_number(expected):
        number = _as_decimal(actual)
        return number is not None and number == Decimal(str(expected))

    return str(actual).strip().casefold() == str(expected).strip().casefold()


def _is_present(fields: Mapping[str, Any], name: str) -> bool:
    if name not in fields:
        return False
    value = fields[name]
    return value is not None and not (isinstance(value, str) and not value.strip())


def evaluate_condition(condition: Condition, fields: Mapping[str, Any]) -> bool:
    if isinstance(condition, Exists):
        return _is_present(fields, condition.field) is condition.expected

    if condition.field not in fields or fields[condition.field] is None:
        return False
    actual = fields[condition.field]

    if isinstance(condition, Equals):
        return _matches_value(condition.value, actual)

    if isinstance(condition, OneOf):
        return any(_matches_value(v, actual) for v in condition.values)

    if condition.op == "ne":
        return not _matches_value(condition.value, actual)

    number = _as_decimal(actual)
    if number is None:
        raise ConditionEvaluationError(
            f"Field {condition.field!r} must be numeric for {condition.op}, got {actual!r}"
        )
    bound = Decimal(str(condition.value))
    if condition.op == "gt":
        return number > bound
    if condition.op == "gte":
        return number >= bound
    if condition.op == "lt":
        return number < bound
    return number <= bound


def evaluate(conditions: Tuple[Condition, ...], fields: Mapping[str, Any]) -> bool:
    """True when every predicate holds. No predicates -> True (fallback rule)."""
    return all(evaluate_condition(c, fields) for c in conditions)
