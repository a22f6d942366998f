# accounting/posting_templates.py

"""
PATH: accounting/posting_templates.py

POSTING TEMPLATES (FRAMEWORK-AGNOSTIC)

A posting rule's template is an ordered list of line specs. Stored JSON:

    {
      "description_template": "Sales Invoice {source_number}",
      "lines": [
        {"account_code": "1120", "side": "debit", "amount_field": "total_amount",
         "subledger_type": "customer", "subledger_id_field": "customer_id",
         "description": "Trade receivable - {customer_name}"},
        {"account_code": "4110", "side": "credit", "amount_field": "subtotal"},
        {"account_code": "2251", "credit_field": "total_cgst", "skip_if_zero": true},
        {"account_code_field": "bank_account_code", "account_code_fallback": "1112",
         "side": "debit", "amount_field": "net_amount"}
      ]
    }

Account reference: either a literal `account_code`, or `account_code_field`
(read from the event) with an optional `account_code_fallback`. Side and amount
come from `side` + `amount_field`, or from the `debit_field` / `credit_field`
shorthand. Descriptions interpolate {field} placeholders.

Parsed templates are immutable dataclasses; rendering lives in
accounting.services.template_renderer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, FrozenSet, Mapping, Optional, Tuple, Union

from accounting.event_schema import RuleDefinitionError
from accounting.subledger import SUBLEDGER_KINDS

DEBIT = "debit"
CREDIT = "credit"
SIDES = (DEBIT, CREDIT)

PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass(frozen=True)
class LiteralAccount:
    code: str


@dataclass(frozen=True)
class FieldAccount:
    field: str
    fallback: Optional[str] = None


AccountRef = Union[LiteralAccount, FieldAccount]


@dataclass(frozen=True)
class SubledgerSpec:
    kind: str
    id_field: str


@dataclass(frozen=True)
class LineTemplate:
    account: AccountRef
    side: str
    amount_field: str
    description: str = ""
    skip_if_zero: bool = False
    subledger: Optional[SubledgerSpec] = None


@dataclass(frozen=True)
class PostingTemplate:
    description_template: str
    lines: Tuple[LineTemplate, ...]


def placeholders(text: str) -> Tuple[str, ...]:
    return tuple(PLACEHOLDER_RE.findall(text or ""))


def _clean_name(value, label: str, index: int) -> str:
    name = str(value or "").strip()
    if not name:
        raise RuleDefinitionError(f"Template line {index}: {label} cannot be blank")
    return name


def _parse_account(raw: Mapping[str, Any], index: int) -> AccountRef:
    code = raw.get("account_code")
    field = raw.get("account_code_field")

    if code and field:
        raise RuleDefinitionError(
            f"Template line {index}: use account_code_fallback with account_code_field, not account_code"
        )
    if code:
        return LiteralAccount(_clean_name(code, "account_code", index))
    if field:
        fallback = raw.get("account_code_fallback")
        fallback = str(fallback).strip() if fallback not in (None, "") else None
        return FieldAccount(_clean_name(field, "account_code_field", index), fallback or None)

    raise RuleDefinitionError(f"Template line {index}: account_code or account_code_field is required")


def _parse_side(raw: Mapping[str, Any], index: int) -> Tuple[str, str]:
    side = raw.get("side")
    amount_field = raw.get("amount_field")
    debit_field = raw.get("debit_field")
    credit_field = raw.get("credit_field")

    given = [x for x in (side or amount_field, debit_field, credit_field) if x]
    if len(given) != 1:
        raise RuleDefinitionError(
            f"Template line {index}: give exactly one of side+amount_field, debit_field, credit_field"
        )

    if debit_field:
        return DEBIT, _clean_name(debit_field, "debit_field", index)
    if credit_field:
        return CREDIT, _clean_name(credit_field, "credit_field", index)

    side = str(side or "").strip().lower()
    if side not in SIDES:
        raise RuleDefinitionError(f"Template line {index}: side must be 'debit' or 'credit'")
    return side, _clean_name(amount_field, "amount_field", index)


def _parse_subledger(raw: Mapping[str, Any], index: int) -> Optional[SubledgerSpec]:
    kind = str(raw.get("subledger_type") or "").strip().lower()
    id_field = str(raw.get("subledger_id_field") or "").strip()

    if not kind and not id_field:
        return None
    if not kind or not id_field:
        raise RuleDefinitionError(
            f"Template line {index}: subledger_type and subledger_id_field must be set together"
        )
    if kind not in SUBLEDGER_KINDS:
        raise RuleDefinitionError(f"Template line {index}: unknown subledger_type {kind!r}")
    return SubledgerSpec(kind, id_field)


def parse_line(raw: Mapping[str, Any], index: int) -> LineTemplate:
    if not isinstance(raw, Mapping):
        raise RuleDefinitionError(f"Template line {index} must be an object")

    side, amount_field = _parse_side(raw, index)
    skip = raw.get("skip_if_zero", False)
    if not isinstance(skip, bool):
        raise RuleDefinitionError(f"Template line {index}: skip_if_zero must be true/false")

    return LineTemplate(
        account=_parse_account(raw, index),
        side=side,
        amount_field=amount_field,
        description=str(raw.get("description") or "").strip(),
        skip_if_zero=skip,
        subledger=_parse_subledger(raw, index),
    )


def parse_template(raw: Optional[Mapping[str, Any]]) -> PostingTemplate:
    if not isinstance(raw, Mapping):
        raise RuleDefinitionError("Template must be an object with a 'lines' list")

    lines_raw = raw.get("lines")
    if not isinstance(lines_raw, (list, tuple)) or not lines_raw:
        raise RuleDefinitionError("Template must contain at least one line")

    lines = tuple(parse_line(item, i) for i, item in enumerate(lines_raw, start=1))

    sides = {line.side for line in lines}
    if sides != set(SIDES):
        raise RuleDefinitionError("Template needs at least one debit line and one credit line")

    return PostingTemplate(
        description_template=str(raw.get("description_template") or "").strip(),
        lines=lines,
    )


def template_fields(template: PostingTemplate) -> FrozenSet[str]:
    """Every event field the template reads."""
    names = set(placeholders(template.description_template))
    for line in template.lines:
        names.add(line.amount_field)
        names.update(placeholders(line.description))
        if isinstance(line.account, FieldAccount):
            names.add(line.account.field)
        if line.subledger is not None:
            names.add(line.subledger.id_field)
    return frozenset(names)


def template_account_codes(template: PostingTemplate) -> FrozenSet[str]:
    """Literal and fallback codes (field-driven codes are only known per event)."""
    codes = set()
    for line in template.lines:
        if isinstance(line.account, LiteralAccount):
            codes.add(line.account.code)
        elif line.account.fallback:
            codes.add(line.account.fallback)
    return frozenset(codes)
