# accounting/services/template_renderer.py

"""
======================================================
PATH: accounting/services/template_renderer.py
======================================================
TEMPLATE RENDERER

render(template, event_fields, ...) -> RenderedPosting

Pure computation over an already-selected rule version: no database access,
no ambient configuration. Everything it needs is passed in, so re-rendering a
historical posting from its rule snapshot gives the same lines.

Per template line:
- account: literal code, or the event value of account_code_field; the event
  value wins when present and non-blank, else account_code_fallback, else
  FieldResolutionError
- amount: event value of the amount field, quantized to 0.01 (ROUND_HALF_UP)
  - missing/zero + skip_if_zero -> line omitted
  - missing or zero otherwise   -> FieldResolutionError
  - negative or non-numeric     -> FieldResolutionError
- subledger: party id read from subledger_id_field (required when declared)
- description: {field} placeholders from the event (missing -> empty)

Multi-currency:
- event `currency` (default: base currency) and `exchange_rate`
- non-base currency requires exchange_rate > 0
- balance is checked on event-currency amounts (the template's own arithmetic),
  then each line is converted; a conversion rounding residual is carried on
  the largest line of the lighter side so base amounts balance exactly
- foreign amount + rate are kept on each line for external forex
  reconciliation
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Tuple

from accounting.posting_templates import (
    CREDIT,
    DEBIT,
    PLACEHOLDER_RE,
    FieldAccount,
    LineTemplate,
    PostingTemplate,
)
from accounting.subledger import SUBLEDGER_KINDS, SubledgerError, SubledgerRef
from accounting.services.exceptions import FieldResolutionError, UnbalancedTemplateError

TWOPLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.000001")
ZERO = Decimal("0.00")
DEFAULT_TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class RenderedLine:
    line_number: int
    account_code: str
    side: str
    amount: Decimal
    description: str
    subledger: Optional[SubledgerRef]
    currency: str
    exchange_rate: Decimal
    foreign_amount: Optional[Decimal]

    @property
    def debit(self) -> Decimal:
        return self.amount if self.side == DEBIT else ZERO

    @property
    def credit(self) -> Decimal:
        return self.amount if self.side == CREDIT else ZERO


@dataclass(frozen=True)
class RenderedPosting:
    description: str
    currency: str
    exchange_rate: Decimal
    lines: Tuple[RenderedLine, ...]

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), ZERO)

    @property
    def is_empty(self) -> bool:
        return not self.lines


def _money(value) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def interpolate(text: str, values: Mapping[str, Any]) -> str:
    def _sub(match):
        value = values.get(match.group(1))
        return "" if _is_blank(value) else str(value)

    return PLACEHOLDER_RE.sub(_sub, text or "").strip()


class _Renderer:
    def __init__(self, template, event_fields, context, base_currency, tolerance, rule_id):
        self.template = template
        self.fields = dict(event_fields or {})
        self.values = {**self.fields, **(context or {})}
        self.base_currency = (base_currency or "").strip().upper()
        self.tolerance = tolerance
        self.rule_id = rule_id

    def error(self, message: str, field: str | None = None) -> FieldResolutionError:
        return FieldResolutionError(message, field=field, rule_id=self.rule_id)

    # -------------------------
    # Currency
    # -------------------------
    def currency_and_rate(self) -> Tuple[str, Decimal]:
        currency = self.fields.get("currency")
        currency = self.base_currency if _is_blank(currency) else str(currency).strip().upper()
        if currency == self.base_currency:
            return currency, Decimal("1")

        raw = self.fields.get("exchange_rate")
        if _is_blank(raw):
            raise self.error(f"exchange_rate is required for {currency} events", "exchange_rate")
        try:
            rate = Decimal(str(raw).strip())
        except (InvalidOperation, ValueError) as exc:
            raise self.error(f"Invalid exchange_rate {raw!r}", "exchange_rate") from exc
        if rate <= 0:
            raise self.error("exchange_rate must be > 0", "exchange_rate")
        return currency, rate.quantize(RATE_PLACES, rounding=ROUND_HALF_UP)

    # -------------------------
    # Per line
    # -------------------------
    def amount(self, line: LineTemplate) -> Optional[Decimal]:
        raw = self.fields.get(line.amount_field)
        if _is_blank(raw):
            if line.skip_if_zero:
                return None
            raise self.error(f"Amount field {line.amount_field!r} has no value", line.amount_field)

        if isinstance(raw, bool):
            raise self.error(f"Amount field {line.amount_field!r} is not numeric", line.amount_field)
        try:
            amount = _money(Decimal(str(raw).strip()))
        except (InvalidOperation, ValueError) as exc:
            raise self.error(
                f"Amount field {line.amount_field!r} is not numeric: {raw!r}", line.amount_field
            ) from exc

        if amount < 0:
            raise self.error(f"Amount field {line.amount_field!r} is negative", line.amount_field)
        if amount == 0:
            if line.skip_if_zero:
                return None
            raise self.error(
                f"Amount field {line.amount_field!r} is zero on a line without skip_if_zero",
                line.amount_field,
            )
        return amount

    def account_code(self, line: LineTemplate) -> str:
        ref = line.account
        if not isinstance(ref, FieldAccount):
            return ref.code

        value = self.fields.get(ref.field)
        if not _is_blank(value):
            return str(value).strip()
        if ref.fallback:
            return ref.fallback
        raise self.error(f"Account code field {ref.field!r} has no value and no fallback", ref.field)

    def subledger(self, line: LineTemplate) -> Optional[SubledgerRef]:
        spec = line.subledger
        if spec is None:
            return None

        party_id = self.fields.get(spec.id_field)
        if _is_blank(party_id):
            raise self.error(f"Subledger id field {spec.id_field!r} has no value", spec.id_field)
        try:
            return SUBLEDGER_KINDS[spec.kind](str(party_id))
        except SubledgerError as exc:
            raise self.error(str(exc), spec.id_field) from exc

    # -------------------------
    # Whole template
    # -------------------------
    def render(self) -> RenderedPosting:
        currency, rate = self.currency_and_rate()
        entry_description = interpolate(self.template.description_template, self.values)

        drafts = []
        for line in self.template.lines:
            amount = self.amount(line)
            if amount is None:
                continue
            drafts.append(
                {
                    "account_code": self.account_code(line),
                    "side": line.side,
                    "foreign": amount,
                    "description": interpolate(line.description, self.values) or entry_description,
                    "subledger": self.subledger(line),
                }
            )

        if not drafts:
            return RenderedPosting(entry_description, currency, rate, ())

        debit = sum((d["foreign"] for d in drafts if d["side"] == DEBIT), ZERO)
        credit = sum((d["foreign"] for d in drafts if d["side"] == CREDIT), ZERO)
        if abs(debit - credit) >= self.tolerance:
            raise UnbalancedTemplateError(
                "Template rendered unbalanced lines",
                rule_id=self.rule_id,
                total_debit=debit,
                total_credit=credit,
            )

        converted = [_money(d["foreign"] * rate) for d in drafts]
        self._absorb_residual(drafts, converted)

        foreign_kept = currency != self.base_currency
        lines = tuple(
            RenderedLine(
                line_number=index,
                account_code=d["account_code"],
                side=d["side"],
                amount=amount,
                description=d["description"],
                subledger=d["subledger"],
                currency=currency,
                exchange_rate=rate,
                foreign_amount=d["foreign"] if foreign_kept else None,
            )
            for index, (d, amount) in enumerate(zip(drafts, converted), start=1)
        )
        return RenderedPosting(entry_description, currency, rate, lines)

    @staticmethod
    def _absorb_residual(drafts, converted) -> None:
        debit = sum((a for d, a in zip(drafts, converted) if d["side"] == DEBIT), ZERO)
        credit = sum((a for d, a in zip(drafts, converted) if d["side"] == CREDIT), ZERO)
        residual = debit - credit
        if residual == 0:
            return

        lighter = CREDIT if residual > 0 else DEBIT
        index = max(
            (i for i, d in enumerate(drafts) if d["side"] == lighter),
            key=lambda i: converted[i],
        )
        converted[index] += abs(residual)


def render(
    template: PostingTemplate,
    event_fields: Mapping[str, Any],
    *,
    base_currency: str,
    context: Mapping[str, Any] | None = None,
    tolerance: Decimal = DEFAULT_TOLERANCE,
    rule_id=None,
) -> RenderedPosting:
    """
    Render a parsed template against one event.

    `context` carries request attributes (source_number, event_date, ...) for
    description placeholders; they override same-named event fields.
    """
    return _Renderer(template, event_fields, context, base_currency, tolerance, rule_id).render()
