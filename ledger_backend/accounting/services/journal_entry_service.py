# accounting/services/journal_entry_service.py

"""
======================================================
PATH: accounting/services/journal_entry_service.py
======================================================
JOURNAL ENTRY SERVICE (ACCOUNTING ENGINE)

This module is the ONLY place allowed to:
- Create JournalEntry / JournalLine
- Allocate entry numbers (JV-<fiscal year>-<sequence>, per company)
- Enforce debit == credit (within the balance tolerance)
- Enforce control-account subledger tagging
- Enforce period locks (no posting into closed periods)
- Move cached balances (via balance_service, same transaction)

Rule-driven postings, reversals and period closes all pass through
create_journal_entry(). Idempotency lookups live with the callers
(posting.py); the database uniqueness constraint on
(company, source_type, source_id, trigger_event) is the final guard and
surfaces as IntegrityError.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Sequence

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from accounting.fiscal import entry_number_prefix
from accounting.models.account import Account
from accounting.models.company import Company, CompanySequence
from accounting.models.journal import JournalEntry
from accounting.models.ledger import JournalLine
from accounting.subledger import SubledgerRef, accepts_kind
from accounting.services.balance_service import apply_entry_balances
from accounting.services.exceptions import (
    AccountNotFoundError,
    ControlAccountSubledgerError,
    EventDataError,
    UnbalancedEntryError,
)
from accounting.services.period_lock import assert_period_open

TWOPLACES = Decimal("0.01")
MIN_LINE_AMOUNT = Decimal("0.01")


def balance_tolerance() -> Decimal:
    return Decimal(str(getattr(settings, "ACCOUNTING_BALANCE_TOLERANCE", "0.01")))


def _money(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0.00")

    if isinstance(value, Decimal):
        amt = value
    else:
        try:
            amt = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise EventDataError(f"Invalid money value: {value!r}") from exc

    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PostingLine:
    """One resolved line handed to the engine."""

    account: Account
    debit: Decimal = Decimal("0.00")
    credit: Decimal = Decimal("0.00")
    description: str = ""
    subledger: Optional[SubledgerRef] = None
    currency: str = ""
    exchange_rate: Decimal = Decimal("1")
    foreign_amount: Optional[Decimal] = None


def next_entry_number(*, company: Company, fiscal_year: str) -> str:
    """
    Allocate the next journal number for company + fiscal year.

    Runs under a row lock on the sequence; must be inside the posting
    transaction so a rollback releases the number.
    """
    name = f"journal:{fiscal_year}"
    seq = CompanySequence.objects.select_for_update().filter(company=company, name=name).first()
    if seq is None:
        seq = CompanySequence.objects.create(company=company, name=name, next_value=1)
        seq = CompanySequence.objects.select_for_update().get(pk=seq.pk)

    value = seq.next_value
    seq.next_value = value + 1
    seq.save(update_fields=["next_value"])

    return f"JV-{entry_number_prefix(fiscal_year)}-{value:06d}"


def _validate_lines(
    *, company: Company, lines: Sequence[PostingLine], source: str, allow_inactive: bool = False
) -> list[dict]:
    normalized: list[dict] = []

    for index, line in enumerate(lines, start=1):
        account = line.account
        if account is None:
            raise EventDataError(f"Line {index} has no account", source=source)
        if account.company_id != company.pk:
            raise AccountNotFoundError(
                f"Account {account.code} does not belong to company {company.code}",
                source=source,
            )
        # Disabled accounts stop new postings but can still be reversed out.
        if not account.is_active and not allow_inactive:
            raise AccountNotFoundError(f"Account {account.code} is inactive", source=source)

        debit = _money(line.debit)
        credit = _money(line.credit)

        if debit < 0 or credit < 0:
            raise EventDataError("Debit or credit cannot be negative", source=source, line=index)
        if debit > 0 and credit > 0:
            raise EventDataError("A line cannot have both debit and credit", source=source, line=index)
        if debit == 0 and credit == 0:
            raise EventDataError("A line must have either debit or credit", source=source, line=index)
        if max(debit, credit) < MIN_LINE_AMOUNT:
            raise EventDataError(f"Line amount too small: {max(debit, credit)}", source=source, line=index)

        ref = line.subledger
        if account.is_control_account:
            if ref is None:
                raise ControlAccountSubledgerError(
                    f"Control account {account.code} requires a subledger tag",
                    source=source,
                    line=index,
                )
            if not accepts_kind(account.control_account_type, ref.kind):
                raise ControlAccountSubledgerError(
                    f"Control account {account.code} ({account.control_account_type}) does not accept {ref.kind} parties",
                    source=source,
                    line=index,
                )

        normalized.append(
            {
                "account": account,
                "debit": debit,
                "credit": credit,
                "description": (line.description or "")[:500],
                "subledger": ref,
                "currency": (line.currency or company.base_currency).upper(),
                "exchange_rate": line.exchange_rate or Decimal("1"),
                "foreign_amount": line.foreign_amount,
            }
        )

    return normalized


@transaction.atomic
def create_journal_entry(
    *,
    company: Company,
    entry_date: date,
    description: str,
    lines: Sequence[PostingLine],
    source_type: str,
    source_id: str,
    trigger_event: str,
    source_number: str = "",
    entry_type: str = JournalEntry.AUTO_POST,
    posting_rule=None,
    reversal_of: JournalEntry | None = None,
    reversal_reason: str = "",
) -> JournalEntry:
    """
    Persist one posted, balanced journal entry and move its balances.

    Raises:
        EventDataError / AccountNotFoundError / ControlAccountSubledgerError /
        UnbalancedEntryError / PeriodLockedError before anything is written;
        IntegrityError when the idempotency key is already taken.
    """
    source = f"{source_type}:{source_id}:{trigger_event}"

    if not lines:
        raise EventDataError("Journal entry must contain at least one line", source=source)

    description = (description or "").strip()
    if not description:
        raise EventDataError("Journal entry description is required", source=source)

    normalized = _validate_lines(
        company=company,
        lines=lines,
        source=source,
        allow_inactive=entry_type == JournalEntry.REVERSAL,
    )

    total_debit = sum((n["debit"] for n in normalized), Decimal("0.00"))
    total_credit = sum((n["credit"] for n in normalized), Decimal("0.00"))
    if abs(total_debit - total_credit) >= balance_tolerance():
        raise UnbalancedEntryError(
            "Journal entry not balanced",
            source=source,
            total_debit=total_debit,
            total_credit=total_credit,
        )

    # Period lock enforcement (engine choke-point)
    assert_period_open(company=company, on_date=entry_date)

    fiscal_year = company.fiscal_year_for(entry_date)

    entry = JournalEntry(
        company=company,
        entry_number=next_entry_number(company=company, fiscal_year=fiscal_year),
        entry_date=entry_date,
        fiscal_year=fiscal_year,
        period_month=company.period_month_for(entry_date),
        entry_type=entry_type,
        status=JournalEntry.POSTED,
        source_type=source_type,
        source_id=str(source_id),
        source_number=source_number or "",
        trigger_event=trigger_event,
        description=description,
        total_debit=total_debit,
        total_credit=total_credit,
        currency=company.base_currency,
        posting_rule=posting_rule,
        rule_pack_version=posting_rule.rule_pack_version if posting_rule is not None else "",
        reversal_of=reversal_of,
        reversal_reason=reversal_reason or "",
        posted_at=timezone.now(),
    )
    entry.save()

    journal_lines = [
        JournalLine(
            journal_entry=entry,
            line_number=index,
            account=n["account"],
            account_code=n["account"].code,
            debit_amount=n["debit"],
            credit_amount=n["credit"],
            currency=n["currency"],
            exchange_rate=n["exchange_rate"],
            foreign_amount=n["foreign_amount"],
            subledger_type=n["subledger"].kind if n["subledger"] else "",
            subledger_id=n["subledger"].id if n["subledger"] else "",
            description=n["description"],
        )
        for index, n in enumerate(normalized, start=1)
    ]
    JournalLine.objects.bulk_create(journal_lines)

    apply_entry_balances(entry, journal_lines)
    return entry
