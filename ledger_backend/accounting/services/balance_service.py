# accounting/services/balance_service.py

"""
BALANCE SERVICE (AUTHORITATIVE)

Write side (posting engine only):
- apply_entry_balances(): inside the posting transaction, lock the affected
  account rows (in id order), then move
    - Account.current_balance
    - SubledgerBalance (control accounts, keyed by account + party)
    - AccountPeriodBalance (entry's fiscal month; later months shift by the
      same delta so every row stays equal to a from-scratch rebuild)
- recalculate_balances(): rebuild all three from posted lines

Read side:
- ledger_lines(): posted journal lines, optionally scoped/date-bounded
- get_account_balance(): normal-side balance derived from lines

RULES:
- JournalLine is the single source of truth; these rows are caches
- Accounting timeline uses JournalEntry.entry_date
- Only ledger statuses count (posted, reversed)
- Company-scoped: never mix tenants
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from django.db import transaction
from django.db.models import Count, F, Max, Min, Sum
from django.db.models.functions import Coalesce

from accounting.models.account import Account
from accounting.models.balances import AccountPeriodBalance, SubledgerBalance
from accounting.models.company import Company
from accounting.models.journal import JournalEntry
from accounting.models.ledger import JournalLine
from accounting.services.exceptions import AccountingServiceError

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def _q2(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


# ------------------------------------------------------------
# READ SIDE
# ------------------------------------------------------------


def ledger_lines(
    *,
    company: Company | None = None,
    account: Account | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
):
    qs = JournalLine.objects.filter(journal_entry__status__in=JournalEntry.LEDGER_STATUSES)

    if company is not None:
        qs = qs.filter(journal_entry__company=company)
    if account is not None:
        qs = qs.filter(account=account)
    if date_from is not None:
        qs = qs.filter(journal_entry__entry_date__gte=date_from)
    if date_to is not None:
        qs = qs.filter(journal_entry__entry_date__lte=date_to)
    return qs


def line_totals(qs) -> tuple[Decimal, Decimal]:
    agg = qs.aggregate(
        debit=Coalesce(Sum("debit_amount"), ZERO),
        credit=Coalesce(Sum("credit_amount"), ZERO),
    )
    return _q2(agg["debit"]), _q2(agg["credit"])


def get_account_balance(account: Account, *, as_of: date | None = None) -> Decimal:
    """
    Balance rule (normal side, opening balance included):
    - debit-normal accounts  -> opening + debits - credits
    - credit-normal accounts -> opening + credits - debits
    """
    if account is None:
        raise AccountingServiceError("Account is required")

    debit, credit = line_totals(ledger_lines(account=account, date_to=as_of))
    return _q2(account.opening_balance + account.signed_movement(debit, credit))


# ------------------------------------------------------------
# WRITE SIDE (posting transaction only)
# ------------------------------------------------------------


def _lock_accounts(account_ids: Iterable[int]) -> dict[int, Account]:
    # Fixed lock order across concurrent postings (no deadlock cycles)
    return {
        a.pk: a
        for a in Account.objects.select_for_update().filter(pk__in=set(account_ids)).order_by("pk")
    }


def _apply_period_delta(
    *,
    entry: JournalEntry,
    account: Account,
    debit: Decimal,
    credit: Decimal,
    count: int,
) -> None:
    delta = account.signed_movement(debit, credit)
    period_start = entry.entry_date.replace(day=1)

    row = (
        AccountPeriodBalance.objects.select_for_update()
        .filter(account=account, fiscal_year=entry.fiscal_year, period_month=entry.period_month)
        .first()
    )
    if row is None:
        previous = (
            AccountPeriodBalance.objects.filter(account=account, period_start__lt=period_start)
            .order_by("-period_start")
            .first()
        )
        opening = previous.closing_balance if previous else account.opening_balance
        row = AccountPeriodBalance.objects.create(
            company_id=entry.company_id,
            account=account,
            fiscal_year=entry.fiscal_year,
            period_month=entry.period_month,
            period_start=period_start,
            opening_balance=opening,
            closing_balance=opening,
        )

    AccountPeriodBalance.objects.filter(pk=row.pk).update(
        period_debit=F("period_debit") + debit,
        period_credit=F("period_credit") + credit,
        closing_balance=F("closing_balance") + delta,
        transaction_count=F("transaction_count") + count,
    )

    if delta:
        AccountPeriodBalance.objects.filter(account=account, period_start__gt=period_start).update(
            opening_balance=F("opening_balance") + delta,
            closing_balance=F("closing_balance") + delta,
        )


def _apply_subledger_delta(
    *,
    entry: JournalEntry,
    account: Account,
    subledger_type: str,
    subledger_id: str,
    debit: Decimal,
    credit: Decimal,
    count: int,
) -> None:
    row, _ = SubledgerBalance.objects.select_for_update().get_or_create(
        account=account,
        subledger_type=subledger_type,
        subledger_id=subledger_id,
        defaults={"company_id": entry.company_id},
    )

    last_date = row.last_entry_date
    if last_date is None or entry.entry_date > last_date:
        last_date = entry.entry_date

    SubledgerBalance.objects.filter(pk=row.pk).update(
        debit_total=F("debit_total") + debit,
        credit_total=F("credit_total") + credit,
        balance=F("balance") + account.signed_movement(debit, credit),
        transaction_count=F("transaction_count") + count,
        last_entry_date=last_date,
    )


def apply_entry_balances(entry: JournalEntry, lines: Iterable[JournalLine]) -> None:
    """
    Move every cached balance for one newly posted entry.

    Must run inside the posting transaction (the caller owns atomicity).
    """
    if not transaction.get_connection().in_atomic_block:
        raise AccountingServiceError("Balances may only change inside the posting transaction")

    per_account: dict[int, list] = defaultdict(lambda: [ZERO, ZERO, 0])
    per_party: dict[tuple, list] = defaultdict(lambda: [ZERO, ZERO, 0])

    for line in lines:
        bucket = per_account[line.account_id]
        bucket[0] += line.debit_amount
        bucket[1] += line.credit_amount
        bucket[2] += 1

        if line.subledger_type:
            party = per_party[(line.account_id, line.subledger_type, line.subledger_id)]
            party[0] += line.debit_amount
            party[1] += line.credit_amount
            party[2] += 1

    accounts = _lock_accounts(per_account)

    for account_id in sorted(per_account):
        debit, credit, count = per_account[account_id]
        account = accounts[account_id]

        Account.objects.filter(pk=account_id).update(
            current_balance=F("current_balance") + account.signed_movement(debit, credit)
        )
        _apply_period_delta(entry=entry, account=account, debit=debit, credit=credit, count=count)

    for (account_id, kind, party_id) in sorted(per_party):
        account = accounts[account_id]
        if not account.is_control_account:
            continue
        debit, credit, count = per_party[(account_id, kind, party_id)]
        _apply_subledger_delta(
            entry=entry,
            account=account,
            subledger_type=kind,
            subledger_id=party_id,
            debit=debit,
            credit=credit,
            count=count,
        )

    logger.debug("Balances moved for %s across %s accounts", entry.entry_number, len(per_account))


# ------------------------------------------------------------
# REBUILD
# ------------------------------------------------------------


@transaction.atomic
def recalculate_balances(company: Company) -> dict:
    """
    Rebuild running balances, subledger aggregates and period balances for a
    company from its posted lines. Produces exactly what incremental posting
    maintains.
    """
    accounts = {
        a.pk: a
        for a in Account.objects.select_for_update().filter(company=company).order_by("pk")
    }
    lines = ledger_lines(company=company)

    # Running balances
    movement = {
        r["account_id"]: (r["debit"], r["credit"])
        for r in lines.values("account_id").annotate(
            debit=Coalesce(Sum("debit_amount"), ZERO),
            credit=Coalesce(Sum("credit_amount"), ZERO),
        )
    }
    for account_id, account in accounts.items():
        debit, credit = movement.get(account_id, (ZERO, ZERO))
        balance = _q2(account.opening_balance + account.signed_movement(_q2(debit), _q2(credit)))
        Account.objects.filter(pk=account_id).update(current_balance=balance)

    # Subledger aggregates (control accounts only)
    SubledgerBalance.objects.filter(company=company).delete()
    party_rows = (
        lines.filter(account__is_control_account=True)
        .exclude(subledger_type="")
        .values("account_id", "subledger_type", "subledger_id")
        .annotate(
            debit=Coalesce(Sum("debit_amount"), ZERO),
            credit=Coalesce(Sum("credit_amount"), ZERO),
            count=Count("id"),
            last_date=Max("journal_entry__entry_date"),
        )
    )
    subledgers = []
    for r in party_rows:
        account = accounts[r["account_id"]]
        debit, credit = _q2(r["debit"]), _q2(r["credit"])
        subledgers.append(
            SubledgerBalance(
                company=company,
                account=account,
                subledger_type=r["subledger_type"],
                subledger_id=r["subledger_id"],
                debit_total=debit,
                credit_total=credit,
                balance=account.signed_movement(debit, credit),
                transaction_count=r["count"],
                last_entry_date=r["last_date"],
            )
        )
    SubledgerBalance.objects.bulk_create(subledgers)

    # Period balances
    AccountPeriodBalance.objects.filter(company=company).delete()
    period_rows = (
        lines.values("account_id", "journal_entry__fiscal_year", "journal_entry__period_month")
        .annotate(
            debit=Coalesce(Sum("debit_amount"), ZERO),
            credit=Coalesce(Sum("credit_amount"), ZERO),
            count=Count("id"),
            first_date=Min("journal_entry__entry_date"),
        )
    )
    by_account: dict[int, list] = defaultdict(list)
    for r in period_rows:
        by_account[r["account_id"]].append(r)

    periods = []
    for account_id, rows in by_account.items():
        account = accounts[account_id]
        running = account.opening_balance
        for r in sorted(rows, key=lambda x: x["first_date"]):
            debit, credit = _q2(r["debit"]), _q2(r["credit"])
            closing = _q2(running + account.signed_movement(debit, credit))
            periods.append(
                AccountPeriodBalance(
                    company=company,
                    account=account,
                    fiscal_year=r["journal_entry__fiscal_year"],
                    period_month=r["journal_entry__period_month"],
                    period_start=r["first_date"].replace(day=1),
                    opening_balance=_q2(running),
                    period_debit=debit,
                    period_credit=credit,
                    closing_balance=closing,
                    transaction_count=r["count"],
                )
            )
            running = closing
    AccountPeriodBalance.objects.bulk_create(periods)

    logger.info(
        "Recalculated balances for %s: %s accounts, %s subledger rows, %s period rows",
        company.code,
        len(accounts),
        len(subledgers),
        len(periods),
    )
    return {
        "company": company.code,
        "accounts": len(accounts),
        "subledger_balances": len(subledgers),
        "period_balances": len(periods),
    }
