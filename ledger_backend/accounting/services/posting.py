# accounting/services/posting.py

"""
======================================================
PATH: accounting/services/posting.py
======================================================
POSTING TRANSACTION MANAGER

post(request)   -> PostingResult
reverse(entry)  -> PostingResult

Idempotency key: (company, source_type, source_id, trigger_event).
A repeated call returns the entry already posted for the key
(status="already_posted") instead of creating a duplicate.

post() in order:
1. lookup by key (fast path for retries)
2. select the rule + render its template (pure, no locks held)
3. resolve template account codes against the company chart (reads)
4. one atomic unit:
   - re-check the key under a row lock
   - create_journal_entry() (entry, lines, running/subledger/period balances)
   - rule usage log row with the rule snapshot
5. IntegrityError on the key -> a concurrent caller won the race; return
   its entry (ConcurrentPostingConflict is handled here, never surfaced)

Failure semantics:
- NoMatchingRuleError, AccountNotFoundError, UnbalancedTemplateError,
  InvalidRuleError: configuration; fatal, not retried
- FieldResolutionError / EventDataError: malformed event; fatal
- ControlAccountSubledgerError, PeriodLockedError: integrity; fatal
- anything raised inside the atomic unit rolls the whole posting back

When a rule was selected but applying it failed, a success=False usage log row
is written after the rollback (ACCOUNTING_RECORD_FAILED_POSTINGS).

Reversal:
- key (source_type="reversal", source_id=<original id>, trigger_event="on_reverse")
- same accounts and subledger tags, debit/credit swapped
- original moves to status=reversed, is_reversed=True, reversed_by=<reversal>
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from accounting.event_schema import ON_REVERSE, REVERSAL, RuleDefinitionError
from accounting.models.company import Company
from accounting.models.journal import JournalEntry
from accounting.models.posting_rule import PostingRule, PostingRuleUsageLog
from accounting.posting_templates import DEBIT
from accounting.services.account_resolver import resolve_accounts
from accounting.services.exceptions import (
    AccountingServiceError,
    ConcurrentPostingConflict,
    ConfigurationError,
    EventDataError,
    IntegrityViolation,
    InvalidRuleError,
    ReversalError,
)
from accounting.services.journal_entry_service import (
    PostingLine,
    balance_tolerance,
    create_journal_entry,
)
from accounting.services.rule_matcher import select_rule
from accounting.services.template_renderer import render

logger = logging.getLogger(__name__)

POSTED = "posted"
ALREADY_POSTED = "already_posted"
NOTHING_TO_POST = "nothing_to_post"


@dataclass(frozen=True)
class PostingRequest:
    company: Company
    source_type: str
    source_id: str
    trigger_event: str
    event_date: date
    event_fields: Mapping[str, Any] = field(default_factory=dict)
    source_number: str = ""

    def normalized(self) -> "PostingRequest":
        source_type = (self.source_type or "").strip().lower()
        source_id = str(self.source_id or "").strip()
        trigger_event = (self.trigger_event or "").strip().lower()

        if self.company is None:
            raise EventDataError("company is required")
        if not source_type or not source_id or not trigger_event:
            raise EventDataError(
                "source_type, source_id and trigger_event are required",
                source_type=source_type or None,
                source_id=source_id or None,
            )
        if source_type == REVERSAL:
            raise EventDataError("Reversals are posted through reverse(), not post()")
        if not isinstance(self.event_date, date):
            raise EventDataError("event_date must be a date", source_id=source_id)
        if not isinstance(self.event_fields, Mapping):
            raise EventDataError("event_fields must be an object", source_id=source_id)

        return PostingRequest(
            company=self.company,
            source_type=source_type,
            source_id=source_id,
            trigger_event=trigger_event,
            event_date=self.event_date,
            event_fields=dict(self.event_fields),
            source_number=str(self.source_number or "").strip(),
        )

    @property
    def context(self) -> dict:
        return {
            "source_type": self.source_type,
            "source_id": self.source_id,
            "source_number": self.source_number or self.source_id,
            "trigger_event": self.trigger_event,
            "event_date": self.event_date.isoformat(),
        }


@dataclass(frozen=True)
class PostingResult:
    status: str
    entry: Optional[JournalEntry] = None
    rule: Optional[PostingRule] = None

    @property
    def created(self) -> bool:
        return self.status == POSTED


def find_existing(*, company: Company, source_type: str, source_id: str, trigger_event: str, lock=False):
    qs = JournalEntry.objects.filter(
        company=company,
        source_type=source_type,
        source_id=str(source_id),
        trigger_event=trigger_event,
    )
    if lock:
        qs = qs.select_for_update()
    return qs.first()


def _record_failure(*, request: PostingRequest, rule: PostingRule, error: Exception) -> None:
    if not getattr(settings, "ACCOUNTING_RECORD_FAILED_POSTINGS", True):
        return

    PostingRuleUsageLog.objects.create(
        company=request.company,
        posting_rule=rule,
        journal_entry=None,
        source_type=request.source_type,
        source_id=request.source_id,
        trigger_event=request.trigger_event,
        rule_snapshot=rule.snapshot(),
        success=False,
        error_message=str(error)[:2000],
    )


def _build_lines(*, request: PostingRequest, rule: PostingRule):
    try:
        template = rule.parsed_template()
    except RuleDefinitionError as exc:
        raise InvalidRuleError(
            f"Stored template does not parse: {exc}", rule_id=rule.pk, rule_code=rule.rule_code
        ) from exc

    rendered = render(
        template,
        request.event_fields,
        base_currency=request.company.base_currency,
        context=request.context,
        tolerance=balance_tolerance(),
        rule_id=rule.pk,
    )
    if rendered.is_empty:
        return rendered, []

    accounts = resolve_accounts(
        company=request.company,
        codes=[line.account_code for line in rendered.lines],
        rule_id=rule.pk,
    )
    lines = [
        PostingLine(
            account=accounts[line.account_code],
            debit=line.debit,
            credit=line.credit,
            description=line.description,
            subledger=line.subledger,
            currency=line.currency,
            exchange_rate=line.exchange_rate,
            foreign_amount=line.foreign_amount,
        )
        for line in rendered.lines
    ]
    return rendered, lines


def _recover_race(*, company, source_type, source_id, trigger_event, exc: IntegrityError) -> JournalEntry:
    existing = find_existing(
        company=company, source_type=source_type, source_id=source_id, trigger_event=trigger_event
    )
    if existing is None:
        raise exc

    conflict = ConcurrentPostingConflict(
        "Idempotency key taken by a concurrent posting",
        company=company.code,
        source_type=source_type,
        source_id=source_id,
        trigger_event=trigger_event,
        journal_entry=existing.entry_number,
    )
    logger.warning("%s; returning existing entry", conflict)
    return existing


def post(request: PostingRequest) -> PostingResult:
    """
    Post one business event. Idempotent per
    (company, source_type, source_id, trigger_event).
    """
    request = request.normalized()
    company = request.company
    key = {
        "company": company,
        "source_type": request.source_type,
        "source_id": request.source_id,
        "trigger_event": request.trigger_event,
    }

    existing = find_existing(**key)
    if existing is not None:
        logger.info("Already posted %s for %s:%s", existing.entry_number, request.source_type, request.source_id)
        return PostingResult(ALREADY_POSTED, existing, existing.posting_rule)

    rule = select_rule(
        company=company,
        source_type=request.source_type,
        trigger_event=request.trigger_event,
        event_date=request.event_date,
        event_fields=request.event_fields,
    )

    try:
        rendered, lines = _build_lines(request=request, rule=rule)
    except (ConfigurationError, EventDataError) as exc:
        logger.error("Posting failed under rule %s: %s", rule.rule_code, exc)
        _record_failure(request=request, rule=rule, error=exc)
        raise

    if not lines:
        logger.info(
            "Nothing to post for %s:%s under rule %s (all lines zero)",
            request.source_type,
            request.source_id,
            rule.rule_code,
        )
        return PostingResult(NOTHING_TO_POST, None, rule)

    try:
        with transaction.atomic():
            existing = find_existing(**key, lock=True)
            if existing is not None:
                return PostingResult(ALREADY_POSTED, existing, existing.posting_rule)

            entry = create_journal_entry(
                company=company,
                entry_date=request.event_date,
                description=rendered.description or f"{request.source_type} {request.context['source_number']}",
                lines=lines,
                source_type=request.source_type,
                source_id=request.source_id,
                trigger_event=request.trigger_event,
                source_number=request.source_number,
                entry_type=JournalEntry.AUTO_POST,
                posting_rule=rule,
            )
            PostingRuleUsageLog.objects.create(
                company=company,
                posting_rule=rule,
                journal_entry=entry,
                source_type=request.source_type,
                source_id=request.source_id,
                trigger_event=request.trigger_event,
                rule_snapshot=rule.snapshot(),
                success=True,
            )
    except IntegrityError as exc:
        existing = _recover_race(exc=exc, **key)
        return PostingResult(ALREADY_POSTED, existing, existing.posting_rule)
    except (ConfigurationError, EventDataError, IntegrityViolation) as exc:
        logger.error("Posting failed under rule %s: %s", rule.rule_code, exc)
        _record_failure(request=request, rule=rule, error=exc)
        raise

    logger.info(
        "Posted %s for %s:%s/%s under rule %s (debit=%s credit=%s)",
        entry.entry_number,
        request.source_type,
        request.source_id,
        request.trigger_event,
        rule.rule_code,
        entry.total_debit,
        entry.total_credit,
    )
    return PostingResult(POSTED, entry, rule)


def reverse(
    journal_entry_id,
    reason: str,
    *,
    company: Company | None = None,
    reversal_date: date | None = None,
) -> PostingResult:
    """
    Post the compensating entry for a posted journal entry.

    Idempotent per original entry: reversing twice returns the first reversal.
    """
    reason = (reason or "").strip()
    if not reason:
        raise EventDataError("A reversal reason is required", journal_entry_id=journal_entry_id)

    qs = JournalEntry.objects.select_related("company")
    if company is not None:
        qs = qs.filter(company=company)
    original = qs.filter(pk=journal_entry_id).first()
    if original is None:
        raise EventDataError("Journal entry not found", journal_entry_id=journal_entry_id)

    company = original.company
    key = {
        "company": company,
        "source_type": REVERSAL,
        "source_id": str(original.pk),
        "trigger_event": ON_REVERSE,
    }

    existing = find_existing(**key)
    if existing is not None:
        return PostingResult(ALREADY_POSTED, existing)

    if original.status not in JournalEntry.LEDGER_STATUSES:
        raise ReversalError(f"Only posted entries can be reversed (status={original.status})",
                            entry=original.entry_number)
    if original.entry_type == JournalEntry.REVERSAL:
        raise ReversalError("A reversal entry cannot itself be reversed", entry=original.entry_number)

    reversal_date = reversal_date or timezone.localdate()

    try:
        with transaction.atomic():
            existing = find_existing(**key, lock=True)
            if existing is not None:
                return PostingResult(ALREADY_POSTED, existing)

            original = JournalEntry.objects.select_for_update().get(pk=original.pk)
            if original.is_reversed:
                raise ReversalError("Entry is already reversed", entry=original.entry_number)

            lines = [
                PostingLine(
                    account=line.account,
                    debit=line.credit_amount,
                    credit=line.debit_amount,
                    description=f"Reversal: {line.description}" if line.description else "Reversal",
                    subledger=line.subledger,
                    currency=line.currency,
                    exchange_rate=line.exchange_rate,
                    foreign_amount=line.foreign_amount,
                )
                for line in original.lines.select_related("account").order_by("line_number")
            ]

            reversal = create_journal_entry(
                company=company,
                entry_date=reversal_date,
                description=f"Reversal of {original.entry_number}: {reason}",
                lines=lines,
                source_type=REVERSAL,
                source_id=str(original.pk),
                trigger_event=ON_REVERSE,
                source_number=original.entry_number,
                entry_type=JournalEntry.REVERSAL,
                reversal_of=original,
                reversal_reason=reason,
            )

            original.status = JournalEntry.REVERSED
            original.is_reversed = True
            original.reversed_by = reversal
            original.save(update_fields=["status", "is_reversed", "reversed_by", "updated_at"])
    except IntegrityError as exc:
        existing = _recover_race(exc=exc, **key)
        return PostingResult(ALREADY_POSTED, existing)

    logger.info("Reversed %s with %s: %s", original.entry_number, reversal.entry_number, reason)
    return PostingResult(POSTED, reversal)


__all__ = [
    "PostingRequest",
    "PostingResult",
    "POSTED",
    "ALREADY_POSTED",
    "NOTHING_TO_POST",
    "post",
    "reverse",
    "find_existing",
    "AccountingServiceError",
]
