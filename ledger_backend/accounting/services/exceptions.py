# accounting/services/exceptions.py

"""
ACCOUNTING SERVICE ERRORS

Centralized domain errors for accounting services.

Taxonomy:
- ConfigurationError: the rule catalogue or chart is wrong. Fatal, never
  retried; fix the configuration.
- EventDataError: the posting request is malformed. Fatal, rejected before
  anything is persisted.
- IntegrityViolation: the request would break a ledger invariant. Rejected,
  never coerced.
- ConcurrentPostingConflict: two callers raced on one idempotency key. The
  posting manager recovers by returning the entry that won.

Every error carries `context` (company, source type, trigger event, rule id,
...) so a failure can be diagnosed without re-running it.
"""

from __future__ import annotations


class AccountingServiceError(Exception):
    """Base exception for all accounting service failures."""

    def __init__(self, message: str = "", **context):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def __str__(self):
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in sorted(self.context.items()))
        return f"{self.message} ({details})"


# -------------------------
# Configuration
# -------------------------
class ConfigurationError(AccountingServiceError):
    """Rule catalogue / chart of accounts cannot serve the request."""


class NoMatchingRuleError(ConfigurationError):
    """No active, effective rule matched the event (missing fallback)."""


class AccountNotFoundError(ConfigurationError):
    """A template referenced an account code that is missing or inactive."""


class InvalidRuleError(ConfigurationError):
    """A stored rule's conditions or template do not parse."""


class UnbalancedEntryError(AccountingServiceError):
    """Debits and credits differ by more than the balance tolerance."""


class UnbalancedTemplateError(ConfigurationError, UnbalancedEntryError):
    """A rule's template rendered unbalanced lines for an event."""


# -------------------------
# Event data
# -------------------------
class EventDataError(AccountingServiceError):
    """The posting request or its event fields are malformed."""


class FieldResolutionError(EventDataError):
    """A field referenced by a rule has no usable value and no fallback."""


# -------------------------
# Integrity
# -------------------------
class IntegrityViolation(AccountingServiceError):
    """The request would break a ledger invariant."""


class ControlAccountSubledgerError(IntegrityViolation):
    """A control-account line without a (permitted) subledger tag."""


class PostedEntryImmutableError(IntegrityViolation):
    """Attempted edit of a posted journal entry."""


class ReversalError(IntegrityViolation):
    """The entry cannot be reversed (draft, or itself a reversal)."""


class PeriodLockedError(IntegrityViolation):
    """Posting date falls inside a closed accounting period."""


# -------------------------
# Concurrency
# -------------------------
class ConcurrentPostingConflict(AccountingServiceError):
    """Idempotency key taken by a concurrent posting."""


# -------------------------
# Reports
# -------------------------
class AccountingReportError(AccountingServiceError):
    """A report cannot be produced from the current ledger state."""
