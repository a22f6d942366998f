# accounting/subledger.py

"""
PATH: accounting/subledger.py

SUBLEDGER REFERENCES (FRAMEWORK-AGNOSTIC)

A journal line posted to a control account names the party it belongs to.
The party is one of a closed set of kinds, so a reference is a small tagged
union rather than a free type-string/id pair:

    Customer(id) | Vendor(id) | Employee(id) | BankAccount(id) | None

Storage:
- JournalLine.subledger_type holds SubledgerRef.kind
- JournalLine.subledger_id holds the party id as a string
- both set together or both empty

Control accounts restrict which kinds they accept (receivables take customers,
payables take vendors and employees, ...). Types not listed accept any kind.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Dict, FrozenSet, Optional, Type


class SubledgerError(ValueError):
    """Raised for unknown subledger kinds or blank party ids."""


@dataclass(frozen=True)
class SubledgerRef:
    kind: ClassVar[str] = ""
    id: str

    def __post_init__(self):
        party_id = str(self.id).strip() if self.id is not None else ""
        if not party_id:
            raise SubledgerError(f"{type(self).__name__} requires a party id")
        object.__setattr__(self, "id", party_id)

    def __str__(self):
        return f"{self.kind}:{self.id}"


@dataclass(frozen=True)
class Customer(SubledgerRef):
    kind: ClassVar[str] = "customer"


@dataclass(frozen=True)
class Vendor(SubledgerRef):
    kind: ClassVar[str] = "vendor"


@dataclass(frozen=True)
class Employee(SubledgerRef):
    kind: ClassVar[str] = "employee"


@dataclass(frozen=True)
class BankAccount(SubledgerRef):
    kind: ClassVar[str] = "bank_account"


SUBLEDGER_KINDS: Dict[str, Type[SubledgerRef]] = {
    cls.kind: cls for cls in (Customer, Vendor, Employee, BankAccount)
}

SUBLEDGER_TYPE_CHOICES = [
    (Customer.kind, "Customer"),
    (Vendor.kind, "Vendor"),
    (Employee.kind, "Employee"),
    (BankAccount.kind, "Bank Account"),
]

# control_account_type -> permitted kinds
CONTROL_ACCOUNT_KINDS: Dict[str, FrozenSet[str]] = {
    "receivables": frozenset({Customer.kind}),
    "tds_receivable": frozenset({Customer.kind}),
    "payables": frozenset({Vendor.kind, Employee.kind}),
    "tds_payable": frozenset({Vendor.kind, Employee.kind}),
    "bank": frozenset({BankAccount.kind}),
}


def subledger_ref(kind: Optional[str], party_id) -> Optional[SubledgerRef]:
    """
    Build a reference from stored parts.

    (None/"", None/"") -> None. One part without the other is an error.
    """
    kind = (kind or "").strip().lower()
    has_id = party_id is not None and str(party_id).strip() != ""

    if not kind and not has_id:
        return None
    if not kind or not has_id:
        raise SubledgerError("subledger type and subledger id must be set together")

    cls = SUBLEDGER_KINDS.get(kind)
    if cls is None:
        raise SubledgerError(f"Unknown subledger type: {kind!r}")
    return cls(str(party_id))


def accepts_kind(control_account_type: str, kind: str) -> bool:
    allowed = CONTROL_ACCOUNT_KINDS.get(control_account_type or "")
    return allowed is None or kind in allowed
