"""Account balance derivation from signed ledger entries"""

from decimal import Decimal
from typing import Iterable

from billpay_engine.domain.models import Account, LedgerEntry, LoanProgress


def compute_balance(account: Account, entries: Iterable[LedgerEntry]) -> Decimal:
    """
    Current balance = opening balance - sum of entry amounts.

    Entries of other accounts are ignored. Positive entries removed value and
    negative entries added value; the entry kind is not consulted here since
    it only decided the sign when the entry was created.
    """
    total = sum(
        (e.amount for e in entries if e.account_id == account.id),
        Decimal("0"),
    )
    return account.opening_balance - total


def available_balance(account: Account, balance: Decimal) -> Decimal:
    """Spendable amount: remaining credit line for revolving accounts, the balance otherwise"""
    if account.is_revolving and account.credit_limit is not None:
        return account.credit_limit + balance
    return balance


def loan_progress(loan: LedgerEntry, repayments: Iterable[LedgerEntry]) -> LoanProgress:
    """How much of a disbursed loan has come back"""
    loan_amount = abs(loan.amount)
    repaid = sum(
        (abs(r.amount) for r in repayments if r.related_entry_id == loan.id),
        Decimal("0"),
    )
    return LoanProgress(
        loan_amount=loan_amount,
        repaid_amount=repaid,
        remaining_amount=max(loan_amount - repaid, Decimal("0")),
    )
