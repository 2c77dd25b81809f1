"""In-memory loan ledger with per-loan locking."""

from loan_engine.store.ledger import LoanLedger

__all__ = ["LoanLedger"]
