"""Loan servicing layer."""

from loan_engine.services.servicing import LoanServicer, Proposal

__all__ = ["LoanServicer", "Proposal"]
