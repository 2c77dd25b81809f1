"""Pure financial engine: amortization, delinquency, allocation, default, escrow."""

from loan_engine.engine.allocation import (
    AllocationResult,
    EscrowSchedule,
    LoanState,
    OutstandingFees,
    PaymentAllocationEngine,
    PaymentQuote,
)
from loan_engine.engine.amortization import (
    AmortizationCalculator,
    AmortizationQuote,
    ScheduledInstallment,
)
from loan_engine.engine.default import DefaultResolutionEngine, transition
from loan_engine.engine.delinquency import DelinquencyClassifier, DelinquencyState
from loan_engine.engine.escrow import EscrowTracker

__all__ = [
    "AllocationResult",
    "AmortizationCalculator",
    "AmortizationQuote",
    "DefaultResolutionEngine",
    "DelinquencyClassifier",
    "DelinquencyState",
    "EscrowSchedule",
    "EscrowTracker",
    "LoanState",
    "OutstandingFees",
    "PaymentAllocationEngine",
    "PaymentQuote",
    "ScheduledInstallment",
    "transition",
]
