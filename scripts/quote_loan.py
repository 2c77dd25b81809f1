#!/usr/bin/env python3
"""Quote a land-contract loan from a target monthly payment.

Prints the financed amount, term, total and, optionally, the projected
amortization schedule.
"""

import argparse
import sys
from decimal import Decimal
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loan_engine.config import EngineConfig
from loan_engine.engine import AmortizationCalculator
from loan_engine.exceptions import LoanEngineError, PaymentTooLowError


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Quote a loan term for a target monthly payment")
    parser.add_argument("price", type=Decimal, help="Purchase price")
    parser.add_argument("payment", type=Decimal, help="Target monthly payment")
    parser.add_argument("--down", type=Decimal, default=Decimal("0"), help="Down payment (default: 0)")
    parser.add_argument("--fee", type=Decimal, default=Decimal("0"), help="Processing fee (default: 0)")
    parser.add_argument("--rate", type=Decimal, default=Decimal("18"), help="Annual rate in percent (default: 18)")
    parser.add_argument("--term", type=int, help="Agreed term in months; skips term derivation")
    parser.add_argument("--schedule", action="store_true", help="Print the amortization schedule")
    args = parser.parse_args()

    calculator = AmortizationCalculator(EngineConfig.from_env().amortization)
    try:
        if args.term is None:
            quote = calculator.quote(args.price, args.down, args.fee, args.rate, args.payment)
        else:
            quote = calculator.custom_quote(args.price, args.down, args.fee, args.rate, args.payment, args.term)
    except PaymentTooLowError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        print(f"Minimum monthly payment: {exc.minimum_payment}", file=sys.stderr)
        return 2
    except LoanEngineError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Loan amount:     {quote.loan_amount:>12}")
    print(f"Monthly payment: {quote.monthly_payment:>12}")
    print(f"Term:            {quote.term_months:>12} months")
    print(f"Total payments:  {quote.total_amount:>12}")

    if args.schedule:
        print(f"\n{'#':>4} {'payment':>10} {'interest':>10} {'principal':>10} {'balance':>12}")
        for row in calculator.schedule(quote.loan_amount, args.rate, quote.monthly_payment):
            print(f"{row.number:>4} {row.payment:>10} {row.interest:>10} {row.principal:>10} {row.balance:>12}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
