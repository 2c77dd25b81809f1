"""Portfolio reports over a ``LoanLedger``.

Tax and HOA escrow are pass-through money and never count as revenue.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any

from loan_engine.engine.default import recovery_rate
from loan_engine.engine.delinquency import DelinquencyClassifier
from loan_engine.engine.escrow import EscrowTracker
from loan_engine.models import LoanStatus, Payment, PaymentStatus, PaymentType
from loan_engine.money import ZERO, money_sum
from loan_engine.store.ledger import LoanLedger

UPFRONT_TYPES = (PaymentType.DOWN_PAYMENT, PaymentType.PROCESSING_FEE)


def taxable_revenue(payment: Payment) -> Decimal:
    """Revenue portion of one payment.

    Escrow is passed through and the card gateway fee is a cost; the
    convenience fee is kept as revenue.
    """
    if payment.payment_type in UPFRONT_TYPES:
        return payment.amount
    a = payment.allocation
    return a.interest + a.principal + a.late_fee + a.notice_fee + a.postal_fee + a.convenience_fee


def quarter_of(day: date) -> int:
    return (day.month - 1) // 3 + 1


class PortfolioReports:
    """Financial, outstanding, defaulted and tax reports.

    Parameters
    ----------
    ledger : LoanLedger
        Source of loans, payments and properties.
    classifier : DelinquencyClassifier | None
        Used for the days-overdue column of the outstanding report.
    """

    def __init__(self, ledger: LoanLedger, classifier: DelinquencyClassifier | None = None) -> None:
        self.ledger = ledger
        self.classifier = classifier or DelinquencyClassifier()

    def _completed(self) -> list[Payment]:
        return [p for p in self.ledger.iter_payments() if p.status is PaymentStatus.COMPLETED]

    def financial_report(self) -> dict[str, Any]:
        """Revenue breakdown, escrow per property and monthly trends."""
        payments = self._completed()

        def by_type(payment_type: PaymentType) -> Decimal:
            return money_sum(p.amount for p in payments if p.payment_type is payment_type)

        revenue = {
            "total_received": money_sum(p.amount for p in payments),
            "down_payments": by_type(PaymentType.DOWN_PAYMENT),
            "processing_fees": by_type(PaymentType.PROCESSING_FEE),
            "interest": money_sum(p.allocation.interest for p in payments),
            "principal": money_sum(p.allocation.principal for p in payments),
            "late_fees": money_sum(p.allocation.late_fee for p in payments),
            "notice_fees": money_sum(p.allocation.notice_fee for p in payments),
            "postal_fees": money_sum(p.allocation.postal_fee for p in payments),
            "convenience_fees": money_sum(p.allocation.convenience_fee for p in payments),
            "gateway_fees": money_sum(p.allocation.gateway_fee for p in payments),
            "tax_collected": money_sum(p.allocation.tax_escrow for p in payments),
            "hoa_collected": money_sum(p.allocation.hoa_escrow for p in payments),
            "taxable_revenue": money_sum(taxable_revenue(p) for p in payments),
            "total_payments": len(payments),
        }

        tax_escrow = []
        hoa_tracking = []
        for prop in sorted(self.ledger.properties.values(), key=lambda p: p.title):
            account = prop.escrow
            if account.annual_tax_amount > 0:
                tax_escrow.append({
                    "property_id": prop.property_id,
                    "title": prop.title,
                    "annual_tax_amount": account.annual_tax_amount,
                    "tax_collected": account.tax_collected,
                    "taxes_paid": account.tax_paid,
                    "tax_balance": EscrowTracker.tax_balance(account),
                })
            if account.monthly_hoa_fee > 0:
                hoa_tracking.append({
                    "property_id": prop.property_id,
                    "title": prop.title,
                    "monthly_hoa_fee": account.monthly_hoa_fee,
                    "hoa_collected": account.hoa_collected,
                })

        trends: dict[date, dict[str, Any]] = defaultdict(
            lambda: {"total_received": ZERO, "loan_revenue": ZERO, "fee_revenue": ZERO, "payment_count": 0}
        )
        for p in payments:
            month = trends[p.payment_date.replace(day=1)]
            month["total_received"] += p.amount
            month["loan_revenue"] += p.allocation.loan_payment
            month["fee_revenue"] += p.allocation.late_fee + p.allocation.notice_fee
            month["payment_count"] += 1

        return {
            "revenue": revenue,
            "tax_escrow": tax_escrow,
            "hoa_tracking": hoa_tracking,
            "monthly_trends": [{"month": m, **trends[m]} for m in sorted(trends, reverse=True)],
        }

    def outstanding_report(self, today: date) -> dict[str, Any]:
        """Active loans, most overdue first."""
        rows = []
        for loan in self.ledger.iter_loans(LoanStatus.ACTIVE):
            customer = self.ledger.customers[loan.customer_id]
            state = self.classifier.classify(
                loan.next_payment_date, today, loan.alerts_disabled, loan.status, loan.notice_sent_date
            )
            rows.append({
                "loan_id": loan.loan_id,
                "customer_name": customer.full_name,
                "email": customer.email,
                "property_title": self.ledger.get_property(loan.property_id).title,
                "balance_remaining": loan.balance_remaining,
                "monthly_payment": loan.monthly_payment,
                "next_payment_date": loan.next_payment_date,
                "days_overdue": state.days_overdue,
                "fee_tier": state.fee_tier,
                "notice_sent_date": loan.notice_sent_date,
                "cure_deadline_date": loan.cure_deadline_date,
            })
        rows.sort(key=lambda r: (-r["days_overdue"], r["next_payment_date"] or date.max))

        return {
            "summary": {
                "total_outstanding": money_sum(r["balance_remaining"] for r in rows),
                "total_loans": len(rows),
                "overdue_loans": sum(1 for r in rows if r["days_overdue"] > 0),
                "notices_outstanding": sum(1 for r in rows if r["notice_sent_date"]),
            },
            "loans": rows,
        }

    def defaulted_loans_report(self) -> dict[str, Any]:
        """Defaulted and archived loans with their recovery outcome."""
        rows = []
        for loan in self.ledger.iter_loans():
            record = loan.default_record
            if record is None:
                continue
            rows.append({
                "loan_id": loan.loan_id,
                "status": loan.status,
                "property_title": self.ledger.get_property(loan.property_id).title,
                "default_date": record.default_date,
                "total_paid": record.total_paid,
                "acquisition_cost": record.acquisition_cost,
                "recovery_costs": record.recovery_costs,
                "net_recovery": record.net_recovery,
                "balance_lost": record.balance_written_off,
                "recovery_rate": recovery_rate(record.net_recovery, record.balance_written_off),
            })
        rows.sort(key=lambda r: r["default_date"], reverse=True)

        return {
            "summary": {
                "total_defaulted": len(rows),
                "total_recovery_costs": money_sum(r["recovery_costs"] for r in rows),
                "total_net_recovery": money_sum(r["net_recovery"] for r in rows),
                "total_balance_lost": money_sum(r["balance_lost"] for r in rows),
            },
            "loans": rows,
        }

    def tax_summary(self, year: int) -> dict[str, Any]:
        """Quarterly revenue, expenses and net profit for one tax year.

        Expenses are gateway fees, property acquisitions (by creation date)
        and recovery costs (by default date).
        """
        quarters = {
            q: {"revenue": ZERO, "gateway_fees": ZERO, "acquisition_costs": ZERO, "recovery_costs": ZERO}
            for q in (1, 2, 3, 4)
        }

        for p in self._completed():
            if p.payment_date.year == year:
                bucket = quarters[quarter_of(p.payment_date)]
                bucket["revenue"] += taxable_revenue(p)
                bucket["gateway_fees"] += p.allocation.gateway_fee

        for prop in self.ledger.properties.values():
            if prop.created_at is not None and prop.created_at.year == year:
                quarters[quarter_of(prop.created_at.date())]["acquisition_costs"] += prop.acquisition_cost

        for loan in self.ledger.iter_loans():
            record = loan.default_record
            if record is not None and record.default_date.year == year:
                quarters[quarter_of(record.default_date)]["recovery_costs"] += record.recovery_costs

        rows = []
        for q, bucket in quarters.items():
            expenses = bucket["gateway_fees"] + bucket["acquisition_costs"] + bucket["recovery_costs"]
            rows.append({"quarter": q, **bucket, "expenses": expenses, "net_profit": bucket["revenue"] - expenses})

        totals = {
            key: money_sum(r[key] for r in rows)
            for key in ("revenue", "gateway_fees", "acquisition_costs", "recovery_costs", "expenses", "net_profit")
        }
        return {"year": year, "quarters": rows, "totals": totals}
