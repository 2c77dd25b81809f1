"""Tests for delinquency classification and due dates."""

from datetime import date, datetime

import pytest

from loan_engine.config import FeeSchedule
from loan_engine.engine import DelinquencyClassifier
from loan_engine.engine.dates import first_payment_date, manual_next_due_date, next_due_date
from loan_engine.engine.delinquency import days_between
from loan_engine.exceptions import InvalidInputError
from loan_engine.models import FeeTier, LoanStatus

DUE = date(2024, 1, 1)


@pytest.fixture
def classifier() -> DelinquencyClassifier:
    return DelinquencyClassifier()


class TestDaysBetween:
    """Tests for day counting."""

    def test_calendar_days(self) -> None:
        """Test plain dates."""
        assert days_between(DUE, date(2024, 1, 21)) == 20
        assert days_between(DUE, DUE) == 0
        assert days_between(DUE, date(2023, 12, 20)) == 0

    def test_partial_day_rounds_up(self) -> None:
        """Test one minute past the due date counts as a day."""
        assert days_between(datetime(2024, 1, 1), datetime(2024, 1, 1, 0, 1)) == 1
        assert days_between(DUE, datetime(2024, 1, 2, 12, 0)) == 2


class TestClassify:
    """Tests for DelinquencyClassifier.classify."""

    def test_not_yet_due(self, classifier: DelinquencyClassifier) -> None:
        """Test a loan before its due date."""
        state = classifier.classify(DUE, date(2023, 12, 28))

        assert state.is_overdue is False
        assert state.days_overdue == 0
        assert state.fee_tier is FeeTier.NONE

    def test_due_today_is_current(self, classifier: DelinquencyClassifier) -> None:
        """Test a loan on its due date."""
        assert classifier.classify(DUE, DUE).is_overdue is False

    def test_one_day_late(self, classifier: DelinquencyClassifier) -> None:
        """Test the late fee applies from day one and is not waivable."""
        state = classifier.classify(DUE, date(2024, 1, 2))

        assert state.is_overdue is True
        assert state.fee_tier is FeeTier.LATE_FEE
        assert state.late_fee_applies is True
        assert state.late_fee_waivable is False

    def test_twenty_days_late(self, classifier: DelinquencyClassifier) -> None:
        """Test 20 days overdue: late fee, waivable, no notice yet."""
        state = classifier.classify(DUE, date(2024, 1, 21))

        assert state.days_overdue == 20
        assert state.fee_tier is FeeTier.LATE_FEE
        assert state.late_fee_waivable is True
        assert state.notice_eligible is False

    def test_thirty_days_late(self, classifier: DelinquencyClassifier) -> None:
        """Test the notice tier at 30 days."""
        state = classifier.classify(DUE, date(2024, 1, 31))

        assert state.days_overdue == 30
        assert state.fee_tier is FeeTier.NOTICE
        assert state.notice_eligible is True

    def test_notice_already_sent(self, classifier: DelinquencyClassifier) -> None:
        """Test a second notice is not offered."""
        state = classifier.classify(DUE, date(2024, 2, 15), notice_sent_date=date(2024, 2, 1))

        assert state.fee_tier is FeeTier.LATE_FEE
        assert state.notice_eligible is False

    def test_alerts_disabled(self, classifier: DelinquencyClassifier) -> None:
        """Test disabled alerts suppress the overdue state."""
        state = classifier.classify(DUE, date(2024, 3, 1), alerts_disabled=True)

        assert state.is_overdue is False
        assert state.fee_tier is FeeTier.NONE

    @pytest.mark.parametrize("status", [LoanStatus.PAID_OFF, LoanStatus.DEFAULTED, LoanStatus.ARCHIVED])
    def test_inactive_loans_are_never_overdue(
        self, classifier: DelinquencyClassifier, status: LoanStatus
    ) -> None:
        """Test non-active statuses."""
        assert classifier.classify(DUE, date(2024, 6, 1), status=status).is_overdue is False

    def test_no_due_date(self, classifier: DelinquencyClassifier) -> None:
        """Test a loan without a next payment date."""
        assert classifier.classify(None, date(2024, 6, 1)).is_overdue is False

    def test_grace_period(self) -> None:
        """Test a configured late fee grace period."""
        classifier = DelinquencyClassifier(FeeSchedule(late_fee_grace_days=7))

        assert classifier.classify(DUE, date(2024, 1, 8)).fee_tier is FeeTier.NONE
        assert classifier.classify(DUE, date(2024, 1, 8)).is_overdue is True
        assert classifier.classify(DUE, date(2024, 1, 9)).fee_tier is FeeTier.LATE_FEE


    def test_classify_is_repeatable(self, classifier: DelinquencyClassifier) -> None:
        """Test classifying the same inputs twice gives the same state."""
        first = classifier.classify(DUE, date(2024, 2, 3), notice_sent_date=date(2024, 2, 1))
        second = classifier.classify(DUE, date(2024, 2, 3), notice_sent_date=date(2024, 2, 1))

        assert first == second
        assert first.days_overdue == 33

class TestDueDates:
    """Tests for 1st/15th due date arithmetic."""

    def test_first_payment_due_on_first(self) -> None:
        """Test a loan due on the 1st starts next month."""
        assert first_payment_date(date(2024, 1, 10), 1) == date(2024, 2, 1)
        assert first_payment_date(date(2024, 12, 1), 1) == date(2025, 1, 1)

    def test_first_payment_due_on_fifteenth(self) -> None:
        """Test a loan due on the 15th starts this month when before the 15th."""
        assert first_payment_date(date(2024, 1, 10), 15) == date(2024, 1, 15)
        assert first_payment_date(date(2024, 1, 15), 15) == date(2024, 2, 15)
        assert first_payment_date(date(2024, 12, 20), 15) == date(2025, 1, 15)

    def test_next_due_date_strictly_after(self) -> None:
        """Test the next occurrence is strictly later."""
        assert next_due_date(date(2024, 3, 1), 1) == date(2024, 4, 1)

    def test_manual_interval(self) -> None:
        """Test manual payments move the due date 30 days."""
        assert manual_next_due_date(date(2024, 2, 1)) == date(2024, 3, 2)

    def test_invalid_due_day(self) -> None:
        """Test only the 1st and 15th are accepted."""
        with pytest.raises(InvalidInputError):
            next_due_date(date(2024, 1, 1), 10)
