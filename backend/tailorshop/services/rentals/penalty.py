"""
Late-return penalty assessment.

Pure functions computing the due-date standing of a rented item and the
overdue penalty owed on a given day. Nothing here touches the database.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union

from tailorshop.services.rentals.enums import PenaltyClassification, RentalStatus

DEFAULT_DAILY_RATE = Decimal("100")
DEFAULT_DUE_SOON_DAYS = 3

DateLike = Union[date, datetime]


@dataclass(frozen=True)
class PenaltyAssessment:
    """
    Outcome of a penalty evaluation.

    Attributes:
        classification: Due-date standing
        penalty_amount: Penalty owed as of the evaluation day
        days_overdue: Whole days past the due date (0 when not overdue)
        days_remaining: Whole days until the due date (negative when overdue)
    """

    classification: PenaltyClassification
    penalty_amount: Decimal
    days_overdue: int
    days_remaining: Optional[int] = None

    @property
    def is_overdue(self) -> bool:
        return self.classification == PenaltyClassification.OVERDUE


NOT_APPLICABLE = PenaltyAssessment(
    classification=PenaltyClassification.NOT_APPLICABLE,
    penalty_amount=Decimal("0"),
    days_overdue=0,
)


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def assess_penalty(
    due_date: DateLike,
    today: DateLike,
    daily_rate: Decimal = DEFAULT_DAILY_RATE,
    due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
) -> PenaltyAssessment:
    """
    Assess the overdue penalty for a rental due on due_date.

    Both dates are compared at day granularity, so a datetime argument is
    truncated to its calendar date. An item due today is not yet overdue;
    it becomes overdue the following day.

    Args:
        due_date: Rental end date
        today: Day of evaluation
        daily_rate: Penalty charged per overdue day
        due_soon_days: Window before the due date flagged as due soon

    Returns:
        PenaltyAssessment for the evaluation day

    Example:
        >>> assess_penalty(date(2024, 3, 9), date(2024, 3, 10)).penalty_amount
        Decimal('100')
    """
    diff_days = (_as_date(due_date) - _as_date(today)).days

    if diff_days < 0:
        days_overdue = abs(diff_days)
        return PenaltyAssessment(
            classification=PenaltyClassification.OVERDUE,
            penalty_amount=Decimal(days_overdue) * Decimal(daily_rate),
            days_overdue=days_overdue,
            days_remaining=diff_days,
        )

    if diff_days == 0:
        classification = PenaltyClassification.DUE_TODAY
    elif diff_days <= due_soon_days:
        classification = PenaltyClassification.DUE_SOON
    else:
        classification = PenaltyClassification.ON_TRACK

    return PenaltyAssessment(
        classification=classification,
        penalty_amount=Decimal("0"),
        days_overdue=0,
        days_remaining=diff_days,
    )


def assess_for_status(
    status: RentalStatus,
    due_date: Optional[DateLike],
    today: DateLike,
    daily_rate: Decimal = DEFAULT_DAILY_RATE,
    due_soon_days: int = DEFAULT_DUE_SOON_DAYS,
) -> PenaltyAssessment:
    """
    Assess the penalty only while the garment is out with the customer.

    Before pickup and after return the assessment is NOT_APPLICABLE.
    """
    if status != RentalStatus.RENTED or due_date is None:
        return NOT_APPLICABLE
    return assess_penalty(due_date, today, daily_rate, due_soon_days)
