"""Invoice cycle date arithmetic for credit cards"""

from datetime import timedelta

from finance_tracker.domain.models import BillingCycleConfig, CycleDates, TransactionWindow
from finance_tracker.utils.date_utils import clamped_date, shift_month


def compute_cycle_dates(cycle: BillingCycleConfig, month: int, year: int) -> CycleDates:
    """
    Closing and due dates of the invoice referenced by (month, year).

    Closing falls on the closing day of the reference month. The due date
    stays in the same month only when the due day comes after the closing
    day; otherwise it rolls into the following month (wrapping December).

    Days past the end of a short month are clamped to its last day, so a
    card closing on the 31st closes on Feb 28/29.

    Example:
        closing_day=25, due_day=10, March 2024 -> 2024-03-25 / 2024-04-10
    """
    closing_date = clamped_date(year, month, cycle.closing_day)

    due_month, due_year = month, year
    if cycle.due_day <= cycle.closing_day:
        due_month, due_year = shift_month(month, year, 1)

    due_date = clamped_date(due_year, due_month, cycle.due_day)
    return CycleDates(closing_date=closing_date, due_date=due_date)


def compute_transaction_window(cycle: BillingCycleConfig, month: int, year: int) -> TransactionWindow:
    """
    Transactions accrued to the invoice of (month, year).

    Starts the day after the previous month's closing date and ends on this
    month's closing date, both inclusive. Consecutive windows tile the
    calendar with no gap and no overlap.
    """
    prev_month, prev_year = shift_month(month, year, -1)
    previous_closing = clamped_date(prev_year, prev_month, cycle.closing_day)

    return TransactionWindow(
        start_date=previous_closing + timedelta(days=1),
        end_date=clamped_date(year, month, cycle.closing_day),
    )
