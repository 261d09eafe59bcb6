"""Effective display status of an installment.

"Late" depends on the wall clock, so it is derived on every read and never
stored.
"""
from datetime import datetime

from lenderpro.data_structures import InstallmentStatus
from lenderpro.dates import parse_date


def effective_status(installment, today=None) -> InstallmentStatus:
    """Return PAID, LATE or PENDING for ``installment`` as of ``today``.

    A recorded payment always wins. Otherwise the due date and ``today`` are
    compared as calendar dates: strictly after the due date is LATE.
    """
    if installment.status == InstallmentStatus.PAID:
        return InstallmentStatus.PAID

    today = parse_date(today if today is not None else datetime.now()).date()
    due = parse_date(installment.due_date).date()

    if today > due:
        return InstallmentStatus.LATE
    return InstallmentStatus.PENDING
