"""
Report generation module for LenderPro.
Handles portfolio metrics, schedule tables and the lent/collected series.
"""
import logging
from datetime import datetime, timedelta

import pandas as pd

from lenderpro.config import REPORT_SERIES_MONTHS, UPCOMING_WINDOW_DAYS
from lenderpro.data_structures import (
    InstallmentStatus,
    LoanStatus,
    PortfolioMetrics,
    UpcomingInstallment,
)
from lenderpro.dates import parse_date
from lenderpro.labels import display_label
from lenderpro.services.status_resolver import effective_status

logger = logging.getLogger(__name__)

SCHEDULE_COLUMNS = ["number", "due_date", "total_amount", "capital_portion",
                    "interest_portion", "status", "status_label", "payment_date"]


class ReportGenerator:
    def __init__(self, db_manager):
        self.db = db_manager

    def schedule_df(self, loan, today=None):
        """Installment table of a loan with the effective status of each row."""
        rows = []
        for inst in loan.installments:
            status = effective_status(inst, today)
            rows.append({
                "number": inst.number,
                "due_date": inst.due_date,
                "total_amount": inst.total_amount,
                "capital_portion": inst.capital_portion,
                "interest_portion": inst.interest_portion,
                "status": status.value,
                "status_label": display_label(status),
                "payment_date": inst.payment_date,
            })
        return pd.DataFrame(rows, columns=SCHEDULE_COLUMNS)

    def portfolio_metrics(self, today=None) -> PortfolioMetrics:
        loans = self.db.get_loans()
        clients = self.db.get_clients()

        total_lent = sum(l.principal for l in loans)
        total_payable = sum(l.total_payable for l in loans)
        total_collected = sum(l.total_paid for l in loans)

        return PortfolioMetrics(
            total_lent=total_lent,
            total_collected=total_collected,
            estimated_profit=total_payable - total_lent,
            outstanding=total_payable - total_collected,
            active_loans_count=sum(1 for l in loans if l.status == LoanStatus.ACTIVE),
            clients_count=len(clients),
            upcoming_installments=self.upcoming_installments(today),
        )

    def upcoming_installments(self, today=None, window_days=UPCOMING_WINDOW_DAYS):
        """Unpaid installments due between today and today + window, soonest first."""
        today = parse_date(today if today is not None else datetime.now()).date()
        horizon = today + timedelta(days=window_days)
        names = {c.id: c.name for c in self.db.get_clients()}

        upcoming = []
        for loan in self.db.get_loans():
            if loan.status == LoanStatus.COMPLETED:
                continue
            for inst in loan.installments:
                if inst.status == InstallmentStatus.PAID:
                    continue
                due = parse_date(inst.due_date).date()
                if today <= due <= horizon:
                    upcoming.append(UpcomingInstallment(
                        loan_id=loan.id,
                        client_name=names.get(loan.client_id, "Unknown client"),
                        number=inst.number,
                        amount=inst.total_amount,
                        due_date=inst.due_date,
                        days_until=(due - today).days,
                    ))

        upcoming.sort(key=lambda u: (u.days_until, u.loan_id, u.number))
        return upcoming

    def monthly_series(self, months=REPORT_SERIES_MONTHS):
        """Lent and collected amounts grouped by the loans' start month.

        Returns:
            DataFrame with columns month (YYYY-MM), lent, collected; the last
            ``months`` months that have loans, oldest first.
        """
        loans = self.db.get_loans()
        if not loans:
            return pd.DataFrame(columns=["month", "lent", "collected"])

        df = pd.DataFrame({
            "start_date": pd.to_datetime([l.start_date for l in loans], format="%Y-%m-%d"),
            "lent": [l.principal for l in loans],
            "collected": [l.total_paid for l in loans],
        })
        df["month"] = df["start_date"].dt.strftime("%Y-%m")

        series = (df.groupby("month", as_index=False)[["lent", "collected"]]
                  .sum()
                  .sort_values("month")
                  .tail(months)
                  .reset_index(drop=True))
        logger.debug("Built monthly series for %d months", len(series))
        return series
