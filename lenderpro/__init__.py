"""LenderPro: loan-portfolio tracking with an amortization engine."""

__version__ = "1.0.0"
