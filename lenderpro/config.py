"""Centralized configuration for LenderPro.

This module contains the magic numbers, default values, and business rule
constants used by the amortization engine and its collaborators.
"""

# =============================================================================
# CALENDAR
# =============================================================================

# Date format for storage and serialization (ISO 8601)
DATE_FORMAT_STORAGE = "%Y-%m-%d"

# Plain dates are pinned to this local hour so DST changes never shift the day
NOON_HOUR = 12

# Days per period for the fixed-length frequencies (biweekly is a half month)
DAYS_PER_PERIOD = {
    "daily": 1,
    "weekly": 7,
    "biweekly": 15,
}

# Upper bound on period stepping (1200 periods ~ 100 years of monthly terms)
MAX_PERIOD_ITERATIONS = 1200

# =============================================================================
# AMORTIZATION
# =============================================================================

# Remaining balances below this are clamped to zero
BALANCE_EPSILON = 0.01

# Tolerance used when comparing money amounts
AMOUNT_TOLERANCE = 1e-6

# Minimum number of installments in a schedule
MIN_LOAN_DURATION = 1

# =============================================================================
# PORTFOLIO REPORTS
# =============================================================================

# Window for the "upcoming installments" notification list
UPCOMING_WINDOW_DAYS = 7

# Number of months shown in the lent/collected series
REPORT_SERIES_MONTHS = 6

# =============================================================================
# STORAGE & BACKUP
# =============================================================================

# Default SQLite database file
DEFAULT_DB_NAME = "lenderpro.db"

# Backup document metadata
BACKUP_VERSION = "1.0"
BACKUP_APP_NAME = "LenderPro"

# =============================================================================
# LOGGING
# =============================================================================

DEFAULT_LOG_LEVEL = "INFO"

# "standard" or "json"
DEFAULT_LOG_FORMAT = "standard"
