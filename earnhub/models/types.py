"""
Standard type definitions for database models.

Provides consistent types for monetary and percentage fields across all models.

PostgreSQL stores these as exact NUMERIC. SQLite has no decimal storage
class: values are kept as REAL and `col = col + delta` runs in floating
point there, so SQLite is for tests and local runs only; the result
processor rounds back to the column scale on read.
"""

from sqlalchemy import DECIMAL

from earnhub.config.constants import MONEY_SCALE

# Standard money type for amounts, balances, rewards, commissions
# Precision: 18 digits total, 2 after decimal point (currency minor unit)
# Range: up to 9,999,999,999,999,999.99
MoneyType = DECIMAL(18, MONEY_SCALE)

# Base amounts kept unrounded for commission audit (rate * base)
# Precision: 18 digits total, 4 after decimal point
PreciseMoneyType = DECIMAL(18, 4)

# Precise rate percentage type for commission calculations
# Precision: 10 digits total, 4 after decimal point
# Suitable for: commission percents (e.g., 3.0000%, 0.2500%)
# Range: 0.0000 to 999999.9999
RatePercentType = DECIMAL(10, 4)
