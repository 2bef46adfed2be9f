"""
FinanceApp - Source Package

A personal-finance tracker: income/expense transactions against
categories and accounts, budgets with alerts, calendar and report views,
and profile settings.

DESIGN PRINCIPLES:
1. Storage first, memory second: the in-memory state only changes after
   storage accepted the write
2. Storage layer is swappable (hosted spreadsheet or local file)
3. Derived values are recomputed, never cached
4. Side effects (alert e-mails) never break the main flow
"""

__version__ = "1.0.0"
__author__ = "FinanceApp Team"
