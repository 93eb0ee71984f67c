"""
Finance Tracker - Source Package

Core of a personal finance tracker: expenses, income, investments,
budgets, savings goals and reminders, with premium entitlement
resolution and AI-assisted summaries.

DESIGN PRINCIPLES:
1. Derived numbers are recomputed from records, never stored
2. Fail visibly: an unknown entitlement is never reported as "free"
3. Validate input before any external call
4. Every significant step is auditable
5. External services sit behind swappable interfaces
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
