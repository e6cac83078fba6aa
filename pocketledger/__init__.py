"""
pocketledger - Source Package

A small personal ledger: categorized income and expenses, per-category
spending limits, and transfers between users, with a running balance
that never goes inconsistent.

DESIGN PRINCIPLES:
1. A category is income or expense, forever, from its first use
2. Reject before mutating - a declined operation changes nothing
3. A transfer debits and credits together or not at all
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "pocketledger Team"
