"""
Expense Tracker - Core Package

A personal finance tracker whose core is a settlement/balance engine:
friend balances from lent/borrowed entries, and greedy debt-netting
of shared group expenses.

DESIGN PRINCIPLES:
1. Balances are pure functions of the entry log
2. Validate first, mutate second, persist last
3. Money is summed in integer paise, never floats
4. Untrusted input is parsed into strict records at the boundary
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
