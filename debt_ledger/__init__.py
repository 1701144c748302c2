"""
Debt Ledger - Source Package

A small personal debt ledger ("Sổ Nợ"): people, their running
balances, and the debt/payment history recorded against each of them.

DESIGN PRINCIPLES:
1. The store owns the running total; the app only re-fetches it
2. Every failed call ends in one visible message
3. Nothing changes without edit mode
4. Every mutation is audited
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Debt Ledger Team"
