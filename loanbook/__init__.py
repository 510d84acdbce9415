"""
Loanbook

Short-term cash lending ledger: clients, loans with single-payment or
installment repayment plans, payment bookkeeping and portfolio statistics.
All money is handled as Decimal.
"""

__version__ = "1.0.0"
