"""Kitchen Ledger - inventory and cost reconciliation engine for restaurant operators."""

__version__ = "0.1.0"
