"""
Decision logging module for the portfolio ledger.

Provides append-only decision logging for audit and reproducibility.
"""

from bitpal_ledger.logging.decision_log import (
    DecisionLogger,
    DecimalEncoder,
)

__all__ = [
    "DecisionLogger",
    "DecimalEncoder",
]
