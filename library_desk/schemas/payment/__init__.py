"""
Payment schemas package.
"""

from library_desk.schemas.payment.fee_transaction import (
    FeeTransaction,
    FeeTransactionCreate,
)

__all__ = ["FeeTransaction", "FeeTransactionCreate"]
