"""
Database Package

Provides SQLAlchemy async session management, model definitions, and the
retrying transaction helper.
"""

from .session import async_engine, AsyncSessionLocal
from .models import Base, DeploymentServer
from .transaction import (
    RetryingTransactionHelper,
    TransactionContext,
    get_current_session,
    get_current_transaction,
    get_transaction_id,
    is_retryable,
)

__all__ = [
    "async_engine",
    "AsyncSessionLocal",
    "Base",
    "DeploymentServer",
    "RetryingTransactionHelper",
    "TransactionContext",
    "get_current_session",
    "get_current_transaction",
    "get_transaction_id",
    "is_retryable",
]
