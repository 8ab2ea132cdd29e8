"""
Retrying Transactions

Runs units of work inside database transactions, retrying the whole unit
when the database reports a transient conflict (stale rows, serialization
failures, deadlocks, dropped connections).

Call Shapes
-----------
- `do_in_transaction(work)`: join the active transaction if there is one,
  otherwise start a new one with retries.
- `do_in_transaction(work, read_only, requires_new)`: `requires_new=True`
  always starts a fresh transaction in its own session, even when one is
  already active. `read_only=True` rolls back instead of committing.

A joined unit of work runs exactly once; a conflict inside it propagates to
the outer transaction, which owns the retry.

The active transaction is tracked per asyncio task with a ContextVar, so
concurrent requests never see each other's transactions.
"""

from __future__ import annotations

import asyncio
import logging
import random
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from ..config import settings

logger = logging.getLogger("webscripts.tx")

T = TypeVar("T")

TransactionWork = Callable[[], Awaitable[T]]
SessionFactory = Callable[[], Any]

# Serialization failure and deadlock detected
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})

_MAX_CAUSE_DEPTH = 10


# ---------------------------------------------------------------------
# Active Transaction
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class TransactionContext:
    id: str
    session: AsyncSession
    read_only: bool = False


_current_transaction: ContextVar[Optional[TransactionContext]] = ContextVar(
    "current_transaction", default=None
)


def get_current_transaction() -> Optional[TransactionContext]:
    return _current_transaction.get()


def get_transaction_id() -> Optional[str]:
    """Id of the transaction active in this task, or None outside one."""
    tx = _current_transaction.get()
    return tx.id if tx is not None else None


def get_current_session() -> Optional[AsyncSession]:
    tx = _current_transaction.get()
    return tx.session if tx is not None else None


# ---------------------------------------------------------------------
# Retry Classification
# ---------------------------------------------------------------------

def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = exc.orig
    if orig is None:
        return None
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_retryable(exc: BaseException) -> bool:
    """
    Return True if `exc`, or any exception in its explicit cause chain
    (`raise ... from`), is a transient database conflict worth retrying.
    Exceptions merely raised while handling a conflict are not retried.
    """
    current: Optional[BaseException] = exc
    depth = 0
    while current is not None and depth < _MAX_CAUSE_DEPTH:
        if isinstance(current, (StaleDataError, OperationalError)):
            return True
        if isinstance(current, DBAPIError):
            if current.connection_invalidated:
                return True
            if _sqlstate(current) in RETRYABLE_SQLSTATES:
                return True
        current = current.__cause__
        depth += 1
    return False


# ---------------------------------------------------------------------
# Helper
# ---------------------------------------------------------------------

class RetryingTransactionHelper:
    """
    Executes work inside a transaction with conflict retries.

    Parameters
    ----------
    session_factory : Callable
        Zero-argument callable returning an async context manager that
        yields an `AsyncSession` (e.g. `AsyncSessionLocal`).
    max_retries : Optional[int]
        Retries after the first attempt. Defaults to `settings.tx_max_retries`.
    min_retry_wait_ms, max_retry_wait_ms, retry_wait_increment_ms : Optional[int]
        Backoff window. The wait before retry `n` is drawn uniformly from
        `[min, min + increment * n]` and capped at `max`.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        max_retries: Optional[int] = None,
        min_retry_wait_ms: Optional[int] = None,
        max_retry_wait_ms: Optional[int] = None,
        retry_wait_increment_ms: Optional[int] = None,
    ) -> None:
        self._session_factory = session_factory
        self._max_retries = settings.tx_max_retries if max_retries is None else max_retries
        self._min_wait_ms = (
            settings.tx_min_retry_wait_ms if min_retry_wait_ms is None else min_retry_wait_ms
        )
        self._max_wait_ms = (
            settings.tx_max_retry_wait_ms if max_retry_wait_ms is None else max_retry_wait_ms
        )
        self._increment_ms = (
            settings.tx_retry_wait_increment_ms
            if retry_wait_increment_ms is None
            else retry_wait_increment_ms
        )

        if self._max_retries < 0:
            raise ValueError(f"max_retries must be >= 0; got {self._max_retries}")

    @property
    def max_retries(self) -> int:
        return self._max_retries

    async def do_in_transaction(
        self,
        work: TransactionWork[T],
        read_only: bool = False,
        requires_new: bool = False,
    ) -> T:
        """
        Run `work` inside a transaction.

        Returns
        -------
        T
            Whatever `work` returns.

        Raises
        ------
        Exception
            Any non-retryable error from `work` or the commit, or the last
            retryable error once retries are exhausted.
        """
        active = _current_transaction.get()
        if active is not None and not requires_new:
            logger.debug("Joining transaction %s", active.id)
            return await work()

        attempt = 0
        while True:
            try:
                return await self._run_once(work, read_only)
            except Exception as exc:
                if not is_retryable(exc):
                    raise
                if attempt >= self._max_retries:
                    logger.warning(
                        "Transaction failed after %d attempt(s); giving up: %s",
                        attempt + 1,
                        exc,
                    )
                    raise

                attempt += 1
                wait_ms = self._retry_wait_ms(attempt)
                logger.info(
                    "Retrying transaction (attempt %d of %d) after %d ms: %s",
                    attempt + 1,
                    self._max_retries + 1,
                    wait_ms,
                    exc,
                )
                await asyncio.sleep(wait_ms / 1000.0)

    def _retry_wait_ms(self, attempt: int) -> int:
        upper = self._min_wait_ms + self._increment_ms * attempt
        wait = random.randint(self._min_wait_ms, max(self._min_wait_ms, upper))
        return min(wait, self._max_wait_ms)

    async def _run_once(self, work: TransactionWork[T], read_only: bool) -> T:
        async with self._session_factory() as session:
            tx = TransactionContext(id=str(uuid.uuid4()), session=session, read_only=read_only)
            token = _current_transaction.set(tx)
            try:
                result = await work()
                if read_only:
                    await session.rollback()
                else:
                    await session.commit()
                return result
            except BaseException:
                await session.rollback()
                raise
            finally:
                _current_transaction.reset(token)
