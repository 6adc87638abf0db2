"""Unit-of-work coordination over MongoDB sessions.

Multi-document transactions only exist on replica sets and sharded clusters.
The coordinator probes the deployment once, caches the answer and runs every
unit of work either inside a transaction or, on a standalone server, as plain
sequential writes. In that degraded mode two concurrent units touching the same
restaurant can interleave and race on its aggregate fields.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from pymongo import MongoClient
from pymongo.client_session import ClientSession
from pymongo.errors import ConfigurationError, OperationFailure, PyMongoError

from src.db.mongodb_client import mongo_client

logger = logging.getLogger(__name__)

T = TypeVar("T")

ILLEGAL_OPERATION = 20
UNSUPPORTED_MESSAGE = "Transaction numbers are only allowed on a replica set member or mongos"


@dataclass(frozen=True)
class NoTransaction:
    """Storage calls run without a session."""

    atomic = False

    def options(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class InSession:
    """Storage calls run inside the transaction owned by session."""

    session: ClientSession
    atomic = True

    def options(self) -> dict[str, Any]:
        return {"session": self.session}


UnitOfWork = NoTransaction | InSession

NO_TRANSACTION = NoTransaction()


def is_transactions_unsupported(error: Exception) -> bool:
    """Tell the server's "no transactions here" failure apart from any other error."""
    message = str(error)
    if isinstance(error, OperationFailure):
        if UNSUPPORTED_MESSAGE in message:
            return True
        return error.code == ILLEGAL_OPERATION and "transaction" in message.lower()
    if isinstance(error, ConfigurationError):
        return "transactions are not supported" in message.lower()
    return False


class TransactionCoordinator:
    def __init__(self, client: MongoClient):
        self.client = client
        self._transactions_available: bool | None = None

    def _probe(self) -> bool:
        """Ask the server whether it is a replica set member or a mongos router."""
        try:
            hello = self.client.admin.command("hello")
        except PyMongoError as e:
            logger.warning(f"Could not check transaction support: {e}")
            return False

        available = bool(hello.get("setName")) or hello.get("msg") == "isdbgrid"
        if not available:
            logger.warning("Transactions are not available: MongoDB is neither a replica set nor a sharded cluster")
        return available

    def transactions_available(self) -> bool:
        """Cached transaction capability, probed on first use."""
        if self._transactions_available is None:
            self._transactions_available = self._probe()
        return self._transactions_available

    def reset(self):
        """Forget the cached capability so the next unit probes again."""
        self._transactions_available = None

    def run_unit(self, work: Callable[[UnitOfWork], T]) -> T:
        """
        Run work as one unit, atomically when the deployment allows it.

        Args:
            work: Callable receiving the unit of work whose options() must be
                passed to every storage call it makes

        Returns:
            Whatever work returns

        Raises:
            Anything raised by work. Only the server's "transactions unsupported"
            failure is absorbed: the coordinator switches to non-transactional
            mode for good and runs work once more without a session.
        """
        if not self.transactions_available():
            logger.warning("Running unit of work without a transaction")
            return work(NO_TRANSACTION)

        try:
            with self.client.start_session() as session:
                return session.with_transaction(lambda s: work(InSession(s)))
        except (OperationFailure, ConfigurationError) as e:
            if not is_transactions_unsupported(e):
                raise
            logger.warning(f"Server rejected the transaction, falling back to non-transactional mode: {e}")
            self._transactions_available = False

        return work(NO_TRANSACTION)


# Singleton instance
transaction_coordinator = TransactionCoordinator(mongo_client.client)
