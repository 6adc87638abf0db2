"""Tests for TransactionCoordinator."""

from unittest.mock import MagicMock, call

import pytest
from pymongo.errors import ConfigurationError, DuplicateKeyError, OperationFailure, ServerSelectionTimeoutError

from src.db.transactions import (
    NO_TRANSACTION,
    UNSUPPORTED_MESSAGE,
    InSession,
    NoTransaction,
    TransactionCoordinator,
    is_transactions_unsupported,
)
from src.services.exceptions import InvalidRatingError


class TestTransactionCoordinator:
    @pytest.fixture
    def mongo(self):
        client = MagicMock()
        # Let exceptions escape the session context manager
        client.start_session.return_value.__exit__.return_value = False
        return client

    @pytest.fixture
    def session(self, mongo):
        session = mongo.start_session.return_value.__enter__.return_value
        session.with_transaction.side_effect = lambda callback: callback(session)
        return session

    @pytest.fixture
    def coordinator(self, mongo):
        return TransactionCoordinator(mongo)

    def test_standalone_runs_without_session(self, coordinator, mongo):
        """Test that a standalone server runs work without a session."""
        mongo.admin.command.return_value = {"isWritablePrimary": True}
        work = MagicMock(return_value="done")

        result = coordinator.run_unit(work)

        assert result == "done"
        work.assert_called_once_with(NO_TRANSACTION)
        mongo.start_session.assert_not_called()

    def test_replica_set_runs_in_transaction(self, coordinator, mongo, session):
        """Test that a replica set runs work inside a transaction."""
        mongo.admin.command.return_value = {"setName": "rs0", "isWritablePrimary": True}
        work = MagicMock(return_value="done")

        result = coordinator.run_unit(work)

        assert result == "done"
        work.assert_called_once_with(InSession(session))
        session.with_transaction.assert_called_once()
        mongo.start_session.return_value.__exit__.assert_called_once()

    def test_mongos_runs_in_transaction(self, coordinator, mongo, session):
        """Test that a mongos router counts as transaction capable."""
        mongo.admin.command.return_value = {"msg": "isdbgrid"}

        coordinator.run_unit(lambda uow: uow)

        assert coordinator.transactions_available() is True
        session.with_transaction.assert_called_once()

    def test_probe_is_cached(self, coordinator, mongo, session):
        """Test that the capability probe runs only once."""
        mongo.admin.command.return_value = {"setName": "rs0"}

        coordinator.run_unit(lambda uow: None)
        coordinator.run_unit(lambda uow: None)

        mongo.admin.command.assert_called_once_with("hello")

    def test_probe_failure_means_no_transactions(self, coordinator, mongo):
        """Test that an unreachable server during the probe disables transactions."""
        mongo.admin.command.side_effect = ServerSelectionTimeoutError("no servers")
        work = MagicMock(return_value="done")

        assert coordinator.run_unit(work) == "done"
        work.assert_called_once_with(NO_TRANSACTION)

    def test_reset_probes_again(self, coordinator, mongo):
        """Test that reset forgets the cached capability."""
        mongo.admin.command.return_value = {}
        coordinator.transactions_available()

        coordinator.reset()
        coordinator.transactions_available()

        assert mongo.admin.command.call_count == 2

    def test_unsupported_transactions_downgrade_once(self, coordinator, mongo, session):
        """Test fallback to non-transactional mode when the server rejects transactions."""
        mongo.admin.command.return_value = {"setName": "rs0"}
        work = MagicMock(side_effect=[OperationFailure(UNSUPPORTED_MESSAGE, code=20), "done"])

        result = coordinator.run_unit(work)

        assert result == "done"
        assert work.call_args_list == [call(InSession(session)), call(NO_TRANSACTION)]
        assert coordinator.transactions_available() is False
        mongo.start_session.return_value.__exit__.assert_called_once()

    def test_downgrade_is_permanent(self, coordinator, mongo, session):
        """Test that later units no longer open a session after a downgrade."""
        mongo.admin.command.return_value = {"setName": "rs0"}
        coordinator.run_unit(MagicMock(side_effect=[OperationFailure(UNSUPPORTED_MESSAGE, code=20), None]))

        work = MagicMock(return_value="later")
        assert coordinator.run_unit(work) == "later"

        work.assert_called_once_with(NO_TRANSACTION)
        assert mongo.start_session.call_count == 1
        mongo.admin.command.assert_called_once()

    def test_business_error_propagates_without_downgrade(self, coordinator, mongo, session):
        """Test that domain errors abort the unit and keep transactions enabled."""
        mongo.admin.command.return_value = {"setName": "rs0"}
        work = MagicMock(side_effect=InvalidRatingError("Rating must be between 1 and 5"))

        with pytest.raises(InvalidRatingError):
            coordinator.run_unit(work)

        work.assert_called_once_with(InSession(session))
        assert coordinator.transactions_available() is True
        mongo.start_session.return_value.__exit__.assert_called_once()

    def test_other_store_errors_propagate(self, coordinator, mongo, session):
        """Test that unrelated server failures are not mistaken for missing transactions."""
        mongo.admin.command.return_value = {"setName": "rs0"}
        work = MagicMock(side_effect=DuplicateKeyError("E11000 duplicate key error", code=11000))

        with pytest.raises(DuplicateKeyError):
            coordinator.run_unit(work)

        work.assert_called_once()
        assert coordinator.transactions_available() is True

    def test_business_error_in_degraded_mode_propagates(self, coordinator, mongo):
        """Test that errors from work propagate unchanged without a session."""
        mongo.admin.command.return_value = {}

        with pytest.raises(InvalidRatingError):
            coordinator.run_unit(MagicMock(side_effect=InvalidRatingError("bad rating")))


class TestUnitOfWork:
    def test_no_transaction_options(self):
        """Test that the non-transactional unit passes no session."""
        assert NoTransaction().options() == {}
        assert NO_TRANSACTION.atomic is False

    def test_in_session_options(self):
        """Test that the transactional unit passes its session."""
        session = MagicMock()
        uow = InSession(session)

        assert uow.options() == {"session": session}
        assert uow.atomic is True


class TestIsTransactionsUnsupported:
    def test_unsupported_message(self):
        """Test detection by the server message."""
        assert is_transactions_unsupported(OperationFailure(UNSUPPORTED_MESSAGE, code=20))

    def test_illegal_operation_about_transactions(self):
        """Test detection by IllegalOperation mentioning transactions."""
        assert is_transactions_unsupported(OperationFailure("Transactions are not allowed here", code=20))

    def test_illegal_operation_unrelated(self):
        """Test that other IllegalOperation failures are not matched."""
        assert not is_transactions_unsupported(OperationFailure("cannot drop collection", code=20))

    def test_configuration_error(self):
        """Test detection of the driver-side configuration error."""
        assert is_transactions_unsupported(ConfigurationError("Transactions are not supported by this deployment"))

    def test_other_errors(self):
        """Test that other exceptions are not matched."""
        assert not is_transactions_unsupported(OperationFailure("command failed", code=8000))
        assert not is_transactions_unsupported(ValueError(UNSUPPORTED_MESSAGE))
