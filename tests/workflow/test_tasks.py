"""Tests for the Celery host of the workflow: scheduling, countdown, retries, trigger."""
from unittest.mock import MagicMock, patch

import pytest
import redis
from celery.exceptions import Retry

from paygate.core.errors import FailureKind, LedgerQueryError, PaymentVerificationError
from paygate.payments.models import PaymentReceipt, PremiumAccessInput, ReceiverConfig
from paygate.workflow.state import WorkflowRun, WorkflowState
from paygate.workflow.tasks import TRANSIENT_ERRORS, advance_workflow


def _payload(**overrides) -> dict:
    fields = dict(
        input=PremiumAccessInput(tx_signature="abcdefghij1234", wallet="Wallet1", feature=None),
        config=ReceiverConfig(network="devnet", receiver_address="Receiver1"),
    )
    fields.update(overrides)
    return WorkflowRun(**fields).model_dump(mode="json")


@patch("paygate.workflow.tasks.get_finality_wait_seconds", return_value=5.0)
@patch("paygate.workflow.tasks.verify_step")
def test_verified_run_is_rescheduled_after_finality_wait(mock_verify, _wait):
    mock_verify.return_value = PaymentReceipt(wallet="Wallet1", feature=None)

    with patch.object(advance_workflow, "apply_async") as mock_apply:
        result = advance_workflow(_payload())

    assert result["state"] == "waiting_finality"
    mock_apply.assert_called_once()
    kwargs = mock_apply.call_args.kwargs
    assert kwargs["countdown"] == 5.0
    scheduled = WorkflowRun.model_validate(kwargs["args"][0])
    assert scheduled.state is WorkflowState.WAITING_FINALITY
    assert scheduled.receipt.wallet == "Wallet1"


def test_waiting_finality_schedules_unlock_immediately():
    payload = _payload(
        state=WorkflowState.WAITING_FINALITY,
        receipt=PaymentReceipt(wallet="Wallet1", feature=None),
    )
    with patch.object(advance_workflow, "apply_async") as mock_apply:
        advance_workflow(payload)

    kwargs = mock_apply.call_args.kwargs
    assert kwargs["countdown"] is None
    assert kwargs["args"][0]["state"] == "unlocking"


@patch("paygate.workflow.tasks.unlock_step")
def test_unlocking_returns_completed_result(mock_unlock):
    payload = _payload(
        state=WorkflowState.UNLOCKING,
        receipt=PaymentReceipt(wallet="Wallet1", feature="premium-access"),
    )
    with patch.object(advance_workflow, "apply_async") as mock_apply:
        result = advance_workflow(payload)

    assert result == {"feature": "premium-access", "status": "unlocking", "wallet": "Wallet1"}
    mock_unlock.assert_called_once()
    mock_apply.assert_not_called()


@patch("paygate.workflow.tasks.verify_step")
def test_fatal_verification_ends_run_without_rescheduling(mock_verify):
    mock_verify.side_effect = PaymentVerificationError(
        FailureKind.WALLET_DID_NOT_SIGN, "Wallet Wallet1 did not sign transaction"
    )
    with patch.object(advance_workflow, "apply_async") as mock_apply:
        result = advance_workflow(_payload())

    assert result == {
        "error": "Wallet Wallet1 did not sign transaction",
        "failure_kind": "wallet_did_not_sign",
    }
    mock_apply.assert_not_called()


@patch("paygate.workflow.tasks.verify_step")
def test_transient_verification_error_is_raised_for_retry(mock_verify):
    mock_verify.side_effect = LedgerQueryError("Solana RPC getTransaction failed")

    with patch.object(advance_workflow, "apply_async") as mock_apply:
        with pytest.raises(LedgerQueryError):
            advance_workflow(_payload())

    mock_apply.assert_not_called()


def test_task_retries_only_transient_errors():
    assert LedgerQueryError in TRANSIENT_ERRORS
    assert PaymentVerificationError not in TRANSIENT_ERRORS
    assert advance_workflow.max_retries == 3


@patch("paygate.workflow.tasks.SessionLocal")
@patch("paygate.workflow.tasks.FeatureUnlockService")
def test_unlock_step_uses_default_feature_and_commits(mock_service_cls, mock_session_cls):
    from paygate.workflow.tasks import unlock_step

    db = MagicMock()
    mock_session_cls.return_value = db
    run = WorkflowRun.model_validate(
        _payload(state=WorkflowState.UNLOCKING, receipt=PaymentReceipt(wallet="Wallet1", feature=None))
    )

    unlock_step(run)

    mock_service_cls.return_value.grant.assert_called_once_with(
        tx_signature="abcdefghij1234",
        wallet="Wallet1",
        feature="premium-access",
        network="devnet",
    )
    db.commit.assert_called_once()
    db.close.assert_called_once()


@patch("paygate.workflow.tasks.get_ledger_rpc_breaker")
@patch("paygate.workflow.tasks.SolanaRpcClient")
@patch("paygate.workflow.tasks.verify_payment")
def test_verify_step_closes_client(mock_verify_payment, mock_client_cls, _breaker):
    from paygate.workflow.tasks import verify_step

    mock_verify_payment.side_effect = LedgerQueryError("down")
    run = WorkflowRun.model_validate(_payload())

    with pytest.raises(LedgerQueryError):
        verify_step(run)

    mock_client_cls.assert_called_once()
    assert mock_client_cls.call_args.args[0] == "https://api.devnet.solana.com"
    mock_client_cls.return_value.close.assert_called_once()


class TestTrigger:
    @patch("paygate.payments.config.settings")
    def test_trigger_enqueues_one_verifying_run(self, mock_settings):
        mock_settings.solana_network = "solana-devnet"
        mock_settings.receiver_pubkey = "Receiver1"
        mock_settings.solana_rpc_url = None
        mock_settings.default_feature = "premium-access"
        from paygate.workflow.trigger import trigger_workflow

        access = PremiumAccessInput(tx_signature="abcdefghij1234", wallet="Wallet1")
        with patch.object(advance_workflow, "apply_async") as mock_apply:
            result = trigger_workflow(access)

        assert result == {"ok": True}
        mock_apply.assert_called_once()
        run = WorkflowRun.model_validate(mock_apply.call_args.kwargs["args"][0])
        assert run.state is WorkflowState.VERIFYING
        assert run.input == access.model_copy(update={"feature": "premium-access"})
        assert run.config == ReceiverConfig(network="devnet", receiver_address="Receiver1")

    @patch("paygate.payments.config.settings")
    def test_trigger_with_unsupported_network_raises(self, mock_settings):
        from paygate.core.errors import UnsupportedNetworkError
        from paygate.workflow.trigger import trigger_workflow

        mock_settings.solana_network = "polygon"
        mock_settings.receiver_pubkey = "Receiver1"
        mock_settings.solana_rpc_url = None

        with patch.object(advance_workflow, "apply_async") as mock_apply:
            with pytest.raises(UnsupportedNetworkError):
                trigger_workflow(PremiumAccessInput(tx_signature="abcdefghij1234", wallet="Wallet1"))
        mock_apply.assert_not_called()

    @patch("paygate.payments.config.settings")
    def test_trigger_keeps_explicit_feature(self, mock_settings):
        mock_settings.solana_network = "devnet"
        mock_settings.receiver_pubkey = "Receiver1"
        mock_settings.solana_rpc_url = None
        mock_settings.default_feature = "premium-access"
        from paygate.workflow.trigger import trigger_workflow

        access = PremiumAccessInput(tx_signature="abcdefghij1234", wallet="Wallet1", feature="reports")
        with patch.object(advance_workflow, "apply_async") as mock_apply:
            trigger_workflow(access)

        run = WorkflowRun.model_validate(mock_apply.call_args.kwargs["args"][0])
        assert run.input.feature == "reports"


@patch("paygate.workflow.tasks.unlock_step")
@patch("paygate.workflow.tasks.verify_step")
def test_completed_result_reports_the_granted_feature(mock_verify, mock_unlock):
    from paygate.workflow.trigger import trigger_workflow

    granted = []
    mock_verify.side_effect = lambda run: PaymentReceipt(wallet=run.input.wallet, feature=run.input.feature)
    mock_unlock.side_effect = lambda run: granted.append(run.receipt.feature)

    with patch("paygate.payments.config.settings") as mock_settings:
        mock_settings.solana_network = "devnet"
        mock_settings.receiver_pubkey = "Receiver1"
        mock_settings.solana_rpc_url = None
        mock_settings.default_feature = "premium-access"
        with patch.object(advance_workflow, "apply_async") as mock_apply:
            trigger_workflow(PremiumAccessInput(tx_signature="abcdefghij1234", wallet="Wallet1"))
            payload = mock_apply.call_args.kwargs["args"][0]
            result = None
            for _ in range(3):
                mock_apply.reset_mock()
                result = advance_workflow(payload)
                if not mock_apply.called:
                    break
                payload = mock_apply.call_args.kwargs["args"][0]

    assert result == {"feature": "premium-access", "status": "unlocking", "wallet": "Wallet1"}
    assert granted == ["premium-access"]


@patch.dict("paygate.services.circuit_breaker._breakers", clear=True)
@patch("paygate.services.circuit_breaker.redis.Redis.from_url")
def test_redis_outage_behind_breaker_is_retried(mock_from_url, payer, receiver):
    mock_from_url.return_value.get.side_effect = redis.exceptions.ConnectionError("Connection refused")
    payload = _payload(
        input=PremiumAccessInput(tx_signature="abcdefghij1234", wallet=payer),
        config=ReceiverConfig(network="devnet", receiver_address=receiver),
    )

    with patch.object(advance_workflow, "retry", return_value=Retry("retry")) as mock_retry, \
            patch.object(advance_workflow, "apply_async") as mock_apply:
        with pytest.raises(Retry):
            advance_workflow(payload)

    assert isinstance(mock_retry.call_args.kwargs["exc"], redis.exceptions.ConnectionError)
    mock_apply.assert_not_called()


@pytest.mark.parametrize("exc_cls", [redis.exceptions.ConnectionError, redis.exceptions.TimeoutError])
def test_redis_connectivity_errors_are_transient(exc_cls):
    assert issubclass(exc_cls, TRANSIENT_ERRORS)
    assert issubclass(exc_cls, advance_workflow.autoretry_for)


class TestOnFailure:
    def _fail(self, exc, retries):
        advance_workflow.push_request(retries=retries)
        try:
            with patch("paygate.workflow.tasks.logger") as mock_logger:
                advance_workflow.on_failure(exc, "task-1", [_payload()], {}, None)
        finally:
            advance_workflow.pop_request()
        return mock_logger.error.call_args.args[0]

    def test_transient_error_after_last_retry_is_retries_exhausted(self):
        assert self._fail(LedgerQueryError("down"), retries=3) == "workflow_failed_retries_exhausted"

    @pytest.mark.parametrize("retries", [0, 3])
    def test_unexpected_error_is_crashed(self, retries):
        assert self._fail(KeyError("meta"), retries=retries) == "workflow_crashed"
