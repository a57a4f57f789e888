"""Tests for TransactionRecord parsing and balance deltas."""
from paygate.ledger.network import USDC_MINTS
from paygate.ledger.records import TransactionRecord

MINT = USDC_MINTS["devnet"]


def test_from_rpc_reads_signers_and_success(payer, receiver, tx_result):
    raw = tx_result([(payer, True), (receiver, False)], [10, 0], [5, 5])
    record = TransactionRecord.from_rpc("sig-1234567890", raw)

    assert record.succeeded is True
    assert record.signers() == {payer}
    assert record.index_of(receiver) == 1
    assert record.index_of("unknown") is None


def test_from_rpc_failed_execution(payer, receiver, tx_result):
    raw = tx_result([(payer, True), (receiver, False)], [10, 0], [5, 0], err={"InstructionError": [0, "Custom"]})
    assert TransactionRecord.from_rpc("sig", raw).succeeded is False


def test_from_rpc_accepts_plain_string_keys(payer, receiver, tx_result):
    raw = tx_result([], [1, 0], [0, 1])
    raw["transaction"]["message"]["accountKeys"] = [payer, receiver]
    record = TransactionRecord.from_rpc("sig", raw)
    assert record.signers() == set()
    assert record.native_delta(receiver) == 1


def test_native_delta(payer, receiver, tx_result):
    raw = tx_result([(payer, True), (receiver, False)], [10_000_000, 1_000], [4_995_000, 5_001_000])
    record = TransactionRecord.from_rpc("sig", raw)
    assert record.native_delta(receiver) == 5_000_000
    assert record.native_delta(payer) == -5_005_000


def test_native_delta_missing_balances_default_to_zero(payer, receiver, tx_result):
    raw = tx_result([(payer, True), (receiver, False)], [10], [7, 3])
    record = TransactionRecord.from_rpc("sig", raw)
    assert record.native_delta(receiver) == 3
    assert record.native_delta("absent") == 0


def test_token_delta_with_new_receiver_account(payer, receiver, tx_result, token_balance):
    raw = tx_result(
        [(payer, True), ("PayerAta", False), ("ReceiverAta", False)],
        [0, 0, 0],
        [0, 0, 0],
        pre_token_balances=[token_balance(1, MINT, payer, 500_000)],
        post_token_balances=[
            token_balance(1, MINT, payer, 400_000),
            token_balance(2, MINT, receiver, 100_000),
        ],
    )
    record = TransactionRecord.from_rpc("sig", raw)
    assert record.token_delta(receiver, MINT) == 100_000
    assert record.token_delta(payer, MINT) == -100_000


def test_token_delta_ignores_other_mints(payer, receiver, tx_result, token_balance):
    other_mint = USDC_MINTS["mainnet-beta"]
    raw = tx_result(
        [(payer, True), ("ReceiverAta", False)],
        [0, 0],
        [0, 0],
        pre_token_balances=[token_balance(1, other_mint, receiver, 0)],
        post_token_balances=[token_balance(1, other_mint, receiver, 9_000)],
    )
    record = TransactionRecord.from_rpc("sig", raw)
    assert record.token_delta(receiver, MINT) == 0
    assert record.token_delta(receiver, other_mint) == 9_000
