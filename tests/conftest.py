"""Shared fixtures: in-memory ledger and jsonParsed transaction payloads."""
from typing import Any

import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey

from paygate.ledger.base import LedgerLookup


class FakeLedger(LedgerLookup):
    """Answers from dicts and records every query."""

    def __init__(
        self,
        transactions: dict[str, dict] | None = None,
        accounts: set[str] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.transactions = transactions or {}
        self.accounts = set(accounts or ())
        self.error = error
        self.calls: list[tuple] = []

    def get_parsed_transaction(self, signature, commitment="confirmed", max_supported_version=0):
        self.calls.append(("getTransaction", signature, commitment, max_supported_version))
        if self.error is not None:
            raise self.error
        return self.transactions.get(signature)

    def get_account_info(self, address, commitment="confirmed"):
        self.calls.append(("getAccountInfo", address, commitment))
        if self.error is not None:
            raise self.error
        if address in self.accounts:
            return {"lamports": 2039280, "owner": "TokenkegQfeZyiNwAJbNbGYPJrKbYLgvbWHXEJmwzGEK", "data": ["", "base64"]}
        return None

    def get_latest_blockhash(self, commitment="confirmed"):
        self.calls.append(("getLatestBlockhash", commitment))
        return str(Hash.default())


def _tx_result(
    account_keys: list[tuple[str, bool]],
    pre_balances: list[int],
    post_balances: list[int],
    pre_token_balances: list[dict] | None = None,
    post_token_balances: list[dict] | None = None,
    err: Any = None,
) -> dict:
    return {
        "slot": 312_000_000,
        "blockTime": 1_700_000_000,
        "version": 0,
        "meta": {
            "err": err,
            "fee": 5000,
            "preBalances": pre_balances,
            "postBalances": post_balances,
            "preTokenBalances": pre_token_balances or [],
            "postTokenBalances": post_token_balances or [],
        },
        "transaction": {
            "signatures": ["placeholder"],
            "message": {
                "accountKeys": [
                    {"pubkey": key, "signer": signer, "writable": True, "source": "transaction"}
                    for key, signer in account_keys
                ],
                "instructions": [],
            },
        },
    }


def _token_balance(account_index: int, mint: str, owner: str, amount: int) -> dict:
    return {
        "accountIndex": account_index,
        "mint": mint,
        "owner": owner,
        "programId": "TokenkegQfeZyiNwAJbNbGYPJrKbYLgvbWHXEJmwzGEK",
        "uiTokenAmount": {
            "amount": str(amount),
            "decimals": 6,
            "uiAmount": amount / 1_000_000,
            "uiAmountString": str(amount / 1_000_000),
        },
    }


@pytest.fixture
def payer() -> str:
    return str(Pubkey.new_unique())


@pytest.fixture
def receiver() -> str:
    return str(Pubkey.new_unique())


@pytest.fixture
def fake_ledger():
    return FakeLedger


@pytest.fixture
def tx_result():
    return _tx_result


@pytest.fixture
def token_balance():
    return _token_balance
