"""
TransactionRecord: the slice of a jsonParsed getTransaction response the verifier trusts.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class AccountKey(BaseModel):
    pubkey: str
    signer: bool = False
    writable: bool = False

    model_config = {"frozen": True}


class TokenBalance(BaseModel):
    """One pre/post token balance entry. amount is in base units."""

    account_index: int
    mint: str
    owner: str | None = None
    amount: int = 0

    model_config = {"frozen": True}

    @classmethod
    def from_rpc(cls, entry: dict[str, Any]) -> "TokenBalance":
        ui_amount = entry.get("uiTokenAmount") or {}
        return cls(
            account_index=int(entry["accountIndex"]),
            mint=entry["mint"],
            owner=entry.get("owner"),
            amount=int(ui_amount.get("amount") or 0),
        )


class TransactionRecord(BaseModel):
    """Ledger truth about one transaction, read at 'confirmed'."""

    signature: str
    account_keys: list[AccountKey] = Field(default_factory=list)
    pre_balances: list[int] = Field(default_factory=list)
    post_balances: list[int] = Field(default_factory=list)
    pre_token_balances: list[TokenBalance] = Field(default_factory=list)
    post_token_balances: list[TokenBalance] = Field(default_factory=list)
    succeeded: bool

    model_config = {"frozen": True}

    @classmethod
    def from_rpc(cls, signature: str, result: dict[str, Any]) -> "TransactionRecord":
        """
        Build from a getTransaction(encoding=jsonParsed) result.
        accountKeys there already include addresses loaded from lookup tables.
        """
        meta = result.get("meta") or {}
        message = (result.get("transaction") or {}).get("message") or {}
        keys = []
        for key in message.get("accountKeys") or []:
            if isinstance(key, str):
                # legacy "json" encoding: plain strings, no signer flag
                keys.append(AccountKey(pubkey=key))
            else:
                keys.append(
                    AccountKey(
                        pubkey=key["pubkey"],
                        signer=bool(key.get("signer")),
                        writable=bool(key.get("writable")),
                    )
                )
        return cls(
            signature=signature,
            account_keys=keys,
            pre_balances=[int(v) for v in meta.get("preBalances") or []],
            post_balances=[int(v) for v in meta.get("postBalances") or []],
            pre_token_balances=[TokenBalance.from_rpc(e) for e in meta.get("preTokenBalances") or []],
            post_token_balances=[TokenBalance.from_rpc(e) for e in meta.get("postTokenBalances") or []],
            succeeded=meta.get("err") is None,
        )

    def signers(self) -> set[str]:
        return {k.pubkey for k in self.account_keys if k.signer}

    def index_of(self, address: str) -> int | None:
        for i, key in enumerate(self.account_keys):
            if key.pubkey == address:
                return i
        return None

    def native_delta(self, address: str) -> int:
        """post - pre lamports at the address position; missing entries count as 0."""
        idx = self.index_of(address)
        if idx is None:
            return 0
        pre = self.pre_balances[idx] if idx < len(self.pre_balances) else 0
        post = self.post_balances[idx] if idx < len(self.post_balances) else 0
        return post - pre

    def token_delta(self, owner: str, mint: str) -> int:
        """
        Sum of post - pre over token accounts of `mint` owned by `owner`.
        Balances are keyed by (account index, mint, owner); an account created in
        this transaction has no pre entry and starts from 0.
        """
        pre = {
            (b.account_index, b.mint, b.owner): b.amount
            for b in self.pre_token_balances
            if b.owner == owner and b.mint == mint
        }
        post = {
            (b.account_index, b.mint, b.owner): b.amount
            for b in self.post_token_balances
            if b.owner == owner and b.mint == mint
        }
        return sum(post.get(k, 0) - pre.get(k, 0) for k in set(pre) | set(post))
