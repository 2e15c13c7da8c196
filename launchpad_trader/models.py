"""
Trading Models - Shared Data Structures
=======================================

Records passed between the stream feed, the trade extractor and the
sell executor. Everything here is an immutable value.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import base58

from .errors import DecodeError


class DexType(Enum):
    """Protocol that produced a trade event"""
    RAYDIUM_LAUNCHPAD = "raydium_launchpad"
    UNKNOWN = "unknown"


class ConfirmationLevel(Enum):
    """Ledger durability of a submitted transaction"""
    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class TradeInfo:
    """
    Normalized trade event detected on the launchpad.

    low_confidence is True when the economic fields are placeholders
    rather than values decoded from the venue's trade event.
    """
    dex_type: DexType
    slot: int
    signature: str
    pool_id: str
    mint: str
    timestamp: int
    is_buy: bool
    price: int                          # lamports per whole token
    is_reverse: bool = False
    coin_creator: Optional[str] = None
    sol_change: float = 0.0
    token_change: float = 0.0
    liquidity: float = 0.0              # SOL, for filtering out small trades
    virtual_sol_reserves: int = 0
    virtual_token_reserves: int = 0
    low_confidence: bool = False

    def to_dict(self) -> dict:
        return {
            'dex_type': self.dex_type.value,
            'slot': self.slot,
            'signature': self.signature,
            'pool_id': self.pool_id,
            'mint': self.mint,
            'timestamp': self.timestamp,
            'is_buy': self.is_buy,
            'price': self.price,
            'is_reverse': self.is_reverse,
            'coin_creator': self.coin_creator,
            'sol_change': self.sol_change,
            'token_change': self.token_change,
            'liquidity': self.liquidity,
            'virtual_sol_reserves': self.virtual_sol_reserves,
            'virtual_token_reserves': self.virtual_token_reserves,
            'low_confidence': self.low_confidence,
        }


@dataclass(frozen=True)
class SellOutcome:
    """Result of one full sell sequence (primary retries + fallback)"""
    success: bool
    signature: Optional[str] = None
    error: Optional[str] = None
    used_fallback_venue: bool = False
    attempt_count: int = 0              # primary-venue attempts only
    venue: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'signature': self.signature,
            'error': self.error,
            'used_fallback_venue': self.used_fallback_venue,
            'attempt_count': self.attempt_count,
            'venue': self.venue,
        }


@dataclass(frozen=True)
class LedgerStatus:
    """Signature status as reported by the ledger"""
    level: Optional[ConfirmationLevel]
    error: Optional[str] = None

    @property
    def is_confirmed(self) -> bool:
        return self.level in (ConfirmationLevel.CONFIRMED, ConfirmationLevel.FINALIZED)


# ============================================================
# STREAM INPUT
# ============================================================

@dataclass(frozen=True)
class TokenBalance:
    """Token balance snapshot (pre or post execution)"""
    account_index: int
    mint: str
    owner: Optional[str] = None
    amount: int = 0


@dataclass(frozen=True)
class InnerInstruction:
    """Instruction emitted during execution of a top-level instruction"""
    program_id_index: int
    data: bytes = b""


@dataclass(frozen=True)
class InnerInstructionSet:
    """Inner instructions grouped under their top-level instruction index"""
    index: int
    instructions: Tuple[InnerInstruction, ...] = ()


@dataclass(frozen=True)
class TransactionUpdate:
    """One streamed transaction with the metadata the extractor needs"""
    signature: str
    slot: int
    account_keys: Tuple[str, ...] = ()
    log_messages: Tuple[str, ...] = ()
    inner_instructions: Tuple[InnerInstructionSet, ...] = ()
    pre_token_balances: Tuple[TokenBalance, ...] = ()
    post_token_balances: Tuple[TokenBalance, ...] = ()
    block_time: Optional[int] = None
    received_at: Optional[int] = None
    failed: bool = False

    @classmethod
    def from_rpc_json(
        cls,
        payload: Dict[str, Any],
        slot: Optional[int] = None,
        received_at: Optional[int] = None,
    ) -> 'TransactionUpdate':
        """
        Build an update from a JSON-RPC transaction.

        Accepts both the getTransaction result shape and the
        transactionSubscribe notification shape (which nests the
        transaction and meta one level deeper). Inner instruction data
        is base58, as returned with encoding "json".
        """
        try:
            body = payload['transaction']
            if 'meta' in body:
                # transactionSubscribe: {"signature", "slot", "transaction": {"transaction", "meta"}}
                tx, meta = body['transaction'], body.get('meta') or {}
            else:
                tx, meta = body, payload.get('meta') or {}

            message = tx['message']
            signatures = tx.get('signatures') or []
            signature = payload.get('signature') or (signatures[0] if signatures else "")

            account_keys = [_account_key(k) for k in message.get('accountKeys', [])]
            loaded = meta.get('loadedAddresses') or {}
            account_keys.extend(loaded.get('writable', []))
            account_keys.extend(loaded.get('readonly', []))

            inner_sets = []
            for group in meta.get('innerInstructions') or []:
                instructions = []
                for ix in group.get('instructions', []):
                    raw = ix.get('data')
                    if raw is None:
                        # jsonParsed instructions carry no raw payload
                        continue
                    instructions.append(InnerInstruction(
                        program_id_index=ix.get('programIdIndex', -1),
                        data=base58.b58decode(raw),
                    ))
                inner_sets.append(InnerInstructionSet(
                    index=group.get('index', 0),
                    instructions=tuple(instructions),
                ))

            return cls(
                signature=signature,
                slot=int(payload.get('slot', slot or 0)),
                account_keys=tuple(account_keys),
                log_messages=tuple(meta.get('logMessages') or []),
                inner_instructions=tuple(inner_sets),
                pre_token_balances=_token_balances(meta.get('preTokenBalances')),
                post_token_balances=_token_balances(meta.get('postTokenBalances')),
                block_time=payload.get('blockTime'),
                received_at=received_at,
                failed=meta.get('err') is not None,
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(f"Malformed transaction payload: {e}") from e


def _account_key(entry: Any) -> str:
    # jsonParsed encodes keys as {"pubkey": ..., "signer": ..., "writable": ...}
    if isinstance(entry, dict):
        return entry['pubkey']
    return str(entry)


def _token_balances(entries: Optional[List[Dict[str, Any]]]) -> Tuple[TokenBalance, ...]:
    balances = []
    for entry in entries or []:
        ui_amount = entry.get('uiTokenAmount') or {}
        balances.append(TokenBalance(
            account_index=entry.get('accountIndex', -1),
            mint=entry.get('mint', ""),
            owner=entry.get('owner'),
            amount=int(ui_amount.get('amount') or 0),
        ))
    return tuple(balances)
