"""
Transaction parsing: raw streamed updates to TradeInfo records.
"""
from .decode import (
    TradeEvent,
    decode_trade_event,
    encode_trade_event,
    read_pubkey,
    read_u8,
    read_u64,
)
from .transaction_parser import (
    BUY_MARKER,
    SELL_MARKER,
    SWAP_MARKER,
    TradeEventExtractor,
    process_transaction,
    resolve_direction,
    resolve_mint,
)

__all__ = [
    'TradeEvent',
    'decode_trade_event',
    'encode_trade_event',
    'read_pubkey',
    'read_u8',
    'read_u64',
    'BUY_MARKER',
    'SELL_MARKER',
    'SWAP_MARKER',
    'TradeEventExtractor',
    'process_transaction',
    'resolve_direction',
    'resolve_mint',
]
