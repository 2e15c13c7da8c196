"""
Launchpad Payload Decoding
==========================

Bounds-checked readers for raw instruction payloads and the decoder for
the launchpad's TradeEvent.

The program emits events through a self-CPI: the inner instruction data is
EVENT_IX_TAG (8 bytes) + event discriminator (8 bytes) + borsh fields.

TradeEvent layout (after the 16-byte header):
    pool_state          pubkey (32)
    total_base_sell     u64
    virtual_base        u64
    virtual_quote       u64
    real_base_before    u64
    real_quote_before   u64
    real_base_after     u64
    real_quote_after    u64
    amount_in           u64
    amount_out          u64
    protocol_fee        u64
    platform_fee        u64
    share_fee           u64
    trade_direction     u8   (0 = buy, 1 = sell)
    pool_status         u8
"""

import hashlib
import struct
from dataclasses import dataclass
from typing import Optional

import base58

from ..errors import DecodeError


# Anchor event-CPI tag (sha256("anchor:event")[:8], little-endian)
EVENT_IX_TAG = bytes.fromhex("e445a52e51cb9a1d")
TRADE_EVENT_DISCRIMINATOR = hashlib.sha256(b"event:TradeEvent").digest()[:8]

HEADER_LEN = 16
TRADE_EVENT_LEN = HEADER_LEN + 32 + 12 * 8 + 2


def read_u64(buffer: bytes, offset: int) -> Optional[int]:
    """Little-endian u64 at offset, None if the buffer is too short."""
    if offset < 0 or offset + 8 > len(buffer):
        return None
    return struct.unpack_from("<Q", buffer, offset)[0]


def read_u8(buffer: bytes, offset: int) -> Optional[int]:
    """Single byte at offset, None if out of range."""
    if offset < 0 or offset >= len(buffer):
        return None
    return buffer[offset]


def read_pubkey(buffer: bytes, offset: int) -> Optional[str]:
    """32-byte public key at offset as base58, None if the buffer is too short."""
    if offset < 0 or offset + 32 > len(buffer):
        return None
    return base58.b58encode(bytes(buffer[offset:offset + 32])).decode()


@dataclass(frozen=True)
class TradeEvent:
    """Decoded launchpad TradeEvent"""
    pool_state: str
    total_base_sell: int
    virtual_base: int
    virtual_quote: int
    real_base_before: int
    real_quote_before: int
    real_base_after: int
    real_quote_after: int
    amount_in: int
    amount_out: int
    protocol_fee: int
    platform_fee: int
    share_fee: int
    trade_direction: int
    pool_status: int

    @property
    def is_buy(self) -> bool:
        return self.trade_direction == 0

    @property
    def quote_reserve(self) -> int:
        """Effective quote (SOL) reserve after the trade, in lamports"""
        return self.virtual_quote + self.real_quote_after

    @property
    def base_reserve(self) -> int:
        """Effective base (token) reserve after the trade, in base units"""
        return max(self.virtual_base - self.real_base_after, 0)


def is_trade_event(data: bytes) -> bool:
    return (
        len(data) >= HEADER_LEN
        and data[:8] == EVENT_IX_TAG
        and data[8:16] == TRADE_EVENT_DISCRIMINATOR
    )


def decode_trade_event(data: bytes) -> Optional[TradeEvent]:
    """
    Decode a TradeEvent from inner instruction data.

    Returns:
        TradeEvent, or None if the payload is some other instruction

    Raises:
        DecodeError: header matches but the payload is truncated
    """
    if not is_trade_event(data):
        return None

    if len(data) < TRADE_EVENT_LEN:
        raise DecodeError(
            f"TradeEvent payload too short: {len(data)} < {TRADE_EVENT_LEN} bytes"
        )

    offset = HEADER_LEN
    pool_state = read_pubkey(data, offset)
    offset += 32

    values = []
    for _ in range(12):
        values.append(read_u64(data, offset))
        offset += 8

    trade_direction = read_u8(data, offset)
    pool_status = read_u8(data, offset + 1)

    return TradeEvent(pool_state, *values, trade_direction, pool_status)


def encode_trade_event(event: TradeEvent) -> bytes:
    """Inverse of decode_trade_event (fixtures and replay tooling)."""
    data = EVENT_IX_TAG + TRADE_EVENT_DISCRIMINATOR
    data += base58.b58decode(event.pool_state)
    data += struct.pack(
        "<12Q",
        event.total_base_sell,
        event.virtual_base,
        event.virtual_quote,
        event.real_base_before,
        event.real_quote_before,
        event.real_base_after,
        event.real_quote_after,
        event.amount_in,
        event.amount_out,
        event.protocol_fee,
        event.platform_fee,
        event.share_fee,
    )
    data += bytes([event.trade_direction, event.pool_status])
    return data
