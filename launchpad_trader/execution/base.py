"""
Venue Client Interface
======================

Every tradable venue exposes the same two operations:

    built = await venue.build_sell(trade_info, sell_config, wallet)
    signature = await venue.submit(built, recent_blockhash)

build_sell raises BuildError (QuoteError/RouteError for routed venues);
submit raises SubmitError.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from typing import Any, List, Optional

from solders.pubkey import Pubkey

from ..core.config import SwapConfig
from ..errors import BuildError
from ..models import TradeInfo


class ExecutionVenue(Enum):
    """Execution venues"""
    RAYDIUM_LAUNCHPAD = "raydium_launchpad"     # primary: direct instructions
    JUPITER = "jupiter"                         # fallback: aggregator route


@dataclass
class BuiltSell:
    """
    Signer plus what it has to sign.

    Instruction-level venues fill instructions; routed venues return a
    pre-built unsigned transaction instead.
    """
    signer: Any                                 # solders.Keypair
    instructions: List[Any] = field(default_factory=list)
    transaction: Optional[Any] = None           # solders.VersionedTransaction
    amount_in: int = 0
    min_amount_out: int = 0


class VenueClient(ABC):
    """Build and submit sells against one venue."""

    venue: ExecutionVenue

    @property
    def name(self) -> str:
        return self.venue.value

    @abstractmethod
    async def build_sell(
        self,
        trade_info: TradeInfo,
        sell_config: SwapConfig,
        wallet: Any,
    ) -> BuiltSell:
        """
        Construct the sell for the position described by trade_info.

        Raises:
            BuildError: accounts cannot be derived or data is missing
        """

    @abstractmethod
    async def submit(self, built: BuiltSell, recent_blockhash: Any) -> str:
        """
        Sign and broadcast; returns the transaction signature.

        Raises:
            SubmitError: network, sequencing or relay rejection
        """


def parse_mint(mint: str) -> Pubkey:
    """Mint string as a Pubkey; BuildError when it is not a valid key."""
    try:
        return Pubkey.from_string(mint)
    except ValueError as e:
        raise BuildError(f"Invalid mint {mint!r}: {e}") from e


async def fetch_token_balance(rpc, token_account: Pubkey) -> int:
    """
    Raw token amount held in a token account.

    Raises:
        BuildError: RPC failure or the account does not exist
    """
    try:
        resp = await rpc.get_token_account_balance(token_account)
    except Exception as e:
        raise BuildError(f"Balance lookup failed for {token_account}: {e}") from e

    value = getattr(resp, "value", None)
    if value is None:
        raise BuildError(f"Token account {token_account} not found")
    return int(value.amount)


def sell_amount(balance: int, fraction: float) -> int:
    """floor(balance * fraction) in exact arithmetic; never exceeds balance for fraction <= 1."""
    return int(balance * Fraction(fraction))
