"""Sell execution: venue clients, confirmation and the resilient executor"""

from .base import BuiltSell, ExecutionVenue, VenueClient
from .blockhash import BlockhashCache
from .confirmation import ConfirmationVerifier, RpcLedger, cancellable_sleep
from .jupiter import FallbackVenueClient, JupiterClient
from .launchpad_tx_builder import LaunchpadCurve, LaunchpadInstructionBuilder
from .raydium_launchpad import PrimaryVenueClient
from .relay import ZeroSlotRelay
from .sell_executor import (
    LoggingSellObserver,
    NullSellObserver,
    ResilientSellExecutor,
    SellObserver,
    SellState,
    SellStateMachine,
    execute_sell_with_retry,
)

__all__ = [
    'BuiltSell',
    'ExecutionVenue',
    'VenueClient',
    'BlockhashCache',
    'ConfirmationVerifier',
    'RpcLedger',
    'cancellable_sleep',
    'FallbackVenueClient',
    'JupiterClient',
    'LaunchpadCurve',
    'LaunchpadInstructionBuilder',
    'PrimaryVenueClient',
    'ZeroSlotRelay',
    'LoggingSellObserver',
    'NullSellObserver',
    'ResilientSellExecutor',
    'SellObserver',
    'SellState',
    'SellStateMachine',
    'execute_sell_with_retry',
]
