"""
Launchpad Trader - Trade Detection and Resilient Exits
======================================================

Watches Raydium Launchpad transactions and sells positions with
a primary venue (direct launchpad instructions via 0slot relay) and
a fallback venue (Jupiter route via standard RPC).

Usage:
    from launchpad_trader import TradeEventExtractor, ResilientSellExecutor

    trade = TradeEventExtractor().extract(update)
    outcome = await executor.execute_sell(trade, SwapConfig())

Guarantees:
1. Extraction is pure: same update, same TradeInfo
2. Placeholder economics are always flagged low_confidence
3. execute_sell never raises; failure lives in the SellOutcome
"""

# Configuration
from .core.config import (
    TraderConfig,
    SwapConfig,
    RetryConfig,
    LaunchpadConfig,
    Endpoints,
    DEFAULT_CONFIG,
    FAST_EXIT_CONFIG,
)

# Errors
from .errors import (
    TraderError,
    ConfigError,
    DecodeError,
    ExecutionError,
    BuildError,
    QuoteError,
    RouteError,
    SubmitError,
    VerificationTimeout,
    TransactionFailed,
    OperationCancelled,
)

# Data models
from .models import (
    DexType,
    TradeInfo,
    SellOutcome,
    TransactionUpdate,
)

# Extraction
from .parsing import TradeEventExtractor, process_transaction

# Execution
from .execution import (
    PrimaryVenueClient,
    FallbackVenueClient,
    ConfirmationVerifier,
    ResilientSellExecutor,
    LoggingSellObserver,
    execute_sell_with_retry,
)


__all__ = [
    # Config
    'TraderConfig',
    'SwapConfig',
    'RetryConfig',
    'LaunchpadConfig',
    'Endpoints',
    'DEFAULT_CONFIG',
    'FAST_EXIT_CONFIG',
    # Errors
    'TraderError',
    'ConfigError',
    'DecodeError',
    'ExecutionError',
    'BuildError',
    'QuoteError',
    'RouteError',
    'SubmitError',
    'VerificationTimeout',
    'TransactionFailed',
    'OperationCancelled',
    # Models
    'DexType',
    'TradeInfo',
    'SellOutcome',
    'TransactionUpdate',
    # Extraction
    'TradeEventExtractor',
    'process_transaction',
    # Execution
    'PrimaryVenueClient',
    'FallbackVenueClient',
    'ConfirmationVerifier',
    'ResilientSellExecutor',
    'LoggingSellObserver',
    'execute_sell_with_retry',
]

__version__ = '0.1.0'
