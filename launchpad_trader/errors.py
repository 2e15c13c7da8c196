"""
Trader Errors
=============

Exception hierarchy shared by parsing and execution.

Everything under ExecutionError is caught and recorded by the sell executor;
only a SellOutcome crosses its boundary.
"""

from typing import Optional


class TraderError(Exception):
    """Base class for all launchpad trader errors"""


class ConfigError(TraderError):
    """Invalid configuration value"""


class DecodeError(TraderError):
    """Relevant transaction carried a malformed payload"""


class ExecutionError(TraderError):
    """Base class for build/submit/verify failures"""


class BuildError(ExecutionError):
    """Could not construct the sell instructions"""


class QuoteError(BuildError):
    """Quote service could not price the trade"""


class RouteError(BuildError):
    """Quote service could not produce a swap transaction"""


class SubmitError(ExecutionError):
    """Network or relay rejected the transaction"""


class VerificationTimeout(ExecutionError):
    """Ledger never confirmed the signature within the attempt budget"""

    def __init__(self, signature: str, attempts: int):
        self.signature = signature
        self.attempts = attempts
        super().__init__(
            f"Transaction {signature} not confirmed after {attempts} attempts"
        )


class TransactionFailed(ExecutionError):
    """Transaction landed but the ledger reports an execution error"""

    def __init__(self, signature: str, error: Optional[str]):
        self.signature = signature
        self.error = error
        super().__init__(f"Transaction {signature} failed on-chain: {error}")


class OperationCancelled(ExecutionError):
    """Caller's cancel signal fired at a suspension point"""
