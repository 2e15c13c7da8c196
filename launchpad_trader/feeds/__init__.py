"""Streaming transaction feeds"""

from .transaction_stream import TransactionStream

__all__ = ['TransactionStream']
