"""Domain models and services."""

from .exceptions import (
    ConcurrentUpdateError,
    InvalidRankingSize,
    InvalidTransactionId,
    PointMintError,
    StorageError,
    TransactionNotFound,
)
from .models import OperationResult, OperationType, RankEntry, StatusCode, TransactionStatus
from .transaction import TransactionIdGenerator, generate_transaction_id, validate_transaction_id

__all__ = [
    "ConcurrentUpdateError",
    "InvalidRankingSize",
    "InvalidTransactionId",
    "PointMintError",
    "StorageError",
    "TransactionNotFound",
    "OperationResult",
    "OperationType",
    "RankEntry",
    "StatusCode",
    "TransactionStatus",
    "TransactionIdGenerator",
    "generate_transaction_id",
    "validate_transaction_id",
]
