"""PointMint public API."""

from .app import PointApp
from .config import PointMintConfig
from .domain.models import OperationResult, OperationType, RankEntry, StatusCode, TransactionStatus
from .domain.transaction import TransactionIdGenerator

__all__ = [
    "PointApp",
    "PointMintConfig",
    "OperationResult",
    "OperationType",
    "RankEntry",
    "StatusCode",
    "TransactionStatus",
    "TransactionIdGenerator",
]
