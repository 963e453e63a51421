"""Exceptions raised by PointMint services and storage backends."""


class PointMintError(RuntimeError):
    """Base class for domain exceptions."""


class StorageError(PointMintError):
    """Raised by store backends when a read or write cannot be completed."""


class ConcurrentUpdateError(StorageError):
    """Raised when a balance write keeps losing to concurrent writers."""

    def __init__(self, userid: str, attempts: int) -> None:
        super().__init__(f"Balance of {userid} changed concurrently {attempts} times in a row")
        self.userid = userid
        self.attempts = attempts


class InvalidTransactionId(PointMintError, ValueError):
    """Raised when a transaction identifier is malformed."""


class TransactionNotFound(PointMintError, LookupError):
    """Raised when no ledger entry carries the requested transaction identifier."""


class InvalidRankingSize(PointMintError, ValueError):
    """Raised when a leaderboard size is not a positive integer."""
