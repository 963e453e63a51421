"""Value types shared by the PointMint services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum


class StatusCode(IntEnum):
    OK = 200
    NO_CONTENT = 204
    INSUFFICIENT_BALANCE = 304
    BAD_REQUEST = 400
    INTERNAL_ERROR = 500


class OperationType(str, Enum):
    GET = "get"
    SET = "set"
    ADD = "add"
    REDUCE = "reduce"
    ROLLBACK = "rollback"
    UPDATE_USERNAME = "updateUserName"
    TOP = "getTopUsers"

    @property
    def is_mutation(self) -> bool:
        return self in _BALANCE_MUTATIONS


_BALANCE_MUTATIONS = frozenset(
    {OperationType.SET, OperationType.ADD, OperationType.REDUCE, OperationType.ROLLBACK}
)


@dataclass(slots=True, frozen=True)
class OperationResult:
    """Coded outcome returned by every mutating operation."""

    code: StatusCode
    message: str

    @property
    def ok(self) -> bool:
        return self.code in (StatusCode.OK, StatusCode.NO_CONTENT)


@dataclass(slots=True, frozen=True)
class TransactionStatus:
    is_rollback: bool
    rollback_transaction: str | None = None
    rollback_time: datetime | None = None


@dataclass(slots=True, frozen=True)
class RankEntry:
    userid: str
    username: str | None
    points: int
