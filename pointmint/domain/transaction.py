"""Transaction identifier issuance and format checks."""

from __future__ import annotations

import re
import secrets
import time

_PREFIX = "tx"
_PATTERN = re.compile(r"^tx-\d{13}-[0-9a-f]{16}$")


class TransactionIdGenerator:
    """Issue opaque identifiers of the form ``tx-<epoch ms>-<64 random bits>``."""

    @staticmethod
    def generate() -> str:
        millis = time.time_ns() // 1_000_000
        return f"{_PREFIX}-{millis:013d}-{secrets.token_hex(8)}"

    @staticmethod
    def validate(value: object) -> bool:
        """Structural check only; existence in the ledger is not consulted."""
        return isinstance(value, str) and _PATTERN.fullmatch(value) is not None


generate_transaction_id = TransactionIdGenerator.generate
validate_transaction_id = TransactionIdGenerator.validate
