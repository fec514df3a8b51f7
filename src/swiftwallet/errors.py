"""Error taxonomy for ledger and routing operations.

None of these are retried automatically. Each one is a terminal outcome of a
request and carries enough structure (``code`` plus ``details``) for callers
to tell "needs a different chain/route" apart from "cannot be done".
"""

from typing import Any


class LedgerError(Exception):
    """Base class for all ledger failures."""

    code = "ledger_error"

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        """Serialize for API responses."""
        data = {"error": self.message, "code": self.code}
        if self.details:
            data["details"] = {k: _jsonable(v) for k, v in self.details.items()}
        return data


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, bool)) or value is None:
        return value
    return str(value)


# Not found
class NotFound(LedgerError):
    code = "not_found"


class UserNotFound(NotFound):
    code = "user_not_found"

    def __init__(self, user_id: str, message: str = "User not found"):
        super().__init__(message, user_id=user_id)


class SenderNotFound(UserNotFound):
    code = "sender_not_found"

    def __init__(self, user_id: str):
        super().__init__(user_id, "Sender not found")


class RecipientNotFound(UserNotFound):
    code = "recipient_not_found"

    def __init__(self, user_id: str):
        super().__init__(user_id, "Recipient not found")


class TransactionNotFound(NotFound):
    code = "transaction_not_found"

    def __init__(self, tx_hash: str):
        super().__init__("Transaction not found", tx_hash=tx_hash)


# Invalid input
class InvalidInput(LedgerError):
    code = "invalid_input"


class InvalidAmount(InvalidInput):
    code = "invalid_amount"

    def __init__(self, amount: Any):
        super().__init__("Amount must be a finite number greater than 0", amount=amount)


class UnsupportedChain(InvalidInput):
    code = "unsupported_chain"

    def __init__(self, chain: str):
        super().__init__(f"Unsupported chain: {chain}", chain=chain)


# Balance and routing outcomes
class InsufficientBalance(LedgerError):
    """A single-chain balance cannot cover a debit."""

    code = "insufficient_balance"

    def __init__(self, chain: str, current: Any, required: Any):
        super().__init__(
            f"Insufficient balance on {chain}. Need {required}, current balance is {current}",
            chain=chain,
            current=current,
            required=required,
        )


class InsufficientTotalBalance(LedgerError):
    code = "insufficient_total_balance"

    def __init__(self, total: Any, required: Any):
        super().__init__(
            "Insufficient total balance", total_balance=total, required_amount=required
        )


class NoViableBridgeRoute(LedgerError):
    code = "no_viable_bridge_route"

    def __init__(self, target_chain: str, message: str = "No viable bridge routes available"):
        super().__init__(message, target_chain=target_chain)


class InsufficientBalanceToBridge(LedgerError):
    code = "insufficient_balance_to_bridge"

    def __init__(self, required: Any, transferable: Any):
        super().__init__(
            f"Insufficient balance to bridge. Need {required}, can transfer {transferable}",
            required=required,
            max_transferable=transferable,
        )


# Infrastructure failures
class SubmissionFailure(LedgerError):
    """The chain submitter could not settle a transfer."""

    code = "submission_failure"


class IntegrityFailure(LedgerError):
    """An atomic scope could not commit. Every write in it was rolled back."""

    code = "integrity_failure"


class LockTimeoutError(IntegrityFailure):
    """Raised when a row lock cannot be acquired within the timeout period."""

    code = "lock_timeout"


class PartialBridgeFailure(LedgerError):
    """The bridge leg committed but the final transfer did not.

    The user's funds are bridged to the target chain and remain there.
    """

    code = "partial_bridge_failure"

    def __init__(self, bridge_tx_hash: str, cause: Exception):
        super().__init__(
            f"Bridge {bridge_tx_hash} committed but the transfer failed: {cause}",
            bridge_tx_hash=bridge_tx_hash,
            cause=type(cause).__name__,
        )
        self.bridge_tx_hash = bridge_tx_hash
        self.cause = cause
