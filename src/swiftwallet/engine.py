"""Transaction engine: realizes a logical send as chain-level debits/credits.

Request states::

    VALIDATING -> SELECTING -> DIRECT_SETTLE -> RECORDING -> DONE
                            +-> BRIDGING -----+
    (any) -> FAILED

The submitter is always called before a ledger scope opens, so a slow or
failing chain never holds balance locks. A bridged send uses two scopes: the
bridge itself, then the final transfer. If the second one fails the bridge
stays committed and PartialBridgeFailure is raised.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from swiftwallet.errors import (
    InsufficientBalanceToBridge,
    LedgerError,
    NoViableBridgeRoute,
    PartialBridgeFailure,
    RecipientNotFound,
    SenderNotFound,
    TransactionNotFound,
)
from swiftwallet.ledger.models import Transaction, TransactionStatus, TransactionType
from swiftwallet.ledger.store import LedgerStore
from swiftwallet.routing.bridge import BridgeRouter
from swiftwallet.routing.oracle import PriceOracle
from swiftwallet.routing.selector import ChainSelector, NeedsBridge
from swiftwallet.submitter import ChainSubmitter, SimulatedSubmitter, SubmissionReceipt
from swiftwallet.utils.amounts import parse_amount

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class SendState(str, Enum):
    """Lifecycle of a send request."""

    VALIDATING = "validating"
    SELECTING = "selecting"
    DIRECT_SETTLE = "direct_settle"
    BRIDGING = "bridging"
    RECORDING = "recording"
    DONE = "done"
    FAILED = "failed"


class SendRequest:
    """Tracks one send through its states."""

    def __init__(self, from_user_id: str, to_user_id: str, amount: Any):
        self.from_user_id = from_user_id
        self.to_user_id = to_user_id
        self.amount = amount
        self.state = SendState.VALIDATING
        self.history: list[SendState] = [SendState.VALIDATING]

    def advance(self, state: SendState) -> None:
        logger.debug(
            f"send {self.from_user_id}->{self.to_user_id} {self.amount}: "
            f"{self.state.value} -> {state.value}"
        )
        self.state = state
        self.history.append(state)

    def fail(self, error: Exception) -> None:
        logger.warning(
            f"send {self.from_user_id}->{self.to_user_id} {self.amount} failed in "
            f"{self.state.value}: {type(error).__name__}: {error}"
        )
        self.advance(SendState.FAILED)


@dataclass
class SendResult:
    """Outcome of a successful send."""

    transaction: Transaction
    total_cost: Decimal
    bridged: bool = False
    bridge_transaction: Optional[Transaction] = None

    def to_dict(self) -> dict:
        data = {
            "success": True,
            "bridged": self.bridged,
            "transaction": self.transaction.to_dict(),
            "totalCost": str(self.total_cost),
        }
        if self.bridge_transaction is not None:
            data["bridgeTransaction"] = self.bridge_transaction.to_dict()
        return data


class TransactionEngine:
    """Orchestrates direct and bridged sends between users."""

    def __init__(
        self,
        store: LedgerStore,
        oracle: Optional[PriceOracle] = None,
        selector: Optional[ChainSelector] = None,
        router: Optional[BridgeRouter] = None,
        submitter: Optional[ChainSubmitter] = None,
    ):
        self.store = store
        self.oracle = oracle or PriceOracle()
        self.selector = selector or ChainSelector(store, self.oracle)
        self.router = router or BridgeRouter(store)
        self.submitter = submitter or SimulatedSubmitter()

    async def send(self, from_user_id: str, to_user_id: str, amount: Any) -> SendResult:
        """Send ``amount`` from one user to another on the best available chain."""
        request = SendRequest(from_user_id, to_user_id, amount)
        try:
            if not await self.store.user_exists(from_user_id):
                raise SenderNotFound(from_user_id)
            if not await self.store.user_exists(to_user_id):
                raise RecipientNotFound(to_user_id)
            value = parse_amount(amount)

            request.advance(SendState.SELECTING)
            selection = await self.selector.select_chain(from_user_id, value)

            if isinstance(selection, NeedsBridge):
                request.advance(SendState.BRIDGING)
                result = await self._send_with_bridge(request, value)
            else:
                request.advance(SendState.DIRECT_SETTLE)
                receipt = await self.submitter.send_transaction(
                    selection.chain, from_user_id, to_user_id, value
                )
                request.advance(SendState.RECORDING)
                tx = await self._settle(receipt, value, selection.gas_cost)
                result = SendResult(transaction=tx, total_cost=selection.gas_cost)

            request.advance(SendState.DONE)
            return result
        except LedgerError as e:
            request.fail(e)
            raise

    async def _send_with_bridge(self, request: SendRequest, amount: Decimal) -> SendResult:
        """Bridge funds onto the cheapest chain, then send from there."""
        target = await self.oracle.cheapest()
        gas_cost = target.estimated_cost_usd
        amount_to_bridge = amount + gas_cost

        routes = await self.router.find_routes(
            request.from_user_id, amount_to_bridge, target.chain
        )
        if not routes:
            raise NoViableBridgeRoute(target.chain)

        best = routes[0]
        if best.max_transferable < amount_to_bridge:
            raise InsufficientBalanceToBridge(
                required=amount_to_bridge, transferable=best.max_transferable
            )

        bridge_tx = await self.router.execute_bridge(
            request.from_user_id, best.from_chain, target.chain, amount_to_bridge
        )

        try:
            receipt = await self.submitter.send_transaction(
                target.chain, request.from_user_id, request.to_user_id, amount
            )
            request.advance(SendState.RECORDING)
            tx = await self._settle(
                receipt, amount, gas_cost, bridged=True, bridge_tx_hash=bridge_tx.tx_hash
            )
        except Exception as e:
            logger.error(
                f"Transfer after bridge {bridge_tx.tx_hash} failed; funds remain on "
                f"{target.chain} for {request.from_user_id}"
            )
            raise PartialBridgeFailure(bridge_tx.tx_hash, e) from e

        return SendResult(
            transaction=tx,
            total_cost=gas_cost + bridge_tx.bridge_cost,
            bridged=True,
            bridge_transaction=bridge_tx,
        )

    async def _settle(
        self,
        receipt: SubmissionReceipt,
        amount: Decimal,
        gas_cost: Decimal,
        bridged: bool = False,
        bridge_tx_hash: Optional[str] = None,
    ) -> Transaction:
        """Apply a settled transfer to the ledger and record it, atomically."""
        chain = receipt.chain
        sender, recipient = receipt.from_user_id, receipt.to_user_id

        async with self.store.atomic(
            (sender, chain), (recipient, chain), operation="transfer"
        ) as scope:
            await self.store.adjust(sender, chain, -(amount + gas_cost), scope)
            await self.store.adjust(recipient, chain, amount, scope)
            tx = await scope.repo.create_transaction(
                tx_hash=receipt.tx_hash,
                type=TransactionType.TRANSFER,
                from_user_id=sender,
                to_user_id=recipient,
                chain=chain,
                amount=amount,
                gas_cost=gas_cost,
                bridge_cost=ZERO,
                status=TransactionStatus.CONFIRMED,
                block_number=receipt.block_number,
                bridged=bridged,
                bridge_tx_hash=bridge_tx_hash,
            )

        logger.info(
            f"Transferred {amount} {sender} -> {recipient} on {chain} "
            f"(gas {gas_cost}, tx {tx.tx_hash}{', bridged' if bridged else ''})"
        )
        return tx

    async def get_status(self, tx_hash: str) -> Transaction:
        """Look up a recorded transaction."""
        tx = await self.store.get_transaction(tx_hash)
        if tx is None:
            raise TransactionNotFound(tx_hash)
        return tx
