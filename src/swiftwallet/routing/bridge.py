"""Cross-chain bridge routing and execution.

Bridge fees come from a static directed cost matrix. A fee is burned on the
source chain: bridging ``amount`` from A to B debits ``amount + fee`` on A
and credits exactly ``amount`` on B.
"""

import logging
import secrets
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional

from swiftwallet.chains import BRIDGE_COSTS
from swiftwallet.errors import (
    InsufficientBalance,
    NoViableBridgeRoute,
    UserNotFound,
)
from swiftwallet.ledger.models import Transaction, TransactionStatus, TransactionType
from swiftwallet.ledger.store import LedgerStore
from swiftwallet.utils.amounts import parse_amount

logger = logging.getLogger(__name__)

UNROUTABLE = Decimal("Infinity")
ZERO = Decimal("0")


@dataclass
class Route:
    """A candidate source chain for moving funds onto a target chain."""

    from_chain: str
    to_chain: str
    available_balance: Decimal
    bridge_cost: Decimal
    max_transferable: Decimal
    can_fulfill: bool
    shortfall: Optional[Decimal] = None

    @property
    def total_cost(self) -> Decimal:
        return self.bridge_cost

    def to_dict(self) -> dict:
        data = {
            "fromChain": self.from_chain,
            "toChain": self.to_chain,
            "availableBalance": str(self.available_balance),
            "bridgeCost": str(self.bridge_cost),
            "maxTransferable": str(self.max_transferable),
            "totalCost": str(self.total_cost),
            "canFulfill": self.can_fulfill,
        }
        if self.shortfall is not None:
            data["shortfall"] = str(self.shortfall)
        return data


def new_bridge_hash() -> str:
    """Generate a unique bridge transaction hash."""
    return f"0xb{secrets.token_hex(31)}"


class BridgeRouter:
    """Finds and executes bridge routes between chains of one user."""

    def __init__(
        self,
        store: LedgerStore,
        costs: Optional[Mapping[str, Mapping[str, Decimal]]] = None,
    ):
        self.store = store
        self.costs = costs if costs is not None else BRIDGE_COSTS

    def bridge_cost(self, from_chain: str, to_chain: str) -> Decimal:
        """Fee for bridging from one chain to another.

        Zero for the same chain, infinity when there is no route.
        """
        if from_chain == to_chain:
            return ZERO
        destinations = self.costs.get(from_chain)
        if destinations is None:
            return UNROUTABLE
        return destinations.get(to_chain, UNROUTABLE)

    async def find_routes(
        self, user_id: str, target_amount: Decimal, target_chain: str
    ) -> list[Route]:
        """Rank the user's chains as bridge sources into ``target_chain``.

        Routes that can cover ``target_amount`` are returned if there are
        any. Otherwise every route able to move something is returned with
        ``can_fulfill=False`` and its shortfall. Ordered by bridge cost only.
        """
        target_amount = parse_amount(target_amount)
        if not await self.store.user_exists(user_id):
            raise UserNotFound(user_id)

        totals = await self.store.totals(user_id)
        candidates = []
        for chain, balance in totals.by_chain.items():
            if chain == target_chain:
                continue
            cost = self.bridge_cost(chain, target_chain)
            max_transferable = max(ZERO, balance - cost)
            candidates.append((chain, balance, cost, max_transferable))

        routes = [
            Route(
                from_chain=chain,
                to_chain=target_chain,
                available_balance=balance,
                bridge_cost=cost,
                max_transferable=max_transferable,
                can_fulfill=True,
            )
            for chain, balance, cost, max_transferable in candidates
            if max_transferable >= target_amount
        ]

        if not routes:
            routes = [
                Route(
                    from_chain=chain,
                    to_chain=target_chain,
                    available_balance=balance,
                    bridge_cost=cost,
                    max_transferable=max_transferable,
                    can_fulfill=False,
                    shortfall=target_amount - max_transferable,
                )
                for chain, balance, cost, max_transferable in candidates
                if max_transferable > ZERO
            ]

        routes.sort(key=lambda route: route.bridge_cost)
        logger.debug(
            f"Found {len(routes)} route(s) for {target_amount} into {target_chain} for {user_id}"
        )
        return routes

    async def execute_bridge(
        self, user_id: str, from_chain: str, to_chain: str, amount: Decimal
    ) -> Transaction:
        """Move ``amount`` between two chains of one user, burning the bridge fee.

        Debit, credit and the bridge record commit or roll back together.
        """
        amount = parse_amount(amount)
        if not await self.store.user_exists(user_id):
            raise UserNotFound(user_id)

        cost = self.bridge_cost(from_chain, to_chain)
        if cost == UNROUTABLE:
            raise NoViableBridgeRoute(
                to_chain, f"No bridge route from {from_chain} to {to_chain}"
            )
        total_required = amount + cost

        async with self.store.atomic(
            (user_id, from_chain), (user_id, to_chain), operation="bridge"
        ) as scope:
            current = await self.store.balance_of(user_id, from_chain, scope)
            if current < total_required:
                raise InsufficientBalance(from_chain, current=current, required=total_required)

            await self.store.adjust(user_id, from_chain, -total_required, scope)
            await self.store.adjust(user_id, to_chain, amount, scope)

            bridge_tx = await scope.repo.create_transaction(
                tx_hash=new_bridge_hash(),
                type=TransactionType.BRIDGE,
                from_user_id=user_id,
                to_user_id=user_id,
                chain=to_chain,
                from_chain=from_chain,
                to_chain=to_chain,
                amount=amount,
                gas_cost=ZERO,
                bridge_cost=cost,
                total_deducted=total_required,
                status=TransactionStatus.CONFIRMED,
                bridged=True,
            )

        logger.info(
            f"Bridged {amount} for {user_id}: {from_chain} -> {to_chain} "
            f"(fee {cost}, tx {bridge_tx.tx_hash})"
        )
        return bridge_tx
