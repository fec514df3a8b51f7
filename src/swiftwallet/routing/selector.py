"""Optimal single-chain selection for a transfer."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Union

from swiftwallet.errors import InsufficientTotalBalance, UserNotFound
from swiftwallet.ledger.store import LedgerStore
from swiftwallet.routing.oracle import GasCost, PriceOracle

logger = logging.getLogger(__name__)


@dataclass
class ChainOption:
    """A chain that can cover the transfer on its own."""

    chain: str
    gas_cost: Decimal
    balance: Decimal
    total_cost: Decimal  # amount + gas

    def to_dict(self) -> dict:
        return {
            "chain": self.chain,
            "gasCost": str(self.gas_cost),
            "balance": str(self.balance),
            "totalCost": str(self.total_cost),
        }


@dataclass
class ChainSelection:
    """Cheapest chain with enough balance, plus up to two runners-up."""

    chain: str
    gas_cost: Decimal
    balance: Decimal
    total_cost: Decimal
    alternatives: list[ChainOption] = field(default_factory=list)

    success = True

    def to_dict(self) -> dict:
        return {
            "success": True,
            "selectedChain": self.chain,
            "gasCost": str(self.gas_cost),
            "balance": str(self.balance),
            "totalCost": str(self.total_cost),
            "alternatives": [alt.to_dict() for alt in self.alternatives],
        }


@dataclass
class NeedsBridge:
    """No single chain suffices but the balances summed across chains do."""

    total_balance: Decimal
    required_amount: Decimal
    message: str = "Insufficient balance on single chain. Bridging required"

    success = False
    reason = "NEEDS_BRIDGE"

    def to_dict(self) -> dict:
        return {
            "success": False,
            "reason": self.reason,
            "message": self.message,
            "totalBalance": str(self.total_balance),
            "requiredAmount": str(self.required_amount),
        }


SelectionOutcome = Union[ChainSelection, NeedsBridge]


class ChainSelector:
    """Picks the cheapest chain on which a user can cover an amount."""

    MAX_ALTERNATIVES = 2

    def __init__(self, store: LedgerStore, oracle: PriceOracle):
        self.store = store
        self.oracle = oracle

    async def select_chain(self, user_id: str, amount: Decimal) -> SelectionOutcome:
        """Select the optimal chain for sending ``amount``.

        Ties on cost keep the oracle's table order. Returns NeedsBridge when
        only the cross-chain total covers the amount; raises
        InsufficientTotalBalance when even that falls short.
        """
        if not await self.store.user_exists(user_id):
            raise UserNotFound(user_id)

        costs = await self.oracle.all_costs()
        totals = await self.store.totals(user_id)

        viable = sorted(
            (
                self._option(cost, totals.by_chain[cost.chain], amount)
                for cost in costs
                if cost.chain in totals.by_chain and totals.by_chain[cost.chain] >= amount
            ),
            key=lambda option: option.gas_cost,
        )

        if not viable:
            if totals.total >= amount:
                logger.info(
                    f"No single chain covers {amount} for {user_id} "
                    f"(total {totals.total}); bridging required"
                )
                return NeedsBridge(total_balance=totals.total, required_amount=amount)

            logger.info(f"Insufficient total balance for {user_id}: {totals.total} < {amount}")
            raise InsufficientTotalBalance(total=totals.total, required=amount)

        best, alternatives = viable[0], viable[1 : 1 + self.MAX_ALTERNATIVES]
        logger.info(f"Selected {best.chain} for {amount} from {user_id} (gas ${best.gas_cost})")
        return ChainSelection(
            chain=best.chain,
            gas_cost=best.gas_cost,
            balance=best.balance,
            total_cost=best.total_cost,
            alternatives=alternatives,
        )

    @staticmethod
    def _option(cost: GasCost, balance: Decimal, amount: Decimal) -> ChainOption:
        return ChainOption(
            chain=cost.chain,
            gas_cost=cost.estimated_cost_usd,
            balance=balance,
            total_cost=amount + cost.estimated_cost_usd,
        )
