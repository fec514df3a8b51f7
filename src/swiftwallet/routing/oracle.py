"""Gas price oracle.

Estimates the USD cost of a plain transfer on each chain from the static gas
and native token price tables. Results are quantized (9 decimal places for
the native-token cost, 6 for USD) so repeated calls never drift.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Optional

from swiftwallet.chains import GAS_TABLE, NATIVE_TOKEN_USD, GasSpec
from swiftwallet.errors import UnsupportedChain

logger = logging.getLogger(__name__)

GWEI = Decimal("1e9")
NATIVE_PRECISION = Decimal("0.000000001")
USD_PRECISION = Decimal("0.000001")


@dataclass(frozen=True)
class GasCost:
    """Transfer cost estimate for one chain."""

    chain: str
    gas_price: Decimal
    transfer_cost: int
    native_token: str
    cost_in_native_token: Decimal
    exchange_rate: Decimal
    estimated_cost_usd: Decimal

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        return {
            "chain": self.chain,
            "gasPrice": str(self.gas_price),
            "transferCost": self.transfer_cost,
            "nativeToken": self.native_token,
            "costInNativeToken": str(self.cost_in_native_token),
            "exchangeRate": str(self.exchange_rate),
            "estimatedCostUSD": str(self.estimated_cost_usd),
        }


class PriceOracle:
    """Deterministic transfer cost estimates for every supported chain."""

    def __init__(
        self,
        gas_table: Optional[Mapping[str, GasSpec]] = None,
        token_prices: Optional[Mapping[str, Decimal]] = None,
    ):
        self.gas_table = gas_table if gas_table is not None else GAS_TABLE
        self.token_prices = token_prices if token_prices is not None else NATIVE_TOKEN_USD

    @property
    def chains(self) -> list[str]:
        return list(self.gas_table)

    async def cost_of(self, chain: str) -> GasCost:
        """Get the transfer cost estimate for a chain."""
        spec = self.gas_table.get(chain)
        if spec is None:
            raise UnsupportedChain(chain)

        rate = self.token_prices[spec.native_token]
        native = spec.gas_price * spec.transfer_cost / GWEI
        usd = native * rate

        return GasCost(
            chain=chain,
            gas_price=spec.gas_price,
            transfer_cost=spec.transfer_cost,
            native_token=spec.native_token,
            cost_in_native_token=native.quantize(NATIVE_PRECISION, rounding=ROUND_HALF_UP),
            exchange_rate=rate,
            estimated_cost_usd=usd.quantize(USD_PRECISION, rounding=ROUND_HALF_UP),
        )

    async def all_costs(self) -> list[GasCost]:
        """Get cost estimates for every chain, in table order."""
        return [await self.cost_of(chain) for chain in self.gas_table]

    async def cheapest(self) -> GasCost:
        """Lowest USD cost across all chains. Ties keep table order."""
        costs = await self.all_costs()
        best = min(costs, key=lambda c: c.estimated_cost_usd)
        logger.debug(f"Cheapest settlement chain: {best.chain} (${best.estimated_cost_usd})")
        return best
