"""Static per-chain cost tables.

Supported chains:
- ethereum, arbitrum, optimism (ETH gas)
- polygon (MATIC gas)
- solana (SOL fees, settlement only - not reachable through bridges)

All tables are read-only mappings. Amounts are USD-denominated Decimals.
"""

from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class GasSpec:
    """Gas parameters for a plain value transfer on a chain."""

    gas_price: Decimal  # Gwei
    transfer_cost: int  # Gas units
    native_token: str


SUPPORTED_CHAINS: tuple[str, ...] = (
    "ethereum",
    "polygon",
    "arbitrum",
    "optimism",
    "solana",
)

GAS_TABLE: Mapping[str, GasSpec] = MappingProxyType({
    "ethereum": GasSpec(Decimal("50"), 21000, "ETH"),
    "polygon": GasSpec(Decimal("30"), 21000, "MATIC"),
    "arbitrum": GasSpec(Decimal("0.1"), 21000, "ETH"),
    "optimism": GasSpec(Decimal("0.1"), 21000, "ETH"),
    "solana": GasSpec(Decimal("0.05"), 21000, "SOL"),
})

# Native token prices in USD
NATIVE_TOKEN_USD: Mapping[str, Decimal] = MappingProxyType({
    "ETH": Decimal("3500"),
    "MATIC": Decimal("0.85"),
    "SOL": Decimal("133"),
})

# Directed bridge fees in USD: source -> destination -> fee
BRIDGE_COSTS: Mapping[str, Mapping[str, Decimal]] = MappingProxyType({
    "ethereum": MappingProxyType({
        "polygon": Decimal("5"),
        "arbitrum": Decimal("10"),
        "optimism": Decimal("10"),
    }),
    "polygon": MappingProxyType({
        "ethereum": Decimal("15"),
        "arbitrum": Decimal("8"),
        "optimism": Decimal("8"),
    }),
    "arbitrum": MappingProxyType({
        "ethereum": Decimal("12"),
        "polygon": Decimal("8"),
        "optimism": Decimal("5"),
    }),
    "optimism": MappingProxyType({
        "ethereum": Decimal("12"),
        "polygon": Decimal("8"),
        "arbitrum": Decimal("5"),
    }),
})


def is_supported_chain(chain: str) -> bool:
    """Check if a chain name is known to the ledger."""
    return chain in SUPPORTED_CHAINS
