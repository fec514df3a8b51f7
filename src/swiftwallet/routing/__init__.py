"""Routing module for chain selection and cross-chain bridging.

- PriceOracle: per-chain transfer cost estimates
- ChainSelector: cheapest chain with enough balance
- BridgeRouter: bridge route discovery and execution
"""

from swiftwallet.routing.bridge import BridgeRouter, Route
from swiftwallet.routing.oracle import GasCost, PriceOracle
from swiftwallet.routing.selector import ChainSelection, ChainSelector, NeedsBridge

__all__ = [
    "BridgeRouter",
    "ChainSelection",
    "ChainSelector",
    "GasCost",
    "NeedsBridge",
    "PriceOracle",
    "Route",
]
