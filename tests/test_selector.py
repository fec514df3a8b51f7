"""Tests for optimal chain selection."""

from decimal import Decimal

import pytest

from swiftwallet.chains import GasSpec
from swiftwallet.errors import InsufficientTotalBalance, UserNotFound
from swiftwallet.routing.oracle import PriceOracle
from swiftwallet.routing.selector import ChainSelection, ChainSelector, NeedsBridge


@pytest.fixture
def selector(store, oracle) -> ChainSelector:
    return ChainSelector(store, oracle)


class TestSelectChain:
    """Tests for ChainSelector.select_chain."""

    @pytest.mark.asyncio
    async def test_picks_cheapest_chain_with_enough_balance(self, selector, make_user):
        await make_user("alice", ethereum=1000, polygon=500, solana=100)

        selection = await selector.select_chain("alice", Decimal("300"))

        # solana is cheapest overall but holds too little
        assert isinstance(selection, ChainSelection)
        assert selection.chain == "polygon"
        assert selection.gas_cost == Decimal("0.000536")
        assert selection.balance == Decimal("500")
        assert selection.total_cost == Decimal("300.000536")

    @pytest.mark.asyncio
    async def test_prefers_ethereum_when_it_is_cheaper(self, store, make_user):
        oracle = PriceOracle(
            gas_table={
                "ethereum": GasSpec(Decimal("0.01"), 21000, "ETH"),
                "polygon": GasSpec(Decimal("100"), 21000, "MATIC"),
            }
        )
        await make_user("alice", ethereum=1000, polygon=500)

        selection = await ChainSelector(store, oracle).select_chain("alice", Decimal("300"))

        assert selection.chain == "ethereum"
        assert selection.gas_cost == Decimal("0.000735")

    @pytest.mark.asyncio
    async def test_alternatives_are_next_two_cheapest(self, selector, make_user):
        await make_user(
            "alice", ethereum=1000, polygon=1000, arbitrum=1000, optimism=1000, solana=1000
        )

        selection = await selector.select_chain("alice", Decimal("10"))

        assert selection.chain == "solana"
        assert [alt.chain for alt in selection.alternatives] == ["polygon", "arbitrum"]
        assert all(alt.total_cost == Decimal("10") + alt.gas_cost for alt in selection.alternatives)

    @pytest.mark.asyncio
    async def test_equal_costs_keep_table_order(self, selector, make_user):
        # arbitrum and optimism cost the same; arbitrum comes first in the table
        await make_user("alice", optimism=100, arbitrum=100)

        selection = await selector.select_chain("alice", Decimal("50"))

        assert selection.chain == "arbitrum"
        assert [alt.chain for alt in selection.alternatives] == ["optimism"]

    @pytest.mark.asyncio
    async def test_balance_equal_to_amount_is_enough(self, selector, make_user):
        await make_user("alice", arbitrum=50)

        selection = await selector.select_chain("alice", Decimal("50"))

        assert selection.chain == "arbitrum"

    @pytest.mark.asyncio
    async def test_needs_bridge_when_only_total_suffices(self, selector, make_user):
        await make_user("alice", ethereum=200, polygon=150)

        outcome = await selector.select_chain("alice", Decimal("300"))

        assert isinstance(outcome, NeedsBridge)
        assert outcome.total_balance == Decimal("350")
        assert outcome.required_amount == Decimal("300")
        assert outcome.to_dict()["reason"] == "NEEDS_BRIDGE"
        assert outcome.to_dict()["success"] is False

    @pytest.mark.asyncio
    async def test_insufficient_total_balance(self, selector, make_user):
        await make_user("alice", ethereum=100, polygon=100)

        with pytest.raises(InsufficientTotalBalance) as exc_info:
            await selector.select_chain("alice", Decimal("250"))

        assert exc_info.value.details["total_balance"] == Decimal("200")

    @pytest.mark.asyncio
    async def test_user_without_balances(self, selector, make_user):
        await make_user("alice")

        with pytest.raises(InsufficientTotalBalance):
            await selector.select_chain("alice", Decimal("1"))

    @pytest.mark.asyncio
    async def test_unknown_user(self, selector):
        with pytest.raises(UserNotFound):
            await selector.select_chain("ghost", Decimal("1"))
