"""Tests for the transaction engine."""

import asyncio
from decimal import Decimal

import pytest

from swiftwallet.chains import GAS_TABLE, GasSpec
from swiftwallet.engine import TransactionEngine
from swiftwallet.errors import (
    InsufficientBalanceToBridge,
    InsufficientTotalBalance,
    IntegrityFailure,
    InvalidAmount,
    LedgerError,
    NoViableBridgeRoute,
    PartialBridgeFailure,
    RecipientNotFound,
    SenderNotFound,
    SubmissionFailure,
    TransactionNotFound,
)
from swiftwallet.ledger.models import TransactionStatus, TransactionType
from swiftwallet.routing.oracle import PriceOracle
from swiftwallet.submitter import ChainSubmitter, SimulatedSubmitter, SubmissionReceipt

POLYGON_GAS = Decimal("0.000536")


class FixedHashSubmitter(ChainSubmitter):
    """Confirms every transfer under the same hash."""

    name = "fixed"

    async def _submit(self, chain, from_user_id, to_user_id, amount):
        return SubmissionReceipt(
            tx_hash="0xfixed",
            chain=chain,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=amount,
            block_number=42,
        )


def l2_oracle() -> PriceOracle:
    """Oracle that prices only polygon, arbitrum and optimism (polygon cheapest)."""
    return PriceOracle(
        gas_table={chain: GAS_TABLE[chain] for chain in ("polygon", "arbitrum", "optimism")}
    )


async def ledger_total(store, *user_ids) -> Decimal:
    total = Decimal("0")
    for user_id in user_ids:
        total += (await store.totals(user_id)).total
    return total


class TestValidation:
    """Validation failures happen before any side effect."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "amount",
        [
            0, -5, "0", "-0.01", "abc", "NaN", "Infinity", None, True,
            "0.0000004", Decimal("12.3456789"),
        ],
    )
    async def test_invalid_amount(self, engine, store, make_user, amount):
        await make_user("alice", polygon=100)
        await make_user("bob")

        with pytest.raises(InvalidAmount):
            await engine.send("alice", "bob", amount)

        assert await store.balance_of("alice", "polygon") == Decimal("100")
        assert await store.balance_of("bob", "polygon") == Decimal("0")

    @pytest.mark.asyncio
    async def test_trailing_zeros_beyond_micro_are_accepted(self, engine, store, make_user):
        await make_user("alice", polygon=100)
        await make_user("bob")

        result = await engine.send("alice", "bob", "2.50000000")

        assert result.transaction.amount == Decimal("2.5")
        assert await store.balance_of("bob", "polygon") == Decimal("2.5")

    @pytest.mark.asyncio
    async def test_unknown_sender(self, engine, store, make_user):
        await make_user("bob", polygon=100)

        with pytest.raises(SenderNotFound):
            await engine.send("ghost", "bob", Decimal("10"))

        assert await store.balance_of("bob", "polygon") == Decimal("100")

    @pytest.mark.asyncio
    async def test_unknown_recipient(self, engine, store, make_user):
        await make_user("alice", polygon=100)

        with pytest.raises(RecipientNotFound):
            await engine.send("alice", "ghost", Decimal("10"))

        assert await store.balance_of("alice", "polygon") == Decimal("100")


class TestDirectSend:
    """Sends settled on a single chain."""

    @pytest.mark.asyncio
    async def test_conservation(self, engine, store, make_user):
        await make_user("alice", ethereum=1000, polygon=500)
        await make_user("bob", polygon=20)
        before = await ledger_total(store, "alice", "bob")

        result = await engine.send("alice", "bob", Decimal("300"))

        assert result.bridged is False
        assert result.total_cost == POLYGON_GAS
        assert await store.balance_of("alice", "polygon") == Decimal("500") - Decimal("300") - POLYGON_GAS
        assert await store.balance_of("bob", "polygon") == Decimal("320")
        assert await store.balance_of("alice", "ethereum") == Decimal("1000")
        assert await ledger_total(store, "alice", "bob") == before - POLYGON_GAS

    @pytest.mark.asyncio
    async def test_selects_ethereum_when_cheapest(self, store, make_user):
        oracle = PriceOracle(
            gas_table={
                "ethereum": GasSpec(Decimal("0.01"), 21000, "ETH"),
                "polygon": GasSpec(Decimal("100"), 21000, "MATIC"),
            }
        )
        engine = TransactionEngine(store, oracle=oracle)
        await make_user("alice", ethereum=1000, polygon=500)
        await make_user("bob")

        result = await engine.send("alice", "bob", Decimal("300"))

        assert result.transaction.chain == "ethereum"
        assert await store.balance_of("alice", "ethereum") == Decimal("699.999265")
        assert await store.balance_of("alice", "polygon") == Decimal("500")

    @pytest.mark.asyncio
    async def test_transfer_record(self, engine, make_user):
        await make_user("alice", polygon=500)
        await make_user("bob")

        result = await engine.send("alice", "bob", "12.5")
        tx = result.transaction

        assert tx.type == TransactionType.TRANSFER
        assert tx.status == TransactionStatus.CONFIRMED
        assert tx.from_user_id == "alice"
        assert tx.to_user_id == "bob"
        assert tx.chain == "polygon"
        assert tx.amount == Decimal("12.5")
        assert tx.gas_cost == POLYGON_GAS
        assert tx.bridge_cost == Decimal("0")
        assert tx.total_deducted == Decimal("12.5") + POLYGON_GAS
        assert tx.block_number is not None
        assert tx.bridged is False
        assert tx.bridge_tx_hash is None
        assert tx.tx_hash.startswith("0x") and len(tx.tx_hash) == 66

    @pytest.mark.asyncio
    async def test_send_to_self_costs_only_gas(self, engine, store, make_user):
        await make_user("alice", polygon=100)

        await engine.send("alice", "alice", Decimal("40"))

        assert await store.balance_of("alice", "polygon") == Decimal("100") - POLYGON_GAS

    @pytest.mark.asyncio
    async def test_insufficient_total_balance_propagates(self, engine, store, make_user):
        await make_user("alice", ethereum=100, polygon=100)
        await make_user("bob")

        with pytest.raises(InsufficientTotalBalance):
            await engine.send("alice", "bob", Decimal("500"))

        assert (await store.totals("alice")).total == Decimal("200")

    @pytest.mark.asyncio
    async def test_submission_failure_changes_nothing(self, store, make_user):
        engine = TransactionEngine(store, submitter=SimulatedSubmitter(fail_chains={"polygon"}))
        await make_user("alice", polygon=100)
        await make_user("bob")

        with pytest.raises(SubmissionFailure):
            await engine.send("alice", "bob", Decimal("10"))

        assert await store.balance_of("alice", "polygon") == Decimal("100")
        assert await store.balance_of("bob", "polygon") == Decimal("0")

    @pytest.mark.asyncio
    async def test_record_failure_reverts_both_legs(self, store, make_user):
        engine = TransactionEngine(store, submitter=FixedHashSubmitter())
        await make_user("alice", polygon=100)
        await make_user("bob")

        await engine.send("alice", "bob", Decimal("10"))
        alice_after_first = await store.balance_of("alice", "polygon")
        bob_after_first = await store.balance_of("bob", "polygon")

        # Same hash again: the record insert fails inside the scope
        with pytest.raises(IntegrityFailure):
            await engine.send("alice", "bob", Decimal("10"))

        assert await store.balance_of("alice", "polygon") == alice_after_first
        assert await store.balance_of("bob", "polygon") == bob_after_first

    @pytest.mark.asyncio
    async def test_concurrent_sends_never_overdraw(self, engine, store, make_user):
        await make_user("alice", polygon=100)
        await make_user("bob")

        results = await asyncio.gather(
            *(engine.send("alice", "bob", Decimal("15")) for _ in range(10)),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, BaseException)]
        failures = [r for r in results if isinstance(r, BaseException)]
        assert len(successes) == 6
        assert all(isinstance(f, LedgerError) for f in failures)

        remaining = await store.balance_of("alice", "polygon")
        assert remaining == Decimal("100") - 6 * (Decimal("15") + POLYGON_GAS)
        assert remaining >= 0
        assert await store.balance_of("bob", "polygon") == Decimal("90")


class TestBridgedSend:
    """Sends that need funds bridged onto the settlement chain first."""

    @pytest.mark.asyncio
    async def test_no_route_into_cheapest_chain(self, engine, store, make_user):
        # solana is cheapest by default and sits outside the bridge graph
        await make_user("alice", ethereum=200, polygon=150)
        await make_user("bob")

        with pytest.raises(NoViableBridgeRoute):
            await engine.send("alice", "bob", Decimal("300"))

        assert await store.balance_of("alice", "ethereum") == Decimal("200")
        assert await store.balance_of("alice", "polygon") == Decimal("150")

    @pytest.mark.asyncio
    async def test_best_route_too_small(self, store, make_user):
        engine = TransactionEngine(store, oracle=l2_oracle())
        await make_user("alice", ethereum=200, arbitrum=150)
        await make_user("bob")

        with pytest.raises(InsufficientBalanceToBridge) as exc_info:
            await engine.send("alice", "bob", Decimal("300"))

        assert exc_info.value.details["max_transferable"] == Decimal("195")
        assert await store.balance_of("alice", "ethereum") == Decimal("200")
        assert await store.balance_of("alice", "arbitrum") == Decimal("150")

    @pytest.mark.asyncio
    async def test_bridged_send(self, store, make_user):
        # ethereum has no price quote here, so it can only fund a bridge
        engine = TransactionEngine(store, oracle=l2_oracle())
        await make_user("alice", ethereum=1000, polygon=10)
        await make_user("bob")

        result = await engine.send("alice", "bob", Decimal("300"))

        assert result.bridged is True
        bridge_tx = result.bridge_transaction
        assert bridge_tx.type == TransactionType.BRIDGE
        assert bridge_tx.from_chain == "ethereum"
        assert bridge_tx.to_chain == "polygon"
        assert bridge_tx.amount == Decimal("300") + POLYGON_GAS

        tx = result.transaction
        assert tx.type == TransactionType.TRANSFER
        assert tx.chain == "polygon"
        assert tx.bridged is True
        assert tx.bridge_tx_hash == bridge_tx.tx_hash
        assert tx.total_deducted == Decimal("300") + POLYGON_GAS
        assert result.total_cost == POLYGON_GAS + Decimal("5")

        assert await store.balance_of("alice", "ethereum") == Decimal("1000") - Decimal("305") - POLYGON_GAS
        assert await store.balance_of("alice", "polygon") == Decimal("10")
        assert await store.balance_of("bob", "polygon") == Decimal("300")

    @pytest.mark.asyncio
    async def test_failure_after_bridge_keeps_bridge(self, store, make_user):
        engine = TransactionEngine(
            store, oracle=l2_oracle(), submitter=SimulatedSubmitter(fail_chains={"polygon"})
        )
        await make_user("alice", ethereum=1000, polygon=10)
        await make_user("bob")

        with pytest.raises(PartialBridgeFailure) as exc_info:
            await engine.send("alice", "bob", Decimal("300"))

        assert isinstance(exc_info.value.cause, SubmissionFailure)
        bridge_tx = await store.get_transaction(exc_info.value.bridge_tx_hash)
        assert bridge_tx is not None
        assert bridge_tx.type == TransactionType.BRIDGE

        assert await store.balance_of("alice", "ethereum") == Decimal("1000") - Decimal("305") - POLYGON_GAS
        assert await store.balance_of("alice", "polygon") == Decimal("310") + POLYGON_GAS
        assert await store.balance_of("bob", "polygon") == Decimal("0")


class TestGetStatus:
    """Tests for transaction lookup."""

    @pytest.mark.asyncio
    async def test_lookup(self, engine, make_user):
        await make_user("alice", polygon=100)
        await make_user("bob")
        result = await engine.send("alice", "bob", Decimal("1"))

        tx = await engine.get_status(result.transaction.tx_hash)

        assert tx.tx_hash == result.transaction.tx_hash
        assert tx.to_dict()["fromUserId"] == "alice"

    @pytest.mark.asyncio
    async def test_unknown_hash(self, engine):
        with pytest.raises(TransactionNotFound):
            await engine.get_status("0xnope")
