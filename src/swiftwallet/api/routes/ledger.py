"""Balance, send, transaction and estimate endpoints."""

import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, Request

from swiftwallet.api.schemas import EstimateBody, SendBody
from swiftwallet.engine import TransactionEngine
from swiftwallet.errors import UserNotFound

logger = logging.getLogger(__name__)

router = APIRouter()

CENT = Decimal("0.01")


def get_transaction_engine(request: Request) -> TransactionEngine:
    """Engine instance attached to the application."""
    return request.app.state.transaction_engine


@router.get("/balance/{user_id}")
async def get_balance(user_id: str, engine: TransactionEngine = Depends(get_transaction_engine)):
    """Per-chain and total balance of a user."""
    if not await engine.store.user_exists(user_id):
        raise UserNotFound(user_id)

    totals = await engine.store.totals(user_id)
    return {
        "userId": user_id,
        "totalBalance": str(totals.total.quantize(CENT)),
        "balancesByChain": {chain: str(amount) for chain, amount in totals.by_chain.items()},
    }


@router.post("/send")
async def send(body: SendBody, engine: TransactionEngine = Depends(get_transaction_engine)):
    """Send funds between users, bridging if no single chain suffices."""
    logger.info(f"Send request: {body.amount} {body.from_} -> {body.to}")
    result = await engine.send(body.from_, body.to, body.amount)
    return result.to_dict()


@router.get("/transaction/{tx_hash}")
async def get_transaction(tx_hash: str, engine: TransactionEngine = Depends(get_transaction_engine)):
    """Look up a transaction by hash."""
    tx = await engine.get_status(tx_hash)
    return tx.to_dict()


@router.get("/gas-prices")
async def get_gas_prices(engine: TransactionEngine = Depends(get_transaction_engine)):
    """Current transfer cost estimate for every supported chain."""
    costs = await engine.oracle.all_costs()
    return {"gasCosts": [cost.to_dict() for cost in costs]}


@router.post("/estimate")
async def estimate(body: EstimateBody, engine: TransactionEngine = Depends(get_transaction_engine)):
    """Which chain a send of this amount would use."""
    selection = await engine.selector.select_chain(body.user_id, body.amount)
    return selection.to_dict()
