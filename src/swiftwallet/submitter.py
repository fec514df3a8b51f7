"""Chain submission collaborators.

A submitter settles a transfer on a chain and returns a confirmation
receipt. No real chain is contacted: ``SimulatedSubmitter`` stands in for
one with random hashes and block numbers.
"""

import asyncio
import logging
import random
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from swiftwallet.errors import SubmissionFailure

logger = logging.getLogger(__name__)


def new_tx_hash() -> str:
    """Generate a random 32-byte transaction hash."""
    return f"0x{secrets.token_hex(32)}"


@dataclass
class SubmissionReceipt:
    """Confirmation of a settled transfer."""

    tx_hash: str
    chain: str
    from_user_id: str
    to_user_id: str
    amount: Decimal
    block_number: int
    status: str = "confirmed"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ChainSubmitter(ABC):
    """Abstract base class for chain submitters."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Submitter name identifier."""
        pass

    @abstractmethod
    async def _submit(
        self, chain: str, from_user_id: str, to_user_id: str, amount: Decimal
    ) -> SubmissionReceipt:
        pass

    async def send_transaction(
        self, chain: str, from_user_id: str, to_user_id: str, amount: Decimal
    ) -> SubmissionReceipt:
        """Settle a transfer on ``chain``.

        Raises:
            SubmissionFailure: for any error raised by the underlying chain
        """
        try:
            receipt = await self._submit(chain, from_user_id, to_user_id, amount)
        except SubmissionFailure:
            raise
        except Exception as e:
            logger.error(f"{self.name} submission on {chain} failed: {type(e).__name__}: {e}")
            raise SubmissionFailure(
                f"Submission on {chain} failed: {e}", chain=chain
            ) from e

        logger.info(
            f"{self.name} settled {amount} on {chain}: {receipt.tx_hash} "
            f"(block {receipt.block_number})"
        )
        return receipt


class SimulatedSubmitter(ChainSubmitter):
    """Dry-run submitter that confirms every transfer.

    ``fail_chains`` lists chains on which every submission fails.
    """

    def __init__(
        self,
        latency_ms: int = 0,
        fail_chains: Optional[Iterable[str]] = None,
    ):
        self.latency_ms = latency_ms
        self.fail_chains = set(fail_chains or ())

    @property
    def name(self) -> str:
        return "simulated"

    async def _submit(
        self, chain: str, from_user_id: str, to_user_id: str, amount: Decimal
    ) -> SubmissionReceipt:
        if self.latency_ms:
            await asyncio.sleep(self.latency_ms / 1000)

        if chain in self.fail_chains:
            raise SubmissionFailure(f"Simulated submission failure on {chain}", chain=chain)

        return SubmissionReceipt(
            tx_hash=new_tx_hash(),
            chain=chain,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=amount,
            block_number=random.randint(0, 999_999),
        )
