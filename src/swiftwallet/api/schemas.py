"""Request bodies for the ledger API."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from swiftwallet.utils.amounts import parse_amount
from swiftwallet.errors import InvalidAmount


def _positive_amount(value: Any) -> Decimal:
    try:
        return parse_amount(value)
    except InvalidAmount:
        raise ValueError("amount must be a positive number")


class SendBody(BaseModel):
    """Body of POST /send."""

    model_config = ConfigDict(populate_by_name=True)

    to: str = Field(..., min_length=1, description="Recipient user ID")
    from_: str = Field(..., alias="from", min_length=1, description="Sender user ID")
    amount: Decimal = Field(..., description="Amount in USD")

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v: Any) -> Decimal:
        """Validate amount is a finite positive number."""
        return _positive_amount(v)


class EstimateBody(BaseModel):
    """Body of POST /estimate."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1, description="User ID")
    amount: Decimal = Field(..., description="Amount in USD")

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v: Any) -> Decimal:
        """Validate amount is a finite positive number."""
        return _positive_amount(v)
