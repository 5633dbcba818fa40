"""Treasury and payout address schemas."""

from decimal import Decimal
from typing import Optional

from pydantic import Field, computed_field

from agora.schemas.common import BaseSchema, TimestampSchema


class TreasuryUpsert(BaseSchema):
    """Register or replace a tenant treasury. ``secret`` is encrypted before storage."""

    wallet_address: str = Field(min_length=1, max_length=128)
    secret: str = Field(min_length=1)
    network: str = Field(min_length=1, max_length=50)
    budget_total: Optional[Decimal] = Field(default=None, ge=0)
    budget_currency: Optional[str] = Field(default=None, max_length=10)


class TreasuryResponse(TimestampSchema):
    """Treasury view; the secret is never returned."""

    tenant_id: str
    wallet_address: str
    network: str
    budget_total: Decimal
    budget_spent: Decimal
    budget_currency: str

    @computed_field
    @property
    def budget_remaining(self) -> Decimal:
        return self.budget_total - self.budget_spent


class BudgetUpdate(BaseSchema):
    budget_total: Decimal = Field(ge=0)


class WalletUpdate(BaseSchema):
    payout_address: str = Field(min_length=1, max_length=128)
    network: Optional[str] = Field(default=None, max_length=50)


class WalletResponse(BaseSchema):
    user_id: str
    payout_address: str
    network: Optional[str]
