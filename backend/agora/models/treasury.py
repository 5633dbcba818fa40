"""Treasury and payout address registry models."""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, Numeric, String, Text

from agora.database.base import Base
from agora.models.base import TimestampMixin, UUIDMixin


class Treasury(Base, UUIDMixin, TimestampMixin):
    """Per-tenant funding wallet; source of every payout for the tenant."""

    __tablename__ = "treasuries"

    tenant_id = Column(String(64), nullable=False, unique=True, index=True)
    wallet_address = Column(String(128), nullable=False)

    # Opaque to the engine; decrypted only at transfer time
    encrypted_secret = Column(Text, nullable=False)
    network = Column(String(50), nullable=False)

    budget_total = Column(Numeric(20, 9), nullable=False, default=Decimal("0"))
    budget_spent = Column(Numeric(20, 9), nullable=False, default=Decimal("0"))
    budget_currency = Column(String(10), nullable=False, default="SOL")

    __table_args__ = (
        CheckConstraint("budget_total >= 0", name="non_negative_budget_total"),
        CheckConstraint("budget_spent >= 0", name="non_negative_budget_spent"),
    )

    def __repr__(self) -> str:
        return f"<Treasury {self.tenant_id} {self.wallet_address[:8]}...>"


class UserWallet(Base, UUIDMixin, TimestampMixin):
    """A participant's registered payout address."""

    __tablename__ = "user_wallets"

    user_id = Column(String(64), nullable=False, unique=True, index=True)
    payout_address = Column(String(128), nullable=False)
    network = Column(String(50), nullable=True)

    def __repr__(self) -> str:
        return f"<UserWallet {self.user_id} {self.payout_address[:8]}...>"
