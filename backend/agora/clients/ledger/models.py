from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, Field


class TransferResult(BaseModel):
    """Outcome of a submit-and-confirm transfer."""

    success: bool
    transfer_id: str | None = None
    error: str | None = None
    reason: str | None = None
    amount: Decimal = Decimal("0")
    to_address: str = ""
    submitted_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def __str__(self) -> str:
        if self.success:
            return f"Sent {self.amount} to {self.to_address} (tx: {self.transfer_id})"
        return f"Transfer to {self.to_address} failed: {self.error} ({self.reason})"
