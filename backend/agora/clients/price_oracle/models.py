from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, Field


class ExchangeRate(BaseModel):
    """Point-in-time rate: one unit of ``base`` costs ``rate`` units of ``quote``."""

    base: str
    quote: str
    rate: Decimal
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def pair(self) -> str:
        return f"{self.base}/{self.quote}"

    def to_base(self, quote_amount: Decimal) -> Decimal:
        """Convert a quote-currency amount into base units."""
        return quote_amount / self.rate


def parse_pair(currency_pair: str) -> tuple[str, str]:
    """Split ``"SOL/USD"`` into ``("SOL", "USD")``."""
    base, sep, quote = currency_pair.partition("/")
    if not sep or not base or not quote:
        raise ValueError(f"Invalid currency pair: {currency_pair!r}")
    return base.upper(), quote.upper()
