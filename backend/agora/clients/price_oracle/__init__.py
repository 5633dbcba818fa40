"""Exchange-rate oracle client."""

from .client import PriceOracleClient, create_price_oracle_client
from .exceptions import (
    PriceOracleError,
    PriceOracleRateLimitError,
    PriceOracleUnknownPairError,
)
from .models import ExchangeRate, parse_pair

__all__ = [
    "PriceOracleClient",
    "create_price_oracle_client",
    "ExchangeRate",
    "parse_pair",
    "PriceOracleError",
    "PriceOracleRateLimitError",
    "PriceOracleUnknownPairError",
]
