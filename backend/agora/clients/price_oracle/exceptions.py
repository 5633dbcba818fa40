class PriceOracleError(Exception):
    """Base exception for price oracle errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PriceOracleRateLimitError(PriceOracleError):
    """Rate limit exceeded."""

    pass


class PriceOracleUnknownPairError(PriceOracleError):
    """Currency pair is not priced by the oracle."""

    pass
