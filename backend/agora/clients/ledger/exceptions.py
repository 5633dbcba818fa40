class LedgerError(Exception):
    """Base exception for ledger RPC errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LedgerRPCError(LedgerError):
    """The RPC node returned a JSON-RPC error object."""

    pass


class LedgerNetworkError(LedgerError):
    """The RPC node could not be reached."""

    pass
