"""
Process-wide collaborator instances.

Services resolve the price oracle, ledger client, secret resolver and
announcement sink through these getters. Each is built lazily from settings;
``configure`` swaps in replacements (tests, paper runs) and ``reset``
restores the defaults.
"""

import logging
from typing import Optional

from agora.clients.ledger import LedgerClient
from agora.clients.price_oracle import PriceOracleClient
from agora.config import get_settings
from agora.services.interfaces import (
    AnnouncementSink,
    LedgerTransferClient,
    PriceOracle,
    TreasurySecretResolver,
)
from agora.utils.encryption import SecretResolver

logger = logging.getLogger(__name__)

_oracle: Optional[PriceOracle] = None
_ledger: Optional[LedgerTransferClient] = None
_secrets: Optional[TreasurySecretResolver] = None
_announcer: Optional[AnnouncementSink] = None


def get_oracle() -> PriceOracle:
    global _oracle
    if _oracle is None:
        _oracle = PriceOracleClient(get_settings().oracle)
    return _oracle


def get_ledger() -> LedgerTransferClient:
    global _ledger
    if _ledger is None:
        settings = get_settings()
        _ledger = LedgerClient(settings.ledger, native_decimals=settings.settlement.native_decimals)
    return _ledger


def get_secret_resolver() -> TreasurySecretResolver:
    global _secrets
    if _secrets is None:
        _secrets = SecretResolver(get_settings().treasury_encryption_key)
    return _secrets


def get_announcer() -> AnnouncementSink:
    global _announcer
    if _announcer is None:
        from agora.services.announcement_service import build_announcement_sink

        _announcer = build_announcement_sink(get_settings())
    return _announcer


def configure(
    oracle: Optional[PriceOracle] = None,
    ledger: Optional[LedgerTransferClient] = None,
    secrets: Optional[TreasurySecretResolver] = None,
    announcer: Optional[AnnouncementSink] = None,
) -> None:
    """Replace any subset of the collaborators."""
    global _oracle, _ledger, _secrets, _announcer
    if oracle is not None:
        _oracle = oracle
    if ledger is not None:
        _ledger = ledger
    if secrets is not None:
        _secrets = secrets
    if announcer is not None:
        _announcer = announcer


def reset() -> None:
    """Forget configured collaborators; the next getter call rebuilds from settings."""
    global _oracle, _ledger, _secrets, _announcer
    _oracle = None
    _ledger = None
    _secrets = None
    _announcer = None
