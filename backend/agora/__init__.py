"""Agora: community event settlement and payout engine."""

__version__ = "0.1.0"
__author__ = "Agora Team"

__all__ = ["__version__", "__author__"]
