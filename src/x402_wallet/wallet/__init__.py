"""
Wallet module: provider abstraction, capability gate and session lifecycle.
"""

from .providers import ProviderFlavor, ProviderGate, WalletProvider
from .session import SessionClient, SessionStatus, WalletSession, format_balance

__all__ = [
    "ProviderFlavor",
    "ProviderGate",
    "WalletProvider",
    "SessionClient",
    "SessionStatus",
    "WalletSession",
    "format_balance",
]
