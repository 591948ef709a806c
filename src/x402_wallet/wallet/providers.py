"""
Wallet provider abstraction.

``WalletProvider`` is the capability-based interface to whatever holds the
user's keys: a browser extension bridged over JSON-RPC, a hardware wallet,
or the in-process ``LocalAccountProvider``. The core never touches private
keys; it only calls ``request`` and listens to ``accountsChanged`` /
``chainChanged`` events.

``ProviderGate`` is the single boundary every component goes through. It
reports availability, normalizes provider failures into the error taxonomy
and applies the optional request timeout.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

from ..engine.exceptions import (
    ProviderRPCError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    UserRejectedError,
)

logger = logging.getLogger(__name__)


# JSON-RPC methods
ETH_REQUEST_ACCOUNTS = "eth_requestAccounts"
ETH_ACCOUNTS = "eth_accounts"
ETH_CHAIN_ID = "eth_chainId"
ETH_GET_BALANCE = "eth_getBalance"
ETH_SIGN_TYPED_DATA_V4 = "eth_signTypedData_v4"
WALLET_REQUEST_PERMISSIONS = "wallet_requestPermissions"
WALLET_REVOKE_PERMISSIONS = "wallet_revokePermissions"
WALLET_SWITCH_CHAIN = "wallet_switchEthereumChain"
WALLET_ADD_CHAIN = "wallet_addEthereumChain"

# Provider events
ACCOUNTS_CHANGED = "accountsChanged"
CHAIN_CHANGED = "chainChanged"

ETH_ACCOUNTS_PERMISSION = [{"eth_accounts": {}}]

_REJECTION_PHRASES = ("user rejected", "user denied", "user cancelled", "user canceled")


ProviderEventHandler = Callable[[Any], Awaitable[None]]


class WalletProvider(ABC):
    """
    Abstract EIP-1193 style wallet provider.

    Implementations raise ``ProviderRPCError`` for protocol errors so that
    callers can branch on ``code`` instead of parsing messages.
    """

    #: Capability flags used to pick wallet-specific account-switch flows.
    is_metamask: bool = False
    is_rabby: bool = False

    @abstractmethod
    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Send a JSON-RPC request and return its result."""

    @abstractmethod
    def on(self, event: str, handler: ProviderEventHandler) -> None:
        """Subscribe ``handler`` to a provider event."""

    @abstractmethod
    def off(self, event: str, handler: ProviderEventHandler) -> None:
        """Remove a previously subscribed handler."""


class ProviderFlavor(str, Enum):
    RABBY = "rabby"
    METAMASK = "metamask"
    OTHER = "other"

    @classmethod
    def detect(cls, provider: Optional[WalletProvider]) -> "ProviderFlavor":
        # Rabby also sets isMetaMask for compatibility, so check it first.
        if provider is None:
            return cls.OTHER
        if getattr(provider, "is_rabby", False):
            return cls.RABBY
        if getattr(provider, "is_metamask", False):
            return cls.METAMASK
        return cls.OTHER


def is_user_rejection(exc: BaseException) -> bool:
    if isinstance(exc, UserRejectedError):
        return True
    if isinstance(exc, ProviderRPCError) and exc.code == ProviderRPCError.USER_REJECTED:
        return True
    message = str(exc).lower()
    return any(phrase in message for phrase in _REJECTION_PHRASES)


def parse_chain_id(value: Any) -> int:
    """Parse a provider chain id (``"0x14a34"`` or an int) into an int."""
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        return int(text, 16) if text.startswith("0x") else int(text)
    raise ValueError(f"Unexpected chain id value from provider: {value!r}")


class ProviderGate:
    """
    Capability gate around an optional wallet provider.

    Args:
        provider: The wallet provider, or None when none is installed.
        request_timeout: Seconds to wait for each provider call. None waits
            indefinitely, which is what popup-driven wallets normally need.
    """

    def __init__(self, provider: Optional[WalletProvider], request_timeout: Optional[float] = None):
        self._provider = provider
        self._request_timeout = request_timeout

    @property
    def provider(self) -> Optional[WalletProvider]:
        return self._provider

    def is_available(self) -> bool:
        return self._provider is not None

    def require(self) -> WalletProvider:
        if self._provider is None:
            raise ProviderUnavailableError()
        return self._provider

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Forward a request to the provider, normalizing failures.

        Raises:
            ProviderUnavailableError: No provider is present.
            UserRejectedError: The user rejected the request in the wallet.
            ProviderRPCError: Any other provider error, code preserved.
            ProviderTimeoutError: The configured timeout elapsed.
        """
        provider = self.require()
        logger.debug("Provider request %s params=%s", method, params)

        call = provider.request(method, params)
        try:
            if self._request_timeout is None:
                result = await call
            else:
                try:
                    result = await asyncio.wait_for(call, timeout=self._request_timeout)
                except asyncio.TimeoutError:
                    raise ProviderTimeoutError(method, self._request_timeout)
        except UserRejectedError:
            raise
        except ProviderRPCError as exc:
            if is_user_rejection(exc):
                raise UserRejectedError(exc.message) from exc
            raise
        except ProviderTimeoutError:
            raise
        except Exception as exc:
            if is_user_rejection(exc):
                raise UserRejectedError(str(exc)) from exc
            code = getattr(exc, "code", None)
            if isinstance(code, int):
                raise ProviderRPCError(code, str(exc), getattr(exc, "data", None)) from exc
            raise

        logger.debug("Provider response %s -> %r", method, result)
        return result

    async def accounts(self, method: str = ETH_ACCOUNTS) -> List[str]:
        result = await self.request(method)
        return list(result or [])

    async def chain_id(self) -> int:
        return parse_chain_id(await self.request(ETH_CHAIN_ID))
