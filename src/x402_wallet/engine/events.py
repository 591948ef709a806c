"""
Wallet event bridge.

Turns provider-level ``accountsChanged`` / ``chainChanged`` notifications
into ``WalletState`` updates for observers. The bridge owns at most one
provider listener per event kind; subscribing again replaces the previous
subscription.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional

from ..schemas.wallet import WalletState
from ..wallet.providers import ACCOUNTS_CHANGED, CHAIN_CHANGED
from ..wallet.session import WalletSession

logger = logging.getLogger(__name__)


WalletStateHandler = Callable[[WalletState], Awaitable[None]]


class Subscription:
    """Handle returned by ``WalletEventBridge.subscribe``.

    Calling ``unsubscribe()`` (or the subscription itself) removes the
    provider listeners. Repeated calls are no-ops.
    """

    def __init__(self, remove: Optional[Callable[[], None]] = None):
        self._remove = remove

    @property
    def active(self) -> bool:
        return self._remove is not None

    def unsubscribe(self) -> None:
        remove, self._remove = self._remove, None
        if remove is not None:
            remove()

    def __call__(self) -> None:
        self.unsubscribe()

    def __repr__(self) -> str:
        return f"Subscription(active={self.active})"


class WalletEventBridge:
    """
    Republishes wallet provider events as ``WalletState`` snapshots.

    Args:
        session: Session whose provider is observed. An emptied account list
            clears the session locally before observers are notified.
    """

    def __init__(self, session: WalletSession):
        self._session = session
        self._subscription: Optional[Subscription] = None

    @property
    def subscription(self) -> Optional[Subscription]:
        return self._subscription

    def subscribe(self, handler: WalletStateHandler) -> Subscription:
        """
        Register ``handler`` for wallet state changes.

        Args:
            handler: Coroutine function receiving each new ``WalletState``.

        Returns:
            Subscription whose ``unsubscribe`` removes the provider listeners.

        Raises:
            TypeError: If handler is not a coroutine function.
        """
        if not inspect.iscoroutinefunction(handler):
            raise TypeError(f"Handler must be a coroutine function, got {type(handler).__name__}")

        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        provider = self._session.gate.provider
        if provider is None:
            logger.debug("No wallet provider, subscription is inert")
            return Subscription()

        async def on_accounts_changed(accounts: Any) -> None:
            await handler(await self._state_for_accounts(accounts))

        async def on_chain_changed(chain_id: Any) -> None:
            logger.info("Wallet chain changed to %s", chain_id)
            await handler(await self._session.get_state())

        provider.on(ACCOUNTS_CHANGED, on_accounts_changed)
        provider.on(CHAIN_CHANGED, on_chain_changed)

        def remove() -> None:
            provider.off(ACCOUNTS_CHANGED, on_accounts_changed)
            provider.off(CHAIN_CHANGED, on_chain_changed)

        self._subscription = Subscription(remove)
        return self._subscription

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def _state_for_accounts(self, accounts: Any) -> WalletState:
        addresses: List[str] = list(accounts or [])
        if not addresses:
            logger.info("Wallet accounts cleared by the provider")
            self._session.clear()
            return WalletState.disconnected()
        logger.info("Wallet accounts changed: %s", addresses[0])
        return await self._session.get_state()
