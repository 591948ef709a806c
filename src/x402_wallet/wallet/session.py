"""
Wallet Session Manager

``WalletSession`` owns the one logical connected session: the selected
account and the ``SessionClient`` derived from it. It is the only component
that creates or replaces the client; the signer asks for it through
``ensure_client`` and, after a chain switch, ``rebuild_client``.

Session lifecycle::

    DISCONNECTED -> CONNECTING -> CONNECTED -> SWITCHING_ACCOUNT -> CONNECTED
                        |                              |
                        +--------> DISCONNECTED <------+

Provider-originated account clearing (``clear``) forces DISCONNECTED from
any state.
"""

import json
import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Union

from web3 import Web3

from ..adapters.evm.constants import EvmNetworkConfig
from ..adapters.evm.standards import ERC3009TypedData
from ..engine.exceptions import (
    AccountUnchangedError,
    InvalidTransition,
    NoAccountsSelectedError,
    NotConnectedError,
    UserRejectedError,
)
from ..schemas.wallet import WalletState
from ..settings import X402Settings
from .providers import (
    ETH_ACCOUNTS_PERMISSION,
    ETH_GET_BALANCE,
    ETH_REQUEST_ACCOUNTS,
    ETH_SIGN_TYPED_DATA_V4,
    WALLET_REQUEST_PERMISSIONS,
    WALLET_REVOKE_PERMISSIONS,
    ProviderFlavor,
    ProviderGate,
    WalletProvider,
)

logger = logging.getLogger(__name__)


_UNCHANGED_GUIDANCE = {
    ProviderFlavor.RABBY: "Account unchanged. Use the Rabby extension icon to switch accounts.",
    ProviderFlavor.METAMASK: "Select a different account in your wallet.",
    ProviderFlavor.OTHER: "Select a different account in your wallet.",
}

_RABBY_POPUP_GUIDANCE = "Click the Rabby extension icon and select another account."


def format_balance(raw_balance: Any, decimals: int = 18) -> str:
    """Format a provider balance (hex or int wei) with four decimals of the native unit."""
    if isinstance(raw_balance, str):
        wei = int(raw_balance, 16) if raw_balance.lower().startswith("0x") else int(raw_balance)
    else:
        wei = int(raw_balance or 0)

    if decimals == 18:
        amount = Web3.from_wei(wei, "ether")
    else:
        amount = Decimal(wei) / (Decimal(10) ** decimals)
    return f"{Decimal(amount):.4f}"


class SessionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    SWITCHING_ACCOUNT = "switching_account"


_TRANSITIONS = {
    SessionStatus.DISCONNECTED: {
        SessionStatus.CONNECTING,
        SessionStatus.CONNECTED,            # ensure_client adopting an authorized account
        SessionStatus.SWITCHING_ACCOUNT,    # provider already holds an authorized account
    },
    SessionStatus.CONNECTING: {SessionStatus.CONNECTED, SessionStatus.DISCONNECTED},
    SessionStatus.CONNECTED: {
        SessionStatus.CONNECTING,
        SessionStatus.SWITCHING_ACCOUNT,
        SessionStatus.DISCONNECTED,
    },
    SessionStatus.SWITCHING_ACCOUNT: {SessionStatus.CONNECTED, SessionStatus.DISCONNECTED},
}


class SessionClient:
    """
    Signing client bound to one account and one target chain.

    Not a durable resource: ``WalletSession`` discards it whenever the
    account or chain may have changed.
    """

    def __init__(self, account: str, network: EvmNetworkConfig, gate: ProviderGate):
        self._account = account
        self._network = network
        self._gate = gate

    @property
    def account(self) -> Optional[str]:
        return self._account

    @property
    def network(self) -> EvmNetworkConfig:
        return self._network

    @property
    def chain_id(self) -> int:
        return self._network.chain_id

    async def sign_typed_data(self, typed_data: Union[ERC3009TypedData, Dict[str, Any]]) -> str:
        """Request an ``eth_signTypedData_v4`` signature from the wallet."""
        if isinstance(typed_data, ERC3009TypedData):
            raw = typed_data.to_json()
        else:
            raw = json.dumps(typed_data, separators=(",", ":"))
        return await self._gate.request(ETH_SIGN_TYPED_DATA_V4, [self._account, raw])

    def __repr__(self) -> str:
        return f"SessionClient(account={self._account}, chain_id={self.chain_id})"


class WalletSession:
    """
    Owns the wallet session and its signing client.

    Args:
        provider: Wallet provider, or None when no wallet is installed.
        settings: Client settings; defaults to ``X402Settings()``.
    """

    def __init__(self, provider: Optional[WalletProvider], settings: Optional[X402Settings] = None):
        self._settings = settings or X402Settings()
        self._network = self._settings.network_config()
        self._gate = ProviderGate(provider, request_timeout=self._settings.request_timeout)
        self._client: Optional[SessionClient] = None
        self._status = SessionStatus.DISCONNECTED
        # Bumped by clear(); a pending connect or switch compares against it.
        self._generation = 0

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def gate(self) -> ProviderGate:
        return self._gate

    @property
    def network(self) -> EvmNetworkConfig:
        return self._network

    @property
    def settings(self) -> X402Settings:
        return self._settings

    @property
    def client(self) -> Optional[SessionClient]:
        return self._client

    @property
    def status(self) -> SessionStatus:
        return self._status

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self, force_reselection: bool = True) -> WalletState:
        """
        Connect the wallet and bind a session client to the first account.

        Args:
            force_reselection: Ask the wallet to show its account picker first.

        Returns:
            WalletState with address, chain id and balance.

        Raises:
            ProviderUnavailableError: No provider is present.
            NoAccountsSelectedError: The wallet returned no accounts.
            NotConnectedError: The session was cleared while the wallet was
                still answering.
        """
        self._gate.require()
        self._transition(SessionStatus.CONNECTING)
        generation = self._generation

        try:
            if force_reselection:
                try:
                    await self._gate.request(WALLET_REQUEST_PERMISSIONS, ETH_ACCOUNTS_PERMISSION)
                except Exception as exc:
                    logger.info("Account selection request failed (%s), falling back to eth_requestAccounts", exc)
                self._check_pending(SessionStatus.CONNECTING, generation)

            accounts = await self._gate.accounts(ETH_REQUEST_ACCOUNTS)
            self._check_pending(SessionStatus.CONNECTING, generation)
            if not accounts:
                raise NoAccountsSelectedError()

            client = self._bind(accounts[0])
            state = await self._read_state(client.account)
            self._check_pending(SessionStatus.CONNECTING, generation)
        except Exception:
            if self._is_pending(SessionStatus.CONNECTING, generation):
                self._client = None
                self._transition(SessionStatus.DISCONNECTED)
            raise

        self._transition(SessionStatus.CONNECTED)
        logger.info("Wallet connected: %s on chain %s", state.address, state.chain_id)
        return state

    async def disconnect(self) -> None:
        """
        Tear down the session client and ask the wallet to revoke permissions.

        Revocation is best effort: most wallets do not support it, so its
        failures are logged and ignored. The local client is always cleared.
        """
        self.clear()

        if not self._gate.is_available():
            return

        try:
            await self._gate.request(WALLET_REVOKE_PERMISSIONS, ETH_ACCOUNTS_PERMISSION)
        except Exception as exc:
            logger.info(
                "Wallet does not support permission revocation (%s); user must disconnect from the wallet",
                exc,
            )

    async def switch_account(self) -> WalletState:
        """
        Open the wallet account picker and bind the newly selected account.

        Raises:
            ProviderUnavailableError: No provider is present.
            UserRejectedError: The user cancelled the picker.
            NoAccountsSelectedError: No account is authorized afterwards.
            AccountUnchangedError: The same account was selected again.
            NotConnectedError: The session was cleared while the picker was open.
        """
        self._gate.require()
        flavor = ProviderFlavor.detect(self._gate.provider)
        logger.debug("Detected wallet flavor: %s", flavor.value)

        self._transition(SessionStatus.SWITCHING_ACCOUNT)
        generation = self._generation
        try:
            current_accounts = await self._gate.accounts()
            self._check_pending(SessionStatus.SWITCHING_ACCOUNT, generation)
            current_address = current_accounts[0] if current_accounts else None

            await self._request_reselection(flavor)
            self._check_pending(SessionStatus.SWITCHING_ACCOUNT, generation)

            accounts = await self._gate.accounts()
            self._check_pending(SessionStatus.SWITCHING_ACCOUNT, generation)
            if not accounts:
                raise NoAccountsSelectedError()

            address = accounts[0]
            if current_address is not None and address.lower() == current_address.lower():
                raise AccountUnchangedError(_UNCHANGED_GUIDANCE[flavor])

            self._bind(address)
            state = await self._read_state(address)
            self._check_pending(SessionStatus.SWITCHING_ACCOUNT, generation)
        except Exception:
            if self._is_pending(SessionStatus.SWITCHING_ACCOUNT, generation):
                fallback = SessionStatus.CONNECTED if self._client is not None else SessionStatus.DISCONNECTED
                self._transition(fallback)
            raise

        self._transition(SessionStatus.CONNECTED)
        logger.info("Wallet account switched to %s", state.address)
        return state

    async def get_state(self) -> WalletState:
        """
        Read accounts and chain id without touching the session client.

        Never raises: a missing provider, an empty account list or a provider
        error all yield the disconnected state. Balance is not refreshed.
        """
        if not self._gate.is_available():
            return WalletState.disconnected()

        try:
            accounts = await self._gate.accounts()
            if not accounts:
                return WalletState.disconnected()
            chain_id = await self._gate.chain_id()
        except Exception as exc:
            logger.debug("Reading wallet state failed: %s", exc)
            return WalletState.disconnected()

        return WalletState(is_connected=True, address=accounts[0], chain_id=chain_id, balance=None)

    async def ensure_client(self) -> SessionClient:
        """
        Rebuild the session client from the currently authorized account.

        Called before every signature so the signer never uses a stale
        address; the result is not cached across calls.

        Raises:
            ProviderUnavailableError: No provider is present.
            NotConnectedError: The wallet has no authorized account.
        """
        self._gate.require()
        accounts = await self._gate.accounts()
        if not accounts:
            raise NotConnectedError()

        client = self._bind(accounts[0])
        if self._status is SessionStatus.DISCONNECTED:
            self._transition(SessionStatus.CONNECTED)
        logger.debug("Session client initialized with account %s", client.account)
        return client

    def rebuild_client(self, address: str) -> SessionClient:
        """Rebind the session client, e.g. after the wallet switched chains."""
        client = self._bind(address)
        logger.debug("Session client rebuilt for %s on chain %s", address, client.chain_id)
        return client

    def clear(self) -> None:
        """Drop the session client locally, without calling the provider."""
        if self._client is not None or self._status is not SessionStatus.DISCONNECTED:
            logger.info("Wallet session cleared")
        self._client = None
        self._status = SessionStatus.DISCONNECTED
        self._generation += 1

    # =========================================================================
    # Internals
    # =========================================================================

    def _bind(self, address: str) -> SessionClient:
        self._client = SessionClient(address, self._network, self._gate)
        return self._client

    async def _read_state(self, address: str) -> WalletState:
        chain_id = await self._gate.chain_id()
        raw_balance = await self._gate.request(ETH_GET_BALANCE, [address, "latest"])
        balance = format_balance(raw_balance, self._network.native_currency.decimals)
        return WalletState(is_connected=True, address=address, chain_id=chain_id, balance=balance)

    async def _request_reselection(self, flavor: ProviderFlavor) -> None:
        if flavor is ProviderFlavor.RABBY:
            # Rabby may refuse to reopen its picker; the user has to switch from the extension.
            try:
                await self._gate.request(WALLET_REQUEST_PERMISSIONS, ETH_ACCOUNTS_PERMISSION)
            except UserRejectedError:
                raise
            except Exception as exc:
                raise AccountUnchangedError(_RABBY_POPUP_GUIDANCE) from exc
            return

        await self._gate.request(WALLET_REQUEST_PERMISSIONS, ETH_ACCOUNTS_PERMISSION)

    def _is_pending(self, status: SessionStatus, generation: int) -> bool:
        return self._status is status and self._generation == generation

    def _check_pending(self, status: SessionStatus, generation: int) -> None:
        if not self._is_pending(status, generation):
            raise NotConnectedError("Wallet session was cleared while the wallet request was pending")

    def _transition(self, target: SessionStatus) -> None:
        if target not in _TRANSITIONS[self._status]:
            raise InvalidTransition(self._status.value, target.value)
        logger.debug("Session %s -> %s", self._status.value, target.value)
        self._status = target
