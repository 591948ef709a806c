"""
Local Account Wallet Provider

A ``WalletProvider`` backed by in-process ``eth_account`` keys, for headless
agents, scripts and tests. It answers the same JSON-RPC surface a browser
wallet does and keeps the same rules: accounts are only visible once
authorized, unknown chains fail with 4902, and typed data must be signed for
the active chain.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Union

from eth_account import Account
from web3 import AsyncWeb3, Web3

from ...engine.exceptions import ProviderRPCError
from ...wallet.providers import (
    ACCOUNTS_CHANGED,
    CHAIN_CHANGED,
    ETH_ACCOUNTS,
    ETH_CHAIN_ID,
    ETH_GET_BALANCE,
    ETH_REQUEST_ACCOUNTS,
    ETH_SIGN_TYPED_DATA_V4,
    WALLET_ADD_CHAIN,
    WALLET_REQUEST_PERMISSIONS,
    WALLET_REVOKE_PERMISSIONS,
    WALLET_SWITCH_CHAIN,
    ProviderEventHandler,
    WalletProvider,
    parse_chain_id,
)

logger = logging.getLogger(__name__)

_INVALID_PARAMS = -32602


class LocalAccountProvider(WalletProvider):
    """
    Wallet provider holding one or more private keys in memory.

    Args:
        private_keys: One key or a sequence of keys (0x-prefixed hex).
        chain_id: Initially active chain.
        rpc_url: Optional JSON-RPC endpoint used to answer ``eth_getBalance``;
            without it ``balance_wei`` is reported.
        known_chains: Chains the wallet already knows; the active chain is
            always included.
        balance_wei: Balance reported when no RPC endpoint is configured.

    Example::

        provider = LocalAccountProvider("0xYOUR_PRIVATE_KEY", chain_id=84532)
        session = WalletSession(provider)
        await session.connect()
    """

    def __init__(
        self,
        private_keys: Union[str, Sequence[str]],
        chain_id: int = 84532,
        *,
        rpc_url: Optional[str] = None,
        known_chains: Optional[Iterable[int]] = None,
        balance_wei: int = 0,
    ):
        keys = [private_keys] if isinstance(private_keys, str) else list(private_keys)
        if not keys:
            raise ValueError("LocalAccountProvider needs at least one private key")

        self._accounts = [Account.from_key(key) for key in keys]
        self._selected = 0
        self._pending_selection: Optional[int] = None
        self._authorized = False
        self._chain_id = chain_id
        self._known_chains: Set[int] = set(known_chains or ()) | {chain_id}
        self._balance_wei = balance_wei
        self._web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url)) if rpc_url else None
        self._listeners: Dict[str, List[ProviderEventHandler]] = {}
        self._rejections: Set[str] = set()

    # =========================================================================
    # Inspection and scripting helpers
    # =========================================================================

    @property
    def address(self) -> str:
        return Web3.to_checksum_address(self._accounts[self._selected].address)

    @property
    def addresses(self) -> List[str]:
        return [Web3.to_checksum_address(account.address) for account in self._accounts]

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def known_chains(self) -> Set[int]:
        return set(self._known_chains)

    def reject_next(self, method: str) -> None:
        """Make the next ``method`` request fail as if the user rejected it."""
        self._rejections.add(method)

    def select_on_next_prompt(self, index: int) -> None:
        """Pick account ``index`` the next time the account picker opens."""
        if not 0 <= index < len(self._accounts):
            raise IndexError(f"No account at index {index}")
        self._pending_selection = index

    async def emit(self, event: str, payload: Any) -> None:
        for handler in list(self._listeners.get(event, [])):
            await handler(payload)

    # =========================================================================
    # WalletProvider interface
    # =========================================================================

    def on(self, event: str, handler: ProviderEventHandler) -> None:
        self._listeners.setdefault(event, []).append(handler)

    def off(self, event: str, handler: ProviderEventHandler) -> None:
        handlers = self._listeners.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        if method in self._rejections:
            self._rejections.discard(method)
            raise ProviderRPCError(ProviderRPCError.USER_REJECTED, "User rejected the request.")

        params = params or []

        if method == ETH_REQUEST_ACCOUNTS:
            self._authorized = True
            return [self.address]

        if method == ETH_ACCOUNTS:
            return [self.address] if self._authorized else []

        if method == ETH_CHAIN_ID:
            return hex(self._chain_id)

        if method == ETH_GET_BALANCE:
            return await self._get_balance(params)

        if method == WALLET_REQUEST_PERMISSIONS:
            return await self._request_permissions()

        if method == WALLET_REVOKE_PERMISSIONS:
            self._authorized = False
            await self.emit(ACCOUNTS_CHANGED, [])
            return None

        if method == WALLET_SWITCH_CHAIN:
            return await self._switch_chain(params)

        if method == WALLET_ADD_CHAIN:
            chain_id = parse_chain_id(self._first_param(params, method)["chainId"])
            self._known_chains.add(chain_id)
            logger.debug("Chain %s added to local wallet", chain_id)
            return None

        if method == ETH_SIGN_TYPED_DATA_V4:
            return self._sign_typed_data(params)

        raise ProviderRPCError(ProviderRPCError.UNSUPPORTED_METHOD, f"Method {method} is not supported")

    # =========================================================================
    # Method handlers
    # =========================================================================

    async def _get_balance(self, params: List[Any]) -> str:
        if self._web3 is None:
            return hex(self._balance_wei)
        address = Web3.to_checksum_address(params[0]) if params else self.address
        block = params[1] if len(params) > 1 else "latest"
        return hex(await self._web3.eth.get_balance(address, block))

    async def _request_permissions(self) -> List[Dict[str, Any]]:
        previous = self.address if self._authorized else None
        if self._pending_selection is not None:
            self._selected = self._pending_selection
            self._pending_selection = None
        self._authorized = True
        if previous is not None and previous != self.address:
            await self.emit(ACCOUNTS_CHANGED, [self.address])
        return [{"parentCapability": "eth_accounts"}]

    async def _switch_chain(self, params: List[Any]) -> None:
        chain_id = parse_chain_id(self._first_param(params, WALLET_SWITCH_CHAIN)["chainId"])
        if chain_id not in self._known_chains:
            raise ProviderRPCError(
                ProviderRPCError.UNRECOGNIZED_CHAIN,
                f"Unrecognized chain ID {hex(chain_id)}. Try adding the chain using wallet_addEthereumChain first.",
            )
        if chain_id != self._chain_id:
            self._chain_id = chain_id
            await self.emit(CHAIN_CHANGED, hex(chain_id))
        return None

    def _sign_typed_data(self, params: List[Any]) -> str:
        if len(params) < 2:
            raise ProviderRPCError(_INVALID_PARAMS, "eth_signTypedData_v4 expects [address, typedData]")

        address, raw = params[0], params[1]
        if not self._authorized or str(address).lower() != self.address.lower():
            raise ProviderRPCError(
                ProviderRPCError.UNAUTHORIZED,
                f"Account {address} has not been authorized by the user",
            )

        typed_data = json.loads(raw) if isinstance(raw, str) else raw
        domain_chain = typed_data.get("domain", {}).get("chainId")
        if domain_chain is not None and parse_chain_id(domain_chain) != self._chain_id:
            raise ProviderRPCError(
                _INVALID_PARAMS,
                f'Provided chainId "{domain_chain}" must match the active chainId "{self._chain_id}"',
            )

        signed = Account.sign_typed_data(self._accounts[self._selected].key, full_message=typed_data)
        return "0x" + bytes(signed.signature).hex()

    @staticmethod
    def _first_param(params: List[Any], method: str) -> Dict[str, Any]:
        if not params or not isinstance(params[0], dict):
            raise ProviderRPCError(_INVALID_PARAMS, f"{method} expects a parameter object")
        return params[0]
