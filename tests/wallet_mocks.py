"""
Wallet Test Mocks Module

Scripted wallet provider and payment-term factories shared by the test
suite. ``FakeWalletProvider`` answers the JSON-RPC surface used by the
session, the chain guard and the signer, records every call, and lets a test
queue results or errors per method.

Usage:
    from wallet_mocks import FakeWalletProvider, make_terms, make_402_body

    provider = FakeWalletProvider(chain_id=1)
    provider.fail("wallet_switchEthereumChain", ProviderRPCError(4902, "Unrecognized chain"))
"""

import json
from typing import Any, Dict, List, Optional, Tuple

from x402_wallet.engine.exceptions import ProviderRPCError
from x402_wallet.schemas.https import PaymentRequiredInfo
from x402_wallet.wallet.providers import WalletProvider, parse_chain_id


# ========================================================================
# Mock Constants
# ========================================================================

ADDRESS_A = "0x1111111111111111111111111111111111111111"
ADDRESS_B = "0x2222222222222222222222222222222222222222"
PAY_TO = "0x78420B020292C5c337Bb2dC5595c6cfD26C1eADb"

BASE_SEPOLIA_CHAIN_ID = 84532
BASE_CHAIN_ID = 8453
BASE_SEPOLIA_USDC = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"

# Test keys (do not use in production!)
OWNER_PRIVATE_KEY = "0x1234567890123456789012345678901234567890123456789012345678901234"
SECOND_PRIVATE_KEY = "0xabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcd"

MOCK_SIGNATURE = "0x" + "ab" * 65

ONE_AND_A_HALF_ETH_WEI = 1_500_000_000_000_000_000


# ========================================================================
# Payment term factories
# ========================================================================

def make_terms_dict(**overrides: Any) -> Dict[str, Any]:
    terms = {
        "scheme": "exact",
        "network": "base-sepolia",
        "maxAmountRequired": "100000",
        "resource": "http://localhost:3005/api/premium",
        "description": "Premium report",
        "mimeType": "application/json",
        "payTo": PAY_TO,
        "maxTimeoutSeconds": 60,
        "asset": BASE_SEPOLIA_USDC,
        "extra": {"name": "USDC", "version": "2"},
    }
    terms.update(overrides)
    return terms


def make_terms(**overrides: Any) -> PaymentRequiredInfo:
    return PaymentRequiredInfo.model_validate(make_terms_dict(**overrides))


def make_402_body(accepts: Optional[List[Dict[str, Any]]] = None, error: str = "X-PAYMENT header is required") -> Dict[str, Any]:
    return {
        "x402Version": 1,
        "error": error,
        "accepts": [make_terms_dict()] if accepts is None else accepts,
    }


# ========================================================================
# Scripted provider
# ========================================================================

class FakeWalletProvider(WalletProvider):
    """
    Scripted EIP-1193 provider.

    Attributes:
        accounts: Accounts returned by eth_accounts / eth_requestAccounts.
        chain_id: Active chain; updated by successful switch requests.
        calls: Every (method, params) pair in call order.
        signed: (address, typed_data, active_chain_id) for each signature request.
    """

    def __init__(
        self,
        accounts: Optional[List[str]] = None,
        chain_id: int = BASE_SEPOLIA_CHAIN_ID,
        balance_wei: int = ONE_AND_A_HALF_ETH_WEI,
        is_metamask: bool = False,
        is_rabby: bool = False,
    ):
        self.accounts = list(accounts) if accounts is not None else [ADDRESS_A]
        self.chain_id = chain_id
        self.balance_wei = balance_wei
        self.is_metamask = is_metamask
        self.is_rabby = is_rabby
        self.signature = MOCK_SIGNATURE
        self.calls: List[Tuple[str, Any]] = []
        self.signed: List[Tuple[str, Dict[str, Any], int]] = []
        self.listeners: Dict[str, List[Any]] = {}
        self._errors: Dict[str, List[BaseException]] = {}
        self._results: Dict[str, List[Any]] = {}

    # ---- scripting -----------------------------------------------------

    def fail(self, method: str, *errors: BaseException) -> None:
        self._errors.setdefault(method, []).extend(errors)

    def respond(self, method: str, *results: Any) -> None:
        self._results.setdefault(method, []).extend(results)

    def count(self, method: str) -> int:
        return sum(1 for called, _ in self.calls if called == method)

    def methods(self) -> List[str]:
        return [called for called, _ in self.calls]

    async def emit(self, event: str, payload: Any) -> None:
        for handler in list(self.listeners.get(event, [])):
            await handler(payload)

    # ---- WalletProvider ------------------------------------------------

    def on(self, event, handler):
        self.listeners.setdefault(event, []).append(handler)

    def off(self, event, handler):
        if handler in self.listeners.get(event, []):
            self.listeners[event].remove(handler)

    async def request(self, method, params=None):
        self.calls.append((method, params))

        if self._errors.get(method):
            raise self._errors[method].pop(0)
        if self._results.get(method):
            return self._results[method].pop(0)

        if method in ("eth_requestAccounts", "eth_accounts"):
            return list(self.accounts)
        if method == "eth_chainId":
            return hex(self.chain_id)
        if method == "eth_getBalance":
            return hex(self.balance_wei)
        if method == "wallet_requestPermissions":
            return [{"parentCapability": "eth_accounts"}]
        if method == "wallet_revokePermissions":
            return None
        if method == "wallet_switchEthereumChain":
            self.chain_id = parse_chain_id(params[0]["chainId"])
            return None
        if method == "wallet_addEthereumChain":
            return None
        if method == "eth_signTypedData_v4":
            self.signed.append((params[0], json.loads(params[1]), self.chain_id))
            return self.signature

        raise ProviderRPCError(4200, f"Unsupported method {method}")
