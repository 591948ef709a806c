"""
EVM Payment Authorization Signing

Builds the EIP-712 ``TransferWithAuthorization`` (ERC-3009) message for an
x402 payment and has the connected wallet sign it. No key material is
handled here: the signature is requested from the session client, which
forwards ``eth_signTypedData_v4`` to the wallet provider.

Exported helpers
----------------
PaymentSigner
    Orchestrates one signing transaction: session client, chain check,
    typed-data construction, signature, payload assembly.

generate_nonce
    32 random bytes, 0x-prefixed hex, for EIP-3009 replay protection.

compute_validity_window
    ``(validAfter, validBefore)`` tolerant to client clock skew.

resolve_signing_domain
    EIP-712 domain for the network's USDC contract, honouring ``extra``
    overrides from the payment terms.

build_erc3009_typed_data
    Typed-data envelope for an authorization, ready for any external signer.
"""

import logging
import os
import time
from typing import Callable, Optional, Tuple

from ...engine.exceptions import SigningUnavailableError
from ...schemas.https import Authorization, ExactEvmPayload, PaymentPayload, PaymentRequiredInfo
from ...schemas.versions import X402_VERSION
from ...wallet.session import WalletSession
from .chains import ChainGuard
from .constants import EvmNetworkConfig
from .standards import EIP712Domain, ERC3009TypedData, TransferWithAuthorizationMessage

logger = logging.getLogger(__name__)


#: ``validAfter`` is backdated by this much to tolerate client clock skew.
VALID_AFTER_SKEW_SECONDS = 60
#: Extra lifetime on top of the server's ``maxTimeoutSeconds``.
VALID_BEFORE_GRACE_SECONDS = 300


def generate_nonce() -> str:
    """Return a fresh bytes32 nonce as 0x-prefixed hex."""
    return "0x" + os.urandom(32).hex()


def compute_validity_window(max_timeout_seconds: int, now: Optional[int] = None) -> Tuple[int, int]:
    """
    Compute the authorization validity window.

    Args:
        max_timeout_seconds: ``maxTimeoutSeconds`` from the payment terms.
        now: Current Unix time; defaults to ``time.time()``.

    Returns:
        ``(valid_after, valid_before)`` with
        ``valid_after = now - 60`` and
        ``valid_before = now + max_timeout_seconds + 300``.
    """
    if now is None:
        now = int(time.time())
    valid_after = now - VALID_AFTER_SKEW_SECONDS
    valid_before = now + max_timeout_seconds + VALID_BEFORE_GRACE_SECONDS
    return valid_after, valid_before


def resolve_signing_domain(terms: PaymentRequiredInfo, network: EvmNetworkConfig) -> EIP712Domain:
    """
    Resolve the EIP-712 domain for the payment asset.

    Name and version come from ``terms.extra`` when present, otherwise from
    the network's USDC entry. ``verifyingContract`` is always the network's
    USDC contract: it is a protocol-level constant, not user input.
    """
    extra = terms.extra
    if extra is None:
        return EIP712Domain.for_usdc(network)
    return EIP712Domain.for_usdc(network, name=extra.name, version=extra.version)


def build_erc3009_typed_data(
    domain: EIP712Domain,
    *,
    authorizer: str,
    recipient: str,
    value: int,
    valid_after: int,
    valid_before: int,
    nonce: str,
) -> ERC3009TypedData:
    """
    Wrap authorization fields in an EIP-712 ``ERC3009TypedData`` envelope.

    Raises:
        ValueError: If ``valid_after >= valid_before``.
    """
    message = TransferWithAuthorizationMessage(
        authorizer=authorizer,
        recipient=recipient,
        value=value,
        valid_after=valid_after,
        valid_before=valid_before,
        nonce=nonce,
    )
    return ERC3009TypedData(domain=domain, message=message)


class PaymentSigner:
    """
    Produces signed x402 payment payloads through the wallet session.

    Args:
        session: Wallet session owning the signing client.
        chain_guard: Guard used when the wallet is on the wrong chain;
            defaults to one built from the session's gate and network.
        clock: Returns the current Unix time, injectable for tests.
    """

    def __init__(
        self,
        session: WalletSession,
        chain_guard: Optional[ChainGuard] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._session = session
        self._chain_guard = chain_guard or ChainGuard(session.gate, session.network)
        self._clock = clock

    @property
    def session(self) -> WalletSession:
        return self._session

    async def sign(self, terms: PaymentRequiredInfo, amount: int) -> PaymentPayload:
        """
        Sign an EIP-3009 authorization for ``amount`` atomic units.

        The steps run strictly in order: session client, chain check and
        switch, client rebuild, signature. Nothing is retained on failure;
        callers may retry from scratch.

        Args:
            terms: Payment option selected from the 402 response.
            amount: Exact atomic amount to authorize.

        Returns:
            PaymentPayload ready for the ``X-Payment`` header.

        Raises:
            SigningUnavailableError: The session client has no account.
            ChainSwitchError / ProviderRPCError: The chain switch failed.
            UserRejectedError: The user rejected the signature.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ValueError(f"amount must be a non-negative integer of atomic units, got {amount!r}")

        client = await self._session.ensure_client()
        address = client.account
        if not address:
            raise SigningUnavailableError()

        network = self._session.network
        current_chain = await self._session.gate.chain_id()
        if current_chain != network.chain_id:
            logger.info("Wallet on chain %s, payment requires %s", current_chain, network.chain_id)
            await self._chain_guard.ensure_correct_chain()
            client = self._session.rebuild_client(address)

        if terms.network != network.network:
            logger.warning("Payment terms target %s but client is configured for %s", terms.network, network.network)
        if terms.asset.lower() != network.usdc.address.lower():
            logger.warning("Payment asset %s differs from %s USDC contract %s", terms.asset, network.network, network.usdc.address)

        valid_after, valid_before = compute_validity_window(terms.max_timeout_seconds, int(self._clock()))
        nonce = generate_nonce()
        domain = resolve_signing_domain(terms, network)
        typed_data = build_erc3009_typed_data(
            domain,
            authorizer=address,
            recipient=terms.pay_to,
            value=amount,
            valid_after=valid_after,
            valid_before=valid_before,
            nonce=nonce,
        )

        logger.info(
            "Signing payment authorization from=%s to=%s amount=%s validAfter=%s validBefore=%s",
            address, terms.pay_to, amount, valid_after, valid_before,
        )
        signature = await client.sign_typed_data(typed_data)

        return PaymentPayload(
            x402_version=int(X402_VERSION),
            scheme=terms.scheme,
            network=terms.network,
            payload=ExactEvmPayload(
                signature=signature,
                authorization=Authorization(
                    from_=address,
                    to=terms.pay_to,
                    value=str(amount),
                    valid_after=str(valid_after),
                    valid_before=str(valid_before),
                    nonce=nonce,
                ),
            ),
        )
