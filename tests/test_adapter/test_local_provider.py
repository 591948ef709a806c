"""
Test suite for LocalAccountProvider.
Tests: 1) Authorization rules 2) Chain switching and registration
3) Real EIP-712 signatures end to end 4) Account selection and events
"""
import json

import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data

from x402_wallet.adapters.evm.local import LocalAccountProvider
from x402_wallet.adapters.evm.signatures import (
    PaymentSigner,
    build_erc3009_typed_data,
    resolve_signing_domain,
)
from x402_wallet.engine.exceptions import ProviderRPCError, UserRejectedError
from x402_wallet.wallet.session import WalletSession

from wallet_mocks import (
    BASE_CHAIN_ID,
    BASE_SEPOLIA_CHAIN_ID,
    OWNER_PRIVATE_KEY,
    SECOND_PRIVATE_KEY,
    make_terms,
)


def recover_payload_signer(payload, terms, network):
    auth = payload.payload.authorization
    typed = build_erc3009_typed_data(
        resolve_signing_domain(terms, network),
        authorizer=auth.from_,
        recipient=auth.to,
        value=int(auth.value),
        valid_after=int(auth.valid_after),
        valid_before=int(auth.valid_before),
        nonce=auth.nonce,
    )
    signable = encode_typed_data(full_message=typed.to_dict())
    return Account.recover_message(signable, signature=payload.payload.signature)


@pytest.mark.asyncio
async def test_accounts_hidden_until_authorized():
    provider = LocalAccountProvider(OWNER_PRIVATE_KEY)

    assert await provider.request("eth_accounts") == []
    assert await provider.request("eth_requestAccounts") == [provider.address]
    assert await provider.request("eth_accounts") == [provider.address]


@pytest.mark.asyncio
async def test_address_is_checksummed():
    provider = LocalAccountProvider(OWNER_PRIVATE_KEY)

    assert provider.address == Account.from_key(OWNER_PRIVATE_KEY).address
    assert provider.addresses[0] == provider.address


def test_requires_a_key():
    with pytest.raises(ValueError):
        LocalAccountProvider([])


@pytest.mark.asyncio
async def test_balance_without_rpc():
    provider = LocalAccountProvider(OWNER_PRIVATE_KEY, balance_wei=2 * 10**18)
    session = WalletSession(provider)

    state = await session.connect()

    assert state.address == provider.address
    assert state.chain_id == BASE_SEPOLIA_CHAIN_ID
    assert state.balance == "2.0000"


@pytest.mark.asyncio
async def test_unknown_method():
    with pytest.raises(ProviderRPCError) as exc_info:
        await LocalAccountProvider(OWNER_PRIVATE_KEY).request("eth_sendTransaction", [{}])

    assert exc_info.value.code == ProviderRPCError.UNSUPPORTED_METHOD


@pytest.mark.asyncio
async def test_switch_to_unknown_chain_reports_4902():
    provider = LocalAccountProvider(OWNER_PRIVATE_KEY, chain_id=BASE_CHAIN_ID)

    with pytest.raises(ProviderRPCError) as exc_info:
        await provider.request("wallet_switchEthereumChain", [{"chainId": hex(BASE_SEPOLIA_CHAIN_ID)}])

    assert exc_info.value.code == ProviderRPCError.UNRECOGNIZED_CHAIN
    assert provider.chain_id == BASE_CHAIN_ID


@pytest.mark.asyncio
async def test_sign_typed_data_requires_authorization():
    provider = LocalAccountProvider(OWNER_PRIVATE_KEY)

    with pytest.raises(ProviderRPCError) as exc_info:
        await provider.request("eth_signTypedData_v4", [provider.address, "{}"])

    assert exc_info.value.code == ProviderRPCError.UNAUTHORIZED


@pytest.mark.asyncio
async def test_sign_typed_data_rejects_foreign_chain():
    provider = LocalAccountProvider(OWNER_PRIVATE_KEY, chain_id=BASE_CHAIN_ID)
    await provider.request("eth_requestAccounts")
    typed = {"domain": {"chainId": BASE_SEPOLIA_CHAIN_ID}}

    with pytest.raises(ProviderRPCError, match="must match the active chainId"):
        await provider.request("eth_signTypedData_v4", [provider.address, json.dumps(typed)])


@pytest.mark.asyncio
async def test_payment_signature_recovers_to_wallet_address():
    provider = LocalAccountProvider(OWNER_PRIVATE_KEY)
    session = WalletSession(provider)
    await session.connect()
    terms = make_terms()

    payload = await PaymentSigner(session).sign(terms, terms.amount)

    assert payload.payload.authorization.from_ == provider.address
    assert payload.payload.authorization.value == "100000"
    assert recover_payload_signer(payload, terms, session.network) == provider.address


@pytest.mark.asyncio
async def test_signing_registers_and_switches_chain():
    provider = LocalAccountProvider(OWNER_PRIVATE_KEY, chain_id=BASE_CHAIN_ID)
    session = WalletSession(provider)
    await session.connect(force_reselection=False)
    terms = make_terms()

    payload = await PaymentSigner(session).sign(terms, terms.amount)

    assert provider.chain_id == BASE_SEPOLIA_CHAIN_ID
    assert BASE_SEPOLIA_CHAIN_ID in provider.known_chains
    assert recover_payload_signer(payload, terms, session.network) == provider.address


@pytest.mark.asyncio
async def test_rejected_signature():
    provider = LocalAccountProvider(OWNER_PRIVATE_KEY)
    session = WalletSession(provider)
    await session.connect()
    provider.reject_next("eth_signTypedData_v4")

    with pytest.raises(UserRejectedError):
        await PaymentSigner(session).sign(make_terms(), 1)

    # Rejection is one-shot
    payload = await PaymentSigner(session).sign(make_terms(), 1)
    assert payload.payload.signature.startswith("0x")


@pytest.mark.asyncio
async def test_switch_account_selects_next_key():
    provider = LocalAccountProvider([OWNER_PRIVATE_KEY, SECOND_PRIVATE_KEY])
    session = WalletSession(provider)
    await session.connect()
    events = []

    async def record(accounts):
        events.append(accounts)

    provider.on("accountsChanged", record)
    provider.select_on_next_prompt(1)

    state = await session.switch_account()

    second = Account.from_key(SECOND_PRIVATE_KEY).address
    assert state.address == second
    assert session.client.account == second
    assert events == [[second]]


@pytest.mark.asyncio
async def test_revoke_clears_authorization_and_notifies():
    provider = LocalAccountProvider(OWNER_PRIVATE_KEY)
    session = WalletSession(provider)
    await session.connect()
    events = []

    async def record(accounts):
        events.append(accounts)

    provider.on("accountsChanged", record)
    await session.disconnect()

    assert events == [[]]
    assert await provider.request("eth_accounts") == []
