import pytest

from x402_wallet.settings import X402Settings
from x402_wallet.wallet.session import WalletSession

from wallet_mocks import FakeWalletProvider


@pytest.fixture
def settings():
    return X402Settings(network="base-sepolia")


@pytest.fixture
def fake_provider():
    return FakeWalletProvider()


@pytest.fixture
def session(fake_provider, settings):
    return WalletSession(fake_provider, settings)
