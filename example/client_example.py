from x402_wallet.adapters.evm.local import LocalAccountProvider
from x402_wallet.clients.http_client import Http402Client
from x402_wallet.engine.events import WalletEventBridge
from x402_wallet.settings import X402Settings
from x402_wallet.wallet.session import WalletSession
import httpx
import logging
import os

wpk = os.getenv("X402_WALLET_PRIVATE_KEY", "0xxxx")  # Replace with a funded Base Sepolia key

settings = X402Settings.from_env()


async def print_state(state):
    print("Wallet state:", state.to_wire_dict())


async def main():
    config = settings.network_config()
    provider = LocalAccountProvider(wpk, chain_id=config.chain_id, rpc_url=config.rpc_url)
    session = WalletSession(provider, settings)

    bridge = WalletEventBridge(session)
    bridge.subscribe(print_state)

    state = await session.connect()
    print(f"Connected {state.address} on chain {state.chain_id}, balance {state.balance} ETH")

    try:
        async with Http402Client.from_session(
            session,
            base_url=settings.api_url,
            timeout=httpx.Timeout(60.0, read=120.0),
        ) as client:
            response = await client.get("/api/premium")
            receipt = client.payment_result(response)
            if receipt is not None:
                print("Settled:", receipt.transaction_hash)
            return response
    finally:
        bridge.close()
        await session.disconnect()


if __name__ == "__main__":
    import asyncio
    logging.basicConfig(level=logging.INFO)
    response = asyncio.run(main())
    print("Response:", response.status_code, response.text)
