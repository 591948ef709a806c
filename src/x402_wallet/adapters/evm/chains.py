"""
Chain Network Guard

Makes sure the wallet's active chain is the chain x402 payments are
configured for, switching to it and registering it with the wallet when the
wallet does not know it yet.
"""

import logging
from typing import Any

from ...engine.exceptions import ChainSwitchError, ProviderRPCError
from ...wallet.providers import WALLET_ADD_CHAIN, WALLET_SWITCH_CHAIN, ProviderGate
from .constants import EvmNetworkConfig

logger = logging.getLogger(__name__)


def is_unrecognized_chain(exc: ProviderRPCError) -> bool:
    """True when the provider reports the requested chain as unknown (4902).

    MetaMask Mobile nests the original code under ``data.originalError``.
    """
    if exc.code == ProviderRPCError.UNRECOGNIZED_CHAIN:
        return True
    data: Any = exc.data
    if isinstance(data, dict):
        original = data.get("originalError")
        if isinstance(original, dict) and original.get("code") == ProviderRPCError.UNRECOGNIZED_CHAIN:
            return True
    return False


class ChainGuard:
    """
    Switches the wallet to the configured target chain.

    Args:
        gate: Provider gate the requests go through.
        network: Target network configuration.
    """

    def __init__(self, gate: ProviderGate, network: EvmNetworkConfig):
        self._gate = gate
        self._network = network

    @property
    def network(self) -> EvmNetworkConfig:
        return self._network

    async def is_on_target_chain(self) -> bool:
        return await self._gate.chain_id() == self._network.chain_id

    async def ensure_correct_chain(self) -> bool:
        """
        Make the target chain the wallet's active chain.

        Flow:
            1. Return immediately when the wallet is already on the target
            2. Request ``wallet_switchEthereumChain``
            3. On 4902, register the chain with ``wallet_addEthereumChain``
               and retry the switch once

        Returns:
            True once the wallet is on the target chain.

        Raises:
            ChainSwitchError: The chain could not be registered.
            ProviderRPCError / UserRejectedError: Any other switch failure,
                unchanged.
        """
        current = await self._gate.chain_id()
        if current == self._network.chain_id:
            return True

        logger.info(
            "Switching network from %s to %s (%s)",
            current, self._network.chain_id, self._network.name,
        )
        try:
            await self._switch()
        except ProviderRPCError as exc:
            if not is_unrecognized_chain(exc):
                raise
            logger.info("Wallet does not know %s, registering it", self._network.name)
            await self._add_chain()
            await self._switch()

        return True

    async def _switch(self) -> None:
        await self._gate.request(WALLET_SWITCH_CHAIN, [{"chainId": self._network.chain_id_hex}])

    async def _add_chain(self) -> None:
        try:
            await self._gate.request(WALLET_ADD_CHAIN, [self._network.to_add_chain_params()])
        except Exception as exc:
            raise ChainSwitchError(
                f"Could not add network {self._network.name}", chain_id=self._network.chain_id
            ) from exc
