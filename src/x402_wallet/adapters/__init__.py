from .evm import (
    EVM_NETWORKS,
    EvmNetworkConfig,
    get_network_config,
    EIP712Domain,
    ERC3009TypedData,
)

__all__ = [
    "EVM_NETWORKS",
    "EvmNetworkConfig",
    "get_network_config",
    "EIP712Domain",
    "ERC3009TypedData",
]
