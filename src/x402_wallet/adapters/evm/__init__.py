# Signer, chain guard and local provider depend on the wallet session and are
# imported from their own modules to keep this package import-cycle free.
from .constants import (
    EVM_NETWORKS,
    DEFAULT_NETWORK,
    EvmAssetConfig,
    EvmNetworkConfig,
    NativeCurrency,
    get_network_config,
    get_network_by_chain_id,
    supported_networks,
)
from .standards import (
    EIP712Domain,
    TransferWithAuthorizationMessage,
    ERC3009TypedData,
    TRANSFER_WITH_AUTHORIZATION,
    TRANSFER_WITH_AUTHORIZATION_TYPES,
)

__all__ = [
    "EVM_NETWORKS",
    "DEFAULT_NETWORK",
    "EvmAssetConfig",
    "EvmNetworkConfig",
    "NativeCurrency",
    "get_network_config",
    "get_network_by_chain_id",
    "supported_networks",
    "EIP712Domain",
    "TransferWithAuthorizationMessage",
    "ERC3009TypedData",
    "TRANSFER_WITH_AUTHORIZATION",
    "TRANSFER_WITH_AUTHORIZATION_TYPES",
]
