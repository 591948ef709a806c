"""
EVM Network Configuration

Protocol-level lookup table for the networks x402 payments can target:
chain metadata needed to switch or register the chain in a wallet, and the
USDC contract that acts as EIP-712 ``verifyingContract`` on each network.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field

from ...engine.exceptions import ConfigurationError


class NativeCurrency(BaseModel):
    """Native gas currency as described to ``wallet_addEthereumChain``."""
    name: str
    symbol: str
    decimals: int = Field(18, ge=0)


class EvmAssetConfig(BaseModel):
    """Token asset configuration."""
    symbol: str
    address: str = Field(..., description="Token contract address")
    name: str = Field(..., description="EIP-712 domain name of the token")
    decimals: int = Field(..., description="Token decimals")
    version: str = Field(..., description="EIP-712 domain version of the token")


class EvmNetworkConfig(BaseModel):
    """EVM network configuration keyed by its x402 network name."""
    network: str = Field(..., description="x402 network identifier (e.g. base-sepolia)")
    chain_id: int = Field(..., ge=1)
    name: str = Field(..., description="Human-readable chain name")
    native_currency: NativeCurrency
    rpc_url: str = Field(..., description="Public JSON-RPC endpoint")
    explorer_url: str = Field(..., description="Block explorer URL")
    assets: Dict[str, EvmAssetConfig] = Field(default_factory=dict, description="Supported assets")

    @property
    def chain_id_hex(self) -> str:
        return hex(self.chain_id)

    @property
    def caip2(self) -> str:
        return f"eip155:{self.chain_id}"

    @property
    def usdc(self) -> EvmAssetConfig:
        try:
            return self.assets["USDC"]
        except KeyError:
            raise ConfigurationError(f"No USDC contract configured for network {self.network}")

    def to_add_chain_params(self) -> Dict[str, Any]:
        """Build the parameter object for ``wallet_addEthereumChain``."""
        return {
            "chainId": self.chain_id_hex,
            "chainName": self.name,
            "nativeCurrency": self.native_currency.model_dump(),
            "rpcUrls": [self.rpc_url],
            "blockExplorerUrls": [self.explorer_url],
        }


DEFAULT_NETWORK = "base-sepolia"

DEFAULT_DOMAIN_NAME = "USD Coin"
DEFAULT_DOMAIN_VERSION = "2"


# Raw network data. Addresses are the canonical Circle USDC deployments.
_EVM_NETWORKS_DATA: Dict[str, Dict[str, Any]] = {
    "base-sepolia": {
        "chain_id": 84532,
        "name": "Base Sepolia",
        "native_currency": {"name": "Sepolia Ether", "symbol": "ETH", "decimals": 18},
        "rpc_url": "https://sepolia.base.org",
        "explorer_url": "https://sepolia.basescan.org",
        "assets": {
            "USDC": {
                "address": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
                "name": DEFAULT_DOMAIN_NAME,
                "decimals": 6,
                "version": DEFAULT_DOMAIN_VERSION,
            },
        },
    },
    "base": {
        "chain_id": 8453,
        "name": "Base",
        "native_currency": {"name": "Ether", "symbol": "ETH", "decimals": 18},
        "rpc_url": "https://mainnet.base.org",
        "explorer_url": "https://basescan.org",
        "assets": {
            "USDC": {
                "address": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
                "name": DEFAULT_DOMAIN_NAME,
                "decimals": 6,
                "version": DEFAULT_DOMAIN_VERSION,
            },
        },
    },
}


def _build_network(network: str, data: Dict[str, Any]) -> EvmNetworkConfig:
    assets = {
        symbol: EvmAssetConfig(symbol=symbol, **asset)
        for symbol, asset in data.get("assets", {}).items()
    }
    return EvmNetworkConfig(
        network=network,
        chain_id=data["chain_id"],
        name=data["name"],
        native_currency=NativeCurrency(**data["native_currency"]),
        rpc_url=data["rpc_url"],
        explorer_url=data["explorer_url"],
        assets=assets,
    )


EVM_NETWORKS: Dict[str, EvmNetworkConfig] = {
    network: _build_network(network, data) for network, data in _EVM_NETWORKS_DATA.items()
}


def supported_networks() -> List[str]:
    return list(EVM_NETWORKS)


def get_network_config(network: str) -> EvmNetworkConfig:
    """
    Look up a network by its x402 name.

    Args:
        network: x402 network identifier, e.g. ``"base-sepolia"``.

    Returns:
        EvmNetworkConfig: The matching network entry.

    Raises:
        ConfigurationError: If the network is not in the table.
    """
    key = (network or "").strip().lower()
    try:
        return EVM_NETWORKS[key]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported network '{network}'. Supported networks: {', '.join(EVM_NETWORKS)}"
        )


def get_network_by_chain_id(chain_id: int) -> EvmNetworkConfig:
    for config in EVM_NETWORKS.values():
        if config.chain_id == chain_id:
            return config
    raise ConfigurationError(f"No network configured for chain id {chain_id}")
