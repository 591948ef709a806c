"""
EIP-712 / ERC-3009 typed-data structures.

The objects here are the exact envelope handed to ``eth_signTypedData_v4``.
Python attributes are snake_case; ``to_dict`` emits the field names the
token contract hashes, so the two must stay in sync with
``TRANSFER_WITH_AUTHORIZATION_TYPES``.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .constants import EvmNetworkConfig


TRANSFER_WITH_AUTHORIZATION = "TransferWithAuthorization"

TRANSFER_WITH_AUTHORIZATION_TYPES: Dict[str, List[Dict[str, str]]] = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    TRANSFER_WITH_AUTHORIZATION: [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ],
}


@dataclass(frozen=True)
class EIP712Domain:
    """Signing domain of a token contract. Binds a signature to one chain and contract."""
    name: str
    version: str
    chain_id: int
    verifying_contract: str

    @classmethod
    def for_usdc(
        cls,
        network: EvmNetworkConfig,
        name: Optional[str] = None,
        version: Optional[str] = None,
    ) -> "EIP712Domain":
        usdc = network.usdc
        return cls(
            name=name or usdc.name,
            version=version or usdc.version,
            chain_id=network.chain_id,
            verifying_contract=usdc.address,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": self.verifying_contract,
        }


@dataclass(frozen=True)
class TransferWithAuthorizationMessage:
    """
    ERC-3009 ``TransferWithAuthorization`` message.

    ``from`` is reserved in Python, so the payer is ``authorizer`` and the
    payee ``recipient``. Integers stay integers until ``to_dict``: wallets
    encode them as uint256.

    Raises:
        ValueError: On construction, if the validity window is empty.
    """
    authorizer: str
    recipient: str
    value: int
    valid_after: int
    valid_before: int
    nonce: str

    def __post_init__(self):
        if self.valid_after >= self.valid_before:
            raise ValueError(
                f"valid_after ({self.valid_after}) must be strictly less than "
                f"valid_before ({self.valid_before})"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.authorizer,
            "to": self.recipient,
            "value": self.value,
            "validAfter": self.valid_after,
            "validBefore": self.valid_before,
            "nonce": self.nonce,
        }


@dataclass(frozen=True)
class ERC3009TypedData:
    """
    Full ``{types, primaryType, domain, message}`` envelope.

    ``to_dict`` feeds ``eth_account.messages.encode_typed_data(full_message=...)``;
    ``to_json`` is the string form wallets expect as the second
    ``eth_signTypedData_v4`` parameter.
    """
    domain: EIP712Domain
    message: TransferWithAuthorizationMessage

    def to_dict(self) -> Dict[str, Any]:
        return {
            "types": {name: [dict(entry) for entry in entries] for name, entries in TRANSFER_WITH_AUTHORIZATION_TYPES.items()},
            "primaryType": TRANSFER_WITH_AUTHORIZATION,
            "domain": self.domain.to_dict(),
            "message": self.message.to_dict(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))
