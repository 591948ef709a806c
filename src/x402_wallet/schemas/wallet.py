"""
Wallet session state as seen by observers (UI, agents, event subscribers).
"""

from typing import Optional

from pydantic import ConfigDict, Field, model_validator

from .bases import CanonicalModel


class WalletState(CanonicalModel):
    """Snapshot of the wallet session.

    Recomputed on every session event and never persisted.

    Attributes:
        is_connected: Whether an account is authorized and bound.
        address: Selected account address, None when disconnected.
        chain_id: Provider's active chain id, None when disconnected.
        balance: Native balance with four decimals, None when not read.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    is_connected: bool = Field(False, alias="isConnected")
    address: Optional[str] = Field(None, alias="address")
    chain_id: Optional[int] = Field(None, alias="chainId")
    balance: Optional[str] = Field(None, alias="balance")

    @model_validator(mode="after")
    def _connected_requires_address(self) -> "WalletState":
        if self.is_connected and not self.address:
            raise ValueError("a connected wallet state must carry an address")
        return self

    @classmethod
    def disconnected(cls) -> "WalletState":
        return cls(is_connected=False, address=None, chain_id=None, balance=None)

    def to_wire_dict(self):
        # Observers expect all four keys, including nulls.
        return self.model_dump(mode="json", by_alias=True)
