"""
Client configuration.

Values come from keyword arguments or, through ``X402Settings.from_env``,
from environment variables (optionally loaded from a ``.env`` file):

    X402_NETWORK           x402 network name (default: base-sepolia)
    X402_API_URL           base URL of the paid API (default: http://localhost:3005)
    X402_FACILITATOR_URL   facilitator used by the server, informational
    X402_PAY_TO            expected recipient address, informational
    X402_REQUEST_TIMEOUT   seconds to wait on a wallet provider call (empty: forever)
"""

import os
from pathlib import Path
from typing import Optional, Union

import dotenv
from pydantic import BaseModel, Field, field_validator

from .adapters.evm.constants import DEFAULT_NETWORK, EvmNetworkConfig, get_network_config
from .engine.exceptions import ConfigurationError


class X402Settings(BaseModel):
    """Settings shared by the wallet session, chain guard and signer."""

    network: str = Field(DEFAULT_NETWORK, description="Target x402 network")
    api_url: str = Field("http://localhost:3005", description="Base URL of the paid API")
    facilitator_url: Optional[str] = Field(None, description="Facilitator URL announced by the server")
    pay_to: Optional[str] = Field(None, description="Expected payment recipient")
    request_timeout: Optional[float] = Field(
        None, gt=0, description="Timeout for wallet provider calls; None waits indefinitely"
    )

    @field_validator("network")
    @classmethod
    def _known_network(cls, value: str) -> str:
        return get_network_config(value).network

    def network_config(self) -> EvmNetworkConfig:
        return get_network_config(self.network)

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None, **overrides) -> "X402Settings":
        """
        Build settings from the environment.

        Args:
            env_file: Optional ``.env`` path; when omitted python-dotenv searches
                upwards from the working directory.
            **overrides: Explicit values that win over the environment.

        Raises:
            ConfigurationError: If a variable holds an invalid value.
        """
        if env_file is not None:
            dotenv.load_dotenv(dotenv_path=env_file)
        else:
            dotenv.load_dotenv(dotenv.find_dotenv(usecwd=True))

        values = {
            "network": os.getenv("X402_NETWORK") or DEFAULT_NETWORK,
            "api_url": os.getenv("X402_API_URL") or "http://localhost:3005",
            "facilitator_url": os.getenv("X402_FACILITATOR_URL") or None,
            "pay_to": os.getenv("X402_PAY_TO") or None,
        }

        raw_timeout = (os.getenv("X402_REQUEST_TIMEOUT") or "").strip()
        if raw_timeout:
            try:
                values["request_timeout"] = float(raw_timeout)
            except ValueError:
                raise ConfigurationError(f"X402_REQUEST_TIMEOUT must be a number, got {raw_timeout!r}")

        values.update(overrides)
        return cls(**values)
