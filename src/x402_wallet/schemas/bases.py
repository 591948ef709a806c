"""
Base Schema Models for the x402 Wallet Client

Defines the base class all wire models inherit from. It provides the
camelCase alias handling and deterministic JSON helpers used when payloads
are logged, hashed or compared.

Dependencies:
    - pydantic: For data validation and serialization
"""

import json
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class CanonicalModel(BaseModel):
    """
    Pydantic base model with alias-aware, deterministic serialization.

    Protocol fields travel in camelCase (``payTo``, ``maxAmountRequired``)
    while Python code uses snake_case attributes. Models accept both names
    on input and emit the wire names from ``to_wire_dict`` and
    ``to_wire_json``.

    Example:
        class MyModel(CanonicalModel):
            pay_to: str = Field(alias="payTo")

        model = MyModel(pay_to="0xabc")
        model.to_wire_json()  # '{"payTo":"0xabc"}'
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_wire_dict(self) -> Dict[str, Any]:
        """
        Convert model to a JSON-compatible dict keyed by wire names.

        Returns:
            Dict[str, Any]: Dictionary with alias keys and JSON-safe values.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_wire_json(self) -> str:
        """
        Serialize to compact JSON in field declaration order.

        The output matches what a browser ``JSON.stringify`` produces for the
        same object, which is what x402 servers decode from headers.

        Returns:
            str: Compact JSON string.
        """
        return json.dumps(self.to_wire_dict(), separators=(",", ":"), ensure_ascii=False)

    def to_canonical_json(self) -> str:
        """
        Convert model to RFC8785-style canonical JSON (sorted keys, no whitespace).

        Returns:
            str: Canonical JSON string suitable for hashing or comparison.
        """
        return json.dumps(
            self.to_wire_dict(),
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False,
        )
