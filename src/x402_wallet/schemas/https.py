"""
HTTP Request/Response Schema Models for the x402 Payment Protocol

This module defines the Pydantic models exchanged over HTTP between an x402
server and this client, plus the header codecs built on them.

The payment flow consists of:
1. Server answers a request with 402 and an ``X402Response`` body
2. Client signs a ``TransferWithAuthorization`` for ``accepts[0]``
3. Client replays the request with ``X-Payment: base64(PaymentPayload)``
4. Server (via its facilitator) settles and may answer with
   ``X-Payment-Response: base64(PaymentResult)``

Field names travel in camelCase on the wire; Python attributes are snake_case.
"""

import base64
import binascii
import re
from typing import List, Optional

from pydantic import ConfigDict, Field, ValidationError, field_validator

from .bases import CanonicalModel
from .versions import X402_VERSION


X_PAYMENT_HEADER = "X-Payment"
X_PAYMENT_RESPONSE_HEADER = "X-Payment-Response"

#: Largest value an ERC-3009 uint256 amount can carry.
MAX_UINT256 = 2 ** 256 - 1

_ATOMIC_AMOUNT = re.compile(r"[0-9]+")


# ============================================================================
# Step 1: Server's 402 Payment Required Response
# ============================================================================

class PaymentExtra(CanonicalModel):
    """Optional EIP-712 domain overrides for the payment asset.

    Attributes:
        name: Token domain name (e.g. "USD Coin").
        version: Token domain version (e.g. "2").
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="allow")

    name: Optional[str] = None
    version: Optional[str] = None


class PaymentRequiredInfo(CanonicalModel):
    """One payment option offered by the server.

    Immutable once received; one instance per 402 response cycle.

    Attributes:
        scheme: Payment scheme identifier (e.g. "exact").
        network: Network identifier (e.g. "base-sepolia").
        max_amount_required: Amount in atomic token units, as a decimal string.
        resource: Identifier of the protected resource.
        description: Human-readable description of what is being paid for.
        mime_type: MIME type of the protected resource.
        pay_to: Address receiving the payment.
        max_timeout_seconds: Maximum time the server allows for settlement.
        asset: Token contract address announced by the server.
        extra: Optional signing-domain overrides.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    scheme: str = Field(..., description="Payment scheme identifier")
    network: str = Field(..., description="Network identifier")
    max_amount_required: str = Field(..., alias="maxAmountRequired", description="Atomic amount as decimal string")
    resource: str = Field("", description="Protected resource identifier")
    description: str = Field("", description="Human-readable payment description")
    mime_type: str = Field("", alias="mimeType", description="MIME type of the resource")
    pay_to: str = Field(..., alias="payTo", description="Recipient address")
    max_timeout_seconds: int = Field(..., ge=0, alias="maxTimeoutSeconds", description="Settlement timeout in seconds")
    asset: str = Field(..., description="Token contract address")
    extra: Optional[PaymentExtra] = Field(None, description="Signing-domain overrides")

    @field_validator("max_amount_required", mode="before")
    @classmethod
    def _amount_is_atomic_integer(cls, value):
        if isinstance(value, bool):
            raise ValueError("maxAmountRequired must be an integer amount")
        if isinstance(value, int):
            value = str(value)
        if not isinstance(value, str) or not _ATOMIC_AMOUNT.fullmatch(value.strip()):
            raise ValueError(f"maxAmountRequired must be a non-negative integer string, got {value!r}")
        value = value.strip()
        if int(value) > MAX_UINT256:
            raise ValueError("maxAmountRequired does not fit in uint256")
        return value

    @property
    def amount(self) -> int:
        """Return ``max_amount_required`` as an integer of atomic units."""
        return int(self.max_amount_required)


class X402Response(CanonicalModel):
    """Body of a 402 Payment Required response.

    Attributes:
        x402_version: Protocol version used by the server; 1 when omitted.
        error: Optional server-side explanation.
        accepts: Payment options; this client only ever uses the first.
    """
    x402_version: int = Field(int(X402_VERSION), alias="x402Version")
    error: Optional[str] = None
    accepts: List[PaymentRequiredInfo] = Field(default_factory=list)

    @field_validator("accepts", mode="before")
    @classmethod
    def _accepts_none_is_empty(cls, value):
        return [] if value is None else value


# ============================================================================
# Step 2: Client's signed payment payload (X-Payment header)
# ============================================================================

class Authorization(CanonicalModel):
    """EIP-3009 transfer authorization fields, stringified for transport.

    Attributes:
        from_: Payer address (wire name ``from``).
        to: Recipient address.
        value: Exact atomic amount.
        valid_after: Unix second after which the authorization is valid.
        valid_before: Unix second before which it must be submitted.
        nonce: 0x-prefixed 32-byte hex nonce.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_: str = Field(..., alias="from")
    to: str
    value: str
    valid_after: str = Field(..., alias="validAfter")
    valid_before: str = Field(..., alias="validBefore")
    nonce: str


class ExactEvmPayload(CanonicalModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    signature: str
    authorization: Authorization


class PaymentPayload(CanonicalModel):
    """Complete structure carried by the ``X-Payment`` header.

    Created once per payment and never mutated.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    x402_version: int = Field(int(X402_VERSION), alias="x402Version")
    scheme: str
    network: str
    payload: ExactEvmPayload


# ============================================================================
# Step 3: Server's settlement response (X-Payment-Response header)
# ============================================================================

class PaymentResult(CanonicalModel):
    """Settlement outcome reported by the server after a paid request.

    Attributes:
        success: Whether the facilitator settled the transfer.
        transaction: Settlement transaction hash, when available.
        network: Network the transfer was settled on.
        payer: Address that paid.
        error_reason: Failure reason when ``success`` is False.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    success: bool
    transaction: Optional[str] = None
    network: Optional[str] = None
    payer: Optional[str] = None
    error_reason: Optional[str] = Field(None, alias="errorReason")

    @property
    def transaction_hash(self) -> Optional[str]:
        return self.transaction


# ============================================================================
# Header codecs
# ============================================================================

def encode_payment_header(payload: PaymentPayload) -> str:
    """Encode a payment payload as the base64 value of the ``X-Payment`` header."""
    return base64.b64encode(payload.to_wire_json().encode("utf-8")).decode("ascii")


def decode_payment_header(value: str) -> PaymentPayload:
    """Decode an ``X-Payment`` header value back into a ``PaymentPayload``.

    Raises:
        ValueError: If the value is not base64-encoded payload JSON.
    """
    try:
        raw = base64.b64decode(value, validate=True).decode("utf-8")
        return PaymentPayload.model_validate_json(raw)
    except (binascii.Error, UnicodeDecodeError, ValidationError) as exc:
        raise ValueError(f"Invalid {X_PAYMENT_HEADER} header value") from exc


def decode_payment_response_header(value: str) -> PaymentResult:
    """Decode an ``X-Payment-Response`` header value into a ``PaymentResult``.

    Raises:
        ValueError: If the value is not base64-encoded settlement JSON.
    """
    try:
        raw = base64.b64decode(value, validate=True).decode("utf-8")
        return PaymentResult.model_validate_json(raw)
    except (binascii.Error, UnicodeDecodeError, ValidationError) as exc:
        raise ValueError(f"Invalid {X_PAYMENT_RESPONSE_HEADER} header value") from exc
