from .bases import CanonicalModel
from .wallet import WalletState
from .https import (
    X_PAYMENT_HEADER,
    X_PAYMENT_RESPONSE_HEADER,
    PaymentExtra,
    PaymentRequiredInfo,
    X402Response,
    Authorization,
    ExactEvmPayload,
    PaymentPayload,
    PaymentResult,
    encode_payment_header,
    decode_payment_header,
    decode_payment_response_header,
)
from .versions import ProtocolVersion, X402_VERSION

__all__ = [
    "CanonicalModel",
    "WalletState",
    "X_PAYMENT_HEADER",
    "X_PAYMENT_RESPONSE_HEADER",
    "PaymentExtra",
    "PaymentRequiredInfo",
    "X402Response",
    "Authorization",
    "ExactEvmPayload",
    "PaymentPayload",
    "PaymentResult",
    "encode_payment_header",
    "decode_payment_header",
    "decode_payment_response_header",
    "ProtocolVersion",
    "X402_VERSION",
]
