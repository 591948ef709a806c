"""
Test suite for x402 wire models.
Tests: 1) 402 body parsing 2) Amount validation 3) Header codecs 4) WalletState
"""
import base64

import pytest
from pydantic import ValidationError

from x402_wallet.schemas import (
    Authorization,
    ExactEvmPayload,
    PaymentPayload,
    PaymentRequiredInfo,
    ProtocolVersion,
    WalletState,
    X402Response,
    decode_payment_header,
    decode_payment_response_header,
    encode_payment_header,
)

from wallet_mocks import ADDRESS_A, BASE_SEPOLIA_USDC, PAY_TO, make_402_body, make_terms_dict


def test_parse_402_body():
    body = X402Response.model_validate(make_402_body())

    assert body.x402_version == 1
    assert body.error == "X-PAYMENT header is required"
    terms = body.accepts[0]
    assert terms.scheme == "exact"
    assert terms.pay_to == PAY_TO
    assert terms.asset == BASE_SEPOLIA_USDC
    assert terms.max_timeout_seconds == 60
    assert terms.mime_type == "application/json"
    assert terms.extra.name == "USDC"
    assert terms.amount == 100000


def test_version_defaults_when_omitted():
    body = make_402_body()
    del body["x402Version"]

    parsed = X402Response.model_validate(body)

    assert parsed.x402_version == ProtocolVersion.V1
    assert parsed.accepts[0].amount == 100000


@pytest.mark.parametrize("accepts", [None, []])
def test_missing_accepts_is_empty(accepts):
    assert X402Response.model_validate({"x402Version": 1, "accepts": accepts}).accepts == []
    assert X402Response.model_validate({"x402Version": 1}).accepts == []


def test_optional_descriptive_fields_default_to_empty():
    terms = make_terms_dict()
    for key in ("resource", "description", "mimeType"):
        terms.pop(key)

    info = PaymentRequiredInfo.model_validate(terms)

    assert (info.resource, info.description, info.mime_type) == ("", "", "")


def test_extra_keeps_unknown_fields():
    info = PaymentRequiredInfo.model_validate(make_terms_dict(extra={"name": "USD Coin", "feePayer": "0xfee"}))

    assert info.extra.version is None
    assert info.extra.model_extra == {"feePayer": "0xfee"}


def test_integer_amount_is_accepted():
    assert PaymentRequiredInfo.model_validate(make_terms_dict(maxAmountRequired=2500)).max_amount_required == "2500"


def test_uint256_max_amount_is_accepted():
    largest = str(2 ** 256 - 1)

    assert PaymentRequiredInfo.model_validate(make_terms_dict(maxAmountRequired=largest)).amount == 2 ** 256 - 1


@pytest.mark.parametrize("amount", ["1.5", "-1", "abc", "", "\u00b2", "\u0661\u0662", str(2 ** 256), 2 ** 256, True, None])
def test_invalid_amounts(amount):
    with pytest.raises(ValidationError):
        PaymentRequiredInfo.model_validate(make_terms_dict(maxAmountRequired=amount))


def test_payment_terms_are_immutable():
    info = PaymentRequiredInfo.model_validate(make_terms_dict())

    with pytest.raises(ValidationError):
        info.pay_to = ADDRESS_A


def test_authorization_uses_from_on_the_wire():
    auth = Authorization(
        from_=ADDRESS_A, to=PAY_TO, value="1", valid_after="10", valid_before="20", nonce="0x" + "11" * 32
    )

    wire = auth.to_wire_dict()

    assert wire["from"] == ADDRESS_A
    assert "from_" not in wire
    assert wire["validAfter"] == "10"
    assert wire["validBefore"] == "20"


def test_payment_header_codec():
    payload = PaymentPayload(
        scheme="exact",
        network="base-sepolia",
        payload=ExactEvmPayload(
            signature="0x" + "ab" * 65,
            authorization=Authorization(
                from_=ADDRESS_A, to=PAY_TO, value="100000", valid_after="1", valid_before="2", nonce="0x" + "22" * 32
            ),
        ),
    )

    header = encode_payment_header(payload)

    assert decode_payment_header(header) == payload
    assert base64.b64decode(header).startswith(b'{"x402Version":1,"scheme":"exact"')


@pytest.mark.parametrize("value", ["not base64!", base64.b64encode(b"{}").decode()])
def test_decode_invalid_payment_header(value):
    with pytest.raises(ValueError):
        decode_payment_header(value)


def test_decode_payment_response_header():
    encoded = base64.b64encode(
        b'{"success":false,"errorReason":"insufficient_funds","network":"base-sepolia","transaction":""}'
    ).decode()

    result = decode_payment_response_header(encoded)

    assert result.success is False
    assert result.error_reason == "insufficient_funds"
    with pytest.raises(ValueError):
        decode_payment_response_header("%%%")


def test_protocol_version():
    assert ProtocolVersion.from_value("1") is ProtocolVersion.V1
    with pytest.raises(ValueError):
        ProtocolVersion.from_value(2)


def test_wallet_state_disconnected_wire_shape():
    assert WalletState.disconnected().to_wire_dict() == {
        "isConnected": False,
        "address": None,
        "chainId": None,
        "balance": None,
    }


def test_connected_wallet_state_requires_address():
    with pytest.raises(ValidationError):
        WalletState(is_connected=True)

    state = WalletState(is_connected=True, address=ADDRESS_A, chain_id=84532, balance="0.0000")
    assert state.to_wire_dict()["chainId"] == 84532
