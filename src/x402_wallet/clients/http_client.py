"""
HTTP 402 Payment Flow Middleware

Provides a transparent layer for httpx that answers 402 Payment Required
responses by signing an x402 ``exact`` payment with the connected wallet and
replaying the request with an ``X-Payment`` header.
"""

import functools
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError

from ..adapters.evm.signatures import PaymentSigner
from ..engine.exceptions import MalformedPaymentTermsError, NoPaymentOptionsError
from ..schemas.https import (
    X_PAYMENT_HEADER,
    X_PAYMENT_RESPONSE_HEADER,
    PaymentRequiredInfo,
    PaymentResult,
    X402Response,
    decode_payment_response_header,
    encode_payment_header,
)
from ..wallet.session import WalletSession

logger = logging.getLogger(__name__)


PAYMENT_REQUIRED = 402

RequestFunc = Callable[..., Awaitable[httpx.Response]]


class PaymentInterceptor:
    """
    Wraps request functions with the x402 payment handshake.

    Args:
        signer: Signer producing payment payloads for the selected terms.
    """

    def __init__(self, signer: PaymentSigner):
        self._signer = signer

    @property
    def signer(self) -> PaymentSigner:
        return self._signer

    def wrap(self, request_fn: RequestFunc) -> RequestFunc:
        """
        Return ``request_fn`` with automatic 402 handling.

        The returned coroutine function takes the same ``(method, url, **kwargs)``
        arguments as ``httpx.AsyncClient.request``.

        Flow:
            1. Send the request unmodified
            2. Anything but 402 is returned as is
            3. On 402: parse terms, sign ``accepts[0]``, add ``X-Payment``
            4. Send once more and return that response, even if it is a 402
        """

        @functools.wraps(request_fn)
        async def request_with_payment(method: str, url: Any, **kwargs: Any) -> httpx.Response:
            response = await request_fn(method, url, **kwargs)
            if response.status_code != PAYMENT_REQUIRED:
                return response

            logger.info("Received 402 Payment Required for %s %s", method, url)
            payment_header = await self.create_payment_header(response)

            kwargs["headers"] = self._with_payment_header(kwargs.get("headers"), payment_header)
            logger.info("Payment signed, retrying %s %s with %s header", method, url, X_PAYMENT_HEADER)
            return await request_fn(method, url, **kwargs)

        return request_with_payment

    async def create_payment_header(self, response: httpx.Response) -> str:
        """
        Turn a 402 response into an ``X-Payment`` header value.

        Raises:
            MalformedPaymentTermsError: The body is not valid payment terms.
            NoPaymentOptionsError: ``accepts`` is empty.
        """
        terms = await self.select_payment_terms(response)
        amount = terms.amount

        logger.info(
            "Payment info: scheme=%s network=%s amount=%s payTo=%s asset=%s",
            terms.scheme, terms.network, terms.max_amount_required, terms.pay_to, terms.asset,
        )
        payload = await self._signer.sign(terms, amount)
        return encode_payment_header(payload)

    async def select_payment_terms(self, response: httpx.Response) -> PaymentRequiredInfo:
        body = await self.parse_payment_required(response)
        if not body.accepts:
            logger.error("No payment options in 402 response: %s", body.error)
            raise NoPaymentOptionsError()
        # Servers may offer several schemes; only the first is attempted.
        return body.accepts[0]

    @staticmethod
    async def parse_payment_required(response: httpx.Response) -> X402Response:
        """Parse the JSON body of a 402 response into ``X402Response``."""
        try:
            await response.aread()
            data = response.json()
        except ValueError as exc:
            raise MalformedPaymentTermsError("Could not read the payment information sent by the server") from exc

        if not isinstance(data, dict):
            raise MalformedPaymentTermsError(f"Expected a JSON object in the 402 body, got {type(data).__name__}")

        try:
            return X402Response.model_validate(data)
        except ValidationError as exc:
            raise MalformedPaymentTermsError(f"Invalid payment terms in 402 response: {exc}") from exc

    @staticmethod
    def _with_payment_header(headers: Any, payment_header: str) -> httpx.Headers:
        merged = httpx.Headers(headers)
        merged[X_PAYMENT_HEADER] = payment_header
        return merged


class Http402Client(httpx.AsyncClient):
    """
    Extended httpx.AsyncClient with automatic x402 payment handling.

    Every request made through ``request`` (and therefore ``get``, ``post``
    and the other verb helpers) pays for 402 responses with the connected
    wallet and retries once.

    Usage:
        ```python
        session = WalletSession(provider)
        await session.connect()
        async with Http402Client.from_session(session, base_url="http://localhost:3005") as client:
            response = await client.get("/api/premium")
            receipt = client.payment_result(response)
        ```
    """

    def __init__(self, signer: PaymentSigner, **kwargs: Any):
        """
        Initialize client with the signer used for payments.

        Args:
            signer: PaymentSigner bound to a wallet session
            **kwargs: All standard httpx.AsyncClient arguments (timeout, headers, etc.)
        """
        super().__init__(**kwargs)
        self._interceptor = PaymentInterceptor(signer)
        self._request_with_payment = self._interceptor.wrap(super().request)

    @classmethod
    def from_session(cls, session: WalletSession, **kwargs: Any) -> "Http402Client":
        return cls(PaymentSigner(session), **kwargs)

    @property
    def interceptor(self) -> PaymentInterceptor:
        return self._interceptor

    async def request(self, method: str, url: Any, **kwargs: Any) -> httpx.Response:
        """
        Execute HTTP request with automatic 402 handling.

        Overrides httpx.AsyncClient.request() to intercept 402 responses.
        """
        return await self._request_with_payment(method, url, **kwargs)

    @staticmethod
    def payment_result(response: httpx.Response) -> Optional[PaymentResult]:
        """Decode the server's ``X-Payment-Response`` header, if present."""
        value = response.headers.get(X_PAYMENT_RESPONSE_HEADER)
        if not value:
            return None
        return decode_payment_response_header(value)
