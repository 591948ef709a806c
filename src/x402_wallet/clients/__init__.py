"""
Client module for x402 payments.

Provides the 402-intercepting request wrapper and an httpx client that pays
for protected resources with the connected wallet.
"""

from .http_client import Http402Client, PaymentInterceptor

__all__ = ["Http402Client", "PaymentInterceptor"]
