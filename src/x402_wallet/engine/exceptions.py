"""
Exception and Error Definitions Module

Defines the exception hierarchy for the wallet session, the chain guard, the
payment signer and the 402 interceptor. All exceptions inherit from
X402WalletError for unified exception handling.

Exception Hierarchy:
    X402WalletError (root)
    ├── ProviderError
    │   ├── ProviderUnavailableError
    │   ├── ProviderRPCError
    │   ├── ProviderTimeoutError
    │   └── UserRejectedError
    ├── SessionError
    │   ├── NoAccountsSelectedError
    │   ├── AccountUnchangedError
    │   ├── NotConnectedError
    │   └── SigningUnavailableError
    ├── ChainSwitchError
    ├── PaymentTermsError
    │   ├── MalformedPaymentTermsError
    │   └── NoPaymentOptionsError
    ├── ConfigurationError
    └── InvalidTransition
"""

from typing import Any, Optional


class X402WalletError(Exception):
    """
    Root exception class for all project-specific exceptions.

    All custom exceptions inherit from this class so callers can catch
    every wallet or payment failure with a single except clause.
    """
    pass


class ProviderError(X402WalletError):
    """
    Base exception for failures at the wallet provider boundary.
    """
    pass


class ProviderUnavailableError(ProviderError):
    """
    Raised when no wallet provider is present in the execution environment.

    Absence of a provider is a normal condition (no extension installed,
    no key configured) and is reported with this error, never a crash.
    """

    def __init__(self, message: str = "No wallet provider found. Install MetaMask, Rabby or Core Wallet."):
        super().__init__(message)


class ProviderRPCError(ProviderError):
    """
    Raised when the provider answers a request with an EIP-1193 error.

    Attributes:
        code: Numeric provider error code (e.g. 4902 for an unknown chain)
        data: Optional extra error payload returned by the provider
    """

    USER_REJECTED = 4001
    UNAUTHORIZED = 4100
    UNSUPPORTED_METHOD = 4200
    DISCONNECTED = 4900
    CHAIN_DISCONNECTED = 4901
    UNRECOGNIZED_CHAIN = 4902

    def __init__(self, code: int, message: str, data: Optional[Any] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def __repr__(self) -> str:
        return f"ProviderRPCError(code={self.code}, message={self.message!r})"


class ProviderTimeoutError(ProviderError):
    """
    Raised when a provider call exceeds the configured request timeout.

    Attributes:
        method: JSON-RPC method that did not complete in time
        timeout: Timeout in seconds that elapsed
    """

    def __init__(self, method: str, timeout: float):
        super().__init__(f"Wallet provider did not answer {method} within {timeout} seconds")
        self.method = method
        self.timeout = timeout


class UserRejectedError(ProviderError):
    """
    Raised when the user cancels or rejects a request in the wallet UI.

    Provider-specific rejection phrasing is translated into this error once,
    at the provider boundary.
    """

    def __init__(self, message: str = "Request cancelled by the user"):
        super().__init__(message)


UserCancelledError = UserRejectedError


class SessionError(X402WalletError):
    """
    Base exception for wallet session state failures.
    """
    pass


class NoAccountsSelectedError(SessionError):
    """
    Raised when the provider returns an empty account list after the user
    was asked to authorize or select an account.
    """

    def __init__(self, message: str = "No account was selected in the wallet"):
        super().__init__(message)


class AccountUnchangedError(SessionError):
    """
    Raised when an account switch finishes with the same address as before.

    The message carries wallet-specific guidance telling the user how to
    pick a different account.
    """
    pass


class NotConnectedError(SessionError):
    """
    Raised when an operation needs an authorized account and the provider
    reports none.
    """

    def __init__(self, message: str = "Wallet not connected"):
        super().__init__(message)


class SigningUnavailableError(SessionError):
    """
    Raised when the session client has no bound account at signing time.
    """

    def __init__(self, message: str = "Wallet account not available for signing"):
        super().__init__(message)


class ChainSwitchError(X402WalletError):
    """
    Raised when the target chain could not be registered with the provider.

    Attributes:
        chain_id: Chain the guard tried to activate
    """

    def __init__(self, message: str, chain_id: Optional[int] = None):
        super().__init__(message)
        self.chain_id = chain_id


class PaymentTermsError(X402WalletError):
    """
    Base exception for problems with the terms carried by a 402 response.
    """
    pass


class MalformedPaymentTermsError(PaymentTermsError):
    """
    Raised when the 402 response body cannot be parsed into payment terms.

    This includes scenarios such as:
    - Body is not valid JSON
    - Required fields are missing or have the wrong type
    - maxAmountRequired is not an integer amount
    """
    pass


class NoPaymentOptionsError(PaymentTermsError):
    """
    Raised when a 402 response offers no payment options in ``accepts``.
    """

    def __init__(self, message: str = "The server did not provide any payment options"):
        super().__init__(message)


class ConfigurationError(X402WalletError):
    """
    Raised when configuration is missing or invalid.

    This includes scenarios such as:
    - Unsupported network name
    - Invalid timeout value
    """
    pass


class InvalidTransition(X402WalletError):
    """
    Raised when the wallet session is asked to move to a state that is not
    reachable from its current state, e.g. a second ``connect`` while the
    first is still waiting on the wallet popup.

    Attributes:
        current_state: State the session was in
        target_state: State that was requested
    """

    def __init__(self, current_state: Any, target_state: Any):
        super().__init__(f"Invalid session transition: {current_state} -> {target_state}")
        self.current_state = current_state
        self.target_state = target_state
