"""
Domain errors. Routes translate these into HTTP responses; nothing below the
API layer knows about status codes except UpstreamProviderError, which carries
the provider's own.
"""
from typing import Any


class Genr8Error(Exception):
    """Base class for all service-level errors."""


class ConfigurationError(Genr8Error):
    """A required key, wallet or endpoint is not configured."""


class UpstreamProviderError(Genr8Error):
    """Provider call failed; body is kept exactly as the provider returned it."""

    def __init__(self, message: str, status_code: int | None = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class UnknownModel(Genr8Error):
    def __init__(self, model: str):
        super().__init__(f"Unknown model: {model}")
        self.model = model


class ModelUnavailable(Genr8Error):
    """Model is listed in the catalog but not served yet."""

    def __init__(self, model: str):
        super().__init__(f"{model} is coming soon")
        self.model = model


class PaymentRequired(Genr8Error):
    def __init__(self, quote: dict):
        super().__init__("Payment Required")
        self.quote = quote


class PaymentVerificationFailure(Genr8Error):
    def __init__(self, signature: str, reason: str = "Payment not verified"):
        super().__init__(reason)
        self.signature = signature
        self.reason = reason


class InvalidTransition(Genr8Error):
    def __init__(self, current: str, target: str):
        super().__init__(f"Illegal generation state transition {current} -> {target}")
        self.current = current
        self.target = target


class QueueWriteFailure(Genr8Error):
    """Buyback contribution could not be written."""


class BatchExecutionFailure(Genr8Error):
    def __init__(self, message: str, claim_id: str | None = None):
        super().__init__(message)
        self.claim_id = claim_id


class RefundFailure(Genr8Error):
    pass


class SolanaRpcError(Genr8Error):
    def __init__(self, message: str, code: int | None = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data


class SwapError(Genr8Error):
    pass
