"""
Error taxonomy for Verify-X
"""

from typing import Optional


class VerifyXError(Exception):
    """Base class for all Verify-X errors"""


class InvalidInput(VerifyXError):
    """Raised when a submission is empty or malformed"""


class OracleError(VerifyXError):
    """Base class for failures reported by an oracle call"""

    retryable = True


class RateLimited(OracleError):
    """Raised when the oracle signals quota exhaustion"""

    def __init__(self, message: str = "Oracle rate limit exceeded",
                 retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class TransientOracleFailure(OracleError):
    """Raised for network errors, timeouts and 5xx responses"""


class FatalOracleError(OracleError):
    """Raised when retrying cannot help (bad request, auth, missing SDK)"""

    retryable = False


class ExhaustedRetries(VerifyXError):
    """Raised when an operation failed on every allowed attempt"""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"Failed after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class StreamDisconnect(VerifyXError):
    """Raised inside a progress stream when its observer went away"""


__all__ = [
    "VerifyXError",
    "InvalidInput",
    "OracleError",
    "RateLimited",
    "TransientOracleFailure",
    "FatalOracleError",
    "ExhaustedRetries",
    "StreamDisconnect",
]
