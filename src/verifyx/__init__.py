"""
Verify-X - Multi-Validator Proposition Verification

Fans each proposition out to a panel of LLM validators under a shared
request quota, retries failed oracle calls with exponential backoff,
streams live progress, and reduces the verdicts to a majority decision.
"""

__version__ = "1.0.0"

from .errors import ExhaustedRetries, InvalidInput, OracleError, RateLimited
from .service import VerificationService
from .settings import Settings

__all__ = [
    "VerificationService",
    "Settings",
    "InvalidInput",
    "OracleError",
    "RateLimited",
    "ExhaustedRetries",
]
