"""
Error taxonomy for the early access workflow.

Every error is an ``HTTPException`` so services can raise them and FastAPI
renders them as ``{"detail": ...}`` with the matching status code.
"""
from typing import Dict, Optional

from fastapi import HTTPException


class EarlyAccessError(HTTPException):
    status_code: int = 400
    message: str = "Invalid request"

    def __init__(
        self, detail: Optional[str] = None, headers: Optional[Dict[str, str]] = None
    ):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.message,
            headers=headers,
        )


class InvalidInput(EarlyAccessError):
    message = "Invalid request"


class RateLimited(EarlyAccessError):
    status_code = 429
    message = "Please wait before requesting a new code"

    def __init__(self, retry_after: int = 60):
        super().__init__(headers={"Retry-After": str(max(1, retry_after))})
        self.retry_after = retry_after


class CodeExpired(EarlyAccessError):
    message = "Verification code has expired. Please request a new one."


class TooManyAttempts(EarlyAccessError):
    status_code = 429
    message = "Too many failed attempts. Please request a new code."


class InvalidCode(EarlyAccessError):
    # Also used when no signup exists for the email
    message = "Invalid verification code"


class ServiceUnavailable(EarlyAccessError):
    status_code = 500
    message = "Service temporarily unavailable"


class RandomSourceError(ServiceUnavailable):
    pass
