"""
Early access signup and email verification workflow.

A signup moves from no record, to pending verification, to verified. While
pending, the signer can request a new code (after a cooldown) and submit codes
until the attempt limit is reached. Verified signups are terminal.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

import logfire
from email_validator import EmailNotValidError, validate_email

from early_access.core.clock import Clock, as_utc, utcnow
from early_access.core.database import STORE_ERRORS
from early_access.core.exceptions import (
    CodeExpired,
    InvalidCode,
    InvalidInput,
    RateLimited,
    ServiceUnavailable,
    TooManyAttempts,
)
from early_access.core.tokens import CODE_LENGTH, generate_code, generate_tracking_token
from early_access.models.early_access_signup import EarlyAccessSignup
from early_access.repositories.unit_of_work import AbstractUnitOfWork
from early_access.services.email import EmailService

logger = logging.getLogger(__name__)

MAX_OTP_ATTEMPTS = 5
OTP_VALIDITY = timedelta(minutes=15)
RESEND_COOLDOWN = timedelta(seconds=60)

# Same answer whether the email is new, pending, verified or undeliverable
SIGNUP_MESSAGE = "If this email is valid, a verification code has been sent. Please check your email."


@dataclass
class VerificationResult:
    email: str
    is_verified: bool
    already_verified: bool
    verified_at: Optional[datetime]

    @property
    def message(self) -> str:
        if self.already_verified:
            return "Email already verified"
        return "Email verified successfully!"


@dataclass
class SignupPage:
    signups: List[EarlyAccessSignup]
    total: int
    page: int
    limit: int


def normalize_code(submitted_code: str) -> str:
    code = (submitted_code or "").strip().upper()
    if len(code) != CODE_LENGTH:
        raise InvalidInput("Invalid verification code")
    return code


def validate_email_address(email: str) -> str:
    """Check the address is well formed. The address is returned as given."""
    email = (email or "").strip()
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        raise InvalidInput("Invalid email address")
    return email


class VerificationService:
    """Service for the early access signup and verification workflow."""

    def __init__(
        self,
        uow: AbstractUnitOfWork,
        email_service: Optional[EmailService] = None,
        clock: Clock = utcnow,
    ):
        self.uow = uow
        self.email_service = email_service
        self.clock = clock

    async def signup(
        self,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        client_ip: Optional[str] = None,
    ) -> str:
        """Create a signup or reissue its code, then email the code."""
        email = validate_email_address(email)

        with logfire.span("early_access.signup", email=email):
            try:
                existing = await self.uow.signups.get_by_email(email)
            except STORE_ERRORS as e:
                logger.error(f"Failed to look up signup for {email}: {e}")
                raise ServiceUnavailable()

            if existing is not None:
                if existing.is_verified:
                    logger.info(f"Signup for already verified email {email}, nothing to do")
                    return SIGNUP_MESSAGE
                self._check_cooldown(existing)

            code = generate_code()
            tracking_token = generate_tracking_token()

            email_sent = False
            if self.email_service is not None:
                email_sent = await self.email_service.send_verification_email(
                    email, code, tracking_token
                )

            now = self.clock()
            expires_at = now + OTP_VALIDITY
            try:
                if existing is not None:
                    await self.uow.signups.reissue_code(
                        existing,
                        first_name=first_name,
                        last_name=last_name,
                        otp_code=code,
                        otp_expires_at=expires_at,
                        engagement_token=tracking_token,
                        email_sent=email_sent,
                        now=now,
                    )
                else:
                    await self.uow.signups.create_signup(
                        email=email,
                        first_name=first_name,
                        last_name=last_name,
                        ip_address=client_ip,
                        otp_code=code,
                        otp_expires_at=expires_at,
                        engagement_token=tracking_token,
                        email_sent=email_sent,
                        now=now,
                    )
                await self.uow.commit()
            except STORE_ERRORS as e:
                logger.error(f"Failed to save signup for {email}: {e}")
                raise ServiceUnavailable()

            logger.info(
                f"Verification code issued for {email} "
                f"({'resend' if existing is not None else 'new'}, email_sent={email_sent})"
            )
            return SIGNUP_MESSAGE

    def _check_cooldown(self, signup: EarlyAccessSignup) -> None:
        last_attempt = as_utc(signup.otp_last_attempt)
        if last_attempt is None:
            return
        elapsed = self.clock() - last_attempt
        if elapsed < RESEND_COOLDOWN:
            retry_after = math.ceil((RESEND_COOLDOWN - elapsed).total_seconds())
            logger.warning(f"Resend requested too soon for {signup.email}")
            raise RateLimited(retry_after=retry_after)

    async def verify_code(self, email: str, submitted_code: str) -> VerificationResult:
        """Check a submitted code and mark the signup verified on a match."""
        code = normalize_code(submitted_code)
        email = (email or "").strip()

        with logfire.span("early_access.verify", email=email):
            try:
                signup = await self.uow.signups.get_by_email(email)
            except STORE_ERRORS as e:
                logger.error(f"Failed to look up signup for {email}: {e}")
                raise ServiceUnavailable()

            if signup is None:
                raise InvalidCode()

            if signup.is_verified:
                return VerificationResult(
                    email=signup.email,
                    is_verified=True,
                    already_verified=True,
                    verified_at=as_utc(signup.otp_verified_at),
                )

            now = self.clock()
            expires_at = as_utc(signup.otp_expires_at)
            if expires_at is None or now >= expires_at:
                raise CodeExpired()

            if (signup.otp_attempts or 0) >= MAX_OTP_ATTEMPTS:
                raise TooManyAttempts()

            try:
                if code != signup.otp_code:
                    await self.uow.signups.record_failed_attempt(signup, now)
                    await self.uow.commit()
                    logger.info(f"Invalid code for {email} (attempt {signup.otp_attempts})")
                    raise InvalidCode()

                await self.uow.signups.mark_verified(signup, now)
                await self.uow.commit()
            except STORE_ERRORS as e:
                logger.error(f"Failed to update signup for {email}: {e}")
                raise ServiceUnavailable()

            logger.info(f"Email verified: {email}")
            return VerificationResult(
                email=signup.email,
                is_verified=True,
                already_verified=False,
                verified_at=now,
            )

    async def count(self) -> tuple[int, int]:
        """Return (total, verified) signup counts."""
        try:
            return await self.uow.signups.get_counts()
        except STORE_ERRORS as e:
            logger.error(f"Failed to count signups: {e}")
            raise ServiceUnavailable()

    async def list_signups(self, page: int = 1, limit: int = 50) -> SignupPage:
        """Paginated signups, newest first."""
        try:
            signups = await self.uow.signups.get_page(page, limit)
            total = await self.uow.signups.count()
        except STORE_ERRORS as e:
            logger.error(f"Failed to list signups: {e}")
            raise ServiceUnavailable()
        return SignupPage(signups=signups, total=total, page=page, limit=limit)
