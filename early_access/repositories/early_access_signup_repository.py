from datetime import datetime
from typing import Optional, List, Tuple
from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from early_access.models.early_access_signup import EarlyAccessSignup
from early_access.repositories.base import BaseRepository


class EarlyAccessSignupRepository(BaseRepository[EarlyAccessSignup]):
    """Repository for EarlyAccessSignup model operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, EarlyAccessSignup)

    async def get_by_email(self, email: str) -> Optional[EarlyAccessSignup]:
        """Get signup by email address (exact match)."""
        result = await self.db.execute(
            select(EarlyAccessSignup).filter(EarlyAccessSignup.email == email)
        )
        return result.scalar_one_or_none()

    async def get_by_engagement_token(self, token: str) -> Optional[EarlyAccessSignup]:
        result = await self.db.execute(
            select(EarlyAccessSignup).filter(EarlyAccessSignup.engagement_token == token)
        )
        return result.scalar_one_or_none()

    async def create_signup(
        self,
        email: str,
        first_name: Optional[str],
        last_name: Optional[str],
        ip_address: Optional[str],
        otp_code: str,
        otp_expires_at: datetime,
        engagement_token: str,
        email_sent: bool,
        now: datetime,
    ) -> EarlyAccessSignup:
        """Create a new pending signup."""
        return await self.create({
            "email": email,
            "first_name": first_name,
            "last_name": last_name,
            "ip_address": ip_address,
            "otp_code": otp_code,
            "otp_expires_at": otp_expires_at,
            "otp_attempts": 0,
            "otp_last_attempt": now,
            "is_verified": False,
            "email_sent": email_sent,
            "engagement_token": engagement_token,
            "created_at": now,
        })

    async def reissue_code(
        self,
        signup: EarlyAccessSignup,
        first_name: Optional[str],
        last_name: Optional[str],
        otp_code: str,
        otp_expires_at: datetime,
        engagement_token: str,
        email_sent: bool,
        now: datetime,
    ) -> EarlyAccessSignup:
        """Replace the code on an unverified signup and reset attempts and engagement."""
        return await self.apply(signup, {
            "first_name": first_name,
            "last_name": last_name,
            "otp_code": otp_code,
            "otp_expires_at": otp_expires_at,
            "otp_attempts": 0,
            "otp_last_attempt": now,
            "email_sent": email_sent,
            "engagement_token": engagement_token,
            "read_count": 0,
            "read_at": None,
            "last_read_at": None,
            "reader_ip": None,
            "reader_client": None,
        })

    async def record_failed_attempt(self, signup: EarlyAccessSignup, now: datetime) -> EarlyAccessSignup:
        return await self.apply(signup, {
            "otp_attempts": (signup.otp_attempts or 0) + 1,
            "otp_last_attempt": now,
        })

    async def mark_verified(self, signup: EarlyAccessSignup, now: datetime) -> EarlyAccessSignup:
        """Mark a signup verified and clear the one-time code so it cannot be reused."""
        return await self.apply(signup, {
            "is_verified": True,
            "otp_verified_at": now,
            "otp_code": None,
            "otp_expires_at": None,
            "otp_attempts": 0,
            "otp_last_attempt": None,
        })

    async def record_open(
        self,
        signup: EarlyAccessSignup,
        now: datetime,
        reader_ip: Optional[str],
        reader_client: Optional[str],
    ) -> EarlyAccessSignup:
        changes = {
            "read_count": (signup.read_count or 0) + 1,
            "last_read_at": now,
        }
        if signup.read_at is None:
            changes["read_at"] = now
            changes["reader_ip"] = reader_ip
            changes["reader_client"] = reader_client
        return await self.apply(signup, changes)

    async def count_verified(self) -> int:
        result = await self.db.execute(
            select(func.count(EarlyAccessSignup.id))
            .filter(EarlyAccessSignup.is_verified.is_(True))
        )
        return result.scalar()

    async def get_counts(self) -> Tuple[int, int]:
        """Get (total, verified) signup counts."""
        return await self.count(), await self.count_verified()

    async def get_page(self, page: int, limit: int) -> List[EarlyAccessSignup]:
        """Get a page of signups, newest first."""
        result = await self.db.execute(
            select(EarlyAccessSignup)
            .order_by(desc(EarlyAccessSignup.created_at), desc(EarlyAccessSignup.id))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all())
