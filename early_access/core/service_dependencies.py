from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from early_access.core.clock import Clock, utcnow
from early_access.core.config import settings
from early_access.core.database import get_db
from early_access.repositories.unit_of_work import SqlAlchemyUnitOfWork
from early_access.services.email import EmailService
from early_access.services.engagement_service import EngagementService
from early_access.services.verification_service import VerificationService


def get_clock() -> Clock:
    """Dependency to provide the current-time source."""
    return utcnow


def get_email_service() -> EmailService:
    """Dependency to provide EmailService."""
    return EmailService(settings)


async def get_verification_service(
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
    clock: Clock = Depends(get_clock),
) -> VerificationService:
    """Dependency to provide VerificationService."""
    uow = SqlAlchemyUnitOfWork(db)
    return VerificationService(uow, email_service, clock)


async def get_engagement_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> EngagementService:
    """Dependency to provide EngagementService."""
    uow = SqlAlchemyUnitOfWork(db)
    return EngagementService(uow, clock)


def get_client_ip(request: Request) -> str | None:
    """First hop of X-Forwarded-For, falling back to the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()[:45]
    return request.client.host if request.client else None
