import base64
import logging
from typing import Optional

from early_access.core.clock import Clock, utcnow
from early_access.core.database import STORE_ERRORS
from early_access.repositories.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

# 1x1 fully transparent PNG, served for every pixel request
TRANSPARENT_PIXEL = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)

READER_CLIENT_MAX_LENGTH = 500


class EngagementService:
    """Records opens of the verification email via its tracking pixel."""

    def __init__(self, uow: AbstractUnitOfWork, clock: Clock = utcnow):
        self.uow = uow
        self.clock = clock

    async def record_open(
        self, token: str, client_ip: Optional[str] = None, user_agent: Optional[str] = None
    ) -> bool:
        """Count an open for the token. Returns False for unknown tokens."""
        if not token:
            return False

        try:
            signup = await self.uow.signups.get_by_engagement_token(token)
            if signup is None:
                return False

            first_open = signup.read_at is None
            await self.uow.signups.record_open(
                signup,
                now=self.clock(),
                reader_ip=client_ip,
                reader_client=(user_agent or "")[:READER_CLIENT_MAX_LENGTH] or None,
            )
            await self.uow.commit()
        except STORE_ERRORS as e:
            # The pixel is served regardless, an unrecorded open is acceptable
            logger.error(f"Failed to record email open: {e}")
            await self.uow.rollback()
            return False

        if first_open:
            logger.info(f"Verification email opened for the first time: {signup.email}")
        return True
