from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from early_access.core.clock import as_utc
from early_access.services.engagement_service import (
    READER_CLIENT_MAX_LENGTH,
    TRANSPARENT_PIXEL,
    EngagementService,
)

EMAIL = "reader@x.com"


class TestTransparentPixel:
    def test_is_a_one_by_one_png(self):
        assert TRANSPARENT_PIXEL.startswith(b"\x89PNG\r\n\x1a\n")
        # IHDR width and height
        assert TRANSPARENT_PIXEL[16:24] == b"\x00\x00\x00\x01\x00\x00\x00\x01"
        assert TRANSPARENT_PIXEL.endswith(b"IEND\xaeB`\x82")


class TestRecordOpen:
    """Test email open tracking."""

    @pytest.mark.asyncio
    async def test_first_open_captures_reader(self, verification_service, uow, clock, email_service):
        await verification_service.signup(EMAIL)
        token = email_service.last_token_for(EMAIL)
        clock.advance(minutes=2)

        service = EngagementService(uow, clock)
        recorded = await service.record_open(token, "192.0.2.10", "Thunderbird/115")

        assert recorded is True
        signup = await uow.signups.get_by_email(EMAIL)
        assert signup.read_count == 1
        assert as_utc(signup.read_at) == clock.now
        assert as_utc(signup.last_read_at) == clock.now
        assert signup.reader_ip == "192.0.2.10"
        assert signup.reader_client == "Thunderbird/115"

    @pytest.mark.asyncio
    async def test_later_opens_only_bump_count(self, verification_service, uow, clock, email_service):
        await verification_service.signup(EMAIL)
        token = email_service.last_token_for(EMAIL)
        service = EngagementService(uow, clock)

        await service.record_open(token, "192.0.2.10", "Thunderbird/115")
        first_open = clock.now
        clock.advance(hours=1)
        await service.record_open(token, "192.0.2.99", "Outlook/16")

        signup = await uow.signups.get_by_email(EMAIL)
        assert signup.read_count == 2
        assert as_utc(signup.read_at) == first_open
        assert as_utc(signup.last_read_at) == clock.now
        assert signup.reader_ip == "192.0.2.10"
        assert signup.reader_client == "Thunderbird/115"

    @pytest.mark.asyncio
    async def test_long_user_agent_is_truncated(self, verification_service, uow, clock, email_service):
        await verification_service.signup(EMAIL)
        token = email_service.last_token_for(EMAIL)

        await EngagementService(uow, clock).record_open(token, None, "A" * 2000)

        signup = await uow.signups.get_by_email(EMAIL)
        assert len(signup.reader_client) == READER_CLIENT_MAX_LENGTH

    @pytest.mark.asyncio
    async def test_unknown_token_is_ignored(self, uow, clock):
        service = EngagementService(uow, clock)
        assert await service.record_open("does-not-exist") is False
        assert await service.record_open("") is False

    @pytest.mark.asyncio
    async def test_store_failure_is_swallowed(self, clock):
        uow = MagicMock()
        uow.signups.get_by_engagement_token = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection refused"))
        )
        uow.rollback = AsyncMock()

        assert await EngagementService(uow, clock).record_open("token") is False
        uow.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unreachable_store_is_swallowed(self, clock):
        uow = MagicMock()
        uow.signups.get_by_engagement_token = AsyncMock(
            side_effect=ConnectionRefusedError(111, "Connection refused")
        )
        uow.rollback = AsyncMock()

        assert await EngagementService(uow, clock).record_open("token") is False
        uow.rollback.assert_awaited_once()
