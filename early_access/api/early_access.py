import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from early_access.core.config import settings
from early_access.core.service_dependencies import (
    get_client_ip,
    get_engagement_service,
    get_verification_service,
)
from early_access.schemas.early_access import (
    CountResponse,
    MessageResponse,
    SignupListResponse,
    SignupOut,
    SignupRequest,
    VerifyRequest,
    VerifyResponse,
)
from early_access.services.engagement_service import TRANSPARENT_PIXEL, EngagementService
from early_access.services.verification_service import VerificationService

router = APIRouter(tags=["early-access"])
logger = logging.getLogger(__name__)


@router.post(
    "/signup",
    response_model=MessageResponse,
    summary="Sign up for early access",
    responses={
        400: {"description": "Invalid email address"},
        429: {"description": "A code was requested less than a minute ago"},
        500: {"description": "Service temporarily unavailable"},
    },
)
@router.post("/early-start/signup", response_model=MessageResponse, include_in_schema=False)
async def signup(
    request: Request,
    payload: SignupRequest,
    service: VerificationService = Depends(get_verification_service),
):
    message = await service.signup(
        email=payload.email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        client_ip=get_client_ip(request),
    )
    return MessageResponse(message=message)


@router.post(
    "/verify",
    response_model=VerifyResponse,
    summary="Verify the emailed code",
    responses={
        400: {"description": "Invalid or expired verification code"},
        429: {"description": "Too many failed attempts"},
    },
)
@router.post("/early-start/verify", response_model=VerifyResponse, include_in_schema=False)
async def verify(
    payload: VerifyRequest,
    service: VerificationService = Depends(get_verification_service),
):
    result = await service.verify_code(payload.email, payload.otp)
    return VerifyResponse(
        message=result.message,
        email=result.email,
        is_verified=result.is_verified,
        otp_verified_at=result.verified_at,
    )


@router.get("/count", response_model=CountResponse)
@router.get("/early-start/count", response_model=CountResponse, include_in_schema=False)
async def count(service: VerificationService = Depends(get_verification_service)):
    total, verified = await service.count()
    return CountResponse(total=total, verified=verified)


# TODO: put behind admin authentication before enabling in production
@router.get("/admin/list", response_model=SignupListResponse)
@router.get("/admin/early-start", response_model=SignupListResponse, include_in_schema=False)
async def list_signups(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    service: VerificationService = Depends(get_verification_service),
):
    if not settings.ADMIN_LIST_ENABLED:
        raise HTTPException(status_code=404, detail="Not Found")

    result = await service.list_signups(page=page, limit=limit)
    return SignupListResponse(
        users=[SignupOut.model_validate(signup) for signup in result.signups],
        total=result.total,
        page=result.page,
        limit=result.limit,
    )


@router.get("/engagement/{filename}", include_in_schema=False)
@router.get("/api/e/{filename}", include_in_schema=False)
async def track_engagement(
    filename: str,
    request: Request,
    service: EngagementService = Depends(get_engagement_service),
):
    """Tracking pixel. The same image is returned whether or not the token exists."""
    token = filename.removesuffix(".png")
    await service.record_open(
        token,
        client_ip=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    return Response(
        content=TRANSPARENT_PIXEL,
        media_type="image/png",
        headers={"Cache-Control": "no-store, no-cache, must-revalidate, max-age=0"},
    )
