from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import List, Optional


class CamelModel(BaseModel):
    """JSON uses camelCase keys, Python code uses field names."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class SignupRequest(CamelModel):
    email: str = Field(..., max_length=255)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)


class VerifyRequest(CamelModel):
    email: str = Field(..., max_length=255)
    otp: str = Field(..., max_length=32)


class MessageResponse(BaseModel):
    message: str


class VerifyResponse(CamelModel):
    message: str
    email: str
    is_verified: bool
    otp_verified_at: Optional[datetime] = None


class CountResponse(BaseModel):
    total: int
    verified: int
    message: str = "early start signups"


class SignupOut(CamelModel):
    """Admin view of a signup. Codes, tokens and reader details stay hidden."""

    id: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    ip_address: Optional[str] = None
    otp_verified_at: Optional[datetime] = None
    is_verified: bool
    email_sent: bool
    read_at: Optional[datetime] = None
    read_count: int = 0
    last_read_at: Optional[datetime] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class SignupListResponse(BaseModel):
    users: List[SignupOut]
    total: int
    page: int
    limit: int


class HealthResponse(BaseModel):
    status: str
    database: str
    version: str
