from sqlalchemy import Column, Integer, String, DateTime, Boolean

from early_access.core.clock import utcnow
from early_access.models import Base


class EarlyAccessSignup(Base):
    """A person who signed up for early access, one row per email."""

    __tablename__ = "early_access_signups"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    ip_address = Column(String(45), nullable=True)  # IPv6 max length

    # One-time code verification
    otp_code = Column(String(6), nullable=True)
    otp_expires_at = Column(DateTime(timezone=True), nullable=True)
    otp_verified_at = Column(DateTime(timezone=True), nullable=True)
    otp_attempts = Column(Integer, default=0, nullable=False)
    otp_last_attempt = Column(DateTime(timezone=True), nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)

    # Email engagement tracking
    email_sent = Column(Boolean, default=False, nullable=False)
    engagement_token = Column(String(64), unique=True, index=True, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)  # first open
    read_count = Column(Integer, default=0, nullable=False)
    last_read_at = Column(DateTime(timezone=True), nullable=True)
    reader_ip = Column(String(45), nullable=True)
    reader_client = Column(String(500), nullable=True)

    def __repr__(self):
        return f"<EarlyAccessSignup(id={self.id}, email={self.email}, verified={self.is_verified})>"
