import secrets
import logging

from early_access.core.exceptions import RandomSourceError

logger = logging.getLogger(__name__)

# No I, O, 0 or 1
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6
TRACKING_TOKEN_BYTES = 32


def generate_code() -> str:
    """Generate a one-time verification code from the unambiguous alphabet."""
    try:
        return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
    except (OSError, NotImplementedError) as e:
        logger.error(f"Failed to read random source for verification code: {e}")
        raise RandomSourceError() from e


def generate_tracking_token() -> str:
    """Generate a URL-safe token (43 chars) for email open tracking."""
    try:
        return secrets.token_urlsafe(TRACKING_TOKEN_BYTES)
    except (OSError, NotImplementedError) as e:
        logger.error(f"Failed to read random source for tracking token: {e}")
        raise RandomSourceError() from e
