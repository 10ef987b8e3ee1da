from sqlalchemy.orm import declarative_base

Base = declarative_base()

from .early_access_signup import EarlyAccessSignup as EarlyAccessSignup  # noqa: E402
