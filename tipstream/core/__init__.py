"""
TIPSTREAM - Core Module
Configuration, persistence, pacing and error taxonomy.
"""

from tipstream.core.config import Settings, get_settings, settings
from tipstream.core.database import (
    Base,
    DatabaseManager,
    db_manager,
    init_db,
    close_db,
    get_database_manager,
)
from tipstream.core.exceptions import (
    TipstreamError,
    InsufficientDataError,
    ModelOutputInvalidError,
    EmptyModelResponseError,
    UpstreamProviderError,
    QuotaExceededError,
    ProviderAuthError,
    PaymentRequiredError,
    EmptyPoolError,
    InvalidInputError,
)
from tipstream.core.rate_limiter import RateLimiter

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "settings",

    # Database
    "Base",
    "DatabaseManager",
    "db_manager",
    "init_db",
    "close_db",
    "get_database_manager",

    # Errors
    "TipstreamError",
    "InsufficientDataError",
    "ModelOutputInvalidError",
    "EmptyModelResponseError",
    "UpstreamProviderError",
    "QuotaExceededError",
    "ProviderAuthError",
    "PaymentRequiredError",
    "EmptyPoolError",
    "InvalidInputError",

    # Pacing
    "RateLimiter",
]
