"""
Error types and degraded-mode classification.
"""
import logging
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


HIGH_DEMAND_MESSAGE = (
    "The AI assistant is experiencing high demand right now. "
    "Please try again in a few moments."
)
QUOTA_MESSAGE = (
    "The AI assistant has reached its daily usage limit. "
    "Please try again tomorrow or contact support for immediate assistance."
)
MAINTENANCE_MESSAGE = (
    "The AI assistant is currently in maintenance mode. "
    "Please check back later or contact support for immediate assistance."
)
GENERIC_FAILURE_MESSAGE = (
    "Sorry, there was an error processing your request. Please try again later."
)

CATALOG_LOAD_FAILURE_MESSAGE = "Failed to load resource data"


class PortalError(Exception):
    """Base class for portal errors."""


class RequestValidationError(PortalError):
    """Client sent a request with missing or invalid fields."""

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = list(fields or [])


class CatalogLoadError(PortalError):
    """Form catalog document is missing or corrupt."""


class GatewayError(PortalError):
    """Call to the reasoning engine failed."""

    def __init__(self, message: str, status: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.reason = reason


class MissingCredentialsError(GatewayError):
    """Gateway was asked to send without a configured API key."""

    def __init__(self, message: str = "No API key configured for the reasoning engine"):
        super().__init__(message, status=None, reason="MISSING_CREDENTIALS")


class EmptyResponseError(PortalError):
    """Engine reply carried no text content."""


class DegradedKind(str, Enum):
    HIGH_DEMAND = "high_demand"
    QUOTA = "quota"
    MAINTENANCE = "maintenance"
    GENERIC = "generic"


class DegradedResponse(BaseModel):
    """User-safe outcome for a failed engine interaction."""
    model_config = ConfigDict(frozen=True)

    kind: DegradedKind
    message: str
    ai_disabled: bool


HIGH_DEMAND = DegradedResponse(kind=DegradedKind.HIGH_DEMAND, message=HIGH_DEMAND_MESSAGE, ai_disabled=True)
QUOTA_EXHAUSTED = DegradedResponse(kind=DegradedKind.QUOTA, message=QUOTA_MESSAGE, ai_disabled=True)
MAINTENANCE = DegradedResponse(kind=DegradedKind.MAINTENANCE, message=MAINTENANCE_MESSAGE, ai_disabled=True)
GENERIC_FAILURE = DegradedResponse(kind=DegradedKind.GENERIC, message=GENERIC_FAILURE_MESSAGE, ai_disabled=False)

_CREDENTIAL_MARKERS = (
    "api key",
    "api_key",
    "apikey",
    "credential",
    "unauthenticated",
    "permission_denied",
    "permission denied",
)


def _status_of(error: BaseException) -> Optional[int]:
    for attr in ("status", "status_code", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and value.isdigit():
            return int(value)
    return None


def classify(error: BaseException) -> DegradedResponse:
    """Map an engine failure to one of the canned degraded responses.

    Buckets are checked in a fixed order (overload, quota, credentials,
    anything else), so an error matching several resolves to the first.
    """
    status = _status_of(error)
    reason = str(getattr(error, "reason", "") or "").upper()
    message = str(error).lower()

    if status == 503 or reason == "UNAVAILABLE" or "overloaded" in message:
        logger.warning("Reasoning engine overloaded (status=%s)", status)
        return HIGH_DEMAND

    if status == 429 or reason == "RESOURCE_EXHAUSTED" or "quota" in message:
        logger.warning("Reasoning engine quota exhausted (status=%s)", status)
        return QUOTA_EXHAUSTED

    if (
        isinstance(error, MissingCredentialsError)
        or status in (401, 403)
        or reason in ("UNAUTHENTICATED", "PERMISSION_DENIED")
        or any(marker in message for marker in _CREDENTIAL_MARKERS)
    ):
        logger.error("Reasoning engine rejected credentials (status=%s)", status)
        return MAINTENANCE

    logger.error("Unclassified reasoning engine failure", exc_info=error)
    return GENERIC_FAILURE
