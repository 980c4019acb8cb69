"""
Shared enums and constants used across the application.
"""

from enum import Enum

class PlatformName(str, Enum):
    NETGUN = "NETGUN"
    OTOBRON = "OTOBRON"

    @property
    def slug(self):
        return self.value.lower()

    @classmethod
    def from_slug(cls, value: str) -> "PlatformName":
        return cls(value.strip().upper())


class LoginState(str, Enum):
    """Steps of the login handshake, in order"""
    ANONYMOUS = "ANONYMOUS"
    HOMEPAGE_VISITED = "HOMEPAGE_VISITED"
    LOGIN_PAGE_FETCHED = "LOGIN_PAGE_FETCHED"
    CREDENTIALS_SUBMITTED = "CREDENTIALS_SUBMITTED"
    AUTHENTICATED = "AUTHENTICATED"
    LOGIN_FAILED = "LOGIN_FAILED"


class SubmissionState(str, Enum):
    """Non-terminal steps of a listing submission"""
    TOKEN_REFRESH = "TOKEN_REFRESH"
    UPLOADING_IMAGES = "UPLOADING_IMAGES"
    SUBMITTING = "SUBMITTING"
    AWAITING_PROMOTION_CONFIRM = "AWAITING_PROMOTION_CONFIRM"
    DONE = "DONE"


class SubmissionStatus(str, Enum):
    """Terminal outcome of a listing submission"""
    PUBLISHED = "PUBLISHED"
    REJECTED = "REJECTED"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
