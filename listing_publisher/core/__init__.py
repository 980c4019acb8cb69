"""
Core module exports.
"""
from .enums import (
    PlatformName,
    LoginState,
    SubmissionState,
    SubmissionStatus
)

from .exceptions import (
    BaseServiceError,
    PlatformServiceError,
    UnknownPlatformError,
    AuthError,
    SessionExpiredError,
    UploadError,
    SubmissionRejectedError,
    TransportError,
    AuditWriteError,
    BlobNotFoundError
)
