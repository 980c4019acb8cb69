from typing import List, Optional


class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass

class PlatformServiceError(BaseServiceError):
    """Base exception for platform service errors."""
    pass

class UnknownPlatformError(PlatformServiceError):
    """Raised when no adapter is registered for a platform id."""
    pass

class AuthError(PlatformServiceError):
    """Raised when the login handshake fails (no token, bad credentials, non-redirect response)."""
    pass

class SessionExpiredError(PlatformServiceError):
    """Raised when the cached session is missing or the platform rejected it."""
    pass

class UploadError(PlatformServiceError):
    """Raised when no image of a batch could be uploaded."""

    def __init__(self, message: str, failed: Optional[List[str]] = None):
        super().__init__(message)
        self.failed = failed or []

class SubmissionRejectedError(PlatformServiceError):
    """Raised when the platform answered but gave no publish confirmation."""

    def __init__(self, message: str, audit_ref: Optional[str] = None):
        super().__init__(message)
        self.audit_ref = audit_ref

class TransportError(PlatformServiceError):
    """Raised when a request to the platform fails (network, timeout, unparseable response)."""
    pass

class AuditWriteError(BaseServiceError):
    """Raised when a raw response cannot be written to audit storage."""
    pass

class BlobNotFoundError(BaseServiceError):
    """Raised when the blob store has no object under a key."""
    pass
