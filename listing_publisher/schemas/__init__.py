from .base import BaseSchema, FrozenSchema
from .listing import (
    CookieEntry,
    PlatformSession,
    SessionSummary,
    LoginResult,
    ListingRequest,
    UploadedImage,
    AuditRecord,
    SubmissionOutcome,
    ListingPayload,
)
