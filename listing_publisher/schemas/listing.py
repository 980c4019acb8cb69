"""
Schemas for sessions, listing requests and submission outcomes.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import Field, field_validator

from listing_publisher.core.enums import SubmissionStatus
from listing_publisher.schemas.base import BaseSchema, FrozenSchema


class CookieEntry(FrozenSchema):
    name: str
    value: str
    domain: str = ""
    path: str = "/"


class PlatformSession(BaseSchema):
    """
    Authenticated session for one platform.

    Only usable when both the cookie jar and the CSRF token are non-empty;
    anything less forces a re-login.
    """
    platform_id: str
    cookie_jar: List[CookieEntry] = Field(default_factory=list)
    csrf_token: str = ""
    captured_at: Optional[datetime] = None

    @property
    def is_usable(self) -> bool:
        return bool(self.cookie_jar) and bool(self.csrf_token)

    @property
    def cookie_string(self) -> str:
        return "; ".join(f"{c.name}={c.value}" for c in self.cookie_jar)


class SessionSummary(BaseSchema):
    platform_id: str
    cookie_count: int
    token_preview: str
    captured_at: Optional[datetime] = None


class LoginResult(BaseSchema):
    success: bool
    message: str
    platform_id: str
    session: Optional[SessionSummary] = None


class ListingRequest(FrozenSchema):
    """A single listing to publish. Immutable for the duration of a submission."""
    platform_id: str
    subject_id: str
    title: str
    description: str = ""
    price: int
    image_references: Tuple[str, ...] = ()
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("subject_id", mode="before")
    @classmethod
    def _coerce_subject_id(cls, value):
        return str(value)

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, value):
        # Platforms take whole currency units only
        return int(float(value))

    @field_validator("image_references", mode="before")
    @classmethod
    def _coerce_references(cls, value):
        if value is None:
            return ()
        return tuple(value)


class UploadedImage(BaseSchema):
    source_reference: str
    platform_url_or_id: str
    upload_order: int


class AuditRecord(FrozenSchema):
    timestamp: datetime
    subject_id: str
    status_code: int
    raw_body: str
    retrieval_path: str


class SubmissionOutcome(BaseSchema):
    """
    Terminal artifact of a submission.

    PUBLISHED carries listing_url (nullable) and audit_ref, REJECTED carries
    reason and audit_ref, SESSION_EXPIRED optionally a reason, TRANSPORT_ERROR
    carries detail.
    """
    status: SubmissionStatus
    listing_url: Optional[str] = None
    audit_ref: Optional[str] = None
    reason: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def published(cls, listing_url: Optional[str], audit_ref: Optional[str]) -> "SubmissionOutcome":
        return cls(status=SubmissionStatus.PUBLISHED, listing_url=listing_url, audit_ref=audit_ref)

    @classmethod
    def rejected(cls, reason: str, audit_ref: Optional[str] = None) -> "SubmissionOutcome":
        return cls(status=SubmissionStatus.REJECTED, reason=reason, audit_ref=audit_ref)

    @classmethod
    def session_expired(cls, reason: Optional[str] = None, audit_ref: Optional[str] = None) -> "SubmissionOutcome":
        return cls(status=SubmissionStatus.SESSION_EXPIRED, reason=reason, audit_ref=audit_ref)

    @classmethod
    def transport_error(cls, detail: str, audit_ref: Optional[str] = None) -> "SubmissionOutcome":
        return cls(status=SubmissionStatus.TRANSPORT_ERROR, detail=detail, audit_ref=audit_ref)

    @property
    def success(self) -> bool:
        return self.status == SubmissionStatus.PUBLISHED

    @property
    def message(self) -> str:
        if self.status == SubmissionStatus.PUBLISHED:
            return "Listing published"
        if self.status == SubmissionStatus.REJECTED:
            return f"Listing rejected: {self.reason}"
        if self.status == SubmissionStatus.SESSION_EXPIRED:
            return "Session expired, log in again" + (f" ({self.reason})" if self.reason else "")
        return f"Transport error: {self.detail}"


class ListingPayload(BaseSchema):
    """Body of `POST /api/{platform}/listings`; the platform comes from the path."""
    subject_id: str
    title: str
    description: str = ""
    price: float
    image_references: List[str] = Field(default_factory=list)
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("subject_id", mode="before")
    @classmethod
    def _coerce_subject_id(cls, value):
        return str(value)

    def to_request(self, platform_id: str) -> ListingRequest:
        return ListingRequest(platform_id=platform_id, **self.model_dump())
