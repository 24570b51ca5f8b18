"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
Tracker, onboarding and ingest payloads also accept the camelCase field
names that browser clients and scrapers send.
"""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, List, Optional, Union
from urllib.parse import urlparse

from pydantic import (
    BaseModel, ConfigDict, EmailStr, Field, RootModel, field_validator, model_validator
)


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    user = "user"
    member = "member"
    admin = "admin"


class InternshipType(str, Enum):
    remote = "remote"
    hybrid = "hybrid"
    onsite = "onsite"


class InternshipTiming(str, Enum):
    full_time = "full_time"
    part_time = "part_time"


class OpportunityType(str, Enum):
    hackathon = "hackathon"
    grant = "grant"
    competition = "competition"
    ideathon = "ideathon"


class ModerationAction(str, Enum):
    approve = "approve"
    reject = "reject"


class TrackerStatus(str, Enum):
    not_applied = "Not Applied"
    draft = "Draft"
    applied = "Applied"
    result_awaited = "Result Awaited"
    selected = "Selected"
    rejected = "Rejected"


class TrackerKind(str, Enum):
    internship = "internship"
    opportunity = "opportunity"


class ContentItemType(str, Enum):
    article = "article"
    video = "video"


class UngatekeepTag(str, Enum):
    announcement = "announcement"
    company_experience = "company_experience"
    resources = "resources"


class SurveySource(str, Enum):
    instagram = "instagram"
    reddit = "reddit"
    youtube = "youtube"
    linkedin = "linkedin"
    chatgpt = "chatgpt"
    google_search = "google_search"
    whatsapp_group = "whatsapp_group"
    friend_or_senior = "friend_or_senior"
    campus_event = "campus_event"
    other = "other"


class CamelModel(BaseModel):
    """Accepts both the field name and its camelCase alias."""
    model_config = ConfigDict(populate_by_name=True)


def _check_http_url(value: Optional[str]) -> Optional[str]:
    if value is None or value.strip() == "":
        return None
    parsed = urlparse(value.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("URL must start with http:// or https://")
    return value.strip()


def _reject_null(value: Any) -> Any:
    # Omitted fields are left alone in partial updates; null is rejected
    if value is None:
        raise ValueError("Field cannot be null")
    return value


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    role: str


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    image: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None


class IsAdminResponse(BaseModel):
    is_admin: bool
    role: Optional[str] = None


class RoleUpdate(BaseModel):
    role: UserRole


# ============================================================
# PROFILE & ONBOARDING SCHEMAS
# ============================================================

class ProfileResponse(BaseModel):
    id: str
    name: str
    email: str
    image: Optional[str] = None
    college_institute: Optional[str] = None
    contact_number: Optional[str] = None
    current_role: Optional[str] = None
    field_interests: List[str] = []
    opportunity_interests: List[str] = []
    skills: List[str] = []


class ProfileUpdate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    image: Optional[str] = None
    college_institute: Optional[str] = Field(None, alias="collegeInstitute", max_length=200)
    contact_number: Optional[str] = Field(None, alias="contactNumber", max_length=30)
    current_role: Optional[str] = Field(None, alias="currentRole", max_length=100)
    field_interests: List[str] = Field(default_factory=list, alias="fieldInterests")
    opportunity_interests: List[str] = Field(default_factory=list, alias="opportunityInterests")
    skills: List[str] = Field(default_factory=list)


class OnboardingRequest(CamelModel):
    """
    Loosely typed on purpose: the onboarding rules discard malformed
    answers instead of rejecting the whole submission.
    """
    persona: Optional[str] = None
    location_type: Optional[str] = Field(None, alias="locationType")
    location_value: Optional[str] = Field(None, alias="locationValue")
    education_level: Optional[str] = Field(None, alias="educationLevel")
    field_of_study: Optional[str] = Field(None, alias="fieldOfStudy")
    field_other: Optional[str] = Field(None, alias="fieldOther")
    opportunity_interests: Any = Field(None, alias="opportunityInterests")
    domain_preferences: Any = Field(None, alias="domainPreferences")
    struggles: Any = None


class OnboardingProfileResponse(BaseModel):
    id: str
    persona: str
    location_type: Optional[str] = None
    location_value: Optional[str] = None
    education_level: Optional[str] = None
    field_of_study: Optional[str] = None
    field_other: Optional[str] = None
    opportunity_interests: List[str] = []
    domain_preferences: List[str] = []
    struggles: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OnboardingSurveyRequest(CamelModel):
    source: SurveySource
    source_other: Optional[str] = Field(None, max_length=120, alias="sourceOther")

    @model_validator(mode="after")
    def other_needs_detail(self):
        if self.source == SurveySource.other:
            if not self.source_other or len(self.source_other.strip()) < 2:
                raise ValueError("Please tell us where you heard about us")
        return self


class OnboardingSurveyResponse(BaseModel):
    source: str
    source_other: Optional[str] = None


# ============================================================
# INTERNSHIP SCHEMAS
# ============================================================

class InternshipCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=2000)
    hiring_organization: str = Field(..., min_length=1, max_length=120, alias="hiringOrganization")
    type: Optional[str] = Field(None, max_length=32)
    timing: Optional[str] = Field(None, max_length=32)
    link: Optional[str] = Field(None, max_length=2048)
    poster: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    location: Optional[str] = Field(None, max_length=160)
    deadline: Optional[str] = Field(None, max_length=64)
    stipend: Optional[int] = Field(None, ge=0)
    duration: Optional[str] = Field(None, max_length=100)
    experience: Optional[str] = Field(None, max_length=100)
    hiring_manager: Optional[str] = Field(None, max_length=100, alias="hiringManager")


class InternshipResponse(BaseModel):
    id: str
    type: Optional[str] = None
    timing: Optional[str] = None
    title: str
    description: Optional[str] = None
    link: Optional[str] = None
    poster: Optional[str] = None
    tags: List[str] = []
    location: Optional[str] = None
    deadline: Optional[date] = None
    stipend: Optional[int] = None
    duration: Optional[str] = None
    experience: Optional[str] = None
    hiring_organization: str
    hiring_manager: Optional[str] = None
    is_flagged: bool = False
    is_verified: bool = False
    is_active: bool = True
    view_count: int = 0
    application_count: int = 0
    user_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Pagination(BaseModel):
    limit: int
    offset: int
    total: int
    has_more: bool


class InternshipListResponse(BaseModel):
    success: bool = True
    internships: List[InternshipResponse]
    pagination: Pagination


class InternshipIngestRecord(CamelModel):
    title: str = Field(..., min_length=1, max_length=100)
    hiring_organization: str = Field(..., min_length=1, max_length=120, alias="hiringOrganization")
    link: str = Field(..., max_length=2048)
    description: Optional[str] = Field(None, max_length=2000)
    type: Optional[str] = Field(None, max_length=32)
    timing: Optional[str] = Field(None, max_length=32)
    stipend: Optional[Union[Annotated[float, Field(ge=0)], str]] = None
    duration: Optional[str] = Field(None, max_length=100)
    experience: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=160)
    deadline: Optional[str] = Field(None, max_length=64)
    tags: Optional[Union[
        Annotated[List[Annotated[str, Field(max_length=50)]], Field(max_length=30)],
        Annotated[str, Field(max_length=1000)],
    ]] = None
    hiring_manager: Optional[str] = Field(None, max_length=100, alias="hiringManager")
    is_verified: Optional[bool] = Field(None, alias="isVerified")
    is_active: Optional[bool] = Field(None, alias="isActive")
    raw_text: Optional[str] = Field(None, max_length=20000, alias="rawText")

    @field_validator("link")
    @classmethod
    def link_must_be_url(cls, v: str) -> str:
        parsed = urlparse(v.strip())
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("Valid application link is required")
        return v


class InternshipIngestBatch(RootModel[List[InternshipIngestRecord]]):
    root: List[InternshipIngestRecord] = Field(..., min_length=1, max_length=500)


class FitScoreResponse(BaseModel):
    score: int
    label: str
    missing_skills: List[str] = []


# ============================================================
# OPPORTUNITY SCHEMAS
# ============================================================

def _check_publish_at(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return value
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError("publish_at must be an ISO 8601 datetime")
    return value


class OpportunityCreate(CamelModel):
    type: OpportunityType = OpportunityType.hackathon
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    images: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    organiser_info: Optional[str] = Field(None, alias="organiserInfo")
    start_date: Optional[str] = Field(None, alias="startDate")
    end_date: Optional[str] = Field(None, alias="endDate")
    publish_at: Optional[str] = Field(None, alias="publishAt")

    @field_validator("publish_at")
    @classmethod
    def publish_at_iso(cls, v: Optional[str]) -> Optional[str]:
        return _check_publish_at(v)


class OpportunityUpdate(CamelModel):
    type: Optional[OpportunityType] = None
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    images: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    location: Optional[str] = None
    organiser_info: Optional[str] = Field(None, alias="organiserInfo")
    start_date: Optional[str] = Field(None, alias="startDate")
    end_date: Optional[str] = Field(None, alias="endDate")
    publish_at: Optional[str] = Field(None, alias="publishAt")

    @field_validator("publish_at")
    @classmethod
    def publish_at_iso(cls, v: Optional[str]) -> Optional[str]:
        return _check_publish_at(v)


class UserSummary(BaseModel):
    id: str
    name: Optional[str] = None
    image: Optional[str] = None


class OpportunityResponse(BaseModel):
    id: str
    type: str
    title: str
    description: str
    location: Optional[str] = None
    organiser_info: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    publish_at: Optional[datetime] = None
    images: List[str] = []
    tags: List[str] = []
    upvote_count: int = 0
    is_flagged: bool = False
    is_verified: bool = False
    is_active: bool = True
    user: UserSummary
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UpvoteResponse(BaseModel):
    count: int
    user_has_upvoted: bool


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)


class CommentResponse(BaseModel):
    id: str
    content: str
    opportunity_id: str
    user: UserSummary
    created_at: Optional[datetime] = None


class ModerationRequest(BaseModel):
    action: ModerationAction


# ============================================================
# BOOKMARK SCHEMAS
# ============================================================

class BookmarkCreate(CamelModel):
    opportunity_id: str = Field(..., min_length=1, alias="opportunityId")


class BookmarkedOpportunity(BaseModel):
    bookmark_id: str
    bookmarked_at: Optional[datetime] = None
    opportunity: OpportunityResponse
    days_left: Optional[int] = None


# ============================================================
# TRACKER SCHEMAS
# ============================================================

class TrackerItemIn(CamelModel):
    opp_id: Union[str, int] = Field(..., alias="oppId")
    status: TrackerStatus
    kind: TrackerKind = TrackerKind.internship
    notes: Optional[str] = None
    added_at: Optional[datetime] = Field(None, alias="addedAt")
    applied_at: Optional[datetime] = Field(None, alias="appliedAt")
    result: Optional[str] = None
    is_manual: bool = Field(False, alias="isManual")
    manual_data: Any = Field(None, alias="manualData")

    @field_validator("opp_id")
    @classmethod
    def opp_id_as_string(cls, v: Union[str, int]) -> str:
        v = str(v).strip()
        if not v:
            raise ValueError("opp_id is required")
        return v


class TrackerEventIn(BaseModel):
    title: str = Field(..., min_length=1)
    date: datetime
    type: str = Field(..., min_length=1)
    description: Optional[str] = None


class TrackerItemResponse(BaseModel):
    id: str
    opp_id: str
    kind: str
    status: str
    notes: Optional[str] = None
    added_at: Optional[datetime] = None
    applied_at: Optional[datetime] = None
    result: Optional[str] = None
    is_manual: bool = False
    manual_data: Any = None
    updated_at: Optional[datetime] = None


class TrackerEventResponse(BaseModel):
    id: str
    title: str
    date: datetime
    type: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class TrackerPostRequest(BaseModel):
    action: str
    data: Any = None


class TrackerExtraData(BaseModel):
    notes: Optional[str] = None
    result: Optional[str] = None


class TrackerStatusUpdate(CamelModel):
    status: TrackerStatus
    extra_data: Optional[TrackerExtraData] = Field(None, alias="extraData")


class TrackerPatchRequest(BaseModel):
    action: str
    id: Union[str, int]
    data: TrackerStatusUpdate


class ReminderSettings(BaseModel):
    week_before: bool = True
    day_before: bool = True
    hour_before: bool = True


class ReminderSettingsUpdate(BaseModel):
    week_before: Optional[bool] = None
    day_before: Optional[bool] = None
    hour_before: Optional[bool] = None


# ============================================================
# TOOLKIT, COUPON & PAYMENT SCHEMAS
# ============================================================

class ToolkitCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    price: int = Field(..., ge=0)
    original_price: Optional[int] = Field(None, ge=0, alias="originalPrice")
    cover_image_url: Optional[str] = Field(None, alias="coverImageUrl")
    video_url: Optional[str] = Field(None, alias="videoUrl")
    content_url: Optional[str] = Field(None, alias="contentUrl")
    category: Optional[str] = None
    highlights: List[str] = Field(default_factory=list)
    total_duration: Optional[str] = Field(None, alias="totalDuration")
    show_sale_badge: bool = Field(False, alias="showSaleBadge")
    is_active: bool = Field(True, alias="isActive")


class ToolkitUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    price: Optional[int] = Field(None, ge=0)
    original_price: Optional[int] = Field(None, ge=0, alias="originalPrice")
    cover_image_url: Optional[str] = Field(None, alias="coverImageUrl")
    video_url: Optional[str] = Field(None, alias="videoUrl")
    content_url: Optional[str] = Field(None, alias="contentUrl")
    category: Optional[str] = None
    highlights: Optional[List[str]] = None
    total_duration: Optional[str] = Field(None, alias="totalDuration")
    show_sale_badge: Optional[bool] = Field(None, alias="showSaleBadge")
    is_active: Optional[bool] = Field(None, alias="isActive")

    @field_validator("title", "description", "price", "highlights", "show_sale_badge", "is_active")
    @classmethod
    def not_null(cls, v):
        return _reject_null(v)


class ToolkitResponse(BaseModel):
    id: str
    title: str
    description: str
    price: int
    original_price: Optional[int] = None
    cover_image_url: Optional[str] = None
    video_url: Optional[str] = None
    content_url: Optional[str] = None
    category: Optional[str] = None
    highlights: List[str] = []
    total_duration: Optional[str] = None
    lesson_count: int = 0
    show_sale_badge: bool = False
    is_active: bool = True
    creator_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ContentItemCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    type: ContentItemType
    content: Optional[str] = None
    video_url: Optional[str] = Field(None, alias="videoUrl")
    order_index: int = Field(0, ge=0, alias="orderIndex")


class ContentItemUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[ContentItemType] = None
    content: Optional[str] = None
    video_url: Optional[str] = Field(None, alias="videoUrl")
    order_index: Optional[int] = Field(None, ge=0, alias="orderIndex")

    @field_validator("title", "type", "order_index")
    @classmethod
    def not_null(cls, v):
        return _reject_null(v)


class ContentItemResponse(BaseModel):
    id: str
    toolkit_id: str
    title: str
    type: str
    content: Optional[str] = None
    video_url: Optional[str] = None
    order_index: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProgressRequest(CamelModel):
    content_item_id: str = Field(..., min_length=1, alias="contentItemId")


class PurchaseRequest(CamelModel):
    coupon_code: Optional[str] = Field(None, alias="couponCode")


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class CouponCreate(CamelModel):
    code: str = Field(..., min_length=1, max_length=50)
    discount_amount: int = Field(..., ge=0, alias="discountAmount")
    max_uses: Optional[int] = Field(None, ge=1, alias="maxUses")
    max_uses_per_user: int = Field(1, ge=1, alias="maxUsesPerUser")
    is_active: bool = Field(True, alias="isActive")
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")


class CouponUpdate(CamelModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    discount_amount: Optional[int] = Field(None, ge=0, alias="discountAmount")
    max_uses: Optional[int] = Field(None, ge=1, alias="maxUses")
    max_uses_per_user: Optional[int] = Field(None, ge=1, alias="maxUsesPerUser")
    is_active: Optional[bool] = Field(None, alias="isActive")
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")

    @field_validator("code", "discount_amount", "max_uses_per_user", "is_active")
    @classmethod
    def not_null(cls, v):
        return _reject_null(v)


class CouponResponse(BaseModel):
    id: str
    code: str
    discount_amount: int
    max_uses: Optional[int] = None
    max_uses_per_user: int = 1
    current_uses: int = 0
    is_active: bool = True
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class CouponValidateRequest(CamelModel):
    code: str = Field(..., min_length=1)
    toolkit_id: str = Field(..., min_length=1, alias="toolkitId")


# ============================================================
# UNGATEKEEP SCHEMAS
# ============================================================

class UngatekeepPostCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    images: List[str] = Field(default_factory=list)
    link_url: Optional[str] = Field(None, alias="linkUrl")
    link_title: Optional[str] = Field(None, alias="linkTitle")
    link_image: Optional[str] = Field(None, alias="linkImage")
    tag: Optional[UngatekeepTag] = None
    is_pinned: bool = Field(False, alias="isPinned")
    is_published: bool = Field(False, alias="isPublished")

    @field_validator("link_url")
    @classmethod
    def link_url_http(cls, v: Optional[str]) -> Optional[str]:
        return _check_http_url(v)


class UngatekeepPostUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1)
    images: Optional[List[str]] = None
    link_url: Optional[str] = Field(None, alias="linkUrl")
    link_title: Optional[str] = Field(None, alias="linkTitle")
    link_image: Optional[str] = Field(None, alias="linkImage")
    tag: Optional[UngatekeepTag] = None
    is_pinned: Optional[bool] = Field(None, alias="isPinned")
    is_published: Optional[bool] = Field(None, alias="isPublished")

    @field_validator("title", "content", "images", "is_pinned", "is_published")
    @classmethod
    def not_null(cls, v):
        return _reject_null(v)

    @field_validator("link_url")
    @classmethod
    def link_url_http(cls, v: Optional[str]) -> Optional[str]:
        # "" clears the link, so keep it distinguishable from "not sent"
        if v is not None and v.strip() == "":
            return ""
        return _check_http_url(v)


class UngatekeepPostResponse(BaseModel):
    id: str
    title: str
    content: str
    images: List[str] = []
    link_url: Optional[str] = None
    link_title: Optional[str] = None
    link_image: Optional[str] = None
    tag: Optional[str] = None
    is_pinned: bool = False
    is_published: bool = False
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BannerResponse(BaseModel):
    id: str
    title: str
    subtitle: Optional[str] = None
    background: Optional[str] = None
    image_url: Optional[str] = None
    link: Optional[str] = None
    priority: int = 0
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ============================================================
# TASK, FEEDBACK & WAITLIST SCHEMAS
# ============================================================

class TaskCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    opportunity_link: Optional[str] = Field(None, alias="opportunityLink")


class TaskUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    completed: Optional[bool] = None
    opportunity_link: Optional[str] = Field(None, alias="opportunityLink")

    @field_validator("title", "completed")
    @classmethod
    def not_null(cls, v):
        return _reject_null(v)


class TaskResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    completed: bool = False
    opportunity_link: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FeedbackCreate(CamelModel):
    mood: int = Field(..., ge=1, le=5)
    meaning: str = Field(..., min_length=1)
    message: Optional[str] = Field(None, max_length=1000)
    path: Optional[str] = None
    user_agent: Optional[str] = Field(None, alias="userAgent")


class WaitlistCreate(BaseModel):
    email: EmailStr
    feedback: Optional[str] = Field(None, max_length=1000)


# ============================================================
# COMMON RESPONSE SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    success: bool = True
    message: str
