"""Notification engine core models.

Storage-, transport- and queue-agnostic models shared by every component.
Callers describe what to send (NotificationInput), the engine builds and owns
the Notification, transports report DeliveryReceipts.

Uses Pydantic BaseModel for:
- Runtime input validation with readable errors
- Enum coercion from plain strings ("high" -> NotificationPriority.HIGH)
- Safe deep copies for storage adapters (model_copy)

Channels are plain strings. Well-known values are "inapp", "push", "email",
"sms" and "webhook", but any name a transport registers is valid.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def generate_notification_id() -> str:
    return f"notif_{uuid4().hex}"


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so they compare with engine timestamps."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class NotificationPriority(Enum):
    """Notification priority levels.

    ``rank`` orders priorities for sorting (URGENT highest).
    """

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    NotificationPriority.LOW: 0,
    NotificationPriority.NORMAL: 1,
    NotificationPriority.HIGH: 2,
    NotificationPriority.URGENT: 3,
}


class NotificationStatus(Enum):
    """Notification lifecycle status.

    PENDING at build time, SENT/DELIVERED/FAILED after one delivery pass,
    READ only through an explicit mark-as-read. There is no way out of READ.
    """

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    READ = "read"


class DeliveryStatus(Enum):
    """Outcome of one delivery attempt on one channel."""

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    BOUNCED = "bounced"


class ChannelFrequency(Enum):
    REALTIME = "realtime"
    BATCHED = "batched"
    DIGEST = "digest"


class DigestFrequency(Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


class NotificationEventType(Enum):
    """Lifecycle events published to event subscribers."""

    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


class NotificationAction(BaseModel):
    """Interactive action attached to a notification (button, link)."""

    id: str
    label: str
    url: Optional[str] = None
    handler: Optional[str] = None


class Notification(BaseModel):
    """A notification owned by one user and delivered over one or more channels.

    Built once by the dispatcher. After that it is only mutated by
    middleware (before first persistence), by the delivery coordinator
    (``status``) and by read operations (``status``/``read_at``).

    Attributes:
        id: Unique identifier, generated at build time (immutable)
        type: Application-level kind ("comment", "like", "system", ...)
        title: Short headline
        body: Message body
        data: Free-form payload
        user_id: Owner of the notification
        group_id: Optional grouping key for batch notifications
        priority: NotificationPriority (default: NORMAL)
        category: Optional category used by preference allow-lists and filters
        status: NotificationStatus (default: PENDING)
        created_at: Creation time (immutable)
        read_at: When the notification was first marked as read
        scheduled_for: Requested delivery time
        expires_at: After this time the cleanup sweep may delete it
        channels: Ordered, non-empty list of channel names
        actions: Interactive actions

    Example:
        notification = Notification(
            type="comment",
            title="Alice commented on your post",
            body="Great post!",
            user_id="user:123",
            channels=["inapp", "push"],
        )
    """

    id: str = Field(default_factory=generate_notification_id, frozen=True)
    type: str
    title: str
    body: str
    data: Dict[str, Any] = Field(default_factory=dict)
    user_id: str
    group_id: Optional[str] = None
    priority: NotificationPriority = NotificationPriority.NORMAL
    category: Optional[str] = None
    status: NotificationStatus = NotificationStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now, frozen=True)
    read_at: Optional[datetime] = None
    scheduled_for: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    channels: List[str] = Field(..., min_length=1)
    actions: List[NotificationAction] = Field(default_factory=list)

    @field_validator("channels")
    @classmethod
    def validate_channels(cls, v: List[str]) -> List[str]:
        """Drop duplicate channel names while keeping their first position."""
        if any(not channel for channel in v):
            raise ValueError("Channel names cannot be empty")
        return list(dict.fromkeys(v))

    @field_validator("created_at", "read_at", "scheduled_for", "expires_at")
    @classmethod
    def validate_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def is_read(self) -> bool:
        return self.status == NotificationStatus.READ

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check whether ``expires_at`` lies in the past."""
        if self.expires_at is None:
            return False
        return self.expires_at < (now or utc_now())


class NotificationInput(BaseModel):
    """Caller-facing request to notify a user.

    When ``template`` is set, every explicit field overrides the template's
    default for that field; ``channels`` falls back to the template list when
    empty. Without a template, ``type``, ``title``, ``body`` and a non-empty
    ``channels`` list are required (enforced when the Notification is built).
    """

    type: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None
    user_id: str
    group_id: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    priority: Optional[NotificationPriority] = None
    category: Optional[str] = None
    channels: List[str] = Field(default_factory=list)
    scheduled_for: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    actions: List[NotificationAction] = Field(default_factory=list)
    template: Optional[str] = None

    @field_validator("scheduled_for", "expires_at")
    @classmethod
    def validate_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


SortField = Literal["created_at", "priority", "read_at"]
SortOrder = Literal["asc", "desc"]


class NotificationFilters(BaseModel):
    """Query filters for ``find_by_user``.

    Scalar-or-list filters match when the notification's value is one of the
    given values. Results are sorted by ``created_at`` descending by default.
    """

    status: Union[NotificationStatus, List[NotificationStatus], None] = None
    type: Union[str, List[str], None] = None
    category: Union[str, List[str], None] = None
    channels: Union[str, List[str], None] = None
    priority: Union[NotificationPriority, List[NotificationPriority], None] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: Optional[int] = Field(default=None, ge=0)
    offset: Optional[int] = Field(default=None, ge=0)
    sort_by: SortField = "created_at"
    sort_order: SortOrder = "desc"

    @field_validator("start_date", "end_date")
    @classmethod
    def validate_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class QuietHours(BaseModel):
    """Daily window during which a channel must not deliver.

    ``start`` and ``end`` are "HH:MM" wall-clock times. A window whose start
    is later than its end wraps past midnight (e.g. 22:00 - 08:00).
    """

    start: str
    end: str
    timezone: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def validate_clock_time(cls, v: str) -> str:
        """Ensure the value is a valid HH:MM time."""
        parts = v.split(":")
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise ValueError(f"Quiet hours must be in HH:MM format: {v}")
        hour, minute = int(parts[0]), int(parts[1])
        if hour > 23 or minute > 59:
            raise ValueError(f"Quiet hours out of range: {v}")
        return v

    @staticmethod
    def _minutes(value: str) -> int:
        hour, minute = value.split(":")
        return int(hour) * 60 + int(minute)

    @property
    def start_minutes(self) -> int:
        """Minutes after midnight at which the window opens."""
        return self._minutes(self.start)

    @property
    def end_minutes(self) -> int:
        """Minutes after midnight at which the window closes."""
        return self._minutes(self.end)


class ChannelPreferences(BaseModel):
    """Per-channel user preferences."""

    enabled: bool = True
    categories: Optional[List[str]] = None
    quiet_hours: Optional[QuietHours] = None
    frequency: Optional[ChannelFrequency] = None


class NotificationPreferences(BaseModel):
    """A user's notification preferences.

    Attributes:
        user_id: Owner of the preferences
        channels: Channel name -> ChannelPreferences
        global_mute: When True no channel may deliver
        updated_at: Last update time
        data: Open bag for application-specific settings
    """

    user_id: str
    channels: Dict[str, ChannelPreferences] = Field(default_factory=dict)
    global_mute: bool = False
    updated_at: Optional[datetime] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class DeliveryReceipt(BaseModel):
    """Result of one delivery attempt for one (notification, channel).

    Receipts are append-only facts: a retry produces a new receipt rather
    than updating an existing one, so the model is frozen.

    Attributes:
        notification_id: Notification the attempt belongs to
        channel: Channel name used
        status: DeliveryStatus of the attempt
        attempts: Attempt number for this channel (1 for the first delivery)
        last_attempt: When the attempt was made
        next_retry: Optional time a transport suggests retrying at
        error: Error message for failed attempts
        metadata: Channel-specific data (provider message id, ...)
    """

    model_config = ConfigDict(frozen=True)

    notification_id: str
    channel: str
    status: DeliveryStatus
    attempts: int = Field(default=1, ge=1)
    last_attempt: datetime = Field(default_factory=utc_now)
    next_retry: Optional[datetime] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status in (DeliveryStatus.SENT, DeliveryStatus.DELIVERED)


class DigestConfig(BaseModel):
    """A user's preference to batch notifications into periodic digests."""

    user_id: str
    frequency: DigestFrequency
    channels: List[str] = Field(default_factory=list)
    categories: Optional[List[str]] = None
    enabled: bool = True


class NotificationEvent(BaseModel):
    """Lifecycle event published to event subscribers."""

    type: NotificationEventType
    notification: Notification
    timestamp: datetime = Field(default_factory=utc_now)


class NotificationStats(BaseModel):
    """Per-user notification counters keyed by enum value / channel name."""

    total: int = 0
    unread: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_channel: Dict[str, int] = Field(default_factory=dict)
    by_priority: Dict[str, int] = Field(default_factory=dict)
