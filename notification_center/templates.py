"""Notification templates and the template resolver.

A template is a reusable notification shape parameterized by caller data.
Titles and bodies are either literal strings or pure functions of
``NotificationInput.data``.

Usage:
    registry = TemplateRegistry()
    registry.register(
        NotificationTemplate(
            id="new-comment",
            type="comment",
            defaults=TemplateDefaults(
                title=lambda data: f"{data['author']} commented on your post",
                body=lambda data: data["text"],
                channels=["inapp", "push"],
            ),
        )
    )

    notification = registry.resolve(
        NotificationInput(
            template="new-comment",
            user_id="user:123",
            data={"author": "Alice", "text": "Great post!"},
        )
    )
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from notification_center.errors import TemplateNotFoundError
from notification_center.logging import get_module_logger
from notification_center.models import (
    Notification,
    NotificationInput,
    NotificationPriority,
    utc_now,
)

logger = get_module_logger()

TemplateText = Union[str, Callable[[Dict[str, Any]], str]]


def render(value: TemplateText, data: Dict[str, Any]) -> str:
    """Render a template title/body against the caller's data."""
    if callable(value):
        return value(data)
    return value


class TemplateDefaults(BaseModel):
    """Default values a template contributes to a notification.

    Attributes:
        title: Literal title or function of the input data
        body: Literal body or function of the input data
        channels: Channels used when the input gives none
        priority: Default priority
        category: Default category
        expires_in: Relative expiry; expires_at = now + expires_in
    """

    title: TemplateText
    body: TemplateText
    channels: List[str] = Field(..., min_length=1)
    priority: NotificationPriority = NotificationPriority.NORMAL
    category: Optional[str] = None
    expires_in: Optional[timedelta] = None


class NotificationTemplate(BaseModel):
    """A registered notification template."""

    id: str
    type: str
    defaults: TemplateDefaults


def _explicit_or(value, default):
    return default if value is None else value


def build_from_template(
    template: NotificationTemplate,
    notification_input: NotificationInput,
    now: Optional[datetime] = None,
) -> Notification:
    """Merge template defaults with per-call overrides.

    Each explicit field of the input overrides the corresponding default
    individually; only None means "not supplied", so "" overrides too.
    An empty ``channels`` list falls back to the template's channels (the
    two lists are never merged). ``expires_at`` falls back to
    ``now + expires_in`` when the input gives none.

    Args:
        template: Template to apply
        notification_input: Caller request referencing the template
        now: Reference time for the relative expiry (default: utc_now())

    Returns:
        A new PENDING Notification
    """
    defaults = template.defaults
    now = now or utc_now()
    data = notification_input.data

    expires_at = notification_input.expires_at
    if expires_at is None and defaults.expires_in is not None:
        expires_at = now + defaults.expires_in

    title = notification_input.title
    if title is None:
        title = render(defaults.title, data)
    body = notification_input.body
    if body is None:
        body = render(defaults.body, data)

    return Notification(
        type=_explicit_or(notification_input.type, template.type),
        title=title,
        body=body,
        data=data,
        user_id=notification_input.user_id,
        group_id=notification_input.group_id,
        priority=_explicit_or(notification_input.priority, defaults.priority),
        category=_explicit_or(notification_input.category, defaults.category),
        scheduled_for=notification_input.scheduled_for,
        expires_at=expires_at,
        channels=notification_input.channels or list(defaults.channels),
        actions=notification_input.actions,
        created_at=now,
    )


def build_direct(
    notification_input: NotificationInput, now: Optional[datetime] = None
) -> Notification:
    """Map an input that references no template straight onto a Notification."""
    return Notification(
        type=notification_input.type,
        title=notification_input.title,
        body=notification_input.body,
        data=notification_input.data,
        user_id=notification_input.user_id,
        group_id=notification_input.group_id,
        priority=notification_input.priority or NotificationPriority.NORMAL,
        category=notification_input.category,
        scheduled_for=notification_input.scheduled_for,
        expires_at=notification_input.expires_at,
        channels=notification_input.channels,
        actions=notification_input.actions,
        created_at=now or utc_now(),
    )


class TemplateRegistry:
    """In-process registry of notification templates keyed by id."""

    def __init__(self) -> None:
        self._templates: Dict[str, NotificationTemplate] = {}

    def register(self, template: NotificationTemplate) -> None:
        """Register a template, replacing any template with the same id."""
        replaced = template.id in self._templates
        self._templates[template.id] = template
        logger.debug(
            "registered_notification_template",
            template_id=template.id,
            template_type=template.type,
            replaced=replaced,
        )

    def get(self, template_id: str) -> Optional[NotificationTemplate]:
        return self._templates.get(template_id)

    def unregister(self, template_id: str) -> None:
        self._templates.pop(template_id, None)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def ids(self) -> List[str]:
        return list(self._templates.keys())

    def resolve(
        self, notification_input: NotificationInput, now: Optional[datetime] = None
    ) -> Notification:
        """Build a Notification from an input, applying its template if any.

        Raises:
            TemplateNotFoundError: The input references an unregistered template
            pydantic.ValidationError: The resulting notification is invalid
                (e.g. no channels, missing title without a template)
        """
        if not notification_input.template:
            return build_direct(notification_input, now)

        template = self._templates.get(notification_input.template)
        if template is None:
            logger.warning(
                "notification_template_not_found",
                template_id=notification_input.template,
                user_id=notification_input.user_id,
            )
            raise TemplateNotFoundError(notification_input.template)

        return build_from_template(template, notification_input, now)
