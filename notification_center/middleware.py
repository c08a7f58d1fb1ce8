"""Notification middleware pipeline.

Middleware hooks run at three points of a dispatch:

- before_send(notification) -> Notification | None
    Runs in registration order. Each hook receives the current notification
    and returns it (possibly transformed) or None to filter it; None stops
    the chain and the dispatch is aborted without persisting anything.
- after_send(notification)
    Runs for every middleware, in registration order, once the notification
    has been delivered or enqueued.
- on_error(error, notification)
    Runs for every middleware, in registration order, when the dispatch fails.

A hook's own exception is not caught: it aborts the remaining hooks and the
surrounding dispatch. Hooks may be plain functions or coroutines.

Usage:
    class RateLimitMiddleware(NotificationMiddleware):
        name = "rate-limit"

        async def before_send(self, notification):
            if await over_limit(notification.user_id):
                return None
            return notification

    pipeline = MiddlewarePipeline([RateLimitMiddleware()])

    # Or from plain callables
    pipeline.use(NotificationMiddleware("audit", after_send=record_audit))
"""

import inspect
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence, Tuple, Union

from notification_center.logging import get_module_logger
from notification_center.models import Notification

logger = get_module_logger()

BeforeSendHook = Callable[
    [Notification], Union[Optional[Notification], Awaitable[Optional[Notification]]]
]
AfterSendHook = Callable[[Notification], Union[None, Awaitable[None]]]
ErrorHook = Callable[[BaseException, Notification], Union[None, Awaitable[None]]]


async def _call(hook: Callable[..., Any], *args: Any) -> Any:
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class NotificationMiddleware:
    """A named set of optional lifecycle hooks.

    Hooks can be provided either by overriding ``before_send``,
    ``after_send`` or ``on_error`` in a subclass, or as callables passed to
    the constructor. A hook left as None is simply skipped by the pipeline.
    """

    name: str = "middleware"
    before_send: Optional[BeforeSendHook] = None
    after_send: Optional[AfterSendHook] = None
    on_error: Optional[ErrorHook] = None

    def __init__(
        self,
        name: Optional[str] = None,
        before_send: Optional[BeforeSendHook] = None,
        after_send: Optional[AfterSendHook] = None,
        on_error: Optional[ErrorHook] = None,
    ):
        if name is not None:
            self.name = name
        if before_send is not None:
            self.before_send = before_send
        if after_send is not None:
            self.after_send = after_send
        if on_error is not None:
            self.on_error = on_error

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


MiddlewareChain = Tuple[NotificationMiddleware, ...]


class MiddlewarePipeline:
    """Ordered, mutable list of middleware.

    ``use`` and ``remove`` only affect dispatches that take their snapshot
    afterwards; a dispatch already in flight keeps the chain it started with.
    """

    def __init__(self, middleware: Optional[Iterable[NotificationMiddleware]] = None):
        self._middleware: List[NotificationMiddleware] = list(middleware or [])

    def use(self, middleware: NotificationMiddleware) -> None:
        """Append a middleware to the end of the chain."""
        self._middleware.append(middleware)
        logger.debug(
            "registered_middleware",
            middleware=middleware.name,
            chain_length=len(self._middleware),
        )

    def remove(self, name: str) -> int:
        """Remove every middleware registered under ``name``.

        Returns:
            Number of middleware removed
        """
        before = len(self._middleware)
        self._middleware = [m for m in self._middleware if m.name != name]
        removed = before - len(self._middleware)
        logger.debug("removed_middleware", middleware=name, removed=removed)
        return removed

    @property
    def names(self) -> List[str]:
        return [m.name for m in self._middleware]

    def snapshot(self) -> MiddlewareChain:
        """Freeze the current chain for one dispatch."""
        return tuple(self._middleware)

    def __len__(self) -> int:
        return len(self._middleware)

    async def run_before_send(
        self,
        notification: Notification,
        chain: Optional[Sequence[NotificationMiddleware]] = None,
    ) -> Tuple[Optional[Notification], Optional[str]]:
        """Run before_send hooks in order until one filters the notification.

        Returns:
            (notification, None) when every hook passed it on, or
            (None, middleware_name) when a hook returned None
        """
        current = notification
        for middleware in self.snapshot() if chain is None else chain:
            hook = middleware.before_send
            if hook is None:
                continue
            current = await _call(hook, current)
            if current is None:
                logger.info(
                    "notification_filtered_by_middleware",
                    middleware=middleware.name,
                    notification_id=notification.id,
                )
                return None, middleware.name
        return current, None

    async def run_after_send(
        self,
        notification: Notification,
        chain: Optional[Sequence[NotificationMiddleware]] = None,
    ) -> None:
        """Run every after_send hook in registration order."""
        for middleware in self.snapshot() if chain is None else chain:
            if middleware.after_send is not None:
                await _call(middleware.after_send, notification)

    async def run_on_error(
        self,
        error: BaseException,
        notification: Notification,
        chain: Optional[Sequence[NotificationMiddleware]] = None,
    ) -> None:
        """Run every on_error hook in registration order."""
        for middleware in self.snapshot() if chain is None else chain:
            if middleware.on_error is not None:
                await _call(middleware.on_error, error, notification)
