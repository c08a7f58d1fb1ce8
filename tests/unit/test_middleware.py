"""Unit tests for the middleware pipeline."""

from unittest.mock import MagicMock

import pytest

from notification_center.middleware import MiddlewarePipeline, NotificationMiddleware
from tests.factories.notifications import make_notification


class UppercaseTitle(NotificationMiddleware):
    name = "uppercase"

    def before_send(self, notification):
        notification.title = notification.title.upper()
        return notification


class AsyncTagger(NotificationMiddleware):
    name = "tagger"

    async def before_send(self, notification):
        notification.data["tagged"] = True
        return notification


@pytest.mark.unit
class TestNotificationMiddleware:
    def test_constructor_hooks(self):
        hook = MagicMock()

        middleware = NotificationMiddleware("audit", after_send=hook)

        assert middleware.name == "audit"
        assert middleware.after_send is hook
        assert middleware.before_send is None
        assert middleware.on_error is None

    def test_subclass_hooks(self):
        middleware = UppercaseTitle()

        assert middleware.name == "uppercase"
        assert middleware.before_send is not None
        assert middleware.after_send is None


@pytest.mark.unit
class TestBeforeSend:
    """Tests for before_send chaining and filtering."""

    async def test_runs_in_order_with_sync_and_async_hooks(self):
        pipeline = MiddlewarePipeline([UppercaseTitle(), AsyncTagger()])
        notification = make_notification(title="hello")

        result, filtered_by = await pipeline.run_before_send(notification)

        assert filtered_by is None
        assert result.title == "HELLO"
        assert result.data["tagged"] is True

    async def test_replacement_notification_passed_on(self):
        replacement = make_notification(title="replaced")
        seen = []

        pipeline = MiddlewarePipeline(
            [
                NotificationMiddleware("swap", before_send=lambda n: replacement),
                NotificationMiddleware(
                    "observe", before_send=lambda n: seen.append(n) or n
                ),
            ]
        )

        result, _ = await pipeline.run_before_send(make_notification())

        assert result is replacement
        assert seen == [replacement]

    async def test_none_short_circuits(self):
        later = MagicMock(side_effect=lambda n: n)
        pipeline = MiddlewarePipeline(
            [
                NotificationMiddleware("drop", before_send=lambda n: None),
                NotificationMiddleware("later", before_send=later),
            ]
        )

        result, filtered_by = await pipeline.run_before_send(make_notification())

        assert result is None
        assert filtered_by == "drop"
        later.assert_not_called()

    async def test_hook_exception_propagates(self):
        def explode(notification):
            raise RuntimeError("boom")

        later = MagicMock(side_effect=lambda n: n)
        pipeline = MiddlewarePipeline(
            [
                NotificationMiddleware("explode", before_send=explode),
                NotificationMiddleware("later", before_send=later),
            ]
        )

        with pytest.raises(RuntimeError, match="boom"):
            await pipeline.run_before_send(make_notification())
        later.assert_not_called()


@pytest.mark.unit
class TestAfterSendAndOnError:
    async def test_after_send_runs_every_hook_in_order(self):
        calls = []
        pipeline = MiddlewarePipeline(
            [
                NotificationMiddleware("a", after_send=lambda n: calls.append("a")),
                NotificationMiddleware("no-hooks"),
                NotificationMiddleware("b", after_send=lambda n: calls.append("b")),
            ]
        )

        await pipeline.run_after_send(make_notification())

        assert calls == ["a", "b"]

    async def test_on_error_receives_error_and_notification(self):
        received = []

        async def record(error, notification):
            received.append((error, notification))

        pipeline = MiddlewarePipeline([NotificationMiddleware("err", on_error=record)])
        notification = make_notification()
        error = ValueError("storage down")

        await pipeline.run_on_error(error, notification)

        assert received == [(error, notification)]


@pytest.mark.unit
class TestPipelineManagement:
    def test_use_and_remove_by_name(self):
        pipeline = MiddlewarePipeline()
        pipeline.use(NotificationMiddleware("a"))
        pipeline.use(NotificationMiddleware("b"))
        pipeline.use(NotificationMiddleware("a"))

        removed = pipeline.remove("a")

        assert removed == 2
        assert pipeline.names == ["b"]
        assert len(pipeline) == 1

    def test_remove_unknown_name(self):
        pipeline = MiddlewarePipeline([NotificationMiddleware("a")])

        assert pipeline.remove("zzz") == 0
        assert pipeline.names == ["a"]

    async def test_snapshot_unaffected_by_later_removal(self):
        calls = []
        pipeline = MiddlewarePipeline(
            [NotificationMiddleware("a", after_send=lambda n: calls.append("a"))]
        )
        chain = pipeline.snapshot()

        pipeline.remove("a")
        await pipeline.run_after_send(make_notification(), chain)

        assert calls == ["a"]
        assert pipeline.snapshot() == ()
