"""Tests for cancellation tokens and in-flight request tracking."""

from __future__ import annotations

import asyncio

import pytest

from toolhost.runtime import CancellationToken, InFlightRequests
from toolhost.runtime.observability import CaptureRenderer


class TestCancellationToken:
    def test_starts_uncancelled(self) -> None:
        assert not CancellationToken().is_cancelled

    def test_cancel_is_idempotent(self) -> None:
        token = CancellationToken()
        assert token.cancel() is True
        assert token.cancel() is False
        assert token.is_cancelled

    def test_listener_fires_once(self) -> None:
        token = CancellationToken()
        fired: list[int] = []
        token.on_cancel(lambda: fired.append(1))
        token.cancel()
        token.cancel()
        assert fired == [1]
        assert token.listener_count == 0

    def test_subscribe_after_cancel_fires_immediately(self) -> None:
        token = CancellationToken()
        token.cancel()
        fired: list[int] = []
        sub = token.on_cancel(lambda: fired.append(1))
        assert fired == [1]
        assert not sub.active

    def test_disposed_listener_never_fires(self) -> None:
        token = CancellationToken()
        fired: list[int] = []
        sub = token.on_cancel(lambda: fired.append(1))
        sub.dispose()
        sub.dispose()
        token.cancel()
        assert fired == []
        assert token.listener_count == 0

    def test_subscription_context_manager(self) -> None:
        token = CancellationToken()
        with token.on_cancel(lambda: None):
            assert token.listener_count == 1
        assert token.listener_count == 0

    def test_listener_error_is_logged_not_raised(self, captured_logs: CaptureRenderer) -> None:
        token = CancellationToken()
        fired: list[int] = []

        def broken() -> None:
            raise RuntimeError("nope")

        token.on_cancel(broken)
        token.on_cancel(lambda: fired.append(1))
        assert token.cancel() is True
        assert fired == [1]
        assert "cancellation listener failed" in captured_logs.events("error")

    def test_tokens_are_independent(self) -> None:
        first, second = CancellationToken(), CancellationToken()
        fired: list[str] = []
        first.on_cancel(lambda: fired.append("first"))
        second.on_cancel(lambda: fired.append("second"))
        first.cancel()
        assert fired == ["first"]
        assert not second.is_cancelled
        assert first.request_id != second.request_id


class TestInFlightRequests:
    @pytest.mark.asyncio
    async def test_returns_result(self) -> None:
        inflight = InFlightRequests()

        async def work(token: CancellationToken) -> str:
            return "done"

        assert await inflight.run(work) == "done"
        await inflight.drain(1)
        assert len(inflight) == 0

    @pytest.mark.asyncio
    async def test_caller_cancellation_cancels_token(self) -> None:
        inflight = InFlightRequests()
        started, release = asyncio.Event(), asyncio.Event()
        seen: dict[str, CancellationToken] = {}

        async def work(token: CancellationToken) -> bool:
            seen["token"] = token
            started.set()
            await release.wait()
            return token.is_cancelled

        caller = asyncio.create_task(inflight.run(work))
        await started.wait()
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        assert seen["token"].is_cancelled
        assert len(inflight) == 1  # the handler still resolves in the background
        release.set()
        await inflight.drain(1)
        assert len(inflight) == 0

    @pytest.mark.asyncio
    async def test_concurrent_requests_get_distinct_tokens(self) -> None:
        inflight = InFlightRequests()
        tokens: list[CancellationToken] = []
        gate = asyncio.Event()

        async def work(token: CancellationToken) -> bool:
            tokens.append(token)
            await gate.wait()
            return token.is_cancelled

        first = asyncio.create_task(inflight.run(work))
        second = asyncio.create_task(inflight.run(work))
        while len(tokens) < 2:
            await asyncio.sleep(0)
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first
        gate.set()
        assert await second is False
        assert tokens[0] is not tokens[1]
        assert tokens[0].is_cancelled and not tokens[1].is_cancelled
        await inflight.drain(1)
