"""Per-request cancellation tokens and their link to request tasks.

A CancellationToken is a small, transport-agnostic object: handlers query
it and subscribe one-shot listeners; the transport side cancels it. The
InFlightRequests tracker is the asyncio half: it runs a request in a child
task, and when the task awaiting the response is cancelled (the peer sent a
cancel notification or its connection went away) it cancels the token and
leaves the child to resolve on its own.

Example:
    >>> async def handler(token: CancellationToken) -> str:
    ...     if token.is_cancelled:
    ...         return "cancelled"
    ...     sub = token.on_cancel(job.cancel)
    ...     try:
    ...         return await job.result()
    ...     finally:
    ...         sub.dispose()
    >>>
    >>> inflight = InFlightRequests()
    >>> await inflight.run(handler)
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from toolhost.runtime.observability import get_logger

T = TypeVar("T")

log = get_logger("toolhost.cancellation")

_ids = itertools.count(1)


@dataclass(slots=True, eq=False)
class Subscription:
    """Handle returned by CancellationToken.on_cancel. dispose() is idempotent."""

    _token: CancellationToken | None
    _callback: Callable[[], object]

    @property
    def active(self) -> bool:
        return self._token is not None

    def dispose(self) -> None:
        if self._token is not None:
            self._token._remove(self)
            self._token = None

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *_: object) -> None:
        self.dispose()


@dataclass(slots=True, eq=False)
class CancellationToken:
    """Cancellation signal for exactly one request.

    - `is_cancelled` answers "has cancellation been requested"
    - `on_cancel(fn)` registers a listener that fires once, when cancel() is
      first called; subscribing to an already cancelled token fires at once
    - `cancel()` is idempotent

    Listener exceptions are logged and never propagate into cancel().
    """

    request_id: int = field(default_factory=lambda: next(_ids))
    _cancelled: bool = field(default=False, repr=False)
    _subscriptions: list[Subscription] = field(default_factory=list, repr=False)

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def listener_count(self) -> int:
        return len(self._subscriptions)

    def on_cancel(self, callback: Callable[[], object]) -> Subscription:
        """Subscribe a one-shot listener. Dispose the returned subscription when done."""
        if self._cancelled:
            _invoke(callback, self.request_id)
            return Subscription(None, callback)
        sub = Subscription(self, callback)
        self._subscriptions.append(sub)
        return sub

    def cancel(self) -> bool:
        """Request cancellation. Returns False if already cancelled."""
        if self._cancelled:
            return False
        self._cancelled = True
        subs, self._subscriptions = self._subscriptions, []
        for sub in subs:
            sub._token = None
            _invoke(sub._callback, self.request_id)
        return True

    def _remove(self, sub: Subscription) -> None:
        try:
            self._subscriptions.remove(sub)
        except ValueError:
            pass


def _invoke(callback: Callable[[], object], request_id: int) -> None:
    try:
        callback()
    except Exception as e:  # noqa: BLE001 - listeners never break cancel()
        log.error("cancellation listener failed", request_id=request_id, error=str(e))


class InFlightRequests:
    """Runs requests as child tasks tied to a fresh CancellationToken each.

    Child tasks are kept referenced until they finish, so a request abandoned
    by its caller still resolves (and its result is retrieved) in the
    background.
    """

    __slots__ = ("_tasks",)

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[object]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    async def run(self, fn: Callable[[CancellationToken], Awaitable[T]]) -> T:
        """Await ``fn(token)``; if this await is cancelled, cancel the token and re-raise."""
        token = CancellationToken()
        task: asyncio.Task[T] = asyncio.ensure_future(fn(token))
        self._tasks.add(task)  # type: ignore[arg-type]
        task.add_done_callback(self._finished)
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.done():
                log.info("request cancelled while in flight", request_id=token.request_id)
            token.cancel()
            raise

    def _finished(self, task: asyncio.Task[object]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and (exc := task.exception()) is not None:
            log.error("request task failed", error=str(exc))

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for background requests to finish (shutdown and tests)."""
        if self._tasks:
            await asyncio.wait(set(self._tasks), timeout=timeout)
