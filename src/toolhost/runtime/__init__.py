"""Runtime - request dispatch, cancellation and observability."""

from .cancellation import CancellationToken, InFlightRequests, Subscription
from .dispatcher import Dispatcher

__all__ = ["CancellationToken", "Dispatcher", "InFlightRequests", "Subscription"]
