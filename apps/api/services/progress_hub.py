"""Upload progress fan-out to server-sent-event listeners."""

import asyncio
import json
import logging
import threading
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass

from services.encoding_models import ProgressSink

logger = logging.getLogger(__name__)


@dataclass
class _Subscription:
    sink: ProgressSink
    on_complete: Callable[[], None] | None = None


class ProgressHub:
    """
    Registry of progress sinks keyed by original upload filename.

    Features:
    - One sink per key; a later subscription replaces the earlier one
    - Publishing to a key without a subscriber is a no-op
    - ``complete`` marks the end of a job; a 100% value alone does not,
      since a failed attempt may reach 100 before its fallback starts
    - Safe to call from the encode path and from listener connect/disconnect
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, _Subscription] = {}
        self._lock = threading.Lock()

    def subscribe(
        self,
        job_key: str,
        sink: ProgressSink,
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        """Register a sink for a key, replacing any existing one."""
        with self._lock:
            replaced = job_key in self._subscriptions
            self._subscriptions[job_key] = _Subscription(sink, on_complete)
        if replaced:
            logger.debug("Replaced progress subscriber for %s", job_key)

    def unsubscribe(self, job_key: str, sink: ProgressSink | None = None) -> bool:
        """
        Remove the sink for a key.

        Args:
            job_key: Subscription key.
            sink: If given, only remove when it is still the registered sink,
                so a stale listener closing cannot drop its replacement.

        Returns:
            True if a sink was removed.
        """
        with self._lock:
            current = self._subscriptions.get(job_key)
            if current is None:
                return False
            if sink is not None and current.sink is not sink:
                return False
            del self._subscriptions[job_key]
            return True

    def is_subscribed(self, job_key: str) -> bool:
        with self._lock:
            return job_key in self._subscriptions

    def publish(self, job_key: str, percentage: float) -> bool:
        """
        Forward a percentage to the key's current sink.

        Returns:
            True if a sink received it.
        """
        with self._lock:
            subscription = self._subscriptions.get(job_key)
        if subscription is None:
            return False

        try:
            subscription.sink(percentage)
        except Exception as e:
            logger.warning("Progress sink failed for %s: %s", job_key, e)
            self.unsubscribe(job_key, subscription.sink)
            return False
        return True

    def complete(self, job_key: str) -> bool:
        """
        Send the final 100% for a job and tell the listener it is over.

        Returns:
            True if a listener was notified.
        """
        if not self.publish(job_key, 100):
            return False

        with self._lock:
            subscription = self._subscriptions.get(job_key)
        if subscription is not None and subscription.on_complete is not None:
            subscription.on_complete()
        return True

    def create_progress_callback(self, job_key: str) -> ProgressSink:
        """Create a callback that publishes to whichever sink is registered at call time."""

        def callback(percentage: float) -> None:
            self.publish(job_key, percentage)

        return callback


class ProgressStream:
    """
    Queue-backed sink feeding one event-stream response.

    Calls may come from any thread; delivery is scheduled on the loop the
    stream was created in and never blocks the caller.
    """

    def __init__(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[float | None] = asyncio.Queue()

    def __call__(self, percentage: float) -> None:
        self._loop.call_soon_threadsafe(self._queue.put_nowait, percentage)

    def close(self) -> None:
        """End the event stream once queued events are sent."""
        self._loop.call_soon_threadsafe(self._queue.put_nowait, None)

    async def events(self) -> AsyncGenerator[str, None]:
        """Yield ``data:`` frames until the stream is closed."""
        while True:
            percentage = await self._queue.get()
            if percentage is None:
                break
            yield format_progress_event(percentage)


def format_progress_event(percentage: float) -> str:
    """Format one server-sent event carrying ``{"progress": <pct>}``."""
    return f"data: {json.dumps({'progress': percentage})}\n\n"
