"""
Progress Tracker - latest snapshot per session plus a live subscriber channel
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict

from .errors import StreamDisconnect
from .models import ProgressSnapshot, ProgressStep, round_half_up

logger = logging.getLogger(__name__)

_CLOSED = object()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProgressEvent(BaseModel):
    """One event of the live progress stream"""

    model_config = ConfigDict(frozen=True)

    type: str  # connected, progress, completed, error
    data: Dict[str, Any]

    @classmethod
    def from_snapshot(cls, snapshot: ProgressSnapshot) -> "ProgressEvent":
        if snapshot.step == ProgressStep.COMPLETED:
            event_type = "completed"
        elif snapshot.step == ProgressStep.ERROR:
            event_type = "error"
        else:
            event_type = "progress"
        return cls(type=event_type, data=snapshot.model_dump(mode="json"))

    def to_sse(self) -> str:
        """Encode as a server-sent event frame"""
        return f"data: {json.dumps({'type': self.type, **self.data})}\n\n"


class Subscription:
    """Single-consumer channel for one session's progress events"""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue()

    def publish(self, event: ProgressEvent):
        if not self.closed:
            self._queue.put_nowait(event)

    def close(self):
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(_CLOSED)

    async def next_event(self, timeout: Optional[float] = None) -> Optional[ProgressEvent]:
        """Next event in emission order.

        Returns None when ``timeout`` elapses first (a keep-alive is due) and
        raises StreamDisconnect once the subscription has been closed.
        """
        try:
            item = await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
        if item is _CLOSED:
            raise StreamDisconnect(f"Progress stream for {self.session_id} closed")
        return item

    def __aiter__(self):
        return self

    async def __anext__(self) -> ProgressEvent:
        try:
            return await self.next_event()
        except StreamDisconnect:
            raise StopAsyncIteration


class ProgressTracker:
    """Holds the latest progress snapshot per session and fans it out.

    All mutation happens synchronously on the event loop, so updates for a
    session are stored and published in exactly the order they were made.
    """

    def __init__(self, stale_after: float = 300.0, cleanup_delay: float = 5.0,
                 idle_retention: float = 900.0, *,
                 clock: Optional[Callable[[], datetime]] = None):
        self.stale_after = stale_after
        self.cleanup_delay = cleanup_delay
        self.idle_retention = idle_retention
        self._clock = clock or utc_now
        self._snapshots: Dict[str, ProgressSnapshot] = {}
        self._subscribers: Dict[str, Subscription] = {}
        self._cleanup_handles: Dict[str, asyncio.TimerHandle] = {}

    def update(self, session_id: str, step: ProgressStep, progress: float,
               completed_units: int = 0, total_units: int = 0,
               message: str = "") -> ProgressSnapshot:
        """Overwrite the session snapshot and publish it to the subscriber"""
        self._purge_idle()

        snapshot = ProgressSnapshot(
            session_id=session_id,
            step=step,
            progress=max(0, min(100, round_half_up(progress))),
            completed_units=completed_units,
            total_units=total_units,
            message=message,
            timestamp=self._clock(),
        )
        self._snapshots[session_id] = snapshot
        self._cancel_cleanup(session_id)

        subscription = self._subscribers.get(session_id)
        if subscription is not None:
            subscription.publish(ProgressEvent.from_snapshot(snapshot))

        if step.is_terminal:
            self._schedule_cleanup(session_id)

        logger.debug(
            f"Progress {session_id}: {step.value} {snapshot.progress}% "
            f"({completed_units}/{total_units})"
        )
        return snapshot

    def subscribe(self, session_id: str) -> Subscription:
        """Open the live channel for a session, replacing any previous one"""
        previous = self._subscribers.pop(session_id, None)
        if previous is not None:
            logger.info(f"Replacing progress subscriber for {session_id}")
            previous.close()

        subscription = Subscription(session_id)
        self._subscribers[session_id] = subscription

        snapshot = self._snapshots.get(session_id)
        if snapshot is not None:
            subscription.publish(ProgressEvent.from_snapshot(snapshot))

        logger.info(f"Progress subscriber connected: {session_id}")
        return subscription

    def unsubscribe(self, session_id: str, subscription: Optional[Subscription] = None):
        """Drop the session's subscriber (only if it is still ``subscription``)"""
        current = self._subscribers.get(session_id)
        subscription = subscription or current
        if subscription is None:
            return
        subscription.close()
        if current is subscription:
            del self._subscribers[session_id]
            logger.info(f"Progress subscriber disconnected: {session_id}")

    def has_subscriber(self, session_id: str) -> bool:
        return session_id in self._subscribers

    def get_snapshot(self, session_id: str) -> Optional[ProgressSnapshot]:
        return self._snapshots.get(session_id)

    def get_status(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Point read of a session; None when nothing is stored"""
        snapshot = self._snapshots.get(session_id)
        if snapshot is None:
            return None

        age = (self._clock() - snapshot.timestamp).total_seconds()
        is_expired = age > self.stale_after
        return {
            "session_id": session_id,
            "is_processing": not is_expired and not snapshot.step.is_terminal,
            "progress": snapshot.progress,
            "current_step": snapshot.step.value,
            "completed_units": snapshot.completed_units,
            "total_units": snapshot.total_units,
            "message": snapshot.message,
            "last_update": snapshot.timestamp,
            "is_expired": is_expired,
        }

    def discard(self, session_id: str):
        """Forget a session and end its live stream"""
        self._snapshots.pop(session_id, None)
        self._cancel_cleanup(session_id)
        subscription = self._subscribers.pop(session_id, None)
        if subscription is not None:
            subscription.close()
        logger.debug(f"Discarded progress for {session_id}")

    def _schedule_cleanup(self, session_id: str):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to time the grace period; the idle sweep will catch it
            return
        self._cleanup_handles[session_id] = loop.call_later(
            self.cleanup_delay, self.discard, session_id
        )

    def _cancel_cleanup(self, session_id: str):
        handle = self._cleanup_handles.pop(session_id, None)
        if handle is not None:
            handle.cancel()

    def _purge_idle(self):
        now = self._clock()
        idle = [
            session_id for session_id, snapshot in self._snapshots.items()
            if (now - snapshot.timestamp).total_seconds() > self.idle_retention
        ]
        for session_id in idle:
            self.discard(session_id)

    def close(self):
        """Cancel pending cleanups and end every live stream"""
        for handle in self._cleanup_handles.values():
            handle.cancel()
        self._cleanup_handles.clear()
        for subscription in self._subscribers.values():
            subscription.close()
        self._subscribers.clear()
        self._snapshots.clear()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "tracked_sessions": len(self._snapshots),
            "active_subscribers": len(self._subscribers),
            "pending_cleanups": len(self._cleanup_handles),
        }
