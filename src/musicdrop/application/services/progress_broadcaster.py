"""Live, best-effort progress messages per session.

Hey future me - progress is ADVISORY. Nothing may ever block on it or make a decision
based on it: send() never awaits, and a full or unknown channel silently drops the
message. The job row in the database is the source of truth, not this.

Lifecycle of a session:
1. register(session_id): by the pipeline when a job starts, or by the SSE endpoint if
   the browser connects first. Both get the same queue.
   A session belongs to the user that first registers it with an owner. Another user
   registering or streaming the same id gets AuthorizationError.
2. send(...) any number of times, send(..., final=True) once at the end.
3. The SSE stream ends after the final message and unregisters right away. If nobody is
   listening, schedule_unregister() removes the entry a couple of seconds later.

Everything runs on the event loop, so reading the dict in send() without the lock is
safe; the lock only serializes register/unregister.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass

from musicdrop.domain.exceptions import AuthorizationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressMessage:
    """One progress line."""

    text: str
    final: bool = False


class ProgressBroadcaster:
    """Maps session ids to bounded message queues."""

    def __init__(
        self,
        capacity: int = 100,
        teardown_delay: float = 2.0,
        poll_interval: float = 1.0,
    ) -> None:
        """Initialize broadcaster.

        Args:
            capacity: Max buffered messages per session
            teardown_delay: Default delay for schedule_unregister
            poll_interval: How often an idle stream checks whether it was unregistered
        """
        self._capacity = capacity
        self._teardown_delay = teardown_delay
        self._poll_interval = poll_interval
        self._sessions: dict[str, asyncio.Queue[ProgressMessage]] = {}
        self._owners: dict[str, str] = {}
        self._lock = asyncio.Lock()
        self._teardown_tasks: set[asyncio.Task[None]] = set()

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    @property
    def active_sessions(self) -> int:
        """Number of registered sessions."""
        return len(self._sessions)

    async def register(
        self, session_id: str, owner: str | None = None
    ) -> asyncio.Queue[ProgressMessage]:
        """Create the session's queue, or return the existing one.

        Args:
            session_id: Client-chosen session id
            owner: User id to bind the session to. None leaves the binding as it is.

        Raises:
            AuthorizationError: The session is bound to a different user
        """
        async with self._lock:
            bound_to = self._owners.get(session_id)
            if owner is not None and bound_to is not None and bound_to != owner:
                raise AuthorizationError("Progress session belongs to another user")
            queue = self._sessions.get(session_id)
            if queue is None:
                queue = asyncio.Queue(maxsize=self._capacity)
                self._sessions[session_id] = queue
                logger.debug("Progress session %s registered", session_id)
            if owner is not None:
                self._owners[session_id] = owner
            return queue

    def owner_of(self, session_id: str) -> str | None:
        """User id the session is bound to, if any."""
        return self._owners.get(session_id)

    def send(self, session_id: str, text: str, final: bool = False) -> None:
        """Queue a message. Drops it if the session is unknown or full."""
        queue = self._sessions.get(session_id)
        if queue is None:
            return
        try:
            queue.put_nowait(ProgressMessage(text=text, final=final))
        except asyncio.QueueFull:
            logger.debug("Progress session %s full, dropped: %s", session_id, text)

    async def unregister(
        self,
        session_id: str,
        expected: asyncio.Queue[ProgressMessage] | None = None,
    ) -> None:
        """Remove a session.

        Args:
            session_id: Session to remove
            expected: Only remove if the session still maps to this queue (so a late
                teardown never kills a newer session that reused the id)
        """
        async with self._lock:
            queue = self._sessions.get(session_id)
            if queue is None or (expected is not None and queue is not expected):
                return
            del self._sessions[session_id]
            self._owners.pop(session_id, None)
        logger.debug("Progress session %s unregistered", session_id)

    def schedule_unregister(self, session_id: str, delay: float | None = None) -> None:
        """Unregister after `delay` seconds so slow clients still see the last message."""
        queue = self._sessions.get(session_id)
        if queue is None:
            return
        wait = self._teardown_delay if delay is None else delay

        async def _later() -> None:
            await asyncio.sleep(wait)
            await self.unregister(session_id, expected=queue)

        task = asyncio.create_task(_later(), name=f"progress-teardown-{session_id}")
        self._teardown_tasks.add(task)
        task.add_done_callback(self._teardown_tasks.discard)

    async def stream(self, session_id: str, owner: str | None = None) -> AsyncIterator[str]:
        """Yield message texts until the final message or until unregistered.

        Unregisters the session when the consumer stops.
        """
        queue = await self.register(session_id, owner=owner)
        try:
            while True:
                try:
                    message = await asyncio.wait_for(queue.get(), timeout=self._poll_interval)
                except TimeoutError:
                    if self._sessions.get(session_id) is not queue:
                        return
                    continue
                yield message.text
                if message.final:
                    return
        finally:
            await self.unregister(session_id, expected=queue)

    async def close(self) -> None:
        """Cancel pending teardowns and drop every session (app shutdown)."""
        for task in list(self._teardown_tasks):
            task.cancel()
        if self._teardown_tasks:
            await asyncio.gather(*self._teardown_tasks, return_exceptions=True)
        async with self._lock:
            self._sessions.clear()
            self._owners.clear()
