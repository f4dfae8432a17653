"""Live job progress over Server-Sent Events.

Example JS client:
```javascript
const sessionId = crypto.randomUUID();
const events = new EventSource(`/api/progress/${sessionId}`);
events.addEventListener('progress', (event) => appendLine(event.data));
fetch('/api/youtube', {method: 'POST', body: JSON.stringify({url, session_id: sessionId}), ...});
```
"""

import asyncio
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Path, Request
from sse_starlette.sse import EventSourceResponse

from musicdrop.api.dependencies import get_app_settings, get_broadcaster, get_current_user
from musicdrop.application.services.progress_broadcaster import ProgressBroadcaster
from musicdrop.config import Settings
from musicdrop.domain.entities import AuthUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/progress", tags=["Progress"])


# Hey future me - the browser may connect BEFORE the POST that starts the job arrives, so the
# stream registers the session itself (register() is idempotent, the pipeline gets the same
# queue) and binds it to the caller. The stream ends after the job's final message;
# sse-starlette cancels the generator when the client goes away, and stream()'s finally
# unregisters either way.
@router.get("/{session_id}")
async def progress_events(
    request: Request,
    session_id: str = Path(..., min_length=1, max_length=128),
    user: AuthUser = Depends(get_current_user),
    broadcaster: ProgressBroadcaster = Depends(get_broadcaster),
    settings: Settings = Depends(get_app_settings),
) -> EventSourceResponse:
    """Stream `event: progress` messages for one job session."""
    # Claim (or check) the session up front so a foreign id is a plain 403, not a dead stream
    await broadcaster.register(session_id, owner=user.id)
    logger.debug("Progress stream opened for %s by %s", session_id, user.username)

    async def event_generator() -> AsyncIterator[dict[str, str]]:
        try:
            async for text in broadcaster.stream(session_id, owner=user.id):
                if await request.is_disconnected():
                    break
                yield {"event": "progress", "data": text}
        except asyncio.CancelledError:
            logger.debug("Progress stream %s cancelled", session_id)
            raise

    return EventSourceResponse(
        event_generator(),
        ping=int(settings.progress.keepalive_seconds),
    )
