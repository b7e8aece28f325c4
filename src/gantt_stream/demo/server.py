"""Demo push source: a Starlette app streaming dummy records over SSE.

Routes:
- GET {path}: text/event-stream emitting one record-channel event per
  generated project every ``interval`` seconds, then one close-channel event,
  then ending the response.
- GET /health: liveness check.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, StreamingResponse
from starlette.routing import Route

from gantt_stream.core.config import CLOSE_CHANNEL, RECORD_CHANNEL, DemoSourceSettings
from gantt_stream.stream.event_parser import SSEEvent

from .generator import generate_projects

logger = logging.getLogger(__name__)

# Reconnection delay advertised to clients (milliseconds)
DEFAULT_RETRY_MS = 3000


async def event_stream(settings: DemoSourceSettings) -> AsyncGenerator[str, None]:
    """Yield formatted SSE messages for one client.

    Args:
        settings: Demo source settings (record count, interval, seed).

    Yields:
        SSE-formatted strings.

    """
    projects = generate_projects(
        settings.project_count,
        settings.sprints_per_project,
        start_date=settings.start_date,
        seed=settings.seed,
    )
    logger.info("Demo client connected, streaming %d project(s)", len(projects))

    try:
        for counter, project in enumerate(projects, start=1):
            if counter > 1 and settings.interval > 0:
                await asyncio.sleep(settings.interval)
            event = SSEEvent.from_payload(RECORD_CHANNEL, [project], id=str(counter))
            if counter == 1:
                event.retry = DEFAULT_RETRY_MS
            yield event.format()

        yield SSEEvent.from_payload(CLOSE_CHANNEL, {"count": len(projects)}).format()
        logger.info("Demo stream finished")
    finally:
        logger.debug("Demo client disconnected")


def create_app(settings: DemoSourceSettings | None = None) -> Starlette:
    """Create the demo source application.

    Args:
        settings: Demo source settings; defaults when None.

    Returns:
        Starlette application.

    """
    demo_settings = settings or DemoSourceSettings()

    async def stream_events(request: Request) -> StreamingResponse:
        """GET {path} - SSE stream of dummy project records."""
        return StreamingResponse(
            event_stream(request.app.state.demo_settings),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app = Starlette(
        routes=[
            Route(demo_settings.path, stream_events, methods=["GET"]),
            Route("/health", health, methods=["GET"]),
        ]
    )
    app.state.demo_settings = demo_settings
    return app
