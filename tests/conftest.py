"""Pytest configuration and fixtures for gantt-stream tests."""

import asyncio
import json
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest


@pytest.fixture(autouse=True)
def reset_config_singleton():
    """Reset config singleton before and after each test.

    Keeps tests from leaking configuration into each other.
    """
    from gantt_stream.core.config import _reset_config

    _reset_config()
    yield
    _reset_config()


def sse_message(event: str, payload: Any, raw: bool = False) -> str:
    """Format one SSE message; payload is JSON-encoded unless raw."""
    data = payload if raw else json.dumps(payload)
    lines = [f"event: {event}"]
    lines.extend(f"data: {line}" for line in data.split("\n"))
    return "\n".join(lines) + "\n\n"


def sse_transport(
    chunks: list[str],
    *,
    hang: bool = False,
    status_code: int = 200,
    content_type: str = "text/event-stream",
    requests: list[httpx.Request] | None = None,
) -> httpx.MockTransport:
    """Build a transport serving the given chunks as a streaming body.

    Args:
        chunks: Body chunks sent in order.
        hang: Keep the connection open after the last chunk until cancelled.
        status_code: Response status.
        content_type: Response content type.
        requests: Optional list collecting received requests.

    """

    async def body() -> AsyncIterator[bytes]:
        for chunk in chunks:
            yield chunk.encode()
            await asyncio.sleep(0)
        if hang:
            await asyncio.Event().wait()

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return httpx.Response(status_code, headers={"content-type": content_type}, content=body())

    return httpx.MockTransport(handler)


@pytest.fixture
def make_transport() -> Callable[..., httpx.MockTransport]:
    """Factory fixture for streaming mock transports."""
    return sse_transport


@pytest.fixture
def project_record() -> dict[str, Any]:
    """Project P1 with two sprints and one link."""
    return {
        "id": "P1",
        "sprints": [{"id": "S1"}, {"id": "S2"}],
        "links": [{"source": "P1", "target": "S1", "type": "finish_to_start"}],
    }


@pytest.fixture
def sse() -> Callable[..., str]:
    """Formatter for SSE messages used to build mock stream bodies."""
    return sse_message
