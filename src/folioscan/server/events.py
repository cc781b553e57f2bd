"""Server-Sent Events for extraction progress and log lines."""

from __future__ import annotations

import asyncio
import itertools
import json
import threading
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Request

Message = Dict[str, Any]


class EventBroadcaster:
    """Fan-out of session events to SSE subscribers.

    Worker threads publish; subscribers live on the server loop. The latest
    status event is kept so that late subscribers start from the current state.
    """

    def __init__(self) -> None:
        self._subscribers: set[asyncio.Queue[Message]] = set()
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._seq = itertools.count(1)
        self._last_status: Optional[Message] = None

    def set_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    @property
    def last_status(self) -> Optional[Message]:
        return self._last_status

    async def subscribe(self) -> asyncio.Queue[Message]:
        queue: asyncio.Queue[Message] = asyncio.Queue()
        with self._lock:
            self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[Message]) -> None:
        with self._lock:
            self._subscribers.discard(queue)

    def publish_status(self, payload: Message) -> None:
        message = self._envelope("status", payload)
        self._last_status = message
        self._dispatch(message)

    def publish_log(self, line: str, level: str) -> None:
        self._dispatch(self._envelope("log", {"message": line, "level": level}))

    def _envelope(self, kind: str, payload: Message) -> Message:
        return {"type": kind, "seq": next(self._seq), "payload": payload}

    def _dispatch(self, message: Message) -> None:
        if not self._loop:
            return
        with self._lock:
            queues = list(self._subscribers)
        for queue in queues:
            asyncio.run_coroutine_threadsafe(queue.put(message), self._loop)


def _format_sse(message: Message) -> str:
    payload = json.dumps(message, ensure_ascii=False)
    return f"event: {message['type']}\ndata: {payload}\n\n"


async def stream_events(request: Request, broadcaster: EventBroadcaster) -> AsyncGenerator[str, None]:
    queue = await broadcaster.subscribe()
    try:
        if broadcaster.last_status is not None:
            yield _format_sse(broadcaster.last_status)
        while not await request.is_disconnected():
            try:
                message = await asyncio.wait_for(queue.get(), timeout=15.0)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield _format_sse(message)
    finally:
        broadcaster.unsubscribe(queue)
