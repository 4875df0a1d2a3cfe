"""
Background event dispatch.

``Dispatcher`` is the seam to the workflow service that runs extraction jobs:
``send`` hands an event to it and returns a dispatch identifier without
waiting for the job. ``InProcessDispatcher`` runs registered handlers as
asyncio tasks on the application's event loop, retrying failed runs and
capping how many run at once.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from fastapi import Request

logger = logging.getLogger(__name__)


class DispatchError(Exception):
    """Raised when an event cannot be handed to the workflow service."""

    pass


@dataclass(frozen=True)
class Event:
    """
    One delivery of an event to a handler.

    Attributes:
        id: Dispatch identifier returned by ``send``.
        name: Event name, e.g. ``document.uploaded``.
        data: Event payload.
        attempt: 1-based attempt number of this delivery.
        max_attempts: Total attempts the dispatcher will make.
    """

    id: str
    name: str
    data: dict[str, Any] = field(default_factory=dict)
    attempt: int = 1
    max_attempts: int = 1

    @property
    def is_final_attempt(self) -> bool:
        return self.attempt >= self.max_attempts


EventHandler = Callable[[Event], Awaitable[Any]]


class Dispatcher(Protocol):
    """Workflow service collaborator."""

    async def send(self, event_name: str, payload: dict[str, Any]) -> str:
        """Emit an event and return its dispatch identifier."""
        ...


class InProcessDispatcher:
    """
    Dispatcher that runs handlers as asyncio tasks.

    A handler that raises is retried after ``retry_delay * attempt`` seconds
    until ``max_attempts`` is reached. At most ``max_concurrency`` handler
    attempts run at the same time.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        max_concurrency: int = 5,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._handlers: dict[str, list[EventHandler]] = {}
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    def register(self, event_name: str, handler: EventHandler) -> None:
        """Subscribe ``handler`` to ``event_name``."""
        self._handlers.setdefault(event_name, []).append(handler)
        logger.info("Registered handler %r for event '%s'", handler, event_name)

    @property
    def in_flight(self) -> int:
        """Number of handler runs that have not finished."""
        return len(self._tasks)

    async def send(self, event_name: str, payload: dict[str, Any]) -> str:
        if self._closed:
            raise DispatchError("Dispatcher is shut down")

        handlers = self._handlers.get(event_name)
        if not handlers:
            raise DispatchError(f"No handler registered for event '{event_name}'")

        event_id = uuid.uuid4().hex
        for handler in handlers:
            task = asyncio.create_task(
                self._run(handler, event_id, event_name, dict(payload)),
                name=f"{event_name}:{event_id}",
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        logger.info(
            "Dispatched event '%s' (id=%s) to %d handler(s)",
            event_name,
            event_id,
            len(handlers),
        )
        return event_id

    async def _run(
        self,
        handler: EventHandler,
        event_id: str,
        event_name: str,
        data: dict[str, Any],
    ) -> None:
        for attempt in range(1, self.max_attempts + 1):
            event = Event(
                id=event_id,
                name=event_name,
                data=data,
                attempt=attempt,
                max_attempts=self.max_attempts,
            )
            try:
                async with self._semaphore:
                    await handler(event)
                return
            except Exception as e:
                if event.is_final_attempt:
                    logger.exception(
                        "Event '%s' (id=%s) failed after %d attempt(s)",
                        event_name,
                        event_id,
                        attempt,
                    )
                    return
                delay = self.retry_delay * attempt
                logger.warning(
                    "Event '%s' (id=%s) attempt %d/%d failed: %s; retrying in %.1fs",
                    event_name,
                    event_id,
                    attempt,
                    self.max_attempts,
                    e,
                    delay,
                )
                await asyncio.sleep(delay)

    async def drain(self) -> None:
        """Wait until every handler run, including retries, has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Stop accepting events and cancel in-flight runs."""
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            logger.info("Cancelling %d in-flight run(s)", len(tasks))
            await asyncio.gather(*tasks, return_exceptions=True)


def get_dispatcher(request: Request) -> Dispatcher:
    """Dependency that provides the application's dispatcher."""
    return request.app.state.dispatcher
