"""
Per-request lifecycle: single response, deadline, client abort.

    PENDING --resolution--> RESPONDED
    PENDING --abort-------> ABORTED ---> RESPONDED   (nothing written)
    PENDING --deadline----> TIMED_OUT -> RESPONDED   (timeout response written)

Every transition out of PENDING is guarded, so whatever fires second is a
no-op and the connection gets at most one response.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

# how long till we give up
REQUEST_TIMEOUT_S = 30.0


class RequestState(Enum):
    PENDING = "pending"
    ABORTED = "aborted"
    TIMED_OUT = "timed_out"
    RESPONDED = "responded"


class RequestLifecycle:
    """
    State machine guarding one gateway request.

    Resolution work keeps running after an abort or timeout (external calls
    are not cancelled); its result is simply discarded.
    """

    def __init__(
        self,
        timeout: float = REQUEST_TIMEOUT_S,
        timeout_response: Optional[Callable[[], Any]] = None,
    ):
        """
        Initialize lifecycle.

        Args:
            timeout: Seconds from ``run()`` until the request times out
            timeout_response: Factory for the response written on timeout
        """
        self.timeout = timeout
        self.timeout_response = timeout_response
        self.state = RequestState.PENDING
        self.response: Any = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._finished: Optional[asyncio.Future] = None
        self._task: Optional[asyncio.Future] = None
        self._timed_out = False
        self._aborted = False

    @property
    def responded(self) -> bool:
        return self.state is RequestState.RESPONDED

    @property
    def timed_out(self) -> bool:
        return self._timed_out

    @property
    def aborted(self) -> bool:
        return self._aborted

    async def run(self, resolution: Awaitable[Any]) -> Any:
        """
        Drive a resolution under the deadline and abort guard.

        Args:
            resolution: Awaitable producing the response

        Returns:
            The single response for this request, or None if it was aborted
        """
        loop = asyncio.get_running_loop()
        self._finished = loop.create_future()
        if self.state is not RequestState.PENDING:
            # aborted before any work started
            if asyncio.iscoroutine(resolution):
                resolution.close()
            return self.response

        self._timer = loop.call_later(self.timeout, self._on_timeout)
        self._task = asyncio.ensure_future(resolution)
        self._task.add_done_callback(self._on_resolved)
        return await self._finished

    def respond(self, response: Any) -> bool:
        """
        Write the response if the request is still pending.

        Returns:
            True if this call produced the request's response
        """
        if self.state is not RequestState.PENDING:
            logger.debug(f"Discarding response in state {self.state.value}")
            return False
        self._finish(response)
        return True

    def abort(self) -> bool:
        """Client went away: stop the timer and write nothing."""
        if self.state is not RequestState.PENDING:
            return False
        self.state = RequestState.ABORTED
        self._aborted = True
        logger.debug("Request aborted by client")
        self._finish(None)
        return True

    def _on_timeout(self):
        self._timer = None
        if self.state is not RequestState.PENDING:
            return
        self.state = RequestState.TIMED_OUT
        self._timed_out = True
        logger.debug(f"Request timed out after {self.timeout}s")
        self._finish(self.timeout_response() if self.timeout_response else None)

    def _on_resolved(self, task: asyncio.Future):
        if task.cancelled():
            if self.state is RequestState.PENDING:
                self._cancel_timer()
                self.state = RequestState.RESPONDED
                self._finished.cancel()
            return

        error = task.exception()
        if error is not None:
            if self.state is not RequestState.PENDING:
                logger.debug(f"Discarding late resolution error: {error!r}")
                return
            self._cancel_timer()
            self.state = RequestState.RESPONDED
            self._finished.set_exception(error)
            return

        self.respond(task.result())

    def _finish(self, response: Any):
        self._cancel_timer()
        self.state = RequestState.RESPONDED
        self.response = response
        if self._finished is not None and not self._finished.done():
            self._finished.set_result(response)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
