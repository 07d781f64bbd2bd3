"""
Tests for the per-request lifecycle state machine.
"""

import asyncio

import pytest

from ipfsgate.core.request_lifecycle import REQUEST_TIMEOUT_S, RequestLifecycle, RequestState


async def resolve_after(event: asyncio.Event, value):
    await event.wait()
    return value


def timeout_marker():
    return "timed out"


class TestRequestLifecycle:
    """Test single-response, timeout and abort handling."""

    def test_defaults(self):
        lifecycle = RequestLifecycle()
        assert lifecycle.timeout == REQUEST_TIMEOUT_S == 30.0
        assert lifecycle.state is RequestState.PENDING
        assert not lifecycle.responded

    @pytest.mark.asyncio
    async def test_resolution_responds_once(self):
        lifecycle = RequestLifecycle(timeout=5)

        async def resolution():
            return "ok"

        assert await lifecycle.run(resolution()) == "ok"
        assert lifecycle.state is RequestState.RESPONDED
        assert lifecycle.response == "ok"
        assert lifecycle.respond("again") is False
        assert lifecycle.response == "ok"

    @pytest.mark.asyncio
    async def test_timeout_writes_single_response(self):
        release = asyncio.Event()
        lifecycle = RequestLifecycle(timeout=0.05, timeout_response=timeout_marker)

        task = asyncio.ensure_future(resolve_after(release, "late"))
        result = await lifecycle.run(task)
        assert result == "timed out"
        assert lifecycle.timed_out
        assert lifecycle.state is RequestState.RESPONDED

        # the late result is discarded
        release.set()
        assert await task == "late"
        await asyncio.sleep(0)
        assert lifecycle.response == "timed out"

    @pytest.mark.asyncio
    async def test_abort_writes_nothing(self):
        release = asyncio.Event()
        lifecycle = RequestLifecycle(timeout=5, timeout_response=timeout_marker)

        run = asyncio.ensure_future(lifecycle.run(resolve_after(release, "late")))
        await asyncio.sleep(0)
        assert lifecycle.abort() is True

        assert await run is None
        assert lifecycle.aborted
        assert not lifecycle.timed_out

        release.set()
        await asyncio.sleep(0.01)
        assert lifecycle.response is None
        assert lifecycle.abort() is False

    @pytest.mark.asyncio
    async def test_abort_cancels_timeout(self):
        lifecycle = RequestLifecycle(timeout=0.05, timeout_response=timeout_marker)
        run = asyncio.ensure_future(lifecycle.run(resolve_after(asyncio.Event(), "never")))
        await asyncio.sleep(0)
        lifecycle.abort()
        assert await run is None

        await asyncio.sleep(0.1)
        assert not lifecycle.timed_out
        assert lifecycle.response is None

    @pytest.mark.asyncio
    async def test_abort_before_run(self):
        lifecycle = RequestLifecycle(timeout=5)
        lifecycle.abort()

        async def resolution():
            raise AssertionError("must not run")

        assert await lifecycle.run(resolution()) is None

    @pytest.mark.asyncio
    async def test_resolution_error_propagates_while_pending(self):
        lifecycle = RequestLifecycle(timeout=5)

        async def resolution():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await lifecycle.run(resolution())
        assert lifecycle.responded

    @pytest.mark.asyncio
    async def test_late_error_is_discarded(self):
        lifecycle = RequestLifecycle(timeout=0.01, timeout_response=timeout_marker)
        release = asyncio.Event()

        async def resolution():
            await release.wait()
            raise RuntimeError("late")

        assert await lifecycle.run(resolution()) == "timed out"
        release.set()
        await asyncio.sleep(0.01)
        assert lifecycle.response == "timed out"
