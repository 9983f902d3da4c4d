"""Unit tests for Debouncer, Throttler and the SKIPPED sentinel."""

import asyncio
from unittest.mock import Mock, patch

import pytest

from resilient_data_access.network.timing import SKIPPED, Debouncer, Skipped, Throttler


class TestSkipped:
    def test_is_falsy(self):
        assert not SKIPPED

    def test_repr(self):
        assert repr(SKIPPED) == "SKIPPED"

    def test_is_singleton_member(self):
        assert SKIPPED is Skipped.SKIPPED


class TestDebouncer:
    @pytest.mark.asyncio
    async def test_only_last_call_runs(self):
        debouncer = Debouncer()
        calls = []

        for i in range(3):
            debouncer.debounce("save", lambda i=i: calls.append(i), delay=0.02)
        await asyncio.sleep(0.06)

        assert calls == [2]
        assert debouncer.pending("save") is False

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        debouncer = Debouncer()
        calls = []

        debouncer.debounce("a", lambda: calls.append("a"), delay=0.01)
        debouncer.debounce("b", lambda: calls.append("b"), delay=0.01)
        await asyncio.sleep(0.05)

        assert sorted(calls) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_coroutine_functions_run_as_tasks(self):
        debouncer = Debouncer()
        done = asyncio.Event()

        async def work():
            done.set()

        debouncer.debounce("k", work, delay=0.0)
        await asyncio.wait_for(done.wait(), timeout=1.0)

    @pytest.mark.asyncio
    async def test_failing_call_is_logged_not_raised(self):
        debouncer = Debouncer()
        fn = Mock(side_effect=RuntimeError("boom"))

        with patch("resilient_data_access.network.timing.logger") as mock_logger:
            debouncer.debounce("k", fn, delay=0.0)
            await asyncio.sleep(0.02)

        fn.assert_called_once()
        mock_logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_cancel(self):
        debouncer = Debouncer()
        fn = Mock()

        debouncer.debounce("k", fn, delay=0.01)
        assert debouncer.cancel("k") is True
        assert debouncer.cancel("k") is False
        await asyncio.sleep(0.03)

        fn.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        debouncer = Debouncer()
        fn = Mock()

        debouncer.debounce("a", fn, delay=0.01)
        debouncer.debounce("b", fn, delay=0.01)
        assert debouncer.pending_count == 2
        assert debouncer.cancel_all() == 2
        await asyncio.sleep(0.03)

        fn.assert_not_called()
        assert debouncer.pending_count == 0

    @pytest.mark.asyncio
    async def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            Debouncer().debounce("k", Mock(), delay=-1)


class TestThrottler:
    def test_first_call_is_allowed(self):
        throttler = Throttler()
        with patch("time.time", return_value=100.0):
            assert throttler.try_acquire("k", limit=1.0) is True
        assert throttler.last_execution("k") == 100.0

    def test_calls_inside_window_are_dropped(self):
        throttler = Throttler()
        with patch("time.time", return_value=100.0):
            throttler.try_acquire("k", limit=1.0)
        with patch("time.time", return_value=100.5):
            assert throttler.try_acquire("k", limit=1.0) is False
        assert throttler.last_execution("k") == 100.0

    def test_call_after_window_is_allowed(self):
        throttler = Throttler()
        with patch("time.time", return_value=100.0):
            throttler.try_acquire("k", limit=1.0)
        with patch("time.time", return_value=101.0):
            assert throttler.try_acquire("k", limit=1.0) is True

    def test_throttle_runs_function(self):
        throttler = Throttler()
        fn = Mock()
        with patch("time.time", return_value=100.0):
            assert throttler.throttle("k", fn, limit=5.0) is True
            assert throttler.throttle("k", fn, limit=5.0) is False
        fn.assert_called_once()

    @pytest.mark.asyncio
    async def test_throttle_runs_coroutine_function(self):
        throttler = Throttler()
        ran = []

        async def work():
            ran.append("done")

        assert throttler.throttle("k", work, limit=5.0) is True
        assert throttler.running_count == 1
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert ran == ["done"]
        assert throttler.running_count == 0

    @pytest.mark.asyncio
    async def test_throttled_coroutine_failure_is_logged(self, caplog):
        throttler = Throttler()

        async def work():
            raise RuntimeError("boom")

        throttler.throttle("k", work, limit=5.0)
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert throttler.running_count == 0
        assert "Throttled call for 'k' failed: boom" in caplog.text

    def test_reset(self):
        throttler = Throttler()
        with patch("time.time", return_value=100.0):
            throttler.try_acquire("k", limit=10.0)
            throttler.reset("k")
            assert throttler.try_acquire("k", limit=10.0) is True

    def test_reset_all(self):
        throttler = Throttler()
        throttler.try_acquire("a")
        throttler.try_acquire("b")
        throttler.reset_all()
        assert throttler.last_execution("a") is None
        assert throttler.last_execution("b") is None
