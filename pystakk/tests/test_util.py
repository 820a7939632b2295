"""Tests for util helpers."""

import logging
import threading
import time

import pytest

from pystakk import LOG_FORMAT, setup_logging
from pystakk.util import ensure, first_line, run_concurrently


def test_ensure() -> None:
    assert ensure(0) == 0
    with pytest.raises(RuntimeError):
        ensure(None)


def test_first_line() -> None:
    assert first_line("\n  Subject line  \nbody") == "Subject line"
    assert first_line("") == ""


class TestRunConcurrently:
    def test_results_keep_item_order(self) -> None:
        def slow_square(n: int) -> int:
            time.sleep(0.01 * (5 - n))
            return n * n
        results = run_concurrently(slow_square, [1, 2, 3, 4], concurrency=4)
        assert results == [(1, None), (4, None), (9, None), (16, None)]

    def test_failure_does_not_cancel_siblings(self) -> None:
        seen = []
        lock = threading.Lock()

        def work(n: int) -> int:
            if n == 2:
                raise ValueError("two")
            with lock:
                seen.append(n)
            return n

        results = run_concurrently(work, [1, 2, 3], concurrency=3)
        assert sorted(seen) == [1, 3]
        assert results[0] == (1, None)
        assert isinstance(results[1][1], ValueError)
        assert results[2] == (3, None)

    def test_sequential_below_two_workers(self) -> None:
        threads = set()

        def work(n: int) -> int:
            threads.add(threading.get_ident())
            return n

        assert run_concurrently(work, [1, 2, 3], concurrency=1) == [(1, None), (2, None), (3, None)]
        assert threads == {threading.get_ident()}

    def test_empty(self) -> None:
        assert run_concurrently(lambda n: n, [], concurrency=4) == []


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def restore_root_logger(self):  # type: ignore[no-untyped-def]
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_single_handler_in_module_format(self) -> None:
        setup_logging(0)
        setup_logging(0)
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.INFO
        formatter = root.handlers[0].formatter
        assert formatter is not None and formatter._fmt == LOG_FORMAT

    def test_debug_from_two_flags(self) -> None:
        setup_logging(2)
        assert logging.getLogger().level == logging.DEBUG
        # Modules log through their own named loggers, which propagate to root
        assert logging.getLogger("pystakk.submit.plan").getEffectiveLevel() == logging.DEBUG
