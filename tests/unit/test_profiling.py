from __future__ import annotations

import math

import pytest

from transposebench.utils.profiling import calculate_bandwidth, effective_bandwidth, time_repeated


class _FakeTimer:
    def __init__(self, elapsed: float):
        self.elapsed = elapsed
        self.events: list[str] = []

    def start(self) -> None:
        self.events.append("start")

    def stop(self) -> None:
        self.events.append("stop")

    def elapsed_ms(self) -> float:
        return self.elapsed


def test_time_repeated_brackets_all_calls() -> None:
    timer = _FakeTimer(12.5)
    calls = []

    elapsed = time_repeated(lambda: calls.append(len(timer.events)), timer, reps=3)

    assert elapsed == 12.5
    assert calls == [1, 1, 1]
    assert timer.events == ["start", "stop"]


def test_calculate_bandwidth() -> None:
    assert calculate_bandwidth(2_000_000_000, 2.0) == pytest.approx(1.0)
    assert calculate_bandwidth(100, 0.0) == 0.0


def test_effective_bandwidth_counts_read_and_write() -> None:
    total_bytes = 1024 * 1024 * 4
    # 100 launches in 10 ms -> 0.1 ms per launch moving 2 * 4 MiB.
    bw = effective_bandwidth(total_bytes, elapsed_ms=10.0, reps=100)
    assert bw == pytest.approx(2 * total_bytes * 100 / (1e6 * 10.0))
    assert bw == pytest.approx(83.88608)
    assert bw > 0 and math.isfinite(bw)
