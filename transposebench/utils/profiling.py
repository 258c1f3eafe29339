"""
Timing and bandwidth utilities.

Timers share one contract: ``start()`` and ``stop()`` record points on the
device timeline, ``stop()`` blocks until the device has reached its point, and
``elapsed_ms()`` returns the time between the two.
"""
import time
from typing import Callable, Optional

import torch

from ..errors import DeviceError


class HostTimer:
    """Wall-clock timer for devices that execute synchronously on the host."""

    def __init__(self):
        self._start: Optional[float] = None
        self._stop: Optional[float] = None

    def start(self) -> None:
        self._start = time.perf_counter()
        self._stop = None

    def stop(self) -> None:
        self._stop = time.perf_counter()

    def elapsed_ms(self) -> float:
        if self._start is None or self._stop is None:
            raise DeviceError("timer read before start() and stop() were recorded")
        return (self._stop - self._start) * 1e3


class CudaEventTimer:
    """Timer backed by a pair of CUDA events on the current stream."""

    def __init__(self):
        self._start_evt = torch.cuda.Event(enable_timing=True)
        self._stop_evt = torch.cuda.Event(enable_timing=True)
        self._recorded = False

    def start(self) -> None:
        self._start_evt.record()
        self._recorded = False

    def stop(self) -> None:
        self._stop_evt.record()
        self._stop_evt.synchronize()
        self._recorded = True

    def elapsed_ms(self) -> float:
        if not self._recorded:
            raise DeviceError("timer read before start() and stop() were recorded")
        return self._start_evt.elapsed_time(self._stop_evt)


def time_repeated(op_fn: Callable[[], None], timer, reps: int) -> float:
    """
    Time ``reps`` back-to-back calls of ``op_fn``.

    Args:
        op_fn: Operation to time (typically one kernel launch)
        timer: Timer of the device ``op_fn`` runs on
        reps: Number of calls

    Returns:
        Elapsed time in milliseconds for all calls together
    """
    timer.start()
    for _ in range(reps):
        op_fn()
    timer.stop()
    return timer.elapsed_ms()


def calculate_bandwidth(size_bytes: int, time_seconds: float) -> float:
    """
    Calculate bandwidth in GB/s given size and time.

    Args:
        size_bytes: Size of data transferred in bytes
        time_seconds: Time taken in seconds

    Returns:
        Bandwidth in GB/s (10^9 bytes per second)
    """
    if time_seconds <= 0:
        return 0.0
    return (size_bytes / 1e9) / time_seconds  # GB/s


def effective_bandwidth(total_bytes: int, elapsed_ms: float, reps: int) -> float:
    """
    Effective bandwidth of a data-movement kernel in GB/s.

    Every launch reads and writes ``total_bytes`` once, hence the factor 2.

    Args:
        total_bytes: Size of the matrix in bytes
        elapsed_ms: Time for all ``reps`` launches, in milliseconds
        reps: Number of timed launches

    Returns:
        Bandwidth in GB/s
    """
    return calculate_bandwidth(2 * total_bytes, elapsed_ms / 1e3 / reps)
