"""
Host-side SIMT execution model.

Kernels are plain Python functions ``kernel(ctx, *buffers)`` where ``ctx`` is a
:class:`ThreadContext` describing one thread of a 2-D/3-D grid of blocks. A
kernel that needs a block-wide barrier is written as a generator and suspends
with ``yield ctx.syncthreads()``; the :class:`HostExecutor` runs every thread of
a block up to the barrier before letting any thread continue.

Block-local scratch memory is requested with ``ctx.shared(name, shape)``. All
threads of a block receive the same array, and it disappears with the block.
The executor can optionally account for shared-memory bank conflicts the way
the hardware serializes them (32 banks of 4-byte words, warps of 32 threads).
"""
import inspect
import itertools
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import attrs
import numpy as np

from .errors import DeviceError, TransposeBenchError

WARP_SIZE = 32
NUM_BANKS = 32
MAX_THREADS_PER_BLOCK = 1024


@attrs.define(frozen=True, slots=True)
class Dim3:
    x: int
    y: int = 1
    z: int = 1

    @property
    def count(self) -> int:
        return self.x * self.y * self.z

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.x, self.y, self.z)

    def __str__(self) -> str:
        return f"({self.x},{self.y},{self.z})"


class _Barrier:
    __slots__ = ()

    def __repr__(self) -> str:
        return "BARRIER"


BARRIER = _Barrier()


@attrs.define(slots=True)
class SharedMemoryStats:
    """
    Shared-memory traffic of one launch.

    ``requests`` counts warp-wide shared-memory instructions, ``wavefronts`` the
    bank passes needed to serve them. Every wavefront beyond the first of a
    request is a bank conflict.
    """
    requests: int = 0
    wavefronts: int = 0

    @property
    def conflicts(self) -> int:
        return self.wavefronts - self.requests

    def merge(self, other: "SharedMemoryStats") -> None:
        self.requests += other.requests
        self.wavefronts += other.wavefronts

    def to_dict(self) -> Dict[str, int]:
        return {
            'requests': self.requests,
            'wavefronts': self.wavefronts,
            'conflicts': self.conflicts
        }


def replay_degree(words: Sequence[int], num_banks: int = NUM_BANKS) -> int:
    """
    Number of bank passes needed to serve one warp-wide shared access.

    Threads touching the same word are served by a broadcast, so only distinct
    words mapping to the same bank serialize.

    Args:
        words: Word addresses accessed by the threads of one warp
        num_banks: Number of shared-memory banks

    Returns:
        The worst per-bank number of distinct words (at least 1)
    """
    per_bank: Dict[int, int] = defaultdict(int)
    for word in set(words):
        per_bank[word % num_banks] += 1
    return max(per_bank.values(), default=1)


class _BlockState:
    """Bookkeeping shared by the threads of one running block."""

    def __init__(self, num_threads: int, track_bank_conflicts: bool):
        self.shared: Dict[str, "SharedArray"] = {}
        self.next_word = 0
        self.thread = 0
        self.phase = 0
        self.sequence = [0] * num_threads
        self.accesses: Optional[Dict[Tuple[int, int, int], List[int]]] = (
            defaultdict(list) if track_bank_conflicts else None
        )

    def begin_phase(self, phase: int) -> None:
        self.phase = phase
        self.sequence = [0] * len(self.sequence)

    def record(self, word: int) -> None:
        if self.accesses is None:
            return
        thread = self.thread
        seq = self.sequence[thread]
        self.sequence[thread] = seq + 1
        self.accesses[(self.phase, thread // WARP_SIZE, seq)].append(word)

    def bank_stats(self) -> SharedMemoryStats:
        stats = SharedMemoryStats()
        for words in (self.accesses or {}).values():
            stats.requests += 1
            stats.wavefronts += replay_degree(words)
        return stats


class SharedArray:
    """
    Block-local scratch array.

    Indexing mirrors a numpy array of the same shape, except that every access
    must address exactly one element and negative indices are rejected.
    """

    def __init__(self, shape: Tuple[int, ...], dtype: Any, block: _BlockState):
        self._data = np.zeros(shape, dtype=dtype)
        self._block = block
        self._base = block.next_word
        block.next_word += self._data.size

    @property
    def shape(self) -> Tuple[int, ...]:
        return self._data.shape

    def _word(self, index: Any) -> int:
        if not isinstance(index, tuple):
            index = (index,)
        try:
            return self._base + int(np.ravel_multi_index(index, self._data.shape))
        except (TypeError, ValueError) as exc:
            raise IndexError(f"shared memory index {index} out of range for shape {self.shape}") from exc

    def __getitem__(self, index: Any) -> Any:
        self._block.record(self._word(index))
        return self._data[index]

    def __setitem__(self, index: Any, value: Any) -> None:
        self._block.record(self._word(index))
        self._data[index] = value


class ThreadContext:
    """Coordinates and block-level primitives visible to one kernel thread."""

    __slots__ = ('thread_idx', 'block_idx', 'block_dim', 'grid_dim', '_block')

    def __init__(self, thread_idx: Dim3, block_idx: Dim3, block_dim: Dim3, grid_dim: Dim3, block: _BlockState):
        self.thread_idx = thread_idx
        self.block_idx = block_idx
        self.block_dim = block_dim
        self.grid_dim = grid_dim
        self._block = block

    def shared(self, name: str, shape: Tuple[int, ...], dtype: Any = np.float32) -> SharedArray:
        """
        Get the block's scratch array called ``name``, allocating it on first use.

        Args:
            name: Identifier of the array within the kernel
            shape: Shape of the array
            dtype: Element type

        Returns:
            The SharedArray shared by every thread of the current block
        """
        shape = tuple(shape)
        array = self._block.shared.get(name)
        if array is None:
            array = SharedArray(shape, dtype, self._block)
            self._block.shared[name] = array
        elif array.shape != shape:
            raise DeviceError(f"shared array {name!r} redeclared with shape {shape}, was {array.shape}")
        return array

    def syncthreads(self) -> _Barrier:
        return BARRIER


class HostExecutor:
    """
    Runs SIMT kernels on the host, one block at a time.

    Args:
        track_bank_conflicts: Whether launches account for shared-memory bank conflicts
    """

    def __init__(self, track_bank_conflicts: bool = False):
        self.track_bank_conflicts = track_bank_conflicts

    def launch(self, kernel: Callable, grid: Dim3, block: Dim3, *buffers: Any) -> Optional[SharedMemoryStats]:
        """
        Launch ``kernel`` over ``grid`` blocks of ``block`` threads.

        Returns:
            Shared-memory statistics when bank conflicts are tracked, else None
        """
        for dims, what in ((grid, 'grid'), (block, 'block')):
            if min(dims.as_tuple()) < 1:
                raise DeviceError(f"invalid {what} dimensions {dims}")
        if block.count > MAX_THREADS_PER_BLOCK:
            raise DeviceError(f"block {block} exceeds {MAX_THREADS_PER_BLOCK} threads")

        stats = SharedMemoryStats() if self.track_bank_conflicts else None
        for bz, by, bx in itertools.product(range(grid.z), range(grid.y), range(grid.x)):
            state = self._run_block(kernel, Dim3(bx, by, bz), grid, block, buffers)
            if stats is not None:
                stats.merge(state.bank_stats())
        return stats

    def _run_block(self, kernel: Callable, block_idx: Dim3, grid: Dim3, block: Dim3, buffers: Tuple) -> _BlockState:
        state = _BlockState(block.count, self.track_bank_conflicts)
        # Linear thread ids put x fastest, as warps are formed on the device.
        contexts = [
            ThreadContext(Dim3(tx, ty, tz), block_idx, block, grid, state)
            for tz, ty, tx in itertools.product(range(block.z), range(block.y), range(block.x))
        ]

        if not inspect.isgeneratorfunction(kernel):
            for linear, ctx in enumerate(contexts):
                state.thread = linear
                self._step(kernel, block_idx, ctx, lambda: kernel(ctx, *buffers))
            return state

        pending = [(linear, kernel(ctx, *buffers)) for linear, ctx in enumerate(contexts)]
        phase = 0
        while pending:
            state.begin_phase(phase)
            waiting = []
            exited = 0
            for linear, thread in pending:
                state.thread = linear
                try:
                    token = self._step(kernel, block_idx, contexts[linear], lambda: next(thread))
                except StopIteration:
                    exited += 1
                    continue
                if token is not BARRIER:
                    raise DeviceError(f"{kernel.__name__} yielded {token!r}; kernels may only yield ctx.syncthreads()")
                waiting.append((linear, thread))
            if waiting and exited:
                raise DeviceError(
                    f"{kernel.__name__}: barrier divergence in block {block_idx}: "
                    f"{exited} thread(s) exited while {len(waiting)} wait at barrier {phase}"
                )
            pending = waiting
            phase += 1
        return state

    @staticmethod
    def _step(kernel: Callable, block_idx: Dim3, ctx: ThreadContext, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except (StopIteration, TransposeBenchError):
            raise
        except Exception as exc:
            raise DeviceError(
                f"{kernel.__name__} failed in block {block_idx}, thread {ctx.thread_idx}: {exc}"
            ) from exc
