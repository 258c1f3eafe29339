"""
Benchmark configuration: tile geometry, launch configuration and run settings.

Everything here is validated once at construction; an invalid geometry raises
ConfigurationError before any device work is issued.
"""
from typing import Tuple

import attrs
import numpy as np

from ..errors import ConfigurationError
from ..simt import MAX_THREADS_PER_BLOCK, Dim3
from .kernels import KERNEL_VARIANTS

TILE_DIM = 32
BLOCK_ROWS = 8
NX = 1024
NY = 1024
NUM_REPS = 100
SENTINEL = -1.0


def launch_config(nx: int, ny: int, tile_dim: int, block_rows: int) -> Tuple[Dim3, Dim3]:
    """
    Grid and block dimensions covering an ``ny x nx`` matrix with one block per tile.

    Args:
        nx: Number of columns
        ny: Number of rows
        tile_dim: Tile edge length
        block_rows: Rows handled per pass by one block

    Returns:
        Tuple of (grid, block)
    """
    return Dim3(nx // tile_dim, ny // tile_dim, 1), Dim3(tile_dim, block_rows, 1)


@attrs.define(frozen=True, slots=True)
class TileGeometry:
    nx: int = NX
    ny: int = NY
    tile_dim: int = TILE_DIM
    block_rows: int = BLOCK_ROWS

    def __attrs_post_init__(self) -> None:
        problems = []
        for field in ('nx', 'ny', 'tile_dim', 'block_rows'):
            value = getattr(self, field)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
                problems.append(f"{field} must be a positive integer, got {value!r}")
        if problems:
            raise ConfigurationError("; ".join(problems))

        if self.nx % self.tile_dim:
            problems.append(f"nx={self.nx} is not a multiple of TILE_DIM={self.tile_dim}")
        if self.ny % self.tile_dim:
            problems.append(f"ny={self.ny} is not a multiple of TILE_DIM={self.tile_dim}")
        if self.tile_dim % self.block_rows:
            problems.append(f"TILE_DIM={self.tile_dim} is not a multiple of BLOCK_ROWS={self.block_rows}")
        if self.tile_dim * self.block_rows > MAX_THREADS_PER_BLOCK:
            problems.append(
                f"block of TILE_DIM x BLOCK_ROWS = {self.tile_dim}x{self.block_rows} threads exceeds "
                f"{MAX_THREADS_PER_BLOCK} threads per block"
            )
        if problems:
            raise ConfigurationError("; ".join(problems))

    @property
    def grid(self) -> Dim3:
        return launch_config(self.nx, self.ny, self.tile_dim, self.block_rows)[0]

    @property
    def block(self) -> Dim3:
        return launch_config(self.nx, self.ny, self.tile_dim, self.block_rows)[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.ny, self.nx)

    @property
    def transposed_shape(self) -> Tuple[int, int]:
        return (self.nx, self.ny)

    @property
    def num_elements(self) -> int:
        return self.nx * self.ny

    @property
    def total_bytes(self) -> int:
        return self.num_elements * np.dtype(np.float32).itemsize

    @property
    def rows_per_thread(self) -> int:
        return self.tile_dim // self.block_rows


def _check_variants(instance, attribute, value) -> None:
    if not value:
        raise ConfigurationError("at least one kernel variant must be selected")
    unknown = [name for name in value if name not in KERNEL_VARIANTS]
    if unknown:
        raise ConfigurationError(f"unknown kernel variant(s) {unknown}. Available: {KERNEL_VARIANTS.list()}")


def _check_reps(instance, attribute, value) -> None:
    if value < 1:
        raise ConfigurationError(f"num_reps must be at least 1, got {value}")


@attrs.define(frozen=True, slots=True)
class BenchmarkConfig:
    """Immutable settings of one benchmark run."""
    geometry: TileGeometry = attrs.field(factory=TileGeometry)
    num_reps: int = attrs.field(default=NUM_REPS, validator=_check_reps)
    sentinel: float = SENTINEL
    variants: Tuple[str, ...] = attrs.field(
        factory=lambda: tuple(KERNEL_VARIANTS.list()),
        converter=tuple,
        validator=_check_variants
    )

    def to_dict(self) -> dict:
        return {
            'nx': self.geometry.nx,
            'ny': self.geometry.ny,
            'tile_dim': self.geometry.tile_dim,
            'block_rows': self.geometry.block_rows,
            'grid': list(self.geometry.grid.as_tuple()),
            'block': list(self.geometry.block.as_tuple()),
            'num_reps': self.num_reps,
            'sentinel': self.sentinel,
            'variants': list(self.variants)
        }
