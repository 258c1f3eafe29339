"""
Copy and transpose kernels for the host SIMT executor.

Each block moves one ``TILE_DIM x TILE_DIM`` tile using ``TILE_DIM x BLOCK_ROWS``
threads, so every thread handles ``TILE_DIM / BLOCK_ROWS`` elements spaced
``BLOCK_ROWS`` rows apart. Tile sizes are read from the launch configuration:
``blockDim.x`` is the tile edge and ``blockDim.y`` the rows per pass.

Buffers are flat, row-major float32 arrays. The input is ``ny x nx``; the
transposed output is ``nx x ny``.
"""
from typing import Callable

import attrs

from ..base import Registry
from ..simt import ThreadContext


def copy(ctx: ThreadContext, odata, idata) -> None:
    """Reference copy: straight global-to-global, no scratch."""
    tile_dim = ctx.block_dim.x
    block_rows = ctx.block_dim.y
    x = ctx.block_idx.x * tile_dim + ctx.thread_idx.x
    y = ctx.block_idx.y * tile_dim + ctx.thread_idx.y
    width = ctx.grid_dim.x * tile_dim

    for j in range(0, tile_dim, block_rows):
        odata[(y + j) * width + x] = idata[(y + j) * width + x]


def copy_shared_mem(ctx: ThreadContext, odata, idata):
    """Copy staged through a shared tile, to isolate the cost of the staging itself."""
    tile_dim = ctx.block_dim.x
    block_rows = ctx.block_dim.y
    tx = ctx.thread_idx.x
    ty = ctx.thread_idx.y
    x = ctx.block_idx.x * tile_dim + tx
    y = ctx.block_idx.y * tile_dim + ty
    width = ctx.grid_dim.x * tile_dim
    tile = ctx.shared('tile', (tile_dim * tile_dim,))

    for j in range(0, tile_dim, block_rows):
        tile[(ty + j) * tile_dim + tx] = idata[(y + j) * width + x]

    yield ctx.syncthreads()

    for j in range(0, tile_dim, block_rows):
        odata[(y + j) * width + x] = tile[(ty + j) * tile_dim + tx]


def transpose_naive(ctx: ThreadContext, odata, idata) -> None:
    """Coalesced reads, strided writes."""
    tile_dim = ctx.block_dim.x
    block_rows = ctx.block_dim.y
    x = ctx.block_idx.x * tile_dim + ctx.thread_idx.x
    y = ctx.block_idx.y * tile_dim + ctx.thread_idx.y
    width = ctx.grid_dim.x * tile_dim
    height = ctx.grid_dim.y * tile_dim

    for j in range(0, tile_dim, block_rows):
        odata[x * height + (y + j)] = idata[(y + j) * width + x]


def _transpose_through_tile(ctx: ThreadContext, odata, idata, padding: int):
    tile_dim = ctx.block_dim.x
    block_rows = ctx.block_dim.y
    tx = ctx.thread_idx.x
    ty = ctx.thread_idx.y
    x = ctx.block_idx.x * tile_dim + tx
    y = ctx.block_idx.y * tile_dim + ty
    width = ctx.grid_dim.x * tile_dim
    height = ctx.grid_dim.y * tile_dim
    tile = ctx.shared('tile', (tile_dim, tile_dim + padding))

    for j in range(0, tile_dim, block_rows):
        tile[ty + j, tx] = idata[(y + j) * width + x]

    yield ctx.syncthreads()

    # Swap the block offsets so the tile lands in its transposed position.
    x = ctx.block_idx.y * tile_dim + tx
    y = ctx.block_idx.x * tile_dim + ty

    for j in range(0, tile_dim, block_rows):
        odata[(y + j) * height + x] = tile[tx, ty + j]


def transpose_coalesced(ctx: ThreadContext, odata, idata):
    """
    Coalesced reads and writes through a shared tile.

    The column-wise reads from the tile hit the same bank for a whole warp.
    """
    yield from _transpose_through_tile(ctx, odata, idata, padding=0)


def transpose_no_bank_conflicts(ctx: ThreadContext, odata, idata):
    """Same as transpose_coalesced with one padding column, which spreads tile columns over all banks."""
    yield from _transpose_through_tile(ctx, odata, idata, padding=1)


@attrs.define(frozen=True, slots=True)
class KernelVariant:
    name: str
    label: str
    description: str
    transposes: bool
    host_kernel: Callable


KERNEL_VARIANTS: Registry[KernelVariant] = Registry('Kernel variant')

for _variant in (
    KernelVariant(
        name='copy',
        label='copy',
        description='Copy global to global memory (bandwidth upper bound)',
        transposes=False,
        host_kernel=copy
    ),
    KernelVariant(
        name='copy_shared',
        label='shared memory copy',
        description='Copy staged through a shared-memory tile',
        transposes=False,
        host_kernel=copy_shared_mem
    ),
    KernelVariant(
        name='transpose_naive',
        label='naive transpose',
        description='Transpose with coalesced reads and strided writes',
        transposes=True,
        host_kernel=transpose_naive
    ),
    KernelVariant(
        name='transpose_coalesced',
        label='coalesced transpose',
        description='Transpose through a shared tile (coalesced, with bank conflicts)',
        transposes=True,
        host_kernel=transpose_coalesced
    ),
    KernelVariant(
        name='transpose_no_bank_conflicts',
        label='conflict-free transpose',
        description='Transpose through a padded shared tile (no bank conflicts)',
        transposes=True,
        host_kernel=transpose_no_bank_conflicts
    ),
):
    KERNEL_VARIANTS.register(_variant.name, _variant)


def get_variant(name: str) -> KernelVariant:
    return KERNEL_VARIANTS.get(name)
