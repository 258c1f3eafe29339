"""
CUDA versions of the copy and transpose kernels, compiled with numba.

The bodies mirror :mod:`transposebench.transpose.kernels` line for line. Shared
tiles need compile-time shapes, so the kernels are built per tile geometry and
cached.
"""
from functools import lru_cache
from typing import Dict

import numba
from numba import cuda


@lru_cache(maxsize=None)
def build_cuda_kernels(tile_dim: int, block_rows: int) -> Dict[str, object]:
    """
    Compile-ready kernels for one ``(tile_dim, block_rows)`` pair, keyed by variant name.

    Args:
        tile_dim: Tile edge length (blockDim.x)
        block_rows: Rows per pass (blockDim.y)

    Returns:
        Dictionary of numba CUDA dispatchers
    """
    TILE = tile_dim
    ROWS = block_rows
    TILE_SQ = tile_dim * tile_dim
    PADDED = tile_dim + 1

    @cuda.jit
    def copy(odata, idata):
        x = cuda.blockIdx.x * TILE + cuda.threadIdx.x
        y = cuda.blockIdx.y * TILE + cuda.threadIdx.y
        width = cuda.gridDim.x * TILE

        for j in range(0, TILE, ROWS):
            odata[(y + j) * width + x] = idata[(y + j) * width + x]

    @cuda.jit
    def copy_shared_mem(odata, idata):
        tile = cuda.shared.array(TILE_SQ, dtype=numba.float32)

        tx = cuda.threadIdx.x
        ty = cuda.threadIdx.y
        x = cuda.blockIdx.x * TILE + tx
        y = cuda.blockIdx.y * TILE + ty
        width = cuda.gridDim.x * TILE

        for j in range(0, TILE, ROWS):
            tile[(ty + j) * TILE + tx] = idata[(y + j) * width + x]

        cuda.syncthreads()

        for j in range(0, TILE, ROWS):
            odata[(y + j) * width + x] = tile[(ty + j) * TILE + tx]

    @cuda.jit
    def transpose_naive(odata, idata):
        x = cuda.blockIdx.x * TILE + cuda.threadIdx.x
        y = cuda.blockIdx.y * TILE + cuda.threadIdx.y
        width = cuda.gridDim.x * TILE
        height = cuda.gridDim.y * TILE

        for j in range(0, TILE, ROWS):
            odata[x * height + (y + j)] = idata[(y + j) * width + x]

    @cuda.jit
    def transpose_coalesced(odata, idata):
        tile = cuda.shared.array((TILE, TILE), dtype=numba.float32)

        tx = cuda.threadIdx.x
        ty = cuda.threadIdx.y
        x = cuda.blockIdx.x * TILE + tx
        y = cuda.blockIdx.y * TILE + ty
        width = cuda.gridDim.x * TILE
        height = cuda.gridDim.y * TILE

        for j in range(0, TILE, ROWS):
            tile[ty + j, tx] = idata[(y + j) * width + x]

        cuda.syncthreads()

        x = cuda.blockIdx.y * TILE + tx
        y = cuda.blockIdx.x * TILE + ty

        for j in range(0, TILE, ROWS):
            odata[(y + j) * height + x] = tile[tx, ty + j]

    @cuda.jit
    def transpose_no_bank_conflicts(odata, idata):
        tile = cuda.shared.array((TILE, PADDED), dtype=numba.float32)

        tx = cuda.threadIdx.x
        ty = cuda.threadIdx.y
        x = cuda.blockIdx.x * TILE + tx
        y = cuda.blockIdx.y * TILE + ty
        width = cuda.gridDim.x * TILE
        height = cuda.gridDim.y * TILE

        for j in range(0, TILE, ROWS):
            tile[ty + j, tx] = idata[(y + j) * width + x]

        cuda.syncthreads()

        x = cuda.blockIdx.y * TILE + tx
        y = cuda.blockIdx.x * TILE + ty

        for j in range(0, TILE, ROWS):
            odata[(y + j) * height + x] = tile[tx, ty + j]

    return {
        'copy': copy,
        'copy_shared': copy_shared_mem,
        'transpose_naive': transpose_naive,
        'transpose_coalesced': transpose_coalesced,
        'transpose_no_bank_conflicts': transpose_no_bank_conflicts
    }
