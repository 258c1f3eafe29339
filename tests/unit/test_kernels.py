from __future__ import annotations

import numpy as np
import pytest

from transposebench.backends import HostBuffer, HostDevice
from transposebench.errors import DeviceError
from transposebench.transpose.config import TileGeometry
from transposebench.transpose.kernels import KERNEL_VARIANTS, get_variant
from transposebench.transpose.reference import initial_matrix

GEOMETRIES = [
    TileGeometry(nx=32, ny=32, tile_dim=32, block_rows=8),
    TileGeometry(nx=64, ny=32, tile_dim=32, block_rows=8),
    TileGeometry(nx=16, ny=48, tile_dim=16, block_rows=4),
    TileGeometry(nx=8, ny=8, tile_dim=8, block_rows=8),
]


def _run(variant_name: str, geometry: TileGeometry, matrix: np.ndarray, profile: bool = False):
    variant = get_variant(variant_name)
    with HostDevice() as device:
        inp = device.upload(HostBuffer(matrix))
        out = device.allocate(geometry.transposed_shape if variant.transposes else geometry.shape)
        device.fill(out, -1.0)
        stats = device.launch(variant, geometry, out, inp, profile=profile)
        return device.download(out).array, stats


def _random_matrix(geometry: TileGeometry, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.standard_normal(geometry.shape).astype(np.float32)


def test_registry_order() -> None:
    assert KERNEL_VARIANTS.list() == [
        "copy",
        "copy_shared",
        "transpose_naive",
        "transpose_coalesced",
        "transpose_no_bank_conflicts",
    ]
    assert [v.transposes for v in KERNEL_VARIANTS] == [False, False, True, True, True]


def test_unknown_variant() -> None:
    with pytest.raises(ValueError, match="Available"):
        get_variant("transpose_magic")


@pytest.mark.parametrize("geometry", GEOMETRIES, ids=str)
@pytest.mark.parametrize("name", ["copy", "copy_shared"])
def test_copy_kernels_reproduce_input(name: str, geometry: TileGeometry) -> None:
    matrix = _random_matrix(geometry)
    actual, _ = _run(name, geometry, matrix)
    np.testing.assert_array_equal(actual, matrix)


@pytest.mark.parametrize("geometry", GEOMETRIES, ids=str)
@pytest.mark.parametrize("name", ["transpose_naive", "transpose_coalesced", "transpose_no_bank_conflicts"])
def test_transpose_kernels_produce_transpose(name: str, geometry: TileGeometry) -> None:
    matrix = _random_matrix(geometry, seed=1)
    actual, _ = _run(name, geometry, matrix)
    assert actual.shape == (geometry.nx, geometry.ny)
    np.testing.assert_array_equal(actual, matrix.T)


def test_single_tile_transpose_of_counting_matrix() -> None:
    geometry = TileGeometry(nx=32, ny=32, tile_dim=32, block_rows=8)
    matrix = initial_matrix(32, 32)
    for name in ("transpose_naive", "transpose_coalesced", "transpose_no_bank_conflicts"):
        actual, _ = _run(name, geometry, matrix)
        np.testing.assert_array_equal(actual, matrix.T)


def test_padding_changes_nothing_but_bank_layout() -> None:
    geometry = TileGeometry(nx=64, ny=32)
    matrix = _random_matrix(geometry, seed=2)
    coalesced, _ = _run("transpose_coalesced", geometry, matrix)
    padded, _ = _run("transpose_no_bank_conflicts", geometry, matrix)
    assert coalesced.tobytes() == padded.tobytes()


def test_bank_conflicts_of_unpadded_tile() -> None:
    geometry = TileGeometry(nx=32, ny=32, tile_dim=32, block_rows=8)
    _, stats = _run("transpose_coalesced", geometry, initial_matrix(32, 32), profile=True)

    # 8 warps x 4 row stores (conflict free) + 8 warps x 4 column loads (32-way).
    assert stats.requests == 64
    assert stats.wavefronts == 32 + 32 * 32
    assert stats.conflicts == 992


def test_padded_tile_is_conflict_free() -> None:
    geometry = TileGeometry(nx=64, ny=64, tile_dim=32, block_rows=8)
    _, stats = _run("transpose_no_bank_conflicts", geometry, initial_matrix(64, 64), profile=True)

    assert stats.requests == 4 * 64
    assert stats.conflicts == 0


@pytest.mark.parametrize("name,requests", [("copy", 0), ("transpose_naive", 0), ("copy_shared", 64)])
def test_shared_traffic_of_other_kernels(name: str, requests: int) -> None:
    geometry = TileGeometry(nx=32, ny=32)
    _, stats = _run(name, geometry, initial_matrix(32, 32), profile=True)
    assert stats.requests == requests
    assert stats.conflicts == 0


def test_launch_without_profile_returns_no_stats() -> None:
    geometry = TileGeometry(nx=32, ny=32)
    _, stats = _run("copy_shared", geometry, initial_matrix(32, 32))
    assert stats is None


def test_launch_rejects_mismatched_buffers() -> None:
    geometry = TileGeometry(nx=64, ny=32)
    with HostDevice() as device:
        inp = device.upload(HostBuffer(initial_matrix(64, 32)))
        out = device.allocate(geometry.shape)
        with pytest.raises(DeviceError, match="transpose_naive"):
            device.launch(get_variant("transpose_naive"), geometry, out, inp)
