from __future__ import annotations

import pytest

from transposebench.errors import ConfigurationError
from transposebench.simt import Dim3
from transposebench.transpose.config import BenchmarkConfig, TileGeometry, launch_config
from transposebench.transpose.kernels import KERNEL_VARIANTS


def test_defaults_match_benchmark_configuration() -> None:
    geometry = TileGeometry()
    assert (geometry.nx, geometry.ny, geometry.tile_dim, geometry.block_rows) == (1024, 1024, 32, 8)
    assert geometry.grid == Dim3(32, 32, 1)
    assert geometry.block == Dim3(32, 8, 1)
    assert geometry.total_bytes == 1024 * 1024 * 4

    config = BenchmarkConfig()
    assert config.num_reps == 100
    assert config.sentinel == -1.0
    assert config.variants == tuple(KERNEL_VARIANTS.list())


def test_single_tile_launch_config() -> None:
    geometry = TileGeometry(nx=32, ny=32, tile_dim=32, block_rows=8)
    assert geometry.grid.as_tuple() == (1, 1, 1)
    assert geometry.block.as_tuple() == (32, 8, 1)
    assert geometry.rows_per_thread == 4


def test_non_square_launch_config() -> None:
    geometry = TileGeometry(nx=64, ny=32, tile_dim=32, block_rows=8)
    assert geometry.grid.as_tuple() == (2, 1, 1)
    assert geometry.shape == (32, 64)
    assert geometry.transposed_shape == (64, 32)


def test_launch_config_is_pure_function() -> None:
    grid, block = launch_config(nx=128, ny=64, tile_dim=16, block_rows=4)
    assert grid == Dim3(8, 4, 1)
    assert block == Dim3(16, 4, 1)


def test_columns_not_multiple_of_tile() -> None:
    with pytest.raises(ConfigurationError, match="nx=33"):
        TileGeometry(nx=33, ny=32)


def test_rows_not_multiple_of_tile() -> None:
    with pytest.raises(ConfigurationError, match="ny=40"):
        TileGeometry(nx=32, ny=40)


def test_tile_not_multiple_of_block_rows() -> None:
    with pytest.raises(ConfigurationError, match="BLOCK_ROWS=7"):
        TileGeometry(nx=32, ny=32, tile_dim=32, block_rows=7)


def test_block_larger_than_thread_limit_rejected() -> None:
    with pytest.raises(ConfigurationError, match="exceeds 1024 threads"):
        TileGeometry(nx=64, ny=64, tile_dim=64, block_rows=32)


def test_block_at_thread_limit_accepted() -> None:
    assert TileGeometry(nx=64, ny=64, tile_dim=64, block_rows=16).block.count == 1024


@pytest.mark.parametrize("field", ["nx", "ny", "tile_dim", "block_rows"])
def test_non_positive_values_rejected(field: str) -> None:
    with pytest.raises(ConfigurationError, match=field):
        TileGeometry(**{field: 0})


def test_geometry_is_immutable() -> None:
    geometry = TileGeometry(nx=32, ny=32)
    with pytest.raises(AttributeError):
        geometry.nx = 64  # type: ignore[misc]


def test_config_rejects_unknown_variant() -> None:
    with pytest.raises(ConfigurationError, match="transpose_magic"):
        BenchmarkConfig(variants=["copy", "transpose_magic"])


def test_config_rejects_empty_variant_list() -> None:
    with pytest.raises(ConfigurationError):
        BenchmarkConfig(variants=[])


def test_config_rejects_zero_reps() -> None:
    with pytest.raises(ConfigurationError, match="num_reps"):
        BenchmarkConfig(num_reps=0)


def test_config_to_dict() -> None:
    config = BenchmarkConfig(geometry=TileGeometry(nx=64, ny=32), num_reps=3, variants=["copy"])
    assert config.to_dict() == {
        "nx": 64,
        "ny": 32,
        "tile_dim": 32,
        "block_rows": 8,
        "grid": [2, 1, 1],
        "block": [32, 8, 1],
        "num_reps": 3,
        "sentinel": -1.0,
        "variants": ["copy"],
    }
