from __future__ import annotations

import numpy as np
import pytest

from transposebench.backends import HostBuffer, HostDevice, create_device
from transposebench.errors import DeviceError
from transposebench.transpose.config import TileGeometry
from transposebench.transpose.kernels import get_variant
from transposebench.transpose.reference import initial_matrix


def test_upload_download_round_trip_is_a_copy() -> None:
    matrix = np.arange(12, dtype=np.float32).reshape(3, 4)
    with HostDevice() as device:
        buffer = device.upload(HostBuffer(matrix))
        matrix[0, 0] = 100.0
        downloaded = device.download(buffer).array

    assert downloaded.shape == (3, 4)
    assert downloaded[0, 0] == 0.0


def test_fill_writes_sentinel() -> None:
    with HostDevice() as device:
        buffer = device.allocate((2, 2))
        device.fill(buffer, -1.0)
        assert (device.download(buffer).array == -1.0).all()


def test_released_buffer_cannot_be_used() -> None:
    device = HostDevice()
    buffer = device.allocate((2, 2))
    buffer.release()
    assert buffer.released
    assert device.live_buffers == []
    with pytest.raises(DeviceError, match="after release"):
        device.download(buffer)


def test_close_releases_everything() -> None:
    device = HostDevice()
    buffers = [device.allocate((4, 4)) for _ in range(3)]
    device.close()
    assert device.live_buffers == []
    assert all(b.released for b in buffers)


def test_buffers_are_bound_to_their_device() -> None:
    first, second = HostDevice(), HostDevice()
    buffer = first.allocate((1, 1))
    with pytest.raises(DeviceError, match="another device"):
        second.fill(buffer, 0.0)


def test_host_buffer_must_be_a_matrix() -> None:
    with pytest.raises(ValueError):
        HostBuffer(np.zeros(4, dtype=np.float32))


def test_host_buffer_converts_to_float32() -> None:
    assert HostBuffer(np.ones((2, 2), dtype=np.float64)).array.dtype == np.float32


def test_host_timer_requires_start_and_stop() -> None:
    timer = HostDevice().create_timer()
    with pytest.raises(DeviceError):
        timer.elapsed_ms()
    timer.start()
    timer.stop()
    assert timer.elapsed_ms() >= 0.0


def test_create_device() -> None:
    assert create_device("host").backend == "host"
    with pytest.raises(ValueError, match="Unknown backend"):
        create_device("opencl")


def test_prepared_launcher_runs_the_kernel_on_bound_buffers() -> None:
    geometry = TileGeometry(nx=64, ny=32)
    matrix = initial_matrix(geometry.nx, geometry.ny)
    with HostDevice() as device:
        inp = device.upload(HostBuffer(matrix))
        out = device.allocate(geometry.transposed_shape)
        launcher = device.prepare(get_variant("transpose_no_bank_conflicts"), geometry, out, inp)
        device.fill(out, -1.0)
        launcher()
        np.testing.assert_array_equal(device.download(out).array, matrix.T)


def test_prepare_rejects_mismatched_buffers() -> None:
    geometry = TileGeometry(nx=64, ny=32)
    with HostDevice() as device:
        inp = device.allocate(geometry.shape)
        out = device.allocate(geometry.shape)
        with pytest.raises(DeviceError, match="do not match"):
            device.prepare(get_variant("transpose_naive"), geometry, out, inp)
