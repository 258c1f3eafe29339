"""
Devices the benchmark can run on.

- ``host``: numpy buffers and the SIMT simulator (no GPU needed)
- ``cuda``: torch buffers and numba CUDA kernels
"""
from .base import Device, DeviceBuffer, HostBuffer
from .host import HostDevice

BACKENDS = ('host', 'cuda')


def create_device(backend: str, device_id: int = 0, track_bank_conflicts: bool = False) -> Device:
    """
    Create a device for the named backend.

    Args:
        backend: 'host' or 'cuda'
        device_id: CUDA device ID (cuda backend only)
        track_bank_conflicts: Collect shared-memory statistics on every launch (host backend only)

    Returns:
        The Device
    """
    if backend == 'host':
        return HostDevice(track_bank_conflicts=track_bank_conflicts)
    if backend == 'cuda':
        from .cuda import CudaDevice
        return CudaDevice(device_id)
    raise ValueError(f"Unknown backend: {backend}. Available backends: {list(BACKENDS)}")
