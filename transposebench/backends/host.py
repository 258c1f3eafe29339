"""
Host backend: device memory is numpy, kernels run on the SIMT simulator.
"""
from typing import Any, Callable, Dict, Optional

import numpy as np

from ..simt import HostExecutor, SharedMemoryStats
from ..utils.device import get_host_info
from ..utils.profiling import HostTimer
from .base import Device, DeviceBuffer


class HostDevice(Device):
    """
    Simulated device. Launches are synchronous, so host wall-clock time is the device time.

    Args:
        track_bank_conflicts: Collect shared-memory statistics on every launch,
            not only on launches that ask for them
    """
    backend = 'host'

    def __init__(self, track_bank_conflicts: bool = False):
        super().__init__()
        self.track_bank_conflicts = track_bank_conflicts
        self._info = get_host_info()

    @property
    def name(self) -> str:
        return self._info['name']

    def device_info(self) -> Dict[str, Any]:
        return dict(self._info)

    def create_timer(self) -> HostTimer:
        return HostTimer()

    def synchronize(self) -> None:
        pass

    def _allocate(self, num_elements: int) -> np.ndarray:
        return np.empty(num_elements, dtype=np.float32)

    def _copy_to_device(self, buffer: DeviceBuffer, array: np.ndarray) -> None:
        buffer.data[:] = array.ravel()

    def _copy_to_host(self, buffer: DeviceBuffer) -> np.ndarray:
        return buffer.data.copy()

    def _fill(self, buffer: DeviceBuffer, value: float) -> None:
        buffer.data.fill(value)

    def _launch(self, variant, geometry, out, inp, profile: bool) -> Optional[SharedMemoryStats]:
        executor = HostExecutor(track_bank_conflicts=profile or self.track_bank_conflicts)
        return executor.launch(variant.host_kernel, geometry.grid, geometry.block, out.data, inp.data)

    def _prepare(self, variant, geometry, out, inp) -> Callable[[], None]:
        executor = HostExecutor(track_bank_conflicts=self.track_bank_conflicts)
        kernel, grid, block = variant.host_kernel, geometry.grid, geometry.block
        odata, idata = out.data, inp.data

        def launcher() -> None:
            executor.launch(kernel, grid, block, odata, idata)

        return launcher
