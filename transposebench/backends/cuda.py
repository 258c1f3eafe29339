"""
CUDA backend: torch owns device memory and events, numba compiles the kernels.

Kernels are launched on torch's current stream so that torch events bracket
them on the same timeline.
"""
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

import numpy as np
import torch
from numba import cuda
from numba.core.errors import NumbaError
from numba.cuda.cudadrv.driver import CudaAPIError
from numba.cuda.cudadrv.error import CudaSupportError

from ..errors import DeviceError
from ..simt import SharedMemoryStats
from ..transpose.cuda_kernels import build_cuda_kernels
from ..utils.device import get_device_info
from ..utils.profiling import CudaEventTimer
from .base import Device, DeviceBuffer

_DEVICE_ERRORS = (RuntimeError, NumbaError, CudaAPIError, CudaSupportError)


@contextmanager
def _device_call(what: str) -> Iterator[None]:
    try:
        yield
    except _DEVICE_ERRORS as exc:
        raise DeviceError(f"{what} failed: {exc}") from exc


class CudaDevice(Device):
    """
    A CUDA GPU.

    Args:
        device_id: CUDA device ID to use
    """
    backend = 'cuda'

    def __init__(self, device_id: int = 0):
        super().__init__()
        if not torch.cuda.is_available():
            raise DeviceError("CUDA is not available")
        if device_id >= torch.cuda.device_count():
            raise DeviceError(
                f"Device ID {device_id} is out of range. Available devices: {torch.cuda.device_count()}"
            )
        with _device_call("device selection"):
            torch.cuda.set_device(device_id)
        self.device_id = device_id
        self.device = torch.device(f"cuda:{device_id}")

    @property
    def name(self) -> str:
        return torch.cuda.get_device_name(self.device_id)

    def device_info(self) -> Dict[str, Any]:
        return get_device_info(self.device_id)

    def create_timer(self) -> CudaEventTimer:
        with _device_call("timer creation"):
            return CudaEventTimer()

    def synchronize(self) -> None:
        with _device_call("synchronize"):
            torch.cuda.synchronize(self.device)

    def _allocate(self, num_elements: int) -> torch.Tensor:
        with _device_call(f"allocation of {num_elements} floats"):
            return torch.empty(num_elements, dtype=torch.float32, device=self.device)

    def _copy_to_device(self, buffer: DeviceBuffer, array: np.ndarray) -> None:
        with _device_call("host-to-device copy"):
            buffer.data.copy_(torch.from_numpy(np.ascontiguousarray(array).ravel()))
            torch.cuda.synchronize(self.device)

    def _copy_to_host(self, buffer: DeviceBuffer) -> np.ndarray:
        with _device_call("device-to-host copy"):
            return buffer.data.cpu().numpy()

    def _fill(self, buffer: DeviceBuffer, value: float) -> None:
        with _device_call("fill"):
            buffer.data.fill_(value)

    def _launch(self, variant, geometry, out, inp, profile: bool) -> Optional[SharedMemoryStats]:
        kernel = build_cuda_kernels(geometry.tile_dim, geometry.block_rows)[variant.name]
        with _device_call(f"launch of {variant.name}"):
            kernel[geometry.grid.as_tuple(), geometry.block.as_tuple(), self._stream()](
                cuda.as_cuda_array(out.data), cuda.as_cuda_array(inp.data)
            )
        return None

    def _prepare(self, variant, geometry, out, inp) -> Callable[[], None]:
        kernel = build_cuda_kernels(geometry.tile_dim, geometry.block_rows)[variant.name]
        with _device_call(f"preparation of {variant.name}"):
            d_out, d_in = cuda.as_cuda_array(out.data), cuda.as_cuda_array(inp.data)
            # Specialising on the argument types skips type dispatch on each call.
            configured = kernel.specialize(d_out, d_in)[
                geometry.grid.as_tuple(), geometry.block.as_tuple(), self._stream()
            ]

        def launcher() -> None:
            try:
                configured(d_out, d_in)
            except _DEVICE_ERRORS as exc:
                raise DeviceError(f"launch of {variant.name} failed: {exc}") from exc

        return launcher

    def _stream(self):
        handle = torch.cuda.current_stream(self.device).cuda_stream
        if handle == 0:
            return cuda.default_stream()
        return cuda.external_stream(handle)
