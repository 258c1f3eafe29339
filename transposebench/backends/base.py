"""
Host/device buffer handles and the device interface.

Host and device memory are kept apart: data only crosses the boundary through
:meth:`Device.upload` and :meth:`Device.download`, both synchronous. Device
buffers belong to the device that allocated them and stay valid until
released.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from ..errors import DeviceError
from ..simt import SharedMemoryStats

if TYPE_CHECKING:
    from ..transpose.config import TileGeometry
    from ..transpose.kernels import KernelVariant


class HostBuffer:
    """
    Owned 2-D float32 matrix in host memory.
    """
    def __init__(self, array: np.ndarray):
        array = np.ascontiguousarray(array, dtype=np.float32)
        if array.ndim != 2:
            raise ValueError(f"HostBuffer needs a 2-D matrix, got shape {array.shape}")
        self.array = array

    @property
    def shape(self) -> Tuple[int, int]:
        return self.array.shape


class DeviceBuffer:
    """
    Handle to a flat float32 allocation in device memory with a logical 2-D shape.
    """
    def __init__(self, device: 'Device', data: Any, shape: Tuple[int, int]):
        self.device = device
        self.shape = tuple(shape)
        self._data = data

    @property
    def data(self) -> Any:
        if self._data is None:
            raise DeviceError(f"device buffer of shape {self.shape} used after release")
        return self._data

    @property
    def released(self) -> bool:
        return self._data is None

    def release(self) -> None:
        if self._data is not None:
            self.device._release(self)
            self._data = None


class Device(ABC):
    """
    An accelerator the kernel variants can run on.

    Subclasses provide the raw memory, transfer, launch and timing primitives;
    this class keeps track of live allocations and checks buffer shapes.
    """
    backend = 'abstract'

    def __init__(self):
        self._live: List[DeviceBuffer] = []

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def device_info(self) -> Dict[str, Any]:
        pass

    @property
    def live_buffers(self) -> List[DeviceBuffer]:
        return list(self._live)

    def allocate(self, shape: Tuple[int, int]) -> DeviceBuffer:
        """
        Allocate an uninitialised device buffer.

        Args:
            shape: Logical (rows, cols) shape

        Returns:
            The new DeviceBuffer
        """
        buffer = DeviceBuffer(self, self._allocate(shape[0] * shape[1]), shape)
        self._live.append(buffer)
        return buffer

    def upload(self, host: HostBuffer) -> DeviceBuffer:
        """Allocate a device buffer and copy ``host`` into it."""
        buffer = self.allocate(host.shape)
        self._copy_to_device(buffer, host.array)
        return buffer

    def download(self, buffer: DeviceBuffer) -> HostBuffer:
        """Copy a device buffer back into a new host buffer."""
        self._check_owned(buffer)
        return HostBuffer(self._copy_to_host(buffer).reshape(buffer.shape))

    def fill(self, buffer: DeviceBuffer, value: float) -> None:
        self._check_owned(buffer)
        self._fill(buffer, value)

    def launch(
        self,
        variant: 'KernelVariant',
        geometry: 'TileGeometry',
        out: DeviceBuffer,
        inp: DeviceBuffer,
        profile: bool = False
    ) -> Optional[SharedMemoryStats]:
        """
        Launch a kernel variant over the whole matrix, asynchronously where the device allows.

        Args:
            variant: Kernel variant to launch
            geometry: Matrix and tile geometry (gives grid and block dimensions)
            out: Output buffer
            inp: Input buffer
            profile: Whether to collect shared-memory statistics, if the device can

        Returns:
            Shared-memory statistics if collected, else None
        """
        self._check_launch(variant, geometry, out, inp)
        return self._launch(variant, geometry, out, inp, profile)

    def prepare(
        self,
        variant: 'KernelVariant',
        geometry: 'TileGeometry',
        out: DeviceBuffer,
        inp: DeviceBuffer
    ) -> Callable[[], None]:
        """
        Bind a kernel variant to its buffers and launch configuration.

        Checks, kernel lookup and argument conversion happen here, once; the
        returned zero-argument launcher only enqueues the kernel, so timing a
        loop of launcher calls measures the kernels and not the host.
        Buffers must not be released while the launcher is in use.
        """
        self._check_launch(variant, geometry, out, inp)
        return self._prepare(variant, geometry, out, inp)

    @abstractmethod
    def create_timer(self):
        """Create a timer recording points on this device's timeline."""
        pass

    @abstractmethod
    def synchronize(self) -> None:
        pass

    def close(self) -> None:
        """Release every buffer still allocated on this device."""
        for buffer in list(self._live):
            buffer.release()

    def __enter__(self) -> 'Device':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _check_owned(self, buffer: DeviceBuffer) -> None:
        if buffer.device is not self:
            raise DeviceError("device buffer belongs to another device")
        if buffer.released:
            raise DeviceError(f"device buffer of shape {buffer.shape} used after release")

    def _check_launch(self, variant, geometry, out: DeviceBuffer, inp: DeviceBuffer) -> None:
        self._check_owned(out)
        self._check_owned(inp)
        expected_out = geometry.transposed_shape if variant.transposes else geometry.shape
        if inp.shape != geometry.shape or out.shape != expected_out:
            raise DeviceError(
                f"{variant.name}: buffer shapes in={inp.shape} out={out.shape} do not match "
                f"geometry in={geometry.shape} out={expected_out}"
            )

    def _release(self, buffer: DeviceBuffer) -> None:
        self._live.remove(buffer)
        self._free(buffer)

    @abstractmethod
    def _allocate(self, num_elements: int) -> Any:
        pass

    def _free(self, buffer: DeviceBuffer) -> None:
        pass

    @abstractmethod
    def _copy_to_device(self, buffer: DeviceBuffer, array: np.ndarray) -> None:
        pass

    @abstractmethod
    def _copy_to_host(self, buffer: DeviceBuffer) -> np.ndarray:
        pass

    @abstractmethod
    def _fill(self, buffer: DeviceBuffer, value: float) -> None:
        pass

    @abstractmethod
    def _launch(
        self,
        variant: 'KernelVariant',
        geometry: 'TileGeometry',
        out: DeviceBuffer,
        inp: DeviceBuffer,
        profile: bool
    ) -> Optional[SharedMemoryStats]:
        pass

    @abstractmethod
    def _prepare(
        self,
        variant: 'KernelVariant',
        geometry: 'TileGeometry',
        out: DeviceBuffer,
        inp: DeviceBuffer
    ) -> Callable[[], None]:
        pass
