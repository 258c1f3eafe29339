"""
Matrix copy/transpose bandwidth benchmark.

For every kernel variant the harness resets the output buffer to a sentinel,
launches once to warm up, times ``num_reps`` back-to-back launches, downloads
the output and compares it exactly against the host reference. Bandwidth is
only reported for variants whose output matches.
"""
from typing import Any, Dict, List, Optional

from ..backends import Device, HostBuffer, create_device
from ..base import BenchmarkResult, BenchmarkTest
from ..errors import CorrectnessFailure, DeviceError
from ..utils.device import sanitize_filename
from ..utils.plotting import plot_variant_bandwidth
from ..utils.profiling import effective_bandwidth, time_repeated
from .config import BenchmarkConfig, TileGeometry
from .kernels import KernelVariant, get_variant
from .reference import initial_matrix, reference_transpose, verify_result

FAILED_MARKER = '*** FAILED ***'


def format_report_header() -> str:
    return f"{'Routine':<25}{'Bandwidth (GB/s)':>20}"


def format_report_line(label: str, bandwidth_gbs: Optional[float]) -> str:
    """
    One console report row: the variant label and its bandwidth, or a failure marker.
    """
    if bandwidth_gbs is None:
        return f"{label:<25}{FAILED_MARKER:>20}"
    return f"{label:<25}{bandwidth_gbs:>20.2f}"


class TransposeBandwidthTest(BenchmarkTest):
    """
    Benchmark for the effective bandwidth of matrix copy and transpose kernels.
    """
    def __init__(
        self,
        device: Device,
        config: Optional[BenchmarkConfig] = None,
        name: str = "transpose_bandwidth",
        verbose: bool = True
    ):
        """
        Initialize a transpose bandwidth benchmark.

        Args:
            device: Device to run the kernels on
            config: Benchmark configuration (default: 1024x1024, 32x8 tiles, 100 reps)
            name: Name of the benchmark
            verbose: Whether to print progress information
        """
        super().__init__(name, device, verbose)
        self.config = config or BenchmarkConfig()

    @property
    def geometry(self) -> TileGeometry:
        return self.config.geometry

    def measure_variant(
        self,
        variant: KernelVariant,
        out,
        inp,
        expected
    ) -> Dict[str, Any]:
        """
        Time one kernel variant and check its output.

        Args:
            variant: Kernel variant to benchmark
            out: Device output buffer
            inp: Device input buffer
            expected: Host reference the output must equal

        Returns:
            Dictionary with the variant's status, timing and bandwidth
        """
        geometry = self.geometry
        reps = self.config.num_reps

        # Stale data from a previous variant must never pass the check.
        self.device.fill(out, self.config.sentinel)

        shared_stats = self.device.launch(variant, geometry, out, inp, profile=True)

        launcher = self.device.prepare(variant, geometry, out, inp)
        elapsed_ms = time_repeated(launcher, self.device.create_timer(), reps)
        if not elapsed_ms > 0:
            raise DeviceError(f"{variant.name}: timer reported a non-positive elapsed time ({elapsed_ms} ms)")

        actual = self.download(variant, out)

        record = {
            'label': variant.label,
            'status': 'passed',
            'elapsed_ms': elapsed_ms,
            'bandwidth_gbs': None,
            'mismatches': 0,
            'first_mismatch': None,
            'shared_memory': shared_stats.to_dict() if shared_stats is not None else None
        }
        try:
            verify_result(variant.name, actual.array, expected)
        except CorrectnessFailure as failure:
            record['status'] = 'failed'
            record['mismatches'] = failure.mismatches
            record['first_mismatch'] = list(failure.first_mismatch) if failure.first_mismatch else None
            if self.verbose:
                print(f"  {failure}")
        else:
            record['bandwidth_gbs'] = effective_bandwidth(geometry.total_bytes, elapsed_ms, reps)
        return record

    def download(self, variant: KernelVariant, buffer) -> HostBuffer:
        """
        Transfer a variant's output to the host.

        ``variant`` is unused here; it lets subclasses intercept one variant's output.
        """
        return self.device.download(buffer)

    def run(self, variants: Optional[List[str]] = None) -> BenchmarkResult:
        """
        Run the benchmark and return results.

        Args:
            variants: Kernel variants to run, in order (default: those in the config)

        Returns:
            BenchmarkResult containing the benchmark results
        """
        names = list(variants or self.config.variants)
        selected = [get_variant(name) for name in names]
        geometry = self.geometry

        host_input = HostBuffer(initial_matrix(geometry.nx, geometry.ny))
        reference = reference_transpose(host_input.array)

        if self.verbose:
            print(f"\nDevice: {self.device.name}")
            print(f"Matrix size: {geometry.nx} {geometry.ny}, "
                  f"Block size: {geometry.tile_dim} {geometry.block_rows}, "
                  f"Tile size: {geometry.tile_dim} {geometry.tile_dim}")
            print(f"dimGrid: {geometry.grid}. dimBlock: {geometry.block}")
            print(format_report_header())

        results: Dict[str, Dict[str, Any]] = {}
        buffers = []
        try:
            d_input = self.device.upload(host_input)
            buffers.append(d_input)
            d_copy = self.device.allocate(geometry.shape)
            buffers.append(d_copy)
            d_transpose = self.device.allocate(geometry.transposed_shape)
            buffers.append(d_transpose)

            for variant in selected:
                if variant.transposes:
                    record = self.measure_variant(variant, d_transpose, d_input, reference)
                else:
                    record = self.measure_variant(variant, d_copy, d_input, host_input.array)
                results[variant.name] = record
                if self.verbose:
                    print(format_report_line(variant.label, record['bandwidth_gbs']))
        finally:
            for buffer in buffers:
                buffer.release()

        parameters = self.config.to_dict()
        parameters['variants'] = names
        parameters['backend'] = self.device.backend

        return BenchmarkResult(
            name=self.name,
            device_info=self.device.device_info(),
            parameters=parameters,
            results=results
        )

    def plot(
        self,
        result: BenchmarkResult,
        output_file: Optional[str] = None
    ):
        """
        Plot the benchmark results.

        Args:
            result: BenchmarkResult to plot
            output_file: If provided, save the plot to this file

        Returns:
            Matplotlib figure object
        """
        device_name = result.device_info.get('name', 'Unknown device')
        params = result.parameters
        title = (f"Matrix copy/transpose bandwidth ({device_name}, "
                 f"{params['nx']}x{params['ny']}, tile {params['tile_dim']}x{params['block_rows']})")
        return plot_variant_bandwidth(result.results, title=title, output_file=output_file)


def default_plot_file(result: BenchmarkResult) -> str:
    device_name = sanitize_filename(result.device_info.get('name', 'unknown'))
    return f"{result.name}_{device_name}.png"


def main(
    backend: str = 'cuda',
    device_id: int = 0,
    config: Optional[BenchmarkConfig] = None,
    verbose: bool = True,
    output_file: Optional[str] = None
) -> BenchmarkResult:
    """
    Run a transpose bandwidth benchmark and optionally plot the results.

    Args:
        backend: 'cuda' or 'host'
        device_id: CUDA device ID to use
        config: Benchmark configuration (default: 1024x1024, 32x8 tiles, 100 reps)
        verbose: Whether to print progress information
        output_file: Output file for the plot (no plot if None)

    Returns:
        BenchmarkResult containing the benchmark results
    """
    # Geometry is validated here, before a device exists.
    config = config or BenchmarkConfig()

    with create_device(backend, device_id) as device:
        benchmark = TransposeBandwidthTest(device=device, config=config, verbose=verbose)
        result = benchmark.run()
        if output_file:
            benchmark.plot(result, output_file=output_file)

    return result
