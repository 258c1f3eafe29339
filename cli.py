#!/usr/bin/env python3
"""
Command-line interface for the matrix copy/transpose bandwidth benchmark.
"""
import argparse
import sys
from typing import List, Optional

from transposebench.backends import BACKENDS, create_device
from transposebench.errors import ConfigurationError, DeviceError
from transposebench.transpose.bandwidth import TransposeBandwidthTest, default_plot_file
from transposebench.transpose.config import (
    BLOCK_ROWS, NUM_REPS, NX, NY, SENTINEL, TILE_DIM, BenchmarkConfig, TileGeometry
)
from transposebench.transpose.kernels import KERNEL_VARIANTS


def parse_args(argv: Optional[List[str]] = None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Matrix copy/transpose bandwidth benchmark",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    run_parser = subparsers.add_parser(
        "run",
        help="Benchmark the copy and transpose kernels",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    _add_geometry_args(run_parser)
    run_parser.add_argument(
        "--backend",
        choices=list(BACKENDS),
        default="cuda",
        help="Device to run the kernels on ('host' simulates the GPU, slowly)"
    )
    run_parser.add_argument(
        "--gpu",
        type=int,
        default=0,
        help="GPU device ID to use"
    )
    run_parser.add_argument(
        "--reps",
        type=int,
        default=NUM_REPS,
        help="Number of timed launches per kernel"
    )
    run_parser.add_argument(
        "--variants",
        type=str,
        nargs="+",
        default=KERNEL_VARIANTS.list(),
        choices=KERNEL_VARIANTS.list(),
        help="Kernel variants to benchmark, in order"
    )
    run_parser.add_argument(
        "--plot",
        action="store_true",
        help="Plot the bandwidth of each variant"
    )
    run_parser.add_argument(
        "--plot-file",
        type=str,
        default=None,
        help="Output file for the plot (default: auto-generated; implies --plot)"
    )
    run_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only print the report"
    )

    geometry_parser = subparsers.add_parser(
        "geometry",
        help="Validate a geometry and print its launch configuration",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    _add_geometry_args(geometry_parser)

    subparsers.add_parser(
        "list-kernels",
        help="List available kernel variants"
    )

    return parser.parse_args(argv)


def _add_geometry_args(parser):
    """Add matrix and tile geometry arguments to a parser."""
    parser.add_argument("--nx", type=int, default=NX, help="Matrix columns")
    parser.add_argument("--ny", type=int, default=NY, help="Matrix rows")
    parser.add_argument("--tile-dim", type=int, default=TILE_DIM, help="Tile edge length")
    parser.add_argument("--block-rows", type=int, default=BLOCK_ROWS, help="Rows per pass of a thread block")


def _geometry(args) -> TileGeometry:
    return TileGeometry(nx=args.nx, ny=args.ny, tile_dim=args.tile_dim, block_rows=args.block_rows)


def run_benchmark(args) -> int:
    """Run the bandwidth benchmark. Returns the exit status."""
    config = BenchmarkConfig(
        geometry=_geometry(args),
        num_reps=args.reps,
        sentinel=SENTINEL,
        variants=args.variants
    )

    with create_device(args.backend, args.gpu) as device:
        benchmark = TransposeBandwidthTest(device=device, config=config, verbose=not args.quiet)
        result = benchmark.run()

        if args.quiet:
            for rec in result.results.values():
                print(f"{rec['label']}: "
                      f"{'FAILED' if rec['bandwidth_gbs'] is None else format(rec['bandwidth_gbs'], '.2f')}")

        if args.plot or args.plot_file:
            benchmark.plot(result, output_file=args.plot_file or default_plot_file(result))

    return 1 if result.failed else 0


def show_geometry(args) -> int:
    """Print the launch configuration of a geometry."""
    geometry = _geometry(args)
    print(f"Matrix: {geometry.ny} rows x {geometry.nx} columns ({geometry.total_bytes} bytes)")
    print(f"Tile: {geometry.tile_dim}x{geometry.tile_dim}, {geometry.block_rows} rows per pass, "
          f"{geometry.rows_per_thread} elements per thread")
    print(f"dimGrid: {geometry.grid}. dimBlock: {geometry.block}")
    return 0


def list_kernels(args) -> int:
    """List available kernel variants."""
    print("\nAvailable kernel variants:")
    for variant in KERNEL_VARIANTS:
        print(f"  - {variant.name}: {variant.description}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    commands = {
        "run": run_benchmark,
        "geometry": show_geometry,
        "list-kernels": list_kernels,
    }
    if args.command not in commands:
        print("Please specify a command")
        return 1

    try:
        return commands[args.command](args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except DeviceError as e:
        print(f"Device error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
