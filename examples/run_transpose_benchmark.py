#!/usr/bin/env python3
"""
Example script for running the transpose bandwidth benchmark.

This script demonstrates how to use the benchmarking API to run the five
copy/transpose kernels and plot their bandwidth. It runs on the GPU when one
is available and falls back to the (much slower) host simulator on a small
matrix otherwise.
"""
import os
import sys

import torch

# Add the parent directory to the path so we can import the transposebench package
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from transposebench.backends import create_device
from transposebench.transpose.bandwidth import TransposeBandwidthTest, default_plot_file
from transposebench.transpose.config import BenchmarkConfig, TileGeometry


def main():
    """Run the transpose bandwidth benchmark."""
    if torch.cuda.is_available():
        backend = "cuda"
        config = BenchmarkConfig()
    else:
        print("CUDA is not available, using the host simulator")
        backend = "host"
        config = BenchmarkConfig(geometry=TileGeometry(nx=64, ny=64), num_reps=5)

    output_dir = "results"
    os.makedirs(output_dir, exist_ok=True)

    with create_device(backend) as device:
        benchmark = TransposeBandwidthTest(device=device, config=config, verbose=True)

        print("\nRunning transpose bandwidth benchmark...")
        result = benchmark.run()

        for name, rec in result.results.items():
            shared = rec['shared_memory']
            if shared is not None:
                print(f"{name}: {shared['conflicts']} shared-memory bank conflicts per launch")

        print("\nPlotting results...")
        output_file = os.path.join(output_dir, default_plot_file(result))
        benchmark.plot(result, output_file=output_file)

    print(f"\nBenchmark complete!")
    if result.failed:
        print(f"Failed variants: {', '.join(result.failed)}")


if __name__ == "__main__":
    main()
