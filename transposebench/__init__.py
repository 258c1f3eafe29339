"""
Matrix copy/transpose bandwidth benchmark.

Measures how global-memory access patterns (naive, shared-memory tiled, padded
against bank conflicts) affect the effective bandwidth of data-movement kernels.
"""
__version__ = "0.1.0"
