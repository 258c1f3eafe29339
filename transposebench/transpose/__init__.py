"""
Matrix copy and transpose benchmarking

This module provides:
- Five copy/transpose kernel variants (host SIMT and CUDA versions)
- Tile geometry and benchmark configuration
- The bandwidth harness with host-side reference and verification
"""
