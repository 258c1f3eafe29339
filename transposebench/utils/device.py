"""
Device utilities for GPU benchmarking.

This module provides functions for querying device properties.
"""
import os
import platform
import re
from typing import Any, Dict

import numpy as np
import torch


def get_device_info(device_id: int) -> Dict[str, Any]:
    """
    Get detailed information about a CUDA device.

    Args:
        device_id: CUDA device ID

    Returns:
        Dictionary with device properties
    """
    if not torch.cuda.is_available():
        raise RuntimeError("CUDA is not available")

    if device_id >= torch.cuda.device_count():
        raise ValueError(f"Device ID {device_id} is out of range. Available devices: {torch.cuda.device_count()}")

    props = torch.cuda.get_device_properties(device_id)
    return {
        'name': props.name,
        'backend': 'cuda',
        'device_id': device_id,
        'total_memory': props.total_memory,
        'multi_processor_count': props.multi_processor_count,
        'compute_capability': f"{props.major}.{props.minor}"
    }


def get_host_info() -> Dict[str, Any]:
    """
    Describe the host running the SIMT simulator.

    Returns:
        Dictionary with host properties
    """
    return {
        'name': f"host simulator ({platform.processor() or platform.machine()})",
        'backend': 'host',
        'python': platform.python_version(),
        'numpy': np.__version__,
        'cpu_count': os.cpu_count()
    }


def sanitize_filename(name: str) -> str:
    """
    Sanitize a string to be used as a filename.

    Args:
        name: Input string

    Returns:
        Sanitized string suitable for use as a filename
    """
    return re.sub(r'[^\w\-]+', '-', name)
