"""
Host-side input generation, reference transpose and result verification.
"""
import numpy as np

from ..errors import CorrectnessFailure


def initial_matrix(nx: int, ny: int) -> np.ndarray:
    """
    Deterministic ``ny x nx`` float32 input.

    Element (i, j) with 1-based column i and row j holds ``i + (j - 1) * nx``,
    i.e. the matrix counts 1, 2, 3, ... in row-major order.
    """
    return np.arange(1, nx * ny + 1, dtype=np.float32).reshape(ny, nx)


def reference_transpose(matrix: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(matrix.T)


def verify_result(variant: str, actual: np.ndarray, expected: np.ndarray) -> None:
    """
    Compare a downloaded result with its reference, element by element.

    The kernels only move data, so the comparison is exact.

    Args:
        variant: Name of the kernel variant that produced ``actual``
        actual: Downloaded result
        expected: Reference matrix

    Raises:
        CorrectnessFailure: If the shapes differ or any element differs
    """
    if actual.shape != expected.shape:
        raise CorrectnessFailure(variant, int(expected.size))

    mismatch = actual != expected
    count = int(np.count_nonzero(mismatch))
    if count:
        row, col = (int(i) for i in np.argwhere(mismatch)[0])
        raise CorrectnessFailure(variant, count, (row, col))
