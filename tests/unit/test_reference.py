from __future__ import annotations

import numpy as np
import pytest

from transposebench.errors import CorrectnessFailure
from transposebench.transpose.reference import initial_matrix, reference_transpose, verify_result


def test_initial_matrix_counts_in_row_major_order() -> None:
    m = initial_matrix(nx=4, ny=3)
    assert m.dtype == np.float32
    assert m.shape == (3, 4)
    # value(i, j) = i + (j - 1) * nx with 1-based column i and row j
    for j in range(1, 4):
        for i in range(1, 5):
            assert m[j - 1, i - 1] == i + (j - 1) * 4


def test_reference_transpose_is_contiguous() -> None:
    m = initial_matrix(nx=64, ny=32)
    t = reference_transpose(m)
    assert t.shape == (64, 32)
    assert t.flags["C_CONTIGUOUS"]
    assert t[5, 7] == m[7, 5]


def test_verify_accepts_exact_match() -> None:
    m = initial_matrix(8, 8)
    verify_result("copy", m.copy(), m)


def test_verify_reports_first_mismatch() -> None:
    m = initial_matrix(8, 8)
    bad = m.copy()
    bad[2, 5] += 1.0
    bad[6, 1] = np.nan
    with pytest.raises(CorrectnessFailure) as excinfo:
        verify_result("transpose_naive", bad, m)
    assert excinfo.value.variant == "transpose_naive"
    assert excinfo.value.mismatches == 2
    assert excinfo.value.first_mismatch == (2, 5)


def test_verify_is_exact() -> None:
    m = initial_matrix(8, 8)
    close = np.nextafter(m, np.float32(np.inf))
    with pytest.raises(CorrectnessFailure):
        verify_result("copy", close, m)


def test_verify_rejects_wrong_shape() -> None:
    m = initial_matrix(nx=64, ny=32)
    with pytest.raises(CorrectnessFailure) as excinfo:
        verify_result("transpose_coalesced", m, reference_transpose(m))
    assert excinfo.value.mismatches == m.size
