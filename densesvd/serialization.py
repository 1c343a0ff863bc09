"""Binary layout of the persisted factors.

Three records, U then S then V. Each record is a little-endian int32 row
count, an int32 column count, and rows*cols little-endian float64 values in
row-major order. A missing matrix is written as a 0, 0 record with no
values, so a reader always finds exactly three records.
"""
import os
from pathlib import Path

import numpy as np

from densesvd.exceptions import MatrixFormatError, MatrixIOError
from densesvd.factorization import Factors

HEADER = np.dtype("<i4")
VALUE = np.dtype("<f8")
NAMES = ("U", "S", "V")


def _record(matrix):
    if matrix is None:
        return 0, 0, None

    values = np.asarray(matrix, dtype=VALUE)
    if values.ndim == 1:
        values = values.reshape(1, -1)
    if values.ndim != 2:
        raise MatrixFormatError(f"expected a 2-d matrix, got shape {values.shape}")

    rows, cols = values.shape
    limit = np.iinfo(HEADER).max
    if rows > limit or cols > limit:
        raise MatrixFormatError(f"{rows}x{cols} does not fit the int32 record header")

    return rows, cols, np.ascontiguousarray(values)


def write_matrix(fh, matrix):
    rows, cols, values = _record(matrix)
    fh.write(np.array([rows, cols], dtype=HEADER).tobytes())
    if values is not None and values.size:
        fh.write(memoryview(values).cast("B"))


def write_results(path, u, s, v):
    """Write U, S, V to `path`; the file only appears once fully written"""
    path = Path(path)
    tmp = path.with_name(path.name + ".tmp")
    try:
        with open(tmp, "wb") as fh:
            for matrix in (u, s, v):
                write_matrix(fh, matrix)
        os.replace(tmp, path)
    except OSError as e:
        raise MatrixIOError(f"could not write results to '{path}': {e}") from e
    finally:
        if tmp.exists():
            tmp.unlink()


def read_matrix(fh, name="matrix"):
    header = np.fromfile(fh, dtype=HEADER, count=2)
    if header.size != 2:
        raise MatrixIOError(f"truncated {name} header")

    rows, cols = (int(x) for x in header)
    if rows < 0 or cols < 0:
        raise MatrixIOError(f"negative {name} dimensions {rows}x{cols}")
    if rows == 0 and cols == 0:
        return None

    values = np.fromfile(fh, dtype=VALUE, count=rows * cols)
    if values.size != rows * cols:
        raise MatrixIOError(
            f"truncated {name} payload: {values.size} of {rows * cols} values"
        )

    return values.astype(np.float64).reshape(rows, cols)


def read_results(path) -> Factors:
    try:
        with open(path, "rb") as fh:
            matrices = [read_matrix(fh, name) for name in NAMES]
            if fh.read(1):
                raise MatrixIOError(f"trailing bytes after the V record in '{path}'")
    except MatrixIOError:
        raise
    except OSError as e:
        raise MatrixIOError(f"could not read results from '{path}': {e}") from e

    return Factors(*matrices)
