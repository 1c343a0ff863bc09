import logging
import re
from typing import NamedTuple

import numpy as np
import psutil
from tqdm import tqdm

from densesvd.exceptions import AllocationError, MatrixIOError

logger = logging.getLogger(__name__)

_INT = r"[+-]?\d+"
_REAL = r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?"
RATING_LINE = re.compile(rf"\s*({_INT})\s*,\s*({_INT})\s*,\s*({_REAL})\s*")


class Rating(NamedTuple):
    user: int
    item: int
    rating: float


def parse_rating(line):
    """Parse a `user,item,rating` line, None for any other shape"""
    match = RATING_LINE.fullmatch(line)
    if match is None:
        return None
    user, item, rating = match.groups()

    return Rating(int(user), int(item), float(rating))


def iter_ratings(csv_path, progress=False):
    """Yield the ratings of a CSV file in file order.

    The first line is always discarded as a header. Lines that are not
    exactly two integers and a real number, comma-separated, are skipped.
    Each call starts a fresh pass from the top of the file.
    """
    try:
        fh = open(csv_path, "r", encoding="utf-8", errors="replace")
    except OSError as e:
        raise MatrixIOError(f"cannot open CSV file '{csv_path}': {e.strerror}") from e

    with fh:
        fh.readline()
        for line in tqdm(
            fh, desc="ingest", unit=" lines", leave=False, disable=not progress
        ):
            rating = parse_rating(line)
            if rating is not None:
                yield rating


def ingest(csv_path, consumer, progress=False):
    """Feed every parsed rating to `consumer(user, item, rating)`, return how many were fed"""
    n_dispatched = 0
    for user, item, rating in iter_ratings(csv_path, progress=progress):
        consumer(user, item, rating)
        n_dispatched += 1

    return n_dispatched


def allocate(rows, cols):
    """Zero-filled (rows, cols) float64 buffer, checked against available memory"""
    n_bytes = rows * cols * np.dtype(np.float64).itemsize
    available = psutil.virtual_memory().available
    if n_bytes > available:
        raise AllocationError(
            f"allocation failed for {rows}x{cols} matrix: "
            f"needs {n_bytes:,} bytes, {available:,} available"
        )

    try:
        return np.zeros((rows, cols), dtype=np.float64, order="C")
    except (MemoryError, ValueError) as e:
        raise AllocationError(f"allocation failed for {rows}x{cols} matrix: {e}") from e


class DenseMatrix:
    """Row-major rating matrix built from (user, item, rating) triples.

    Unobserved entries stay 0.0 and a later triple for the same cell
    overwrites an earlier one. Triples outside the declared shape are
    dropped. The instance is itself a consumer for `ingest`.
    """

    def __init__(self, rows: int, cols: int):
        if rows <= 0 or cols <= 0:
            raise ValueError(f"matrix dimensions must be positive, got {rows}x{cols}")
        self.rows = rows
        self.cols = cols
        self.n_applied = 0
        self._data = allocate(rows, cols)

    @property
    def shape(self):
        return self.rows, self.cols

    @property
    def data(self) -> np.ndarray:
        if self._data is None:
            raise RuntimeError("matrix buffer already released")
        return self._data

    @property
    def released(self):
        return self._data is None

    def add(self, user, item, rating):
        if 0 <= user < self.rows and 0 <= item < self.cols:
            self.data[user, item] = rating
            self.n_applied += 1
            return True

        return False

    __call__ = add

    def release(self):
        self._data = None


def load_dense_matrix(csv_path, rows, cols, progress=False):
    matrix = DenseMatrix(rows, cols)
    try:
        n_dispatched = ingest(csv_path, matrix, progress=progress)
    except BaseException:
        matrix.release()
        raise

    logger.debug(
        "parsed %d ratings from %s, %d inside %dx%d",
        n_dispatched,
        csv_path,
        matrix.n_applied,
        rows,
        cols,
    )

    return matrix
