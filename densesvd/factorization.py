import logging

import numpy as np

from densesvd.dataset import DenseMatrix
from densesvd.exceptions import FactorizationFailure
from densesvd.models import SOLVERS

logger = logging.getLogger(__name__)


class Factors:
    """U, S and V of a truncated SVD; any of them may be None.

    The holder owns the arrays until `release()`, which must happen exactly
    once. Used as a context manager, leaving the block releases them.
    """

    def __init__(self, u=None, s=None, v=None):
        self.u = u
        self.s = s
        self.v = v
        self.released = False

    def __iter__(self):
        if self.released:
            raise RuntimeError("factors already released")
        return iter((self.u, self.s, self.v))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()

    def release(self):
        if self.released:
            raise RuntimeError("factors already released")
        self.u = self.s = self.v = None
        self.released = True


def _read_only(matrix):
    data = matrix.data if isinstance(matrix, DenseMatrix) else np.asarray(matrix)
    view = data.view()
    view.flags.writeable = False

    return view


class TruncatedSVD:
    """Drives a rank-k factorization backend through its status-code contract.

    A backend is any callable `backend(data, k) -> (u, s, v, status)` where a
    non-zero status means failure; the ones shipped are in `SOLVERS`.
    """

    def __init__(self, backend="lobpcg"):
        if isinstance(backend, str):
            if backend not in SOLVERS:
                raise ValueError(
                    f"unknown solver {backend!r}, choose from {', '.join(SOLVERS)}"
                )
            backend = SOLVERS[backend]
        self.backend = backend

    def factorize(self, matrix, k: int) -> Factors:
        rows, cols = matrix.shape
        if not 1 <= k <= min(rows, cols):
            raise FactorizationFailure(
                f"rank k={k} must be between 1 and min(rows, cols)={min(rows, cols)}"
            )

        logger.info("computing rank-%d SVD of a %dx%d matrix", k, rows, cols)
        u, s, v, status = self.backend(_read_only(matrix), k)
        if status != 0:
            del u, s, v
            raise FactorizationFailure(
                f"svds failed with status {status}", status=status
            )

        return Factors(u, s, v)
