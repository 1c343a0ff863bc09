import logging

import numpy as np
import scipy.linalg
from scipy.sparse.linalg import ArpackError, ArpackNoConvergence, svds

logger = logging.getLogger(__name__)

STATUS_OK = 0
STATUS_NO_CONVERGENCE = 1
STATUS_SOLVER_ERROR = 2

SEED = 47


def _failed(status):
    return None, None, None, status


def _as_factors(u, s, vt):
    """Sort triplets by descending singular value; S as a K x K diagonal, V as cols x K"""
    order = np.argsort(s)[::-1]
    u, s, vt = u[:, order], s[order], vt[order, :]

    return (
        np.ascontiguousarray(u),
        np.diag(s),
        np.ascontiguousarray(vt.T),
        STATUS_OK,
    )


def lapack_svd(data, k):
    """Dense LAPACK SVD truncated to the top k triplets"""
    try:
        u, s, vt = scipy.linalg.svd(data, full_matrices=False)
    except (np.linalg.LinAlgError, ValueError) as e:
        logger.error("LAPACK SVD failed: %s", e)
        return _failed(STATUS_SOLVER_ERROR)

    return _as_factors(u[:, :k], s[:k], vt[:k, :])


def iterative_svds(solver):
    """Partial SVD through `scipy.sparse.linalg.svds` with the given solver.

    The iterative solvers need k < min(rows, cols); the full-rank request
    goes to LAPACK instead.
    """

    def backend(data, k):
        if k >= min(data.shape):
            logger.info("k=%d is full rank, using LAPACK instead of %s", k, solver)
            return lapack_svd(data, k)

        try:
            u, s, vt = svds(data, k=k, solver=solver, random_state=SEED)
        except ArpackNoConvergence as e:
            logger.error("%s did not converge: %s", solver, e)
            return _failed(STATUS_NO_CONVERGENCE)
        except (ArpackError, np.linalg.LinAlgError, ValueError) as e:
            logger.error("%s failed: %s", solver, e)
            return _failed(STATUS_SOLVER_ERROR)

        return _as_factors(u, s, vt)

    backend.__name__ = f"{solver}_svds"

    return backend


lobpcg_svds = iterative_svds("lobpcg")
arpack_svds = iterative_svds("arpack")
propack_svds = iterative_svds("propack")
