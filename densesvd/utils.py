import time
from contextlib import contextmanager
from pathlib import Path

import numpy as np


class path:
    # relative to the working directory of the job, as the batch scripts run
    results = Path("svd_mpi_results.dat")

    # run logs, one per profile
    mpi_log = Path("svd_mpi.log")
    shared_log = Path("svd_shared.log")


def topk(scores, array=None, subset=None, k=10):
    if subset is not None:
        scores = np.take_along_axis(
            scores,
            subset,
            axis=1,
        )
        array = subset

    sorted_scores = np.argsort(scores, axis=1)[:, ::-1][:, :k]

    if array is not None:
        sorted_scores = np.take_along_axis(
            array,
            sorted_scores,
            axis=1,
        )

    return sorted_scores


@contextmanager
def timed():
    """Yield a dict whose "seconds" key is filled in when the block exits"""
    elapsed = {"seconds": 0.0}
    start = time.perf_counter()
    try:
        yield elapsed
    finally:
        elapsed["seconds"] = time.perf_counter() - start
