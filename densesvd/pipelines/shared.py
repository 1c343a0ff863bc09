"""Shared-memory profile: one process, threads only inside the solver's BLAS.

    python -m densesvd.pipelines.shared ratings.csv 139723 906 100 --threads 2
"""
import logging
import sys

from threadpoolctl import threadpool_limits

from densesvd.pipelines.pipeline import execute
from densesvd.utils import path

logger = logging.getLogger(__name__)


class SharedMemoryProfile:
    name = "shared"
    default_log = path.shared_log

    def participates(self):
        return True

    def run(self, context):
        logger.info(
            "Building matrix from '%s' with dimensions %dx%d, computing rank-%d truncated SVD.",
            context.csv_path,
            context.rows,
            context.cols,
            context.k,
        )
        if context.n_threads:
            logger.info("limiting solver thread pools to %d", context.n_threads)

        with threadpool_limits(limits=context.n_threads):
            return execute(context)


def main(argv=None):
    from densesvd.cli import main as cli_main

    return cli_main(argv, profile=SharedMemoryProfile.name)


if __name__ == "__main__":
    sys.exit(main())
