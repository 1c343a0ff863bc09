"""Message-passing profile: every rank starts, only rank 0 does the work.

    mpirun -np 4 python -m densesvd.pipelines.mpi ratings.csv 67833 9 5
"""
import logging
import sys

from densesvd.pipelines.pipeline import execute
from densesvd.utils import path

logger = logging.getLogger(__name__)

LEADER = 0


class MessagePassingProfile:
    name = "mpi"
    default_log = path.mpi_log

    def __init__(self, comm=None):
        self.comm = comm

    def world(self):
        if self.comm is None:
            from mpi4py import MPI

            self.comm = MPI.COMM_WORLD
        return self.comm

    def participates(self):
        return self.world().Get_rank() == LEADER

    def run(self, context):
        comm = self.world()
        rank, size = comm.Get_rank(), comm.Get_size()
        if rank != LEADER:
            logger.debug("rank %d of %d has no work", rank, size)
            return None

        logger.info("MPI size=%d (only rank %d runs the SVD)", size, LEADER)
        logger.info(
            "Rank %d: reading '%s', building %dx%d matrix, K=%d",
            rank,
            context.csv_path,
            context.rows,
            context.cols,
            context.k,
        )

        return execute(context)


def main(argv=None):
    from densesvd.cli import main as cli_main

    return cli_main(argv, profile=MessagePassingProfile.name)


if __name__ == "__main__":
    sys.exit(main())
