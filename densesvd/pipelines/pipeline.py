import logging

from densesvd.dataset import load_dense_matrix
from densesvd.exceptions import PipelineError
from densesvd.factorization import TruncatedSVD
from densesvd.instrumentation import PhaseTimer, run_log, run_logger
from densesvd.serialization import write_results

logger = logging.getLogger(__name__)


def run_pipeline(context):
    """Ingest, factorize, serialize, release; return the phase durations.

    Phases run strictly in order. The dense matrix is released as soon as
    factorization ends, the factors as soon as they are written; no output
    file exists unless every phase succeeded.
    """
    timer = PhaseTimer()

    with timer.phase("ingest", "CSV reading & matrix fill took %.6f sec."):
        matrix = load_dense_matrix(
            context.csv_path, context.rows, context.cols, progress=context.progress
        )

    try:
        with timer.phase("factorize", "SVD computation took %.6f sec."):
            factors = TruncatedSVD(context.solver).factorize(matrix, context.k)
    finally:
        matrix.release()

    with factors:
        with timer.phase("serialize", "Saving Uk, Sk, Vk took %.6f sec."):
            write_results(context.output_path, *factors)
    logger.info("wrote Uk, Sk, Vk to '%s'", context.output_path)

    run_logger.info("Total program time: %.6f sec.", timer.total())
    run_logger.info("svds call completed successfully!")

    return timer.durations


def execute(context):
    """Run the pipeline in this process with the run log attached"""
    with run_log(context.log_path):
        try:
            return run_pipeline(context)
        except PipelineError as e:
            run_logger.error("Error: %s", e)
            raise
