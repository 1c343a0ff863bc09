import argparse
import logging
import sys

from densesvd.config import ExecutionContext, load_config
from densesvd.exceptions import PipelineError, UsageError
from densesvd.instrumentation import setup_logging
from densesvd.models import SOLVERS
from densesvd.pipelines import PROFILES
from densesvd.utils import path

logger = logging.getLogger(__name__)


def build_parser(profile=None):
    parser = argparse.ArgumentParser(
        prog="densesvd",
        description="Build a dense rating matrix from a CSV file and persist its rank-K truncated SVD",
    )
    parser.add_argument("csv_path", type=str, help="ratings CSV: a header, then user,item,rating lines")
    parser.add_argument("rows", type=str, help="number of users (matrix rows)")
    parser.add_argument("cols", type=str, help="number of items (matrix columns)")
    parser.add_argument("k", metavar="K", type=str, help="target rank")
    if profile is None:
        parser.add_argument("--profile", type=str, default=None, choices=list(PROFILES),
                            help="execution profile (default: shared)")
    parser.add_argument("--threads", type=int, default=None, help="thread count for the solver's BLAS pools")
    parser.add_argument("--output", type=str, default=None, help=f"results file (default: {path.results})")
    parser.add_argument("--log-file", type=str, default=None, help="run log, appended to")
    parser.add_argument("--solver", type=str, default=None, choices=list(SOLVERS), help="svds solver (default: lobpcg)")
    parser.add_argument("--progress", action="store_true", default=None, help="show a progress bar while reading the CSV")
    parser.add_argument("--config", type=str, default=None, help="JSON configuration file")
    parser.add_argument("--verbose", action="store_true", help="debug logging")

    return parser


def _first(*values):
    return next((val for val in values if val is not None), None)


def resolve(args, runner=None):
    """Merge CLI flags over the JSON config; return (runner, context).

    `runner` is the profile instance already chosen on the command line,
    if any; otherwise the config file (or the default) picks it.
    """
    config = load_config(args.config) if args.config else {}

    if runner is None:
        profile_name = _first(config.get("profile"), "shared")
        if profile_name not in PROFILES:
            raise UsageError(f"unknown profile {profile_name!r}, choose from {', '.join(PROFILES)}")
        runner = PROFILES[profile_name]()

    solver = _first(args.solver, config.get("solver"))
    if solver is not None and solver not in SOLVERS:
        raise UsageError(f"unknown solver {solver!r}, choose from {', '.join(SOLVERS)}")

    context = ExecutionContext.from_args(
        args.csv_path,
        args.rows,
        args.cols,
        args.k,
        output_path=_first(args.output, config.get("output_path")),
        log_path=_first(args.log_file, config.get("log_path"), runner.default_log),
        n_threads=_first(args.threads, config.get("n_threads")),
        solver=solver,
        progress=_first(args.progress, config.get("progress")),
    )

    return runner, context


def main(argv=None, profile=None):
    parser = build_parser(profile)
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        runner = None
        profile_name = _first(profile, getattr(args, "profile", None))
        if profile_name is not None:
            runner = PROFILES[profile_name]()
            # non-leader ranks stop here, before the config file is read
            if not runner.participates():
                return 0

        runner, context = resolve(args, runner)
        runner.run(context)
    except PipelineError as e:
        logger.error("%s", e)
        return e.exit_code

    return 0


if __name__ == "__main__":
    sys.exit(main())
