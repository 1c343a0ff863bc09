"""Rating prediction from persisted factors.

    densesvd-recommend svd_mpi_results.dat 712 --n 10 --exclude-csv ratings.csv
"""
import argparse
import logging
import sys

import numpy as np

from densesvd.dataset import iter_ratings
from densesvd.exceptions import PipelineError
from densesvd.instrumentation import setup_logging
from densesvd.serialization import read_results
from densesvd.utils import path, topk

logger = logging.getLogger(__name__)


def _unpack(factors):
    u, s, v = factors
    if u is None or s is None or v is None:
        raise ValueError("cannot predict from incomplete factors")

    # S may come back as a K x K diagonal or as a single row of singular values
    if s.ndim != 2 or s.shape[0] != s.shape[1]:
        s = np.diag(np.ravel(s))

    return u, s, v


def _check_index(name, index, size):
    if not 0 <= index < size:
        raise ValueError(f"{name} index {index} outside [0, {size})")


def predict_ratings(factors, users=None):
    """Reconstruct U S V^T, for every user or only the given rows"""
    u, s, v = _unpack(factors)
    if users is not None:
        users = np.atleast_1d(users)
        for user in users:
            _check_index("user", int(user), u.shape[0])
        u = u[users]

    return u @ s @ v.T


def predict_rating(factors, user, item):
    u, s, v = _unpack(factors)
    _check_index("user", user, u.shape[0])
    _check_index("item", item, v.shape[0])

    return float(u[user] @ s @ v[item])


def rated_items(csv_path, user):
    return {item for u, item, _ in iter_ratings(csv_path) if u == user}


def recommend(factors, user, n=10, exclude=None):
    """Top-n (item, predicted rating) pairs for one user, skipping `exclude`"""
    scores = predict_ratings(factors, users=[user])
    exclude = sorted(item for item in exclude or () if 0 <= item < scores.shape[1])
    if exclude:
        scores[0, exclude] = -np.inf

    items = topk(scores, k=n)[0]

    return [(int(item), float(scores[0, item])) for item in items if np.isfinite(scores[0, item])]


def main(argv=None):
    parser = argparse.ArgumentParser(prog="densesvd-recommend", description="Top-N items for a user from saved factors")
    parser.add_argument("results", type=str, help=f"results file, e.g. {path.results}")
    parser.add_argument("user", type=int, help="user row index")
    parser.add_argument("--n", type=int, default=10, help="number of recommendations")
    parser.add_argument("--exclude-csv", type=str, default=None, help="ratings CSV whose items for this user are skipped")
    args = parser.parse_args(argv)
    setup_logging()

    try:
        factors = read_results(args.results)
        exclude = rated_items(args.exclude_csv, args.user) if args.exclude_csv else None
    except PipelineError as e:
        logger.error("%s", e)
        return e.exit_code

    with factors:
        try:
            recommendations = recommend(factors, args.user, n=args.n, exclude=exclude)
        except (ValueError, IndexError) as e:
            logger.error("%s", e)
            return 1

    print(f"Recommendations for User {args.user}:")
    for item, score in recommendations:
        print(f"Item {item} predicted rating: {score:.2f}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
